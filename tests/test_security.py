from __future__ import annotations

import pytest

from services.errors import SecurityError
from services.security import issue_token, new_session_id, require_token, verify_token


def test_token_is_bound_to_session_and_secret():
    session_id = new_session_id()
    token = issue_token("secret", session_id)

    assert verify_token("secret", session_id, token)
    assert not verify_token("secret", new_session_id(), token)
    assert not verify_token("other-secret", session_id, token)


@pytest.mark.parametrize("session_id, token", [(None, "abc"), ("sid", None), ("", ""), ("sid", "forged")])
def test_require_token_rejects(session_id, token):
    with pytest.raises(SecurityError) as exc:
        require_token("secret", session_id, token)
    assert exc.value.code == "invalid_nonce"


def test_require_token_accepts_valid():
    require_token("secret", "sid", issue_token("secret", "sid"))
