"""Anti-forgery токены для JSON API"""
import hashlib
import hmac
import secrets
from typing import Optional

from services.errors import SecurityError


def new_session_id() -> str:
    return secrets.token_urlsafe(24)


def issue_token(secret: str, session_id: str) -> str:
    """Токен сессии: HMAC-SHA256(secret, session_id)"""
    return hmac.new(secret.encode(), session_id.encode(), hashlib.sha256).hexdigest()


def verify_token(secret: str, session_id: Optional[str], token: Optional[str]) -> bool:
    if not session_id or not token:
        return False
    return hmac.compare_digest(issue_token(secret, session_id), token)


def require_token(secret: str, session_id: Optional[str], token: Optional[str]):
    """Проверка токена до выполнения любого запроса"""
    if not verify_token(secret, session_id, token):
        raise SecurityError()
