from __future__ import annotations

import asyncio

from services.errors import DuplicateEmailError
from services.registration_form import (
    TIMEOUT_MESSAGE,
    FormEvent,
    FormState,
    FormStatus,
    RegistrationForm,
    transition,
)


def form_at_step4(values) -> RegistrationForm:
    return RegistrationForm(FormState(step=4, values=dict(values)))


def test_next_is_blocked_by_step_errors():
    form = RegistrationForm()
    form.set_value("first_name", "Jean")
    errors = form.next()
    assert form.step == 1
    assert {"last_name", "email", "phone"} <= {e.field for e in errors}


def test_next_advances_and_clears_errors(valid_values):
    form = RegistrationForm(FormState(values=dict(valid_values)))
    assert form.next() == []
    assert form.step == 2
    assert form.get_state().errors == []


def test_next_at_last_step_stays(valid_values):
    form = form_at_step4(valid_values)
    form.next()
    assert form.step == 4


def test_previous_never_validates():
    form = RegistrationForm(FormState(step=3, values={}))
    assert form.previous() is True
    assert form.step == 2
    assert form.get_state().errors == []
    form.previous()
    assert form.previous() is False
    assert form.step == 1


def test_set_value_returns_advisory_hint_without_blocking():
    form = RegistrationForm()
    assert form.set_value("email", "pas-un-email") == "Format d'email invalide"
    assert form.values["email"] == "pas-un-email"
    assert form.step == 1


def test_submit_without_consent_never_reaches_completed(valid_values):
    valid_values["rgpd_consent"] = False
    form = form_at_step4(valid_values)
    calls = []

    async def submitter(values):
        calls.append(values)
        return {"success": True}

    state = asyncio.run(form.submit(submitter))
    assert calls == []
    assert state.status == FormStatus.EDITING
    assert [e.message for e in state.errors] == ["Le consentement RGPD est obligatoire"]


def test_successful_submit_resets_form(valid_values):
    form = form_at_step4(valid_values)

    async def submitter(values):
        return {"success": True, "message": "Inscription réussie !"}

    state = asyncio.run(form.submit(submitter))
    assert state.status == FormStatus.COMPLETED
    assert state.step == 1
    assert state.values == {}
    assert state.submitting is False
    assert state.message == "Inscription réussie !"


def test_failed_submit_keeps_data_for_retry(valid_values):
    form = form_at_step4(valid_values)

    async def submitter(values):
        return {"success": False, "message": "Cette adresse email est déjà enregistrée", "code": "email_exists"}

    state = asyncio.run(form.submit(submitter))
    assert state.status == FormStatus.FAILED
    assert state.step == 4
    assert state.values == valid_values
    assert state.submitting is False
    assert state.message == "Cette adresse email est déjà enregistrée"


def test_submission_error_from_submitter(valid_values):
    form = form_at_step4(valid_values)

    async def submitter(values):
        raise DuplicateEmailError()

    state = asyncio.run(form.submit(submitter))
    assert state.status == FormStatus.FAILED
    assert state.message == "Cette adresse email est déjà enregistrée"


def test_network_error_from_submitter(valid_values):
    form = form_at_step4(valid_values)

    async def submitter(values):
        raise ConnectionResetError("reset")

    state = asyncio.run(form.submit(submitter))
    assert state.status == FormStatus.FAILED
    assert state.message == "Erreur de connexion. Veuillez réessayer."


def test_submit_timeout(valid_values):
    form = form_at_step4(valid_values)

    async def submitter(values):
        await asyncio.sleep(1)
        return {"success": True}

    state = asyncio.run(form.submit(submitter, timeout=0.01))
    assert state.status == FormStatus.FAILED
    assert state.message == TIMEOUT_MESSAGE
    assert state.values == valid_values


def test_concurrent_submit_is_ignored(valid_values):
    form = form_at_step4(valid_values)
    calls = []

    async def submitter(values):
        calls.append(values)
        await asyncio.sleep(0.01)
        return {"success": True}

    async def run():
        return await asyncio.gather(form.submit(submitter), form.submit(submitter))

    asyncio.run(run())
    assert len(calls) == 1
    assert form.get_state().status == FormStatus.COMPLETED


def test_on_submitting_sees_guard(valid_values):
    form = form_at_step4(valid_values)
    seen = []

    async def on_submitting(submitting_form):
        seen.append(submitting_form.get_state().submitting)

    async def submitter(values):
        return {"success": True}

    asyncio.run(form.submit(submitter, on_submitting=on_submitting))
    assert seen == [True]


def test_edits_and_navigation_ignored_while_submitting(valid_values):
    state = FormState(step=4, values=dict(valid_values), status=FormStatus.SUBMITTING, submitting=True)
    assert transition(state, FormEvent.PREVIOUS) is state
    assert transition(state, FormEvent.EDIT, {"name": "email", "value": "x"}) is state


def test_state_survives_serialization(valid_values):
    form = RegistrationForm(FormState(values=dict(valid_values)))
    form.set_value("experience", "court")
    form.dispatch(FormEvent.NEXT)
    form.dispatch(FormEvent.NEXT)
    assert form.get_state().errors
    restored = RegistrationForm.from_dict(form.to_dict())
    assert restored.get_state() == form.get_state()


def test_summary_lists_filled_fields(valid_values):
    summary = dict(RegistrationForm(FormState(values=valid_values)).summary())
    assert summary["Nom complet"] == "Jean Dupont"
    assert summary["Spécialités"] == "DevOps & CI/CD, Cloud Computing"
    assert summary["CV"] == "cv.pdf (117.19 KB)"
    assert "Entreprise" not in summary
    assert "Photo" not in summary
