"""
Машина состояний формы регистрации тренера.

Форма проходит шаги 1..4 (личные данные, специализация, документы,
согласия), затем отправляется. Все изменения состояния проходят через
чистую функцию transition(state, event, payload); RegistrationForm лишь
хранит текущее состояние и выполняет побочные эффекты (отправку).

Состояние сериализуется в dict (to_dict/from_dict), чтобы жить в
хранилище FSM aiogram между апдейтами.
"""
import asyncio
import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

import aiohttp

from config import AVAILABILITY_OPTIONS, INTERVENTION_REGIONS, SPECIALTIES, SUBMIT_TIMEOUT_SECONDS
from services.errors import SubmissionError
from services.validation import (
    TOTAL_STEPS,
    FieldError,
    UploadedFile,
    format_file_size,
    validate_field,
    validate_step,
)

logger = logging.getLogger(__name__)

TIMEOUT_MESSAGE = "La requête a expiré. Veuillez réessayer."
CONNECTION_MESSAGE = "Erreur de connexion. Veuillez réessayer."
DEFAULT_FAILURE_MESSAGE = "Erreur lors de l'inscription"
DEFAULT_SUCCESS_MESSAGE = "Inscription réussie !"

Submitter = Callable[[Dict[str, Any]], Awaitable[dict]]


class FormStatus(str, Enum):
    EDITING = "editing"
    SUBMITTING = "submitting"
    COMPLETED = "completed"
    FAILED = "failed"


class FormEvent(str, Enum):
    EDIT = "edit"
    NEXT = "next"
    PREVIOUS = "previous"
    SUBMIT = "submit"
    SUBMIT_SUCCEEDED = "submit_succeeded"
    SUBMIT_FAILED = "submit_failed"


@dataclass
class FormState:
    """Снимок формы"""
    step: int = 1
    values: Dict[str, Any] = field(default_factory=dict)
    errors: List[FieldError] = field(default_factory=list)
    warnings: List[FieldError] = field(default_factory=list)
    status: FormStatus = FormStatus.EDITING
    submitting: bool = False
    message: Optional[str] = None


def transition(state: FormState, event: FormEvent, payload: Optional[dict] = None) -> FormState:
    """Чистый переход: (состояние, событие) -> новое состояние"""
    payload = payload or {}

    if event == FormEvent.EDIT:
        if state.submitting:
            return state
        values = dict(state.values)
        values[payload["name"]] = payload["value"]
        return replace(state, values=values)

    if event == FormEvent.NEXT:
        if state.submitting:
            return state
        errors, warnings = validate_step(state.step, state.values)
        if errors or state.step >= TOTAL_STEPS:
            return replace(state, errors=errors, warnings=warnings)
        return replace(
            state,
            step=state.step + 1,
            errors=[],
            warnings=warnings,
            status=FormStatus.EDITING,
            message=None,
        )

    if event == FormEvent.PREVIOUS:
        if state.submitting or state.step <= 1:
            return state
        return replace(
            state,
            step=state.step - 1,
            errors=[],
            warnings=[],
            status=FormStatus.EDITING,
            message=None,
        )

    if event == FormEvent.SUBMIT:
        if state.submitting or state.step != TOTAL_STEPS:
            return state
        errors, warnings = validate_step(state.step, state.values)
        if errors:
            return replace(state, errors=errors, warnings=warnings)
        return replace(
            state,
            errors=[],
            warnings=warnings,
            status=FormStatus.SUBMITTING,
            submitting=True,
            message=None,
        )

    if event == FormEvent.SUBMIT_SUCCEEDED:
        if not state.submitting:
            return state
        # Успех: данные формы очищаются, возврат к первому шагу
        return FormState(
            status=FormStatus.COMPLETED,
            message=payload.get("message") or DEFAULT_SUCCESS_MESSAGE,
        )

    if event == FormEvent.SUBMIT_FAILED:
        if not state.submitting:
            return state
        # Данные сохраняются для повторной попытки
        return replace(
            state,
            step=TOTAL_STEPS,
            status=FormStatus.FAILED,
            submitting=False,
            message=payload.get("message") or DEFAULT_FAILURE_MESSAGE,
        )

    raise ValueError(f"Unknown form event: {event}")


class RegistrationForm:
    """Форма регистрации: next(), previous(), submit(), get_state()"""

    def __init__(self, state: Optional[FormState] = None):
        self._state = state or FormState()

    def get_state(self) -> FormState:
        return self._state

    @property
    def step(self) -> int:
        return self._state.step

    @property
    def values(self) -> Dict[str, Any]:
        return self._state.values

    def dispatch(self, event: FormEvent, **payload) -> FormState:
        self._state = transition(self._state, event, payload)
        return self._state

    def set_value(self, name: str, value: Any) -> Optional[str]:
        """Записать значение поля; вернуть подсказку проверки (не блокирует)"""
        if isinstance(value, UploadedFile):
            value = value.to_dict()
        self.dispatch(FormEvent.EDIT, name=name, value=value)
        return validate_field(name, value)

    def next(self) -> List[FieldError]:
        """Перейти к следующему шагу; вернуть ошибки, если переход не удался"""
        self.dispatch(FormEvent.NEXT)
        return list(self._state.errors)

    def previous(self) -> bool:
        before = self._state.step
        self.dispatch(FormEvent.PREVIOUS)
        return self._state.step < before

    async def submit(
        self,
        submitter: Submitter,
        timeout: float = SUBMIT_TIMEOUT_SECONDS,
        on_submitting: Optional[Callable[["RegistrationForm"], Awaitable[None]]] = None,
    ) -> FormState:
        """
        Отправить заполненную форму.

        submitter получает копию значений и возвращает
        {'success': True, ...} или {'success': False, 'message', 'code'}.
        on_submitting вызывается после перехода в SUBMITTING, до отправки,
        чтобы сохранить флаг и не допустить повторной отправки.
        """
        if self._state.submitting:
            logger.warning("Повторная отправка формы проигнорирована")
            return self._state

        state = self.dispatch(FormEvent.SUBMIT)
        if state.status != FormStatus.SUBMITTING:
            return state

        if on_submitting is not None:
            await on_submitting(self)

        try:
            result = await asyncio.wait_for(submitter(dict(state.values)), timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Отправка формы превысила таймаут {timeout}s")
            return self.dispatch(FormEvent.SUBMIT_FAILED, message=TIMEOUT_MESSAGE, code="timeout")
        except SubmissionError as e:
            logger.info(f"Отправка формы отклонена: {e.code}")
            return self.dispatch(FormEvent.SUBMIT_FAILED, message=e.message, code=e.code)
        except (aiohttp.ClientError, OSError) as e:
            logger.error(f"Сетевая ошибка при отправке формы: {e}")
            return self.dispatch(FormEvent.SUBMIT_FAILED, message=CONNECTION_MESSAGE, code="network_error")

        if result and result.get("success"):
            return self.dispatch(FormEvent.SUBMIT_SUCCEEDED, message=result.get("message"))
        result = result or {}
        return self.dispatch(
            FormEvent.SUBMIT_FAILED,
            message=result.get("message") or DEFAULT_FAILURE_MESSAGE,
            code=result.get("code"),
        )

    def summary(self) -> List[Tuple[str, str]]:
        return build_summary(self._state.values)

    def to_dict(self) -> dict:
        state = self._state
        return {
            "step": state.step,
            "values": dict(state.values),
            "errors": [[e.field, e.message] for e in state.errors],
            "warnings": [[w.field, w.message] for w in state.warnings],
            "status": state.status.value,
            "submitting": state.submitting,
            "message": state.message,
        }

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "RegistrationForm":
        if not data:
            return cls()
        return cls(FormState(
            step=data.get("step", 1),
            values=dict(data.get("values") or {}),
            errors=[FieldError(*item) for item in data.get("errors") or []],
            warnings=[FieldError(*item) for item in data.get("warnings") or []],
            status=FormStatus(data.get("status", FormStatus.EDITING.value)),
            submitting=bool(data.get("submitting")),
            message=data.get("message"),
        ))


def _labels(keys: List[str], catalogue: Dict[str, str]) -> str:
    return ", ".join(catalogue.get(key, key) for key in keys)


def build_summary(values: Dict[str, Any]) -> List[Tuple[str, str]]:
    """Сводка введённых данных перед отправкой (пустые поля пропускаются)"""
    items = [
        ("Nom complet", f"{values.get('first_name', '')} {values.get('last_name', '')}".strip()),
        ("Email", values.get("email")),
        ("Téléphone", values.get("phone")),
        ("Entreprise", values.get("company")),
        ("LinkedIn", values.get("linkedin_url")),
        ("Spécialités", _labels(values.get("specialties") or [], SPECIALTIES)),
        ("Zones d'intervention", _labels(values.get("intervention_regions") or [], INTERVENTION_REGIONS)),
        ("Disponibilité", AVAILABILITY_OPTIONS.get(values.get("availability") or "", values.get("availability"))),
        ("Tarif horaire", values.get("hourly_rate")),
    ]

    for label, name in (("CV", "cv_file"), ("Photo", "photo_file")):
        uploaded = UploadedFile.from_value(values.get(name))
        if uploaded is not None:
            items.append((label, f"{uploaded.name} ({format_file_size(uploaded.size)})"))

    return [(label, str(value)) for label, value in items if value]
