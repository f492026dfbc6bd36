"""Правила проверки полей и шагов формы регистрации"""
import re
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional, Tuple

from config import (
    CV_MIME_TYPES,
    MAX_CV_SIZE,
    MAX_PHOTO_SIZE,
    PHOTO_MIME_TYPES,
)

NAME_RE = re.compile(r"^[a-zA-ZÀ-ÿ\s\-']+$")
EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
# Французские номера: 01 23 45 67 89, +33 1 23 45 67 89, 0033 1 ...
PHONE_RE = re.compile(r"^(?:(?:\+|00)33|0)[1-9][0-9]{8}$")
PHONE_SEPARATORS_RE = re.compile(r"[\s.\-]")
TAG_RE = re.compile(r"<[^>]*>")

EXPERIENCE_MIN = 50
EXPERIENCE_MAX = 1000
SPECIALTIES_SOFT_LIMIT = 5
REGIONS_SOFT_LIMIT = 8

TOTAL_STEPS = 4

# Поля каждого шага (порядок важен для вывода ошибок)
STEP_FIELDS = {
    1: ("first_name", "last_name", "email", "phone", "company", "linkedin_url"),
    2: ("specialties", "intervention_regions", "availability", "hourly_rate", "experience", "bio"),
    3: ("cv_file", "photo_file"),
    4: ("rgpd_consent", "marketing_consent"),
}


@dataclass(frozen=True)
class FieldError:
    """Ошибка конкретного поля"""
    field: str
    message: str


@dataclass(frozen=True)
class UploadedFile:
    """Метаданные загруженного файла"""
    name: str
    size: int
    mime_type: str
    file_id: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_value(cls, value: Any) -> Optional["UploadedFile"]:
        if value is None or isinstance(value, cls):
            return value
        if isinstance(value, dict):
            return cls(
                name=value.get("name", ""),
                size=int(value.get("size") or 0),
                mime_type=value.get("mime_type") or "",
                file_id=value.get("file_id"),
            )
        raise TypeError(f"Unsupported file value: {value!r}")


def format_file_size(size: int) -> str:
    """Человекочитаемый размер: 6291456 -> '6 MB'"""
    if size <= 0:
        return "0 Bytes"
    units = ["Bytes", "KB", "MB", "GB"]
    index = 0
    value = float(size)
    while value >= 1024 and index < len(units) - 1:
        value /= 1024
        index += 1
    value = round(value, 2)
    if value == int(value):
        value = int(value)
    return f"{value} {units[index]}"


def sanitize_text(value: Any, multiline: bool = False) -> str:
    """Очистка пользовательского текста: теги, управляющие символы, пробелы"""
    if value is None:
        return ""
    text = TAG_RE.sub("", str(value))
    text = "".join(ch for ch in text if ord(ch) >= 32 or ch == "\n")
    if multiline:
        lines = [re.sub(r"[ \t]+", " ", line).strip() for line in text.split("\n")]
        return "\n".join(lines).strip()
    return re.sub(r"\s+", " ", text).strip()


def normalize_phone(phone: str) -> str:
    return PHONE_SEPARATORS_RE.sub("", phone or "")


def is_valid_email(email: str) -> bool:
    return bool(EMAIL_RE.match(email))


def is_valid_phone(phone: str) -> bool:
    return bool(PHONE_RE.match(normalize_phone(phone)))


def _text(values: Dict[str, Any], name: str) -> str:
    value = values.get(name)
    return str(value).strip() if value else ""


def _name_error(value: str, label: str) -> Optional[str]:
    if not value:
        return f"Le {label} est obligatoire"
    if len(value) < 2:
        return f"Le {label} doit contenir au moins 2 caractères"
    if not NAME_RE.match(value):
        return f"Le {label} contient des caractères non autorisés"
    return None


def _experience_error(value: str) -> Optional[str]:
    if not value:
        return "Description de l'expérience obligatoire"
    if len(value) < EXPERIENCE_MIN:
        return f"Description trop courte ({len(value)}/{EXPERIENCE_MIN} caractères minimum)"
    if len(value) > EXPERIENCE_MAX:
        return f"Description trop longue ({len(value)}/{EXPERIENCE_MAX} caractères maximum)"
    return None


def validate_field(name: str, value: Any) -> Optional[str]:
    """
    Проверка одного поля «на лету».

    Возвращает текст подсказки или None. Результат носит рекомендательный
    характер: переход между шагами решает validate_step.
    """
    text = str(value).strip() if isinstance(value, str) else value

    if name == "first_name":
        return _name_error(text or "", "prénom")
    if name == "last_name":
        return _name_error(text or "", "nom")
    if name == "email":
        if not text:
            return "L'adresse email est obligatoire"
        if not is_valid_email(text):
            return "Format d'email invalide"
        return None
    if name == "phone":
        if not text:
            return "Le numéro de téléphone est obligatoire"
        if not is_valid_phone(text):
            return "Format de téléphone invalide (format français attendu)"
        return None
    if name == "linkedin_url":
        if text and "linkedin.com" not in text:
            return "URL LinkedIn invalide (doit contenir linkedin.com)"
        return None
    if name == "experience":
        return _experience_error(text or "")
    if name == "specialties":
        if not value:
            return "Sélectionnez au moins une spécialité"
        return None
    if name == "intervention_regions":
        if not value:
            return "Sélectionnez au moins une zone d'intervention"
        return None
    if name == "rgpd_consent":
        if not value:
            return "Le consentement RGPD est obligatoire"
        return None
    return None


def _validate_step1(values: Dict[str, Any], errors: List[FieldError], warnings: List[FieldError]):
    for name in ("first_name", "last_name", "email", "phone", "linkedin_url"):
        message = validate_field(name, _text(values, name))
        if message:
            errors.append(FieldError(name, message))


def _validate_step2(values: Dict[str, Any], errors: List[FieldError], warnings: List[FieldError]):
    specialties = values.get("specialties") or []
    if not specialties:
        errors.append(FieldError("specialties", "Sélectionnez au moins une spécialité"))
    elif len(specialties) > SPECIALTIES_SOFT_LIMIT:
        warnings.append(FieldError(
            "specialties", f"Maximum {SPECIALTIES_SOFT_LIMIT} spécialités recommandées"
        ))

    regions = values.get("intervention_regions") or []
    if not regions:
        errors.append(FieldError("intervention_regions", "Sélectionnez au moins une zone d'intervention"))
    elif len(regions) > REGIONS_SOFT_LIMIT:
        warnings.append(FieldError(
            "intervention_regions",
            "Conseil : sélectionnez vos zones principales pour une meilleure visibilité"
        ))

    message = _experience_error(_text(values, "experience"))
    if message:
        errors.append(FieldError("experience", message))


def _validate_step3(values: Dict[str, Any], errors: List[FieldError], warnings: List[FieldError]):
    cv_file = UploadedFile.from_value(values.get("cv_file"))
    if cv_file is None:
        errors.append(FieldError("cv_file", "Le CV est obligatoire"))
    else:
        if cv_file.size > MAX_CV_SIZE:
            errors.append(FieldError(
                "cv_file",
                f"CV trop volumineux ({format_file_size(cv_file.size)}). "
                f"Maximum: {MAX_CV_SIZE // (1024 * 1024)}MB"
            ))
        if cv_file.mime_type not in CV_MIME_TYPES:
            errors.append(FieldError("cv_file", "Format de CV non supporté. Utilisez PDF, DOC ou DOCX"))

    photo_file = UploadedFile.from_value(values.get("photo_file"))
    if photo_file is not None:
        if photo_file.size > MAX_PHOTO_SIZE:
            errors.append(FieldError(
                "photo_file",
                f"Photo trop volumineuse ({format_file_size(photo_file.size)}). "
                f"Maximum: {MAX_PHOTO_SIZE // (1024 * 1024)}MB"
            ))
        if photo_file.mime_type not in PHOTO_MIME_TYPES:
            errors.append(FieldError("photo_file", "Format de photo non supporté. Utilisez JPG, PNG ou GIF"))


def _validate_step4(values: Dict[str, Any], errors: List[FieldError], warnings: List[FieldError]):
    if not values.get("rgpd_consent"):
        errors.append(FieldError("rgpd_consent", "Le consentement RGPD est obligatoire"))


STEP_VALIDATORS = {
    1: _validate_step1,
    2: _validate_step2,
    3: _validate_step3,
    4: _validate_step4,
}


def validate_step(step: int, values: Dict[str, Any]) -> Tuple[List[FieldError], List[FieldError]]:
    """
    Проверка всех правил шага.

    Собирает все нарушения сразу, без остановки на первом.
    Возвращает (ошибки, предупреждения); предупреждения переход не блокируют.
    """
    if step not in STEP_VALIDATORS:
        raise ValueError(f"Unknown form step: {step}")
    errors: List[FieldError] = []
    warnings: List[FieldError] = []
    STEP_VALIDATORS[step](values, errors, warnings)
    return errors, warnings


def validate_all(values: Dict[str, Any]) -> List[FieldError]:
    """Проверка всех шагов подряд (серверная сторона)"""
    errors: List[FieldError] = []
    for step in range(1, TOTAL_STEPS + 1):
        errors.extend(validate_step(step, values)[0])
    return errors
