"""Серверная регистрация тренера"""
import logging
from typing import Any, Dict, List, Optional

from database import Database, Trainer, STATUS_APPROVED, STATUS_PENDING
from services.errors import SubmissionError
from services.validation import FieldError, normalize_phone, sanitize_text, validate_all

logger = logging.getLogger(__name__)

SINGLE_LINE_FIELDS = (
    "first_name", "last_name", "email", "phone", "company",
    "linkedin_url", "availability", "hourly_rate",
)
MULTILINE_FIELDS = ("experience", "bio")


def clean_values(values: Dict[str, Any]) -> Dict[str, Any]:
    """Очистка текстовых полей независимо от проверок на клиенте"""
    cleaned = dict(values)
    for name in SINGLE_LINE_FIELDS:
        cleaned[name] = sanitize_text(values.get(name))
    for name in MULTILINE_FIELDS:
        cleaned[name] = sanitize_text(values.get(name), multiline=True)
    for name in ("specialties", "intervention_regions"):
        cleaned[name] = [sanitize_text(v) for v in values.get(name) or [] if sanitize_text(v)]
    cleaned["email"] = cleaned["email"].lower()
    cleaned["rgpd_consent"] = bool(values.get("rgpd_consent"))
    cleaned["marketing_consent"] = bool(values.get("marketing_consent"))
    return cleaned


class RegistrationService:
    """Приём анкет: повторная проверка, сохранение со статусом pending"""

    def __init__(self, db: Database, auto_approve: bool = False):
        self.db = db
        self.auto_approve = auto_approve

    def validate(self, values: Dict[str, Any]) -> List[FieldError]:
        """Все шаги формы на стороне сервера"""
        return validate_all(values)

    async def register(
        self,
        values: Dict[str, Any],
        cv_file: str,
        photo_file: Optional[str] = None,
        user_id: Optional[int] = None,
        username: Optional[str] = None
    ) -> dict:
        """
        Сохранить анкету.

        values содержат метаданные файлов (cv_file/photo_file) для проверки,
        а cv_file/photo_file аргументы - пути уже сохранённых файлов.
        """
        values = clean_values(values)
        errors = self.validate(values)
        if errors:
            logger.info(f"Анкета {values['email']!r} не прошла проверку: {[e.field for e in errors]}")
            return {"success": False, "message": errors[0].message, "code": "validation_error"}

        trainer = Trainer(
            id=None,
            first_name=values["first_name"],
            last_name=values["last_name"],
            email=values["email"],
            phone=normalize_phone(values["phone"]),
            company=values["company"] or None,
            specialties=values["specialties"],
            experience=values["experience"],
            bio=values["bio"] or None,
            availability=values["availability"] or None,
            hourly_rate=values["hourly_rate"] or None,
            intervention_regions=values["intervention_regions"],
            linkedin_url=values["linkedin_url"] or None,
            cv_file=cv_file,
            photo_file=photo_file,
            rgpd_consent=values["rgpd_consent"],
            marketing_consent=values["marketing_consent"],
            status=STATUS_APPROVED if self.auto_approve else STATUS_PENDING,
            user_id=user_id,
            username=username,
        )

        try:
            trainer_id = await self.db.create_trainer(trainer)
        except SubmissionError as e:
            return e.to_dict()

        logger.info(f"✅ Новая анкета #{trainer_id} ({trainer.full_name}), статус {trainer.status}")
        return {
            "success": True,
            "trainer_id": trainer_id,
            "status": trainer.status,
            "message": "Votre candidature a bien été enregistrée",
        }
