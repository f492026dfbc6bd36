"""Модели данных"""
from dataclasses import dataclass, field
from typing import List, Optional

STATUS_PENDING = "pending"
STATUS_APPROVED = "approved"
STATUS_REJECTED = "rejected"

LIST_SEPARATOR = ", "


def split_list(value: Optional[str]) -> List[str]:
    """Разбор многозначного поля из БД"""
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


def join_list(values: Optional[List[str]]) -> str:
    """Сериализация многозначного поля для БД"""
    return LIST_SEPARATOR.join(v for v in (values or []) if v)


@dataclass
class Trainer:
    """Анкета тренера"""
    id: Optional[int]
    first_name: str
    last_name: str
    email: str
    phone: str
    specialties: List[str]
    experience: str
    cv_file: str
    company: Optional[str] = None
    bio: Optional[str] = None
    availability: Optional[str] = None
    hourly_rate: Optional[str] = None
    intervention_regions: List[str] = field(default_factory=list)
    linkedin_url: Optional[str] = None
    photo_file: Optional[str] = None
    rgpd_consent: bool = False
    marketing_consent: bool = False
    status: str = STATUS_PENDING  # 'pending', 'approved', 'rejected'
    admin_notes: Optional[str] = None
    user_id: Optional[int] = None  # Telegram-пользователь, если анкета из бота
    username: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @classmethod
    def from_row(cls, row: dict) -> "Trainer":
        data = dict(row)
        data["specialties"] = split_list(data.get("specialties"))
        data["intervention_regions"] = split_list(data.get("intervention_regions"))
        data["rgpd_consent"] = bool(data.get("rgpd_consent"))
        data["marketing_consent"] = bool(data.get("marketing_consent"))
        return cls(**data)
