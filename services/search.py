"""Поиск одобренных тренеров с пагинацией"""
import logging
import math
from typing import Any, Optional, Tuple

from config import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from database import Database, Trainer
from services.errors import TrainerNotFoundError
from services.validation import sanitize_text

logger = logging.getLogger(__name__)

# Поля, которые не покидают сервер
PRIVATE_FIELDS = ("email", "phone", "user_id", "username", "admin_notes")

# Предел INTEGER в SQLite: смещение страницы не должно его превышать
SQLITE_MAX_INT = 2 ** 63 - 1
MAX_PAGE = SQLITE_MAX_INT // MAX_PAGE_SIZE


def to_int(value: Any, default: int = 0) -> int:
    """Приведение как intval: мусор -> default"""
    if value is None or value == "":
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        try:
            return int(float(value))
        except (TypeError, ValueError, OverflowError):
            return 0


def normalize_paging(page: Any = 1, page_size: Any = DEFAULT_PAGE_SIZE) -> Tuple[int, int]:
    """Страница в пределах [1, MAX_PAGE], размер страницы в пределах [1, MAX_PAGE_SIZE]"""
    page = min(MAX_PAGE, max(1, to_int(page, 1)))
    page_size = min(MAX_PAGE_SIZE, max(1, to_int(page_size, DEFAULT_PAGE_SIZE)))
    return page, page_size


def total_pages(total: int, page_size: int) -> int:
    """ceil(total / page_size); 0, если ничего не найдено"""
    return math.ceil(total / page_size) if total else 0


class TrainerSearchService:
    """Сервис поиска по одобренным анкетам"""

    def __init__(self, db: Database, files_base_url: str):
        self.db = db
        self.files_base_url = files_base_url.rstrip("/")

    def file_url(self, relative_path: Optional[str]) -> Optional[str]:
        if not relative_path:
            return None
        return f"{self.files_base_url}/{relative_path.lstrip('/')}"

    def to_public(self, trainer: Trainer) -> dict:
        """Публичное представление анкеты: без email и телефона, с URL файлов"""
        data = {
            key: value
            for key, value in vars(trainer).items()
            if key not in PRIVATE_FIELDS
        }
        data["specialties"] = list(trainer.specialties)
        data["intervention_regions"] = list(trainer.intervention_regions)
        if trainer.photo_file:
            data["photo_url"] = self.file_url(trainer.photo_file)
        if trainer.cv_file:
            data["cv_url"] = self.file_url(trainer.cv_file)
        return data

    async def search(
        self,
        search_term: Any = "",
        specialty_filter: Any = "",
        page: Any = 1,
        page_size: Any = DEFAULT_PAGE_SIZE
    ) -> dict:
        """
        Поиск тренеров.

        Args:
            search_term: Свободный текст (имя, фамилия, специальности, био, опыт, компания)
            specialty_filter: Подстрока, обязательная в специальностях
            page: Номер страницы (от 1)
            page_size: Размер страницы (1..50)

        Raises:
            QueryError: Хранилище недоступно или запрос не выполнен
        """
        search_term = sanitize_text(search_term)
        specialty_filter = sanitize_text(specialty_filter)
        page, page_size = normalize_paging(page, page_size)
        offset = (page - 1) * page_size

        logger.info(
            f"Поиск: term={search_term!r}, specialty={specialty_filter!r}, "
            f"page={page}, page_size={page_size}"
        )

        total, trainers = await self.db.search_approved(search_term, specialty_filter, page_size, offset)

        logger.info(f"Найдено {total}, на странице {len(trainers)}")

        return {
            "trainers": [self.to_public(trainer) for trainer in trainers],
            "total": total,
            "page": page,
            "page_size": page_size,
            "total_pages": total_pages(total, page_size),
            "search_term": search_term,
            "specialty_filter": specialty_filter,
        }

    async def list_all(self, page: Any = 1, page_size: Any = DEFAULT_PAGE_SIZE) -> dict:
        """Все одобренные тренеры"""
        return await self.search("", "", page, page_size)

    async def get_trainer_profile(self, trainer_id: Any) -> dict:
        """Полная публичная анкета одобренного тренера"""
        trainer_id = to_int(trainer_id)
        trainer = None
        if 0 < trainer_id <= SQLITE_MAX_INT:
            trainer = await self.db.get_approved_trainer(trainer_id)
        if trainer is None:
            raise TrainerNotFoundError()
        return self.to_public(trainer)
