"""Работа с базой данных"""
import logging
from typing import List, Optional, Tuple

import aiosqlite

from services.errors import DuplicateEmailError, QueryError, SubmissionError
from .models import Trainer, STATUS_APPROVED, STATUS_PENDING, join_list

logger = logging.getLogger(__name__)

# Поля, по которым работает свободный поиск
SEARCH_FIELDS = ("first_name", "last_name", "specialties", "bio", "experience", "company")

TRAINER_COLUMNS = (
    "first_name", "last_name", "email", "phone", "company", "specialties",
    "experience", "cv_file", "photo_file", "linkedin_url", "bio",
    "availability", "hourly_rate", "intervention_regions", "rgpd_consent",
    "marketing_consent", "status", "admin_notes", "user_id", "username",
)


def casefold_text(value):
    """Регистронезависимое сравнение с учётом Unicode (Élodie == élodie)"""
    return value.casefold() if isinstance(value, str) else value


def escape_like(value: str) -> str:
    """Экранирование спецсимволов LIKE (используется с ESCAPE '\\')"""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def build_search_filter(search_term: str = "", specialty_filter: str = "") -> Tuple[str, list]:
    """Собрать WHERE для одобренных анкет и список параметров"""
    conditions = ["status = ?"]
    params: list = [STATUS_APPROVED]

    if search_term:
        pattern = f"%{escape_like(casefold_text(search_term))}%"
        conditions.append(
            "(" + " OR ".join(f"casefold({name}) LIKE ? ESCAPE '\\'" for name in SEARCH_FIELDS) + ")"
        )
        params.extend([pattern] * len(SEARCH_FIELDS))

    if specialty_filter:
        conditions.append("casefold(specialties) LIKE ? ESCAPE '\\'")
        params.append(f"%{escape_like(casefold_text(specialty_filter))}%")

    return "WHERE " + " AND ".join(conditions), params


class Database:
    """Класс для работы с SQLite базой данных"""

    def __init__(self, db_path: str):
        self.db_path = db_path

    async def init_db(self):
        """Инициализация базы данных"""
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute("""
                CREATE TABLE IF NOT EXISTS trainers (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    first_name TEXT NOT NULL,
                    last_name TEXT NOT NULL,
                    email TEXT NOT NULL UNIQUE,
                    phone TEXT NOT NULL,
                    company TEXT,
                    specialties TEXT NOT NULL,
                    experience TEXT NOT NULL,
                    cv_file TEXT NOT NULL,
                    photo_file TEXT,
                    linkedin_url TEXT,
                    bio TEXT,
                    availability TEXT,
                    hourly_rate TEXT,
                    intervention_regions TEXT,
                    rgpd_consent INTEGER NOT NULL DEFAULT 0,
                    marketing_consent INTEGER NOT NULL DEFAULT 0,
                    status TEXT DEFAULT 'pending',
                    admin_notes TEXT,
                    user_id INTEGER UNIQUE,
                    username TEXT,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """)
            await db.execute("CREATE INDEX IF NOT EXISTS idx_trainers_status ON trainers (status)")
            await db.execute("CREATE INDEX IF NOT EXISTS idx_trainers_created_at ON trainers (created_at)")
            await db.commit()

    # === Тренеры ===

    @staticmethod
    def _values(trainer: Trainer) -> tuple:
        return (
            trainer.first_name, trainer.last_name, trainer.email, trainer.phone,
            trainer.company, join_list(trainer.specialties), trainer.experience,
            trainer.cv_file, trainer.photo_file, trainer.linkedin_url, trainer.bio,
            trainer.availability, trainer.hourly_rate,
            join_list(trainer.intervention_regions),
            int(trainer.rgpd_consent), int(trainer.marketing_consent),
            trainer.status or STATUS_PENDING, trainer.admin_notes,
            trainer.user_id, trainer.username,
        )

    async def create_trainer(self, trainer: Trainer) -> int:
        """Создать или обновить анкету тренера"""
        if not trainer.rgpd_consent:
            raise SubmissionError("Le consentement RGPD est obligatoire", code="rgpd_required")

        try:
            async with aiosqlite.connect(self.db_path) as db:
                existing = None
                if trainer.user_id is not None:
                    # Повторная регистрация того же пользователя обновляет анкету
                    async with db.execute(
                        "SELECT id FROM trainers WHERE user_id = ?", (trainer.user_id,)
                    ) as cursor:
                        existing = await cursor.fetchone()

                if existing:
                    trainer_id = existing[0]
                    assignments = ", ".join(f"{name} = ?" for name in TRAINER_COLUMNS)
                    await db.execute(
                        f"UPDATE trainers SET {assignments}, "
                        "created_at = CURRENT_TIMESTAMP, updated_at = CURRENT_TIMESTAMP "
                        "WHERE id = ?",
                        self._values(trainer) + (trainer_id,)
                    )
                    await db.commit()
                    return trainer_id

                placeholders = ", ".join("?" for _ in TRAINER_COLUMNS)
                cursor = await db.execute(
                    f"INSERT INTO trainers ({', '.join(TRAINER_COLUMNS)}) VALUES ({placeholders})",
                    self._values(trainer)
                )
                await db.commit()
                return cursor.lastrowid
        except aiosqlite.IntegrityError as e:
            logger.info(f"Регистрация отклонена для {trainer.email}: {e}")
            raise DuplicateEmailError() from e
        except aiosqlite.Error as e:
            logger.error(f"Ошибка БД при сохранении анкеты {trainer.email}: {e}")
            raise SubmissionError(code="server_error") from e

    async def _fetch_one(self, query: str, params: tuple) -> Optional[Trainer]:
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            async with db.execute(query, params) as cursor:
                row = await cursor.fetchone()
                if row:
                    return Trainer.from_row(dict(row))
                return None

    async def get_trainer_by_id(self, trainer_id: int) -> Optional[Trainer]:
        """Получить анкету тренера по ID"""
        return await self._fetch_one("SELECT * FROM trainers WHERE id = ?", (trainer_id,))

    async def get_trainer_by_user_id(self, user_id: int) -> Optional[Trainer]:
        """Получить анкету тренера по Telegram user_id"""
        return await self._fetch_one("SELECT * FROM trainers WHERE user_id = ?", (user_id,))

    async def get_approved_trainer(self, trainer_id: int) -> Optional[Trainer]:
        """Получить одобренную анкету по ID"""
        try:
            return await self._fetch_one(
                "SELECT * FROM trainers WHERE id = ? AND status = ?",
                (trainer_id, STATUS_APPROVED)
            )
        except aiosqlite.Error as e:
            logger.error(f"Ошибка БД (profile {trainer_id}): {e}")
            raise QueryError() from e

    async def update_trainer_status(self, trainer_id: int, status: str, notes: Optional[str] = None):
        """Обновить статус анкеты (вызывается модерацией)"""
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute(
                "UPDATE trainers SET status = ?, admin_notes = COALESCE(?, admin_notes), "
                "updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                (status, notes, trainer_id)
            )
            await db.commit()

    # === Поиск ===

    async def search_approved(
        self,
        search_term: str = "",
        specialty_filter: str = "",
        limit: int = 12,
        offset: int = 0
    ) -> Tuple[int, List[Trainer]]:
        """Поиск одобренных тренеров: (всего найдено, анкеты текущей страницы)"""
        where_clause, params = build_search_filter(search_term, specialty_filter)

        try:
            async with aiosqlite.connect(self.db_path) as db:
                db.row_factory = aiosqlite.Row
                await db.create_function("casefold", 1, casefold_text, deterministic=True)
                async with db.execute(
                    f"SELECT COUNT(*) FROM trainers {where_clause}", params
                ) as cursor:
                    total = (await cursor.fetchone())[0]

                async with db.execute(
                    f"SELECT * FROM trainers {where_clause} "
                    "ORDER BY created_at DESC, id DESC LIMIT ? OFFSET ?",
                    params + [limit, offset]
                ) as cursor:
                    rows = await cursor.fetchall()
        except aiosqlite.Error as e:
            logger.error(f"Ошибка БД при поиске (term={search_term!r}, specialty={specialty_filter!r}): {e}")
            raise QueryError() from e

        return total, [Trainer.from_row(dict(row)) for row in rows]

    async def get_stats(self) -> dict:
        """Статистика каталога"""
        queries = {
            "total": ("SELECT COUNT(*) FROM trainers WHERE status = ?", (STATUS_APPROVED,)),
            "pending": ("SELECT COUNT(*) FROM trainers WHERE status = ?", (STATUS_PENDING,)),
            "specialties": (
                "SELECT COUNT(DISTINCT specialties) FROM trainers WHERE status = ?",
                (STATUS_APPROVED,)
            ),
            "this_month": (
                "SELECT COUNT(*) FROM trainers WHERE status = ? "
                "AND strftime('%Y-%m', created_at) = strftime('%Y-%m', 'now')",
                (STATUS_APPROVED,)
            ),
        }
        stats = {}
        try:
            async with aiosqlite.connect(self.db_path) as db:
                for key, (query, params) in queries.items():
                    async with db.execute(query, params) as cursor:
                        stats[key] = (await cursor.fetchone())[0]
        except aiosqlite.Error as e:
            logger.error(f"Ошибка БД при подсчёте статистики: {e}")
            raise QueryError() from e
        return stats
