"""Конфигурация бота и API"""
import os
from typing import List
from dotenv import load_dotenv

load_dotenv()

# Токен бота
BOT_TOKEN = os.getenv("BOT_TOKEN")

# ID администраторов (может быть несколько через запятую)
def parse_admin_ids() -> List[int]:
    """Парсинг списка ID администраторов"""
    admin_ids_str = os.getenv("ADMIN_IDS", "")
    if not admin_ids_str:
        return []

    admin_ids = []
    for id_str in admin_ids_str.split(","):
        id_str = id_str.strip()
        if id_str.isdigit():
            admin_ids.append(int(id_str))
    return admin_ids


def parse_bool(name: str, default: bool = False) -> bool:
    """Чтение булевого флага из окружения"""
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


ADMIN_IDS = parse_admin_ids()

# Путь к базе данных
DATABASE_PATH = os.getenv("DATABASE_PATH", "trainer_directory.db")

# Загруженные файлы (CV, фото) и их публичный адрес
UPLOAD_DIR = os.getenv("UPLOAD_DIR", "uploads")
FILES_BASE_URL = os.getenv("FILES_BASE_URL", "http://localhost:8080/uploads").rstrip("/")

# Секрет для anti-forgery токенов JSON API
SECRET_KEY = os.getenv("SECRET_KEY", "change-me")

# JSON API (если порт не задан, API не запускается)
API_HOST = os.getenv("API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("API_PORT", "0") or 0)

# Поведение регистрации
AUTO_APPROVE = parse_bool("AUTO_APPROVE")
NOTIFY_NEW_REGISTRATION = parse_bool("NOTIFY_NEW_REGISTRATION", True)

# Тайминги
SEARCH_DEBOUNCE_SECONDS = float(os.getenv("SEARCH_DEBOUNCE_SECONDS", "0.5"))
SUBMIT_TIMEOUT_SECONDS = float(os.getenv("SUBMIT_TIMEOUT_SECONDS", "30"))

# Пагинация поиска
DEFAULT_PAGE_SIZE = 12
MAX_PAGE_SIZE = 50

# Ограничения на файлы
MAX_CV_SIZE = 5 * 1024 * 1024
MAX_PHOTO_SIZE = 2 * 1024 * 1024
CV_MIME_TYPES = [
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
]
PHOTO_MIME_TYPES = ["image/jpeg", "image/jpg", "image/png", "image/gif"]

# Специальности: значение -> подпись
SPECIALTIES = {
    "administration-systeme": "Administration Système",
    "reseaux": "Réseaux & Infrastructure",
    "cloud": "Cloud Computing",
    "devops": "DevOps & CI/CD",
    "securite": "Sécurité Informatique",
    "telecoms": "Télécommunications",
    "developpement": "Développement",
    "bases-donnees": "Bases de Données",
}

# Зоны выезда
INTERVENTION_REGIONS = {
    "ile-de-france": "Île-de-France",
    "auvergne-rhone-alpes": "Auvergne-Rhône-Alpes",
    "nouvelle-aquitaine": "Nouvelle-Aquitaine",
    "occitanie": "Occitanie",
    "hauts-de-france": "Hauts-de-France",
    "grand-est": "Grand Est",
    "provence-alpes-cote-azur": "Provence-Alpes-Côte d'Azur",
    "pays-de-la-loire": "Pays de la Loire",
    "bretagne": "Bretagne",
    "normandie": "Normandie",
    "bourgogne-franche-comte": "Bourgogne-Franche-Comté",
    "centre-val-de-loire": "Centre-Val de Loire",
    "corse": "Corse",
    "distanciel": "À distance",
}

# Доступность
AVAILABILITY_OPTIONS = {
    "temps-plein": "Temps plein",
    "temps-partiel": "Temps partiel",
    "ponctuel": "Missions ponctuelles",
    "weekends": "Weekends uniquement",
    "flexible": "Flexible",
}
