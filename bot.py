"""Главный файл бота"""
import asyncio
import logging
import sys

from aiogram import Bot, Dispatcher
from aiogram.client.default import DefaultBotProperties
from aiogram.enums import ParseMode
from aiogram.fsm.storage.memory import MemoryStorage
from aiohttp import web

from config import (
    ADMIN_IDS,
    API_HOST,
    API_PORT,
    AUTO_APPROVE,
    BOT_TOKEN,
    DATABASE_PATH,
    FILES_BASE_URL,
    SEARCH_DEBOUNCE_SECONDS,
    SECRET_KEY,
    UPLOAD_DIR,
)
from database import Database
from services.debounce import Debouncer, SearchSequencer
from services.file_storage import FileStorage
from services.registration import RegistrationService
from services.search import TrainerSearchService
from web.api import create_app

# Импортируем роутеры
from handlers import start, client, trainer

# Настройка логирования
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    stream=sys.stdout
)
logger = logging.getLogger(__name__)


async def start_api(app: web.Application) -> web.AppRunner:
    """Запуск JSON API рядом с polling"""
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, API_HOST, API_PORT)
    await site.start()
    logger.info(f"✅ JSON API слушает {API_HOST}:{API_PORT}")
    return runner


async def main():
    """Главная функция запуска бота"""

    # Проверяем наличие токена
    if not BOT_TOKEN:
        logger.error("❌ BOT_TOKEN не установлен! Проверьте файл .env")
        return

    if not ADMIN_IDS:
        logger.warning("⚠️ ADMIN_IDS не установлен! Уведомления о новых анкетах отключены.")
    else:
        logger.info(f"✅ Администраторов: {len(ADMIN_IDS)}")

    # Инициализируем бота и диспетчер
    bot = Bot(
        token=BOT_TOKEN,
        default=DefaultBotProperties(parse_mode=ParseMode.HTML)
    )

    # Используем MemoryStorage для FSM
    storage = MemoryStorage()
    dp = Dispatcher(storage=storage)

    # Инициализируем базу данных и папки загрузки
    db = Database(DATABASE_PATH)
    await db.init_db()
    logger.info("✅ База данных инициализирована")

    file_storage = FileStorage(UPLOAD_DIR)
    file_storage.init_folders()

    search_service = TrainerSearchService(db, FILES_BASE_URL)
    registration_service = RegistrationService(db, auto_approve=AUTO_APPROVE)
    debouncer = Debouncer(SEARCH_DEBOUNCE_SECONDS)
    sequencer = SearchSequencer()

    # Регистрируем middleware для передачи сервисов в handlers
    @dp.update.outer_middleware()
    async def services_middleware(handler, event, data):
        """Middleware для передачи базы данных и сервисов в handlers"""
        data['db'] = db
        data['search_service'] = search_service
        data['registration_service'] = registration_service
        data['file_storage'] = file_storage
        data['debouncer'] = debouncer
        data['sequencer'] = sequencer
        return await handler(event, data)

    # Регистрируем роутеры
    dp.include_router(start.router)
    dp.include_router(client.router)
    dp.include_router(trainer.router)

    logger.info("✅ Роутеры зарегистрированы")

    runner = None
    if API_PORT:
        app = create_app(search_service, registration_service, file_storage, SECRET_KEY)
        runner = await start_api(app)
    else:
        logger.info("JSON API отключён (API_PORT не задан)")

    # Запускаем polling
    logger.info("🚀 Бот запущен!")
    try:
        await dp.start_polling(bot, allowed_updates=dp.resolve_used_update_types())
    finally:
        if runner is not None:
            await runner.cleanup()
        await bot.session.close()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("⏹ Бот остановлен пользователем")
    except Exception as e:
        logger.error(f"❌ Критическая ошибка: {e}", exc_info=True)
