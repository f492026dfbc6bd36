"""Обработчики команды start, главного меню и статистики"""
import logging

from aiogram import Router, F
from aiogram.filters import Command, CommandStart
from aiogram.types import Message, CallbackQuery
from aiogram.fsm.context import FSMContext

from database import Database
from keyboards.inline import get_main_menu_keyboard
from services.errors import QueryError
from services.trainer_card import format_stats

logger = logging.getLogger(__name__)

router = Router()

WELCOME_TEXT = (
    "👋 Bienvenue dans l'<b>annuaire des formateurs IT</b> !\n\n"
    "Formateurs : déposez votre candidature en 4 étapes.\n"
    "Entreprises : trouvez l'expert qu'il vous faut parmi nos formateurs validés.\n\n"
    "Que souhaitez-vous faire ?"
)


@router.message(CommandStart())
async def cmd_start(message: Message, state: FSMContext):
    """Обработчик команды /start"""
    await state.clear()
    await message.answer(WELCOME_TEXT, reply_markup=get_main_menu_keyboard())


@router.message(Command("cancel"))
async def cmd_cancel(message: Message, state: FSMContext):
    """Отмена текущего сценария"""
    await state.clear()
    await message.answer("Opération annulée.", reply_markup=get_main_menu_keyboard())


@router.callback_query(F.data == "back_to_menu")
async def process_back_to_menu(callback: CallbackQuery, state: FSMContext):
    """Возврат в главное меню"""
    await state.clear()
    await callback.message.answer(WELCOME_TEXT, reply_markup=get_main_menu_keyboard())
    await callback.answer()


async def send_stats(message: Message, db: Database):
    try:
        stats = await db.get_stats()
    except QueryError as e:
        await message.answer(f"⚠️ {e.message}")
        return
    await message.answer(format_stats(stats), reply_markup=get_main_menu_keyboard())


@router.message(Command("stats"))
async def cmd_stats(message: Message, db: Database):
    """Статистика каталога"""
    await send_stats(message, db)


@router.callback_query(F.data == "menu_stats")
async def process_menu_stats(callback: CallbackQuery, db: Database):
    await send_stats(callback.message, db)
    await callback.answer()
