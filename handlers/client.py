"""Обработчики поиска тренеров"""
import logging

from aiogram import Router, F
from aiogram.exceptions import TelegramBadRequest
from aiogram.filters import Command, CommandObject
from aiogram.types import CallbackQuery, Message
from aiogram.fsm.context import FSMContext

from keyboards.inline import (
    get_search_filter_keyboard,
    get_search_results_keyboard,
    get_trainer_profile_keyboard,
)
from services.debounce import Debouncer, SearchSequencer
from services.errors import QueryError, TrainerNotFoundError
from services.file_storage import FileStorage
from services.search import TrainerSearchService, to_int
from services.trainer_card import format_results_page, send_trainer_card
from states import TrainerSearch

logger = logging.getLogger(__name__)

router = Router()

# Анкет на одной странице результатов в чате
RESULTS_PER_PAGE = 5
# Живой поиск срабатывает с этой длины (или на пустой запрос)
MIN_QUERY_LENGTH = 3


async def run_search(
    message: Message,
    search_service: TrainerSearchService,
    sequencer: SearchSequencer,
    seq: int,
    search_term: str = "",
    specialty: str = "",
    page: int = 1,
    edit: bool = False
):
    """Выполнить поиск и показать страницу, если запрос ещё актуален"""
    key = message.chat.id
    try:
        if not search_term and not specialty:
            result = await search_service.list_all(page, RESULTS_PER_PAGE)
        else:
            result = await search_service.search(search_term, specialty, page, RESULTS_PER_PAGE)
    except QueryError as e:
        if sequencer.is_current(key, seq):
            await message.answer(f"⚠️ {e.message}")
        return

    # Более свежий запрос уже выдан: этот ответ устарел
    if not sequencer.is_current(key, seq):
        logger.debug(f"Устаревший ответ поиска #{seq} для чата {key} отброшен")
        return

    text = format_results_page(result)
    keyboard = get_search_results_keyboard(result["trainers"], result["page"], result["total_pages"])
    if edit and message.text:
        try:
            await message.edit_text(text, reply_markup=keyboard)
        except TelegramBadRequest as e:
            # Например, «message is not modified» при повторном нажатии
            logger.debug(f"Не удалось обновить страницу результатов: {e}")
    else:
        await message.answer(text, reply_markup=keyboard)


async def open_search(message: Message, state: FSMContext):
    await state.set_state(TrainerSearch.waiting_for_query)
    await state.update_data(search_term="", specialty="")
    await message.answer(
        "🔍 <b>Recherche de formateurs</b>\n\n"
        f"Tapez un mot-clé ({MIN_QUERY_LENGTH} caractères minimum : docker, cisco, python...) "
        "ou choisissez une spécialité :",
        reply_markup=get_search_filter_keyboard()
    )


@router.message(Command("search"))
async def cmd_search(
    message: Message,
    command: CommandObject,
    state: FSMContext,
    search_service: TrainerSearchService,
    sequencer: SearchSequencer
):
    """/search [запрос]"""
    if not command.args:
        await open_search(message, state)
        return
    search_term = command.args.strip()
    await state.set_state(TrainerSearch.waiting_for_query)
    await state.update_data(search_term=search_term, specialty="")
    seq = sequencer.issue(message.chat.id)
    await run_search(message, search_service, sequencer, seq, search_term)


@router.callback_query(F.data == "menu_search")
async def process_menu_search(callback: CallbackQuery, state: FSMContext):
    await open_search(callback.message, state)
    await callback.answer()


@router.callback_query(F.data == "menu_all")
async def process_menu_all(
    callback: CallbackQuery,
    state: FSMContext,
    search_service: TrainerSearchService,
    sequencer: SearchSequencer
):
    """Все одобренные тренеры"""
    await state.set_state(TrainerSearch.waiting_for_query)
    await state.update_data(search_term="", specialty="")
    seq = sequencer.issue(callback.message.chat.id)
    await callback.answer()
    await run_search(callback.message, search_service, sequencer, seq)


@router.message(TrainerSearch.waiting_for_query, F.text)
async def process_search_query(
    message: Message,
    state: FSMContext,
    search_service: TrainerSearchService,
    debouncer: Debouncer,
    sequencer: SearchSequencer
):
    """Живой поиск: запросы объединяются дебаунсом, показывается только последний"""
    search_term = message.text.strip()
    if 0 < len(search_term) < MIN_QUERY_LENGTH:
        await message.answer(f"Tapez au moins {MIN_QUERY_LENGTH} caractères.")
        return

    data = await state.get_data()
    specialty = data.get("specialty", "")
    await state.update_data(search_term=search_term)

    key = message.chat.id
    seq = sequencer.issue(key)
    debouncer.call(
        key,
        lambda: run_search(message, search_service, sequencer, seq, search_term, specialty)
    )


@router.callback_query(F.data == "search_filters")
async def process_search_filters(callback: CallbackQuery, state: FSMContext):
    data = await state.get_data()
    await state.set_state(TrainerSearch.waiting_for_query)
    await callback.message.answer(
        "🎯 Choisissez une spécialité :",
        reply_markup=get_search_filter_keyboard(data.get("specialty", ""))
    )
    await callback.answer()


@router.callback_query(F.data.startswith("search_specialty:"))
async def process_search_specialty(
    callback: CallbackQuery,
    state: FSMContext,
    search_service: TrainerSearchService,
    debouncer: Debouncer,
    sequencer: SearchSequencer
):
    """Фильтр по специальности применяется сразу"""
    value = callback.data.split(":", 1)[1]
    specialty = "" if value == "all" else value

    data = await state.get_data()
    search_term = data.get("search_term", "")
    await state.set_state(TrainerSearch.waiting_for_query)
    await state.update_data(specialty=specialty)

    key = callback.message.chat.id
    debouncer.cancel(key)
    seq = sequencer.issue(key)
    await callback.answer()
    await run_search(callback.message, search_service, sequencer, seq, search_term, specialty, edit=True)


@router.callback_query(F.data.startswith("search_page:"))
async def process_search_page(
    callback: CallbackQuery,
    state: FSMContext,
    search_service: TrainerSearchService,
    sequencer: SearchSequencer
):
    """Переход по страницам результатов"""
    page = to_int(callback.data.split(":", 1)[1], 1)
    data = await state.get_data()

    seq = sequencer.issue(callback.message.chat.id)
    await callback.answer()
    await run_search(
        callback.message,
        search_service,
        sequencer,
        seq,
        data.get("search_term", ""),
        data.get("specialty", ""),
        page,
        edit=True
    )


@router.callback_query(F.data.startswith("trainer:"))
async def process_trainer_details(
    callback: CallbackQuery,
    search_service: TrainerSearchService,
    file_storage: FileStorage
):
    """Подробная анкета тренера"""
    _, trainer_id, page = callback.data.split(":")
    try:
        profile = await search_service.get_trainer_profile(trainer_id)
    except (TrainerNotFoundError, QueryError) as e:
        await callback.answer(e.message, show_alert=True)
        return

    photo_path = None
    if profile.get("photo_file") and file_storage.exists(profile["photo_file"]):
        photo_path = file_storage.absolute(profile["photo_file"])

    await callback.answer()
    await send_trainer_card(
        callback.message,
        profile,
        get_trainer_profile_keyboard(to_int(page, 1)),
        photo_path
    )
