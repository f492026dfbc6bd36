"""Сервис для отправки анкет тренеров и страниц поиска"""
import logging
from pathlib import Path
from typing import List, Optional, Tuple

from aiogram import html
from aiogram.exceptions import TelegramAPIError
from aiogram.types import FSInputFile, Message

from config import AVAILABILITY_OPTIONS, INTERVENTION_REGIONS, SPECIALTIES

logger = logging.getLogger(__name__)

# Лимит подписи к фото в Telegram
CAPTION_LIMIT = 1024
# Длинное био обрезается, чтобы уложиться в лимит сообщения
BIO_PREVIEW_LIMIT = 2000


def _labels(keys: List[str], catalogue: dict) -> str:
    return ", ".join(catalogue.get(key, key) for key in keys)


def format_trainer_card(trainer: dict) -> Tuple[str, str]:
    """Текст анкеты: (основная часть, блок «О себе»)"""
    main_text = f"<b>{html.quote(trainer['first_name'])} {html.quote(trainer['last_name'])}</b>\n"
    main_text += f"Formateur #{trainer['id']:04d}\n\n"

    if trainer.get("company"):
        main_text += f"🏢 {html.quote(trainer['company'])}\n"
    if trainer.get("specialties"):
        main_text += f"🎯 {html.quote(_labels(trainer['specialties'], SPECIALTIES))}\n"
    if trainer.get("intervention_regions"):
        main_text += f"📍 {html.quote(_labels(trainer['intervention_regions'], INTERVENTION_REGIONS))}\n"
    if trainer.get("availability"):
        availability = AVAILABILITY_OPTIONS.get(trainer["availability"], trainer["availability"])
        main_text += f"🗓 {html.quote(availability)}\n"
    if trainer.get("hourly_rate"):
        main_text += f"💶 {html.quote(trainer['hourly_rate'])}\n"
    if trainer.get("linkedin_url"):
        main_text += f"🔗 {html.quote(trainer['linkedin_url'])}\n"
    if trainer.get("cv_url"):
        main_text += f"📄 <a href=\"{html.quote(trainer['cv_url'])}\">CV</a>\n"

    about_text = f"<b>Expérience :</b>\n{html.quote(trainer['experience'])}"
    if trainer.get("bio"):
        about_text += f"\n\n<b>Présentation :</b>\n{html.quote(trainer['bio'][:BIO_PREVIEW_LIMIT])}"

    return main_text.rstrip(), about_text


def format_results_page(result: dict) -> str:
    """Заголовок страницы результатов поиска"""
    if not result["total"]:
        return (
            "🔍 <b>Aucun résultat trouvé</b>\n\n"
            "Essayez de modifier vos critères de recherche."
        )

    lines = [f"🔍 <b>{result['total']} formateur(s) trouvé(s)</b>"]
    filters = []
    if result.get("search_term"):
        filters.append(f"« {html.quote(result['search_term'])} »")
    if result.get("specialty_filter"):
        filters.append(html.quote(SPECIALTIES.get(result["specialty_filter"], result["specialty_filter"])))
    if filters:
        lines.append("Filtres : " + ", ".join(filters))
    lines.append(f"Page {result['page']}/{result['total_pages']}\n")

    for trainer in result["trainers"]:
        specialties = _labels(trainer.get("specialties") or [], SPECIALTIES)
        lines.append(
            f"• <b>{html.quote(trainer['first_name'])} {html.quote(trainer['last_name'])}</b>"
            + (f" — {html.quote(specialties)}" if specialties else "")
        )
    return "\n".join(lines)


def format_summary(items: List[Tuple[str, str]]) -> str:
    """Сводка анкеты перед отправкой"""
    lines = ["📋 <b>Récapitulatif de votre candidature</b>\n"]
    for label, value in items:
        lines.append(f"<b>{html.quote(label)} :</b> {html.quote(value)}")
    return "\n".join(lines)


def format_errors(errors) -> str:
    """Список ошибок шага"""
    lines = ["❌ <b>Veuillez corriger les erreurs suivantes :</b>"]
    lines.extend(f"• {html.quote(error.message)}" for error in errors)
    return "\n".join(lines)


def format_stats(stats: dict) -> str:
    return (
        "📊 <b>Statistiques</b>\n\n"
        f"👥 Formateurs actifs : <b>{stats['total']}</b>\n"
        f"🎯 Combinaisons de spécialités : <b>{stats['specialties']}</b>\n"
        f"🆕 Nouveaux ce mois-ci : <b>{stats['this_month']}</b>\n"
        f"⏳ En attente de validation : <b>{stats['pending']}</b>"
    )


async def send_trainer_card(
    message: Message,
    trainer: dict,
    keyboard,
    photo_path: Optional[Path] = None
):
    """
    Универсальная функция для отправки анкеты тренера

    Args:
        message: Сообщение, в чат которого отправляется анкета
        trainer: Публичное представление анкеты (TrainerSearchService.to_public)
        keyboard: Клавиатура для сообщения
        photo_path: Локальный путь к фото, если оно есть
    """
    main_text, about_text = format_trainer_card(trainer)
    full_text = f"{main_text}\n\n{about_text}"

    if photo_path is None:
        await message.answer(full_text, reply_markup=keyboard)
        return

    try:
        if len(full_text) <= CAPTION_LIMIT:
            # Если помещается - отправляем одним сообщением
            await message.answer_photo(
                photo=FSInputFile(photo_path),
                caption=full_text,
                reply_markup=keyboard
            )
        else:
            # Если не помещается - основная часть с фото, описание отдельно
            await message.answer_photo(photo=FSInputFile(photo_path), caption=main_text)
            await message.answer(about_text, reply_markup=keyboard)
    except TelegramAPIError as e:
        logger.warning(f"Ошибка отправки фото анкеты {trainer['id']}: {e}")
        # В случае ошибки отправляем без фото
        await message.answer(full_text, reply_markup=keyboard)
