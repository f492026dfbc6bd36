"""Inline клавиатуры"""
from typing import Dict, List, Optional

from aiogram.types import InlineKeyboardMarkup, InlineKeyboardButton
from aiogram.utils.keyboard import InlineKeyboardBuilder

from config import AVAILABILITY_OPTIONS, SPECIALTIES


def get_main_menu_keyboard() -> InlineKeyboardMarkup:
    """Главное меню"""
    builder = InlineKeyboardBuilder()
    builder.row(
        InlineKeyboardButton(text="📝 Devenir formateur", callback_data="menu_register")
    )
    builder.row(
        InlineKeyboardButton(text="🔍 Rechercher un formateur", callback_data="menu_search")
    )
    builder.row(
        InlineKeyboardButton(text="👥 Tous les formateurs", callback_data="menu_all")
    )
    builder.row(
        InlineKeyboardButton(text="📊 Statistiques", callback_data="menu_stats")
    )
    return builder.as_markup()


def get_step_back_keyboard() -> InlineKeyboardMarkup:
    """Кнопка возврата к предыдущему шагу формы"""
    builder = InlineKeyboardBuilder()
    builder.row(
        InlineKeyboardButton(text="⬅️ Étape précédente", callback_data="reg_prev")
    )
    return builder.as_markup()


def get_skip_keyboard(callback_data: str, text: str = "⏭ Passer") -> InlineKeyboardMarkup:
    """Клавиатура для пропуска необязательного поля"""
    builder = InlineKeyboardBuilder()
    builder.row(
        InlineKeyboardButton(text=text, callback_data=callback_data)
    )
    return builder.as_markup()


def get_multi_select_keyboard(
    options: Dict[str, str],
    selected: List[str],
    prefix: str,
    with_back: bool = False
) -> InlineKeyboardMarkup:
    """Множественный выбор: отмеченные пункты помечаются галочкой"""
    builder = InlineKeyboardBuilder()
    for value, label in options.items():
        mark = "✅ " if value in selected else ""
        builder.row(
            InlineKeyboardButton(
                text=f"{mark}{label}",
                callback_data=f"{prefix}:{value}"
            )
        )
    builder.row(
        InlineKeyboardButton(
            text=f"➡️ Valider ({len(selected)})",
            callback_data=f"{prefix}_done"
        )
    )
    if with_back:
        builder.row(
            InlineKeyboardButton(text="⬅️ Étape précédente", callback_data="reg_prev")
        )
    return builder.as_markup()


def get_availability_keyboard() -> InlineKeyboardMarkup:
    """Выбор доступности"""
    builder = InlineKeyboardBuilder()
    for value, label in AVAILABILITY_OPTIONS.items():
        builder.row(
            InlineKeyboardButton(text=label, callback_data=f"availability:{value}")
        )
    builder.row(
        InlineKeyboardButton(text="⏭ Passer", callback_data="skip_availability")
    )
    return builder.as_markup()


def get_consent_keyboard(rgpd_consent: bool, marketing_consent: bool) -> InlineKeyboardMarkup:
    """Согласия и отправка анкеты"""
    builder = InlineKeyboardBuilder()
    builder.row(
        InlineKeyboardButton(
            text=f"{'☑️' if rgpd_consent else '⬜'} J'accepte le traitement de mes données (RGPD) *",
            callback_data="consent:rgpd"
        )
    )
    builder.row(
        InlineKeyboardButton(
            text=f"{'☑️' if marketing_consent else '⬜'} Communications marketing (optionnel)",
            callback_data="consent:marketing"
        )
    )
    builder.row(
        InlineKeyboardButton(text="📤 Envoyer ma candidature", callback_data="reg_submit")
    )
    builder.row(
        InlineKeyboardButton(text="⬅️ Étape précédente", callback_data="reg_prev")
    )
    return builder.as_markup()


def get_search_filter_keyboard(selected_specialty: str = "") -> InlineKeyboardMarkup:
    """Фильтр поиска по специальности"""
    builder = InlineKeyboardBuilder()
    mark = "✅ " if not selected_specialty else ""
    builder.row(
        InlineKeyboardButton(text=f"{mark}Toutes les spécialités", callback_data="search_specialty:all")
    )
    for value, label in SPECIALTIES.items():
        mark = "✅ " if value == selected_specialty else ""
        builder.row(
            InlineKeyboardButton(text=f"{mark}{label}", callback_data=f"search_specialty:{value}")
        )
    return builder.as_markup()


def get_search_results_keyboard(trainers: List[dict], page: int, total_pages: int) -> InlineKeyboardMarkup:
    """Страница результатов: кнопки анкет и навигация"""
    builder = InlineKeyboardBuilder()

    for trainer in trainers:
        builder.row(
            InlineKeyboardButton(
                text=f"👤 {trainer['first_name']} {trainer['last_name']}",
                callback_data=f"trainer:{trainer['id']}:{page}"
            )
        )

    # Навигация по страницам
    nav_buttons = []
    if page > 1:
        nav_buttons.append(
            InlineKeyboardButton(text="⬅️ Précédent", callback_data=f"search_page:{page - 1}")
        )
    if page < total_pages:
        nav_buttons.append(
            InlineKeyboardButton(text="➡️ Suivant", callback_data=f"search_page:{page + 1}")
        )
    if nav_buttons:
        builder.row(*nav_buttons)

    builder.row(
        InlineKeyboardButton(text="🎯 Filtrer par spécialité", callback_data="search_filters")
    )
    builder.row(
        InlineKeyboardButton(text="🔙 Menu principal", callback_data="back_to_menu")
    )
    return builder.as_markup()


def get_trainer_profile_keyboard(back_page: Optional[int] = None) -> InlineKeyboardMarkup:
    """Клавиатура под анкетой тренера"""
    builder = InlineKeyboardBuilder()
    if back_page:
        builder.row(
            InlineKeyboardButton(text="🔙 Retour aux résultats", callback_data=f"search_page:{back_page}")
        )
    builder.row(
        InlineKeyboardButton(text="🏠 Menu principal", callback_data="back_to_menu")
    )
    return builder.as_markup()
