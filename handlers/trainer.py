"""Обработчики регистрации тренера (форма из 4 шагов)"""
import logging
from typing import Optional

from aiogram import Router, F, Bot
from aiogram.exceptions import TelegramAPIError
from aiogram.filters import Command, StateFilter
from aiogram.types import CallbackQuery, Message, User
from aiogram.fsm.context import FSMContext

from config import (
    ADMIN_IDS,
    INTERVENTION_REGIONS,
    NOTIFY_NEW_REGISTRATION,
    SPECIALTIES,
    SUBMIT_TIMEOUT_SECONDS,
)
from database import Database, STATUS_APPROVED, STATUS_PENDING
from keyboards.inline import (
    get_availability_keyboard,
    get_consent_keyboard,
    get_main_menu_keyboard,
    get_multi_select_keyboard,
    get_skip_keyboard,
    get_step_back_keyboard,
)
from services.errors import SubmissionError
from services.file_storage import FileStorage
from services.registration import RegistrationService
from services.registration_form import FormStatus, RegistrationForm, build_summary
from services.trainer_card import format_errors, format_summary
from services.validation import (
    REGIONS_SOFT_LIMIT,
    SPECIALTIES_SOFT_LIMIT,
    UploadedFile,
    validate_step,
)
from states import TrainerRegistration

logger = logging.getLogger(__name__)

router = Router()

FORM_KEY = "form"


async def load_form(state: FSMContext) -> RegistrationForm:
    data = await state.get_data()
    return RegistrationForm.from_dict(data.get(FORM_KEY))


async def save_form(state: FSMContext, form: RegistrationForm):
    await state.update_data(**{FORM_KEY: form.to_dict()})


# === Вопросы шагов ===

async def ask_first_name(message: Message, state: FSMContext, form: RegistrationForm):
    await state.set_state(TrainerRegistration.waiting_for_first_name)
    await message.answer(
        "<b>Étape 1/4 — Informations personnelles</b>\n\n"
        "Quel est votre <b>prénom</b> ?"
    )


async def ask_specialties(message: Message, state: FSMContext, form: RegistrationForm):
    await state.set_state(TrainerRegistration.waiting_for_specialties)
    await message.answer(
        "<b>Étape 2/4 — Expertise</b>\n\n"
        "Sélectionnez vos <b>spécialités</b> puis validez :",
        reply_markup=get_multi_select_keyboard(
            SPECIALTIES, form.values.get("specialties") or [], "spec", with_back=True
        )
    )


async def ask_cv(message: Message, state: FSMContext, form: RegistrationForm):
    await state.set_state(TrainerRegistration.waiting_for_cv)
    await message.answer(
        "<b>Étape 3/4 — Documents</b>\n\n"
        "Envoyez votre <b>CV</b> en pièce jointe (PDF, DOC ou DOCX, 5 MB maximum) :",
        reply_markup=get_step_back_keyboard()
    )


async def ask_consent(message: Message, state: FSMContext, form: RegistrationForm):
    await state.set_state(TrainerRegistration.waiting_for_consent)
    await message.answer(
        format_summary(form.summary())
        + "\n\n<b>Étape 4/4 — Consentements</b>\n"
        "Le consentement RGPD est obligatoire pour enregistrer votre candidature.",
        reply_markup=get_consent_keyboard(
            bool(form.values.get("rgpd_consent")),
            bool(form.values.get("marketing_consent"))
        )
    )


STEP_ENTRY = {
    1: ask_first_name,
    2: ask_specialties,
    3: ask_cv,
    4: ask_consent,
}


async def finish_step(message: Message, state: FSMContext, form: RegistrationForm):
    """Проверить шаг целиком и перейти к следующему (или повторить текущий)"""
    errors = form.next()
    await save_form(state, form)

    if errors:
        await message.answer(format_errors(errors))
    else:
        warnings = form.get_state().warnings
        if warnings:
            await message.answer("\n".join(f"⚠️ {w.message}" for w in warnings))

    await STEP_ENTRY[form.step](message, state, form)


async def process_text_field(message: Message, state: FSMContext, name: str) -> Optional[RegistrationForm]:
    """Сохранить текстовое поле; при ошибке попросить ввести заново"""
    value = (message.text or "").strip()
    form = await load_form(state)
    hint = form.set_value(name, value)
    await save_form(state, form)
    if hint:
        await message.answer(f"❌ {hint}\nVeuillez réessayer :")
        return None
    return form


# === Старт регистрации ===

@router.message(Command("register"))
async def cmd_register(message: Message, state: FSMContext, db: Database):
    await start_registration(message, message.from_user, state, db)


@router.callback_query(F.data == "menu_register")
async def process_menu_register(callback: CallbackQuery, state: FSMContext, db: Database):
    await start_registration(callback.message, callback.from_user, state, db)
    await callback.answer()


async def start_registration(message: Message, user: User, state: FSMContext, db: Database):
    """Начало регистрации; повторная анкета возможна только после отказа"""
    existing_trainer = await db.get_trainer_by_user_id(user.id)

    if existing_trainer and existing_trainer.status == STATUS_PENDING:
        await message.answer(
            "⏳ Votre candidature est en cours de validation.\n"
            "Merci de patienter, vous serez informé de la décision."
        )
        return
    if existing_trainer and existing_trainer.status == STATUS_APPROVED:
        await message.answer("✅ Votre profil est déjà validé et visible dans l'annuaire.")
        return

    if existing_trainer:
        await message.answer("❌ Votre précédente candidature a été refusée. Vous pouvez en déposer une nouvelle.")

    await state.clear()
    form = RegistrationForm()
    await save_form(state, form)
    await message.answer(
        "📝 <b>Inscription formateur</b>\n\n"
        "4 étapes : informations personnelles, expertise, documents, consentements.\n"
        "Tapez /cancel pour abandonner à tout moment."
    )
    await ask_first_name(message, state, form)


@router.callback_query(F.data == "reg_prev", StateFilter(TrainerRegistration))
async def process_previous_step(callback: CallbackQuery, state: FSMContext):
    """Возврат к предыдущему шагу (без проверки)"""
    form = await load_form(state)
    if not form.previous():
        await callback.answer("Vous êtes déjà à la première étape")
        return
    await save_form(state, form)
    await callback.answer()
    await STEP_ENTRY[form.step](callback.message, state, form)


# === Шаг 1: личные данные ===

@router.message(TrainerRegistration.waiting_for_first_name)
async def process_first_name(message: Message, state: FSMContext):
    if await process_text_field(message, state, "first_name"):
        await state.set_state(TrainerRegistration.waiting_for_last_name)
        await message.answer("Votre <b>nom</b> :")


@router.message(TrainerRegistration.waiting_for_last_name)
async def process_last_name(message: Message, state: FSMContext):
    if await process_text_field(message, state, "last_name"):
        await state.set_state(TrainerRegistration.waiting_for_email)
        await message.answer("Votre adresse <b>email</b> :")


@router.message(TrainerRegistration.waiting_for_email)
async def process_email(message: Message, state: FSMContext):
    if await process_text_field(message, state, "email"):
        await state.set_state(TrainerRegistration.waiting_for_phone)
        await message.answer("Votre numéro de <b>téléphone</b> (ex : 06 12 34 56 78) :")


@router.message(TrainerRegistration.waiting_for_phone)
async def process_phone(message: Message, state: FSMContext):
    if await process_text_field(message, state, "phone"):
        await state.set_state(TrainerRegistration.waiting_for_company)
        await message.answer(
            "Votre <b>entreprise</b> (ou « Freelance ») :",
            reply_markup=get_skip_keyboard("skip_company")
        )


async def ask_linkedin(message: Message, state: FSMContext):
    await state.set_state(TrainerRegistration.waiting_for_linkedin)
    await message.answer(
        "L'URL de votre profil <b>LinkedIn</b> (optionnel) :",
        reply_markup=get_skip_keyboard("skip_linkedin")
    )


@router.message(TrainerRegistration.waiting_for_company)
async def process_company(message: Message, state: FSMContext):
    if await process_text_field(message, state, "company"):
        await ask_linkedin(message, state)


@router.callback_query(F.data == "skip_company", TrainerRegistration.waiting_for_company)
async def process_skip_company(callback: CallbackQuery, state: FSMContext):
    await callback.answer()
    await ask_linkedin(callback.message, state)


@router.message(TrainerRegistration.waiting_for_linkedin)
async def process_linkedin(message: Message, state: FSMContext):
    form = await process_text_field(message, state, "linkedin_url")
    if form:
        await finish_step(message, state, form)


@router.callback_query(F.data == "skip_linkedin", TrainerRegistration.waiting_for_linkedin)
async def process_skip_linkedin(callback: CallbackQuery, state: FSMContext):
    form = await load_form(state)
    form.set_value("linkedin_url", "")
    await callback.answer()
    await finish_step(callback.message, state, form)


# === Шаг 2: специализация и опыт ===

async def toggle_choice(callback: CallbackQuery, state: FSMContext, name: str) -> list:
    """Отметить/снять пункт множественного выбора"""
    value = callback.data.split(":", 1)[1]
    form = await load_form(state)
    selected = list(form.values.get(name) or [])
    if value in selected:
        selected.remove(value)
    else:
        selected.append(value)
    form.set_value(name, selected)
    await save_form(state, form)
    return selected


@router.callback_query(F.data.startswith("spec:"), TrainerRegistration.waiting_for_specialties)
async def process_specialty_toggle(callback: CallbackQuery, state: FSMContext):
    selected = await toggle_choice(callback, state, "specialties")
    await callback.message.edit_reply_markup(
        reply_markup=get_multi_select_keyboard(SPECIALTIES, selected, "spec", with_back=True)
    )
    if len(selected) > SPECIALTIES_SOFT_LIMIT:
        await callback.answer(f"Maximum {SPECIALTIES_SOFT_LIMIT} spécialités recommandées")
    else:
        await callback.answer()


@router.callback_query(F.data == "spec_done", TrainerRegistration.waiting_for_specialties)
async def process_specialties_done(callback: CallbackQuery, state: FSMContext):
    form = await load_form(state)
    if not form.values.get("specialties"):
        await callback.answer("Sélectionnez au moins une spécialité", show_alert=True)
        return
    await callback.answer()
    await state.set_state(TrainerRegistration.waiting_for_regions)
    await callback.message.answer(
        "Sélectionnez vos <b>zones d'intervention</b> puis validez :",
        reply_markup=get_multi_select_keyboard(
            INTERVENTION_REGIONS, form.values.get("intervention_regions") or [], "region"
        )
    )


@router.callback_query(F.data.startswith("region:"), TrainerRegistration.waiting_for_regions)
async def process_region_toggle(callback: CallbackQuery, state: FSMContext):
    selected = await toggle_choice(callback, state, "intervention_regions")
    await callback.message.edit_reply_markup(
        reply_markup=get_multi_select_keyboard(INTERVENTION_REGIONS, selected, "region")
    )
    if len(selected) > REGIONS_SOFT_LIMIT:
        await callback.answer("Conseil : sélectionnez vos zones principales")
    else:
        await callback.answer()


@router.callback_query(F.data == "region_done", TrainerRegistration.waiting_for_regions)
async def process_regions_done(callback: CallbackQuery, state: FSMContext):
    form = await load_form(state)
    if not form.values.get("intervention_regions"):
        await callback.answer("Sélectionnez au moins une zone d'intervention", show_alert=True)
        return
    await callback.answer()
    await state.set_state(TrainerRegistration.waiting_for_availability)
    await callback.message.answer(
        "Votre <b>disponibilité</b> :",
        reply_markup=get_availability_keyboard()
    )


async def ask_hourly_rate(message: Message, state: FSMContext):
    await state.set_state(TrainerRegistration.waiting_for_hourly_rate)
    await message.answer(
        "Votre <b>tarif horaire</b> (optionnel, ex : 80€/h) :",
        reply_markup=get_skip_keyboard("skip_hourly_rate")
    )


@router.callback_query(F.data.startswith("availability:"), TrainerRegistration.waiting_for_availability)
async def process_availability(callback: CallbackQuery, state: FSMContext):
    form = await load_form(state)
    form.set_value("availability", callback.data.split(":", 1)[1])
    await save_form(state, form)
    await callback.answer()
    await ask_hourly_rate(callback.message, state)


@router.callback_query(F.data == "skip_availability", TrainerRegistration.waiting_for_availability)
async def process_skip_availability(callback: CallbackQuery, state: FSMContext):
    await callback.answer()
    await ask_hourly_rate(callback.message, state)


async def ask_experience(message: Message, state: FSMContext):
    await state.set_state(TrainerRegistration.waiting_for_experience)
    await message.answer(
        "Décrivez votre <b>expérience</b> de formateur "
        "(entre 50 et 1000 caractères : domaines, publics formés, certifications...) :"
    )


@router.message(TrainerRegistration.waiting_for_hourly_rate)
async def process_hourly_rate(message: Message, state: FSMContext):
    if await process_text_field(message, state, "hourly_rate"):
        await ask_experience(message, state)


@router.callback_query(F.data == "skip_hourly_rate", TrainerRegistration.waiting_for_hourly_rate)
async def process_skip_hourly_rate(callback: CallbackQuery, state: FSMContext):
    await callback.answer()
    await ask_experience(callback.message, state)


@router.message(TrainerRegistration.waiting_for_experience)
async def process_experience(message: Message, state: FSMContext):
    if await process_text_field(message, state, "experience"):
        await state.set_state(TrainerRegistration.waiting_for_bio)
        await message.answer(
            "Une courte <b>présentation</b> pour votre profil public (optionnel) :",
            reply_markup=get_skip_keyboard("skip_bio")
        )


@router.message(TrainerRegistration.waiting_for_bio)
async def process_bio(message: Message, state: FSMContext):
    form = await process_text_field(message, state, "bio")
    if form:
        await finish_step(message, state, form)


@router.callback_query(F.data == "skip_bio", TrainerRegistration.waiting_for_bio)
async def process_skip_bio(callback: CallbackQuery, state: FSMContext):
    form = await load_form(state)
    form.set_value("bio", "")
    await callback.answer()
    await finish_step(callback.message, state, form)


# === Шаг 3: документы ===

async def store_upload(message: Message, state: FSMContext, name: str, uploaded: UploadedFile) -> Optional[RegistrationForm]:
    """Запомнить файл; если он не проходит проверку, сообщить и остаться на месте"""
    form = await load_form(state)
    form.set_value(name, uploaded)
    errors = [e for e in validate_step(3, form.values)[0] if e.field == name]
    if errors:
        form.set_value(name, None)
        await save_form(state, form)
        await message.answer(format_errors(errors))
        return None
    await save_form(state, form)
    return form


@router.message(TrainerRegistration.waiting_for_cv, F.document)
async def process_cv(message: Message, state: FSMContext):
    document = message.document
    uploaded = UploadedFile(
        name=document.file_name or "cv",
        size=document.file_size or 0,
        mime_type=document.mime_type or "",
        file_id=document.file_id,
    )
    if await store_upload(message, state, "cv_file", uploaded):
        await state.set_state(TrainerRegistration.waiting_for_photo)
        await message.answer(
            "Une <b>photo professionnelle</b> (optionnel, JPG, PNG ou GIF, 2 MB maximum) :",
            reply_markup=get_skip_keyboard("skip_photo", "⏭ Passer la photo")
        )


@router.message(TrainerRegistration.waiting_for_cv)
async def process_invalid_cv(message: Message):
    await message.answer("❌ Veuillez envoyer votre CV sous forme de document (PDF, DOC ou DOCX).")


@router.message(TrainerRegistration.waiting_for_photo, F.photo)
async def process_photo(message: Message, state: FSMContext):
    photo = message.photo[-1]
    uploaded = UploadedFile(
        name=f"photo_{photo.file_unique_id}.jpg",
        size=photo.file_size or 0,
        mime_type="image/jpeg",
        file_id=photo.file_id,
    )
    form = await store_upload(message, state, "photo_file", uploaded)
    if form:
        await finish_step(message, state, form)


@router.message(TrainerRegistration.waiting_for_photo, F.document)
async def process_photo_document(message: Message, state: FSMContext):
    document = message.document
    uploaded = UploadedFile(
        name=document.file_name or "photo",
        size=document.file_size or 0,
        mime_type=document.mime_type or "",
        file_id=document.file_id,
    )
    form = await store_upload(message, state, "photo_file", uploaded)
    if form:
        await finish_step(message, state, form)


@router.callback_query(F.data == "skip_photo", TrainerRegistration.waiting_for_photo)
async def process_skip_photo(callback: CallbackQuery, state: FSMContext):
    form = await load_form(state)
    form.set_value("photo_file", None)
    await callback.answer()
    await finish_step(callback.message, state, form)


@router.message(TrainerRegistration.waiting_for_photo)
async def process_invalid_photo(message: Message):
    await message.answer(
        "❌ Veuillez envoyer une photo ou appuyer sur « Passer la photo ».",
        reply_markup=get_skip_keyboard("skip_photo", "⏭ Passer la photo")
    )


# === Шаг 4: согласия и отправка ===

@router.callback_query(F.data.startswith("consent:"), TrainerRegistration.waiting_for_consent)
async def process_consent_toggle(callback: CallbackQuery, state: FSMContext):
    name = "rgpd_consent" if callback.data == "consent:rgpd" else "marketing_consent"
    form = await load_form(state)
    form.set_value(name, not form.values.get(name))
    await save_form(state, form)
    await callback.message.edit_reply_markup(
        reply_markup=get_consent_keyboard(
            bool(form.values.get("rgpd_consent")),
            bool(form.values.get("marketing_consent"))
        )
    )
    await callback.answer()


async def download_upload(bot: Bot, file_storage: FileStorage, kind: str, value) -> Optional[str]:
    """Скачать файл из Telegram в хранилище, вернуть относительный путь"""
    uploaded = UploadedFile.from_value(value)
    if uploaded is None:
        return None
    relative, path = file_storage.new_path(kind, uploaded.name)
    path.parent.mkdir(parents=True, exist_ok=True)
    downloaded = False
    try:
        await bot.download(uploaded.file_id, destination=path)
        downloaded = True
    except TelegramAPIError as e:
        logger.error(f"Не удалось скачать файл {uploaded.name}: {e}")
        raise SubmissionError("Impossible de récupérer vos fichiers, veuillez réessayer", code="file_error") from e
    finally:
        # Недокачанный файл не должен остаться в хранилище
        if not downloaded:
            file_storage.delete(relative)
    return relative


async def notify_admins(bot: Bot, form_values: dict, trainer_id: int):
    """Уведомление администраторов о новой анкете"""
    text = f"🆕 <b>Nouvelle candidature #{trainer_id:04d}</b>\n\n" + format_summary(build_summary(form_values))
    for admin_id in ADMIN_IDS:
        try:
            await bot.send_message(admin_id, text)
        except TelegramAPIError as e:
            logger.warning(f"Не удалось отправить уведомление админу {admin_id}: {e}")


def make_submitter(
    bot: Bot,
    file_storage: FileStorage,
    registration_service: RegistrationService,
    user: User,
    outcome: dict
):
    """
    Отправитель анкеты для RegistrationForm.submit.

    Скачивает файлы из Telegram и регистрирует анкету. Если анкета не
    сохранена (отказ, ошибка, таймаут с отменой), скачанные файлы удаляются.
    Ответ регистрации копируется в outcome.
    """
    async def submitter(values: dict) -> dict:
        cv_path = photo_path = None
        result = None
        try:
            cv_path = await download_upload(bot, file_storage, "cv", values.get("cv_file"))
            photo_path = await download_upload(bot, file_storage, "photo", values.get("photo_file"))
            result = await registration_service.register(
                values, cv_path, photo_path, user_id=user.id, username=user.username
            )
        finally:
            if not (result and result.get("success")):
                file_storage.delete(cv_path)
                file_storage.delete(photo_path)
        outcome.update(result)
        return result

    return submitter


@router.callback_query(F.data == "reg_submit", TrainerRegistration.waiting_for_consent)
async def process_submit(
    callback: CallbackQuery,
    bot: Bot,
    state: FSMContext,
    registration_service: RegistrationService,
    file_storage: FileStorage
):
    """Отправка анкеты на модерацию"""
    form = await load_form(state)
    if form.get_state().submitting:
        await callback.answer("Envoi déjà en cours...")
        return

    outcome = {}
    submitter = make_submitter(bot, file_storage, registration_service, callback.from_user, outcome)

    async def mark_submitting(submitting_form: RegistrationForm):
        await save_form(state, submitting_form)

    await callback.answer()
    submitted_values = dict(form.values)
    result_state = await form.submit(
        submitter, timeout=SUBMIT_TIMEOUT_SECONDS, on_submitting=mark_submitting
    )

    if result_state.status == FormStatus.COMPLETED:
        await state.clear()
        if outcome.get("status") == STATUS_APPROVED:
            status_text = "Votre profil est dès maintenant visible dans l'annuaire."
        else:
            status_text = (
                "Votre profil est en cours de validation. "
                "Il apparaîtra dans l'annuaire dès qu'il sera approuvé."
            )
        await callback.message.answer(
            f"✅ <b>Candidature envoyée !</b>\n\n{status_text}",
            reply_markup=get_main_menu_keyboard()
        )
        if NOTIFY_NEW_REGISTRATION and outcome.get("trainer_id"):
            await notify_admins(bot, submitted_values, outcome["trainer_id"])
        return

    await save_form(state, form)

    if result_state.status == FormStatus.FAILED:
        await callback.message.answer(
            f"❌ {result_state.message}\n\nVos informations sont conservées, vous pouvez réessayer.",
            reply_markup=get_consent_keyboard(
                bool(form.values.get("rgpd_consent")),
                bool(form.values.get("marketing_consent"))
            )
        )
        return

    # Проверка шага 4 не пройдена
    await callback.message.answer(format_errors(result_state.errors))
