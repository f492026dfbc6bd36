"""FSM состояния для регистрации тренера и поиска"""
from aiogram.fsm.state import State, StatesGroup


class TrainerRegistration(StatesGroup):
    """Состояния регистрации тренера (по полям, сгруппированы в 4 шага)"""
    # Шаг 1: личные данные
    waiting_for_first_name = State()
    waiting_for_last_name = State()
    waiting_for_email = State()
    waiting_for_phone = State()
    waiting_for_company = State()
    waiting_for_linkedin = State()
    # Шаг 2: специализация и опыт
    waiting_for_specialties = State()
    waiting_for_regions = State()
    waiting_for_availability = State()
    waiting_for_hourly_rate = State()
    waiting_for_experience = State()
    waiting_for_bio = State()
    # Шаг 3: документы
    waiting_for_cv = State()
    waiting_for_photo = State()
    # Шаг 4: согласия и отправка
    waiting_for_consent = State()


class TrainerSearch(StatesGroup):
    """Состояния поиска тренеров"""
    waiting_for_query = State()
