"""Ошибки каталога тренеров"""
from typing import List, Optional


class TrainerDirectoryError(Exception):
    """Базовая ошибка: код для клиента и безопасное сообщение для пользователя"""

    code = "server_error"
    default_message = "Erreur interne du serveur"

    def __init__(self, message: Optional[str] = None, code: Optional[str] = None):
        self.message = message or self.default_message
        if code:
            self.code = code
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"success": False, "message": self.message, "code": self.code}


class ValidationError(TrainerDirectoryError):
    """Нарушение правил шага формы"""

    code = "validation_error"
    default_message = "Certains champs sont invalides"

    def __init__(self, errors: List, message: Optional[str] = None):
        self.errors = list(errors)
        if message is None and self.errors:
            message = self.errors[0].message
        super().__init__(message)


class SecurityError(TrainerDirectoryError):
    """Отсутствует или неверен anti-forgery токен"""

    code = "invalid_nonce"
    default_message = "Session invalide, veuillez recharger la page"


class QueryError(TrainerDirectoryError):
    """Сбой хранилища во время поиска"""

    code = "search_error"
    default_message = "Erreur lors de la recherche, veuillez réessayer"


class SubmissionError(TrainerDirectoryError):
    """Не удалось отправить регистрацию"""

    code = "submission_error"
    default_message = "Erreur lors de l'inscription, veuillez réessayer"


class DuplicateEmailError(SubmissionError):
    code = "email_exists"
    default_message = "Cette adresse email est déjà enregistrée"


class TrainerNotFoundError(TrainerDirectoryError):
    code = "not_found"
    default_message = "Formateur non trouvé ou non approuvé"
