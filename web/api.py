"""
JSON API каталога тренеров (aiohttp).

Ответы в конверте {'success': True, 'data': ...} либо
{'success': False, 'message': ..., 'code': ...}. Каждый запрос, кроме
выдачи сессии, должен нести anti-forgery токен (поле nonce или заголовок
X-Nonce), привязанный к cookie сессии.
"""
import logging
from typing import Any, Optional

from aiohttp import web

from services.errors import SubmissionError, TrainerDirectoryError, ValidationError
from services.file_storage import FileStorage
from services.registration import RegistrationService
from services.search import TrainerSearchService
from services.security import issue_token, new_session_id, require_token
from services.validation import UploadedFile

logger = logging.getLogger(__name__)

SESSION_COOKIE = "trainer_session"
NONCE_HEADER = "X-Nonce"
# CV до 5 МБ + фото до 2 МБ + поля формы
MAX_REQUEST_SIZE = 10 * 1024 * 1024

ERROR_STATUS = {
    "invalid_nonce": 403,
    "validation_error": 400,
    "rgpd_required": 400,
    "bad_request": 400,
    "not_found": 404,
    "email_exists": 409,
}

TEXT_FIELDS = (
    "first_name", "last_name", "email", "phone", "company", "linkedin_url",
    "availability", "hourly_rate", "experience", "bio",
)
LIST_FIELDS = ("specialties", "intervention_regions")
TRUE_VALUES = ("1", "true", "on", "yes")

SEARCH_SERVICE = web.AppKey("search_service", TrainerSearchService)
REGISTRATION_SERVICE = web.AppKey("registration_service", RegistrationService)
FILE_STORAGE = web.AppKey("file_storage", FileStorage)
SECRET_KEY = web.AppKey("secret_key", str)


def error_response(error: TrainerDirectoryError) -> web.Response:
    body = error.to_dict()
    if isinstance(error, ValidationError) and error.errors:
        body["errors"] = [{"field": e.field, "message": e.message} for e in error.errors]
    return web.json_response(body, status=ERROR_STATUS.get(error.code, 500))


def success_response(data: Any) -> web.Response:
    return web.json_response({"success": True, "data": data})


@web.middleware
async def error_middleware(request: web.Request, handler):
    """Ошибки каталога превращаются в JSON с безопасным сообщением"""
    try:
        return await handler(request)
    except TrainerDirectoryError as e:
        logger.info(f"{request.method} {request.path}: {e.code} ({e.message})")
        return error_response(e)
    except web.HTTPException:
        raise
    except Exception as e:
        logger.error(f"Необработанная ошибка {request.method} {request.path}: {e}", exc_info=True)
        return error_response(TrainerDirectoryError())


async def read_params(request: web.Request):
    """Параметры запроса: JSON-объект или форма"""
    if request.content_type == "application/json":
        try:
            data = await request.json()
        except ValueError:
            raise TrainerDirectoryError("Requête invalide", code="bad_request")
        return data if isinstance(data, dict) else {}
    return await request.post()


def check_nonce(request: web.Request, params) -> None:
    token = request.headers.get(NONCE_HEADER) or params.get("nonce")
    require_token(request.app[SECRET_KEY], request.cookies.get(SESSION_COOKIE), token)


async def get_session(request: web.Request) -> web.Response:
    """Выдать сессию и токен для последующих запросов"""
    session_id = request.cookies.get(SESSION_COOKIE) or new_session_id()
    response = success_response({"nonce": issue_token(request.app[SECRET_KEY], session_id)})
    response.set_cookie(SESSION_COOKIE, session_id, httponly=True, samesite="Lax")
    return response


async def search_trainers(request: web.Request) -> web.Response:
    params = await read_params(request)
    check_nonce(request, params)
    result = await request.app[SEARCH_SERVICE].search(
        params.get("search_term", ""),
        params.get("specialty_filter", ""),
        params.get("page", 1),
        params.get("per_page") or params.get("page_size"),
    )
    return success_response(result)


async def list_trainers(request: web.Request) -> web.Response:
    params = await read_params(request)
    check_nonce(request, params)
    result = await request.app[SEARCH_SERVICE].list_all(
        params.get("page", 1),
        params.get("per_page") or params.get("page_size"),
    )
    return success_response(result)


async def trainer_profile(request: web.Request) -> web.Response:
    params = await read_params(request)
    check_nonce(request, params)
    profile = await request.app[SEARCH_SERVICE].get_trainer_profile(request.match_info["trainer_id"])
    return success_response(profile)


def read_upload(form, name: str) -> Optional[tuple]:
    """(метаданные, содержимое) загруженного файла или None"""
    field = form.get(name)
    if not isinstance(field, web.FileField) or not field.filename:
        return None
    data = field.file.read()
    if not data:
        return None
    uploaded = UploadedFile(name=field.filename, size=len(data), mime_type=field.content_type or "")
    return uploaded, data


async def register_trainer(request: web.Request) -> web.Response:
    """Приём анкеты с файлами (multipart/form-data)"""
    form = await request.post()
    check_nonce(request, form)

    values = {name: form.get(name, "") for name in TEXT_FIELDS}
    for name in LIST_FIELDS:
        values[name] = form.getall(f"{name}[]", [])
    values["rgpd_consent"] = str(form.get("rgpd_consent", "")).lower() in TRUE_VALUES
    values["marketing_consent"] = str(form.get("marketing_consent", "")).lower() in TRUE_VALUES

    cv_upload = read_upload(form, "cv_file")
    photo_upload = read_upload(form, "photo_file")
    values["cv_file"] = cv_upload[0].to_dict() if cv_upload else None
    values["photo_file"] = photo_upload[0].to_dict() if photo_upload else None

    registration_service = request.app[REGISTRATION_SERVICE]
    errors = registration_service.validate(values)
    if errors:
        raise ValidationError(errors)

    file_storage = request.app[FILE_STORAGE]
    cv_path = file_storage.save_bytes("cv", cv_upload[0].name, cv_upload[1])
    photo_path = None
    if photo_upload:
        photo_path = file_storage.save_bytes("photo", photo_upload[0].name, photo_upload[1])

    result = await registration_service.register(values, cv_path, photo_path)
    if not result["success"]:
        file_storage.delete(cv_path)
        file_storage.delete(photo_path)
        raise SubmissionError(result["message"], code=result["code"])

    return success_response(result)


def create_app(
    search_service: TrainerSearchService,
    registration_service: RegistrationService,
    file_storage: FileStorage,
    secret_key: str
) -> web.Application:
    """Собрать приложение API"""
    app = web.Application(middlewares=[error_middleware], client_max_size=MAX_REQUEST_SIZE)
    app[SEARCH_SERVICE] = search_service
    app[REGISTRATION_SERVICE] = registration_service
    app[FILE_STORAGE] = file_storage
    app[SECRET_KEY] = secret_key

    app.router.add_get("/api/session", get_session)
    app.router.add_post("/api/trainers/search", search_trainers)
    app.router.add_post("/api/trainers", list_trainers)
    app.router.add_post("/api/trainers/{trainer_id}", trainer_profile)
    app.router.add_post("/api/registrations", register_trainer)

    # Публичные файлы (фото, CV) по FILES_BASE_URL
    if file_storage.base_dir.is_dir():
        app.router.add_static("/uploads", file_storage.base_dir)

    return app
