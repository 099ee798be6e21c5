from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from todo_api.core.logging import get_logger

logger = get_logger(__name__)


class AppError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    headers: dict[str, str] | None = None

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class AuthenticationFailed(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    headers = {"WWW-Authenticate": "Bearer"}


class Conflict(AppError):
    status_code = status.HTTP_409_CONFLICT


class UnsupportedMediaType(AppError):
    status_code = status.HTTP_415_UNSUPPORTED_MEDIA_TYPE


class PayloadTooLarge(AppError):
    status_code = status.HTTP_413_REQUEST_ENTITY_TOO_LARGE


def error_response(error: str, status_code: int, headers: dict[str, str] | None = None, **extra) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": error, **extra}, headers=headers)


def describe_validation_errors(errors: list[dict]) -> str:
    """Turn pydantic errors into one message naming the offending field."""
    unknown = [str(err["loc"][-1]) for err in errors if err.get("type") == "extra_forbidden"]
    if unknown:
        return f"Unknown fields: {', '.join(unknown)}"

    err = errors[0]
    kind = err.get("type")
    field = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
    if kind == "json_invalid":
        return "Invalid JSON in request body"
    if kind == "missing":
        return f"{field} is required" if field else "Request body is required"
    if not field:
        return "Request body must be a JSON object"
    if kind == "value_error":
        return err["msg"].removeprefix("Value error, ")
    if kind == "string_type":
        return f"{field} must be a string"
    return f"{field}: {err.get('msg', 'invalid value')}"


def register_error_handlers(app: FastAPI) -> None:

    @app.exception_handler(AppError)
    async def handle_app_error(request: Request, exc: AppError):
        if exc.status_code >= 500:
            logger.error("app_error", path=request.url.path, message=exc.message)
        return error_response(exc.message, exc.status_code, headers=exc.headers)

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError):
        message = describe_validation_errors(list(exc.errors()))
        logger.info("request_validation_failed", path=request.url.path, detail=message)
        return error_response("Validation failed", status.HTTP_400_BAD_REQUEST, message=message)

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        return error_response(str(exc.detail), exc.status_code, headers=getattr(exc, "headers", None))

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception):
        logger.exception("unhandled_error", path=request.url.path, method=request.method)
        return error_response("Internal server error", status.HTTP_500_INTERNAL_SERVER_ERROR)
