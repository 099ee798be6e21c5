from collections.abc import Awaitable, Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from todo_api.core.errors import AppError, PayloadTooLarge, UnsupportedMediaType, error_response
from todo_api.core.logging import get_logger

logger = get_logger(__name__)


class JSONBodyGuard(BaseHTTPMiddleware):
    """
    Checks content type, then size, of POST bodies under ``prefix`` before
    FastAPI reads or parses them.

    A declared ``Content-Length`` over the cap is rejected without reading the
    body. Paths in ``optional_body_paths`` may be sent with no body at all.
    """

    def __init__(
        self,
        app: ASGIApp,
        max_body_size: int,
        prefix: str = "/auth/",
        optional_body_paths: tuple[str, ...] = ("/auth/logout",),
    ) -> None:
        super().__init__(app)
        self.max_body_size = max_body_size
        self.prefix = prefix
        self.optional_body_paths = optional_body_paths

    async def dispatch(self, request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
        path = request.url.path
        if request.method != "POST" or not path.startswith(self.prefix):
            return await call_next(request)

        content_length = request.headers.get("content-length", "")
        declared = int(content_length) if content_length.isdigit() else None

        if path in self.optional_body_paths:
            if declared == 0 or (declared is None and not await request.body()):
                return await call_next(request)

        content_type = request.headers.get("content-type", "")
        if "application/json" not in content_type.lower():
            return self._reject(request, UnsupportedMediaType("Content-Type must be application/json"))

        if declared is not None:
            too_large = declared > self.max_body_size
        else:
            # No length declared (chunked); starlette caches the body for the route
            too_large = len(await request.body()) > self.max_body_size
        if too_large:
            return self._reject(request, PayloadTooLarge("Request body too large"))

        return await call_next(request)

    @staticmethod
    def _reject(request: Request, exc: AppError) -> Response:
        logger.info("request_body_rejected", path=request.url.path, status=exc.status_code)
        return error_response(exc.message, exc.status_code)
