from contextlib import asynccontextmanager

from fastapi import FastAPI

from todo_api.core.db import create_db_engine, init_db
from todo_api.core.errors import register_error_handlers
from todo_api.core.logging import configure_logging, get_logger
from todo_api.core.middleware import JSONBodyGuard
from todo_api.core.security import PasswordHasher, TokenService
from todo_api.core.settings import Settings, get_settings
from todo_api.router import authentication
from todo_api.router import user_me_info
from todo_api.services.AuthService import AuthService

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db(app.state.engine)
    logger.info("startup_complete", database=app.state.engine.url.render_as_string(hide_password=True))
    yield
    app.state.engine.dispose()
    logger.info("shutdown_complete")


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings)
    if settings.jwt_secret_generated:
        logger.warning(
            "jwt_secret_generated",
            detail="JWT_SECRET is not set; issued tokens will not survive a restart",
        )

    app = FastAPI(
        title="Todo API",
        summary="Authentication and session lifecycle for the todo application",
        openapi_url="/openapi.json",
        docs_url="/api/docs",
        lifespan=lifespan,
    )

    hasher = PasswordHasher.from_settings(settings)
    tokens = TokenService(settings)
    app.state.settings = settings
    app.state.engine = create_db_engine(settings)
    app.state.token_service = tokens
    app.state.auth_service = AuthService(settings, hasher, tokens)

    register_error_handlers(app)
    app.add_middleware(JSONBodyGuard, max_body_size=settings.MAX_REQUEST_SIZE_BYTES)

    app.include_router(authentication.router, prefix="/auth", tags=["auth"])
    app.include_router(user_me_info.router, prefix="/user/me/info", tags=["user/me/info"])

    @app.get("/", tags=["Health"])
    async def root():
        return {"status": "ok", "message": "Todo API is running"}

    @app.get("/health", tags=["Health"])
    async def health_check():
        return {"status": "ok"}

    return app


app = create_app()
