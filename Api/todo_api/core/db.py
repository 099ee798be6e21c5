
from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlmodel import create_engine, SQLModel

from todo_api.core.settings import Settings

# Table registration on SQLModel.metadata
from todo_api.models.RefreshToken import RefreshToken  # noqa: F401
from todo_api.models.RevokedToken import RevokedToken  # noqa: F401
from todo_api.models.User import User  # noqa: F401


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_db_engine(settings: Settings, **kwargs) -> Engine:
    url = str(settings.DATABASE_URI)
    if url.startswith("sqlite"):
        kwargs.setdefault("connect_args", {"check_same_thread": False})
    engine = create_engine(url, echo=settings.DB_ECHO, **kwargs)
    if engine.dialect.name == "sqlite":
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    return engine


def init_db(engine: Engine) -> None:
    SQLModel.metadata.create_all(engine)
