import secrets
from functools import lru_cache

from pydantic import PrivateAttr, computed_field
from pydantic_settings import SettingsConfigDict, BaseSettings


class Settings(BaseSettings):

    model_config = SettingsConfigDict(
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore",
    )

    SQLITE_FILE_PATH: str = "database.db"
    DATABASE_URL: str | None = None
    DB_ECHO: bool = False

    JWT_SECRET: str | None = None
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 15
    REFRESH_TOKEN_EXPIRE_DAYS: int = 30

    # Argon2id work factor; memory cost is in KiB
    PASSWORD_HASH_ITERATIONS: int = 2
    PASSWORD_HASH_LANES: int = 4
    PASSWORD_HASH_MEMORY_COST: int = 65536

    MAX_REQUEST_SIZE_BYTES: int = 10_240

    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = True

    _jwt_secret_generated: bool = PrivateAttr(default=False)

    def model_post_init(self, __context):
        if not self.JWT_SECRET:
            # Tokens signed with a per-process secret die with the process and
            # are not accepted by other instances.
            self.JWT_SECRET = secrets.token_urlsafe(64)
            self._jwt_secret_generated = True

    @property
    def jwt_secret_generated(self) -> bool:
        return self._jwt_secret_generated

    @computed_field
    @property
    def DATABASE_URI(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return f"sqlite:///{self.SQLITE_FILE_PATH}"


@lru_cache
def get_settings() -> Settings:
    return Settings()
