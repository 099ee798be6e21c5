import re
from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field as PydanticField, field_validator
from sqlmodel import Field, SQLModel

UUID_PATTERN = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE)


class RefreshToken(SQLModel, table=True):
    __tablename__ = "refresh_tokens"

    id: int | None = Field(default=None, primary_key=True)
    token: str = Field(index=True, unique=True)
    user_id: int = Field(foreign_key="users.id", index=True, ondelete="CASCADE")
    expires_at: datetime
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class RefreshRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    refresh_token: str = PydanticField(alias="refreshToken")

    @field_validator("refresh_token")
    @classmethod
    def check_uuid_shape(cls, value: str) -> str:
        token = value.strip()
        if not token:
            raise ValueError("refreshToken cannot be empty")
        if not UUID_PATTERN.match(token):
            raise ValueError("refreshToken must be a valid UUID format")
        return token


class LogoutRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    refresh_token: str | None = PydanticField(default=None, alias="refreshToken")

    @field_validator("refresh_token")
    @classmethod
    def check_not_blank(cls, value: str | None) -> str | None:
        if value is not None and not value.strip():
            raise ValueError("refreshToken cannot be empty")
        return value


class TokenPairResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    access_token: str = PydanticField(alias="accessToken")
    refresh_token: str = PydanticField(alias="refreshToken")


class MessageResponse(BaseModel):
    message: str
