import re
from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field as PydanticField, field_validator
from sqlmodel import Field, SQLModel

from todo_api.core.clock import as_utc

EMAIL_MAX_LENGTH = 255
PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_LENGTH = 128

EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9._+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")


class User(SQLModel, table=True):
    __tablename__ = "users"
    id: int | None = Field(default=None, primary_key=True)
    email: str = Field(index=True, sa_column_kwargs={"unique": True})
    password_hash: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class UserRead(SQLModel):
    id: int
    email: str
    created_at: datetime

    @field_validator("created_at")
    @classmethod
    def check_created_at_utc(cls, value: datetime) -> datetime:
        return as_utc(value)


def normalize_email(value: str) -> str:
    email = value.strip().lower()
    if not email:
        raise ValueError("Email cannot be empty")
    if len(email) > EMAIL_MAX_LENGTH:
        raise ValueError(f"Email must be {EMAIL_MAX_LENGTH} characters or less")
    if not EMAIL_PATTERN.match(email):
        raise ValueError("Invalid email format")
    local_part = email.split("@")[0]
    if local_part.startswith(".") or local_part.endswith(".") or ".." in local_part:
        raise ValueError("Invalid email format")
    return email


class UserLogin(BaseModel):
    model_config = ConfigDict(extra="forbid")

    email: str
    password: str

    @field_validator("email")
    @classmethod
    def check_email(cls, value: str) -> str:
        return normalize_email(value)

    @field_validator("password")
    @classmethod
    def check_password_present(cls, value: str) -> str:
        if not value:
            raise ValueError("Password cannot be empty")
        return value


class UserRegister(UserLogin):

    @field_validator("password")
    @classmethod
    def check_password_strength(cls, value: str) -> str:
        if not value:
            raise ValueError("Password cannot be empty")
        if len(value) < PASSWORD_MIN_LENGTH:
            raise ValueError(f"Password must be at least {PASSWORD_MIN_LENGTH} characters long")
        if len(value) > PASSWORD_MAX_LENGTH:
            raise ValueError(f"Password must be {PASSWORD_MAX_LENGTH} characters or less")
        if not re.search(r"[a-zA-Z]", value):
            raise ValueError("Password must contain at least one letter")
        if not re.search(r"\d", value):
            raise ValueError("Password must contain at least one number")
        return value


class AuthResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user: UserRead
    access_token: str = PydanticField(alias="accessToken")
    refresh_token: str = PydanticField(alias="refreshToken")
