from sqlmodel import Field, SQLModel
from datetime import datetime, timezone

class RevokedToken(SQLModel, table=True):
    __tablename__ = "revoked_tokens"

    id: int | None = Field(default=None, primary_key=True)
    token: str = Field(index=True, unique=True)
    expires_at: datetime = Field(index=True)
    revoked_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
