from datetime import datetime, timezone

from sqlalchemy import delete
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from todo_api.core.logging import get_logger
from todo_api.models.RevokedToken import RevokedToken

logger = get_logger(__name__)


class RevocationStore:
    """Access tokens rejected before their natural expiry."""

    def __init__(self, session: Session):
        self.session = session

    def revoke(self, token: str, expires_at: datetime) -> None:
        self.session.add(RevokedToken(token=token, expires_at=expires_at))
        try:
            self.session.commit()
        except IntegrityError:
            # Another request revoked the same token first
            self.session.rollback()

    def is_revoked(self, token: str) -> bool:
        return self.session.exec(select(RevokedToken.id).where(RevokedToken.token == token)).first() is not None

    def purge_expired(self, now: datetime | None = None) -> int:
        cutoff = now or datetime.now(timezone.utc)
        result = self.session.execute(
            delete(RevokedToken)
            .where(RevokedToken.expires_at < cutoff)
            .execution_options(synchronize_session=False)
        )
        self.session.commit()
        if result.rowcount:
            logger.info("revoked_tokens_purged", count=result.rowcount)
        return result.rowcount
