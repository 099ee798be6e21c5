import uuid
from datetime import datetime, timedelta, timezone

from sqlalchemy import delete
from sqlmodel import Session, select

from todo_api.core.clock import as_utc
from todo_api.core.logging import get_logger
from todo_api.core.settings import Settings
from todo_api.models.RefreshToken import RefreshToken

logger = get_logger(__name__)


class RefreshTokenNotFound(Exception):
    pass


class RefreshTokenExpired(Exception):
    pass


class RefreshTokenStore:
    """
    Durable, single-use refresh tokens.

    A token is redeemed by ``consume`` followed by ``rotate``. ``rotate`` removes
    the old row with one DELETE and checks how many rows it hit, so of two
    requests racing on the same token only one gets a replacement.
    """

    def __init__(self, session: Session, settings: Settings):
        self.session = session
        self.ttl = timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)

    def _new_row(self, user_id: int) -> RefreshToken:
        now = datetime.now(timezone.utc)
        row = RefreshToken(
            token=str(uuid.uuid4()),
            user_id=user_id,
            expires_at=now + self.ttl,
            created_at=now,
        )
        self.session.add(row)
        return row

    def issue(self, user_id: int) -> RefreshToken:
        row = self._new_row(user_id)
        self.session.commit()
        self.session.refresh(row)
        return row

    def consume(self, token: str) -> int:
        """Return the owning user id of a live token."""
        row = self.session.exec(select(RefreshToken).where(RefreshToken.token == token)).first()
        if row is None:
            raise RefreshTokenNotFound(token)

        if as_utc(row.expires_at) <= datetime.now(timezone.utc):
            user_id = row.user_id
            self.session.delete(row)
            self.session.commit()
            logger.info("refresh_token_expired_deleted", user_id=user_id)
            raise RefreshTokenExpired(token)

        return row.user_id

    def rotate(self, old_token: str, user_id: int) -> RefreshToken:
        result = self.session.execute(
            delete(RefreshToken).where(RefreshToken.token == old_token, RefreshToken.user_id == user_id)
        )
        if result.rowcount != 1:
            self.session.rollback()
            raise RefreshTokenNotFound(old_token)

        row = self._new_row(user_id)
        self.session.commit()
        self.session.refresh(row)
        logger.info("refresh_token_rotated", user_id=user_id)
        return row

    def revoke(self, token: str, user_id: int) -> bool:
        """Delete ``token`` only if it belongs to ``user_id``."""
        result = self.session.execute(
            delete(RefreshToken).where(RefreshToken.token == token, RefreshToken.user_id == user_id)
        )
        self.session.commit()
        return result.rowcount > 0

    def purge_expired(self, now: datetime | None = None) -> int:
        cutoff = now or datetime.now(timezone.utc)
        result = self.session.execute(
            delete(RefreshToken)
            .where(RefreshToken.expires_at <= cutoff)
            .execution_options(synchronize_session=False)
        )
        self.session.commit()
        if result.rowcount:
            logger.info("refresh_tokens_purged", count=result.rowcount)
        return result.rowcount
