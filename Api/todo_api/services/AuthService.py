from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from todo_api.core.errors import AuthenticationFailed, Conflict
from todo_api.core.logging import get_logger
from todo_api.core.security import PasswordHasher, TokenService
from todo_api.core.settings import Settings
from todo_api.models.RefreshToken import TokenPairResponse
from todo_api.models.User import AuthResponse, User, UserLogin, UserRead, UserRegister
from todo_api.services.RefreshTokenStore import RefreshTokenExpired, RefreshTokenNotFound, RefreshTokenStore
from todo_api.services.RevocationStore import RevocationStore

logger = get_logger(__name__)

INVALID_CREDENTIALS = "Invalid credentials"
INVALID_REFRESH_TOKEN = "Invalid refresh token"
EXPIRED_REFRESH_TOKEN = "Refresh token expired"


class AuthService:

    def __init__(self, settings: Settings, hasher: PasswordHasher, tokens: TokenService):
        self.settings = settings
        self.hasher = hasher
        self.tokens = tokens

    def _refresh_store(self, session: Session) -> RefreshTokenStore:
        return RefreshTokenStore(session, self.settings)

    def _session_for(self, session: Session, user: User) -> AuthResponse:
        access_token = self.tokens.issue_access(user.id, user.email)
        refresh = self._refresh_store(session).issue(user.id)
        return AuthResponse(
            user=UserRead.model_validate(user),
            access_token=access_token,
            refresh_token=refresh.token,
        )

    def register(self, session: Session, user_register: UserRegister) -> AuthResponse:
        if session.exec(select(User.id).where(User.email == user_register.email)).first() is not None:
            raise Conflict("Email already exists")

        user = User(email=user_register.email, password_hash=self.hasher.hash(user_register.password))
        session.add(user)
        try:
            session.commit()
        except IntegrityError:
            session.rollback()
            raise Conflict("Email already exists")
        session.refresh(user)

        logger.info("user_registered", user_id=user.id)
        return self._session_for(session, user)

    def login(self, session: Session, user_login: UserLogin) -> AuthResponse:
        user = session.exec(select(User).where(User.email == user_login.email)).first()

        # Always pay for one hash verification so an unknown email and a
        # wrong password take the same time to reject.
        stored_hash = user.password_hash if user else self.hasher.dummy_hash
        password_ok = self.hasher.verify(user_login.password, stored_hash)

        if user is None or not password_ok:
            logger.info("login_failed", email=user_login.email)
            raise AuthenticationFailed(INVALID_CREDENTIALS)

        logger.info("login_succeeded", user_id=user.id)
        return self._session_for(session, user)

    def refresh(self, session: Session, refresh_token: str) -> TokenPairResponse:
        store = self._refresh_store(session)
        try:
            user_id = store.consume(refresh_token)
        except RefreshTokenExpired:
            raise AuthenticationFailed(EXPIRED_REFRESH_TOKEN)
        except RefreshTokenNotFound:
            raise AuthenticationFailed(INVALID_REFRESH_TOKEN)

        user = session.get(User, user_id)
        if user is None:
            logger.warning("refresh_token_without_user", user_id=user_id)
            raise AuthenticationFailed(INVALID_REFRESH_TOKEN)

        try:
            rotated = store.rotate(refresh_token, user.id)
        except RefreshTokenNotFound:
            # Lost a race against a concurrent refresh with the same token
            raise AuthenticationFailed(INVALID_REFRESH_TOKEN)

        return TokenPairResponse(
            access_token=self.tokens.issue_access(user.id, user.email),
            refresh_token=rotated.token,
        )

    def logout(self, session: Session, user_id: int, access_token: str, refresh_token: str | None = None) -> None:
        revocations = RevocationStore(session)
        revocations.purge_expired()
        revocations.revoke(access_token, self.tokens.read_expiry(access_token))

        refresh_deleted = False
        if refresh_token:
            refresh_deleted = self._refresh_store(session).revoke(refresh_token, user_id)

        logger.info("user_logged_out", user_id=user_id, refresh_token_deleted=refresh_deleted)
