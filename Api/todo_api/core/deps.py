from collections.abc import Generator
from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends, Header, Request
from sqlmodel import Session

from todo_api.core.errors import AuthenticationFailed
from todo_api.core.logging import get_logger
from todo_api.core.security import InvalidAccessToken, TokenService
from todo_api.services.AuthService import AuthService
from todo_api.services.RevocationStore import RevocationStore

logger = get_logger(__name__)

BEARER_PREFIX = "Bearer "
INVALID_TOKEN_MESSAGE = "Invalid or expired token"


def get_db(request: Request) -> Generator[Session, None, None]:
    with Session(request.app.state.engine) as session:
        yield session


def get_token_service(request: Request) -> TokenService:
    return request.app.state.token_service


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


SessionDep = Annotated[Session, Depends(get_db)]
TokenServiceDep = Annotated[TokenService, Depends(get_token_service)]
AuthServiceDep = Annotated[AuthService, Depends(get_auth_service)]


@dataclass(frozen=True)
class AuthenticatedUser:
    user_id: int
    email: str
    token: str


def authenticate(authorization: str | None, tokens: TokenService, revocations: RevocationStore) -> AuthenticatedUser:
    """
    Resolve a raw ``Authorization`` header to an identity.

    Every failure is an ``AuthenticationFailed``; a bad signature, an expired
    token and a revoked token share one message.
    """
    if not authorization:
        raise AuthenticationFailed("Authorization header required")
    if not authorization.startswith(BEARER_PREFIX):
        raise AuthenticationFailed("Invalid authorization format. Use: Bearer <token>")

    token = authorization[len(BEARER_PREFIX):]
    try:
        claims = tokens.verify(token)
    except InvalidAccessToken as exc:
        logger.info("access_token_rejected", reason=exc.reason)
        raise AuthenticationFailed(INVALID_TOKEN_MESSAGE) from None

    if revocations.is_revoked(token):
        logger.info("access_token_rejected", reason="revoked", user_id=claims.user_id)
        raise AuthenticationFailed(INVALID_TOKEN_MESSAGE)

    return AuthenticatedUser(user_id=claims.user_id, email=claims.email, token=token)


def get_current_user(
    session: SessionDep,
    tokens: TokenServiceDep,
    authorization: Annotated[str | None, Header()] = None,
) -> AuthenticatedUser:
    return authenticate(authorization, tokens, RevocationStore(session))


CurrentUser = Annotated[AuthenticatedUser, Depends(get_current_user)]
