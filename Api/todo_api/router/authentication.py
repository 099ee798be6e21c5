from fastapi import APIRouter, status

from todo_api.core.deps import AuthServiceDep, CurrentUser, SessionDep
from todo_api.models.RefreshToken import LogoutRequest, MessageResponse, RefreshRequest, TokenPairResponse
from todo_api.models.User import AuthResponse, UserLogin, UserRegister

router = APIRouter()


@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
)
def register(user_register: UserRegister, session: SessionDep, auth: AuthServiceDep):
    return auth.register(session=session, user_register=user_register)


@router.post("/login", response_model=AuthResponse)
def login(user_login: UserLogin, session: SessionDep, auth: AuthServiceDep):
    return auth.login(session=session, user_login=user_login)


@router.post("/refresh", response_model=TokenPairResponse)
def refresh(refresh_request: RefreshRequest, session: SessionDep, auth: AuthServiceDep):
    return auth.refresh(session=session, refresh_token=refresh_request.refresh_token)


@router.post("/logout", response_model=MessageResponse)
def logout(user: CurrentUser, session: SessionDep, auth: AuthServiceDep, logout_request: LogoutRequest | None = None):
    refresh_token = logout_request.refresh_token if logout_request else None
    auth.logout(session=session, user_id=user.user_id, access_token=user.token, refresh_token=refresh_token)
    return MessageResponse(message="Logged out successfully")
