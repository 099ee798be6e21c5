from fastapi import APIRouter, HTTPException

from todo_api.core.deps import SessionDep, CurrentUser
from todo_api.models.User import User, UserRead

router = APIRouter()


@router.get("", response_model=UserRead)
def get_user_info(current_user: CurrentUser, session: SessionDep):
    user = session.get(User, current_user.user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user
