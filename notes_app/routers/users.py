# notes_app/routers/users.py
from fastapi import APIRouter, Depends

from notes_app.core.auth import get_current_user
from notes_app.models.user import User
from notes_app.schemas.user import UserOut

router = APIRouter(prefix="/api/users", tags=["users"])


@router.get("/me", response_model=UserOut)
def get_me(current: User = Depends(get_current_user)):
    return current
