"""User profile reads."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from archetypeos import oauth2
from archetypeos.core.database import get_db
from archetypeos.modules.users.models import User
from archetypeos.modules.users.schemas import UserOut
from archetypeos.modules.users.service import UserService

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("/me", response_model=UserOut)
def read_me(current_user: User = Depends(oauth2.get_current_user)):
    return current_user


@router.get("/{user_id}", response_model=UserOut)
def read_user(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(oauth2.get_current_user),
):
    """Own profile, or one of the caller's supervised users (admins: anyone)."""
    return UserService(db).get_user(current_user, user_id)
