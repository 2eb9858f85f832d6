# backend/smartwork/api/user_routes.py

from typing import List, Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel
from sqlalchemy.orm import Session

from smartwork.api.deps_auth import get_notifier, require_admin
from smartwork.core.database import get_db
from smartwork.core.roles import normalize_role
from smartwork.models.user import User
from smartwork.services import users as user_service
from smartwork.services.notifications import Notifier

router = APIRouter()


# public shape: never carries password fields
class UserOut(BaseModel):
    username: str
    display_name: Optional[str] = None
    email: Optional[str] = None
    role: str

    class Config:
        from_attributes = True


class UserCreate(BaseModel):
    username: str = ""
    email: str = ""
    display_name: Optional[str] = None
    role: Optional[str] = None


def _user_out(user: User) -> UserOut:
    out = UserOut.model_validate(user)
    out.role = normalize_role(user.role)
    return out


@router.get("", response_model=List[UserOut])
def list_users(
    db: Session = Depends(get_db),
    _admin: User = Depends(require_admin),
):
    return [_user_out(u) for u in user_service.list_users(db)]


@router.post("", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def create_user(
    payload: UserCreate,
    db: Session = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
    _admin: User = Depends(require_admin),
):
    user = user_service.create_user(
        db,
        username=payload.username,
        email=payload.email,
        display_name=payload.display_name,
        role=payload.role,
        notifier=notifier,
    )
    return _user_out(user)


@router.delete("/{username}")
def delete_user(
    username: str,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    user_service.delete_user(db, admin.username, username)
    return {"message": "Deleted", "username": username}
