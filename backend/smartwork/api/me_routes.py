# backend/smartwork/api/me_routes.py

from typing import Literal, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from smartwork.api.deps_auth import get_current_user
from smartwork.core.database import get_db
from smartwork.core.roles import normalize_role
from smartwork.models.user import User
from smartwork.services import auth as auth_service
from smartwork.services import users as user_service

router = APIRouter()


class MeOut(BaseModel):
    username: str
    display_name: Optional[str] = None
    role: str
    email: Optional[str] = None
    theme: str
    force_password_change: bool


class ThemeIn(BaseModel):
    theme: Literal["light", "dark"]


class ThemeOut(BaseModel):
    theme: str


class ChangePasswordIn(BaseModel):
    old_password: Optional[str] = None
    new_password: str = ""


@router.get("", response_model=MeOut)
def me(current_user: User = Depends(get_current_user)):
    return MeOut(
        username=current_user.username,
        display_name=current_user.display_name,
        role=normalize_role(current_user.role),
        email=current_user.email,
        theme=current_user.theme or "light",
        force_password_change=bool(current_user.force_password_change),
    )


@router.post("/theme", response_model=ThemeOut)
def update_theme(
    payload: ThemeIn,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    user = user_service.update_theme(db, current_user, payload.theme)
    return ThemeOut(theme=user.theme)


@router.post("/change-password")
def change_password(
    payload: ChangePasswordIn,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    auth_service.change_password(db, current_user, payload.old_password, payload.new_password)
    return {"message": "Password changed"}
