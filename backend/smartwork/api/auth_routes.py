# backend/smartwork/api/auth_routes.py

from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.security import OAuth2PasswordRequestForm
from pydantic import BaseModel
from sqlalchemy.orm import Session

from smartwork.api.deps_auth import get_notifier, get_sessions
from smartwork.core.database import get_db
from smartwork.core.roles import normalize_role
from smartwork.core.sessions import SessionRegistry
from smartwork.models.user import User
from smartwork.services import auth as auth_service
from smartwork.services.notifications import Notifier

router = APIRouter()


class LoginIn(BaseModel):
    username: str = ""
    password: str = ""


class LoginOut(BaseModel):
    token: str
    username: str
    role: str
    email: Optional[str] = None
    theme: str
    force_password_change: bool


class TokenOut(LoginOut):
    access_token: str
    token_type: str = "bearer"


class ForgotPasswordIn(BaseModel):
    email: str = ""


class MessageOut(BaseModel):
    message: str


def _login_out(token: str, user: User) -> dict:
    return {
        "token": token,
        "username": user.username,
        "role": normalize_role(user.role),
        "email": user.email,
        "theme": user.theme or "light",
        "force_password_change": bool(user.force_password_change),
    }


# JSON login used by the frontend
@router.post("/login", response_model=LoginOut)
def login(
    payload: LoginIn,
    db: Session = Depends(get_db),
    sessions: SessionRegistry = Depends(get_sessions),
):
    token, user = auth_service.login(db, sessions, payload.username, payload.password)
    return LoginOut(**_login_out(token, user))


# OAuth2 form endpoint (Swagger Authorize uses this)
@router.post("/token", response_model=TokenOut)
def token(
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: Session = Depends(get_db),
    sessions: SessionRegistry = Depends(get_sessions),
):
    token, user = auth_service.login(db, sessions, form_data.username or "", form_data.password or "")
    return TokenOut(access_token=token, **_login_out(token, user))


@router.post("/forgot-password", response_model=MessageOut)
def forgot_password(
    payload: ForgotPasswordIn,
    db: Session = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
):
    auth_service.forgot_password(db, payload.email, notifier)
    return MessageOut(message="Temporary password sent")
