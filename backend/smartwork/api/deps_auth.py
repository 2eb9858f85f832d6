# backend/smartwork/api/deps_auth.py

from typing import Optional

from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from smartwork.core.database import get_db
from smartwork.core.errors import ForbiddenError, UnauthenticatedError
from smartwork.core.roles import is_admin
from smartwork.core.sessions import SessionRegistry
from smartwork.models.user import User
from smartwork.services.notifications import Notifier

# Parses "Authorization: Bearer <token>"; tokenUrl is only for the Swagger
# "Authorize" flow. auto_error=False so a missing header goes through our
# own error taxonomy.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token", auto_error=False)


def get_sessions(request: Request) -> SessionRegistry:
    return request.app.state.sessions


def get_notifier(request: Request) -> Notifier:
    return request.app.state.notifier


def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
    sessions: SessionRegistry = Depends(get_sessions),
) -> User:
    username = sessions.resolve(token)
    if not username:
        raise UnauthenticatedError()

    # fresh row every request, the session only remembers the username
    user = db.get(User, username)
    if not user:
        raise UnauthenticatedError()

    return user


def require_admin(user: User = Depends(get_current_user)) -> User:
    if not is_admin(user.role):
        raise ForbiddenError("Admin role required", code="admin_required")
    return user
