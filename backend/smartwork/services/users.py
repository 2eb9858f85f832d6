# backend/smartwork/services/users.py

import logging
import threading
from typing import Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from smartwork.core.clock import utcnow
from smartwork.core.config import settings
from smartwork.core.errors import (
    ConflictError,
    InvalidInputError,
    InvariantViolationError,
    NotFoundError,
)
from smartwork.core.roles import ADMIN, ROLES, is_admin, normalize_role
from smartwork.core.security import generate_temporary_password, hash_password
from smartwork.models.request import RecurringRequest, Request
from smartwork.models.user import User

logger = logging.getLogger(__name__)

THEMES = ("light", "dark")

# admin count check + delete must not interleave within this process; across
# processes the admin rows are locked with SELECT ... FOR UPDATE
_admin_guard = threading.Lock()


def list_users(db: Session) -> list[User]:
    return db.query(User).order_by(User.username).all()


def lock_admin_rows(db: Session):
    # FOR UPDATE is dropped by the SQLite dialect, where the process lock is enough
    return (
        db.query(User.username)
        .filter(func.lower(User.role) == ADMIN.lower())
        .with_for_update()
    )


def create_user(
    db: Session,
    *,
    username: Optional[str],
    email: Optional[str],
    display_name: Optional[str] = None,
    role: Optional[str] = None,
    notifier,
) -> User:
    """
    Create an account with a generated temporary password.

    The password is only ever handed to the notifier (emailed to the new
    user); the account starts with forced rotation on.
    """
    username = (username or "").strip()
    email = (email or "").strip()
    if not username or not email:
        raise InvalidInputError("Username and email are required")

    role = normalize_role(role)
    if role not in ROLES:
        raise InvalidInputError(f"Unknown role '{role}'", code="invalid_role")

    if db.get(User, username):
        raise ConflictError("Username already exists", code="username_taken")

    temp_password = generate_temporary_password(settings.temp_password_length)
    user = User(
        username=username,
        display_name=(display_name or "").strip() or None,
        email=email,
        role=role,
        theme="light",
        password_hash=hash_password(temp_password),
        password_set_at=utcnow(),
        force_password_change=True,
    )

    db.add(user)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError("Username already exists", code="username_taken") from exc
    db.refresh(user)

    logger.info("User %s created with role %s", user.username, user.role)
    notifier.temporary_password_issued(user.email, user.username, temp_password)
    return user


def delete_user(db: Session, acting_username: str, target_username: str) -> None:
    with _admin_guard:
        target = db.get(User, target_username)
        if not target:
            raise NotFoundError("User not found")

        if target.username == acting_username:
            raise InvariantViolationError("Cannot delete yourself", code="cannot_delete_yourself")

        if is_admin(target.role) and len(lock_admin_rows(db).all()) <= 1:
            raise InvariantViolationError("Cannot delete the last admin", code="cannot_delete_last_admin")

        # cleared in the same transaction, without relying on the FK cascade
        for model in (Request, RecurringRequest):
            db.query(model).filter(model.employee_username == target.username).delete(synchronize_session=False)

        db.delete(target)
        db.commit()

    logger.info("User %s deleted by %s", target_username, acting_username)


def update_theme(db: Session, user: User, theme: str) -> User:
    if theme not in THEMES:
        raise InvalidInputError(f"Theme must be one of {', '.join(THEMES)}")

    user.theme = theme
    db.commit()
    db.refresh(user)
    return user
