# backend/smartwork/services/auth.py

import logging
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from smartwork.core.clock import months_ago, utcnow
from smartwork.core.config import settings
from smartwork.core.errors import (
    ForbiddenError,
    InvalidInputError,
    NotFoundError,
    TransientInfraError,
    UnauthenticatedError,
)
from smartwork.core.security import (
    generate_temporary_password,
    hash_password,
    verify_password,
)
from smartwork.core.sessions import SessionRegistry
from smartwork.models.user import User

logger = logging.getLogger(__name__)


def _invalid_credentials() -> UnauthenticatedError:
    return UnauthenticatedError("Invalid username or password", code="invalid_credentials")


def _check_current_password(user: User, password: str) -> bool:
    if user.password_hash and user.password_hash.strip():
        return verify_password(password, user.password_hash)
    return bool(user.password) and user.password == password


def password_expired(user: User, now=None) -> bool:
    now = now or utcnow()
    if user.password_set_at is None:
        return True
    return user.password_set_at <= months_ago(now, settings.password_max_age_months)


def login(db: Session, sessions: SessionRegistry, username: str, password: str) -> tuple[str, User]:
    """
    Verify credentials and open a session.

    A legacy plaintext password is migrated to a hash in the same call that
    verified it, and the account is flagged for a one-time rotation. Returns
    the new bearer token and the user.
    """
    username = (username or "").strip()
    password = password or ""

    user = db.get(User, username)
    if not user:
        logger.info("Login failed for unknown user %s", username)
        raise _invalid_credentials()

    if user.password_hash and user.password_hash.strip():
        verified = verify_password(password, user.password_hash)
    elif user.password:
        verified = user.password == password
        if verified:
            user.password_hash = hash_password(password)
            user.password = None
            user.password_set_at = utcnow()
            user.force_password_change = True
            db.commit()
            logger.info("Migrated legacy plaintext password for %s", user.username)
    else:
        verified = False

    if not verified:
        logger.info("Login failed for %s", user.username)
        raise _invalid_credentials()

    if password_expired(user) and not user.force_password_change:
        user.force_password_change = True
        db.commit()
        logger.info("Password for %s is older than %d months, rotation required", user.username, settings.password_max_age_months)

    token = sessions.create(user.username)
    logger.info("User %s logged in", user.username)
    return token, user


def change_password(
    db: Session,
    user: User,
    old_password: Optional[str],
    new_password: Optional[str],
) -> None:
    if not new_password or not new_password.strip():
        raise InvalidInputError("New password is required")

    if not user.force_password_change:
        if not old_password or not old_password.strip():
            raise InvalidInputError("Current password is required")
        if not _check_current_password(user, old_password):
            raise ForbiddenError("Current password is incorrect", code="wrong_password")

    user.password_hash = hash_password(new_password)
    user.password_set_at = utcnow()
    user.force_password_change = False
    user.password = None
    db.commit()

    logger.info("Password changed for %s", user.username)


def forgot_password(db: Session, email: Optional[str], notifier) -> None:
    email = (email or "").strip()
    if not email:
        raise InvalidInputError("Email is required")

    user = (
        db.query(User)
        .filter(User.email.isnot(None), func.lower(User.email) == email.lower())
        .first()
    )
    if not user:
        raise NotFoundError("No user with that email")

    temp_password = generate_temporary_password(settings.temp_password_length)
    user.password_hash = hash_password(temp_password)
    user.password = None
    user.password_set_at = utcnow()
    user.force_password_change = True
    db.commit()

    logger.info("Temporary password issued for %s", user.username)

    # the reset stays in place even when the mail does not go out
    if not notifier.send_temporary_password(user.email, user.username, temp_password):
        raise TransientInfraError(
            "Failed to send temporary password email. Check SMTP settings/logs.",
            code="email_error",
        )
