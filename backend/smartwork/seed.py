# backend/smartwork/seed.py

import logging
from typing import Optional

from sqlalchemy.orm import Session

from smartwork.core.clock import utcnow
from smartwork.core.config import Settings, settings as default_settings
from smartwork.core.roles import ADMIN
from smartwork.core.security import hash_password
from smartwork.models.user import User

logger = logging.getLogger(__name__)


def seed_admin_if_empty(db: Session, settings: Settings = default_settings) -> Optional[User]:
    """
    First boot only: with no users at all, create one Admin so somebody can log
    in. Needs BOOTSTRAP_ADMIN_PASSWORD; the account must rotate it on first login.
    """
    if db.query(User).count() > 0:
        return None

    if not settings.bootstrap_admin_password:
        logger.warning("Users table is empty and BOOTSTRAP_ADMIN_PASSWORD is not set, no admin seeded")
        return None

    admin = User(
        username=settings.bootstrap_admin_username,
        display_name="Administrator",
        email=settings.bootstrap_admin_email,
        role=ADMIN,
        theme="light",
        password_hash=hash_password(settings.bootstrap_admin_password),
        password_set_at=utcnow(),
        force_password_change=True,
    )

    db.add(admin)
    db.commit()
    db.refresh(admin)

    logger.info("Seeded admin account %s", admin.username)
    return admin


if __name__ == "__main__":
    from smartwork.core.database import Base, SessionLocal, engine
    import smartwork.models.request  # noqa: F401  (registers the ledger tables)

    logging.basicConfig(level=logging.INFO)

    # make sure tables exist
    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        created = seed_admin_if_empty(db)
    finally:
        db.close()

    if created:
        print(f"Created admin: {created.username} (password change required on first login)")
    else:
        print("Nothing to seed")
