import logging
import threading

from sqlalchemy import func, insert, select
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session

from smartwork.core.config import settings
from smartwork.core.errors import TransientInfraError, UnauthenticatedError
from smartwork.models.request import RecurringRequest, Request
from smartwork.models.user import User

logger = logging.getLogger(__name__)

# both ledgers draw from one id sequence
SHARED_ID_MODELS = (Request, RecurringRequest)


class IdAllocator:
    """
    Inserts ledger rows with ``max(id over both ledgers) + 1``.

    The read-max + insert runs on its own connection at SERIALIZABLE isolation,
    and a process-wide lock keeps threads in this process from racing each
    other. A conflict with another process (serialization failure or primary
    key collision) rolls back and retries; nothing is ever overwritten.

    The owner row is re-read inside the same transaction: a user deleted after
    the caller loaded it fails with ``unknown_user`` instead of leaving an
    orphaned ledger row.
    """

    def __init__(self, retries: int = 5):
        self._lock = threading.Lock()
        self.retries = max(1, retries)

    @staticmethod
    def current_max(conn) -> int:
        highest = 0
        for model in SHARED_ID_MODELS:
            value = conn.execute(select(func.max(model.id))).scalar()
            highest = max(highest, value or 0)
        return highest

    @staticmethod
    def owner_exists(conn, username) -> bool:
        return conn.execute(select(User.username).where(User.username == username)).first() is not None

    def insert(self, db: Session, model, values: dict) -> int:
        if model not in SHARED_ID_MODELS:
            raise ValueError(f"{model.__name__} does not use the shared id space")

        engine = db.get_bind()
        owner = values.get("employee_username")

        last_error = None
        with self._lock:
            for attempt in range(1, self.retries + 1):
                try:
                    with engine.connect().execution_options(isolation_level="SERIALIZABLE") as conn:
                        with conn.begin():
                            if not self.owner_exists(conn, owner):
                                raise UnauthenticatedError("User no longer exists", code="unknown_user")
                            next_id = self.current_max(conn) + 1
                            conn.execute(insert(model.__table__).values(id=next_id, **values))
                    return next_id
                except (IntegrityError, OperationalError) as exc:
                    logger.warning(
                        "Id allocation for %s conflicted (attempt %d/%d): %s",
                        model.__tablename__,
                        attempt,
                        self.retries,
                        exc.orig if exc.orig is not None else exc,
                    )
                    last_error = exc

        raise TransientInfraError(
            "Could not allocate a request id, try again",
            code="id_allocation_failed",
        ) from last_error


id_allocator = IdAllocator(retries=settings.id_allocation_retries)
