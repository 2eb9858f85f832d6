# backend/smartwork/services/requests.py

import logging
from datetime import date, datetime, timezone
from typing import Optional, Union

from sqlalchemy.orm import Session

from smartwork.core.clock import utcnow
from smartwork.core.errors import ForbiddenError, InvalidInputError, NotFoundError
from smartwork.core.roles import is_admin
from smartwork.models.request import (
    APPROVED,
    PENDING,
    REJECTED,
    RecurringRequest,
    Request,
)
from smartwork.models.user import User
from smartwork.services.ids import IdAllocator, id_allocator

logger = logging.getLogger(__name__)

# index == day_of_week (0 = Sunday)
WEEKDAY_NAMES = ("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")

LedgerModel = Union[type[Request], type[RecurringRequest]]


def employee_name_for(user: User) -> str:
    return (user.display_name or "").strip() or user.username


def to_calendar_day(value: Union[date, datetime, None]) -> date:
    if value is None:
        raise InvalidInputError("date is required")
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date()
    return value


def _order_column(model: LedgerModel):
    return model.date if model is Request else model.day_of_week


# ---------- CREATE ----------

def create_request(
    db: Session,
    user: User,
    day: Union[date, datetime, None],
    notifier,
    allocator: IdAllocator = id_allocator,
) -> Request:
    new_id = allocator.insert(
        db,
        Request,
        {
            "employee_username": user.username,
            "employee_name": employee_name_for(user),
            "date": to_calendar_day(day),
            "status": PENDING,
        },
    )
    request = db.get(Request, new_id)
    logger.info("Request %d created by %s for %s", request.id, user.username, request.when_label())

    notifier.request_created(request.employee_name, request.when_label())
    return request


def create_recurring_request(
    db: Session,
    user: User,
    day_of_week: Optional[int],
    day_name: Optional[str],
    notifier,
    allocator: IdAllocator = id_allocator,
) -> RecurringRequest:
    if day_of_week is None or not 0 <= day_of_week <= 6:
        raise InvalidInputError("day_of_week must be between 0 (Sunday) and 6 (Saturday)")

    new_id = allocator.insert(
        db,
        RecurringRequest,
        {
            "employee_username": user.username,
            "employee_name": employee_name_for(user),
            "day_of_week": day_of_week,
            "day_name": (day_name or "").strip() or WEEKDAY_NAMES[day_of_week],
            "status": PENDING,
        },
    )
    recurring = db.get(RecurringRequest, new_id)
    logger.info("Recurring request %d created by %s for %s", recurring.id, user.username, recurring.when_label())

    notifier.request_created(recurring.employee_name, recurring.when_label())
    return recurring


# ---------- READ ----------

def list_all(db: Session, model: LedgerModel):
    return db.query(model).order_by(_order_column(model), model.id).all()


def list_mine(db: Session, model: LedgerModel, username: str):
    return (
        db.query(model)
        .filter(model.employee_username == username)
        .order_by(_order_column(model), model.id)
        .all()
    )


# ---------- DECIDE / DELETE ----------

def set_decision(
    db: Session,
    model: LedgerModel,
    entry_id: int,
    approved: bool,
    decided_by: str,
    notifier,
):
    entry = db.get(model, entry_id)
    if not entry:
        raise NotFoundError("Request not found")

    if entry.status != PENDING:
        raise InvalidInputError(f"Request is already {entry.status}", code="already_decided")

    employee_email = (
        db.query(User.email)
        .filter(User.username == entry.employee_username)
        .scalar()
    )

    entry.status = APPROVED if approved else REJECTED
    entry.decision_by = decided_by
    entry.decision_at = utcnow()
    db.commit()
    db.refresh(entry)

    logger.info("%s %d %s by %s", model.__name__, entry.id, entry.status.lower(), decided_by)

    if employee_email and employee_email.strip():
        notifier.decision_made(employee_email, entry.employee_name, entry.when_label(), approved, decided_by)
    else:
        logger.info("No email on file for %s, decision notice skipped", entry.employee_username)

    return entry


def delete_entry(db: Session, model: LedgerModel, user: User, entry_id: int) -> None:
    entry = db.get(model, entry_id)
    if not entry:
        raise NotFoundError("Request not found")

    if entry.employee_username != user.username and not is_admin(user.role):
        raise ForbiddenError("Only the owner or an admin can delete this request")

    db.delete(entry)
    db.commit()
    logger.info("%s %d deleted by %s", model.__name__, entry_id, user.username)
