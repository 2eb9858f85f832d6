# backend/smartwork/api/routes.py

import datetime as dt
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, field_validator
from sqlalchemy.orm import Session

from smartwork.api.deps_auth import get_current_user, get_notifier, require_admin
from smartwork.core.database import get_db
from smartwork.models.request import RecurringRequest as RecurringRequestModel
from smartwork.models.request import Request as RequestModel
from smartwork.models.user import User
from smartwork.services import requests as ledger
from smartwork.services.notifications import Notifier

router = APIRouter()

# ---------- SCHEMAS ----------


class RequestOut(BaseModel):
    id: int
    employee_username: str
    employee_name: str
    date: dt.date
    status: str
    decision_by: Optional[str] = None
    decision_at: Optional[dt.datetime] = None

    class Config:
        from_attributes = True


class RequestCreate(BaseModel):
    date: dt.date

    @field_validator("date", mode="before")
    @classmethod
    def _calendar_day(cls, v):
        # accept full ISO timestamps from the calendar widget, keep the UTC day
        if isinstance(v, str) and "T" in v:
            v = dt.datetime.fromisoformat(v.replace("Z", "+00:00"))
        if isinstance(v, dt.datetime):
            return ledger.to_calendar_day(v)
        return v


class RecurringRequestOut(BaseModel):
    id: int
    employee_username: str
    employee_name: str
    day_of_week: int
    day_name: str
    status: str
    decision_by: Optional[str] = None
    decision_at: Optional[dt.datetime] = None

    class Config:
        from_attributes = True


class RecurringRequestCreate(BaseModel):
    day_of_week: int
    day_name: Optional[str] = None


class MessageOut(BaseModel):
    message: str


# ---------- SINGLE-DATE REQUESTS ----------

@router.get("/requests", response_model=List[RequestOut])
def list_requests(
    db: Session = Depends(get_db),
    _admin: User = Depends(require_admin),
):
    return ledger.list_all(db, RequestModel)


@router.get("/requests/mine", response_model=List[RequestOut])
def list_my_requests(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return ledger.list_mine(db, RequestModel, user.username)


@router.post("/requests", response_model=RequestOut, status_code=status.HTTP_201_CREATED)
def create_request(
    payload: RequestCreate,
    db: Session = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
    user: User = Depends(get_current_user),
):
    return ledger.create_request(db, user, payload.date, notifier)


@router.post("/requests/{request_id}/approve", response_model=RequestOut)
def approve_request(
    request_id: int,
    db: Session = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
    admin: User = Depends(require_admin),
):
    return ledger.set_decision(db, RequestModel, request_id, True, admin.username, notifier)


@router.post("/requests/{request_id}/reject", response_model=RequestOut)
def reject_request(
    request_id: int,
    db: Session = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
    admin: User = Depends(require_admin),
):
    return ledger.set_decision(db, RequestModel, request_id, False, admin.username, notifier)


@router.delete("/requests/{request_id}", response_model=MessageOut)
def delete_request(
    request_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    ledger.delete_entry(db, RequestModel, user, request_id)
    return MessageOut(message="Deleted")


# ---------- RECURRING REQUESTS ----------

@router.get("/recurring-requests", response_model=List[RecurringRequestOut])
def list_recurring_requests(
    db: Session = Depends(get_db),
    _admin: User = Depends(require_admin),
):
    return ledger.list_all(db, RecurringRequestModel)


@router.get("/recurring-requests/mine", response_model=List[RecurringRequestOut])
def list_my_recurring_requests(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return ledger.list_mine(db, RecurringRequestModel, user.username)


@router.post("/recurring-requests", response_model=RecurringRequestOut, status_code=status.HTTP_201_CREATED)
def create_recurring_request(
    payload: RecurringRequestCreate,
    db: Session = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
    user: User = Depends(get_current_user),
):
    return ledger.create_recurring_request(db, user, payload.day_of_week, payload.day_name, notifier)


@router.post("/recurring-requests/{request_id}/approve", response_model=RecurringRequestOut)
def approve_recurring_request(
    request_id: int,
    db: Session = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
    admin: User = Depends(require_admin),
):
    return ledger.set_decision(db, RecurringRequestModel, request_id, True, admin.username, notifier)


@router.post("/recurring-requests/{request_id}/reject", response_model=RecurringRequestOut)
def reject_recurring_request(
    request_id: int,
    db: Session = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
    admin: User = Depends(require_admin),
):
    return ledger.set_decision(db, RecurringRequestModel, request_id, False, admin.username, notifier)


@router.delete("/recurring-requests/{request_id}", response_model=MessageOut)
def delete_recurring_request(
    request_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    ledger.delete_entry(db, RecurringRequestModel, user, request_id)
    return MessageOut(message="Deleted")
