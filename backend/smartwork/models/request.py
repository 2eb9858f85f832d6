from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
)
from sqlalchemy.orm import declared_attr
from smartwork.core.database import Base

PENDING = "Pending"
APPROVED = "Approved"
REJECTED = "Rejected"


class RequestMixin:
    # ids come from the shared allocator, never from the database
    id = Column(Integer, primary_key=True, autoincrement=False)

    @declared_attr
    def employee_username(cls):
        return Column(
            String,
            ForeignKey("users.username", ondelete="CASCADE"),
            nullable=False,
            index=True,
        )

    # snapshot of the display name at creation time
    employee_name = Column(String, nullable=False)

    status = Column(String, nullable=False, default=PENDING)
    decision_by = Column(String, nullable=True)
    decision_at = Column(DateTime, nullable=True)


class Request(RequestMixin, Base):
    __tablename__ = "requests"

    __table_args__ = (
        CheckConstraint("status IN ('Pending', 'Approved', 'Rejected')", name="ck_requests_status"),
    )

    date = Column(Date, nullable=False, index=True)

    def when_label(self) -> str:
        return self.date.isoformat()


class RecurringRequest(RequestMixin, Base):
    __tablename__ = "recurring_requests"

    __table_args__ = (
        CheckConstraint("status IN ('Pending', 'Approved', 'Rejected')", name="ck_recurring_requests_status"),
        CheckConstraint("day_of_week >= 0 AND day_of_week <= 6", name="ck_day_of_week_range"),
    )

    # 0 = Sunday .. 6 = Saturday
    day_of_week = Column(Integer, nullable=False)
    day_name = Column(String, nullable=False)

    def when_label(self) -> str:
        return f"every {self.day_name}"
