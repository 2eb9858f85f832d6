"""create users, requests and recurring_requests tables

Revision ID: 4e2a9c71d853
Revises:
Create Date: 2026-10-12 10:41:07.215493

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "4e2a9c71d853"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("username", sa.String(), primary_key=True),
        sa.Column("display_name", sa.String(), nullable=True),
        sa.Column("email", sa.String(), nullable=True),
        sa.Column("role", sa.String(), nullable=False, server_default="Employee"),
        sa.Column("theme", sa.String(), nullable=False, server_default="light"),
        sa.Column("password_hash", sa.String(), nullable=True),
        sa.Column("password", sa.String(), nullable=True),
        sa.Column("password_set_at", sa.DateTime(), nullable=True),
        sa.Column("force_password_change", sa.Boolean(), nullable=False, server_default=sa.true()),
    )
    op.create_index(op.f("ix_users_email"), "users", ["email"], unique=False)

    # ids are assigned by the application from one sequence shared by both tables
    op.create_table(
        "requests",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=False),
        sa.Column(
            "employee_username",
            sa.String(),
            sa.ForeignKey("users.username", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("employee_name", sa.String(), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("status", sa.String(), nullable=False, server_default="Pending"),
        sa.Column("decision_by", sa.String(), nullable=True),
        sa.Column("decision_at", sa.DateTime(), nullable=True),
        sa.CheckConstraint("status IN ('Pending', 'Approved', 'Rejected')", name="ck_requests_status"),
    )
    op.create_index(op.f("ix_requests_employee_username"), "requests", ["employee_username"], unique=False)
    op.create_index(op.f("ix_requests_date"), "requests", ["date"], unique=False)

    op.create_table(
        "recurring_requests",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=False),
        sa.Column(
            "employee_username",
            sa.String(),
            sa.ForeignKey("users.username", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("employee_name", sa.String(), nullable=False),
        sa.Column("day_of_week", sa.Integer(), nullable=False),
        sa.Column("day_name", sa.String(), nullable=False),
        sa.Column("status", sa.String(), nullable=False, server_default="Pending"),
        sa.Column("decision_by", sa.String(), nullable=True),
        sa.Column("decision_at", sa.DateTime(), nullable=True),
        sa.CheckConstraint("status IN ('Pending', 'Approved', 'Rejected')", name="ck_recurring_requests_status"),
        sa.CheckConstraint("day_of_week >= 0 AND day_of_week <= 6", name="ck_day_of_week_range"),
    )
    op.create_index(
        op.f("ix_recurring_requests_employee_username"),
        "recurring_requests",
        ["employee_username"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index(op.f("ix_recurring_requests_employee_username"), table_name="recurring_requests")
    op.drop_table("recurring_requests")
    op.drop_index(op.f("ix_requests_date"), table_name="requests")
    op.drop_index(op.f("ix_requests_employee_username"), table_name="requests")
    op.drop_table("requests")
    op.drop_index(op.f("ix_users_email"), table_name="users")
    op.drop_table("users")
