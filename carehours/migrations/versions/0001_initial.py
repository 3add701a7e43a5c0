"""Initial care hours schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19 00:00:00
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "0001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

assignment_type = postgresql.ENUM(
    "laborables",
    "festivos",
    "flexible",
    name="assignment_type",
    create_type=False,
)
assignment_status = postgresql.ENUM(
    "active",
    "inactive",
    "suspended",
    "completed",
    name="assignment_status",
    create_type=False,
)
holiday_type = postgresql.ENUM(
    "local",
    "regional",
    "nacional",
    name="holiday_type",
    create_type=False,
)
balance_status = postgresql.ENUM(
    "perfect",
    "deficit",
    "excess",
    name="balance_status",
    create_type=False,
)
audit_actor_type = postgresql.ENUM(
    "ADMIN",
    "WORKER",
    "SYSTEM",
    name="audit_actor_type",
    create_type=False,
)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
    ]


def upgrade() -> None:
    bind = op.get_bind()
    assignment_type.create(bind, checkfirst=True)
    assignment_status.create(bind, checkfirst=True)
    holiday_type.create(bind, checkfirst=True)
    balance_status.create(bind, checkfirst=True)
    audit_actor_type.create(bind, checkfirst=True)

    op.create_table(
        "workers",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("surname", sa.String(length=255), nullable=True),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("phone", sa.String(length=50), nullable=True),
        sa.Column("password_hash", sa.String(length=255), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
    )
    op.create_index("ix_workers_email", "workers", ["email"], unique=True)

    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("surname", sa.String(length=255), nullable=True),
        sa.Column("address", sa.String(length=500), nullable=True),
        sa.Column("phone", sa.String(length=50), nullable=True),
        sa.Column("monthly_hours", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
    )

    op.create_table(
        "assignments",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("worker_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("assignment_type", assignment_type, nullable=False, server_default=sa.text("'laborables'")),
        sa.Column("status", assignment_status, nullable=False, server_default=sa.text("'active'")),
        sa.Column("start_date", sa.Date(), nullable=True),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.Column("weekly_hours", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("schedule", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["worker_id"], ["workers.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_assignments_worker_id", "assignments", ["worker_id"], unique=False)
    op.create_index("ix_assignments_user_id", "assignments", ["user_id"], unique=False)
    op.create_index("ix_assignments_status", "assignments", ["status"], unique=False)

    op.create_table(
        "holidays",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("type", holiday_type, nullable=False, server_default=sa.text("'local'")),
        sa.Column("region", sa.String(length=255), nullable=False, server_default=sa.text("'Catalunya'")),
        sa.Column("city", sa.String(length=255), nullable=False, server_default=sa.text("'Mataró'")),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        *_timestamps(),
    )
    op.create_index("ix_holidays_date", "holidays", ["date"], unique=False)

    op.create_table(
        "monthly_balances",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("worker_id", sa.Integer(), nullable=False),
        sa.Column("month", sa.Integer(), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("assigned_hours", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("scheduled_hours", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("used_hours", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("remaining_hours", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("excess_hours", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("balance", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("status", balance_status, nullable=False),
        sa.Column("percentage", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("message", sa.String(length=1000), nullable=True),
        sa.Column(
            "planning",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),
        sa.Column(
            "holiday_info",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        *_timestamps(),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["worker_id"], ["workers.id"], ondelete="CASCADE"),
        sa.UniqueConstraint(
            "user_id",
            "worker_id",
            "month",
            "year",
            name="uq_monthly_balances_user_worker_month_year",
        ),
    )
    op.create_index("ix_monthly_balances_user_id", "monthly_balances", ["user_id"], unique=False)
    op.create_index("ix_monthly_balances_worker_id", "monthly_balances", ["worker_id"], unique=False)

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column(
            "ts_utc",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.Column("actor_type", audit_actor_type, nullable=False),
        sa.Column("actor_id", sa.String(length=255), nullable=False),
        sa.Column("action", sa.String(length=255), nullable=False),
        sa.Column("entity_type", sa.String(length=255), nullable=True),
        sa.Column("entity_id", sa.String(length=255), nullable=True),
        sa.Column("ip", sa.String(length=128), nullable=True),
        sa.Column("user_agent", sa.String(length=1024), nullable=True),
        sa.Column("success", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column(
            "details",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
    )
    op.create_index("ix_audit_logs_ts_utc", "audit_logs", ["ts_utc"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_audit_logs_ts_utc", table_name="audit_logs")
    op.drop_table("audit_logs")
    op.drop_index("ix_monthly_balances_worker_id", table_name="monthly_balances")
    op.drop_index("ix_monthly_balances_user_id", table_name="monthly_balances")
    op.drop_table("monthly_balances")
    op.drop_index("ix_holidays_date", table_name="holidays")
    op.drop_table("holidays")
    op.drop_index("ix_assignments_status", table_name="assignments")
    op.drop_index("ix_assignments_user_id", table_name="assignments")
    op.drop_index("ix_assignments_worker_id", table_name="assignments")
    op.drop_table("assignments")
    op.drop_table("users")
    op.drop_index("ix_workers_email", table_name="workers")
    op.drop_table("workers")

    bind = op.get_bind()
    audit_actor_type.drop(bind, checkfirst=True)
    balance_status.drop(bind, checkfirst=True)
    holiday_type.drop(bind, checkfirst=True)
    assignment_status.drop(bind, checkfirst=True)
    assignment_type.drop(bind, checkfirst=True)
