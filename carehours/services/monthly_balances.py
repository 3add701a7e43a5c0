from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from carehours.models import MonthlyBalance
from carehours.services.assignments import list_worker_active_assignments, unique_user_ids

logger = logging.getLogger("carehours.monthly_balances")

_BALANCE_FIELDS: tuple[str, ...] = (
    "assigned_hours",
    "scheduled_hours",
    "used_hours",
    "remaining_hours",
    "excess_hours",
    "balance",
    "status",
    "percentage",
    "message",
    "planning",
    "holiday_info",
)


def _find_balance(db: Session, *, user_id: int, worker_id: int, month: int, year: int) -> MonthlyBalance | None:
    return db.scalar(
        select(MonthlyBalance).where(
            MonthlyBalance.user_id == user_id,
            MonthlyBalance.worker_id == worker_id,
            MonthlyBalance.month == month,
            MonthlyBalance.year == year,
        )
    )


def _apply_values(row: MonthlyBalance, values: dict[str, Any]) -> None:
    for field_name in _BALANCE_FIELDS:
        if field_name in values:
            setattr(row, field_name, values[field_name])


def upsert_monthly_balance(
    db: Session,
    *,
    user_id: int,
    worker_id: int,
    month: int,
    year: int,
    values: dict[str, Any],
) -> MonthlyBalance:
    """Insert or overwrite the balance row of one worker/user pair for one month."""
    row = _find_balance(db, user_id=user_id, worker_id=worker_id, month=month, year=year)
    if row is None:
        row = MonthlyBalance(user_id=user_id, worker_id=worker_id, month=month, year=year)
        db.add(row)
    _apply_values(row, values)

    try:
        db.commit()
    except IntegrityError:
        # A concurrent request inserted the same key first; overwrite that row instead.
        db.rollback()
        logger.info(
            "monthly_balance_upsert_conflict",
            extra={"user_id": user_id, "worker_id": worker_id, "month": month, "year": year},
        )
        row = _find_balance(db, user_id=user_id, worker_id=worker_id, month=month, year=year)
        if row is None:
            raise
        _apply_values(row, values)
        db.commit()

    db.refresh(row)
    return row


def list_monthly_balances(
    db: Session,
    *,
    user_id: int | None = None,
    worker_id: int | None = None,
    year: int | None = None,
    month: int | None = None,
) -> list[MonthlyBalance]:
    stmt = select(MonthlyBalance).order_by(
        MonthlyBalance.year.desc(),
        MonthlyBalance.month.desc(),
        MonthlyBalance.user_id.asc(),
        MonthlyBalance.id.asc(),
    )
    if user_id is not None:
        stmt = stmt.where(MonthlyBalance.user_id == user_id)
    if year is not None:
        stmt = stmt.where(MonthlyBalance.year == year)
    if month is not None:
        stmt = stmt.where(MonthlyBalance.month == month)

    if worker_id is not None:
        # Balances are shown for every user the worker currently serves.
        user_ids = unique_user_ids(list_worker_active_assignments(db, worker_id))
        if not user_ids:
            return []
        stmt = stmt.where(MonthlyBalance.user_id.in_(user_ids))

    return list(db.scalars(stmt).all())


def list_worker_monthly_balances(db: Session, *, worker_id: int, year: int, month: int) -> list[MonthlyBalance]:
    return list(
        db.scalars(
            select(MonthlyBalance)
            .where(
                MonthlyBalance.worker_id == worker_id,
                MonthlyBalance.year == year,
                MonthlyBalance.month == month,
            )
            .order_by(MonthlyBalance.updated_at.desc(), MonthlyBalance.id.desc())
        ).all()
    )
