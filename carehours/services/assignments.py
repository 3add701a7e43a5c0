from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from carehours.models import Assignment, AssignmentStatus


def list_active_assignments(
    db: Session,
    *,
    worker_id: int | None = None,
    user_id: int | None = None,
) -> list[Assignment]:
    stmt = (
        select(Assignment)
        .options(selectinload(Assignment.user), selectinload(Assignment.worker))
        .where(Assignment.status == AssignmentStatus.ACTIVE)
        .order_by(Assignment.user_id.asc(), Assignment.worker_id.asc(), Assignment.id.asc())
    )
    if worker_id is not None:
        stmt = stmt.where(Assignment.worker_id == worker_id)
    if user_id is not None:
        stmt = stmt.where(Assignment.user_id == user_id)
    return list(db.scalars(stmt).all())


def list_worker_active_assignments(db: Session, worker_id: int) -> list[Assignment]:
    return list_active_assignments(db, worker_id=worker_id)


def list_user_active_assignments(db: Session, user_id: int) -> list[Assignment]:
    return list_active_assignments(db, user_id=user_id)


def unique_user_ids(assignments: list[Assignment]) -> list[int]:
    seen: set[int] = set()
    ordered: list[int] = []
    for assignment in assignments:
        if assignment.user_id in seen:
            continue
        seen.add(assignment.user_id)
        ordered.append(assignment.user_id)
    return ordered
