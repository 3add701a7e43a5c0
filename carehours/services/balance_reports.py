from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import date, datetime
from functools import lru_cache, reduce
from zoneinfo import ZoneInfo

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from carehours.errors import ApiError, missing_parameters_error
from carehours.models import Assignment, MonthlyBalance, User, Worker
from carehours.schemas import (
    AssignmentBalanceItem,
    GenerateBalanceRequest,
    HolidayInfo,
    PlanningDay,
    UserBalanceReport,
    UserPlanningResponse,
    WorkerBalanceReport,
)
from carehours.settings import get_settings
from carehours.services.assignments import (
    list_user_active_assignments,
    list_worker_active_assignments,
    unique_user_ids,
)
from carehours.services.balance_calc import (
    BalanceComputation,
    balance_message,
    calculate_balance,
    round_hours,
)
from carehours.services.calendar_days import classify_month
from carehours.services.holidays import load_holiday_days
from carehours.services.hours import (
    HolidayBreakdown,
    HoursTotals,
    aggregate_hours,
    to_scheduled_assignment,
)
from carehours.services.monthly_balances import upsert_monthly_balance
from carehours.services.reassignments import plan_with_holiday_reassignment
from carehours.services.schedules import FestiveKeyPolicy, coerce_festive_key_policy

logger = logging.getLogger("carehours.balance_reports")

DEFAULT_SCHEDULE_TIMEZONE = "Europe/Madrid"


@lru_cache
def _schedule_timezone() -> ZoneInfo:
    raw_name = (get_settings().schedule_timezone or "").strip() or DEFAULT_SCHEDULE_TIMEZONE
    try:
        return ZoneInfo(raw_name)
    except Exception:
        logger.warning("schedule_timezone_invalid", extra={"schedule_timezone": raw_name})
        return ZoneInfo(DEFAULT_SCHEDULE_TIMEZONE)


def local_today() -> date:
    return datetime.now(_schedule_timezone()).date()


def configured_festive_key_policy() -> FestiveKeyPolicy:
    return coerce_festive_key_policy(get_settings().festive_key_policy)


@dataclass(frozen=True)
class UserBalanceComputation:
    """Unrounded figures of one user, kept next to the presented report for folding."""

    monthly_hours: float
    totals: HoursTotals
    balance: BalanceComputation
    worker_assigned_hours: float
    worker_used_hours: float
    report: UserBalanceReport


@dataclass(frozen=True)
class _WorkerFold:
    monthly_hours: float = 0.0
    assigned_hours: float = 0.0
    used_hours: float = 0.0
    worker_assigned_hours: float = 0.0
    worker_used_hours: float = 0.0


def _fold_user(acc: _WorkerFold, item: UserBalanceComputation) -> _WorkerFold:
    return _WorkerFold(
        monthly_hours=acc.monthly_hours + item.monthly_hours,
        assigned_hours=acc.assigned_hours + item.totals.assigned_hours,
        used_hours=acc.used_hours + item.totals.used_hours,
        worker_assigned_hours=acc.worker_assigned_hours + item.worker_assigned_hours,
        worker_used_hours=acc.worker_used_hours + item.worker_used_hours,
    )


def _holiday_info(breakdown: HolidayBreakdown) -> HolidayInfo:
    return HolidayInfo(
        working_days=breakdown.working_days,
        working_hours=round_hours(breakdown.working_hours),
        total_holidays=breakdown.total_holidays,
        holiday_hours=round_hours(breakdown.holiday_hours),
    )


def _assignment_items(assignments: Sequence[Assignment], totals: HoursTotals) -> list[AssignmentBalanceItem]:
    by_id = {item.assignment_id: item for item in totals.assignments}
    items: list[AssignmentBalanceItem] = []
    for assignment in assignments:
        hours = by_id.get(assignment.id)
        worker = assignment.worker
        user = assignment.user
        items.append(
            AssignmentBalanceItem(
                assignment_id=assignment.id,
                worker_id=assignment.worker_id,
                worker_name=worker.display_name if worker is not None else None,
                user_id=assignment.user_id,
                user_name=user.display_name if user is not None else None,
                status=getattr(assignment.status, "value", assignment.status),
                assignment_type=getattr(assignment.assignment_type, "value", assignment.assignment_type),
                assigned_hours=round_hours(hours.assigned_hours) if hours else 0.0,
                used_hours=round_hours(hours.used_hours) if hours else 0.0,
            )
        )
    return items


def compute_user_balance(
    *,
    user: User,
    assignments: Sequence[Assignment],
    year: int,
    month: int,
    holiday_days: set[int],
    today: date,
    policy: FestiveKeyPolicy,
    worker_id: int | None = None,
    monthly_hours: float | None = None,
) -> UserBalanceComputation:
    """Reconcile one user's contracted hours against ``assignments`` for a month.

    When ``worker_id`` is given the listed assignments are narrowed to that
    worker and the worker's own share is reported next to the user totals.
    """
    contracted = float(user.monthly_hours or 0) if monthly_hours is None else float(monthly_hours)
    totals = aggregate_hours(
        (to_scheduled_assignment(item) for item in assignments),
        year=year,
        month=month,
        holiday_days=holiday_days,
        today=today,
        policy=policy,
    )
    balance = calculate_balance(contracted, totals.used_hours)

    listed = list(assignments)
    worker_assigned = worker_used = 0.0
    if worker_id is not None:
        worker_assigned, worker_used = totals.for_worker(worker_id)
        listed = [item for item in assignments if item.worker_id == worker_id]

    report = UserBalanceReport(
        entity_id=user.id,
        entity_name=user.name,
        user_surname=user.surname,
        user_address=user.address,
        user_phone=user.phone,
        month=month,
        year=year,
        monthly_hours=round_hours(contracted),
        assigned_hours=round_hours(totals.assigned_hours),
        used_hours=round_hours(totals.used_hours),
        remaining_hours=round_hours(balance.remaining_hours),
        excess_hours=round_hours(balance.excess_hours),
        status=balance.status,
        percentage=balance.percentage,
        holiday_info=_holiday_info(totals.holiday_info),
        assignments=_assignment_items(listed, totals),
        worker_assigned_hours=round_hours(worker_assigned) if worker_id is not None else None,
        worker_used_hours=round_hours(worker_used) if worker_id is not None else None,
    )
    return UserBalanceComputation(
        monthly_hours=contracted,
        totals=totals,
        balance=balance,
        worker_assigned_hours=worker_assigned,
        worker_used_hours=worker_used,
        report=report,
    )


def build_user_report(
    *,
    user: User,
    assignments: Sequence[Assignment],
    year: int,
    month: int,
    holiday_days: set[int],
    today: date,
    policy: FestiveKeyPolicy,
    monthly_hours: float | None = None,
) -> UserBalanceReport:
    return compute_user_balance(
        user=user,
        assignments=assignments,
        year=year,
        month=month,
        holiday_days=holiday_days,
        today=today,
        policy=policy,
        monthly_hours=monthly_hours,
    ).report


def _resolve_user(user_id: int, *candidates: Sequence[Assignment]) -> User | None:
    for assignments in candidates:
        for assignment in assignments:
            if assignment.user_id == user_id and assignment.user is not None:
                return assignment.user
    return None


def build_worker_report(
    *,
    worker: Worker,
    worker_assignments: Sequence[Assignment],
    load_user_assignments: Callable[[int], Sequence[Assignment]],
    year: int,
    month: int,
    holiday_days: set[int],
    today: date,
    policy: FestiveKeyPolicy,
) -> WorkerBalanceReport:
    """Build the per-user balances of every user ``worker`` serves.

    Each user is reconciled over all of their active assignments, whichever
    worker holds them. Users whose assignments cannot be read are logged and
    skipped so the rest of the report is still returned.
    """
    computations: list[UserBalanceComputation] = []
    skipped: list[int] = []

    for user_id in unique_user_ids(list(worker_assignments)):
        try:
            user_assignments = list(load_user_assignments(user_id))
        except SQLAlchemyError:
            logger.warning(
                "user_balance_skipped",
                exc_info=True,
                extra={"worker_id": worker.id, "user_id": user_id, "month": month, "year": year},
            )
            skipped.append(user_id)
            continue

        user = _resolve_user(user_id, user_assignments, worker_assignments)
        if user is None:
            logger.warning(
                "user_balance_missing_user",
                extra={"worker_id": worker.id, "user_id": user_id},
            )
            skipped.append(user_id)
            continue

        computations.append(
            compute_user_balance(
                user=user,
                assignments=user_assignments,
                year=year,
                month=month,
                holiday_days=holiday_days,
                today=today,
                policy=policy,
                worker_id=worker.id,
            )
        )

    folded = reduce(_fold_user, computations, _WorkerFold())
    overall = calculate_balance(folded.monthly_hours, folded.used_hours)

    return WorkerBalanceReport(
        worker_id=worker.id,
        worker_name=worker.display_name,
        month=month,
        year=year,
        user_balances=[item.report for item in computations],
        total_monthly_hours=round_hours(folded.monthly_hours),
        total_assigned_hours=round_hours(folded.assigned_hours),
        total_used_hours=round_hours(folded.used_hours),
        total_remaining_hours=round_hours(overall.remaining_hours),
        total_excess_hours=round_hours(overall.excess_hours),
        total_worker_assigned_hours=round_hours(folded.worker_assigned_hours),
        total_worker_used_hours=round_hours(folded.worker_used_hours),
        overall_status=overall.status,
        overall_percentage=overall.percentage,
        skipped_user_ids=skipped,
    )


@dataclass(frozen=True)
class PlanningBalance:
    assigned_hours: float
    scheduled_hours: float
    used_hours: float
    balance: float
    computation: BalanceComputation
    message: str
    holiday_info: HolidayInfo
    planning: list[PlanningDay]

    def to_values(self) -> dict[str, object]:
        return {
            "assigned_hours": round_hours(self.assigned_hours),
            "scheduled_hours": round_hours(self.scheduled_hours),
            "used_hours": round_hours(self.used_hours),
            "remaining_hours": round_hours(self.computation.remaining_hours),
            "excess_hours": round_hours(self.computation.excess_hours),
            # Signed: positive means contracted hours left unscheduled.
            "balance": round(self.balance, 2),
            "status": self.computation.status,
            "percentage": self.computation.percentage,
            "message": self.message,
            "planning": [item.model_dump(mode="json", by_alias=True, exclude_none=True) for item in self.planning],
            "holiday_info": self.holiday_info.model_dump(by_alias=True),
        }


def build_planning_balance(
    planning: Sequence[PlanningDay],
    assigned_hours: float,
    today: date | None = None,
) -> PlanningBalance:
    """Reconcile an explicit per-day planning against the contracted hours.

    Status and remaining hours compare the contract with the whole planning.
    ``used_hours`` only counts planning days on or before ``today``; without a
    reference date every day counts.
    """
    scheduled_hours = sum(max(0.0, item.hours) for item in planning)
    used_hours = sum(max(0.0, item.hours) for item in planning if today is None or item.date <= today)
    holiday_days = [item for item in planning if item.is_holiday]
    working_days = [item for item in planning if not item.is_holiday]

    computation = calculate_balance(assigned_hours, scheduled_hours)
    balance = float(assigned_hours) - scheduled_hours
    return PlanningBalance(
        assigned_hours=float(assigned_hours),
        scheduled_hours=scheduled_hours,
        used_hours=used_hours,
        balance=balance,
        computation=computation,
        message=balance_message(computation.status, balance),
        holiday_info=HolidayInfo(
            working_days=len(working_days),
            working_hours=round_hours(sum(item.hours for item in working_days)),
            total_holidays=len(holiday_days),
            holiday_hours=round_hours(sum(item.hours for item in holiday_days)),
        ),
        planning=list(planning),
    )


def _require_fields(payload: GenerateBalanceRequest) -> None:
    missing = [
        name
        for name in ("planning", "assigned_hours", "user_id", "worker_id", "month", "year")
        if getattr(payload, name) is None
    ]
    if missing:
        raise missing_parameters_error(missing)


def generate_planning_balance(
    db: Session,
    payload: GenerateBalanceRequest,
    today: date | None = None,
) -> MonthlyBalance:
    _require_fields(payload)
    planning_balance = build_planning_balance(
        payload.planning,  # type: ignore[arg-type]
        payload.assigned_hours,  # type: ignore[arg-type]
        today or local_today(),
    )
    return upsert_monthly_balance(
        db,
        user_id=payload.user_id,  # type: ignore[arg-type]
        worker_id=payload.worker_id,  # type: ignore[arg-type]
        month=payload.month,  # type: ignore[arg-type]
        year=payload.year,  # type: ignore[arg-type]
        values=planning_balance.to_values(),
    )


def _get_user(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise ApiError(status_code=404, code="USER_NOT_FOUND", message="User not found.")
    return user


def get_worker(db: Session, worker_id: int) -> Worker:
    worker = db.get(Worker, worker_id)
    if worker is None:
        raise ApiError(status_code=404, code="WORKER_NOT_FOUND", message="Worker not found.")
    return worker


def pair_planning(
    assignments: Sequence[Assignment],
    *,
    year: int,
    month: int,
    holiday_days: set[int],
    policy: FestiveKeyPolicy,
) -> list[PlanningDay]:
    """Expand the weekly schedules of ``assignments`` into one planning entry per day."""
    totals = aggregate_hours(
        (to_scheduled_assignment(item) for item in assignments),
        year=year,
        month=month,
        holiday_days=holiday_days,
        today=date(year, month, 1),
        policy=policy,
    )
    return [
        PlanningDay(date=classification.day_date, hours=hours, is_holiday=classification.is_festive)
        for classification, hours in zip(classify_month(year, month, holiday_days), totals.day_hours)
    ]


def recalculate_pair_balance(
    db: Session,
    *,
    user_id: int,
    worker_id: int,
    year: int,
    month: int,
    today: date | None = None,
    policy: FestiveKeyPolicy | None = None,
) -> MonthlyBalance:
    """Recompute and store the balance of one worker/user pair from stored schedules."""
    user = _get_user(db, user_id)
    get_worker(db, worker_id)
    effective_policy = policy or configured_festive_key_policy()
    reference_date = today or local_today()

    holiday_days = load_holiday_days(db, year=year, month=month)
    pair_assignments = [
        item for item in list_user_active_assignments(db, user_id) if item.worker_id == worker_id
    ]
    computation = compute_user_balance(
        user=user,
        assignments=pair_assignments,
        year=year,
        month=month,
        holiday_days=holiday_days,
        today=reference_date,
        policy=effective_policy,
    )
    planning = pair_planning(
        pair_assignments,
        year=year,
        month=month,
        holiday_days=holiday_days,
        policy=effective_policy,
    )
    planning_balance = build_planning_balance(planning, computation.monthly_hours, reference_date)
    values = planning_balance.to_values()
    values.update(
        {
            "remaining_hours": round_hours(computation.balance.remaining_hours),
            "excess_hours": round_hours(computation.balance.excess_hours),
            "status": computation.balance.status,
            "percentage": computation.balance.percentage,
            "message": balance_message(
                computation.balance.status,
                computation.monthly_hours - computation.totals.used_hours,
            ),
        }
    )
    return upsert_monthly_balance(db, user_id=user_id, worker_id=worker_id, month=month, year=year, values=values)


def load_user_report(
    db: Session,
    *,
    user_id: int,
    year: int,
    month: int,
    today: date | None = None,
    policy: FestiveKeyPolicy | None = None,
    monthly_hours: float | None = None,
) -> UserBalanceReport:
    user = _get_user(db, user_id)
    return build_user_report(
        user=user,
        assignments=list_user_active_assignments(db, user_id),
        year=year,
        month=month,
        holiday_days=load_holiday_days(db, year=year, month=month),
        today=today or local_today(),
        policy=policy or configured_festive_key_policy(),
        monthly_hours=monthly_hours,
    )


def load_user_planning(
    db: Session,
    *,
    user_id: int,
    year: int,
    month: int,
    policy: FestiveKeyPolicy | None = None,
) -> UserPlanningResponse:
    _get_user(db, user_id)
    plan = plan_with_holiday_reassignment(
        list_user_active_assignments(db, user_id),
        year=year,
        month=month,
        holiday_days=load_holiday_days(db, year=year, month=month),
        policy=policy or configured_festive_key_policy(),
    )
    return UserPlanningResponse(
        user_id=user_id,
        month=month,
        year=year,
        planning=plan.planning,
        reassignments=[item.to_read() for item in plan.reassignments],
        total_reassigned_hours=round_hours(plan.total_reassigned_hours),
    )


def _user_assignments_loader(db: Session) -> Callable[[int], list[Assignment]]:
    def _load(user_id: int) -> list[Assignment]:
        try:
            return list_user_active_assignments(db, user_id)
        except SQLAlchemyError:
            # A failed read leaves the session unusable until rolled back.
            db.rollback()
            raise

    return _load


def load_worker_report(
    db: Session,
    *,
    worker: Worker,
    year: int,
    month: int,
    today: date | None = None,
    policy: FestiveKeyPolicy | None = None,
) -> WorkerBalanceReport:
    worker_assignments = list_worker_active_assignments(db, worker.id)
    if not worker_assignments:
        return WorkerBalanceReport(worker_id=worker.id, worker_name=worker.display_name, month=month, year=year)

    return build_worker_report(
        worker=worker,
        worker_assignments=worker_assignments,
        load_user_assignments=_user_assignments_loader(db),
        year=year,
        month=month,
        holiday_days=load_holiday_days(db, year=year, month=month),
        today=today or local_today(),
        policy=policy or configured_festive_key_policy(),
    )
