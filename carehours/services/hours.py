from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import date

from carehours.models import Assignment
from carehours.services.calendar_days import classify_month
from carehours.services.schedules import (
    DEFAULT_FESTIVE_KEY_POLICY,
    FestiveKeyPolicy,
    WeeklySchedule,
    parse_schedule,
    resolve_day_schedule,
)


@dataclass(frozen=True)
class ScheduledAssignment:
    assignment_id: int | None
    worker_id: int | None
    user_id: int | None
    schedule: WeeklySchedule


@dataclass(frozen=True)
class AssignmentHours:
    assignment_id: int | None
    worker_id: int | None
    user_id: int | None
    assigned_hours: float
    used_hours: float


@dataclass(frozen=True)
class HolidayBreakdown:
    working_days: int = 0
    working_hours: float = 0.0
    total_holidays: int = 0
    holiday_hours: float = 0.0


@dataclass(frozen=True)
class HoursTotals:
    assigned_hours: float = 0.0
    used_hours: float = 0.0
    day_hours: tuple[float, ...] = ()
    assignments: tuple[AssignmentHours, ...] = ()
    holiday_info: HolidayBreakdown = field(default_factory=HolidayBreakdown)

    def for_worker(self, worker_id: int) -> tuple[float, float]:
        assigned = sum(item.assigned_hours for item in self.assignments if item.worker_id == worker_id)
        used = sum(item.used_hours for item in self.assignments if item.worker_id == worker_id)
        return assigned, used


def to_scheduled_assignment(assignment: Assignment) -> ScheduledAssignment:
    return ScheduledAssignment(
        assignment_id=assignment.id,
        worker_id=assignment.worker_id,
        user_id=assignment.user_id,
        schedule=parse_schedule(assignment.schedule),
    )


def aggregate_hours(
    assignments: Iterable[ScheduledAssignment],
    *,
    year: int,
    month: int,
    holiday_days: set[int] | frozenset[int],
    today: date,
    policy: FestiveKeyPolicy = DEFAULT_FESTIVE_KEY_POLICY,
) -> HoursTotals:
    """Sum scheduled hours of ``assignments`` over one calendar month.

    ``assigned_hours`` covers every day of the month; ``used_hours`` only the
    days on or before ``today``. Nothing is rounded here, rounding is a
    presentation concern.
    """
    scoped: Sequence[ScheduledAssignment] = list(assignments)
    assigned_by_index = [0.0] * len(scoped)
    used_by_index = [0.0] * len(scoped)
    day_hours_list: list[float] = []
    assigned_hours = 0.0
    used_hours = 0.0
    working_days = 0
    working_hours = 0.0
    total_holidays = 0
    holiday_hours = 0.0

    for classification in classify_month(year, month, holiday_days):
        is_past_day = classification.day_date <= today
        day_hours = 0.0
        for index, item in enumerate(scoped):
            day_schedule = resolve_day_schedule(item.schedule, classification, policy)
            if day_schedule is None:
                continue
            slot_hours = day_schedule.hours
            day_hours += slot_hours
            assigned_by_index[index] += slot_hours
            if is_past_day:
                used_by_index[index] += slot_hours

        day_hours_list.append(day_hours)
        assigned_hours += day_hours
        if is_past_day:
            used_hours += day_hours
        if classification.is_festive:
            total_holidays += 1
            holiday_hours += day_hours
        else:
            working_days += 1
            working_hours += day_hours

    return HoursTotals(
        assigned_hours=assigned_hours,
        used_hours=used_hours,
        day_hours=tuple(day_hours_list),
        assignments=tuple(
            AssignmentHours(
                assignment_id=item.assignment_id,
                worker_id=item.worker_id,
                user_id=item.user_id,
                assigned_hours=assigned_by_index[index],
                used_hours=used_by_index[index],
            )
            for index, item in enumerate(scoped)
        ),
        holiday_info=HolidayBreakdown(
            working_days=working_days,
            working_hours=working_hours,
            total_holidays=total_holidays,
            holiday_hours=holiday_hours,
        ),
    )
