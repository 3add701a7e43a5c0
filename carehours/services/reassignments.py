from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date
from typing import Any

from carehours.models import Assignment, AssignmentType
from carehours.schemas import PlanningDay, ReassignedServiceRead
from carehours.services.calendar_days import DayClassification, classify_month
from carehours.services.schedules import (
    DEFAULT_FESTIVE_KEY_POLICY,
    FestiveKeyPolicy,
    WeeklySchedule,
    parse_schedule,
    resolve_day_schedule,
)

logger = logging.getLogger("carehours.reassignments")

REASSIGNED_SERVICE_HOURS = 1.5
REASON_HOLIDAY = "holiday"
REASON_WEEKEND = "weekend"

_WORKING_DAY_TYPES = frozenset({AssignmentType.LABORABLES, AssignmentType.FLEXIBLE})
_FESTIVE_DAY_TYPES = frozenset({AssignmentType.FESTIVOS, AssignmentType.FLEXIBLE})


def coerce_assignment_type(value: Any) -> AssignmentType:
    if isinstance(value, AssignmentType):
        return value
    try:
        return AssignmentType(str(value or "").strip().lower())
    except ValueError:
        return AssignmentType.LABORABLES


@dataclass(frozen=True)
class ReassignedService:
    day_date: date
    original_worker_id: int
    original_worker_name: str | None
    reassigned_worker_id: int
    reassigned_worker_name: str | None
    original_hours: float
    reassigned_hours: float
    reason: str

    def to_read(self) -> ReassignedServiceRead:
        return ReassignedServiceRead(
            date=self.day_date,
            original_worker_id=self.original_worker_id,
            original_worker_name=self.original_worker_name,
            reassigned_worker_id=self.reassigned_worker_id,
            reassigned_worker_name=self.reassigned_worker_name,
            original_hours=self.original_hours,
            reassigned_hours=self.reassigned_hours,
            reason=self.reason,
        )


@dataclass(frozen=True)
class ReassignmentPlan:
    planning: list[PlanningDay]
    reassignments: list[ReassignedService]

    @property
    def total_reassigned_hours(self) -> float:
        return sum(item.reassigned_hours for item in self.reassignments)


@dataclass(frozen=True)
class _TypedSchedule:
    worker_id: int
    worker_name: str | None
    assignment_type: AssignmentType
    schedule: WeeklySchedule

    def hours_on(self, classification: DayClassification, policy: FestiveKeyPolicy) -> float:
        day_schedule = resolve_day_schedule(self.schedule, classification, policy)
        return day_schedule.hours if day_schedule is not None else 0.0

    def covers(self, classification: DayClassification) -> bool:
        if classification.is_festive:
            return self.assignment_type in _FESTIVE_DAY_TYPES
        return self.assignment_type in _WORKING_DAY_TYPES


def _typed(assignments: Sequence[Assignment]) -> list[_TypedSchedule]:
    return [
        _TypedSchedule(
            worker_id=item.worker_id,
            worker_name=item.worker.display_name if item.worker is not None else None,
            assignment_type=coerce_assignment_type(item.assignment_type),
            schedule=parse_schedule(item.schedule),
        )
        for item in assignments
    ]


def _find_replacement(
    typed: Sequence[_TypedSchedule],
    original: _TypedSchedule,
    classification: DayClassification,
    policy: FestiveKeyPolicy,
) -> _TypedSchedule | None:
    for candidate in typed:
        if candidate.assignment_type not in _FESTIVE_DAY_TYPES:
            continue
        if candidate.worker_id == original.worker_id:
            continue
        if candidate.hours_on(classification, policy) > 0:
            return candidate
    return None


def _reassignments_for_day(
    typed: Sequence[_TypedSchedule],
    classification: DayClassification,
    policy: FestiveKeyPolicy,
) -> list[ReassignedService]:
    if not classification.is_festive:
        return []

    found: list[ReassignedService] = []
    for original in typed:
        # Flexible workers already cover festive days themselves.
        if original.assignment_type != AssignmentType.LABORABLES:
            continue
        original_hours = original.hours_on(classification, policy)
        if original_hours <= 0:
            continue
        replacement = _find_replacement(typed, original, classification, policy)
        if replacement is None:
            continue
        found.append(
            ReassignedService(
                day_date=classification.day_date,
                original_worker_id=original.worker_id,
                original_worker_name=original.worker_name,
                reassigned_worker_id=replacement.worker_id,
                reassigned_worker_name=replacement.worker_name,
                original_hours=original_hours,
                reassigned_hours=REASSIGNED_SERVICE_HOURS,
                reason=REASON_HOLIDAY if classification.is_holiday else REASON_WEEKEND,
            )
        )
    return found


def detect_holiday_reassignments(
    assignments: Sequence[Assignment],
    *,
    year: int,
    month: int,
    holiday_days: set[int] | frozenset[int],
    policy: FestiveKeyPolicy = DEFAULT_FESTIVE_KEY_POLICY,
) -> list[ReassignedService]:
    """List the festive-day services of working-day workers that a festive worker takes over.

    ``assignments`` are the active assignments of a single user.
    """
    typed = _typed(assignments)
    reassignments: list[ReassignedService] = []
    for classification in classify_month(year, month, holiday_days):
        reassignments.extend(_reassignments_for_day(typed, classification, policy))
    return reassignments


def plan_with_holiday_reassignment(
    assignments: Sequence[Assignment],
    *,
    year: int,
    month: int,
    holiday_days: set[int] | frozenset[int],
    policy: FestiveKeyPolicy = DEFAULT_FESTIVE_KEY_POLICY,
) -> ReassignmentPlan:
    """Build one user's monthly planning with festive-day services handed over.

    A day with a reassignment counts the fixed festive service hours of the
    replacement worker. Any other day counts the hours of the assignments whose
    type covers that kind of day. Days without hours are left out.
    """
    typed = _typed(assignments)
    planning: list[PlanningDay] = []
    reassignments: list[ReassignedService] = []

    for classification in classify_month(year, month, holiday_days):
        day_reassignments = _reassignments_for_day(typed, classification, policy)
        hours = 0.0
        worker_id: int | None = None
        if day_reassignments:
            reassignments.extend(day_reassignments)
            hours = REASSIGNED_SERVICE_HOURS
            worker_id = day_reassignments[-1].reassigned_worker_id
        else:
            for item in typed:
                if not item.covers(classification):
                    continue
                item_hours = item.hours_on(classification, policy)
                if item_hours <= 0:
                    continue
                hours += item_hours
                if worker_id is None:
                    worker_id = item.worker_id

        if hours > 0:
            planning.append(
                PlanningDay(
                    date=classification.day_date,
                    hours=hours,
                    is_holiday=classification.is_festive,
                    worker_id=worker_id,
                )
            )

    if reassignments:
        logger.info(
            "festive_services_reassigned",
            extra={"year": year, "month": month, "count": len(reassignments)},
        )
    return ReassignmentPlan(planning=planning, reassignments=reassignments)
