from __future__ import annotations

import enum
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from carehours.services.calendar_days import DAY_KEYS, HOLIDAY_KEY, DayClassification

logger = logging.getLogger("carehours.schedules")

SCHEDULE_KEYS: tuple[str, ...] = DAY_KEYS + (HOLIDAY_KEY,)


class FestiveKeyPolicy(str, enum.Enum):
    HOLIDAY_KEY_ON_GENUINE_HOLIDAY_ONLY = "holiday_key_on_genuine_holiday_only"
    HOLIDAY_KEY_ON_ANY_FESTIVE_DAY = "holiday_key_on_any_festive_day"


DEFAULT_FESTIVE_KEY_POLICY = FestiveKeyPolicy.HOLIDAY_KEY_ON_GENUINE_HOLIDAY_ONLY


@dataclass(frozen=True)
class TimeSlot:
    start_minutes: int
    end_minutes: int

    @property
    def start(self) -> str:
        return _format_hhmm(self.start_minutes)

    @property
    def end(self) -> str:
        return _format_hhmm(self.end_minutes)

    @property
    def hours(self) -> float:
        return max(0, self.end_minutes - self.start_minutes) / 60

    def to_dict(self) -> dict[str, str]:
        return {"start": self.start, "end": self.end}


@dataclass(frozen=True)
class DaySchedule:
    enabled: bool
    time_slots: tuple[TimeSlot, ...] = ()

    @property
    def hours(self) -> float:
        if not self.enabled:
            return 0.0
        # Overlapping slots are summed as-is.
        return sum(slot.hours for slot in self.time_slots)

    @property
    def is_empty(self) -> bool:
        return not self.enabled or not self.time_slots


WeeklySchedule = dict[str, DaySchedule]


def _format_hhmm(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def parse_hhmm(value: Any) -> int | None:
    """Return minutes since midnight for ``HH:MM`` (or ``HH:MM:SS``), ``None`` if unusable."""
    if not isinstance(value, str):
        return None
    parts = value.strip().split(":")
    if len(parts) < 2:
        return None
    try:
        hour = int(parts[0])
        minute = int(parts[1])
    except ValueError:
        return None
    if minute < 0 or minute > 59 or hour < 0 or hour > 24:
        return None
    if hour == 24 and minute != 0:
        return None
    return hour * 60 + minute


def parse_time_slot(raw: Any) -> TimeSlot | None:
    if isinstance(raw, Mapping):
        start_raw, end_raw = raw.get("start"), raw.get("end")
    elif isinstance(raw, (list, tuple)) and len(raw) == 2:
        start_raw, end_raw = raw
    elif isinstance(raw, str) and "-" in raw:
        start_raw, _, end_raw = raw.partition("-")
    else:
        logger.debug("time_slot_skipped", extra={"slot": raw})
        return None

    start_minutes = parse_hhmm(start_raw)
    end_minutes = parse_hhmm(end_raw)
    if start_minutes is None or end_minutes is None:
        logger.debug("time_slot_skipped", extra={"slot": raw})
        return None
    return TimeSlot(start_minutes=start_minutes, end_minutes=end_minutes)


def _parse_slot_list(raw_slots: Any) -> tuple[TimeSlot, ...]:
    if not isinstance(raw_slots, (list, tuple)):
        return ()

    # Oldest encoding: a flat list of times read pairwise, e.g. ["09:00", "11:00", "15:00", "17:00"].
    if raw_slots and all(isinstance(item, str) and "-" not in item for item in raw_slots):
        if len(raw_slots) % 2 != 0:
            logger.debug("time_slot_list_skipped", extra={"slots": raw_slots})
            return ()
        pairs = [raw_slots[index : index + 2] for index in range(0, len(raw_slots), 2)]
        return tuple(slot for slot in (parse_time_slot(pair) for pair in pairs) if slot is not None)

    return tuple(slot for slot in (parse_time_slot(item) for item in raw_slots) if slot is not None)


def parse_day_schedule(raw: Any) -> DaySchedule | None:
    if raw is None:
        return None
    if isinstance(raw, Mapping):
        raw_slots = raw.get("timeSlots", raw.get("time_slots"))
        return DaySchedule(
            enabled=bool(raw.get("enabled", False)),
            time_slots=_parse_slot_list(raw_slots),
        )
    if isinstance(raw, (list, tuple)):
        slots = _parse_slot_list(raw)
        return DaySchedule(enabled=bool(slots), time_slots=slots)
    logger.debug("day_schedule_skipped", extra={"day_schedule": raw})
    return None


def parse_schedule(raw: Any) -> WeeklySchedule:
    """Normalize a stored assignment schedule into canonical day schedules.

    Unknown keys and unreadable entries are dropped instead of failing, so a
    single malformed day never hides the rest of the week.
    """
    if not isinstance(raw, Mapping):
        return {}
    schedule: WeeklySchedule = {}
    for key in SCHEDULE_KEYS:
        day_schedule = parse_day_schedule(raw.get(key))
        if day_schedule is not None:
            schedule[key] = day_schedule
    return schedule


def schedule_key_for_day(
    classification: DayClassification,
    policy: FestiveKeyPolicy = DEFAULT_FESTIVE_KEY_POLICY,
) -> str:
    if not classification.is_festive:
        return classification.day_key
    if policy == FestiveKeyPolicy.HOLIDAY_KEY_ON_ANY_FESTIVE_DAY:
        return HOLIDAY_KEY
    if classification.is_holiday:
        return HOLIDAY_KEY
    return classification.day_key


def resolve_day_schedule(
    schedule: WeeklySchedule,
    classification: DayClassification,
    policy: FestiveKeyPolicy = DEFAULT_FESTIVE_KEY_POLICY,
) -> DaySchedule | None:
    day_schedule = schedule.get(schedule_key_for_day(classification, policy))
    if day_schedule is None or day_schedule.is_empty:
        return None
    return day_schedule


def coerce_festive_key_policy(value: str | FestiveKeyPolicy | None) -> FestiveKeyPolicy:
    if isinstance(value, FestiveKeyPolicy):
        return value
    normalized = (value or "").strip().lower()
    for policy in FestiveKeyPolicy:
        if policy.value == normalized:
            return policy
    logger.warning("unknown_festive_key_policy", extra={"value": value})
    return DEFAULT_FESTIVE_KEY_POLICY
