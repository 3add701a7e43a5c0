from __future__ import annotations

from calendar import monthrange
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date

# Sunday=0 .. Saturday=6, matching the keys stored in assignment schedules.
DAY_KEYS: tuple[str, ...] = (
    "sunday",
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
)
HOLIDAY_KEY = "holiday"
WEEKEND_DAYS_OF_WEEK = frozenset({0, 6})


@dataclass(frozen=True)
class DayClassification:
    day_date: date
    day_of_week: int
    day_key: str
    is_weekend: bool
    is_holiday: bool

    @property
    def is_festive(self) -> bool:
        return self.is_holiday or self.is_weekend

    @property
    def day(self) -> int:
        return self.day_date.day


def days_in_month(year: int, month: int) -> int:
    return monthrange(year, month)[1]


def month_bounds(year: int, month: int) -> tuple[date, date]:
    return date(year, month, 1), date(year, month, days_in_month(year, month))


def day_of_week(day_date: date) -> int:
    return day_date.isoweekday() % 7


def holiday_days_of_month(holiday_dates: Iterable[date], *, year: int, month: int) -> set[int]:
    return {item.day for item in holiday_dates if item.year == year and item.month == month}


def classify_day(year: int, month: int, day: int, holiday_days: set[int] | frozenset[int]) -> DayClassification:
    day_date = date(year, month, day)
    dow = day_of_week(day_date)
    return DayClassification(
        day_date=day_date,
        day_of_week=dow,
        day_key=DAY_KEYS[dow],
        is_weekend=dow in WEEKEND_DAYS_OF_WEEK,
        is_holiday=day in holiday_days,
    )


def classify_month(year: int, month: int, holiday_days: set[int] | frozenset[int]) -> list[DayClassification]:
    return [classify_day(year, month, day, holiday_days) for day in range(1, days_in_month(year, month) + 1)]
