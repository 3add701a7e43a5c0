from __future__ import annotations

from datetime import date

from sqlalchemy import select
from sqlalchemy.orm import Session

from carehours.errors import ApiError
from carehours.models import Holiday, HolidayType
from carehours.schemas import HolidayCreateRequest
from carehours.services.calendar_days import holiday_days_of_month, month_bounds


def list_holidays(
    db: Session,
    *,
    year: int,
    month: int | None = None,
    active_only: bool = True,
) -> list[Holiday]:
    if month is None:
        start, end = date(year, 1, 1), date(year, 12, 31)
    else:
        start, end = month_bounds(year, month)

    stmt = (
        select(Holiday)
        .where(Holiday.date >= start, Holiday.date <= end)
        .order_by(Holiday.date.asc(), Holiday.id.asc())
    )
    if active_only:
        stmt = stmt.where(Holiday.is_active.is_(True))
    return list(db.scalars(stmt).all())


def load_holiday_days(db: Session, *, year: int, month: int) -> set[int]:
    holidays = list_holidays(db, year=year, month=month, active_only=True)
    return holiday_days_of_month((item.date for item in holidays), year=year, month=month)


def create_holiday(db: Session, payload: HolidayCreateRequest) -> Holiday:
    holiday = Holiday(
        name=payload.name.strip(),
        date=payload.date,
        type=payload.type or HolidayType.LOCAL,
        region=payload.region or "Catalunya",
        city=payload.city or "Mataró",
        is_active=True,
    )
    db.add(holiday)
    db.commit()
    db.refresh(holiday)
    return holiday


def delete_holiday(db: Session, holiday_id: int) -> None:
    holiday = db.get(Holiday, holiday_id)
    if holiday is None:
        raise ApiError(status_code=404, code="HOLIDAY_NOT_FOUND", message="Holiday not found.")
    db.delete(holiday)
    db.commit()
