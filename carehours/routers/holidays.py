from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from carehours.audit import log_audit
from carehours.db import get_db
from carehours.errors import missing_parameters_error
from carehours.models import AuditActorType
from carehours.schemas import (
    HolidayCreateRequest,
    HolidayCreateResponse,
    HolidayListResponse,
    HolidayRead,
    SuccessResponse,
)
from carehours.security import require_admin
from carehours.services.holidays import create_holiday, delete_holiday, list_holidays

router = APIRouter(tags=["holidays"])


@router.get(
    "/api/holidays",
    response_model=HolidayListResponse,
    dependencies=[Depends(require_admin)],
)
def get_holidays(
    year: int | None = Query(default=None, ge=1970),
    month: int | None = Query(default=None, ge=1, le=12),
    db: Session = Depends(get_db),
) -> HolidayListResponse:
    if year is None:
        raise missing_parameters_error(["year"])
    holidays = list_holidays(db, year=year, month=month)
    return HolidayListResponse(holidays=[HolidayRead.model_validate(item) for item in holidays])


@router.post("/api/holidays", response_model=HolidayCreateResponse)
def post_holiday(
    payload: HolidayCreateRequest,
    request: Request,
    claims: dict = Depends(require_admin),
    db: Session = Depends(get_db),
) -> HolidayCreateResponse:
    missing = []
    if not (payload.name or "").strip():
        missing.append("name")
    if payload.date is None:
        missing.append("date")
    if missing:
        raise missing_parameters_error(missing)

    holiday = create_holiday(db, payload)
    log_audit(
        db,
        actor_type=AuditActorType.ADMIN,
        actor_id=str(claims.get("username") or "admin"),
        action="HOLIDAY_CREATED",
        success=True,
        entity_type="holiday",
        entity_id=str(holiday.id),
        details={"date": holiday.date.isoformat(), "name": holiday.name},
        request=request,
    )
    return HolidayCreateResponse(holiday=HolidayRead.model_validate(holiday))


@router.delete("/api/holidays", response_model=SuccessResponse)
def remove_holiday(
    request: Request,
    holiday_id: int | None = Query(default=None, alias="id", ge=1),
    claims: dict = Depends(require_admin),
    db: Session = Depends(get_db),
) -> SuccessResponse:
    if holiday_id is None:
        raise missing_parameters_error(["id"])

    delete_holiday(db, holiday_id)
    log_audit(
        db,
        actor_type=AuditActorType.ADMIN,
        actor_id=str(claims.get("username") or "admin"),
        action="HOLIDAY_DELETED",
        success=True,
        entity_type="holiday",
        entity_id=str(holiday_id),
        request=request,
    )
    return SuccessResponse()
