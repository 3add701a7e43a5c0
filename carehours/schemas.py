from datetime import date, datetime
from datetime import date as date_type
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from carehours.models import BalanceStatus, HolidayType


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AdminLoginRequest(BaseModel):
    username: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1, max_length=255)


class WorkerLoginRequest(BaseModel):
    email: str = Field(min_length=3, max_length=255)
    password: str = Field(min_length=1, max_length=255)


class AuthTokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    role: str


class HolidayCreateRequest(BaseModel):
    name: str | None = None
    date: date_type | None = None
    type: HolidayType | None = None
    region: str | None = Field(default=None, max_length=255)
    city: str | None = Field(default=None, max_length=255)


class HolidayRead(BaseModel):
    id: int
    date: date
    name: str
    type: HolidayType
    region: str
    city: str
    is_active: bool

    model_config = ConfigDict(from_attributes=True)


class HolidayListResponse(BaseModel):
    holidays: list[HolidayRead]


class HolidayCreateResponse(BaseModel):
    holiday: HolidayRead


class SuccessResponse(BaseModel):
    success: bool = True


class PlanningDay(CamelModel):
    date: date
    hours: float = Field(default=0, ge=0)
    is_holiday: bool = False
    worker_id: int | None = None


class ReassignedServiceRead(CamelModel):
    date: date
    original_worker_id: int
    original_worker_name: str | None = None
    reassigned_worker_id: int
    reassigned_worker_name: str | None = None
    original_hours: float
    reassigned_hours: float
    reason: str


class UserPlanningResponse(CamelModel):
    user_id: int
    month: int
    year: int
    planning: list[PlanningDay] = Field(default_factory=list)
    reassignments: list[ReassignedServiceRead] = Field(default_factory=list)
    total_reassigned_hours: float = 0


class GenerateBalanceRequest(BaseModel):
    planning: list[PlanningDay] | None = None
    assigned_hours: float | None = Field(default=None, ge=0)
    user_id: int | None = Field(default=None, ge=1)
    worker_id: int | None = Field(default=None, ge=1)
    month: int | None = Field(default=None, ge=1, le=12)
    year: int | None = Field(default=None, ge=1970)


class RecalculateBalanceRequest(BaseModel):
    user_id: int = Field(ge=1)
    worker_id: int = Field(ge=1)
    month: int = Field(ge=1, le=12)
    year: int = Field(ge=1970)


class MonthlyBalanceRead(BaseModel):
    id: int
    user_id: int
    worker_id: int
    month: int
    year: int
    assigned_hours: float
    scheduled_hours: float
    used_hours: float
    remaining_hours: float
    excess_hours: float
    balance: float
    status: BalanceStatus
    percentage: float
    message: str | None = None
    planning: list[dict[str, Any]] = Field(default_factory=list)
    holiday_info: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class BalanceEnvelope(BaseModel):
    balance: MonthlyBalanceRead


class MonthlyBalanceListResponse(BaseModel):
    balances: list[MonthlyBalanceRead]


class WorkerMonthlyBalanceResponse(BaseModel):
    balances: list[MonthlyBalanceRead]
    success: bool = True


class HolidayInfo(CamelModel):
    working_days: int = 0
    working_hours: float = 0
    total_holidays: int = 0
    holiday_hours: float = 0


class AssignmentBalanceItem(CamelModel):
    assignment_id: int | None
    worker_id: int | None
    worker_name: str | None = None
    user_id: int | None
    user_name: str | None = None
    status: str | None = None
    assignment_type: str | None = None
    assigned_hours: float
    used_hours: float


class UserBalanceReport(CamelModel):
    entity_id: int
    entity_name: str
    user_surname: str | None = None
    user_address: str | None = None
    user_phone: str | None = None
    month: int
    year: int
    monthly_hours: float
    assigned_hours: float
    used_hours: float
    remaining_hours: float
    excess_hours: float
    status: BalanceStatus
    percentage: float
    holiday_info: HolidayInfo
    assignments: list[AssignmentBalanceItem] = Field(default_factory=list)
    worker_assigned_hours: float | None = None
    worker_used_hours: float | None = None


class WorkerBalanceReport(CamelModel):
    worker_id: int
    worker_name: str
    month: int
    year: int
    user_balances: list[UserBalanceReport] = Field(default_factory=list)
    total_monthly_hours: float = 0
    total_assigned_hours: float = 0
    total_used_hours: float = 0
    total_remaining_hours: float = 0
    total_excess_hours: float = 0
    total_worker_assigned_hours: float = 0
    total_worker_used_hours: float = 0
    overall_status: BalanceStatus = BalanceStatus.PERFECT
    overall_percentage: float = 0
    skipped_user_ids: list[int] = Field(default_factory=list)
