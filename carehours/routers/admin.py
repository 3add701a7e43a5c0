from fastapi import APIRouter, Depends, Query, Request, Response
from sqlalchemy.orm import Session

from carehours.audit import client_ip, log_audit
from carehours.db import get_db
from carehours.errors import ApiError
from carehours.models import AuditActorType
from carehours.schemas import (
    AdminLoginRequest,
    AuthTokenResponse,
    BalanceEnvelope,
    GenerateBalanceRequest,
    MonthlyBalanceListResponse,
    MonthlyBalanceRead,
    RecalculateBalanceRequest,
    UserBalanceReport,
    UserPlanningResponse,
    WorkerBalanceReport,
)
from carehours.security import (
    create_admin_access_token,
    ensure_login_attempt_allowed,
    register_login_failure,
    register_login_success,
    require_admin,
    verify_admin_credentials,
)
from carehours.services.balance_reports import (
    generate_planning_balance,
    get_worker,
    load_user_planning,
    load_user_report,
    load_worker_report,
    recalculate_pair_balance,
)
from carehours.services.exports import build_worker_balance_xlsx_bytes
from carehours.services.monthly_balances import list_monthly_balances

router = APIRouter(tags=["admin"])
XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _admin_actor_id(claims: dict) -> str:
    return str(claims.get("username") or claims.get("sub") or "admin")


@router.post("/api/admin/auth/login", response_model=AuthTokenResponse)
def admin_login(
    payload: AdminLoginRequest,
    request: Request,
    db: Session = Depends(get_db),
) -> AuthTokenResponse:
    username = payload.username.strip()
    ip = client_ip(request)
    request.state.actor = "system"
    request.state.actor_id = "system"

    if ip:
        try:
            ensure_login_attempt_allowed(ip)
        except ApiError:
            log_audit(
                db,
                actor_type=AuditActorType.SYSTEM,
                actor_id="admin",
                action="ADMIN_LOGIN_FAIL",
                success=False,
                details={"reason": "TOO_MANY_ATTEMPTS"},
                request=request,
            )
            raise

    if not verify_admin_credentials(username, payload.password):
        if ip:
            register_login_failure(ip)
        log_audit(
            db,
            actor_type=AuditActorType.SYSTEM,
            actor_id=username,
            action="ADMIN_LOGIN_FAIL",
            success=False,
            details={"reason": "INVALID_CREDENTIALS"},
            request=request,
        )
        raise ApiError(status_code=401, code="INVALID_CREDENTIALS", message="Invalid credentials.")

    if ip:
        register_login_success(ip)

    access_token, expires_in, claims = create_admin_access_token(username=username)
    request.state.actor = "admin"
    request.state.actor_id = username
    log_audit(
        db,
        actor_type=AuditActorType.ADMIN,
        actor_id=username,
        action="ADMIN_LOGIN_SUCCESS",
        success=True,
        details={"access_jti": claims["jti"]},
        request=request,
    )
    return AuthTokenResponse(access_token=access_token, expires_in=expires_in, role="admin")


@router.post("/api/admin/generate-balance", response_model=BalanceEnvelope)
def generate_balance(
    payload: GenerateBalanceRequest,
    request: Request,
    claims: dict = Depends(require_admin),
    db: Session = Depends(get_db),
) -> BalanceEnvelope:
    row = generate_planning_balance(db, payload)
    log_audit(
        db,
        actor_type=AuditActorType.ADMIN,
        actor_id=_admin_actor_id(claims),
        action="MONTHLY_BALANCE_GENERATED",
        success=True,
        entity_type="monthly_balance",
        entity_id=str(row.id),
        details={
            "user_id": row.user_id,
            "worker_id": row.worker_id,
            "month": row.month,
            "year": row.year,
            "status": getattr(row.status, "value", row.status),
        },
        request=request,
    )
    return BalanceEnvelope(balance=MonthlyBalanceRead.model_validate(row))


@router.get(
    "/api/monthly-balances",
    response_model=MonthlyBalanceListResponse,
    dependencies=[Depends(require_admin)],
)
def get_monthly_balances(
    user_id: int | None = Query(default=None, ge=1),
    worker_id: int | None = Query(default=None, ge=1),
    year: int | None = Query(default=None, ge=1970),
    month: int | None = Query(default=None, ge=1, le=12),
    db: Session = Depends(get_db),
) -> MonthlyBalanceListResponse:
    rows = list_monthly_balances(db, user_id=user_id, worker_id=worker_id, year=year, month=month)
    return MonthlyBalanceListResponse(balances=[MonthlyBalanceRead.model_validate(row) for row in rows])


@router.post("/api/admin/monthly-balances/recalculate", response_model=BalanceEnvelope)
def recalculate_monthly_balance(
    payload: RecalculateBalanceRequest,
    request: Request,
    claims: dict = Depends(require_admin),
    db: Session = Depends(get_db),
) -> BalanceEnvelope:
    row = recalculate_pair_balance(
        db,
        user_id=payload.user_id,
        worker_id=payload.worker_id,
        year=payload.year,
        month=payload.month,
    )
    log_audit(
        db,
        actor_type=AuditActorType.ADMIN,
        actor_id=_admin_actor_id(claims),
        action="MONTHLY_BALANCE_RECALCULATED",
        success=True,
        entity_type="monthly_balance",
        entity_id=str(row.id),
        details={
            "user_id": payload.user_id,
            "worker_id": payload.worker_id,
            "month": payload.month,
            "year": payload.year,
        },
        request=request,
    )
    return BalanceEnvelope(balance=MonthlyBalanceRead.model_validate(row))


@router.get(
    "/api/admin/users/{user_id}/balance",
    response_model=UserBalanceReport,
    response_model_by_alias=True,
    dependencies=[Depends(require_admin)],
)
def get_user_balance_report(
    user_id: int,
    year: int = Query(..., ge=1970),
    month: int = Query(..., ge=1, le=12),
    db: Session = Depends(get_db),
) -> UserBalanceReport:
    return load_user_report(db, user_id=user_id, year=year, month=month)


@router.get(
    "/api/admin/users/{user_id}/planning",
    response_model=UserPlanningResponse,
    response_model_by_alias=True,
    dependencies=[Depends(require_admin)],
)
def get_user_planning(
    user_id: int,
    year: int = Query(..., ge=1970),
    month: int = Query(..., ge=1, le=12),
    db: Session = Depends(get_db),
) -> UserPlanningResponse:
    return load_user_planning(db, user_id=user_id, year=year, month=month)


@router.get(
    "/api/admin/workers/{worker_id}/balance",
    response_model=WorkerBalanceReport,
    response_model_by_alias=True,
    dependencies=[Depends(require_admin)],
)
def get_worker_balance_report(
    worker_id: int,
    year: int = Query(..., ge=1970),
    month: int = Query(..., ge=1, le=12),
    db: Session = Depends(get_db),
) -> WorkerBalanceReport:
    worker = get_worker(db, worker_id)
    return load_worker_report(db, worker=worker, year=year, month=month)


@router.get("/api/admin/workers/{worker_id}/balance.xlsx")
def export_worker_balance_xlsx(
    worker_id: int,
    request: Request,
    year: int = Query(..., ge=1970),
    month: int = Query(..., ge=1, le=12),
    claims: dict = Depends(require_admin),
    db: Session = Depends(get_db),
) -> Response:
    worker = get_worker(db, worker_id)
    report = load_worker_report(db, worker=worker, year=year, month=month)
    payload = build_worker_balance_xlsx_bytes(report)
    log_audit(
        db,
        actor_type=AuditActorType.ADMIN,
        actor_id=_admin_actor_id(claims),
        action="WORKER_BALANCE_EXPORT_XLSX",
        success=True,
        entity_type="export",
        entity_id=str(worker_id),
        details={"year": year, "month": month},
        request=request,
    )
    return Response(
        content=payload,
        media_type=XLSX_MEDIA_TYPE,
        headers={
            "Content-Disposition": f'attachment; filename="balance-worker-{worker_id}-{year}-{month:02d}.xlsx"',
        },
    )
