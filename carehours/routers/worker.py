from typing import Any

from fastapi import APIRouter, Depends, Query, Request
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from carehours.audit import client_ip, log_audit
from carehours.db import get_db
from carehours.errors import ApiError, missing_parameters_error
from carehours.models import AuditActorType, Worker
from carehours.schemas import (
    AuthTokenResponse,
    MonthlyBalanceRead,
    WorkerBalanceReport,
    WorkerLoginRequest,
    WorkerMonthlyBalanceResponse,
)
from carehours.security import (
    bearer_scheme,
    create_worker_access_token,
    ensure_login_attempt_allowed,
    register_login_failure,
    register_login_success,
    require_worker,
    verify_worker_credentials,
)
from carehours.services.balance_reports import load_worker_report
from carehours.services.monthly_balances import list_worker_monthly_balances

router = APIRouter(tags=["worker"])


def _require_params(**values: Any) -> None:
    missing = [name for name, value in values.items() if value is None]
    if missing:
        raise missing_parameters_error(missing)


def _resolve_caller_worker(db: Session, claims: dict[str, Any], worker_id: int) -> Worker:
    if claims.get("worker_id") != worker_id:
        raise ApiError(status_code=403, code="FORBIDDEN", message="Worker not found or not authorized.")

    email = str(claims.get("email") or "").strip().lower()
    worker = db.scalar(
        select(Worker).where(
            Worker.id == worker_id,
            func.lower(Worker.email) == email,
            Worker.is_active.is_(True),
        )
    )
    if worker is None:
        raise ApiError(status_code=403, code="FORBIDDEN", message="Worker not found or not authorized.")
    return worker


@router.post("/api/worker/auth/login", response_model=AuthTokenResponse)
def worker_login(
    payload: WorkerLoginRequest,
    request: Request,
    db: Session = Depends(get_db),
) -> AuthTokenResponse:
    email = payload.email.strip().lower()
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
                actor_id=email,
                action="WORKER_LOGIN_FAIL",
                success=False,
                details={"reason": "TOO_MANY_ATTEMPTS"},
                request=request,
            )
            raise

    worker = verify_worker_credentials(db, email, payload.password)
    if worker is None:
        if ip:
            register_login_failure(ip)
        log_audit(
            db,
            actor_type=AuditActorType.SYSTEM,
            actor_id=email,
            action="WORKER_LOGIN_FAIL",
            success=False,
            details={"reason": "INVALID_CREDENTIALS"},
            request=request,
        )
        raise ApiError(status_code=401, code="INVALID_CREDENTIALS", message="Invalid credentials.")

    if ip:
        register_login_success(ip)

    access_token, expires_in, claims = create_worker_access_token(worker=worker)
    request.state.actor = "worker"
    request.state.actor_id = str(worker.id)
    log_audit(
        db,
        actor_type=AuditActorType.WORKER,
        actor_id=str(worker.id),
        action="WORKER_LOGIN_SUCCESS",
        success=True,
        details={"access_jti": claims["jti"]},
        request=request,
    )
    return AuthTokenResponse(access_token=access_token, expires_in=expires_in, role="worker")


@router.get(
    "/api/worker/user-balance",
    response_model=WorkerBalanceReport,
    response_model_by_alias=True,
)
def get_worker_user_balance(
    request: Request,
    worker_id: int | None = Query(default=None, alias="workerId", ge=1),
    month: int | None = Query(default=None, ge=1, le=12),
    year: int | None = Query(default=None, ge=1970),
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> WorkerBalanceReport:
    _require_params(workerId=worker_id, month=month, year=year)
    claims = require_worker(request, credentials)
    worker = _resolve_caller_worker(db, claims, worker_id)  # type: ignore[arg-type]
    return load_worker_report(db, worker=worker, year=year, month=month)  # type: ignore[arg-type]


@router.get("/api/worker/monthly-balance", response_model=WorkerMonthlyBalanceResponse)
def get_worker_monthly_balance(
    request: Request,
    worker_id: int | None = Query(default=None, alias="workerId", ge=1),
    month: int | None = Query(default=None, ge=1, le=12),
    year: int | None = Query(default=None, ge=1970),
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> WorkerMonthlyBalanceResponse:
    _require_params(workerId=worker_id, month=month, year=year)
    claims = require_worker(request, credentials)
    worker = _resolve_caller_worker(db, claims, worker_id)  # type: ignore[arg-type]
    rows = list_worker_monthly_balances(db, worker_id=worker.id, year=year, month=month)  # type: ignore[arg-type]
    return WorkerMonthlyBalanceResponse(balances=[MonthlyBalanceRead.model_validate(row) for row in rows])
