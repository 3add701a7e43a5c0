from __future__ import annotations

import hmac
import threading
from collections import defaultdict, deque
from datetime import datetime, timedelta, timezone
from typing import Any
from uuid import uuid4

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from passlib.exc import UnknownHashError
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from carehours.errors import ApiError
from carehours.models import Worker
from carehours.settings import get_settings

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
bearer_scheme = HTTPBearer(auto_error=False)

ROLE_ADMIN = "admin"
ROLE_WORKER = "worker"

_LOCK = threading.Lock()
_FAILED_ATTEMPTS: dict[str, deque[datetime]] = defaultdict(deque)
_MAX_ATTEMPTS = 10
_ATTEMPT_WINDOW = timedelta(minutes=10)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _cleanup_attempts(ip: str, now: datetime) -> None:
    queue = _FAILED_ATTEMPTS[ip]
    threshold = now - _ATTEMPT_WINDOW
    while queue and queue[0] < threshold:
        queue.popleft()
    if not queue:
        _FAILED_ATTEMPTS.pop(ip, None)


def ensure_login_attempt_allowed(ip: str) -> None:
    now = _utcnow()
    with _LOCK:
        _cleanup_attempts(ip, now)
        queue = _FAILED_ATTEMPTS.get(ip, deque())
        if len(queue) >= _MAX_ATTEMPTS:
            raise ApiError(
                status_code=429,
                code="TOO_MANY_ATTEMPTS",
                message="Too many failed login attempts. Please try again later.",
            )


def register_login_failure(ip: str) -> None:
    now = _utcnow()
    with _LOCK:
        _cleanup_attempts(ip, now)
        _FAILED_ATTEMPTS[ip].append(now)


def register_login_success(ip: str) -> None:
    with _LOCK:
        _FAILED_ATTEMPTS.pop(ip, None)


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str | None) -> bool:
    if not password_hash:
        return False
    try:
        return pwd_context.verify(password, password_hash)
    except (ValueError, TypeError, UnknownHashError):
        # Invalid/legacy hash values should not crash auth flow.
        return False


def _strip_quotes(value: str) -> str:
    # Common deployment copy/paste issue: quoted env values.
    if len(value) >= 2 and value[0] == value[-1] and value[0] in {"'", '"'}:
        return value[1:-1]
    return value


def verify_admin_credentials(username: str, password: str) -> bool:
    settings = get_settings()
    env_username = _strip_quotes((settings.admin_user or "").strip())
    env_pass_hash = _strip_quotes((settings.admin_pass_hash or "").strip())

    if not hmac.compare_digest(username, env_username):
        return False
    if not env_pass_hash:
        return False
    return verify_password(password, env_pass_hash)


def find_active_worker_by_email(db: Session, email: str) -> Worker | None:
    normalized = email.strip().lower()
    if not normalized:
        return None
    return db.scalar(
        select(Worker).where(
            func.lower(Worker.email) == normalized,
            Worker.is_active.is_(True),
        )
    )


def verify_worker_credentials(db: Session, email: str, password: str) -> Worker | None:
    worker = find_active_worker_by_email(db, email)
    if worker is None:
        return None
    if not verify_password(password, worker.password_hash):
        return None
    return worker


def _build_claims(
    *,
    sub: str,
    role: str,
    expires_delta: timedelta,
    extra: dict[str, Any] | None = None,
) -> dict[str, Any]:
    settings = get_settings()
    now = _utcnow()
    exp = now + expires_delta
    claims: dict[str, Any] = {
        "sub": sub,
        "role": role,
        "iss": settings.jwt_issuer,
        "aud": settings.jwt_audience,
        "iat": int(now.timestamp()),
        "exp": int(exp.timestamp()),
        "jti": str(uuid4()),
        "typ": "access",
    }
    if extra:
        claims.update(extra)
    return claims


def _encode(claims: dict[str, Any]) -> str:
    return jwt.encode(claims, get_settings().jwt_secret, algorithm="HS256")


def create_admin_access_token(*, username: str) -> tuple[str, int, dict[str, Any]]:
    settings = get_settings()
    claims = _build_claims(
        sub=username,
        role=ROLE_ADMIN,
        expires_delta=timedelta(minutes=settings.access_token_minutes),
        extra={"username": username},
    )
    return _encode(claims), settings.access_token_minutes * 60, claims


def create_worker_access_token(*, worker: Worker) -> tuple[str, int, dict[str, Any]]:
    settings = get_settings()
    claims = _build_claims(
        sub=f"worker:{worker.id}",
        role=ROLE_WORKER,
        expires_delta=timedelta(minutes=settings.access_token_minutes),
        extra={"worker_id": worker.id, "email": worker.email},
    )
    return _encode(claims), settings.access_token_minutes * 60, claims


def decode_token(token: str) -> dict[str, Any]:
    settings = get_settings()
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=["HS256"],
            audience=settings.jwt_audience,
            issuer=settings.jwt_issuer,
            options={"require_sub": True, "require_iat": True, "require_exp": True},
        )
    except JWTError as exc:
        raise ApiError(status_code=401, code="INVALID_TOKEN", message="Token is invalid.") from exc

    if payload.get("typ") != "access":
        raise ApiError(status_code=401, code="INVALID_TOKEN", message="Token type is invalid.")

    subject = payload.get("sub")
    if not isinstance(subject, str) or not subject:
        raise ApiError(status_code=401, code="INVALID_TOKEN", message="Token subject is invalid.")

    return payload


def _bearer_payload(credentials: HTTPAuthorizationCredentials | None) -> dict[str, Any]:
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise ApiError(status_code=401, code="INVALID_TOKEN", message="Missing bearer token.")
    return decode_token(credentials.credentials)


def require_admin(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> dict[str, Any]:
    payload = _bearer_payload(credentials)
    if payload.get("role") != ROLE_ADMIN:
        raise ApiError(status_code=403, code="FORBIDDEN", message="Insufficient permissions.")

    request.state.actor = "admin"
    request.state.actor_id = str(payload.get("username") or payload.get("sub") or "admin")
    return payload


def require_worker(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> dict[str, Any]:
    payload = _bearer_payload(credentials)
    worker_id = payload.get("worker_id")
    if payload.get("role") != ROLE_WORKER or not isinstance(worker_id, int):
        raise ApiError(status_code=401, code="INVALID_TOKEN", message="Token is not a worker session.")

    request.state.actor = "worker"
    request.state.actor_id = str(worker_id)
    return payload
