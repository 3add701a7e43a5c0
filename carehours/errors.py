from __future__ import annotations

from fastapi import Request
from fastapi.responses import JSONResponse


class ApiError(Exception):
    def __init__(self, status_code: int, code: str, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.code = code
        self.message = message


def missing_parameters_error(names: list[str]) -> ApiError:
    return ApiError(
        status_code=400,
        code="MISSING_PARAMETERS",
        message=f"Missing required parameters: {', '.join(names)}",
    )


def store_error(exc: Exception) -> ApiError:
    # SQLAlchemy wraps the driver error in .orig; pass the driver message through.
    original = getattr(exc, "orig", None)
    message = str(original) if original is not None else str(exc)
    return ApiError(status_code=500, code="STORE_ERROR", message=message.strip() or "Data store error.")


def get_request_id(request: Request) -> str:
    request_id = getattr(request.state, "request_id", None)
    if request_id:
        return str(request_id)
    return "unknown"


def error_response(request: Request, *, status_code: int, code: str, message: str) -> JSONResponse:
    # Clients only rely on "error" being a plain string.
    payload = {
        "error": message,
        "code": code,
        "request_id": get_request_id(request),
    }
    return JSONResponse(status_code=status_code, content=payload)
