"""Domain errors and the JSON error envelope shared by every endpoint.

Services raise the domain errors below; the handlers registered in
``gigvora.main`` translate them into 4xx responses so routers never need to
catch them one by one.
"""
from typing import Any

import sentry_sdk
import structlog
from fastapi import HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel

logger = structlog.get_logger()


class ErrorResponse(BaseModel):
    """Standard error envelope returned by all API error handlers."""
    error: str
    message: str
    detail: Any = None
    request_id: str = "unknown"


class DomainError(Exception):
    """Base class for expected, user-facing failures."""

    status_code = 400
    error = "bad_request"

    def __init__(self, message: str, details: list[Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or []


class ValidationError(DomainError, ValueError):
    status_code = 422
    error = "validation_error"


class NotFoundError(DomainError, LookupError):
    status_code = 404
    error = "not_found"


class AuthorizationError(DomainError, PermissionError):
    status_code = 403
    error = "forbidden"


class ConflictError(DomainError):
    status_code = 409
    error = "conflict"


def _request_id(request: Request) -> str:
    return request.headers.get("x-request-id", "unknown")


async def domain_exception_handler(request: Request, exc: DomainError) -> JSONResponse:
    """Map a domain error to its status code inside the shared envelope."""
    logger.info(
        "domain_error",
        error=exc.error,
        message=exc.message,
        path=request.url.path,
        method=request.method,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=exc.error,
            message=exc.message,
            detail=jsonable_encoder(exc.details) or None,
            request_id=_request_id(request),
        ).model_dump(),
    )


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content=ErrorResponse(
            error="validation_error",
            message="Request payload failed validation.",
            detail=jsonable_encoder(exc.errors()),
            request_id=_request_id(request),
        ).model_dump(),
    )


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch unhandled exceptions and return a consistent JSON envelope."""
    request_id = _request_id(request)

    logger.error(
        "unhandled_exception",
        error=str(exc),
        error_type=type(exc).__name__,
        path=request.url.path,
        method=request.method,
        request_id=request_id,
    )

    sentry_sdk.capture_exception(exc)

    return JSONResponse(
        status_code=500,
        content={
            "error": "internal_server_error",
            "message": "An unexpected error occurred. Our team has been notified.",
            "request_id": request_id,
        },
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Standardize HTTPException responses into the same JSON envelope."""
    if isinstance(exc.detail, dict):
        error = exc.detail.get("error", f"http_{exc.status_code}")
        message = exc.detail.get("message", str(exc.detail))
        detail: Any = exc.detail.get("detail")
    else:
        error = f"http_{exc.status_code}"
        message = str(exc.detail)
        detail = exc.detail

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": error,
            "message": message,
            "detail": detail,
            "request_id": _request_id(request),
        },
        headers=dict(exc.headers or {}),
    )
