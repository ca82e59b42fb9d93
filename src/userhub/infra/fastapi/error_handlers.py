"""RFC 7807 Problem Details exception handlers for FastAPI.

Translates the domain exception taxonomy into ``application/problem+json``
responses:

- NotFoundError -> 404
- ValidationError (incl. MissingRequiredFieldError) -> 422
- ConflictError (incl. DuplicateEmailError) -> 409
- TransientStoreError -> 503 with ``Retry-After``
- DomainError -> 400 (fallback)
- RequestValidationError -> 422
- Exception -> 500 with correlation id

Usage:
    from userhub.infra.fastapi.error_handlers import register_exception_handlers

    app = FastAPI()
    register_exception_handlers(app)
"""

from __future__ import annotations

import json
import logging
import re
from datetime import datetime
from typing import TYPE_CHECKING, Any
from uuid import UUID

from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from userhub.foundation.domain.exceptions import (
    ConflictError,
    DomainError,
    NotFoundError,
    TransientStoreError,
    ValidationError,
)
from userhub.infra.fastapi.middleware.request_id import get_request_id
from userhub.infra.observability.logging import SensitiveDataProcessor

if TYPE_CHECKING:
    from fastapi import FastAPI, Request

logger = logging.getLogger(__name__)

PROBLEM_MEDIA_TYPE = "application/problem+json"
RETRY_AFTER_SECONDS = 5


class ProblemDetail(BaseModel):
    """RFC 7807 Problem Details response model.

    ``error_code``, ``context`` and ``correlation_id`` are extension members.
    """

    type: str = Field(..., examples=["/errors/not-found"])
    title: str = Field(..., examples=["Resource Not Found"])
    status: int = Field(..., ge=400, le=599)
    detail: str
    instance: str | None = None
    error_code: str | None = Field(default=None, examples=["DUPLICATE_EMAIL"])
    context: dict[str, Any] | None = None
    correlation_id: str | None = None


_SENSITIVE_PATTERNS = [
    (re.compile(r"postgresql(\+\w+)?://[^@\s]*@[^/\s]*"), "postgresql://[REDACTED]@[REDACTED]"),
    (re.compile(r"amqps?://[^@\s]*@[^/\s]*"), "amqp://[REDACTED]@[REDACTED]"),
    (re.compile(r"password\s*=\s*['\"]?[^'\"\s]+['\"]?", re.IGNORECASE), "password=[REDACTED]"),
]


def _create_problem_response(problem: ProblemDetail) -> JSONResponse:
    return JSONResponse(
        status_code=problem.status,
        content=problem.model_dump(exclude_none=True),
        media_type=PROBLEM_MEDIA_TYPE,
    )


def _get_correlation_id() -> str:
    return get_request_id() or "unknown"


def _sanitize_context(context: dict[str, Any] | None) -> dict[str, Any] | None:
    """Drop credential-like keys and make values JSON-safe."""
    if not context:
        return None
    sanitized = {
        key: _sanitize_value(value)
        for key, value in context.items()
        if not SensitiveDataProcessor.is_sensitive(key)
    }
    return sanitized or None


def _sanitize_value(value: Any) -> Any:
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, str):
        for pattern, replacement in _SENSITIVE_PATTERNS:
            value = pattern.sub(replacement, value)
        return value
    if isinstance(value, dict):
        return _sanitize_context(value)
    if isinstance(value, (list, tuple)):
        return [_sanitize_value(v) for v in value]
    try:
        json.dumps(value)
    except (TypeError, ValueError):
        return str(value)
    return value


def _domain_problem(
    request: Request,
    exc: DomainError,
    *,
    type_: str,
    title: str,
    status: int,
) -> ProblemDetail:
    return ProblemDetail(
        type=type_,
        title=title,
        status=status,
        detail=str(exc),
        instance=str(request.url.path),
        error_code=exc.error_code,
        context=_sanitize_context(exc.context),
    )


async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    """Translate NotFoundError to 404."""
    problem = _domain_problem(
        request, exc, type_="/errors/not-found", title="Resource Not Found", status=404
    )
    return _create_problem_response(problem)


async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    """Translate ValidationError (and MissingRequiredFieldError) to 422.

    The context names the offending field(s) so clients can highlight them.
    """
    problem = _domain_problem(
        request, exc, type_="/errors/validation-error", title="Validation Error", status=422
    )
    return _create_problem_response(problem)


async def conflict_error_handler(request: Request, exc: ConflictError) -> JSONResponse:
    """Translate ConflictError (and DuplicateEmailError) to 409."""
    problem = _domain_problem(request, exc, type_="/errors/conflict", title="Conflict", status=409)
    return _create_problem_response(problem)


async def transient_store_handler(request: Request, exc: TransientStoreError) -> JSONResponse:
    """Translate TransientStoreError to 503 with a ``Retry-After`` hint.

    The underlying driver message is logged but not returned.
    """
    logger.warning(
        "transient_store_error",
        extra={"path": str(request.url.path), "operation": exc.operation},
    )
    problem = ProblemDetail(
        type="/errors/service-unavailable",
        title="Service Unavailable",
        status=503,
        detail="The user store is temporarily unavailable. Retry later.",
        instance=str(request.url.path),
        error_code=exc.error_code,
        context=_sanitize_context(exc.context),
        correlation_id=_get_correlation_id(),
    )
    response = _create_problem_response(problem)
    response.headers["Retry-After"] = str(RETRY_AFTER_SECONDS)
    return response


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    """Fallback for domain errors without a more specific handler: 400."""
    problem = _domain_problem(
        request, exc, type_="/errors/domain-error", title="Bad Request", status=400
    )
    return _create_problem_response(problem)


async def request_validation_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """Translate request body/query/path validation failures to 422."""
    errors = [
        {
            "loc": list(error.get("loc", [])),
            "msg": error.get("msg", ""),
            "type": error.get("type", ""),
        }
        for error in exc.errors()
    ]
    problem = ProblemDetail(
        type="/errors/request-validation-error",
        title="Request Validation Error",
        status=422,
        detail="Request validation failed",
        instance=str(request.url.path),
        error_code="REQUEST_VALIDATION_ERROR",
        context={"errors": errors},
    )
    return _create_problem_response(problem)


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all: log with traceback, answer 500 with a correlation id.

    In debug mode the exception type and message are included.
    """
    correlation_id = _get_correlation_id()
    logger.exception(
        "unhandled_exception",
        extra={
            "correlation_id": correlation_id,
            "path": str(request.url.path),
            "method": request.method,
            "exception_type": type(exc).__name__,
        },
    )

    if getattr(request.app, "debug", False):
        detail = f"{type(exc).__name__}: {exc}"
        context: dict[str, Any] | None = {"exception_type": type(exc).__name__}
    else:
        detail = "An internal error occurred. Please contact support with the correlation ID."
        context = None

    problem = ProblemDetail(
        type="/errors/internal-error",
        title="Internal Server Error",
        status=500,
        detail=detail,
        instance=str(request.url.path),
        error_code="INTERNAL_ERROR",
        context=context,
        correlation_id=correlation_id,
    )
    return _create_problem_response(problem)


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers, most specific first.

    Args:
        app: FastAPI application instance.
    """
    # Starlette's handler typing is stricter than the runtime dispatch.
    app.add_exception_handler(NotFoundError, not_found_handler)  # type: ignore[arg-type]
    app.add_exception_handler(ValidationError, validation_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(ConflictError, conflict_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(TransientStoreError, transient_store_handler)  # type: ignore[arg-type]
    app.add_exception_handler(DomainError, domain_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, request_validation_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, unhandled_exception_handler)
