"""
Error-handling middleware — maps insider errors to RFC 7807 responses.
"""

from __future__ import annotations

from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from insider.api.schemas.common import ErrorDetail, ProblemDetail
from insider.core.errors import ErrorCategory, InsiderError, ValidationError, categorize_error
from insider.core.logging import get_logger

logger = get_logger(__name__)

# ── Error category → HTTP status mapping ─────────────────────────────────

CATEGORY_TO_STATUS: dict[ErrorCategory, int] = {
    ErrorCategory.VALIDATION: 400,
    ErrorCategory.NOT_FOUND: 404,
    ErrorCategory.UPSTREAM: 502,
    ErrorCategory.NETWORK: 503,
    ErrorCategory.STORAGE: 500,
    ErrorCategory.CONFIG: 500,
    ErrorCategory.INTERNAL: 500,
}

_TITLES = {
    400: "Bad Request",
    404: "Not Found",
    422: "Unprocessable Entity",
    500: "Internal Server Error",
    502: "Bad Gateway",
    503: "Service Unavailable",
}


def status_for_category(category: ErrorCategory) -> int:
    """Resolve an error category to HTTP status, defaulting to 500."""
    return CATEGORY_TO_STATUS.get(category, 500)


def problem_response(
    *,
    status: int,
    title: str | None = None,
    detail: str = "",
    instance: str = "",
    errors: list[dict[str, Any]] | None = None,
) -> JSONResponse:
    """Build a RFC 7807 JSON error response."""
    body = ProblemDetail(
        title=title or _TITLES.get(status, "Error"),
        status=status,
        detail=detail,
        instance=instance,
    )
    if errors:
        body.errors = [ErrorDetail(**e) for e in errors]
    return JSONResponse(
        status_code=status,
        content=body.model_dump(),
        media_type="application/problem+json",
    )


async def insider_error_handler(request: Request, exc: InsiderError) -> JSONResponse:
    status = status_for_category(exc.category)
    if status >= 500:
        logger.error("request_failed", path=request.url.path, **exc.to_dict())
    errors = None
    if isinstance(exc, ValidationError) and exc.field:
        errors = [{"code": type(exc).__name__, "message": exc.message, "field": exc.field}]
    return problem_response(
        status=status,
        detail=exc.message,
        instance=request.url.path,
        errors=errors,
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {
            "code": err.get("type", "invalid"),
            "message": err.get("msg", ""),
            "field": ".".join(str(part) for part in err.get("loc", ())),
        }
        for err in exc.errors()
    ]
    return problem_response(
        status=422,
        detail="Request body failed validation",
        instance=request.url.path,
        errors=errors,
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all for unhandled exceptions — returns 500 with ProblemDetail."""
    logger.exception("unhandled_error", path=request.url.path, category=categorize_error(exc).value)
    return problem_response(
        status=500,
        detail=str(exc) if request.app.state.settings.debug else "An unexpected error occurred.",
        instance=request.url.path,
    )
