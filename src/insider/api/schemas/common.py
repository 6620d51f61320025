"""
Common API schemas — RFC 7807 errors and small shared envelopes.

Every error response is a :class:`ProblemDetail`::

    {
        "type": "about:blank",
        "title": "Not Found",
        "status": 404,
        "detail": "No catalog entry for https://github.com/a/b",
        "instance": "/api/data/https://github.com/a/b",
        "errors": []
    }
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class ErrorDetail(BaseModel):
    """Field-level error inside a problem document."""

    code: str = Field(description="Machine-readable error code (e.g. 'INVALID_STAGE')")
    message: str = Field(description="Human-readable error description")
    field: str | None = Field(default=None, description="Field path if error is field-specific")


class ProblemDetail(BaseModel):
    """RFC 7807 «Problem Details for HTTP APIs»."""

    type: str = Field(default="about:blank", description="Error type URI")
    title: str = Field(description="Short human-readable error summary")
    status: int = Field(description="HTTP status code")
    detail: str = Field(default="", description="Human-readable explanation of the error")
    instance: str = Field(default="", description="URI of the failing request")
    errors: list[ErrorDetail] = Field(default_factory=list)


class HealthResponse(BaseModel):
    status: str = "healthy"
    service: str = "mcp-insider"
    version: str = ""
