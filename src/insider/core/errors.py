"""
Structured error types for the insider pipeline.

Every failure the pipeline can hit is classified into one of a small set
of classes so callers can decide, without string matching, whether to
skip a unit of work, abort a pass, or reject a request.

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────────┐
        │                       InsiderError                               │
        │  (category, retryable, retry_after, context, cause)             │
        ├─────────────────────────────────────────────────────────────────┤
        │                                                                  │
        │  TransientUpstreamError   EnrichmentError     PersistenceError  │
        │  (NETWORK, retryable)     (UPSTREAM)          (STORAGE)         │
        │       │                       │                                  │
        │  RateLimitError           ModelUnavailableError                  │
        │                           ModelExhaustedError                    │
        │                                                                  │
        │  ValidationError          NotFoundError       ConfigError       │
        │  (VALIDATION)             (NOT_FOUND)         (CONFIG)          │
        │       │                                                          │
        │  StageValidationError                                            │
        └─────────────────────────────────────────────────────────────────┘

Propagation rules:
    - Per-record failures (``TransientUpstreamError``, ``EnrichmentError``)
      never abort a pass.
    - ``ModelExhaustedError`` stops enrichment for the rest of the pass;
      partial results are still persisted.
    - ``PersistenceError`` aborts the pass and leaves the stored
      documents as they were.
    - ``ValidationError`` rejects a request before any side effect.

Examples:
    >>> error = TransientUpstreamError("search returned 502")
    >>> error.retryable
    True
    >>> error.with_context(url="https://api.github.com").context.url
    'https://api.github.com'

Tags:
    error-handling, exception-hierarchy, insider, pipeline
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Standard error categories for classification and logging."""

    NETWORK = "NETWORK"
    UPSTREAM = "UPSTREAM"
    STORAGE = "STORAGE"
    VALIDATION = "VALIDATION"
    NOT_FOUND = "NOT_FOUND"
    CONFIG = "CONFIG"
    INTERNAL = "INTERNAL"


@dataclass
class ErrorContext:
    """Structured metadata attached to an error.

    Attributes:
        stage: Pipeline stage that raised the error (collect/analyze/deploy).
        key: Document store key involved, if any.
        url: Entity identifier or remote URL.
        model: Enrichment model identifier, if any.
        http_status: HTTP status code if applicable.
        metadata: Additional key-value pairs.
    """

    stage: str | None = None
    key: str | None = None
    url: str | None = None
    model: str | None = None
    http_status: int | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for name in ["stage", "key", "url", "model", "http_status"]:
            value = getattr(self, name)
            if value is not None:
                result[name] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class InsiderError(Exception):
    """Base exception for all insider errors.

    Subclasses set ``default_category`` and ``default_retryable``; callers
    may override either per instance.
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        retry_after: int | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.retry_after = retry_after
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> InsiderError:
        """
        Add context to this error (fluent API).

        Usage:
            raise PersistenceError("write failed").with_context(key="catalog")
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key) and key != "metadata":
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        if self.retry_after is not None:
            result["retry_after"] = self.retry_after
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# UPSTREAM ERRORS (fetch / enrichment)
# =============================================================================


class TransientUpstreamError(InsiderError):
    """Remote fetch or enrichment call was unavailable or throttled.

    The affected unit (one page, one record) is skipped; the pass
    continues.
    """

    default_category = ErrorCategory.NETWORK
    default_retryable = True


class RateLimitError(TransientUpstreamError):
    """Upstream rate limit exceeded (HTTP 403/429 from the search API)."""

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        *,
        retry_after: int = 60,
        **kwargs: Any,
    ):
        super().__init__(message, retry_after=retry_after, **kwargs)


class EnrichmentError(InsiderError):
    """Enrichment of a single record failed (bad output, refused prompt, ...)."""

    default_category = ErrorCategory.UPSTREAM


class ModelUnavailableError(EnrichmentError):
    """The requested model does not exist or is not served to this caller."""


class ModelExhaustedError(EnrichmentError):
    """No enrichment model is left to try for the rest of the session."""


# =============================================================================
# STORAGE
# =============================================================================


class PersistenceError(InsiderError):
    """Document store read or write failed. Fatal to the current pass."""

    default_category = ErrorCategory.STORAGE


# =============================================================================
# REQUEST / CONFIG
# =============================================================================


class ValidationError(InsiderError):
    """Malformed input; rejected before any side effect."""

    default_category = ErrorCategory.VALIDATION

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        value: Any = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.field = field
        self.value = value

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.field:
            result["field"] = self.field
        return result


class StageValidationError(ValidationError):
    """Requested pipeline stage is not in the fixed stage map."""

    def __init__(self, stage: str, allowed: list[str] | tuple[str, ...]):
        super().__init__(
            f"Unknown stage {stage!r}; expected one of {', '.join(allowed)}",
            field="stage",
            value=stage,
        )
        self.stage = stage


class NotFoundError(InsiderError):
    """Entity does not exist (the caller's desired state may already hold)."""

    default_category = ErrorCategory.NOT_FOUND


class ConfigError(InsiderError):
    """Configuration document missing or invalid."""

    default_category = ErrorCategory.CONFIG


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================


def is_retryable(error: Exception) -> bool:
    """Check if an error is retryable."""
    if isinstance(error, InsiderError):
        return error.retryable
    return isinstance(error, (ConnectionError, TimeoutError))


def categorize_error(error: Exception) -> ErrorCategory:
    """Get the category of an error."""
    if isinstance(error, InsiderError):
        return error.category
    if isinstance(error, (ConnectionError, TimeoutError)):
        return ErrorCategory.NETWORK
    if isinstance(error, OSError):
        return ErrorCategory.STORAGE
    if isinstance(error, ValueError):
        return ErrorCategory.VALIDATION
    return ErrorCategory.INTERNAL


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "InsiderError",
    "TransientUpstreamError",
    "RateLimitError",
    "EnrichmentError",
    "ModelUnavailableError",
    "ModelExhaustedError",
    "PersistenceError",
    "ValidationError",
    "StageValidationError",
    "NotFoundError",
    "ConfigError",
    "is_retryable",
    "categorize_error",
]
