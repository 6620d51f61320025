"""
Tests for the insider error hierarchy.
"""

from __future__ import annotations

from insider.core.errors import (
    ErrorCategory,
    ModelExhaustedError,
    ModelUnavailableError,
    PersistenceError,
    RateLimitError,
    StageValidationError,
    TransientUpstreamError,
    categorize_error,
    is_retryable,
)


class TestHierarchy:
    def test_rate_limit_is_transient(self):
        error = RateLimitError()
        assert isinstance(error, TransientUpstreamError)
        assert error.retryable
        assert error.retry_after == 60

    def test_model_errors_are_upstream(self):
        assert ModelUnavailableError("x").category is ErrorCategory.UPSTREAM
        assert ModelExhaustedError("x").category is ErrorCategory.UPSTREAM

    def test_persistence_is_not_retryable(self):
        assert not is_retryable(PersistenceError("disk full"))

    def test_stage_validation_carries_stage(self):
        error = StageValidationError("rm", ("collect", "analyze"))
        assert error.stage == "rm"
        assert error.field == "stage"
        assert "collect, analyze" in error.message


class TestContext:
    def test_known_fields_and_metadata(self):
        error = PersistenceError("boom").with_context(key="catalog", attempt=2)
        assert error.context.key == "catalog"
        assert error.context.metadata == {"attempt": 2}
        assert error.to_dict()["context"] == {"key": "catalog", "attempt": 2}

    def test_cause_is_chained(self):
        cause = OSError("no space")
        error = PersistenceError("write failed", cause=cause)
        assert error.__cause__ is cause
        assert error.to_dict()["cause"] == "no space"


class TestCategorize:
    def test_builtin_errors(self):
        assert categorize_error(TimeoutError()) is ErrorCategory.NETWORK
        assert categorize_error(FileNotFoundError()) is ErrorCategory.STORAGE
        assert categorize_error(ValueError()) is ErrorCategory.VALIDATION
        assert categorize_error(RuntimeError()) is ErrorCategory.INTERNAL
        assert is_retryable(ConnectionError())
