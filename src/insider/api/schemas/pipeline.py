"""Request and response bodies for the admin endpoints.

Request bodies validate before anything is written: a malformed
settings or config body is rejected with 422 and the stored document
stays as it was.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from insider.core.models import (
    DEFAULT_SOURCE_SELECTOR,
    MAX_INTERVAL_HOURS,
    MIN_INTERVAL_HOURS,
    CollectorConfig,
    PipelineSettings,
)


class PipelineSettingsBody(BaseModel):
    """Full replacement of the pipeline settings document."""

    model_config = ConfigDict(extra="forbid")

    auto_publish: bool = False
    retention_days: int = Field(default=30, ge=0, description="Days an analyzed entry is kept")
    maintenance_mode: bool = Field(default=False, description="Skip analyze passes while true")

    def to_domain(self) -> PipelineSettings:
        return PipelineSettings(**self.model_dump())


class CollectorConfigBody(BaseModel):
    """Full replacement of the collector section of the config document."""

    model_config = ConfigDict(extra="forbid")

    enabled: bool = True
    source_selector: str = Field(default=DEFAULT_SOURCE_SELECTOR, min_length=1)
    interval_hours: int = Field(default=24, ge=MIN_INTERVAL_HOURS, le=MAX_INTERVAL_HOURS)
    per_page: int = Field(default=30, ge=1, le=100)
    max_pages: int = Field(default=3, ge=1, le=10)

    def to_domain(self) -> CollectorConfig:
        return CollectorConfig(**self.model_dump())


class EntryUpdateResponse(BaseModel):
    success: bool = True
    project: dict[str, Any]


class SuccessResponse(BaseModel):
    success: bool = True


class SettingsResponse(BaseModel):
    success: bool = True
    settings: dict[str, Any]


class CollectorConfigResponse(BaseModel):
    success: bool = True
    collector: dict[str, Any]


class StageAccepted(BaseModel):
    """Acknowledgement for a detached stage run."""

    status: str = "accepted"
    stage: str
    pid: int
