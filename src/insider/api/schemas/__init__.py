"""API schemas package."""

from insider.api.schemas.common import ErrorDetail, HealthResponse, ProblemDetail
from insider.api.schemas.pipeline import (
    CollectorConfigBody,
    CollectorConfigResponse,
    EntryUpdateResponse,
    PipelineSettingsBody,
    SettingsResponse,
    StageAccepted,
    SuccessResponse,
)

__all__ = [
    "CollectorConfigBody",
    "CollectorConfigResponse",
    "EntryUpdateResponse",
    "ErrorDetail",
    "HealthResponse",
    "PipelineSettingsBody",
    "ProblemDetail",
    "SettingsResponse",
    "StageAccepted",
    "SuccessResponse",
]
