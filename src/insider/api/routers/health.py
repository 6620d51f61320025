"""Health router — liveness probe at the root, outside the auth gate."""

from __future__ import annotations

from fastapi import APIRouter

from insider import __version__
from insider.api.schemas.common import HealthResponse

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    return HealthResponse(version=__version__)
