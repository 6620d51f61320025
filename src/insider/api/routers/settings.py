"""
Settings router — the pipeline settings document.

Endpoints:
    GET  /settings    Current settings (defaults when none are stored)
    POST /settings    Replace the settings; read by the next analyze pass
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter

from insider.api.deps import Store
from insider.api.schemas.pipeline import PipelineSettingsBody, SettingsResponse
from insider.core.logging import get_logger
from insider.core.models import PipelineSettings
from insider.core.storage import SETTINGS_KEY

router = APIRouter(prefix="/settings")
logger = get_logger(__name__)


@router.get("")
async def get_pipeline_settings(store: Store) -> dict[str, Any]:
    return PipelineSettings.from_dict(await store.load(SETTINGS_KEY)).to_dict()


@router.post("", response_model=SettingsResponse)
async def replace_pipeline_settings(body: PipelineSettingsBody, store: Store) -> SettingsResponse:
    settings = body.to_domain()
    await store.save(SETTINGS_KEY, settings.to_dict())
    logger.info("settings_updated", **settings.to_dict())
    return SettingsResponse(settings=settings.to_dict())
