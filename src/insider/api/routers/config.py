"""
Config router — the collector section of the config document.

Endpoints:
    GET  /config    Whole config document, ``collector`` section normalised
    POST /config    Replace the ``collector`` section

Saving the document is what the scheduler daemon's watcher observes;
other sections of the document are left untouched.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter

from insider.api.deps import Store
from insider.api.schemas.pipeline import CollectorConfigBody, CollectorConfigResponse
from insider.core.logging import get_logger
from insider.core.models import CollectorConfig
from insider.core.storage import CONFIG_KEY

router = APIRouter(prefix="/config")
logger = get_logger(__name__)


@router.get("")
async def get_config(store: Store) -> dict[str, Any]:
    document = await store.load(CONFIG_KEY) or {}
    document["collector"] = CollectorConfig.from_dict(document).to_dict()
    return document


@router.post("", response_model=CollectorConfigResponse)
async def replace_collector_config(body: CollectorConfigBody, store: Store) -> CollectorConfigResponse:
    config = body.to_domain()
    document = await store.load(CONFIG_KEY) or {}
    document["collector"] = config.to_dict()
    await store.save(CONFIG_KEY, document)
    logger.info("collector_config_updated", **config.to_dict())
    return CollectorConfigResponse(collector=config.to_dict())
