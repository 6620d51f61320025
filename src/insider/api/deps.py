"""
FastAPI dependency injection — shared singletons stashed on app state.

Usage in routers::

    from insider.api.deps import Store

    @router.get("/data")
    async def get_catalog(store: Store):
        ...
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request

from insider.core.settings import InsiderSettings, get_settings
from insider.core.storage import DocumentStore
from insider.gateway.gateway import StageRunner


def get_store(request: Request) -> DocumentStore:
    return request.app.state.store


def get_gateway(request: Request) -> StageRunner:
    return request.app.state.gateway


# ── Convenience type aliases ─────────────────────────────────────────────

Settings = Annotated[InsiderSettings, Depends(get_settings)]
Store = Annotated[DocumentStore, Depends(get_store)]
Gateway = Annotated[StageRunner, Depends(get_gateway)]
