"""
Stages router — run pipeline stages through the streaming gateway.

Endpoints:
    GET  /stream/{stage}   Run a stage, relay its output as Server-Sent Events
    POST /{stage}          Run a stage in the background, 202 Accepted

SSE wire format (one event per output line, ``done`` exactly once)::

    event: output
    data: {"text": "collection_started query=topic:model-context-protocol"}

    event: error
    data: {"text": "Traceback (most recent call last):"}

    event: done
    data: {"exit_code": 0}

An unknown stage is rejected before any process starts.  When the
client disconnects mid-stream the child process is terminated; the
response also closes the session once it finishes, so a body that
never starts streaming does not leave the child unsupervised.
"""

from __future__ import annotations

from collections.abc import AsyncIterator

from fastapi import APIRouter
from fastapi.responses import StreamingResponse
from starlette.background import BackgroundTask

from insider.api.deps import Gateway
from insider.api.schemas.pipeline import StageAccepted
from insider.core.logging import get_logger
from insider.gateway.session import StreamSession

router = APIRouter()
logger = get_logger(__name__)


async def _relay(session: StreamSession) -> AsyncIterator[str]:
    try:
        async for event in session:
            yield event.to_sse()
    finally:
        await session.aclose()


@router.get("/stream/{stage}")
async def stream_stage(stage: str, gateway: Gateway) -> StreamingResponse:
    """Run ``stage`` and stream its output until it exits."""
    session = await gateway.open(stage)
    return StreamingResponse(
        _relay(session),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
        background=BackgroundTask(session.aclose),
    )


@router.post("/{stage}", status_code=202, response_model=StageAccepted)
async def trigger_stage(stage: str, gateway: Gateway) -> StageAccepted:
    """Start ``stage`` without waiting for it."""
    session = await gateway.run_detached(stage)
    logger.info("stage_triggered", stage=stage, pid=session.pid)
    return StageAccepted(stage=stage, pid=session.pid)
