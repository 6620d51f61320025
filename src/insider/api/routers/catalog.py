"""
Catalog router — operator edits on analyzed entries.

Endpoints:
    GET    /data          Full catalog document
    POST   /data/{url}    Shallow-merge the body into one entry
    DELETE /data/{url}    Remove one entry

Entries are edited as raw documents so operator-added fields survive.
The entry url may contain slashes; clients send it percent-encoded.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body

from insider.api.deps import Store
from insider.api.schemas.pipeline import EntryUpdateResponse, SuccessResponse
from insider.core.errors import NotFoundError, ValidationError
from insider.core.logging import get_logger
from insider.core.models import EntryStatus
from insider.core.storage import CATALOG_KEY

router = APIRouter(prefix="/data")
logger = get_logger(__name__)


def empty_catalog() -> dict[str, Any]:
    return {"last_updated": None, "total_count": 0, "projects": []}


_STATUSES = {status.value for status in EntryStatus}


def _find(projects: list[dict[str, Any]], url: str) -> int:
    for index, project in enumerate(projects):
        if project.get("url") == url:
            return index
    raise NotFoundError(f"No catalog entry for {url}").with_context(url=url)


@router.get("")
async def get_catalog(store: Store) -> dict[str, Any]:
    """Return the catalog document as stored."""
    return await store.load(CATALOG_KEY) or empty_catalog()


@router.post("/{url:path}", response_model=EntryUpdateResponse)
async def update_entry(url: str, store: Store, updates: dict[str, Any] = Body(...)) -> EntryUpdateResponse:
    """Shallow-merge ``updates`` into the entry identified by ``url``."""
    if "url" in updates and updates["url"] != url:
        raise ValidationError("An entry's url cannot be changed", field="url", value=updates["url"])
    if "status" in updates and updates["status"] not in _STATUSES:
        raise ValidationError(
            f"status must be one of {', '.join(sorted(_STATUSES))}",
            field="status",
            value=updates["status"],
        )

    document = await store.load(CATALOG_KEY) or empty_catalog()
    projects = document.setdefault("projects", [])
    index = _find(projects, url)
    projects[index] = {**projects[index], **updates}
    await store.save(CATALOG_KEY, document)

    logger.info("entry_updated", url=url, fields=sorted(updates))
    return EntryUpdateResponse(project=projects[index])


@router.delete("/{url:path}", response_model=SuccessResponse)
async def delete_entry(url: str, store: Store) -> SuccessResponse:
    """Remove the entry identified by ``url``."""
    document = await store.load(CATALOG_KEY) or empty_catalog()
    projects = document.get("projects", [])
    del projects[_find(projects, url)]
    document["projects"] = projects
    document["total_count"] = len(projects)
    await store.save(CATALOG_KEY, document)

    logger.info("entry_deleted", url=url, total=len(projects))
    return SuccessResponse()
