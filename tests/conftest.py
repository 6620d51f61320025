"""
Shared pytest fixtures for insider tests.

Provides:
- Fixed clock values and record/entry builders
- In-memory document store and recording sleep
- A page-scripted fake for the search capability
- An admin API client over an in-memory store and scripted stages
"""

from __future__ import annotations

import sys
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest
from fastapi.testclient import TestClient

from insider.api.app import create_app
from insider.core.errors import InsiderError
from insider.core.models import (
    Annotation,
    Catalog,
    CatalogEntry,
    EntryStatus,
    SourceRecord,
)
from insider.core.settings import InsiderSettings, get_settings
from insider.core.storage import CATALOG_KEY, MemoryDocumentStore
from insider.gateway.gateway import StreamingGateway

NOW = datetime(2025, 3, 1, 12, 0, 0, tzinfo=UTC)


def make_record(name: str, **overrides: Any) -> SourceRecord:
    data: dict[str, Any] = {
        "name": name,
        "url": f"https://github.com/acme/{name}",
        "description": f"{name} server",
        "stars": 10,
        "updated_at": "2025-02-20T00:00:00Z",
        "language": "Python",
        "license": "MIT",
    }
    data.update(overrides)
    return SourceRecord(**data)


def make_entry(
    name: str,
    *,
    status: EntryStatus = EntryStatus.DRAFT,
    age_days: float | None = 1,
    summary: str = "old summary",
) -> CatalogEntry:
    return CatalogEntry(
        record=make_record(name),
        analysis=Annotation(summary=summary),
        status=status,
        analyzed_at=NOW - timedelta(days=age_days) if age_days is not None else None,
    )


class RecordingSleep:
    """Awaitable stand-in for ``asyncio.sleep`` that records delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


class FakeFetcher:
    """Search capability returning scripted pages.

    ``pages[n]`` is the result for page ``n + 1``; an exception in the
    list is raised instead of returned.
    """

    def __init__(self, pages: list[list[SourceRecord] | InsiderError]) -> None:
        self.pages = pages
        self.requests: list[tuple[str, int, int]] = []

    async def fetch_page(self, query: str, page: int, per_page: int = 30) -> list[SourceRecord]:
        self.requests.append((query, page, per_page))
        if page > len(self.pages):
            return []
        result = self.pages[page - 1]
        if isinstance(result, Exception):
            raise result
        return result


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def store() -> MemoryDocumentStore:
    return MemoryDocumentStore()


@pytest.fixture
def no_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch, tmp_path):
    """Point process settings at a temp dir and drop the cached instance."""
    for name in ("INSIDER_ADMIN_PASS", "GITHUB_TOKEN", "GH_TOKEN", "GEMINI_API_KEY"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("INSIDER_DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("INSIDER_PUBLIC_DIR", str(tmp_path / "public"))
    monkeypatch.chdir(tmp_path)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


# ── Admin API ────────────────────────────────────────────────────────────

STAGE_SCRIPTS = {
    "collect": "import sys; print('page 1'); print('page 2'); print('oops', file=sys.stderr)",
    "analyze": "import sys; sys.exit(2)",
    "deploy": "print('deployed')",
}


@pytest.fixture
def api_store() -> MemoryDocumentStore:
    catalog = Catalog(
        entries=[make_entry("alpha"), make_entry("beta", status=EntryStatus.PUBLISHED)],
        last_updated=NOW,
    )
    return MemoryDocumentStore({CATALOG_KEY: catalog.to_dict()})


@pytest.fixture
def stage_gateway() -> StreamingGateway:
    return StreamingGateway({name: (sys.executable, "-c", code) for name, code in STAGE_SCRIPTS.items()})


@pytest.fixture
def api_settings(tmp_path) -> InsiderSettings:
    return InsiderSettings(data_dir=tmp_path / "data")


@pytest.fixture
def client(api_settings, api_store, stage_gateway):
    app = create_app(api_settings, store=api_store, gateway=stage_gateway)
    with TestClient(app) as test_client:
        yield test_client
