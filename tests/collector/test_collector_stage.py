"""
Tests for the collect stage: paging policy and raw batch persistence.
"""

from __future__ import annotations

import pytest

from insider.collector.stage import fetch_batch, run_collection
from insider.core.errors import PersistenceError, RateLimitError, TransientUpstreamError
from insider.core.models import CollectorConfig
from insider.core.storage import CONFIG_KEY, RAW_KEY, MemoryDocumentStore

from conftest import NOW, FakeFetcher, make_record


class TestFetchBatch:
    @pytest.mark.asyncio
    async def test_pages_until_max_pages_with_delay(self, no_sleep):
        fetcher = FakeFetcher([[make_record("a")], [make_record("b")], [make_record("c")], [make_record("d")]])
        records = await fetch_batch(fetcher, CollectorConfig(max_pages=3), delay_seconds=1.0, sleep=no_sleep)
        assert [r.name for r in records] == ["a", "b", "c"]
        assert [page for _, page, _ in fetcher.requests] == [1, 2, 3]
        assert no_sleep.delays == [1.0, 1.0]

    @pytest.mark.asyncio
    async def test_stops_on_empty_page(self, no_sleep):
        fetcher = FakeFetcher([[make_record("a")], []])
        records = await fetch_batch(fetcher, CollectorConfig(max_pages=3), sleep=no_sleep)
        assert len(records) == 1
        assert len(fetcher.requests) == 2

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [RateLimitError(), TransientUpstreamError("502")])
    async def test_keeps_items_fetched_before_error(self, no_sleep, error):
        fetcher = FakeFetcher([[make_record("a")], error, [make_record("c")]])
        records = await fetch_batch(fetcher, CollectorConfig(max_pages=3), sleep=no_sleep)
        assert [r.name for r in records] == ["a"]
        assert len(fetcher.requests) == 2

    @pytest.mark.asyncio
    async def test_deduplicates_by_url(self, no_sleep):
        fetcher = FakeFetcher([[make_record("a")], [make_record("a", stars=99), make_record("b")]])
        records = await fetch_batch(fetcher, CollectorConfig(max_pages=2), sleep=no_sleep)
        assert [r.name for r in records] == ["a", "b"]
        assert records[0].stars == 10

    @pytest.mark.asyncio
    async def test_uses_selector_and_page_size(self, no_sleep):
        fetcher = FakeFetcher([])
        config = CollectorConfig(source_selector="topic:mcp", per_page=50)
        await fetch_batch(fetcher, config, sleep=no_sleep)
        assert fetcher.requests == [("topic:mcp", 1, 50)]


class TestRunCollection:
    @pytest.mark.asyncio
    async def test_saves_raw_and_history(self, store, no_sleep):
        fetcher = FakeFetcher([[make_record("a"), make_record("b")]])
        batch = await run_collection(store, fetcher, sleep=no_sleep, now=lambda: NOW)

        assert batch is not None and batch.total_count == 2
        raw = store.documents[RAW_KEY]
        assert raw["timestamp"] == "2025-03-01T12:00:00.000Z"
        assert raw["total_count"] == 2
        assert store.documents["history/2025-03-01T12-00-00-000Z"] == raw

    @pytest.mark.asyncio
    async def test_disabled_collector_skips(self, no_sleep):
        store = MemoryDocumentStore({CONFIG_KEY: {"collector": {"enabled": False}}})
        fetcher = FakeFetcher([[make_record("a")]])
        assert await run_collection(store, fetcher, sleep=no_sleep) is None
        assert fetcher.requests == []
        assert RAW_KEY not in store.documents

    @pytest.mark.asyncio
    async def test_force_overrides_disabled(self, no_sleep):
        store = MemoryDocumentStore({CONFIG_KEY: {"collector": {"enabled": False}}})
        batch = await run_collection(store, FakeFetcher([[make_record("a")]]), force=True, sleep=no_sleep)
        assert batch is not None

    @pytest.mark.asyncio
    async def test_store_failure_propagates(self, store, no_sleep):
        store.fail_on_save.add(RAW_KEY)
        with pytest.raises(PersistenceError):
            await run_collection(store, FakeFetcher([[make_record("a")]]), sleep=no_sleep)
