"""Collect stage — page through the search capability and persist a raw batch.

A collection pass reads ``CollectorConfig``, fetches up to ``max_pages``
pages of ``per_page`` items with a fixed delay between pages, and writes
the batch twice: as the current ``raw`` document and as a timestamped
history snapshot.

Paging stops early on an empty page or on any upstream error; what was
fetched before the error is still saved.  Store failures propagate.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from datetime import datetime

from insider.collector.github import SearchFetcher
from insider.core.errors import RateLimitError, TransientUpstreamError
from insider.core.logging import get_logger
from insider.core.models import CollectorConfig, RawBatch, SourceRecord, format_timestamp, utcnow
from insider.core.storage import CONFIG_KEY, RAW_KEY, DocumentStore, history_key

logger = get_logger(__name__)

Sleep = Callable[[float], Awaitable[None]]


async def fetch_batch(
    fetcher: SearchFetcher,
    config: CollectorConfig,
    *,
    delay_seconds: float = 1.0,
    sleep: Sleep = asyncio.sleep,
) -> list[SourceRecord]:
    """Fetch every page allowed by ``config``, de-duplicated by url."""
    records: dict[str, SourceRecord] = {}
    for page in range(1, config.max_pages + 1):
        logger.info("fetching_page", page=page, query=config.source_selector)
        try:
            items = await fetcher.fetch_page(config.source_selector, page, config.per_page)
        except RateLimitError as exc:
            logger.warning("rate_limited", page=page, retry_after=exc.retry_after, **exc.context.to_dict())
            break
        except TransientUpstreamError as exc:
            logger.warning("page_fetch_failed", page=page, error=exc.message, **exc.context.to_dict())
            break

        if not items:
            logger.info("no_more_items", page=page)
            break

        for record in items:
            logger.debug("record_found", name=record.name)
            records.setdefault(record.url, record)

        if page < config.max_pages:
            await sleep(delay_seconds)
    return list(records.values())


async def run_collection(
    store: DocumentStore,
    fetcher: SearchFetcher,
    *,
    force: bool = False,
    delay_seconds: float = 1.0,
    sleep: Sleep = asyncio.sleep,
    now: Callable[[], datetime] = utcnow,
) -> RawBatch | None:
    """Run one collection pass. Returns ``None`` when the collector is disabled."""
    config = CollectorConfig.from_dict(await store.load(CONFIG_KEY))
    if not config.enabled and not force:
        logger.info("collector_disabled_skipping")
        return None

    logger.info("collection_started", query=config.source_selector, max_pages=config.max_pages)
    records = await fetch_batch(fetcher, config, delay_seconds=delay_seconds, sleep=sleep)

    stamp = format_timestamp(now())
    batch = RawBatch(timestamp=stamp, repositories=records)
    document = batch.to_dict()
    await store.save(RAW_KEY, document)
    await store.save(history_key(stamp), document)

    logger.info("collection_completed", count=batch.total_count)
    return batch
