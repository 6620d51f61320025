"""
Merge engine — reconcile a freshly fetched batch with the persisted catalog.

``MergeEngine.run_pass(source_batch, settings, existing)`` is a pure
transformation from (batch, settings snapshot, catalog) to a new catalog.
It never touches the store; the analyze stage loads and saves around it.

Pass outline::

    1. retention   drop entries with age(analyzed_at) > retention_days
                   (no analyzed_at → never pruned; age == limit → kept)
    2. enrichment  one record at a time, fixed delay between calls,
                   sticky model fallback through the EnrichmentSession
    3. reconcile   published stays published, otherwise
                   auto_publish ? published : draft; analyzed_at = now
    4. result      retained entries (existing order, replaced in place)
                   followed by new urls; counts and last_updated recomputed

Failure handling:
    - ``EnrichmentError`` / ``TransientUpstreamError`` for one record:
      logged, record left out of this pass, the pass continues.
    - ``ModelExhaustedError``: logged once, every remaining record is left
      unenriched, the partial result is returned.
    - Anything else propagates.

Tags:
    insider, analyzer, merge-engine, retention, publish-state
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from datetime import datetime

from insider.analyzer.enrichment import Enricher
from insider.core.errors import EnrichmentError, ModelExhaustedError, TransientUpstreamError
from insider.core.logging import get_logger
from insider.core.models import (
    Annotation,
    Catalog,
    CatalogEntry,
    EntryStatus,
    PipelineSettings,
    SourceRecord,
    utcnow,
)

logger = get_logger(__name__)

ENRICHMENT_DELAY_SECONDS = 2.0


@dataclass
class PassStats:
    """Counters for one merge pass."""

    retained: int = 0
    pruned: int = 0
    enriched: int = 0
    skipped: int = 0
    unenriched: int = 0
    models_exhausted: bool = False


def apply_retention(
    entries: Sequence[CatalogEntry],
    retention_days: int,
    now: datetime,
) -> tuple[list[CatalogEntry], list[CatalogEntry]]:
    """Split entries into (kept, pruned) by age relative to ``analyzed_at``."""
    kept: list[CatalogEntry] = []
    pruned: list[CatalogEntry] = []
    for entry in entries:
        age = entry.age_days(now)
        if age is not None and age > retention_days:
            pruned.append(entry)
        else:
            kept.append(entry)
    return kept, pruned


def resolve_status(existing: CatalogEntry | None, settings: PipelineSettings) -> EntryStatus:
    """Publish state for a re-merged entry. Never downgrades ``published``."""
    if existing is not None and existing.is_published:
        return EntryStatus.PUBLISHED
    return EntryStatus.PUBLISHED if settings.auto_publish else EntryStatus.DRAFT


def reconcile(
    record: SourceRecord,
    annotation: Annotation,
    existing: CatalogEntry | None,
    settings: PipelineSettings,
    now: datetime,
) -> CatalogEntry:
    """Build the entry for a freshly enriched record."""
    return CatalogEntry(
        record=record,
        analysis=annotation,
        status=resolve_status(existing, settings),
        analyzed_at=now,
    )


class MergeEngine:
    """Runs merge passes with a shared :class:`Enricher`.

    Args:
        enricher: Enricher holding the process-wide EnrichmentSession.
        delay_seconds: Pause between consecutive enrichment calls.
        sleep: Awaitable sleep, injectable for tests.
        clock: Source of "now", injectable for tests.

    Attributes:
        last_stats: Counters from the most recent pass.
    """

    def __init__(
        self,
        enricher: Enricher,
        *,
        delay_seconds: float = ENRICHMENT_DELAY_SECONDS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.enricher = enricher
        self.delay_seconds = delay_seconds
        self._sleep = sleep
        self._clock = clock
        self.last_stats = PassStats()

    async def run_pass(
        self,
        source_batch: Sequence[SourceRecord],
        settings: PipelineSettings,
        existing: Catalog,
    ) -> Catalog:
        stats = PassStats()
        self.last_stats = stats
        started = self._clock()

        kept, pruned = apply_retention(existing.entries, settings.retention_days, started)
        stats.retained, stats.pruned = len(kept), len(pruned)
        for entry in pruned:
            logger.info("entry_pruned", url=entry.url, retention_days=settings.retention_days)

        merged: dict[str, CatalogEntry] = {entry.url: entry for entry in kept}

        logger.info("enrichment_started", records=len(source_batch))
        for position, record in enumerate(source_batch):
            if position:
                await self._sleep(self.delay_seconds)

            logger.info("enriching_record", name=record.name, url=record.url)
            try:
                annotation = await self.enricher.enrich(record)
            except ModelExhaustedError:
                stats.models_exhausted = True
                stats.unenriched = len(source_batch) - position
                logger.error(
                    "models_exhausted",
                    remaining=stats.unenriched,
                    tried=[model for model, _ in self.enricher.session.retired],
                )
                break
            except (EnrichmentError, TransientUpstreamError) as exc:
                stats.skipped += 1
                logger.warning(
                    "enrichment_failed",
                    url=record.url,
                    error_class=type(exc).__name__,
                    error=exc.message,
                    **{k: v for k, v in exc.context.to_dict().items() if k != "url"},
                )
                continue

            merged[record.url] = reconcile(
                record, annotation, merged.get(record.url), settings, self._clock()
            )
            stats.enriched += 1

        catalog = Catalog(entries=list(merged.values()), last_updated=self._clock())
        logger.info(
            "merge_pass_completed",
            total=catalog.total_count,
            enriched=stats.enriched,
            skipped=stats.skipped,
            pruned=stats.pruned,
            unenriched=stats.unenriched,
        )
        return catalog
