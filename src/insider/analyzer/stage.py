"""Analyze stage — load documents, run one merge pass, save the catalog.

The pass works on a snapshot: settings are read once at the start and
the catalog is written once at the end.  If anything in the store fails
the error is logged with its key and re-raised, and the previously
stored catalog stays as it was.
"""

from __future__ import annotations

from insider.analyzer.merge import MergeEngine
from insider.core.errors import PersistenceError
from insider.core.logging import get_logger
from insider.core.models import Catalog, PipelineSettings, RawBatch
from insider.core.storage import CATALOG_KEY, RAW_KEY, SETTINGS_KEY, DocumentStore

logger = get_logger(__name__)


async def run_analysis(store: DocumentStore, engine: MergeEngine) -> Catalog | None:
    """Run one analyze pass. Returns ``None`` when the pass was skipped."""
    try:
        raw = await store.load(RAW_KEY)
        if raw is None:
            logger.warning("no_raw_data", hint="run the collect stage first")
            return None

        settings = PipelineSettings.from_dict(await store.load(SETTINGS_KEY))
        logger.info("settings_loaded", **settings.to_dict())
        if settings.maintenance_mode:
            logger.info("maintenance_mode_skipping")
            return None

        batch = RawBatch.from_dict(raw)
        existing = Catalog.from_dict(await store.load(CATALOG_KEY) or {})
        logger.info("analysis_started", batch=batch.total_count, existing=existing.total_count)

        catalog = await engine.run_pass(batch.repositories, settings, existing)
        await store.save(CATALOG_KEY, catalog.to_dict())
    except PersistenceError as exc:
        logger.error("analysis_aborted", **exc.to_dict())
        raise

    logger.info("analysis_completed", total=catalog.total_count)
    return catalog
