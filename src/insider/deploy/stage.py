"""Deploy stage — export the published part of the catalog for the public site.

Reads the ``catalog`` document and writes ``<public_dir>/catalog.json``
with only the ``published`` entries, in catalog order.  Drafts never
leave the data directory.
"""

from __future__ import annotations

from pathlib import Path

from insider.core.errors import PersistenceError
from insider.core.logging import get_logger
from insider.core.models import Catalog
from insider.core.storage import CATALOG_KEY, DocumentStore, JsonFileStore

logger = get_logger(__name__)

PUBLIC_CATALOG_KEY = "catalog"


def published_view(catalog: Catalog) -> Catalog:
    """Copy of ``catalog`` holding only published entries."""
    return Catalog(
        entries=[entry for entry in catalog.entries if entry.is_published],
        last_updated=catalog.last_updated,
    )


async def run_deploy(store: DocumentStore, public_dir: str | Path) -> Catalog | None:
    """Write the public catalog. Returns ``None`` when there is nothing to deploy."""
    document = await store.load(CATALOG_KEY)
    if document is None:
        logger.warning("no_catalog", hint="run the analyze stage first")
        return None

    catalog = Catalog.from_dict(document)
    public = published_view(catalog)
    target = JsonFileStore(public_dir, filenames={PUBLIC_CATALOG_KEY: "catalog.json"})
    try:
        await target.save(PUBLIC_CATALOG_KEY, public.to_dict())
    except PersistenceError as exc:
        logger.error("deploy_failed", **exc.to_dict())
        raise

    logger.info(
        "deploy_completed",
        published=public.total_count,
        drafts=catalog.total_count - public.total_count,
        path=str(target.path_for(PUBLIC_CATALOG_KEY)),
    )
    return public
