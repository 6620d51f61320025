"""
Document store — key → JSON document persistence.

The pipeline persists one JSON document per logical entity.  Stores read
and write whole documents; there is no optimistic-concurrency check, so
two writers racing on the same key resolve as last-writer-wins.

Keys
────
``catalog``            analyzed_data.json
``settings``           settings.json
``raw``                raw_data.json
``config``             config.json (or the configured config path)
``history/<stamp>``    history/raw_data_<stamp>.json

Guarantees:
    - ``save`` is atomic per document (temp file + rename), so a failed
      write leaves the previous document in place.
    - Any read/parse/write failure surfaces as
      :class:`~insider.core.errors.PersistenceError` carrying the key.
    - File I/O runs in a worker thread so the event loop keeps serving
      streams and requests while a document is written.

Tags:
    insider, storage, json, documents
"""

from __future__ import annotations

import asyncio
import copy
import json
import os
import tempfile
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from insider.core.errors import PersistenceError
from insider.core.logging import get_logger

logger = get_logger(__name__)

Document = dict[str, Any]

CATALOG_KEY = "catalog"
SETTINGS_KEY = "settings"
RAW_KEY = "raw"
CONFIG_KEY = "config"
HISTORY_PREFIX = "history/"

_KEY_FILES = {
    CATALOG_KEY: "analyzed_data.json",
    SETTINGS_KEY: "settings.json",
    RAW_KEY: "raw_data.json",
    CONFIG_KEY: "config.json",
}


def history_key(stamp: str) -> str:
    """Key for a historical raw snapshot; ``:`` and ``.`` are made file-safe."""
    return HISTORY_PREFIX + stamp.replace(":", "-").replace(".", "-")


@runtime_checkable
class DocumentStore(Protocol):
    """Capability: load and save whole JSON documents by key."""

    async def load(self, key: str) -> Document | None:
        """Return the document, or ``None`` if it does not exist."""
        ...

    async def save(self, key: str, document: Document) -> None:
        """Replace the document stored under ``key``."""
        ...


class JsonFileStore:
    """Document store backed by JSON files under a data directory.

    Example:
        >>> store = JsonFileStore("data")
        >>> await store.save("settings", {"auto_publish": True})
        >>> (await store.load("settings"))["auto_publish"]
        True
    """

    def __init__(
        self,
        data_dir: str | Path,
        *,
        config_path: str | Path | None = None,
        filenames: dict[str, str] | None = None,
    ) -> None:
        self.data_dir = Path(data_dir)
        self.config_path = Path(config_path) if config_path else None
        self._filenames = {**_KEY_FILES, **(filenames or {})}

    def path_for(self, key: str) -> Path:
        if key == CONFIG_KEY and self.config_path is not None:
            return self.config_path
        if key.startswith(HISTORY_PREFIX):
            return self.data_dir / "history" / f"raw_data_{key[len(HISTORY_PREFIX):]}.json"
        return self.data_dir / self._filenames.get(key, f"{key}.json")

    async def load(self, key: str) -> Document | None:
        return await asyncio.to_thread(self._read, key)

    async def save(self, key: str, document: Document) -> None:
        await asyncio.to_thread(self._write, key, document)

    def _read(self, key: str) -> Document | None:
        path = self.path_for(key)
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise PersistenceError(f"Failed to read {path}", cause=exc).with_context(key=key) from exc
        try:
            document = json.loads(text)
        except json.JSONDecodeError as exc:
            raise PersistenceError(f"Corrupt JSON in {path}", cause=exc).with_context(key=key) from exc
        if not isinstance(document, dict):
            raise PersistenceError(f"Expected a JSON object in {path}").with_context(key=key)
        return document

    def _write(self, key: str, document: Document) -> None:
        path = self.path_for(key)
        tmp_name = None
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(document, fh, indent=2, ensure_ascii=False)
                fh.write("\n")
            os.replace(tmp_name, path)
        except (OSError, TypeError, ValueError) as exc:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise PersistenceError(f"Failed to write {path}", cause=exc).with_context(key=key) from exc
        logger.debug("document_saved", key=key, path=str(path))


class MemoryDocumentStore:
    """In-process store for tests and dry runs.

    Documents are deep-copied in and out so callers cannot mutate stored
    state by accident.  ``fail_on_save`` makes every save for the listed
    keys raise :class:`PersistenceError`.
    """

    def __init__(self, documents: dict[str, Document] | None = None) -> None:
        self.documents: dict[str, Document] = copy.deepcopy(documents or {})
        self.fail_on_save: set[str] = set()
        self.saves: list[str] = []

    async def load(self, key: str) -> Document | None:
        document = self.documents.get(key)
        return copy.deepcopy(document) if document is not None else None

    async def save(self, key: str, document: Document) -> None:
        if key in self.fail_on_save:
            raise PersistenceError(f"Simulated write failure for {key}").with_context(key=key)
        self.documents[key] = copy.deepcopy(document)
        self.saves.append(key)
