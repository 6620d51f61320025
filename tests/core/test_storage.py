"""
Tests for the JSON document stores.
"""

from __future__ import annotations

import json

import pytest

from insider.core.errors import PersistenceError
from insider.core.storage import (
    CATALOG_KEY,
    CONFIG_KEY,
    RAW_KEY,
    JsonFileStore,
    MemoryDocumentStore,
    history_key,
)


class TestJsonFileStore:
    def test_key_layout(self, tmp_path):
        store = JsonFileStore(tmp_path)
        assert store.path_for(CATALOG_KEY) == tmp_path / "analyzed_data.json"
        assert store.path_for(RAW_KEY) == tmp_path / "raw_data.json"
        assert store.path_for(history_key("2025-03-01T12:00:00.000Z")) == (
            tmp_path / "history" / "raw_data_2025-03-01T12-00-00-000Z.json"
        )

    def test_config_path_override(self, tmp_path):
        store = JsonFileStore(tmp_path, config_path=tmp_path / "elsewhere.json")
        assert store.path_for(CONFIG_KEY) == tmp_path / "elsewhere.json"

    def test_filenames_override(self, tmp_path):
        store = JsonFileStore(tmp_path, filenames={CATALOG_KEY: "catalog.json"})
        assert store.path_for(CATALOG_KEY) == tmp_path / "catalog.json"

    @pytest.mark.asyncio
    async def test_missing_document_is_none(self, tmp_path):
        assert await JsonFileStore(tmp_path).load(CATALOG_KEY) is None

    @pytest.mark.asyncio
    async def test_save_then_load(self, tmp_path):
        store = JsonFileStore(tmp_path / "nested")
        await store.save("settings", {"auto_publish": True})
        assert await store.load("settings") == {"auto_publish": True}
        assert not list((tmp_path / "nested").glob("*.tmp"))

    @pytest.mark.asyncio
    async def test_corrupt_json_raises_with_key(self, tmp_path):
        (tmp_path / "analyzed_data.json").write_text("{not json", encoding="utf-8")
        with pytest.raises(PersistenceError) as exc_info:
            await JsonFileStore(tmp_path).load(CATALOG_KEY)
        assert exc_info.value.context.key == CATALOG_KEY

    @pytest.mark.asyncio
    async def test_non_object_document_rejected(self, tmp_path):
        (tmp_path / "raw_data.json").write_text("[1, 2]", encoding="utf-8")
        with pytest.raises(PersistenceError):
            await JsonFileStore(tmp_path).load(RAW_KEY)

    @pytest.mark.asyncio
    async def test_failed_write_keeps_previous_document(self, tmp_path):
        store = JsonFileStore(tmp_path)
        await store.save(CATALOG_KEY, {"projects": []})
        with pytest.raises(PersistenceError):
            await store.save(CATALOG_KEY, {"bad": object()})
        assert json.loads((tmp_path / "analyzed_data.json").read_text()) == {"projects": []}
        assert not list(tmp_path.glob("*.tmp"))


class TestMemoryDocumentStore:
    @pytest.mark.asyncio
    async def test_documents_are_copied(self):
        store = MemoryDocumentStore({"settings": {"auto_publish": False}})
        loaded = await store.load("settings")
        loaded["auto_publish"] = True
        assert (await store.load("settings"))["auto_publish"] is False

    @pytest.mark.asyncio
    async def test_fail_on_save(self):
        store = MemoryDocumentStore()
        store.fail_on_save.add(CATALOG_KEY)
        with pytest.raises(PersistenceError):
            await store.save(CATALOG_KEY, {})
        assert store.saves == []
