"""
Tests for the polling config watcher.
"""

from __future__ import annotations

import asyncio

import pytest

from insider.scheduling.protocol import ConfigChangeSource
from insider.scheduling.watcher import PollingConfigWatcher


class Counter:
    def __init__(self, error: Exception | None = None) -> None:
        self.count = 0
        self.error = error

    async def __call__(self) -> None:
        self.count += 1
        if self.error is not None:
            raise self.error


async def _until(predicate, timeout: float = 2.0) -> None:
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not reached")
        await asyncio.sleep(0.005)


class TestPollingConfigWatcher:
    def test_satisfies_protocol(self, tmp_path):
        assert isinstance(PollingConfigWatcher(tmp_path / "c.json"), ConfigChangeSource)

    @pytest.mark.asyncio
    async def test_notifies_on_change(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text('{"collector": {"interval_hours": 24}}')
        watcher = PollingConfigWatcher(path, poll_seconds=0.01, debounce_seconds=0.02)
        counter = Counter()
        watcher.start(counter)
        await asyncio.sleep(0.03)

        path.write_text('{"collector": {"interval_hours": 1}}  ')
        await _until(lambda: counter.count == 1)
        await watcher.stop()
        assert not watcher.is_running

    @pytest.mark.asyncio
    async def test_burst_is_debounced(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text("{}")
        watcher = PollingConfigWatcher(path, poll_seconds=0.01, debounce_seconds=0.25)
        counter = Counter()
        watcher.start(counter)
        await asyncio.sleep(0.03)

        for size in range(1, 6):
            path.write_text("{" + " " * size + "}")
            await asyncio.sleep(0.02)
        await _until(lambda: counter.count >= 1)
        await asyncio.sleep(0.4)
        await watcher.stop()
        assert counter.count == 1

    @pytest.mark.asyncio
    async def test_file_created_later(self, tmp_path):
        path = tmp_path / "config.json"
        watcher = PollingConfigWatcher(path, poll_seconds=0.01, debounce_seconds=0.01)
        counter = Counter()
        watcher.start(counter)
        await asyncio.sleep(0.03)
        path.write_text("{}")
        await _until(lambda: counter.count == 1)
        await watcher.stop()

    @pytest.mark.asyncio
    async def test_callback_error_does_not_stop_watching(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text("{}")
        watcher = PollingConfigWatcher(path, poll_seconds=0.01, debounce_seconds=0.01)
        counter = Counter(error=RuntimeError("handler broke"))
        watcher.start(counter)
        await asyncio.sleep(0.03)

        path.write_text("{ }")
        await _until(lambda: counter.count == 1)
        path.write_text("{  }")
        await _until(lambda: counter.count == 2)
        assert watcher.is_running
        await watcher.stop()

    @pytest.mark.asyncio
    async def test_stop_without_start(self, tmp_path):
        await PollingConfigWatcher(tmp_path / "c.json").stop()
