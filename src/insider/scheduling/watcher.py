"""Polling file watcher — a :class:`ConfigChangeSource` for a config document.

Compares a cheap fingerprint ``(mtime_ns, size)`` of the watched file on
every poll.  When it changes, the watcher waits ``debounce_seconds`` and
re-checks until two consecutive fingerprints agree, so a write that lands
in several chunks produces a single notification.

Example:
    >>> watcher = PollingConfigWatcher("data/config.json", poll_seconds=1.0)
    >>> watcher.start(scheduler.on_config_changed)
    >>> # ... later ...
    >>> await watcher.stop()
"""

from __future__ import annotations

import asyncio
import contextlib
from pathlib import Path

from insider.core.logging import get_logger
from insider.scheduling.protocol import ChangeCallback

logger = get_logger(__name__)

Fingerprint = tuple[int, int] | None


class PollingConfigWatcher:
    """Watch one file by polling its stat fingerprint."""

    def __init__(
        self,
        path: str | Path,
        *,
        poll_seconds: float = 1.0,
        debounce_seconds: float = 0.1,
    ) -> None:
        self.path = Path(path)
        self.poll_seconds = poll_seconds
        self.debounce_seconds = debounce_seconds
        self._task: asyncio.Task[None] | None = None
        self.notifications = 0

    def _fingerprint(self) -> Fingerprint:
        try:
            stat = self.path.stat()
        except FileNotFoundError:
            return None
        return (stat.st_mtime_ns, stat.st_size)

    def start(self, callback: ChangeCallback) -> None:
        if self._task is not None and not self._task.done():
            logger.warning("watcher_already_started", path=str(self.path))
            return
        self._task = asyncio.create_task(self._loop(callback), name="insider-config-watcher")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def _settle(self, current: Fingerprint) -> Fingerprint:
        while True:
            await asyncio.sleep(self.debounce_seconds)
            settled = self._fingerprint()
            if settled == current:
                return settled
            current = settled

    async def _loop(self, callback: ChangeCallback) -> None:
        logger.info("watcher_started", path=str(self.path), poll_seconds=self.poll_seconds)
        last = self._fingerprint()
        while True:
            await asyncio.sleep(self.poll_seconds)
            current = self._fingerprint()
            if current == last:
                continue
            last = await self._settle(current)
            self.notifications += 1
            logger.info("config_file_changed", path=str(self.path))
            try:
                await callback()
            except Exception:
                logger.exception("config_change_handler_failed", path=str(self.path))
