"""Adaptive scheduler — one repeating timer whose period follows live config.

┌──────────────────────────────────────────────────────────────────────────────┐
│  STATE MACHINE                                                               │
│                                                                              │
│    Unconfigured ──start()──► Scheduled ──on_config_changed()──► Scheduled   │
│                                  ▲                                   │       │
│                                  └───────── (timer replaced) ────────┘       │
│                                                                              │
│  Timer task          : sleep(period) → _fire() → sleep(period) → ...         │
│  Run tasks           : one task per firing, independent of the timer task    │
│  Reschedule          : cancel timer task + create new one, synchronously     │
│                        (no await in between, so no firing slips through)     │
│  In-flight runs      : never cancelled by a reschedule                       │
│  enabled = false     : firing is counted and skipped, timer keeps ticking    │
│  overlap guard       : a firing while a run is active is skipped unless      │
│                        allow_overlap=True                                    │
└──────────────────────────────────────────────────────────────────────────────┘

The scheduler never reads files itself: it awaits ``load_config()`` and is
told about changes through :meth:`AdaptiveScheduler.on_config_changed`.
"""

from __future__ import annotations

import asyncio
import contextlib
from typing import Any

from insider.core.errors import ConfigError, PersistenceError, categorize_error, is_retryable
from insider.core.logging import get_logger
from insider.core.models import CollectorConfig, utcnow
from insider.scheduling.protocol import ConfigLoader, RunCallback, SchedulerStats

logger = get_logger(__name__)

SECONDS_PER_HOUR = 3600.0


class AdaptiveScheduler:
    """Repeating collection timer that reschedules on config changes.

    Example:
        >>> scheduler = AdaptiveScheduler(load_config, pipeline.collect_then_analyze)
        >>> await scheduler.start()
        >>> watcher.start(scheduler.on_config_changed)

    Args:
        load_config: Awaitable returning the current :class:`CollectorConfig`.
        run: The work performed on each firing.
        seconds_per_hour: Length of one interval hour; tests shrink it.
        allow_overlap: Start a run even if the previous one is still going.
    """

    def __init__(
        self,
        load_config: ConfigLoader,
        run: RunCallback,
        *,
        seconds_per_hour: float = SECONDS_PER_HOUR,
        allow_overlap: bool = False,
    ) -> None:
        self._load_config = load_config
        self._run = run
        self.seconds_per_hour = seconds_per_hour
        self.allow_overlap = allow_overlap

        self.current_interval_hours: int | None = None
        self._timer: asyncio.Task[None] | None = None
        self._active_runs: set[asyncio.Task[None]] = set()
        self.stats = SchedulerStats()

    # === Lifecycle ===

    @property
    def is_scheduled(self) -> bool:
        return self._timer is not None and not self._timer.done()

    async def start(self) -> None:
        """Install the timer from the current config and run once immediately."""
        if self.is_scheduled:
            logger.warning("scheduler_already_started", interval_hours=self.current_interval_hours)
            return

        try:
            config = await self._load_config()
        except (ConfigError, PersistenceError) as exc:
            config = CollectorConfig()
            logger.warning("config_unreadable_using_defaults", error=exc.message, interval_hours=config.interval_hours)

        self._install(config.interval_hours)
        self._fire(reason="startup")

    async def on_config_changed(self) -> None:
        """Re-read the config and replace the timer if the interval changed."""
        try:
            config = await self._load_config()
        except (ConfigError, PersistenceError) as exc:
            logger.error(
                "config_reload_failed",
                error=exc.message,
                keeping_interval_hours=self.current_interval_hours,
            )
            return

        if config.interval_hours == self.current_interval_hours:
            logger.info("schedule_unchanged", interval_hours=config.interval_hours, enabled=config.enabled)
            return

        logger.info(
            "schedule_updated",
            previous_hours=self.current_interval_hours,
            interval_hours=config.interval_hours,
        )
        self._install(config.interval_hours)
        self.stats.reschedules += 1

    async def stop(self, *, wait_for_runs: bool = True) -> None:
        """Cancel the timer; optionally wait for in-flight runs to finish."""
        if self._timer is not None:
            self._timer.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._timer
            self._timer = None
        if wait_for_runs and self._active_runs:
            await asyncio.gather(*self._active_runs, return_exceptions=True)
        logger.info("scheduler_stopped")

    def health(self) -> dict[str, Any]:
        return {
            "healthy": self.is_scheduled,
            "interval_hours": self.current_interval_hours,
            "active_runs": len(self._active_runs),
            "stats": self.stats.to_dict(),
        }

    # === Timer ===

    def _install(self, interval_hours: int) -> None:
        if self._timer is not None:
            self._timer.cancel()
        self.current_interval_hours = interval_hours
        period = interval_hours * self.seconds_per_hour
        self._timer = asyncio.create_task(self._tick_loop(period), name=f"insider-timer-{interval_hours}h")
        logger.info("timer_installed", interval_hours=interval_hours)

    async def _tick_loop(self, period_seconds: float) -> None:
        while True:
            await asyncio.sleep(period_seconds)
            self._fire(reason="timer")

    def _record_failure(self, exc: Exception) -> None:
        self.stats.runs_failed += 1
        self.stats.last_error = str(exc)
        self.stats.last_error_category = categorize_error(exc).value
        self.stats.last_error_retryable = is_retryable(exc)

    def _fire(self, reason: str) -> None:
        self.stats.firings += 1
        self.stats.last_fired = utcnow()
        if self._active_runs and not self.allow_overlap:
            self.stats.skipped_overlap += 1
            logger.warning("run_in_progress_skipping", reason=reason, active_runs=len(self._active_runs))
            return
        task = asyncio.create_task(self._execute(reason), name="insider-scheduled-run")
        self._active_runs.add(task)
        task.add_done_callback(self._active_runs.discard)

    async def _execute(self, reason: str) -> None:
        try:
            config = await self._load_config()
        except (ConfigError, PersistenceError) as exc:
            self._record_failure(exc)
            logger.error("scheduled_run_config_failed", reason=reason, error=exc.message)
            return

        if not config.enabled:
            self.stats.skipped_disabled += 1
            logger.info("collector_disabled_skipping", reason=reason)
            return

        self.stats.runs_started += 1
        logger.info("scheduled_run_started", reason=reason, interval_hours=self.current_interval_hours)
        try:
            await self._run()
        except Exception as exc:
            self._record_failure(exc)
            logger.exception(
                "scheduled_run_failed",
                reason=reason,
                category=self.stats.last_error_category,
                retryable=self.stats.last_error_retryable,
            )
            return
        self.stats.runs_completed += 1
        logger.info("scheduled_run_completed", reason=reason)
