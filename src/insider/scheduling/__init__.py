"""Scheduling — the adaptive collection timer and its change notification.

Example::

    scheduler = AdaptiveScheduler(pipeline.load_collector_config, pipeline.collect_then_analyze)
    await scheduler.start()
    watcher = PollingConfigWatcher(settings.collector_config_path)
    watcher.start(scheduler.on_config_changed)
"""

from insider.scheduling.protocol import (
    ChangeCallback,
    ConfigChangeSource,
    ConfigLoader,
    RunCallback,
    SchedulerStats,
)
from insider.scheduling.scheduler import SECONDS_PER_HOUR, AdaptiveScheduler
from insider.scheduling.watcher import PollingConfigWatcher

__all__ = [
    "AdaptiveScheduler",
    "ChangeCallback",
    "ConfigChangeSource",
    "ConfigLoader",
    "PollingConfigWatcher",
    "RunCallback",
    "SchedulerStats",
    "SECONDS_PER_HOUR",
]
