"""Scheduling contracts.

┌──────────────────────────────────────────────────────────────────────────────┐
│  ADAPTIVE SCHEDULING                                                         │
│                                                                              │
│   ┌──────────────────────┐  on_config_changed()  ┌─────────────────────┐    │
│   │  ConfigChangeSource  │ ────────────────────► │  AdaptiveScheduler  │    │
│   │  (polling watcher,   │                       │                     │    │
│   │   push channel, ...) │                       │  timer ──► _fire()  │    │
│   └──────────────────────┘                       │             │       │    │
│                                                  └─────────────┼───────┘    │
│                                                                ▼            │
│                                                   RunCallback (collect →    │
│                                                   analyze)                  │
│                                                                              │
│  Responsibility split:                                                       │
│  - Change source: detects changes, owns debounce                             │
│  - Scheduler: owns the single timer, decides whether a firing runs           │
│  - Run callback: the actual pipeline work                                    │
└──────────────────────────────────────────────────────────────────────────────┘
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Protocol, runtime_checkable

from insider.core.models import CollectorConfig

RunCallback = Callable[[], Awaitable[None]]
ChangeCallback = Callable[[], Awaitable[None]]
ConfigLoader = Callable[[], Awaitable[CollectorConfig]]


@runtime_checkable
class ConfigChangeSource(Protocol):
    """Notifies a callback when the collector configuration changes.

    Implementations decide how changes are detected and debounce bursts
    (an editor writing a file in several chunks) into one notification.
    """

    def start(self, callback: ChangeCallback) -> None:
        """Begin watching; ``callback`` is awaited once per settled change."""
        ...

    async def stop(self) -> None:
        """Stop watching."""
        ...


@dataclass
class SchedulerStats:
    """Counters for the adaptive scheduler."""

    firings: int = 0
    runs_started: int = 0
    runs_completed: int = 0
    runs_failed: int = 0
    skipped_disabled: int = 0
    skipped_overlap: int = 0
    reschedules: int = 0
    last_fired: datetime | None = None
    last_error: str | None = None
    last_error_category: str | None = None
    last_error_retryable: bool | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "firings": self.firings,
            "runs_started": self.runs_started,
            "runs_completed": self.runs_completed,
            "runs_failed": self.runs_failed,
            "skipped_disabled": self.skipped_disabled,
            "skipped_overlap": self.skipped_overlap,
            "reschedules": self.reschedules,
            "last_fired": self.last_fired.isoformat() if self.last_fired else None,
            "last_error": self.last_error,
            "last_error_category": self.last_error_category,
            "last_error_retryable": self.last_error_retryable,
        }
