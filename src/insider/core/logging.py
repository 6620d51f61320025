"""
Insider logging - structured logging for every pipeline process.

Each stage (collect, analyze, deploy), the admin API and the scheduler
daemon configure logging once at startup through :func:`configure_logging`
and then log key/value events through :func:`get_logger`.

Architecture:
    ::

        configure_logging(level="INFO", service="insider-analyze",
                          log_file=data_dir / "analyzer.log")
            │
            ▼
        structlog ──► stdlib logging root
                          ├── StreamHandler(stdout)   console or JSON
                          └── FileHandler(log_file)   plain text, append-only

        logger = get_logger(__name__)
        logger.info("record_enriched", url="https://github.com/a/b", model="gemini-2.0-flash")

Features:
    - Console renderer on a TTY (or when ``FORCE_COLOR`` is set, which is
      how the streaming gateway spawns stages), JSON everywhere else
    - Append-only per-stage log file, one line per event
    - ``stage=`` and other context bound through :class:`LogContext`
    - Third-party loggers (uvicorn, httpx) share the same formatting

Tags:
    logging, structlog, observability, insider
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

_SERVICE_NAME = "insider"


def _add_service_metadata(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Add service-level metadata to all logs."""
    event_dict.setdefault("service", _SERVICE_NAME)
    return event_dict


def _wants_color() -> bool:
    return bool(os.environ.get("FORCE_COLOR")) or sys.stdout.isatty()


def configure_logging(
    level: str = "INFO",
    json_format: bool | None = None,
    service: str = "insider",
    log_file: str | Path | None = None,
) -> None:
    """Configure structured logging for the process.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        json_format: True for JSON, False for console, None for auto
            (console on a TTY or under ``FORCE_COLOR``, JSON otherwise)
        service: Service name to include in logs
        log_file: Optional append-only log file for this process
    """
    global _SERVICE_NAME
    _SERVICE_NAME = service

    if json_format is None:
        json_format = not _wants_color()

    shared_processors: list[Processor] = [
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.StackInfoRenderer(),
        _add_service_metadata,
    ]

    structlog.configure(
        processors=shared_processors + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    if json_format:
        stream_renderer: Processor = structlog.processors.JSONRenderer()
    else:
        stream_renderer = structlog.dev.ConsoleRenderer(colors=_wants_color())

    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared_processors,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                stream_renderer,
            ],
        )
    )

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    root.addHandler(stream_handler)

    if log_file is not None:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path, mode="a", encoding="utf-8")
        file_handler.setFormatter(
            structlog.stdlib.ProcessorFormatter(
                foreign_pre_chain=shared_processors,
                processors=[
                    structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                    structlog.processors.format_exc_info,
                    structlog.dev.ConsoleRenderer(colors=False),
                ],
            )
        )
        root.addHandler(file_handler)

    root.setLevel(getattr(logging, level.upper(), logging.INFO))


def get_logger(name: str | None = None) -> Any:
    """Get a structured logger.

    Args:
        name: Logger name (usually __name__)
    """
    return structlog.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """Bind context to include in all subsequent logs.

    Example:
        bind_context(stage="analyze")
        logger.info("pass_started")  # Includes stage
    """
    structlog.contextvars.bind_contextvars(**kwargs)


def unbind_context(*keys: str) -> None:
    """Remove specific keys from logging context."""
    structlog.contextvars.unbind_contextvars(*keys)


class LogContext:
    """Context manager for scoped logging context.

    Example:
        async with LogContext(stage="collect"):
            logger.info("page_fetched", page=1)
        # Context cleared here
    """

    def __init__(self, **kwargs: Any):
        self._context = kwargs

    def __enter__(self) -> LogContext:
        bind_context(**self._context)
        return self

    def __exit__(self, *args) -> None:
        unbind_context(*self._context.keys())

    async def __aenter__(self) -> LogContext:
        bind_context(**self._context)
        return self

    async def __aexit__(self, *args) -> None:
        unbind_context(*self._context.keys())


__all__ = [
    "configure_logging",
    "get_logger",
    "bind_context",
    "unbind_context",
    "LogContext",
]
