"""
CLI utility helpers — console output and the stage runner wrapper.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import typer
from rich.console import Console

from insider.core.errors import InsiderError
from insider.core.logging import LogContext, configure_logging, get_logger
from insider.core.settings import InsiderSettings, get_settings
from insider.pipeline import Pipeline

console = Console()
err_console = Console(stderr=True)
logger = get_logger(__name__)

T = TypeVar("T")


def build_pipeline(settings: InsiderSettings) -> Pipeline:
    """Pipeline for one CLI invocation; tests replace this."""
    return Pipeline(settings)


def run_stage(stage: str, body: Callable[[Pipeline], Awaitable[T]]) -> T:
    """Run one pipeline stage to completion, mapping failures to exit code 1.

    Logging goes to stdout and is appended to the stage's log file.
    """
    settings = get_settings()
    configure_logging(settings.log_level, service=f"insider-{stage}", log_file=settings.stage_log_file(stage))

    async def _main() -> T:
        pipeline = build_pipeline(settings)
        try:
            async with LogContext(stage=stage):
                return await body(pipeline)
        finally:
            await pipeline.aclose()

    try:
        return asyncio.run(_main())
    except InsiderError as exc:
        logger.error("stage_failed", stage=stage, **exc.to_dict())
        err_console.print(f"[bold red]Error[/bold red] ({exc.category.value}): {exc.message}")
        raise typer.Exit(code=1) from exc


def summary(label: str, **fields: Any) -> None:
    parts = " ".join(f"{key}=[cyan]{value}[/cyan]" for key, value in fields.items())
    console.print(f"[bold green]{label}[/bold green] {parts}".rstrip())
