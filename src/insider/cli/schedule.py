"""
CLI: ``insider schedule`` — run the adaptive scheduler until interrupted.

Runs "collect then analyze" immediately and then every
``interval_hours``; edits to the config document reschedule the timer
without a restart.
"""

from __future__ import annotations

import asyncio

import typer

from insider.cli import utils
from insider.cli.utils import console
from insider.core.logging import configure_logging, get_logger
from insider.core.settings import InsiderSettings, get_settings
from insider.scheduling.scheduler import AdaptiveScheduler
from insider.scheduling.watcher import PollingConfigWatcher

logger = get_logger(__name__)


async def run_daemon(settings: InsiderSettings, *, allow_overlap: bool = False) -> None:
    pipeline = utils.build_pipeline(settings)
    scheduler = AdaptiveScheduler(
        pipeline.load_collector_config,
        pipeline.collect_then_analyze,
        allow_overlap=allow_overlap,
    )
    watcher = PollingConfigWatcher(
        settings.collector_config_path,
        poll_seconds=settings.config_poll_seconds,
        debounce_seconds=settings.config_debounce_seconds,
    )

    await scheduler.start()
    watcher.start(scheduler.on_config_changed)
    logger.info("scheduler_daemon_started", config=str(settings.collector_config_path))
    try:
        await asyncio.Event().wait()
    finally:
        await watcher.stop()
        await scheduler.stop(wait_for_runs=False)
        await pipeline.aclose()


def schedule(
    allow_overlap: bool = typer.Option(
        False, "--allow-overlap", help="Start a run even while the previous one is still going"
    ),
) -> None:
    """Run collection and analysis on the configured interval."""
    settings = get_settings()
    configure_logging(settings.log_level, service="insider-scheduler", log_file=settings.stage_log_file("collect"))
    console.print(f"[bold green]Scheduler running[/bold green] config={settings.collector_config_path}")
    try:
        asyncio.run(run_daemon(settings, allow_overlap=allow_overlap))
    except KeyboardInterrupt:
        console.print("[yellow]Scheduler stopped[/yellow]")
