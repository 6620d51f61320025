"""
CLI: ``insider serve`` — start the admin API server.
"""

from __future__ import annotations

import typer
import uvicorn

from insider.cli.utils import console
from insider.core.logging import configure_logging
from insider.core.settings import get_settings


def serve(
    host: str | None = typer.Option(None, "--host", "-h", help="Bind address (default from settings)"),
    port: int | None = typer.Option(None, "--port", "-p", help="Bind port (default from settings)"),
    reload: bool = typer.Option(False, "--reload", help="Auto-reload on changes"),
) -> None:
    """Start the admin API server."""
    settings = get_settings()
    configure_logging(settings.log_level, service="insider-api")
    host = host or settings.host
    port = port or settings.port

    if settings.admin_pass is None:
        console.print("[yellow]INSIDER_ADMIN_PASS is not set; the admin API is unauthenticated[/yellow]")
    console.print(f"[bold green]Starting insider admin API[/bold green] on {host}:{port}")
    uvicorn.run(
        "insider.api.app:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        log_level=settings.log_level.lower(),
    )
