"""
Root Typer application for the insider CLI.

Commands::

    insider collect [--force]   fetch one raw batch
    insider analyze             run one merge pass
    insider deploy              export published entries
    insider serve               admin API (uvicorn)
    insider schedule            long-running scheduler daemon

The three stage commands are also what the streaming gateway spawns.
"""

from __future__ import annotations

import typer

from insider import __version__
from insider.cli.schedule import schedule
from insider.cli.serve import serve
from insider.cli.utils import run_stage, summary

app = typer.Typer(
    name="insider",
    help="mcp-insider — collect, enrich and publish a catalog of MCP repositories.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"mcp-insider {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """insider CLI — pipeline stages, admin server and scheduler."""


@app.command("collect")
def collect(
    force: bool = typer.Option(False, "--force", help="Collect even if the collector is disabled"),
) -> None:
    """Fetch matching repositories and save a raw batch."""
    batch = run_stage("collect", lambda pipeline: pipeline.collect(force=force))
    if batch is None:
        summary("Collector disabled", hint="use --force to collect anyway")
    else:
        summary("Collected", repositories=batch.total_count, timestamp=batch.timestamp)


@app.command("analyze")
def analyze() -> None:
    """Enrich the latest raw batch and merge it into the catalog."""
    catalog = run_stage("analyze", lambda pipeline: pipeline.analyze())
    if catalog is None:
        summary("Analysis skipped")
    else:
        summary("Analyzed", total=catalog.total_count)


@app.command("deploy")
def deploy() -> None:
    """Write the published catalog to the public directory."""
    public = run_stage("deploy", lambda pipeline: pipeline.deploy())
    if public is None:
        summary("Nothing to deploy")
    else:
        summary("Deployed", published=public.total_count)


app.command("serve")(serve)
app.command("schedule")(schedule)
