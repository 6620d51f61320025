"""Streaming gateway — run pipeline stages as subprocesses on demand.

Stages map to fixed commands; nothing from the request ever reaches the
command line.  By default each stage runs this package's own CLI::

    collect  → python -m insider collect
    analyze  → python -m insider analyze
    deploy   → python -m insider deploy

Each :meth:`StreamingGateway.open` call is independent: concurrent
sessions for the same stage are separate processes.

Example:
    >>> gateway = StreamingGateway()
    >>> session = await gateway.open("collect")
    >>> async for event in session:
    ...     print(event.to_sse(), end="")
"""

from __future__ import annotations

import asyncio
import os
import sys
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Protocol, runtime_checkable

from insider.core.errors import ConfigError, StageValidationError
from insider.core.logging import get_logger
from insider.gateway.events import Done, ErrorOutput
from insider.gateway.session import StreamSession

logger = get_logger(__name__)

STAGES = ("collect", "analyze", "deploy")
STAGE_COMMANDS: dict[str, tuple[str, ...]] = {
    stage: (sys.executable, "-m", "insider", stage) for stage in STAGES
}

# Lines longer than asyncio's 64 KiB default would break readline().
_STREAM_LIMIT = 1024 * 1024


@runtime_checkable
class StageRunner(Protocol):
    """Capability: execute a named stage and observe its output."""

    async def open(self, stage: str) -> StreamSession:
        ...

    async def run_detached(self, stage: str) -> StreamSession:
        ...


class StreamingGateway:
    """Subprocess-backed :class:`StageRunner`.

    Args:
        commands: Stage name → argv.  Defaults to :data:`STAGE_COMMANDS`.
        kill_timeout: Grace period between SIGTERM and SIGKILL.
        cwd: Working directory for the child processes.
        env: Extra environment on top of the inherited one.
    """

    def __init__(
        self,
        commands: Mapping[str, Sequence[str]] | None = None,
        *,
        kill_timeout: float = 5.0,
        cwd: str | Path | None = None,
        env: Mapping[str, str] | None = None,
    ) -> None:
        self.commands = {name: tuple(argv) for name, argv in (commands or STAGE_COMMANDS).items()}
        self.kill_timeout = kill_timeout
        self.cwd = str(cwd) if cwd is not None else None
        self.env = dict(env or {})
        self._detached: set[asyncio.Task[None]] = set()

    @property
    def stages(self) -> tuple[str, ...]:
        return tuple(self.commands)

    def command_for(self, stage: str) -> tuple[str, ...]:
        try:
            return self.commands[stage]
        except KeyError:
            raise StageValidationError(stage, self.stages) from None

    async def open(self, stage: str) -> StreamSession:
        """Validate ``stage``, spawn it, and return its event stream."""
        command = self.command_for(stage)
        env = {**os.environ, **self.env, "FORCE_COLOR": "1"}
        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=env,
                cwd=self.cwd,
                limit=_STREAM_LIMIT,
            )
        except OSError as exc:
            raise ConfigError(f"Cannot start stage {stage!r}: {exc}", cause=exc).with_context(
                stage=stage
            ) from exc

        logger.info("stage_started", stage=stage, pid=process.pid)
        return StreamSession(stage, process, kill_timeout=self.kill_timeout)

    async def run_detached(self, stage: str) -> StreamSession:
        """Start ``stage`` and drain its output in the background."""
        session = await self.open(stage)
        task = asyncio.create_task(self._drain(session), name=f"insider-detached-{stage}")
        self._detached.add(task)
        task.add_done_callback(self._detached.discard)
        return session

    async def _drain(self, session: StreamSession) -> None:
        async for event in session:
            if isinstance(event, ErrorOutput):
                logger.debug("stage_stderr", stage=session.stage_name, text=event.text)
            elif isinstance(event, Done) and not event.succeeded:
                logger.warning("stage_failed", stage=session.stage_name, exit_code=event.exit_code)

    @property
    def detached_count(self) -> int:
        return len(self._detached)

    async def shutdown(self) -> None:
        """Cancel background drains; their children are terminated."""
        for task in list(self._detached):
            task.cancel()
        if self._detached:
            await asyncio.gather(*self._detached, return_exceptions=True)
