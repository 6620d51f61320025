"""StreamSession — one running stage subprocess seen as an async event stream.

::

    ┌──────────────┐   readline()   ┌────────────┐
    │ child stdout │ ─────────────► │            │
    └──────────────┘                │   queue    │ ──► __anext__() ──► consumer
    ┌──────────────┐   readline()   │ (ordered   │
    │ child stderr │ ─────────────► │  per pipe) │
    └──────────────┘                └────────────┘
                 both pipes at EOF + wait() ──► Done(exit_code)

States:
    running   child alive, events flowing
    draining  child exited, ``Done`` queued behind any unread output
    closed    ``Done`` delivered, or the consumer closed the stream early

Closing before ``Done`` (``aclose()`` or cancelling the consuming task)
sends SIGTERM at once and SIGKILL after ``kill_timeout`` seconds; no
events are produced afterwards.  A session cannot be restarted.
"""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import Callable
from enum import Enum

from insider.core.logging import get_logger
from insider.gateway.events import Done, ErrorOutput, Output, StreamEvent

logger = get_logger(__name__)


class SessionState(str, Enum):
    RUNNING = "running"
    DRAINING = "draining"
    CLOSED = "closed"


class StreamSession:
    """Async iterator over the output of one stage subprocess."""

    def __init__(
        self,
        stage_name: str,
        process: asyncio.subprocess.Process,
        *,
        kill_timeout: float = 5.0,
    ) -> None:
        self.stage_name = stage_name
        self.process = process
        self.kill_timeout = kill_timeout
        self.state = SessionState.RUNNING
        self.exit_code: int | None = None
        self._queue: asyncio.Queue[StreamEvent] = asyncio.Queue()
        self._pump = asyncio.create_task(self._pump_output(), name=f"insider-stream-{stage_name}")

    @property
    def pid(self) -> int:
        return self.process.pid

    @property
    def closed(self) -> bool:
        return self.state is SessionState.CLOSED

    # === Producer side ===

    async def _read(self, stream: asyncio.StreamReader | None, make: Callable[[str], StreamEvent]) -> None:
        if stream is None:
            return
        while True:
            line = await stream.readline()
            if not line:
                return
            await self._queue.put(make(line.decode("utf-8", errors="replace").rstrip("\r\n")))

    async def _pump_output(self) -> None:
        await asyncio.gather(
            self._read(self.process.stdout, Output),
            self._read(self.process.stderr, ErrorOutput),
        )
        exit_code = await self.process.wait()
        if self.state is SessionState.RUNNING:
            self.state = SessionState.DRAINING
        await self._queue.put(Done(exit_code))

    # === Consumer side ===

    def __aiter__(self) -> StreamSession:
        return self

    async def __anext__(self) -> StreamEvent:
        if self.closed:
            raise StopAsyncIteration
        try:
            event = await self._queue.get()
        except asyncio.CancelledError:
            await self.aclose()
            raise
        if isinstance(event, Done):
            self.exit_code = event.exit_code
            self.state = SessionState.CLOSED
            logger.info("stage_finished", stage=self.stage_name, pid=self.pid, exit_code=event.exit_code)
        return event

    async def aclose(self) -> None:
        """Stop the stream; terminates the child if ``Done`` was not delivered yet."""
        if self.closed and self._pump.done():
            return
        self.state = SessionState.CLOSED
        if self.process.returncode is None:
            logger.warning("stage_cancelled", stage=self.stage_name, pid=self.pid)
            await self._terminate()
        self._pump.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._pump

    async def _terminate(self) -> None:
        try:
            self.process.terminate()
            try:
                await asyncio.wait_for(self.process.wait(), timeout=self.kill_timeout)
            except TimeoutError:
                logger.warning("stage_kill", stage=self.stage_name, pid=self.pid, after_seconds=self.kill_timeout)
                self.process.kill()
                await self.process.wait()
        except ProcessLookupError:
            pass

    async def __aenter__(self) -> StreamSession:
        return self

    async def __aexit__(self, *args) -> None:
        await self.aclose()
