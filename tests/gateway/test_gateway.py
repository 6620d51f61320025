"""
Tests for the streaming gateway, using short real subprocesses.
"""

from __future__ import annotations

import asyncio
import json
import sys

import pytest

from insider.core.errors import ConfigError, StageValidationError
from insider.gateway import (
    STAGE_COMMANDS,
    Done,
    ErrorOutput,
    Output,
    SessionState,
    StageRunner,
    StreamingGateway,
)

PY = sys.executable

SCRIPTS = {
    "collect": "import sys; print('one'); print('two'); print('warn', file=sys.stderr); sys.exit(3)",
    "analyze": "import os; print(os.environ.get('FORCE_COLOR'))",
    "deploy": "import time; print('ready', flush=True); time.sleep(30)",
    "stubborn": (
        "import signal, time; signal.signal(signal.SIGTERM, signal.SIG_IGN); "
        "print('ready', flush=True); time.sleep(30)"
    ),
}


@pytest.fixture
def gateway() -> StreamingGateway:
    return StreamingGateway({name: (PY, "-c", code) for name, code in SCRIPTS.items()}, kill_timeout=2.0)


async def _collect(session) -> list:
    return [event async for event in session]


class TestStageMap:
    def test_default_commands_run_the_cli(self):
        assert set(STAGE_COMMANDS) == {"collect", "analyze", "deploy"}
        assert STAGE_COMMANDS["analyze"][1:] == ("-m", "insider", "analyze")

    def test_satisfies_protocol(self, gateway):
        assert isinstance(gateway, StageRunner)

    @pytest.mark.asyncio
    async def test_unknown_stage_rejected_before_spawn(self, gateway, monkeypatch):
        spawned = []

        async def fake_exec(*args, **kwargs):
            spawned.append(args)

        monkeypatch.setattr(asyncio, "create_subprocess_exec", fake_exec)
        with pytest.raises(StageValidationError) as exc_info:
            await gateway.open("rm -rf")
        assert exc_info.value.stage == "rm -rf"
        assert spawned == []

    @pytest.mark.asyncio
    async def test_missing_executable(self):
        gateway = StreamingGateway({"collect": ("/nonexistent/insider-binary",)})
        with pytest.raises(ConfigError):
            await gateway.open("collect")


class TestStreamSession:
    @pytest.mark.asyncio
    async def test_event_order_and_single_done(self, gateway):
        session = await gateway.open("collect")
        events = await _collect(session)

        assert [e for e in events if isinstance(e, Output)] == [Output("one"), Output("two")]
        assert ErrorOutput("warn") in events
        assert events[-1] == Done(3)
        assert sum(isinstance(e, Done) for e in events) == 1
        assert session.state is SessionState.CLOSED
        assert session.exit_code == 3

    @pytest.mark.asyncio
    async def test_not_restartable(self, gateway):
        session = await gateway.open("collect")
        await _collect(session)
        assert await _collect(session) == []

    @pytest.mark.asyncio
    async def test_force_color_is_set(self, gateway):
        events = await _collect(await gateway.open("analyze"))
        assert events == [Output("1"), Done(0)]

    @pytest.mark.asyncio
    async def test_sessions_are_independent(self, gateway):
        first, second = await gateway.open("analyze"), await gateway.open("analyze")
        assert first.pid != second.pid
        assert (await _collect(first))[-1] == Done(0)
        assert (await _collect(second))[-1] == Done(0)


class TestCancellation:
    @pytest.mark.asyncio
    async def test_aclose_terminates_process(self, gateway):
        session = await gateway.open("deploy")
        assert await session.__anext__() == Output("ready")

        await session.aclose()

        assert session.process.returncode is not None
        assert session.state is SessionState.CLOSED
        assert await _collect(session) == []

    @pytest.mark.asyncio
    async def test_consumer_cancellation_terminates_process(self, gateway):
        session = await gateway.open("deploy")
        first_event = asyncio.Event()

        async def consume():
            async for _ in session:
                first_event.set()

        task = asyncio.create_task(consume())
        await asyncio.wait_for(first_event.wait(), timeout=5)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert session.process.returncode is not None
        assert session.closed

    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX signals")
    @pytest.mark.asyncio
    async def test_kill_after_grace_period(self):
        gateway = StreamingGateway({"collect": (PY, "-c", SCRIPTS["stubborn"])}, kill_timeout=0.3)
        session = await gateway.open("collect")
        assert await session.__anext__() == Output("ready")
        await session.aclose()
        assert session.process.returncode == -9

    @pytest.mark.asyncio
    async def test_aclose_after_done_is_noop(self, gateway):
        session = await gateway.open("analyze")
        await _collect(session)
        await session.aclose()
        assert session.exit_code == 0


class TestRunDetached:
    @pytest.mark.asyncio
    async def test_drains_in_background(self, gateway):
        session = await gateway.run_detached("collect")
        assert session.pid > 0
        for _ in range(200):
            if session.closed:
                break
            await asyncio.sleep(0.02)
        assert session.exit_code == 3
        assert gateway.detached_count == 0

    @pytest.mark.asyncio
    async def test_shutdown_terminates_detached(self, gateway):
        session = await gateway.run_detached("deploy")
        await asyncio.sleep(0.2)
        await gateway.shutdown()
        assert session.process.returncode is not None


class TestSseEncoding:
    def test_wire_format(self):
        assert Output("a").to_sse() == 'event: output\ndata: {"text": "a"}\n\n'
        assert ErrorOutput("b").to_sse().startswith("event: error\n")
        frame = Done(0).to_sse()
        assert frame.startswith("event: done\n")
        assert json.loads(frame.split("data: ", 1)[1]) == {"exit_code": 0}

    def test_multiline_text_stays_one_frame(self):
        frame = Output("line\nbreak").to_sse()
        assert frame.count("\n\n") == 1
