"""Streaming gateway — stages as cancellable subprocesses with ordered output."""

from insider.gateway.events import Done, ErrorOutput, Output, StreamEvent
from insider.gateway.gateway import STAGE_COMMANDS, STAGES, StageRunner, StreamingGateway
from insider.gateway.session import SessionState, StreamSession

__all__ = [
    "Done",
    "ErrorOutput",
    "Output",
    "STAGE_COMMANDS",
    "STAGES",
    "SessionState",
    "StageRunner",
    "StreamEvent",
    "StreamSession",
    "StreamingGateway",
]
