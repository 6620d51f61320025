"""Stream events emitted by a :class:`~insider.gateway.session.StreamSession`.

Every stream is zero or more ``Output``/``ErrorOutput`` events followed
by exactly one ``Done``.  Each event knows its Server-Sent Events wire
form::

    event: output
    data: {"text": "fetching_page page=1"}

"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from typing import Any, ClassVar


@dataclass(frozen=True)
class _StreamEvent:
    event: ClassVar[str] = "message"

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    def to_sse(self) -> str:
        return f"event: {self.event}\ndata: {json.dumps(self.to_dict(), ensure_ascii=False)}\n\n"


@dataclass(frozen=True)
class Output(_StreamEvent):
    """One line the stage wrote to stdout."""

    event: ClassVar[str] = "output"
    text: str


@dataclass(frozen=True)
class ErrorOutput(_StreamEvent):
    """One line the stage wrote to stderr."""

    event: ClassVar[str] = "error"
    text: str


@dataclass(frozen=True)
class Done(_StreamEvent):
    """Terminal event; a non-zero code is a stage failure, not a gateway error."""

    event: ClassVar[str] = "done"
    exit_code: int

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0


StreamEvent = Output | ErrorOutput | Done

__all__ = ["Done", "ErrorOutput", "Output", "StreamEvent"]
