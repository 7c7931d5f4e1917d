# ─────────────────────────────────────────────────────────────────────────────
# Stream Events + EventStream — framing for the long-lived response body
# ─────────────────────────────────────────────────────────────────────────────
# Body layout: zero or more raw progress chunks, then exactly one terminal
# JSON line ({"type": "complete", ...} or {"type": "error", ...}).
#
# EventStream is the only writer. It holds a single-assignment terminal
# flag and a single-assignment closed flag; both are checked on every write
# so nothing can follow the terminal event and close happens once.
# ─────────────────────────────────────────────────────────────────────────────


import asyncio
from collections.abc import AsyncIterator
from typing import Literal

import structlog
from pydantic import BaseModel

logger = structlog.get_logger(__name__)


class ProgressEvent(BaseModel):
    """Partial generator output, opaque to the orchestrator."""

    chunk: bytes

    def encode(self) -> bytes:
        return self.chunk


class CompleteEvent(BaseModel):
    type: Literal["complete"] = "complete"
    success: bool = True
    message: str
    path: str

    def encode(self, after_progress: bool = False) -> bytes:
        return b"\n\n" + self.model_dump_json().encode() + b"\n"


class ErrorEvent(BaseModel):
    type: Literal["error"] = "error"
    error: str

    def encode(self, after_progress: bool = False) -> bytes:
        # Start the JSON on its own line when raw chunks preceded it.
        prefix = b"\n" if after_progress else b""
        return prefix + self.model_dump_json().encode() + b"\n"


class EventStream:
    """Single-request output channel between the producer task and the response.

    The producer calls progress() / complete() / error() / close(); the
    response body iterates the stream. Writes keep production order.
    """

    def __init__(self) -> None:
        self._queue: asyncio.Queue[bytes | None] = asyncio.Queue()
        self._terminal: CompleteEvent | ErrorEvent | None = None
        self._closed = False
        self._progress_count = 0

    @property
    def terminal_sent(self) -> bool:
        return self._terminal is not None

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def progress_count(self) -> int:
        return self._progress_count

    def progress(self, chunk: str | bytes) -> None:
        """Forward a raw chunk immediately. Dropped once a terminal was sent."""
        if self._terminal is not None or self._closed:
            logger.debug("late_progress_dropped", size=len(chunk))
            return
        if isinstance(chunk, str):
            chunk = chunk.encode("utf-8")
        if not chunk:
            return
        self._progress_count += 1
        self._queue.put_nowait(ProgressEvent(chunk=chunk).encode())

    def complete(self, message: str, path: str) -> bool:
        return self._send_terminal(CompleteEvent(message=message, path=path))

    def error(self, message: str) -> bool:
        return self._send_terminal(ErrorEvent(error=message))

    def _send_terminal(self, event: CompleteEvent | ErrorEvent) -> bool:
        if self._closed:
            logger.warning("terminal_after_close_dropped", event_type=event.type)
            return False
        if self._terminal is not None:
            logger.warning(
                "duplicate_terminal_dropped",
                event_type=event.type,
                first=self._terminal.type,
            )
            return False
        self._terminal = event
        self._queue.put_nowait(event.encode(after_progress=self._progress_count > 0))
        return True

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(None)

    async def __aiter__(self) -> AsyncIterator[bytes]:
        while True:
            data = await self._queue.get()
            if data is None:
                return
            yield data
