"""
Progress reporting over Server-Sent Events.

The extraction task never writes to the response. It puts ``ProgressEvent``s
on a queue owned by ``ProgressEmitter``; the response body iterates that queue,
so there is exactly one writer and it stops right after the terminal event.
"""
from __future__ import annotations

import asyncio
import contextlib
import json
import logging
from collections.abc import AsyncIterator, Awaitable, Callable, Mapping
from typing import Any

from fastapi.responses import StreamingResponse
from starlette.types import Send

from syllabus_sync.schemas.syllabus import SyllabusStructure
from syllabus_sync.schemas.upload import ProgressEvent, Stage

logger = logging.getLogger(__name__)

SSE_HEADERS = {
    "Cache-Control": "no-cache, no-transform",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}

Producer = Callable[["ProgressEmitter"], Awaitable[None]]


def format_sse(event: ProgressEvent) -> str:
    """Frame one event as ``data: <json>`` followed by a blank line."""
    return f"data: {json.dumps(event.to_wire())}\n\n"


class ProgressEmitter:
    """Ordered, single-consumer channel of progress events for one request."""

    def __init__(self) -> None:
        self._queue: asyncio.Queue[ProgressEvent] = asyncio.Queue()
        self._terminated = False

    @property
    def terminated(self) -> bool:
        return self._terminated

    async def emit(
        self,
        stage: Stage,
        message: str | None = None,
        *,
        data: SyllabusStructure | None = None,
        partial_data: dict[str, Any] | None = None,
        error: str | None = None,
    ) -> None:
        await self.send(
            ProgressEvent(
                stage=stage,
                message=message,
                data=data,
                partial_data=partial_data,
                error=error,
            )
        )

    async def send(self, event: ProgressEvent) -> None:
        if self._terminated:
            logger.warning("Dropping %s event emitted after the terminal event", event.stage.value)
            return
        self._queue.put_nowait(event)
        if event.stage.is_terminal:
            self._terminated = True
        # Let the writer flush before the producer starts the next piece of work.
        await asyncio.sleep(0)

    async def _run_producer(self, producer: Producer) -> None:
        try:
            await producer(self)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.exception("Extraction task failed unexpectedly")
            await self.emit(Stage.ERROR, error=f"Failed to process the syllabus: {e}")
        if not self._terminated:
            logger.error("Extraction task finished without a terminal event")
            await self.emit(Stage.ERROR, error="Extraction finished without producing a result")

    async def stream(self, producer: Producer) -> AsyncIterator[str]:
        """Run ``producer`` in its own task and yield its events as SSE frames."""
        task = asyncio.create_task(self._run_producer(producer))
        try:
            while True:
                event = await self._queue.get()
                yield format_sse(event)
                if event.stage.is_terminal:
                    break
        finally:
            if not task.done():
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await task


class EventStreamResponse(StreamingResponse):
    """``text/event-stream`` response that closes with an error frame if the transport breaks."""

    media_type = "text/event-stream"

    def __init__(
        self,
        content: AsyncIterator[str],
        status_code: int = 200,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(
            content,
            status_code=status_code,
            headers={**SSE_HEADERS, **(headers or {})},
            media_type=self.media_type,
        )

    async def stream_response(self, send: Send) -> None:
        await send(
            {
                "type": "http.response.start",
                "status": self.status_code,
                "headers": self.raw_headers,
            }
        )
        try:
            async for chunk in self.body_iterator:
                if not isinstance(chunk, (bytes, memoryview)):
                    chunk = chunk.encode(self.charset)
                await send({"type": "http.response.body", "body": chunk, "more_body": True})
        except OSError as e:
            logger.warning("Event stream transport failed: %s", e)
            await self._send_interrupted(send)
            return
        finally:
            aclose = getattr(self.body_iterator, "aclose", None)
            if aclose is not None:
                await aclose()

        await send({"type": "http.response.body", "body": b"", "more_body": False})

    async def _send_interrupted(self, send: Send) -> None:
        # Single attempt; the connection is most likely gone already.
        frame = format_sse(ProgressEvent(stage=Stage.ERROR, error="Event stream interrupted"))
        try:
            await send({"type": "http.response.body", "body": frame.encode(self.charset), "more_body": False})
        except OSError:
            logger.debug("Could not deliver the interruption event")
