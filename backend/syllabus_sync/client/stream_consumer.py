"""
Client side of the extraction stream.

Response bodies arrive in arbitrary chunks: an event can be split across reads,
even in the middle of a multi-byte character. ``SSEEventDecoder`` keeps what
is left over between reads and only hands out complete events.
"""
from __future__ import annotations

import codecs
import json
import logging
from collections.abc import AsyncIterable, AsyncIterator, Callable, Sequence
from contextlib import asynccontextmanager
from typing import Any

import httpx
from pydantic import ValidationError as PydanticValidationError

from syllabus_sync.core.exceptions import RemoteExtractionError, StreamTruncatedError, TransportError
from syllabus_sync.schemas.syllabus import AssignmentDraft, AssignmentSelection, SyllabusStructure
from syllabus_sync.schemas.upload import ProgressEvent, Stage

logger = logging.getLogger(__name__)

DATA_PREFIX = "data:"
DEFAULT_TIMEOUT = httpx.Timeout(30.0, read=300.0)

ProgressCallback = Callable[[ProgressEvent], None]


class SSEEventDecoder:
    """Incremental decoder for ``data: <json>`` frames."""

    def __init__(self) -> None:
        self._buffer = ""
        self._text_decoder = codecs.getincrementaldecoder("utf-8")()

    def feed(self, chunk: bytes) -> list[dict[str, Any]]:
        """Add one read's bytes and return every event completed by it."""
        self._buffer += self._text_decoder.decode(chunk)
        # A frame ends at a blank line, but a bare newline is accepted too.
        *lines, self._buffer = self._buffer.split("\n")
        return self._decode_lines(lines)

    def flush(self) -> list[dict[str, Any]]:
        """Decode whatever is still buffered once the stream has ended."""
        self._buffer += self._text_decoder.decode(b"", final=True)
        lines, self._buffer = self._buffer.split("\n"), ""
        return self._decode_lines(lines)

    @staticmethod
    def _decode_lines(lines: Sequence[str]) -> list[dict[str, Any]]:
        events = []
        for raw_line in lines:
            line = raw_line.strip()
            if not line.startswith(DATA_PREFIX):
                continue
            payload = line[len(DATA_PREFIX):].strip()
            try:
                event = json.loads(payload)
            except json.JSONDecodeError:
                logger.warning("Skipping undecodable SSE line: %s", line[:200])
                continue
            if isinstance(event, dict):
                events.append(event)
        return events


def _dispatch(event: dict[str, Any], on_progress: ProgressCallback | None) -> SyllabusStructure | None:
    """Handle one event; returns the result on ``complete`` and raises on ``error``."""
    stage = event.get("stage")
    if stage == Stage.ERROR.value:
        raise RemoteExtractionError(event.get("error") or "An error occurred during extraction")

    if stage == Stage.COMPLETE.value:
        if event.get("data") is None:
            raise RemoteExtractionError("No data received from server")
        try:
            return SyllabusStructure.model_validate(event["data"])
        except PydanticValidationError as e:
            raise TransportError(f"Malformed result in complete event: {e}") from e

    try:
        progress = ProgressEvent.model_validate(event)
    except PydanticValidationError:
        logger.warning("Ignoring unrecognised progress event with stage %r", stage)
        return None
    if on_progress is not None:
        on_progress(progress)
    return None


async def consume_progress_stream(
    chunks: AsyncIterable[bytes],
    on_progress: ProgressCallback | None = None,
) -> SyllabusStructure:
    """
    Read an extraction stream until its terminal event.

    Raises ``RemoteExtractionError`` for an ``error`` event and
    ``StreamTruncatedError`` when the bytes run out before either terminal
    event was seen.
    """
    decoder = SSEEventDecoder()
    async for chunk in chunks:
        for event in decoder.feed(chunk):
            result = _dispatch(event, on_progress)
            if result is not None:
                return result

    for event in decoder.flush():
        result = _dispatch(event, on_progress)
        if result is not None:
            return result

    raise StreamTruncatedError()


def _error_detail(body: bytes) -> str:
    try:
        payload = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError):
        return body.decode("utf-8", errors="replace")[:200] or "Unknown error"
    if isinstance(payload, dict):
        detail = payload.get("error") or payload.get("detail")
        if detail:
            return detail if isinstance(detail, str) else json.dumps(detail)
    return json.dumps(payload)


class SyllabusExtractionClient:
    """Uploads a syllabus, follows its progress stream, and saves approved assignments."""

    def __init__(self, base_url: str, client: httpx.AsyncClient | None = None) -> None:
        self.base_url = base_url.rstrip("/")
        self._client = client

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._client is not None:
            yield self._client
            return
        async with httpx.AsyncClient(timeout=DEFAULT_TIMEOUT) as client:
            yield client

    async def upload_extract(
        self,
        filename: str,
        content: bytes,
        media_type: str = "application/pdf",
        on_progress: ProgressCallback | None = None,
    ) -> SyllabusStructure:
        files = {"file": (filename, content, media_type)}
        async with self._session() as client:
            # Leaving this block closes the response, also when the caller is cancelled.
            async with client.stream("POST", f"{self.base_url}/api/upload/extract", files=files) as response:
                if response.status_code != 200:
                    body = await response.aread()
                    raise RemoteExtractionError(_error_detail(body), status_code=response.status_code)
                try:
                    return await consume_progress_stream(response.aiter_bytes(), on_progress)
                except httpx.TransportError as e:
                    raise TransportError(f"Reading the extraction stream failed: {e}") from e

    async def approve(
        self,
        course_name: str,
        assignments: Sequence[AssignmentSelection | AssignmentDraft],
    ) -> dict[str, Any]:
        payload = {
            "courseName": course_name,
            "assignments": [a.model_dump() for a in assignments],
        }
        async with self._session() as client:
            response = await client.post(f"{self.base_url}/api/assignments/approve", json=payload)
            response.raise_for_status()
            return response.json()
