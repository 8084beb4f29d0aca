import asyncio
import json
import logging

import pytest

from conftest import parse_sse
from syllabus_sync.schemas.upload import ProgressEvent, Stage
from syllabus_sync.services.progress import EventStreamResponse, ProgressEmitter, format_sse


async def collect(emitter, producer):
    return parse_sse("".join([frame async for frame in emitter.stream(producer)]))


def test_format_sse_frames_one_event():
    frame = format_sse(ProgressEvent(stage=Stage.ANALYZING, message="Sending document for analysis..."))

    assert frame.startswith("data: ")
    assert frame.endswith("\n\n")
    payload = json.loads(frame[len("data: "):])
    assert payload["stage"] == "analyzing"
    assert isinstance(payload["timestamp"], int)
    assert "data" not in payload
    assert "error" not in payload


def test_partial_data_uses_camel_case_on_the_wire():
    event = ProgressEvent(stage=Stage.EXTRACTING, partial_data={"course": "CS 405"})
    assert event.to_wire()["partialData"] == {"course": "CS 405"}


@pytest.mark.asyncio
async def test_events_after_terminal_are_dropped(caplog):
    emitter = ProgressEmitter()
    with caplog.at_level(logging.WARNING):
        await emitter.emit(Stage.ANALYZING, "working")
        await emitter.emit(Stage.ERROR, error="first failure")
        await emitter.emit(Stage.ERROR, error="second failure")
        await emitter.emit(Stage.COMPLETE)

    async def producer(em):
        return None

    events = await collect(emitter, producer)

    assert emitter.terminated
    assert [event["stage"] for event in events] == ["analyzing", "error"]
    assert events[-1]["error"] == "first failure"
    assert "after the terminal event" in caplog.text


@pytest.mark.asyncio
async def test_crashed_producer_yields_error_event():
    async def producer(emitter):
        await emitter.emit(Stage.ANALYZING)
        raise RuntimeError("kaboom")

    events = await collect(ProgressEmitter(), producer)

    assert [event["stage"] for event in events] == ["analyzing", "error"]
    assert events[-1]["error"] == "Failed to process the syllabus: kaboom"


@pytest.mark.asyncio
async def test_producer_without_terminal_event_is_closed_with_error():
    async def producer(emitter):
        await emitter.emit(Stage.ANALYZING)

    emitter = ProgressEmitter()
    events = await collect(emitter, producer)

    assert events[-1]["stage"] == "error"
    assert events[-1]["error"] == "Extraction finished without producing a result"
    assert emitter.terminated


@pytest.mark.asyncio
async def test_closing_the_stream_cancels_the_producer():
    cancelled = asyncio.Event()

    async def producer(emitter):
        await emitter.emit(Stage.ANALYZING)
        try:
            await asyncio.Event().wait()
        except asyncio.CancelledError:
            cancelled.set()
            raise

    stream = ProgressEmitter().stream(producer)
    first = await stream.__anext__()
    await stream.aclose()

    assert parse_sse(first)[0]["stage"] == "analyzing"
    assert cancelled.is_set()


def test_event_stream_response_headers():
    async def body():
        yield "data: {}\n\n"

    response = EventStreamResponse(body())
    assert response.headers["content-type"].startswith("text/event-stream")
    assert response.headers["cache-control"] == "no-cache, no-transform"
    assert response.headers["x-accel-buffering"] == "no"


@pytest.mark.asyncio
async def test_event_stream_response_ends_normally():
    async def body():
        yield "data: {\"stage\": \"complete\"}\n\n"

    messages = []

    async def send(message):
        messages.append(message)

    await EventStreamResponse(body()).stream_response(send)

    assert messages[0]["type"] == "http.response.start"
    assert messages[1]["body"] == b'data: {"stage": "complete"}\n\n'
    assert messages[-1] == {"type": "http.response.body", "body": b"", "more_body": False}


@pytest.mark.asyncio
async def test_transport_failure_sends_one_interruption_frame():
    closed = False

    async def body():
        nonlocal closed
        try:
            yield "data: {\"stage\": \"analyzing\"}\n\n"
            yield "data: {\"stage\": \"extracting\"}\n\n"
        finally:
            closed = True

    messages = []
    body_sends = 0

    async def send(message):
        nonlocal body_sends
        if message["type"] == "http.response.body":
            body_sends += 1
            if body_sends == 2:
                raise OSError("connection reset")
        messages.append(message)

    await EventStreamResponse(body()).stream_response(send)

    assert closed
    assert len(messages) == 3
    last = messages[-1]
    assert last["more_body"] is False
    event = parse_sse(last["body"].decode())[0]
    assert event == {"stage": "error", "error": "Event stream interrupted", "timestamp": event["timestamp"]}
