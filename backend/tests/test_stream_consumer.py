"""
Client-side decoding of the progress stream, independent of how the bytes are chunked.
"""
import json

import httpx
import pytest

from syllabus_sync.client import SSEEventDecoder, SyllabusExtractionClient, consume_progress_stream
from syllabus_sync.core.exceptions import RemoteExtractionError, StreamTruncatedError, TransportError
from syllabus_sync.schemas.syllabus import AssignmentSelection, SyllabusStructure
from syllabus_sync.schemas.upload import ProgressEvent, Stage
from syllabus_sync.services.progress import format_sse

STRUCTURE = SyllabusStructure.model_validate(
    {
        "course": "Économie 101",
        "assignments": [{"name": "Dissertation – partie 1", "due_date": "2026-02-15", "due_time": None}],
    }
)


def encode(*events):
    return "".join(format_sse(event) for event in events).encode("utf-8")


SUCCESS_BODY = encode(
    ProgressEvent(stage=Stage.UPLOADING, message="Processing syllabus.pdf..."),
    ProgressEvent(stage=Stage.ANALYZING, message="Sending document for analysis..."),
    ProgressEvent(stage=Stage.EXTRACTING, partial_data={"course": "Économie 101"}),
    ProgressEvent(stage=Stage.VALIDATING, message="Validating extracted data..."),
    ProgressEvent(stage=Stage.COMPLETE, message="Extracted 1 assignment(s)", data=STRUCTURE),
)


async def chunked(*chunks):
    for chunk in chunks:
        yield chunk


async def consume(*chunks):
    received = []
    result = await consume_progress_stream(chunked(*chunks), received.append)
    return result, received


@pytest.mark.asyncio
async def test_whole_body_in_one_chunk():
    result, received = await consume(SUCCESS_BODY)

    assert result == STRUCTURE
    assert [event.stage for event in received] == [
        Stage.UPLOADING,
        Stage.ANALYZING,
        Stage.EXTRACTING,
        Stage.VALIDATING,
    ]
    assert received[2].partial_data == {"course": "Économie 101"}


@pytest.mark.asyncio
async def test_every_two_way_split_gives_the_same_events():
    for split in range(1, len(SUCCESS_BODY)):
        result, received = await consume(SUCCESS_BODY[:split], SUCCESS_BODY[split:])
        assert result == STRUCTURE, f"split at byte {split}"
        assert len(received) == 4, f"split at byte {split}"


@pytest.mark.asyncio
async def test_byte_by_byte_delivery():
    chunks = [SUCCESS_BODY[i:i + 1] for i in range(len(SUCCESS_BODY))]
    result, received = await consume(*chunks)

    assert result.course == "Économie 101"
    assert result.assignments[0].name == "Dissertation – partie 1"
    assert len(received) == 4


@pytest.mark.asyncio
async def test_error_event_raises_remote_error():
    body = encode(
        ProgressEvent(stage=Stage.UPLOADING),
        ProgressEvent(stage=Stage.ERROR, error="The uploaded file is empty"),
    )
    with pytest.raises(RemoteExtractionError, match="The uploaded file is empty"):
        await consume(body)


@pytest.mark.asyncio
async def test_error_event_without_message_gets_default():
    with pytest.raises(RemoteExtractionError, match="An error occurred during extraction"):
        await consume(b'data: {"stage": "error"}\n\n')


@pytest.mark.asyncio
async def test_complete_without_data_is_an_error():
    with pytest.raises(RemoteExtractionError, match="No data received from server"):
        await consume(b'data: {"stage": "complete", "timestamp": 1}\n\n')


@pytest.mark.asyncio
async def test_stream_ending_early_is_truncation_not_server_error():
    body = encode(ProgressEvent(stage=Stage.UPLOADING), ProgressEvent(stage=Stage.ANALYZING))

    with pytest.raises(StreamTruncatedError) as exc_info:
        await consume(body)
    assert not isinstance(exc_info.value, RemoteExtractionError)
    assert isinstance(exc_info.value, TransportError)


@pytest.mark.asyncio
async def test_single_newline_framing_and_missing_final_newline():
    complete = json.dumps({"stage": "complete", "data": STRUCTURE.model_dump(mode="json")})
    body = f'data: {{"stage": "analyzing"}}\ndata: {complete}'.encode()

    result, received = await consume(body)

    assert result == STRUCTURE
    assert [event.stage for event in received] == [Stage.ANALYZING]


@pytest.mark.asyncio
async def test_undecodable_lines_are_skipped():
    body = b": keep-alive\n\ndata: {not json}\n\n" + SUCCESS_BODY
    result, received = await consume(body)

    assert result == STRUCTURE
    assert len(received) == 4


def test_decoder_holds_split_multibyte_character():
    decoder = SSEEventDecoder()
    frame = 'data: {"stage": "analyzing", "message": "É"}\n\n'.encode()
    cut = frame.index("É".encode()) + 1

    assert decoder.feed(frame[:cut]) == []
    assert decoder.feed(frame[cut:]) == [{"stage": "analyzing", "message": "É"}]
    assert decoder.flush() == []


def make_client(handler):
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return SyllabusExtractionClient("http://test/", client=http_client), http_client


@pytest.mark.asyncio
async def test_upload_extract_follows_the_stream():
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["body"] = request.content
        return httpx.Response(200, content=SUCCESS_BODY, headers={"content-type": "text/event-stream"})

    client, http_client = make_client(handler)
    received = []
    async with http_client:
        result = await client.upload_extract("syllabus.pdf", b"%PDF-1.4", on_progress=received.append)

    assert result == STRUCTURE
    assert len(received) == 4
    assert seen["url"] == "http://test/api/upload/extract"
    assert b'filename="syllabus.pdf"' in seen["body"]


@pytest.mark.asyncio
async def test_upload_extract_reports_http_error_body():
    def handler(request):
        return httpx.Response(400, json={"error": "No file provided"})

    client, http_client = make_client(handler)
    async with http_client:
        with pytest.raises(RemoteExtractionError) as exc_info:
            await client.upload_extract("syllabus.pdf", b"")

    assert str(exc_info.value) == "No file provided"
    assert exc_info.value.status_code == 400


@pytest.mark.asyncio
async def test_approve_posts_selection():
    seen = {}

    def handler(request):
        seen["path"] = request.url.path
        seen["payload"] = json.loads(request.content)
        return httpx.Response(200, json={"success": True, "count": 1})

    client, http_client = make_client(handler)
    selection = [AssignmentSelection(name="HW1", due_date="2026-02-15")]
    async with http_client:
        response = await client.approve("CS 405", selection)

    assert response == {"success": True, "count": 1}
    assert seen["path"] == "/api/assignments/approve"
    assert seen["payload"] == {
        "courseName": "CS 405",
        "assignments": [{"name": "HW1", "description": None, "due_date": "2026-02-15", "due_time": None}],
    }
