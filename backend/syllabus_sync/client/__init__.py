"""Python client for the extraction stream and the approve call."""
from syllabus_sync.client.preview import SyllabusPreview
from syllabus_sync.client.stream_consumer import (
    SSEEventDecoder,
    SyllabusExtractionClient,
    consume_progress_stream,
)

__all__ = [
    "SSEEventDecoder",
    "SyllabusExtractionClient",
    "SyllabusPreview",
    "consume_progress_stream",
]
