"""Syllabus upload and extraction endpoint with SSE progress updates."""
import logging

from fastapi import APIRouter, Depends, File, UploadFile
from fastapi.responses import JSONResponse

from syllabus_sync.api.dependencies import get_extraction_invoker
from syllabus_sync.core.config import Settings, get_settings
from syllabus_sync.services.document_ingress import ExtractionRequest, build_request
from syllabus_sync.services.extraction_client import ExtractionInvoker
from syllabus_sync.services.extraction_pipeline import ExtractionPipeline
from syllabus_sync.services.progress import EventStreamResponse, ProgressEmitter

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/extract", response_model=None)
async def extract_syllabus(
    file: UploadFile | None = File(None),
    invoker: ExtractionInvoker = Depends(get_extraction_invoker),
    settings: Settings = Depends(get_settings),
) -> EventStreamResponse | JSONResponse:
    """
    Extract course and assignments from an uploaded syllabus.

    Returns a Server-Sent Events stream of progress events:
    - uploading
    - analyzing / extracting / validating (repeated once on retry)
    - extracting events with ``partialData`` while the model is still writing
    - complete (with ``data``) or error (with ``error``), then the stream closes

    A request without a file gets a plain 400 JSON error instead.
    """
    if file is None:
        return JSONResponse(status_code=400, content={"error": "No file provided"})

    # The upload is spooled by the framework and closed once this handler returns.
    content = await file.read()
    filename = file.filename
    content_type = file.content_type

    def load_request() -> ExtractionRequest:
        return build_request(content, content_type, filename, settings.MAX_UPLOAD_BYTES)

    pipeline = ExtractionPipeline(invoker, attempt_timeout=settings.EXTRACTION_TIMEOUT_SECONDS)

    async def produce(emitter: ProgressEmitter) -> None:
        await pipeline.run(emitter, load_request, filename=filename)

    logger.info("Starting extraction stream for %s", filename)
    return EventStreamResponse(ProgressEmitter().stream(produce))
