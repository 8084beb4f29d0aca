"""
Client for the external document-understanding model (Ollama).

Two call shapes share one contract:
- ``generate`` returns the model's whole answer as raw text
- ``stream`` yields increasingly complete partial objects, then a final
  chunk holding the whole raw text

Neither validates anything; that is the pipeline's job.
"""
from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from typing import Any, Protocol

import httpx
from starlette.concurrency import run_in_threadpool

from syllabus_sync.core.exceptions import UpstreamError
from syllabus_sync.services.document_ingress import ExtractionRequest
from syllabus_sync.services.document_text import DocumentRenderer, RenderedDocument
from syllabus_sync.services.partial_json import PartialObjectParser

logger = logging.getLogger(__name__)

RESPONSE_SHAPE = """{
  "course": "string (required)",
  "assignments": [
    {
      "name": "string (required)",
      "description": "string (optional, can be omitted)",
      "due_date": "YYYY-MM-DD (required)",
      "due_time": "HH:MM or null (optional)"
    }
  ]
}"""

EXTRACTION_INSTRUCTION = f"""You are a syllabus parser. Extract course information and all assignments from this document.

Extract:
1. The course name/code
2. All assignments with their:
   - Name/title (required)
   - Description (optional)
   - Due date (required, in YYYY-MM-DD format)
   - Due time (optional, in HH:MM 24-hour format, or null if not specified)

Be thorough and extract ALL assignments mentioned in the syllabus, including those in schedules, calendars, or assignment sections.
If an assignment is not mentioned in the syllabus, do not include it in the output.
If there are assignments that are grouped together but have separate dates, include them as separate assignments.
Include exams, quizzes, in-tutorial assessments, etc.

CRITICAL: Return ONLY valid JSON, no markdown, no code blocks, no explanations. The JSON must match this exact structure:
{RESPONSE_SHAPE}"""

RETRY_INSTRUCTION = """The previous extraction failed with this error: {previous_error}

Please try again. Return ONLY valid JSON matching this exact structure:
{shape}

Ensure all required fields are present and dates are in YYYY-MM-DD format."""


def build_instruction(previous_error: str | None = None) -> str:
    """First-attempt instruction, or the corrective one that quotes the previous failure."""
    if previous_error is None:
        return EXTRACTION_INSTRUCTION
    return RETRY_INSTRUCTION.format(previous_error=previous_error, shape=RESPONSE_SHAPE)


@dataclass(frozen=True)
class ExtractionChunk:
    """One item of a streamed extraction: a partial object, or the final raw text."""

    partial: dict[str, Any] = field(default_factory=dict)
    raw_text: str | None = None

    @property
    def is_final(self) -> bool:
        return self.raw_text is not None


class ExtractionInvoker(Protocol):
    streaming: bool

    async def generate(self, request: ExtractionRequest, instruction: str) -> str: ...

    def stream(self, request: ExtractionRequest, instruction: str) -> AsyncIterator[ExtractionChunk]: ...


class OllamaExtractionClient:
    """Calls Ollama's /api/generate with the rendered document attached."""

    def __init__(
        self,
        base_url: str,
        model: str,
        timeout: float = 120.0,
        streaming: bool = True,
        renderer: DocumentRenderer | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout = timeout
        self.streaming = streaming
        self.renderer = renderer or DocumentRenderer()
        self._transport = transport
        self._rendering: tuple[ExtractionRequest, asyncio.Future[RenderedDocument]] | None = None

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    async def _render(self, request: ExtractionRequest) -> RenderedDocument:
        """Render a request once, in a worker thread; later attempts reuse the result."""
        if self._rendering is None or self._rendering[0] is not request:
            task = asyncio.ensure_future(run_in_threadpool(self.renderer.render, request))
            self._rendering = (request, task)
        # An attempt deadline cancels the wait, not the shared render.
        return await asyncio.shield(self._rendering[1])

    async def _build_payload(self, request: ExtractionRequest, instruction: str, stream: bool) -> dict[str, Any]:
        rendered = await self._render(request)
        prompt = instruction
        if rendered.text:
            prompt = f"{instruction}\n\nDocument ({request.filename or 'syllabus'}):\n{rendered.text}"
        payload: dict[str, Any] = {
            "model": self.model,
            "prompt": prompt,
            "stream": stream,
            "format": "json",
            "options": {"temperature": 0},
        }
        if rendered.images:
            payload["images"] = rendered.images
        return payload

    async def generate(self, request: ExtractionRequest, instruction: str) -> str:
        payload = await self._build_payload(request, instruction, stream=False)
        logger.info("Calling extraction model %s at %s", self.model, self.base_url)
        try:
            async with self._client() as client:
                response = await client.post(f"{self.base_url}/api/generate", json=payload)
                response.raise_for_status()
                result = response.json()
        except httpx.TimeoutException as e:
            raise UpstreamError(f"Extraction service timed out after {self.timeout:.0f}s") from e
        except httpx.HTTPStatusError as e:
            raise UpstreamError(
                f"Extraction service error {e.response.status_code}: {e.response.text[:200]}"
            ) from e
        except httpx.HTTPError as e:
            raise UpstreamError(f"Failed to reach extraction service: {e}") from e
        except ValueError as e:
            raise UpstreamError("Extraction service returned a malformed reply") from e

        if result.get("error"):
            raise UpstreamError(f"Extraction service error: {result['error']}")
        text = result.get("response", "")
        logger.info("Extraction model returned %d chars", len(text))
        return text

    async def stream(self, request: ExtractionRequest, instruction: str) -> AsyncIterator[ExtractionChunk]:
        payload = await self._build_payload(request, instruction, stream=True)
        logger.info("Streaming from extraction model %s at %s", self.model, self.base_url)
        parser = PartialObjectParser()
        try:
            async with self._client() as client:
                async with client.stream("POST", f"{self.base_url}/api/generate", json=payload) as response:
                    if response.is_error:
                        await response.aread()
                        response.raise_for_status()

                    async for line in response.aiter_lines():
                        if not line.strip():
                            continue
                        try:
                            chunk = json.loads(line)
                        except json.JSONDecodeError:
                            logger.warning("Skipping undecodable stream line from extraction service")
                            continue
                        if chunk.get("error"):
                            raise UpstreamError(f"Extraction service error: {chunk['error']}")

                        partial = parser.feed(chunk.get("response", ""))
                        if partial:
                            yield ExtractionChunk(partial=partial)
                        if chunk.get("done", False):
                            break
        except httpx.TimeoutException as e:
            raise UpstreamError(f"Extraction service timed out after {self.timeout:.0f}s") from e
        except httpx.HTTPStatusError as e:
            raise UpstreamError(
                f"Extraction service error {e.response.status_code}: {e.response.text[:200]}"
            ) from e
        except httpx.HTTPError as e:
            raise UpstreamError(f"Extraction stream failed: {e}") from e

        text = parser.text
        logger.info("Extraction stream finished with %d chars", len(text))
        yield ExtractionChunk(raw_text=text)
