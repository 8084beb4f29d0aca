"""
Syllabus extraction pipeline with stage reporting and a single retry.

Stages per request:
    uploading -> analyzing -> extracting -> validating -> complete
A failed attempt (bad JSON, wrong shape, upstream failure) repeats
analyzing -> extracting -> validating once, with the failure quoted in the
new instruction. A second failure, or any ingress problem, ends in ``error``.
"""
from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable

from tenacity import AsyncRetrying, RetryCallState, retry_if_exception_type, stop_after_attempt

from syllabus_sync.core.exceptions import ExtractionAttemptError, IngressError, UpstreamError
from syllabus_sync.schemas.syllabus import SyllabusStructure
from syllabus_sync.schemas.upload import Stage
from syllabus_sync.services.document_ingress import ExtractionRequest
from syllabus_sync.services.extraction_client import ExtractionInvoker, build_instruction
from syllabus_sync.services.progress import ProgressEmitter
from syllabus_sync.services.syllabus_validator import SyllabusValidator

logger = logging.getLogger(__name__)

# One initial attempt plus exactly one retry.
MAX_ATTEMPTS = 2


def _log_retry(retry_state: RetryCallState) -> None:
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    logger.warning(
        "Extraction attempt %d failed (%s), retrying",
        retry_state.attempt_number,
        type(exc).__name__ if exc else "unknown",
    )


class ExtractionPipeline:
    """Runs one extraction request and reports every stage to a ``ProgressEmitter``."""

    def __init__(
        self,
        invoker: ExtractionInvoker,
        validator: SyllabusValidator | None = None,
        attempt_timeout: float | None = 120.0,
    ) -> None:
        self.invoker = invoker
        self.validator = validator or SyllabusValidator()
        self.attempt_timeout = attempt_timeout

    async def run(
        self,
        emitter: ProgressEmitter,
        load_request: Callable[[], ExtractionRequest],
        filename: str | None = None,
    ) -> None:
        await emitter.emit(Stage.UPLOADING, f"Processing {filename or 'document'}...")
        try:
            request = load_request()
            structure = await self.extract(request, emitter)
        except IngressError as e:
            logger.warning("Rejected upload %s: %s", filename, e)
            await emitter.emit(Stage.ERROR, error=str(e))
            return
        except ExtractionAttemptError as e:
            logger.error("Extraction of %s failed after %d attempts: %s", filename, MAX_ATTEMPTS, e)
            await emitter.emit(Stage.ERROR, error=e.user_message())
            return

        count = len(structure.assignments)
        logger.info("Extracted %d assignments for %s from %s", count, structure.course, filename)
        await emitter.emit(Stage.COMPLETE, f"Extracted {count} assignment(s)", data=structure)

    async def extract(self, request: ExtractionRequest, emitter: ProgressEmitter) -> SyllabusStructure:
        """Attempt extraction, retrying once; raises the last ``ExtractionAttemptError``."""
        previous_failure: ExtractionAttemptError | None = None
        retrying = AsyncRetrying(
            stop=stop_after_attempt(MAX_ATTEMPTS),
            retry=retry_if_exception_type(ExtractionAttemptError),
            before_sleep=_log_retry,
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                try:
                    structure = await self._attempt(request, emitter, previous_failure)
                except ExtractionAttemptError as e:
                    previous_failure = e
                    raise
        return structure

    async def _attempt(
        self,
        request: ExtractionRequest,
        emitter: ProgressEmitter,
        previous_failure: ExtractionAttemptError | None,
    ) -> SyllabusStructure:
        retry_hint = previous_failure.retry_hint() if previous_failure else None
        instruction = build_instruction(retry_hint)

        await emitter.emit(
            Stage.ANALYZING,
            "Retrying extraction..." if previous_failure else "Sending document for analysis...",
        )
        try:
            async with asyncio.timeout(self.attempt_timeout):
                raw_text = await self._invoke(request, instruction, emitter)
        except TimeoutError as e:
            raise UpstreamError(f"Extraction timed out after {self.attempt_timeout:.0f}s") from e

        await emitter.emit(Stage.VALIDATING, "Validating extracted data...")
        return self.validator.validate_text(raw_text)

    async def _invoke(self, request: ExtractionRequest, instruction: str, emitter: ProgressEmitter) -> str:
        if not self.invoker.streaming:
            raw_text = await self.invoker.generate(request, instruction)
            await emitter.emit(Stage.EXTRACTING, "Processing AI response...")
            return raw_text

        await emitter.emit(Stage.EXTRACTING, "Receiving extracted data...")
        async with contextlib.aclosing(self.invoker.stream(request, instruction)) as chunks:
            async for chunk in chunks:
                if chunk.is_final:
                    return chunk.raw_text
                await emitter.emit(Stage.EXTRACTING, partial_data=chunk.partial)
        raise UpstreamError("Extraction stream ended without a final result")
