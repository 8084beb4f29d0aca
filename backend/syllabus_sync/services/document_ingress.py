"""Turns an uploaded file into an extraction request: raw bytes plus media type."""
from __future__ import annotations

import logging
import mimetypes
from dataclasses import dataclass

from syllabus_sync.core.exceptions import IngressError

logger = logging.getLogger(__name__)

DEFAULT_MEDIA_TYPE = "application/pdf"
DOCX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
IMAGE_MEDIA_TYPES = frozenset({"image/png", "image/jpeg", "image/webp"})
TEXT_MEDIA_TYPES = frozenset({"text/plain", "text/markdown"})
SUPPORTED_MEDIA_TYPES = frozenset({DEFAULT_MEDIA_TYPE, DOCX_MEDIA_TYPE}) | IMAGE_MEDIA_TYPES | TEXT_MEDIA_TYPES

mimetypes.add_type("text/markdown", ".md")


@dataclass(frozen=True)
class ExtractionRequest:
    """One uploaded document. Lives only as long as the request handling it."""

    content: bytes
    media_type: str
    filename: str | None = None

    @property
    def size(self) -> int:
        return len(self.content)


def resolve_media_type(declared: str | None, filename: str | None) -> str:
    """Use the declared content type, guessing from the filename when it says nothing useful."""
    media_type = (declared or "").split(";", 1)[0].strip().lower()
    if media_type and media_type != "application/octet-stream":
        return media_type
    if filename:
        guessed, _ = mimetypes.guess_type(filename)
        if guessed:
            return guessed
    return DEFAULT_MEDIA_TYPE


def build_request(
    content: bytes,
    declared_media_type: str | None,
    filename: str | None,
    max_bytes: int,
) -> ExtractionRequest:
    if not content:
        raise IngressError("The uploaded file is empty")
    if len(content) > max_bytes:
        raise IngressError(
            f"File too large: {len(content) / 1024 / 1024:.2f}MB "
            f"(max: {max_bytes / 1024 / 1024:.0f}MB)"
        )
    media_type = resolve_media_type(declared_media_type, filename)
    if media_type not in SUPPORTED_MEDIA_TYPES:
        raise IngressError(
            f"Unsupported file type: {media_type}. Supported: PDF, DOCX, TXT, MD, PNG, JPEG, WEBP"
        )
    logger.info("Received upload %s (%s, %.2fKB)", filename, media_type, len(content) / 1024)
    return ExtractionRequest(content=content, media_type=media_type, filename=filename)

