"""
Renders an uploaded document into what the extraction model can read.

- PDF: text layer via PyMuPDF; page images when there is no usable text
- DOCX: paragraphs and table rows via python-docx
- plain text / markdown: UTF-8, else the encoding chardet detects
- images: passed through as base64
"""
from __future__ import annotations

import base64
import logging
from dataclasses import dataclass, field
from io import BytesIO

import chardet
import fitz  # PyMuPDF
from docx import Document

from syllabus_sync.core.exceptions import IngressError
from syllabus_sync.services.document_ingress import (
    DEFAULT_MEDIA_TYPE,
    DOCX_MEDIA_TYPE,
    IMAGE_MEDIA_TYPES,
    TEXT_MEDIA_TYPES,
    ExtractionRequest,
)

logger = logging.getLogger(__name__)

# Below this many characters a PDF is treated as scanned.
MIN_TEXT_CHARS = 100
PAGE_IMAGE_DPI = 150


@dataclass
class RenderedDocument:
    text: str | None = None
    images: list[str] = field(default_factory=list)


class DocumentRenderer:
    """Converts document bytes into prompt text and/or base64 page images."""

    def __init__(self, max_image_pages: int = 10) -> None:
        self.max_image_pages = max_image_pages

    def render(self, request: ExtractionRequest) -> RenderedDocument:
        if request.media_type == DEFAULT_MEDIA_TYPE:
            return self._render_pdf(request.content)
        if request.media_type == DOCX_MEDIA_TYPE:
            return RenderedDocument(text=self._docx_text(request.content))
        if request.media_type in TEXT_MEDIA_TYPES:
            return RenderedDocument(text=self._decode_text(request.content))
        if request.media_type in IMAGE_MEDIA_TYPES:
            return RenderedDocument(images=[base64.b64encode(request.content).decode("ascii")])
        raise IngressError(f"Unsupported file type: {request.media_type}")

    def _render_pdf(self, content: bytes) -> RenderedDocument:
        try:
            with fitz.open(stream=content, filetype="pdf") as doc:
                if doc.page_count == 0:
                    raise IngressError("Could not read the uploaded PDF: it has no pages")
                text = "\n".join(page.get_text() for page in doc).strip()
                if len(text) >= MIN_TEXT_CHARS:
                    logger.info("PDF text layer: %d pages, %d chars", doc.page_count, len(text))
                    return RenderedDocument(text=text)

                logger.info(
                    "PDF has no usable text layer, rendering up to %d page images",
                    self.max_image_pages,
                )
                images = []
                for page_number, page in enumerate(doc):
                    if page_number >= self.max_image_pages:
                        break
                    png = page.get_pixmap(dpi=PAGE_IMAGE_DPI).tobytes("png")
                    images.append(base64.b64encode(png).decode("ascii"))
                return RenderedDocument(text=text or None, images=images)
        except RuntimeError as e:
            # PyMuPDF raises FileDataError (a RuntimeError) for damaged files.
            raise IngressError(f"Could not read the uploaded PDF: {e}") from e

    @staticmethod
    def _docx_text(content: bytes) -> str:
        try:
            doc = Document(BytesIO(content))
        except Exception as e:
            raise IngressError(f"Could not read the uploaded DOCX file: {e}") from e

        parts = [p.text for p in doc.paragraphs if p.text.strip()]
        for table in doc.tables:
            for row in table.rows:
                cells = [cell.text.strip() for cell in row.cells]
                if any(cells):
                    parts.append(" | ".join(cells))
        return "\n".join(parts)

    @staticmethod
    def _decode_text(content: bytes) -> str:
        try:
            return content.decode("utf-8")
        except UnicodeDecodeError:
            pass
        result = chardet.detect(content)
        encoding = result.get("encoding") or "utf-8"
        if result.get("confidence", 0) < 0.7:
            logger.warning("Low confidence (%s) in detected encoding: %s", result.get("confidence"), encoding)
        return content.decode(encoding, errors="replace")
