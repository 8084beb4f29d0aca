from syllabus_sync.core.config import Settings, get_settings
from syllabus_sync.db.session import get_db
from syllabus_sync.services.document_text import DocumentRenderer
from syllabus_sync.services.extraction_client import ExtractionInvoker, OllamaExtractionClient


def get_extraction_invoker() -> ExtractionInvoker:
    """Extraction client configured from settings; overridden in tests."""
    settings: Settings = get_settings()
    return OllamaExtractionClient(
        base_url=settings.OLLAMA_URL,
        model=settings.EXTRACTION_MODEL,
        timeout=settings.EXTRACTION_TIMEOUT_SECONDS,
        streaming=settings.EXTRACTION_STREAMING,
        renderer=DocumentRenderer(max_image_pages=settings.MAX_PDF_IMAGE_PAGES),
    )


__all__ = ["get_db", "get_extraction_invoker", "get_settings"]
