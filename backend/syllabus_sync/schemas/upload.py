"""Upload progress schemas."""
from __future__ import annotations

import time
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from syllabus_sync.schemas.syllabus import SyllabusStructure


class Stage(str, Enum):
    """Extraction stages in their expected order of occurrence."""

    UPLOADING = "uploading"
    ANALYZING = "analyzing"
    EXTRACTING = "extracting"
    VALIDATING = "validating"
    COMPLETE = "complete"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (Stage.COMPLETE, Stage.ERROR)


def now_ms() -> int:
    return int(time.time() * 1000)


class ProgressEvent(BaseModel):
    """Progress event for SSE streaming."""

    model_config = ConfigDict(populate_by_name=True)

    stage: Stage
    message: str | None = None
    data: SyllabusStructure | None = None
    partial_data: dict[str, Any] | None = Field(default=None, alias="partialData")
    error: str | None = None
    timestamp: int = Field(default_factory=now_ms)

    def to_wire(self) -> dict[str, Any]:
        """JSON-ready dict with unset top-level fields omitted."""
        payload = self.model_dump(mode="json", by_alias=True)
        return {key: value for key, value in payload.items() if value is not None}
