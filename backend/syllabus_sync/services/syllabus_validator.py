"""
Decoding and shape validation of extraction results.

The validator never decides whether to retry; it only reports what is wrong:
- ``ParseError`` when the text is not JSON at all
- ``ValidationError`` with ordered field-level defects otherwise
"""
import json
import logging
import re
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from syllabus_sync.core.exceptions import FieldDefect, ParseError, ValidationError
from syllabus_sync.schemas.syllabus import SyllabusStructure

logger = logging.getLogger(__name__)

CODE_FENCE_PATTERN = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```")

# pydantic error type -> message shown to the user and to the model on retry
ERROR_MESSAGES = {
    "missing": "required",
    "string_type": "expected string",
    "list_type": "expected array",
    "dict_type": "expected object",
    "model_type": "expected object",
    "model_attributes_type": "expected object",
}


def strip_code_fence(text: str) -> str:
    """Return the body of a markdown code block if the model wrapped its answer in one."""
    cleaned = text.strip()
    match = CODE_FENCE_PATTERN.search(cleaned)
    if match:
        cleaned = match.group(1).strip()
    return cleaned


def format_location(location: tuple[int | str, ...]) -> str:
    """Render a pydantic error location as ``assignments[2].due_date``."""
    path = ""
    for part in location:
        if isinstance(part, int):
            path += f"[{part}]"
        elif path:
            path += f".{part}"
        else:
            path = str(part)
    return path or "syllabus"


class SyllabusValidator:
    """Checks candidate extraction results against the syllabus shape."""

    def decode(self, raw_text: str) -> Any:
        cleaned = strip_code_fence(raw_text or "")
        if not cleaned:
            raise ParseError(raw_text or "", "The response was empty.")
        try:
            return json.loads(cleaned)
        except json.JSONDecodeError as e:
            logger.warning("Extraction response is not valid JSON: %s", e)
            raise ParseError(raw_text) from e

    def validate(self, candidate: Any) -> SyllabusStructure:
        try:
            return SyllabusStructure.model_validate(candidate)
        except PydanticValidationError as e:
            defects = [
                FieldDefect(
                    path=format_location(error["loc"]),
                    message=ERROR_MESSAGES.get(error["type"], error["msg"]),
                )
                for error in e.errors()
            ]
            logger.warning("Extraction result failed validation with %d defect(s)", len(defects))
            raise ValidationError(defects) from e

    def validate_text(self, raw_text: str) -> SyllabusStructure:
        return self.validate(self.decode(raw_text))
