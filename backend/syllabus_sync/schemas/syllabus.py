"""Shape of the structured data extracted from a syllabus."""
from __future__ import annotations

import re
from datetime import datetime

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic_core import PydanticCustomError

DUE_DATE_PATTERN = re.compile(r"\d{4}-\d{2}-\d{2}")
DUE_TIME_PATTERN = re.compile(r"([01]\d|2[0-3]):[0-5]\d")


class AssignmentSelection(BaseModel):
    """An assignment as chosen by the user for saving.

    Nothing is required here: a missing name or date is reported for that
    item alone when the batch is saved.
    """

    model_config = ConfigDict(extra="ignore")

    name: str | None = None
    description: str | None = None
    due_date: str | None = None
    due_time: str | None = None


class AssignmentDraft(BaseModel):
    """An assignment as extracted from the document.

    ``due_time`` stays ``None`` when the syllabus gives no time; the end-of-day
    default is applied only when the assignment is saved.
    """

    model_config = ConfigDict(extra="ignore")

    name: str
    description: str | None = None
    due_date: str
    due_time: str | None = None

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise PydanticCustomError("blank", "must not be empty")
        return value

    @field_validator("due_date")
    @classmethod
    def due_date_is_calendar_date(cls, value: str) -> str:
        if DUE_DATE_PATTERN.fullmatch(value):
            try:
                datetime.strptime(value, "%Y-%m-%d")
                return value
            except ValueError:
                pass
        raise PydanticCustomError("date_format", "must be a valid date in YYYY-MM-DD format")

    @field_validator("due_time")
    @classmethod
    def due_time_is_clock_time(cls, value: str | None) -> str | None:
        if value is not None and not DUE_TIME_PATTERN.fullmatch(value):
            raise PydanticCustomError("time_format", "must be HH:MM (24-hour) or null")
        return value


class SyllabusStructure(BaseModel):
    model_config = ConfigDict(extra="ignore")

    course: str
    assignments: list[AssignmentDraft]

    @field_validator("course")
    @classmethod
    def course_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise PydanticCustomError("blank", "must not be empty")
        return value
