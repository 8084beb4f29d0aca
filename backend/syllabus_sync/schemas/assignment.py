from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from syllabus_sync.schemas.syllabus import AssignmentSelection


class ApproveAssignmentsRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    course_name: str = Field(alias="courseName")
    assignments: list[AssignmentSelection]


class ApproveAssignmentsResponse(BaseModel):
    success: bool
    count: int | None = None
    errors: list[str] | None = None
    error: str | None = None


class AssignmentCreate(BaseModel):
    course_name: str = Field(min_length=1)
    assignment_name: str = Field(min_length=1)
    description: str | None = None
    due_date_time: datetime


class AssignmentRead(BaseModel):
    id: UUID
    course_name: str
    assignment_name: str
    description: str | None
    due_date_time: datetime
    notification_sent: bool
    submitted: bool

    model_config = ConfigDict(from_attributes=True)


class ToggleSubmittedResponse(BaseModel):
    success: bool
    submitted: bool
