"""Pydantic schemas package."""
from syllabus_sync.schemas.assignment import (
    ApproveAssignmentsRequest,
    ApproveAssignmentsResponse,
    AssignmentCreate,
    AssignmentRead,
    ToggleSubmittedResponse,
)
from syllabus_sync.schemas.syllabus import AssignmentDraft, AssignmentSelection, SyllabusStructure
from syllabus_sync.schemas.upload import ProgressEvent, Stage

__all__ = [
    "ApproveAssignmentsRequest",
    "ApproveAssignmentsResponse",
    "AssignmentCreate",
    "AssignmentDraft",
    "AssignmentRead",
    "AssignmentSelection",
    "ProgressEvent",
    "Stage",
    "SyllabusStructure",
    "ToggleSubmittedResponse",
]
