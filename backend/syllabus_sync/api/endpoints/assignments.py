from __future__ import annotations

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from syllabus_sync.api.dependencies import get_db
from syllabus_sync.crud import assignment as assignment_crud
from syllabus_sync.schemas.assignment import (
    ApproveAssignmentsRequest,
    ApproveAssignmentsResponse,
    AssignmentCreate,
    AssignmentRead,
    ToggleSubmittedResponse,
)
from syllabus_sync.services.assignment_import import save_selected_assignments

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/approve", response_model=ApproveAssignmentsResponse, response_model_exclude_none=True)
async def approve_assignments(
    payload: ApproveAssignmentsRequest,
    db: Session = Depends(get_db),
) -> ApproveAssignmentsResponse:
    """Save the extracted assignments the user selected."""
    result = save_selected_assignments(db, payload.course_name, payload.assignments)
    return result.to_response()


@router.get("", response_model=list[AssignmentRead])
async def list_assignments(
    course: str | None = None,
    db: Session = Depends(get_db),
) -> list[AssignmentRead]:
    return assignment_crud.list_assignments(db, course_name=course)


@router.get("/courses", response_model=list[str])
async def list_courses(db: Session = Depends(get_db)) -> list[str]:
    return assignment_crud.list_course_names(db)


@router.post("", response_model=AssignmentRead, status_code=201)
async def create_assignment(
    payload: AssignmentCreate,
    db: Session = Depends(get_db),
) -> AssignmentRead:
    return assignment_crud.create_or_update_assignment(db, payload)


@router.post("/{assignment_id}/toggle-submitted", response_model=ToggleSubmittedResponse)
async def toggle_assignment_submitted(
    assignment_id: UUID,
    db: Session = Depends(get_db),
) -> ToggleSubmittedResponse:
    assignment = assignment_crud.toggle_submitted(db, assignment_id)
    if assignment is None:
        raise HTTPException(status_code=404, detail="Assignment not found")
    return ToggleSubmittedResponse(success=True, submitted=assignment.submitted)


@router.delete("/{assignment_id}")
async def delete_assignment(
    assignment_id: UUID,
    db: Session = Depends(get_db),
) -> dict[str, bool]:
    if not assignment_crud.delete_assignment(db, assignment_id):
        raise HTTPException(status_code=404, detail="Assignment not found")
    logger.info("Deleted assignment %s", assignment_id)
    return {"success": True}
