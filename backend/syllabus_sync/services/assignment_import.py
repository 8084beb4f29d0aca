"""Saves the assignments a user approved after extraction."""
from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from syllabus_sync.core.exceptions import PersistenceItemError
from syllabus_sync.crud.assignment import upsert_extracted_assignment
from syllabus_sync.schemas.assignment import ApproveAssignmentsResponse
from syllabus_sync.schemas.syllabus import AssignmentSelection

logger = logging.getLogger(__name__)

END_OF_DAY = "23:59"


@dataclass
class SaveResult:
    success_count: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not (self.success_count == 0 and self.errors)

    def to_response(self) -> ApproveAssignmentsResponse:
        if not self.success:
            return ApproveAssignmentsResponse(success=False, error="; ".join(self.errors))
        return ApproveAssignmentsResponse(
            success=True,
            count=self.success_count,
            errors=self.errors or None,
        )


def check_required_fields(course_name: str, assignment: AssignmentSelection) -> None:
    """Name, course and due date must be present before an item is saved."""
    if not (assignment.name or "").strip():
        raise PersistenceItemError("", "Assignment name is required")
    if not course_name.strip():
        raise PersistenceItemError(
            assignment.name, f"Course name is required for assignment: {assignment.name}"
        )
    if not (assignment.due_date or "").strip():
        raise PersistenceItemError(
            assignment.name, f"Missing due date for assignment: {assignment.name}"
        )


def resolve_due_date_time(assignment: AssignmentSelection) -> datetime:
    """Combine date and time; a missing time means the end of the due day."""
    time_part = assignment.due_time or END_OF_DAY
    combined = f"{assignment.due_date}T{time_part}"
    try:
        return datetime.strptime(combined, "%Y-%m-%dT%H:%M")
    except ValueError as e:
        raise PersistenceItemError(
            assignment.name, f"Invalid date for assignment: {assignment.name} ({combined})"
        ) from e


def save_selected_assignments(
    db: Session,
    course_name: str,
    assignments: Sequence[AssignmentSelection],
) -> SaveResult:
    """
    Upsert each approved assignment keyed on (course_name, assignment_name).

    Every item is committed on its own, so a missing field, a bad date or a
    failed write only skips that item and is reported in ``errors``.
    """
    result = SaveResult()
    for assignment in assignments:
        try:
            check_required_fields(course_name, assignment)
            due_date_time = resolve_due_date_time(assignment)
            _save_one(db, course_name, assignment, due_date_time)
        except PersistenceItemError as e:
            logger.warning("Skipping assignment %r: %s", assignment.name, e)
            result.errors.append(str(e))
            continue
        result.success_count += 1

    logger.info(
        "Saved %d of %d assignments for %s",
        result.success_count,
        len(assignments),
        course_name,
    )
    return result


def _save_one(
    db: Session,
    course_name: str,
    assignment: AssignmentSelection,
    due_date_time: datetime,
) -> None:
    try:
        upsert_extracted_assignment(
            db,
            course_name=course_name,
            assignment_name=assignment.name,
            description=assignment.description,
            due_date_time=due_date_time,
        )
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Error saving assignment %s: %s", assignment.name, e)
        raise PersistenceItemError(
            assignment.name, f"Failed to save assignment: {assignment.name}"
        ) from e
