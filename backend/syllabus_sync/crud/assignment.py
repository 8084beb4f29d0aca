from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

from syllabus_sync.models.assignment import Assignment
from syllabus_sync.schemas.assignment import AssignmentCreate

DEDUP_KEY = ["course_name", "assignment_name"]

_DIALECT_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


def get_assignment(db: Session, assignment_id: UUID) -> Assignment | None:
    return db.get(Assignment, assignment_id)


def list_assignments(db: Session, course_name: str | None = None) -> list[Assignment]:
    stmt = select(Assignment).order_by(Assignment.due_date_time, Assignment.assignment_name)
    if course_name:
        stmt = stmt.where(Assignment.course_name == course_name)
    return list(db.scalars(stmt))


def list_course_names(db: Session) -> list[str]:
    stmt = select(Assignment.course_name).distinct().order_by(Assignment.course_name)
    return list(db.scalars(stmt))


def _upsert(db: Session, values: dict[str, Any], update_columns: dict[str, Any]) -> None:
    """INSERT .. ON CONFLICT (course_name, assignment_name) DO UPDATE, or its ORM equivalent."""
    insert_fn = _DIALECT_INSERTS.get(db.get_bind().dialect.name)
    if insert_fn is not None:
        stmt = insert_fn(Assignment).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=DEDUP_KEY,
            set_={**update_columns, "updated_at": func.now()},
        )
        db.execute(stmt)
        return

    existing = db.scalar(
        select(Assignment).where(
            Assignment.course_name == values["course_name"],
            Assignment.assignment_name == values["assignment_name"],
        )
    )
    if existing is None:
        db.add(Assignment(**values))
    else:
        for column, value in update_columns.items():
            setattr(existing, column, value)
    db.flush()


def upsert_extracted_assignment(
    db: Session,
    *,
    course_name: str,
    assignment_name: str,
    description: str | None,
    due_date_time: datetime,
) -> None:
    """Save an extracted assignment. On a repeat, the due date may have moved, so any sent reminder is stale."""
    _upsert(
        db,
        values={
            "course_name": course_name,
            "assignment_name": assignment_name,
            "description": description,
            "due_date_time": due_date_time,
            "notification_sent": False,
        },
        update_columns={
            "description": description,
            "due_date_time": due_date_time,
            "notification_sent": False,
        },
    )


def create_or_update_assignment(db: Session, data: AssignmentCreate) -> Assignment:
    """Manual entry: same dedup key, but reminder and submission state are left alone."""
    _upsert(
        db,
        values={
            "course_name": data.course_name,
            "assignment_name": data.assignment_name,
            "description": data.description,
            "due_date_time": data.due_date_time,
        },
        update_columns={
            "description": data.description,
            "due_date_time": data.due_date_time,
        },
    )
    db.commit()
    return db.scalar(
        select(Assignment)
        .where(
            Assignment.course_name == data.course_name,
            Assignment.assignment_name == data.assignment_name,
        )
        .execution_options(populate_existing=True)
    )


def toggle_submitted(db: Session, assignment_id: UUID) -> Assignment | None:
    assignment = db.get(Assignment, assignment_id)
    if assignment is None:
        return None
    assignment.submitted = not assignment.submitted
    db.commit()
    db.refresh(assignment)
    return assignment


def delete_assignment(db: Session, assignment_id: UUID) -> bool:
    assignment = db.get(Assignment, assignment_id)
    if assignment is None:
        return False
    db.delete(assignment)
    db.commit()
    return True
