"""CRUD operations."""
from syllabus_sync.crud.assignment import (
    create_or_update_assignment,
    delete_assignment,
    get_assignment,
    list_assignments,
    list_course_names,
    toggle_submitted,
    upsert_extracted_assignment,
)

__all__ = [
    "create_or_update_assignment",
    "delete_assignment",
    "get_assignment",
    "list_assignments",
    "list_course_names",
    "toggle_submitted",
    "upsert_extracted_assignment",
]
