from __future__ import annotations

import copy
from typing import Any


class SyllabusPreview:
    """
    Folds streamed ``partialData`` fragments into a live preview.

    The extraction model re-sends the whole assignment list each time, so a
    non-empty list replaces the previous one rather than being merged item by
    item. The preview is for display only and is never saved.
    """

    def __init__(self) -> None:
        self.course = ""
        self.assignments: list[dict[str, Any]] = []

    def apply(self, fragment: dict[str, Any] | None) -> dict[str, Any]:
        if fragment:
            course = fragment.get("course")
            if isinstance(course, str) and course:
                self.course = course
            assignments = fragment.get("assignments")
            if isinstance(assignments, list) and assignments:
                self.assignments = copy.deepcopy(assignments)
        return self.snapshot()

    def snapshot(self) -> dict[str, Any]:
        return {"course": self.course, "assignments": copy.deepcopy(self.assignments)}
