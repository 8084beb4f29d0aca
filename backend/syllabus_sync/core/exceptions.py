from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

RAW_EXCERPT_LENGTH = 200

REQUIRED_FIELDS_HELP = (
    "Required fields:\n"
    "- course: The course name or code\n"
    "- assignments: An array of assignments, each with:\n"
    "  - name: Assignment title (required)\n"
    "  - due_date: Due date in YYYY-MM-DD format (required)\n"
    "  - description: Assignment description (optional)\n"
    "  - due_time: Due time in HH:MM format or null (optional)"
)


class SyllabusSyncError(Exception):
    """Base class for every error raised by the syllabus pipeline."""


class IngressError(SyllabusSyncError):
    """Raised when the uploaded document is missing, empty, oversized or unreadable."""


class TransportError(SyllabusSyncError):
    """Raised when reading or writing an event stream fails."""


class ExtractionAttemptError(SyllabusSyncError):
    """A failed extraction attempt. These are retried exactly once."""

    def retry_hint(self) -> str:
        """Description of the failure embedded in the next attempt's instruction."""
        return str(self)

    def user_message(self) -> str:
        """Terminal, user-facing description once no retry is left."""
        return f"Failed to process the syllabus: {self}"


class ParseError(ExtractionAttemptError):
    """The upstream response could not be decoded as JSON."""

    def __init__(self, raw_text: str, reason: str = "The response was not valid JSON.") -> None:
        super().__init__(f"Invalid JSON format. {reason}")
        self.raw_text = raw_text
        self.reason = reason

    def user_message(self) -> str:
        excerpt = self.raw_text[:RAW_EXCERPT_LENGTH]
        return (
            "The syllabus could not be parsed. The AI returned invalid JSON format.\n\n"
            f"Response received: {excerpt}..."
        )


@dataclass(frozen=True)
class FieldDefect:
    path: str
    message: str

    def __str__(self) -> str:
        return f"{self.path}: {self.message}"


class ValidationError(ExtractionAttemptError):
    """The decoded response does not match the syllabus shape."""

    def __init__(self, defects: Sequence[FieldDefect]) -> None:
        self.defects = list(defects)
        super().__init__(self.describe())

    def describe(self) -> str:
        return "\n".join(f"- {defect}" for defect in self.defects)

    def retry_hint(self) -> str:
        return f"Validation failed:\n{self.describe()}"

    def user_message(self) -> str:
        return (
            "The syllabus format is incorrect. Please ensure your syllabus contains:\n\n"
            f"{self.describe()}\n\n{REQUIRED_FIELDS_HELP}"
        )


class UpstreamError(ExtractionAttemptError):
    """The external extraction service failed, refused or timed out."""


class PersistenceItemError(SyllabusSyncError):
    """A single assignment could not be saved; the rest of the batch continues."""

    def __init__(self, assignment_name: str, message: str) -> None:
        super().__init__(message)
        self.assignment_name = assignment_name


class RemoteExtractionError(SyllabusSyncError):
    """The server reported a failure, either as an error event or an HTTP error body."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class StreamTruncatedError(TransportError):
    """The event stream closed before a complete or error event arrived."""

    def __init__(
        self,
        message: str = "Stream ended unexpectedly. The extraction may have failed or timed out.",
    ) -> None:
        super().__init__(message)
