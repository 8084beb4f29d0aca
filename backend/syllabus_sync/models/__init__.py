"""ORM models."""

# Import all models so they are registered with SQLAlchemy
from syllabus_sync.models.assignment import Assignment  # noqa

__all__ = ["Assignment"]
