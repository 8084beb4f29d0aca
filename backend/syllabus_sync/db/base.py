"""Import all models here for Alembic migrations."""
from syllabus_sync.db.base_class import Base  # noqa
from syllabus_sync.models.assignment import Assignment  # noqa
