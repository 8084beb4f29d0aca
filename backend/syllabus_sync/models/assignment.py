from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Text, UniqueConstraint, Uuid, false, func
from sqlalchemy.orm import Mapped, mapped_column

from syllabus_sync.db.base_class import Base


class Assignment(Base):
    """A dated piece of coursework, unique per course and assignment name."""

    __tablename__ = "assignments"
    __table_args__ = (
        UniqueConstraint(
            "course_name",
            "assignment_name",
            name="course_assignment_unique",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    course_name: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    assignment_name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    # Wall-clock due time as written in the syllabus, no timezone.
    due_date_time: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    notification_sent: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default=false(), nullable=False
    )
    submitted: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default=false(), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
