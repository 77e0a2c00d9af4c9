"""ResourceProgress ORM — one user's progress on one Resource.

Invariants:
    - (user_id, resource_id) is unique: the upsert key and the only row per pair
    - completed_at is non-null iff is_completed (enforced by core/progress_rules + CHECK)
    - time_spent is NULL or >= 0 seconds; personal_note <= 1000 chars
    - Rows are created lazily and never deleted by this core

Design Decisions:
    - CHECK constraints duplicate the application rules so a stray writer cannot break
      the completed_at/is_completed pairing
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    String, Integer, Boolean, DateTime, ForeignKey, UniqueConstraint, CheckConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from progress_engine.db.base import Base


class ResourceProgress(Base):
    __tablename__ = "resource_progress"
    __table_args__ = (
        UniqueConstraint("user_id", "resource_id", name="uq_resource_progress_user_resource"),
        CheckConstraint(
            "(is_completed AND completed_at IS NOT NULL) "
            "OR (NOT is_completed AND completed_at IS NULL)",
            name="ck_resource_progress_completed_at",
        ),
        CheckConstraint(
            "time_spent IS NULL OR time_spent >= 0",
            name="ck_resource_progress_time_spent",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    resource_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("resources.id", ondelete="CASCADE"),
        nullable=False,
    )
    is_completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    time_spent: Mapped[int | None] = mapped_column(Integer, nullable=True)
    personal_note: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    marked_for_revision: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
