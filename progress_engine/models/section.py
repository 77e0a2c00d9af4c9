"""Section ORM — ordered grouping of Resources within a Week.

Invariants:
    - (week_id, order) is unique
    - A Section has its own completion flag (section_progress), independent of its resources
"""

import uuid

from sqlalchemy import String, Text, Integer, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import UUID

from progress_engine.db.base import Base


class Section(Base):
    __tablename__ = "sections"
    __table_args__ = (
        UniqueConstraint("week_id", "order", name="uq_sections_week_order"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    week_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("weeks.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    order: Mapped[int] = mapped_column(Integer, nullable=False)

    # Relationships
    week: Mapped["Week"] = relationship("Week", back_populates="sections")
    resources: Mapped[list["Resource"]] = relationship(
        "Resource", back_populates="section",
        order_by="Resource.order", lazy="selectin",
    )
