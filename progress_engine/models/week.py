"""Week ORM — ordered grouping of Sections within a League.

Invariants:
    - (league_id, order) is unique
"""

import uuid

from sqlalchemy import String, Text, Integer, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import UUID

from progress_engine.db.base import Base


class Week(Base):
    __tablename__ = "weeks"
    __table_args__ = (
        UniqueConstraint("league_id", "order", name="uq_weeks_league_order"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    league_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("leagues.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    order: Mapped[int] = mapped_column(Integer, nullable=False)

    # Relationships
    league: Mapped["League"] = relationship("League", back_populates="weeks")
    sections: Mapped[list["Section"]] = relationship(
        "Section", back_populates="week",
        order_by="Section.order", lazy="selectin",
    )
