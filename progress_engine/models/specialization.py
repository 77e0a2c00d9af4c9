"""Specialization ORM — an ordered bundle of Leagues within a Cohort.

Invariants:
    - (specialization_id, league_id) is unique in specialization_leagues
    - member leagues are read in `order` sequence
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Text, Integer, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import UUID

from progress_engine.db.base import Base


class Specialization(Base):
    __tablename__ = "specializations"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    cohort_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("cohorts.id", ondelete="CASCADE"),
        nullable=False,
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    leagues: Mapped[list["SpecializationLeague"]] = relationship(
        "SpecializationLeague", back_populates="specialization",
        order_by="SpecializationLeague.order", lazy="selectin",
    )


class SpecializationLeague(Base):
    __tablename__ = "specialization_leagues"
    __table_args__ = (
        UniqueConstraint(
            "specialization_id", "league_id",
            name="uq_specialization_leagues_spec_league",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    specialization_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("specializations.id", ondelete="CASCADE"),
        nullable=False,
    )
    league_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("leagues.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    order: Mapped[int] = mapped_column(Integer, nullable=False)

    # Relationships
    specialization: Mapped["Specialization"] = relationship(
        "Specialization", back_populates="leagues",
    )
