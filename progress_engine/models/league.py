"""League ORM — top of the content hierarchy.

Invariants:
    - Read-only for this core (content CRUD lives in the admin service)
    - weeks are loaded in `order` sequence
    - At most one Badge per League (unique badges.league_id)

Design Decisions:
    - selectin loading down the tree: a league progress view needs the whole subtree,
      and the subtree is small (weeks x sections x resources)
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Text, DateTime
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import UUID

from progress_engine.db.base import Base


class League(Base):
    __tablename__ = "leagues"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    weeks: Mapped[list["Week"]] = relationship(
        "Week", back_populates="league",
        order_by="Week.order", lazy="selectin",
    )
    badge: Mapped["Badge"] = relationship(
        "Badge", back_populates="league", uselist=False, lazy="selectin",
    )
