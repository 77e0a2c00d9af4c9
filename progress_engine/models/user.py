"""User ORM — the minimal learner identity this core needs.

Invariants:
    - role stores a UserRole name; ordering comes from the enum, never from the string
    - Only ACTIVE users appear on the leaderboard

Design Decisions:
    - Profile fields (email, socials) are owned by the account service, not stored here
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, DateTime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from progress_engine.core.domain_types import UserRole, UserStatus
from progress_engine.db.base import Base


class User(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    role: Mapped[str] = mapped_column(
        String(30), nullable=False, default=UserRole.PIONEER.name,
    )
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=UserStatus.ACTIVE.value,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
