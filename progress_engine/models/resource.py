"""Resource ORM — leaf learning unit (video, article, blog, link) within a Section.

Invariants:
    - (section_id, order) is unique
    - resource_type is one of ResourceType
"""

import uuid

from sqlalchemy import String, Integer, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import UUID

from progress_engine.core.domain_types import ResourceType
from progress_engine.db.base import Base


class Resource(Base):
    __tablename__ = "resources"
    __table_args__ = (
        UniqueConstraint("section_id", "order", name="uq_resources_section_order"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    section_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("sections.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    title: Mapped[str] = mapped_column(String(300), nullable=False)
    url: Mapped[str | None] = mapped_column(String(2000), nullable=True)
    resource_type: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ResourceType.ARTICLE.value,
    )
    order: Mapped[int] = mapped_column(Integer, nullable=False)

    # Relationships
    section: Mapped["Section"] = relationship("Section", back_populates="resources")
