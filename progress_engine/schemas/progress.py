"""Progress Schemas — Pydantic models for progress and leaderboard API boundaries.

Invariants:
    - Update bodies forbid unknown fields and use strict types (no "true" -> True coercion)
    - 0 <= time_spent <= TIME_SPENT_MAX seconds; personal_note <= 1000 chars
    - Resource and Section bodies accept the same fields
    - to_changes() keeps only the fields the client sent (PATCH semantics)

Design Decisions:
    - The same rules are enforced again in core/progress_rules.py: the service layer is
      callable without HTTP, so the core cannot trust this boundary
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictInt

from progress_engine.core.domain_types import (
    PERSONAL_NOTE_MAX_LENGTH, TIME_SPENT_MAX, ScopeKind,
)
from progress_engine.core.progress_records import ProgressRecord


class ProgressUpdate(BaseModel):
    """Partial update of a user's progress on one Resource or Section."""
    model_config = ConfigDict(extra="forbid")

    is_completed: StrictBool | None = None
    time_spent: StrictInt | None = Field(None, ge=0, le=TIME_SPENT_MAX)
    personal_note: str | None = Field(None, max_length=PERSONAL_NOTE_MAX_LENGTH)
    marked_for_revision: StrictBool | None = None

    def to_changes(self) -> dict:
        return self.model_dump(exclude_unset=True)


class ResourceProgressUpdate(ProgressUpdate):
    pass


class SectionProgressUpdate(ProgressUpdate):
    pass


class ProgressResponse(BaseModel):
    item_id: UUID
    is_completed: bool
    completed_at: datetime | None = None
    time_spent: int | None = None
    personal_note: str | None = None
    marked_for_revision: bool = False

    @classmethod
    def from_record(cls, record: ProgressRecord) -> "ProgressResponse":
        return cls(
            item_id=record.item_id,
            is_completed=record.is_completed,
            completed_at=record.completed_at,
            time_spent=record.time_spent,
            personal_note=record.personal_note,
            marked_for_revision=record.marked_for_revision,
        )


class SectionCompletionResponse(BaseModel):
    progress: ProgressResponse
    badge_awarded: bool = False
    specializations_completed: list[UUID] = []


class LeaderboardEntryResponse(BaseModel):
    rank: int
    user_id: UUID
    completed_count: int
    total_resources: int
    completion_percentage: int
    reached_at: datetime | None = None


class LeaderboardResponse(BaseModel):
    scope: ScopeKind
    scope_id: UUID | None = None
    entries: list[LeaderboardEntryResponse]


class UserRankResponse(BaseModel):
    entry: LeaderboardEntryResponse
    above: LeaderboardEntryResponse | None = None
    below: LeaderboardEntryResponse | None = None
