"""Progress & Achievement Records — plain values passed between store, services and API.

Invariants:
    - ProgressRecord.completed_at is set iff is_completed
    - A "not started" record (exists=False) is a valid read result, never an error
    - AwardResult.created distinguishes "just awarded" from "already awarded"; both are success

Design Decisions:
    - Dataclasses over dicts: services and fakes share one shape with the SQL store
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import UUID

from progress_engine.core.domain_types import (
    AuditAction, BadgeId, LeagueId, ScopeKind, SpecializationId, UserId, UserRole,
)


@dataclass(frozen=True)
class ProgressRecord:
    """One user's progress on one Resource or Section."""
    user_id: UserId
    item_id: UUID
    is_completed: bool = False
    completed_at: datetime | None = None
    time_spent: int | None = None
    personal_note: str | None = None
    marked_for_revision: bool = False
    exists: bool = True
    updated_at: datetime | None = None

    @classmethod
    def not_started(cls, user_id: UserId, item_id: UUID) -> "ProgressRecord":
        return cls(user_id=user_id, item_id=item_id, exists=False)

    def to_dict(self) -> dict:
        return {
            "is_completed": self.is_completed,
            "completed_at": (
                self.completed_at.isoformat() if self.completed_at else None
            ),
            "time_spent": self.time_spent,
            "personal_note": self.personal_note,
            "marked_for_revision": self.marked_for_revision,
        }


@dataclass(frozen=True)
class AwardResult:
    """Outcome of an insert-or-ignore award."""
    created: bool
    awarded_at: datetime | None = None


@dataclass(frozen=True)
class AuditEvent:
    user_id: UserId
    action: AuditAction
    resource_id: UUID
    timestamp: datetime
    description: str = ""
    details: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class EarnedBadge:
    badge_id: BadgeId
    league_id: LeagueId
    name: str
    earned_at: datetime


@dataclass(frozen=True)
class CompletedSpecialization:
    specialization_id: SpecializationId
    name: str
    completed_at: datetime


@dataclass(frozen=True)
class ResourceTally:
    """Aggregate of one user's completed resources within a leaderboard scope."""
    user_id: UserId
    completed_count: int
    reached_at: datetime | None


@dataclass(frozen=True)
class LeaderboardScope:
    kind: ScopeKind = ScopeKind.GLOBAL
    scope_id: UUID | None = None

    @classmethod
    def for_league(cls, league_id: UUID) -> "LeaderboardScope":
        return cls(ScopeKind.LEAGUE, league_id)

    @classmethod
    def for_specialization(cls, specialization_id: UUID) -> "LeaderboardScope":
        return cls(ScopeKind.SPECIALIZATION, specialization_id)


@dataclass(frozen=True)
class Viewer:
    """Who is asking: the authenticated caller and their platform role."""
    user_id: UserId
    role: UserRole = UserRole.PIONEER
