"""Domain Types — rich types that replace bare primitives across the codebase.

Invariants:
    - Every identifier is a UUID wrapped in a NewType — never a bare UUID in domain logic
    - UserRole ordering is explicit integer comparison (PIONEER lowest, GRAND_PATHFINDER highest)
    - LeagueState only moves forward: NOT_STARTED -> IN_PROGRESS -> COMPLETED
    - All valid states encoded as Enums — no raw string matching

Design Decisions:
    - NewType over dataclass wrappers: zero runtime cost, full type-checker support
    - str Enums: serialize to JSON and to DB string columns without custom encoders
    - UserRole is an IntEnum keyed by name in the DB: the order lives in the values,
      not in the position of a name inside a list
"""

from enum import Enum, IntEnum
from typing import NewType
from uuid import UUID


# ─── Identity Types ──────────────────────────────────────────────

UserId = NewType("UserId", UUID)
CohortId = NewType("CohortId", UUID)
LeagueId = NewType("LeagueId", UUID)
WeekId = NewType("WeekId", UUID)
SectionId = NewType("SectionId", UUID)
ResourceId = NewType("ResourceId", UUID)
BadgeId = NewType("BadgeId", UUID)
SpecializationId = NewType("SpecializationId", UUID)


# ─── Limits ──────────────────────────────────────────────────────

PERSONAL_NOTE_MAX_LENGTH = 1000
TIME_SPENT_MAX = 2_147_483_647  # INTEGER column


# ─── Enums ───────────────────────────────────────────────────────

class ResourceType(str, Enum):
    """Kinds of leaf learning units."""
    BLOG = "BLOG"
    VIDEO = "VIDEO"
    ARTICLE = "ARTICLE"
    EXTERNAL_LINK = "EXTERNAL_LINK"


class UserStatus(str, Enum):
    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    SUSPENDED = "SUSPENDED"


class UserRole(IntEnum):
    """Platform roles, ordered by privilege."""
    PIONEER = 1
    LUMINARY = 2
    PATHFINDER = 3
    CHIEF_PATHFINDER = 4
    GRAND_PATHFINDER = 5

    @classmethod
    def from_name(cls, name: str) -> "UserRole":
        """Parse a stored/header role name. Raises ValueError on unknown names."""
        try:
            return cls[name.strip().upper()]
        except KeyError:
            raise ValueError(f"Unknown role '{name}'") from None

    def at_least(self, minimum: "UserRole") -> bool:
        return self >= minimum


class LeagueState(str, Enum):
    """Per (user, league) completion state."""
    NOT_STARTED = "NOT_STARTED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"


class AuditAction(str, Enum):
    """Actions this core reports to the audit sink."""
    BADGE_EARNED = "BADGE_EARNED"
    SPECIALIZATION_COMPLETED = "SPECIALIZATION_COMPLETED"


class ScopeKind(str, Enum):
    """Leaderboard scope filters."""
    GLOBAL = "GLOBAL"
    LEAGUE = "LEAGUE"
    SPECIALIZATION = "SPECIALIZATION"
