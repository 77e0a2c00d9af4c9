"""Content Hierarchy Snapshots — immutable League/Week/Section/Resource views.

Invariants:
    - Children are tuples sorted by their `order` field (unique per parent)
    - Snapshots are read-only; this core never mutates the hierarchy
    - A League with no weeks (or weeks with no sections) is valid: totals are 0

Design Decisions:
    - Frozen dataclasses over ORM objects: the aggregator and trigger can run against
      in-memory fakes without a session
"""

from dataclasses import dataclass, field
from datetime import datetime

from progress_engine.core.domain_types import (
    BadgeId, CohortId, LeagueId, ResourceId, ResourceType, SectionId,
    SpecializationId, UserId, WeekId,
)


@dataclass(frozen=True)
class ResourceNode:
    id: ResourceId
    title: str
    order: int
    resource_type: ResourceType = ResourceType.ARTICLE
    url: str | None = None


@dataclass(frozen=True)
class SectionNode:
    id: SectionId
    name: str
    order: int
    resources: tuple[ResourceNode, ...] = ()

    @property
    def resource_ids(self) -> list[ResourceId]:
        return [r.id for r in self.resources]


@dataclass(frozen=True)
class WeekNode:
    id: WeekId
    name: str
    order: int
    sections: tuple[SectionNode, ...] = ()

    @property
    def section_ids(self) -> list[SectionId]:
        return [s.id for s in self.sections]


@dataclass(frozen=True)
class LeagueTree:
    """A League with its full ordered subtree."""
    id: LeagueId
    name: str
    description: str | None = None
    weeks: tuple[WeekNode, ...] = ()

    @property
    def sections(self) -> list[SectionNode]:
        return [s for w in self.weeks for s in w.sections]

    @property
    def section_ids(self) -> list[SectionId]:
        return [s.id for s in self.sections]

    @property
    def resource_ids(self) -> list[ResourceId]:
        return [r.id for s in self.sections for r in s.resources]


@dataclass(frozen=True)
class SectionLocation:
    """Where a Section sits in the hierarchy."""
    section_id: SectionId
    week_id: WeekId
    league_id: LeagueId


@dataclass(frozen=True)
class ResourceLocation:
    """Where a Resource sits in the hierarchy."""
    resource_id: ResourceId
    section_id: SectionId
    week_id: WeekId
    league_id: LeagueId


@dataclass(frozen=True)
class BadgeRef:
    id: BadgeId
    league_id: LeagueId
    name: str
    description: str | None = None
    image_url: str | None = None


@dataclass(frozen=True)
class SpecializationRef:
    """A Specialization and its member leagues, in specialization order."""
    id: SpecializationId
    name: str
    cohort_id: CohortId
    league_ids: tuple[LeagueId, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class EnrollmentRef:
    user_id: UserId
    league_id: LeagueId
    cohort_id: CohortId
    enrolled_at: datetime | None = None


@dataclass(frozen=True)
class ResourcePath:
    """A Resource with the names of the Section, Week and League above it."""
    resource: ResourceNode
    section_id: SectionId
    section_name: str
    week_id: WeekId
    week_name: str
    league_id: LeagueId
    league_name: str
