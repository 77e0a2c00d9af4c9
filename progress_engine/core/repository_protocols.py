"""Boundary Protocols — contracts between the progress components and storage.

Invariants:
    - Services depend on these Protocols only; SQL implementations live in infrastructure/
    - HierarchyReader is read-only: nothing in this core mutates League/Week/Section/Resource
    - AchievementStore awards are insert-or-ignore against a unique key: calling twice is safe
    - AuditSink.emit is best-effort; callers never let its failure undo an award

Design Decisions:
    - Protocol over ABC: structural subtyping, in-memory fakes need no inheritance
    - Async in Protocol: implementations do IO; the pure rollup math in core/ stays sync
"""

from typing import Protocol
from uuid import UUID

from progress_engine.core.domain_types import (
    BadgeId, LeagueId, ResourceId, SectionId, SpecializationId, UserId, WeekId,
)
from progress_engine.core.hierarchy import (
    BadgeRef, EnrollmentRef, LeagueTree, ResourceLocation, ResourcePath,
    SectionLocation, SectionNode, SpecializationRef, WeekNode,
)
from progress_engine.core.progress_records import (
    AuditEvent, AwardResult, CompletedSpecialization, EarnedBadge,
    LeaderboardScope, ProgressRecord, ResourceTally,
)


class HierarchyReader(Protocol):
    """Read-only view of the content tree plus badge/specialization definitions."""
    async def get_league_tree(self, league_id: LeagueId) -> LeagueTree | None: ...
    async def get_week(self, week_id: WeekId) -> WeekNode | None: ...
    async def get_section(self, section_id: SectionId) -> SectionNode | None: ...
    async def locate_section(self, section_id: SectionId) -> SectionLocation | None: ...
    async def locate_resource(self, resource_id: ResourceId) -> ResourceLocation | None: ...
    async def resource_paths(
        self, resource_ids: list[ResourceId],
    ) -> dict[UUID, ResourcePath]: ...
    async def get_badge_for_league(self, league_id: LeagueId) -> BadgeRef | None: ...
    async def get_specialization(
        self, specialization_id: SpecializationId,
    ) -> SpecializationRef | None: ...
    async def specializations_containing(
        self, league_id: LeagueId,
    ) -> list[SpecializationRef]: ...
    async def user_exists(self, user_id: UserId) -> bool: ...


class ProgressRepository(Protocol):
    """Durable per-user progress rows at Resource and Section granularity."""
    async def upsert_resource_progress(
        self, user_id: UserId, resource_id: ResourceId, changes: dict,
    ) -> ProgressRecord: ...
    async def upsert_section_progress(
        self, user_id: UserId, section_id: SectionId, changes: dict,
    ) -> ProgressRecord: ...
    async def reset_resource_progress(
        self, user_id: UserId, resource_id: ResourceId,
    ) -> ProgressRecord: ...
    async def get_resource_progress(
        self, user_id: UserId, resource_id: ResourceId,
    ) -> ProgressRecord | None: ...
    async def section_progress_for(
        self, user_id: UserId, section_ids: list[SectionId],
    ) -> dict[UUID, ProgressRecord]: ...
    async def resource_progress_for(
        self, user_id: UserId, resource_ids: list[ResourceId],
    ) -> dict[UUID, ProgressRecord]: ...
    async def completed_section_ids(
        self, user_id: UserId, section_ids: list[SectionId],
    ) -> set[UUID]: ...
    async def completed_resource_ids(
        self, user_id: UserId, resource_ids: list[ResourceId],
    ) -> set[UUID]: ...
    async def revision_resource_progress(
        self, user_id: UserId,
    ) -> list[ProgressRecord]: ...


class EnrollmentRepository(Protocol):
    async def find_active_enrollment(
        self, user_id: UserId, league_id: LeagueId,
    ) -> EnrollmentRef | None: ...
    async def iter_active_enrollments(
        self, batch_size: int, after: tuple | None = None,
    ) -> list[EnrollmentRef]: ...
    async def list_active_enrollments(self, user_id: UserId) -> list[EnrollmentRef]: ...


class AchievementStore(Protocol):
    """UserBadge / UserSpecialization rows. Monotonic: nothing here deletes."""
    async def award_badge(self, user_id: UserId, badge_id: BadgeId) -> AwardResult: ...
    async def complete_specialization(
        self, user_id: UserId, specialization_id: SpecializationId,
    ) -> AwardResult: ...
    async def badge_earned_at(self, user_id: UserId, badge_id: BadgeId): ...
    async def earned_badge_ids(self, user_id: UserId) -> set[UUID]: ...
    async def list_badges(self, user_id: UserId) -> list[EarnedBadge]: ...
    async def list_specializations(
        self, user_id: UserId,
    ) -> list[CompletedSpecialization]: ...


class LeaderboardRepository(Protocol):
    async def resource_tallies(
        self, scope: LeaderboardScope, limit: int | None = None,
    ) -> list[ResourceTally]: ...
    async def count_resources(self, scope: LeaderboardScope) -> int: ...


class AuditSink(Protocol):
    """Fire-and-forget audit log."""
    async def emit(self, event: AuditEvent) -> None: ...
