"""Completion Aggregator — live rollups of section/resource completion per container.

Invariants:
    - Read-only and uncached: every call joins the hierarchy against current progress rows
    - A container with no children yields CompletionCount(0, 0), percentage 0, not complete
    - Unknown container ids raise NotFoundError
    - A member League counts toward a Specialization when its badge is held (monotonic)
      or when every one of its Sections is complete right now

Design Decisions:
    - The arithmetic lives in core/completion_math.py; this class only fetches ids
"""

from progress_engine.core.completion_math import CompletionCount, count_completed
from progress_engine.core.domain_types import (
    LeagueId, SectionId, SpecializationId, UserId, WeekId,
)
from progress_engine.core.errors import NotFoundError
from progress_engine.core.hierarchy import LeagueTree
from progress_engine.core.repository_protocols import (
    AchievementStore, HierarchyReader, ProgressRepository,
)


class CompletionAggregator:
    def __init__(
        self,
        hierarchy: HierarchyReader,
        progress: ProgressRepository,
        achievements: AchievementStore,
    ):
        self.hierarchy = hierarchy
        self.progress = progress
        self.achievements = achievements

    async def section_completion_count(
        self, user_id: UserId, week_id: WeekId,
    ) -> CompletionCount:
        """Completed Sections / Sections in one Week."""
        week = await self.hierarchy.get_week(week_id)
        if week is None:
            raise NotFoundError("Week", str(week_id))
        done = await self.progress.completed_section_ids(user_id, week.section_ids)
        return count_completed(week.section_ids, done)

    async def league_section_completion(
        self, user_id: UserId, league_id: LeagueId,
    ) -> CompletionCount:
        """Completed Sections / Sections across every Week of a League."""
        tree = await self.hierarchy.get_league_tree(league_id)
        if tree is None:
            raise NotFoundError("League", str(league_id))
        return await self.count_for_tree(user_id, tree)

    async def count_for_tree(self, user_id: UserId, tree: LeagueTree) -> CompletionCount:
        section_ids = tree.section_ids
        done = await self.progress.completed_section_ids(user_id, section_ids)
        return count_completed(section_ids, done)

    async def resource_completion_count(
        self, user_id: UserId, section_id: SectionId,
    ) -> CompletionCount:
        """Completed Resources / Resources in one Section."""
        section = await self.hierarchy.get_section(section_id)
        if section is None:
            raise NotFoundError("Section", str(section_id))
        done = await self.progress.completed_resource_ids(user_id, section.resource_ids)
        return count_completed(section.resource_ids, done)

    async def league_is_complete(self, user_id: UserId, league_id: LeagueId) -> bool:
        badge = await self.hierarchy.get_badge_for_league(league_id)
        if badge is not None:
            if await self.achievements.badge_earned_at(user_id, badge.id) is not None:
                return True
        tree = await self.hierarchy.get_league_tree(league_id)
        if tree is None:
            return False
        return (await self.count_for_tree(user_id, tree)).is_complete

    async def specialization_completion(
        self, user_id: UserId, specialization_id: SpecializationId,
    ) -> CompletionCount:
        """Completed member Leagues / member Leagues of a Specialization."""
        specialization = await self.hierarchy.get_specialization(specialization_id)
        if specialization is None:
            raise NotFoundError("Specialization", str(specialization_id))
        completed = 0
        for league_id in specialization.league_ids:
            if await self.league_is_complete(user_id, league_id):
                completed += 1
        return CompletionCount(completed=completed, total=len(specialization.league_ids))
