"""Progress Service — the inbound operations, orchestrating gate, store, aggregator and trigger.

Invariants:
    - Order on every write: resolve hierarchy (404) -> enrollment gate (403) ->
      validated store write (400 before any column is written) -> trigger
    - The progress write is committed before the Achievement Trigger runs; a trigger
      failure is logged and never fails the request (reconciliation heals it)
    - Reads never create rows: missing progress is reported as the "not started" default
    - Section and Resource completion are independent: neither implies the other

Design Decisions:
    - Views are returned as plain dicts (JSON-ready), like the rest of the service layer
    - build_progress_service wires the SQL implementations for one AsyncSession;
      tests construct ProgressService directly with in-memory fakes
"""

import logging
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from progress_engine.core.completion_math import (
    completion_percentage, count_completed, league_state,
)
from progress_engine.core.domain_types import (
    LeagueId, ResourceId, SectionId, UserId,
)
from progress_engine.core.errors import ErrorContext, NotFoundError
from progress_engine.core.leaderboard import LeaderboardEntry
from progress_engine.core.progress_records import (
    LeaderboardScope, ProgressRecord, Viewer,
)
from progress_engine.core.progress_rules import sets_completed
from progress_engine.core.repository_protocols import (
    AchievementStore, AuditSink, HierarchyReader, ProgressRepository,
)
from progress_engine.infrastructure.sql_achievements import SqlAchievementStore
from progress_engine.infrastructure.sql_enrollments import SqlEnrollmentRepository
from progress_engine.infrastructure.sql_hierarchy import SqlHierarchyReader
from progress_engine.infrastructure.sql_leaderboard import SqlLeaderboardRepository
from progress_engine.infrastructure.sql_progress_store import SqlProgressStore
from progress_engine.services.achievement_trigger import AchievementTrigger, TriggerOutcome
from progress_engine.services.completion_aggregator import CompletionAggregator
from progress_engine.services.enrollment_gate import EnrollmentGate
from progress_engine.services.leaderboard_ranker import LeaderboardRanker, UserRank

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SectionCompletion:
    """Result of a section write: the stored row and, when it ran, the trigger outcome."""
    progress: ProgressRecord
    outcome: TriggerOutcome | None = None

    @property
    def badge_awarded(self) -> bool:
        return self.outcome is not None and self.outcome.badge_awarded


class ProgressService:
    def __init__(
        self,
        hierarchy: HierarchyReader,
        progress: ProgressRepository,
        achievements: AchievementStore,
        gate: EnrollmentGate,
        aggregator: CompletionAggregator,
        trigger: AchievementTrigger,
        ranker: LeaderboardRanker,
    ):
        self.hierarchy = hierarchy
        self.progress = progress
        self.achievements = achievements
        self.gate = gate
        self.aggregator = aggregator
        self.trigger = trigger
        self.ranker = ranker

    # ─── Writes ─────────────────────────────────────────────────

    async def record_resource_completion(
        self, user_id: UserId, resource_id: ResourceId, changes: dict,
    ) -> ProgressRecord:
        """Create or merge the user's progress on a Resource. Idempotent."""
        location = await self.hierarchy.locate_resource(resource_id)
        if location is None:
            raise NotFoundError("Resource", str(resource_id))
        await self.gate.authorize(user_id, location.league_id)
        return await self.progress.upsert_resource_progress(user_id, resource_id, changes)

    async def record_section_completion(
        self, user_id: UserId, section_id: SectionId, changes: dict,
    ) -> SectionCompletion:
        """Create or merge Section progress; completing it re-evaluates the League badge."""
        location = await self.hierarchy.locate_section(section_id)
        if location is None:
            raise NotFoundError("Section", str(section_id))
        await self.gate.authorize(user_id, location.league_id)
        record = await self.progress.upsert_section_progress(user_id, section_id, changes)
        if not sets_completed(changes):
            return SectionCompletion(progress=record)
        return SectionCompletion(
            progress=record,
            outcome=await self._run_trigger(user_id, location.league_id),
        )

    async def reset_progress(
        self, user_id: UserId, resource_id: ResourceId,
    ) -> ProgressRecord:
        """Clear completion on an existing Resource row. NotFound when there is no row."""
        location = await self.hierarchy.locate_resource(resource_id)
        if location is None:
            raise NotFoundError("Resource", str(resource_id))
        await self.gate.authorize(user_id, location.league_id)
        return await self.progress.reset_resource_progress(user_id, resource_id)

    async def _run_trigger(
        self, user_id: UserId, league_id: LeagueId,
    ) -> TriggerOutcome | None:
        try:
            return await self.trigger.evaluate_league(user_id, league_id)
        except Exception:
            logger.error(
                "Achievement evaluation failed; progress was saved",
                exc_info=True,
                extra={"user_id": str(user_id), "league_id": str(league_id)},
            )
            return None

    # ─── Reads ──────────────────────────────────────────────────

    async def get_league_progress(
        self, user_id: UserId, league_id: LeagueId, viewer: Viewer | None = None,
    ) -> dict:
        """Full per-league view: totals, state, ordered weeks/sections, earned badge."""
        tree = await self.hierarchy.get_league_tree(league_id)
        if tree is None:
            raise NotFoundError("League", str(league_id))
        decision = await self.gate.authorize_view(
            viewer or Viewer(user_id=user_id), user_id, league_id,
        )

        section_rows = await self.progress.section_progress_for(user_id, tree.section_ids)
        done_resources = await self.progress.completed_resource_ids(
            user_id, tree.resource_ids,
        )
        count = count_completed(
            tree.section_ids,
            {sid for sid, row in section_rows.items() if row.is_completed},
        )

        badge = await self.hierarchy.get_badge_for_league(league_id)
        earned_at = (
            await self.achievements.badge_earned_at(user_id, badge.id) if badge else None
        )
        state = league_state(
            count,
            has_badge=earned_at is not None,
            has_activity=bool(section_rows) or bool(done_resources),
        )

        weeks = []
        for week in tree.weeks:
            sections = []
            for section in week.sections:
                row = section_rows.get(section.id) or ProgressRecord.not_started(
                    user_id, section.id,
                )
                resources = count_completed(section.resource_ids, done_resources)
                sections.append({
                    "id": str(section.id),
                    "name": section.name,
                    "order": section.order,
                    "progress": row.to_dict(),
                    "resources": resources.to_dict(),
                })
            weeks.append({
                "id": str(week.id),
                "name": week.name,
                "order": week.order,
                "sections": sections,
            })

        enrolled_at = decision.enrollment.enrolled_at if decision.enrollment else None
        return {
            "league": {
                "id": str(tree.id),
                "name": tree.name,
                "description": tree.description,
            },
            "user_id": str(user_id),
            "enrolled_at": enrolled_at.isoformat() if enrolled_at else None,
            "progress": count.to_dict(),
            "state": state.value,
            "weeks": weeks,
            "badge": (
                {
                    "id": str(badge.id),
                    "name": badge.name,
                    "image_url": badge.image_url,
                    "earned_at": earned_at.isoformat(),
                }
                if badge and earned_at else None
            ),
        }

    async def get_resource_progress(
        self, user_id: UserId, resource_id: ResourceId,
    ) -> ProgressRecord:
        location = await self.hierarchy.locate_resource(resource_id)
        if location is None:
            raise NotFoundError("Resource", str(resource_id))
        await self.gate.authorize(user_id, location.league_id)
        record = await self.progress.get_resource_progress(user_id, resource_id)
        return record or ProgressRecord.not_started(user_id, resource_id)

    async def get_section_resources(
        self, user_id: UserId, section_id: SectionId,
    ) -> dict:
        """Ordered resources of a Section with the user's progress on each."""
        location = await self.hierarchy.locate_section(section_id)
        if location is None:
            raise NotFoundError("Section", str(section_id))
        await self.gate.authorize(user_id, location.league_id)
        section = await self.hierarchy.get_section(section_id)
        rows = await self.progress.resource_progress_for(user_id, section.resource_ids)

        items = []
        for resource in section.resources:
            row = rows.get(resource.id) or ProgressRecord.not_started(user_id, resource.id)
            items.append({
                "id": str(resource.id),
                "title": resource.title,
                "url": resource.url,
                "type": resource.resource_type.value,
                "order": resource.order,
                "progress": row.to_dict(),
            })
        count = count_completed(
            section.resource_ids,
            {rid for rid, row in rows.items() if row.is_completed},
        )
        return {
            "section": {"id": str(section.id), "name": section.name},
            "resources": items,
            "progress": count.to_dict(),
            "total_time_spent": sum(row.time_spent or 0 for row in rows.values()),
        }

    async def get_user_dashboard(
        self, user_id: UserId, viewer: Viewer | None = None,
    ) -> dict:
        """Every active enrollment with its League rollup, plus achievement totals."""
        self.gate.require_view(viewer or Viewer(user_id=user_id), user_id)
        if not await self.hierarchy.user_exists(user_id):
            raise NotFoundError("User", str(user_id), ErrorContext(user_id=str(user_id)))

        earned = await self.achievements.earned_badge_ids(user_id)
        enrollments = []
        total_sections = completed_sections = 0
        for enrollment in await self.gate.active_enrollments(user_id):
            tree = await self.hierarchy.get_league_tree(enrollment.league_id)
            if tree is None:
                continue
            count = await self.aggregator.count_for_tree(user_id, tree)
            badge = await self.hierarchy.get_badge_for_league(tree.id)
            done_resources = await self.progress.completed_resource_ids(
                user_id, tree.resource_ids,
            )
            state = league_state(
                count,
                has_badge=badge is not None and badge.id in earned,
                has_activity=bool(done_resources),
            )
            total_sections += count.total
            completed_sections += count.completed
            enrollments.append({
                "league": {
                    "id": str(tree.id),
                    "name": tree.name,
                    "description": tree.description,
                },
                "cohort_id": str(enrollment.cohort_id),
                "enrolled_at": (
                    enrollment.enrolled_at.isoformat() if enrollment.enrolled_at else None
                ),
                "progress": count.to_dict(),
                "state": state.value,
            })

        achievements = await self._achievement_lists(user_id)
        return {
            "user_id": str(user_id),
            "enrollments": enrollments,
            "statistics": {
                "total_enrollments": len(enrollments),
                "total_sections": total_sections,
                "completed_sections": completed_sections,
                "overall_percentage": completion_percentage(
                    completed_sections, total_sections,
                ),
                "badges_earned": len(achievements["badges"]),
                "specializations_completed": len(achievements["specializations"]),
            },
            **achievements,
        }

    async def get_revision_resources(self, user_id: UserId) -> list[dict]:
        """Resources the user flagged for revision, newest first, with their location."""
        if not await self.hierarchy.user_exists(user_id):
            raise NotFoundError("User", str(user_id), ErrorContext(user_id=str(user_id)))
        rows = await self.progress.revision_resource_progress(user_id)
        paths = await self.hierarchy.resource_paths([row.item_id for row in rows])

        items = []
        for row in rows:
            path = paths.get(row.item_id)
            if path is None:
                continue
            resource = path.resource
            items.append({
                "resource": {
                    "id": str(resource.id),
                    "title": resource.title,
                    "url": resource.url,
                    "type": resource.resource_type.value,
                    "order": resource.order,
                },
                "section": {"id": str(path.section_id), "name": path.section_name},
                "week": {"id": str(path.week_id), "name": path.week_name},
                "league": {"id": str(path.league_id), "name": path.league_name},
                "progress": row.to_dict(),
                "updated_at": row.updated_at.isoformat() if row.updated_at else None,
            })
        return items

    async def get_user_achievements(self, user_id: UserId) -> dict:
        if not await self.hierarchy.user_exists(user_id):
            raise NotFoundError("User", str(user_id), ErrorContext(user_id=str(user_id)))
        return await self._achievement_lists(user_id)

    async def _achievement_lists(self, user_id: UserId) -> dict:
        badges = await self.achievements.list_badges(user_id)
        specs = await self.achievements.list_specializations(user_id)
        return {
            "badges": [
                {
                    "badge_id": str(b.badge_id),
                    "league_id": str(b.league_id),
                    "name": b.name,
                    "earned_at": b.earned_at.isoformat(),
                }
                for b in badges
            ],
            "specializations": [
                {
                    "specialization_id": str(s.specialization_id),
                    "name": s.name,
                    "completed_at": s.completed_at.isoformat(),
                }
                for s in specs
            ],
        }

    async def get_leaderboard(
        self, limit: int, scope: LeaderboardScope | None = None,
    ) -> list[LeaderboardEntry]:
        return await self.ranker.get_leaderboard(limit, scope)

    async def get_user_rank(
        self, user_id: UserId, scope: LeaderboardScope | None = None,
    ) -> UserRank:
        return await self.ranker.get_user_rank(user_id, scope)


def build_progress_service(
    db: AsyncSession,
    audit: AuditSink | None = None,
    leaderboard_max_limit: int = 100,
) -> ProgressService:
    """Wire the SQL-backed components around one session."""
    hierarchy = SqlHierarchyReader(db)
    progress = SqlProgressStore(db)
    achievements = SqlAchievementStore(db)
    aggregator = CompletionAggregator(hierarchy, progress, achievements)
    return ProgressService(
        hierarchy=hierarchy,
        progress=progress,
        achievements=achievements,
        gate=EnrollmentGate(SqlEnrollmentRepository(db)),
        aggregator=aggregator,
        trigger=AchievementTrigger(hierarchy, aggregator, achievements, audit),
        ranker=LeaderboardRanker(
            SqlLeaderboardRepository(db), hierarchy, leaderboard_max_limit,
        ),
    )
