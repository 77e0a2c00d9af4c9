"""SQL Leaderboard Repository — per-user completed-resource tallies within a scope.

Invariants:
    - Counts completed ResourceProgress rows only (sections are not counted)
    - Only ACTIVE users are tallied
    - ORDER BY matches core/leaderboard.ranking_key so LIMIT keeps the right rows
"""

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from progress_engine.core.domain_types import ScopeKind, UserStatus
from progress_engine.core.progress_records import LeaderboardScope, ResourceTally
from progress_engine.models.resource import Resource
from progress_engine.models.resource_progress import ResourceProgress
from progress_engine.models.section import Section
from progress_engine.models.specialization import SpecializationLeague
from progress_engine.models.user import User
from progress_engine.models.week import Week


def _restrict(query: Select, resource_col, scope: LeaderboardScope) -> Select:
    """Join down to the league (and specialization) when the scope is not global.

    resource_col is Resource.id when the query already selects from Resource.
    """
    if scope.kind == ScopeKind.GLOBAL:
        return query
    if resource_col is not Resource.id:
        query = query.join(Resource, Resource.id == resource_col)
    query = (
        query.join(Section, Section.id == Resource.section_id)
        .join(Week, Week.id == Section.week_id)
    )
    if scope.kind == ScopeKind.LEAGUE:
        return query.where(Week.league_id == scope.scope_id)
    return query.join(
        SpecializationLeague, SpecializationLeague.league_id == Week.league_id,
    ).where(SpecializationLeague.specialization_id == scope.scope_id)


class SqlLeaderboardRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def resource_tallies(
        self, scope: LeaderboardScope, limit: int | None = None,
    ) -> list[ResourceTally]:
        completed_count = func.count(ResourceProgress.id).label("completed_count")
        reached_at = func.max(ResourceProgress.completed_at).label("reached_at")
        query = (
            select(ResourceProgress.user_id, completed_count, reached_at)
            .join(User, User.id == ResourceProgress.user_id)
            .where(User.status == UserStatus.ACTIVE.value)
            .where(ResourceProgress.is_completed.is_(True))
        )
        query = _restrict(query, ResourceProgress.resource_id, scope)
        query = (
            query.group_by(ResourceProgress.user_id)
            .order_by(
                completed_count.desc(), reached_at.asc(), ResourceProgress.user_id.asc(),
            )
        )
        if limit is not None:
            query = query.limit(limit)
        result = await self.db.execute(query)
        return [
            ResourceTally(
                user_id=row.user_id,
                completed_count=row.completed_count,
                reached_at=row.reached_at,
            )
            for row in result
        ]

    async def count_resources(self, scope: LeaderboardScope) -> int:
        query = _restrict(
            select(func.count(Resource.id)).select_from(Resource), Resource.id, scope,
        )
        result = await self.db.execute(query)
        return result.scalar_one()
