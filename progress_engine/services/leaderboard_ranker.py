"""Leaderboard Ranker — ranks users by completed resources within a scope.

Invariants:
    - Deterministic: count DESC, reached_at ASC, user_id ASC (see core/leaderboard.py)
    - limit is an int in 1..max_limit, otherwise ProgressValidationError
    - Unknown League/Specialization scope ids raise NotFoundError
    - Read-only
"""

from dataclasses import dataclass

from progress_engine.core.domain_types import ScopeKind, UserId
from progress_engine.core.errors import NotFoundError, ProgressValidationError
from progress_engine.core.leaderboard import LeaderboardEntry, neighbours, rank_tallies
from progress_engine.core.progress_records import LeaderboardScope
from progress_engine.core.repository_protocols import (
    HierarchyReader, LeaderboardRepository,
)


@dataclass(frozen=True)
class UserRank:
    """A user's leaderboard entry with the entries directly around it."""
    entry: LeaderboardEntry
    above: LeaderboardEntry | None = None
    below: LeaderboardEntry | None = None


class LeaderboardRanker:
    def __init__(
        self,
        leaderboard: LeaderboardRepository,
        hierarchy: HierarchyReader,
        max_limit: int = 100,
    ):
        self.leaderboard = leaderboard
        self.hierarchy = hierarchy
        self.max_limit = max_limit

    async def get_leaderboard(
        self, limit: int, scope: LeaderboardScope | None = None,
    ) -> list[LeaderboardEntry]:
        self._check_limit(limit)
        scope = scope or LeaderboardScope()
        await self._check_scope(scope)
        total = await self.leaderboard.count_resources(scope)
        tallies = await self.leaderboard.resource_tallies(scope, limit)
        return rank_tallies(tallies, total, limit)

    async def get_user_rank(
        self, user_id: UserId, scope: LeaderboardScope | None = None,
    ) -> UserRank:
        scope = scope or LeaderboardScope()
        await self._check_scope(scope)
        total = await self.leaderboard.count_resources(scope)
        entries = rank_tallies(await self.leaderboard.resource_tallies(scope), total)
        above, entry, below = neighbours(entries, user_id)
        if entry is None:
            raise NotFoundError("LeaderboardEntry", str(user_id))
        return UserRank(entry=entry, above=above, below=below)

    def _check_limit(self, limit: int) -> None:
        if isinstance(limit, bool) or not isinstance(limit, int):
            raise ProgressValidationError("limit must be an integer", "limit")
        if not 1 <= limit <= self.max_limit:
            raise ProgressValidationError(
                f"limit must be between 1 and {self.max_limit}", "limit",
            )

    async def _check_scope(self, scope: LeaderboardScope) -> None:
        if scope.kind == ScopeKind.GLOBAL:
            return
        if scope.scope_id is None:
            raise ProgressValidationError(
                f"{scope.kind.value} scope needs an id", "scope_id",
            )
        if scope.kind == ScopeKind.LEAGUE:
            if await self.hierarchy.get_league_tree(scope.scope_id) is None:
                raise NotFoundError("League", str(scope.scope_id))
        elif await self.hierarchy.get_specialization(scope.scope_id) is None:
            raise NotFoundError("Specialization", str(scope.scope_id))
