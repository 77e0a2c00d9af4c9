"""Leaderboard Ranker — limit validation, scope checks, user rank.

Invariants:
    - limit outside 1..max_limit → ProgressValidationError
    - Unknown scope ids → NotFoundError
    - Unranked user → NotFoundError from get_user_rank
"""

from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest

from progress_engine.core.domain_types import ScopeKind
from progress_engine.core.errors import NotFoundError, ProgressValidationError
from progress_engine.core.progress_records import LeaderboardScope, ResourceTally
from progress_engine.services.leaderboard_ranker import LeaderboardRanker
from tests.services.fakes import (
    InMemoryHierarchy, StaticLeaderboard, make_league, make_specialization,
)

T0 = datetime(2026, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
def users():
    return sorted((uuid4() for _ in range(4)), key=str)


@pytest.fixture
def league():
    return make_league()


@pytest.fixture
def ranker(users, league):
    tallies = [
        ResourceTally(users[0], 2, T0 + timedelta(minutes=3)),
        ResourceTally(users[1], 4, T0 + timedelta(minutes=9)),
        ResourceTally(users[2], 2, T0 + timedelta(minutes=1)),
        ResourceTally(users[3], 2, T0 + timedelta(minutes=3)),
    ]
    hierarchy = InMemoryHierarchy(
        leagues=[league], specializations=[make_specialization("S", league)],
    )
    return LeaderboardRanker(StaticLeaderboard(tallies, total=8), hierarchy, max_limit=50)


async def test_leaderboard_order_and_ranks(ranker, users):
    entries = await ranker.get_leaderboard(10)
    assert [e.user_id for e in entries] == [users[1], users[2], users[0], users[3]]
    assert [e.rank for e in entries] == [1, 2, 3, 4]
    assert entries[0].completion_percentage == 50


async def test_repeated_calls_are_identical(ranker):
    assert await ranker.get_leaderboard(10) == await ranker.get_leaderboard(10)


async def test_limit_truncates(ranker, users):
    entries = await ranker.get_leaderboard(2)
    assert [e.user_id for e in entries] == [users[1], users[2]]


@pytest.mark.parametrize("limit", [0, -1, 51, True, "10"])
async def test_invalid_limit_rejected(ranker, limit):
    with pytest.raises(ProgressValidationError):
        await ranker.get_leaderboard(limit)


async def test_unknown_scope_ids_not_found(ranker):
    with pytest.raises(NotFoundError):
        await ranker.get_leaderboard(10, LeaderboardScope.for_league(uuid4()))
    with pytest.raises(NotFoundError):
        await ranker.get_leaderboard(10, LeaderboardScope.for_specialization(uuid4()))


async def test_scoped_without_id_rejected(ranker):
    with pytest.raises(ProgressValidationError):
        await ranker.get_leaderboard(10, LeaderboardScope(ScopeKind.LEAGUE))


async def test_known_league_scope_passes_through(ranker, league):
    scope = LeaderboardScope.for_league(league.id)
    await ranker.get_leaderboard(5, scope)
    assert ranker.leaderboard.scopes == [scope]


async def test_user_rank_with_neighbours(ranker, users):
    rank = await ranker.get_user_rank(users[0])
    assert rank.entry.rank == 3
    assert rank.above.user_id == users[2]
    assert rank.below.user_id == users[3]


async def test_unranked_user_not_found(ranker):
    with pytest.raises(NotFoundError):
        await ranker.get_user_rank(uuid4())
