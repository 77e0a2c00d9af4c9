"""Completion Math — percentage rounding, empty containers, league state.

Invariants:
    - round-half-up integer percentage; 0 when total == 0
    - An empty container is never complete
    - A held badge keeps the league COMPLETED
"""

import pytest

from progress_engine.core.completion_math import (
    CompletionCount, completion_percentage, count_completed, league_state,
)
from progress_engine.core.domain_types import LeagueState


@pytest.mark.parametrize("completed,total,expected", [
    (0, 4, 0),
    (3, 4, 75),
    (4, 4, 100),
    (1, 3, 33),
    (2, 3, 67),
    (1, 8, 13),
    (1, 200, 1),
    (0, 0, 0),
    (5, 0, 0),
])
def test_completion_percentage_rounds_half_up(completed, total, expected):
    assert completion_percentage(completed, total) == expected


def test_empty_container_is_zero_and_not_complete():
    count = CompletionCount(completed=0, total=0)
    assert count.percentage == 0
    assert count.is_complete is False


def test_full_container_is_complete():
    assert CompletionCount(4, 4).is_complete is True
    assert CompletionCount(3, 4).is_complete is False


def test_count_completed_ignores_foreign_ids():
    count = count_completed(["a", "b", "c"], {"a", "c", "z"})
    assert count == CompletionCount(completed=2, total=3)


def test_count_completed_to_dict():
    assert count_completed(["a", "b", "c", "d"], {"a", "b", "c"}).to_dict() == {
        "completed": 3, "total": 4, "percentage": 75,
    }


def test_league_state_transitions():
    assert league_state(CompletionCount(0, 4), has_badge=False) == LeagueState.NOT_STARTED
    assert league_state(CompletionCount(1, 4), has_badge=False) == LeagueState.IN_PROGRESS
    assert league_state(CompletionCount(4, 4), has_badge=False) == LeagueState.COMPLETED


def test_league_state_activity_without_completions_is_in_progress():
    state = league_state(CompletionCount(0, 4), has_badge=False, has_activity=True)
    assert state == LeagueState.IN_PROGRESS


def test_league_state_is_monotonic_once_badge_held():
    """Reset after the award: the rollup drops but the state stays COMPLETED."""
    assert league_state(CompletionCount(2, 4), has_badge=True) == LeagueState.COMPLETED


def test_empty_league_never_completes_without_badge():
    assert league_state(CompletionCount(0, 0), has_badge=False) == LeagueState.NOT_STARTED
