"""Completion Math — pure rollup arithmetic for every hierarchy level.

Invariants:
    - percentage = round-half-up(100 * completed / total), 0 when total == 0 (never divides by zero)
    - is_complete requires total > 0: an empty container is never "complete"
    - league_state is monotonic: holding the badge means COMPLETED even after a later reset

Design Decisions:
    - Integer arithmetic for rounding: no float drift, no banker's rounding (1/8 -> 13, not 12)
"""

from dataclasses import dataclass
from typing import Iterable

from progress_engine.core.domain_types import LeagueState


def completion_percentage(completed: int, total: int) -> int:
    """Whole-number completion percentage, rounded half-up. Pure, never raises."""
    if total <= 0:
        return 0
    return (200 * completed + total) // (2 * total)


@dataclass(frozen=True)
class CompletionCount:
    """A (completed, total) rollup at any hierarchy level."""
    completed: int
    total: int

    @property
    def percentage(self) -> int:
        return completion_percentage(self.completed, self.total)

    @property
    def is_complete(self) -> bool:
        return self.total > 0 and self.completed == self.total

    def to_dict(self) -> dict:
        return {
            "completed": self.completed,
            "total": self.total,
            "percentage": self.percentage,
        }


def count_completed(child_ids: Iterable, completed_ids: set) -> CompletionCount:
    """Join a container's children against the set of completed ids."""
    ids = list(child_ids)
    return CompletionCount(
        completed=sum(1 for i in ids if i in completed_ids),
        total=len(ids),
    )


def league_state(
    count: CompletionCount, has_badge: bool, has_activity: bool = False,
) -> LeagueState:
    """Derive the (user, league) state from the live rollup and the badge record."""
    if has_badge or count.is_complete:
        return LeagueState.COMPLETED
    if count.completed > 0 or has_activity:
        return LeagueState.IN_PROGRESS
    return LeagueState.NOT_STARTED
