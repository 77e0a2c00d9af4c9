"""Leaderboard Ranking — deterministic ordering of resource-completion tallies.

Invariants:
    - Order: completed_count DESC, reached_at ASC (first to reach the count wins),
      user_id ASC (string form) — identical data always yields the identical list
    - Ranks are 1-based positions in that order (no shared ranks)
    - Tallies with completed_count == 0 never rank

Design Decisions:
    - reached_at is the timestamp of the user's latest counted completion: among equal
      counts, whoever got there earlier ranks higher
    - The SQL query applies the same ORDER BY so LIMIT picks the right rows; this module
      re-sorts anyway so in-memory callers and fakes get the same guarantee
"""

from dataclasses import dataclass
from datetime import datetime, timezone

from progress_engine.core.completion_math import completion_percentage
from progress_engine.core.domain_types import UserId
from progress_engine.core.progress_records import ResourceTally

_FAR_FUTURE = datetime.max.replace(tzinfo=timezone.utc)


@dataclass(frozen=True)
class LeaderboardEntry:
    rank: int
    user_id: UserId
    completed_count: int
    total_resources: int
    completion_percentage: int
    reached_at: datetime | None


def _as_aware(ts: datetime | None) -> datetime:
    # SQLite hands back naive datetimes for timezone-aware columns
    if ts is None:
        return _FAR_FUTURE
    return ts if ts.tzinfo else ts.replace(tzinfo=timezone.utc)


def ranking_key(tally: ResourceTally) -> tuple:
    return (-tally.completed_count, _as_aware(tally.reached_at), str(tally.user_id))


def rank_tallies(
    tallies: list[ResourceTally], total_resources: int, limit: int | None = None,
) -> list[LeaderboardEntry]:
    """Sort tallies deterministically and assign ranks. Pure."""
    ordered = sorted(
        (t for t in tallies if t.completed_count > 0), key=ranking_key,
    )
    if limit is not None:
        ordered = ordered[:limit]
    return [
        LeaderboardEntry(
            rank=i + 1,
            user_id=t.user_id,
            completed_count=t.completed_count,
            total_resources=total_resources,
            completion_percentage=completion_percentage(
                t.completed_count, total_resources,
            ),
            reached_at=t.reached_at,
        )
        for i, t in enumerate(ordered)
    ]


def neighbours(
    entries: list[LeaderboardEntry], user_id: UserId,
) -> tuple[LeaderboardEntry | None, LeaderboardEntry | None, LeaderboardEntry | None]:
    """Return (above, entry, below) for user_id; entry is None when not ranked."""
    for i, entry in enumerate(entries):
        if entry.user_id == user_id:
            above = entries[i - 1] if i > 0 else None
            below = entries[i + 1] if i + 1 < len(entries) else None
            return above, entry, below
    return None, None, None
