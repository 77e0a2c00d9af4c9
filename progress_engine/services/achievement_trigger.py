"""Achievement Trigger — awards League badges and Specialization completions exactly once.

Invariants:
    - Runs after the progress write has committed; it reads live rollups only
    - Badge award = one insert-or-ignore against UNIQUE(user_id, badge_id); "already
      awarded" is success, never an error, and no check-then-insert guard exists
    - Monotonic: a held badge keeps the League COMPLETED even after later resets,
      and nothing here ever deletes an award
    - The Specialization cascade runs whenever the League is complete for the user
      (badge just awarded, badge already held, or a fully complete badge-less League)
    - Audit events are emitted only for newly created awards, after their commit;
      a failing audit sink is logged and ignored

Design Decisions:
    - Re-evaluating is always safe, so the same entry point serves the request path
      and the reconciliation job
    - A Specialization with no member Leagues is never completed
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable

from progress_engine.core.completion_math import CompletionCount
from progress_engine.core.domain_types import (
    AuditAction, LeagueId, SpecializationId, UserId,
)
from progress_engine.core.errors import NotFoundError
from progress_engine.core.hierarchy import BadgeRef, SpecializationRef
from progress_engine.core.progress_records import AuditEvent
from progress_engine.core.repository_protocols import (
    AchievementStore, AuditSink, HierarchyReader,
)
from progress_engine.services.completion_aggregator import CompletionAggregator

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class TriggerOutcome:
    """What one evaluation of a (user, league) pair changed."""
    league_id: LeagueId
    count: CompletionCount
    league_complete: bool
    badge_awarded: bool = False
    specializations_completed: tuple[SpecializationId, ...] = field(default_factory=tuple)


class AchievementTrigger:
    def __init__(
        self,
        hierarchy: HierarchyReader,
        aggregator: CompletionAggregator,
        achievements: AchievementStore,
        audit: AuditSink | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.hierarchy = hierarchy
        self.aggregator = aggregator
        self.achievements = achievements
        self.audit = audit
        self.clock = clock

    async def evaluate_league(self, user_id: UserId, league_id: LeagueId) -> TriggerOutcome:
        """Award the League badge if every Section is complete, then cascade."""
        tree = await self.hierarchy.get_league_tree(league_id)
        if tree is None:
            raise NotFoundError("League", str(league_id))
        count = await self.aggregator.count_for_tree(user_id, tree)
        badge = await self.hierarchy.get_badge_for_league(league_id)

        league_complete = count.is_complete
        badge_awarded = False
        if badge is not None:
            if count.is_complete:
                badge_awarded = await self._award_badge(user_id, badge)
            elif await self.achievements.badge_earned_at(user_id, badge.id) is not None:
                league_complete = True

        completed_specs: tuple[SpecializationId, ...] = ()
        if league_complete:
            completed_specs = await self.cascade_specializations(user_id, league_id)

        return TriggerOutcome(
            league_id=league_id,
            count=count,
            league_complete=league_complete,
            badge_awarded=badge_awarded,
            specializations_completed=completed_specs,
        )

    async def cascade_specializations(
        self, user_id: UserId, league_id: LeagueId,
    ) -> tuple[SpecializationId, ...]:
        """Complete every Specialization containing league_id whose members are all done."""
        created: list[SpecializationId] = []
        for specialization in await self.hierarchy.specializations_containing(league_id):
            if not specialization.league_ids:
                continue
            progress = await self.aggregator.specialization_completion(
                user_id, specialization.id,
            )
            if not progress.is_complete:
                continue
            if await self._complete_specialization(user_id, specialization):
                created.append(specialization.id)
        return tuple(created)

    async def _award_badge(self, user_id: UserId, badge: BadgeRef) -> bool:
        result = await self.achievements.award_badge(user_id, badge.id)
        if not result.created:
            logger.debug(
                "Badge already held",
                extra={"user_id": str(user_id), "badge_id": str(badge.id)},
            )
            return False
        logger.info(
            f"Badge '{badge.name}' awarded",
            extra={
                "user_id": str(user_id),
                "badge_id": str(badge.id),
                "league_id": str(badge.league_id),
            },
        )
        await self._emit(AuditEvent(
            user_id=user_id,
            action=AuditAction.BADGE_EARNED,
            resource_id=badge.id,
            timestamp=result.awarded_at or self.clock(),
            description=f"Earned badge '{badge.name}'",
            details={"league_id": str(badge.league_id), "badge_name": badge.name},
        ))
        return True

    async def _complete_specialization(
        self, user_id: UserId, specialization: SpecializationRef,
    ) -> bool:
        result = await self.achievements.complete_specialization(user_id, specialization.id)
        if not result.created:
            return False
        logger.info(
            f"Specialization '{specialization.name}' completed",
            extra={"user_id": str(user_id), "specialization_id": str(specialization.id)},
        )
        await self._emit(AuditEvent(
            user_id=user_id,
            action=AuditAction.SPECIALIZATION_COMPLETED,
            resource_id=specialization.id,
            timestamp=result.awarded_at or self.clock(),
            description=f"Completed specialization '{specialization.name}'",
            details={
                "specialization_name": specialization.name,
                "league_ids": [str(lid) for lid in specialization.league_ids],
            },
        ))
        return True

    async def _emit(self, event: AuditEvent) -> None:
        if self.audit is None:
            return
        try:
            await self.audit.emit(event)
        except Exception:
            logger.warning(
                f"Audit event {event.action.value} could not be recorded",
                exc_info=True,
                extra={"user_id": str(event.user_id)},
            )
