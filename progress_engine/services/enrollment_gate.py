"""Enrollment Gate — decides whether a user may record or view progress in a League.

Invariants:
    - Read-only: never writes
    - A user may act in a League iff an active Enrollment exists for (user, *, league);
      the cohort does not have to match
    - Viewing someone else's progress needs role >= PATHFINDER AND the target enrolled
    - Denial is a ForbiddenError raised before any state change
"""

import logging
from dataclasses import dataclass

from progress_engine.core.domain_types import LeagueId, UserId, UserRole
from progress_engine.core.errors import ErrorContext, ForbiddenError
from progress_engine.core.hierarchy import EnrollmentRef
from progress_engine.core.progress_records import Viewer
from progress_engine.core.repository_protocols import EnrollmentRepository

logger = logging.getLogger(__name__)

MIN_ROLE_TO_VIEW_OTHERS = UserRole.PATHFINDER


@dataclass(frozen=True)
class GateDecision:
    allowed: bool
    enrollment: EnrollmentRef | None = None


class EnrollmentGate:
    def __init__(self, enrollments: EnrollmentRepository):
        self.enrollments = enrollments

    async def is_enrolled(self, user_id: UserId, league_id: LeagueId) -> bool:
        return await self.enrollments.find_active_enrollment(user_id, league_id) is not None

    async def active_enrollments(self, user_id: UserId) -> list[EnrollmentRef]:
        return await self.enrollments.list_active_enrollments(user_id)

    async def authorize(self, user_id: UserId, league_id: LeagueId) -> GateDecision:
        """Allow, or raise ForbiddenError when the user is not enrolled in the league."""
        enrollment = await self.enrollments.find_active_enrollment(user_id, league_id)
        if enrollment is None:
            logger.info(
                "Progress denied: not enrolled",
                extra={"user_id": str(user_id), "league_id": str(league_id)},
            )
            raise ForbiddenError(
                "User is not enrolled in this league",
                ErrorContext(user_id=str(user_id), league_id=str(league_id)),
            )
        return GateDecision(allowed=True, enrollment=enrollment)

    @staticmethod
    def can_view(viewer: Viewer, target_id: UserId) -> bool:
        return viewer.user_id == target_id or viewer.role.at_least(MIN_ROLE_TO_VIEW_OTHERS)

    def require_view(
        self, viewer: Viewer, target_id: UserId, league_id: LeagueId | None = None,
    ) -> None:
        if not self.can_view(viewer, target_id):
            raise ForbiddenError(
                "Insufficient role to view another user's progress",
                ErrorContext(
                    user_id=str(viewer.user_id),
                    league_id=str(league_id) if league_id else None,
                ),
            )

    async def authorize_view(
        self, viewer: Viewer, target_id: UserId, league_id: LeagueId,
    ) -> GateDecision:
        """Role check first, then the target's own enrollment."""
        self.require_view(viewer, target_id, league_id)
        return await self.authorize(target_id, league_id)
