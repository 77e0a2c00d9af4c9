"""SQL Achievement Store — race-safe badge and specialization awards.

Invariants:
    - Awards are ONE statement: INSERT ... ON CONFLICT (user_id, <achievement>) DO NOTHING
    - rowcount == 1 means this call created the row; 0 means it already existed
    - There is no SELECT-before-INSERT guard: the unique constraint is the only arbiter,
      so concurrent callers across processes award exactly once
    - Each award commits before returning, so callers may emit audit events right after

Design Decisions:
    - An "already awarded" outcome is AwardResult(created=False), not an exception:
      both outcomes are success for the triggering request
"""

import logging
from datetime import datetime, timezone
from typing import Callable
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from progress_engine.core.domain_types import BadgeId, SpecializationId, UserId
from progress_engine.core.progress_records import (
    AwardResult, CompletedSpecialization, EarnedBadge,
)
from progress_engine.infrastructure.upsert import dialect_insert
from progress_engine.models.badge import Badge
from progress_engine.models.specialization import Specialization
from progress_engine.models.user_badge import UserBadge
from progress_engine.models.user_specialization import UserSpecialization

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SqlAchievementStore:
    def __init__(
        self, db: AsyncSession, clock: Callable[[], datetime] = _utcnow,
    ):
        self.db = db
        self.clock = clock

    async def award_badge(self, user_id: UserId, badge_id: BadgeId) -> AwardResult:
        return await self._insert_or_ignore(
            UserBadge, "badge_id", badge_id, user_id, "earned_at",
        )

    async def complete_specialization(
        self, user_id: UserId, specialization_id: SpecializationId,
    ) -> AwardResult:
        return await self._insert_or_ignore(
            UserSpecialization, "specialization_id", specialization_id,
            user_id, "completed_at",
        )

    async def _insert_or_ignore(
        self, model, key: str, item_id: UUID, user_id: UUID, stamp: str,
    ) -> AwardResult:
        table = model.__table__
        now = self.clock()
        stmt = (
            dialect_insert(self.db, table)
            .values(user_id=user_id, **{key: item_id, stamp: now})
            .on_conflict_do_nothing(index_elements=[table.c.user_id, table.c[key]])
        )
        result = await self.db.execute(stmt)
        await self.db.commit()
        if result.rowcount == 1:
            return AwardResult(created=True, awarded_at=now)
        return AwardResult(created=False)

    async def badge_earned_at(self, user_id: UserId, badge_id: BadgeId) -> datetime | None:
        result = await self.db.execute(
            select(UserBadge.earned_at)
            .where(UserBadge.user_id == user_id)
            .where(UserBadge.badge_id == badge_id)
        )
        return result.scalar_one_or_none()

    async def earned_badge_ids(self, user_id: UserId) -> set[UUID]:
        result = await self.db.execute(
            select(UserBadge.badge_id).where(UserBadge.user_id == user_id)
        )
        return set(result.scalars())

    async def list_badges(self, user_id: UserId) -> list[EarnedBadge]:
        result = await self.db.execute(
            select(UserBadge.earned_at, Badge.id, Badge.league_id, Badge.name)
            .join(Badge, Badge.id == UserBadge.badge_id)
            .where(UserBadge.user_id == user_id)
            .order_by(UserBadge.earned_at.desc(), Badge.id)
        )
        return [
            EarnedBadge(
                badge_id=row.id,
                league_id=row.league_id,
                name=row.name,
                earned_at=row.earned_at,
            )
            for row in result
        ]

    async def list_specializations(
        self, user_id: UserId,
    ) -> list[CompletedSpecialization]:
        result = await self.db.execute(
            select(
                UserSpecialization.completed_at, Specialization.id, Specialization.name,
            )
            .join(Specialization, Specialization.id == UserSpecialization.specialization_id)
            .where(UserSpecialization.user_id == user_id)
            .order_by(UserSpecialization.completed_at.desc(), Specialization.id)
        )
        return [
            CompletedSpecialization(
                specialization_id=row.id,
                name=row.name,
                completed_at=row.completed_at,
            )
            for row in result
        ]
