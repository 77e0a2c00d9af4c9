"""SQL Enrollment Repository — active-enrollment lookups for the gate and reconciliation.

Invariants:
    - Matches on (user_id, league_id); the cohort is reported, never filtered on
    - Only is_active rows count
    - iter_active_enrollments pages by keyset (user_id, league_id), stable across calls
"""

from sqlalchemy import select, tuple_
from sqlalchemy.ext.asyncio import AsyncSession

from progress_engine.core.domain_types import LeagueId, UserId
from progress_engine.core.hierarchy import EnrollmentRef
from progress_engine.models.enrollment import Enrollment


def _to_ref(row: Enrollment) -> EnrollmentRef:
    return EnrollmentRef(
        user_id=row.user_id,
        league_id=row.league_id,
        cohort_id=row.cohort_id,
        enrolled_at=row.enrolled_at,
    )


class SqlEnrollmentRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_active_enrollment(
        self, user_id: UserId, league_id: LeagueId,
    ) -> EnrollmentRef | None:
        result = await self.db.execute(
            select(Enrollment)
            .where(Enrollment.user_id == user_id)
            .where(Enrollment.league_id == league_id)
            .where(Enrollment.is_active.is_(True))
            .order_by(Enrollment.enrolled_at)
            .limit(1)
        )
        row = result.scalar_one_or_none()
        return _to_ref(row) if row else None

    async def iter_active_enrollments(
        self, batch_size: int, after: tuple | None = None,
    ) -> list[EnrollmentRef]:
        """One page of distinct active (user, league) enrollments after the keyset."""
        query = (
            select(Enrollment)
            .where(Enrollment.is_active.is_(True))
            .order_by(Enrollment.user_id, Enrollment.league_id, Enrollment.cohort_id)
        )
        if after is not None:
            query = query.where(
                tuple_(Enrollment.user_id, Enrollment.league_id) > tuple(after)
            )
        result = await self.db.execute(query.limit(batch_size))
        refs: list[EnrollmentRef] = []
        seen: set[tuple] = set()
        for row in result.scalars():
            key = (row.user_id, row.league_id)
            if key not in seen:
                seen.add(key)
                refs.append(_to_ref(row))
        return refs

    async def list_active_enrollments(self, user_id: UserId) -> list[EnrollmentRef]:
        """Every League the user is actively enrolled in, newest enrollment first."""
        result = await self.db.execute(
            select(Enrollment)
            .where(Enrollment.user_id == user_id)
            .where(Enrollment.is_active.is_(True))
            .order_by(Enrollment.enrolled_at.desc(), Enrollment.league_id)
        )
        refs: list[EnrollmentRef] = []
        seen: set = set()
        for row in result.scalars():
            if row.league_id not in seen:
                seen.add(row.league_id)
                refs.append(_to_ref(row))
        return refs
