"""SQL Progress Store — durable resource/section progress with atomic per-field merge.

Invariants:
    - Every write is ONE statement: INSERT ... ON CONFLICT (user_id, item_id) DO UPDATE
    - The DO UPDATE clause names only the supplied columns, so concurrent partial updates
      of different fields never overwrite each other
    - Re-completing a completed row keeps the original completed_at (idempotent)
    - Validation happens before any statement is executed
    - Each write commits before returning: the Achievement Trigger only ever reads
      committed progress

Design Decisions:
    - Rows are re-read with populate_existing after the upsert: the session identity map
      may hold a stale copy from an earlier read in the same request
    - Reset is an UPDATE, not an upsert: resetting a row that never existed is NotFound
"""

import logging
from datetime import datetime, timezone
from typing import Callable
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from progress_engine.core.domain_types import ResourceId, SectionId, UserId
from progress_engine.core.errors import NotFoundError
from progress_engine.core.progress_records import ProgressRecord
from progress_engine.core.progress_rules import normalize_progress_changes, reset_values
from progress_engine.infrastructure.upsert import dialect_insert
from progress_engine.models.resource_progress import ResourceProgress
from progress_engine.models.section_progress import SectionProgress

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _to_record(row, item_id: UUID) -> ProgressRecord:
    return ProgressRecord(
        user_id=row.user_id,
        item_id=item_id,
        is_completed=row.is_completed,
        completed_at=row.completed_at,
        time_spent=row.time_spent,
        personal_note=row.personal_note,
        marked_for_revision=row.marked_for_revision,
        updated_at=row.updated_at,
    )


class SqlProgressStore:
    """ProgressRepository backed by resource_progress / section_progress tables."""

    def __init__(
        self, db: AsyncSession, clock: Callable[[], datetime] = _utcnow,
    ):
        self.db = db
        self.clock = clock

    # ─── Writes ─────────────────────────────────────────────────

    async def upsert_resource_progress(
        self, user_id: UserId, resource_id: ResourceId, changes: dict,
    ) -> ProgressRecord:
        values = normalize_progress_changes(changes, self.clock())
        await self._merge(ResourceProgress, "resource_id", user_id, resource_id, values)
        return await self._reload(ResourceProgress, "resource_id", user_id, resource_id)

    async def upsert_section_progress(
        self, user_id: UserId, section_id: SectionId, changes: dict,
    ) -> ProgressRecord:
        values = normalize_progress_changes(changes, self.clock())
        await self._merge(SectionProgress, "section_id", user_id, section_id, values)
        return await self._reload(SectionProgress, "section_id", user_id, section_id)

    async def reset_resource_progress(
        self, user_id: UserId, resource_id: ResourceId,
    ) -> ProgressRecord:
        result = await self.db.execute(
            update(ResourceProgress)
            .where(ResourceProgress.user_id == user_id)
            .where(ResourceProgress.resource_id == resource_id)
            .values(**reset_values(), updated_at=self.clock())
        )
        if result.rowcount == 0:
            raise NotFoundError("ResourceProgress", f"{user_id}/{resource_id}")
        await self.db.commit()
        logger.info(
            "Resource progress reset",
            extra={"user_id": str(user_id)},
        )
        return await self._reload(ResourceProgress, "resource_id", user_id, resource_id)

    async def _merge(
        self, model, key: str, user_id: UUID, item_id: UUID, values: dict,
    ) -> None:
        table = model.__table__
        now = self.clock()
        stmt = dialect_insert(self.db, table).values(
            user_id=user_id, **{key: item_id}, **values, updated_at=now,
        )
        set_ = {name: stmt.excluded[name] for name in values}
        if values.get("is_completed") is True:
            set_["completed_at"] = func.coalesce(
                table.c.completed_at, stmt.excluded.completed_at,
            )
        set_["updated_at"] = stmt.excluded.updated_at
        await self.db.execute(
            stmt.on_conflict_do_update(
                index_elements=[table.c.user_id, table.c[key]], set_=set_,
            )
        )
        await self.db.commit()

    async def _reload(
        self, model, key: str, user_id: UUID, item_id: UUID,
    ) -> ProgressRecord:
        result = await self.db.execute(
            select(model)
            .where(model.user_id == user_id)
            .where(getattr(model, key) == item_id)
            .execution_options(populate_existing=True)
        )
        return _to_record(result.scalar_one(), item_id)

    # ─── Reads ──────────────────────────────────────────────────

    async def get_resource_progress(
        self, user_id: UserId, resource_id: ResourceId,
    ) -> ProgressRecord | None:
        rows = await self.resource_progress_for(user_id, [resource_id])
        return rows.get(resource_id)

    async def resource_progress_for(
        self, user_id: UserId, resource_ids: list[ResourceId],
    ) -> dict[UUID, ProgressRecord]:
        if not resource_ids:
            return {}
        result = await self.db.execute(
            select(ResourceProgress)
            .where(ResourceProgress.user_id == user_id)
            .where(ResourceProgress.resource_id.in_(resource_ids))
            .execution_options(populate_existing=True)
        )
        return {
            row.resource_id: _to_record(row, row.resource_id)
            for row in result.scalars()
        }

    async def section_progress_for(
        self, user_id: UserId, section_ids: list[SectionId],
    ) -> dict[UUID, ProgressRecord]:
        if not section_ids:
            return {}
        result = await self.db.execute(
            select(SectionProgress)
            .where(SectionProgress.user_id == user_id)
            .where(SectionProgress.section_id.in_(section_ids))
            .execution_options(populate_existing=True)
        )
        return {
            row.section_id: _to_record(row, row.section_id)
            for row in result.scalars()
        }

    async def completed_section_ids(
        self, user_id: UserId, section_ids: list[SectionId],
    ) -> set[UUID]:
        if not section_ids:
            return set()
        result = await self.db.execute(
            select(SectionProgress.section_id)
            .where(SectionProgress.user_id == user_id)
            .where(SectionProgress.section_id.in_(section_ids))
            .where(SectionProgress.is_completed.is_(True))
        )
        return set(result.scalars())

    async def completed_resource_ids(
        self, user_id: UserId, resource_ids: list[ResourceId],
    ) -> set[UUID]:
        if not resource_ids:
            return set()
        result = await self.db.execute(
            select(ResourceProgress.resource_id)
            .where(ResourceProgress.user_id == user_id)
            .where(ResourceProgress.resource_id.in_(resource_ids))
            .where(ResourceProgress.is_completed.is_(True))
        )
        return set(result.scalars())

    async def revision_resource_progress(
        self, user_id: UserId,
    ) -> list[ProgressRecord]:
        """Resource rows flagged for revision, most recently touched first."""
        result = await self.db.execute(
            select(ResourceProgress)
            .where(ResourceProgress.user_id == user_id)
            .where(ResourceProgress.marked_for_revision.is_(True))
            .order_by(ResourceProgress.updated_at.desc(), ResourceProgress.resource_id)
            .execution_options(populate_existing=True)
        )
        return [_to_record(row, row.resource_id) for row in result.scalars()]
