"""Achievement Reconciliation — re-runs the Achievement Trigger for every active enrollment.

Invariants:
    - Safe to run any number of times: awards are insert-or-ignore, so only missing
      badges/specializations get created
    - One session per (user, league) evaluation; a failure is logged, counted and skipped
    - Enrollments are paged by keyset so the job never holds the whole table in memory

Design Decisions:
    - Heals the cases the request path cannot: a trigger that failed after its progress
      write committed, or a badge/specialization defined after users finished the work
"""

import asyncio
import logging
from dataclasses import dataclass

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from progress_engine.config import get_settings
from progress_engine.core.errors import ProgressEngineError
from progress_engine.core.repository_protocols import AuditSink
from progress_engine.db.session import create_session_factory
from progress_engine.infrastructure.audit_sink import SqlAuditSink
from progress_engine.infrastructure.observability import setup_logging
from progress_engine.infrastructure.sql_achievements import SqlAchievementStore
from progress_engine.infrastructure.sql_enrollments import SqlEnrollmentRepository
from progress_engine.infrastructure.sql_hierarchy import SqlHierarchyReader
from progress_engine.infrastructure.sql_progress_store import SqlProgressStore
from progress_engine.services.achievement_trigger import AchievementTrigger
from progress_engine.services.completion_aggregator import CompletionAggregator

logger = logging.getLogger(__name__)


@dataclass
class ReconciliationReport:
    enrollments_checked: int = 0
    badges_awarded: int = 0
    specializations_completed: int = 0
    failures: int = 0

    def to_dict(self) -> dict:
        return {
            "enrollments_checked": self.enrollments_checked,
            "badges_awarded": self.badges_awarded,
            "specializations_completed": self.specializations_completed,
            "failures": self.failures,
        }


def build_trigger(db: AsyncSession, audit: AuditSink | None = None) -> AchievementTrigger:
    hierarchy = SqlHierarchyReader(db)
    achievements = SqlAchievementStore(db)
    aggregator = CompletionAggregator(hierarchy, SqlProgressStore(db), achievements)
    return AchievementTrigger(hierarchy, aggregator, achievements, audit)


async def reconcile_achievements(
    session_factory: async_sessionmaker[AsyncSession],
    batch_size: int = 500,
    audit: AuditSink | None = None,
) -> ReconciliationReport:
    """Evaluate every active (user, league) enrollment and report what was created."""
    report = ReconciliationReport()
    after: tuple | None = None
    while True:
        async with session_factory() as db:
            page = await SqlEnrollmentRepository(db).iter_active_enrollments(
                batch_size, after,
            )
        if not page:
            break
        for enrollment in page:
            report.enrollments_checked += 1
            async with session_factory() as db:
                try:
                    outcome = await build_trigger(db, audit).evaluate_league(
                        enrollment.user_id, enrollment.league_id,
                    )
                except (ProgressEngineError, SQLAlchemyError):
                    report.failures += 1
                    logger.error(
                        "Reconciliation failed for enrollment",
                        exc_info=True,
                        extra={
                            "user_id": str(enrollment.user_id),
                            "league_id": str(enrollment.league_id),
                        },
                    )
                    continue
            report.badges_awarded += int(outcome.badge_awarded)
            report.specializations_completed += len(outcome.specializations_completed)
        after = (page[-1].user_id, page[-1].league_id)

    logger.info(f"Reconciliation finished: {report.to_dict()}")
    return report


async def _run() -> ReconciliationReport:
    settings = get_settings()
    session_factory = create_session_factory(settings.database_url)
    try:
        return await reconcile_achievements(
            session_factory,
            settings.reconciliation_batch_size,
            SqlAuditSink(session_factory),
        )
    finally:
        await session_factory.kw["bind"].dispose()


def main() -> None:
    """Console entry point: `progress-reconcile`."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    asyncio.run(_run())


if __name__ == "__main__":
    main()
