"""Achievement Reconciliation — heals badges the request path never awarded.

Invariants:
    - Progress written without the trigger is picked up on the next run
    - A second run creates nothing
    - Paging visits every active enrollment exactly once, whatever the batch size
"""

from uuid import uuid4

from sqlalchemy import func, select

from progress_engine.core.domain_types import AuditAction
from progress_engine.infrastructure.audit_sink import SqlAuditSink
from progress_engine.infrastructure.sql_progress_store import SqlProgressStore
from progress_engine.models import (
    AuditLog, Enrollment, Specialization, SpecializationLeague, UserBadge,
    UserSpecialization,
)
from progress_engine.services.reconciliation import reconcile_achievements
from tests.services.seed import seed_hierarchy


async def _complete_sections(session_factory, user_id, section_ids):
    async with session_factory() as db:
        store = SqlProgressStore(db)
        for section_id in section_ids:
            await store.upsert_section_progress(user_id, section_id, {"is_completed": True})


async def _count(session_factory, model) -> int:
    async with session_factory() as db:
        return (await db.execute(select(func.count()).select_from(model))).scalar_one()


async def test_reconcile_awards_missing_badge(test_session_factory, seeded):
    await _complete_sections(test_session_factory, seeded.learner, seeded.sections)

    report = await reconcile_achievements(
        test_session_factory, audit=SqlAuditSink(test_session_factory),
    )

    assert report.enrollments_checked == 1
    assert report.badges_awarded == 1
    assert report.failures == 0
    assert await _count(test_session_factory, UserBadge) == 1
    async with test_session_factory() as db:
        actions = (await db.execute(select(AuditLog.action))).scalars().all()
    assert actions == [AuditAction.BADGE_EARNED.value]


async def test_second_run_creates_nothing(test_session_factory, seeded):
    await _complete_sections(test_session_factory, seeded.learner, seeded.sections)
    await reconcile_achievements(test_session_factory)

    report = await reconcile_achievements(test_session_factory)

    assert report.badges_awarded == 0
    assert report.specializations_completed == 0
    assert await _count(test_session_factory, UserBadge) == 1


async def test_incomplete_league_is_left_alone(test_session_factory, seeded):
    await _complete_sections(test_session_factory, seeded.learner, seeded.sections[:3])

    report = await reconcile_achievements(test_session_factory)

    assert report.enrollments_checked == 1
    assert report.badges_awarded == 0
    assert await _count(test_session_factory, UserBadge) == 0


async def test_specialization_defined_after_the_fact(test_session_factory, seeded):
    await _complete_sections(test_session_factory, seeded.learner, seeded.sections)
    await reconcile_achievements(test_session_factory)

    async with test_session_factory() as db:
        specialization = Specialization(id=uuid4(), cohort_id=seeded.cohort, name="Core Track")
        db.add(specialization)
        db.add(SpecializationLeague(
            specialization_id=specialization.id, league_id=seeded.league, order=1,
        ))
        await db.commit()

    report = await reconcile_achievements(test_session_factory)

    assert report.badges_awarded == 0
    assert report.specializations_completed == 1
    assert await _count(test_session_factory, UserSpecialization) == 1


async def test_small_batches_visit_every_enrollment(test_session_factory, seeded):
    async with test_session_factory() as db:
        second = await seed_hierarchy(db, league_name="Second")
        db.add(Enrollment(
            id=uuid4(), user_id=seeded.learner, cohort_id=second.cohort,
            league_id=second.league,
        ))
        db.add(Enrollment(
            id=uuid4(), user_id=seeded.outsider, cohort_id=seeded.cohort,
            league_id=seeded.league, is_active=False,
        ))
        await db.commit()
    await _complete_sections(test_session_factory, seeded.learner, seeded.sections)
    await _complete_sections(test_session_factory, seeded.learner, second.sections)

    report = await reconcile_achievements(test_session_factory, batch_size=1)

    # seeded learner x2 leagues, second seed's own learner; inactive row skipped
    assert report.enrollments_checked == 3
    assert report.badges_awarded == 2
    assert report.failures == 0
