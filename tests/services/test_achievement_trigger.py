"""Achievement Trigger — badge awards, monotonicity, specialization cascade, audit.

Invariants:
    - Badge only when completed == total > 0
    - Re-evaluation never double-awards and never fails on "already awarded"
    - Held badge survives resets
    - Audit failures never undo or fail an award
"""

from uuid import uuid4

import pytest

from progress_engine.core.domain_types import AuditAction
from progress_engine.core.errors import NotFoundError
from progress_engine.services.achievement_trigger import AchievementTrigger
from progress_engine.services.completion_aggregator import CompletionAggregator
from tests.services.fakes import (
    FailingAuditSink, InMemoryAchievements, InMemoryHierarchy, InMemoryProgress,
    RecordingAuditSink, make_badge, make_league, make_specialization,
)


def _wire(leagues, badges=(), specializations=(), audit=None):
    hierarchy = InMemoryHierarchy(
        leagues=leagues, badges=badges, specializations=specializations,
    )
    progress = InMemoryProgress()
    achievements = InMemoryAchievements(hierarchy)
    aggregator = CompletionAggregator(hierarchy, progress, achievements)
    trigger = AchievementTrigger(hierarchy, aggregator, achievements, audit)
    return progress, achievements, trigger


async def _complete_sections(progress, user, sections):
    for section in sections:
        await progress.upsert_section_progress(user, section.id, {"is_completed": True})


async def test_no_badge_until_every_section_complete():
    league = make_league()
    badge = make_badge(league)
    audit = RecordingAuditSink()
    progress, achievements, trigger = _wire([league], [badge], audit=audit)
    user = uuid4()

    await _complete_sections(progress, user, league.sections[:3])
    outcome = await trigger.evaluate_league(user, league.id)

    assert (outcome.count.completed, outcome.count.total) == (3, 4)
    assert outcome.count.percentage == 75
    assert not outcome.badge_awarded
    assert achievements.badges == {}
    assert audit.events == []


async def test_badge_awarded_once_with_one_audit_event():
    league = make_league()
    badge = make_badge(league)
    audit = RecordingAuditSink()
    progress, achievements, trigger = _wire([league], [badge], audit=audit)
    user = uuid4()

    await _complete_sections(progress, user, league.sections)
    first = await trigger.evaluate_league(user, league.id)
    second = await trigger.evaluate_league(user, league.id)

    assert first.badge_awarded is True
    assert second.badge_awarded is False
    assert list(achievements.badges) == [(user, badge.id)]
    assert len(audit.events) == 1
    event = audit.events[0]
    assert event.action == AuditAction.BADGE_EARNED
    assert event.resource_id == badge.id
    assert event.user_id == user


async def test_badge_survives_later_reset():
    league = make_league()
    badge = make_badge(league)
    progress, achievements, trigger = _wire([league], [badge])
    user = uuid4()

    await _complete_sections(progress, user, league.sections)
    await trigger.evaluate_league(user, league.id)
    await progress.upsert_section_progress(
        user, league.sections[0].id, {"is_completed": False},
    )
    outcome = await trigger.evaluate_league(user, league.id)

    assert outcome.count.completed == 3
    assert outcome.league_complete is True
    assert (user, badge.id) in achievements.badges


async def test_league_without_sections_never_awards():
    league = make_league(weeks=0)
    badge = make_badge(league)
    progress, achievements, trigger = _wire([league], [badge])

    outcome = await trigger.evaluate_league(uuid4(), league.id)

    assert not outcome.league_complete
    assert achievements.badges == {}


async def test_specialization_completes_when_last_league_done():
    first, second = make_league("First"), make_league("Second")
    b1, b2 = make_badge(first), make_badge(second)
    spec = make_specialization("Data", first, second)
    audit = RecordingAuditSink()
    progress, achievements, trigger = _wire(
        [first, second], [b1, b2], [spec], audit=audit,
    )
    user = uuid4()

    await _complete_sections(progress, user, first.sections)
    outcome = await trigger.evaluate_league(user, first.id)
    assert outcome.specializations_completed == ()

    await _complete_sections(progress, user, second.sections)
    outcome = await trigger.evaluate_league(user, second.id)
    assert outcome.specializations_completed == (spec.id,)
    assert [e.action for e in audit.events] == [
        AuditAction.BADGE_EARNED,
        AuditAction.BADGE_EARNED,
        AuditAction.SPECIALIZATION_COMPLETED,
    ]


async def test_cascade_reruns_for_already_held_badge():
    """A spec defined after the badge was earned completes on the next evaluation."""
    first, second = make_league("First"), make_league("Second")
    b1 = make_badge(first)
    spec = make_specialization("Late", first, second)
    progress, achievements, trigger = _wire([first, second], [b1], [spec])
    user = uuid4()

    await _complete_sections(progress, user, second.sections)
    await achievements.award_badge(user, b1.id)

    outcome = await trigger.evaluate_league(user, first.id)
    assert outcome.badge_awarded is False
    assert outcome.specializations_completed == (spec.id,)


async def test_badgeless_league_still_cascades():
    league = make_league()
    spec = make_specialization("Solo", league)
    progress, achievements, trigger = _wire([league], [], [spec])
    user = uuid4()

    await _complete_sections(progress, user, league.sections)
    outcome = await trigger.evaluate_league(user, league.id)

    assert outcome.league_complete
    assert outcome.specializations_completed == (spec.id,)


async def test_empty_specialization_never_completes():
    league = make_league()
    empty = make_specialization("Empty")
    progress, achievements, trigger = _wire([league], [make_badge(league)], [empty])
    user = uuid4()
    await _complete_sections(progress, user, league.sections)

    assert await trigger.cascade_specializations(user, league.id) == ()
    assert achievements.specializations == {}


async def test_failing_audit_sink_does_not_fail_award(caplog):
    league = make_league()
    badge = make_badge(league)
    progress, achievements, trigger = _wire([league], [badge], audit=FailingAuditSink())
    user = uuid4()

    await _complete_sections(progress, user, league.sections)
    outcome = await trigger.evaluate_league(user, league.id)

    assert outcome.badge_awarded is True
    assert (user, badge.id) in achievements.badges
    assert "could not be recorded" in caplog.text


async def test_unknown_league_raises():
    _, _, trigger = _wire([])
    with pytest.raises(NotFoundError):
        await trigger.evaluate_league(uuid4(), uuid4())
