"""In-memory implementations of the repository Protocols plus hierarchy builders.

Invariants:
    - Each fake honours the same contract as its SQL counterpart (insert-or-ignore awards,
      PATCH merges that keep the first completed_at, NotFound on resetting a missing row)
    - No fake inherits from a Protocol: structural typing is the contract
"""

from dataclasses import replace
from datetime import datetime, timedelta, timezone
from uuid import UUID, uuid4

from progress_engine.core.errors import NotFoundError
from progress_engine.core.hierarchy import (
    BadgeRef, EnrollmentRef, LeagueTree, ResourceLocation, ResourceNode,
    ResourcePath, SectionLocation, SectionNode, SpecializationRef, WeekNode,
)
from progress_engine.core.progress_records import (
    AwardResult, CompletedSpecialization, EarnedBadge, ProgressRecord,
)
from progress_engine.core.progress_rules import normalize_progress_changes, reset_values
from progress_engine.services.achievement_trigger import AchievementTrigger
from progress_engine.services.completion_aggregator import CompletionAggregator
from progress_engine.services.enrollment_gate import EnrollmentGate
from progress_engine.services.leaderboard_ranker import LeaderboardRanker
from progress_engine.services.progress_service import ProgressService


class TickingClock:
    """Returns a strictly increasing UTC time, one second per call."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2026, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self.now += timedelta(seconds=1)
        return self.now


# ─── Builders ───────────────────────────────────────────────────

def make_league(
    name: str = "League",
    weeks: int = 2,
    sections_per_week: int = 2,
    resources_per_section: int = 1,
) -> LeagueTree:
    return LeagueTree(
        id=uuid4(),
        name=name,
        weeks=tuple(
            WeekNode(
                id=uuid4(),
                name=f"Week {w + 1}",
                order=w + 1,
                sections=tuple(
                    SectionNode(
                        id=uuid4(),
                        name=f"Section {w + 1}.{s + 1}",
                        order=s + 1,
                        resources=tuple(
                            ResourceNode(id=uuid4(), title=f"Resource {r + 1}", order=r + 1)
                            for r in range(resources_per_section)
                        ),
                    )
                    for s in range(sections_per_week)
                ),
            )
            for w in range(weeks)
        ),
    )


def make_badge(league: LeagueTree, name: str = "Badge") -> BadgeRef:
    return BadgeRef(id=uuid4(), league_id=league.id, name=name)


# ─── Fakes ──────────────────────────────────────────────────────

class InMemoryHierarchy:
    def __init__(self, leagues=(), badges=(), specializations=(), users=()):
        self.leagues = {t.id: t for t in leagues}
        self.badges = {b.league_id: b for b in badges}
        self.specializations = {s.id: s for s in specializations}
        self.users = set(users)

    def badge_by_id(self, badge_id: UUID) -> BadgeRef:
        return next(b for b in self.badges.values() if b.id == badge_id)

    async def get_league_tree(self, league_id):
        return self.leagues.get(league_id)

    async def get_week(self, week_id):
        for tree in self.leagues.values():
            for week in tree.weeks:
                if week.id == week_id:
                    return week
        return None

    async def get_section(self, section_id):
        for tree in self.leagues.values():
            for section in tree.sections:
                if section.id == section_id:
                    return section
        return None

    async def resource_paths(self, resource_ids):
        wanted = set(resource_ids)
        paths = {}
        for tree in self.leagues.values():
            for week in tree.weeks:
                for section in week.sections:
                    for resource in section.resources:
                        if resource.id in wanted:
                            paths[resource.id] = ResourcePath(
                                resource, section.id, section.name,
                                week.id, week.name, tree.id, tree.name,
                            )
        return paths

    async def locate_section(self, section_id):
        for tree in self.leagues.values():
            for week in tree.weeks:
                if section_id in week.section_ids:
                    return SectionLocation(section_id, week.id, tree.id)
        return None

    async def locate_resource(self, resource_id):
        for tree in self.leagues.values():
            for week in tree.weeks:
                for section in week.sections:
                    if resource_id in section.resource_ids:
                        return ResourceLocation(resource_id, section.id, week.id, tree.id)
        return None

    async def get_badge_for_league(self, league_id):
        return self.badges.get(league_id)

    async def get_specialization(self, specialization_id):
        return self.specializations.get(specialization_id)

    async def specializations_containing(self, league_id):
        return sorted(
            (s for s in self.specializations.values() if league_id in s.league_ids),
            key=lambda s: s.name,
        )

    async def user_exists(self, user_id):
        return user_id in self.users


class InMemoryProgress:
    def __init__(self, clock=None):
        self.clock = clock or TickingClock()
        self.resources: dict[tuple, ProgressRecord] = {}
        self.sections: dict[tuple, ProgressRecord] = {}
        self.writes = 0

    def _merge(self, table, user_id, item_id, changes):
        values = normalize_progress_changes(changes, self.clock())
        current = table.get((user_id, item_id)) or ProgressRecord(
            user_id=user_id, item_id=item_id,
        )
        if values.get("is_completed") is True and current.completed_at is not None:
            values["completed_at"] = current.completed_at
        record = replace(current, exists=True, updated_at=self.clock(), **values)
        table[(user_id, item_id)] = record
        self.writes += 1
        return record

    async def upsert_resource_progress(self, user_id, resource_id, changes):
        return self._merge(self.resources, user_id, resource_id, changes)

    async def upsert_section_progress(self, user_id, section_id, changes):
        return self._merge(self.sections, user_id, section_id, changes)

    async def reset_resource_progress(self, user_id, resource_id):
        current = self.resources.get((user_id, resource_id))
        if current is None:
            raise NotFoundError("ResourceProgress", f"{user_id}/{resource_id}")
        record = replace(current, **reset_values(), updated_at=self.clock())
        self.resources[(user_id, resource_id)] = record
        self.writes += 1
        return record

    async def get_resource_progress(self, user_id, resource_id):
        return self.resources.get((user_id, resource_id))

    async def resource_progress_for(self, user_id, resource_ids):
        return {
            rid: self.resources[(user_id, rid)]
            for rid in resource_ids if (user_id, rid) in self.resources
        }

    async def section_progress_for(self, user_id, section_ids):
        return {
            sid: self.sections[(user_id, sid)]
            for sid in section_ids if (user_id, sid) in self.sections
        }

    async def completed_section_ids(self, user_id, section_ids):
        rows = await self.section_progress_for(user_id, section_ids)
        return {sid for sid, row in rows.items() if row.is_completed}

    async def completed_resource_ids(self, user_id, resource_ids):
        rows = await self.resource_progress_for(user_id, resource_ids)
        return {rid for rid, row in rows.items() if row.is_completed}

    async def revision_resource_progress(self, user_id):
        rows = [
            row for (uid, _), row in self.resources.items()
            if uid == user_id and row.marked_for_revision
        ]
        return sorted(rows, key=lambda row: row.updated_at, reverse=True)


class InMemoryEnrollments:
    def __init__(self, enrollments=()):
        self.enrollments = list(enrollments)

    def enroll(self, user_id, league_id, cohort_id=None):
        self.enrollments.append(EnrollmentRef(
            user_id=user_id,
            league_id=league_id,
            cohort_id=cohort_id or uuid4(),
            enrolled_at=datetime(2026, 1, 1, tzinfo=timezone.utc),
        ))

    async def find_active_enrollment(self, user_id, league_id):
        for e in self.enrollments:
            if e.user_id == user_id and e.league_id == league_id:
                return e
        return None

    async def iter_active_enrollments(self, batch_size, after=None):
        refs = sorted(self.enrollments, key=lambda e: (e.user_id, e.league_id))
        if after is not None:
            refs = [e for e in refs if (e.user_id, e.league_id) > after]
        return refs[:batch_size]

    async def list_active_enrollments(self, user_id):
        refs = [e for e in self.enrollments if e.user_id == user_id]
        return sorted(refs, key=lambda e: e.enrolled_at, reverse=True)


class InMemoryAchievements:
    def __init__(self, hierarchy: InMemoryHierarchy, clock=None):
        self.hierarchy = hierarchy
        self.clock = clock or TickingClock()
        self.badges: dict[tuple, datetime] = {}
        self.specializations: dict[tuple, datetime] = {}

    def _insert_or_ignore(self, table, key):
        if key in table:
            return AwardResult(created=False)
        now = self.clock()
        table[key] = now
        return AwardResult(created=True, awarded_at=now)

    async def award_badge(self, user_id, badge_id):
        return self._insert_or_ignore(self.badges, (user_id, badge_id))

    async def complete_specialization(self, user_id, specialization_id):
        return self._insert_or_ignore(self.specializations, (user_id, specialization_id))

    async def badge_earned_at(self, user_id, badge_id):
        return self.badges.get((user_id, badge_id))

    async def earned_badge_ids(self, user_id):
        return {bid for (uid, bid) in self.badges if uid == user_id}

    async def list_badges(self, user_id):
        earned = []
        for (uid, bid), at in self.badges.items():
            if uid == user_id:
                badge = self.hierarchy.badge_by_id(bid)
                earned.append(EarnedBadge(bid, badge.league_id, badge.name, at))
        return sorted(earned, key=lambda b: b.earned_at, reverse=True)

    async def list_specializations(self, user_id):
        done = []
        for (uid, sid), at in self.specializations.items():
            if uid == user_id:
                spec = self.hierarchy.specializations[sid]
                done.append(CompletedSpecialization(sid, spec.name, at))
        return sorted(done, key=lambda s: s.completed_at, reverse=True)


class StaticLeaderboard:
    """Returns the same unsorted tallies for every scope; records the scopes asked."""

    def __init__(self, tallies=(), total: int = 0):
        self.tallies = list(tallies)
        self.total = total
        self.scopes = []

    async def resource_tallies(self, scope, limit=None):
        self.scopes.append(scope)
        return list(self.tallies)

    async def count_resources(self, scope):
        return self.total


class RecordingAuditSink:
    def __init__(self):
        self.events = []

    async def emit(self, event):
        self.events.append(event)


class FailingAuditSink:
    async def emit(self, event):
        raise RuntimeError("audit store unavailable")


def build_service(
    hierarchy: InMemoryHierarchy,
    enrollments: InMemoryEnrollments,
    audit=None,
    leaderboard=None,
    clock=None,
) -> ProgressService:
    clock = clock or TickingClock()
    progress = InMemoryProgress(clock)
    achievements = InMemoryAchievements(hierarchy, clock)
    aggregator = CompletionAggregator(hierarchy, progress, achievements)
    return ProgressService(
        hierarchy=hierarchy,
        progress=progress,
        achievements=achievements,
        gate=EnrollmentGate(enrollments),
        aggregator=aggregator,
        trigger=AchievementTrigger(hierarchy, aggregator, achievements, audit, clock),
        ranker=LeaderboardRanker(leaderboard or StaticLeaderboard(), hierarchy),
    )


def make_specialization(name: str, *leagues: LeagueTree) -> SpecializationRef:
    return SpecializationRef(
        id=uuid4(), name=name, cohort_id=uuid4(),
        league_ids=tuple(t.id for t in leagues),
    )
