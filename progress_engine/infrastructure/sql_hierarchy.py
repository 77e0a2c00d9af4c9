"""SQL Hierarchy Reader — immutable snapshots of the content tree.

Invariants:
    - Read-only: never adds, flushes or commits
    - Children come back in `order` sequence (relationship order_by)
    - Unknown ids return None; deciding whether that is a 404 is the caller's job
"""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from progress_engine.core.domain_types import (
    LeagueId, ResourceId, ResourceType, SectionId, SpecializationId, UserId, WeekId,
)
from progress_engine.core.hierarchy import (
    BadgeRef, LeagueTree, ResourceLocation, ResourceNode, ResourcePath,
    SectionLocation, SectionNode, SpecializationRef, WeekNode,
)
from progress_engine.models.badge import Badge
from progress_engine.models.league import League
from progress_engine.models.resource import Resource
from progress_engine.models.section import Section
from progress_engine.models.specialization import Specialization, SpecializationLeague
from progress_engine.models.user import User
from progress_engine.models.week import Week


def _resource_node(row: Resource) -> ResourceNode:
    return ResourceNode(
        id=row.id,
        title=row.title,
        order=row.order,
        resource_type=ResourceType(row.resource_type),
        url=row.url,
    )


def _section_node(row: Section) -> SectionNode:
    return SectionNode(
        id=row.id,
        name=row.name,
        order=row.order,
        resources=tuple(_resource_node(r) for r in row.resources),
    )


def _week_node(row: Week) -> WeekNode:
    return WeekNode(
        id=row.id,
        name=row.name,
        order=row.order,
        sections=tuple(_section_node(s) for s in row.sections),
    )


def _specialization_ref(row: Specialization) -> SpecializationRef:
    return SpecializationRef(
        id=row.id,
        name=row.name,
        cohort_id=row.cohort_id,
        league_ids=tuple(link.league_id for link in row.leagues),
    )


class SqlHierarchyReader:
    """HierarchyReader over the leagues/weeks/sections/resources tables."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_league_tree(self, league_id: LeagueId) -> LeagueTree | None:
        league = await self.db.get(League, league_id, populate_existing=True)
        if not league:
            return None
        return LeagueTree(
            id=league.id,
            name=league.name,
            description=league.description,
            weeks=tuple(_week_node(w) for w in league.weeks),
        )

    async def get_week(self, week_id: WeekId) -> WeekNode | None:
        week = await self.db.get(Week, week_id, populate_existing=True)
        return _week_node(week) if week else None

    async def get_section(self, section_id: SectionId) -> SectionNode | None:
        section = await self.db.get(Section, section_id, populate_existing=True)
        return _section_node(section) if section else None

    async def resource_paths(
        self, resource_ids: list[ResourceId],
    ) -> dict[UUID, ResourcePath]:
        """Resources with their Section, Week and League names, keyed by resource id."""
        if not resource_ids:
            return {}
        result = await self.db.execute(
            select(Resource, Section.name, Week.id, Week.name, League.id, League.name)
            .join(Section, Section.id == Resource.section_id)
            .join(Week, Week.id == Section.week_id)
            .join(League, League.id == Week.league_id)
            .where(Resource.id.in_(resource_ids))
        )
        paths = {}
        for resource, section_name, week_id, week_name, league_id, league_name in result:
            paths[resource.id] = ResourcePath(
                resource=_resource_node(resource),
                section_id=resource.section_id,
                section_name=section_name,
                week_id=week_id,
                week_name=week_name,
                league_id=league_id,
                league_name=league_name,
            )
        return paths

    async def locate_section(self, section_id: SectionId) -> SectionLocation | None:
        result = await self.db.execute(
            select(Section.id, Section.week_id, Week.league_id)
            .join(Week, Week.id == Section.week_id)
            .where(Section.id == section_id)
        )
        row = result.one_or_none()
        if not row:
            return None
        return SectionLocation(
            section_id=row.id, week_id=row.week_id, league_id=row.league_id,
        )

    async def locate_resource(self, resource_id: ResourceId) -> ResourceLocation | None:
        result = await self.db.execute(
            select(Resource.id, Resource.section_id, Section.week_id, Week.league_id)
            .join(Section, Section.id == Resource.section_id)
            .join(Week, Week.id == Section.week_id)
            .where(Resource.id == resource_id)
        )
        row = result.one_or_none()
        if not row:
            return None
        return ResourceLocation(
            resource_id=row.id,
            section_id=row.section_id,
            week_id=row.week_id,
            league_id=row.league_id,
        )

    async def get_badge_for_league(self, league_id: LeagueId) -> BadgeRef | None:
        result = await self.db.execute(
            select(Badge).where(Badge.league_id == league_id)
        )
        badge = result.scalar_one_or_none()
        if not badge:
            return None
        return BadgeRef(
            id=badge.id,
            league_id=badge.league_id,
            name=badge.name,
            description=badge.description,
            image_url=badge.image_url,
        )

    async def get_specialization(
        self, specialization_id: SpecializationId,
    ) -> SpecializationRef | None:
        specialization = await self.db.get(
            Specialization, specialization_id, populate_existing=True,
        )
        return _specialization_ref(specialization) if specialization else None

    async def specializations_containing(
        self, league_id: LeagueId,
    ) -> list[SpecializationRef]:
        result = await self.db.execute(
            select(Specialization)
            .join(
                SpecializationLeague,
                SpecializationLeague.specialization_id == Specialization.id,
            )
            .where(SpecializationLeague.league_id == league_id)
            .order_by(Specialization.name, Specialization.id)
            .execution_options(populate_existing=True)
        )
        return [_specialization_ref(s) for s in result.scalars().unique()]

    async def user_exists(self, user_id: UserId) -> bool:
        result = await self.db.execute(select(User.id).where(User.id == user_id))
        return result.scalar_one_or_none() is not None
