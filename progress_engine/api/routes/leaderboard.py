"""Leaderboard Routes — ranked completed-resource counts, globally or per league/specialization.

Invariants:
    - limit defaults to settings.leaderboard_default_limit; range checked by the ranker
    - scope_id is required for LEAGUE and SPECIALIZATION scopes (400 otherwise)
"""

from dataclasses import asdict
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from progress_engine.api.dependencies import get_progress_service, get_viewer
from progress_engine.config import get_settings
from progress_engine.core.domain_types import ScopeKind
from progress_engine.core.progress_records import LeaderboardScope, Viewer
from progress_engine.schemas.progress import (
    LeaderboardEntryResponse, LeaderboardResponse, UserRankResponse,
)
from progress_engine.services.progress_service import ProgressService

router = APIRouter(prefix="/api/v1/leaderboard", tags=["leaderboard"])


def _entry(entry) -> LeaderboardEntryResponse | None:
    if entry is None:
        return None
    return LeaderboardEntryResponse(**asdict(entry))


@router.get("", response_model=LeaderboardResponse)
async def get_leaderboard(
    limit: int | None = Query(None),
    scope: ScopeKind = Query(ScopeKind.GLOBAL),
    scope_id: UUID | None = Query(None),
    service: ProgressService = Depends(get_progress_service),
):
    if limit is None:
        limit = get_settings().leaderboard_default_limit
    entries = await service.get_leaderboard(limit, LeaderboardScope(scope, scope_id))
    return LeaderboardResponse(
        scope=scope,
        scope_id=scope_id,
        entries=[_entry(e) for e in entries],
    )


@router.get("/me", response_model=UserRankResponse)
async def get_my_rank(
    scope: ScopeKind = Query(ScopeKind.GLOBAL),
    scope_id: UUID | None = Query(None),
    viewer: Viewer = Depends(get_viewer),
    service: ProgressService = Depends(get_progress_service),
):
    rank = await service.get_user_rank(viewer.user_id, LeaderboardScope(scope, scope_id))
    return UserRankResponse(
        entry=_entry(rank.entry), above=_entry(rank.above), below=_entry(rank.below),
    )
