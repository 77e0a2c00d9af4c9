"""Progress Routes — record, reset and read a learner's progress.

Invariants:
    - Caller identity from X-User-Id (see api/dependencies.py)
    - Bodies are validated by pydantic before reaching the service
    - Routes hold no business logic: every decision is made in ProgressService

Design Decisions:
    - PATCH for progress writes: only the fields sent are merged
    - Reset is a POST action on the resource: it changes state but is idempotent
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from progress_engine.api.dependencies import get_progress_service, get_viewer
from progress_engine.core.progress_records import Viewer
from progress_engine.schemas.progress import (
    ProgressResponse, ResourceProgressUpdate, SectionCompletionResponse,
    SectionProgressUpdate,
)
from progress_engine.services.progress_service import ProgressService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/progress", tags=["progress"])


@router.patch("/resources/{resource_id}", response_model=ProgressResponse)
async def update_resource_progress(
    resource_id: UUID,
    body: ResourceProgressUpdate,
    viewer: Viewer = Depends(get_viewer),
    service: ProgressService = Depends(get_progress_service),
):
    record = await service.record_resource_completion(
        viewer.user_id, resource_id, body.to_changes(),
    )
    return ProgressResponse.from_record(record)


@router.get("/resources/{resource_id}", response_model=ProgressResponse)
async def get_resource_progress(
    resource_id: UUID,
    viewer: Viewer = Depends(get_viewer),
    service: ProgressService = Depends(get_progress_service),
):
    record = await service.get_resource_progress(viewer.user_id, resource_id)
    return ProgressResponse.from_record(record)


@router.post("/resources/{resource_id}/reset", response_model=ProgressResponse)
async def reset_resource_progress(
    resource_id: UUID,
    viewer: Viewer = Depends(get_viewer),
    service: ProgressService = Depends(get_progress_service),
):
    record = await service.reset_progress(viewer.user_id, resource_id)
    return ProgressResponse.from_record(record)


@router.patch("/sections/{section_id}", response_model=SectionCompletionResponse)
async def update_section_progress(
    section_id: UUID,
    body: SectionProgressUpdate,
    viewer: Viewer = Depends(get_viewer),
    service: ProgressService = Depends(get_progress_service),
):
    result = await service.record_section_completion(
        viewer.user_id, section_id, body.to_changes(),
    )
    return SectionCompletionResponse(
        progress=ProgressResponse.from_record(result.progress),
        badge_awarded=result.badge_awarded,
        specializations_completed=(
            list(result.outcome.specializations_completed) if result.outcome else []
        ),
    )


@router.get("/sections/{section_id}/resources")
async def get_section_resources(
    section_id: UUID,
    viewer: Viewer = Depends(get_viewer),
    service: ProgressService = Depends(get_progress_service),
):
    return await service.get_section_resources(viewer.user_id, section_id)


@router.get("/leagues/{league_id}")
async def get_league_progress(
    league_id: UUID,
    user_id: UUID | None = Query(None, description="Defaults to the caller"),
    viewer: Viewer = Depends(get_viewer),
    service: ProgressService = Depends(get_progress_service),
):
    return await service.get_league_progress(
        user_id or viewer.user_id, league_id, viewer,
    )


@router.get("/achievements")
async def get_achievements(
    viewer: Viewer = Depends(get_viewer),
    service: ProgressService = Depends(get_progress_service),
):
    return await service.get_user_achievements(viewer.user_id)


@router.get("/dashboard")
async def get_dashboard(
    user_id: UUID | None = Query(None, description="Defaults to the caller"),
    viewer: Viewer = Depends(get_viewer),
    service: ProgressService = Depends(get_progress_service),
):
    return await service.get_user_dashboard(user_id or viewer.user_id, viewer)


@router.get("/revisions")
async def get_revisions(
    viewer: Viewer = Depends(get_viewer),
    service: ProgressService = Depends(get_progress_service),
):
    return await service.get_revision_resources(viewer.user_id)
