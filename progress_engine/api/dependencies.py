"""Request Dependencies — caller identity and per-request service wiring.

Invariants:
    - Identity is authenticated upstream; X-User-Id is trusted as the caller's id
    - X-User-Role is optional and defaults to the lowest role (PIONEER)
    - One ProgressService per request, bound to that request's AsyncSession

Design Decisions:
    - Unknown role names are a 400, not a silent downgrade: a typo must not look like
      a permissions bug
"""

from uuid import UUID

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from progress_engine.config import get_settings
from progress_engine.core.domain_types import UserRole
from progress_engine.core.errors import ProgressValidationError
from progress_engine.core.progress_records import Viewer
from progress_engine.infrastructure.audit_sink import SqlAuditSink
from progress_engine.infrastructure.database import get_db, get_session_factory
from progress_engine.services.progress_service import (
    ProgressService, build_progress_service,
)


async def get_viewer(
    x_user_id: UUID = Header(...),
    x_user_role: str | None = Header(None),
) -> Viewer:
    if x_user_role is None:
        return Viewer(user_id=x_user_id)
    try:
        role = UserRole.from_name(x_user_role)
    except ValueError:
        raise ProgressValidationError(
            f"Unknown role '{x_user_role}'", "X-User-Role",
        ) from None
    return Viewer(user_id=x_user_id, role=role)


async def get_progress_service(
    db: AsyncSession = Depends(get_db),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> ProgressService:
    return build_progress_service(
        db,
        audit=SqlAuditSink(session_factory),
        leaderboard_max_limit=get_settings().leaderboard_max_limit,
    )
