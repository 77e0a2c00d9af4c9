"""SQL Audit Sink — appends achievement events to audit_logs in a separate transaction.

Invariants:
    - Each emit() opens, commits and closes its own session: a failing audit write
      can never roll back the award that preceded it
    - Errors propagate to the caller (the Achievement Trigger logs and drops them)
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from progress_engine.core.progress_records import AuditEvent
from progress_engine.models.audit_log import AuditLog

logger = logging.getLogger(__name__)


class SqlAuditSink:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def emit(self, event: AuditEvent) -> None:
        async with self.session_factory() as db:
            db.add(AuditLog(
                user_id=event.user_id,
                action=event.action.value,
                resource_id=event.resource_id,
                description=event.description,
                details=event.details,
                created_at=event.timestamp,
            ))
            await db.commit()
        logger.debug(
            f"Audit event {event.action.value} recorded",
            extra={"user_id": str(event.user_id)},
        )
