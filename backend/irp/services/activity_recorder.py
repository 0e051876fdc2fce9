"""
Activity Recorder
=================
Best-effort audit trail for mutating requests.

``record()`` schedules the write on a detached task and returns at once,
so the handler's response never waits on (or fails because of) the audit
write. Each write uses its own session; any error is logged through
``logger.log_activity_failure`` and dropped.

``drain()`` awaits whatever is still in flight. The app calls it on
shutdown and tests call it before asserting on records.
"""
import asyncio
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Set

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from sqlalchemy.ext.asyncio import AsyncSession

from irp.core.database import get_session_local
from irp.core.logging_config import logger
from irp.models.activity_log import ActivityLog, ActivityAction, ActivityResource

MAX_DESCRIPTION_LENGTH = 500


@dataclass
class ActivityEntry:
    """One audit record waiting to be written"""
    user_id: str
    action: ActivityAction
    resource: ActivityResource
    description: str
    resource_id: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None

    def to_model(self) -> ActivityLog:
        return ActivityLog(
            user_id=str(self.user_id),
            action=ActivityAction(self.action),
            resource=ActivityResource(self.resource),
            resource_id=str(self.resource_id) if self.resource_id else None,
            description=self.description[:MAX_DESCRIPTION_LENGTH],
            details=jsonable_encoder(self.details or {}),
            ip_address=self.ip_address,
            user_agent=self.user_agent,
        )


class ActivityRecorder:
    """Fire-and-forget writer for ActivityLog rows"""

    def __init__(self, session_factory: Optional[Callable[[], AsyncSession]] = None):
        # None means the application's session factory, resolved lazily
        self.session_factory = session_factory
        self._pending: Set[asyncio.Task] = set()

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def _new_session(self) -> AsyncSession:
        factory = self.session_factory or get_session_local()
        return factory()

    async def persist(self, entry: ActivityEntry) -> bool:
        """Write one entry. Never raises; returns False when the write was dropped."""
        try:
            async with self._new_session() as session:
                session.add(entry.to_model())
                await session.commit()
            return True
        except Exception as e:
            logger.log_activity_failure(
                str(entry.action), str(entry.resource), e,
                actor_id=str(entry.user_id),
                resource_id=str(entry.resource_id) if entry.resource_id else None,
            )
            return False

    def record(self, entry: ActivityEntry) -> Optional[asyncio.Task]:
        """Schedule ``entry`` for writing without waiting for it"""
        try:
            task = asyncio.get_running_loop().create_task(self.persist(entry))
        except RuntimeError as e:
            logger.log_activity_failure(str(entry.action), str(entry.resource), e)
            return None

        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    def record_request(
        self,
        request: Request,
        user,
        action: ActivityAction,
        resource: ActivityResource,
        description: str,
        resource_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> Optional[asyncio.Task]:
        """Record an action taken by ``user`` during ``request``"""
        client_ip = request.client.host if request.client else None
        return self.record(ActivityEntry(
            user_id=str(user.id),
            action=action,
            resource=resource,
            description=description,
            resource_id=resource_id,
            details=details or {},
            ip_address=client_ip,
            user_agent=request.headers.get("user-agent"),
        ))

    async def drain(self) -> None:
        """Wait for every scheduled write to finish"""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)


# Singleton instance
activity_recorder = ActivityRecorder()
