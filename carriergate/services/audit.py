"""Audit trail — append-only ledger of upload events.

Every upload mutation writes exactly one event through :meth:`AuditTrail.record`
using the same session as the mutation, so the row change and its event
commit or roll back together.
"""


import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from carriergate.core.exceptions import InvalidInputError, NotFoundError
from carriergate.db.base import unit_of_work
from carriergate.domain.audit import UploadEvent
from carriergate.domain.status import ActorType, UploadEventType
from carriergate.repositories.upload import UploadRepository
from carriergate.repositories.upload_event import UploadEventRepository

logger = logging.getLogger(__name__)


class AuditTrail:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    @staticmethod
    async def record(
        session: AsyncSession,
        *,
        upload_id: str,
        event_type: UploadEventType,
        actor_type: ActorType,
        actor_id: str | None = None,
        note: str | None = None,
    ) -> UploadEvent:
        event = await UploadEventRepository(session).create(
            upload_id=upload_id,
            event_type=event_type,
            actor_type=actor_type,
            actor_id=actor_id,
            note=note,
        )
        logger.debug(
            "Upload %s: %s by %s", upload_id, event_type.value, actor_type.value
        )
        return event

    async def add_note(
        self,
        upload_id: str,
        note: str,
        actor_type: ActorType,
        actor_id: str | None = None,
    ) -> UploadEvent:
        """Attach a free-text note to an upload's history without touching the upload."""
        note = (note or "").strip()
        if not note:
            raise InvalidInputError("Note must not be blank", details={"id": upload_id})

        async with unit_of_work(self._session_factory) as session:
            if await UploadRepository(session).get_by_id(upload_id) is None:
                raise NotFoundError("Upload", upload_id)
            return await self.record(
                session,
                upload_id=upload_id,
                event_type=UploadEventType.NOTE_ADDED,
                actor_type=actor_type,
                actor_id=actor_id,
                note=note,
            )

    async def history(self, upload_id: str) -> list[UploadEvent]:
        """Canonical event history: created_at ascending, insertion order on ties."""
        async with unit_of_work(self._session_factory) as session:
            if await UploadRepository(session).get_by_id(upload_id) is None:
                raise NotFoundError("Upload", upload_id)
            return await UploadEventRepository(session).history(upload_id)
