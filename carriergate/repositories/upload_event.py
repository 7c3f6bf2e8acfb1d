from sqlalchemy import select

from carriergate.domain.audit import UploadEvent
from carriergate.repositories.base import BaseRepository


class UploadEventRepository(BaseRepository[UploadEvent]):
    """Events are only ever inserted and read; nothing here rewrites history."""

    model = UploadEvent

    async def history(self, upload_id: str) -> list[UploadEvent]:
        result = await self._session.execute(
            select(UploadEvent)
            .where(UploadEvent.upload_id == upload_id)
            .order_by(UploadEvent.created_at, UploadEvent.id)
        )
        return list(result.scalars().all())
