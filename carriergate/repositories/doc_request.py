"""DocRequest repository — REFERENCE pattern for all repositories.

How to add a new repository:
  1. Create carriergate/repositories/my_entity.py
  2. class MyEntityRepository(BaseRepository[MyEntity]):
         model = MyEntity
  3. Add any domain-specific query methods as needed
"""

from datetime import datetime

from sqlalchemy import select, update

from carriergate.domain.doc_request import DocRequest
from carriergate.domain.status import DocRequestStatus
from carriergate.repositories.base import BaseRepository


class DocRequestRepository(BaseRepository[DocRequest]):
    model = DocRequest

    async def transition(
        self,
        doc_request_id: str,
        *,
        expected: DocRequestStatus,
        target: DocRequestStatus,
        **values,
    ) -> bool:
        """Move one request from *expected* to *target*; False if its status moved on."""
        return await self.update_where(
            doc_request_id,
            [DocRequest.status == expected],
            status=target,
            **values,
        )

    async def stale_ids(
        self, now: datetime, statuses: frozenset[DocRequestStatus], limit: int
    ) -> list[str]:
        result = await self._session.execute(
            select(DocRequest.id)
            .where(DocRequest.expires_at < now, DocRequest.status.in_(statuses))
            .order_by(DocRequest.expires_at)
            .limit(limit)
        )
        return list(result.scalars().all())

    async def expire_many(
        self, ids: list[str], now: datetime, statuses: frozenset[DocRequestStatus]
    ) -> int:
        """Bulk move to EXPIRED, re-checking expiry and status at write time."""
        result = await self._session.execute(
            update(DocRequest)
            .where(
                DocRequest.id.in_(ids),
                DocRequest.expires_at < now,
                DocRequest.status.in_(statuses),
            )
            .values(status=DocRequestStatus.EXPIRED, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount
