"""Expiration sweeper — moves overdue doc requests to EXPIRED.

Scheduling is the caller's concern; :meth:`ExpirationSweeper.run` is a single
idempotent pass. Rows are claimed in batches and every UPDATE re-checks
``expires_at`` and the current status, so the sweep can interleave with any
other operation (or another sweep) without clobbering a newer transition.
"""


import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from carriergate.core.config import settings
from carriergate.db.base import unit_of_work
from carriergate.domain.mixins import utcnow
from carriergate.domain.status import DocRequestStatus, request_statuses_leading_to
from carriergate.repositories.doc_request import DocRequestRepository

logger = logging.getLogger(__name__)

EXPIRABLE_STATUSES = request_statuses_leading_to(DocRequestStatus.EXPIRED)


class ExpirationSweeper:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        batch_size: int | None = None,
    ):
        self._session_factory = session_factory
        self._batch_size = batch_size or settings.sweep_batch_size

    async def run(self) -> int:
        """Expire every overdue request; returns how many rows changed.

        Never raises: a store failure ends the pass early and the batches
        already committed are reported.
        """
        now = utcnow()
        total = 0
        while True:
            try:
                async with unit_of_work(self._session_factory) as session:
                    requests = DocRequestRepository(session)
                    ids = await requests.stale_ids(now, EXPIRABLE_STATUSES, self._batch_size)
                    if not ids:
                        break
                    expired = await requests.expire_many(ids, now, EXPIRABLE_STATUSES)
            except SQLAlchemyError:
                logger.exception("Expiration sweep stopped after %d row(s)", total)
                break

            total += expired
            if len(ids) < self._batch_size:
                break

        if total:
            logger.info("Expiration sweep moved %d doc request(s) to EXPIRED", total)
        return total
