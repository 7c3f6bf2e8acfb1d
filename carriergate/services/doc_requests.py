"""Doc request lifecycle — REFERENCE pattern for all services.

How to add a new service:
  1. Create carriergate/services/my_entity.py
  2. Inject the async session factory via constructor
  3. Open one transaction per operation (unit_of_work / run_in_transaction)
  4. Delegate all SQL to repositories
  5. Raise AppException subclasses for business rule violations

Request state machine (see ``carriergate.domain.status``):
  OPEN → SUBMITTED (submit) | CANCELED (cancel) | EXPIRED (sweeper)
  SUBMITTED → EXPIRED (sweeper)
"""


import logging
from collections.abc import Mapping, Sequence
from datetime import datetime, timedelta
from typing import Any

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from carriergate.core.exceptions import (
    InvalidInputError,
    InvalidTransitionError,
    MissingDocumentsError,
    NotFoundError,
    StaleStateError,
)
from carriergate.core.pagination import PaginationParams
from carriergate.db.base import run_in_transaction, unit_of_work
from carriergate.domain.doc_request import DocRequest
from carriergate.domain.mixins import utcnow
from carriergate.domain.status import DocRequestStatus, can_transition_request
from carriergate.repositories.doc_request import DocRequestRepository
from carriergate.repositories.upload import UploadRepository
from carriergate.schemas.doc_request import RequiredDoc
from carriergate.services.tokens import TokenAuthority

logger = logging.getLogger(__name__)

DEFAULT_TTL_MINUTES = 60
MAX_TTL_MINUTES = 1440

_required_docs_adapter = TypeAdapter(list[RequiredDoc])


def clamp_ttl_minutes(ttl_minutes: int | None) -> int:
    """Missing or non-positive → 60; anything above a day → 1440."""
    if ttl_minutes is None or ttl_minutes < 1:
        return DEFAULT_TTL_MINUTES
    return min(ttl_minutes, MAX_TTL_MINUTES)


def parse_required_docs(
    required_docs: Sequence[RequiredDoc | Mapping[str, Any]],
) -> list[RequiredDoc]:
    """Validate once at ingestion: non-empty, well-formed, doc_type unique."""
    if not required_docs:
        raise InvalidInputError("required_docs must contain at least one document")

    try:
        docs = _required_docs_adapter.validate_python(
            [d.model_dump() if isinstance(d, RequiredDoc) else d for d in required_docs]
        )
    except PydanticValidationError as exc:
        raise InvalidInputError(
            "required_docs is malformed",
            details={"errors": [e["msg"] for e in exc.errors()]},
        ) from exc

    seen: set[str] = set()
    duplicates: list[str] = []
    for doc in docs:
        if doc.doc_type in seen and doc.doc_type not in duplicates:
            duplicates.append(doc.doc_type)
        seen.add(doc.doc_type)
    if duplicates:
        raise InvalidInputError(
            f"Duplicate doc_type values: {', '.join(duplicates)}",
            details={"duplicates": duplicates},
        )
    return docs


class DocRequestLifecycle:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        tokens: TokenAuthority | None = None,
    ):
        self._session_factory = session_factory
        self._tokens = tokens or TokenAuthority(session_factory)

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    async def create(
        self,
        *,
        broker_org_id: str,
        verification_id: str,
        required_docs: Sequence[RequiredDoc | Mapping[str, Any]],
        carrier_org_id: str | None = None,
        ttl_minutes: int | None = None,
    ) -> tuple[str, str, datetime]:
        """Open a request and issue its token atomically.

        Returns ``(doc_request_id, raw_token, expires_at)``. The raw token is
        not stored anywhere and cannot be recovered later.
        """
        if not broker_org_id or not verification_id:
            raise InvalidInputError("broker_org_id and verification_id are required")
        docs = parse_required_docs(required_docs)
        expires_at = utcnow() + timedelta(minutes=clamp_ttl_minutes(ttl_minutes))

        async def work(session: AsyncSession) -> tuple[str, str]:
            doc_request = await DocRequestRepository(session).create(
                broker_org_id=broker_org_id,
                carrier_org_id=carrier_org_id,
                verification_id=verification_id,
                required_docs=[d.model_dump() for d in docs],
                status=DocRequestStatus.OPEN,
                expires_at=expires_at,
            )
            raw_token, _ = await self._tokens.issue(session, doc_request.id, expires_at)
            return doc_request.id, raw_token

        doc_request_id, raw_token = await run_in_transaction(
            self._session_factory, work, operation="create_doc_request"
        )
        logger.info(
            "Doc request %s opened by broker %s (%d doc types, expires %s)",
            doc_request_id, broker_org_id, len(docs), expires_at.isoformat(),
        )
        return doc_request_id, raw_token, expires_at

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def submit(self, doc_request_id: str) -> DocRequest:
        """Close the request once every required doc type has an upload row.

        Any upload counts, whatever its decision status; presence alone
        satisfies the requirement.
        """

        async def work(session: AsyncSession) -> DocRequest:
            requests = DocRequestRepository(session)
            doc_request = await requests.get_by_id(doc_request_id, for_update=True)
            if doc_request is None:
                raise NotFoundError("DocRequest", doc_request_id)
            self._check_transition(doc_request, DocRequestStatus.SUBMITTED)

            present = await UploadRepository(session).present_doc_types(doc_request_id)
            missing = [t for t in doc_request.required_doc_types if t not in present]
            if missing:
                raise MissingDocumentsError(doc_request_id, missing)

            return await self._apply(
                requests, doc_request, DocRequestStatus.SUBMITTED, submitted_at=utcnow()
            )

        doc_request = await run_in_transaction(
            self._session_factory, work, operation="submit_doc_request"
        )
        logger.info("Doc request %s submitted", doc_request_id)
        return doc_request

    async def cancel(self, doc_request_id: str) -> DocRequest:
        async def work(session: AsyncSession) -> DocRequest:
            requests = DocRequestRepository(session)
            doc_request = await requests.get_by_id(doc_request_id, for_update=True)
            if doc_request is None:
                raise NotFoundError("DocRequest", doc_request_id)
            self._check_transition(doc_request, DocRequestStatus.CANCELED)
            return await self._apply(requests, doc_request, DocRequestStatus.CANCELED)

        doc_request = await run_in_transaction(
            self._session_factory, work, operation="cancel_doc_request"
        )
        logger.info("Doc request %s canceled", doc_request_id)
        return doc_request

    @staticmethod
    def _check_transition(doc_request: DocRequest, target: DocRequestStatus) -> None:
        if not can_transition_request(doc_request.status, target):
            raise InvalidTransitionError(
                "DocRequest", doc_request.id, doc_request.status.value, target.value
            )

    @staticmethod
    async def _apply(
        requests: DocRequestRepository,
        doc_request: DocRequest,
        target: DocRequestStatus,
        **values: Any,
    ) -> DocRequest:
        moved = await requests.transition(
            doc_request.id, expected=doc_request.status, target=target, **values
        )
        if not moved:
            raise StaleStateError(f"doc request {doc_request.id} left {doc_request.status.value}")
        return await requests.get_by_id(doc_request.id)

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    async def get(self, doc_request_id: str) -> DocRequest:
        async with unit_of_work(self._session_factory) as session:
            doc_request = await DocRequestRepository(session).get_by_id(doc_request_id)
        if doc_request is None:
            raise NotFoundError("DocRequest", doc_request_id)
        return doc_request

    async def list_requests(
        self,
        pagination: PaginationParams,
        broker_org_id: str | None = None,
        status: DocRequestStatus | None = None,
    ) -> tuple[list[DocRequest], int]:
        filters = {"broker_org_id": broker_org_id, "status": status}
        async with unit_of_work(self._session_factory) as session:
            return await DocRequestRepository(session).list(
                offset=pagination.offset,
                limit=pagination.limit,
                order_by=pagination.sort,
                order=pagination.order,
                filters=filters,
            )
