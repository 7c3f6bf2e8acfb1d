"""Upload lifecycle — registers carrier files and applies broker decisions.

Upload state machine (see ``carriergate.domain.status``):
  RECEIVED    → ACCEPTED | REJECTED | QUARANTINED
  QUARANTINED → ACCEPTED | REJECTED

A second file for the same doc type replaces the existing row in place, but
only while it is still RECEIVED. Every create, replace and status change writes
one upload event in the same transaction.

Rule: no FastAPI imports here. Repositories own the SQL, this module owns the
transaction boundaries and the business rules.
"""


import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from carriergate.core.exceptions import (
    InvalidInputError,
    InvalidTransitionError,
    NotFoundError,
    ReplaceDeniedError,
    RequestClosedError,
    StaleStateError,
)
from carriergate.db.base import run_in_transaction, unit_of_work
from carriergate.domain.status import (
    ActorType,
    DocRequestStatus,
    UploadEventType,
    UploadStatus,
    can_transition_upload,
)
from carriergate.domain.upload import Upload
from carriergate.repositories.doc_request import DocRequestRepository
from carriergate.repositories.upload import UploadRepository
from carriergate.schemas.upload import FileMetadata, StorageLocator
from carriergate.services.audit import AuditTrail

logger = logging.getLogger(__name__)

CREATED_NOTE = "Upload created"
REPLACED_NOTE = "File replaced"


def default_status_note(current: UploadStatus, target: UploadStatus) -> str:
    return f"Status changed from {current.value} to {target.value}"


class UploadLifecycle:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    # ------------------------------------------------------------------
    # Register (create or replace)
    # ------------------------------------------------------------------

    async def register(
        self,
        doc_request_id: str,
        doc_type: str,
        file: FileMetadata,
        storage: StorageLocator,
        actor_id: str | None = None,
    ) -> str:
        """Record the carrier's file for *doc_type* and return the upload id.

        The request row is locked for the whole transaction, so a concurrent
        submit, cancel or sweep cannot close it between the OPEN check and the
        write. Two concurrent registrations of the same doc type race on the
        ``(doc_request_id, doc_type)`` unique constraint; the loser is rolled
        back and retried, at which point it sees the winner's row and either
        replaces it or is denied.
        """
        doc_type = (doc_type or "").strip()
        if not doc_type:
            raise InvalidInputError("doc_type must not be blank", details={"id": doc_request_id})

        file_values = {
            "storage_bucket": storage.bucket,
            "storage_path": storage.path,
            "file_name": file.file_name,
            "content_type": file.content_type,
            "byte_size": file.byte_size,
            "sha256": file.sha256.lower() if file.sha256 else None,
        }

        async def work(session: AsyncSession) -> str:
            doc_request = await DocRequestRepository(session).get_by_id(
                doc_request_id, for_update=True
            )
            if doc_request is None:
                raise NotFoundError("DocRequest", doc_request_id)
            if doc_request.status != DocRequestStatus.OPEN:
                raise RequestClosedError(doc_request_id, doc_request.status.value)

            uploads = UploadRepository(session)
            existing = await uploads.get_for_doc_type(doc_request_id, doc_type)

            if existing is None:
                upload = await uploads.create(
                    doc_request_id=doc_request_id,
                    doc_type=doc_type,
                    status=UploadStatus.RECEIVED,
                    **file_values,
                )
                await AuditTrail.record(
                    session,
                    upload_id=upload.id,
                    event_type=UploadEventType.CREATED,
                    actor_type=ActorType.CARRIER,
                    actor_id=actor_id,
                    note=CREATED_NOTE,
                )
                logger.info(
                    "Upload %s created for doc request %s (%s)",
                    upload.id, doc_request_id, doc_type,
                )
                return upload.id

            if existing.status != UploadStatus.RECEIVED:
                raise ReplaceDeniedError(existing.id, existing.status.value)

            replaced = await uploads.transition(
                existing.id,
                expected=UploadStatus.RECEIVED,
                status=UploadStatus.RECEIVED,
                **file_values,
            )
            if not replaced:
                raise StaleStateError(f"upload {existing.id} changed while replacing")

            await AuditTrail.record(
                session,
                upload_id=existing.id,
                event_type=UploadEventType.FILE_UPLOADED,
                actor_type=ActorType.CARRIER,
                actor_id=actor_id,
                note=REPLACED_NOTE,
            )
            logger.info(
                "Upload %s replaced for doc request %s (%s)",
                existing.id, doc_request_id, doc_type,
            )
            return existing.id

        return await run_in_transaction(
            self._session_factory, work, operation="register_upload"
        )

    # ------------------------------------------------------------------
    # Decide (broker verdict)
    # ------------------------------------------------------------------

    async def decide(
        self,
        upload_id: str,
        next_status: UploadStatus | str,
        note: str | None = None,
        actor_id: str | None = None,
    ) -> Upload:
        try:
            target = UploadStatus(next_status)
        except ValueError as exc:
            raise InvalidInputError(
                f"Unknown upload status '{next_status}'", details={"id": upload_id}
            ) from exc

        async def work(session: AsyncSession) -> Upload:
            uploads = UploadRepository(session)
            upload = await uploads.get_by_id(upload_id)
            if upload is None:
                raise NotFoundError("Upload", upload_id)

            current = upload.status
            if not can_transition_upload(current, target):
                raise InvalidTransitionError("Upload", upload_id, current.value, target.value)

            if not await uploads.transition(upload_id, expected=current, status=target):
                raise StaleStateError(f"upload {upload_id} left {current.value}")

            await AuditTrail.record(
                session,
                upload_id=upload_id,
                event_type=UploadEventType.STATUS_CHANGED,
                actor_type=ActorType.BROKER,
                actor_id=actor_id,
                note=note if note else default_status_note(current, target),
            )
            logger.info("Upload %s: %s -> %s", upload_id, current.value, target.value)
            return await uploads.get_by_id(upload_id)

        return await run_in_transaction(
            self._session_factory, work, operation="decide_upload"
        )

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    async def get(self, upload_id: str) -> Upload:
        async with unit_of_work(self._session_factory) as session:
            upload = await UploadRepository(session).get_by_id(upload_id)
        if upload is None:
            raise NotFoundError("Upload", upload_id)
        return upload

    async def list_for_request(self, doc_request_id: str) -> list[Upload]:
        async with unit_of_work(self._session_factory) as session:
            if await DocRequestRepository(session).get_by_id(doc_request_id) is None:
                raise NotFoundError("DocRequest", doc_request_id)
            return await UploadRepository(session).list_for_request(doc_request_id)
