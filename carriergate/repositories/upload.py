from sqlalchemy import select

from carriergate.domain.status import UploadStatus
from carriergate.domain.upload import Upload
from carriergate.repositories.base import BaseRepository


class UploadRepository(BaseRepository[Upload]):
    model = Upload

    async def get_for_doc_type(self, doc_request_id: str, doc_type: str) -> Upload | None:
        result = await self._session.execute(
            select(Upload)
            .where(Upload.doc_request_id == doc_request_id, Upload.doc_type == doc_type)
            .execution_options(populate_existing=True)
        )
        return result.scalars().first()

    async def list_for_request(self, doc_request_id: str) -> list[Upload]:
        result = await self._session.execute(
            select(Upload)
            .where(Upload.doc_request_id == doc_request_id)
            .order_by(Upload.created_at, Upload.doc_type)
        )
        return list(result.scalars().all())

    async def present_doc_types(self, doc_request_id: str) -> set[str]:
        """doc_type values that have an upload row, whatever its status."""
        result = await self._session.execute(
            select(Upload.doc_type).where(Upload.doc_request_id == doc_request_id)
        )
        return set(result.scalars().all())

    async def transition(
        self, upload_id: str, *, expected: UploadStatus, **values
    ) -> bool:
        """Conditional write guarded by the status the caller observed."""
        return await self.update_where(upload_id, [Upload.status == expected], **values)
