"""Upload and upload-event Pydantic schemas."""


from pydantic import Field

from carriergate.domain.status import ActorType, UploadEventType, UploadStatus
from carriergate.schemas.common import CamelModel, UtcDateTime

class FileMetadata(CamelModel):
    file_name: str | None = Field(default=None, max_length=255)
    content_type: str | None = Field(default=None, max_length=255)
    byte_size: int | None = Field(default=None, ge=0)
    sha256: str | None = Field(default=None, pattern=r"^[0-9a-fA-F]{64}$")

class StorageLocator(CamelModel):
    """Opaque object-store reference; passed through untouched."""

    bucket: str = Field(min_length=1, max_length=255)
    path: str = Field(min_length=1, max_length=1024)

class UploadRegister(CamelModel):
    doc_type: str = Field(min_length=1, max_length=100)
    file: FileMetadata = Field(default_factory=FileMetadata)
    storage: StorageLocator
    actor_id: str | None = Field(default=None, max_length=36)

class UploadRegistered(CamelModel):
    upload_id: str

class UploadDecision(CamelModel):
    status: UploadStatus
    note: str | None = None
    actor_id: str | None = Field(default=None, max_length=36)

class UploadNoteCreate(CamelModel):
    note: str = Field(min_length=1)
    actor_type: ActorType = ActorType.BROKER
    actor_id: str | None = Field(default=None, max_length=36)

class UploadOut(CamelModel):
    id: str
    doc_request_id: str
    doc_type: str
    storage_bucket: str
    storage_path: str
    file_name: str | None = None
    content_type: str | None = None
    byte_size: int | None = None
    sha256: str | None = None
    status: UploadStatus
    created_at: UtcDateTime
    updated_at: UtcDateTime

class UploadEventOut(CamelModel):
    id: int
    upload_id: str
    event_type: UploadEventType
    actor_type: ActorType
    actor_id: str | None = None
    note: str | None = None
    created_at: UtcDateTime
