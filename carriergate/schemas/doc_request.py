"""DocRequest Pydantic schemas (request DTOs and response models)."""


from pydantic import Field, StrictBool, field_validator

from carriergate.domain.status import DocRequestStatus
from carriergate.schemas.common import CamelModel, UtcDateTime

class RequiredDoc(CamelModel):
    doc_type: str = Field(min_length=1, max_length=100)
    required: StrictBool = True

    @field_validator("doc_type")
    @classmethod
    def _strip_doc_type(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("doc_type must not be blank")
        return value

class DocRequestCreate(CamelModel):
    broker_org_id: str = Field(min_length=1, max_length=36)
    carrier_org_id: str | None = Field(default=None, max_length=36)
    verification_id: str = Field(min_length=1, max_length=36)
    required_docs: list[RequiredDoc]
    ttl_minutes: int | None = None

class DocRequestCreated(CamelModel):
    """Returned once at creation; the raw token is never retrievable again."""

    doc_request_id: str
    raw_token: str
    expires_at: UtcDateTime

class DocRequestOut(CamelModel):
    id: str
    broker_org_id: str
    carrier_org_id: str | None = None
    verification_id: str
    required_docs: list[RequiredDoc]
    status: DocRequestStatus
    expires_at: UtcDateTime
    submitted_at: UtcDateTime | None = None
    created_at: UtcDateTime
    updated_at: UtcDateTime

class DocRequestView(CamelModel):
    """Carrier-facing view returned by a successful token resolution."""

    doc_request_id: str
    broker_org_id: str
    carrier_org_id: str | None = None
    verification_id: str
    required_docs: list[RequiredDoc]
    status: DocRequestStatus
    expires_at: UtcDateTime
    submitted_at: UtcDateTime | None = None
    created_at: UtcDateTime
    token_id: str
    token_expires_at: UtcDateTime
    token_used_at: UtcDateTime

class TokenResolveRequest(CamelModel):
    token: str = Field(min_length=1, max_length=512)

class TokenReissued(CamelModel):
    doc_request_id: str
    raw_token: str
    expires_at: UtcDateTime

class TokensRevoked(CamelModel):
    doc_request_id: str
    revoked: int

class SweepResult(CamelModel):
    expired: int
