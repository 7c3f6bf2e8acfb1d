"""Doc request router — REFERENCE pattern for all v1 routers.

Pattern:
  1. Declare a router with prefix, tags and the trusted-server gate
  2. Inject the service via Depends (services open their own transactions)
  3. Call service methods and wrap result in response envelope

Every route here is for the trusted server only.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from carriergate.core.pagination import PaginationParams
from carriergate.core.response import DataResponse, ListResponse, paginated
from carriergate.domain.status import DocRequestStatus
from carriergate.routers.deps import (
    doc_request_service,
    require_server_key,
    token_service,
    upload_service,
)
from carriergate.schemas.doc_request import (
    DocRequestCreate,
    DocRequestCreated,
    DocRequestOut,
    TokenReissued,
    TokensRevoked,
)
from carriergate.schemas.upload import UploadOut
from carriergate.services.doc_requests import DocRequestLifecycle
from carriergate.services.tokens import TokenAuthority
from carriergate.services.uploads import UploadLifecycle

router = APIRouter(
    prefix="/doc-requests",
    tags=["Doc Requests"],
    dependencies=[Depends(require_server_key)],
)


@router.post("", response_model=DataResponse[DocRequestCreated], status_code=status.HTTP_201_CREATED)
async def create_doc_request(
    body: DocRequestCreate,
    svc: DocRequestLifecycle = Depends(doc_request_service),
):
    """Open a doc request. The raw token in the response is shown exactly once."""
    doc_request_id, raw_token, expires_at = await svc.create(
        broker_org_id=body.broker_org_id,
        carrier_org_id=body.carrier_org_id,
        verification_id=body.verification_id,
        required_docs=body.required_docs,
        ttl_minutes=body.ttl_minutes,
    )
    return {"data": DocRequestCreated(
        doc_request_id=doc_request_id, raw_token=raw_token, expires_at=expires_at,
    )}


@router.get("", response_model=ListResponse[DocRequestOut])
async def list_doc_requests(
    broker_org_id: Optional[str] = Query(default=None, alias="brokerOrgId"),
    filter_status: Optional[DocRequestStatus] = Query(default=None, alias="status"),
    pagination: PaginationParams = Depends(),
    svc: DocRequestLifecycle = Depends(doc_request_service),
):
    """List doc requests (paginated). Filter by ?brokerOrgId= and ?status=OPEN|SUBMITTED|..."""
    items, total = await svc.list_requests(
        pagination, broker_org_id=broker_org_id, status=filter_status
    )
    return paginated(
        [DocRequestOut.model_validate(r) for r in items],
        total, pagination,
    )


@router.get("/{doc_request_id}", response_model=DataResponse[DocRequestOut])
async def get_doc_request(
    doc_request_id: str,
    svc: DocRequestLifecycle = Depends(doc_request_service),
):
    doc_request = await svc.get(doc_request_id)
    return {"data": DocRequestOut.model_validate(doc_request)}


@router.get("/{doc_request_id}/uploads", response_model=DataResponse[list[UploadOut]])
async def list_doc_request_uploads(
    doc_request_id: str,
    svc: UploadLifecycle = Depends(upload_service),
):
    uploads = await svc.list_for_request(doc_request_id)
    return {"data": [UploadOut.model_validate(u) for u in uploads]}


@router.post("/{doc_request_id}/submit", response_model=DataResponse[DocRequestOut])
async def submit_doc_request(
    doc_request_id: str,
    svc: DocRequestLifecycle = Depends(doc_request_service),
):
    doc_request = await svc.submit(doc_request_id)
    return {"data": DocRequestOut.model_validate(doc_request)}


@router.post("/{doc_request_id}/cancel", response_model=DataResponse[DocRequestOut])
async def cancel_doc_request(
    doc_request_id: str,
    svc: DocRequestLifecycle = Depends(doc_request_service),
):
    doc_request = await svc.cancel(doc_request_id)
    return {"data": DocRequestOut.model_validate(doc_request)}


@router.post("/{doc_request_id}/token", response_model=DataResponse[TokenReissued])
async def reissue_token(
    doc_request_id: str,
    svc: TokenAuthority = Depends(token_service),
):
    """Revoke outstanding tokens and issue a fresh one for the same expiry."""
    raw_token, expires_at = await svc.reissue(doc_request_id)
    return {"data": TokenReissued(
        doc_request_id=doc_request_id, raw_token=raw_token, expires_at=expires_at,
    )}


@router.delete("/{doc_request_id}/token", response_model=DataResponse[TokensRevoked])
async def revoke_tokens(
    doc_request_id: str,
    svc: TokenAuthority = Depends(token_service),
):
    revoked = await svc.revoke(doc_request_id)
    return {"data": TokensRevoked(doc_request_id=doc_request_id, revoked=revoked)}
