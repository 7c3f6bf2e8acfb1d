"""Upload router — trusted server registers carrier files and records broker decisions."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from carriergate.core.response import DataResponse
from carriergate.routers.deps import audit_service, require_server_key, upload_service
from carriergate.schemas.upload import (
    UploadDecision,
    UploadEventOut,
    UploadNoteCreate,
    UploadOut,
    UploadRegister,
    UploadRegistered,
)
from carriergate.services.audit import AuditTrail
from carriergate.services.uploads import UploadLifecycle

router = APIRouter(tags=["Uploads"], dependencies=[Depends(require_server_key)])


@router.post(
    "/doc-requests/{doc_request_id}/uploads",
    response_model=DataResponse[UploadRegistered],
    status_code=status.HTTP_201_CREATED,
)
async def register_upload(
    doc_request_id: str,
    body: UploadRegister,
    svc: UploadLifecycle = Depends(upload_service),
):
    """Record a carrier file once the object store has it. Replaces a RECEIVED upload."""
    upload_id = await svc.register(
        doc_request_id, body.doc_type, body.file, body.storage, actor_id=body.actor_id,
    )
    return {"data": UploadRegistered(upload_id=upload_id)}


@router.get("/uploads/{upload_id}", response_model=DataResponse[UploadOut])
async def get_upload(
    upload_id: str,
    svc: UploadLifecycle = Depends(upload_service),
):
    upload = await svc.get(upload_id)
    return {"data": UploadOut.model_validate(upload)}


@router.post("/uploads/{upload_id}/decision", response_model=DataResponse[UploadOut])
async def decide_upload(
    upload_id: str,
    body: UploadDecision,
    svc: UploadLifecycle = Depends(upload_service),
):
    upload = await svc.decide(upload_id, body.status, note=body.note, actor_id=body.actor_id)
    return {"data": UploadOut.model_validate(upload)}


@router.post(
    "/uploads/{upload_id}/notes",
    response_model=DataResponse[UploadEventOut],
    status_code=status.HTTP_201_CREATED,
)
async def add_upload_note(
    upload_id: str,
    body: UploadNoteCreate,
    audit: AuditTrail = Depends(audit_service),
):
    event = await audit.add_note(upload_id, body.note, body.actor_type, actor_id=body.actor_id)
    return {"data": UploadEventOut.model_validate(event)}


@router.get("/uploads/{upload_id}/events", response_model=DataResponse[list[UploadEventOut]])
async def list_upload_events(
    upload_id: str,
    audit: AuditTrail = Depends(audit_service),
):
    events = await audit.history(upload_id)
    return {"data": [UploadEventOut.model_validate(e) for e in events]}
