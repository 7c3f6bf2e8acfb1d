"""Maintenance router — lets an external scheduler trigger the expiry sweep."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from carriergate.core.response import DataResponse
from carriergate.routers.deps import require_server_key, sweeper_service
from carriergate.schemas.doc_request import SweepResult
from carriergate.services.sweeper import ExpirationSweeper

router = APIRouter(
    prefix="/maintenance",
    tags=["Maintenance"],
    dependencies=[Depends(require_server_key)],
)


@router.post("/expire", response_model=DataResponse[SweepResult])
async def expire_doc_requests(sweeper: ExpirationSweeper = Depends(sweeper_service)):
    expired = await sweeper.run()
    return {"data": SweepResult(expired=expired)}
