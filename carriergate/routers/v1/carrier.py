"""Carrier router — the only surface a token holder can reach.

The token travels in the request body, never in the URL, so it does not end
up in access logs.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from carriergate.core.response import DataResponse
from carriergate.routers.deps import token_service
from carriergate.schemas.doc_request import DocRequestView, TokenResolveRequest
from carriergate.services.tokens import TokenAuthority

router = APIRouter(prefix="/carrier", tags=["Carrier"])


@router.post("/resolve", response_model=DataResponse[DocRequestView])
async def resolve_token(
    body: TokenResolveRequest,
    svc: TokenAuthority = Depends(token_service),
):
    """Exchange a one-time token for the doc request it grants access to."""
    view = await svc.resolve(body.token)
    return {"data": view}
