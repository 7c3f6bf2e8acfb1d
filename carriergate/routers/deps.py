"""Shared router dependencies: trusted-server gate and service construction."""

from __future__ import annotations

import secrets
from typing import Optional

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from carriergate.core.config import settings
from carriergate.core.exceptions import UnauthorizedError
from carriergate.db.base import get_session_factory
from carriergate.services.audit import AuditTrail
from carriergate.services.doc_requests import DocRequestLifecycle
from carriergate.services.sweeper import ExpirationSweeper
from carriergate.services.tokens import TokenAuthority
from carriergate.services.uploads import UploadLifecycle

SessionFactory = async_sessionmaker[AsyncSession]


async def require_server_key(
    x_server_key: Optional[str] = Header(default=None, alias="X-Server-Key"),
) -> None:
    """Gate for trusted-server routes. Open when no SERVER_API_KEY is configured."""
    if not settings.server_key_required:
        return
    if not x_server_key or not secrets.compare_digest(x_server_key, settings.server_api_key):
        raise UnauthorizedError("Trusted server key required")


def doc_request_service(sf: SessionFactory = Depends(get_session_factory)) -> DocRequestLifecycle:
    return DocRequestLifecycle(sf)


def token_service(sf: SessionFactory = Depends(get_session_factory)) -> TokenAuthority:
    return TokenAuthority(sf)


def upload_service(sf: SessionFactory = Depends(get_session_factory)) -> UploadLifecycle:
    return UploadLifecycle(sf)


def audit_service(sf: SessionFactory = Depends(get_session_factory)) -> AuditTrail:
    return AuditTrail(sf)


def sweeper_service(sf: SessionFactory = Depends(get_session_factory)) -> ExpirationSweeper:
    return ExpirationSweeper(sf)
