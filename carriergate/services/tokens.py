"""Token authority — issues and resolves single-use carrier access tokens.

The hash format is compatibility-bearing and must never change:
``token_hash = lower(hex(sha256(utf8(raw_token))))`` with no salt or HMAC.
The raw token carries 256 bits of randomness, which is the security margin.
Only the hash is stored; the raw value is handed out exactly once.
"""


import base64
import hashlib
import logging
import secrets
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from carriergate.core.config import settings
from carriergate.core.exceptions import (
    NotFoundError,
    RequestClosedError,
    TokenAlreadyUsedError,
    TokenExpiredError,
    TokenRevokedError,
)
from carriergate.db.base import run_in_transaction, unit_of_work
from carriergate.domain.mixins import as_utc, utcnow
from carriergate.domain.status import CLOSED_REQUEST_STATUSES, DocRequestStatus
from carriergate.repositories.doc_request import DocRequestRepository
from carriergate.repositories.token import DocRequestTokenRepository
from carriergate.schemas.doc_request import DocRequestView

logger = logging.getLogger(__name__)


def generate_raw_token(num_bytes: int | None = None) -> str:
    """Random bytes as base64url text without padding (43 chars for 32 bytes)."""
    raw = secrets.token_bytes(num_bytes or settings.token_bytes)
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def hash_token(raw_token: str) -> str:
    return hashlib.sha256(raw_token.encode("utf-8")).hexdigest()


class TokenAuthority:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    # ------------------------------------------------------------------
    # Issue
    # ------------------------------------------------------------------

    async def issue(
        self, session: AsyncSession, doc_request_id: str, expires_at: datetime
    ) -> tuple[str, str]:
        """Persist a new token inside the caller's transaction.

        Returns ``(raw_token, token_hash)``. Joining the caller's session is
        what makes request creation and token issuance one atomic unit.
        """
        raw_token = generate_raw_token()
        token_hash = hash_token(raw_token)
        await DocRequestTokenRepository(session).create(
            doc_request_id=doc_request_id,
            token_hash=token_hash,
            expires_at=expires_at,
        )
        return raw_token, token_hash

    # ------------------------------------------------------------------
    # Resolve (single use)
    # ------------------------------------------------------------------

    async def resolve(self, raw_token: str) -> DocRequestView:
        token_hash = hash_token(raw_token)

        async with unit_of_work(self._session_factory) as session:
            tokens = DocRequestTokenRepository(session)
            token = await tokens.get_by_hash(token_hash)
            if token is None:
                raise NotFoundError("Token")
            if token.is_revoked:
                raise TokenRevokedError(token.id)
            if token.used_at is not None:
                raise TokenAlreadyUsedError(token.id)

            now = utcnow()
            if now >= as_utc(token.expires_at):
                raise TokenExpiredError(token.id)

            doc_request = await DocRequestRepository(session).get_by_id(
                token.doc_request_id, for_update=True
            )
            if doc_request is None:
                raise NotFoundError("DocRequest", token.doc_request_id)
            if doc_request.status in CLOSED_REQUEST_STATUSES:
                raise RequestClosedError(doc_request.id, doc_request.status.value)

            if not await tokens.claim(token.id, now):
                # Someone else resolved or revoked it between our read and write
                current = await tokens.get_by_id(token.id)
                if current is not None and current.is_revoked:
                    raise TokenRevokedError(token.id)
                raise TokenAlreadyUsedError(token.id)

            logger.info("Token %s resolved for doc request %s", token.id, doc_request.id)
            return DocRequestView(
                doc_request_id=doc_request.id,
                broker_org_id=doc_request.broker_org_id,
                carrier_org_id=doc_request.carrier_org_id,
                verification_id=doc_request.verification_id,
                required_docs=doc_request.required_docs,
                status=doc_request.status,
                expires_at=doc_request.expires_at,
                submitted_at=doc_request.submitted_at,
                created_at=doc_request.created_at,
                token_id=token.id,
                token_expires_at=token.expires_at,
                token_used_at=now,
            )

    # ------------------------------------------------------------------
    # Broker escape hatches
    # ------------------------------------------------------------------

    async def revoke(self, doc_request_id: str) -> int:
        """Revoke every outstanding token of a request. Returns how many changed."""
        async with unit_of_work(self._session_factory) as session:
            if await DocRequestRepository(session).get_by_id(doc_request_id) is None:
                raise NotFoundError("DocRequest", doc_request_id)
            count = await DocRequestTokenRepository(session).revoke_for_request(doc_request_id)

        logger.info("Revoked %d token(s) for doc request %s", count, doc_request_id)
        return count

    async def reissue(self, doc_request_id: str) -> tuple[str, datetime]:
        """Supersede the current token with a new one bound to the same expiry."""

        async def work(session: AsyncSession) -> tuple[str, datetime]:
            doc_request = await DocRequestRepository(session).get_by_id(
                doc_request_id, for_update=True
            )
            if doc_request is None:
                raise NotFoundError("DocRequest", doc_request_id)
            if doc_request.status != DocRequestStatus.OPEN:
                raise RequestClosedError(doc_request_id, doc_request.status.value)

            expires_at = as_utc(doc_request.expires_at)
            if utcnow() >= expires_at:
                raise TokenExpiredError(message="Document request has passed its expiry")

            await DocRequestTokenRepository(session).revoke_for_request(doc_request_id)
            raw_token, _ = await self.issue(session, doc_request_id, expires_at)
            return raw_token, expires_at

        raw_token, expires_at = await run_in_transaction(
            self._session_factory, work, operation="reissue_token"
        )
        logger.info("Reissued token for doc request %s", doc_request_id)
        return raw_token, expires_at
