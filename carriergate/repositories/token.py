from datetime import datetime

from sqlalchemy import select, update

from carriergate.domain.token import DocRequestToken
from carriergate.repositories.base import BaseRepository


class DocRequestTokenRepository(BaseRepository[DocRequestToken]):
    model = DocRequestToken

    async def get_by_hash(self, token_hash: str) -> DocRequestToken | None:
        result = await self._session.execute(
            select(DocRequestToken)
            .where(DocRequestToken.token_hash == token_hash)
            .execution_options(populate_existing=True)
        )
        return result.scalars().first()

    async def claim(self, token_id: str, now: datetime) -> bool:
        """Set used_at exactly once. Only the first caller to get here sees True."""
        return await self.update_where(
            token_id,
            [DocRequestToken.used_at.is_(None), DocRequestToken.is_revoked.is_(False)],
            used_at=now,
        )

    async def revoke_for_request(self, doc_request_id: str) -> int:
        result = await self._session.execute(
            update(DocRequestToken)
            .where(
                DocRequestToken.doc_request_id == doc_request_id,
                DocRequestToken.is_revoked.is_(False),
            )
            .values(is_revoked=True)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount
