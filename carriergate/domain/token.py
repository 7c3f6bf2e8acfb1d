"""SQLAlchemy ORM model for single-use carrier access tokens."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from carriergate.db.base import Base
from carriergate.domain.mixins import UUIDPrimaryKeyMixin, utcnow


class DocRequestToken(Base, UUIDPrimaryKeyMixin):
    __tablename__ = "doc_request_tokens"

    doc_request_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("doc_requests.id", ondelete="CASCADE"), nullable=False, index=True
    )
    # Lowercase hex SHA-256 of the raw token; the raw secret is never stored
    token_hash: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)

    # Expiry and usage
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    used_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    is_revoked: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )

    doc_request: Mapped["DocRequest"] = relationship(back_populates="tokens", lazy="raise")
