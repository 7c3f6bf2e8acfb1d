"""SQLAlchemy ORM model for broker document requests.

This is the REFERENCE module showing the pattern for all domain models:
  - Inherit Base, UUIDPrimaryKeyMixin, TimestampMixin
  - Statuses are closed enums from ``carriergate.domain.status``
  - Rows are never deleted; children cascade only if a row is removed elsewhere
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, List, Optional

from sqlalchemy import DateTime, Enum, JSON, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from carriergate.db.base import Base
from carriergate.domain.mixins import TimestampMixin, UUIDPrimaryKeyMixin
from carriergate.domain.status import DocRequestStatus


class DocRequest(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    __tablename__ = "doc_requests"

    broker_org_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    carrier_org_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    verification_id: Mapped[str] = mapped_column(String(36), nullable=False)

    # [{"doc_type": "cab_card", "required": true}, ...] validated at ingestion
    required_docs: Mapped[List[dict[str, Any]]] = mapped_column(JSON, nullable=False)

    status: Mapped[DocRequestStatus] = mapped_column(
        Enum(DocRequestStatus, name="doc_request_status"),
        default=DocRequestStatus.OPEN,
        nullable=False,
        index=True,
    )
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, index=True
    )
    submitted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    tokens: Mapped[List["DocRequestToken"]] = relationship(
        back_populates="doc_request", lazy="raise", cascade="all, delete-orphan"
    )
    uploads: Mapped[List["Upload"]] = relationship(
        back_populates="doc_request", lazy="raise", cascade="all, delete-orphan"
    )

    @property
    def required_doc_types(self) -> list[str]:
        """doc_type values that must have an upload before submission, in list order."""
        return [d["doc_type"] for d in self.required_docs if d.get("required", True)]
