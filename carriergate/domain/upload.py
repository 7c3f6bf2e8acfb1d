"""SQLAlchemy ORM model for the current upload of one document type."""

from __future__ import annotations

from typing import List, Optional

from sqlalchemy import BigInteger, Enum, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from carriergate.db.base import Base
from carriergate.domain.mixins import TimestampMixin, UUIDPrimaryKeyMixin
from carriergate.domain.status import UploadStatus


class Upload(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """At most one row per (doc_request_id, doc_type); later files replace it in place."""

    __tablename__ = "uploads"
    __table_args__ = (
        UniqueConstraint("doc_request_id", "doc_type", name="uploads_doc_request_doc_type_key"),
    )

    doc_request_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("doc_requests.id", ondelete="CASCADE"), nullable=False, index=True
    )
    doc_type: Mapped[str] = mapped_column(String(100), nullable=False)

    # Object storage reference (opaque, never interpreted here)
    storage_bucket: Mapped[str] = mapped_column(String(255), nullable=False)
    storage_path: Mapped[str] = mapped_column(String(1024), nullable=False)

    file_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    content_type: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    byte_size: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    sha256: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    status: Mapped[UploadStatus] = mapped_column(
        Enum(UploadStatus, name="upload_status"),
        default=UploadStatus.RECEIVED,
        nullable=False,
    )

    doc_request: Mapped["DocRequest"] = relationship(back_populates="uploads", lazy="raise")
    events: Mapped[List["UploadEvent"]] = relationship(
        back_populates="upload", lazy="raise", cascade="all, delete-orphan"
    )
