"""SQLAlchemy ORM model for the upload audit trail."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Enum, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from carriergate.db.base import Base
from carriergate.domain.mixins import utcnow
from carriergate.domain.status import ActorType, UploadEventType


class UploadEvent(Base):
    __tablename__ = "upload_events"

    # Integer key doubles as insertion order for events sharing a created_at
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    upload_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("uploads.id", ondelete="CASCADE"), nullable=False, index=True
    )

    # What
    event_type: Mapped[UploadEventType] = mapped_column(
        Enum(UploadEventType, name="upload_event_type"), nullable=False
    )
    note: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Who (actor_id stays NULL until callers are authenticated)
    actor_type: Mapped[ActorType] = mapped_column(
        Enum(ActorType, name="actor_type"), nullable=False
    )
    actor_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)

    # When (no updated_at — audit rows are immutable)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
        index=True,
    )

    upload: Mapped["Upload"] = relationship(back_populates="events", lazy="raise")
