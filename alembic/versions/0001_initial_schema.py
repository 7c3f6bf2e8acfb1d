"""Initial schema: doc requests, tokens, uploads and the upload event ledger.

Revision ID: 0001
Revises:
Create Date: 2026-10-16
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

doc_request_status = sa.Enum(
    "OPEN", "SUBMITTED", "EXPIRED", "CANCELED", name="doc_request_status",
)
upload_status = sa.Enum(
    "RECEIVED", "QUARANTINED", "ACCEPTED", "REJECTED", name="upload_status",
)
upload_event_type = sa.Enum(
    "CREATED", "FILE_UPLOADED", "STATUS_CHANGED", "NOTE_ADDED", name="upload_event_type",
)
actor_type = sa.Enum("BROKER", "CARRIER", "SYSTEM", "API", name="actor_type")


def upgrade() -> None:
    # ── doc_requests ──
    op.create_table(
        "doc_requests",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("broker_org_id", sa.String(36), nullable=False),
        sa.Column("carrier_org_id", sa.String(36)),
        sa.Column("verification_id", sa.String(36), nullable=False),
        sa.Column("required_docs", sa.JSON, nullable=False),
        sa.Column("status", doc_request_status, nullable=False, server_default="OPEN"),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("submitted_at", sa.DateTime(timezone=True)),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_doc_requests_broker_org_id", "doc_requests", ["broker_org_id"])
    op.create_index("ix_doc_requests_status", "doc_requests", ["status"])
    op.create_index("ix_doc_requests_expires_at", "doc_requests", ["expires_at"])

    # ── doc_request_tokens ──
    op.create_table(
        "doc_request_tokens",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "doc_request_id", sa.String(36),
            sa.ForeignKey("doc_requests.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("token_hash", sa.String(64), nullable=False, unique=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("used_at", sa.DateTime(timezone=True)),
        sa.Column("is_revoked", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_doc_request_tokens_doc_request_id", "doc_request_tokens", ["doc_request_id"])

    # ── uploads ──
    op.create_table(
        "uploads",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "doc_request_id", sa.String(36),
            sa.ForeignKey("doc_requests.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("doc_type", sa.String(100), nullable=False),
        sa.Column("storage_bucket", sa.String(255), nullable=False),
        sa.Column("storage_path", sa.String(1024), nullable=False),
        sa.Column("file_name", sa.String(255)),
        sa.Column("content_type", sa.String(255)),
        sa.Column("byte_size", sa.BigInteger),
        sa.Column("sha256", sa.String(64)),
        sa.Column("status", upload_status, nullable=False, server_default="RECEIVED"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("doc_request_id", "doc_type", name="uploads_doc_request_doc_type_key"),
    )
    op.create_index("ix_uploads_doc_request_id", "uploads", ["doc_request_id"])

    # ── upload_events (append-only) ──
    op.create_table(
        "upload_events",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "upload_id", sa.String(36),
            sa.ForeignKey("uploads.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("event_type", upload_event_type, nullable=False),
        sa.Column("note", sa.Text),
        sa.Column("actor_type", actor_type, nullable=False),
        sa.Column("actor_id", sa.String(36)),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_upload_events_upload_id", "upload_events", ["upload_id"])
    op.create_index("ix_upload_events_created_at", "upload_events", ["created_at"])


def downgrade() -> None:
    op.drop_table("upload_events")
    op.drop_table("uploads")
    op.drop_table("doc_request_tokens")
    op.drop_table("doc_requests")

    bind = op.get_bind()
    for enum_type in (actor_type, upload_event_type, upload_status, doc_request_status):
        enum_type.drop(bind, checkfirst=True)
