"""Domain package — all ORM models are imported here so Alembic autogenerate detects them.

Folder intent:
  doc_request.py  — REFERENCE pattern (broker document requests)
  token.py        — Single-use carrier access tokens
  upload.py       — Current upload per (doc request, doc type)
  audit.py        — Immutable upload event ledger (never updated or deleted)
  status.py       — Closed status enums and transition tables
  mixins.py       — Shared UUIDPrimaryKeyMixin, TimestampMixin
"""

from carriergate.domain.audit import UploadEvent
from carriergate.domain.doc_request import DocRequest
from carriergate.domain.token import DocRequestToken
from carriergate.domain.upload import Upload

__all__ = [
    "DocRequest",
    "DocRequestToken",
    "Upload",
    "UploadEvent",
]
