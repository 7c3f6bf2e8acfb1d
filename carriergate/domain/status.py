"""Closed status enums and their transition tables.

DocRequest:  OPEN → SUBMITTED | CANCELED | EXPIRED,  SUBMITTED → EXPIRED
Upload:      RECEIVED → ACCEPTED | REJECTED | QUARANTINED,
             QUARANTINED → ACCEPTED | REJECTED
EXPIRED, CANCELED, ACCEPTED and REJECTED are terminal.
"""

from __future__ import annotations

import enum


class DocRequestStatus(str, enum.Enum):
    OPEN = "OPEN"
    SUBMITTED = "SUBMITTED"
    EXPIRED = "EXPIRED"
    CANCELED = "CANCELED"


class UploadStatus(str, enum.Enum):
    RECEIVED = "RECEIVED"
    QUARANTINED = "QUARANTINED"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"


class UploadEventType(str, enum.Enum):
    CREATED = "CREATED"
    FILE_UPLOADED = "FILE_UPLOADED"
    STATUS_CHANGED = "STATUS_CHANGED"
    NOTE_ADDED = "NOTE_ADDED"


class ActorType(str, enum.Enum):
    BROKER = "BROKER"
    CARRIER = "CARRIER"
    SYSTEM = "SYSTEM"
    API = "API"


DOC_REQUEST_TRANSITIONS: dict[DocRequestStatus, frozenset[DocRequestStatus]] = {
    DocRequestStatus.OPEN: frozenset({
        DocRequestStatus.SUBMITTED,
        DocRequestStatus.CANCELED,
        DocRequestStatus.EXPIRED,
    }),
    DocRequestStatus.SUBMITTED: frozenset({DocRequestStatus.EXPIRED}),
    DocRequestStatus.EXPIRED: frozenset(),
    DocRequestStatus.CANCELED: frozenset(),
}

UPLOAD_TRANSITIONS: dict[UploadStatus, frozenset[UploadStatus]] = {
    UploadStatus.RECEIVED: frozenset({
        UploadStatus.ACCEPTED,
        UploadStatus.REJECTED,
        UploadStatus.QUARANTINED,
    }),
    UploadStatus.QUARANTINED: frozenset({UploadStatus.ACCEPTED, UploadStatus.REJECTED}),
    UploadStatus.ACCEPTED: frozenset(),
    UploadStatus.REJECTED: frozenset(),
}

# Requests in these states accept no further status change
CLOSED_REQUEST_STATUSES = frozenset({DocRequestStatus.EXPIRED, DocRequestStatus.CANCELED})


def can_transition_request(current: DocRequestStatus, target: DocRequestStatus) -> bool:
    return target in DOC_REQUEST_TRANSITIONS[current]


def can_transition_upload(current: UploadStatus, target: UploadStatus) -> bool:
    return target in UPLOAD_TRANSITIONS[current]


def request_statuses_leading_to(target: DocRequestStatus) -> frozenset[DocRequestStatus]:
    """Statuses from which *target* is reachable in one step.

    >>> sorted(s.value for s in request_statuses_leading_to(DocRequestStatus.EXPIRED))
    ['OPEN', 'SUBMITTED']
    """
    return frozenset(s for s, allowed in DOC_REQUEST_TRANSITIONS.items() if target in allowed)
