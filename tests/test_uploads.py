"""Upload registration, broker decisions and the audit trail."""

import asyncio

import pytest

from carriergate.core.config import settings
from carriergate.core.exceptions import (
    ConflictError,
    InvalidInputError,
    InvalidTransitionError,
    NotFoundError,
    ReplaceDeniedError,
    RequestClosedError,
)
from carriergate.domain.status import ActorType, DocRequestStatus, UploadEventType, UploadStatus
from carriergate.repositories.upload import UploadRepository
from carriergate.services.uploads import CREATED_NOTE, REPLACED_NOTE
from tests.conftest import SHA_B, backdate_request, file_meta, storage


class TestRegister:
    async def test_first_file_creates_upload(self, uploads, audit, open_request):
        doc_request_id, _, _ = await open_request()

        upload_id = await uploads.register(
            doc_request_id, "cab_card", file_meta(), storage(), actor_id="carrier-user",
        )

        upload = await uploads.get(upload_id)
        assert upload.status == UploadStatus.RECEIVED
        assert upload.doc_type == "cab_card"
        assert upload.storage_bucket == "carrier-docs"
        assert upload.byte_size == 1024

        events = await audit.history(upload_id)
        assert [(e.event_type, e.actor_type, e.note) for e in events] == [
            (UploadEventType.CREATED, ActorType.CARRIER, CREATED_NOTE),
        ]
        assert events[0].actor_id == "carrier-user"

    async def test_second_file_replaces_received_upload(self, uploads, audit, open_request):
        doc_request_id, _, _ = await open_request()
        first_id = await uploads.register(doc_request_id, "cab_card", file_meta(), storage())

        second_id = await uploads.register(
            doc_request_id, "cab_card",
            file_meta("cab_card_v2.pdf", sha256=SHA_B, size=2048),
            storage("broker-1/cab_card_v2.pdf"),
        )

        assert second_id == first_id
        current = await uploads.list_for_request(doc_request_id)
        assert len(current) == 1
        assert current[0].file_name == "cab_card_v2.pdf"
        assert current[0].sha256 == SHA_B
        assert current[0].storage_path == "broker-1/cab_card_v2.pdf"
        assert current[0].status == UploadStatus.RECEIVED

        events = await audit.history(first_id)
        assert [e.event_type for e in events] == [
            UploadEventType.CREATED, UploadEventType.FILE_UPLOADED,
        ]
        assert events[1].note == REPLACED_NOTE
        assert events[1].actor_type == ActorType.CARRIER

    @pytest.mark.parametrize(
        "decided", [UploadStatus.ACCEPTED, UploadStatus.REJECTED, UploadStatus.QUARANTINED]
    )
    async def test_decided_upload_cannot_be_replaced(self, uploads, open_request, decided):
        doc_request_id, _, _ = await open_request()
        upload_id = await uploads.register(doc_request_id, "coi", file_meta(), storage())
        await uploads.decide(upload_id, decided)

        with pytest.raises(ReplaceDeniedError):
            await uploads.register(doc_request_id, "coi", file_meta(sha256=SHA_B), storage())

        upload = await uploads.get(upload_id)
        assert upload.status == decided
        assert upload.sha256 == file_meta().sha256

    async def test_unknown_request(self, uploads):
        with pytest.raises(NotFoundError):
            await uploads.register("missing", "coi", file_meta(), storage())

    async def test_blank_doc_type(self, uploads, open_request):
        doc_request_id, _, _ = await open_request()
        with pytest.raises(InvalidInputError):
            await uploads.register(doc_request_id, "  ", file_meta(), storage())

    async def test_canceled_request_is_closed(self, uploads, doc_requests, open_request):
        doc_request_id, _, _ = await open_request()
        await doc_requests.cancel(doc_request_id)

        with pytest.raises(RequestClosedError):
            await uploads.register(doc_request_id, "coi", file_meta(), storage())

    async def test_expired_request_is_closed(self, uploads, sweeper, open_request, session_factory):
        doc_request_id, _, _ = await open_request()
        await backdate_request(session_factory, doc_request_id)
        await sweeper.run()

        with pytest.raises(RequestClosedError):
            await uploads.register(doc_request_id, "coi", file_meta(), storage())
        assert await uploads.list_for_request(doc_request_id) == []

    async def test_concurrent_register_keeps_one_row(self, uploads, audit, open_request):
        doc_request_id, _, _ = await open_request()

        ids = await asyncio.gather(
            uploads.register(doc_request_id, "coi", file_meta(), storage("a/coi.pdf")),
            uploads.register(doc_request_id, "coi", file_meta(sha256=SHA_B), storage("b/coi.pdf")),
        )

        assert ids[0] == ids[1]
        current = await uploads.list_for_request(doc_request_id)
        assert len(current) == 1

        events = await audit.history(ids[0])
        assert [e.event_type for e in events] == [
            UploadEventType.CREATED, UploadEventType.FILE_UPLOADED,
        ]


class TestDecide:
    async def test_accept_then_reject(self, uploads, audit, open_request):
        doc_request_id, _, _ = await open_request()
        upload_id = await uploads.register(doc_request_id, "cab_card", file_meta(), storage())

        upload = await uploads.decide(upload_id, UploadStatus.ACCEPTED, actor_id="broker-user")
        assert upload.status == UploadStatus.ACCEPTED

        with pytest.raises(InvalidTransitionError):
            await uploads.decide(upload_id, UploadStatus.REJECTED)

        events = await audit.history(upload_id)
        assert [e.event_type for e in events] == [
            UploadEventType.CREATED, UploadEventType.STATUS_CHANGED,
        ]
        change = events[1]
        assert change.actor_type == ActorType.BROKER
        assert change.actor_id == "broker-user"
        assert change.note == "Status changed from RECEIVED to ACCEPTED"

    async def test_quarantine_then_accept(self, uploads, audit, open_request):
        doc_request_id, _, _ = await open_request()
        upload_id = await uploads.register(doc_request_id, "coi", file_meta(), storage())

        await uploads.decide(upload_id, "QUARANTINED", note="Virus scan pending")
        upload = await uploads.decide(upload_id, UploadStatus.ACCEPTED)

        assert upload.status == UploadStatus.ACCEPTED
        notes = [e.note for e in await audit.history(upload_id)]
        assert notes == [
            CREATED_NOTE,
            "Virus scan pending",
            "Status changed from QUARANTINED to ACCEPTED",
        ]

    async def test_cannot_go_back_to_received(self, uploads, open_request):
        doc_request_id, _, _ = await open_request()
        upload_id = await uploads.register(doc_request_id, "coi", file_meta(), storage())

        with pytest.raises(InvalidTransitionError):
            await uploads.decide(upload_id, UploadStatus.RECEIVED)

    async def test_unknown_status(self, uploads, open_request):
        doc_request_id, _, _ = await open_request()
        upload_id = await uploads.register(doc_request_id, "coi", file_meta(), storage())

        with pytest.raises(InvalidInputError):
            await uploads.decide(upload_id, "APPROVED")

    async def test_unknown_upload(self, uploads):
        with pytest.raises(NotFoundError):
            await uploads.decide("missing", UploadStatus.ACCEPTED)

    async def test_failed_decision_writes_no_event(self, uploads, audit, open_request):
        doc_request_id, _, _ = await open_request()
        upload_id = await uploads.register(doc_request_id, "coi", file_meta(), storage())
        await uploads.decide(upload_id, UploadStatus.REJECTED)

        with pytest.raises(InvalidTransitionError):
            await uploads.decide(upload_id, UploadStatus.ACCEPTED)

        assert len(await audit.history(upload_id)) == 2


class TestAuditTrail:
    async def test_add_note(self, uploads, audit, open_request):
        doc_request_id, _, _ = await open_request()
        upload_id = await uploads.register(doc_request_id, "coi", file_meta(), storage())

        event = await audit.add_note(upload_id, "  Called carrier  ", ActorType.BROKER, "b-1")

        assert event.event_type == UploadEventType.NOTE_ADDED
        assert event.note == "Called carrier"
        upload = await uploads.get(upload_id)
        assert upload.status == UploadStatus.RECEIVED

    async def test_blank_note(self, uploads, audit, open_request):
        doc_request_id, _, _ = await open_request()
        upload_id = await uploads.register(doc_request_id, "coi", file_meta(), storage())

        with pytest.raises(InvalidInputError):
            await audit.add_note(upload_id, "   ", ActorType.BROKER)

    async def test_note_on_unknown_upload(self, audit):
        with pytest.raises(NotFoundError):
            await audit.add_note("missing", "hello", ActorType.SYSTEM)

    async def test_history_is_in_insertion_order(self, uploads, audit, open_request):
        doc_request_id, _, _ = await open_request()
        upload_id = await uploads.register(doc_request_id, "coi", file_meta(), storage())
        for i in range(5):
            await audit.add_note(upload_id, f"note {i}", ActorType.API)

        events = await audit.history(upload_id)
        assert [e.note for e in events] == [CREATED_NOTE] + [f"note {i}" for i in range(5)]
        assert [e.id for e in events] == sorted(e.id for e in events)

    async def test_history_of_unknown_upload(self, audit):
        with pytest.raises(NotFoundError):
            await audit.history("missing")


class TestRegisterIsolation:
    async def test_cancel_waits_for_register_in_flight(
        self, uploads, doc_requests, open_request, monkeypatch
    ):
        doc_request_id, _, _ = await open_request()
        timeline = []
        request_checked = asyncio.Event()
        real_lookup = UploadRepository.get_for_doc_type

        async def slow_lookup(self, *args, **kwargs):
            # register has already seen the request as OPEN at this point
            request_checked.set()
            await asyncio.sleep(0.2)
            timeline.append("upload written")
            return await real_lookup(self, *args, **kwargs)

        monkeypatch.setattr(UploadRepository, "get_for_doc_type", slow_lookup)

        async def cancel_after_check():
            await request_checked.wait()
            canceled = await doc_requests.cancel(doc_request_id)
            timeline.append("canceled")
            return canceled

        upload_id, canceled = await asyncio.gather(
            uploads.register(doc_request_id, "coi", file_meta(), storage()),
            cancel_after_check(),
        )

        assert timeline == ["upload written", "canceled"]
        assert canceled.status == DocRequestStatus.CANCELED
        upload = await uploads.get(upload_id)
        assert upload.created_at <= canceled.updated_at


class TestDecideRetries:
    async def test_lost_race_is_re_evaluated(self, uploads, audit, open_request, monkeypatch):
        doc_request_id, _, _ = await open_request()
        upload_id = await uploads.register(doc_request_id, "coi", file_meta(), storage())

        real_transition = UploadRepository.transition
        real_get = UploadRepository.get_by_id
        state = {"transitions": 0, "raced": False}

        async def transition(self, *args, **kwargs):
            state["transitions"] += 1
            if state["transitions"] == 1:
                return False
            return await real_transition(self, *args, **kwargs)

        async def get_by_id(self, entity_id, **kwargs):
            # Between the failed attempt and the retry another broker rejects the file
            if state["transitions"] == 1 and not state["raced"]:
                state["raced"] = True
                await uploads.decide(upload_id, UploadStatus.REJECTED)
            return await real_get(self, entity_id, **kwargs)

        monkeypatch.setattr(UploadRepository, "transition", transition)
        monkeypatch.setattr(UploadRepository, "get_by_id", get_by_id)

        with pytest.raises(InvalidTransitionError) as exc_info:
            await uploads.decide(upload_id, UploadStatus.ACCEPTED)
        assert exc_info.value.details["current"] == "REJECTED"

        assert (await uploads.get(upload_id)).status == UploadStatus.REJECTED
        events = await audit.history(upload_id)
        assert [e.event_type for e in events] == [
            UploadEventType.CREATED, UploadEventType.STATUS_CHANGED,
        ]
        assert events[1].note == "Status changed from RECEIVED to REJECTED"

    async def test_retry_succeeds_after_one_stale_write(self, uploads, audit, open_request, monkeypatch):
        doc_request_id, _, _ = await open_request()
        upload_id = await uploads.register(doc_request_id, "coi", file_meta(), storage())

        real_transition = UploadRepository.transition
        calls = {"n": 0}

        async def transition(self, *args, **kwargs):
            calls["n"] += 1
            if calls["n"] == 1:
                return False
            return await real_transition(self, *args, **kwargs)

        monkeypatch.setattr(UploadRepository, "transition", transition)

        upload = await uploads.decide(upload_id, UploadStatus.ACCEPTED)

        assert upload.status == UploadStatus.ACCEPTED
        assert calls["n"] == 2
        events = await audit.history(upload_id)
        assert [e.event_type for e in events].count(UploadEventType.STATUS_CHANGED) == 1

    async def test_conflict_when_every_attempt_is_stale(self, uploads, audit, open_request, monkeypatch):
        doc_request_id, _, _ = await open_request()
        upload_id = await uploads.register(doc_request_id, "coi", file_meta(), storage())
        calls = {"n": 0}

        async def always_stale(self, *args, **kwargs):
            calls["n"] += 1
            return False

        monkeypatch.setattr(UploadRepository, "transition", always_stale)

        with pytest.raises(ConflictError) as exc_info:
            await uploads.decide(upload_id, UploadStatus.ACCEPTED)

        assert calls["n"] == settings.max_write_attempts
        assert exc_info.value.details == {
            "operation": "decide_upload", "attempts": settings.max_write_attempts,
        }
        assert (await uploads.get(upload_id)).status == UploadStatus.RECEIVED
        assert [e.event_type for e in await audit.history(upload_id)] == [UploadEventType.CREATED]
