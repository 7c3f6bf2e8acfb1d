"""HTTP surface: envelopes, camelCase payloads, error bodies and the server key gate."""

from carriergate.core.config import settings

API = "/api/v1"

CREATE_BODY = {
    "brokerOrgId": "broker-1",
    "carrierOrgId": "carrier-1",
    "verificationId": "verif-1",
    "requiredDocs": [{"docType": "cab_card"}, {"docType": "coi", "required": False}],
    "ttlMinutes": 30,
}

UPLOAD_BODY = {
    "docType": "cab_card",
    "file": {
        "fileName": "cab_card.pdf",
        "contentType": "application/pdf",
        "byteSize": 2048,
        "sha256": "c" * 64,
    },
    "storage": {"bucket": "carrier-docs", "path": "broker-1/cab_card.pdf"},
}


async def _create(client) -> dict:
    resp = await client.post(f"{API}/doc-requests", json=CREATE_BODY)
    assert resp.status_code == 201
    return resp.json()["data"]


class TestHealth:
    async def test_health(self, client):
        resp = await client.get("/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "ok"


class TestWorkflow:
    async def test_full_round_trip(self, client):
        created = await _create(client)
        assert set(created) == {"docRequestId", "rawToken", "expiresAt"}
        doc_request_id = created["docRequestId"]

        resolved = await client.post(f"{API}/carrier/resolve", json={"token": created["rawToken"]})
        assert resolved.status_code == 200
        view = resolved.json()["data"]
        assert view["docRequestId"] == doc_request_id
        assert view["tokenUsedAt"] is not None
        assert view["requiredDocs"][1] == {"docType": "coi", "required": False}

        registered = await client.post(f"{API}/doc-requests/{doc_request_id}/uploads", json=UPLOAD_BODY)
        assert registered.status_code == 201
        upload_id = registered.json()["data"]["uploadId"]

        decided = await client.post(
            f"{API}/uploads/{upload_id}/decision", json={"status": "ACCEPTED", "note": "Looks good"}
        )
        assert decided.status_code == 200
        assert decided.json()["data"]["status"] == "ACCEPTED"

        note = await client.post(f"{API}/uploads/{upload_id}/notes", json={"note": "Filed"})
        assert note.status_code == 201
        assert note.json()["data"]["eventType"] == "NOTE_ADDED"

        events = (await client.get(f"{API}/uploads/{upload_id}/events")).json()["data"]
        assert [e["eventType"] for e in events] == ["CREATED", "STATUS_CHANGED", "NOTE_ADDED"]
        assert events[1]["actorType"] == "BROKER"

        submitted = await client.post(f"{API}/doc-requests/{doc_request_id}/submit")
        assert submitted.status_code == 200
        body = submitted.json()["data"]
        assert body["status"] == "SUBMITTED"
        assert body["submittedAt"] is not None

        listed = (await client.get(f"{API}/doc-requests/{doc_request_id}/uploads")).json()["data"]
        assert [u["id"] for u in listed] == [upload_id]

    async def test_list_doc_requests(self, client):
        await _create(client)
        await _create(client)

        resp = await client.get(f"{API}/doc-requests", params={"status": "OPEN", "limit": 1})
        assert resp.status_code == 200
        body = resp.json()
        assert len(body["data"]) == 1
        assert body["meta"] == {"total": 2, "page": 1, "limit": 1, "pages": 2}

    async def test_reissue_and_revoke(self, client):
        created = await _create(client)
        doc_request_id = created["docRequestId"]

        reissued = await client.post(f"{API}/doc-requests/{doc_request_id}/token")
        assert reissued.status_code == 200
        new_token = reissued.json()["data"]["rawToken"]
        assert new_token != created["rawToken"]

        revoked = await client.delete(f"{API}/doc-requests/{doc_request_id}/token")
        assert revoked.json()["data"] == {"docRequestId": doc_request_id, "revoked": 1}

        resp = await client.post(f"{API}/carrier/resolve", json={"token": new_token})
        assert resp.status_code == 410
        assert resp.json()["error"]["code"] == "TOKEN_REVOKED"

    async def test_sweep_endpoint(self, client):
        resp = await client.post(f"{API}/maintenance/expire")
        assert resp.status_code == 200
        assert resp.json()["data"] == {"expired": 0}


class TestErrors:
    async def test_unknown_token(self, client):
        resp = await client.post(f"{API}/carrier/resolve", json={"token": "nope"})
        assert resp.status_code == 404
        assert resp.json()["error"]["code"] == "NOT_FOUND"

    async def test_token_used_twice(self, client):
        created = await _create(client)
        await client.post(f"{API}/carrier/resolve", json={"token": created["rawToken"]})

        resp = await client.post(f"{API}/carrier/resolve", json={"token": created["rawToken"]})
        assert resp.status_code == 410
        assert resp.json()["error"]["code"] == "TOKEN_ALREADY_USED"

    async def test_missing_documents(self, client):
        created = await _create(client)

        resp = await client.post(f"{API}/doc-requests/{created['docRequestId']}/submit")
        assert resp.status_code == 409
        error = resp.json()["error"]
        assert error["code"] == "MISSING_DOCUMENTS"
        assert error["details"]["missing"] == ["cab_card"]

    async def test_invalid_transition(self, client):
        created = await _create(client)
        registered = await client.post(
            f"{API}/doc-requests/{created['docRequestId']}/uploads", json=UPLOAD_BODY
        )
        upload_id = registered.json()["data"]["uploadId"]
        await client.post(f"{API}/uploads/{upload_id}/decision", json={"status": "ACCEPTED"})

        resp = await client.post(f"{API}/uploads/{upload_id}/decision", json={"status": "REJECTED"})
        assert resp.status_code == 409
        error = resp.json()["error"]
        assert error["code"] == "INVALID_TRANSITION"
        assert error["details"]["current"] == "ACCEPTED"

    async def test_duplicate_doc_types(self, client):
        body = dict(CREATE_BODY, requiredDocs=[{"docType": "coi"}, {"docType": "coi"}])
        resp = await client.post(f"{API}/doc-requests", json=body)
        assert resp.status_code == 422
        assert resp.json()["error"]["code"] == "INVALID_INPUT"

    async def test_request_validation(self, client):
        resp = await client.post(f"{API}/doc-requests", json={"brokerOrgId": "b"})
        assert resp.status_code == 422
        assert resp.json()["error"]["code"] == "VALIDATION_ERROR"

    async def test_unknown_doc_request(self, client):
        resp = await client.get(f"{API}/doc-requests/missing")
        assert resp.status_code == 404
        assert resp.json()["error"]["details"]["entity"] == "DocRequest"


class TestServerKey:
    async def test_trusted_routes_require_key_when_configured(self, client, monkeypatch):
        monkeypatch.setattr(settings, "server_api_key", "s3cret")

        resp = await client.post(f"{API}/doc-requests", json=CREATE_BODY)
        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "UNAUTHORIZED"

        resp = await client.post(
            f"{API}/doc-requests", json=CREATE_BODY, headers={"X-Server-Key": "wrong"}
        )
        assert resp.status_code == 401

        resp = await client.post(
            f"{API}/doc-requests", json=CREATE_BODY, headers={"X-Server-Key": "s3cret"}
        )
        assert resp.status_code == 201

    async def test_carrier_route_needs_no_key(self, client, monkeypatch):
        monkeypatch.setattr(settings, "server_api_key", "s3cret")

        resp = await client.post(f"{API}/carrier/resolve", json={"token": "nope"})
        assert resp.status_code == 404
