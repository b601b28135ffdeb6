"""HTTP tests for the sync and attachment endpoints."""

import uuid
from datetime import timedelta

import pytest
from sqlalchemy import select

from siteguard.api.v1.sync import push_rate_limit
from siteguard.core.security import create_access_token
from siteguard.models.enums import SyncOperationStatus
from siteguard.models.site import Inspection
from siteguard.models.sync import SyncOperation


def bearer(user):
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


def inspection_op(site, op_id, **extra):
    return {
        "opId": op_id,
        "opType": "create",
        "entity": "Inspection",
        "payload": {"opId": op_id, "siteId": str(site.id)},
        "localId": f"local-{op_id}",
        "timestamp": "2025-10-27T11:59:00Z",
        **extra,
    }


# --- Authentication ---

class TestAuthentication:
    async def test_requests_without_credentials_are_rejected(self, client, seeded):
        resp = await client.get("/api/v1/sync/status")
        assert resp.status_code == 401
        assert resp.json()["success"] is False
        assert resp.json()["error"]["code"] == "HTTP_401"

    async def test_api_key_header(self, client, seeded):
        resp = await client.get(
            "/api/v1/sync/status", headers={"X-API-Key": seeded["supervisor"].api_key},
        )
        assert resp.status_code == 200

    async def test_bearer_token(self, client, seeded):
        resp = await client.get("/api/v1/sync/status", headers=bearer(seeded["worker"]))
        assert resp.status_code == 200

    async def test_session_cookie(self, client, seeded):
        client.cookies.set("token", create_access_token(seeded["worker"].id))
        resp = await client.get("/api/v1/sync/status")
        assert resp.status_code == 200

    async def test_expired_token(self, client, seeded):
        token = create_access_token(seeded["worker"].id, expires_delta=timedelta(seconds=-5))
        resp = await client.get("/api/v1/sync/status", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 401
        assert "expired" in resp.json()["error"]["message"]

    async def test_unknown_api_key(self, client, seeded):
        resp = await client.get("/api/v1/sync/status", headers={"X-API-Key": "nope"})
        assert resp.status_code == 401


# --- Push ---

class TestPushEndpoint:
    async def test_push_returns_one_result_per_op(self, client, seeded):
        site = seeded["site"]
        resp = await client.post(
            "/api/v1/sync/push",
            json={
                "clientId": "tablet-7",
                "ops": [
                    inspection_op(site, "op-1"),
                    {"opId": "op-2", "opType": "create", "entity": "Bogus", "payload": {}},
                ],
            },
            headers=bearer(seeded["supervisor"]),
        )

        assert resp.status_code == 200
        results = resp.json()["results"]
        assert [r["opId"] for r in results] == ["op-1", "op-2"]
        assert results[0]["status"] == "accepted"
        assert results[0]["version"] == 1
        assert "serverId" in results[0] and "serverTimestamp" in results[0]
        assert results[1] == {"opId": "op-2", "status": "error", "error": "Unknown entity type: Bogus"}

    async def test_accepted_ops_are_committed(self, client, seeded, session_factory):
        resp = await client.post(
            "/api/v1/sync/push",
            json={"clientId": "tablet-7", "ops": [inspection_op(seeded["site"], "op-1")]},
            headers=bearer(seeded["supervisor"]),
        )
        server_id = resp.json()["results"][0]["serverId"]

        async with session_factory() as session:
            inspection = await session.get(Inspection, uuid.UUID(server_id))
        assert inspection.created_by_id == seeded["supervisor"].id

    @pytest.mark.parametrize(
        "body",
        [
            {"ops": []},
            {"clientId": "", "ops": []},
            {"clientId": "tablet-7"},
            {"clientId": "tablet-7", "ops": "not-a-list"},
        ],
    )
    async def test_malformed_envelope_is_a_400(self, client, seeded, body):
        resp = await client.post("/api/v1/sync/push", json=body, headers=bearer(seeded["supervisor"]))
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "VALIDATION_ERROR"

    async def test_oversized_batch_is_rejected(self, client, seeded):
        ops = [inspection_op(seeded["site"], f"op-{n}") for n in range(101)]
        resp = await client.post(
            "/api/v1/sync/push", json={"clientId": "tablet-7", "ops": ops}, headers=bearer(seeded["supervisor"]),
        )
        assert resp.status_code == 400

    async def test_push_is_rate_limited_per_user(self, client, seeded, monkeypatch):
        monkeypatch.setattr(push_rate_limit, "max_calls", 2)
        body = {"clientId": "tablet-7", "ops": []}

        for _ in range(2):
            assert (await client.post("/api/v1/sync/push", json=body, headers=bearer(seeded["worker"]))).status_code == 200
        limited = await client.post("/api/v1/sync/push", json=body, headers=bearer(seeded["worker"]))
        other_user = await client.post("/api/v1/sync/push", json=body, headers=bearer(seeded["supervisor"]))

        assert limited.status_code == 429
        assert other_user.status_code == 200

    async def test_request_id_is_echoed(self, client, seeded):
        resp = await client.post(
            "/api/v1/sync/push",
            json={"clientId": "tablet-7", "ops": []},
            headers={**bearer(seeded["worker"]), "X-Request-ID": "req-123"},
        )
        assert resp.headers["X-Request-ID"] == "req-123"


# --- Pull ---

class TestPullEndpoint:
    async def test_pull_round_trip_with_watermark(self, client, seeded):
        headers = bearer(seeded["supervisor"])
        await client.post(
            "/api/v1/sync/push",
            json={"clientId": "tablet-7", "ops": [inspection_op(seeded["site"], "op-1")]},
            headers=headers,
        )

        first = (await client.get("/api/v1/sync/pull", headers=headers)).json()
        assert len(first["inspections"]) == 1
        assert len(first["sites"]) == 1

        second = await client.get("/api/v1/sync/pull", params={"since": first["timestamp"]}, headers=headers)
        assert second.status_code == 200
        body = second.json()
        assert body["inspections"] == [] and body["sites"] == []
        assert body["timestamp"] >= first["timestamp"]

    async def test_invalid_since_is_a_400(self, client, seeded):
        resp = await client.get(
            "/api/v1/sync/pull", params={"since": "yesterday"}, headers=bearer(seeded["worker"]),
        )
        assert resp.status_code == 400


# --- Ack & status ---

class TestAckAndStatus:
    async def test_ack_persists_against_the_ledger(self, client, seeded, session_factory):
        headers = bearer(seeded["supervisor"])
        pushed = (await client.post(
            "/api/v1/sync/push",
            json={"clientId": "tablet-7", "ops": [inspection_op(seeded["site"], "op-1")]},
            headers=headers,
        )).json()["results"][0]

        resp = await client.post(
            "/api/v1/sync/ack",
            json={"acknowledgments": [{"opId": "op-1", "serverId": pushed["serverId"]}]},
            headers=headers,
        )

        assert resp.status_code == 200
        assert resp.json() == {"message": "Acknowledgments received", "count": 1}
        async with session_factory() as session:
            row = (await session.execute(select(SyncOperation))).scalar_one()
        assert row.status == SyncOperationStatus.ACKNOWLEDGED

        status = (await client.get("/api/v1/sync/status", headers=headers)).json()
        assert status["queueStats"] == [{"status": "acknowledged", "count": 1}]
        assert status["health"] == "healthy"

    async def test_ack_requires_acknowledgments(self, client, seeded):
        resp = await client.post("/api/v1/sync/ack", json={}, headers=bearer(seeded["worker"]))
        assert resp.status_code == 400


# --- Attachment upload completion ---

class TestUploadEndpoint:
    async def _placeholder(self, client, seeded):
        resp = await client.post(
            "/api/v1/sync/push",
            json={
                "clientId": "tablet-7",
                "ops": [inspection_op(
                    seeded["site"],
                    "op-1",
                    attachmentsMeta=[{"localAttachmentId": "photo-1", "filename": "harness.jpg", "size": 10}],
                )],
            },
            headers=bearer(seeded["supervisor"]),
        )
        return resp.json()["results"][0]["attachments"][0]

    async def test_upload_completes_placeholder(self, client, seeded):
        placeholder = await self._placeholder(client, seeded)

        resp = await client.post(
            placeholder["uploadUrl"],
            json={"storagePath": "s3://safety/harness.jpg", "checksum": "d41d8cd9"},
            headers=bearer(seeded["supervisor"]),
        )

        assert resp.status_code == 200
        body = resp.json()
        assert body["message"] == "File uploaded successfully"
        assert body["attachment"]["uploaded"] is True
        assert body["attachment"]["storagePath"] == "s3://safety/harness.jpg"

    async def test_second_upload_conflicts(self, client, seeded):
        placeholder = await self._placeholder(client, seeded)
        body = {"storagePath": "s3://safety/harness.jpg"}

        await client.post(placeholder["uploadUrl"], json=body, headers=bearer(seeded["supervisor"]))
        resp = await client.post(placeholder["uploadUrl"], json=body, headers=bearer(seeded["supervisor"]))

        assert resp.status_code == 409
        assert resp.json()["error"]["code"] == "CONFLICT"

    async def test_only_the_creator_may_upload(self, client, seeded):
        placeholder = await self._placeholder(client, seeded)
        resp = await client.post(
            placeholder["uploadUrl"], json={"storagePath": "s3://x"}, headers=bearer(seeded["worker"]),
        )
        assert resp.status_code == 403

    async def test_unknown_attachment_is_a_404(self, client, seeded):
        resp = await client.post(
            f"/api/v1/attachments/upload/{uuid.uuid4()}",
            json={"storagePath": "s3://x"},
            headers=bearer(seeded["worker"]),
        )
        assert resp.status_code == 404
        assert resp.json()["error"]["code"] == "NOT_FOUND"


# --- Health ---

async def test_health_check(client):
    resp = await client.get("/api/health")
    assert resp.status_code == 200
    assert resp.json()["database"]["status"] == "ok"
