"""Tests for attachment placeholder reconciliation and upload completion."""

import uuid

import pytest
from sqlalchemy import func, select

from siteguard.core.exceptions import AttachmentReconciliationError, EntityNotFound
from siteguard.models.attachment import Attachment
from siteguard.models.enums import SyncResultStatus
from siteguard.services.attachments import (
    RECONCILE_ERROR,
    AttachmentService,
    pending_storage_path,
    upload_url,
)


@pytest.fixture
def attachments(store):
    return AttachmentService(store)


def test_pending_path_keeps_only_the_basename():
    path = pending_storage_path("../../etc/scaffold photo.jpg")
    assert path.startswith("pending/")
    assert path.endswith("_scaffold photo.jpg")
    assert ".." not in path


def test_pending_paths_are_unique_within_a_millisecond():
    assert len({pending_storage_path("same.jpg") for _ in range(50)}) == 50


def test_upload_url_points_at_the_attachment():
    attachment_id = uuid.uuid4()
    assert upload_url(attachment_id) == f"/api/v1/attachments/upload/{attachment_id}"


class TestReconcile:
    async def test_each_entry_gets_its_own_placeholder(self, attachments, store, supervisor):
        parent = uuid.uuid4()
        results = await attachments.reconcile(
            [
                {"localAttachmentId": "a", "filename": "crack.jpg", "mimeType": "image/jpeg", "size": 100},
                {"localAttachmentId": "b", "filename": "crack.jpg", "mimeType": "image/jpeg", "size": 120},
            ],
            "Incident",
            parent,
            supervisor.id,
        )

        assert [r.local_attachment_id for r in results] == ["a", "b"]
        assert results[0].attachment_id != results[1].attachment_id
        assert results[0].upload_url != results[1].upload_url

        for result in results:
            row = await store.get(Attachment, result.attachment_id)
            assert row.uploaded is False
            assert row.linked_entity == "Incident"
            assert row.linked_id == parent
            assert row.created_by_id == supervisor.id
            assert result.upload_url == upload_url(row.id)

    async def test_missing_mime_type_gets_default(self, attachments, store, supervisor):
        [result] = await attachments.reconcile(
            [{"localAttachmentId": "a", "filename": "notes.bin"}], "Inspection", uuid.uuid4(), supervisor.id,
        )
        row = await store.get(Attachment, result.attachment_id)
        assert row.mime_type == "application/octet-stream"
        assert row.size == 0

    async def test_bad_entry_does_not_affect_siblings(self, attachments, supervisor):
        results = await attachments.reconcile(
            [
                {"localAttachmentId": "good-1", "filename": "a.jpg"},
                {"localAttachmentId": "bad", "size": -1},
                "not-an-object",
                {"localAttachmentId": "good-2", "filename": "b.jpg"},
            ],
            "Inspection",
            uuid.uuid4(),
            supervisor.id,
        )

        assert len(results) == 4
        assert results[0].attachment_id is not None
        assert results[1].error == RECONCILE_ERROR
        assert results[1].local_attachment_id == "bad"
        assert results[2].error == RECONCILE_ERROR
        assert results[3].attachment_id is not None

    async def test_storage_failure_is_reported_per_entry(self, attachments, store, supervisor, monkeypatch):
        original_create = store.create
        calls = {"n": 0}

        async def fail_first(model, **values):
            calls["n"] += 1
            if calls["n"] == 1:
                raise RuntimeError("constraint violated")
            return await original_create(model, **values)

        monkeypatch.setattr(store, "create", fail_first)

        results = await attachments.reconcile(
            [{"localAttachmentId": "x", "filename": "x.jpg"}, {"localAttachmentId": "y", "filename": "y.jpg"}],
            "Incident",
            uuid.uuid4(),
            supervisor.id,
        )
        assert results[0].error == RECONCILE_ERROR
        assert results[1].attachment_id is not None


class TestReconcileThroughPush:
    async def test_results_carry_attachment_outcomes(self, sync_service, site, supervisor):
        [result] = await sync_service.push(
            "tablet-7",
            supervisor.id,
            [{
                "opId": "op-1",
                "opType": "create",
                "entity": "Incident",
                "payload": {"opId": "op-1", "siteId": str(site.id), "type": "fall", "severity": 2},
                "attachmentsMeta": [
                    {"localAttachmentId": "p1", "filename": "ladder.jpg"},
                    {"localAttachmentId": "p2", "filename": "ladder.jpg"},
                ],
            }],
        )

        assert result.status == SyncResultStatus.ACCEPTED
        wire = result.to_wire()
        assert [a["localAttachmentId"] for a in wire["attachments"]] == ["p1", "p2"]
        assert wire["attachments"][0]["uploadUrl"] != wire["attachments"][1]["uploadUrl"]

    async def test_failed_op_creates_no_attachments(self, db, sync_service, supervisor):
        [result] = await sync_service.push(
            "tablet-7",
            supervisor.id,
            [{
                "opId": "op-1",
                "opType": "create",
                "entity": "Incident",
                "payload": {"siteId": str(uuid.uuid4()), "type": "fall", "severity": 2},
                "attachmentsMeta": [{"localAttachmentId": "p1", "filename": "ladder.jpg"}],
            }],
        )
        assert result.status == SyncResultStatus.ERROR
        assert result.attachments is None
        assert (await db.execute(select(func.count()).select_from(Attachment))).scalar_one() == 0


class TestCompleteUpload:
    async def test_marks_placeholder_uploaded(self, attachments, supervisor):
        [placeholder] = await attachments.reconcile(
            [{"localAttachmentId": "a", "filename": "a.jpg"}], "Inspection", uuid.uuid4(), supervisor.id,
        )

        row = await attachments.complete_upload(
            placeholder.attachment_id, storage_path="s3://bucket/a.jpg", checksum="abc123",
        )

        assert row.uploaded is True
        assert row.storage_path == "s3://bucket/a.jpg"
        assert row.checksum == "abc123"

    async def test_uploaded_attachment_is_immutable(self, attachments, supervisor):
        [placeholder] = await attachments.reconcile(
            [{"localAttachmentId": "a", "filename": "a.jpg"}], "Inspection", uuid.uuid4(), supervisor.id,
        )
        await attachments.complete_upload(placeholder.attachment_id, storage_path="s3://bucket/a.jpg", checksum=None)

        with pytest.raises(AttachmentReconciliationError, match="already uploaded"):
            await attachments.complete_upload(
                placeholder.attachment_id, storage_path="s3://bucket/other.jpg", checksum=None,
            )

    async def test_unknown_attachment(self, attachments):
        with pytest.raises(EntityNotFound):
            await attachments.complete_upload(uuid.uuid4(), storage_path="s3://x", checksum=None)
