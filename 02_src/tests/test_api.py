"""Tests for the HTTP API."""

from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from conftest import FakeDelivery, FakeExporter, FakeStore
from enclosure.api import create_fastapi_app
from enclosure.app import Application
from enclosure.errors import BackendError
from enclosure.models import GroupModel


@pytest.fixture
def application(settings):
    return Application(
        settings=settings,
        db_path=":memory:",
        exporter=FakeExporter(fail={"bad"}),
        store=FakeStore(),
        delivery=FakeDelivery(),
    )


@pytest.fixture
def client(application):
    with TestClient(create_fastapi_app(application)) as test_client:
        yield test_client


def batch_body(*local_ids, caption="", grouped=False):
    return {
        "conversation": {"sender_id": "alice", "recipient_id": "bob"},
        "assets": [
            {"local_id": i, "kind": "image", "path": f"{i}.jpg", "width": 10, "height": 20}
            for i in local_ids
        ],
        "caption": caption,
        "grouped": grouped,
    }


class TestBatchesRoute:
    """POST /api/batches."""

    def test_send_batch(self, client):
        response = client.post("/api/batches", json=batch_body("a", "bad", "c", caption="hi"))

        assert response.status_code == 200
        body = response.json()
        assert body["state"] == "done"
        assert body["uploaded"] == 2
        assert body["failed_indices"] == [1]
        assert [m["caption"] for m in body["messages"]] == ["hi", ""]
        assert [m["aspectRatio"] for m in body["messages"]] == ["0.50", "0.50"]
        assert len(body["delivered"]) == 2

    def test_all_failed_batch(self, client):
        response = client.post("/api/batches", json=batch_body("bad"))

        assert response.status_code == 200
        assert response.json()["state"] == "error"

    def test_mixed_batch_rejected(self, client):
        body = batch_body("a")
        body["assets"].append({"local_id": "v", "kind": "video", "path": "v.mp4"})

        response = client.post("/api/batches", json=body)

        assert response.status_code == 400

    def test_empty_assets_rejected(self, client):
        response = client.post("/api/batches", json=batch_body())

        assert response.status_code == 422

    def test_share(self, client):
        body = batch_body("a")
        body["recipients"] = [
            {"sender_id": "alice", "recipient_id": "bob"},
            {"kind": "group", "sender_id": "alice", "recipient_id": "g1"},
        ]
        del body["conversation"]

        response = client.post("/api/share", json=body)

        assert response.status_code == 200
        assert [r["recipient_id"] for r in response.json()] == ["bob", "g1"]
        assert all(r["success"] for r in response.json())

    def test_document_batch(self, client, settings):
        (settings.upload_root / "minutes.pdf").write_bytes(b"%PDF-1.4 minutes")
        body = batch_body(caption="notes")
        body["assets"] = [{"local_id": "d", "kind": "document", "path": "minutes.pdf"}]

        response = client.post("/api/batches", json=body)

        assert response.status_code == 200
        message = response.json()["messages"][0]
        assert message["dataType"] == "doc"
        assert message["docSize"] == "16"
        assert message["fileName"] == "minutes.pdf"
        assert message["caption"] == "notes"


class TestUploadRoot:
    """Asset paths must stay inside the configured upload root."""

    @pytest.mark.parametrize("path", ["/etc/passwd", "../outside.jpg", "sub/../../x.jpg"])
    def test_paths_outside_root_rejected(self, client, application, path):
        body = batch_body("a")
        body["assets"][0]["path"] = path

        response = client.post("/api/batches", json=body)

        assert response.status_code == 400
        assert "outside the upload directory" in response.json()["detail"]
        assert application.content_store.objects == {}

    def test_thumbnail_outside_root_rejected(self, client):
        body = batch_body()
        body["assets"] = [
            {"local_id": "v", "kind": "video", "path": "v.mp4", "thumbnail_path": "/etc/hosts"}
        ]

        response = client.post("/api/batches", json=body)

        assert response.status_code == 400

    def test_share_rejects_outside_root(self, client):
        body = batch_body("a")
        body["assets"][0]["path"] = "/etc/passwd"
        body["recipients"] = [{"sender_id": "alice", "recipient_id": "bob"}]
        del body["conversation"]

        response = client.post("/api/share", json=body)

        assert response.status_code == 400

    def test_absolute_path_inside_root_accepted(self, client, settings):
        body = batch_body("a")
        body["assets"][0]["path"] = str(settings.upload_root / "a.jpg")

        response = client.post("/api/batches", json=body)

        assert response.status_code == 200


class TestObservabilityRoutes:
    """Trace events and pending messages."""

    def test_trace_events_after_send(self, client):
        client.post("/api/batches", json=batch_body("a"))

        response = client.get("/api/trace-events", params={"event_type": "batch_joined"})

        assert response.status_code == 200
        events = response.json()
        assert len(events) == 1
        assert events[0]["actor"] == "upload_pipeline"

    def test_bad_after_timestamp(self, client):
        response = client.get("/api/trace-events", params={"after": "yesterday"})

        assert response.status_code == 400

    def test_pending_empty_after_delivery(self, client):
        client.post("/api/batches", json=batch_body("a"))

        response = client.get("/api/pending/bob")

        assert response.status_code == 200
        assert response.json() == []

    def test_failed_messages_listed_and_purged(self, client, application):
        application.delivery.fail_all = True
        client.post("/api/batches", json=batch_body("a", "b"))

        failed = client.get("/api/failed/bob").json()
        assert len(failed) == 2
        assert client.get("/api/pending/bob").json() == []

        response = client.delete("/api/failed/bob")

        assert response.json() == {"removed": 2}
        assert client.get("/api/failed/bob").json() == []


class TestGroupsRoute:
    """Identity lookups."""

    def test_group_details(self, client, application):
        application.backend.fetch_group_details = AsyncMock(
            return_value=GroupModel(group_id="g1", name="Hikers")
        )

        response = client.get("/api/groups/g1", params={"uid": "alice"})

        assert response.status_code == 200
        assert response.json()["name"] == "Hikers"
        application.backend.fetch_group_details.assert_awaited_once_with("g1", "alice")

    def test_backend_error_is_bad_gateway(self, client, application):
        application.backend.fetch_active_contacts = AsyncMock(
            side_effect=BackendError("down", error_code=500)
        )

        response = client.get("/api/contacts/alice")

        assert response.status_code == 502
        assert response.json()["detail"] == "down"


class TestControlRoute:
    """POST /api/control/reset."""

    def test_reset(self, client):
        client.post("/api/batches", json=batch_body("a"))

        response = client.post("/api/control/reset")

        assert response.status_code == 200
        assert response.json() == {"status": "ok"}
        assert client.get("/api/trace-events").json() == []

    def test_health(self, client):
        response = client.get("/api/control/health")

        assert response.status_code == 200
        assert response.json()["content_store"] == "FakeStore"
