"""Tests for the HTTP delivery service."""

from urllib.parse import parse_qs

import httpx
import pytest

from enclosure.delivery import DeliveryResult, HttpDeliveryService
from enclosure.delivery.service import parse_error_code
from enclosure.models import ChatMessage, DataType


def make_message(**overrides) -> ChatMessage:
    fields = dict(
        id="m1",
        uid="alice",
        receiver_id="bob",
        data_type=DataType.IMAGE.value,
        time="02:07 PM",
        timestamp=1.0,
        document="https://store.test/a.jpg",
        file_extension="jpg",
        caption="hello",
        selection_count="3",
    )
    fields.update(overrides)
    return ChatMessage(**fields)


def service_with(settings, handler) -> tuple[HttpDeliveryService, list[httpx.Request]]:
    requests: list[httpx.Request] = []

    def record(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return handler(request)

    client = httpx.AsyncClient(transport=httpx.MockTransport(record))
    return HttpDeliveryService(settings, client=client), requests


def form_of(request: httpx.Request) -> dict[str, str]:
    return {k: v[0] for k, v in parse_qs(request.content.decode(), keep_blank_values=True).items()}


class TestParseErrorCode:
    """error_code may be an int or a numeric string."""

    @pytest.mark.parametrize(
        "value,expected",
        [(200, 200), ("200", 200), (" 404 ", 404), ("abc", None), (None, None), (True, None)],
    )
    def test_parse(self, value, expected):
        assert parse_error_code(value) == expected


class TestBuildForm:
    """Form fields sent to the chatting endpoints."""

    def test_individual_form(self, settings):
        service = HttpDeliveryService(settings)

        form = service.build_form(make_message(), token="tok")

        assert form["friend_id"] == "bob"
        assert "group_id" not in form
        assert "created_by" not in form
        assert form["model_id"] == "m1"
        assert form["dataType"] == "img"
        assert form["caption"] == "hello"
        assert form["selection_count"] == "3"
        assert form["notification"] == "1"
        assert form["fTokenKey"] == "tok"

    def test_group_form(self, settings):
        service = HttpDeliveryService(settings)

        form = service.build_form(
            make_message(receiver_id="g1", selection_count=None),
            token="tok",
            group=True,
            created_by="alice",
        )

        assert form["group_id"] == "g1"
        assert form["created_by"] == "alice"
        assert form["selection_count"] == "1"


class TestDeliver:
    """Response parsing and transport."""

    async def test_success(self, settings):
        service, requests = service_with(
            settings, lambda r: httpx.Response(200, json={"error_code": 200, "message": "ok"})
        )

        result = await service.deliver(make_message(), token="tok")

        assert result.success
        assert str(requests[0].url) == "https://api.test/create_individual_chatting"
        form = form_of(requests[0])
        assert form["upload_docs"] == "https://store.test/a.jpg"

    async def test_group_endpoint(self, settings):
        service, requests = service_with(
            settings, lambda r: httpx.Response(200, json={"error_code": "200"})
        )

        result = await service.deliver(make_message(), token="tok", group=True, created_by="alice")

        assert result.success
        assert str(requests[0].url) == "https://api.test/create_group_chatting"

    async def test_server_error_message(self, settings):
        service, _ = service_with(
            settings,
            lambda r: httpx.Response(200, json={"error_code": 404, "message": "Receiver not found"}),
        )

        result = await service.deliver(make_message(), token="tok")

        assert not result.success
        assert result.error == "Receiver not found"

    async def test_invalid_json(self, settings):
        service, _ = service_with(settings, lambda r: httpx.Response(200, text="<html>"))

        result = await service.deliver(make_message(), token="tok")

        assert result == DeliveryResult(success=False, error="Invalid response format")

    async def test_network_error(self, settings):
        def fail(request):
            raise httpx.ConnectError("connection refused", request=request)

        service, _ = service_with(settings, fail)

        result = await service.deliver(make_message(), token="tok")

        assert not result.success
        assert "connection refused" in result.error

    async def test_local_file_attached_when_no_document(self, settings, tmp_path):
        path = tmp_path / "clip.mp4"
        path.write_bytes(b"mp4 data")
        service, requests = service_with(
            settings, lambda r: httpx.Response(200, json={"error_code": 200})
        )

        result = await service.deliver(
            make_message(document="", data_type=DataType.VIDEO.value),
            token="tok",
            file_path=str(path),
        )

        assert result.success
        body = requests[0].content
        assert b'name="upload_docs"; filename="clip.mp4"' in body
        assert b"mp4 data" in body

    async def test_oversized_file_not_attached(self, settings, tmp_path):
        settings.max_upload_bytes = 4
        path = tmp_path / "big.mp4"
        path.write_bytes(b"too large")
        service, requests = service_with(
            settings, lambda r: httpx.Response(200, json={"error_code": 200})
        )

        await service.deliver(
            make_message(document=""), token="tok", file_path=str(path)
        )

        assert form_of(requests[0])["upload_docs"] == ""
