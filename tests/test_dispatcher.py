"""Push dispatchers: stub, FCM over HTTP, and config wiring."""

import json

import httpx
import pytest

import config
from segmentation.dispatcher import (
    FcmDispatcher,
    StubDispatcher,
    build_dispatcher,
    failure,
    load_service_account,
    payload_problem,
)
from segmentation.errors import ConfigurationError


async def static_token():
    return "access-123"


def fcm_with(handler) -> FcmDispatcher:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return FcmDispatcher("demo-project", static_token, client=client)


class TestPayload:
    def test_token_required(self):
        assert payload_problem(None, "t", "b") == "FCM token is required"
        assert payload_problem("   ", "t", "b") == "FCM token is required"

    def test_title_and_body_required(self):
        assert payload_problem("tok", "", "b") == "Title and description are required"
        assert payload_problem("tok", "t", "") == "Title and description are required"

    def test_ok(self):
        assert payload_problem("tok", "t", "b") is None

    def test_failure_truncates(self):
        assert len(failure("x" * 5000).error) == 1000


class TestStubDispatcher:
    @pytest.mark.asyncio
    async def test_accepts_well_formed(self):
        stub = StubDispatcher()
        result = await stub.send("tok", "Hello", "World", image="https://img")
        assert result.success
        assert result.message_id.startswith("stub-")
        assert stub.sent[0]["image"] == "https://img"

    @pytest.mark.asyncio
    async def test_rejects_missing_token(self):
        stub = StubDispatcher()
        result = await stub.send("", "Hello", "World")
        assert not result.success
        assert result.error == "FCM token is required"
        assert not stub.sent

    @pytest.mark.asyncio
    async def test_history_is_bounded(self):
        stub = StubDispatcher(history=3)
        for i in range(10):
            await stub.send(f"tok-{i}", "Hello", "World")
        assert [s["token"] for s in stub.sent] == ["tok-7", "tok-8", "tok-9"]


class TestFcmDispatcher:
    @pytest.mark.asyncio
    async def test_success_returns_message_name(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["auth"] = request.headers["Authorization"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"name": "projects/demo-project/messages/abc"})

        result = await fcm_with(handler).send("device-1", "Title", "Body")

        assert result.success
        assert result.message_id == "projects/demo-project/messages/abc"
        assert seen["url"] == "https://fcm.googleapis.com/v1/projects/demo-project/messages:send"
        assert seen["auth"] == "Bearer access-123"
        assert seen["body"] == {"message": {"token": "device-1", "notification": {"title": "Title", "body": "Body"}}}

    @pytest.mark.asyncio
    async def test_image_is_forwarded(self):
        bodies = []

        def handler(request: httpx.Request) -> httpx.Response:
            bodies.append(json.loads(request.content))
            return httpx.Response(200, json={"name": "m"})

        await fcm_with(handler).send("device-1", "T", "B", image="https://cdn/x.png")
        assert bodies[0]["message"]["notification"]["image"] == "https://cdn/x.png"

    @pytest.mark.asyncio
    async def test_non_object_body_still_succeeds(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=["unexpected"])

        result = await fcm_with(handler).send("device-1", "T", "B")
        assert result.success
        assert result.message_id is None

    @pytest.mark.asyncio
    async def test_error_status_is_a_failure(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(404, text='{"error": {"status": "NOT_FOUND"}}')

        result = await fcm_with(handler).send("stale", "T", "B")
        assert not result.success
        assert "NOT_FOUND" in result.error

    @pytest.mark.asyncio
    async def test_transport_error_is_a_failure(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        result = await fcm_with(handler).send("device-1", "T", "B")
        assert not result.success
        assert "ConnectError" in result.error

    @pytest.mark.asyncio
    async def test_auth_failure_is_a_failure(self):
        async def broken_token():
            raise RuntimeError("invalid_grant")

        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200, json={"name": "m"})

        fcm = FcmDispatcher("demo-project", broken_token, client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))
        result = await fcm.send("device-1", "T", "B")
        assert not result.success
        assert "invalid_grant" in result.error
        assert calls == []

    @pytest.mark.asyncio
    async def test_invalid_payload_never_hits_the_network(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("should not be called")

        result = await fcm_with(handler).send(None, "T", "B")
        assert result.error == "FCM token is required"


class TestBuildDispatcher:
    def test_stub_mode(self, monkeypatch):
        monkeypatch.setattr(config, "PUSH_MODE", "stub")
        assert isinstance(build_dispatcher(), StubDispatcher)

    def test_fcm_without_credentials(self, monkeypatch):
        monkeypatch.setattr(config, "PUSH_MODE", "fcm")
        monkeypatch.setattr(config, "FCM_PROJECT_ID", "")
        monkeypatch.setattr(config, "FCM_SERVICE_ACCOUNT_JSON", "")
        monkeypatch.setattr(config, "FCM_SERVICE_ACCOUNT_PATH", "")
        with pytest.raises(ConfigurationError):
            build_dispatcher()

    def test_unknown_mode(self, monkeypatch):
        monkeypatch.setattr(config, "PUSH_MODE", "carrier-pigeon")
        with pytest.raises(ConfigurationError):
            build_dispatcher()


class TestServiceAccount:
    def test_inline_json(self):
        assert load_service_account('{"project_id": "p"}') == {"project_id": "p"}

    def test_bad_inline_json(self):
        assert load_service_account("{nope") is None

    def test_file(self, tmp_path):
        path = tmp_path / "sa.json"
        path.write_text('{"project_id": "p"}', encoding="utf-8")
        assert load_service_account("", str(path)) == {"project_id": "p"}

    def test_missing_file(self, tmp_path):
        assert load_service_account("", str(tmp_path / "absent.json")) is None
