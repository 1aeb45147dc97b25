# tests/test_api_client.py

from __future__ import annotations

import json
from types import SimpleNamespace

import httpx
import pytest

from teamtask.api.client import HttpApiClient, describe, unwrap
from teamtask.core.errors import MalformedResponse, NetworkFailure, RequestRejected


def _client(handler) -> HttpApiClient:
    return HttpApiClient("http://testserver/api", transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_request_sends_json_and_query() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"data": {"tasks": []}})

    client = _client(handler)
    try:
        payload = await client.request("POST", "/tasks", body={"title": "x"}, query={"team_id": "T1"})
    finally:
        await client.aclose()

    assert payload == {"data": {"tasks": []}}
    req = seen[0]
    assert req.method == "POST"
    assert req.url.path == "/api/tasks"
    assert req.url.params["team_id"] == "T1"
    assert json.loads(req.content) == {"title": "x"}
    assert req.headers["content-type"] == "application/json"


@pytest.mark.asyncio
async def test_error_status_maps_to_request_rejected_with_server_message() -> None:
    client = _client(lambda request: httpx.Response(403, json={"message": "Forbidden here"}))
    try:
        with pytest.raises(RequestRejected) as info:
            await client.request("DELETE", "/teams/1")
    finally:
        await client.aclose()

    assert info.value.status == 403
    assert info.value.message == "Forbidden here"
    assert info.value.data == {"message": "Forbidden here"}


@pytest.mark.asyncio
async def test_error_without_message_uses_fallback() -> None:
    client = _client(lambda request: httpx.Response(500, text="<html>oops</html>"))
    try:
        with pytest.raises(RequestRejected) as info:
            await client.request("GET", "/tasks")
    finally:
        await client.aclose()
    assert info.value.message == "An error occurred"


@pytest.mark.asyncio
async def test_401_is_unauthorized() -> None:
    client = _client(lambda request: httpx.Response(401, json={"message": "Not authenticated"}))
    try:
        with pytest.raises(RequestRejected) as info:
            await client.request("GET", "/auth/me")
    finally:
        await client.aclose()
    assert info.value.is_unauthorized


@pytest.mark.asyncio
async def test_transport_error_maps_to_network_failure() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    client = _client(handler)
    try:
        with pytest.raises(NetworkFailure) as info:
            await client.request("GET", "/tasks")
    finally:
        await client.aclose()
    assert info.value.status == 0
    assert info.value.message == "Network error. Please check your connection."


@pytest.mark.asyncio
async def test_empty_and_invalid_bodies() -> None:
    responses = iter([httpx.Response(204), httpx.Response(200, text="not json"), httpx.Response(200, json=[1])])
    client = _client(lambda request: next(responses))
    try:
        assert await client.request("POST", "/auth/logout") == {"data": None}
        with pytest.raises(MalformedResponse):
            await client.request("GET", "/tasks")
        with pytest.raises(MalformedResponse):
            await client.request("GET", "/tasks")
    finally:
        await client.aclose()


@pytest.mark.asyncio
async def test_session_cookie_is_kept_between_requests() -> None:
    cookies_seen: list[str | None] = []

    def handler(request: httpx.Request) -> httpx.Response:
        cookies_seen.append(request.headers.get("cookie"))
        if request.url.path.endswith("/auth/login"):
            return httpx.Response(
                200,
                json={"data": {"user": {"id": 1}}},
                headers={"set-cookie": "sessionId=abc; Path=/; HttpOnly"},
            )
        return httpx.Response(200, json={"data": {"isAuthenticated": True}})

    client = HttpApiClient(
        "http://example.com/api", cookie_name="sessionId", transport=httpx.MockTransport(handler)
    )
    try:
        assert not client.has_session_cookie
        await client.request("POST", "/auth/login", body={"email": "a@b.com", "password": "x"})
        await client.request("GET", "/auth/status")
        assert client.has_session_cookie
    finally:
        await client.aclose()

    assert cookies_seen[0] is None
    assert cookies_seen[1] == "sessionId=abc"


def test_unwrap() -> None:
    assert unwrap({"data": {"tasks": [1]}}, "tasks") == [1]
    assert unwrap({"data": None}) is None
    with pytest.raises(MalformedResponse):
        unwrap({"tasks": []}, "tasks")
    with pytest.raises(MalformedResponse):
        unwrap({"data": {}}, "tasks")


def test_describe() -> None:
    assert describe(NetworkFailure()) == "Network error. Please check your connection."
    assert describe(RuntimeError("")) == "RuntimeError"


@pytest.mark.asyncio
async def test_from_settings() -> None:
    settings = SimpleNamespace(api_base_url="http://example.com/api/", api_timeout_seconds=7, session_cookie_name="sid")
    client = HttpApiClient.from_settings(settings)
    try:
        assert not client.has_session_cookie
        client.cookies.set("sid", "x")
        assert client.has_session_cookie
    finally:
        await client.aclose()
