"""Tests for the HTTP surface: models, health, usage, limits and auth."""

from __future__ import annotations

import hashlib

import pytest

from copilot_gateway.core.models import MODEL_CATALOG
from copilot_gateway.testing import UpstreamResponse

CHAT = {"messages": [{"role": "user", "content": "Hi"}]}


@pytest.mark.asyncio
async def test_list_models(harness) -> None:
    async with harness.make_async_client() as client:
        response = await client.get("/v1/models")
    assert response.status_code == 200
    body = response.json()
    assert body["object"] == "list"
    assert len(body["data"]) == len(MODEL_CATALOG)
    assert {"id": "gpt-4o", "object": "model", "owned_by": "openai"}.items() <= next(
        m for m in body["data"] if m["id"] == "gpt-4o"
    ).items()


@pytest.mark.asyncio
async def test_health(harness) -> None:
    async with harness.make_async_client() as client:
        response = await client.get("/health")
    assert response.json() == {"status": "healthy", "version": "0.1.0"}


@pytest.mark.asyncio
async def test_usage_endpoints(upstream, harness) -> None:
    upstream.enqueue_chat_response(
        "ok", usage={"prompt_tokens": 1, "completion_tokens": 1, "total_tokens": 2}
    )
    async with harness.make_async_client() as client:
        await client.post(
            "/v1/chat/completions",
            json=CHAT,
            headers={"Authorization": "Bearer caller-key"},
        )
        summary = (await client.get("/usage")).json()
        session_id = hashlib.sha256(b"caller-key").hexdigest()
        session = await client.get(f"/usage/{session_id}")
        missing = await client.get("/usage/nope")

    assert summary["total_requests"] == 1
    assert summary["total_tokens"] == 2
    assert session.status_code == 200
    assert session.json()["session_id"] == session_id
    assert session.json()["request_count"] == 1
    assert missing.status_code == 404
    assert missing.json()["detail"]["error"]["code"] == "session_not_found"


@pytest.mark.asyncio
async def test_invalid_json_body(upstream, harness) -> None:
    async with harness.make_async_client() as client:
        response = await client.post(
            "/v1/chat/completions",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )
        not_object = await client.post("/v1/responses", json=["a"])
    assert response.status_code == 400
    assert response.json()["detail"]["error"]["code"] == "invalid_json"
    assert not_object.status_code == 400
    assert not_object.json()["detail"]["error"]["code"] == "invalid_request_body"
    assert upstream.received == []


class TestRateLimits:
    @pytest.mark.asyncio
    async def test_chat_request_limit(self, upstream, make_harness) -> None:
        harness = make_harness(rate_limits={"enabled": True, "chat_completions": 2})
        for _ in range(2):
            upstream.enqueue_chat_response("ok")
        async with harness.make_async_client() as client:
            first = await client.post("/v1/chat/completions", json=CHAT)
            second = await client.post("/v1/chat/completions", json=CHAT)
            third = await client.post("/v1/chat/completions", json=CHAT)

        assert first.status_code == 200
        assert second.status_code == 200
        assert third.status_code == 429
        error = third.json()["detail"]["error"]
        assert error["code"] == "rate_limit_exceeded"
        assert int(third.headers["retry-after"]) >= 1
        assert error["retry_after"] == int(third.headers["retry-after"])
        assert len(upstream.received) == 2

    @pytest.mark.asyncio
    async def test_default_limit_applies_to_responses(self, upstream, make_harness) -> None:
        harness = make_harness(
            rate_limits={"enabled": True, "default": 1, "chat_completions": 100}
        )
        upstream.enqueue_chat_response("ok")
        async with harness.make_async_client() as client:
            first = await client.post("/v1/responses", json={"input": "Hi"})
            second = await client.post("/v1/responses", json={"input": "Hi"})
        assert first.status_code == 200
        assert second.status_code == 429

    @pytest.mark.asyncio
    async def test_oversized_chat_request(self, upstream, make_harness) -> None:
        harness = make_harness(rate_limits={"enabled": True, "max_request_tokens": 10})
        upstream.enqueue_chat_response("ok")
        async with harness.make_async_client() as client:
            first = await client.post("/v1/chat/completions", json=CHAT)
            big = await client.post(
                "/v1/chat/completions",
                json={"messages": [{"role": "user", "content": "x" * 400}]},
            )
        assert first.status_code == 200
        assert big.status_code == 429
        assert big.json()["detail"]["error"]["code"] == "max_tokens_exceeded"

    @pytest.mark.asyncio
    async def test_token_window_limit(self, upstream, make_harness) -> None:
        harness = make_harness(rate_limits={"enabled": True, "tokens_per_minute": 5})
        upstream.enqueue_chat_response(
            "ok", usage={"prompt_tokens": 5, "completion_tokens": 5, "total_tokens": 10}
        )
        async with harness.make_async_client() as client:
            first = await client.post("/v1/chat/completions", json=CHAT)
            second = await client.post("/v1/chat/completions", json=CHAT)
        assert first.status_code == 200
        assert second.status_code == 429
        assert second.json()["detail"]["error"]["code"] == "token_rate_limit_exceeded"

    @pytest.mark.asyncio
    async def test_disabled_limits(self, upstream, harness) -> None:
        for _ in range(3):
            upstream.enqueue_chat_response("ok")
        async with harness.make_async_client() as client:
            statuses = [
                (await client.post("/v1/chat/completions", json=CHAT)).status_code
                for _ in range(3)
            ]
        assert statuses == [200, 200, 200]


class TestAuth:
    @pytest.mark.asyncio
    async def test_no_credentials_is_401(self, upstream, make_harness) -> None:
        harness = make_harness(copilot_token=None)
        async with harness.make_async_client() as client:
            response = await client.post("/v1/chat/completions", json=CHAT)
        assert response.status_code == 401
        assert response.json()["detail"]["error"]["code"] == "authentication_required"
        assert upstream.received == []

    @pytest.mark.asyncio
    async def test_token_is_exchanged_before_first_call(self, upstream, make_harness) -> None:
        harness = make_harness(copilot_token=None, github_token="gh-long-lived")
        upstream.enqueue_chat_response("ok")
        async with harness.make_async_client() as client:
            response = await client.post("/v1/chat/completions", json=CHAT)
        assert response.status_code == 200
        assert len(upstream.token_requests) == 1
        assert upstream.last_request["headers"]["authorization"] == "Bearer fake-copilot-token"

    @pytest.mark.asyncio
    async def test_failed_exchange_is_401(self, upstream, make_harness) -> None:
        harness = make_harness(copilot_token=None, github_token="revoked")
        upstream.token_response = UpstreamResponse(status_code=403, json_body={})
        async with harness.make_async_client() as client:
            response = await client.post("/v1/responses", json={"input": "Hi", "stream": True})
        assert response.status_code == 401
        assert response.json()["detail"]["error"]["code"] == "authentication_failed"
