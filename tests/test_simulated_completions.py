"""Full simulation tests for legacy /v1/completions."""

from __future__ import annotations

import pytest

from copilot_gateway.testing import (
    UpstreamResponse,
    completion_chunk,
    sse_payloads,
)
from copilot_gateway.testing.fake_upstream import COMPLETIONS_ROUTE


@pytest.mark.asyncio
async def test_completion_nonstream(upstream, harness) -> None:
    upstream.enqueue(UpstreamResponse(json_body={
        "choices": [{"text": "print('hi')", "finish_reason": "stop"}],
        "usage": {"prompt_tokens": 3, "completion_tokens": 4, "total_tokens": 7},
    }))
    async with harness.make_async_client() as client:
        response = await client.post(
            "/v1/completions",
            json={"prompt": "# main.py\n", "max_tokens": 64},
        )

    assert response.status_code == 200
    body = response.json()
    assert body["object"] == "text_completion"
    assert body["model"] == "gpt-4o"
    assert body["choices"][0]["text"] == "print('hi')"

    sent = upstream.last_request
    assert sent["path"] == COMPLETIONS_ROUTE
    assert sent["headers"]["openai-intent"] == "copilot-ghost"
    assert "model" not in sent["json"]
    assert sent["json"]["max_tokens"] == 64
    assert sent["json"]["extra"]["language"] == "python"
    assert sent["json"]["stop"] == ["\n\n"]


@pytest.mark.asyncio
async def test_completion_stream(upstream, harness) -> None:
    upstream.enqueue(UpstreamResponse(stream_events=[
        completion_chunk("const "),
        completion_chunk("x = 1;", finish_reason="stop"),
    ]))
    async with harness.make_async_client() as client:
        response = await client.post(
            "/v1/completions",
            json={"prompt": "// app.ts\n", "stream": True, "model": "gpt-4o-mini"},
        )

    assert response.status_code == 200
    payloads = sse_payloads(response.content)
    assert payloads[-1] == "[DONE]"
    chunks = payloads[:-1]
    assert all(c["object"] == "text_completion" for c in chunks)
    assert all(c["model"] == "gpt-4o-mini" for c in chunks)
    assert "".join(c["choices"][0]["text"] for c in chunks) == "const x = 1;"
    assert chunks[-1]["choices"][0]["finish_reason"] == "stop"


@pytest.mark.asyncio
async def test_completion_requires_prompt(upstream, harness) -> None:
    async with harness.make_async_client() as client:
        response = await client.post("/v1/completions", json={"prompt": ""})
    assert response.status_code == 400
    assert response.json()["detail"]["error"]["param"] == "prompt"
    assert upstream.received == []
