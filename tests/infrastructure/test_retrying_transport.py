"""Retrying Transport tests — retry classification, backoff, deadlines, wire format.

Tests cover:
    - 2xx and non-retryable 4xx return after one attempt
    - 408/429/5xx retried with backoff base * 2**attempt (+ jitter)
    - Retryable status on the last attempt is RETURNED, not raised
    - Timeout / network failure retried, then TIMEOUT / NETWORK (retryable=False)
    - Attempt deadline cancels a slow upstream
    - Bearer credential and JSON payload on the wire
    - Policy deadline, not the client default timeout, bounds each attempt
"""

import asyncio
import json

import httpx
import pytest

from structured_llm.core.domain_types import RetryPolicy
from structured_llm.core.errors import LlmErrorKind, LlmNetworkError, LlmTimeoutError
from structured_llm.infrastructure.retrying_transport import (
    RetryingTransport, is_retryable_status,
)

from tests.mock_provider import RecordingSleep, ScriptedUpstream, ok, status

URL = "https://provider.test/v1/chat/completions"
PAYLOAD = {"model": "m", "messages": [], "temperature": 0, "max_tokens": 5}


@pytest.fixture
async def transport_for(recording_sleep):
    clients = []

    def _make(steps, rand=lambda a, b: 0):
        upstream = ScriptedUpstream(steps)
        client = upstream.client()
        clients.append(client)
        return RetryingTransport(client, sleep=recording_sleep, rand=rand), upstream

    yield _make
    for client in clients:
        await client.aclose()


# --- Status classification ----------------------------------------------------

@pytest.mark.parametrize("code", [408, 429, 500, 502, 503, 599])
def test_retryable_statuses(code):
    assert is_retryable_status(code)


@pytest.mark.parametrize("code", [200, 201, 400, 401, 403, 404, 422, 600])
def test_non_retryable_statuses(code):
    assert not is_retryable_status(code)


# --- Response handling --------------------------------------------------------

async def test_success_returns_after_one_attempt(transport_for, policy, recording_sleep):
    transport, upstream = transport_for([ok({"a": 1})])

    response = await transport.call(URL, PAYLOAD, "sk-test", policy)

    assert response.status_code == 200
    assert upstream.call_count == 1
    assert recording_sleep.delays == []


async def test_non_retryable_4xx_returned_immediately(transport_for, policy):
    transport, upstream = transport_for([status(400), ok({})])

    response = await transport.call(URL, PAYLOAD, "sk-test", policy)

    assert response.status_code == 400
    assert upstream.call_count == 1


async def test_retries_500_then_succeeds(transport_for, policy, recording_sleep):
    transport, upstream = transport_for([status(500), status(500), ok({"a": 1})])

    response = await transport.call(URL, PAYLOAD, "sk-test", policy)

    assert response.status_code == 200
    assert upstream.call_count == 3
    assert recording_sleep.delays == [0.5, 1.0]


async def test_backoff_includes_jitter_within_bound(transport_for, policy, recording_sleep):
    transport, _ = transport_for([status(503), ok({})], rand=lambda a, b: b)

    await transport.call(URL, PAYLOAD, "sk-test", policy)

    assert recording_sleep.delays == [(500 + 200) / 1000]


async def test_exhausted_retryable_status_returns_last_response(
    transport_for, policy, recording_sleep,
):
    transport, upstream = transport_for([status(429), status(503), status(502)])

    response = await transport.call(URL, PAYLOAD, "sk-test", policy)

    assert response.status_code == 502
    assert upstream.call_count == 3
    assert len(recording_sleep.delays) == 2


async def test_zero_retries_means_single_attempt(transport_for):
    transport, upstream = transport_for([status(500), ok({})])

    response = await transport.call(
        URL, PAYLOAD, "sk-test", RetryPolicy(max_retries=0),
    )

    assert response.status_code == 500
    assert upstream.call_count == 1


# --- Exceptions ---------------------------------------------------------------

async def test_network_error_retried_then_succeeds(transport_for, policy, recording_sleep):
    transport, upstream = transport_for([
        httpx.ConnectError("connection refused"), ok({}),
    ])

    response = await transport.call(URL, PAYLOAD, "sk-test", policy)

    assert response.status_code == 200
    assert upstream.call_count == 2
    assert recording_sleep.delays == [0.5]


async def test_network_error_exhausted_raises_network(transport_for, policy):
    transport, upstream = transport_for([
        httpx.ConnectError("a"), httpx.ReadError("b"), httpx.ConnectError("c"),
    ])

    with pytest.raises(LlmNetworkError) as exc_info:
        await transport.call(URL, PAYLOAD, "sk-test", policy)

    assert exc_info.value.kind == LlmErrorKind.NETWORK
    assert exc_info.value.retryable is False
    assert upstream.call_count == 3


async def test_httpx_timeout_exhausted_raises_timeout(transport_for, policy):
    transport, _ = transport_for([httpx.ReadTimeout("slow")] * 3)

    with pytest.raises(LlmTimeoutError) as exc_info:
        await transport.call(URL, PAYLOAD, "sk-test", policy)

    assert exc_info.value.kind == LlmErrorKind.TIMEOUT
    assert exc_info.value.retryable is False


async def test_attempt_deadline_cancels_slow_upstream(transport_for):
    cancelled = []

    async def _hang(request):
        try:
            await asyncio.sleep(10)
        except asyncio.CancelledError:
            cancelled.append(True)
            raise
        return ok({})

    transport, upstream = transport_for([_hang, _hang])

    with pytest.raises(LlmTimeoutError):
        await transport.call(
            URL, PAYLOAD, "sk-test",
            RetryPolicy(timeout_ms=20, max_retries=1, base_delay_ms=1),
        )

    assert upstream.call_count == 2
    assert cancelled == [True, True]


async def test_slow_first_attempt_then_success(transport_for):
    async def _hang(request):
        await asyncio.sleep(10)

    transport, upstream = transport_for([_hang, ok({"a": 1})])

    response = await transport.call(
        URL, PAYLOAD, "sk-test",
        RetryPolicy(timeout_ms=20, max_retries=2, base_delay_ms=1),
    )

    assert response.status_code == 200
    assert upstream.call_count == 2


# --- Wire format --------------------------------------------------------------

async def test_sends_bearer_credential_and_json_payload(transport_for, policy):
    transport, upstream = transport_for([ok({})])

    await transport.call(URL, PAYLOAD, "sk-wire-test", policy)

    sent = upstream.requests[0]
    assert sent["method"] == "POST"
    assert sent["url"] == URL
    assert sent["headers"]["authorization"] == "Bearer sk-wire-test"
    assert sent["headers"]["content-type"] == "application/json"
    assert sent["json"] == PAYLOAD


async def test_credential_never_logged(transport_for, policy, caplog):
    transport, _ = transport_for([status(500), httpx.ConnectError("x"), ok({})])

    with caplog.at_level("DEBUG"):
        await transport.call(
            URL, PAYLOAD, "sk-log-secret", policy, log_fields={"task": "NAME_PARSING"},
        )

    assert caplog.records
    for record in caplog.records:
        assert "sk-log-secret" not in record.getMessage()
        assert "sk-log-secret" not in str(record.__dict__)


# --- Client timeout vs. attempt deadline --------------------------------------

async def test_policy_deadline_overrides_client_default_timeout():
    upstream = ScriptedUpstream([ok({})])
    async with httpx.AsyncClient(
        transport=httpx.MockTransport(upstream), timeout=5.0,
    ) as client:
        await RetryingTransport(client).call(
            URL, PAYLOAD, "sk-test", RetryPolicy(timeout_ms=20_000, max_retries=0),
        )

    assert upstream.requests[0]["timeout"]["read"] == 20.0
    assert upstream.requests[0]["timeout"]["connect"] == 20.0


async def test_slow_upstream_within_deadline_beats_short_client_timeout():
    body = json.dumps({"choices": []}).encode()

    async def _handle(reader, writer):
        head = await reader.readuntil(b"\r\n\r\n")
        length = 0
        for line in head.decode("latin-1").split("\r\n"):
            if line.lower().startswith("content-length:"):
                length = int(line.split(":", 1)[1])
        await reader.readexactly(length)
        await asyncio.sleep(0.3)
        writer.write(
            b"HTTP/1.1 200 OK\r\nContent-Type: application/json\r\n"
            + f"Content-Length: {len(body)}\r\nConnection: close\r\n\r\n".encode()
            + body,
        )
        await writer.drain()
        writer.close()

    server = await asyncio.start_server(_handle, "127.0.0.1", 0)
    port = server.sockets[0].getsockname()[1]
    try:
        async with httpx.AsyncClient(timeout=0.1) as client:
            response = await RetryingTransport(client).call(
                f"http://127.0.0.1:{port}/v1/chat/completions", PAYLOAD, "sk-test",
                RetryPolicy(timeout_ms=5_000, max_retries=0),
            )
    finally:
        server.close()
        await server.wait_closed()

    assert response.status_code == 200
    assert response.json() == {"choices": []}
