"""Root conftest — shared test configuration and runner fixtures."""

import os

import pytest

# Ensure tests don't accidentally use real API keys
os.environ["CHATGPT_API_KEY"] = "sk-chatgpt-test-fake-key"
os.environ["DEEPSEEK_API_KEY"] = "sk-deepseek-test-fake-key"

from structured_llm.config import Settings  # noqa: E402
from structured_llm.core.domain_types import RetryPolicy  # noqa: E402
from structured_llm.core.rate_limiter import RateLimiter  # noqa: E402
from structured_llm.infrastructure.retrying_transport import RetryingTransport  # noqa: E402
from structured_llm.services.llm_task_runner import LlmTaskRunner  # noqa: E402

from tests.mock_provider import RecordingSleep, ScriptedUpstream  # noqa: E402


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start=1000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        chatgpt_api_key="sk-chatgpt-test",
        deepseek_api_key="sk-deepseek-test",
        chatgpt_base_url="https://chatgpt.test/v1",
        deepseek_base_url="https://deepseek.test/v1",
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def policy():
    return RetryPolicy(timeout_ms=1000, max_retries=2, base_delay_ms=500, jitter_ms=200)


@pytest.fixture
def recording_sleep():
    return RecordingSleep()


@pytest.fixture
async def make_runner(settings, clock, policy, recording_sleep):
    """Build (runner, upstream, limiter) around a scripted upstream."""
    clients = []

    def _make(steps, *, runner_settings=None, limiter=None, runner_policy=None):
        upstream = ScriptedUpstream(steps)
        http_client = upstream.client()
        clients.append(http_client)
        if limiter is None:
            limiter = RateLimiter(max_requests=12, window_seconds=60, clock=clock)
        transport = RetryingTransport(http_client, sleep=recording_sleep, rand=lambda a, b: 0)
        runner = LlmTaskRunner(
            runner_settings or settings, limiter, transport,
            policy=runner_policy or policy,
        )
        return runner, upstream, limiter

    yield _make
    for http_client in clients:
        await http_client.aclose()
