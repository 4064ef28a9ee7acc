"""Retrying Transport — POST with per-attempt deadline, bounded retry, exponential backoff.

Invariants:
    - At most policy.max_retries + 1 attempts; nothing persisted between attempts
    - Each attempt runs under its own deadline; expiry cancels the in-flight request
    - The same deadline is passed to httpx per request, so a client default
      timeout never cuts an attempt shorter than the policy
    - Timeout on the last attempt → LlmTimeoutError; other transport failure → LlmNetworkError
      (both retryable=False: the bounded budget is already spent)
    - Retryable status (408, 429, 5xx) → backoff + retry while attempts remain
    - Retryable status on the LAST attempt → that response is RETURNED, not raised
    - Any other status (2xx, non-retryable 4xx) → returned immediately
    - Backoff = base_delay_ms * 2**attempt + randint(0, jitter_ms), in milliseconds

Design Decisions:
    - Returning the last failing response is an intentional contract: status
      classification belongs to the caller (LlmTaskRunner), which maps it to
      UpstreamError with a retryable hint. Timeouts and network errors have no
      response to hand back, so they raise.
    - Wrapper over a shared httpx.AsyncClient: connection pooling owned by the app
      lifespan, retry policy owned here (single responsibility)
    - sleep and rand injected so tests observe backoff without waiting
"""

import asyncio
import logging
import random
from typing import Any, Awaitable, Callable

import httpx

from structured_llm.core.domain_types import RetryPolicy
from structured_llm.core.errors import LlmNetworkError, LlmTimeoutError
from structured_llm.infrastructure.observability import log_llm_event

logger = logging.getLogger(__name__)


def is_retryable_status(status: int) -> bool:
    """408 Request Timeout, 429 Too Many Requests, or any 5xx."""
    return status == 408 or status == 429 or 500 <= status <= 599


class RetryingTransport:
    """Wraps httpx.AsyncClient with attempt deadlines and retry/backoff."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        rand: Callable[[int, int], int] = random.randint,
    ):
        self.http_client = http_client
        self._sleep = sleep
        self._rand = rand

    async def call(
        self,
        url: str,
        payload: dict,
        credential: str,
        policy: RetryPolicy,
        *,
        log_fields: dict | None = None,
    ) -> httpx.Response:
        """POST payload to url with retries.

        Returns the first non-retryable response, or the last response when
        every attempt ended in a retryable status. Raises LlmTimeoutError or
        LlmNetworkError only when the final attempt raised.
        """
        fields = log_fields or {}
        deadline = policy.timeout_ms / 1000
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {credential}",
        }
        for attempt in range(policy.max_retries + 1):
            is_last = attempt >= policy.max_retries
            try:
                response = await asyncio.wait_for(
                    self.http_client.post(
                        url, headers=headers, json=payload, timeout=deadline,
                    ),
                    timeout=deadline,
                )
            except (asyncio.TimeoutError, httpx.TimeoutException):
                if is_last:
                    raise LlmTimeoutError()
                log_llm_event(
                    logger, logging.WARNING, "Retrying LLM request after timeout",
                    attempt=attempt, retryable=True, **fields,
                )
                await self._backoff(attempt, policy)
                continue
            except httpx.HTTPError:
                if is_last:
                    raise LlmNetworkError()
                log_llm_event(
                    logger, logging.WARNING, "Retrying LLM request after error",
                    attempt=attempt, retryable=True, **fields,
                )
                await self._backoff(attempt, policy)
                continue

            if is_retryable_status(response.status_code) and not is_last:
                log_llm_event(
                    logger, logging.WARNING, "Retrying LLM request",
                    attempt=attempt, status=response.status_code, **fields,
                )
                await response.aclose()
                await self._backoff(attempt, policy)
                continue
            return response

        # unreachable: the last attempt either returns or raises
        raise LlmNetworkError()

    def backoff_ms(self, attempt: int, policy: RetryPolicy) -> int:
        return policy.base_delay_ms * 2 ** attempt + self._rand(0, policy.jitter_ms)

    async def _backoff(self, attempt: int, policy: RetryPolicy) -> None:
        await self._sleep(self.backoff_ms(attempt, policy) / 1000)
