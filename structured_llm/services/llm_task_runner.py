"""LLM Task Runner — composes provider, limiter, sanitizer, prompt, transport, parser, validator.

Invariants:
    - Provider is resolved BEFORE rate-limit admission: a missing credential fails with
      CONFIG without consuming quota and without any network call
    - Untrusted input is sanitized and bounded before it reaches a prompt
    - Non-2xx final response → UpstreamError(status, retryable from status class)
    - Output is returned only after passing the caller's contract (fail-closed)
    - Logs carry only allow-listed fields (see infrastructure/observability.py)
    - No retry here: the transport owns the only retry loop

Design Decisions:
    - Errors propagate as typed exceptions (core/errors.py); the API layer maps them
    - Latency covers the transport call including retries and backoff
    - Collaborators injected (settings, limiter, transport) so one limiter per process
      is shared by every runner call
"""

import logging
import time

from structured_llm.config import Settings
from structured_llm.core.build_prompt import BASE_SYSTEM_PROMPT, build_messages
from structured_llm.core.domain_types import (
    Complexity, LlmResult, ProviderConfig, RetryPolicy, TaskRequest,
)
from structured_llm.core.errors import LlmError, UpstreamError
from structured_llm.core.parse_response import (
    extract_content, extract_json, extract_request_id,
)
from structured_llm.core.rate_limiter import RateLimiter
from structured_llm.core.sanitize_input import clean
from structured_llm.core.validate_output import validate_output
from structured_llm.infrastructure.observability import hash_caller_id, log_llm_event
from structured_llm.infrastructure.provider_registry import resolve_provider
from structured_llm.infrastructure.retrying_transport import (
    RetryingTransport, is_retryable_status,
)

logger = logging.getLogger(__name__)


class LlmTaskRunner:
    """Runs one TaskRequest to a validated LlmResult or a typed LlmError."""

    def __init__(
        self,
        settings: Settings,
        rate_limiter: RateLimiter,
        transport: RetryingTransport,
        policy: RetryPolicy | None = None,
    ):
        self.settings = settings
        self.rate_limiter = rate_limiter
        self.transport = transport
        self.policy = policy or RetryPolicy(
            timeout_ms=settings.llm_timeout_ms,
            max_retries=settings.llm_max_retries,
            base_delay_ms=settings.llm_base_delay_ms,
        )

    async def run(self, request: TaskRequest) -> LlmResult:
        user_tag = hash_caller_id(request.caller_id)
        fields = {"task": request.task, "user_tag": user_tag}

        try:
            provider = resolve_provider(request.complexity, self.settings)
            fields["provider"] = provider.provider
            await self.rate_limiter.admit(request.caller_id)
        except LlmError as e:
            log_llm_event(
                logger, logging.WARNING, "LLM request rejected",
                error_code=e.kind, retryable=e.retryable, **fields,
            )
            _attach_context(e, fields)
            raise

        payload = self._build_payload(request, provider)

        started = time.perf_counter()
        try:
            response = await self.transport.call(
                provider.completions_url, payload, provider.api_key, self.policy,
                log_fields=fields,
            )
        except LlmError as e:
            log_llm_event(
                logger, logging.ERROR, "LLM transport failed",
                error_code=e.kind, retryable=e.retryable,
                latency_ms=_elapsed_ms(started), **fields,
            )
            _attach_context(e, fields)
            raise
        latency_ms = _elapsed_ms(started)

        envelope = _decode_json(response)
        if not response.is_success:
            retryable = is_retryable_status(response.status_code)
            log_llm_event(
                logger, logging.WARNING, "LLM provider error",
                status=response.status_code, retryable=retryable,
                latency_ms=latency_ms, **fields,
            )
            error = UpstreamError(response.status_code, retryable)
            _attach_context(error, fields)
            raise error

        request_id = extract_request_id(envelope)
        try:
            content = extract_content(envelope)
            parsed = extract_json(content)
            data = validate_output(parsed, request.contract)
        except LlmError as e:
            log_llm_event(
                logger, logging.WARNING, "LLM output rejected",
                error_code=e.kind, request_id=request_id,
                latency_ms=latency_ms, **fields,
            )
            _attach_context(e, fields)
            raise

        log_llm_event(
            logger, logging.INFO, "LLM request completed",
            model=provider.model, request_id=request_id,
            latency_ms=latency_ms, **fields,
        )
        return LlmResult(
            data=data,
            provider=provider.provider,
            model=provider.model,
            latency_ms=latency_ms,
            request_id=request_id,
        )

    def _build_payload(self, request: TaskRequest, provider: ProviderConfig) -> dict:
        max_chars = request.max_input_chars
        if max_chars is None:
            max_chars = self._default_max_chars(request.complexity)
        sanitized = clean(request.untrusted_input, max_chars)
        messages = build_messages(
            BASE_SYSTEM_PROMPT, request.system_prompt,
            request.instruction, sanitized,
        )
        return {
            "model": provider.model,
            "messages": messages,
            "temperature": request.temperature,
            "max_tokens": request.max_tokens,
        }

    def _default_max_chars(self, complexity: Complexity) -> int:
        if complexity == Complexity.HIGH:
            return self.settings.max_input_chars_high
        return self.settings.max_input_chars_low


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


def _decode_json(response):
    """Response body as JSON, or None when the body is not JSON."""
    try:
        return response.json()
    except ValueError:
        return None


def _attach_context(error: LlmError, fields: dict) -> None:
    """Stamp task, provider and caller tag onto the error for the API log line."""
    error.context.task = fields["task"].value
    provider = fields.get("provider")
    error.context.provider = provider.value if provider is not None else None
    error.context.user_tag = fields["user_tag"]
