"""Error Hierarchy — typed, categorized exceptions for every LLM task failure mode.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Every LlmError carries exactly one LlmErrorKind plus status/retryable hints
    - to_response() never includes upstream payloads, model output, or credentials
    - User-facing messages are fixed strings per kind (no internal details)

Design Decisions:
    - Single hierarchy with StructuredLlmError base: FastAPI global handler catches all
    - One subclass per kind: callers can `except UpstreamError` or switch on `.kind`
    - ErrorContext as dataclass: observability fields without coupling to logging
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


class ErrorSeverity(str, Enum):
    """Error severity for observability and client handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    VALIDATION = "validation"
    CONFIGURATION = "configuration"
    RATE_LIMIT = "rate_limit"
    EXTERNAL_API = "external_api"
    TIMEOUT = "timeout"
    INTERNAL = "internal"


class LlmErrorKind(str, Enum):
    """Closed set of LLM task failure kinds."""
    CONFIG = "CONFIG"
    RATE_LIMIT = "RATE_LIMIT"
    TIMEOUT = "TIMEOUT"
    NETWORK = "NETWORK"
    UPSTREAM = "UPSTREAM"
    INVALID_RESPONSE = "INVALID_RESPONSE"
    INVALID_OUTPUT = "INVALID_OUTPUT"


@dataclass
class ErrorContext:
    """Safe context for error observability. Never holds raw user content."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    task: str | None = None
    provider: str | None = None
    user_tag: str | None = None


class StructuredLlmError(Exception):
    """Base exception for all structured-llm errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
        http_status: int = 500,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.http_status = http_status

    def to_response(self) -> dict:
        """Convert to standardized REST error response."""
        return {
            "ok": False,
            "error": {
                "code": self.code,
                "message": self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "timestamp": self.context.timestamp.isoformat(),
            },
        }


# ─── LLM task errors ────────────────────────────────────────────

class LlmError(StructuredLlmError):
    """LLM task failure with a fixed kind, optional HTTP status, retryable flag."""

    kind: LlmErrorKind

    def __init__(
        self,
        kind: LlmErrorKind,
        message: str,
        code: str,
        category: ErrorCategory,
        http_status: int,
        *,
        status: int | None = None,
        retryable: bool = False,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
    ):
        super().__init__(message, code, category, severity, context, http_status)
        self.kind = kind
        self.status = status
        self.retryable = retryable

    def to_response(self) -> dict:
        body = super().to_response()
        body["error"]["kind"] = self.kind.value
        body["error"]["retryable"] = self.retryable
        if self.status is not None:
            body["error"]["upstream_status"] = self.status
        return body


class ProviderConfigError(LlmError):
    """Credential for the requested tier is missing. Fatal, never retried."""
    def __init__(self, setting_name: str, context: ErrorContext | None = None):
        super().__init__(
            LlmErrorKind.CONFIG,
            "AI is not configured. Please contact support.",
            "INTERNAL_ERROR", ErrorCategory.CONFIGURATION, 500,
            severity=ErrorSeverity.CRITICAL, context=context,
        )
        self.setting_name = setting_name


class RateLimitExceededError(LlmError):
    """Caller exceeded its admission quota for the current window."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            LlmErrorKind.RATE_LIMIT,
            "Too many AI requests. Please wait a moment and try again.",
            "RATE_LIMIT", ErrorCategory.RATE_LIMIT, 429,
            retryable=True, severity=ErrorSeverity.WARNING, context=context,
        )


class LlmTimeoutError(LlmError):
    """Attempt deadline exceeded on the final attempt."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            LlmErrorKind.TIMEOUT,
            "AI request timed out. Please try again.",
            "UPSTREAM_ERROR", ErrorCategory.TIMEOUT, 504,
            context=context,
        )


class LlmNetworkError(LlmError):
    """Transport failure on the final attempt."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            LlmErrorKind.NETWORK,
            "AI service is temporarily unavailable. Please try again.",
            "UPSTREAM_ERROR", ErrorCategory.EXTERNAL_API, 502,
            context=context,
        )


class UpstreamError(LlmError):
    """Provider answered with a non-2xx status after the retry budget."""
    def __init__(
        self, status: int, retryable: bool, context: ErrorContext | None = None,
    ):
        super().__init__(
            LlmErrorKind.UPSTREAM,
            "AI service is temporarily unavailable. Please try again.",
            "UPSTREAM_ERROR", ErrorCategory.EXTERNAL_API, 502,
            status=status, retryable=retryable, context=context,
        )


class InvalidResponseError(LlmError):
    """Envelope lacks the text field or the text holds no parseable JSON."""
    def __init__(self, reason: str, context: ErrorContext | None = None):
        super().__init__(
            LlmErrorKind.INVALID_RESPONSE,
            "AI returned an unexpected response. Please try again.",
            "UPSTREAM_ERROR", ErrorCategory.EXTERNAL_API, 502,
            context=context,
        )
        self.reason = reason


class InvalidOutputError(LlmError):
    """Parsed JSON does not satisfy the caller's contract."""
    def __init__(self, error_count: int = 0, context: ErrorContext | None = None):
        super().__init__(
            LlmErrorKind.INVALID_OUTPUT,
            "AI returned an unexpected response. Please try again.",
            "UPSTREAM_ERROR", ErrorCategory.VALIDATION, 502,
            context=context,
        )
        self.error_count = error_count
