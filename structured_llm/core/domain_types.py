"""Domain Types — request/result value objects and enums for LLM tasks.

Invariants:
    - TaskRequest, ProviderConfig, RetryPolicy, LlmResult are frozen (immutable once built)
    - ProviderConfig.api_key never appears in repr (safe to log the object by accident)
    - All valid states encoded as Enums — no raw string matching

Design Decisions:
    - Frozen dataclasses over pydantic models: internal values, validated upstream
    - str Enums: serialize to JSON and log fields without custom encoders
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, TypeVar

T = TypeVar("T")


# ─── Enums ───────────────────────────────────────────────────────

class TaskKind(str, Enum):
    """AI tasks offered by the application."""
    PLC_SUMMARY = "PLC_SUMMARY"
    ANNOUNCEMENT = "ANNOUNCEMENT"
    NAME_PARSING = "NAME_PARSING"


class Complexity(str, Enum):
    """Coarse tier selecting which provider/model handles a task."""
    HIGH = "HIGH"
    LOW = "LOW"


class ProviderName(str, Enum):
    CHATGPT = "chatgpt"
    DEEPSEEK = "deepseek"


# ─── Value objects ──────────────────────────────────────────────

@dataclass(frozen=True)
class ProviderConfig:
    """Resolved per request. Never persisted, never logged."""
    provider: ProviderName
    base_url: str
    api_key: str = field(repr=False)
    model: str

    @property
    def completions_url(self) -> str:
        return f"{self.base_url.rstrip('/')}/chat/completions"


@dataclass(frozen=True)
class RetryPolicy:
    """Per-call transport policy. max_retries=2 means up to 3 attempts."""
    timeout_ms: int = 20_000
    max_retries: int = 2
    base_delay_ms: int = 500
    jitter_ms: int = 200


@dataclass(frozen=True)
class TaskRequest:
    """One structured-output request. Owned by the caller, consumed by the runner.

    `contract` is anything pydantic.TypeAdapter accepts — usually a BaseModel subclass.
    `max_input_chars=None` falls back to the tier default from settings.
    """
    caller_id: str
    task: TaskKind
    complexity: Complexity
    system_prompt: str
    instruction: str
    untrusted_input: str = field(repr=False)
    contract: Any
    temperature: float = 0.2
    max_tokens: int = 700
    max_input_chars: int | None = None


@dataclass(frozen=True)
class LlmResult(Generic[T]):
    """Validated output plus provider metadata. Returned once per successful call."""
    data: T
    provider: ProviderName
    model: str
    latency_ms: int
    request_id: str | None = None
