"""Structured Logging — JSON formatter, allow-listed LLM event fields, caller hashing.

Invariants:
    - All logs include timestamp, level, logger name, and message
    - Only SAFE_LOG_FIELDS ever surface from `extra` (allow-list, not deny-list)
    - Caller ids are logged as an 8-hex-char SHA-256 tag, never raw
    - JSON format in production, human-readable in development

Design Decisions:
    - JSONFormatter over third-party libs: zero dependencies, full control
    - log_llm_event filters at the call site AND the formatter filters at output:
      a stray `extra={"prompt": ...}` is dropped either way
    - setup_logging called once on startup via lifespan
"""

import hashlib
import json
import logging
from datetime import datetime, timezone

SAFE_LOG_FIELDS = (
    "task", "provider", "model", "attempt", "status",
    "request_id", "user_tag", "latency_ms", "retryable", "error_code",
)


class JSONFormatter(logging.Formatter):
    """Format logs as JSON for structured logging in production."""

    def format(self, record: logging.LogRecord) -> str:
        log = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in SAFE_LOG_FIELDS:
            val = record.__dict__.get(key)
            if val is not None:
                log[key] = val
        if record.exc_info:
            log["exception"] = self.formatException(record.exc_info)
        return json.dumps(log, ensure_ascii=False, default=str)


def setup_logging(level: str = "INFO", fmt: str = "json"):
    """Configure logging for the application."""
    handler = logging.StreamHandler()
    if fmt == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s - %(message)s",
        ))
    logging.root.addHandler(handler)
    logging.root.setLevel(getattr(logging, level.upper(), logging.INFO))


def hash_caller_id(caller_id: str) -> str:
    """Stable, non-reversible short tag for correlating a caller's log lines."""
    return hashlib.sha256(caller_id.encode("utf-8")).hexdigest()[:8]


def safe_fields(fields: dict) -> dict:
    """Keep only allow-listed, non-None fields."""
    return {
        k: (v.value if hasattr(v, "value") else v)
        for k, v in fields.items()
        if k in SAFE_LOG_FIELDS and v is not None
    }


def log_llm_event(
    logger: logging.Logger, level: int, message: str, **fields,
) -> None:
    """Log an LLM lifecycle event with allow-listed fields only."""
    logger.log(level, f"[llm] {message}", extra=safe_fields(fields))
