"""Observability tests — allow-listed fields, caller hashing, JSON output."""

import json
import logging

from structured_llm.core.domain_types import ProviderName, TaskKind
from structured_llm.infrastructure.observability import (
    JSONFormatter, hash_caller_id, log_llm_event, safe_fields,
)


def test_hash_caller_id_is_stable_short_hex():
    tag = hash_caller_id("user-123")
    assert tag == hash_caller_id("user-123")
    assert len(tag) == 8
    int(tag, 16)
    assert tag != hash_caller_id("user-124")
    assert "user-123" not in tag


def test_safe_fields_drops_unlisted_and_none():
    fields = safe_fields({
        "task": TaskKind.ANNOUNCEMENT,
        "provider": ProviderName.CHATGPT,
        "status": 503,
        "request_id": None,
        "prompt": "raw user content",
        "api_key": "sk-secret",
    })
    assert fields == {"task": "ANNOUNCEMENT", "provider": "chatgpt", "status": 503}


def test_log_llm_event_filters_extra(caplog):
    logger = logging.getLogger("tests.observability")
    with caplog.at_level(logging.INFO, logger="tests.observability"):
        log_llm_event(
            logger, logging.INFO, "LLM request completed",
            task=TaskKind.NAME_PARSING, latency_ms=12,
            untrusted_input="Jane Doe", api_key="sk-secret",
        )

    record = caplog.records[0]
    assert record.getMessage() == "[llm] LLM request completed"
    assert record.task == "NAME_PARSING"
    assert record.latency_ms == 12
    assert not hasattr(record, "untrusted_input")
    assert not hasattr(record, "api_key")


def test_json_formatter_emits_only_allow_listed_extras():
    record = logging.LogRecord(
        "structured_llm.test", logging.WARNING, __file__, 1,
        "LLM provider error", None, None,
    )
    record.status = 502
    record.retryable = True
    record.prompt = "should not appear"

    output = json.loads(JSONFormatter().format(record))

    assert output["level"] == "WARNING"
    assert output["logger"] == "structured_llm.test"
    assert output["message"] == "LLM provider error"
    assert output["status"] == 502
    assert output["retryable"] is True
    assert "prompt" not in output
    assert "timestamp" in output
