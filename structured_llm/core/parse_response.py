"""Response Parser — pulls the model text out of the envelope and JSON out of the text.

Invariants:
    - extract_content accepts only a string at choices[0].message.content
    - extract_json tries strict parse, then the outermost {...} span, then fails
    - Failures raise InvalidResponseError; raw model text is never attached

Design Decisions:
    - Two fallback levels only: no "raw text as result" level, the caller's
      contract decides what a valid answer is
"""

import json
import re
from typing import Any

from structured_llm.core.errors import InvalidResponseError

_OPENING_FENCE = re.compile(r"^```[a-zA-Z]*\n?")
_CLOSING_FENCE = re.compile(r"\n?```$")


def strip_code_fences(text: str) -> str:
    """Remove a leading ```lang fence and trailing ``` fence if present."""
    trimmed = text.strip()
    if trimmed.startswith("```"):
        trimmed = _OPENING_FENCE.sub("", trimmed)
        trimmed = _CLOSING_FENCE.sub("", trimmed)
        return trimmed.strip()
    return trimmed


def extract_json(text: str) -> Any:
    """Parse the JSON payload from free-form model text."""
    cleaned = strip_code_fences(text)

    # Level 1: strict parse
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError:
        pass

    # Level 2: first "{" to last "}"
    start = cleaned.find("{")
    end = cleaned.rfind("}")
    if start >= 0 and end > start:
        try:
            return json.loads(cleaned[start:end + 1])
        except json.JSONDecodeError:
            pass

    raise InvalidResponseError("LLM response was not valid JSON")


def extract_content(envelope: Any) -> str:
    """Return choices[0].message.content or raise InvalidResponseError."""
    try:
        content = envelope["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError):
        raise InvalidResponseError("LLM response missing content")
    if not isinstance(content, str):
        raise InvalidResponseError("LLM response missing content")
    return content


def extract_request_id(envelope: Any) -> str | None:
    if isinstance(envelope, dict) and isinstance(envelope.get("id"), str):
        return envelope["id"]
    return None
