"""Output Validator — fail-closed check of parsed JSON against the caller's contract.

Invariants:
    - Any pydantic ValidationError discards the candidate entirely
    - The raised InvalidOutputError carries only an error count, never the value

Design Decisions:
    - TypeAdapter over BaseModel.model_validate: contracts may be models, TypedDicts,
      or plain annotated types
"""

from typing import Any

from pydantic import TypeAdapter, ValidationError

from structured_llm.core.errors import InvalidOutputError


def validate_output(value: Any, contract: Any) -> Any:
    """Return the typed value or raise InvalidOutputError."""
    try:
        return TypeAdapter(contract).validate_python(value)
    except ValidationError as e:
        raise InvalidOutputError(error_count=e.error_count()) from None
