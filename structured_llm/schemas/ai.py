"""AI Task Schemas — request bodies and model-output contracts for the three AI tasks.

Invariants:
    - *Request models validate user input at the HTTP boundary
    - *Output models are the contracts handed to LlmTaskRunner (fail-closed)
    - Wire keys are camelCase (aliases); Python attributes are snake_case
    - Output contracts accept camelCase keys only; snake_case model output fails
    - Optional output fields may be omitted by the model, never sent as null

Design Decisions:
    - Literal types for tone/length over str enums: Pydantic validates natively
    - Output models ignore unknown keys (prompt asks for none, but extra keys are
      not a reason to discard an otherwise valid answer)
    - Routes dump outputs with exclude_none so omitted optionals stay omitted
"""

from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class _ContractModel(BaseModel):
    """Model-output contract: validated by alias only."""


# --- PLC meeting summary ------------------------------------------------------

class PlcSummaryRequest(_WireModel):
    meeting_title: str | None = Field(
        None, min_length=1, max_length=200, alias="meetingTitle",
    )
    transcript: str = Field(min_length=1, max_length=20_000)
    focus: str | None = Field(None, max_length=400)


ActionItem = Annotated[str, Field(min_length=1, max_length=200)]


class PlcSummaryOutput(_ContractModel):
    summary: str = Field(min_length=1, max_length=2000)
    action_items: list[ActionItem] = Field(max_length=20, alias="actionItems")


# --- Announcement draft -------------------------------------------------------

Tone = Literal["formal", "friendly", "urgent", "celebratory", "neutral"]
Length = Literal["short", "medium", "long"]


class AnnouncementRequest(_WireModel):
    topic: str = Field(min_length=1, max_length=200)
    audience: str | None = Field(None, max_length=120)
    tone: Tone | None = None
    details: str | None = Field(None, max_length=2000)
    length: Length | None = None


class AnnouncementOutput(_ContractModel):
    title: str = Field(min_length=1, max_length=200)
    body: str = Field(min_length=1, max_length=4000)


# --- Name parsing -------------------------------------------------------------

class NameParseRequest(_WireModel):
    full_name: str = Field(min_length=1, max_length=200, alias="fullName")


class NameParseOutput(_ContractModel):
    first_name: str = Field(min_length=1, max_length=120, alias="firstName")
    last_name: str = Field(min_length=1, max_length=120, alias="lastName")
    middle_name: str | None = Field(None, max_length=120, alias="middleName")
    suffix: str | None = Field(None, max_length=50)

    @field_validator("middle_name", "suffix", mode="before")
    @classmethod
    def reject_null(cls, v):
        # defaults are not validated, so this only fires on an explicit null
        if v is None:
            raise ValueError("omit the field instead of sending null")
        return v
