"""AI Task Catalog — per-task prompts, tiers, limits, and briefing builders.

Invariants:
    - Every TaskKind has exactly one TaskSpec
    - Briefings contain only validated request fields, joined with blank lines;
      missing optional fields are omitted entirely
    - Briefings are untrusted input: they go through the sanitizer, never into
      the system prompt

Design Decisions:
    - Business prompt content lives here (caller side), not in the runner
    - Explicit dict mapping over registration decorators (no auto-discovery)
"""

from dataclasses import dataclass

from pydantic import BaseModel

from structured_llm.core.domain_types import Complexity, TaskKind, TaskRequest
from structured_llm.schemas.ai import (
    AnnouncementOutput, AnnouncementRequest,
    NameParseOutput, NameParseRequest,
    PlcSummaryOutput, PlcSummaryRequest,
)


@dataclass(frozen=True)
class TaskSpec:
    complexity: Complexity
    system_prompt: str
    instruction: str
    contract: type[BaseModel]
    temperature: float
    max_tokens: int
    max_input_chars: int


TASK_SPECS: dict[TaskKind, TaskSpec] = {
    TaskKind.PLC_SUMMARY: TaskSpec(
        complexity=Complexity.HIGH,
        system_prompt="You summarize PLC meetings and extract action items for educators.",
        instruction=(
            "Provide a concise meeting summary and a list of action items. "
            "Use an empty array when no action items are present."
        ),
        contract=PlcSummaryOutput,
        temperature=0.2,
        max_tokens=700,
        max_input_chars=12_000,
    ),
    TaskKind.ANNOUNCEMENT: TaskSpec(
        complexity=Complexity.HIGH,
        system_prompt="You draft school announcements for staff and students.",
        instruction=(
            "Generate a title and a polished announcement body. Keep it clear, "
            "practical, and aligned with the requested tone."
        ),
        contract=AnnouncementOutput,
        temperature=0.7,
        max_tokens=600,
        max_input_chars=6_000,
    ),
    TaskKind.NAME_PARSING: TaskSpec(
        complexity=Complexity.LOW,
        system_prompt="You split a personal name into its components.",
        instruction=(
            "Return firstName and lastName. Include middleName and suffix "
            "only when present."
        ),
        contract=NameParseOutput,
        temperature=0.0,
        max_tokens=120,
        max_input_chars=500,
    ),
}


def _join_present(parts: list[str | None]) -> str:
    return "\n\n".join(p for p in parts if p)


def plc_summary_briefing(body: PlcSummaryRequest) -> str:
    return _join_present([
        f"Meeting title: {body.meeting_title}" if body.meeting_title else None,
        f"Focus: {body.focus}" if body.focus else None,
        f"Transcript:\n{body.transcript}",
    ])


def announcement_briefing(body: AnnouncementRequest) -> str:
    return _join_present([
        f"Topic: {body.topic}",
        f"Audience: {body.audience}" if body.audience else None,
        f"Tone: {body.tone}" if body.tone else None,
        f"Length: {body.length}" if body.length else None,
        f"Details:\n{body.details}" if body.details else None,
    ])


def name_parse_briefing(body: NameParseRequest) -> str:
    return f"Full name: {body.full_name}"


def build_task_request(
    caller_id: str, task: TaskKind, untrusted_input: str,
) -> TaskRequest:
    """Combine a catalog entry with the caller id and briefing."""
    spec = TASK_SPECS[task]
    return TaskRequest(
        caller_id=caller_id,
        task=task,
        complexity=spec.complexity,
        system_prompt=spec.system_prompt,
        instruction=spec.instruction,
        untrusted_input=untrusted_input,
        contract=spec.contract,
        temperature=spec.temperature,
        max_tokens=spec.max_tokens,
        max_input_chars=spec.max_input_chars,
    )
