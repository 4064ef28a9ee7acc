"""AI Task Routes — thin HTTP wrappers around LlmTaskRunner for the three AI tasks.

Invariants:
    - Caller identity comes from X-User-Id, set by the upstream auth gateway
    - Request bodies validated by Pydantic before any LLM work
    - Success → {"ok": true, "data": <validated output, camelCase keys>}
    - LlmError propagates to the global handler (api/error_handlers.py)

Design Decisions:
    - Runner fetched from app.state via dependency: one limiter + HTTP client per process,
      overridable in tests
    - Briefing assembly and prompts live in services/ai_tasks.py (routes hold no logic)
"""

import logging

from fastapi import APIRouter, Depends, Header, Request

from structured_llm.core.domain_types import TaskKind
from structured_llm.schemas.ai import (
    AnnouncementRequest, NameParseRequest, PlcSummaryRequest,
)
from structured_llm.services.ai_tasks import (
    announcement_briefing,
    build_task_request,
    name_parse_briefing,
    plc_summary_briefing,
)
from structured_llm.services.llm_task_runner import LlmTaskRunner

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/ai", tags=["ai"])


def get_task_runner(request: Request) -> LlmTaskRunner:
    """FastAPI dependency — the process-wide runner built in the lifespan."""
    runner = getattr(request.app.state, "task_runner", None)
    if runner is None:
        raise RuntimeError("Task runner not initialized")
    return runner


async def _run(
    runner: LlmTaskRunner, caller_id: str, task: TaskKind, briefing: str,
) -> dict:
    result = await runner.run(build_task_request(caller_id, task, briefing))
    data = result.data.model_dump(by_alias=True, exclude_none=True)
    return {"ok": True, "data": data}


@router.post("/plc-summary")
async def plc_summary(
    body: PlcSummaryRequest,
    x_user_id: str = Header(min_length=1),
    runner: LlmTaskRunner = Depends(get_task_runner),
):
    """Summarize a PLC meeting transcript and extract action items."""
    return await _run(
        runner, x_user_id, TaskKind.PLC_SUMMARY, plc_summary_briefing(body),
    )


@router.post("/announcement")
async def announcement(
    body: AnnouncementRequest,
    x_user_id: str = Header(min_length=1),
    runner: LlmTaskRunner = Depends(get_task_runner),
):
    """Draft a school announcement."""
    return await _run(
        runner, x_user_id, TaskKind.ANNOUNCEMENT, announcement_briefing(body),
    )


@router.post("/name-parse")
async def name_parse(
    body: NameParseRequest,
    x_user_id: str = Header(min_length=1),
    runner: LlmTaskRunner = Depends(get_task_runner),
):
    return await _run(
        runner, x_user_id, TaskKind.NAME_PARSING, name_parse_briefing(body),
    )
