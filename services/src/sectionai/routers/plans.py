"""Doc-edit plan building and execution endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from ..http import raise_service_error
from ..models.doc_edit import DocEditIntent, DocEditPlan
from ..models.requests import MacroRequest
from ..models.results import PlanRunResult
from ..planner import PlanBuildError, build_doc_edit_plan_for_intent
from ..runtime import PlanRuntime, SectionStepExecutor, run_macro_for_command
from .dependencies import get_step_executor

router = APIRouter(tags=["plans"])


def _build_plan(intent: DocEditIntent, source: str) -> DocEditPlan:
    try:
        return build_doc_edit_plan_for_intent(intent, source=source)
    except PlanBuildError as exc:
        raise_service_error(code="PLAN_INVALID", message=str(exc))


@router.post("/plans", response_model=DocEditPlan)
async def build_plan(intent: DocEditIntent) -> DocEditPlan:
    return _build_plan(intent, "api")


@router.post("/plans/run", response_model=PlanRunResult)
async def run_plan(
    intent: DocEditIntent,
    executor: SectionStepExecutor = Depends(get_step_executor),
) -> PlanRunResult:
    """Build and run a plan; partial runs come back with ``success`` false."""

    plan = _build_plan(intent, "api")
    return await PlanRuntime(executor).run(plan)


@router.post("/macros/{command}", response_model=PlanRunResult)
async def run_macro(
    command: str,
    request: MacroRequest,
    executor: SectionStepExecutor = Depends(get_step_executor),
) -> PlanRunResult:
    return await run_macro_for_command(command, request.doc_id, request.section_id, executor)


__all__ = ["router"]
