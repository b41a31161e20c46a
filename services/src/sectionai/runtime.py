"""Sequential execution of doc-edit plans, one primitive step at a time."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable

from .models.doc_edit import (
    AppendBulletSummaryStep,
    DocEditPlan,
    DocEditPlanStep,
    MarkKeySentencesStep,
    MarkKeyTermsStep,
    RewriteSectionStep,
)
from .models.intent import CanonicalIntent, HighlightTerm
from .models.results import (
    HighlightOptions,
    PlanRunResult,
    RewriteOptions,
    RunState,
    SectionAiOptions,
    SectionAiResult,
    StepResult,
    SummarizeOptions,
)
from .planner import build_doc_edit_plan_for_intent
from .presets import build_intent_from_command
from .section_ai import SectionAiService

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class StepContext:
    """What a step can see of the run so far."""

    plan: DocEditPlan
    step_index: int
    latest_intent: CanonicalIntent | None
    previous_results: tuple[StepResult, ...]


@dataclass(frozen=True)
class StepOutcome:
    success: bool
    result: SectionAiResult | None = None
    error: str | None = None
    intent: CanonicalIntent | None = None


StepExecutor = Callable[[DocEditPlanStep, StepContext], Awaitable[StepOutcome]]


def validate_plan_for_execution(plan: DocEditPlan) -> list[str]:
    errors: list[str] = []
    if not plan.doc_id:
        errors.append("Plan is missing docId")
    if not plan.section_id:
        errors.append("Plan is missing sectionId")
    if not plan.steps:
        errors.append("Plan has no steps")
    return errors


class PlanRuntime:
    """Run plan steps strictly in order and stop at the first failure.

    ``state`` moves pending -> running -> completed | failed. There is no
    retry here; callers decide whether to run the plan again.
    """

    def __init__(self, executor: StepExecutor, *, clock: Callable[[], float] = time.perf_counter) -> None:
        self._executor = executor
        self._clock = clock
        self.state: RunState = "pending"
        self.current_step: int | None = None

    async def run(self, plan: DocEditPlan) -> PlanRunResult:
        total = len(plan.steps)
        if self.state == "running":
            return PlanRunResult(
                success=False,
                state="failed",
                completed_steps=0,
                total_steps=total,
                error="Plan runtime is already running",
            )

        errors = validate_plan_for_execution(plan)
        if errors:
            self.state = "failed"
            return PlanRunResult(
                success=False,
                state="failed",
                completed_steps=0,
                total_steps=total,
                error="; ".join(errors),
            )

        self.state = "running"
        results: list[StepResult] = []
        latest_intent: CanonicalIntent | None = None
        LOGGER.info(
            "runtime.start",
            extra={"extra_payload": {"intent_id": plan.intent_id, "steps": [s.type for s in plan.steps]}},
        )

        for index, step in enumerate(plan.steps):
            self.current_step = index
            context = StepContext(
                plan=plan,
                step_index=index,
                latest_intent=latest_intent,
                previous_results=tuple(results),
            )
            started = self._clock()
            try:
                outcome = await self._executor(step, context)
            except Exception as exc:
                LOGGER.exception(
                    "runtime.step_raised",
                    extra={"extra_payload": {"step": step.type, "index": index}},
                )
                outcome = StepOutcome(success=False, error=str(exc) or type(exc).__name__)
            duration_ms = max(0.0, (self._clock() - started) * 1000)

            results.append(
                StepResult(
                    step_index=index,
                    step_type=step.type,
                    success=outcome.success,
                    duration_ms=duration_ms,
                    error=outcome.error,
                    result=outcome.result,
                )
            )
            if not outcome.success:
                self.state = "failed"
                LOGGER.warning(
                    "runtime.step_failed",
                    extra={"extra_payload": {"step": step.type, "index": index, "error": outcome.error}},
                )
                return PlanRunResult(
                    success=False,
                    state="failed",
                    completed_steps=index,
                    total_steps=total,
                    step_results=results,
                    error=f"Step {index + 1} ({step.type}) failed: {outcome.error or 'unknown error'}",
                )
            if outcome.intent is not None:
                latest_intent = outcome.intent

        self.state = "completed"
        self.current_step = None
        LOGGER.info(
            "runtime.completed",
            extra={"extra_payload": {"intent_id": plan.intent_id, "steps": total}},
        )
        return PlanRunResult(
            success=True,
            state="completed",
            completed_steps=total,
            total_steps=total,
            step_results=results,
        )


class SectionStepExecutor:
    """Run each plan step as one section AI action on the plan's section."""

    def __init__(self, service: SectionAiService) -> None:
        self._service = service

    async def __call__(self, step: DocEditPlanStep, context: StepContext) -> StepOutcome:
        action, options = self._action_for(step, context)
        result = await self._service.run_section_ai_action(action, context.plan.section_id, options)
        return StepOutcome(success=result.success, result=result, error=result.error, intent=result.intent)

    def _action_for(self, step: DocEditPlanStep, context: StepContext) -> tuple[str, SectionAiOptions]:
        if isinstance(step, RewriteSectionStep):
            return "rewrite", SectionAiOptions(
                rewrite=RewriteOptions(tone=step.tone, length=step.length, keep_structure=step.keep_structure)
            )
        if isinstance(step, MarkKeySentencesStep):
            return "highlight", SectionAiOptions(
                highlight=HighlightOptions(mode="sentences", count=step.highlight_count, style=step.style)
            )
        if isinstance(step, MarkKeyTermsStep):
            candidates: list[HighlightTerm] = []
            if step.terms is not None:
                candidates = [HighlightTerm(phrase=phrase) for phrase in step.terms if phrase]
            elif context.latest_intent is not None:
                candidates = context.latest_intent.highlight_terms()
            terms = [term for term in candidates if len(term.phrase) <= step.max_term_length]
            reused = terms[: step.term_count] or None
            return "highlight", SectionAiOptions(
                highlight=HighlightOptions(mode="terms", count=step.term_count, style=step.style, terms=reused)
            )
        if isinstance(step, AppendBulletSummaryStep):
            return "summarize", SectionAiOptions(
                summarize=SummarizeOptions(style=step.style, bullet_count=step.bullet_count, placement="append")
            )
        raise TypeError(f"Unsupported plan step: {step!r}")


async def run_macro_for_command(
    command: str,
    doc_id: str,
    section_id: str,
    executor: StepExecutor,
) -> PlanRunResult:
    """Resolve a UI command to its preset, build the plan and run it."""

    intent = build_intent_from_command(command, doc_id, section_id)
    plan = build_doc_edit_plan_for_intent(intent, source="macro")
    return await PlanRuntime(executor).run(plan)


__all__ = [
    "PlanRuntime",
    "SectionStepExecutor",
    "StepContext",
    "StepExecutor",
    "StepOutcome",
    "run_macro_for_command",
    "validate_plan_for_execution",
]
