"""Section AI orchestrator: prompt, parse, repair, diff and apply in one session."""

from __future__ import annotations

import inspect
import logging
import re
import time
from dataclasses import dataclass
from typing import Any, Callable, Sequence, get_args

from .diff_engine import (
    SectionDiffError,
    build_section_doc_ops_diff,
    compute_text_diff,
    count_doc_ops,
    diff_mode_for_action,
)
from .document import DocumentSink, SectionContextError, SectionContextProvider
from .llm import ChatMessage, LlmService
from .models.docops import ApplyMarkOp, DocOpsPlan
from .models.intent import CanonicalIntent, HighlightTerm
from .models.results import (
    HighlightOptions,
    ReplacementPreview,
    SectionAiAction,
    SectionAiOptions,
    SectionAiResult,
)
from .models.section import DiffContext, ParagraphInfo, SectionContext
from .models.section_ops import (
    ApplyInlineMarkOp,
    ApplyReport,
    InlineMarkType,
    ReplaceParagraphOp,
    SectionDocOp,
)
from .prompts import BuiltPrompt, build_section_prompt
from .protocol import LlmParseError, parse_intent_only_response, parse_section_ai_response
from .repair import repair_rewrite_section_paragraphs_with_details, truncate_for_summarize

LOGGER = logging.getLogger(__name__)

VALID_ACTIONS: frozenset[str] = frozenset(get_args(SectionAiAction))
BUSY_MESSAGE = "AI action already running"

_SECTION_PREFIX = re.compile(r"^sec-(\d+)$")
_STYLE_TO_MARK: dict[str, InlineMarkType] = {
    "default": "bold",
    "bold": "bold",
    "underline": "underline",
    "background": "highlight",
}

PromptBuilder = Callable[[SectionAiAction, SectionContext, Sequence[ParagraphInfo], SectionAiOptions], BuiltPrompt]
ProcessingListener = Callable[[bool], None]


def normalize_section_id(section_id: str) -> str:
    """Accept UI-prefixed ids such as ``sec-12`` and return the bare key."""

    candidate = str(section_id).strip()
    match = _SECTION_PREFIX.match(candidate)
    return match.group(1) if match else candidate


@dataclass(frozen=True)
class _Session:
    action: str
    section_id: str
    started: float


@dataclass(frozen=True)
class PendingDocOps:
    """Ops held back by a preview until the user accepts them."""

    action: str
    section_id: str
    ops: tuple[SectionDocOp, ...]
    intent_id: str | None


class SectionAiService:
    """Single entry point for AI edits on one section at a time.

    At most one session runs per service instance. A call that arrives while
    another is in flight is rejected before any work starts.
    """

    def __init__(
        self,
        *,
        llm: LlmService,
        provider: SectionContextProvider,
        sink: DocumentSink,
        strict_diff: bool = False,
        prompt_builder: PromptBuilder = build_section_prompt,
    ) -> None:
        self._llm = llm
        self._provider = provider
        self._sink = sink
        self._strict_diff = strict_diff
        self._prompt_builder = prompt_builder
        self._session: _Session | None = None
        self._pending: PendingDocOps | None = None
        self._listeners: list[ProcessingListener] = []

    @property
    def is_processing(self) -> bool:
        return self._session is not None

    @property
    def pending(self) -> PendingDocOps | None:
        return self._pending

    def subscribe_processing(self, listener: ProcessingListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    async def run_section_ai_action(
        self,
        action: str,
        section_id: str,
        options: SectionAiOptions | None = None,
    ) -> SectionAiResult:
        section_key = normalize_section_id(section_id)
        if self._session is not None:
            LOGGER.info(
                "section_ai.rejected_busy",
                extra={
                    "extra_payload": {
                        "action": action,
                        "section_id": section_key,
                        "running_action": self._session.action,
                    }
                },
            )
            return _failure(action, section_key, BUSY_MESSAGE, "BUSY")
        if action not in VALID_ACTIONS:
            return _failure(None, section_key, f"Unknown action {action!r}", "VALIDATION")

        session = _Session(action=action, section_id=section_key, started=time.perf_counter())
        try:
            self._begin(session)
            result = await self._run(action, section_key, options or SectionAiOptions())
        finally:
            self._end()
        LOGGER.info(
            "section_ai.finished",
            extra={
                "extra_payload": {
                    "action": action,
                    "section_id": section_key,
                    "success": result.success,
                    "applied": result.applied,
                    "error_code": result.error_code,
                    "duration_ms": round((time.perf_counter() - session.started) * 1000, 2),
                }
            },
        )
        return result

    async def run_with_clarification(
        self,
        action: str,
        section_id: str,
        answer: str,
        options: SectionAiOptions | None = None,
    ) -> SectionAiResult:
        """Re-run an action after the user answered a clarification request."""

        options = options or SectionAiOptions()
        prompt = options.custom_prompt or ""
        clarified = f"{prompt}\n\nUser clarification: {answer.strip()}".strip()
        return await self.run_section_ai_action(
            action,
            section_id,
            options.model_copy(update={"custom_prompt": clarified}),
        )

    async def apply_pending_doc_ops(self) -> SectionAiResult:
        """Apply the ops held back by the last preview."""

        pending = self._pending
        if self._session is not None:
            if pending is None:
                return _failure(None, None, BUSY_MESSAGE, "BUSY")
            return _failure(pending.action, pending.section_id, BUSY_MESSAGE, "BUSY")
        if pending is None:
            return _failure(None, None, "No pending changes to apply", "NO_PENDING_OPS")

        try:
            self._begin(_Session(action="apply_pending", section_id=pending.section_id, started=time.perf_counter()))
            self._pending = None
            report = await self._apply(list(pending.ops))
        finally:
            self._end()
        if not report.success:
            return _failure(pending.action, pending.section_id, report.error or "Apply failed", "APPLY_FAILED")
        return SectionAiResult(
            success=True,
            action=pending.action,
            section_id=pending.section_id,
            doc_ops=list(pending.ops),
            applied=report.changed,
            apply_report=report,
            message=f"Applied {report.applied_count} pending change(s)",
        )

    def discard_pending_doc_ops(self) -> bool:
        discarded = self._pending is not None
        self._pending = None
        return discarded

    # Session bookkeeping ------------------------------------------------

    def _begin(self, session: _Session) -> None:
        self._session = session
        LOGGER.info(
            "section_ai.start",
            extra={"extra_payload": {"action": session.action, "section_id": session.section_id}},
        )
        self._notify(True)

    def _end(self) -> None:
        self._session = None
        self._notify(False)

    def _notify(self, processing: bool) -> None:
        for listener in list(self._listeners):
            try:
                listener(processing)
            except Exception:
                LOGGER.exception("section_ai.listener_failed", extra={"extra_payload": {"processing": processing}})

    # Pipeline ------------------------------------------------------------

    async def _run(self, action: str, section_id: str, options: SectionAiOptions) -> SectionAiResult:
        try:
            context = self._provider.extract_section_context(section_id)
        except SectionContextError as exc:
            return _failure(action, section_id, exc.message, exc.code)

        scope = options.rewrite.scope if action == "rewrite" else None
        paragraphs = context.paragraphs_for_scope(scope)
        if not paragraphs:
            return _failure(action, section_id, "Section has no paragraphs", "EMPTY_SECTION")

        if action == "highlight" and options.highlight.terms is not None:
            ops = self._highlight_ops(paragraphs, options.highlight.terms, None, options.highlight)
            return await self._dispatch(
                ops,
                paragraphs,
                base={"action": action, "section_id": section_id, "response_mode": "auto_apply"},
            )

        prompt = self._prompt_builder(action, context, paragraphs, options)
        LOGGER.info(
            "section_ai.prompt",
            extra={
                "extra_payload": {
                    "action": action,
                    "section_id": section_id,
                    "paragraphs": len(paragraphs),
                    "estimated_tokens": prompt.estimated_tokens,
                }
            },
        )
        chat = await self._llm.chat(
            [ChatMessage(role="system", content=prompt.system), ChatMessage(role="user", content=prompt.user)]
        )
        if not chat.success or not chat.content:
            return _failure(action, section_id, chat.error or "LLM call failed", "MODEL_ERROR")

        try:
            if action == "highlight":
                parsed = parse_intent_only_response(chat.content)
            else:
                parsed = parse_section_ai_response(chat.content)
        except LlmParseError as exc:
            LOGGER.warning(
                "section_ai.parse_failed",
                extra={"extra_payload": {"action": action, "error": exc.message, "snippet": exc.raw_snippet}},
            )
            return _failure(action, section_id, exc.message, "PROTOCOL_ERROR")

        intent = parsed.intent
        base: dict[str, Any] = {
            "action": action,
            "section_id": section_id,
            "intent": intent,
            "doc_ops_plan": parsed.plan,
            "assistant_text": parsed.assistant_text or None,
            "response_mode": intent.response_mode,
            "confidence": intent.confidence,
            "uncertainties": list(intent.uncertainties),
        }
        if intent.response_mode == "clarify":
            return SectionAiResult(success=True, applied=False, message="Clarification needed", **base)

        diff_context = DiffContext(section_id=section_id, paragraphs=list(paragraphs))
        repair = None
        try:
            if action == "rewrite":
                repaired = repair_rewrite_section_paragraphs_with_details(diff_context, parsed.paragraphs)
                repair = repaired.repair_details if repaired.was_repaired else None
                ops = build_section_doc_ops_diff(
                    diff_context, repaired.paragraphs, mode=diff_mode_for_action(action), strict=self._strict_diff
                )
            elif action == "summarize":
                proposed = sorted(parsed.paragraphs, key=lambda p: p.index)
                if options.summarize.placement == "append":
                    bullets = [p.text for p in proposed][: options.summarize.bullet_count]
                    ops = build_section_doc_ops_diff(
                        diff_context, [p.text for p in paragraphs] + bullets, mode="expand"
                    )
                else:
                    if not self._strict_diff:
                        proposed = truncate_for_summarize(proposed, len(paragraphs))
                    ops = build_section_doc_ops_diff(
                        diff_context, proposed, mode=diff_mode_for_action(action), strict=self._strict_diff
                    )
            elif action == "expand":
                proposed = sorted(parsed.paragraphs, key=lambda p: p.index)
                ops = build_section_doc_ops_diff(diff_context, proposed, mode=diff_mode_for_action(action))
            else:
                ops = self._highlight_ops(
                    paragraphs, intent.highlight_terms(), parsed.plan, options.highlight, limit=options.highlight.count
                )
        except SectionDiffError as exc:
            return _failure(action, section_id, str(exc), "DIFF_REJECTED")

        return await self._dispatch(ops, paragraphs, base=base, repair=repair)

    async def _dispatch(
        self,
        ops: list[SectionDocOp],
        paragraphs: Sequence[ParagraphInfo],
        *,
        base: dict[str, Any],
        repair: Any = None,
    ) -> SectionAiResult:
        counts = count_doc_ops(ops)
        LOGGER.info(
            "section_ai.diff",
            extra={
                "extra_payload": {
                    "section_id": base["section_id"],
                    "replace": counts.replace,
                    "insert": counts.insert,
                    "delete": counts.delete,
                    "mark": counts.mark,
                }
            },
        )

        if not ops:
            return SectionAiResult(success=True, applied=False, repair=repair, message="No changes needed", **base)

        if base.get("response_mode") == "preview":
            intent: CanonicalIntent | None = base.get("intent")
            self._pending = PendingDocOps(
                action=base["action"],
                section_id=base["section_id"],
                ops=tuple(ops),
                intent_id=intent.intent_id if intent else None,
            )
            return SectionAiResult(
                success=True,
                doc_ops=ops,
                applied=False,
                repair=repair,
                previews=_previews(ops, paragraphs),
                message=f"Preview ready: {counts.total} change(s) pending",
                **base,
            )

        report = await self._apply(ops)
        if not report.success:
            return SectionAiResult(
                success=False,
                doc_ops=ops,
                applied=False,
                apply_report=report,
                repair=repair,
                error=report.error or "Apply failed",
                error_code="APPLY_FAILED",
                **base,
            )
        return SectionAiResult(
            success=True,
            doc_ops=ops,
            applied=report.changed,
            apply_report=report,
            repair=repair,
            message=f"Applied {report.applied_count} change(s)",
            **base,
        )

    async def _apply(self, ops: list[SectionDocOp]) -> ApplyReport:
        result = self._sink.apply_ops(ops)
        if inspect.isawaitable(result):
            result = await result
        return result

    def _highlight_ops(
        self,
        paragraphs: Sequence[ParagraphInfo],
        terms: Sequence[HighlightTerm],
        plan: DocOpsPlan | None,
        options: HighlightOptions,
        *,
        limit: int | None = None,
    ) -> list[SectionDocOp]:
        """Map phrase terms, then model marks, to inline marks; ``limit`` caps the total."""

        mark_type = _STYLE_TO_MARK.get(options.style, "bold")
        ops: list[SectionDocOp] = []
        seen: set[tuple[str, int, int]] = set()

        def _full() -> bool:
            return limit is not None and len(ops) >= limit

        def _add(index: int, start: int, end: int, mark: InlineMarkType) -> None:
            key = paragraphs[index].node_key
            if (key, start, end) in seen:
                return
            seen.add((key, start, end))
            ops.append(
                ApplyInlineMarkOp(target_key=key, start_offset=start, end_offset=end, mark_type=mark, index=index)
            )

        for term in terms:
            if _full():
                break
            located = _locate_phrase(paragraphs, term.phrase, term.occurrence)
            if located is None:
                LOGGER.info("highlight.term_not_found", extra={"extra_payload": {"phrase": term.phrase}})
                continue
            index, start = located
            _add(index, start, start + len(term.phrase), mark_type)

        if plan is not None:
            for op in plan.ops:
                if not isinstance(op, ApplyMarkOp):
                    continue
                if _full():
                    LOGGER.info("highlight.limit_reached", extra={"extra_payload": {"limit": limit}})
                    break
                start_offset, end_offset = op.scope.start_offset or 0, op.scope.end_offset or 0
                payload = {"start_offset": op.scope.start_offset, "end_offset": op.scope.end_offset}
                if end_offset <= start_offset:
                    LOGGER.info("highlight.empty_mark", extra={"extra_payload": payload})
                    continue
                located_range = _section_range_to_paragraph(paragraphs, start_offset, end_offset)
                if located_range is None:
                    LOGGER.warning("highlight.cross_paragraph_mark", extra={"extra_payload": payload})
                    continue
                index, start, end = located_range
                _add(index, start, end, op.payload.mark_type)
        return ops


def _locate_phrase(paragraphs: Sequence[ParagraphInfo], phrase: str, occurrence: int) -> tuple[int, int] | None:
    seen = 0
    for index, paragraph in enumerate(paragraphs):
        start = paragraph.text.find(phrase)
        while start != -1:
            seen += 1
            if seen == occurrence:
                return index, start
            start = paragraph.text.find(phrase, start + 1)
    return None


def _section_range_to_paragraph(
    paragraphs: Sequence[ParagraphInfo], start: int, end: int
) -> tuple[int, int, int] | None:
    """Map section offsets (paragraphs joined by newlines) into one paragraph."""

    if end <= start:
        return None
    offset = 0
    for index, paragraph in enumerate(paragraphs):
        length = len(paragraph.text)
        if offset <= start and end <= offset + length:
            return index, start - offset, end - offset
        offset += length + 1
    return None


def _previews(ops: Sequence[SectionDocOp], paragraphs: Sequence[ParagraphInfo]) -> list[ReplacementPreview]:
    previews: list[ReplacementPreview] = []
    for op in ops:
        if isinstance(op, ReplaceParagraphOp) and op.index < len(paragraphs):
            old_text = paragraphs[op.index].text
            previews.append(
                ReplacementPreview(
                    target_key=op.target_key,
                    index=op.index,
                    old_text=old_text,
                    new_text=op.new_text,
                    diff=compute_text_diff(old_text, op.new_text),
                )
            )
    return previews


def _failure(action: str | None, section_id: str | None, error: str, code: str) -> SectionAiResult:
    return SectionAiResult(
        success=False,
        action=action if action in VALID_ACTIONS else None,
        section_id=section_id,
        error=error,
        error_code=code,
        message=error,
    )


__all__ = [
    "BUSY_MESSAGE",
    "PendingDocOps",
    "SectionAiService",
    "VALID_ACTIONS",
    "normalize_section_id",
]
