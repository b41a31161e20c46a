"""Splitter for the three-block ``[assistant]/[intent]/[docops]`` response."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any

from .models.docops import DocOpsPlan, PlanParagraph
from .models.intent import CanonicalIntent
from .schema import (
    SchemaParseError,
    extract_paragraphs_from_plan,
    intent_ids_match,
    parse_canonical_intent,
    parse_doc_ops_plan,
    validate_doc_ops_plan,
)

LOGGER = logging.getLogger(__name__)

SNIPPET_LIMIT = 400
SEGMENT_SNIPPET_LIMIT = 200

_INTENT_MARKER = re.compile(r"\[intent\]", re.IGNORECASE)
_DOCOPS_MARKER = re.compile(r"\[docops\]", re.IGNORECASE)
_ASSISTANT_MARKER = re.compile(r"^\s*\[assistant\]", re.IGNORECASE)
_CODE_FENCE = re.compile(r"^```[a-zA-Z0-9_-]*\s*\n?(.*?)\n?```$", re.DOTALL)


class LlmParseError(ValueError):
    """Protocol-level failure while reading a model response."""

    def __init__(self, message: str, *, raw_snippet: str = "", details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.raw_snippet = raw_snippet
        self.details = details or {}


@dataclass(frozen=True)
class ParsedSectionAiResponse:
    assistant_text: str
    intent: CanonicalIntent
    plan: DocOpsPlan | None
    paragraphs: list[PlanParagraph] = field(default_factory=list)


def strip_code_fence(segment: str) -> str:
    """Remove a surrounding Markdown code fence, if the model added one."""

    stripped = segment.strip()
    match = _CODE_FENCE.match(stripped)
    if match:
        return match.group(1).strip()
    return stripped


def _assistant_text(head: str) -> str:
    return _ASSISTANT_MARKER.sub("", head, count=1).strip()


def _parse_intent_segment(segment: str, raw: str) -> CanonicalIntent:
    cleaned = strip_code_fence(segment)
    if not cleaned:
        raise LlmParseError("Empty [intent] block", raw_snippet=raw[:SNIPPET_LIMIT])
    try:
        return parse_canonical_intent(cleaned)
    except SchemaParseError as exc:
        raise LlmParseError(
            f"Invalid [intent] block: {exc.message}",
            raw_snippet=cleaned[:SEGMENT_SNIPPET_LIMIT],
            details={"block": "intent", **exc.to_details()},
        ) from exc


def _parse_docops_segment(segment: str, raw: str, intent: CanonicalIntent) -> DocOpsPlan:
    cleaned = strip_code_fence(segment)
    if not cleaned:
        raise LlmParseError("Empty [docops] block", raw_snippet=raw[:SNIPPET_LIMIT])
    try:
        plan = parse_doc_ops_plan(cleaned)
    except SchemaParseError as exc:
        raise LlmParseError(
            f"Invalid [docops] block: {exc.message}",
            raw_snippet=cleaned[:SEGMENT_SNIPPET_LIMIT],
            details={"block": "docops", **exc.to_details()},
        ) from exc

    validation = validate_doc_ops_plan(plan)
    if not validation.valid:
        raise LlmParseError(
            "DocOps plan failed validation: " + "; ".join(validation.errors),
            raw_snippet=cleaned[:SEGMENT_SNIPPET_LIMIT],
            details={"block": "docops", "errors": validation.errors},
        )
    if not intent_ids_match(intent, plan):
        raise LlmParseError(
            "intentId mismatch between [intent] and [docops]",
            raw_snippet=raw[:SNIPPET_LIMIT],
            details={"intent_id": intent.intent_id, "plan_intent_id": plan.intent_id},
        )
    return plan


def parse_section_ai_response(text: str) -> ParsedSectionAiResponse:
    """Parse a full response whose plan must carry ``replace_range`` paragraphs."""

    if not isinstance(text, str) or not text.strip():
        raise LlmParseError("Empty model response")

    intent_match = _INTENT_MARKER.search(text)
    docops_match = _DOCOPS_MARKER.search(text)
    if intent_match is None or docops_match is None:
        missing = [name for name, match in (("[intent]", intent_match), ("[docops]", docops_match)) if match is None]
        raise LlmParseError(
            f"Missing block markers: {', '.join(missing)}",
            raw_snippet=text[:SNIPPET_LIMIT],
            details={"missing": missing},
        )
    if docops_match.start() < intent_match.end():
        raise LlmParseError(
            "[docops] block must follow [intent] block",
            raw_snippet=text[:SNIPPET_LIMIT],
        )

    assistant = _assistant_text(text[: intent_match.start()])
    intent = _parse_intent_segment(text[intent_match.end() : docops_match.start()], text)
    plan = _parse_docops_segment(text[docops_match.end() :], text, intent)

    paragraphs = extract_paragraphs_from_plan(plan)
    if not paragraphs:
        raise LlmParseError(
            "DocOps plan has no replace_range paragraphs",
            raw_snippet=text[:SNIPPET_LIMIT],
            details={"op_types": [op.type for op in plan.ops]},
        )

    LOGGER.debug(
        "protocol.parsed",
        extra={
            "extra_payload": {
                "intent_id": intent.intent_id,
                "response_mode": intent.response_mode,
                "paragraphs": len(paragraphs),
            }
        },
    )
    return ParsedSectionAiResponse(
        assistant_text=assistant,
        intent=intent,
        plan=plan,
        paragraphs=paragraphs,
    )


def parse_intent_only_response(text: str) -> ParsedSectionAiResponse:
    """Parse a response where the ``[docops]`` block is optional."""

    if not isinstance(text, str) or not text.strip():
        raise LlmParseError("Empty model response")

    intent_match = _INTENT_MARKER.search(text)
    if intent_match is None:
        raise LlmParseError(
            "Missing block markers: [intent]",
            raw_snippet=text[:SNIPPET_LIMIT],
            details={"missing": ["[intent]"]},
        )

    docops_match = _DOCOPS_MARKER.search(text, intent_match.end())
    if docops_match is None and _DOCOPS_MARKER.search(text) is not None:
        raise LlmParseError(
            "[docops] block must follow [intent] block",
            raw_snippet=text[:SNIPPET_LIMIT],
        )

    intent_end = docops_match.start() if docops_match else len(text)
    assistant = _assistant_text(text[: intent_match.start()])
    intent = _parse_intent_segment(text[intent_match.end() : intent_end], text)

    plan: DocOpsPlan | None = None
    if docops_match is not None and text[docops_match.end() :].strip():
        plan = _parse_docops_segment(text[docops_match.end() :], text, intent)

    return ParsedSectionAiResponse(
        assistant_text=assistant,
        intent=intent,
        plan=plan,
        paragraphs=extract_paragraphs_from_plan(plan) if plan else [],
    )


__all__ = [
    "LlmParseError",
    "ParsedSectionAiResponse",
    "parse_intent_only_response",
    "parse_section_ai_response",
    "strip_code_fence",
]
