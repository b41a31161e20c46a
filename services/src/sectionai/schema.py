"""Parsing and cross-field validation for the intent and docops contracts."""

from __future__ import annotations

import json
import logging
from collections import Counter
from typing import Any, Mapping

from pydantic import ValidationError

from .models.docops import (
    DOC_OPS_VERSION,
    ApplyMarkOp,
    DocOpsPlan,
    DocOpsValidation,
    PlanParagraph,
    ReplaceRangeOp,
)
from .models.intent import CanonicalIntent

LOGGER = logging.getLogger(__name__)

RAW_SNIPPET_LIMIT = 400


class SchemaParseError(ValueError):
    """Base error for payloads that fail JSON decoding or schema validation.

    ``raw`` holds the (possibly truncated) input, ``report`` the structured
    pydantic error list when validation failed, and ``cause`` the underlying
    exception otherwise.
    """

    def __init__(
        self,
        message: str,
        *,
        raw: str | None = None,
        report: list[dict[str, Any]] | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.raw = raw
        self.report = report or []
        self.cause = cause

    def to_details(self) -> dict[str, Any]:
        details: dict[str, Any] = {"raw": self.raw}
        if self.report:
            details["errors"] = self.report
        if self.cause is not None:
            details["cause"] = str(self.cause)
        return details


class IntentParseError(SchemaParseError):
    """Raised when an ``[intent]`` payload is not a valid CanonicalIntent."""


class DocOpsParseError(SchemaParseError):
    """Raised when a ``[docops]`` payload is not a valid DocOpsPlan."""


def _snippet(raw: Any) -> str:
    text = raw if isinstance(raw, str) else repr(raw)
    return text[:RAW_SNIPPET_LIMIT]


def _decode(raw: str | bytes | Mapping[str, Any], error_cls: type[SchemaParseError], label: str) -> Any:
    if isinstance(raw, Mapping):
        return dict(raw)
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8")
    if not isinstance(raw, str):
        raise error_cls(f"{label} payload must be a JSON string or object", raw=_snippet(raw))
    try:
        return json.loads(raw)
    except json.JSONDecodeError as exc:
        raise error_cls(f"{label} is not valid JSON: {exc.msg}", raw=_snippet(raw), cause=exc) from exc


def _report(exc: ValidationError) -> list[dict[str, Any]]:
    return [
        {"loc": list(error["loc"]), "msg": error["msg"], "type": error["type"]}
        for error in exc.errors()
    ]


def parse_canonical_intent(raw: str | bytes | Mapping[str, Any]) -> CanonicalIntent:
    """Decode and validate an intent payload, applying scope and mode defaults."""

    data = _decode(raw, IntentParseError, "Intent")
    try:
        return CanonicalIntent.model_validate(data)
    except ValidationError as exc:
        raise IntentParseError(
            "Intent failed schema validation",
            raw=_snippet(raw),
            report=_report(exc),
        ) from exc


def parse_doc_ops_plan(raw: str | bytes | Mapping[str, Any]) -> DocOpsPlan:
    """Decode and validate a docops payload."""

    data = _decode(raw, DocOpsParseError, "DocOps plan")
    try:
        return DocOpsPlan.model_validate(data)
    except ValidationError as exc:
        raise DocOpsParseError(
            "DocOps plan failed schema validation",
            raw=_snippet(raw),
            report=_report(exc),
        ) from exc


def validate_doc_ops_plan(plan: DocOpsPlan) -> DocOpsValidation:
    """Run the checks a parsed plan still needs before it can be acted on."""

    errors: list[str] = []
    warnings: list[str] = []

    if not plan.version:
        errors.append("Missing plan.version")
    elif plan.version != DOC_OPS_VERSION:
        warnings.append(f"Unexpected plan.version {plan.version!r}; expected {DOC_OPS_VERSION!r}")

    if not plan.ops:
        errors.append("DocOps plan must include at least one op")

    for position, op in enumerate(plan.ops):
        if isinstance(op, ReplaceRangeOp):
            paragraphs = op.payload.paragraphs
            if not paragraphs:
                errors.append(f"op[{position}]: replace_range payload must include paragraphs")
                continue
            duplicates = sorted(
                index for index, count in Counter(p.index for p in paragraphs).items() if count > 1
            )
            if duplicates:
                warnings.append(
                    f"op[{position}]: replace_range repeats paragraph indices {duplicates}"
                )
        elif isinstance(op, ApplyMarkOp):
            start, end = op.scope.start_offset, op.scope.end_offset
            if start is None or end is None or end < start:
                errors.append(f"op[{position}]: apply_mark must include valid start/end offsets")

    if warnings:
        LOGGER.info(
            "docops.validation_warnings",
            extra={"extra_payload": {"intent_id": plan.intent_id, "warnings": warnings}},
        )
    return DocOpsValidation(valid=not errors, errors=errors, warnings=warnings)


def intent_ids_match(intent: CanonicalIntent, plan: DocOpsPlan) -> bool:
    return not intent.intent_id or not plan.intent_id or intent.intent_id == plan.intent_id


def extract_paragraphs_from_plan(plan: DocOpsPlan) -> list[PlanParagraph]:
    """Return the paragraphs of the first ``replace_range`` op, if any."""

    for op in plan.ops:
        if isinstance(op, ReplaceRangeOp):
            return list(op.payload.paragraphs)
    return []


def count_ops_by_type(plan: DocOpsPlan) -> dict[str, int]:
    return dict(Counter(op.type for op in plan.ops))


__all__ = [
    "DocOpsParseError",
    "IntentParseError",
    "RAW_SNIPPET_LIMIT",
    "SchemaParseError",
    "count_ops_by_type",
    "extract_paragraphs_from_plan",
    "intent_ids_match",
    "parse_canonical_intent",
    "parse_doc_ops_plan",
    "validate_doc_ops_plan",
]
