"""Tests for intent and docops parsing and plan validation."""

from __future__ import annotations

import json

import pytest

from sectionai.models.docops import DocOpsPlan
from sectionai.schema import (
    DocOpsParseError,
    IntentParseError,
    count_ops_by_type,
    extract_paragraphs_from_plan,
    intent_ids_match,
    parse_canonical_intent,
    parse_doc_ops_plan,
    validate_doc_ops_plan,
)


def _intent(**overrides: object) -> dict[str, object]:
    payload: dict[str, object] = {
        "intentId": "i-1",
        "scope": {"sectionId": "h1"},
        "tasks": [{"type": "rewrite", "params": {"tone": "formal"}}],
        "confidence": 0.8,
    }
    payload.update(overrides)
    return payload


def _plan(*ops: dict[str, object], version: str = "1.0", intent_id: str = "i-1") -> dict[str, object]:
    return {"version": version, "intentId": intent_id, "ops": list(ops)}


def _replace(*texts: str, indices: list[int] | None = None) -> dict[str, object]:
    indices = indices if indices is not None else list(range(len(texts)))
    return {
        "type": "replace_range",
        "scope": {"sectionId": "h1"},
        "payload": {"paragraphs": [{"index": i, "text": t} for i, t in zip(indices, texts)]},
    }


def test_scope_target_is_inferred_from_section_id() -> None:
    intent = parse_canonical_intent(json.dumps(_intent()))

    assert intent.scope.target == "section"
    assert intent.scope.section_id == "h1"


def test_scope_without_details_targets_document() -> None:
    intent = parse_canonical_intent(_intent(scope={}))

    assert intent.scope.target == "document"


def test_explicit_section_target_requires_section_id() -> None:
    with pytest.raises(IntentParseError) as excinfo:
        parse_canonical_intent(_intent(scope={"target": "section"}))

    assert excinfo.value.report
    assert "raw" in excinfo.value.to_details()


def test_low_confidence_defaults_to_preview() -> None:
    assert parse_canonical_intent(_intent(confidence=0.3)).response_mode == "preview"
    assert parse_canonical_intent(_intent(confidence=0.5)).response_mode == "auto_apply"
    assert parse_canonical_intent(_intent(confidence=None)).response_mode == "auto_apply"


def test_explicit_response_mode_is_kept() -> None:
    intent = parse_canonical_intent(_intent(confidence=0.1, responseMode="clarify"))

    assert intent.response_mode == "clarify"


def test_legacy_task_aliases_map_to_highlight_terms() -> None:
    intent = parse_canonical_intent(
        _intent(tasks=[{"type": "mark_key_terms", "params": {"terms": [{"phrase": "Beta"}]}}])
    )

    assert intent.tasks[0].type == "highlight_terms"
    assert [term.phrase for term in intent.highlight_terms()] == ["Beta"]
    assert intent.highlight_terms()[0].occurrence == 1


def test_unknown_keys_are_preserved() -> None:
    intent = parse_canonical_intent(_intent(interactionMode="preview_then_apply"))

    assert intent.model_extra == {"interactionMode": "preview_then_apply"}


def test_invalid_json_reports_cause() -> None:
    with pytest.raises(IntentParseError) as excinfo:
        parse_canonical_intent("{not json")

    assert "not valid JSON" in excinfo.value.message
    assert excinfo.value.cause is not None
    assert excinfo.value.raw == "{not json"


def test_empty_task_list_is_rejected() -> None:
    with pytest.raises(IntentParseError):
        parse_canonical_intent(_intent(tasks=[]))


def test_doc_ops_plan_parses_bytes() -> None:
    plan = parse_doc_ops_plan(json.dumps(_plan(_replace("a", "b"))).encode("utf-8"))

    assert [p.text for p in extract_paragraphs_from_plan(plan)] == ["a", "b"]


def test_doc_ops_plan_with_unknown_op_type_fails() -> None:
    with pytest.raises(DocOpsParseError):
        parse_doc_ops_plan(_plan({"type": "explode", "scope": {"sectionId": "h1"}, "payload": {}}))


def test_validation_flags_version_and_duplicates_as_warnings() -> None:
    plan = parse_doc_ops_plan(_plan(_replace("a", "b", indices=[0, 0]), version="2.0"))

    validation = validate_doc_ops_plan(plan)

    assert validation.valid
    assert len(validation.warnings) == 2
    assert "2.0" in validation.warnings[0]
    assert "[0]" in validation.warnings[1]


def test_validation_requires_mark_offsets() -> None:
    plan = parse_doc_ops_plan(
        _plan(
            {
                "type": "apply_mark",
                "scope": {"sectionId": "h1", "startOffset": 4},
                "payload": {"markType": "bold"},
            }
        )
    )

    validation = validate_doc_ops_plan(plan)

    assert not validation.valid
    assert validation.errors == ["op[0]: apply_mark must include valid start/end offsets"]


def test_validation_rejects_empty_plan() -> None:
    plan = DocOpsPlan.model_construct(version="", intent_id="i-1", ops=[])

    validation = validate_doc_ops_plan(plan)

    assert validation.errors == ["Missing plan.version", "DocOps plan must include at least one op"]


def test_intent_ids_match_and_op_counts() -> None:
    intent = parse_canonical_intent(_intent())
    plan = parse_doc_ops_plan(
        _plan(
            _replace("a"),
            {"type": "add_comment", "scope": {"sectionId": "h1"}, "payload": {"comment": "check"}},
        )
    )
    other = parse_doc_ops_plan(_plan(_replace("a"), intent_id="other"))

    assert intent_ids_match(intent, plan)
    assert not intent_ids_match(intent, other)
    assert count_ops_by_type(plan) == {"replace_range": 1, "add_comment": 1}
