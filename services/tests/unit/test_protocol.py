"""Tests for splitting and validating three-block model responses."""

from __future__ import annotations

import json

import pytest

from conftest import protocol_response
from sectionai.protocol import (
    LlmParseError,
    parse_intent_only_response,
    parse_section_ai_response,
    strip_code_fence,
)


def test_parse_full_response() -> None:
    parsed = parse_section_ai_response(protocol_response(["First.", "Second."], assistant="Tightened both."))

    assert parsed.assistant_text == "Tightened both."
    assert parsed.intent.intent_id == "i-1"
    assert parsed.plan is not None
    assert [(p.index, p.text) for p in parsed.paragraphs] == [(0, "First."), (1, "Second.")]


def test_fenced_blocks_are_accepted() -> None:
    intent = {"intentId": "i-9", "scope": {"sectionId": "h1"}, "tasks": [{"type": "rewrite"}]}
    plan = {
        "version": "1.0",
        "intentId": "i-9",
        "ops": [
            {
                "type": "replace_range",
                "scope": {"sectionId": "h1"},
                "payload": {"paragraphs": [{"index": 0, "text": "Only."}]},
            }
        ],
    }
    text = (
        "[assistant]\nOk\n"
        f"[intent]\n```json\n{json.dumps(intent)}\n```\n"
        f"[docops]\n```json\n{json.dumps(plan)}\n```\n"
    )

    parsed = parse_section_ai_response(text)

    assert parsed.intent.intent_id == "i-9"
    assert parsed.paragraphs[0].text == "Only."


def test_missing_docops_marker_is_a_protocol_error() -> None:
    with pytest.raises(LlmParseError) as excinfo:
        parse_section_ai_response(protocol_response(None))

    assert excinfo.value.details == {"missing": ["[docops]"]}


def test_blocks_out_of_order_are_rejected() -> None:
    text = protocol_response(["a"])
    intent_part, docops_part = text.split("[docops]")
    reordered = "[docops]" + docops_part + intent_part

    with pytest.raises(LlmParseError, match="must follow"):
        parse_section_ai_response(reordered)


def test_intent_id_mismatch_is_rejected() -> None:
    text = protocol_response(["a"]).replace('"intentId": "i-1", "ops"', '"intentId": "other", "ops"')

    with pytest.raises(LlmParseError, match="intentId mismatch"):
        parse_section_ai_response(text)


def test_invalid_intent_json_names_the_block() -> None:
    text = "[assistant]\nhi\n[intent]\n{broken\n[docops]\n{}\n"

    with pytest.raises(LlmParseError) as excinfo:
        parse_section_ai_response(text)

    assert excinfo.value.message.startswith("Invalid [intent] block")
    assert excinfo.value.details["block"] == "intent"


def test_plan_without_replace_range_is_rejected_for_full_responses() -> None:
    mark = {
        "type": "apply_mark",
        "scope": {"sectionId": "h1", "startOffset": 0, "endOffset": 4},
        "payload": {"markType": "bold"},
    }

    with pytest.raises(LlmParseError, match="no replace_range paragraphs"):
        parse_section_ai_response(protocol_response(None, extra_ops=[mark]))


def test_intent_only_response_allows_missing_docops() -> None:
    parsed = parse_intent_only_response(
        protocol_response(None, task={"type": "highlight_terms", "params": {"terms": [{"phrase": "Beta"}]}})
    )

    assert parsed.plan is None
    assert parsed.paragraphs == []
    assert parsed.intent.highlight_terms()[0].phrase == "Beta"


def test_empty_response_is_rejected() -> None:
    with pytest.raises(LlmParseError, match="Empty model response"):
        parse_intent_only_response("   ")


def test_strip_code_fence() -> None:
    assert strip_code_fence("```json\n{\"a\": 1}\n```") == '{"a": 1}'
    assert strip_code_fence("  plain  ") == "plain"
