from __future__ import annotations

import json
import string

from hypothesis import given, settings, strategies as st

from conftest import SAMPLE_BLOCKS
from sectionai.diff_engine import build_section_doc_ops_diff
from sectionai.document import InMemoryDocument
from sectionai.models.intent import PREVIEW_CONFIDENCE_THRESHOLD
from sectionai.models.section import DiffContext, ParagraphInfo
from sectionai.repair import repair_rewrite_section_paragraphs_with_details
from sectionai.schema import parse_canonical_intent

PARAGRAPH_TEXT = st.text(alphabet=string.ascii_letters + string.digits + " .,", min_size=1, max_size=40).filter(
    str.strip
)


@settings(deadline=None)
@given(st.lists(PARAGRAPH_TEXT, min_size=1, max_size=6))
def test_applied_diff_matches_the_proposal(proposed: list[str]) -> None:
    document = InMemoryDocument(SAMPLE_BLOCKS)
    context = document.extract_section_context("h1")

    report = document.apply_ops(build_section_doc_ops_diff(context, proposed, mode="expand"))

    assert report.success
    assert [p.text for p in document.extract_section_context("h1").own_paragraphs] == proposed


@settings(deadline=None)
@given(
    st.integers(min_value=0, max_value=5),
    st.lists(
        st.fixed_dictionaries(
            {
                "index": st.one_of(st.integers(min_value=-2, max_value=8), st.none(), st.text(max_size=2)),
                "text": st.one_of(PARAGRAPH_TEXT, st.just(""), st.none()),
            }
        ),
        max_size=8,
    ),
)
def test_repair_always_returns_one_paragraph_per_original(original_count: int, entries: list[dict]) -> None:
    context = DiffContext(
        section_id="s",
        paragraphs=[ParagraphInfo(node_key=f"k{i}", text=f"orig {i}") for i in range(original_count)],
    )

    result = repair_rewrite_section_paragraphs_with_details(context, entries)

    assert [p.index for p in result.paragraphs] == list(range(original_count))
    assert result.repair_details.target_count == original_count
    for index in result.repair_details.fallback_indices:
        assert result.paragraphs[index].text == f"orig {index}"
    assert result.repair_details.valid_new_count + len(result.repair_details.fallback_indices) == original_count


@settings(deadline=None)
@given(
    st.one_of(st.none(), st.floats(min_value=0.0, max_value=1.0)),
    st.sampled_from(["rewrite", "summarize", "mark_key_terms"]),
    st.one_of(st.none(), st.just("h1")),
)
def test_intent_parsing_is_idempotent(confidence: float | None, task_type: str, section_id: str | None) -> None:
    payload: dict[str, object] = {"intentId": "i-1", "scope": {"sectionId": section_id}, "tasks": [{"type": task_type}]}
    if confidence is not None:
        payload["confidence"] = confidence

    first = parse_canonical_intent(json.dumps(payload))
    second = parse_canonical_intent(first.to_wire())

    assert second == first
    expected = "preview" if confidence is not None and confidence < PREVIEW_CONFIDENCE_THRESHOLD else "auto_apply"
    assert first.response_mode == expected
