"""Unit tests for the paragraph diff and text diff helpers."""

from __future__ import annotations

import pytest

from sectionai.diff_engine import (
    SectionDiffError,
    build_section_doc_ops_diff,
    compute_text_diff,
    count_doc_ops,
    diff_mode_for_action,
    is_doc_ops_empty,
)
from sectionai.document import InMemoryDocument
from sectionai.models.section import DiffContext, LlmParagraph, ParagraphInfo
from sectionai.models.section_ops import DeleteParagraphOp, InsertParagraphAfterOp, ReplaceParagraphOp


def _context(*texts: str, style: dict[str, object] | None = None) -> DiffContext:
    return DiffContext(
        section_id="s1",
        paragraphs=[ParagraphInfo(node_key=f"k{i}", text=text, style=style) for i, text in enumerate(texts)],
    )


def test_identical_proposal_produces_no_ops() -> None:
    ops = build_section_doc_ops_diff(_context("a", "b"), ["a", "b"])

    assert ops == []
    assert is_doc_ops_empty(ops)


def test_whitespace_changes_count_as_changes() -> None:
    ops = build_section_doc_ops_diff(_context("a ", "b"), ["a", "b"])

    assert [op.target_key for op in ops] == ["k0"]


def test_changed_paragraph_becomes_style_preserving_replace() -> None:
    ops = build_section_doc_ops_diff(
        _context("a", "b", "c"),
        [LlmParagraph(index=0, text="a"), {"index": 1, "text": "B"}, "c"],
    )

    assert ops == [ReplaceParagraphOp(target_key="k1", new_text="B", preserve_style=True, index=1)]


def test_shrinking_emits_replaces_then_descending_deletes() -> None:
    ops = build_section_doc_ops_diff(_context("a", "b", "c", "d"), ["A"])

    assert [type(op) for op in ops] == [ReplaceParagraphOp, DeleteParagraphOp, DeleteParagraphOp, DeleteParagraphOp]
    assert [op.index for op in ops[1:]] == [3, 2, 1]


def test_rewrite_with_the_same_count_only_replaces() -> None:
    ops = build_section_doc_ops_diff(
        _context("A", "B", "C"),
        [{"index": 0, "text": "A'"}, {"index": 1, "text": "B'"}, {"index": 2, "text": "C'"}],
        mode="rewrite",
    )

    counts = count_doc_ops(ops)
    assert (counts.replace, counts.insert, counts.delete) == (3, 0, 0)


def test_summarize_with_fewer_paragraphs_deletes_the_tail() -> None:
    ops = build_section_doc_ops_diff(
        _context("A", "B", "C"),
        [{"index": 0, "text": "S1"}, {"index": 1, "text": "S2"}],
        mode="summarize",
    )

    assert [type(op) for op in ops] == [ReplaceParagraphOp, ReplaceParagraphOp, DeleteParagraphOp]
    assert ops[2].index == 2
    assert ops[2].target_key == "k2"


def test_growth_inserts_after_last_original_with_its_style() -> None:
    ops = build_section_doc_ops_diff(_context("a", "b", style={"align": "left"}), ["a", "b", "c", "d"], mode="expand")

    assert all(isinstance(op, InsertParagraphAfterOp) for op in ops)
    assert [(op.reference_key, op.new_text, op.index) for op in ops] == [("k1", "c", 2), ("k1", "d", 3)]
    assert ops[0].style == {"align": "left"}


def test_summarize_growth_is_truncated(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level("WARNING", logger="sectionai.diff_engine"):
        ops = build_section_doc_ops_diff(_context("a", "b"), ["x", "y", "z"], mode="summarize")

    assert count_doc_ops(ops).insert == 0
    assert count_doc_ops(ops).replace == 2
    assert any(record.getMessage() == "diff.summarize_growth" for record in caplog.records)


def test_summarize_growth_raises_when_strict() -> None:
    with pytest.raises(SectionDiffError) as excinfo:
        build_section_doc_ops_diff(_context("a"), ["x", "y"], mode="summarize", strict=True)

    assert (excinfo.value.old_length, excinfo.value.new_length, excinfo.value.mode) == (1, 2, "summarize")
    assert excinfo.value.section_id == "s1"


@pytest.mark.parametrize(
    ("mode", "proposed"),
    [
        ("expand", [{"index": 1, "text": "B+"}, {"index": 2, "text": "tail"}]),
        ("summarize", [{"index": 0, "text": "S1"}, {"index": 2, "text": "S2"}]),
        ("rewrite", [LlmParagraph(index=1, text="b"), LlmParagraph(index=0, text="a")]),
    ],
)
def test_indices_out_of_position_are_rejected(mode: str, proposed: list[object]) -> None:
    with pytest.raises(SectionDiffError) as excinfo:
        build_section_doc_ops_diff(_context("a", "b", "c"), proposed, mode=mode)

    assert excinfo.value.mode == mode
    assert "indices must run 0..n-1" in str(excinfo.value)


def test_empty_section_cannot_anchor_inserts() -> None:
    assert build_section_doc_ops_diff(_context(), ["new"], mode="expand") == []


def test_count_doc_ops_totals() -> None:
    ops = build_section_doc_ops_diff(_context("a", "b", "c"), ["A"])

    counts = count_doc_ops(ops)

    assert (counts.replace, counts.delete, counts.insert, counts.mark) == (1, 2, 0, 0)
    assert counts.total == 3


def test_diff_mode_for_action() -> None:
    assert diff_mode_for_action("summarize") == "summarize"
    with pytest.raises(ValueError):
        diff_mode_for_action("highlight")


@pytest.mark.parametrize(
    "proposed",
    [
        ["Alpha rewritten.", "Beta two."],
        ["Only one now."],
        ["One.", "Two.", "Three.", "Four."],
        ["Alpha   one. Second sentence.", "Beta two."],
    ],
)
def test_applying_the_diff_reproduces_the_proposal(document: InMemoryDocument, proposed: list[str]) -> None:
    context = document.extract_section_context("h1")

    report = document.apply_ops(build_section_doc_ops_diff(context, proposed, mode="expand"))

    assert report.success
    assert report.skipped_count == 0
    assert [p.text for p in document.extract_section_context("h1").own_paragraphs] == proposed


def test_compute_text_diff_insert_only() -> None:
    result = compute_text_diff("abc", "abcXYZ").model_dump(mode="json")

    assert result["added"] == [{"range": [3, 3], "text": "XYZ"}]
    assert result["removed"] == []
    assert result["changed"] == []
    assert result["anchors"] == {"left": 3, "right": 0}


def test_compute_text_diff_delete_only() -> None:
    result = compute_text_diff("abcXYZ", "abc").model_dump(mode="json")

    assert result["removed"] == [{"range": [3, 6]}]
    assert result["anchors"] == {"left": 3, "right": 0}


def test_compute_text_diff_replace_only() -> None:
    result = compute_text_diff("cat", "dog").model_dump(mode="json")

    assert result["changed"] == [{"range": [0, 3], "replacement": "dog"}]
    assert result["anchors"] == {"left": 0, "right": 0}


def test_compute_text_diff_empty_inputs() -> None:
    result = compute_text_diff("", "")

    assert (result.added, result.removed, result.changed) == ([], [], [])
    assert (result.anchors.left, result.anchors.right) == (0, 0)
