"""Tests for resolving anchors back to live ranges."""

from __future__ import annotations

import pytest

from sensenote.anchors.models import Anchor
from sensenote.anchors.resolve import find_offset, locate_anchor, materialize
from sensenote.document.dom import Document
from sensenote.document.linearize import LinearText, TextRun, linearize
from sensenote.errors import (
    AlreadyMaterialized,
    ResolutionMismatch,
    ResolutionNotFound,
)
from sensenote.highlight.wrapper import apply_highlight

URL = "https://example.com/article"


def _anchor(text: str, before: str = "", after: str = "", **kwargs) -> Anchor:
    return Anchor(
        exact_text=text,
        context_before=before,
        context_after=after,
        document_key=URL,
        **kwargs,
    )


class TestFindOffset:
    """Tests for find_offset()."""

    def test_context_disambiguates_repeated_text(self) -> None:
        text = "the cat sat. the cat ran."
        anchor = _anchor("cat", before="the ", after=" ran")
        assert find_offset(anchor, text) == 17

    def test_leftmost_without_context(self) -> None:
        assert find_offset(_anchor("cat"), "the cat sat. the cat ran.") == 4

    def test_falls_back_when_context_changed(self) -> None:
        anchor = _anchor("cat", before="a black ", after=" purred")
        assert find_offset(anchor, "the cat sat. the cat ran.") == 4

    def test_partial_context(self) -> None:
        anchor = _anchor("cat", after=" ran")
        assert find_offset(anchor, "the cat sat. the cat ran.") == 17

    def test_not_found(self) -> None:
        with pytest.raises(ResolutionNotFound, match="Text not found"):
            find_offset(_anchor("dog"), "the cat sat.")


class TestMaterialize:
    """Tests for materialize()."""

    def test_single_run(self) -> None:
        doc = Document.from_html("<p>Hello world</p>")
        rng = materialize(linearize(doc.root), 6, 11)
        assert rng.to_string() == "world"

    def test_span_across_runs(self) -> None:
        doc = Document.from_html("<p>Hello <b>bold</b> world</p>")
        rng = materialize(linearize(doc.root), 3, 13)
        assert rng.to_string() == "lo bold wo"

    def test_end_on_run_boundary_excludes_skipped_text(self) -> None:
        """Text skipped between runs never leaks into the range."""
        doc = Document.from_html("<p>abc<script>var x;</script>def</p>")
        linear = linearize(doc.root)
        assert linear.text == "abcdef"
        rng = materialize(linear, 0, 3)
        assert rng.to_string() == "abc"

    def test_to_end_of_text(self) -> None:
        doc = Document.from_html("<p>abc<b>def</b></p>")
        rng = materialize(linearize(doc.root), 3, 6)
        assert rng.to_string() == "def"

    def test_empty_span_rejected(self) -> None:
        doc = Document.from_html("<p>abc</p>")
        with pytest.raises(ValueError, match="Empty span"):
            materialize(linearize(doc.root), 2, 2)

    def test_outside_text_rejected(self) -> None:
        doc = Document.from_html("<p>abc</p>")
        with pytest.raises(ValueError, match="outside"):
            materialize(linearize(doc.root), 1, 9)


class TestLocateAnchor:
    """Tests for locate_anchor()."""

    def test_resolves_in_unchanged_document(self) -> None:
        doc = Document.from_html("<p>The quick brown fox.</p>")
        rng = locate_anchor(_anchor("quick", before="The ", after=" brown"), doc)
        assert rng.to_string() == "quick"

    def test_resolves_after_markup_changes(self) -> None:
        """Anchors survive re-rendering that only changes element structure."""
        doc = Document.from_html(
            "<div><p>The <em>quick</em> br</p><p>own fox.</p></div>"
        )
        rng = locate_anchor(_anchor("quick br", before="The ", after="own"), doc)
        assert rng.to_string() == "quick br"

    def test_resolves_after_text_inserted_elsewhere(self) -> None:
        doc = Document.from_html("<p>New intro. The quick brown fox.</p>")
        rng = locate_anchor(_anchor("quick", before="The ", after=" brown"), doc)
        assert rng.to_string() == "quick"
        assert rng.start.offset == 15

    def test_not_found(self) -> None:
        doc = Document.from_html("<p>Completely different.</p>")
        with pytest.raises(ResolutionNotFound) as exc_info:
            locate_anchor(_anchor("quick", id="hl-1-x"), doc)
        assert exc_info.value.highlight_id == "hl-1-x"

    def test_already_materialized_detected_before_search(self) -> None:
        doc = Document.from_html("<p>The quick brown fox.</p>")
        anchor = _anchor("quick")
        apply_highlight(doc, locate_anchor(anchor, doc), anchor.id)
        with pytest.raises(AlreadyMaterialized):
            locate_anchor(anchor, doc)

    def test_mismatch_when_linear_text_is_stale(self) -> None:
        """A run list that no longer matches its nodes fails verification."""
        doc = Document.from_html("<p>The QUICK brown fox.</p>")
        node = doc.soup.p.string
        linear = LinearText("The quick", [TextRun(0, node, 0, 9, "The quick")])
        with pytest.raises(ResolutionMismatch):
            locate_anchor(_anchor("quick"), doc, linear)

    def test_does_not_modify_anchor(self) -> None:
        doc = Document.from_html("<p>The quick brown fox.</p>")
        anchor = _anchor("quick", before="The ")
        before = anchor.model_dump()
        locate_anchor(anchor, doc)
        assert anchor.model_dump() == before
