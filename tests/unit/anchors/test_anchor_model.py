"""Tests for the Anchor record model."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest
from pydantic import ValidationError

from sensenote.anchors.models import DEFAULT_COLOR, Anchor


class TestAnchor:
    """Tests for Anchor validation and serialisation."""

    def test_defaults(self) -> None:
        anchor = Anchor(exact_text="quick", document_key="https://a.com/x")
        assert anchor.id.startswith("hl-")
        assert anchor.color == DEFAULT_COLOR
        assert anchor.context_before == ""
        assert anchor.note == ""
        assert anchor.favorite is False
        assert anchor.last_modified is None

    def test_fragment_removed_from_document_key(self) -> None:
        anchor = Anchor(exact_text="x", document_key="https://a.com/x#sensenote-1")
        assert anchor.document_key == "https://a.com/x"

    def test_blank_text_rejected(self) -> None:
        with pytest.raises(ValidationError, match="must not be empty"):
            Anchor(exact_text="   ", document_key="https://a.com/x")

    def test_id_is_immutable(self) -> None:
        anchor = Anchor(exact_text="x", document_key="https://a.com/x")
        with pytest.raises(ValidationError):
            anchor.id = "hl-other"

    def test_record_uses_stored_keys(self) -> None:
        anchor = Anchor(
            id="hl-1-abc",
            exact_text="quick",
            context_before="The ",
            context_after=" brown",
            document_key="https://a.com/x",
            page_title="Page",
            captured_start_offset=4,
            captured_end_offset=9,
            timestamp=datetime(2024, 1, 2, 3, 4, 5, tzinfo=UTC),
        )
        record = anchor.to_record()
        assert record["text"] == "quick"
        assert record["textBefore"] == "The "
        assert record["textAfter"] == " brown"
        assert record["url"] == "https://a.com/x"
        assert record["pageTitle"] == "Page"
        assert record["startOffset"] == 4
        assert record["endOffset"] == 9
        assert record["timestamp"].startswith("2024-01-02T03:04:05")
        assert "lastModified" not in record

    def test_loads_stored_record(self) -> None:
        record = {
            "id": "hl-1-abc",
            "text": "quick",
            "textBefore": "The ",
            "textAfter": " brown",
            "url": "https://a.com/x",
            "pageTitle": "Page",
            "startOffset": 4,
            "endOffset": 9,
            "color": "#90caf9",
            "note": "n",
            "category": "c",
            "favorite": True,
            "timestamp": "2024-01-02T03:04:05.000Z",
            "lastModified": "2024-01-03T00:00:00.000Z",
        }
        anchor = Anchor.model_validate(record)
        assert anchor.exact_text == "quick"
        assert anchor.favorite is True
        assert anchor.last_modified == datetime(2024, 1, 3, tzinfo=UTC)
        assert Anchor.model_validate(anchor.to_record()) == anchor

    def test_preview(self) -> None:
        anchor = Anchor(exact_text="x" * 80, document_key="https://a.com/x")
        assert anchor.preview == "x" * 50
