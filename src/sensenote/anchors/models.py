"""Anchor record: the durable, serialisable description of a highlight.

Stored records use the camelCase keys of the original browser extension
(``text``, ``textBefore``, ``url`` ...); Python code uses the snake_case
field names. ``model_dump(by_alias=True)`` produces the stored form.
"""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from sensenote.anchors.identity import document_key, new_highlight_id
from sensenote.config import DEFAULT_PALETTE

DEFAULT_COLOR = DEFAULT_PALETTE["yellow"]
PREVIEW_LENGTH = 50


def _now() -> datetime:
    return datetime.now(UTC)


class Anchor(BaseModel):
    """A highlight's anchor plus the annotation fields carried with it.

    Resolution only reads ``exact_text``, ``context_before``,
    ``context_after`` and ``id``. The annotation fields (``note``,
    ``category``, ``favorite``, ``color``) belong to the editing UI and are
    carried through unchanged.
    """

    model_config = ConfigDict(populate_by_name=True, validate_assignment=True)

    id: str = Field(default_factory=new_highlight_id, frozen=True)
    exact_text: str = Field(alias="text")
    context_before: str = Field(default="", alias="textBefore")
    context_after: str = Field(default="", alias="textAfter")
    document_key: str = Field(alias="url")
    page_title: str = Field(default="", alias="pageTitle")
    captured_start_offset: int = Field(default=0, alias="startOffset")
    captured_end_offset: int = Field(default=0, alias="endOffset")

    color: str = DEFAULT_COLOR
    note: str = ""
    category: str = ""
    favorite: bool = False
    timestamp: datetime = Field(default_factory=_now)
    last_modified: datetime | None = Field(default=None, alias="lastModified")

    @field_validator("exact_text")
    @classmethod
    def _text_not_blank(cls, value: str) -> str:
        if not value.strip():
            msg = "Anchor text must not be empty"
            raise ValueError(msg)
        return value

    @field_validator("document_key")
    @classmethod
    def _strip_fragment(cls, value: str) -> str:
        return document_key(value)

    @property
    def preview(self) -> str:
        """Leading slice of the exact text, for logs and messages."""
        return self.exact_text[:PREVIEW_LENGTH]

    def to_record(self) -> dict:
        """Serialise to the stored (camelCase, JSON-safe) form."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
