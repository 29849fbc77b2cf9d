"""Dataclasses for request-scoped gateway types."""
from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Union

@dataclass(frozen=True)
class UploadedFile:
    """A file stored for the lifetime of one request."""
    path: Path
    original_name: str
    mime_type: str


@dataclass(frozen=True)
class TextPart:
    text: str

    def to_dict(self) -> dict[str, Any]:
        return {"text": self.text}


@dataclass(frozen=True)
class InlineDataPart:
    """Binary content sent inline; ``data`` is base64 text."""
    mime_type: str
    data: str

    def to_dict(self) -> dict[str, Any]:
        return {"inlineData": {"mimeType": self.mime_type, "data": self.data}}


ContentPart = Union[TextPart, InlineDataPart]


def build_parts(prompt: str | None, attachment: InlineDataPart | None = None) -> list[ContentPart]:
    """
    Order a prompt and an attachment into content parts.

    Args:
        prompt: Text prompt; omitted when empty or None.
        attachment: Inline binary part, placed after the text.
    """
    parts: list[ContentPart] = []
    if prompt:
        parts.append(TextPart(prompt))
    if attachment is not None:
        parts.append(attachment)
    return parts
