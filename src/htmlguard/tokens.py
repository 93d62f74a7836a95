"""Lexical tokens produced by the tokenizer."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import ClassVar


@dataclass(slots=True)
class Tag:
    """A start or end tag.

    `attrs` keeps attributes in source order; a duplicate name keeps its first
    value. A bare attribute (`<input checked>`) has the value None.
    `raw` is the exact source text of the tag.
    """

    START: ClassVar[int] = 0
    END: ClassVar[int] = 1

    kind: int
    name: str
    attrs: dict[str, str | None] = field(default_factory=dict)
    self_closing: bool = False
    raw: str = ""


@dataclass(slots=True)
class CharacterTokens:
    """A run of text.

    `raw` is True for the content of raw-text elements (script, style, ...):
    character references in it are not decoded.
    """

    data: str
    raw: bool = False


@dataclass(slots=True)
class CommentToken:
    data: str


@dataclass(slots=True)
class CDataToken:
    data: str


@dataclass(slots=True)
class DeclarationToken:
    """`<!DOCTYPE ...>`, `<!foo>` or `<?...>`; `data` excludes the delimiters."""

    data: str


Token = Tag | CharacterTokens | CommentToken | CDataToken | DeclarationToken
