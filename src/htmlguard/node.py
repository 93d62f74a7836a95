"""Tree nodes built by the tree builder and rewritten by the transforms.

Nodes carry no parent pointers: the transform walker and the serializer keep
their own explicit stacks, so a tree can never contain a cycle.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class _StrEnum(str, Enum):
    """Backport of enum.StrEnum (Python 3.11+).

    We support Python 3.10+, so we use this small mixin instead.
    """


class AttrKind(_StrEnum):
    PLAIN = "plain"
    URL = "url"
    STYLE = "style"
    EVENT = "event"


@dataclass(slots=True)
class Attribute:
    """One attribute of an element.

    `value` is the decoded value (None for a bare attribute such as
    `checked`); `raw` is the value as it appeared in the source.
    """

    name: str
    value: str | None
    raw: str | None = None
    kind: AttrKind = AttrKind.PLAIN


class Node:
    __slots__ = ("name",)

    def __init__(self, name: str) -> None:
        self.name = name


class Fragment(Node):
    """Synthetic root holding the top-level nodes of a document."""

    __slots__ = ("children",)

    def __init__(self, children: list[Node] | None = None) -> None:
        super().__init__("#document-fragment")
        self.children: list[Node] = children if children is not None else []

    def append_child(self, node: Node) -> None:
        self.children.append(node)

    def __repr__(self) -> str:
        return f"<Fragment children={len(self.children)}>"


class Element(Node):
    """An element with insertion-ordered attributes and a list of children.

    `raw_start` is the source text of the start tag (None when the element was
    implied or created by a rewrite). `implied` marks elements the tree builder
    inserted on its own, such as the `li` wrapping stray list content.
    `unclosed` marks elements still open at end of input when balancing is off;
    they are serialized without an end tag.
    """

    __slots__ = ("attrs", "children", "implied", "raw_start", "unclosed")

    def __init__(
        self,
        name: str,
        attrs: dict[str, Attribute] | None = None,
        children: list[Node] | None = None,
        *,
        raw_start: str | None = None,
        implied: bool = False,
    ) -> None:
        super().__init__(name)
        self.attrs: dict[str, Attribute] = attrs if attrs is not None else {}
        self.children: list[Node] = children if children is not None else []
        self.raw_start = raw_start
        self.implied = implied
        self.unclosed = False

    def append_child(self, node: Node) -> None:
        self.children.append(node)

    def get_attr(self, name: str) -> str | None:
        attr = self.attrs.get(name)
        return attr.value if attr is not None else None

    def has_attr(self, name: str) -> bool:
        return name in self.attrs

    def set_attr(self, name: str, value: str | None, kind: AttrKind | None = None) -> None:
        attr = self.attrs.get(name)
        if attr is None:
            self.attrs[name] = Attribute(name, value, value, kind or AttrKind.PLAIN)
            return
        attr.value = value
        if kind is not None:
            attr.kind = kind

    def __repr__(self) -> str:
        return f"<Element {self.name} attrs={list(self.attrs)} children={len(self.children)}>"


class Text(Node):
    """A run of character data.

    `raw` text comes from a raw-text element (script, style, ...) and was never
    entity-decoded.
    """

    __slots__ = ("data", "raw")

    def __init__(self, data: str, raw: bool = False) -> None:
        super().__init__("#text")
        self.data = data
        self.raw = raw

    def __repr__(self) -> str:
        return f"<Text {self.data!r}>"


class Comment(Node):
    __slots__ = ("data",)

    def __init__(self, data: str) -> None:
        super().__init__("#comment")
        self.data = data

    def __repr__(self) -> str:
        return f"<Comment {self.data!r}>"


class CData(Node):
    __slots__ = ("data",)

    def __init__(self, data: str) -> None:
        super().__init__("#cdata")
        self.data = data

    def __repr__(self) -> str:
        return f"<CData {self.data!r}>"


ParentNode = Fragment | Element

__all__ = [
    "AttrKind",
    "Attribute",
    "CData",
    "Comment",
    "Element",
    "Fragment",
    "Node",
    "ParentNode",
    "Text",
]
