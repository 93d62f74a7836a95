"""Serialize a filtered tree back to HTML.

Serialization is a pure, deterministic read of the tree. Every attribute value
is double-quoted and escaped; `<` and `>` are escaped in comments and CDATA so
no markup can be smuggled through them.
"""

from __future__ import annotations

import re

from .constants import BOOLEAN_ATTRIBUTES, RAWTEXT_ELEMENTS, VOID_ELEMENTS
from .entities import escape_attr_value, escape_text
from .node import CData, Comment, Element, Fragment, Node, Text

_VALID_ATTR_NAME = re.compile(r"^[a-z_:][a-z0-9_:.\-]*$")
_DASH_RUN = re.compile(r"-{2,}")
_SCRIPT_OPEN = re.compile(r"<(?=\s*/?\s*script)", re.IGNORECASE)
_raw_end_patterns: dict[str, re.Pattern[str]] = {}


def _raw_end_pattern(name: str) -> re.Pattern[str]:
    pattern = _raw_end_patterns.get(name)
    if pattern is None:
        pattern = re.compile(r"</(" + re.escape(name) + ")", re.IGNORECASE)
        _raw_end_patterns[name] = pattern
    return pattern


def serialize_raw_text(data: str, parent_name: str) -> str:
    """Raw-text content with anything that could close its element or open a script neutralized."""
    data = _raw_end_pattern(parent_name).sub(r"<\\/\1", data)
    return _SCRIPT_OPEN.sub(r"<\\", data)


def serialize_comment_data(data: str) -> str:
    data = _DASH_RUN.sub("-", data)
    if not data.endswith(" "):
        data += " "
    return data.replace("<", "&lt;").replace(">", "&gt;")


def serialize_start_tag(element: Element, *, xhtml: bool = False) -> str:
    parts = ["<", element.name]
    for attr in element.attrs.values():
        name = attr.name
        if not _VALID_ATTR_NAME.match(name):
            continue
        parts.append(" ")
        parts.append(name)
        if attr.value is None:
            if xhtml:
                # XHTML has no minimized attributes.
                parts.append(f'="{name}"' if name in BOOLEAN_ATTRIBUTES else '=""')
            continue
        parts.append('="')
        parts.append(escape_attr_value(attr.value))
        parts.append('"')
    if xhtml and element.name in VOID_ELEMENTS:
        parts.append(" />")
    else:
        parts.append(">")
    return "".join(parts)


def serialize_end_tag(name: str) -> str:
    return f"</{name}>"


def to_html(root: Node, *, xhtml: bool = False) -> str:
    """Serialize `root` (a fragment or any node) to an HTML string."""
    out: list[str] = []
    # Work items: (node, parent name) to open, or an end-tag string to emit.
    stack: list[tuple[Node, str] | str] = []
    if type(root) is Fragment:
        stack.extend((child, "") for child in reversed(root.children))
    else:
        stack.append((root, ""))

    while stack:
        item = stack.pop()
        if type(item) is str:
            out.append(item)
            continue
        node, parent_name = item
        kind = type(node)
        if kind is Text:
            if parent_name in RAWTEXT_ELEMENTS:
                out.append(serialize_raw_text(node.data, parent_name))
            else:
                out.append(escape_text(node.data))
            continue
        if kind is Element:
            name = node.name
            out.append(serialize_start_tag(node, xhtml=xhtml))
            if name in VOID_ELEMENTS:
                continue
            if not node.unclosed:
                stack.append(serialize_end_tag(name))
            stack.extend((child, name) for child in reversed(node.children))
            continue
        if kind is Comment:
            out.append(f"<!--{serialize_comment_data(node.data)}-->")
            continue
        if kind is CData:
            data = node.data.replace("<", "&lt;").replace(">", "&gt;")
            out.append(f"<![CDATA[{data}]]>")
            continue
        if kind is Fragment:
            stack.extend((child, parent_name) for child in reversed(node.children))
    return "".join(out)


__all__ = ["serialize_end_tag", "serialize_start_tag", "to_html"]
