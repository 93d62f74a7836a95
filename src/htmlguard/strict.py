"""Rewrite presentational markup into CSS.

`make_tag_strict()` renames deprecated elements (`center`, `font`, ...) to their
strict equivalents; `convert_deprecated_attrs()` folds deprecated attributes
(`align`, `bgcolor`, ...) into the `style` attribute. Both run before the
element and attribute checks, so the generated style still goes through the
inline-CSS check.
"""

from __future__ import annotations

import re

from .constants import ATTRIBUTE_ELEMENTS, FONT_SIZES
from .node import AttrKind, Element

STRICT_NAMES: dict[str, str] = {
    "center": "div",
    "dir": "ul",
    "font": "span",
    "menu": "ul",
    "s": "span",
    "strike": "span",
    "u": "span",
}
STRICT_TAGS: frozenset[str] = frozenset(STRICT_NAMES)
DEPRECATED_ATTRIBUTES: frozenset[str] = frozenset(
    {
        "align",
        "bgcolor",
        "border",
        "clear",
        "color",
        "compact",
        "face",
        "height",
        "hspace",
        "noshade",
        "nowrap",
        "size",
        "vspace",
        "width",
    }
)

_PIXELS = re.compile(r"^\d+$")
_LENGTH = re.compile(r"^\d+(?:\.\d+)?%?$")
_EMBEDDED = frozenset({"applet", "iframe", "img", "input", "object"})
_VERTICAL_ALIGN = {
    "absbottom": "bottom",
    "absmiddle": "middle",
    "baseline": "baseline",
    "bottom": "bottom",
    "middle": "middle",
    "texttop": "text-top",
    "top": "top",
}


def prepend_style(element: Element, declarations: str) -> None:
    if not declarations:
        return
    existing = element.get_attr("style")
    value = f"{declarations} {existing}" if existing and existing.strip() else declarations
    element.set_attr("style", value, AttrKind.STYLE)


def _font_declarations(color: str | None, face: str | None, size: str | None) -> list[str]:
    decls: list[str] = []
    if color and color.strip():
        decls.append(f"color: {color.strip()};")
    if face and face.strip():
        decls.append(f"font-family: {face.strip()};")
    if size is not None and size.strip() in FONT_SIZES:
        decls.append(f"font-size: {FONT_SIZES[size.strip()]};")
    return decls


def make_tag_strict(element: Element) -> str | None:
    """Convert a deprecated element in place; return its old name, or None."""
    name = element.name
    if name not in STRICT_TAGS:
        return None
    if name == "center":
        element.name = "div"
        prepend_style(element, "text-align: center;")
    elif name in ("dir", "menu"):
        element.name = "ul"
    elif name == "font":
        attrs = element.attrs
        color = attrs.pop("color", None)
        face = attrs.pop("face", None)
        size = attrs.pop("size", None)
        decls = _font_declarations(
            color.value if color else None,
            face.value if face else None,
            size.value if size else None,
        )
        element.name = "span"
        prepend_style(element, " ".join(decls))
    elif name in ("s", "strike"):
        element.name = "span"
        prepend_style(element, "text-decoration: line-through;")
    else:
        element.name = "span"
        prepend_style(element, "text-decoration: underline;")
    return name


def _length(value: str) -> str | None:
    if _PIXELS.match(value):
        return f"{value}px"
    if _LENGTH.match(value):
        return value
    return None


def _css_for(tag: str, attr: str, value: str) -> str | None:
    """CSS replacing one deprecated attribute.

    None leaves the attribute alone; "" drops it without replacement.
    """
    lowered = value.lower()
    if attr == "align":
        if tag in _EMBEDDED:
            if lowered in ("left", "right"):
                return f"float: {lowered};"
            if lowered in _VERTICAL_ALIGN:
                return f"vertical-align: {_VERTICAL_ALIGN[lowered]};"
            return ""
        if tag == "table":
            if lowered in ("left", "right"):
                return f"float: {lowered};"
            if lowered == "center":
                return "margin-left: auto; margin-right: auto;"
            return ""
        if lowered in ("center", "justify", "left", "right"):
            return f"text-align: {lowered};"
        return ""
    if attr == "bgcolor":
        return f"background-color: {value};" if value else ""
    if attr == "border":
        if tag == "table":
            return None
        return f"border-style: solid; border-width: {value}px;" if _PIXELS.match(value) else ""
    if attr == "clear":
        if lowered in ("left", "right"):
            return f"clear: {lowered};"
        if lowered == "all":
            return "clear: both;"
        return ""
    if attr == "compact":
        return "font-size: 85%;"
    if attr in ("height", "width"):
        if tag not in ("td", "th"):
            return None
        length = _length(value)
        return f"{attr}: {length};" if length else ""
    if attr in ("hspace", "vspace"):
        if not _PIXELS.match(value):
            return ""
        sides = ("left", "right") if attr == "hspace" else ("top", "bottom")
        return " ".join(f"margin-{side}: {value}px;" for side in sides)
    if attr == "noshade":
        return "border-style: none; border: 0; background-color: gray; color: gray;"
    if attr == "nowrap":
        return "white-space: nowrap;"
    if attr == "size":
        if tag == "hr":
            return f"height: {value}px;" if _PIXELS.match(value) else ""
        if tag == "font":
            return " ".join(_font_declarations(None, None, value))
        return None
    if attr == "color":
        return f"color: {value};" if value else ""
    if attr == "face":
        return f"font-family: {value};" if value else ""
    return None  # pragma: no cover


def convert_deprecated_attrs(element: Element, level: int) -> list[str]:
    """Fold deprecated attributes into `style`; return the converted names.

    Only attributes the element actually defined in HTML 4 are converted.
    `level` 2 also renames `lang` to `xml:lang`.
    """
    tag = element.name
    attrs = element.attrs
    converted: list[str] = []
    decls: list[str] = []
    for name in list(attrs):
        if name not in DEPRECATED_ATTRIBUTES or tag not in ATTRIBUTE_ELEMENTS.get(name, ()):
            continue
        value = attrs[name].value
        css = _css_for(tag, name, (value or "").strip())
        if css is None:
            continue
        del attrs[name]
        converted.append(name)
        if css:
            decls.append(css)
    prepend_style(element, " ".join(decls))

    if level >= 2 and "lang" in attrs:
        lang = attrs.pop("lang")
        converted.append("lang")
        if "xml:lang" not in attrs:
            element.set_attr("xml:lang", lang.value)
    return converted


__all__ = [
    "DEPRECATED_ATTRIBUTES",
    "STRICT_NAMES",
    "STRICT_TAGS",
    "convert_deprecated_attrs",
    "make_tag_strict",
    "prepend_style",
]
