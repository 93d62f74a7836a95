"""Character reference decoding and output escaping.

Text and attribute values are decoded exactly once, when the tree is built,
and re-encoded by the serializer. Policy checks that must see through
double-encoded payloads (URL and CSS probes) use `deep_unescape()` on a copy.
"""

from __future__ import annotations

import html
import re

_INVALID_CHARS = re.compile("[\x00-\x08\x0b\x0e-\x1f\x7f]")

# Windows-1252 bytes 0x80-0x9f that show up as C1 code points after a wrong
# Latin-1 decode. Undefined slots map to "".
_MS_CHARS_UNICODE: dict[int, str] = {
    0x80: "€",
    0x81: "",
    0x82: "‚",
    0x83: "ƒ",
    0x84: "„",
    0x85: "…",
    0x86: "†",
    0x87: "‡",
    0x88: "ˆ",
    0x89: "‰",
    0x8A: "Š",
    0x8B: "‹",
    0x8C: "Œ",
    0x8D: "",
    0x8E: "Ž",
    0x8F: "",
    0x90: "",
    0x91: "‘",
    0x92: "’",
    0x93: "“",
    0x94: "”",
    0x95: "•",
    0x96: "–",
    0x97: "—",
    0x98: "˜",
    0x99: "™",
    0x9A: "š",
    0x9B: "›",
    0x9C: "œ",
    0x9D: "",
    0x9E: "ž",
    0x9F: "Ÿ",
}

_MS_CHARS_ASCII: dict[int, str] = {
    **_MS_CHARS_UNICODE,
    0x82: ",",
    0x84: ",,",
    0x85: "...",
    0x88: "^",
    0x8B: "<",
    0x91: "'",
    0x92: "'",
    0x93: '"',
    0x94: '"',
    0x95: "*",
    0x96: "-",
    0x97: "--",
    0x98: "~",
    0x99: "TM",
    0x9B: ">",
}

_MS_CHAR_RUN = re.compile("[\x80-\x9f]")


def decode_entities(text: str) -> str:
    """Decode numeric and named character references once."""
    if "&" not in text:
        return text
    return html.unescape(text)


def deep_unescape(text: str, *, rounds: int = 4) -> str:
    """Decode repeatedly until the value stops changing (bounded)."""
    for _ in range(rounds):
        if "&" not in text:
            break
        decoded = html.unescape(text)
        if decoded == text:
            break
        text = decoded
    return text


def escape_text(text: str) -> str:
    if "&" in text:
        text = text.replace("&", "&amp;")
    if "<" in text:
        text = text.replace("<", "&lt;")
    if ">" in text:
        text = text.replace(">", "&gt;")
    return text


def escape_attr_value(value: str) -> str:
    return escape_text(value).replace('"', "&quot;")


def strip_invalid_chars(text: str) -> str:
    """Remove C0 controls other than tab, LF, FF and CR, and DEL."""
    return _INVALID_CHARS.sub("", text)


def clean_ms_chars(text: str, mode: int) -> str:
    """Map Windows-1252 C1 characters to Unicode (`mode=1`) or ASCII look-alikes (`mode=2`)."""
    if not mode:
        return text
    table = _MS_CHARS_ASCII if mode == 2 else _MS_CHARS_UNICODE
    return _MS_CHAR_RUN.sub(lambda m: table[ord(m.group())], text)


__all__ = [
    "clean_ms_chars",
    "decode_entities",
    "deep_unescape",
    "escape_attr_value",
    "escape_text",
    "strip_invalid_chars",
]
