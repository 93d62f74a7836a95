"""Per-element attribute overrides.

An override spec is a small language, for example::

    object=-classid-type, -codebase; embed=type(oneof=application/x-shockwave-flash)

`-name` removes an attribute for the element(s), a bare `name` allows it there,
and `name(param=value/param=value)` allows it with value constraints. Several
elements may share a rule (`a, area=rel(oneof=nofollow)`). For one element and
attribute the last rule wins.

Parameters: `oneof`, `noneof` (values split on `|`, or on `,` when there is no
`|`), `maxlen`, `minlen`, `maxval`, `minval`, `match`, `nomatch` (Python
regular expressions, optionally written as `/pattern/flags`) and `default`
(used instead of a value that fails the constraints; without it the attribute
is dropped).
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from .constants import HYPHENATED_ATTRIBUTES
from .errors import ConfigError

_ELEMENT_NAME = re.compile(r"[A-Za-z][A-Za-z0-9]*")
_ATTR_NAME = re.compile(r"[A-Za-z_:][A-Za-z0-9_:.\-]*")
_PARAM_NAME = re.compile(r"[a-z]+")
_PARAM_START = re.compile(r"[a-z]+\s*=")
_WHITESPACE = re.compile(r"\s*")
_REGEX_LITERAL = re.compile(r"^/(.*)/([imsx]*)$", re.DOTALL)
_REGEX_FLAGS = {"i": re.IGNORECASE, "m": re.MULTILINE, "s": re.DOTALL, "x": re.VERBOSE}

_PARAMS = frozenset({"default", "match", "maxlen", "maxval", "minlen", "minval", "nomatch", "noneof", "oneof"})

_JOINED_PREFIXES = ("aria", "data")


def split_hyphenated(text: str) -> list[str]:
    """Split `a-b-c` into attribute names, keeping real hyphenated names whole.

    `accept-charset` and `http-equiv` stay one name; `data`/`aria` join the
    part that follows them (`data-id`).
    """
    parts = text.split("-")
    names: list[str] = []
    i = 0
    while i < len(parts):
        part = parts[i]
        if i + 1 < len(parts) and (part in _JOINED_PREFIXES or f"{part}-{parts[i + 1]}" in HYPHENATED_ATTRIBUTES):
            part = f"{part}-{parts[i + 1]}"
            i += 1
        if part:
            names.append(part)
        i += 1
    return names


@dataclass(frozen=True, slots=True)
class AttrConstraint:
    """What an override does to one attribute of one element."""

    remove: bool = False
    oneof: tuple[str, ...] | None = None
    noneof: tuple[str, ...] | None = None
    maxlen: int | None = None
    minlen: int | None = None
    maxval: float | None = None
    minval: float | None = None
    match: re.Pattern[str] | None = None
    nomatch: re.Pattern[str] | None = None
    default: str | None = None

    @property
    def restricted(self) -> bool:
        return (
            self.oneof is not None
            or self.noneof is not None
            or self.maxlen is not None
            or self.minlen is not None
            or self.maxval is not None
            or self.minval is not None
            or self.match is not None
            or self.nomatch is not None
        )

    def accepts(self, value: str) -> bool:
        if self.oneof is not None and value not in self.oneof:
            return False
        if self.noneof is not None and value in self.noneof:
            return False
        if self.maxlen is not None and len(value) > self.maxlen:
            return False
        if self.minlen is not None and len(value) < self.minlen:
            return False
        if self.maxval is not None or self.minval is not None:
            try:
                number = float(value)
            except ValueError:
                return False
            if self.maxval is not None and number > self.maxval:
                return False
            if self.minval is not None and number < self.minval:
                return False
        if self.match is not None and not self.match.search(value):
            return False
        if self.nomatch is not None and self.nomatch.search(value):
            return False
        return True

    def filter_value(self, value: str | None) -> tuple[bool, str | None]:
        """Return `(keep, value)` for an attribute value.

        A bare attribute is checked as the empty string.
        """
        if self.remove:
            return False, None
        if not self.restricted:
            return True, value
        if self.accepts(value.strip() if value is not None else ""):
            return True, value
        if self.default is not None:
            return True, self.default
        return False, None


@dataclass(frozen=True, slots=True)
class OverrideRule:
    element: str
    attribute: str
    constraint: AttrConstraint


class _OverrideParser:
    __slots__ = ("length", "pos", "text")

    def __init__(self, text: str) -> None:
        self.text = text
        self.length = len(text)
        self.pos = 0

    def error(self, message: str, position: int | None = None) -> ConfigError:
        return ConfigError(message, option="spec", position=self.pos if position is None else position)

    def parse(self) -> list[OverrideRule]:
        rules: list[OverrideRule] = []
        self._skip_ws()
        while self.pos < self.length:
            if self._peek() == ";":
                self.pos += 1
                self._skip_ws()
                continue
            rules.extend(self._parse_rule())
            self._skip_ws()
            if self.pos < self.length:
                self._expect(";")
                self._skip_ws()
        return rules

    # -----------------
    # Grammar
    # -----------------

    def _parse_rule(self) -> list[OverrideRule]:
        elements = [self._parse_name(_ELEMENT_NAME, "element name")]
        self._skip_ws()
        while self._peek() == ",":
            self.pos += 1
            self._skip_ws()
            elements.append(self._parse_name(_ELEMENT_NAME, "element name"))
            self._skip_ws()
        self._expect("=")

        items: list[tuple[str, AttrConstraint]] = []
        while True:
            self._skip_ws()
            c = self._peek()
            if c is None or c == ";":
                break
            if c == ",":
                self.pos += 1
                continue
            items.extend(self._parse_item())
        if not items:
            raise self.error("rule has no attributes")
        return [OverrideRule(element, name, constraint) for element in elements for name, constraint in items]

    def _parse_item(self) -> list[tuple[str, AttrConstraint]]:
        if self._peek() == "-":
            self.pos += 1
            name = self._parse_name(_ATTR_NAME, "attribute name")
            removal = AttrConstraint(remove=True)
            return [(n, removal) for n in split_hyphenated(name)]

        name = self._parse_name(_ATTR_NAME, "attribute name")
        self._skip_ws()
        if self._peek() == "(":
            self.pos += 1
            return [(name, self._parse_params())]
        return [(name, AttrConstraint())]

    def _parse_params(self) -> AttrConstraint:
        params: dict[str, object] = {}
        while True:
            self._skip_ws()
            c = self._peek()
            if c is None:
                raise self.error("unterminated parameter list")
            if c == ")":
                self.pos += 1
                return AttrConstraint(**params)
            if c == "/":
                self.pos += 1
                continue
            start = self.pos
            m = _PARAM_NAME.match(self.text, self.pos)
            if m is None:
                raise self.error("expected a parameter name")
            key = m.group()
            if key not in _PARAMS:
                raise self.error(f"unknown parameter '{key}'", start)
            self.pos = m.end()
            self._skip_ws()
            self._expect("=")
            params[key] = self._convert(key, self._read_value(), start)

    def _read_value(self) -> str:
        text = self.text
        chars: list[str] = []
        depth = 0
        while self.pos < self.length:
            c = text[self.pos]
            if c == "\\" and self.pos + 1 < self.length:
                chars.append(text[self.pos : self.pos + 2])
                self.pos += 2
                continue
            if c == "(":
                depth += 1
            elif c == ")":
                if depth == 0:
                    break
                depth -= 1
            elif c == "/" and depth == 0 and _PARAM_START.match(text, self.pos + 1):
                break
            chars.append(c)
            self.pos += 1
        else:
            raise self.error("unterminated parameter list")
        return "".join(chars).strip()

    def _convert(self, key: str, value: str, position: int) -> object:
        if key in ("oneof", "noneof"):
            sep = "|" if "|" in value else ","
            return tuple(v.strip() for v in value.split(sep) if v.strip())
        if key in ("maxlen", "minlen"):
            try:
                return int(value)
            except ValueError:
                raise self.error(f"'{key}' needs an integer, got {value!r}", position) from None
        if key in ("maxval", "minval"):
            try:
                return float(value)
            except ValueError:
                raise self.error(f"'{key}' needs a number, got {value!r}", position) from None
        if key in ("match", "nomatch"):
            pattern = value
            flags = 0
            m = _REGEX_LITERAL.match(value)
            if m:
                pattern = m.group(1)
                for flag in m.group(2):
                    flags |= _REGEX_FLAGS[flag]
            try:
                return re.compile(pattern, flags)
            except re.error as exc:
                raise self.error(f"invalid regular expression {value!r}: {exc}", position) from None
        return value

    # -----------------
    # Lexing helpers
    # -----------------

    def _peek(self) -> str | None:
        if self.pos < self.length:
            return self.text[self.pos]
        return None

    def _skip_ws(self) -> None:
        m = _WHITESPACE.match(self.text, self.pos)
        if m:
            self.pos = m.end()

    def _expect(self, char: str) -> None:
        if self._peek() != char:
            found = self._peek()
            raise self.error(f"expected '{char}', found {'end of input' if found is None else repr(found)}")
        self.pos += 1

    def _parse_name(self, pattern: re.Pattern[str], what: str) -> str:
        m = pattern.match(self.text, self.pos)
        if m is None:
            raise self.error(f"expected {what}")
        self.pos = m.end()
        return m.group().lower()


def parse_overrides(text: str) -> tuple[OverrideRule, ...]:
    """Parse an override spec; raises ConfigError with the failing position."""
    if not text or not text.strip():
        return ()
    return tuple(_OverrideParser(text).parse())


def compile_overrides(rules: tuple[OverrideRule, ...]) -> dict[str, dict[str, AttrConstraint]]:
    table: dict[str, dict[str, AttrConstraint]] = {}
    for rule in rules:
        table.setdefault(rule.element, {})[rule.attribute] = rule.constraint
    return table


__all__ = ["AttrConstraint", "OverrideRule", "compile_overrides", "parse_overrides", "split_hyphenated"]
