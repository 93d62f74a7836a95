"""Sanitization policy: option parsing, rule tables and value checks.

`resolve_policy()` turns a `Config` plus an override spec into an immutable
`SanitizationPolicy`. All string mini-languages are parsed here, once; a
malformed one raises `ConfigError` so filtering never runs with a half-parsed
policy. The transform compiler (`htmlguard.transforms`) expands the policy into
decide and attribute-rewrite chains that use the checks below.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .config import Config, coerce_config
from .constants import DEFAULT_SCHEMES, DROP_CONTENT_ELEMENTS, KNOWN_ELEMENTS, SAFE_DENIED_ELEMENTS, SAFE_SCHEMES
from .entities import deep_unescape
from .errors import ConfigError
from .overrides import AttrConstraint, OverrideRule, compile_overrides, parse_overrides, split_hyphenated
from .strict import STRICT_NAMES
from .transforms_spec import DecideAction

if TYPE_CHECKING:
    from typing import Any


# -----------------
# Element rules
# -----------------

_ELEMENT_TOKEN = re.compile(r"([+\-]?)(\*|[a-z][a-z0-9]*)")
_WHITESPACE = re.compile(r"\s+")
_NAMED_ELEMENTS = KNOWN_ELEMENTS | DROP_CONTENT_ELEMENTS | {"*"}


@dataclass(frozen=True, slots=True)
class ElementRuleTable:
    """Ordered `(allow, name)` rules and the element set they evaluate to.

    Rules apply left to right starting from nothing allowed, so the last rule
    naming an element decides. `*` stands for every known element.
    """

    rules: tuple[tuple[bool, str], ...]
    allowed: frozenset[str] = field(init=False)

    def __post_init__(self) -> None:
        allowed: set[str] = set()
        for allow, name in self.rules:
            names = KNOWN_ELEMENTS if name == "*" else (name,)
            if allow:
                allowed.update(names)
            else:
                allowed.difference_update(names)
        object.__setattr__(self, "allowed", frozenset(allowed))

    def allows(self, name: str) -> bool:
        return name in self.allowed

    def without(self, names: frozenset[str]) -> ElementRuleTable:
        return ElementRuleTable(self.rules + tuple((False, n) for n in sorted(names)))


def parse_element_rules(text: str) -> ElementRuleTable:
    compact = _WHITESPACE.sub("", text).lower()
    if not compact:
        raise ConfigError("empty element specification", option="elements")
    rules: list[tuple[bool, str]] = []
    pos = 0
    while pos < len(compact):
        if compact[pos] == ",":
            pos += 1
            continue
        m = _ELEMENT_TOKEN.match(compact, pos)
        if m is None:
            raise ConfigError(f"unexpected {compact[pos]!r}", option="elements", position=pos)
        allow, name = m.group(1) != "-", m.group(2)
        # `a-b` denies b after allowing a; after a custom name the '-' could
        # just as well be part of the name.
        if allow and name not in _NAMED_ELEMENTS and compact.startswith("-", m.end()):
            raise ConfigError(
                f"ambiguous '-' after element {name!r}; hyphenated names are not supported, separate rules with ','",
                option="elements",
                position=m.end(),
            )
        rules.append((allow, name))
        pos = m.end()
    return ElementRuleTable(tuple(rules))


# -----------------
# Attribute deny list
# -----------------

_ATTR_PATTERN = re.compile(r"^[a-z0-9_:.\-*?]+$")


def parse_deny_attribute(text: str) -> tuple[tuple[str, ...], frozenset[str]]:
    """Parse `deny_attribute` into glob patterns and the names exempt from them.

    `on*, style` denies matching names; `* -title -href` denies every name
    except the listed ones.
    """
    compact = _WHITESPACE.sub("", text).lower()
    if not compact:
        return (), frozenset()
    if compact == "*" or compact.startswith("*-"):
        keep = frozenset(split_hyphenated(compact[2:]))
        return ("*",), keep
    patterns: list[str] = []
    for pattern in compact.split(","):
        if not pattern:
            continue
        if not _ATTR_PATTERN.match(pattern):
            raise ConfigError(f"invalid attribute pattern {pattern!r}", option="deny_attribute")
        patterns.append(pattern)
    return tuple(patterns), frozenset()


# -----------------
# URL schemes
# -----------------

_SCHEME_NAME = re.compile(r"^(?:[a-z][a-z0-9+.\-]*|\*|!)$")


@dataclass(frozen=True, slots=True)
class SchemeTable:
    """Allowed URL schemes per attribute name.

    A None entry allows any scheme; the `*` key is the fallback for attributes
    without an entry of their own. Relative URLs are always allowed.
    """

    by_attr: Mapping[str, frozenset[str] | None]

    def allows(self, attr: str, scheme: str) -> bool:
        if attr in self.by_attr:
            schemes = self.by_attr[attr]
        else:
            schemes = self.by_attr.get("*", frozenset())
        return schemes is None or scheme in schemes


def parse_schemes(text: str) -> SchemeTable:
    table: dict[str, frozenset[str] | None] = {}
    for part in text.split(";"):
        part = part.strip()
        if not part:
            continue
        keys, sep, values = part.rpartition(":")
        if not sep or not keys.strip():
            raise ConfigError(f"expected 'attribute: schemes', got {part!r}", option="schemes")
        schemes: set[str] = set()
        for scheme in values.split(","):
            scheme = scheme.strip().lower()
            if not scheme:
                continue
            if not _SCHEME_NAME.match(scheme):
                raise ConfigError(f"invalid scheme {scheme!r}", option="schemes")
            schemes.add(scheme)
        entry: frozenset[str] | None
        if "*" in schemes:
            entry = None
        elif "!" in schemes:
            entry = frozenset()
        else:
            entry = frozenset(schemes)
        for key in keys.split(","):
            key = key.strip().lower()
            if not key:
                raise ConfigError(f"missing attribute name in {part!r}", option="schemes")
            table[key] = entry
    return SchemeTable(table)


# Whitespace, controls and invisible characters browsers skip inside URLs.
_URL_IGNORED = re.compile("[\x00-\x20\x7f-\x9f\u00a0\u1680\u180e\u2000-\u200f\u2028-\u202f\u205f-\u206f\u3000\ufeff]")
_URL_SCHEME = re.compile(r"^([a-z][a-z0-9+.\-]*):")
_URL_HEAD_END = re.compile(r"[/?#]")


def url_scheme(value: str) -> str | None:
    """Return the scheme of a URL, "" for a relative URL, None if unparseable.

    The value is probed after repeated entity decoding and with whitespace and
    control characters removed, the way a browser would read it.
    """
    probe = _URL_IGNORED.sub("", deep_unescape(value)).lower()
    m = _URL_HEAD_END.search(probe)
    head = probe[: m.start()] if m else probe
    if ":" not in head:
        return ""
    m = _URL_SCHEME.match(head)
    if m is None:
        return None
    return m.group(1)


def is_url_allowed(attr: str, value: str, tables: tuple[SchemeTable, ...]) -> bool:
    scheme = url_scheme(value)
    if scheme is None:
        return False
    if not scheme:
        return True
    return all(table.allows(attr, scheme) for table in tables)


def is_srcset_allowed(value: str, tables: tuple[SchemeTable, ...]) -> bool:
    for candidate in value.split(","):
        candidate = candidate.strip()
        if not candidate:
            continue
        url = candidate.split()[0]
        if not is_url_allowed("srcset", url, tables):
            return False
    return True


# -----------------
# Inline CSS
# -----------------

_CSS_COMMENT = re.compile(r"/\*.*?(?:\*/|$)", re.DOTALL)
_CSS_ESCAPE = re.compile(r"\\([0-9a-fA-F]{1,6})[ \t\n\r\f]?|\\(.)", re.DOTALL)
_CSS_IGNORED = re.compile(r"[\s\x00-\x1f\x7f]+")
_CSS_DANGEROUS = re.compile(
    r"expression\(|javascript:|vbscript:|livescript:|-moz-binding|behaviou?r:|@import",
)
_CSS_URL = re.compile(r"url\(([^)]*)\)?")


def _decode_css_escape(m: re.Match[str]) -> str:
    hex_digits, other = m.group(1), m.group(2)
    if hex_digits is None:
        return "" if other == "\n" else other
    code = int(hex_digits, 16)
    if code == 0 or code > 0x10FFFF or 0xD800 <= code <= 0xDFFF:
        return "\ufffd"
    return chr(code)


def normalize_css(value: str) -> str:
    """Lowercased CSS with comments, escapes and whitespace removed, for matching only."""
    text = deep_unescape(value)
    for _ in range(3):
        decoded = _CSS_ESCAPE.sub(_decode_css_escape, _CSS_COMMENT.sub("", text))
        if decoded == text:
            break
        text = decoded
    return _CSS_IGNORED.sub("", text).lower()


def is_style_safe(value: str, *, css_expression: bool, tables: tuple[SchemeTable, ...]) -> bool:
    css = normalize_css(value)
    if css_expression and _CSS_DANGEROUS.search(css):
        return False
    for m in _CSS_URL.finditer(css):
        if not is_url_allowed("style", m.group(1).strip("'\""), tables):
            return False
    return True


# -----------------
# Policy
# -----------------


@dataclass(frozen=True, slots=True)
class SanitizationPolicy:
    """A resolved, immutable filtering policy.

    Built by `resolve_policy()`; the `safe` profile is already folded in, so
    consumers never look at `config.safe` themselves.
    """

    config: Config
    elements: ElementRuleTable
    deny_patterns: tuple[str, ...]
    deny_keep: frozenset[str]
    deny_events: bool
    scheme_tables: tuple[SchemeTable, ...]
    override_rules: tuple[OverrideRule, ...]
    overrides: Mapping[str, Mapping[str, AttrConstraint]]
    css_expression: bool
    comment_mode: int
    cdata_mode: int

    @property
    def allowed_elements(self) -> frozenset[str]:
        return self.elements.allowed

    @property
    def report(self) -> Any:
        return self.config.report

    def element_action(self, name: str) -> DecideAction:
        """What happens to an element named `name`.

        With strict tags on, deprecated names are judged by the name they are
        converted to. Disallowed `script` and `style` always lose their content;
        other disallowed elements follow `keep_bad`.
        """
        if self.config.strict_tags:
            name = STRICT_NAMES.get(name, name)
        if name in self.elements.allowed:
            return DecideAction.KEEP
        keep_bad = self.config.keep_bad
        if name in DROP_CONTENT_ELEMENTS or keep_bad == 0:
            return DecideAction.DROP
        if keep_bad % 2:
            return DecideAction.ESCAPE
        return DecideAction.UNWRAP


def resolve_policy(config: Config | Mapping[str, Any] | None = None, spec: str = "") -> SanitizationPolicy:
    """Resolve options and an override spec into a `SanitizationPolicy`."""
    config = coerce_config(config)
    if not isinstance(spec, str):
        raise ConfigError(f"expected a string, got {type(spec).__name__}", option="spec")

    elements = parse_element_rules(config.elements)
    if config.safe:
        elements = elements.without(SAFE_DENIED_ELEMENTS)

    deny_patterns, deny_keep = parse_deny_attribute(config.deny_attribute)

    tables = [parse_schemes(DEFAULT_SCHEMES if config.schemes is None else config.schemes)]
    if config.safe:
        tables.append(parse_schemes(SAFE_SCHEMES))

    rules = parse_overrides(spec)
    return SanitizationPolicy(
        config=config,
        elements=elements,
        deny_patterns=deny_patterns,
        deny_keep=deny_keep,
        deny_events=config.safe,
        scheme_tables=tuple(tables),
        override_rules=rules,
        overrides=compile_overrides(rules),
        css_expression=config.css_expression or config.safe,
        comment_mode=config.comment_mode,
        cdata_mode=config.cdata_mode,
    )


__all__ = [
    "ElementRuleTable",
    "SanitizationPolicy",
    "SchemeTable",
    "is_srcset_allowed",
    "is_style_safe",
    "is_url_allowed",
    "normalize_css",
    "parse_deny_attribute",
    "parse_element_rules",
    "parse_schemes",
    "resolve_policy",
    "url_scheme",
]
