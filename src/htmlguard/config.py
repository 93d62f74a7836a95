"""Filter configuration.

`Config` is an immutable value object. Its constructor checks and normalizes
every option so a `Config` that exists is always well-typed; the string
mini-languages (`elements`, `deny_attribute`, `schemes`) are parsed later, by
`resolve_policy()`, which raises `ConfigError` on malformed input as well.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, fields
from typing import TYPE_CHECKING

from .errors import ConfigError

if TYPE_CHECKING:
    from typing import Any, Protocol

    class ReportCallback(Protocol):
        def __call__(self, msg: str, *, node: Any | None = None) -> None: ...


def _flag(option: str, value: object) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    raise ConfigError(f"expected a boolean or 0/1, got {value!r}", option=option)


def _choice(option: str, value: object, allowed: tuple[int, ...]) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value not in allowed:
        choices = ", ".join(str(a) for a in allowed)
        raise ConfigError(f"expected one of {choices}, got {value!r}", option=option)
    return value


def _text(option: str, value: object) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ConfigError(f"expected a string, got {type(value).__name__}", option=option)
    return value


def _positive(option: str, value: object) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ConfigError(f"expected a positive integer, got {value!r}", option=option)
    return value


def _regex(option: str, pattern: str) -> str:
    try:
        re.compile(pattern)
    except re.error as exc:
        raise ConfigError(f"invalid regular expression {pattern!r}: {exc}", option=option) from None
    return pattern


@dataclass(frozen=True, slots=True)
class Config:
    """Options controlling one filter.

    `comment` and `cdata` default to None, meaning "3 (keep), or 0 under
    `safe`". `schemes` defaults to None, meaning the built-in scheme table.
    """

    safe: bool
    elements: str
    deny_attribute: str
    schemes: str | None
    comment: int | None
    cdata: int | None
    css_expression: bool
    balance: bool
    direct_list_nest: bool
    keep_bad: int
    unique_ids: bool | str
    valid_xhtml: bool
    anti_link_spam: tuple[str, str] | None
    anti_mail_spam: str
    abs_url: int
    base_url: str
    clean_ms_char: int
    lc_std_val: bool
    make_tag_strict: bool
    no_deprecated_attr: int
    max_input_length: int
    max_depth: int
    report: ReportCallback | None

    def __init__(
        self,
        *,
        safe: bool = False,
        elements: str = "*",
        deny_attribute: str = "",
        schemes: str | None = None,
        comment: int | None = None,
        cdata: int | None = None,
        css_expression: bool = True,
        balance: bool = True,
        direct_list_nest: bool = False,
        keep_bad: int = 6,
        unique_ids: bool | int | str = False,
        valid_xhtml: bool = False,
        anti_link_spam: tuple[str, str] | list[str] | None = None,
        anti_mail_spam: str | None = "",
        abs_url: int = 0,
        base_url: str = "",
        clean_ms_char: int = 0,
        lc_std_val: bool = True,
        make_tag_strict: bool = False,
        no_deprecated_attr: int = 0,
        max_input_length: int = 1_000_000,
        max_depth: int = 256,
        report: ReportCallback | None = None,
    ) -> None:
        object.__setattr__(self, "safe", _flag("safe", safe))
        object.__setattr__(self, "elements", _text("elements", elements).strip() or "*")
        object.__setattr__(self, "deny_attribute", _text("deny_attribute", deny_attribute))
        object.__setattr__(self, "schemes", None if schemes is None else _text("schemes", schemes))
        object.__setattr__(self, "comment", None if comment is None else _choice("comment", comment, (0, 1, 2, 3)))
        object.__setattr__(self, "cdata", None if cdata is None else _choice("cdata", cdata, (0, 1, 2, 3)))
        object.__setattr__(self, "css_expression", _flag("css_expression", css_expression))
        object.__setattr__(self, "balance", _flag("balance", balance))
        object.__setattr__(self, "direct_list_nest", _flag("direct_list_nest", direct_list_nest))
        object.__setattr__(self, "keep_bad", _choice("keep_bad", keep_bad, (0, 1, 2, 3, 4, 5, 6)))

        if isinstance(unique_ids, str):
            prefix = unique_ids.strip()
            if prefix and not re.match(r"^[A-Za-z][A-Za-z0-9_:.\-]*$", prefix):
                raise ConfigError(f"prefix {unique_ids!r} is not a valid id start", option="unique_ids")
            object.__setattr__(self, "unique_ids", prefix or False)
        else:
            object.__setattr__(self, "unique_ids", _flag("unique_ids", unique_ids))

        object.__setattr__(self, "valid_xhtml", _flag("valid_xhtml", valid_xhtml))

        if anti_link_spam is None:
            object.__setattr__(self, "anti_link_spam", None)
        else:
            if isinstance(anti_link_spam, str) or len(anti_link_spam) != 2:
                raise ConfigError(
                    "expected a pair (nofollow_pattern, deny_pattern)",
                    option="anti_link_spam",
                )
            follow, deny = (_regex("anti_link_spam", _text("anti_link_spam", p)) for p in anti_link_spam)
            object.__setattr__(self, "anti_link_spam", (follow, deny) if follow or deny else None)

        object.__setattr__(self, "anti_mail_spam", _text("anti_mail_spam", anti_mail_spam or ""))
        object.__setattr__(self, "abs_url", _choice("abs_url", abs_url, (-1, 0, 1)))
        object.__setattr__(self, "base_url", _text("base_url", base_url).strip())
        if self.abs_url and not self.base_url:
            raise ConfigError("abs_url needs a base_url", option="abs_url")
        object.__setattr__(self, "clean_ms_char", _choice("clean_ms_char", clean_ms_char, (0, 1, 2)))
        object.__setattr__(self, "lc_std_val", _flag("lc_std_val", lc_std_val))
        object.__setattr__(self, "make_tag_strict", _flag("make_tag_strict", make_tag_strict))
        object.__setattr__(
            self, "no_deprecated_attr", _choice("no_deprecated_attr", no_deprecated_attr, (0, 1, 2))
        )
        object.__setattr__(self, "max_input_length", _positive("max_input_length", max_input_length))
        object.__setattr__(self, "max_depth", _positive("max_depth", max_depth))
        if report is not None and not callable(report):
            raise ConfigError("expected a callable", option="report")
        object.__setattr__(self, "report", report)

    @classmethod
    def from_options(cls, options: Mapping[str, Any]) -> Config:
        """Build a Config from a plain mapping of option names to values."""
        known = {f.name for f in fields(cls)}
        for name in options:
            if name not in known:
                raise ConfigError(f"Unknown option '{name}'")
        return cls(**options)

    @property
    def comment_mode(self) -> int:
        if self.safe and self.comment != 1:
            return 0
        return 3 if self.comment is None else self.comment

    @property
    def cdata_mode(self) -> int:
        if self.safe and self.cdata != 1:
            return 0
        return 3 if self.cdata is None else self.cdata

    @property
    def strict_tags(self) -> bool:
        return self.make_tag_strict or self.valid_xhtml


def coerce_config(config: Config | Mapping[str, Any] | None) -> Config:
    if config is None:
        return Config()
    if isinstance(config, Config):
        return config
    if isinstance(config, Mapping):
        return Config.from_options(config)
    raise ConfigError(f"expected a Config or a mapping, got {type(config).__name__}")


__all__ = ["Config", "coerce_config"]
