"""Public entry points: `HtmlFilter` and `filter_html()`."""

from __future__ import annotations

from typing import TYPE_CHECKING

from .config import coerce_config
from .entities import clean_ms_chars, strip_invalid_chars
from .errors import InputTooLargeError
from .sanitize import resolve_policy
from .serialize import to_html
from .tokenizer import Tokenizer
from .transforms import apply_compiled_transforms, compile_transforms
from .transforms_spec import Sanitize
from .treebuilder import TreeBuilder

if TYPE_CHECKING:
    from collections.abc import Mapping
    from typing import Any

    from .config import Config
    from .node import Fragment
    from .sanitize import SanitizationPolicy
    from .transforms import CompiledTransform


class HtmlFilter:
    """A reusable filter.

    The configuration and override spec are resolved and compiled once, in the
    constructor, so a malformed option raises `ConfigError` here and never
    while filtering. Each `filter()` call allocates its own tokenizer state and
    tree; documents share nothing.
    """

    __slots__ = ("_compiled", "config", "policy")

    def __init__(self, config: Config | Mapping[str, Any] | None = None, spec: str = "") -> None:
        self.config: Config = coerce_config(config)
        self.policy: SanitizationPolicy = resolve_policy(self.config, spec)
        self._compiled: list[CompiledTransform] = compile_transforms(
            [Sanitize(self.policy, report=self.config.report)]
        )

    def parse(self, html: str) -> Fragment:
        """Tokenize and balance `html` into a tree.

        Disallowed elements that are unwrapped or escaped are already gone
        from the tree; everything else is left to the transforms.
        """
        if not isinstance(html, str):
            raise TypeError(f"Expected a str, got {type(html).__name__}")
        config = self.config
        if len(html) > config.max_input_length:
            raise InputTooLargeError(
                f"Input of {len(html)} characters exceeds the limit of {config.max_input_length}",
                limit=config.max_input_length,
                actual=len(html),
            )
        html = clean_ms_chars(strip_invalid_chars(html), config.clean_ms_char)
        builder = TreeBuilder(
            balance=config.balance,
            direct_list_nest=config.direct_list_nest,
            max_depth=config.max_depth,
            report=config.report,
            element_action=self.policy.element_action,
        )
        return builder.build(Tokenizer().tokens(html))

    def filter(self, html: str) -> str:
        root = self.parse(html)
        apply_compiled_transforms(root, self._compiled)
        return to_html(root, xhtml=self.config.valid_xhtml)


def filter_html(html: str, config: Config | Mapping[str, Any] | None = None, spec: str = "") -> str:
    """Sanitize `html` and return the filtered markup.

    `config` is a `Config`, a mapping of option names to values, or None for
    the defaults. `spec` is an attribute override spec (see
    `htmlguard.overrides`).
    """
    return HtmlFilter(config, spec).filter(html)


__all__ = ["HtmlFilter", "filter_html"]
