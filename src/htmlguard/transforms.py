"""Compile and apply tree transforms.

Transforms are described by the dataclasses in `htmlguard.transforms_spec`.
`compile_transforms()` turns them into a flat list of compiled transforms,
fusing adjacent attribute rewrites that target the same tags into chains.
`apply_compiled_transforms()` then walks the tree once, top-down, with an
explicit stack: every compiled transform runs on a node, in order, before the
walk descends into the node's children.

Children hoisted out of an unwrapped or escaped element are spliced into the
parent at the element's position and walked next, so they see every transform.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal, cast
from urllib.parse import urljoin, urlsplit, urlunsplit

from .constants import (
    ATTRIBUTE_ELEMENTS,
    DROP_CONTENT_ELEMENTS,
    GLOBAL_ATTRIBUTE_PREFIXES,
    GLOBAL_ATTRIBUTES,
    LIST_ELEMENTS,
    STANDARD_VALUE_ATTRIBUTES,
    URL_ATTRIBUTES,
    VOID_ELEMENTS,
)
from .entities import decode_entities, escape_text
from .node import AttrKind, CData, Comment, Element, Fragment, Node, Text
from .sanitize import is_srcset_allowed, is_style_safe, is_url_allowed, url_scheme
from .serialize import serialize_end_tag, serialize_start_tag
from .strict import STRICT_TAGS, convert_deprecated_attrs, make_tag_strict
from .transforms_spec import (
    AllowlistAttrs,
    CheckStyleAttrs,
    ConstrainAttrs,
    ConvertDeprecatedAttrs,
    DecideAction,
    DropAttrs,
    DropAttrValues,
    DropUrlAttrs,
    Edit,
    HandleComments,
    LowercaseAttrValues,
    MergeAttrs,
    Sanitize,
    UniqueIds,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping
    from typing import Any, Protocol

    from .node import Attribute, ParentNode
    from .overrides import AttrConstraint
    from .sanitize import SanitizationPolicy, SchemeTable

    class NodeCallback(Protocol):
        def __call__(self, node: Node) -> None: ...

    class EditAttrsCallback(Protocol):
        def __call__(self, node: Element) -> dict[str, Attribute] | None: ...

    class ReportCallback(Protocol):
        def __call__(self, msg: str, *, node: Any | None = None) -> None: ...


TransformSpec = (
    Edit
    | DropAttrs
    | AllowlistAttrs
    | ConstrainAttrs
    | LowercaseAttrValues
    | ConvertDeprecatedAttrs
    | DropUrlAttrs
    | CheckStyleAttrs
    | UniqueIds
    | MergeAttrs
    | DropAttrValues
    | HandleComments
    | Sanitize
)

_TRANSFORM_CLASSES: tuple[type[object], ...] = (
    Edit,
    DropAttrs,
    AllowlistAttrs,
    ConstrainAttrs,
    LowercaseAttrValues,
    ConvertDeprecatedAttrs,
    DropUrlAttrs,
    CheckStyleAttrs,
    UniqueIds,
    MergeAttrs,
    DropAttrValues,
    HandleComments,
    Sanitize,
)

_VALID_ATTR_NAME = re.compile(r"^[a-z_:][a-z0-9_:.\-]*$")
_EVENT_NAME = re.compile(r"^on[a-z]+$")
_VALID_ID = re.compile(r"^[A-Za-z][A-Za-z0-9_:.\-]*$")


def _attributes_by_tag() -> dict[str, set[str]]:
    out: dict[str, set[str]] = {"*": set(GLOBAL_ATTRIBUTES)}
    for attr, tags in ATTRIBUTE_ELEMENTS.items():
        for tag in tags:
            out.setdefault(tag, set()).add(attr)
    return out


DEFAULT_ALLOWED_ATTRIBUTES: dict[str, set[str]] = _attributes_by_tag()


def attr_kind(name: str) -> AttrKind:
    if name in URL_ATTRIBUTES:
        return AttrKind.URL
    if name == "style":
        return AttrKind.STYLE
    if _EVENT_NAME.match(name):
        return AttrKind.EVENT
    return AttrKind.PLAIN


# -----------------
# Compiled forms
# -----------------


@dataclass(frozen=True, slots=True)
class _CompiledEditTransform:
    kind: Literal["edit"]
    tags: frozenset[str] | None
    func: Callable[[Element], None]


@dataclass(frozen=True, slots=True)
class _CompiledRewriteAttrsTransform:
    kind: Literal["rewrite_attrs"]
    tags: frozenset[str] | None
    func: EditAttrsCallback


class _CompiledRewriteAttrsChain:
    """Chain of attribute transforms using a flat list instead of nested closures.

    For N attribute transforms, nested closures have O(N) call depth; this has O(1).
    """

    __slots__ = ("funcs", "kind", "tags")

    kind: Literal["rewrite_attrs_chain"]
    tags: frozenset[str] | None
    funcs: list[EditAttrsCallback]

    def __init__(self, tags: frozenset[str] | None, funcs: list[EditAttrsCallback]) -> None:
        self.kind = "rewrite_attrs_chain"
        self.tags = tags
        self.funcs = funcs


class _CompiledDecideElementsChain:
    """Decide callbacks run on every element, in order, short-circuiting on non-KEEP."""

    __slots__ = ("callbacks", "kind")

    kind: Literal["decide_elements_chain"]
    callbacks: list[Callable[[Element], DecideAction]]

    def __init__(self, callbacks: list[Callable[[Element], DecideAction]]) -> None:
        self.kind = "decide_elements_chain"
        self.callbacks = callbacks


@dataclass(frozen=True, slots=True)
class _CompiledMergeAttrTokensTransform:
    kind: Literal["merge_attr_tokens"]
    tags: frozenset[str] | None
    attr: str
    tokens: tuple[str, ...]
    if_attr: str | None
    if_regex: re.Pattern[str] | None
    callback: NodeCallback | None
    report: ReportCallback | None


@dataclass(frozen=True, slots=True)
class _CompiledUniqueIdsTransform:
    kind: Literal["unique_ids"]
    prefix: str
    callback: NodeCallback | None
    report: ReportCallback | None


@dataclass(frozen=True, slots=True)
class _CompiledCommentsTransform:
    kind: Literal["comments"]
    comment: int
    cdata: int
    callback: NodeCallback | None
    report: ReportCallback | None


CompiledTransform = (
    _CompiledEditTransform
    | _CompiledDecideElementsChain
    | _CompiledRewriteAttrsTransform
    | _CompiledRewriteAttrsChain
    | _CompiledMergeAttrTokensTransform
    | _CompiledUniqueIdsTransform
    | _CompiledCommentsTransform
)


def _glob_match(pattern: str, text: str) -> bool:
    """Match a glob pattern against text.

    Supported wildcards:
    - '*' matches any sequence (including empty)
    - '?' matches any single character
    """

    if pattern == "*":
        return True
    if "*" not in pattern and "?" not in pattern:
        return pattern == text

    p_i = 0
    t_i = 0
    star_i = -1
    match_i = 0

    while t_i < len(text):
        if p_i < len(pattern) and (pattern[p_i] == "?" or pattern[p_i] == text[t_i]):
            p_i += 1
            t_i += 1
            continue

        if p_i < len(pattern) and pattern[p_i] == "*":
            star_i = p_i
            match_i = t_i
            p_i += 1
            continue

        if star_i != -1:
            p_i = star_i + 1
            match_i += 1
            t_i = match_i
            continue

        return False

    while p_i < len(pattern) and pattern[p_i] == "*":
        p_i += 1

    return p_i == len(pattern)


def _compile_patterns_to_regex(patterns: tuple[str, ...]) -> re.Pattern[str] | None:
    if not patterns:
        return None
    parts: list[str] = []
    for p in patterns:
        regex = re.escape(p)
        regex = regex.replace(r"\*", ".*")
        regex = regex.replace(r"\?", ".")
        parts.append(regex)
    full = "^(?:" + "|".join(parts) + ")$"
    return re.compile(full)


def _rewrite_url(
    key: str,
    value: str,
    *,
    abs_url: int,
    base_url: str,
    anti_mail_spam: str,
) -> str:
    url = value.strip()
    rewritten = False
    if anti_mail_spam and key == "href" and "@" in url and url_scheme(url) == "mailto":
        url = url.replace("@", anti_mail_spam)
        rewritten = True
    if abs_url and url and not url.startswith("#"):
        scheme = url_scheme(url)
        if abs_url > 0 and scheme == "":
            url = urljoin(base_url, url)
            rewritten = True
        elif abs_url < 0 and scheme:
            parts = urlsplit(url)
            base = urlsplit(base_url)
            if parts.scheme == base.scheme and parts.netloc and parts.netloc == base.netloc:
                url = urlunsplit(("", "", parts.path or "/", parts.query, parts.fragment))
                rewritten = True
    return url if rewritten else value


def compile_transforms(transforms: list[TransformSpec] | tuple[TransformSpec, ...]) -> list[CompiledTransform]:
    if not transforms:
        return []

    compiled: list[CompiledTransform] = []

    def _append_compiled(item: CompiledTransform) -> None:
        # Fuse adjacent attribute transforms that target the same tags into a
        # flat chain. This avoids nested closure overhead.
        if compiled and isinstance(item, _CompiledRewriteAttrsTransform):
            prev = compiled[-1]
            if isinstance(prev, _CompiledRewriteAttrsChain) and prev.tags == item.tags:
                prev.funcs.append(item.func)
                return
            if isinstance(prev, _CompiledRewriteAttrsTransform) and prev.tags == item.tags:
                compiled[-1] = _CompiledRewriteAttrsChain(tags=prev.tags, funcs=[prev.func, item.func])
                return

        compiled.append(item)

    for t in transforms:
        if not isinstance(t, _TRANSFORM_CLASSES):
            raise TypeError(f"Unsupported transform: {type(t).__name__}")
        if not t.enabled:
            continue

        if isinstance(t, Edit):
            edit_func = t.func
            on_hook = t.callback
            on_report = t.report

            def _wrapped(
                node: Element,
                edit_func: NodeCallback = edit_func,
                on_hook: NodeCallback | None = on_hook,
                on_report: ReportCallback | None = on_report,
            ) -> None:
                if on_hook is not None:
                    on_hook(node)
                if on_report is not None:
                    on_report(f"Edited <{node.name}>", node=node)
                edit_func(node)

            compiled.append(_CompiledEditTransform(kind="edit", tags=t.tags, func=_wrapped))
            continue

        if isinstance(t, DropAttrs):
            patterns = t.patterns
            if not patterns:
                continue
            keep = t.keep
            on_hook = t.callback
            on_report = t.report

            # Compile all patterns into one regex.
            compiled_regex = _compile_patterns_to_regex(patterns)

            def _drop_attrs(
                node: Element,
                patterns: tuple[str, ...] = patterns,
                keep: frozenset[str] = keep,
                compiled_regex: re.Pattern[str] | None = compiled_regex,
                on_hook: NodeCallback | None = on_hook,
                on_report: ReportCallback | None = on_report,
            ) -> dict[str, Attribute] | None:
                attrs = node.attrs
                if not attrs or compiled_regex is None:
                    return None

                # Avoid allocating unless something changes.
                for key in attrs:
                    if key not in keep and compiled_regex.match(key):
                        break
                else:
                    return None

                out: dict[str, Attribute] = {}
                for key, attr in attrs.items():
                    if key not in keep and compiled_regex.match(key):
                        if on_report is not None:
                            # Re-check to report which pattern matched (rare path)
                            found_pat = "?"
                            for pat in patterns:
                                if _glob_match(pat, key):
                                    found_pat = pat
                                    break
                            on_report(
                                f"Unsafe attribute '{key}' (matched forbidden pattern '{found_pat}')",
                                node=node,
                            )
                        continue
                    out[key] = attr

                if on_hook is not None:
                    on_hook(node)
                return out

            _append_compiled(_CompiledRewriteAttrsTransform(kind="rewrite_attrs", tags=t.tags, func=_drop_attrs))
            continue

        if isinstance(t, AllowlistAttrs):
            allowed_attributes = t.allowed_attributes
            allowed_global = allowed_attributes.get("*", frozenset())
            allowed_by_tag: dict[str, frozenset[str]] = {}
            for tag, names in allowed_attributes.items():
                if tag == "*":
                    continue
                allowed_by_tag[tag] = allowed_global | names
            on_hook = t.callback
            on_report = t.report

            def _allowlist_attrs(
                node: Element,
                allowed_by_tag: dict[str, frozenset[str]] = allowed_by_tag,
                allowed_global: frozenset[str] = allowed_global,
                prefixes: tuple[str, ...] = t.prefixes,
                allow_events: bool = t.allow_events,
                overrides: Mapping[str, Mapping[str, AttrConstraint]] = t.overrides,
                on_hook: NodeCallback | None = on_hook,
                on_report: ReportCallback | None = on_report,
            ) -> dict[str, Attribute] | None:
                attrs = node.attrs
                if not attrs:
                    return None
                tag = node.name
                allowed = allowed_by_tag.get(tag, allowed_global)
                element_overrides = overrides.get(tag)

                changed = False
                out: dict[str, Attribute] = {}
                for key, attr in attrs.items():
                    ok = False
                    if _VALID_ATTR_NAME.match(key):
                        if element_overrides is not None and key in element_overrides:
                            ok = not element_overrides[key].remove
                        else:
                            ok = (
                                key in allowed
                                or (bool(prefixes) and key.startswith(prefixes))
                                or (allow_events and _EVENT_NAME.match(key) is not None)
                            )
                    if not ok:
                        changed = True
                        if on_report is not None:
                            on_report(f"Unsafe attribute '{key}' (not allowed)", node=node)
                        continue
                    attr.kind = attr_kind(key)
                    out[key] = attr
                if not changed:
                    return None
                if on_hook is not None:
                    on_hook(node)
                return out

            _append_compiled(_CompiledRewriteAttrsTransform(kind="rewrite_attrs", tags=None, func=_allowlist_attrs))
            continue

        if isinstance(t, ConstrainAttrs):
            if not t.overrides:
                continue
            on_hook = t.callback
            on_report = t.report

            def _constrain_attrs(
                node: Element,
                overrides: Mapping[str, Mapping[str, AttrConstraint]] = t.overrides,
                on_hook: NodeCallback | None = on_hook,
                on_report: ReportCallback | None = on_report,
            ) -> dict[str, Attribute] | None:
                element_overrides = overrides.get(node.name)
                if not element_overrides or not node.attrs:
                    return None
                changed = False
                out: dict[str, Attribute] = {}
                for key, attr in node.attrs.items():
                    constraint = element_overrides.get(key)
                    if constraint is None or not constraint.restricted:
                        out[key] = attr
                        continue
                    keep, value = constraint.filter_value(attr.value)
                    if not keep:
                        changed = True
                        if on_report is not None:
                            on_report(f"Attribute '{key}' on <{node.name}> dropped (value not allowed)", node=node)
                        continue
                    if value != attr.value:
                        attr.value = value
                        if on_report is not None:
                            on_report(f"Attribute '{key}' on <{node.name}> set to its default", node=node)
                    out[key] = attr
                if not changed:
                    return None
                if on_hook is not None:
                    on_hook(node)
                return out

            _append_compiled(_CompiledRewriteAttrsTransform(kind="rewrite_attrs", tags=None, func=_constrain_attrs))
            continue

        if isinstance(t, LowercaseAttrValues):

            def _lowercase_values(
                node: Element,
                names: frozenset[str] = t.names,
                names_by_tag: dict[str, frozenset[str]] = t.names_by_tag,
            ) -> dict[str, Attribute] | None:
                extra = names_by_tag.get(node.name)
                for key, attr in node.attrs.items():
                    if attr.value is None or not (key in names or (extra is not None and key in extra)):
                        continue
                    lowered = attr.value.lower()
                    if lowered != attr.value:
                        attr.value = lowered
                return None

            _append_compiled(_CompiledRewriteAttrsTransform(kind="rewrite_attrs", tags=None, func=_lowercase_values))
            continue

        if isinstance(t, ConvertDeprecatedAttrs):
            if t.level <= 0:
                continue
            on_hook = t.callback
            on_report = t.report

            def _convert_deprecated(
                node: Element,
                level: int = t.level,
                on_hook: NodeCallback | None = on_hook,
                on_report: ReportCallback | None = on_report,
            ) -> dict[str, Attribute] | None:
                if not node.attrs:
                    return None
                converted = convert_deprecated_attrs(node, level)
                if converted:
                    if on_hook is not None:
                        on_hook(node)
                    if on_report is not None:
                        names = ", ".join(converted)
                        on_report(f"Converted deprecated attributes on <{node.name}>: {names}", node=node)
                return None

            _append_compiled(_CompiledRewriteAttrsTransform(kind="rewrite_attrs", tags=None, func=_convert_deprecated))
            continue

        if isinstance(t, DropUrlAttrs):
            on_hook = t.callback
            on_report = t.report

            def _drop_url_attrs(
                node: Element,
                tables: tuple[SchemeTable, ...] = t.scheme_tables,
                abs_url: int = t.abs_url,
                base_url: str = t.base_url,
                anti_mail_spam: str = t.anti_mail_spam,
                on_hook: NodeCallback | None = on_hook,
                on_report: ReportCallback | None = on_report,
            ) -> dict[str, Attribute] | None:
                attrs = node.attrs
                for attr in attrs.values():
                    if attr.kind is AttrKind.URL and attr.value is not None:
                        break
                else:
                    return None

                changed = False
                out: dict[str, Attribute] = {}
                for key, attr in attrs.items():
                    value = attr.value
                    if attr.kind is not AttrKind.URL or value is None:
                        out[key] = attr
                        continue
                    if key == "srcset":
                        ok = is_srcset_allowed(value, tables)
                    else:
                        value = _rewrite_url(
                            key, value, abs_url=abs_url, base_url=base_url, anti_mail_spam=anti_mail_spam
                        )
                        ok = is_url_allowed(key, value, tables)
                    if not ok:
                        changed = True
                        if on_report is not None:
                            on_report(f"Unsafe URL in attribute '{key}'", node=node)
                        continue
                    attr.value = value
                    out[key] = attr
                if not changed:
                    return None
                if on_hook is not None:
                    on_hook(node)
                return out

            _append_compiled(_CompiledRewriteAttrsTransform(kind="rewrite_attrs", tags=None, func=_drop_url_attrs))
            continue

        if isinstance(t, CheckStyleAttrs):
            on_hook = t.callback
            on_report = t.report

            def _check_style_attrs(
                node: Element,
                css_expression: bool = t.css_expression,
                tables: tuple[SchemeTable, ...] = t.scheme_tables,
                on_hook: NodeCallback | None = on_hook,
                on_report: ReportCallback | None = on_report,
            ) -> dict[str, Attribute] | None:
                attr = node.attrs.get("style")
                if attr is None or attr.value is None:
                    return None
                if is_style_safe(attr.value, css_expression=css_expression, tables=tables):
                    return None
                if on_hook is not None:
                    on_hook(node)
                if on_report is not None:
                    on_report("Unsafe inline style in attribute 'style'", node=node)
                return {key: a for key, a in node.attrs.items() if key != "style"}

            _append_compiled(_CompiledRewriteAttrsTransform(kind="rewrite_attrs", tags=None, func=_check_style_attrs))
            continue

        if isinstance(t, UniqueIds):
            compiled.append(
                _CompiledUniqueIdsTransform(
                    kind="unique_ids",
                    prefix=t.prefix,
                    callback=t.callback,
                    report=t.report,
                )
            )
            continue

        if isinstance(t, DropAttrValues):
            on_hook = t.callback
            on_report = t.report

            def _drop_attr_values(
                node: Element,
                attr_name: str = t.attr,
                regex: re.Pattern[str] = re.compile(t.pattern),
                on_hook: NodeCallback | None = on_hook,
                on_report: ReportCallback | None = on_report,
            ) -> dict[str, Attribute] | None:
                value = node.get_attr(attr_name)
                if value is None or not regex.search(value):
                    return None
                if on_hook is not None:
                    on_hook(node)
                if on_report is not None:
                    on_report(f"Dropped attribute '{attr_name}' on <{node.name}> (matched deny pattern)", node=node)
                return {key: a for key, a in node.attrs.items() if key != attr_name}

            _append_compiled(_CompiledRewriteAttrsTransform(kind="rewrite_attrs", tags=t.tags, func=_drop_attr_values))
            continue

        if isinstance(t, MergeAttrs):
            if not t.tokens:
                continue
            compiled.append(
                _CompiledMergeAttrTokensTransform(
                    kind="merge_attr_tokens",
                    tags=t.tags,
                    attr=t.attr,
                    tokens=t.tokens,
                    if_attr=t.if_attr,
                    if_regex=re.compile(t.if_match) if t.if_match else None,
                    callback=t.callback,
                    report=t.report,
                )
            )
            continue

        if isinstance(t, HandleComments):
            if t.comment == 3 and t.cdata == 3:
                continue
            compiled.append(
                _CompiledCommentsTransform(
                    kind="comments",
                    comment=t.comment,
                    cdata=t.cdata,
                    callback=t.callback,
                    report=t.report,
                )
            )
            continue

        if isinstance(t, Sanitize):
            for item in _compile_sanitize(t.policy, callback=t.callback, report=t.report):
                _append_compiled(item)
            continue

        raise TypeError(f"Unsupported transform: {type(t).__name__}")  # pragma: no cover

    return compiled


def _compile_sanitize(
    policy: SanitizationPolicy,
    *,
    callback: NodeCallback | None,
    report: ReportCallback | None,
) -> list[CompiledTransform]:
    """Expand a policy into the element and attribute pipeline."""
    config = policy.config
    out: list[CompiledTransform] = []

    if config.strict_tags:

        def _make_strict(
            node: Element,
            cb: NodeCallback | None = callback,
            rep: ReportCallback | None = report,
        ) -> None:
            old = make_tag_strict(node)
            if old is None:
                return
            if cb is not None:
                cb(node)
            if rep is not None:
                rep(f"Converted <{old}> to <{node.name}>", node=node)

        out.extend(compile_transforms([Edit(STRICT_TAGS, _make_strict)]))

    allowed_tags = policy.allowed_elements

    def _sanitize_node_decision(
        node: Element,
        allowed_tags: frozenset[str] = allowed_tags,
        element_action: Callable[[str], DecideAction] = policy.element_action,
        cb: NodeCallback | None = callback,
        rep: ReportCallback | None = report,
    ) -> DecideAction:
        # Tag names produced by the tokenizer are already ASCII-lowercased.
        tag = node.name
        if tag in allowed_tags:
            return DecideAction.KEEP

        # Elements the tree builder inserted itself only ever wrap content.
        if node.implied:
            return DecideAction.UNWRAP

        action = element_action(tag)
        if action is DecideAction.KEEP:  # pragma: no cover
            return action
        if cb:
            cb(node)
        if rep:
            reason = "dropped content" if tag in DROP_CONTENT_ELEMENTS else "not allowed"
            rep(f"Unsafe tag '{tag}' ({reason})", node=node)
        return action

    out.append(_CompiledDecideElementsChain(callbacks=[_sanitize_node_decision]))

    if "style" in allowed_tags:

        def _check_stylesheet(
            node: Element,
            css_expression: bool = policy.css_expression,
            tables: tuple[SchemeTable, ...] = policy.scheme_tables,
            cb: NodeCallback | None = callback,
            rep: ReportCallback | None = report,
        ) -> None:
            css = "".join(child.data for child in node.children if type(child) is Text)
            if not css or is_style_safe(css, css_expression=css_expression, tables=tables):
                return
            node.children = []
            if cb is not None:
                cb(node)
            if rep is not None:
                rep("Unsafe style sheet in <style> (dropped content)", node=node)

        out.extend(compile_transforms([Edit("style", _check_stylesheet)]))

    follow_pattern, deny_pattern = config.anti_link_spam or ("", "")
    sub_transforms: list[TransformSpec] = [
        ConvertDeprecatedAttrs(
            config.no_deprecated_attr,
            enabled=bool(config.no_deprecated_attr),
            callback=callback,
            report=report,
        ),
        DropAttrs(
            patterns=policy.deny_patterns,
            keep=policy.deny_keep,
            enabled=bool(policy.deny_patterns),
            callback=callback,
            report=report,
        ),
        DropAttrs(
            patterns=("on*",),
            enabled=policy.deny_events,
            callback=callback,
            report=report,
        ),
        AllowlistAttrs(
            allowed_attributes=DEFAULT_ALLOWED_ATTRIBUTES,
            prefixes=GLOBAL_ATTRIBUTE_PREFIXES,
            allow_events=True,
            overrides=policy.overrides,
            callback=callback,
            report=report,
        ),
        ConstrainAttrs(policy.overrides, callback=callback, report=report),
        LowercaseAttrValues(
            STANDARD_VALUE_ATTRIBUTES,
            names_by_tag={"button": ("type",), "input": ("type",)},
            enabled=config.lc_std_val,
        ),
        DropUrlAttrs(
            scheme_tables=policy.scheme_tables,
            abs_url=config.abs_url,
            base_url=config.base_url,
            anti_mail_spam=config.anti_mail_spam,
            callback=callback,
            report=report,
        ),
        CheckStyleAttrs(
            css_expression=policy.css_expression,
            scheme_tables=policy.scheme_tables,
            callback=callback,
            report=report,
        ),
        UniqueIds(
            config.unique_ids if isinstance(config.unique_ids, str) else "",
            enabled=bool(config.unique_ids),
            callback=callback,
            report=report,
        ),
        DropAttrValues(
            ("a", "area"),
            attr="href",
            pattern=deny_pattern,
            callback=callback,
            report=report,
        ),
        MergeAttrs(
            ("a", "area"),
            attr="rel",
            tokens=("nofollow",),
            if_attr="href",
            if_match=follow_pattern,
            enabled=bool(follow_pattern),
            callback=callback,
            report=report,
        ),
        # Comments are handled late so those hoisted out of unwrapped or
        # escaped elements are caught in the same walk.
        HandleComments(
            comment=policy.comment_mode,
            cdata=policy.cdata_mode,
            callback=callback,
            report=report,
        ),
    ]
    out.extend(compile_transforms(sub_transforms))
    return out


# -----------------
# Application
# -----------------


def _escaped_nodes(node: Element) -> list[Node]:
    """The element's tags as text nodes around its hoisted children."""
    start = node.raw_start if node.raw_start is not None else serialize_start_tag(node)
    moved: list[Node] = [Text(start)]
    moved.extend(node.children)
    node.children = []
    if not node.unclosed and node.name not in VOID_ELEMENTS:
        moved.append(Text(serialize_end_tag(node.name)))
    return moved


def _apply_action(children: list[Node], i: int, node: Element, action: DecideAction) -> None:
    if action is DecideAction.UNWRAP:
        children[i : i + 1] = node.children
        node.children = []
    elif action is DecideAction.ESCAPE:
        children[i : i + 1] = _escaped_nodes(node)
    else:
        # DROP (and any invalid value)
        del children[i]


def apply_compiled_transforms(root: Node, compiled: list[CompiledTransform]) -> None:
    if not compiled:
        return
    if type(root) is not Fragment and type(root) is not Element:
        return

    # Ids seen so far in this document.
    seen_ids: set[str] = set()

    # Iterative traversal avoids recursion overhead on deep trees.
    stack: list[tuple[ParentNode, int]] = [(cast("ParentNode", root), 0)]
    while stack:
        parent, i = stack[-1]
        children = parent.children
        if i >= len(children):
            stack.pop()
            continue

        node = children[i]
        node_type = type(node)
        is_element = node_type is Element

        changed = False
        for t in compiled:
            # Dispatch on the 'kind' string to avoid isinstance checks in this hot loop.
            k: str = t.kind

            if k == "comments":
                if TYPE_CHECKING:
                    t = cast("_CompiledCommentsTransform", t)
                if node_type is Comment:
                    mode, label, opener, closer = t.comment, "comment", "<!--", "-->"
                elif node_type is CData:
                    mode, label, opener, closer = t.cdata, "CDATA section", "<![CDATA[", "]]>"
                else:
                    continue
                if mode == 3:
                    continue
                data = cast("Comment | CData", node).data
                if mode == 2:
                    cast("Comment | CData", node).data = escape_text(decode_entities(data))
                    continue
                if t.callback is not None:
                    t.callback(node)
                if mode == 1:
                    if t.report is not None:
                        t.report(f"Dropped {label}", node=node)
                    del children[i]
                else:
                    if t.report is not None:
                        t.report(f"Escaped {label}", node=node)
                    escaped: Node = Text(f"{opener}{data}{closer}")
                    if type(parent) is Element and parent.name in LIST_ELEMENTS:
                        # Text never sits directly in a list; the tree builder wraps it too.
                        escaped = Element("li", children=[escaped], implied=True)
                    children[i] = escaped
                changed = True
                break

            if not is_element:
                continue
            element = cast("Element", node)

            if k == "edit":
                if TYPE_CHECKING:
                    t = cast("_CompiledEditTransform", t)
                if t.tags is None or element.name in t.tags:
                    t.func(element)
                continue

            if k == "decide_elements_chain":
                if TYPE_CHECKING:
                    t = cast("_CompiledDecideElementsChain", t)
                action = DecideAction.KEEP
                for chain_cb in t.callbacks:
                    action = chain_cb(element)
                    if action is not DecideAction.KEEP:
                        break

                if action is DecideAction.KEEP:
                    continue
                _apply_action(children, i, element, action)
                changed = True
                break

            if k == "rewrite_attrs":
                if TYPE_CHECKING:
                    t = cast("_CompiledRewriteAttrsTransform", t)
                if t.tags is not None and element.name not in t.tags:
                    continue
                new_attrs = t.func(element)
                if new_attrs is not None:
                    element.attrs = new_attrs
                continue

            if k == "rewrite_attrs_chain":
                if TYPE_CHECKING:
                    t = cast("_CompiledRewriteAttrsChain", t)
                if t.tags is not None and element.name not in t.tags:
                    continue
                # Inline the chain iteration to avoid method-call overhead
                for chain_func in t.funcs:
                    chain_out = chain_func(element)
                    if chain_out is not None:
                        element.attrs = chain_out
                continue

            if k == "unique_ids":
                if TYPE_CHECKING:
                    t = cast("_CompiledUniqueIdsTransform", t)
                id_attr = element.attrs.get("id")
                if id_attr is None:
                    continue
                value = (id_attr.value or "").strip()
                if t.prefix and value and not value.startswith(t.prefix):
                    value = t.prefix + value
                if not _VALID_ID.match(value) or value in seen_ids:
                    del element.attrs["id"]
                    if t.callback is not None:
                        t.callback(element)
                    if t.report is not None:
                        reason = "duplicate" if value in seen_ids else "invalid"
                        t.report(f"Dropped {reason} id '{value}' on <{element.name}>", node=element)
                    continue
                seen_ids.add(value)
                id_attr.value = value
                continue

            if k == "merge_attr_tokens":
                if TYPE_CHECKING:
                    t = cast("_CompiledMergeAttrTokensTransform", t)
                if t.tags is not None and element.name not in t.tags:
                    continue
                if t.if_regex is not None:
                    probe = element.get_attr(t.if_attr) if t.if_attr else None
                    if probe is None or not t.if_regex.search(probe):
                        continue
                existing_raw = element.get_attr(t.attr)
                existing: list[str] = []
                if existing_raw:
                    for tok in existing_raw.split():
                        tt = tok.strip().lower()
                        if tt and tt not in existing:
                            existing.append(tt)

                changed_tokens = False
                for tok in t.tokens:
                    if tok not in existing:
                        existing.append(tok)
                        changed_tokens = True
                normalized = " ".join(existing)
                if changed_tokens or existing_raw != normalized:
                    element.set_attr(t.attr, normalized, AttrKind.PLAIN)
                    if t.callback is not None:
                        t.callback(element)
                    if t.report is not None:
                        t.report(f"Merged tokens into attribute '{t.attr}' on <{element.name}>", node=element)
                continue

        if changed:
            continue

        # No structural change: advance the sibling index before descending.
        stack[-1] = (parent, i + 1)
        if is_element and cast("Element", node).children:
            stack.append((cast("Element", node), 0))


__all__ = [
    "DEFAULT_ALLOWED_ATTRIBUTES",
    "CompiledTransform",
    "TransformSpec",
    "apply_compiled_transforms",
    "attr_kind",
    "compile_transforms",
]
