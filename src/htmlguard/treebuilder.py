"""Build a well-formed tree from a token stream.

This is a balancer, not an HTML5 tree constructor: it keeps an explicit stack
of open elements, auto-closes the elements HTML does not allow to nest, wraps
stray list content in an implied `li` and closes (or flags) what is still open
at end of input. There is no foster parenting and no adoption agency.

With an `element_action` callback, tags of elements that would be unwrapped
are left out and tags of elements that would be escaped become text before
balancing.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from .constants import (
    BLOCK_ELEMENTS,
    LIST_ELEMENTS,
    NESTABLE_LISTS,
    NON_NESTABLE,
    P_SCOPE_BOUNDARIES,
    VOID_ELEMENTS,
)
from .entities import decode_entities
from .errors import NestingDepthError
from .node import Attribute, CData, Comment, Element, Fragment, Text
from .tokens import CDataToken, CharacterTokens, CommentToken, DeclarationToken, Tag
from .transforms_spec import DecideAction

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable
    from typing import Any, Protocol

    from .node import ParentNode
    from .tokens import Token

    class ReportCallback(Protocol):
        def __call__(self, msg: str, *, node: Any | None = None) -> None: ...


_HTML_WHITESPACE = " \t\n\r\f"


class TreeBuilder:
    __slots__ = ("balance", "direct_list_nest", "element_action", "max_depth", "open_elements", "report", "root")

    def __init__(
        self,
        *,
        balance: bool = True,
        direct_list_nest: bool = False,
        max_depth: int = 256,
        report: ReportCallback | None = None,
        element_action: Callable[[str], DecideAction] | None = None,
    ) -> None:
        self.balance = balance
        self.direct_list_nest = direct_list_nest
        self.element_action = element_action
        self.max_depth = max_depth
        self.report = report
        self.root = Fragment()
        self.open_elements: list[Element] = []

    @property
    def current_node(self) -> ParentNode:
        if self.open_elements:
            return self.open_elements[-1]
        return self.root

    def build(self, tokens: Iterable[Token]) -> Fragment:
        self.root = Fragment()
        self.open_elements = []
        for token in tokens:
            if type(token) is CharacterTokens:
                self.process_characters(token.data, raw=token.raw)
            elif type(token) is Tag:
                if token.kind == Tag.START:
                    self.process_start_tag(token)
                else:
                    self.process_end_tag(token.name, token.raw)
            elif type(token) is CommentToken:
                self.current_node.append_child(Comment(token.data))
            elif type(token) is CDataToken:
                self.current_node.append_child(CData(token.data))
            elif type(token) is DeclarationToken:
                if self.report is not None:
                    self.report(f"Dropped declaration '<!{token.data}>'")
        self.finish()
        return self.root

    # -----------------
    # Token handlers
    # -----------------

    def process_characters(self, data: str, *, raw: bool = False) -> None:
        if not raw:
            data = decode_entities(data)
        if not data:
            return
        parent = self.current_node
        if type(parent) is Element and parent.name in LIST_ELEMENTS and data.strip(_HTML_WHITESPACE):
            parent = self._push_implied("li")
        children = parent.children
        if children:
            last = children[-1]
            if type(last) is Text and last.raw == raw:
                last.data += data
                return
        children.append(Text(data, raw))

    def process_start_tag(self, tag: Tag) -> None:
        name = tag.name
        if self._skips(name, tag.raw):
            if self.report is not None:
                self.report(f"Unsafe tag '{name}' (not allowed)")
            return
        if name in BLOCK_ELEMENTS:
            self._close_element_in_scope("p", P_SCOPE_BOUNDARIES)
        rule = NON_NESTABLE.get(name)
        if rule is not None:
            closes, boundaries = rule
            for idx in range(len(self.open_elements) - 1, -1, -1):
                open_name = self.open_elements[idx].name
                if open_name in closes:
                    del self.open_elements[idx:]
                    break
                if open_name in boundaries:
                    break

        parent = self.current_node
        if (
            type(parent) is Element
            and parent.name in LIST_ELEMENTS
            and name != "li"
            and not (self.direct_list_nest and name in NESTABLE_LISTS)
        ):
            parent = self._push_implied("li")

        attrs: dict[str, Attribute] = {}
        for key, value in tag.attrs.items():
            attrs[key] = Attribute(key, decode_entities(value) if value is not None else None, value)
        element = Element(name, attrs, raw_start=tag.raw)
        parent.append_child(element)
        if name not in VOID_ELEMENTS:
            self._push(element)

    def process_end_tag(self, name: str, raw: str = "") -> None:
        if self._skips(name, raw or f"</{name}>"):
            return
        for idx in range(len(self.open_elements) - 1, -1, -1):
            if self.open_elements[idx].name == name:
                del self.open_elements[idx:]
                return
        if self.report is not None:
            self.report(f"Discarded stray end tag '</{name}>'")

    def finish(self) -> None:
        if not self.balance:
            for element in self.open_elements:
                element.unclosed = True
        self.open_elements = []

    # -----------------
    # Helpers
    # -----------------

    def _skips(self, name: str, raw: str) -> bool:
        """Leave out a tag whose element would be unwrapped or escaped.

        Balancing then only sees elements that survive, so the output parses
        back to the same tree.
        """
        if self.element_action is None:
            return False
        action = self.element_action(name)
        if action is DecideAction.ESCAPE:
            self.process_characters(raw, raw=True)
            return True
        return action is DecideAction.UNWRAP

    def _push(self, element: Element) -> None:
        if len(self.open_elements) >= self.max_depth:
            raise NestingDepthError(
                f"Element nesting exceeds the limit of {self.max_depth}",
                limit=self.max_depth,
                actual=len(self.open_elements) + 1,
            )
        self.open_elements.append(element)

    def _push_implied(self, name: str) -> Element:
        element = Element(name, implied=True)
        self.current_node.append_child(element)
        self._push(element)
        return element

    def _close_element_in_scope(self, name: str, boundaries: frozenset[str]) -> None:
        for idx in range(len(self.open_elements) - 1, -1, -1):
            open_name = self.open_elements[idx].name
            if open_name == name:
                del self.open_elements[idx:]
                return
            if open_name in boundaries:
                return


def build_tree(
    tokens: Iterable[Token],
    *,
    balance: bool = True,
    direct_list_nest: bool = False,
    max_depth: int = 256,
    report: ReportCallback | None = None,
    element_action: Callable[[str], DecideAction] | None = None,
) -> Fragment:
    builder = TreeBuilder(
        balance=balance,
        direct_list_nest=direct_list_nest,
        max_depth=max_depth,
        report=report,
        element_action=element_action,
    )
    return builder.build(tokens)
