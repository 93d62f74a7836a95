"""HTML tokenizer.

A state machine in the shape of the WHATWG tokenizer, reduced to what a
sanitizer needs. It never fails: a construct it cannot complete (for example a
tag cut off by the end of input) degrades to text, which is escaped on output.

Quoted attribute values end only at their matching quote, so `<` and `>`
inside them are data. Unquoted values end at whitespace or `>`.
"""

from __future__ import annotations

import re
import string
from dataclasses import dataclass
from typing import TYPE_CHECKING

from .constants import RAWTEXT_ELEMENTS, RCDATA_ELEMENTS
from .tokens import CDataToken, CharacterTokens, CommentToken, DeclarationToken, Tag

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

    from .tokens import Token


_ASCII_LOWER = str.maketrans(string.ascii_uppercase, string.ascii_lowercase)

_WHITESPACE = "\t\n\f\r "
_WHITESPACE_RUN = re.compile(r"[\t\n\f\r ]*")
_TAG_NAME_RUN = re.compile(r"[^\t\n\f\r />]+")
_ATTR_NAME_RUN = re.compile(r"[^\t\n\f\r />=]+")
_UNQUOTED_VALUE_RUN = re.compile(r"[^\t\n\f\r >]*")
_COMMENT_END = re.compile(r"--!?>")


def _ascii_lower(text: str) -> str:
    return text.translate(_ASCII_LOWER)


@dataclass(frozen=True, slots=True)
class TokenizerOpts:
    rawtext_elements: frozenset[str] = RAWTEXT_ELEMENTS
    rcdata_elements: frozenset[str] = RCDATA_ELEMENTS


class Tokenizer:
    """Turn an HTML string into a lazy stream of tokens.

    `tokens(html)` resets the tokenizer and returns a new generator, so one
    instance can be reused for many documents (one at a time).
    """

    DATA = 0
    TAG_OPEN = 1
    END_TAG_OPEN = 2
    TAG_NAME = 3
    BEFORE_ATTRIBUTE_NAME = 4
    ATTRIBUTE_NAME = 5
    AFTER_ATTRIBUTE_NAME = 6
    BEFORE_ATTRIBUTE_VALUE = 7
    ATTRIBUTE_VALUE_DOUBLE = 8
    ATTRIBUTE_VALUE_SINGLE = 9
    ATTRIBUTE_VALUE_UNQUOTED = 10
    AFTER_ATTRIBUTE_VALUE_QUOTED = 11
    SELF_CLOSING_START_TAG = 12
    MARKUP_DECLARATION = 13
    RAWTEXT = 14

    __slots__ = (
        "_end_tag_patterns",
        "_handlers",
        "buffer",
        "current_attr_has_value",
        "current_attr_name",
        "current_attr_value",
        "current_tag_attrs",
        "current_tag_kind",
        "current_tag_name",
        "current_tag_self_closing",
        "length",
        "opts",
        "pending",
        "pos",
        "rawtext_tag",
        "state",
        "text_buffer",
        "token_start",
    )

    def __init__(self, opts: TokenizerOpts | None = None) -> None:
        self.opts = opts or TokenizerOpts()
        self._end_tag_patterns: dict[str, re.Pattern[str]] = {}
        self._handlers: tuple[Callable[[], bool], ...] = (
            self._state_data,
            self._state_tag_open,
            self._state_end_tag_open,
            self._state_tag_name,
            self._state_before_attribute_name,
            self._state_attribute_name,
            self._state_after_attribute_name,
            self._state_before_attribute_value,
            self._state_attribute_value_double,
            self._state_attribute_value_single,
            self._state_attribute_value_unquoted,
            self._state_after_attribute_value_quoted,
            self._state_self_closing_start_tag,
            self._state_markup_declaration,
            self._state_rawtext,
        )
        self.initialize("")

    def initialize(self, html: str) -> None:
        self.buffer = html
        self.length = len(html)
        self.pos = 0
        self.state = self.DATA
        self.text_buffer: list[str] = []
        self.pending: list[Token] = []
        self.token_start = 0
        self.current_tag_kind = Tag.START
        self.current_tag_name: list[str] = []
        self.current_tag_attrs: dict[str, str | None] = {}
        self.current_tag_self_closing = False
        self.current_attr_name: list[str] = []
        self.current_attr_value: list[str] = []
        self.current_attr_has_value = False
        self.rawtext_tag: str | None = None

    def tokens(self, html: str) -> Iterator[Token]:
        self.initialize(html)
        return self._run()

    def _run(self) -> Iterator[Token]:
        handlers = self._handlers
        while True:
            done = handlers[self.state]()
            if self.pending:
                ready = self.pending
                self.pending = []
                yield from ready
            if done:
                return

    # -----------------
    # Emission helpers
    # -----------------

    def _flush_text(self) -> None:
        if not self.text_buffer:
            return
        data = "".join(self.text_buffer)
        self.text_buffer.clear()
        if data:
            self.pending.append(CharacterTokens(data))

    def _emit(self, token: Token) -> None:
        self._flush_text()
        self.pending.append(token)

    def _eof(self) -> bool:
        self.pos = self.length
        self._flush_text()
        return True

    def _degrade_to_text(self) -> bool:
        # End of input inside a tag or declaration: the partial construct is text.
        self.text_buffer.append(self.buffer[self.token_start :])
        self.state = self.DATA
        return self._eof()

    def _skip_whitespace(self, pos: int) -> int:
        m = _WHITESPACE_RUN.match(self.buffer, pos)
        return m.end() if m else pos

    def _start_tag(self, kind: int) -> None:
        self.current_tag_kind = kind
        self.current_tag_name.clear()
        self.current_tag_attrs = {}
        self.current_tag_self_closing = False
        self._start_attribute()

    def _start_attribute(self) -> None:
        self.current_attr_name.clear()
        self.current_attr_value.clear()
        self.current_attr_has_value = False

    def _set_attribute_value(self, value: str) -> None:
        self.current_attr_value.append(value)
        self.current_attr_has_value = True

    def _finish_attribute(self) -> None:
        name = "".join(self.current_attr_name)
        if name and name not in self.current_tag_attrs:
            value = "".join(self.current_attr_value) if self.current_attr_has_value else None
            self.current_tag_attrs[name] = value
        self._start_attribute()

    def _emit_current_tag(self) -> None:
        name = "".join(self.current_tag_name)
        raw = self.buffer[self.token_start : self.pos]
        if self.current_tag_kind == Tag.END:
            self._emit(Tag(Tag.END, name, {}, False, raw))
            self.state = self.DATA
            return
        self._emit(Tag(Tag.START, name, self.current_tag_attrs, self.current_tag_self_closing, raw))
        self.current_tag_attrs = {}
        if name in self.opts.rawtext_elements or name in self.opts.rcdata_elements:
            self.rawtext_tag = name
            self.state = self.RAWTEXT
        else:
            self.state = self.DATA

    def _bogus_declaration(self, start: int) -> bool:
        gt = self.buffer.find(">", start)
        if gt == -1:
            return self._degrade_to_text()
        self.pos = gt + 1
        self._emit(DeclarationToken(self.buffer[start:gt]))
        self.state = self.DATA
        return False

    def _end_tag_pattern(self, name: str) -> re.Pattern[str]:
        pattern = self._end_tag_patterns.get(name)
        if pattern is None:
            pattern = re.compile(r"</" + re.escape(name) + r"(?=[\t\n\f\r />])", re.IGNORECASE)
            self._end_tag_patterns[name] = pattern
        return pattern

    # -----------------
    # States
    # -----------------

    def _state_data(self) -> bool:
        buf = self.buffer
        pos = self.pos
        lt = buf.find("<", pos)
        if lt == -1:
            if pos < self.length:
                self.text_buffer.append(buf[pos:])
            return self._eof()
        if lt > pos:
            self.text_buffer.append(buf[pos:lt])
        self.token_start = lt
        self.pos = lt + 1
        self.state = self.TAG_OPEN
        return False

    def _state_tag_open(self) -> bool:
        pos = self.pos
        if pos >= self.length:
            self.text_buffer.append("<")
            return self._eof()
        c = self.buffer[pos]
        if c == "!":
            self.pos = pos + 1
            self.state = self.MARKUP_DECLARATION
            return False
        if c == "/":
            self.pos = pos + 1
            self.state = self.END_TAG_OPEN
            return False
        if c == "?":
            return self._bogus_declaration(pos)
        if c.isascii() and c.isalpha():
            self._start_tag(Tag.START)
            self.state = self.TAG_NAME
            return False
        self.text_buffer.append("<")
        self.state = self.DATA
        return False

    def _state_end_tag_open(self) -> bool:
        pos = self.pos
        if pos >= self.length:
            self.text_buffer.append("</")
            return self._eof()
        c = self.buffer[pos]
        if c.isascii() and c.isalpha():
            self._start_tag(Tag.END)
            self.state = self.TAG_NAME
            return False
        self.text_buffer.append("</")
        self.state = self.DATA
        return False

    def _state_tag_name(self) -> bool:
        buf = self.buffer
        m = _TAG_NAME_RUN.match(buf, self.pos)
        pos = self.pos
        if m:
            self.current_tag_name.append(_ascii_lower(m.group()))
            pos = m.end()
        if pos >= self.length:
            return self._degrade_to_text()
        c = buf[pos]
        self.pos = pos + 1
        if c == ">":
            self._emit_current_tag()
        elif c == "/":
            self.state = self.SELF_CLOSING_START_TAG
        else:
            self.state = self.BEFORE_ATTRIBUTE_NAME
        return False

    def _state_before_attribute_name(self) -> bool:
        pos = self._skip_whitespace(self.pos)
        if pos >= self.length:
            return self._degrade_to_text()
        c = self.buffer[pos]
        if c == "/":
            self.pos = pos + 1
            self.state = self.SELF_CLOSING_START_TAG
            return False
        if c == ">":
            self.pos = pos + 1
            self._emit_current_tag()
            return False
        self._start_attribute()
        if c == "=":
            # A leading '=' belongs to the attribute name.
            self.current_attr_name.append("=")
            pos += 1
        self.pos = pos
        self.state = self.ATTRIBUTE_NAME
        return False

    def _state_attribute_name(self) -> bool:
        buf = self.buffer
        pos = self.pos
        m = _ATTR_NAME_RUN.match(buf, pos)
        if m:
            self.current_attr_name.append(_ascii_lower(m.group()))
            pos = m.end()
        if pos >= self.length:
            return self._degrade_to_text()
        if buf[pos] == "=":
            self.pos = pos + 1
            self.state = self.BEFORE_ATTRIBUTE_VALUE
            return False
        self.pos = pos
        self.state = self.AFTER_ATTRIBUTE_NAME
        return False

    def _state_after_attribute_name(self) -> bool:
        pos = self._skip_whitespace(self.pos)
        if pos >= self.length:
            return self._degrade_to_text()
        c = self.buffer[pos]
        if c == "=":
            self.pos = pos + 1
            self.state = self.BEFORE_ATTRIBUTE_VALUE
            return False
        self._finish_attribute()
        if c == "/":
            self.pos = pos + 1
            self.state = self.SELF_CLOSING_START_TAG
            return False
        if c == ">":
            self.pos = pos + 1
            self._emit_current_tag()
            return False
        self.pos = pos
        self.state = self.ATTRIBUTE_NAME
        return False

    def _state_before_attribute_value(self) -> bool:
        pos = self._skip_whitespace(self.pos)
        if pos >= self.length:
            return self._degrade_to_text()
        c = self.buffer[pos]
        if c == '"':
            self.pos = pos + 1
            self.state = self.ATTRIBUTE_VALUE_DOUBLE
            return False
        if c == "'":
            self.pos = pos + 1
            self.state = self.ATTRIBUTE_VALUE_SINGLE
            return False
        if c == ">":
            self._set_attribute_value("")
            self._finish_attribute()
            self.pos = pos + 1
            self._emit_current_tag()
            return False
        self.pos = pos
        self.state = self.ATTRIBUTE_VALUE_UNQUOTED
        return False

    def _quoted_value(self, quote: str) -> bool:
        end = self.buffer.find(quote, self.pos)
        if end == -1:
            return self._degrade_to_text()
        self._set_attribute_value(self.buffer[self.pos : end])
        self._finish_attribute()
        self.pos = end + 1
        self.state = self.AFTER_ATTRIBUTE_VALUE_QUOTED
        return False

    def _state_attribute_value_double(self) -> bool:
        return self._quoted_value('"')

    def _state_attribute_value_single(self) -> bool:
        return self._quoted_value("'")

    def _state_attribute_value_unquoted(self) -> bool:
        buf = self.buffer
        m = _UNQUOTED_VALUE_RUN.match(buf, self.pos)
        pos = m.end() if m else self.pos
        if pos >= self.length:
            return self._degrade_to_text()
        self._set_attribute_value(buf[self.pos : pos])
        self._finish_attribute()
        self.pos = pos + 1
        if buf[pos] == ">":
            self._emit_current_tag()
        else:
            self.state = self.BEFORE_ATTRIBUTE_NAME
        return False

    def _state_after_attribute_value_quoted(self) -> bool:
        pos = self.pos
        if pos >= self.length:
            return self._degrade_to_text()
        c = self.buffer[pos]
        if c in _WHITESPACE:
            self.pos = pos + 1
            self.state = self.BEFORE_ATTRIBUTE_NAME
        elif c == "/":
            self.pos = pos + 1
            self.state = self.SELF_CLOSING_START_TAG
        elif c == ">":
            self.pos = pos + 1
            self._emit_current_tag()
        else:
            # Missing whitespace between attributes.
            self.state = self.BEFORE_ATTRIBUTE_NAME
        return False

    def _state_self_closing_start_tag(self) -> bool:
        pos = self.pos
        if pos >= self.length:
            return self._degrade_to_text()
        if self.buffer[pos] == ">":
            self.pos = pos + 1
            self.current_tag_self_closing = True
            self._emit_current_tag()
            return False
        self.state = self.BEFORE_ATTRIBUTE_NAME
        return False

    def _state_markup_declaration(self) -> bool:
        buf = self.buffer
        pos = self.pos
        if buf.startswith("--", pos):
            start = pos + 2
            if buf.startswith(">", start):
                self.pos = start + 1
                self._emit(CommentToken(""))
            elif buf.startswith("->", start):
                self.pos = start + 2
                self._emit(CommentToken(""))
            else:
                m = _COMMENT_END.search(buf, start)
                if m is None:
                    # Unterminated comment runs to the end of input.
                    self._emit(CommentToken(buf[start:]))
                    return self._eof()
                self.pos = m.end()
                self._emit(CommentToken(buf[start : m.start()]))
            self.state = self.DATA
            return False
        if buf.startswith("[CDATA[", pos):
            start = pos + 7
            end = buf.find("]]>", start)
            if end == -1:
                self._emit(CDataToken(buf[start:]))
                return self._eof()
            self.pos = end + 3
            self._emit(CDataToken(buf[start:end]))
            self.state = self.DATA
            return False
        return self._bogus_declaration(pos)

    def _state_rawtext(self) -> bool:
        buf = self.buffer
        pos = self.pos
        name = self.rawtext_tag
        if name is None:  # pragma: no cover
            self.state = self.DATA
            return False
        raw = name not in self.opts.rcdata_elements
        m = self._end_tag_pattern(name).search(buf, pos)
        gt = buf.find(">", m.end()) if m else -1
        if m is None or gt == -1:
            if pos < self.length:
                self._emit(CharacterTokens(buf[pos:], raw=raw))
            self.rawtext_tag = None
            return self._eof()
        if m.start() > pos:
            self._emit(CharacterTokens(buf[pos : m.start()], raw=raw))
        self.pos = gt + 1
        self._emit(Tag(Tag.END, name, {}, False, buf[m.start() : gt + 1]))
        self.rawtext_tag = None
        self.state = self.DATA
        return False


def tokenize(html: str, opts: TokenizerOpts | None = None) -> Iterator[Token]:
    """Tokenize `html` with a fresh tokenizer."""
    return Tokenizer(opts).tokens(html)
