"""Reader for the opam file syntax.

The syntax is shared by ``opam``, ``url`` and opam's own ``config`` file: a
sequence of ``field: value`` items, where values are strings, identifiers,
integers, booleans, ``[lists]``, ``(groups)``, values followed by an
``{option}`` block, and relational or logical expressions. ``kind "name"
{ ... }`` sections are accepted and kept as opaque items.
"""

import re
from dataclasses import dataclass, field
from typing import Any, NamedTuple

from ..errors import MetadataFormatError

_IDENT = re.compile(r"[A-Za-z_][A-Za-z0-9_+-]*(?::[A-Za-z_][A-Za-z0-9_+-]*)*")
_INT = re.compile(r"-?[0-9]+(?![A-Za-z0-9_+-])")
_RELOPS = ("!=", "<=", ">=", "=", "<", ">")
_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "b": "\b", '"': '"', "\\": "\\", " ": " "}
MAX_DEPTH = 100


class Token(NamedTuple):
    kind: str
    value: Any
    start: int
    end: int
    line: int
    column: int


@dataclass(frozen=True)
class Ident:
    name: str


@dataclass(frozen=True)
class Option:
    value: Any
    filters: list[Any]


@dataclass(frozen=True)
class Group:
    values: list[Any]


@dataclass(frozen=True)
class Operation:
    op: str
    left: Any
    right: Any


@dataclass(frozen=True)
class Prefix:
    op: str
    value: Any


@dataclass(frozen=True)
class Section:
    kind: str
    name: str | None
    fields: dict[str, "Field"]


@dataclass
class Field:
    """One item of a file, with the span of source text it came from."""

    name: str
    value: Any
    start: int
    end: int
    line: int
    extra: dict[str, Any] = field(default_factory=dict)


class _Lexer:
    def __init__(self, text: str):
        self.text = text
        self.pos = 0
        self.line = 1
        self.line_start = 0

    def _error(self, message: str) -> MetadataFormatError:
        return MetadataFormatError(message, self.line, self.pos - self.line_start + 1)

    def _advance(self, count: int) -> None:
        chunk = self.text[self.pos : self.pos + count]
        newlines = chunk.count("\n")
        if newlines:
            self.line += newlines
            self.line_start = self.pos + chunk.rindex("\n") + 1
        self.pos += count

    def _skip_blanks(self) -> None:
        text = self.text
        while self.pos < len(text):
            char = text[self.pos]
            if char in " \t\r\n":
                self._advance(1)
            elif char == "#":
                end = text.find("\n", self.pos)
                self._advance((len(text) if end < 0 else end) - self.pos)
            elif text.startswith("(*", self.pos):
                depth = 0
                while True:
                    if self.pos >= len(text):
                        raise self._error("unterminated comment")
                    if text.startswith("(*", self.pos):
                        depth += 1
                        self._advance(2)
                    elif text.startswith("*)", self.pos):
                        depth -= 1
                        self._advance(2)
                        if depth == 0:
                            break
                    else:
                        self._advance(1)
            else:
                return

    def _string(self) -> str:
        text = self.text
        if text.startswith('"""', self.pos):
            end = text.find('"""', self.pos + 3)
            if end < 0:
                raise self._error("unterminated string")
            value = text[self.pos + 3 : end]
            self._advance(end + 3 - self.pos)
            return value
        chars = []
        index = self.pos + 1
        while True:
            if index >= len(text):
                raise self._error("unterminated string")
            char = text[index]
            if char == '"':
                break
            if char == "\\" and index + 1 < len(text):
                following = text[index + 1]
                if following == "\n":
                    index += 2
                    while index < len(text) and text[index] in " \t":
                        index += 1
                    continue
                chars.append(_ESCAPES.get(following, "\\" + following))
                index += 2
                continue
            chars.append(char)
            index += 1
        self._advance(index + 1 - self.pos)
        return "".join(chars)

    def tokens(self) -> list[Token]:
        result = []
        text = self.text
        while True:
            self._skip_blanks()
            if self.pos >= len(text):
                break
            start, line, column = self.pos, self.line, self.pos - self.line_start + 1
            char = text[self.pos]
            if char == '"':
                kind, value = "STRING", self._string()
            elif char in "[]{}():":
                kind, value = char, char
                self._advance(1)
            elif char in "&|":
                kind, value = "LOGOP", char
                self._advance(1)
            elif (match := _INT.match(text, self.pos)) is not None:
                kind, value = "INT", int(match.group())
                self._advance(match.end() - self.pos)
            elif (match := _IDENT.match(text, self.pos)) is not None:
                word = match.group()
                if word in ("true", "false"):
                    kind, value = "BOOL", word == "true"
                else:
                    kind, value = "IDENT", word
                self._advance(match.end() - self.pos)
            else:
                relop = next((op for op in _RELOPS if text.startswith(op, self.pos)), None)
                if relop is not None:
                    kind, value = "RELOP", relop
                    self._advance(len(relop))
                elif char in "!?":
                    kind, value = "PFXOP", char
                    self._advance(1)
                else:
                    raise self._error(f"unexpected character {char!r}")
            result.append(Token(kind, value, start, self.pos, line, column))
        return result


class _Parser:
    def __init__(self, tokens: list[Token]):
        self.tokens = tokens
        self.index = 0
        self.depth = 0

    def _nest(self, token: Token) -> None:
        self.depth += 1
        if self.depth > MAX_DEPTH:
            raise MetadataFormatError(
                f"values nested deeper than {MAX_DEPTH} levels",
                token.line,
                token.column,
            )

    def _peek(self, offset: int = 0) -> Token | None:
        index = self.index + offset
        return self.tokens[index] if index < len(self.tokens) else None

    def _eof_error(self) -> MetadataFormatError:
        last = self.tokens[-1] if self.tokens else None
        return MetadataFormatError(
            "unexpected end of file",
            last.line if last else 1,
            last.column if last else 1,
        )

    def _next(self) -> Token:
        token = self._peek()
        if token is None:
            raise self._eof_error()
        self.index += 1
        return token

    def _expect(self, kind: str) -> Token:
        token = self._next()
        if token.kind != kind:
            raise MetadataFormatError(
                f"expected {kind!r}, found {token.value!r}", token.line, token.column
            )
        return token

    def items(self, closing: str | None = None) -> dict[str, Field]:
        fields: dict[str, Field] = {}
        while True:
            token = self._peek()
            if token is None or (closing and token.kind == closing):
                return fields
            item = self._item()
            if item.name in fields:
                raise MetadataFormatError(
                    f"duplicate field {item.name!r}", item.line, token.column
                )
            fields[item.name] = item

    def _item(self) -> Field:
        name = self._expect("IDENT")
        following = self._peek()
        if following is not None and following.kind == ":":
            self._next()
            value = self._value()
            end = self.tokens[self.index - 1].end
            return Field(name.value, value, name.start, end, name.line)
        section_name = None
        if following is not None and following.kind == "STRING":
            section_name = self._next().value
        self._nest(self._expect("{"))
        fields = self.items(closing="}")
        close = self._expect("}")
        self.depth -= 1
        return Field(
            name.value,
            Section(name.value, section_name, fields),
            name.start,
            close.end,
            name.line,
        )

    def _values(self, closing: str) -> list[Any]:
        values = []
        while True:
            token = self._peek()
            if token is None:
                raise self._eof_error()
            if token.kind == closing:
                self._next()
                return values
            values.append(self._value())

    def _value(self) -> Any:
        left = self._primary()
        while True:
            token = self._peek()
            if token is None or token.kind not in ("RELOP", "LOGOP"):
                return left
            self._next()
            left = Operation(token.value, left, self._primary())

    def _primary(self) -> Any:
        token = self._next()
        self._nest(token)
        value = self._nested_primary(token)
        self.depth -= 1
        return value

    def _nested_primary(self, token: Token) -> Any:
        if token.kind in ("PFXOP", "RELOP"):
            value: Any = Prefix(token.value, self._primary())
        elif token.kind in ("STRING", "INT", "BOOL"):
            value = token.value
        elif token.kind == "IDENT":
            value = Ident(token.value)
        elif token.kind == "[":
            value = self._values("]")
        elif token.kind == "(":
            value = Group(self._values(")"))
        else:
            raise MetadataFormatError(
                f"unexpected {token.value!r}", token.line, token.column
            )
        following = self._peek()
        if following is not None and following.kind == "{":
            self._next()
            value = Option(value, self._values("}"))
        return value


def parse_fields(text: str) -> dict[str, Field]:
    """Parse opam-syntax text into its top-level fields, in file order.

    Raises:
        MetadataFormatError: On any lexical or syntax error, or on a field
            that appears twice.
    """
    return _Parser(_Lexer(text).tokens()).items()


def string_value(value: Any) -> str | None:
    """The plain string held by ``value``, ignoring an option block."""
    if isinstance(value, Option):
        value = value.value
    return value if isinstance(value, str) else None


def string_list(value: Any) -> list[str] | None:
    """A string or list of strings as a list, None for any other shape."""
    if isinstance(value, Option):
        value = value.value
    if isinstance(value, str):
        return [value]
    if isinstance(value, list):
        strings = [string_value(item) for item in value]
        if all(item is not None for item in strings):
            return strings
    return None


def quote(text: str) -> str:
    """Render ``text`` as an opam string literal."""
    escaped = text.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'
