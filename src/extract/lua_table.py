"""Decoder for the Lua table literals KOReader writes to metadata files.

A metadata file looks like::

    -- we can read Lua syntax here!
    return {
        ["doc_props"] = {
            ["title"] = "Dune",
        },
        ["annotations"] = {
            [1] = { ["text"] = "Fear is the mind-killer.", ... },
        },
    }

``decode()`` turns such text into the value tree from ``lua_values``.
Nested tables are handled with an explicit stack rather than recursion, so
hostile nesting fails with a ParseError at ``max_depth`` instead of
exhausting the interpreter stack. ``dumps()`` writes a tree back out in the
same style.
"""

import re
from pathlib import Path
from typing import NamedTuple

from common.constants import DEFAULT_MAX_DEPTH
from common.errors import ParseError

from .lua_values import NIL, Bool, Mapping, Nil, Number, RawValue, Sequence, String

# Token kinds
LBRACE = "{"
RBRACE = "}"
LBRACKET = "["
RBRACKET = "]"
EQUALS = "="
COMMA = ","
SEMI = ";"
STRING = "string"
NUMBER = "number"
NAME = "name"
EOF = "end of input"

_PUNCTUATION = {
    "{": LBRACE,
    "}": RBRACE,
    "]": RBRACKET,
    "=": EQUALS,
    ",": COMMA,
    ";": SEMI,
}

_NUMBER_RE = re.compile(r"-?(?:0[xX][0-9a-fA-F]+|(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")
_NAME_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
_INT_KEY_RE = re.compile(r"-?(?:0|[1-9]\d*)")

# Characters that end a plain run inside a short string. Tab is allowed raw.
_STRING_STOPS = {
    '"': re.compile(r'["\\\x00-\x08\x0a-\x1f\x7f]'),
    "'": re.compile(r"['\\\x00-\x08\x0a-\x1f\x7f]"),
}

_SIMPLE_ESCAPES = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "a": "\a",
    "b": "\b",
    "f": "\f",
    "v": "\v",
    "\\": "\\",
    '"': '"',
    "'": "'",
}


class _Token(NamedTuple):
    kind: str
    value: object
    offset: int


class _Lexer:
    """Splits metadata text into tokens, skipping whitespace and comments."""

    def __init__(self, text: str):
        self.text = text
        self.pos = 0
        self._peeked: _Token | None = None

    def error(self, reason: str, offset: int) -> ParseError:
        line = self.text.count("\n", 0, offset) + 1
        column = offset - (self.text.rfind("\n", 0, offset) + 1) + 1
        return ParseError(reason, offset, line, column)

    def peek(self) -> _Token:
        if self._peeked is None:
            self._peeked = self._scan()
        return self._peeked

    def next(self) -> _Token:
        token = self.peek()
        self._peeked = None
        return token

    def _scan(self) -> _Token:
        self._skip_space_and_comments()
        text = self.text
        pos = self.pos

        if pos >= len(text):
            return _Token(EOF, None, pos)

        ch = text[pos]

        if ch == "[":
            level = self._long_bracket_level(pos)
            if level is not None:
                return _Token(STRING, self._read_long_bracket(pos, level, "string"), pos)
            self.pos = pos + 1
            return _Token(LBRACKET, ch, pos)

        if ch in _PUNCTUATION:
            self.pos = pos + 1
            return _Token(_PUNCTUATION[ch], ch, pos)

        if ch in _STRING_STOPS:
            return _Token(STRING, self._read_short_string(pos), pos)

        number = _NUMBER_RE.match(text, pos)
        if number:
            return _Token(NUMBER, self._read_number(number), pos)

        name = _NAME_RE.match(text, pos)
        if name:
            self.pos = name.end()
            return _Token(NAME, name.group(), pos)

        raise self.error(f"unexpected character {ch!r}", pos)

    def _skip_space_and_comments(self) -> None:
        text = self.text
        length = len(text)
        while self.pos < length:
            ch = text[self.pos]
            if ch in " \t\r\n\f\v":
                self.pos += 1
            elif text.startswith("--", self.pos):
                start = self.pos + 2
                level = self._long_bracket_level(start)
                if level is not None:
                    self._read_long_bracket(start, level, "comment")
                else:
                    newline = text.find("\n", start)
                    self.pos = length if newline == -1 else newline + 1
            else:
                return

    def _long_bracket_level(self, pos: int) -> int | None:
        """Level of a ``[==[`` opener at ``pos``, or None if there is none."""
        text = self.text
        if not text.startswith("[", pos):
            return None
        end = pos + 1
        while end < len(text) and text[end] == "=":
            end += 1
        if end < len(text) and text[end] == "[":
            return end - pos - 1
        return None

    def _read_long_bracket(self, pos: int, level: int, what: str) -> str:
        start = pos + level + 2
        closing = "]" + "=" * level + "]"
        end = self.text.find(closing, start)
        if end == -1:
            raise self.error(f"unterminated long {what}", pos)
        self.pos = end + len(closing)
        content = self.text[start:end]
        # Lua drops a newline directly after the opening bracket
        if content.startswith("\r\n"):
            return content[2:]
        if content.startswith(("\n", "\r")):
            return content[1:]
        return content

    def _read_number(self, match: re.Match) -> int | float:
        literal = match.group()
        end = match.end()
        if end < len(self.text) and (self.text[end].isalnum() or self.text[end] == "_"):
            raise self.error(f"malformed number near {literal + self.text[end]!r}", match.start())
        self.pos = end
        if "x" in literal or "X" in literal:
            return int(literal, 16)
        if any(c in literal for c in ".eE"):
            return float(literal)
        try:
            return int(literal)
        except ValueError:
            # Past int()'s digit limit; Lua reads an overflowing integer as a float
            return float(literal)

    def _read_short_string(self, start: int) -> str:
        text = self.text
        quote = text[start]
        stops = _STRING_STOPS[quote]
        parts: list[str] = []
        # Escapes like \226\128\148 spell UTF-8 bytes, so they are gathered
        # and decoded together.
        pending = bytearray()

        def flush() -> None:
            if pending:
                parts.append(pending.decode("utf-8", errors="replace"))
                pending.clear()

        pos = start + 1
        while True:
            stop = stops.search(text, pos)
            if stop is None:
                raise self.error("unterminated string literal", start)

            if stop.start() > pos:
                flush()
                parts.append(text[pos : stop.start()])
            pos = stop.start()
            ch = text[pos]

            if ch == quote:
                flush()
                self.pos = pos + 1
                return "".join(parts)

            if ch != "\\":
                raise self.error(
                    f"unescaped control character U+{ord(ch):04X} in string literal", pos
                )

            pos += 1
            if pos >= len(text):
                raise self.error("unterminated string literal", start)
            esc = text[pos]

            if esc in _SIMPLE_ESCAPES:
                flush()
                parts.append(_SIMPLE_ESCAPES[esc])
                pos += 1
            elif esc in "\r\n":
                # Backslash-newline; Lua's %q writes newlines this way
                flush()
                parts.append("\n")
                pos += 2 if text.startswith("\r\n", pos) else 1
            elif esc == "z":
                pos += 1
                while pos < len(text) and text[pos] in " \t\r\n\f\v":
                    pos += 1
            elif esc == "x":
                digits = text[pos + 1 : pos + 3]
                if len(digits) != 2 or not all(c in "0123456789abcdefABCDEF" for c in digits):
                    raise self.error("invalid \\x escape in string literal", pos - 1)
                pending.append(int(digits, 16))
                pos += 3
            elif esc.isdigit():
                end = pos
                while end < len(text) and end < pos + 3 and text[end].isdigit():
                    end += 1
                value = int(text[pos:end])
                if value > 255:
                    raise self.error("decimal escape too large in string literal", pos - 1)
                pending.append(value)
                pos = end
            elif esc == "u":
                close = text.find("}", pos)
                digits = text[pos + 2 : close] if text.startswith("{", pos + 1) and close != -1 else ""
                if not digits or not all(c in "0123456789abcdefABCDEF" for c in digits):
                    raise self.error("invalid \\u escape in string literal", pos - 1)
                codepoint = int(digits, 16)
                if codepoint > 0x10FFFF:
                    raise self.error("\\u escape out of range in string literal", pos - 1)
                if 0xD800 <= codepoint <= 0xDFFF:
                    raise self.error(
                        f"\\u escape names surrogate U+{codepoint:04X} in string literal", pos - 1
                    )
                flush()
                parts.append(chr(codepoint))
                pos = close + 1
            else:
                raise self.error(f"invalid escape sequence '\\{esc}' in string literal", pos - 1)


class _Frame:
    """A table constructor that is still being read."""

    __slots__ = ("key", "offset", "fields", "expect_separator")

    def __init__(self, key: str | None, offset: int):
        self.key = key
        self.offset = offset
        self.fields: list[tuple[str | None, RawValue]] = []
        self.expect_separator = False

    def build(self) -> RawValue:
        if not self.fields:
            return Mapping({})
        if all(key is None for key, _ in self.fields):
            return Sequence(tuple(value for _, value in self.fields))
        entries: dict[str, RawValue] = {}
        position = 0
        for key, value in self.fields:
            if key is None:
                position += 1
                key = str(position)
            entries[key] = value
        return Mapping(entries)


def _number_key(value: int | float) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _literal(lexer: _Lexer, token: _Token) -> RawValue:
    if token.kind == STRING:
        return String(token.value)
    if token.kind == NUMBER:
        return Number(token.value)
    if token.kind == NAME:
        if token.value == "nil":
            return NIL
        if token.value in ("true", "false"):
            return Bool(token.value == "true")
        raise lexer.error(f"unexpected identifier '{token.value}'", token.offset)
    if token.kind == EOF:
        raise lexer.error("unexpected end of input: unbalanced braces", token.offset)
    raise lexer.error(f"expected a value, found '{token.value}'", token.offset)


def _read_key(lexer: _Lexer) -> str:
    """Read ``[key] =`` after the opening bracket."""
    token = lexer.next()
    if token.kind == STRING:
        key = token.value
    elif token.kind == NUMBER:
        key = _number_key(token.value)
    elif token.kind == NAME and token.value in ("true", "false"):
        key = token.value
    elif token.kind == NAME and token.value == "nil":
        raise lexer.error("table index is nil", token.offset)
    elif token.kind == EOF:
        raise lexer.error("unexpected end of input: unbalanced brackets", token.offset)
    else:
        raise lexer.error("table keys must be string, number or boolean literals", token.offset)

    closing = lexer.next()
    if closing.kind != RBRACKET:
        raise lexer.error("expected ']' to close table key", closing.offset)
    equals = lexer.next()
    if equals.kind != EQUALS:
        raise lexer.error(f"expected '=' after table key [{key!r}]", equals.offset)
    return key


def decode(text: str, max_depth: int = DEFAULT_MAX_DEPTH) -> RawValue:
    """Decode a serialized Lua table.

    Args:
        text: File contents; an optional leading ``return`` and trailing
            ``;`` are accepted
        max_depth: Deepest table nesting allowed

    Returns:
        The decoded table (a Mapping or Sequence)

    Raises:
        ParseError: If the text is not exactly one well-formed table
    """
    lexer = _Lexer(text)

    token = lexer.next()
    if token.kind == NAME and token.value == "return":
        token = lexer.next()
    if token.kind != LBRACE:
        raise lexer.error("expected a table constructor '{'", token.offset)

    stack = [_Frame(None, token.offset)]
    root: RawValue | None = None

    while stack:
        frame = stack[-1]
        token = lexer.next()

        if token.kind == EOF:
            raise lexer.error(
                f"unexpected end of input: {len(stack)} unclosed table(s), "
                f"innermost opened at offset {frame.offset}",
                token.offset,
            )

        if token.kind == RBRACE:
            stack.pop()
            value = frame.build()
            if stack:
                parent = stack[-1]
                parent.fields.append((frame.key, value))
                parent.expect_separator = True
            else:
                root = value
            continue

        if frame.expect_separator:
            if token.kind in (COMMA, SEMI):
                frame.expect_separator = False
                continue
            raise lexer.error("expected ',' or '}' after table field", token.offset)

        key = None
        if token.kind == LBRACKET:
            key = _read_key(lexer)
            token = lexer.next()
        elif token.kind == NAME and lexer.peek().kind == EQUALS:
            key = token.value
            lexer.next()
            token = lexer.next()

        if token.kind == LBRACE:
            if len(stack) >= max_depth:
                raise lexer.error(f"tables nested deeper than {max_depth} levels", token.offset)
            stack.append(_Frame(key, token.offset))
            continue

        frame.fields.append((key, _literal(lexer, token)))
        frame.expect_separator = True

    trailing = lexer.next()
    if trailing.kind == SEMI:
        trailing = lexer.next()
    if trailing.kind != EOF:
        raise lexer.error("unexpected content after the top-level table", trailing.offset)

    return root


def decode_file(path: Path, max_depth: int = DEFAULT_MAX_DEPTH) -> RawValue:
    """Read and decode a metadata file.

    Raises:
        ParseError: With ``source`` set to ``path``
        OSError: If the file cannot be read
        UnicodeDecodeError: If the file is not UTF-8
    """
    text = Path(path).read_text(encoding="utf-8")
    try:
        return decode(text, max_depth=max_depth)
    except ParseError as e:
        raise e.with_source(str(path)) from None


def _quote(value: str) -> str:
    out = ['"']
    for ch in value:
        if ch == "\\":
            out.append("\\\\")
        elif ch == '"':
            out.append('\\"')
        elif ch == "\n":
            out.append("\\n")
        elif ch == "\r":
            out.append("\\r")
        elif ch == "\t":
            out.append("\\t")
        elif ord(ch) < 0x20 or ord(ch) == 0x7F:
            out.append(f"\\{ord(ch):03d}")
        else:
            out.append(ch)
    out.append('"')
    return "".join(out)


def _dump_key(key: str) -> str:
    if _INT_KEY_RE.fullmatch(key):
        return f"[{key}]"
    return f"[{_quote(key)}]"


def _dump(value: RawValue, level: int, indent: str) -> str:
    if isinstance(value, Nil):
        return "nil"
    if isinstance(value, Bool):
        return "true" if value.value else "false"
    if isinstance(value, Number):
        if isinstance(value.value, float):
            if value.value != value.value or value.value in (float("inf"), float("-inf")):
                raise ValueError(f"cannot serialize non-finite number {value.value}")
            return repr(value.value)
        return str(value.value)
    if isinstance(value, String):
        return _quote(value.value)

    if isinstance(value, Mapping):
        fields = [f"{_dump_key(k)} = {_dump(v, level + 1, indent)}" for k, v in value.items()]
    elif isinstance(value, Sequence):
        fields = [_dump(v, level + 1, indent) for v in value]
    else:
        raise TypeError(f"cannot serialize {type(value).__name__}")

    if not fields:
        return "{}"
    inner = indent * (level + 1)
    body = "".join(f"{inner}{field},\n" for field in fields)
    return "{\n" + body + indent * level + "}"


def dumps(value: RawValue, indent: str = "    ") -> str:
    """Serialize a value tree in the style KOReader uses for metadata files."""
    return "return " + _dump(value, 0, indent) + "\n"
