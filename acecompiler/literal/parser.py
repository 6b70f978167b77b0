"""Restricted recursive-descent parser for relaxed object literals.

Accepts a JSON superset: unquoted identifier keys, single-quoted strings,
trailing commas, comments, hexadecimal and signed numbers, ``undefined``,
``NaN`` and ``Infinity``. Nothing is ever evaluated as code.
"""

from __future__ import annotations

import math
from typing import Any, Dict, List, Tuple

_UNDEFINED = object()

# Three interpreter frames per nesting level; must stay under the default recursion limit.
MAX_DEPTH = 200

_ESCAPES = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "b": "\b",
    "f": "\f",
    "v": "\v",
    "0": "\0",
    "'": "'",
    '"': '"',
    "`": "`",
    "\\": "\\",
    "/": "/",
}

_KEYWORDS: Dict[str, Any] = {
    "true": True,
    "false": False,
    "null": None,
    "undefined": _UNDEFINED,
    # JSON has no representation for these; they serialise as null.
    "NaN": None,
    "Infinity": None,
}


class LiteralSyntaxError(ValueError):
    """Raised when a card literal cannot be parsed."""

    def __init__(self, message: str, *, line: int, column: int) -> None:
        super().__init__(f"{message} (line {line}, column {column})")
        self.reason = message
        self.line = line
        self.column = column


def _is_identifier_start(char: str) -> bool:
    return bool(char) and (char.isalpha() or char in "_$")


def _is_identifier_part(char: str) -> bool:
    return bool(char) and (char.isalnum() or char in "_$")


class LiteralParser:
    """Parses one literal expression from ``text``."""

    def __init__(self, text: str) -> None:
        self.text = text
        self.position = 0
        self.depth = 0

    def parse(self) -> Any:
        self._skip_trivia()
        if self.position >= len(self.text):
            raise self._error("Expected a literal value but found end of input")
        value = self._parse_value()
        self._skip_trivia()
        if self.position < len(self.text) and self.text[self.position] == ";":
            self.position += 1
            self._skip_trivia()
        if self.position < len(self.text):
            raise self._error(f"Unexpected trailing content {self.text[self.position]!r}")
        return None if value is _UNDEFINED else value

    # ------------------------------------------------------------------
    # Grammar

    def _parse_value(self) -> Any:
        self._skip_trivia()
        char = self._peek()
        if not char:
            raise self._error("Unexpected end of input")
        if char in "{[(":
            return self._parse_nested(char)
        if char in ("'", '"'):
            return self._parse_string()
        if char.isdigit() or char in "+-.":
            return self._parse_number()
        if _is_identifier_start(char):
            start = self.position
            word = self._read_identifier()
            if word in _KEYWORDS:
                return _KEYWORDS[word]
            self.position = start
            raise self._error(f"Unsupported expression '{word}'")
        raise self._error(f"Unexpected character {char!r}")

    def _parse_nested(self, opener: str) -> Any:
        if self.depth >= MAX_DEPTH:
            raise self._error("Literal nested too deeply")
        self.depth += 1
        try:
            if opener == "{":
                return self._parse_object()
            if opener == "[":
                return self._parse_array()
            self.position += 1
            value = self._parse_value()
            self._expect(")")
            return value
        finally:
            self.depth -= 1

    def _parse_object(self) -> Dict[str, Any]:
        self._expect("{")
        result: Dict[str, Any] = {}
        while True:
            self._skip_trivia()
            if self._peek() == "}":
                self.position += 1
                return result
            key = self._parse_key()
            self._skip_trivia()
            self._expect(":")
            value = self._parse_value()
            if value is _UNDEFINED:
                result.pop(key, None)
            else:
                result[key] = value
            self._skip_trivia()
            char = self._peek()
            if char == ",":
                self.position += 1
                continue
            if char == "}":
                self.position += 1
                return result
            raise self._error("Expected ',' or '}' in object literal")

    def _parse_array(self) -> List[Any]:
        self._expect("[")
        items: List[Any] = []
        while True:
            self._skip_trivia()
            if self._peek() == "]":
                self.position += 1
                return items
            value = self._parse_value()
            items.append(None if value is _UNDEFINED else value)
            self._skip_trivia()
            char = self._peek()
            if char == ",":
                self.position += 1
                continue
            if char == "]":
                self.position += 1
                return items
            raise self._error("Expected ',' or ']' in array literal")

    def _parse_key(self) -> str:
        char = self._peek()
        if char in ("'", '"'):
            return self._parse_string()
        if _is_identifier_start(char):
            return self._read_identifier()
        if char.isdigit() or char == ".":
            number = self._parse_number()
            return _format_number_key(number)
        if char == "[":
            raise self._error("Computed property keys are not supported")
        raise self._error("Expected a property name")

    def _parse_string(self) -> str:
        quote = self.text[self.position]
        self.position += 1
        chunks: List[str] = []
        while True:
            if self.position >= len(self.text):
                raise self._error("Unterminated string literal")
            char = self.text[self.position]
            if char == quote:
                self.position += 1
                return "".join(chunks)
            if char == "\n":
                raise self._error("Unterminated string literal")
            if char == "\\":
                chunks.append(self._parse_escape())
                continue
            chunks.append(char)
            self.position += 1

    def _parse_escape(self) -> str:
        self.position += 1
        if self.position >= len(self.text):
            raise self._error("Unterminated escape sequence")
        char = self.text[self.position]
        self.position += 1
        if char == "u":
            if self._peek() == "{":
                close = self.text.find("}", self.position)
                if close < 0:
                    raise self._error("Unterminated unicode escape")
                digits = self.text[self.position + 1 : close]
                self.position = close + 1
                return self._code_point(digits, max_length=6)
            digits = self.text[self.position : self.position + 4]
            self.position += 4
            return self._code_point(digits, min_length=4)
        if char == "x":
            digits = self.text[self.position : self.position + 2]
            self.position += 2
            return self._code_point(digits, min_length=2)
        if char == "\r" and self._peek() == "\n":
            self.position += 1
            return ""
        if char == "\n":
            return ""
        return _ESCAPES.get(char, char)

    def _code_point(self, digits: str, *, min_length: int = 1, max_length: int | None = None) -> str:
        if len(digits) < min_length or (max_length is not None and len(digits) > max_length):
            raise self._error("Invalid escape sequence")
        try:
            return chr(int(digits, 16))
        except ValueError:
            raise self._error(f"Invalid escape sequence '{digits}'") from None

    def _parse_number(self) -> int | float | None:
        start = self.position
        sign = 1
        char = self._peek()
        if char in "+-":
            sign = -1 if char == "-" else 1
            self.position += 1
            self._skip_trivia()
            if self.text.startswith("Infinity", self.position):
                self.position += len("Infinity")
                return None
        if self.text[self.position : self.position + 2].lower() in ("0x", "0o", "0b"):
            base = {"x": 16, "o": 8, "b": 2}[self.text[self.position + 1].lower()]
            self.position += 2
            digits_start = self.position
            while self.position < len(self.text) and (
                self.text[self.position].isalnum() or self.text[self.position] == "_"
            ):
                self.position += 1
            digits = self.text[digits_start : self.position].replace("_", "")
            try:
                return sign * int(digits, base)
            except ValueError:
                self.position = start
                raise self._error("Invalid numeric literal") from None
        digits_start = self.position
        while self.position < len(self.text) and (
            self.text[self.position].isdigit() or self.text[self.position] in "._eE"
            or (self.text[self.position] in "+-" and self.text[self.position - 1] in "eE")
        ):
            self.position += 1
        raw = self.text[digits_start : self.position].replace("_", "")
        if not raw or raw == ".":
            self.position = start
            raise self._error("Invalid numeric literal")
        try:
            value = float(raw)
        except ValueError:
            self.position = start
            raise self._error(f"Invalid numeric literal '{raw}'") from None
        if self.position < len(self.text) and _is_identifier_start(self.text[self.position]):
            raise self._error("Identifier directly after number")
        return _normalise_number(sign * value)

    # ------------------------------------------------------------------
    # Lexical helpers

    def _read_identifier(self) -> str:
        start = self.position
        while self.position < len(self.text) and _is_identifier_part(self.text[self.position]):
            self.position += 1
        return self.text[start : self.position]

    def _skip_trivia(self) -> None:
        text = self.text
        while self.position < len(text):
            char = text[self.position]
            if char.isspace() or char == "\ufeff":
                self.position += 1
            elif text.startswith("//", self.position):
                newline = text.find("\n", self.position)
                self.position = len(text) if newline < 0 else newline
            elif text.startswith("/*", self.position):
                close = text.find("*/", self.position + 2)
                if close < 0:
                    raise self._error("Unterminated block comment")
                self.position = close + 2
            else:
                return

    def _peek(self) -> str:
        if self.position < len(self.text):
            return self.text[self.position]
        return ""

    def _expect(self, char: str) -> None:
        self._skip_trivia()
        if self._peek() != char:
            found = self._peek() or "end of input"
            raise self._error(f"Expected '{char}' but found {found!r}")
        self.position += 1

    def _location(self) -> Tuple[int, int]:
        consumed = self.text[: self.position]
        line = consumed.count("\n") + 1
        column = self.position - (consumed.rfind("\n") + 1) + 1
        return line, column

    def _error(self, message: str) -> LiteralSyntaxError:
        line, column = self._location()
        return LiteralSyntaxError(message, line=line, column=column)


def _normalise_number(value: float) -> int | float | None:
    if math.isnan(value) or math.isinf(value):
        return None
    if value.is_integer() and abs(value) < 2**53:
        return int(value)
    return value


def _format_number_key(number: int | float | None) -> str:
    if number is None:
        return "null"
    return str(number)


def parse_literal(text: str) -> Any:
    """Parse ``text`` as a single relaxed literal and return plain Python data."""
    return LiteralParser(text).parse()


__all__ = ["MAX_DEPTH", "LiteralParser", "LiteralSyntaxError", "parse_literal"]
