"""String- and comment-aware rewriting passes over relaxed card literal text."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Iterator, List, Optional

CODE = "code"
STRING = "string"
COMMENT = "comment"

_QUOTES = ("'", '"', "`")
_EXPORT_DEFAULT = "export default"

_EVENT_PATH = re.compile(r"(?<![\w$.])\$event(?:\.[A-Za-z_$][\w$]*)+")
_THIS_PREFIX = re.compile(r"(?<![\w$.])this\.")
_THIS_START = re.compile(r"(?<![\w$.])this\.[A-Za-z_$]")

_CLOSERS = {")": "(", "]": "[", "}": "{"}


@dataclass(frozen=True)
class Segment:
    """A run of literal text classified as code, string (quotes included) or comment."""

    kind: str
    text: str


def _literal_end(text: str, index: int) -> Optional[int]:
    """Return the end offset of the string or comment starting at ``index``, if any."""
    char = text[index]
    if char in _QUOTES:
        position = index + 1
        length = len(text)
        while position < length:
            current = text[position]
            if current == "\\":
                position += 2
                continue
            if current == char:
                return position + 1
            if current == "\n" and char != "`":
                # Unterminated string: stop at the line end and let the parser report it.
                return position
            position += 1
        return length
    if text.startswith("//", index):
        newline = text.find("\n", index)
        return len(text) if newline < 0 else newline
    if text.startswith("/*", index):
        close = text.find("*/", index + 2)
        return len(text) if close < 0 else close + 2
    return None


def iter_segments(text: str) -> Iterator[Segment]:
    start = 0
    index = 0
    length = len(text)
    while index < length:
        end = _literal_end(text, index)
        if end is None:
            index += 1
            continue
        if index > start:
            yield Segment(CODE, text[start:index])
        kind = STRING if text[index] in _QUOTES else COMMENT
        yield Segment(kind, text[index:end])
        start = index = end
    if start < length:
        yield Segment(CODE, text[start:])


def map_code(text: str, transform: Callable[[str], str]) -> str:
    """Apply ``transform`` to code runs only; strings and comments are left alone."""
    return "".join(
        transform(segment.text) if segment.kind == CODE else segment.text
        for segment in iter_segments(text)
    )


def strip_comments(text: str) -> str:
    """Remove comments; block comments keep their line breaks so positions stay stable."""
    parts: List[str] = []
    for segment in iter_segments(text):
        if segment.kind == COMMENT:
            parts.append("\n" * segment.text.count("\n"))
        else:
            parts.append(segment.text)
    return "".join(parts)


def strip_export_default(text: str) -> str:
    if text.strip().startswith(_EXPORT_DEFAULT):
        return text.replace(_EXPORT_DEFAULT, "", 1)
    return text


def strip_event_quotes(text: str) -> str:
    """Unquote string literals whose content is a ``$event.`` expression."""
    parts: List[str] = []
    for segment in iter_segments(text):
        inner = segment.text[1:-1]
        if (
            segment.kind == STRING
            and len(segment.text) >= 2
            and segment.text[0] in "'\""
            and segment.text[-1] == segment.text[0]
            and inner.lstrip().startswith("$event.")
        ):
            parts.append(inner)
        else:
            parts.append(segment.text)
    return "".join(parts)


def quote_event_references(text: str) -> str:
    """Wrap bare ``$event.<path>`` references in double quotes."""
    return map_code(text, lambda chunk: _EVENT_PATH.sub(lambda match: f'"{match.group(0)}"', chunk))


def rewrite_this_bindings(text: str) -> str:
    """Turn ``this.<expr>`` outside strings into a ``"{{<expr>}}"`` binding string.

    The expression runs to the next top-level comma, semicolon, closing bracket
    or line break, so a trailing comma stays outside the binding.
    """
    parts: List[str] = []
    index = 0
    length = len(text)
    while index < length:
        end = _literal_end(text, index)
        if end is not None:
            parts.append(text[index:end])
            index = end
            continue
        if _THIS_START.match(text, index):
            end = _expression_end(text, index)
            expression = text[index:end].rstrip()
            parts.append(f'"{{{{{_binding_body(expression)}}}}}"')
            parts.append(text[index + len(expression):end])
            index = end
            continue
        parts.append(text[index])
        index += 1
    return "".join(parts)


def rewrite_expressions(text: str) -> str:
    """Run the event and binding rewrites in order."""
    text = strip_event_quotes(text)
    text = quote_event_references(text)
    return rewrite_this_bindings(text)


def _expression_end(text: str, start: int) -> int:
    stack: List[str] = []
    index = start
    length = len(text)
    while index < length:
        end = _literal_end(text, index)
        if end is not None:
            index = end
            continue
        char = text[index]
        if char in "([{":
            stack.append(char)
        elif char in _CLOSERS:
            if not stack:
                return index
            stack.pop()
        elif not stack and char in ",;\n":
            return index
        index += 1
    return length


def _binding_body(expression: str) -> str:
    body = map_code(expression, lambda chunk: _THIS_PREFIX.sub("", chunk))
    return body.replace("\\", "\\\\").replace('"', "'")


__all__ = [
    "Segment",
    "iter_segments",
    "map_code",
    "quote_event_references",
    "rewrite_expressions",
    "rewrite_this_bindings",
    "strip_comments",
    "strip_event_quotes",
    "strip_export_default",
]
