"""Source map v3 codec and the sparse generated-line to original-position table."""

from __future__ import annotations

import hashlib
import json
import os
import re
from bisect import bisect_right
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Protocol, Tuple

_BASE64_CHARS = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789+/"
_BASE64_VALUES = {char: index for index, char in enumerate(_BASE64_CHARS)}
_VLQ_SHIFT = 5
_VLQ_CONTINUATION = 1 << _VLQ_SHIFT
_VLQ_MASK = _VLQ_CONTINUATION - 1

_LINE_SPLIT = re.compile(r"\r?\n")


class SourceMapError(ValueError):
    """Raised when a source map payload cannot be decoded."""


@dataclass(frozen=True)
class OriginalPosition:
    """Position in the original source; line is 1-based and column 0-based."""

    source: str
    line: int
    column: int


class PositionConsumer(Protocol):
    """Anything that can answer original-position queries for generated code."""

    def original_position_for(self, line: int, column: int) -> Optional[OriginalPosition]:
        """Return the original position for a generated location, if mapped."""


@dataclass
class SourcePositionMap:
    """Sparse per-line table; generated lines without a mapping are absent."""

    entries: Dict[int, OriginalPosition] = field(default_factory=dict)
    source: Optional[str] = None
    sources_content: List[Optional[str]] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.entries)

    def __contains__(self, line: object) -> bool:
        return line in self.entries

    def lookup(self, line: int) -> Optional[OriginalPosition]:
        return self.entries.get(line)

    @property
    def generated_lines(self) -> List[int]:
        return sorted(self.entries)


def split_source_lines(source: str) -> List[str]:
    return _LINE_SPLIT.split(source)


def format_source_with_lines(source: str) -> str:
    """Render source text with 1-based line numbers, for debugging output."""
    lines = [">" * 33]
    lines.extend(f"{number}: {text}" for number, text in enumerate(split_source_lines(source), start=1))
    lines.append("<" * 33)
    return "\n".join(lines)


def build_map(generated_text: str, consumer: PositionConsumer) -> SourcePositionMap:
    """Query ``consumer`` at column 0 of every generated line and keep the hits."""
    table = SourcePositionMap(sources_content=list(getattr(consumer, "sources_content", [])))
    for line, _ in enumerate(split_source_lines(generated_text), start=1):
        position = consumer.original_position_for(line, 0)
        if position is None:
            continue
        table.source = position.source
        table.entries[line] = position
    return table


def file_name_with_hash(path: Path | str, content: str = "", *, base: Path | str = ".") -> str:
    """Return ``./<relative path>?<hash>`` used as the source id of generated maps."""
    relative = Path(os.path.relpath(str(path), str(base))).as_posix()
    digest = hashlib.sha1(f"{relative}{content}".encode("utf-8")).hexdigest()[:8]
    return f"./{relative}?{digest}"


def encode_vlq(value: int) -> str:
    vlq = (-value << 1) | 1 if value < 0 else value << 1
    encoded = []
    while True:
        digit = vlq & _VLQ_MASK
        vlq >>= _VLQ_SHIFT
        if vlq:
            digit |= _VLQ_CONTINUATION
        encoded.append(_BASE64_CHARS[digit])
        if not vlq:
            return "".join(encoded)


def decode_vlq_segment(segment: str) -> List[int]:
    values: List[int] = []
    shift = 0
    accumulator = 0
    for char in segment:
        try:
            digit = _BASE64_VALUES[char]
        except KeyError:
            raise SourceMapError(f"Invalid base64 character {char!r} in mappings") from None
        accumulator += (digit & _VLQ_MASK) << shift
        if digit & _VLQ_CONTINUATION:
            shift += _VLQ_SHIFT
            continue
        negative = accumulator & 1
        accumulator >>= 1
        values.append(-accumulator if negative else accumulator)
        shift = 0
        accumulator = 0
    if shift:
        raise SourceMapError("Truncated VLQ value in mappings")
    return values


@dataclass(frozen=True)
class _Mapping:
    generated_line: int
    generated_column: int
    source: str
    original_line: int
    original_column: int


class SourceMapGenerator:
    """Accumulates mappings and serialises them as a v3 source map."""

    def __init__(self, *, file: str | None = None, source_root: str | None = None) -> None:
        self.file = file
        self.source_root = source_root
        self._sources: List[str] = []
        self._contents: Dict[str, str] = {}
        self._mappings: List[_Mapping] = []

    def set_source_content(self, source: str, content: str) -> None:
        self._register_source(source)
        self._contents[source] = content

    def add_mapping(
        self,
        *,
        source: str,
        original: Tuple[int, int],
        generated: Tuple[int, int],
    ) -> None:
        self._register_source(source)
        generated_line, generated_column = generated
        original_line, original_column = original
        if generated_line < 1 or original_line < 1:
            raise SourceMapError("Source map lines are 1-based")
        self._mappings.append(
            _Mapping(generated_line, generated_column, source, original_line, original_column)
        )

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "version": 3,
            "sources": list(self._sources),
            "names": [],
            "mappings": self._encode_mappings(),
        }
        if self.file:
            payload["file"] = self.file
        if self.source_root:
            payload["sourceRoot"] = self.source_root
        if self._contents:
            payload["sourcesContent"] = [self._contents.get(source) for source in self._sources]
        return payload

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    def _register_source(self, source: str) -> None:
        if source not in self._sources:
            self._sources.append(source)

    def _encode_mappings(self) -> str:
        ordered = sorted(self._mappings, key=lambda item: (item.generated_line, item.generated_column))
        lines: List[str] = []
        previous_source = 0
        previous_original_line = 0
        previous_original_column = 0
        current_line = 1
        segments: List[str] = []
        previous_generated_column = 0
        for mapping in ordered:
            while current_line < mapping.generated_line:
                lines.append(",".join(segments))
                segments = []
                previous_generated_column = 0
                current_line += 1
            source_index = self._sources.index(mapping.source)
            segments.append(
                encode_vlq(mapping.generated_column - previous_generated_column)
                + encode_vlq(source_index - previous_source)
                + encode_vlq(mapping.original_line - 1 - previous_original_line)
                + encode_vlq(mapping.original_column - previous_original_column)
            )
            previous_generated_column = mapping.generated_column
            previous_source = source_index
            previous_original_line = mapping.original_line - 1
            previous_original_column = mapping.original_column
        lines.append(",".join(segments))
        return ";".join(lines)


class SourceMapConsumer:
    """Decodes a v3 source map and answers greatest-lower-bound position queries."""

    def __init__(self, raw: Mapping[str, Any] | str) -> None:
        payload = json.loads(raw) if isinstance(raw, str) else dict(raw)
        if payload.get("version") != 3:
            raise SourceMapError(f"Unsupported source map version: {payload.get('version')!r}")
        self.sources: List[str] = [str(source) for source in payload.get("sources", [])]
        self.sources_content: List[Optional[str]] = list(payload.get("sourcesContent") or [])
        self.source_root: Optional[str] = payload.get("sourceRoot")
        self._lines: Dict[int, List[Tuple[int, OriginalPosition]]] = {}
        self._decode(str(payload.get("mappings", "")))

    def original_position_for(self, line: int, column: int) -> Optional[OriginalPosition]:
        segments = self._lines.get(line)
        if not segments:
            return None
        columns = [generated_column for generated_column, _ in segments]
        index = bisect_right(columns, column) - 1
        if index < 0:
            return None
        return segments[index][1]

    def _decode(self, mappings: str) -> None:
        source_index = 0
        original_line = 0
        original_column = 0
        for line_number, line in enumerate(mappings.split(";"), start=1):
            generated_column = 0
            decoded: List[Tuple[int, OriginalPosition]] = []
            for segment in line.split(","):
                if not segment:
                    continue
                values = decode_vlq_segment(segment)
                generated_column += values[0]
                if len(values) < 4:
                    continue
                source_index += values[1]
                original_line += values[2]
                original_column += values[3]
                if not 0 <= source_index < len(self.sources):
                    raise SourceMapError(f"Mapping references unknown source index {source_index}")
                decoded.append(
                    (
                        generated_column,
                        OriginalPosition(
                            source=self.sources[source_index],
                            line=original_line + 1,
                            column=original_column,
                        ),
                    )
                )
            if decoded:
                decoded.sort(key=lambda item: item[0])
                self._lines[line_number] = decoded


def generate_map(
    path: Path | str,
    source: str,
    positions: Iterable[Tuple[Tuple[int, int], Tuple[int, int]]],
    *,
    source_root: Path | str | None = None,
) -> SourceMapGenerator:
    """Build a generator for ``path`` from ``(original, generated)`` position pairs."""
    root = Path(source_root) if source_root is not None else Path(".").resolve()
    source_id = file_name_with_hash(path, base=root)
    generator = SourceMapGenerator(source_root=str(root))
    generator.set_source_content(source_id, source)
    for original, generated in positions:
        generator.add_mapping(source=source_id, original=original, generated=generated)
    return generator


__all__ = [
    "OriginalPosition",
    "PositionConsumer",
    "SourceMapConsumer",
    "SourceMapError",
    "SourceMapGenerator",
    "SourcePositionMap",
    "build_map",
    "decode_vlq_segment",
    "encode_vlq",
    "file_name_with_hash",
    "format_source_with_lines",
    "generate_map",
    "split_source_lines",
]
