"""Severity-levelled diagnostics with build-failure gating."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from enum import IntEnum
from pathlib import Path
from typing import Iterable, List, Optional

from .logging import get_logger
from .sourcemap import SourcePositionMap

DEFAULT_LOG_LEVEL = 1


class Severity(IntEnum):
    """Diagnostic severity; the value is the highest log level that still emits it."""

    NOTE = 1
    WARN = 2
    ERROR = 3

    @property
    def label(self) -> str:
        return "WARNING" if self is Severity.WARN else self.name


@dataclass(frozen=True)
class Diagnostic:
    """A single message attached to a compiled file."""

    severity: Severity
    file: str
    message: str
    line: Optional[int] = None
    column: Optional[int] = None

    def format(self) -> str:
        location = self.file
        if self.line and self.column:
            location = f"{location}:{self.line}:{self.column}"
        return f"{self.severity.label} File: {location}\n {self.message}"


def has_errors(diagnostics: Iterable[Diagnostic]) -> bool:
    """Return True when any diagnostic carries Error severity."""
    return any(diagnostic.severity is Severity.ERROR for diagnostic in diagnostics)


class DiagnosticSink:
    """Collects diagnostics for one compiled unit.

    ``log_level`` is the minimum severity that gets emitted: 1 shows notes,
    warnings and errors, 2 drops notes, 3 keeps only errors and anything above
    3 (or not positive) emits nothing. Reporting an error always marks the sink
    as failed, whether or not the error itself was emitted.

    With a ``position_map``, lines reported against generated text are moved
    to the original line and column they were produced from.
    """

    def __init__(
        self,
        file: Path | str,
        *,
        log_level: int = DEFAULT_LOG_LEVEL,
        position_map: SourcePositionMap | None = None,
    ) -> None:
        self.file = str(file)
        self.log_level = log_level
        self.position_map = position_map
        self._diagnostics: List[Diagnostic] = []
        self._failed = False
        self._lock = threading.Lock()
        self._logger = get_logger("diagnostics")

    @property
    def failed(self) -> bool:
        return self._failed

    @property
    def diagnostics(self) -> List[Diagnostic]:
        with self._lock:
            return list(self._diagnostics)

    def note(self, message: str, *, line: int | None = None, column: int | None = None) -> bool:
        return self.report(Severity.NOTE, message, line=line, column=column)

    def warn(self, message: str, *, line: int | None = None, column: int | None = None) -> bool:
        return self.report(Severity.WARN, message, line=line, column=column)

    def error(self, message: str, *, line: int | None = None, column: int | None = None) -> bool:
        return self.report(Severity.ERROR, message, line=line, column=column)

    def report(
        self,
        severity: Severity,
        message: str,
        *,
        line: int | None = None,
        column: int | None = None,
    ) -> bool:
        """Record a diagnostic; returns True when it was emitted."""
        line, column = self._original_location(line, column)
        diagnostic = Diagnostic(
            severity=severity, file=self.file, message=message, line=line, column=column
        )
        emitted = self._should_emit(severity)
        with self._lock:
            if severity is Severity.ERROR:
                self._failed = True
            if emitted:
                self._diagnostics.append(diagnostic)
        if emitted:
            self._log(diagnostic)
        return emitted

    def _original_location(self, line: int | None, column: int | None) -> tuple[int | None, int | None]:
        if self.position_map is None or line is None:
            return line, column
        original = self.position_map.lookup(line)
        if original is None:
            return line, column
        # Source map columns are 0-based, diagnostic columns 1-based.
        return original.line, original.column + 1

    def _should_emit(self, severity: Severity) -> bool:
        if self.log_level <= 0:
            return False
        return self.log_level <= int(severity)

    def _log(self, diagnostic: Diagnostic) -> None:
        text = diagnostic.format()
        if diagnostic.severity is Severity.ERROR:
            self._logger.error(text)
        elif diagnostic.severity is Severity.WARN:
            self._logger.warning(text)
        else:
            self._logger.info(text)


__all__ = ["DEFAULT_LOG_LEVEL", "Diagnostic", "DiagnosticSink", "Severity", "has_errors"]
