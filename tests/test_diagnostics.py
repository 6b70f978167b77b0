"""Tests for severity gating in acecompiler.diagnostics."""

from __future__ import annotations

import logging

import pytest

from acecompiler.diagnostics import Diagnostic, DiagnosticSink, Severity, has_errors
from acecompiler.sourcemap import OriginalPosition, SourcePositionMap


@pytest.mark.parametrize("log_level", [0, 1, 2, 3, 4, -1])
def test_error_marks_failure_at_every_log_level(log_level: int) -> None:
    sink = DiagnosticSink("a.hml", log_level=log_level)

    sink.error("boom")

    assert sink.failed is True


def test_warnings_never_fail_the_build() -> None:
    sink = DiagnosticSink("a.hml", log_level=1)

    sink.warn("careful")
    sink.note("fyi")

    assert sink.failed is False
    assert [d.severity for d in sink.diagnostics] == [Severity.WARN, Severity.NOTE]


def test_log_level_filters_lower_severities() -> None:
    sink = DiagnosticSink("a.hml", log_level=2)

    assert sink.note("hidden") is False
    assert sink.warn("shown") is True
    assert sink.error("shown too") is True
    assert [d.message for d in sink.diagnostics] == ["shown", "shown too"]


def test_log_level_zero_emits_nothing_but_still_fails() -> None:
    sink = DiagnosticSink("a.hml", log_level=0)

    assert sink.error("silent") is False
    assert sink.diagnostics == []
    assert sink.failed is True


def test_diagnostic_format_includes_location() -> None:
    with_location = Diagnostic(Severity.WARN, "pages/a.hml", "bad", line=3, column=7)
    without_location = Diagnostic(Severity.ERROR, "pages/a.hml", "worse")

    assert with_location.format() == "WARNING File: pages/a.hml:3:7\n bad"
    assert without_location.format() == "ERROR File: pages/a.hml\n worse"


def test_emitted_diagnostics_are_logged(
    caplog: pytest.LogCaptureFixture, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(logging.getLogger("acecompiler"), "propagate", True)
    sink = DiagnosticSink("a.hml")

    with caplog.at_level(logging.INFO, logger="acecompiler"):
        sink.error("boom")

    assert "ERROR File: a.hml" in caplog.text


def test_has_errors_only_counts_errors() -> None:
    note = Diagnostic(Severity.NOTE, "a", "n")
    error = Diagnostic(Severity.ERROR, "a", "e")

    assert has_errors([note]) is False
    assert has_errors([note, error]) is True


def test_position_map_moves_mapped_lines_to_original_location() -> None:
    position_map = SourcePositionMap(entries={3: OriginalPosition("page.hml", 12, 4)})
    sink = DiagnosticSink("page.hml", position_map=position_map)

    sink.error("mapped", line=3, column=1)
    sink.error("unmapped", line=2, column=6)
    sink.warn("no location")

    mapped, unmapped, bare = sink.diagnostics
    assert (mapped.line, mapped.column) == (12, 5)
    assert (unmapped.line, unmapped.column) == (2, 6)
    assert (bare.line, bare.column) == (None, None)
