"""Tests for card literal normalisation."""

from __future__ import annotations

import pytest

from acecompiler.diagnostics import DiagnosticSink, Severity
from acecompiler.literal import CardLiteralNormalizer, LiteralSyntaxError, normalize
from acecompiler.literal.normalizer import js_truthy
from acecompiler.models import AssetKind


@pytest.fixture
def sink() -> DiagnosticSink:
    return DiagnosticSink("card.js")


def _warnings(sink: DiagnosticSink) -> list[str]:
    return [d.message for d in sink.diagnostics if d.severity is Severity.WARN]


def test_script_sections_are_extracted(sink: DiagnosticSink) -> None:
    text = """
    export default {
      data: { count: 0 },
      actions: {
        tap: { action: 'message', method: 'Tap', params: { v: this.count, e: $event.detail } },
      },
      apiVersion: { minApi: 5 },
    }
    """

    structured = normalize(text, AssetKind.SCRIPT, sink)

    assert structured.data == {"count": 0}
    assert structured.api_version == {"minApi": 5}
    assert structured.actions == {
        "tap": {
            "action": "message",
            "method": "tap",
            "params": {"v": "{{count}}", "e": "$event.detail"},
        }
    }
    assert structured.props is None
    assert list(structured.sections()) == ["actions", "data", "apiVersion"]


def test_uppercase_method_is_lowercased_with_one_warning(sink: DiagnosticSink) -> None:
    normalizer = CardLiteralNormalizer(sink)

    actions = normalizer.process_actions({"go": {"method": "GET"}})

    assert actions == {"go": {"method": "get"}}
    assert _warnings(sink) == ["The key method 'GET' in the actions don't support uppercase letters."]


def test_non_string_method_warns(sink: DiagnosticSink) -> None:
    CardLiteralNormalizer(sink).process_actions({"go": {"method": 3}})

    assert _warnings(sink) == ["The key method type in the actions should be 'string', not 'number'."]


def test_non_object_actions_warn(sink: DiagnosticSink) -> None:
    CardLiteralNormalizer(sink).process_actions(["go"])

    assert _warnings(sink) == ["The actions value type can only be Object."]


def test_props_list_normalises_to_defaults(sink: DiagnosticSink) -> None:
    props = CardLiteralNormalizer(sink).normalize_props(["title", "subtitle"])

    assert props == {"title": {"default": ""}, "subtitle": {"default": ""}}
    assert sink.diagnostics == []


def test_props_object_fills_missing_defaults(sink: DiagnosticSink) -> None:
    props = CardLiteralNormalizer(sink).normalize_props(
        {"title": {"default": "Hi"}, "size": {}, "bad": 3}
    )

    assert props == {
        "title": {"default": "Hi"},
        "size": {"default": ""},
        "bad": {"default": ""},
    }
    assert _warnings(sink) == ["The props default value type can only be Object in custom elements."]


def test_props_normalisation_is_idempotent(sink: DiagnosticSink) -> None:
    normalizer = CardLiteralNormalizer(sink)

    once = normalizer.normalize_props(["a", "b"])
    twice = normalizer.normalize_props(dict(once))

    assert twice == once


def test_props_of_other_types_warn(sink: DiagnosticSink) -> None:
    props = CardLiteralNormalizer(sink).normalize_props("title")

    assert props == "title"
    assert _warnings(sink) == ["The props type can only be Array or Object in custom elements."]


def test_non_object_data_warns(sink: DiagnosticSink) -> None:
    normalize("{ data: [1, 2] }", AssetKind.CONFIG, sink)

    assert _warnings(sink) == ["The data value type can only be Object."]


def test_style_and_markup_fill_their_own_section(sink: DiagnosticSink) -> None:
    style = normalize('{ ".title": { "color": "#fff" } }', AssetKind.STYLE, sink)
    markup = normalize('{ "type": "div", "children": [] }', AssetKind.MARKUP, sink)

    assert style.sections() == {"styles": {".title": {"color": "#fff"}}}
    assert markup.sections() == {"template": {"type": "div", "children": []}}


def test_unparsable_text_raises(sink: DiagnosticSink) -> None:
    with pytest.raises(LiteralSyntaxError):
        normalize("{ data: load() }", AssetKind.SCRIPT, sink)


def test_js_truthy_treats_empty_containers_as_truthy() -> None:
    assert js_truthy({}) is True
    assert js_truthy([]) is True
    assert js_truthy("") is False
    assert js_truthy(0) is False
    assert js_truthy(None) is False


def test_other_assets_are_rejected(sink: DiagnosticSink) -> None:
    with pytest.raises(ValueError, match="other assets"):
        normalize("{}", AssetKind.OTHER, sink)
