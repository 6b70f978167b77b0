"""Normalises relaxed card literals into strict structured sections."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Dict, Optional

from ..diagnostics import DiagnosticSink
from ..models import AssetKind
from .parser import parse_literal
from .scanner import rewrite_expressions, strip_comments, strip_export_default


@dataclass
class StructuredConfig:
    """Sections extracted from one card asset; absent sections stay ``None``."""

    actions: Any = None
    data: Any = None
    api_version: Any = None
    props: Any = None
    styles: Any = None
    template: Any = None

    def sections(self) -> Dict[str, Any]:
        """Present sections keyed by their descriptor name, in descriptor order."""
        ordered = {
            "actions": self.actions,
            "data": self.data,
            "apiVersion": self.api_version,
            "props": self.props,
            "styles": self.styles,
            "template": self.template,
        }
        return {name: value for name, value in ordered.items() if value is not None}


def js_truthy(value: Any) -> bool:
    """Truthiness as the card runtime sees it: empty containers are truthy."""
    if value is None or value is False:
        return False
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value != 0
    if isinstance(value, str):
        return value != ""
    return True


def _type_name(value: Any) -> str:
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    return "object"


def preprocess(raw_text: str, asset_kind: AssetKind) -> str:
    """Apply the textual passes that precede parsing."""
    text = strip_comments(raw_text)
    text = strip_export_default(text)
    if asset_kind in (AssetKind.SCRIPT, AssetKind.CONFIG):
        text = rewrite_expressions(text)
    return text


class CardLiteralNormalizer:
    """Turns card literal text into a :class:`StructuredConfig`.

    Shape problems are reported as warnings on ``diagnostics`` and never stop
    normalisation; unparsable text raises :class:`LiteralSyntaxError`.
    """

    def __init__(self, diagnostics: DiagnosticSink) -> None:
        self.diagnostics = diagnostics

    def normalize(self, raw_text: str, asset_kind: AssetKind) -> StructuredConfig:
        if asset_kind is AssetKind.OTHER:
            raise ValueError(f"Card literals cannot be read from {asset_kind.value} assets")
        text = preprocess(raw_text, asset_kind)
        # Round-trip through JSON so every section is plain, strict data.
        value = json.loads(json.dumps(parse_literal(text)))

        if asset_kind in (AssetKind.SCRIPT, AssetKind.CONFIG):
            source = value if isinstance(value, dict) else {}
            return StructuredConfig(
                actions=self.process_actions(source.get("actions")),
                data=self.validate_data(source.get("data")),
                api_version=source.get("apiVersion"),
                props=self.normalize_props(source.get("props")),
            )
        if asset_kind is AssetKind.STYLE:
            return StructuredConfig(styles=value)
        return StructuredConfig(template=value)

    def normalize_props(self, props: Any) -> Any:
        if not js_truthy(props):
            return props
        if isinstance(props, list):
            normalized: Dict[str, Any] = {}
            for item in props:
                if not isinstance(item, str):
                    self.diagnostics.warn(
                        f"The props value type should be 'string', not '{_type_name(item)}' "
                        "in props array in custom elements."
                    )
                normalized[item if isinstance(item, str) else json.dumps(item)] = {"default": ""}
            return normalized
        if isinstance(props, dict):
            for name, definition in list(props.items()):
                if not isinstance(definition, dict):
                    self.diagnostics.warn(
                        "The props default value type can only be Object in custom elements."
                    )
                if not isinstance(definition, dict) or "default" not in definition:
                    props[name] = {"default": ""}
            return props
        self.diagnostics.warn("The props type can only be Array or Object in custom elements.")
        return props

    def process_actions(self, actions: Any) -> Any:
        if isinstance(actions, dict):
            for action in actions.values():
                if not isinstance(action, dict):
                    continue
                method = action.get("method")
                if not js_truthy(method):
                    continue
                if not isinstance(method, str):
                    self.diagnostics.warn(
                        f"The key method type in the actions should be 'string', not '{_type_name(method)}'."
                    )
                    continue
                lowered = method.lower()
                if lowered != method:
                    self.diagnostics.warn(
                        f"The key method '{method}' in the actions don't support uppercase letters."
                    )
                    action["method"] = lowered
        elif js_truthy(actions):
            self.diagnostics.warn("The actions value type can only be Object.")
        return actions

    def validate_data(self, data: Any) -> Any:
        if js_truthy(data) and not isinstance(data, dict):
            self.diagnostics.warn("The data value type can only be Object.")
        return data


def normalize(
    raw_text: str,
    asset_kind: AssetKind,
    diagnostics: Optional[DiagnosticSink] = None,
) -> StructuredConfig:
    """Convenience wrapper around :class:`CardLiteralNormalizer`."""
    sink = diagnostics or DiagnosticSink("<card>")
    return CardLiteralNormalizer(sink).normalize(raw_text, asset_kind)


__all__ = [
    "CardLiteralNormalizer",
    "StructuredConfig",
    "js_truthy",
    "normalize",
    "preprocess",
]
