"""Routing of normalised card sections to the descriptor aggregation sink."""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Tuple

from .collaborators import AggregationSink
from .config import CompilerConfig
from .literal import StructuredConfig
from .models import AssetKind

_SCRIPT_SECTIONS = ("actions", "data", "apiVersion")
_ELEMENT_ONLY_SECTIONS = ("props",)


def resolve_descriptor(
    config: CompilerConfig,
    resource_path: Path,
    element_name: Optional[str],
) -> Tuple[Path, Optional[str]]:
    """Return the descriptor file an asset contributes to and its element scope.

    Assets living next to an entry's root file belong to that entry's
    descriptor directly; anything else is an included element and is scoped
    under ``element_name`` in the descriptor of the last configured entry.
    """
    output_dir = config.output_path or config.root
    resource_dir = resource_path.resolve().parent
    key: Optional[str] = None
    for name, root_file in config.entries.items():
        key = name
        if root_file.resolve().parent == resource_dir:
            return output_dir / f"{name}.json", None
    if key is None:
        return output_dir / f"{resource_path.stem}.json", None
    return output_dir / f"{key}.json", element_name or resource_path.stem


def dispatch_sections(
    sink: AggregationSink,
    descriptor: Path,
    element: Optional[str],
    structured: StructuredConfig,
    asset_kind: AssetKind,
) -> None:
    sink.init(descriptor)
    sections = {
        "actions": structured.actions,
        "data": structured.data,
        "apiVersion": structured.api_version,
        "props": structured.props,
        "styles": structured.styles,
        "template": structured.template,
    }
    if asset_kind in (AssetKind.SCRIPT, AssetKind.CONFIG):
        names = _SCRIPT_SECTIONS + (_ELEMENT_ONLY_SECTIONS if element else ())
    elif asset_kind is AssetKind.STYLE:
        names = ("styles",)
    else:
        names = ("template",)
    for name in names:
        sink.compile_json(descriptor, name, sections[name], element)


__all__ = ["dispatch_sections", "resolve_descriptor"]
