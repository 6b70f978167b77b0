"""Core data models shared across acecompiler components."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any, List, Mapping, Optional, Union

if TYPE_CHECKING:  # pragma: no cover - typing aid
    from .diagnostics import Diagnostic


class TargetMode(str, Enum):
    """Build-target mode that decides the shape of generated module code."""

    RICH = "rich"
    LITE = "lite"
    CARD = "card"

    @classmethod
    def parse(cls, value: str) -> TargetMode:
        try:
            return cls(value.strip().lower())
        except ValueError:
            known = ", ".join(mode.value for mode in cls)
            raise ValueError(f"Unknown build-target mode '{value}' (expected one of: {known})") from None


class AssetKind(str, Enum):
    """Kind of source asset, derived from the file suffix."""

    MARKUP = "markup"
    STYLE = "style"
    SCRIPT = "script"
    CONFIG = "config"
    OTHER = "other"


MARKUP_SUFFIX = ".hml"
SCRIPT_SUFFIX = ".js"
CONFIG_SUFFIX = ".json"
# Lookup order matters: the first existing sibling wins.
STYLE_SUFFIXES = (".css", ".less", ".scss", ".sass")

_KIND_BY_SUFFIX = {
    MARKUP_SUFFIX: AssetKind.MARKUP,
    SCRIPT_SUFFIX: AssetKind.SCRIPT,
    CONFIG_SUFFIX: AssetKind.CONFIG,
    **{suffix: AssetKind.STYLE for suffix in STYLE_SUFFIXES},
}


def asset_kind_for(path: Path) -> AssetKind:
    """Classify a path by suffix."""
    return _KIND_BY_SUFFIX.get(path.suffix.lower(), AssetKind.OTHER)


def name_from_path(path: Path) -> str:
    """Return the component name for a file: its base name up to the first dot."""
    return path.name.split(".", 1)[0]


@dataclass
class SourceUnit:
    """One compiled input together with the query metadata it was requested with.

    ``source_map`` is the v3 map a previous stage produced for ``source``; when
    present, diagnostics point at the original text instead.
    """

    path: Path
    source: str
    entry: bool = False
    name: Optional[str] = None
    parent_path: Optional[Path] = None
    source_map: Optional[Union[str, Mapping[str, Any]]] = None

    @property
    def kind(self) -> AssetKind:
        return asset_kind_for(self.path)

    @property
    def component_name(self) -> str:
        if self.entry:
            return self.path.stem
        return self.name or name_from_path(self.path)


@dataclass
class CompileResult:
    """Generated module code plus the diagnostics raised while producing it."""

    code: str
    diagnostics: List[Diagnostic] = field(default_factory=list)
    failed: bool = False
