"""Configuration loading for acecompiler (.acecompiler.yml plus environment overrides)."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

import yaml

from .diagnostics import DEFAULT_LOG_LEVEL
from .models import TargetMode

CONFIG_FILENAME = ".acecompiler.yml"

ABILITY_PAGE = "page"
ABILITY_TEST_RUNNER = "testrunner"

_ENV_MODE = "DEVICE_LEVEL"
_ENV_ABILITY = "abilityType"
_ENV_PROJECT = "projectPath"
_ENV_LOG_LEVEL = "logLevel"
_ENV_MANIFEST = "aceManifestPath"
_ENV_OUTPUT = "ACECOMPILER_OUTPUT_PATH"


class ConfigError(RuntimeError):
    """Raised when the configuration file cannot be parsed."""


def _default_custom_lang() -> Dict[str, List[str]]:
    return {
        "sass": ["sass-loader"],
        "scss": ["sass-loader"],
        "less": ["less-loader"],
    }


@dataclass(frozen=True)
class StageTable:
    """Identifiers of the transform stages named in chain descriptors."""

    main: str = "loader.js"
    template: str = "template.js"
    style: str = "style.js"
    script: str = "script.js"
    json: str = "json.js"
    babel: str = "babel-loader"
    manifest: str = "manifest-loader.js"
    resource_reference: str = "resource-reference-script.js"

    def rooted(self, root: Path | None) -> "StageTable":
        """Return a copy whose local stages live under ``root``; ``babel`` stays a package name."""
        if root is None:
            return self
        return replace(
            self,
            main=str(root / self.main),
            template=str(root / self.template),
            style=str(root / self.style),
            script=str(root / self.script),
            json=str(root / self.json),
            manifest=str(root / self.manifest),
            resource_reference=str(root / self.resource_reference),
        )


@dataclass
class CompilerConfig:
    """Settings of one build session."""

    root: Path
    mode: TargetMode = TargetMode.RICH
    ability_type: str = ABILITY_PAGE
    log_level: int = DEFAULT_LOG_LEVEL
    manifest_path: Optional[Path] = None
    babel_config: Optional[Path] = None
    output_path: Optional[Path] = None
    entries: Dict[str, Path] = field(default_factory=dict)
    custom_lang: Dict[str, List[str]] = field(default_factory=_default_custom_lang)
    stages: StageTable = field(default_factory=StageTable)

    @property
    def app_root(self) -> Path:
        """Path of the application root script for the active ability type."""
        filename = "app.js" if self.ability_type == ABILITY_PAGE else f"{self.ability_type}.js"
        return (self.root / filename).resolve()

    def entry_markup_paths(self) -> Dict[str, Path]:
        """Map each entry name to the markup file it implies under the project root."""
        return {name: (self.root / f"{name}.hml").resolve() for name in self.entries}


def load_config(config_path: Path, *, environ: Mapping[str, str] | None = None) -> CompilerConfig:
    """Load configuration from disk, then apply environment overrides when given."""
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()

    config = CompilerConfig(root=root)
    if config_file.exists():
        data = _read_config(config_file)
        if not isinstance(data, dict):
            raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping at the root")
        config = _config_from_mapping(root, data)

    if environ is not None:
        config = apply_environment(config, environ)
    return config


def apply_environment(config: CompilerConfig, environ: Mapping[str, str]) -> CompilerConfig:
    """Override settings with the variables a host build tool exports."""
    updates: Dict[str, Any] = {}
    mode = environ.get(_ENV_MODE)
    if mode:
        updates["mode"] = _as_mode(mode)
    ability = environ.get(_ENV_ABILITY)
    if ability:
        updates["ability_type"] = ability
    project = environ.get(_ENV_PROJECT)
    if project:
        updates["root"] = Path(project).expanduser().resolve()
    log_level = _as_int(environ.get(_ENV_LOG_LEVEL))
    if log_level is not None:
        updates["log_level"] = log_level
    manifest = environ.get(_ENV_MANIFEST)
    if manifest:
        updates["manifest_path"] = Path(manifest)
    output = environ.get(_ENV_OUTPUT)
    if output:
        updates["output_path"] = Path(output)
    return replace(config, **updates) if updates else config


def _config_from_mapping(root: Path, data: Dict[str, Any]) -> CompilerConfig:
    config = CompilerConfig(root=root)

    mode = _as_str(data.get("mode"))
    if mode:
        config.mode = _as_mode(mode)

    ability = _as_str(data.get("ability_type"))
    if ability:
        config.ability_type = ability

    log_level = _as_int(data.get("log_level"))
    if log_level is not None:
        config.log_level = log_level

    config.manifest_path = _as_path(root, data.get("manifest_path"))
    config.babel_config = _as_path(root, data.get("babel_config"))
    config.output_path = _as_path(root, data.get("output_path"))

    entries_data = _as_dict(data.get("entries"))
    config.entries = {
        str(name): root / str(target)
        for name, target in entries_data.items()
        if isinstance(target, (str, Path))
    }

    lang_data = _as_dict(data.get("custom_lang"))
    if lang_data:
        custom_lang = _default_custom_lang()
        for lang, loaders in lang_data.items():
            custom_lang[str(lang)] = _as_str_list(loaders)
        config.custom_lang = custom_lang

    stages = StageTable()
    stage_data = _as_dict(data.get("stages"))
    if stage_data:
        known = {name: _as_str(value) for name, value in stage_data.items() if name in StageTable.__dataclass_fields__}
        stages = replace(stages, **{name: value for name, value in known.items() if value})
    loader_root = _as_path(root, data.get("loader_root"))
    config.stages = stages.rooted(loader_root)

    return config


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    if config_path.name != CONFIG_FILENAME:
        return (config_path.parent / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded or {}


def _as_mode(value: str) -> TargetMode:
    try:
        return TargetMode.parse(value)
    except ValueError as exc:
        raise ConfigError(str(exc)) from exc


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float, bool)) else None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return None
    return None


def _as_path(root: Path, value: Any) -> Optional[Path]:
    text = _as_str(value)
    if not text:
        return None
    return root / Path(text).expanduser()


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float, bool))]
    return []


__all__ = [
    "ABILITY_PAGE",
    "ABILITY_TEST_RUNNER",
    "CONFIG_FILENAME",
    "CompilerConfig",
    "ConfigError",
    "StageTable",
    "apply_environment",
    "load_config",
]
