"""Transform-chain resolution: which stages run for an asset, and in which order."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import List, Mapping, Optional, Sequence, Tuple, Union

from .collaborators import Filesystem, LocalFilesystem, ModuleResolver
from .config import ABILITY_PAGE, CompilerConfig
from .models import TargetMode

QueryValue = Union[str, bool, Sequence[str], None]

STAGE_SEPARATOR = "!"

KINDS = ("main", "element", "template", "style", "script", "config", "data")

RICH_BABEL_TARGETS = "node 8"


@dataclass(frozen=True)
class TransformStage:
    """One stage of a chain with its optional query parameters."""

    name: str
    query: Mapping[str, QueryValue] = field(default_factory=dict, hash=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "query", MappingProxyType(dict(self.query)))

    def stringify(self) -> str:
        params: List[str] = []
        for key, value in self.query.items():
            if value is None or value is False:
                continue
            if value is True:
                params.append(key)
            elif isinstance(value, (list, tuple)):
                params.append(f"{key}[]={','.join(str(item) for item in value)}")
            else:
                params.append(f"{key}={value}")
        if not params:
            return self.name
        return f"{self.name}?{'&'.join(params)}"


@dataclass(frozen=True)
class ChainDescriptor:
    """Ordered, immutable list of stages."""

    stages: Tuple[TransformStage, ...]

    def __str__(self) -> str:
        return self.stringify()

    def __len__(self) -> int:
        return len(self.stages)

    @property
    def names(self) -> List[str]:
        return [stage.name for stage in self.stages]

    def stringify(self) -> str:
        return STAGE_SEPARATOR.join(stage.stringify() for stage in self.stages)


@dataclass(frozen=True)
class ChainOptions:
    """Per-asset inputs to chain resolution."""

    source: Optional[Path] = None
    lang: Optional[str] = None
    app: bool = False


class ChainResolver:
    """Builds chain descriptors from the session configuration.

    The result depends only on the configuration, the options and, for the
    application script, whether the manifest file exists.
    """

    def __init__(self, config: CompilerConfig, *, filesystem: Filesystem | None = None) -> None:
        self.config = config
        self.filesystem = filesystem or LocalFilesystem()

    def resolve_chain(
        self,
        kind: str,
        target_mode: TargetMode | None = None,
        options: ChainOptions | None = None,
    ) -> ChainDescriptor:
        options = options or ChainOptions()
        mode = target_mode or self.config.mode
        builder = {
            "main": self._main_chain,
            "element": self._element_chain,
            "template": self._template_chain,
            "style": self._style_chain,
            "script": self._script_chain,
            "config": self._json_only_chain,
            "data": self._json_only_chain,
        }.get(kind)
        if builder is None:
            raise ValueError(f"Unknown chain kind '{kind}' (expected one of: {', '.join(KINDS)})")
        return ChainDescriptor(tuple(builder(mode, options)))

    def custom_stages(self, lang: str | None) -> List[TransformStage]:
        """Return the configured dialect stage for ``lang``; only the first loader is used."""
        if not lang:
            return []
        loaders = self.config.custom_lang.get(lang)
        if not loaders:
            return []
        return [TransformStage(loaders[0])]

    def _main_chain(self, mode: TargetMode, options: ChainOptions) -> List[TransformStage]:
        return [TransformStage(self.config.stages.main)]

    def _element_chain(self, mode: TargetMode, options: ChainOptions) -> List[TransformStage]:
        query = {} if options.source else {"element": True}
        return [TransformStage(self.config.stages.main, query)]

    def _template_chain(self, mode: TargetMode, options: ChainOptions) -> List[TransformStage]:
        stages = [TransformStage(self.config.stages.json), TransformStage(self.config.stages.template)]
        return stages + self.custom_stages(options.lang)

    def _style_chain(self, mode: TargetMode, options: ChainOptions) -> List[TransformStage]:
        stages = [TransformStage(self.config.stages.json), TransformStage(self.config.stages.style)]
        return stages + self.custom_stages(options.lang)

    def _script_chain(self, mode: TargetMode, options: ChainOptions) -> List[TransformStage]:
        stages = [TransformStage(self.config.stages.script)]
        custom = self.custom_stages(options.lang)
        if custom:
            stages.extend(custom)
        else:
            babel_query: dict[str, QueryValue] = {
                "extends": str(self.config.babel_config) if self.config.babel_config else None,
            }
            if mode is TargetMode.RICH:
                babel_query["targets"] = RICH_BABEL_TARGETS
            stages.append(TransformStage(self.config.stages.babel, babel_query))
            stages.append(TransformStage(self.config.stages.resource_reference))
        if options.app and self._manifest_available():
            stages.append(
                TransformStage(
                    self.config.stages.manifest,
                    {"path": str(options.source) if options.source else None},
                )
            )
        return stages

    def _json_only_chain(self, mode: TargetMode, options: ChainOptions) -> List[TransformStage]:
        return [TransformStage(self.config.stages.json)]

    def _manifest_available(self) -> bool:
        if self.config.ability_type != ABILITY_PAGE:
            return False
        manifest = self.config.manifest_path
        return manifest is not None and self.filesystem.exists(manifest)


def require_string(
    resolver: ModuleResolver,
    context: Path,
    chain: ChainDescriptor | None,
    request_path: str,
) -> str:
    """Return the ``require(...)`` expression loading ``request_path`` through ``chain``."""
    request = f"!!{chain.stringify()}!{request_path}" if chain and len(chain) else request_path
    return f"require({resolver.stringify_request(context, request)})\n"


__all__ = [
    "KINDS",
    "ChainDescriptor",
    "ChainOptions",
    "ChainResolver",
    "STAGE_SEPARATOR",
    "TransformStage",
    "require_string",
]
