"""Per-unit compilation: classify, discover sibling assets and emit module code."""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

from .card import dispatch_sections, resolve_descriptor
from .chain import ChainDescriptor, ChainOptions, ChainResolver, require_string
from .codegen import APP_SCRIPT, APP_STYLE, APP_TEMPLATE, CodeEmitter, emitter_for, module_binding
from .collaborators import (
    AggregationSink,
    CardDescriptorCollector,
    Filesystem,
    LocalFilesystem,
    ModuleResolver,
    RelativeModuleResolver,
)
from .config import ABILITY_PAGE, ABILITY_TEST_RUNNER, CompilerConfig
from .diagnostics import Diagnostic, DiagnosticSink, has_errors
from .graph import ComponentGraph, NameCollisionError
from .literal import CardLiteralNormalizer, LiteralSyntaxError
from .logging import get_logger
from .markup import ElementReference, parse_fragment
from .models import (
    MARKUP_SUFFIX,
    SCRIPT_SUFFIX,
    STYLE_SUFFIXES,
    AssetKind,
    CompileResult,
    SourceUnit,
    TargetMode,
    name_from_path,
)
from .reserved import ReservedNameError, is_reserved_tag
from .sourcemap import SourceMapConsumer, SourcePositionMap, build_map


class MissingRequiredAssetError(FileNotFoundError):
    """Raised when a custom element points at a file that does not exist."""

    def __init__(self, src: str) -> None:
        super().__init__(f"The file path of custom element does not exist, src: {src}")
        self.src = src


@dataclass(frozen=True)
class ElementDependency:
    """A custom element a compiled page asked the host to load."""

    path: Path
    name: str
    parent_path: Path


@dataclass
class UnitOutcome:
    """Compile result plus the element dependencies discovered on the way."""

    result: CompileResult
    dependencies: List[ElementDependency]


class BuildSession:
    """State shared by every unit of one build.

    The session owns the component graph and the card aggregation sink; it is
    created at build start and discarded afterwards. Results are recorded per
    canonical path.
    """

    def __init__(
        self,
        config: CompilerConfig,
        *,
        filesystem: Filesystem | None = None,
        resolver: ModuleResolver | None = None,
        sink: AggregationSink | None = None,
        graph: ComponentGraph | None = None,
    ) -> None:
        self.config = config
        self.filesystem = filesystem or LocalFilesystem()
        self.resolver = resolver or RelativeModuleResolver()
        self.sink = sink if sink is not None else CardDescriptorCollector()
        self.graph = graph or ComponentGraph()
        self._results: Dict[Path, CompileResult] = {}
        self._lock = threading.Lock()

    def record(self, path: Path, result: CompileResult) -> None:
        with self._lock:
            self._results[path] = result

    @property
    def results(self) -> Dict[Path, CompileResult]:
        with self._lock:
            return dict(self._results)

    @property
    def diagnostics(self) -> List[Diagnostic]:
        with self._lock:
            return [diagnostic for result in self._results.values() for diagnostic in result.diagnostics]

    @property
    def failed(self) -> bool:
        with self._lock:
            return any(result.failed for result in self._results.values())


class Compiler:
    """Compiles source units against a :class:`BuildSession`."""

    def __init__(self, session: BuildSession, *, emitter: CodeEmitter | None = None) -> None:
        self.session = session
        self.config = session.config
        self.filesystem = session.filesystem
        self.chains = ChainResolver(self.config, filesystem=self.filesystem)
        self.emitter = emitter or emitter_for(self.config.mode)
        self.logger = get_logger("orchestrator")

    # ------------------------------------------------------------------
    # Main stage

    def compile(self, unit: SourceUnit) -> CompileResult:
        """Compile one markup or script unit; diagnosable problems never raise."""
        return self.compile_unit(unit).result

    def compile_unit(self, unit: SourceUnit) -> UnitOutcome:
        path = Path(unit.path).resolve()
        unit = _with_path(unit, path)
        diagnostics = self._diagnostics_for(unit)
        dependencies: List[ElementDependency] = []
        self.logger.debug("Compiling %s (entry=%s)", path, unit.entry)
        code = self._compile(unit, diagnostics, dependencies)
        result = CompileResult(code=code, diagnostics=diagnostics.diagnostics, failed=diagnostics.failed)
        self.session.record(path, result)
        return UnitOutcome(result=result, dependencies=dependencies)

    def _compile(
        self,
        unit: SourceUnit,
        diagnostics: DiagnosticSink,
        dependencies: List[ElementDependency],
    ) -> str:
        name = unit.component_name
        scope = self._classify(unit, name)
        if self.config.ability_type == ABILITY_PAGE and is_reserved_tag(name):
            diagnostics.error(str(ReservedNameError(name)))
            return ""

        output = self._emit_app(unit, name)
        if unit.path.suffix == MARKUP_SUFFIX:
            page = self._emit_page(unit, name, scope, diagnostics, dependencies)
            if page is None:
                return ""
            output += page
        return output

    def _classify(self, unit: SourceUnit, name: str) -> Path:
        """Register the unit in the graph and return the scope its elements reserve names in."""
        graph = self.session.graph
        if unit.entry:
            graph.register_entry(unit.path, name)
            return unit.path
        parent = Path(unit.parent_path).resolve() if unit.parent_path else unit.path
        return graph.register_child(unit.path, parent)

    # ------------------------------------------------------------------
    # Application root

    def is_app(self, path: Path) -> bool:
        if self.config.ability_type == ABILITY_TEST_RUNNER:
            return True
        return path == self.config.app_root

    def _emit_app(self, unit: SourceUnit, name: str) -> str:
        if not self.is_app(unit.path):
            return unit.source if unit.path.suffix == SCRIPT_SUFFIX else ""

        output = ""
        style_path = _sibling(unit.path, ".css")
        has_style = self.filesystem.exists(style_path)
        if has_style:
            output += self._binding(
                APP_STYLE, unit.path, self.chains.resolve_chain("style", options=ChainOptions(source=style_path)), style_path
            )
        output += self._binding(
            APP_SCRIPT,
            unit.path,
            self.chains.resolve_chain("script", options=ChainOptions(source=unit.path, app=True)),
            unit.path,
        )
        output += self.emitter.app_wrapper(name, has_style=has_style, is_entry=unit.entry)
        return output

    # ------------------------------------------------------------------
    # Pages and components

    def _emit_page(
        self,
        unit: SourceUnit,
        name: str,
        scope: Path,
        diagnostics: DiagnosticSink,
        dependencies: List[ElementDependency],
    ) -> Optional[str]:
        fragment = parse_fragment(unit.source)
        output = ""
        for reference in fragment.elements:
            emitted = self._emit_element(unit, reference, scope, diagnostics, dependencies)
            if emitted is None:
                return None
            output += emitted

        output += self._binding(
            APP_TEMPLATE, unit.path, self.chains.resolve_chain("template", options=ChainOptions(source=unit.path)), unit.path
        )

        style = self._find_style(unit.path)
        if style is not None:
            style_path, lang = style
            output += self._binding(
                APP_STYLE,
                unit.path,
                self.chains.resolve_chain("style", options=ChainOptions(source=style_path, lang=lang)),
                style_path,
            )

        script_path = _sibling(unit.path, SCRIPT_SUFFIX)
        has_script = self.filesystem.exists(script_path)
        if has_script:
            output += self._binding(
                APP_SCRIPT,
                unit.path,
                self.chains.resolve_chain("script", options=ChainOptions(source=script_path)),
                script_path,
            )
        else:
            self.logger.info("missing %s", script_path)

        output += self.emitter.page_wrapper(
            name, has_script=has_script, has_style=style is not None, is_entry=unit.entry
        )
        return output

    def _emit_element(
        self,
        unit: SourceUnit,
        reference: ElementReference,
        scope: Path,
        diagnostics: DiagnosticSink,
        dependencies: List[ElementDependency],
    ) -> Optional[str]:
        if not reference.src:
            diagnostics.error(
                "src attributes must be set for custom elements.",
                line=reference.line,
                column=reference.column,
            )
            return None

        src = reference.src if reference.src.endswith(MARKUP_SUFFIX) else f"{reference.src}{MARKUP_SUFFIX}"
        file_path = _join(unit.path.parent, src)
        if src.startswith(("/", ".")) and not self.filesystem.exists(file_path):
            diagnostics.error(
                str(MissingRequiredAssetError(src)), line=reference.line, column=reference.column
            )
            return None

        element_name = (reference.name or name_from_path(Path(src))).lower()
        if not self.session.graph.check_and_reserve(scope, element_name):
            diagnostics.error(
                str(NameCollisionError(element_name, scope)),
                line=reference.line,
                column=reference.column,
            )
        self._check_entry(file_path, reference.src, diagnostics)

        dependencies.append(ElementDependency(path=file_path, name=element_name, parent_path=scope))
        chain = self.chains.resolve_chain("element", options=ChainOptions(source=Path(src)))
        return require_string(
            self.session.resolver, unit.path, chain, f"{src}?name={element_name}&parentPath={scope}"
        )

    def _check_entry(self, file_path: Path, src: str, diagnostics: DiagnosticSink) -> None:
        for entry_path in self.config.entry_markup_paths().values():
            if entry_path == file_path:
                diagnostics.warn(
                    f"The page \"{src}\" configured in 'config.json' can not be used as a custom component."
                    "To ensure that the debugging function is normal, please delete this page in 'config.json'."
                )

    def _find_style(self, path: Path) -> Optional[Tuple[Path, Optional[str]]]:
        for suffix in STYLE_SUFFIXES:
            candidate = _sibling(path, suffix)
            if self.filesystem.exists(candidate):
                lang = None if suffix == ".css" else suffix[1:]
                return candidate, lang
        return None

    def _diagnostics_for(self, unit: SourceUnit) -> DiagnosticSink:
        position_map: SourcePositionMap | None = None
        if unit.source_map is not None:
            try:
                position_map = build_map(unit.source, SourceMapConsumer(unit.source_map))
            except ValueError as exc:
                self.logger.warning("Ignoring unreadable source map for %s: %s", unit.path, exc)
        return DiagnosticSink(unit.path, log_level=self.config.log_level, position_map=position_map)

    def _binding(self, variable: str, context: Path, chain: ChainDescriptor, path: Path) -> str:
        return module_binding(variable, require_string(self.session.resolver, context, chain, str(path)))

    # ------------------------------------------------------------------
    # JSON stage

    def compile_config(self, unit: SourceUnit) -> CompileResult:
        """Run the configuration stage: card sections go to the sink, other modes export the text."""
        path = Path(unit.path).resolve()
        unit = _with_path(unit, path)
        diagnostics = self._diagnostics_for(unit)
        if self.config.mode is not TargetMode.CARD:
            code = f"module.exports = {unit.source}"
        elif unit.kind is AssetKind.OTHER:
            code = "{}"
            diagnostics.warn(f"Skipping {path.name}: only script, style, markup and JSON files carry card sections.")
        else:
            code = "{}"
            try:
                structured = CardLiteralNormalizer(diagnostics).normalize(unit.source, unit.kind)
            except LiteralSyntaxError as exc:
                diagnostics.error(
                    f"Failed to parse the file : {path}\n{exc}", line=exc.line, column=exc.column
                )
            else:
                descriptor, element = resolve_descriptor(self.config, path, unit.name)
                dispatch_sections(self.session.sink, descriptor, element, structured, unit.kind)
        result = CompileResult(code=code, diagnostics=diagnostics.diagnostics, failed=diagnostics.failed)
        self.session.record(path, result)
        return result

    # ------------------------------------------------------------------
    # Whole builds

    def build(self, entries: Iterable[Path], *, max_workers: int | None = None) -> Dict[Path, CompileResult]:
        """Compile entries and, level by level, every element they include."""
        pending: List[SourceUnit] = [
            SourceUnit(path=Path(path).resolve(), source=self.filesystem.read_text(path), entry=True)
            for path in entries
        ]
        seen = {(unit.path, None, None) for unit in pending}
        results: Dict[Path, CompileResult] = {}
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            while pending:
                outcomes = list(executor.map(self.compile_unit, pending))
                next_round: List[SourceUnit] = []
                for unit, outcome in zip(pending, outcomes):
                    results[unit.path] = outcome.result
                    for dependency in outcome.dependencies:
                        key = (dependency.path, dependency.name, dependency.parent_path)
                        if key in seen or not self.filesystem.exists(dependency.path):
                            continue
                        seen.add(key)
                        next_round.append(
                            SourceUnit(
                                path=dependency.path,
                                source=self.filesystem.read_text(dependency.path),
                                name=dependency.name,
                                parent_path=dependency.parent_path,
                            )
                        )
                pending = next_round
        if has_errors(d for result in results.values() for d in result.diagnostics):
            self.logger.debug("Build finished with errors in %d unit(s)", sum(r.failed for r in results.values()))
        return results


def _with_path(unit: SourceUnit, path: Path) -> SourceUnit:
    return unit if unit.path == path else replace(unit, path=path)


def _sibling(path: Path, suffix: str) -> Path:
    """Same file name with its last extension swapped for ``suffix``."""
    return path.with_name(f"{path.stem}{suffix}")


def _join(directory: Path, src: str) -> Path:
    """Join like a POSIX build tool: a leading slash does not reset to the filesystem root."""
    return (directory / src.lstrip("/")).resolve()


__all__ = [
    "BuildSession",
    "Compiler",
    "ElementDependency",
    "MissingRequiredAssetError",
    "UnitOutcome",
]
