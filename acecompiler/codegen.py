"""Target-mode specific wrappers around the generated module references."""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Type

from jinja2 import Environment, FileSystemLoader

from .models import TargetMode

APP_STYLE = "$app_style$"
APP_SCRIPT = "$app_script$"
APP_TEMPLATE = "$app_template$"

_TEMPLATES_DIR = Path(__file__).with_name("templates")


def create_environment(templates_dir: Path | None = None) -> Environment:
    """Return the Jinja environment; a custom directory shadows the bundled templates."""
    directories = []
    if templates_dir:
        directories.append(str(templates_dir))
    directories.append(str(_TEMPLATES_DIR))
    return Environment(
        loader=FileSystemLoader(directories),
        autoescape=False,
        trim_blocks=True,
        lstrip_blocks=True,
    )


def module_binding(variable: str, require_expression: str) -> str:
    return f"var {variable} = {require_expression}"


class CodeEmitter(ABC):
    """Renders the application and page wrappers for one build-target mode."""

    mode: TargetMode
    app_template = "app_define.j2"
    page_template = "page_define.j2"

    def __init__(self, environment: Environment | None = None) -> None:
        self.environment = environment or create_environment()

    @abstractmethod
    def app_wrapper(self, name: str, *, has_style: bool, is_entry: bool) -> str:
        """Code registering the application script (and style) for ``name``."""

    @abstractmethod
    def page_wrapper(self, name: str, *, has_script: bool, has_style: bool, is_entry: bool) -> str:
        """Code assembling a page or component from its template, style and script."""

    def _render(self, template_name: str, **context: object) -> str:
        rendered = self.environment.get_template(template_name).render(**context)
        return "\n" + rendered.strip("\n") + "\n"


class RichEmitter(CodeEmitter):
    """Registers modules with the rich runtime through ``$app_define$``."""

    mode = TargetMode.RICH

    def app_wrapper(self, name: str, *, has_style: bool, is_entry: bool) -> str:
        return self._render(self.app_template, name=name, has_style=has_style, is_entry=is_entry)

    def page_wrapper(self, name: str, *, has_script: bool, has_style: bool, is_entry: bool) -> str:
        return self._render(
            self.page_template,
            name=name,
            has_script=has_script,
            has_style=has_style,
            is_entry=is_entry,
        )


class LiteEmitter(CodeEmitter):
    """Builds a flat ``ViewModel`` options object for the lite runtime."""

    mode = TargetMode.LITE
    app_template = "app_viewmodel.j2"
    page_template = "page_viewmodel.j2"

    def app_wrapper(self, name: str, *, has_style: bool, is_entry: bool) -> str:
        return self._render(self.app_template, has_style=has_style)

    def page_wrapper(self, name: str, *, has_script: bool, has_style: bool, is_entry: bool) -> str:
        return self._render(self.page_template, has_script=has_script, has_style=has_style)


class CardEmitter(RichEmitter):
    """Cards register the application like rich builds but render pages as view models."""

    mode = TargetMode.CARD
    page_template = "page_viewmodel.j2"


_EMITTERS: Dict[TargetMode, Type[CodeEmitter]] = {
    TargetMode.RICH: RichEmitter,
    TargetMode.LITE: LiteEmitter,
    TargetMode.CARD: CardEmitter,
}


def emitter_for(mode: TargetMode, environment: Environment | None = None) -> CodeEmitter:
    return _EMITTERS[mode](environment)


__all__ = [
    "APP_SCRIPT",
    "APP_STYLE",
    "APP_TEMPLATE",
    "CardEmitter",
    "CodeEmitter",
    "LiteEmitter",
    "RichEmitter",
    "create_environment",
    "emitter_for",
    "module_binding",
]
