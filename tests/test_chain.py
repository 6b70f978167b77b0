"""Tests for transform-chain resolution."""

from __future__ import annotations

from pathlib import Path

import pytest

from acecompiler.chain import (
    ChainOptions,
    ChainResolver,
    TransformStage,
    require_string,
)
from acecompiler.collaborators import RelativeModuleResolver
from acecompiler.config import CompilerConfig
from acecompiler.models import TargetMode


def _resolver(tmp_path: Path, **overrides: object) -> ChainResolver:
    return ChainResolver(CompilerConfig(root=tmp_path, **overrides))


def test_stage_stringify_handles_flags_lists_and_nulls() -> None:
    stage = TransformStage(
        "babel-loader",
        {"element": True, "skip": False, "extends": None, "presets": ["a", "b"], "targets": "node 8"},
    )

    assert stage.stringify() == "babel-loader?element&presets[]=a,b&targets=node 8"
    assert TransformStage("json.js").stringify() == "json.js"


def test_resolve_chain_is_deterministic(tmp_path: Path) -> None:
    resolver = _resolver(tmp_path)
    options = ChainOptions(source=tmp_path / "a.js", lang="less")

    first = resolver.resolve_chain("script", options=options)
    second = resolver.resolve_chain("script", options=options)

    assert first == second
    assert first.stringify() == second.stringify()


def test_template_and_style_chains_start_with_json_stage(tmp_path: Path) -> None:
    resolver = _resolver(tmp_path)

    template = resolver.resolve_chain("template")
    style = resolver.resolve_chain("style", options=ChainOptions(lang="scss"))

    assert template.names == ["json.js", "template.js"]
    assert style.names == ["json.js", "style.js", "sass-loader"]


def test_css_has_no_dialect_stage(tmp_path: Path) -> None:
    style = _resolver(tmp_path).resolve_chain("style", options=ChainOptions(lang=None))

    assert style.stringify() == "json.js!style.js"


def test_rich_script_chain_targets_node(tmp_path: Path) -> None:
    chain = _resolver(tmp_path).resolve_chain("script")

    assert chain.stringify() == "script.js!babel-loader?targets=node 8!resource-reference-script.js"


def test_lite_script_chain_has_no_targets(tmp_path: Path) -> None:
    chain = _resolver(tmp_path, babel_config=tmp_path / "babel.config.js").resolve_chain(
        "script", TargetMode.LITE
    )

    assert chain.stringify() == (
        f"script.js!babel-loader?extends={tmp_path / 'babel.config.js'}!resource-reference-script.js"
    )


def test_custom_script_dialect_replaces_babel(tmp_path: Path) -> None:
    resolver = _resolver(tmp_path, custom_lang={"ts": ["ts-loader", "other-loader"]})

    chain = resolver.resolve_chain("script", options=ChainOptions(lang="ts"))

    assert chain.names == ["script.js", "ts-loader"]


def test_app_script_appends_manifest_stage_when_present(tmp_path: Path) -> None:
    manifest = tmp_path / "manifest.json"
    manifest.write_text("{}", encoding="utf-8")
    resolver = _resolver(tmp_path, manifest_path=manifest)
    app = tmp_path / "app.js"

    chain = resolver.resolve_chain("script", options=ChainOptions(source=app, app=True))

    assert chain.stages[-1] == TransformStage("manifest-loader.js", {"path": str(app)})


def test_app_script_skips_manifest_when_missing(tmp_path: Path) -> None:
    resolver = _resolver(tmp_path, manifest_path=tmp_path / "missing.json")

    chain = resolver.resolve_chain("script", options=ChainOptions(source=tmp_path / "app.js", app=True))

    assert "manifest-loader.js" not in chain.names


def test_element_chain_flags_elements_without_source(tmp_path: Path) -> None:
    resolver = _resolver(tmp_path)

    assert resolver.resolve_chain("element").stringify() == "loader.js?element"
    assert resolver.resolve_chain("element", options=ChainOptions(source=Path("c.hml"))).stringify() == "loader.js"


def test_config_and_data_chains_only_use_json_stage(tmp_path: Path) -> None:
    resolver = _resolver(tmp_path)

    assert resolver.resolve_chain("config").names == ["json.js"]
    assert resolver.resolve_chain("data").names == ["json.js"]


def test_unknown_kind_is_rejected(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="Unknown chain kind"):
        _resolver(tmp_path).resolve_chain("video")


def test_require_string_relativizes_absolute_paths(tmp_path: Path) -> None:
    context = tmp_path / "pages" / "index.hml"
    chain = _resolver(tmp_path).resolve_chain("template")

    expression = require_string(RelativeModuleResolver(), context, chain, str(context))

    assert expression == 'require("!!json.js!template.js!./index.hml")\n'
