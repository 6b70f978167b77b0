"""Tests for acecompiler.config."""

from __future__ import annotations

from pathlib import Path

import pytest

from acecompiler.config import (
    ABILITY_PAGE,
    CompilerConfig,
    ConfigError,
    StageTable,
    apply_environment,
    load_config,
)
from acecompiler.models import TargetMode


def test_load_config_returns_defaults_when_missing(tmp_path: Path) -> None:
    config = load_config(tmp_path)

    assert isinstance(config, CompilerConfig)
    assert config.root == tmp_path.resolve()
    assert config.mode is TargetMode.RICH
    assert config.ability_type == ABILITY_PAGE
    assert config.log_level == 1
    assert config.entries == {}
    assert config.manifest_path is None
    assert config.stages == StageTable()
    assert config.custom_lang["less"] == ["less-loader"]


def test_load_config_parses_expected_fields(tmp_path: Path) -> None:
    config_file = tmp_path / ".acecompiler.yml"
    config_file.write_text(
        """
mode: lite
ability_type: testrunner
log_level: 2
manifest_path: "build/manifest.json"
output_path: "build"
entries:
  index: "pages/index/index.js"
custom_lang:
  stylus: ["stylus-loader", "ignored-loader"]
loader_root: "lib"
stages:
  babel: "custom-babel"
""",
        encoding="utf-8",
    )

    config = load_config(config_file)

    root = tmp_path.resolve()
    assert config.mode is TargetMode.LITE
    assert config.ability_type == "testrunner"
    assert config.log_level == 2
    assert config.manifest_path == root / "build/manifest.json"
    assert config.output_path == root / "build"
    assert config.entries == {"index": root / "pages/index/index.js"}
    assert config.custom_lang["stylus"] == ["stylus-loader", "ignored-loader"]
    assert config.custom_lang["sass"] == ["sass-loader"]
    assert config.stages.main == str(root / "lib" / "loader.js")
    assert config.stages.babel == "custom-babel"


def test_load_config_rejects_invalid_yaml(tmp_path: Path) -> None:
    (tmp_path / ".acecompiler.yml").write_text("mode: [lite\n", encoding="utf-8")

    with pytest.raises(ConfigError):
        load_config(tmp_path)


def test_load_config_rejects_unknown_mode(tmp_path: Path) -> None:
    (tmp_path / ".acecompiler.yml").write_text("mode: desktop\n", encoding="utf-8")

    with pytest.raises(ConfigError, match="desktop"):
        load_config(tmp_path)


def test_environment_overrides_file_settings(tmp_path: Path) -> None:
    (tmp_path / ".acecompiler.yml").write_text("mode: lite\nlog_level: 3\n", encoding="utf-8")

    config = load_config(
        tmp_path,
        environ={"DEVICE_LEVEL": "card", "logLevel": "2", "abilityType": "form"},
    )

    assert config.mode is TargetMode.CARD
    assert config.log_level == 2
    assert config.ability_type == "form"


def test_apply_environment_ignores_unparsable_log_level(tmp_path: Path) -> None:
    config = CompilerConfig(root=tmp_path)

    updated = apply_environment(config, {"logLevel": "loud"})

    assert updated is config


def test_app_root_depends_on_ability_type(tmp_path: Path) -> None:
    page = CompilerConfig(root=tmp_path)
    runner = CompilerConfig(root=tmp_path, ability_type="testrunner")

    assert page.app_root == (tmp_path / "app.js").resolve()
    assert runner.app_root == (tmp_path / "testrunner.js").resolve()


def test_entry_markup_paths_use_entry_names(tmp_path: Path) -> None:
    config = CompilerConfig(root=tmp_path, entries={"pages/index/index": tmp_path / "app.js"})

    assert config.entry_markup_paths() == {
        "pages/index/index": (tmp_path / "pages/index/index.hml").resolve()
    }
