"""CLI parser and command tests."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from acecompiler.cli import _build_parser, _parse_entries, main
from acecompiler.config import ConfigError
from tests._fixtures.project_builder import ProjectBuilder


def test_cli_accepts_verbose_before_command() -> None:
    parser = _build_parser()
    args = parser.parse_args(["--verbose", "chain", "main"])
    assert args.verbose is True
    assert args.command == "chain"


def test_cli_accepts_verbose_after_command() -> None:
    parser = _build_parser()
    args = parser.parse_args(["compile", "--verbose"])
    assert args.verbose is True
    assert args.command == "compile"


def test_cli_collects_repeated_entries() -> None:
    parser = _build_parser()
    args = parser.parse_args(["compile", "--entry", "a=pages/a.js", "--entry", "b=pages/b.js"])
    assert args.entry == ["a=pages/a.js", "b=pages/b.js"]


def test_parse_entries_rejects_malformed_values(tmp_path: Path) -> None:
    assert _parse_entries(["index=pages/index.js"], tmp_path) == {"index": tmp_path / "pages/index.js"}
    with pytest.raises(ConfigError):
        _parse_entries(["index"], tmp_path)


def test_chain_command_prints_descriptor(
    project_builder: ProjectBuilder, capsys: pytest.CaptureFixture[str]
) -> None:
    main(["chain", "style", "--lang", "less", "--project", str(project_builder.path())])

    assert capsys.readouterr().out.strip() == "json.js!style.js!less-loader"


def test_compile_command_prints_generated_modules(
    project_builder: ProjectBuilder, capsys: pytest.CaptureFixture[str]
) -> None:
    project_builder.write({"app.js": "export default {}\n"})

    main(["compile", "--project", str(project_builder.path())])

    captured = capsys.readouterr()
    assert "$app_define$('@app-application/app'" in captured.out
    assert "Compiled 1 unit(s), 0 failed" in captured.err


def test_compile_command_writes_output_directory(project_builder: ProjectBuilder, tmp_path: Path) -> None:
    project_builder.write({"app.js": "export default {}\n"})
    output = tmp_path / "out"

    main(["compile", "--project", str(project_builder.path()), "--output", str(output)])

    assert "@app-application/app" in (output / "app.js.js").read_text(encoding="utf-8")


def test_compile_command_exits_non_zero_on_errors(project_builder: ProjectBuilder) -> None:
    project_builder.write({"pages/div/div.hml": "<div></div>\n"})
    page = project_builder.path("pages/div/div.hml")

    with pytest.raises(SystemExit) as excinfo:
        main(["compile", "--project", str(project_builder.path()), str(page)])

    assert excinfo.value.code == 1


def test_card_command_prints_descriptors(
    project_builder: ProjectBuilder, capsys: pytest.CaptureFixture[str]
) -> None:
    project_builder.write({"card.js": "export default { data: { n: 1 } }\n"})

    main(["card", "--project", str(project_builder.path()), str(project_builder.path("card.js"))])

    payload = json.loads(capsys.readouterr().out)
    assert payload == {str(project_builder.path("card.json")): {"data": {"n": 1}}}


def test_log_file_receives_debug_records(project_builder: ProjectBuilder, tmp_path: Path) -> None:
    project_builder.write({"app.js": "export default {}\n"})
    log_file = tmp_path / "acecompiler.log"

    main(["--verbose", "--log-file", str(log_file), "compile", "--project", str(project_builder.path())])

    assert "DEBUG acecompiler.orchestrator: Compiling" in log_file.read_text(encoding="utf-8")
