"""CLI entrypoints for acecompiler commands."""

from __future__ import annotations

import argparse
import json
import os
import sys
from dataclasses import replace
from pathlib import Path
from typing import Dict, List

from .chain import KINDS, ChainOptions, ChainResolver
from .collaborators import CardDescriptorCollector
from .config import ConfigError, CompilerConfig, load_config
from .logging import configure_logging
from .models import TargetMode, SourceUnit
from .orchestrator import BuildSession, Compiler


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    kwargs: dict[str, object] = {
        "action": "store_true",
        "help": "Increase log verbosity for troubleshooting.",
    }
    if suppress_default:
        kwargs["default"] = argparse.SUPPRESS
    else:
        kwargs["default"] = False
    parser.add_argument(
        "-v",
        "--verbose",
        **kwargs,
    )


def _add_project_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--project",
        default=".",
        help="Project root holding .acecompiler.yml (defaults to current directory).",
    )
    parser.add_argument(
        "--mode",
        choices=[mode.value for mode in TargetMode],
        help="Build-target mode; overrides the configuration file.",
    )
    parser.add_argument("--ability", help="Ability type (page, testrunner, ...).")
    parser.add_argument(
        "--log-level",
        type=int,
        help="Minimum diagnostic severity to report (1 notes, 2 warnings, 3 errors).",
    )
    parser.add_argument(
        "--entry",
        action="append",
        default=[],
        metavar="NAME=PATH",
        help="Build entry mapping; may be given more than once.",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="acecompiler",
        description="Compile ACE component sources into runtime module code.",
    )
    _add_verbose_option(parser)
    parser.add_argument(
        "--log-file",
        help="Also write log records to this file.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    compile_parser = subparsers.add_parser(
        "compile",
        help="Compile entries and every custom element they include.",
    )
    _add_verbose_option(compile_parser, suppress_default=True)
    _add_project_options(compile_parser)
    compile_parser.add_argument(
        "paths",
        nargs="*",
        help="Entry files to compile (defaults to the app root and configured entries).",
    )
    compile_parser.add_argument(
        "--output",
        help="Directory receiving the generated modules; printed to stdout when omitted.",
    )
    compile_parser.add_argument(
        "--jobs",
        type=int,
        default=None,
        help="Number of worker threads.",
    )

    chain_parser = subparsers.add_parser(
        "chain",
        help="Print the transform chain for an asset kind.",
    )
    _add_verbose_option(chain_parser, suppress_default=True)
    _add_project_options(chain_parser)
    chain_parser.add_argument("kind", choices=KINDS, help="Asset kind.")
    chain_parser.add_argument("--lang", help="Style or script dialect.")
    chain_parser.add_argument("--source", help="Source file the chain is built for.")
    chain_parser.add_argument(
        "--app",
        action="store_true",
        help="Treat the source as the application root script.",
    )

    card_parser = subparsers.add_parser(
        "card",
        help="Normalise card assets and print or write the aggregated descriptors.",
    )
    _add_verbose_option(card_parser, suppress_default=True)
    _add_project_options(card_parser)
    card_parser.add_argument("paths", nargs="+", help="Card script, style, markup or JSON files.")
    card_parser.add_argument(
        "--element",
        help="Element name the assets belong to when they are not next to an entry.",
    )
    card_parser.add_argument(
        "--write",
        action="store_true",
        help="Write descriptor files under the output path instead of printing them.",
    )

    return parser


def _parse_entries(values: List[str], root: Path) -> Dict[str, Path]:
    entries: Dict[str, Path] = {}
    for value in values:
        name, sep, target = value.partition("=")
        if not sep or not name or not target:
            raise ConfigError(f"Invalid entry '{value}' (expected NAME=PATH)")
        entries[name] = root / target
    return entries


def _load(args: argparse.Namespace) -> CompilerConfig:
    config = load_config(Path(args.project), environ=os.environ)
    if args.mode:
        config = replace(config, mode=TargetMode.parse(args.mode))
    if args.ability:
        config = replace(config, ability_type=args.ability)
    if args.log_level is not None:
        config = replace(config, log_level=args.log_level)
    if args.entry:
        config = replace(config, entries=_parse_entries(args.entry, config.root))
    return config


def _default_targets(config: CompilerConfig) -> List[Path]:
    targets = [config.app_root] if config.app_root.exists() else []
    targets.extend(path for path in config.entry_markup_paths().values() if path.exists())
    return targets


def _run_compile(args: argparse.Namespace, config: CompilerConfig) -> int:
    session = BuildSession(config)
    compiler = Compiler(session)
    targets = [Path(path) for path in args.paths] or _default_targets(config)
    if not targets:
        raise FileNotFoundError(f"Nothing to compile under {config.root}")

    results = compiler.build(targets, max_workers=args.jobs)
    output_dir = Path(args.output) if args.output else None
    for path, result in sorted(results.items()):
        if output_dir is None:
            print(f"// {_relativize(path)}")
            print(result.code)
            continue
        destination = output_dir / f"{_relative_to(path, config.root)}.js"
        destination.parent.mkdir(parents=True, exist_ok=True)
        destination.write_text(result.code, encoding="utf-8")

    failed = [path for path, result in results.items() if result.failed]
    print(f"Compiled {len(results)} unit(s), {len(failed)} failed", file=sys.stderr)
    return 1 if failed else 0


def _run_chain(args: argparse.Namespace, config: CompilerConfig) -> int:
    options = ChainOptions(
        source=Path(args.source).resolve() if args.source else None,
        lang=args.lang,
        app=bool(args.app),
    )
    print(ChainResolver(config).resolve_chain(args.kind, options=options).stringify())
    return 0


def _run_card(args: argparse.Namespace, config: CompilerConfig) -> int:
    collector = CardDescriptorCollector()
    session = BuildSession(replace(config, mode=TargetMode.CARD), sink=collector)
    compiler = Compiler(session)
    failed = False
    for raw_path in args.paths:
        path = Path(raw_path)
        unit = SourceUnit(path=path, source=path.read_text(encoding="utf-8"), name=args.element)
        failed = compiler.compile_config(unit).failed or failed

    if args.write:
        for written in collector.write():
            print(f"Descriptor written to {_relativize(written)}")
    else:
        payload = {str(path): collector.descriptor(path) for path in collector.descriptors}
        print(json.dumps(payload, indent=2, ensure_ascii=False))
    return 1 if failed else 0


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for acecompiler commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(
        verbose=bool(args.verbose),
        log_file=Path(args.log_file) if args.log_file else None,
    )

    handlers = {
        "compile": _run_compile,
        "chain": _run_chain,
        "card": _run_card,
    }
    handler = handlers.get(args.command)
    if handler is None:  # pragma: no cover - argparse enforces choices
        parser.exit(1, "Unknown command\n")

    try:
        config = _load(args)
        status = handler(args, config)
    except ConfigError as exc:
        parser.exit(2, f"acecompiler: {exc}\n")
    except FileNotFoundError as exc:
        parser.exit(1, f"{exc}\n")
    except ValueError as exc:
        parser.exit(1, f"acecompiler {args.command} failed: {exc}\nRun with --verbose for more details.\n")
    if status:
        parser.exit(status)


def _relativize(path: Path) -> str:
    try:
        return str(path.relative_to(Path.cwd()))
    except ValueError:
        return str(path)


def _relative_to(path: Path, root: Path) -> str:
    try:
        return path.relative_to(root).as_posix()
    except ValueError:
        return path.name


if __name__ == "__main__":
    main(sys.argv[1:])
