"""Tests for routing card sections into the descriptor collector."""

from __future__ import annotations

import json
from pathlib import Path

from acecompiler.card import dispatch_sections, resolve_descriptor
from acecompiler.collaborators import CardDescriptorCollector
from acecompiler.config import CompilerConfig
from acecompiler.literal import StructuredConfig
from acecompiler.models import AssetKind, TargetMode


def _config(tmp_path: Path) -> CompilerConfig:
    return CompilerConfig(
        root=tmp_path,
        mode=TargetMode.CARD,
        output_path=tmp_path / "build",
        entries={
            "pages/index/index": tmp_path / "pages/index/index.js",
            "pages/detail/detail": tmp_path / "pages/detail/detail.js",
        },
    )


def test_asset_next_to_entry_belongs_to_that_entry(tmp_path: Path) -> None:
    descriptor, element = resolve_descriptor(_config(tmp_path), tmp_path / "pages/index/index.css", None)

    assert descriptor == tmp_path / "build" / "pages/index/index.json"
    assert element is None


def test_other_assets_are_scoped_under_their_element(tmp_path: Path) -> None:
    descriptor, element = resolve_descriptor(_config(tmp_path), tmp_path / "common/card/card.js", "Card")

    assert descriptor == tmp_path / "build" / "pages/detail/detail.json"
    assert element == "Card"


def test_element_defaults_to_file_stem(tmp_path: Path) -> None:
    _, element = resolve_descriptor(_config(tmp_path), tmp_path / "common/card/card.js", None)

    assert element == "card"


def test_without_entries_the_file_names_the_descriptor(tmp_path: Path) -> None:
    config = CompilerConfig(root=tmp_path)

    descriptor, element = resolve_descriptor(config, tmp_path / "card.js", None)

    assert descriptor == tmp_path / "card.json"
    assert element is None


def test_props_are_only_sent_for_elements(tmp_path: Path) -> None:
    collector = CardDescriptorCollector()
    structured = StructuredConfig(data={"a": 1}, props={"title": {"default": ""}})
    page = tmp_path / "page.json"

    dispatch_sections(collector, page, None, structured, AssetKind.SCRIPT)
    dispatch_sections(collector, page, "card", structured, AssetKind.SCRIPT)

    assert collector.descriptor(page) == {
        "data": {"a": 1},
        "card": {"data": {"a": 1}, "props": {"title": {"default": ""}}},
    }


def test_style_and_markup_sections(tmp_path: Path) -> None:
    collector = CardDescriptorCollector()
    page = tmp_path / "page.json"

    dispatch_sections(collector, page, None, StructuredConfig(styles={".a": {}}), AssetKind.STYLE)
    dispatch_sections(collector, page, None, StructuredConfig(template={"type": "div"}), AssetKind.MARKUP)

    assert collector.descriptor(page) == {"styles": {".a": {}}, "template": {"type": "div"}}


def test_collector_writes_descriptors(tmp_path: Path) -> None:
    collector = CardDescriptorCollector()
    target = tmp_path / "out" / "index.json"
    collector.init(target)
    collector.compile_json(target, "data", {"n": 1})

    written = collector.write()

    assert written == [target]
    assert json.loads(target.read_text(encoding="utf-8")) == {"data": {"n": 1}}
