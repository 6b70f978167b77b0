"""Discovery of custom element references in component markup."""

from __future__ import annotations

from dataclasses import dataclass, field
from html.parser import HTMLParser
from typing import List, Optional, Tuple

ELEMENT_TAG = "element"


@dataclass
class ElementReference:
    """A ``<element name=... src=...>`` declaration found in markup."""

    name: Optional[str]
    src: Optional[str]
    line: int
    column: int


@dataclass
class Fragment:
    """What the compiler needs to know about a markup file."""

    elements: List[ElementReference] = field(default_factory=list)


class _ElementCollector(HTMLParser):
    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self.elements: List[ElementReference] = []

    def handle_starttag(self, tag: str, attrs: List[Tuple[str, Optional[str]]]) -> None:
        if tag != ELEMENT_TAG:
            return
        values = dict(attrs)
        line, offset = self.getpos()
        self.elements.append(
            ElementReference(
                name=(values.get("name") or "").strip() or None,
                src=(values.get("src") or "").strip() or None,
                line=line,
                column=offset + 1,
            )
        )


def parse_fragment(source: str) -> Fragment:
    """Collect element references from ``source`` in document order."""
    collector = _ElementCollector()
    collector.feed(source)
    collector.close()
    return Fragment(elements=collector.elements)


__all__ = ["ELEMENT_TAG", "ElementReference", "Fragment", "parse_fragment"]
