"""Interfaces to the host build tool plus their local default implementations."""

from __future__ import annotations

import json
import os
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol

from .logging import get_logger


class Filesystem(Protocol):
    """File access the compiler needs from its host."""

    def exists(self, path: Path) -> bool:
        """Return True when ``path`` exists."""

    def read_text(self, path: Path) -> str:
        """Return the text content of ``path``."""


class LocalFilesystem:
    """Filesystem collaborator backed by the local disk."""

    def exists(self, path: Path) -> bool:
        return Path(path).exists()

    def read_text(self, path: Path) -> str:
        return Path(path).read_text(encoding="utf-8")


class ModuleResolver(Protocol):
    """Turns a loader request into the quoted string placed inside ``require(...)``."""

    def stringify_request(self, context: Path, request: str) -> str:
        """Return a quoted request relative to ``context``."""


class RelativeModuleResolver:
    """Rewrites absolute paths in a ``!``-separated request relative to the requesting file."""

    def stringify_request(self, context: Path, request: str) -> str:
        base = Path(context).parent
        parts = [self._relativize(base, part) for part in request.split("!")]
        return json.dumps("!".join(parts))

    @staticmethod
    def _relativize(base: Path, part: str) -> str:
        resource, sep, query = part.partition("?")
        if not os.path.isabs(resource):
            return part
        relative = Path(os.path.relpath(resource, base)).as_posix()
        if not relative.startswith("../"):
            relative = f"./{relative}"
        return f"{relative}{sep}{query}"


class AggregationSink(Protocol):
    """Receives normalized card sections and assembles the composite descriptor."""

    def init(self, descriptor: Path) -> None:
        """Ensure a descriptor exists for ``descriptor``."""

    def compile_json(
        self,
        descriptor: Path,
        section: str,
        value: Any,
        element: Optional[str] = None,
    ) -> None:
        """Store ``value`` under ``section`` (scoped to ``element`` when given)."""


class CardDescriptorCollector:
    """In-memory aggregation sink that can write the composite descriptor files."""

    def __init__(self) -> None:
        self._descriptors: Dict[Path, Dict[str, Any]] = {}
        self._lock = threading.Lock()
        self.logger = get_logger("collector")

    def init(self, descriptor: Path) -> None:
        with self._lock:
            self._descriptors.setdefault(Path(descriptor), {})

    def compile_json(
        self,
        descriptor: Path,
        section: str,
        value: Any,
        element: Optional[str] = None,
    ) -> None:
        if value is None:
            return
        with self._lock:
            payload = self._descriptors.setdefault(Path(descriptor), {})
            if element:
                payload.setdefault(element, {})[section] = value
            else:
                payload[section] = value

    def descriptor(self, path: Path) -> Dict[str, Any]:
        with self._lock:
            return json.loads(json.dumps(self._descriptors.get(Path(path), {})))

    @property
    def descriptors(self) -> List[Path]:
        with self._lock:
            return sorted(self._descriptors)

    def write(self) -> List[Path]:
        """Persist every descriptor as pretty-printed JSON and return the written paths."""
        written: List[Path] = []
        with self._lock:
            snapshot = dict(self._descriptors)
        for path, payload in sorted(snapshot.items()):
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(json.dumps(payload, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
            self.logger.debug("Wrote card descriptor %s", path)
            written.append(path)
        return written


__all__ = [
    "AggregationSink",
    "CardDescriptorCollector",
    "Filesystem",
    "LocalFilesystem",
    "ModuleResolver",
    "RelativeModuleResolver",
]
