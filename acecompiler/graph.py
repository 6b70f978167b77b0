"""Component reference graph: custom element name scopes and effective parents."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, FrozenSet, Optional, Set


class NameCollisionError(RuntimeError):
    """Raised when a custom element name is already reserved in its scope."""

    def __init__(self, name: str, scope: Path) -> None:
        super().__init__(f'The element name can not be same with the page "{name}" (ignore case).')
        self.name = name
        self.scope = scope


@dataclass
class ComponentRecord:
    """Names reserved in a component's scope and its recorded parent."""

    names: Set[str] = field(default_factory=set)
    parent: Optional[Path] = None


class ComponentGraph:
    """Tracks which custom element names each component scope has handed out.

    An included component's scope flattens one hop: when its immediate parent
    already has a recorded parent, the component is re-parented to that
    ancestor at registration time. All mutations share one lock, so
    check-and-reserve is atomic across concurrently compiled units.
    """

    def __init__(self) -> None:
        self._records: Dict[Path, ComponentRecord] = {}
        self._lock = threading.Lock()

    def register_entry(self, path: Path, name: str) -> None:
        with self._lock:
            self._records.setdefault(path, ComponentRecord()).names.add(name.lower())

    def register_child(self, path: Path, parent_path: Path) -> Path:
        """Record ``parent_path`` as the parent of ``path`` and return the effective parent."""
        with self._lock:
            record = self._records.setdefault(path, ComponentRecord())
            record.parent = parent_path
            parent_record = self._records.get(parent_path)
            if parent_record is not None and parent_record.parent is not None:
                record.parent = parent_record.parent
            return record.parent

    def resolve_effective_parent(self, path: Path) -> Path:
        """Return the scope that names declared by ``path`` are checked against."""
        with self._lock:
            record = self._records.get(path)
            if record is None or record.parent is None:
                return path
            return record.parent

    def check_and_reserve(self, parent_path: Path, name: str) -> bool:
        """Reserve ``name`` in ``parent_path``'s scope; False when it was already taken."""
        key = name.lower()
        with self._lock:
            record = self._records.setdefault(parent_path, ComponentRecord())
            if key in record.names:
                return False
            record.names.add(key)
            return True

    def reserve_or_raise(self, parent_path: Path, name: str) -> None:
        if not self.check_and_reserve(parent_path, name):
            raise NameCollisionError(name.lower(), parent_path)

    def names(self, path: Path) -> FrozenSet[str]:
        with self._lock:
            record = self._records.get(path)
            return frozenset(record.names) if record else frozenset()

    def parent_of(self, path: Path) -> Optional[Path]:
        with self._lock:
            record = self._records.get(path)
            return record.parent if record else None

    def __contains__(self, path: object) -> bool:
        with self._lock:
            return path in self._records

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)


__all__ = ["ComponentGraph", "ComponentRecord", "NameCollisionError"]
