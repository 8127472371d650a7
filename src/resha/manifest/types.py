"""Types for manifest entries and the files that hold them."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any


@dataclass(slots=True)
class Entry:
    cmd: str
    name: str | None = None
    required_files: tuple[str, ...] = ()
    files: tuple[str, ...] = ()
    sha: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def label(self) -> str:
        if self.name:
            return self.name
        first = self.cmd.strip().splitlines()
        return first[0] if first else "<empty cmd>"

    def all_files(self) -> list[str]:
        """Inputs and outputs, deduplicated, in declaration order."""
        seen: dict[str, None] = {}
        for path in (*self.required_files, *self.files):
            seen.setdefault(path, None)
        return list(seen)


@dataclass(slots=True)
class Manifest:
    path: Path
    entries: list[Entry] = field(default_factory=list)

    @property
    def root(self) -> Path:
        return self.path.parent
