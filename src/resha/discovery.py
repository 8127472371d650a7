"""Locate manifest files by file-name pattern."""

from __future__ import annotations

import logging
import os
import re
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from pathlib import Path

from resha.config import DEFAULT_MATCH, RunConfig
from resha.errors import DiscoveryError

logger = logging.getLogger(__name__)


def _dir_key(path: Path) -> tuple[int, int] | None:
    try:
        st = path.stat()
    except OSError:
        return None
    return st.st_dev, st.st_ino


def _list_dir(path: Path) -> tuple[list[Path], list[Path]]:
    """Return (subdirectories, files) of *path*, sorted by name."""
    dirs: list[Path] = []
    files: list[Path] = []
    try:
        with os.scandir(path) as it:
            children = sorted(it, key=lambda item: item.name)
    except OSError as exc:
        logger.warning("Skipping unreadable directory %s: %s", path, exc)
        return dirs, files
    for child in children:
        try:
            if child.is_dir():
                dirs.append(Path(child.path))
            elif child.is_file():
                files.append(Path(child.path))
        except OSError as exc:
            logger.warning("Skipping %s: %s", child.path, exc)
    return dirs, files


@dataclass(frozen=True, slots=True)
class ManifestSearch:
    """Lazy, restartable walk yielding manifest paths.

    Each call to ``iter()`` walks the file system again.
    """

    roots: tuple[Path, ...]
    pattern: re.Pattern[str]
    recursive: bool = False

    def __iter__(self) -> Iterator[Path]:
        # Shared across roots so overlapping roots yield each manifest once.
        visited: set[tuple[int, int]] = set()
        yielded: set[Path] = set()
        for root in self.roots:
            if not root.is_dir():
                raise DiscoveryError(f"discovery root is not a directory: '{root}'")
            for path in self._walk(root, visited):
                resolved = path.resolve()
                if resolved in yielded:
                    logger.debug("Skipping already found manifest %s", path)
                    continue
                yielded.add(resolved)
                yield path

    def _walk(self, root: Path, visited: set[tuple[int, int]]) -> Iterator[Path]:
        pending = [root]
        while pending:
            current = pending.pop()
            key = _dir_key(current)
            if key is None:
                logger.warning("Skipping unreadable directory %s", current)
                continue
            if key in visited:
                logger.warning("Skipping already visited directory %s", current)
                continue
            visited.add(key)

            dirs, files = _list_dir(current)
            for path in files:
                if self.pattern.fullmatch(path.name):
                    yield path
            if self.recursive:
                pending.extend(reversed(dirs))


def discover(
    roots: Iterable[Path] = (),
    pattern: re.Pattern[str] | str = DEFAULT_MATCH,
    recursive: bool = False,
) -> ManifestSearch:
    if isinstance(pattern, str):
        try:
            pattern = re.compile(pattern)
        except re.error as exc:
            raise DiscoveryError(f"couldn't parse match regex {pattern!r}: {exc}") from exc
    root_tuple = tuple(roots) or (Path("."),)
    return ManifestSearch(roots=root_tuple, pattern=pattern, recursive=recursive)


def manifest_paths(config: RunConfig) -> Iterable[Path]:
    """Explicit manifests verbatim, otherwise a discovery walk."""
    if config.explicit:
        return config.manifests
    return discover(config.roots, config.pattern, config.recursive)
