"""Deterministic content fingerprint of a manifest entry.

Every field is fed to SHA-256 as ``tag (1 byte) | length (8 bytes, big endian)
| payload`` so that no two different inputs share a byte stream. Files are
hashed as ``role, path, present+content`` or ``role, path, absent``; an
unreadable file counts as absent.
"""

from __future__ import annotations

import hashlib
import logging
from pathlib import Path
from typing import Protocol

from resha.manifest.types import Entry

logger = logging.getLogger(__name__)

SCHEME_VERSION = b"resha-fingerprint-v1"

TAG_VERSION = b"V"
TAG_CMD = b"C"
TAG_REQUIRED = b"R"
TAG_OUTPUT = b"F"
TAG_PRESENT = b"P"
TAG_ABSENT = b"A"


class _Hasher(Protocol):
    def update(self, data: bytes, /) -> None: ...


def _frame(hasher: _Hasher, tag: bytes, payload: bytes) -> None:
    hasher.update(tag)
    hasher.update(len(payload).to_bytes(8, "big"))
    hasher.update(payload)


def _read_file(path: Path) -> bytes | None:
    try:
        return path.read_bytes()
    except OSError as exc:
        logger.debug("Treating %s as absent: %s", path, exc)
        return None


def _feed_path(hasher: _Hasher, role: bytes, rel: str, root: Path) -> None:
    _frame(hasher, role, rel.encode("utf-8"))
    content = _read_file(root / rel)
    if content is None:
        _frame(hasher, TAG_ABSENT, b"")
    else:
        _frame(hasher, TAG_PRESENT, content)


def fingerprint(entry: Entry, root: Path) -> str:
    """Return the hex digest of the entry's command and named files under *root*."""
    hasher = hashlib.sha256()
    _frame(hasher, TAG_VERSION, SCHEME_VERSION)
    _frame(hasher, TAG_CMD, entry.cmd.encode("utf-8"))
    for rel in entry.required_files:
        _feed_path(hasher, TAG_REQUIRED, rel, root)
    for rel in entry.files:
        _feed_path(hasher, TAG_OUTPUT, rel, root)
    return hasher.hexdigest()
