"""Manifest package."""

from resha.manifest.store import dump_manifest, load_manifest, parse_manifest, write_manifest
from resha.manifest.types import Entry, Manifest

__all__ = [
    "Entry",
    "Manifest",
    "dump_manifest",
    "load_manifest",
    "parse_manifest",
    "write_manifest",
]
