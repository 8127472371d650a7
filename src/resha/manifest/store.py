"""Load manifest files into entries and write updated fingerprints back."""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import Any

import yaml

from resha.errors import ManifestParseError, ManifestWriteError
from resha.manifest.types import Entry, Manifest

logger = logging.getLogger(__name__)

MANAGED_FIELDS = ("name", "cmd", "required_files", "files", "sha")


class _ManifestDumper(yaml.SafeDumper):
    pass


def _represent_str(dumper: yaml.SafeDumper, data: str) -> yaml.ScalarNode:
    style = "|" if "\n" in data else None
    return dumper.represent_scalar("tag:yaml.org,2002:str", data, style=style)


_ManifestDumper.add_representer(str, _represent_str)


def _path_list(value: object, *, key: str, path: Path, index: int) -> tuple[str, ...]:
    if value is None or value == "":
        return ()
    if isinstance(value, str):
        return (value,)
    if not isinstance(value, list):
        raise ManifestParseError(
            f"{path}: entry {index}: '{key}' must be a list of paths", path=path
        )
    items: list[str] = []
    for item in value:
        if not isinstance(item, str):
            raise ManifestParseError(
                f"{path}: entry {index}: '{key}' contains a non-path item: {item!r}",
                path=path,
            )
        items.append(item)
    return tuple(items)


def _extra_fields(record: dict[str, Any], original: object) -> dict[str, Any]:
    extra = dict(original) if isinstance(original, dict) else dict(record)
    for key in MANAGED_FIELDS:
        if key in record:
            extra[key] = record[key]
    return extra


def _parse_entry(record: object, original: object, *, path: Path, index: int) -> Entry:
    if not isinstance(record, dict):
        raise ManifestParseError(f"{path}: entry {index} is not a mapping", path=path)
    cmd = record.get("cmd")
    if not isinstance(cmd, str):
        raise ManifestParseError(
            f"{path}: entry {index} is malformed, missing 'cmd' key", path=path
        )
    name = record.get("name")
    sha = record.get("sha")
    if sha is not None and not isinstance(sha, str):
        raise ManifestParseError(f"{path}: entry {index}: 'sha' must be a string", path=path)
    return Entry(
        cmd=cmd,
        name=name if isinstance(name, str) and name else None,
        required_files=_path_list(
            record.get("required_files"), key="required_files", path=path, index=index
        ),
        files=_path_list(record.get("files"), key="files", path=path, index=index),
        sha=sha or None,
        extra=_extra_fields(record, original),
    )


def _load_yaml(
    text: str, loader: type[yaml.BaseLoader] | type[yaml.SafeLoader], path: Path
) -> Any:
    try:
        return yaml.load(text, Loader=loader)
    except yaml.YAMLError as exc:
        raise ManifestParseError(f"{path}: can't load YAML: {exc}", path=path) from exc


def parse_manifest(text: str, path: Path) -> Manifest:
    # Managed fields come from BaseLoader, where every scalar is a string
    # (`cmd: true` stays "true"). Everything written back comes from the typed
    # load so untouched fields keep their YAML types.
    document = _load_yaml(text, yaml.BaseLoader, path)
    if document is None:
        return Manifest(path=path)
    if not isinstance(document, list):
        raise ManifestParseError(f"{path}: manifest must be a list of entries", path=path)
    typed = _load_yaml(text, yaml.SafeLoader, path)
    originals = typed if isinstance(typed, list) and len(typed) == len(document) else document
    entries = [
        _parse_entry(record, original, path=path, index=i)
        for i, (record, original) in enumerate(zip(document, originals, strict=True))
    ]
    return Manifest(path=path, entries=entries)


def load_manifest(path: Path) -> Manifest:
    if not path.is_file():
        raise ManifestParseError(f"manifest file doesn't exist: '{path}'", path=path)
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ManifestParseError(f"{path}: {exc}", path=path) from exc
    manifest = parse_manifest(text, path)
    logger.debug("Loaded %d entries from %s", len(manifest.entries), path)
    return manifest


def _entry_record(entry: Entry) -> dict[str, Any]:
    if entry.extra:
        record = dict(entry.extra)
    else:
        record = {}
        if entry.name is not None:
            record["name"] = entry.name
        record["cmd"] = entry.cmd
        if entry.required_files:
            record["required_files"] = list(entry.required_files)
        if entry.files:
            record["files"] = list(entry.files)
    if entry.sha is not None:
        record["sha"] = entry.sha
    return record


def dump_manifest(manifest: Manifest) -> str:
    records = [_entry_record(entry) for entry in manifest.entries]
    return yaml.dump(
        records,
        Dumper=_ManifestDumper,
        sort_keys=False,
        default_flow_style=False,
        allow_unicode=True,
        width=4096,
    )


def write_manifest(manifest: Manifest) -> None:
    """Replace the manifest file atomically with the dumped entries."""
    path = manifest.path
    try:
        encoded = dump_manifest(manifest)
    except yaml.YAMLError as exc:
        raise ManifestWriteError(f"{path}: couldn't serialize manifest: {exc}", path=path) from exc

    tmp_name: str | None = None
    try:
        with tempfile.NamedTemporaryFile(
            "w",
            encoding="utf-8",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
        ) as handle:
            tmp_name = handle.name
            handle.write(encoded)
        if path.exists():
            shutil.copymode(path, tmp_name)
        os.replace(tmp_name, path)
    except OSError as exc:
        if tmp_name is not None and os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise ManifestWriteError(f"{path}: couldn't update manifest: {exc}", path=path) from exc
    logger.info("Updated manifest %s", path)
