import os
import re
from pathlib import Path

import pytest

from resha.config import DEFAULT_MATCH, Settings, resolve_run_config
from resha.discovery import ManifestSearch, discover, manifest_paths
from resha.errors import DiscoveryError


def _touch(path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("")
    return path


@pytest.fixture
def tree(tmp_path: Path) -> Path:
    _touch(tmp_path / ".resha.yml")
    _touch(tmp_path / "a" / ".resha.yaml")
    _touch(tmp_path / "a" / "b" / ".resha.yml")
    _touch(tmp_path / "a" / "notes.yml")
    _touch(tmp_path / "c" / "x.resha.yml")
    return tmp_path


def test_default_pattern_matches_both_extensions() -> None:
    pattern = re.compile(DEFAULT_MATCH)
    assert pattern.fullmatch(".resha.yml")
    assert pattern.fullmatch(".resha.yaml")
    assert not pattern.fullmatch("x.resha.yml")
    assert not pattern.fullmatch(".resha.yml.bak")


def test_non_recursive_only_scans_root(tree: Path) -> None:
    assert list(discover([tree])) == [tree / ".resha.yml"]


def test_recursive_walks_subtree(tree: Path) -> None:
    found = sorted(discover([tree], recursive=True))
    assert found == sorted(
        [tree / ".resha.yml", tree / "a" / ".resha.yaml", tree / "a" / "b" / ".resha.yml"]
    )


def test_custom_pattern(tree: Path) -> None:
    found = sorted(discover([tree], pattern=r".*\.resha\.yml", recursive=True))
    assert found == sorted(
        [tree / ".resha.yml", tree / "a" / "b" / ".resha.yml", tree / "c" / "x.resha.yml"]
    )


def test_multiple_roots(tree: Path) -> None:
    found = sorted(discover([tree / "a", tree / "a" / "b"]))
    assert found == [tree / "a" / ".resha.yaml", tree / "a" / "b" / ".resha.yml"]


def test_overlapping_recursive_roots_yield_each_manifest_once(tree: Path) -> None:
    found = list(discover([tree, tree / "a"], recursive=True))
    assert found == [
        tree / ".resha.yml",
        tree / "a" / ".resha.yaml",
        tree / "a" / "b" / ".resha.yml",
    ]


def test_nested_root_listed_first_is_not_walked_again(tree: Path) -> None:
    found = list(discover([tree / "a", tree], recursive=True))
    assert found == [
        tree / "a" / ".resha.yaml",
        tree / "a" / "b" / ".resha.yml",
        tree / ".resha.yml",
    ]


def test_same_root_twice(tree: Path) -> None:
    assert list(discover([tree, tree])) == [tree / ".resha.yml"]


def test_search_is_lazy_and_restartable(tree: Path) -> None:
    search = discover([tree], recursive=True)
    assert isinstance(search, ManifestSearch)
    first = list(search)
    _touch(tree / "c" / ".resha.yml")
    second = list(search)
    assert set(second) - set(first) == {tree / "c" / ".resha.yml"}


def test_symlink_cycle_terminates(tree: Path) -> None:
    os.symlink(tree, tree / "a" / "b" / "loop")
    found = list(discover([tree], recursive=True))
    assert len(found) == len(set(found)) == 3


def test_symlinked_directory_is_followed(tmp_path: Path) -> None:
    outside = tmp_path / "outside"
    _touch(outside / ".resha.yml")
    root = tmp_path / "root"
    root.mkdir()
    os.symlink(outside, root / "link")
    assert list(discover([root], recursive=True)) == [root / "link" / ".resha.yml"]


def test_unreadable_directory_is_skipped(tree: Path, monkeypatch) -> None:
    real_scandir = os.scandir

    def _scandir(path):
        if Path(path).name == "a":
            raise PermissionError(13, "Permission denied", str(path))
        return real_scandir(path)

    monkeypatch.setattr(os, "scandir", _scandir)
    assert list(discover([tree], recursive=True)) == [tree / ".resha.yml"]


def test_missing_root_raises(tmp_path: Path) -> None:
    with pytest.raises(DiscoveryError, match="not a directory"):
        list(discover([tmp_path / "nope"]))


def test_invalid_regex_raises(tmp_path: Path) -> None:
    with pytest.raises(DiscoveryError, match="regex"):
        discover([tmp_path], pattern="(")


def test_default_root_is_cwd(tree: Path, monkeypatch) -> None:
    monkeypatch.chdir(tree)
    assert list(discover()) == [Path(".") / ".resha.yml"]


def test_explicit_manifests_bypass_discovery(tree: Path) -> None:
    config = resolve_run_config(
        Settings(), manifests=("missing.yml", "a/notes.yml"), roots=(str(tree),)
    )
    assert list(manifest_paths(config)) == [Path("missing.yml"), Path("a/notes.yml")]


def test_manifest_paths_discovers_without_explicit(tree: Path) -> None:
    config = resolve_run_config(Settings(), roots=(str(tree),), recursive=True)
    assert len(list(manifest_paths(config))) == 3
