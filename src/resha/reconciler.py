"""Check, regenerate and persist manifest entries.

Each entry moves through ``check -> (stale) execute -> re-hash`` and ends in
exactly one :class:`EntryState`. A manifest is written back once, after its
last entry, and only when at least one fingerprint changed.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from resha.errors import ExecutionError, ManifestParseError, ManifestWriteError
from resha.executor import Executor
from resha.fingerprint import fingerprint
from resha.logging import manifest_context
from resha.manifest.store import load_manifest, write_manifest
from resha.manifest.types import Entry, Manifest

logger = logging.getLogger(__name__)


class EntryState(str, Enum):
    IN_SYNC = "in_sync"
    STALE = "stale"
    RECOVERED = "recovered"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(slots=True)
class EntryReport:
    index: int
    label: str
    state: EntryState
    files: tuple[str, ...] = ()
    sha_before: str | None = None
    sha_after: str | None = None
    error: str = ""
    returncode: int | None = None
    output: str = ""

    @property
    def ok(self) -> bool:
        return self.state in (EntryState.IN_SYNC, EntryState.RECOVERED)


@dataclass(slots=True)
class ManifestReport:
    path: Path
    entries: list[EntryReport] = field(default_factory=list)
    error: str = ""
    written: bool = False

    @property
    def failed(self) -> bool:
        return bool(self.error) or any(e.state is EntryState.FAILED for e in self.entries)

    @property
    def ok(self) -> bool:
        return not self.error and all(
            e.state not in (EntryState.FAILED, EntryState.STALE) for e in self.entries
        )


@dataclass(slots=True)
class RunReport:
    manifests: list[ManifestReport] = field(default_factory=list)
    dry_run: bool = False

    @property
    def ok(self) -> bool:
        return all(report.ok for report in self.manifests)

    def entries(self) -> list[tuple[Path, EntryReport]]:
        return [(m.path, e) for m in self.manifests for e in m.entries]

    def count(self, state: EntryState) -> int:
        return sum(1 for _, entry in self.entries() if entry.state is state)

    def errors(self) -> list[ManifestReport]:
        return [m for m in self.manifests if m.error]


class ReconcileListener:
    """Progress hooks; the default implementation ignores every event."""

    def manifest_started(self, path: Path) -> None:
        pass

    def entry_started(self, path: Path, index: int, entry: Entry) -> None:
        pass

    def entry_finished(self, path: Path, report: EntryReport) -> None:
        pass

    def manifest_finished(self, report: ManifestReport) -> None:
        pass


def _command_env(entry: Entry) -> dict[str, str]:
    return {
        "files": "\n".join(entry.files),
        "required_files": "\n".join(entry.required_files),
    }


def _unchanged(index: int, entry: Entry, state: EntryState) -> EntryReport:
    return EntryReport(
        index=index,
        label=entry.label,
        state=state,
        files=tuple(entry.all_files()),
        sha_before=entry.sha,
        sha_after=entry.sha,
    )


class Reconciler:
    def __init__(
        self,
        executor: Executor,
        *,
        dry_run: bool = False,
        fail_fast: bool = False,
        listener: ReconcileListener | None = None,
    ) -> None:
        self.executor = executor
        self.dry_run = dry_run
        self.fail_fast = fail_fast
        self.listener = listener or ReconcileListener()

    def skip_entry(self, index: int, entry: Entry) -> EntryReport:
        return _unchanged(index, entry, EntryState.SKIPPED)

    def reconcile_entry(self, entry: Entry, root: Path, index: int = 0) -> EntryReport:
        """Drive one entry to its final state, updating ``entry.sha`` on recovery."""
        sha_before = entry.sha
        if sha_before:
            current = fingerprint(entry, root)
            if current == sha_before:
                logger.debug("Entry %d (%s) in sync", index, entry.label)
                return _unchanged(index, entry, EntryState.IN_SYNC)
            logger.info("Entry %d (%s) is stale", index, entry.label)
        else:
            logger.info("Entry %d (%s) has no recorded sha", index, entry.label)

        if self.dry_run:
            return _unchanged(index, entry, EntryState.STALE)

        try:
            result = self.executor.run(entry.cmd, cwd=root, env=_command_env(entry))
        except ExecutionError as exc:
            logger.warning("Entry %d (%s) failed: %s", index, entry.label, exc)
            report = _unchanged(index, entry, EntryState.FAILED)
            report.error = str(exc)
            report.returncode = exc.returncode
            report.output = exc.output
            return report

        entry.sha = fingerprint(entry, root)
        return EntryReport(
            index=index,
            label=entry.label,
            state=EntryState.RECOVERED,
            files=tuple(entry.all_files()),
            sha_before=sha_before,
            sha_after=entry.sha,
            returncode=result.returncode,
            output=result.output,
        )

    def reconcile_manifest(self, manifest: Manifest, *, skip: bool = False) -> ManifestReport:
        """Process entries in order, then write the manifest back once if needed.

        With *skip* every entry is reported skipped without being hashed.
        """
        report = ManifestReport(path=manifest.path)
        self.listener.manifest_started(manifest.path)
        dirty = False
        stop = skip
        for index, entry in enumerate(manifest.entries):
            if stop:
                entry_report = self.skip_entry(index, entry)
            else:
                self.listener.entry_started(manifest.path, index, entry)
                entry_report = self.reconcile_entry(entry, manifest.root, index)
                if entry_report.state is EntryState.RECOVERED:
                    dirty = dirty or entry_report.sha_after != entry_report.sha_before
                if entry_report.state is EntryState.FAILED and self.fail_fast:
                    stop = True
            report.entries.append(entry_report)
            self.listener.entry_finished(manifest.path, entry_report)

        if dirty and not self.dry_run:
            try:
                write_manifest(manifest)
                report.written = True
            except ManifestWriteError as exc:
                logger.error(
                    "Regenerated files no longer match %s, rewrite failed: %s",
                    manifest.path,
                    exc,
                )
                report.error = str(exc)
        self.listener.manifest_finished(report)
        return report

    def run(self, paths: Iterable[Path]) -> RunReport:
        run_report = RunReport(dry_run=self.dry_run)
        stop = False
        for path in paths:
            with manifest_context(path):
                try:
                    manifest = load_manifest(path)
                except ManifestParseError as exc:
                    logger.error("Couldn't load manifest %s: %s", path, exc)
                    report = ManifestReport(path=path, error=str(exc))
                    self.listener.manifest_started(path)
                    self.listener.manifest_finished(report)
                else:
                    report = self.reconcile_manifest(manifest, skip=stop)
            run_report.manifests.append(report)
            if report.failed and self.fail_fast:
                stop = True
        return run_report
