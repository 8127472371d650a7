"""Human-readable progress and summary output for the resha command."""

from __future__ import annotations

import os
from pathlib import Path

import click

from resha.reconciler import (
    EntryReport,
    EntryState,
    ManifestReport,
    ReconcileListener,
    RunReport,
)

_STATE_STYLE: dict[EntryState, tuple[str, str, str]] = {
    EntryState.IN_SYNC: ("✓", "green", "in sync"),
    EntryState.RECOVERED: ("↻", "green", "regenerated"),
    EntryState.STALE: ("!", "yellow", "would regenerate"),
    EntryState.FAILED: ("✗", "red", "failed"),
    EntryState.SKIPPED: ("-", "bright_black", "skipped"),
}


def display_path(manifest_path: Path, rel: str) -> str:
    """Path of an entry file as seen from the working directory."""
    return os.path.normpath(manifest_path.parent / rel)


def format_entry(report: EntryReport) -> str:
    icon, color, text = _STATE_STYLE[report.state]
    line = f"  {click.style(icon, fg=color)} {report.label} ({text})"
    if report.error:
        line += f": {report.error}"
    return line


class ProgressPrinter(ReconcileListener):
    """Prints one header per manifest and one line per entry."""

    def manifest_started(self, path: Path) -> None:
        click.echo(click.style(str(path), bold=True))

    def entry_finished(self, path: Path, report: EntryReport) -> None:
        click.echo(format_entry(report))

    def manifest_finished(self, report: ManifestReport) -> None:
        if report.error:
            click.secho(f"  ✗ {report.error}", fg="red", err=True)
        elif report.written:
            click.echo(f"  updated {report.path}")


def echo_command_output(line: str) -> None:
    click.echo(f"    {line}")


def changed_paths(report: RunReport) -> list[str]:
    """Files of regenerated entries, or of stale entries in a dry run."""
    wanted = EntryState.STALE if report.dry_run else EntryState.RECOVERED
    seen: dict[str, None] = {}
    for manifest_path, entry in report.entries():
        if entry.state is wanted:
            for rel in entry.files:
                seen.setdefault(display_path(manifest_path, rel), None)
    return list(seen)


def render_summary(report: RunReport) -> str:
    parts = [
        f"{report.count(state)} {_STATE_STYLE[state][2]}"
        for state in EntryState
        if report.count(state)
    ]
    errors = len(report.errors())
    if errors:
        parts.append(f"{errors} manifest error(s)")
    if not parts:
        parts.append("no entries")
    text = ", ".join(parts)
    return click.style(text, fg="green" if report.ok else "red")
