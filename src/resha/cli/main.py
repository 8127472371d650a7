"""Click command: reconcile manifests, or list what they reference."""

from __future__ import annotations

from pathlib import Path

import click
from click.core import ParameterSource

from resha.cli.report import (
    ProgressPrinter,
    changed_paths,
    display_path,
    echo_command_output,
    render_summary,
)
from resha.config import RunConfig, get_settings, resolve_run_config
from resha.discovery import manifest_paths
from resha.errors import ReshaError
from resha.executor import ShellExecutor
from resha.logging import configure_logging
from resha.manifest.store import load_manifest
from resha.reconciler import ReconcileListener, Reconciler


def _given(ctx: click.Context, name: str) -> bool:
    return ctx.get_parameter_source(name) is ParameterSource.COMMANDLINE


def _list_files(paths: list[Path]) -> None:
    seen: dict[str, None] = {}
    for path in paths:
        manifest = load_manifest(path)
        for entry in manifest.entries:
            for rel in entry.all_files():
                seen.setdefault(display_path(path, rel), None)
    for item in seen:
        click.echo(item)


def _reconcile(config: RunConfig, paths: list[Path], *, list_changed: bool) -> bool:
    executor = ShellExecutor(
        quiet=config.quiet or list_changed,
        sink=echo_command_output,
    )
    listener = ReconcileListener() if list_changed else ProgressPrinter()
    reconciler = Reconciler(
        executor,
        dry_run=config.dry_run,
        fail_fast=config.fail_fast,
        listener=listener,
    )
    report = reconciler.run(paths)

    if list_changed:
        for item in changed_paths(report):
            click.echo(item)
        for manifest in report.manifests:
            if manifest.error:
                click.echo(f"error: {manifest.error}", err=True)
            for entry in manifest.entries:
                if entry.error:
                    click.echo(f"error: {manifest.path}: {entry.label}: {entry.error}", err=True)
    else:
        click.echo()
        click.echo(render_summary(report))
    return report.ok


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.argument("manifests", nargs=-1, type=click.Path(dir_okay=False, path_type=str))
@click.option(
    "-C",
    "--root",
    "roots",
    multiple=True,
    type=click.Path(file_okay=False, path_type=str),
    help="Directory to search for manifests (repeatable, default: .). Env: RESHA_ROOTS.",
)
@click.option(
    "-m",
    "--match",
    default=None,
    help="Regex matched against whole file names. Env: RESHA_MATCH.",
)
@click.option(
    "-r",
    "--recursive/--no-recursive",
    default=False,
    help="Search subdirectories too. Env: RESHA_RECURSIVE.",
)
@click.option(
    "-x",
    "--fail-fast/--no-fail-fast",
    default=False,
    help="Stop at the first failing entry. Env: RESHA_FAIL_FAST.",
)
@click.option(
    "-n",
    "--dry-run/--no-dry-run",
    default=False,
    help="Report stale entries without running them. Env: RESHA_DRY_RUN.",
)
@click.option(
    "-q",
    "--quiet/--no-quiet",
    default=False,
    help="Don't show command output. Env: RESHA_QUIET.",
)
@click.option("--list-manifests", is_flag=True, help="Print manifest paths and exit.")
@click.option("--list-files", is_flag=True, help="Print every entry file path and exit.")
@click.option(
    "--list-changed",
    is_flag=True,
    help="Only print file paths of regenerated (or, with --dry-run, stale) entries.",
)
@click.pass_context
def cli(
    ctx: click.Context,
    manifests: tuple[str, ...],
    roots: tuple[str, ...],
    match: str | None,
    recursive: bool,
    fail_fast: bool,
    dry_run: bool,
    quiet: bool,
    list_manifests: bool,
    list_files: bool,
    list_changed: bool,
) -> None:
    """Re-run generation commands whose inputs or outputs changed.

    MANIFEST paths are used as given; without them manifests are discovered
    under each --root. Env: RESHA_MANIFESTS (comma-separated).
    """
    settings = get_settings()
    configure_logging(settings.log_level, json_output=settings.log_json)

    values = {
        "match": match,
        "recursive": recursive,
        "fail_fast": fail_fast,
        "dry_run": dry_run,
        "quiet": quiet,
    }
    # Flags left at their default fall back to RESHA_* settings.
    overrides = {name: value if _given(ctx, name) else None for name, value in values.items()}

    try:
        config = resolve_run_config(settings, manifests=manifests, roots=roots, **overrides)
        paths = list(manifest_paths(config))
        if list_manifests:
            for path in paths:
                click.echo(str(path))
            return
        if list_files:
            _list_files(paths)
            return
        ok = _reconcile(config, paths, list_changed=list_changed)
    except ReshaError as exc:
        raise click.ClickException(str(exc)) from exc

    if not ok:
        ctx.exit(1)
