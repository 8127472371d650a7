"""Runtime configuration contract."""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from resha.errors import ConfigError

DEFAULT_MATCH = r"\.resha\.ya?ml"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    manifests: str = Field(alias="RESHA_MANIFESTS", default="")
    roots: str = Field(alias="RESHA_ROOTS", default="")
    match: str = Field(alias="RESHA_MATCH", default=DEFAULT_MATCH)
    recursive: bool = Field(alias="RESHA_RECURSIVE", default=False)
    fail_fast: bool = Field(alias="RESHA_FAIL_FAST", default=False)
    dry_run: bool = Field(alias="RESHA_DRY_RUN", default=False)
    quiet: bool = Field(alias="RESHA_QUIET", default=False)
    log_level: str = Field(alias="RESHA_LOG_LEVEL", default="WARNING")
    log_json: bool = Field(alias="RESHA_LOG_JSON", default=False)


@dataclass(frozen=True, slots=True)
class RunConfig:
    """Parsed configuration handed to discovery and the reconciler."""

    manifests: tuple[Path, ...]
    roots: tuple[Path, ...]
    pattern: re.Pattern[str]
    recursive: bool
    fail_fast: bool
    dry_run: bool
    quiet: bool

    @property
    def explicit(self) -> bool:
        return bool(self.manifests)


def split_list(raw: str) -> list[str]:
    return [item.strip() for item in raw.split(",") if item.strip()]


def compile_pattern(raw: str) -> re.Pattern[str]:
    try:
        return re.compile(raw)
    except re.error as exc:
        raise ConfigError(f"invalid match pattern {raw!r}: {exc}") from exc


def resolve_run_config(
    settings: Settings,
    *,
    manifests: tuple[str, ...] = (),
    roots: tuple[str, ...] = (),
    match: str | None = None,
    recursive: bool | None = None,
    fail_fast: bool | None = None,
    dry_run: bool | None = None,
    quiet: bool | None = None,
) -> RunConfig:
    """Merge explicit CLI values over environment settings.

    ``None`` (or an empty tuple) means the flag was not given on the command
    line, so the environment value applies.
    """
    manifest_list = list(manifests) or split_list(settings.manifests)
    root_list = list(roots) or split_list(settings.roots) or ["."]
    pattern_raw = match if match is not None else settings.match
    if not pattern_raw:
        raise ConfigError("match pattern must not be empty")

    return RunConfig(
        manifests=tuple(Path(item) for item in manifest_list),
        roots=tuple(Path(item) for item in root_list),
        pattern=compile_pattern(pattern_raw),
        recursive=settings.recursive if recursive is None else recursive,
        fail_fast=settings.fail_fast if fail_fast is None else fail_fast,
        dry_run=settings.dry_run if dry_run is None else dry_run,
        quiet=settings.quiet if quiet is None else quiet,
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
