"""Resha exception hierarchy.

All resha-specific exceptions inherit from ReshaError,
so the CLI can report any of them without catching unrelated bugs.
"""

from __future__ import annotations

from pathlib import Path


class ReshaError(Exception):
    """Base exception for all resha errors."""


class ConfigError(ReshaError):
    """Invalid run configuration."""


class DiscoveryError(ReshaError):
    """A discovery root or pattern is unusable."""


class ManifestError(ReshaError):
    """Error tied to one manifest file."""

    def __init__(self, message: str = "", *, path: Path | None = None) -> None:
        super().__init__(message)
        self.path = path


class ManifestParseError(ManifestError):
    """Manifest is unreadable or malformed."""


class ManifestWriteError(ManifestError):
    """Manifest could not be written back after a regeneration."""


class ExecutionError(ReshaError):
    """Entry command exited non-zero or could not be started."""

    def __init__(
        self,
        message: str = "",
        *,
        returncode: int | None = None,
        output: str = "",
    ) -> None:
        super().__init__(message)
        self.returncode = returncode
        self.output = output
