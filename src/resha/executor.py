"""Shell execution of entry commands."""

from __future__ import annotations

import logging
import os
import subprocess
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from resha.errors import ExecutionError

logger = logging.getLogger(__name__)

SHELL = "bash"
SCRIPT_PREAMBLE = "set -xe"


@dataclass(frozen=True, slots=True)
class ExecResult:
    returncode: int
    output: str


class Executor(Protocol):
    def run(
        self,
        cmd: str,
        *,
        cwd: Path,
        env: Mapping[str, str] | None = None,
    ) -> ExecResult: ...


def build_script(cmd: str) -> str:
    return "\n".join([SCRIPT_PREAMBLE, cmd])


class ShellExecutor:
    """Run commands with bash, merging stderr into stdout.

    Output lines go to *sink* as they arrive unless *quiet* is set; they are
    captured either way.
    """

    def __init__(
        self,
        *,
        quiet: bool = False,
        sink: Callable[[str], None] | None = None,
    ) -> None:
        self.quiet = quiet
        self.sink = sink

    def run(
        self,
        cmd: str,
        *,
        cwd: Path,
        env: Mapping[str, str] | None = None,
    ) -> ExecResult:
        full_env = dict(os.environ)
        if env:
            full_env.update(env)
        try:
            proc = subprocess.Popen(
                [SHELL, "-c", build_script(cmd)],
                cwd=cwd,
                env=full_env,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                errors="replace",
            )
        except OSError as exc:
            raise ExecutionError(f"couldn't start {SHELL}: {exc}") from exc

        lines: list[str] = []
        assert proc.stdout is not None
        with proc.stdout:
            for line in proc.stdout:
                lines.append(line)
                if not self.quiet and self.sink is not None:
                    self.sink(line.rstrip("\n"))
        returncode = proc.wait()
        output = "".join(lines)
        if returncode != 0:
            logger.info("Command exited with %d in %s", returncode, cwd)
            raise ExecutionError(
                f"non-zero exit code {returncode}",
                returncode=returncode,
                output=output,
            )
        return ExecResult(returncode=returncode, output=output)
