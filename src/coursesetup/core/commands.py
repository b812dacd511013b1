"""External command execution for course-setup."""

from __future__ import annotations

import logging
import os
import subprocess
from typing import Dict, List, Optional, Sequence

logger = logging.getLogger(__name__)


class CommandError(RuntimeError):
    """Raised when an external command exits with a non-zero status."""

    def __init__(self, argv: Sequence[str], returncode: int, stdout: str = "", stderr: str = ""):
        self.argv = list(argv)
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        detail = stderr.strip() or stdout.strip() or "no output"
        super().__init__(f"Command {' '.join(self.argv)!r} failed ({returncode}): {detail}")


class CommandResult:
    """Outcome of a finished command."""

    def __init__(self, argv: List[str], returncode: int, stdout: str, stderr: str):
        self.argv = argv
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    def __repr__(self) -> str:
        return f"CommandResult({self.argv!r}, returncode={self.returncode})"


def run_command(
    argv: Sequence[str],
    *,
    check: bool = True,
    capture: bool = True,
    input: Optional[str] = None,
    env: Optional[Dict[str, str]] = None,
    cwd: Optional[str] = None,
) -> CommandResult:
    """Run a command and return its result.

    Args:
        argv: Command and arguments.
        check: Raise CommandError on a non-zero exit status.
        capture: Capture stdout/stderr. When False the command shares the
            terminal, which is what apt and ssh-copy-id need to prompt.
        input: Text passed on stdin.
        env: Extra environment variables, merged over the current ones.
        cwd: Working directory for the command.

    Returns:
        CommandResult with the exit status and any captured output.

    Raises:
        CommandError: If check is set and the command fails, or if the
            executable cannot be found.
    """
    argv = [str(a) for a in argv]
    logger.debug("Running: %s", " ".join(argv))

    full_env = None
    if env:
        full_env = {**os.environ, **env}

    try:
        proc = subprocess.run(
            argv,
            capture_output=capture,
            text=True,
            input=input,
            env=full_env,
            cwd=cwd,
        )
    except FileNotFoundError as e:
        raise CommandError(argv, 127, stderr=str(e)) from e

    result = CommandResult(argv, proc.returncode, proc.stdout or "", proc.stderr or "")
    if check and not result.ok:
        raise CommandError(argv, result.returncode, result.stdout, result.stderr)
    return result
