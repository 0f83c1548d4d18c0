"""Shell execution utilities.

Provides safe subprocess execution with proper error handling. Commands are
always passed as argument lists and never through a shell. Output is decoded
as UTF-8 with surrogate escapes so names that are not valid UTF-8 survive a
round trip back into arguments or stdin.
"""

import subprocess
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True, slots=True)
class CommandResult:
    """Result of a shell command execution.

    Attributes:
        stdout: Standard output from the command.
        stderr: Standard error from the command.
        returncode: Exit code of the command.
    """

    stdout: str
    stderr: str
    returncode: int

    @property
    def success(self) -> bool:
        """Check if command executed successfully."""
        return self.returncode == 0


class CommandRunner(Protocol):
    """Callable that executes a command the way :func:`run_command` does.

    Components depend on this instead of calling subprocess directly so
    tests can substitute a recording fake.
    """

    def __call__(
        self,
        args: list[str],
        *,
        check: bool = False,
        timeout: float | None = 60.0,
        cwd: str | None = None,
        env: Mapping[str, str] | None = None,
        input_text: str | None = None,
    ) -> CommandResult: ...


def run_command(
    args: list[str],
    *,
    check: bool = False,
    timeout: float | None = 60.0,
    cwd: str | None = None,
    env: Mapping[str, str] | None = None,
    input_text: str | None = None,
) -> CommandResult:
    """Execute a command and return the result.

    Args:
        args: Command and arguments to execute.
        check: If True, raise CalledProcessError on non-zero exit.
        timeout: Maximum time in seconds to wait for command. None waits forever.
        cwd: Working directory for the command. If None, uses current directory.
        env: Complete environment for the child. If None, inherits ours.
        input_text: Text fed to the command's standard input.

    Returns:
        CommandResult with stdout, stderr, and returncode.

    Raises:
        subprocess.CalledProcessError: If check=True and command fails.
        subprocess.TimeoutExpired: If command exceeds timeout.
        FileNotFoundError: If command executable is not found.
    """
    result = subprocess.run(
        args,
        capture_output=True,
        encoding="utf-8",
        errors="surrogateescape",
        check=check,
        timeout=timeout,
        cwd=cwd,
        env=dict(env) if env is not None else None,
        input=input_text,
    )
    return CommandResult(
        stdout=result.stdout,
        stderr=result.stderr,
        returncode=result.returncode,
    )

