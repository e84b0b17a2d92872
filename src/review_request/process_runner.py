"""Process runner: launch external tools and classify their exit codes.

One primitive covers the three calling policies:
    - must succeed or abort the run (failure_message set)
    - run and record the code for later inspection (no failure_message)
    - run only for its log output (result ignored)

Arguments are passed as a list, never through a shell.
"""

import subprocess
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence

from review_request.console import Console
from review_request.constants import LAUNCH_FAILURE_EXIT_CODE


# Signature of subprocess.run, injectable for tests
ProcessLauncher = Callable[..., subprocess.CompletedProcess]


@dataclass(frozen=True)
class CommandSpec:
    """One external command invocation."""
    command: str
    arguments: Sequence[str] = field(default_factory=tuple)
    working_directory: Optional[str] = None
    success_title: Optional[str] = None  # logged before launch
    failure_message: Optional[str] = None  # raise CommandFailed on non-zero
    capture_output: bool = False  # capture stdout instead of streaming it

    def argv(self) -> List[str]:
        return [self.command, *self.arguments]


@dataclass(frozen=True)
class ExecutionResult:
    """Outcome of one CommandSpec execution."""
    exit_code: int
    stdout: str = ""

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0

    def match_count(self) -> int:
        """Number of non-blank output lines (e.g. grep matches)."""
        return len([line for line in self.stdout.splitlines() if line.strip()])


class CommandFailed(Exception):
    """Raised when a command that must succeed exits non-zero."""

    def __init__(self, message: str, exit_code: int):
        super().__init__(message)
        self.message = message
        self.exit_code = exit_code


def execute(
    spec: CommandSpec,
    console: Console,
    runner: ProcessLauncher = subprocess.run,
) -> ExecutionResult:
    """
    Run a command to completion and return its exit code.

    Non-zero exit codes are returned, not raised, unless the command spec carries
    a failure_message. A command that cannot be launched at all reports
    exit code 127.

    Captured output is decoded as UTF-8, with undecodable bytes replaced.

    Args:
        spec: Command to run
        console: Console for the announce line and launch errors
        runner: subprocess.run or a compatible fake

    Returns:
        ExecutionResult with the raw exit code

    Raises:
        CommandFailed: If spec.failure_message is set and the exit code is non-zero
    """
    if spec.success_title:
        console.info(f"\n{spec.success_title}...")

    try:
        completed = runner(
            spec.argv(),
            cwd=spec.working_directory,
            check=False,
            shell=False,
            stdout=subprocess.PIPE if spec.capture_output else None,
            text=True,
            encoding="utf-8",
            errors="replace",  # source files are not always UTF-8
        )
        result = ExecutionResult(
            exit_code=completed.returncode,
            stdout=(completed.stdout or "") if spec.capture_output else "",
        )
    except (FileNotFoundError, NotADirectoryError, PermissionError) as e:
        console.info(f"Unable to launch {spec.command}: {e}")
        result = ExecutionResult(exit_code=LAUNCH_FAILURE_EXIT_CODE)

    if spec.failure_message and result.exit_code != 0:
        raise CommandFailed(
            f"{spec.failure_message} ({result.exit_code}).",
            exit_code=result.exit_code,
        )

    return result


def check_exec(
    command: str,
    console: Console,
    args: Optional[Sequence[str]] = None,
    title: Optional[str] = None,
    error: Optional[str] = None,
    cwd: Optional[str] = None,
    runner: ProcessLauncher = subprocess.run,
) -> int:
    """Shorthand for execute() that builds the spec and returns the exit code."""
    spec = CommandSpec(
        command=command,
        arguments=tuple(args or ()),
        working_directory=cwd,
        success_title=title,
        failure_message=error,
    )
    return execute(spec, console, runner=runner).exit_code
