"""Phase runner for the review request action.

Restores state, runs each step group, runs the debug artifact checks,
then always logs the status/state maps and summarizes warnings.
"""

import subprocess
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional

from review_request.config import Config
from review_request.console import Console
from review_request.constants import NOT_IMPLEMENTED_MESSAGE, REQUEST_PHASE_LABEL
from review_request.ledger import Ledger
from review_request.process_runner import (
    CommandFailed,
    ExecutionResult,
    ProcessLauncher,
    execute,
)
from review_request.state_store import StateStore, restore_state, save_state
from review_request.steps import Check, PhaseDefinition, Step, load_definition


class ReviewRequestError(Exception):
    """Fatal error in the review request workflow."""
    pass


@dataclass
class PhaseResult:
    """Outcome of one phase run."""
    phase: str
    succeeded: bool
    status: Dict[str, int] = field(default_factory=dict)
    states: Dict[str, str] = field(default_factory=dict)
    warnings: int = 0
    error: Optional[str] = None
    advisory: Optional[str] = None


# Runs after all groups and checks succeed; may raise to fail the phase
TerminalStep = Callable[[Ledger], None]


def run_step(step: Step, ledger: Ledger, runner: ProcessLauncher = subprocess.run) -> ExecutionResult:
    """
    Run one step and record its exit code, even when it fails.

    The status name defaults to the command line.
    """
    name = step.status or " ".join(step.spec.argv())
    try:
        result = execute(step.spec, ledger.console, runner=runner)
    except CommandFailed as e:
        ledger.record_status(name, e.exit_code)
        raise
    ledger.record_status(name, result.exit_code)
    return result


def run_check(check: Check, ledger: Ledger, runner: ProcessLauncher = subprocess.run) -> Optional[int]:
    """
    Run a search check and warn when the match count is unexpected.

    grep exits 1 when nothing matches; only exit codes above 1 are errors.

    Returns:
        Number of matching lines, or None if the search itself failed
    """
    result = execute(check.spec, ledger.console, runner=runner)
    ledger.record_status(check.name, result.exit_code)

    if result.exit_code > 1:
        ledger.record_warning(f"Unable to search for {check.name} ({result.exit_code}).")
        return None

    if result.stdout.strip():
        ledger.console.info(result.stdout.rstrip())

    found = result.match_count()
    if found != check.expected:
        ledger.record_warning(check.warning_text(found))
    else:
        ledger.console.show_success(f"Found {found} matching line(s), as expected.")
    return found


def run_phase(
    title: str,
    definition: PhaseDefinition,
    ledger: Ledger,
    phase: str = "setup",
    label: str = REQUEST_PHASE_LABEL,
    runner: ProcessLauncher = subprocess.run,
    allow_missing_state: bool = False,
    states_to_save: Optional[Dict[str, str]] = None,
    terminal: Optional[TerminalStep] = None,
) -> PhaseResult:
    """
    Run a phase to completion or to its first fatal error.

    Logic:
    1. Restore state from the previous phase
    2. Run every step group; a must-succeed failure aborts the rest
    3. Run the debug artifact checks (warnings only)
    4. Save states for the next phase, then run the terminal step
    5. On any error, report it and mark the run failed
    6. Always log status/state maps and the warning summary

    Args:
        title: Banner shown at the start of the phase
        definition: Step groups and checks to run
        ledger: Run context receiving statuses, states and warnings
        phase: Short phase name used in the status log group
        label: Phase name used in the warning summary
        runner: subprocess.run or a compatible fake
        allow_missing_state: Treat a missing state sentinel as empty state
        states_to_save: Extra states to save for the next phase
        terminal: Optional final step, run only if everything else succeeded

    Returns:
        PhaseResult; errors are reported through the console, never raised
    """
    console = ledger.console
    result = PhaseResult(phase=phase, succeeded=False)

    console.show_title(title)

    try:
        if ledger.store is not None:
            ledger.states.update(restore_state(ledger.store, console, allow_missing_state))

        for group in definition.groups:
            console.start_group(group.title)
            for step in group.steps:
                run_step(step, ledger, runner=runner)
            console.info()
            console.end_group()

        if definition.checks:
            with console.group("Checking code for debug artifacts..."):
                for check in definition.checks:
                    run_check(check, ledger, runner=runner)

        if states_to_save and ledger.store is not None:
            ledger.states.update(states_to_save)
            save_state(ledger.store, console, ledger.states)

        if terminal is not None:
            terminal(ledger)

        result.succeeded = True
    except Exception as e:  # every failure ends the run through set_failed
        result.error = str(e)
        console.show_error(f"{e}\n")  # show error in group
        if console.in_group:
            console.end_group()
        # displays outside of group; always visible
        console.set_failed(f"Code review request failed. {e}")
    finally:
        ledger.log_summary(phase)
        result.advisory = ledger.finalize_warnings(label)
        result.status = dict(ledger.status)
        result.states = dict(ledger.states)
        result.warnings = ledger.warnings

    return result


def _not_implemented(ledger: Ledger) -> None:
    raise ReviewRequestError(NOT_IMPLEMENTED_MESSAGE)


def request_review(
    config: Config,
    console: Console,
    store: StateStore,
    runner: ProcessLauncher = subprocess.run,
) -> PhaseResult:
    """
    Run the request (setup) phase of the review workflow.

    Pull request creation is not implemented yet, so a phase whose checks
    all pass still ends with a failure directing students to the instructor.
    """
    definition = load_definition(
        config.steps_file,
        placeholders={"main_dir": config.main_dir, "test_dir": config.test_dir},
    )
    ledger = Ledger(console, store)
    return run_phase(
        "Request Setup Phase",
        definition,
        ledger,
        runner=runner,
        allow_missing_state=True,  # first phase of the job
        states_to_save={"mainDir": config.main_dir, "testDir": config.test_dir},
        terminal=_not_implemented,
    )

