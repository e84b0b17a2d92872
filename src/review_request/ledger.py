"""Status/state ledger for one phase run.

Holds the step status map, the states carried between phases, and the
warning counter. A Ledger is created per run and passed to everything that
can record a status or raise an advisory.
"""

import json
from typing import Dict, Optional

from review_request.console import Console
from review_request.constants import WARNINGS_STATE_KEY
from review_request.state_store import StateStore


class Ledger:
    """Run context: statuses, states and warnings for one phase."""

    def __init__(self, console: Console, store: Optional[StateStore] = None):
        self.console = console
        self.store = store
        self.status: Dict[str, int] = {}  # insertion-ordered step outcomes
        self.states: Dict[str, str] = {}  # carried between phases
        self.warnings = 0

    def record_status(self, name: str, exit_code: int) -> None:
        """Record a step outcome. Re-recording a name overwrites it."""
        self.status[name] = exit_code

    def record_warning(self, message: str) -> None:
        """Count an advisory, show it, and persist the new count."""
        self.warnings += 1
        self.console.show_warning(message)
        if self.store is not None:
            self.store.set(WARNINGS_STATE_KEY, str(self.warnings))

    def finalize_warnings(self, phase: str) -> Optional[str]:
        """
        Summarize warnings as a single advisory annotation.

        Returns:
            The advisory text, or None when there were no warnings
        """
        if self.warnings > 1:
            message = (
                f"There were {self.warnings} warnings in the {phase} phase. "
                "View the run log for details."
            )
        elif self.warnings == 1:
            message = (
                f"There was {self.warnings} warning in the {phase} phase. "
                "View the run log for details."
            )
        else:
            return None

        self.console.warning(message)
        return message

    def log_summary(self, phase: str = "setup") -> None:
        """Log the status and state maps inside a group."""
        self.console.start_group(f"Logging {phase} status...")
        self.console.info(f"status: {json.dumps(self.status)}")
        self.console.info(f"states: {json.dumps(self.states)}")
        self.console.end_group()
