"""Workflow console for the action.

Writes operator-facing output with click and speaks the GitHub Actions
workflow command protocol (groups, annotations, secret masking).
Exact colors are cosmetic; only the text is meaningful.
"""

from contextlib import contextmanager
from typing import Iterator, List, Optional

import click


class Console:
    """Operator output for one action invocation.

    Secrets registered with `set_secret` are masked by the runner and are
    also redacted locally from every line written afterwards.
    """

    def __init__(self, color: Optional[bool] = None):
        self.color = color
        self.failed = False
        self.failure_message: Optional[str] = None
        self._secrets: List[str] = []
        self._open_groups = 0

    # =========================================================================
    # RAW OUTPUT
    # =========================================================================

    def _redact(self, text: str) -> str:
        for secret in self._secrets:
            text = text.replace(secret, "***")
        return text

    def _write(self, text: str) -> None:
        click.echo(self._redact(text), color=self.color)

    def info(self, text: str = "") -> None:
        self._write(text)

    def warning(self, text: str) -> None:
        """Emit a warning annotation (shown on the run summary)."""
        self._write(f"::warning::{_escape_data(text)}")

    def error(self, text: str) -> None:
        """Emit an error annotation (shown on the run summary)."""
        self._write(f"::error::{_escape_data(text)}")

    # =========================================================================
    # GROUPS
    # =========================================================================

    def start_group(self, title: str) -> None:
        self._write(f"::group::{title}")
        self._open_groups += 1

    def end_group(self) -> None:
        # Ending a group that is not open is harmless for the runner
        self._write("::endgroup::")
        if self._open_groups:
            self._open_groups -= 1

    @property
    def in_group(self) -> bool:
        return self._open_groups > 0

    @contextmanager
    def group(self, title: str) -> Iterator["Console"]:
        """Wrap output in a collapsible group, padded with blank lines."""
        self.start_group(title)
        self.info()
        try:
            yield self
        finally:
            if self.in_group:
                self.info()
                self.end_group()

    # =========================================================================
    # SECRETS AND FAILURE
    # =========================================================================

    def set_secret(self, value: Optional[str]) -> None:
        """Register a value to be masked in all later output."""
        if not value:
            return
        click.echo(f"::add-mask::{value}", color=self.color)
        if value not in self._secrets:
            self._secrets.append(value)

    def set_failed(self, message: str) -> None:
        """Mark the invocation failed; the CLI turns this into exit code 1."""
        self.failed = True
        self.failure_message = message
        self.error(message)

    # =========================================================================
    # STYLED OUTPUT
    # =========================================================================

    def show_title(self, text: str) -> None:
        self._write("\n" + click.style(text, fg="cyan", bold=True))

    def _show_labeled(self, color: str, label: str, text: str) -> None:
        badge = click.style(f"{label}:", fg="black", bg=color, bold=True)
        self._write(f"{badge} {click.style(text, fg=color)}")

    def show_error(self, text: str) -> None:
        self._show_labeled("red", "Error", text)

    def show_success(self, text: str) -> None:
        self._show_labeled("green", "Success", text)

    def show_warning(self, text: str) -> None:
        """Render a warning line. Counting warnings is the ledger's job."""
        self._show_labeled("yellow", "Warning", text)


def _escape_data(text: str) -> str:
    """Escape annotation text per the workflow command format."""
    return text.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")
