"""Persistent key/value state shared between action phases.

The platform only offers per-key get/set. The set of meaningful keys is
itself stored under the sentinel key "keys" as a JSON list, so a snapshot
is written values-first, sentinel-last, and read sentinel-first.
There is no atomicity across keys: a crash between the value writes and
the sentinel write leaves the previous sentinel in place.
"""

import json
import os
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional

from review_request.console import Console
from review_request.constants import RESERVED_STATE_KEYS, STATE_KEYS_SENTINEL


class StateCorrupt(Exception):
    """Raised when the sentinel key list cannot be read."""

    def __init__(self, reason: str):
        super().__init__(f"Unable to restore state ({reason}).")
        self.reason = reason


@dataclass
class Snapshot:
    """Ordered keys plus their values."""
    keys: List[str] = field(default_factory=list)
    values: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, states: Mapping[str, str]) -> "Snapshot":
        _reject_reserved(states)
        return cls(keys=list(states), values={k: str(v) for k, v in states.items()})

    def as_dict(self) -> Dict[str, str]:
        return {key: self.values.get(key, "") for key in self.keys}


def _reject_reserved(keys: Iterable[str]) -> None:
    reserved = [key for key in keys if key in RESERVED_STATE_KEYS]
    if reserved:
        raise ValueError(f"Reserved state name(s) cannot be saved: {', '.join(reserved)}")


def _parse_keys(raw: str) -> List[str]:
    try:
        keys = json.loads(raw)
    except json.JSONDecodeError as e:
        raise StateCorrupt(f"sentinel is not valid JSON: {e.msg}")
    if not isinstance(keys, list) or not all(isinstance(k, str) for k in keys):
        raise StateCorrupt("sentinel is not a list of key names")
    return keys


class StateStore(ABC):
    """Abstract per-job key/value store."""

    @abstractmethod
    def get(self, key: str) -> str:
        """Return the stored value, or an empty string if absent."""
        pass

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Persist a single value."""
        pass

    def load(self, allow_missing: bool = False) -> Snapshot:
        """
        Read the sentinel key list, then each listed key.

        Args:
            allow_missing: Treat a missing sentinel as empty state
                           (first phase of a job) instead of corruption.

        Raises:
            StateCorrupt: If the sentinel is missing (and not allowed) or malformed
        """
        raw = self.get(STATE_KEYS_SENTINEL)
        if not raw:
            if allow_missing:
                return Snapshot()
            raise StateCorrupt(f'no "{STATE_KEYS_SENTINEL}" entry found')

        keys = _parse_keys(raw)
        return Snapshot(keys=keys, values={key: self.get(key) for key in keys})

    def save(self, snapshot: Snapshot) -> None:
        """
        Write every value, then the sentinel listing them.

        Raises:
            ValueError: If a key is one of the reserved names ("keys", "warnings")
        """
        _reject_reserved(snapshot.keys)
        for key in snapshot.keys:
            self.set(key, snapshot.values.get(key, ""))
        self.set(STATE_KEYS_SENTINEL, json.dumps(snapshot.keys))


class MemoryStateStore(StateStore):
    """Dict-backed store for tests and local runs."""

    def __init__(self, initial: Optional[Mapping[str, str]] = None):
        self.data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str:
        return self.data.get(key, "")

    def set(self, key: str, value: str) -> None:
        self.data[key] = str(value)


class ActionsStateStore(StateStore):
    """GitHub Actions state: written to $GITHUB_STATE, read from STATE_* env vars.

    Values saved here become visible to the *next* phase of the action,
    not to the current process.
    """

    def __init__(
        self,
        state_file: Optional[str] = None,
        environ: Optional[Mapping[str, str]] = None,
        console: Optional[Console] = None,
    ):
        self.environ = os.environ if environ is None else environ
        self.state_file = state_file or self.environ.get("GITHUB_STATE")
        self.console = console or Console()

    def get(self, key: str) -> str:
        return self.environ.get(f"STATE_{key}", "")

    def set(self, key: str, value: str) -> None:
        value = str(value)
        if not self.state_file:
            # Legacy workflow command, for runners without a state file
            self.console.info(f"::save-state name={key}::{value}")
            return

        delimiter = f"ghadelimiter_{uuid.uuid4()}"
        if delimiter in key or delimiter in value:
            raise ValueError(f"Unexpected delimiter collision for state {key}")
        with Path(self.state_file).open("a", encoding="utf-8") as f:
            f.write(f"{key}<<{delimiter}\n{value}\n{delimiter}\n")


# =============================================================================
# LOGGED RESTORE / SAVE
# =============================================================================

def restore_state(
    store: StateStore,
    console: Console,
    allow_missing: bool = False,
) -> Dict[str, str]:
    """
    Restore the previous phase's state, logging every restored pair.

    Returns:
        Ordered mapping of restored keys to values

    Raises:
        StateCorrupt: See StateStore.load
    """
    with console.group("Restoring state..."):
        snapshot = store.load(allow_missing=allow_missing)
        console.info(f"Loaded keys: {','.join(snapshot.keys)}")
        for key in snapshot.keys:
            console.info(f"Restored value {snapshot.values[key]} for state {key}.")
    return snapshot.as_dict()


def save_state(store: StateStore, console: Console, states: Mapping[str, str]) -> None:
    """Save states for the next phase, logging every saved pair."""
    snapshot = Snapshot.from_mapping(states)
    with console.group("Saving state..."):
        store.save(snapshot)
        for key in snapshot.keys:
            console.info(f"Saved value {snapshot.values[key]} for state {key}.")
