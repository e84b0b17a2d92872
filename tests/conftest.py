"""Shared fixtures: a scripted stand-in for subprocess.run."""

import subprocess
from typing import Dict, List, Optional

import pytest

from review_request.console import Console


class FakeLauncher:
    """Records every launch and replies with scripted exit codes/output.

    Replies are matched by executable name; unscripted commands exit 0.
    A reply of FileNotFoundError simulates a missing executable.
    """

    def __init__(self, replies: Optional[Dict[str, object]] = None):
        self.replies = dict(replies or {})
        self.calls: List[dict] = []

    def __call__(self, argv, **kwargs):
        self.calls.append({"argv": list(argv), **kwargs})
        reply = self.replies.get(argv[0], 0)
        if isinstance(reply, list):
            reply = reply.pop(0) if reply else 0
        if reply is FileNotFoundError:
            raise FileNotFoundError(2, "No such file or directory", argv[0])
        if isinstance(reply, tuple):
            code, stdout = reply
        else:
            code, stdout = reply, ""
        captured = stdout if kwargs.get("stdout") == subprocess.PIPE else None
        return subprocess.CompletedProcess(argv, code, stdout=captured)

    @property
    def argvs(self) -> List[List[str]]:
        return [call["argv"] for call in self.calls]


@pytest.fixture
def make_launcher():
    """Factory for launchers scripted per test: make_launcher({"mvn": 2})."""
    return FakeLauncher


@pytest.fixture
def launcher(make_launcher):
    return make_launcher()


@pytest.fixture
def console():
    return Console()
