"""In-process stand-ins for the Daytona client and sandbox."""

from dataclasses import dataclass, field

import pytest

from skill_hook_evals.config import MONITOR_SCRIPT_PATH


@dataclass
class FakeResponse:
    exit_code: int = 0
    result: str = ""


class FakeFS:
    def __init__(self, sandbox):
        self._sandbox = sandbox
        self.uploads: dict[str, bytes] = {}
        self.fail_uploads = False

    def upload_file(self, content: bytes, remote_path: str) -> None:
        if self.fail_uploads:
            raise ConnectionError("upload refused")
        self._sandbox.log.append(("upload", remote_path))
        self.uploads[remote_path] = content


class FakeProcess:
    """Replays queued responses; a queued exception is raised instead.

    Monitor invocations draw from monitor_queue first, so setup commands
    never consume the responses meant for test cases.
    """

    def __init__(self, sandbox):
        self._sandbox = sandbox
        self.queue: list = []
        self.monitor_queue: list = []
        self.calls: list[tuple[str, int | None]] = []

    def exec(self, command: str, cwd=None, env=None, timeout=None):
        self._sandbox.log.append(("exec", command))
        self.calls.append((command, timeout))
        if self.monitor_queue and command.startswith(MONITOR_SCRIPT_PATH):
            outcome = self.monitor_queue.pop(0)
        elif self.queue:
            outcome = self.queue.pop(0)
        else:
            return FakeResponse()
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


class FakeSandbox:
    def __init__(self):
        self.log: list[tuple[str, str]] = []
        self.fs = FakeFS(self)
        self.process = FakeProcess(self)


@dataclass
class FakeDaytona:
    created: list = field(default_factory=list)
    deleted: list = field(default_factory=list)
    fail_delete: bool = False
    monitor_responses: list = field(default_factory=list)

    def create(self, params=None):
        sandbox = FakeSandbox()
        sandbox.process.monitor_queue = list(self.monitor_responses)
        self.created.append(sandbox)
        return sandbox

    def delete(self, sandbox):
        self.deleted.append(sandbox)
        if self.fail_delete:
            raise ConnectionError("delete refused")


@pytest.fixture
def fake_sandbox():
    return FakeSandbox()


@pytest.fixture
def fake_daytona():
    return FakeDaytona()


@pytest.fixture
def patch_create(monkeypatch):
    """Route create_sandbox through a FakeDaytona without the real SDK."""
    from skill_hook_evals.sandbox import provisioner

    def _create(daytona, api_key):
        return daytona.create()

    monkeypatch.setattr(provisioner, "create_sandbox", _create)
    return _create
