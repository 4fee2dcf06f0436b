import io
from typing import List, Optional

import pytest

from usb_rsync.config import AppConfig
from usb_rsync.orchestrator import BackupOrchestrator
from usb_rsync.output import PlainOutput


class FakeServiceManager:
    """Records systemctl calls and answers with scripted exit codes."""

    def __init__(self, start=0, stop=0, statuses=(0, 3)):
        self.start_rc = start
        self.stop_rc = stop
        self.statuses = list(statuses)
        self.calls: List[tuple] = []

    def start(self, unit):
        self.calls.append(("start", unit))
        return self.start_rc

    def stop(self, unit):
        self.calls.append(("stop", unit))
        return self.stop_rc

    def status(self, unit, lines=2):
        self.calls.append(("status", unit))
        return self.statuses.pop(0)

    def count(self, action):
        return sum(1 for call in self.calls if call[0] == action)


class FakeMountTable:
    """Answers is_mounted from a script: first for mount, then for unmount."""

    def __init__(self, answers=(True, False), error: Optional[Exception] = None):
        self.answers = list(answers)
        self.error = error
        self.queries: List[str] = []

    def is_mounted(self, path):
        self.queries.append(path)
        if self.error is not None:
            raise self.error
        return self.answers.pop(0)


class FakeRsync:
    def __init__(self, rc=0, error: Optional[Exception] = None):
        self.rc = rc
        self.error = error
        self.runs = 0

    def describe(self):
        return "rsync --recursive /zpool /mnt/pve/usb_external/"

    def run(self):
        self.runs += 1
        if self.error is not None:
            raise self.error
        return self.rc


class FakeFreeSpace:
    def __init__(self, error: Optional[Exception] = None):
        self.error = error
        self.paths: List[str] = []

    def report(self, path):
        self.paths.append(path)
        if self.error is not None:
            raise self.error


@pytest.fixture
def config():
    return AppConfig()


@pytest.fixture
def output():
    return PlainOutput(io.StringIO())


@pytest.fixture
def make_orchestrator(config, output):
    """Build an orchestrator wired to fakes; returns it with its fakes."""

    def _make(
        user="root",
        service_manager=None,
        mount_table=None,
        rsync=None,
        free_space=None,
        app_config=None,
    ):
        fakes = {
            "service_manager": service_manager or FakeServiceManager(),
            "mount_table": mount_table or FakeMountTable(),
            "rsync": rsync or FakeRsync(),
            "free_space": free_space or FakeFreeSpace(),
            "sleeps": [],
        }
        orchestrator = BackupOrchestrator(
            app_config or config,
            output=output,
            service_manager=fakes["service_manager"],
            mount_table=fakes["mount_table"],
            rsync=fakes["rsync"],
            free_space=fakes["free_space"],
            sleep=fakes["sleeps"].append,
            user_lookup=lambda: user,
        )
        return orchestrator, fakes

    return _make
