import pytest

from usb_rsync.config import MountConfig
from usb_rsync.systemd import ServiceManager


@pytest.fixture
def recorded(monkeypatch):
    calls = []

    def fake_run_command(cmd, stream=None, timeout=None):
        calls.append({"cmd": cmd, "stream": stream, "timeout": timeout})
        return 3

    monkeypatch.setattr("usb_rsync.systemd.run_command", fake_run_command)
    return calls


def test_start_and_stop(recorded):
    manager = ServiceManager(MountConfig(), stream="sink")

    manager.start("mnt-usb.mount")
    manager.stop("mnt-usb.mount")

    assert [c["cmd"] for c in recorded] == [
        ["systemctl", "start", "mnt-usb.mount"],
        ["systemctl", "stop", "mnt-usb.mount"],
    ]
    assert all(c["stream"] == "sink" for c in recorded)
    assert all(c["timeout"] == 300.0 for c in recorded)


def test_status_returns_exit_code_and_limits_lines(recorded):
    manager = ServiceManager(MountConfig(systemctl="/bin/systemctl"))

    assert manager.status("mnt-usb.mount", lines=3) == 3
    assert recorded[0]["cmd"] == [
        "/bin/systemctl",
        "status",
        "--lines=3",
        "--no-pager",
        "mnt-usb.mount",
    ]
