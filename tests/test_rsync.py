from usb_rsync.config import RsyncConfig
from usb_rsync.rsync import RsyncRunner, build_rsync_command


def test_command_syncs_into_destination_directory():
    cmd = build_rsync_command(RsyncConfig(source="/zpool/", destination="/mnt/usb///"))

    assert cmd[0] == "rsync"
    assert cmd[-2:] == ["/zpool", "/mnt/usb/"]


def test_command_carries_options_then_reporting_options():
    cmd = build_rsync_command(RsyncConfig())

    assert cmd == [
        "rsync",
        "--recursive",
        "--group",
        "--owner",
        "--times",
        "--perms",
        "--links",
        "--delete",
        "--stats",
        "--human-readable",
        "/zpool",
        "/mnt/pve/usb_external/",
    ]


def test_dry_run_adds_flag():
    cmd = build_rsync_command(RsyncConfig(dry_run=True))

    assert "--dry-run" in cmd
    assert cmd.index("--dry-run") < cmd.index("/zpool")


def test_describe_quotes_paths():
    runner = RsyncRunner(RsyncConfig(source="/srv/my data", destination="/mnt/usb"))

    assert runner.describe().endswith("'/srv/my data' /mnt/usb/")


def test_run_passes_command_and_stream(monkeypatch):
    calls = []

    def fake_run_command(cmd, stream=None, timeout=None):
        calls.append((cmd, stream))
        return 23

    monkeypatch.setattr("usb_rsync.rsync.run_command", fake_run_command)
    stream = object()
    runner = RsyncRunner(RsyncConfig(), stream=stream)

    assert runner.run() == 23
    assert calls == [(runner.command, stream)]
