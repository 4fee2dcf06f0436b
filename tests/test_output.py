import io
from unittest.mock import MagicMock, patch

from usb_rsync.config import AppConfig
from usb_rsync.output import PlainOutput, TimestampedOutput, select_output


def test_plain_output_writes_lines():
    stream = io.StringIO()
    output = PlainOutput(stream)

    output.write_line("Run me as root!")
    output.write_line()

    assert stream.getvalue() == "Run me as root!\n\n"
    assert output.close() == 0


def test_select_plain_when_filter_missing():
    with patch("usb_rsync.output.shutil.which", return_value=None):
        output = select_output(AppConfig())

    assert type(output) is PlainOutput
    assert not output.timestamped


def test_select_plain_when_timestamps_disabled():
    with patch("usb_rsync.output.shutil.which", return_value="/usr/bin/ts") as which:
        output = select_output(AppConfig(timestamps=False))

    assert type(output) is PlainOutput
    which.assert_not_called()


def test_select_timestamped_when_filter_installed():
    with patch("usb_rsync.output.shutil.which", return_value="/usr/bin/ts"), patch(
        "usb_rsync.output.subprocess.Popen"
    ) as popen:
        output = select_output(AppConfig())

    assert isinstance(output, TimestampedOutput)
    assert output.timestamped
    assert popen.call_args[0][0] == ["/usr/bin/ts", "[%Y-%m-%d %H:%M:%S]"]
    assert output.stream is popen.return_value.stdin


def test_select_falls_back_when_filter_cannot_start():
    with patch("usb_rsync.output.shutil.which", return_value="/usr/bin/ts"), patch(
        "usb_rsync.output.subprocess.Popen", side_effect=PermissionError("no")
    ):
        output = select_output(AppConfig())

    assert type(output) is PlainOutput


def test_timestamped_close_waits_for_filter():
    process = MagicMock()
    process.stdin.closed = False
    process.wait.return_value = 0
    with patch("usb_rsync.output.subprocess.Popen", return_value=process):
        output = TimestampedOutput("ts", "%H:%M", target=MagicMock())

    output.write_line("Mounted successfully.")

    assert output.close() == 0
    process.stdin.write.assert_called_with("Mounted successfully.\n")
    process.stdin.close.assert_called_once()
    process.wait.assert_called_once()
