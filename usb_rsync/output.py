"""Output sinks: plain stdout, or stdout piped through a line-timestamp filter."""

import logging
import shutil
import subprocess
import sys
from typing import IO, Optional

from .config import AppConfig


class PlainOutput:
    """Writes lines to standard output as they are."""

    timestamped = False

    def __init__(self, stream: Optional[IO[str]] = None):
        self.stream = stream if stream is not None else sys.stdout

    def write_line(self, line: str = "") -> None:
        self.stream.write(line + "\n")
        self.stream.flush()

    def flush(self) -> None:
        self.stream.flush()

    def close(self) -> int:
        self.flush()
        return 0

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()


class TimestampedOutput(PlainOutput):
    """
    Pipes everything through ``ts`` (moreutils) so each line gets a timestamp.

    Child processes are handed ``stream`` as their stdout, so their output is
    timestamped by the same filter and stays in order with our own lines.
    """

    timestamped = True

    def __init__(self, command: str, time_format: str, target: Optional[IO[str]] = None):
        target = target if target is not None else sys.stdout
        target.flush()
        self._process = subprocess.Popen(
            [command, time_format],
            stdin=subprocess.PIPE,
            stdout=target,
            text=True,
            bufsize=1,
        )
        super().__init__(self._process.stdin)

    def close(self) -> int:
        if self.stream.closed:
            return self._process.returncode or 0
        try:
            self.stream.flush()
            self.stream.close()
        except BrokenPipeError:
            logging.getLogger(__name__).debug("Timestamp filter exited before output was drained")
        return self._process.wait()


def select_output(config: AppConfig) -> PlainOutput:
    """Pick the timestamped sink when the filter is installed, plain otherwise."""
    if config.timestamps:
        command = shutil.which(config.timestamp_command)
        if command:
            try:
                return TimestampedOutput(command, config.timestamp_format)
            except OSError as e:
                logging.getLogger(__name__).debug(
                    f"Could not start '{config.timestamp_command}': {e}"
                )
    return PlainOutput()
