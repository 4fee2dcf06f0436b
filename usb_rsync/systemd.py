"""systemctl wrapper for the mount unit."""

import logging
from typing import IO, Optional

from .commands import run_command
from .config import MountConfig


class ServiceManager:
    """Starts, stops and queries a systemd unit, reporting exit codes."""

    def __init__(self, config: MountConfig, stream: Optional[IO[str]] = None):
        self.config = config
        self.stream = stream
        self.logger = logging.getLogger(__name__)

    def start(self, unit: str) -> int:
        return self._systemctl("start", unit)

    def stop(self, unit: str) -> int:
        return self._systemctl("stop", unit)

    def status(self, unit: str, lines: int = 2) -> int:
        """
        Show the unit status.

        systemctl reports 0 for an active unit and 3 for an inactive one;
        anything else means the query itself went wrong.
        """
        return self._systemctl("status", f"--lines={lines}", "--no-pager", unit)

    def _systemctl(self, *args: str) -> int:
        return run_command(
            [self.config.systemctl, *args],
            stream=self.stream,
            timeout=self.config.timeout,
        )
