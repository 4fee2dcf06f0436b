"""Free space reporting for the destination filesystem."""

import logging
import shutil
from typing import IO, Optional

from .commands import run_command
from .config import ChecksConfig


def format_size(size_bytes: float) -> str:
    """Format byte size in human-readable (SI) format, like ``df -H``."""
    for unit in ["B", "kB", "MB", "GB", "TB"]:
        if size_bytes < 1000.0:
            if unit == "B":
                return f"{int(size_bytes)} {unit}"
            return f"{size_bytes:.1f} {unit}"
        size_bytes /= 1000.0
    return f"{size_bytes:.1f} PB"


class FreeSpaceReporter:
    """Best-effort report of capacity and usage. Never fails the run."""

    def __init__(self, config: ChecksConfig, stream: Optional[IO[str]] = None):
        self.config = config
        self.stream = stream
        self.logger = logging.getLogger(__name__)

    def report(self, path: str) -> None:
        rc = run_command([*self.config.df_command, path], stream=self.stream)
        if rc != 0:
            self.logger.warning(f"Could not report free space for \"{path}\". ({rc})")

        if self.config.min_free_space is None:
            return

        try:
            usage = shutil.disk_usage(path)
        except OSError as e:
            self.logger.warning(f"Could not read disk usage for \"{path}\": {e}")
            return

        if usage.free < self.config.min_free_space:
            self.logger.warning(
                f"WARNING: only {format_size(usage.free)} free on \"{path}\", "
                f"below the configured minimum of {format_size(self.config.min_free_space)}."
            )
