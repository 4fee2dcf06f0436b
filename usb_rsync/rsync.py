"""Building and running the rsync command."""

import logging
from typing import IO, List, Optional

from .commands import format_command, run_command
from .config import RsyncConfig


def build_rsync_command(config: RsyncConfig) -> List[str]:
    """
    Build the rsync command line.

    Trailing separators are stripped from both paths, then exactly one is
    appended to the destination so rsync copies into the directory.
    """
    source = config.source.rstrip("/") or "/"
    destination = config.destination.rstrip("/") + "/"

    cmd = [config.executable, *config.options]
    if config.dry_run:
        cmd.append("--dry-run")
    cmd.extend(config.log_options)
    cmd.extend([source, destination])
    return cmd


class RsyncRunner:
    """Runs rsync for the configured source and destination."""

    def __init__(self, config: RsyncConfig, stream: Optional[IO[str]] = None):
        self.config = config
        self.stream = stream
        self.logger = logging.getLogger(__name__)

    @property
    def command(self) -> List[str]:
        return build_rsync_command(self.config)

    def describe(self) -> str:
        return format_command(self.command)

    def run(self) -> int:
        return run_command(self.command, stream=self.stream)
