"""Reading the live mount table."""

import logging
import re
from pathlib import Path
from typing import List

# Whitespace and backslashes in /proc/mounts fields are octal escaped
_OCTAL_ESCAPE = re.compile(r"\\([0-7]{3})")


def unescape_mount_field(field: str) -> str:
    return _OCTAL_ESCAPE.sub(lambda m: chr(int(m.group(1), 8)), field)


class MountTable:
    """Answers whether a path is currently a mount point."""

    def __init__(self, mounts_file: str = "/proc/mounts"):
        self.mounts_file = Path(mounts_file)
        self.logger = logging.getLogger(__name__)

    def mount_points(self) -> List[str]:
        """Return every mount point listed in the mount table."""
        mount_points = []
        with open(self.mounts_file, "r", encoding="utf-8", errors="replace") as f:
            for line in f:
                fields = line.split()
                if len(fields) >= 2:
                    mount_points.append(unescape_mount_field(fields[1]))
        return mount_points

    def is_mounted(self, path: str) -> bool:
        """
        Check whether ``path`` appears as a mount point.

        The whole mount point column must match, not a substring of it, so
        ``/mnt/usb`` is not reported mounted when only ``/mnt/usb2`` is.

        Raises:
            OSError: if the mount table cannot be read.
        """
        target = path.rstrip("/") or "/"
        return target in self.mount_points()
