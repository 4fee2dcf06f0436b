"""Running external commands and turning every outcome into an exit code."""

import logging
import shlex
import subprocess
from typing import IO, List, Optional

COMMAND_NOT_FOUND = 127
COMMAND_TIMED_OUT = 124
SIGNAL_EXIT_BASE = 128

logger = logging.getLogger(__name__)


def format_command(cmd: List[str]) -> str:
    return " ".join(shlex.quote(part) for part in cmd)


def run_command(
    cmd: List[str],
    stream: Optional[IO[str]] = None,
    timeout: Optional[float] = None,
) -> int:
    """
    Run a command with its output going to ``stream``.

    Returns:
        The process exit code, as a shell would report it. A missing
        executable maps to 127 and a timeout to 124. Death by signal N
        maps to 128 + N.
    """
    if stream is not None:
        stream.flush()
    logger.debug(f"Running command: {format_command(cmd)}")
    try:
        result = subprocess.run(
            cmd,
            stdout=stream,
            stderr=subprocess.STDOUT if stream is not None else None,
            timeout=timeout,
            check=False,
        )
        if result.returncode < 0:
            # killed by a signal: report it the way a shell does
            return SIGNAL_EXIT_BASE - result.returncode
        return result.returncode
    except FileNotFoundError:
        logger.error(f"Command not found: {cmd[0]}")
        return COMMAND_NOT_FOUND
    except subprocess.TimeoutExpired:
        logger.error(f"Command timed out after {timeout}s: {format_command(cmd)}")
        return COMMAND_TIMED_OUT
    except (OSError, subprocess.SubprocessError) as e:
        logger.error(f"Command failed to start: {format_command(cmd)}: {e}")
        return COMMAND_NOT_FOUND
