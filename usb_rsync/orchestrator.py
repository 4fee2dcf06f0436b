"""Mount, sync, report and unmount: the backup sequence."""

import logging
import os
import platform
import pwd
import socket
import sys
import time
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

from .config import AppConfig
from .diskspace import FreeSpaceReporter
from .mounts import MountTable
from .output import PlainOutput
from .results import PhaseResult, RunOutcome
from .rsync import RsyncRunner
from .schedule import next_run_time
from .systemd import ServiceManager

MOUNT_TABLE_MISSING = 1


def current_user() -> str:
    """Name of the effective user, or its numeric uid when it has no passwd entry."""
    uid = os.geteuid()
    try:
        return pwd.getpwuid(uid).pw_name
    except KeyError:
        return str(uid)


class BackupOrchestrator:
    """
    Runs the backup as a strict sequence of phases.

    Failures before the sync (mounting) abort the run: syncing onto an
    unmounted mount point would fill the local disk instead of the device.
    Failures after that are recorded and the run carries on, so the device
    is always unmounted again.
    """

    def __init__(
        self,
        config: AppConfig,
        output: Optional[PlainOutput] = None,
        service_manager: Optional[ServiceManager] = None,
        mount_table: Optional[MountTable] = None,
        rsync: Optional[RsyncRunner] = None,
        free_space: Optional[FreeSpaceReporter] = None,
        sleep: Callable[[float], None] = time.sleep,
        user_lookup: Callable[[], str] = current_user,
    ):
        self.config = config
        self.output = output or PlainOutput()
        stream = self.output.stream
        self.service_manager = service_manager or ServiceManager(config.mount, stream)
        self.mount_table = mount_table or MountTable(config.mount.mounts_file)
        self.rsync = rsync or RsyncRunner(config.rsync, stream)
        self.free_space = free_space or FreeSpaceReporter(config.checks, stream)
        self.sleep = sleep
        self.user_lookup = user_lookup
        self.logger = logging.getLogger(__name__)

    @property
    def unit(self) -> str:
        return self.config.mount.unit

    @property
    def destination(self) -> str:
        return self.config.rsync.destination

    def check_privileges(self) -> bool:
        """Only the configured user (root) may run a backup."""
        user = self.user_lookup()
        if user != self.config.required_user:
            self.output.write_line(f"Run me as {self.config.required_user}!")
            return False
        return True

    def log_context(self) -> None:
        """Log the details someone reading the cron mail will want."""
        script = Path(sys.argv[0])
        now = datetime.now()
        rsync = self.config.rsync

        self.logger.info(f"script: {script.name}")
        self.logger.info(f"scriptdir: {script.resolve().parent}")
        self.logger.info(f"hostname: {socket.gethostname()}")
        self.logger.info(f"uname: {' '.join(platform.uname())}")
        self.logger.info(f"whoami: {self.user_lookup()}")
        self.logger.info(f"now: {now.strftime('%Y-%m-%d %H:%M:%S')}")
        self.logger.info(f"rsync source: {rsync.source}")
        self.logger.info(f"rsync destination: {rsync.destination}")
        self.logger.info(f"rsync command: {self.rsync.describe()}")
        if rsync.dry_run:
            self.logger.info("rsync dry run: no files will be changed")
        if self.config.schedule:
            next_run = next_run_time(self.config.schedule, now)
            self.logger.info(f"next scheduled run: {next_run.strftime('%Y-%m-%d %H:%M:%S')}")
        self.logger.info("")

    def _is_mounted(self) -> Optional[bool]:
        try:
            return self.mount_table.is_mounted(self.destination)
        except OSError as e:
            self.logger.error(f"ERROR: Could not read mount table: {e}")
            return None

    def mount(self) -> PhaseResult:
        """Mount the destination and confirm it twice. Any failure is fatal."""
        self.logger.info(
            f"Mounting \"{self.destination}\" via \"systemctl start {self.unit}\" .."
        )

        rc = self.service_manager.start(self.unit)
        if rc != 0:
            self.logger.error(f"ERROR: Mount failed. ({rc})")
            self.logger.error("ABORTING. Cannot continue.")
            return PhaseResult.fatal("mount", rc, f"Mount failed. ({rc})")
        self.logger.info("Mounted successfully.")
        self.logger.info("")

        rc = self.service_manager.status(self.unit, self.config.mount.mount_status_lines)
        if rc != 0:
            error = f"\"systemctl status {self.unit}\" failed. How is that possible? ({rc})"
            self.logger.error(f"ERROR: {error}")
            self.logger.error("ABORTING. Cannot continue.")
            return PhaseResult.fatal("mount", rc, error)

        if not self._is_mounted():
            error = (
                f"\"{self.destination}\" was not found in \"{self.config.mount.mounts_file}\", "
                f"but should be mounted. ({MOUNT_TABLE_MISSING})"
            )
            self.logger.error(f"ERROR: {error}")
            self.logger.error("ABORTING. Cannot continue.")
            return PhaseResult.fatal("mount", MOUNT_TABLE_MISSING, error)

        self.logger.info("")
        return PhaseResult.success("mount")

    def sync(self) -> PhaseResult:
        """Run rsync. A failure is recorded; the drive still gets time to settle."""
        self.logger.info("")
        self.logger.info(
            f"Rsyncing \"{self.config.rsync.source}\" to \"{self.destination}/\" .."
        )

        try:
            rc = self.rsync.run()
        finally:
            # let the drive finish its writes before it is unmounted
            self.sleep(self.config.rsync.settle_seconds)

        if rc == 0:
            self.logger.info(f"Rsync completed successfully. ({rc})")
            result = PhaseResult.success("sync")
        else:
            self.logger.error(f"ERROR: Rsync failed. ({rc})")
            result = PhaseResult.recorded("sync", [f"Rsync failed. ({rc})"])

        self.logger.info("")
        return result

    def check_free_space(self) -> PhaseResult:
        """Report free space. Informational only."""
        self.logger.info("")
        self.logger.info(f"Checking free space on \"{self.destination}\" ..")
        self.logger.info("")
        try:
            self.free_space.report(self.destination)
        except Exception as e:
            self.logger.warning(f"Could not check free space on \"{self.destination}\": {e}")
        self.logger.info("")
        return PhaseResult.success("free_space")

    def unmount(self) -> PhaseResult:
        """Unmount the destination. Every failure is recorded, none aborts."""
        errors = []

        self.logger.info("")
        self.logger.info(
            f"Unmounting \"{self.destination}\" via \"systemctl stop {self.unit}\" .."
        )

        rc = self.service_manager.stop(self.unit)
        if rc == 0:
            self.logger.info("Unmounted successfully.")
        else:
            self.logger.error(f"ERROR: Unmount failed. ({rc})")
            errors.append(f"Unmount failed. ({rc})")
        self.logger.info("")

        expected = self.config.mount.inactive_status
        rc = self.service_manager.status(self.unit, self.config.mount.unmount_status_lines)
        if rc != expected:
            error = (
                f"\"systemctl status {self.unit}\" exited with unexpected status "
                f"(expected {expected}). ({rc})"
            )
            self.logger.error(f"ERROR: {error}")
            errors.append(error)

        mounted = self._is_mounted()
        if mounted is None:
            errors.append(f"Could not read \"{self.config.mount.mounts_file}\".")
        elif mounted:
            error = (
                f"\"{self.destination}\" found in \"{self.config.mount.mounts_file}\", "
                "but should be unmounted."
            )
            self.logger.error(f"ERROR: {error}")
            errors.append(error)

        if errors:
            return PhaseResult.recorded("unmount", errors)
        return PhaseResult.success("unmount")

    def run(self) -> RunOutcome:
        """Run every phase in order and return the outcome."""
        if not self.check_privileges():
            return RunOutcome(privileged=False)

        outcome = RunOutcome()
        self.log_context()

        if outcome.add(self.mount()).is_fatal:
            return outcome

        try:
            outcome.add(self.sync())
            outcome.add(self.check_free_space())
        finally:
            outcome.add(self.unmount())

        self.logger.info("")
        if outcome.has_errors:
            self.logger.info(f"Done, errors were encountered. ({outcome.exit_code})")
        else:
            self.logger.info(f"Done. ({outcome.exit_code})")
        return outcome
