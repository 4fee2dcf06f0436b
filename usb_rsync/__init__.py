"""
usb-rsync: scheduled rsync backups to an external drive that is only
mounted while the backup runs.

The drive stays plugged in but unmounted (and quiet) between runs. A cron
job mounts it through its systemd mount unit, syncs, reports free space and
unmounts it again, with the output mailed by cron.
"""

__version__ = "0.1.0"
