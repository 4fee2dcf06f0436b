"""Configuration management for the usb-rsync backup system."""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import List, Optional

import yaml
from croniter import croniter
from pydantic import BaseModel, ByteSize, ConfigDict, Field, field_validator, model_validator

DEFAULT_CONFIG_PATH = "/etc/usb-rsync/config.yaml"
CONFIG_ENV_VAR = "USB_RSYNC_CONFIG"


def _strip_trailing_separator(path: str) -> str:
    """Remove trailing slashes, keeping the root directory intact."""
    stripped = path.rstrip("/")
    return stripped or "/"


class RsyncConfig(BaseModel):
    """Synchronization settings."""

    model_config = ConfigDict(frozen=True)

    source: str = Field(default="/zpool", description="Directory tree to back up")
    destination: str = Field(
        default="/mnt/pve/usb_external",
        description="Mount point of the external device",
    )
    options: List[str] = Field(
        default_factory=lambda: [
            "--recursive",
            "--group",
            "--owner",
            "--times",
            "--perms",
            "--links",
            "--delete",
        ],
        description="rsync options controlling what is copied",
    )
    log_options: List[str] = Field(
        default_factory=lambda: ["--stats", "--human-readable"],
        description="rsync options controlling what is reported",
    )
    dry_run: bool = Field(default=False, description="Simulate only (rsync --dry-run)")
    executable: str = Field(default="rsync", description="rsync binary to invoke")
    settle_seconds: float = Field(
        default=5.0,
        ge=0,
        description="Pause after rsync so the drive can finish its writes",
    )

    @field_validator("source", "destination")
    @classmethod
    def validate_absolute(cls, v: str) -> str:
        """Paths must be absolute; trailing separators are dropped."""
        if not v.startswith("/"):
            raise ValueError("source and destination must be absolute paths")
        return _strip_trailing_separator(v)

    @model_validator(mode="after")
    def validate_distinct_paths(self) -> RsyncConfig:
        """Refuse to sync a directory onto itself."""
        if self.source == self.destination:
            raise ValueError("source and destination must differ")
        return self


class MountConfig(BaseModel):
    """systemd mount unit settings."""

    model_config = ConfigDict(frozen=True)

    unit: str = Field(
        default="mnt-pve-usb_external.mount",
        description="systemd mount unit backing the destination",
    )
    inactive_status: int = Field(
        default=3,
        description="'systemctl status' exit code meaning the unit is inactive",
    )
    mount_status_lines: int = Field(default=2, ge=0)
    unmount_status_lines: int = Field(default=3, ge=0)
    mounts_file: str = Field(
        default="/proc/mounts", description="Live mount table to verify against"
    )
    systemctl: str = Field(default="systemctl", description="systemctl binary")
    timeout: float = Field(
        default=300.0, gt=0, description="Seconds before a systemctl call is abandoned"
    )

    @field_validator("unit")
    @classmethod
    def validate_unit(cls, v: str) -> str:
        """Validate the unit is a mount unit."""
        v = v.strip()
        if not v.endswith(".mount"):
            raise ValueError("unit must be a systemd mount unit (ending in '.mount')")
        return v


class ChecksConfig(BaseModel):
    """Free space reporting configuration."""

    model_config = ConfigDict(frozen=True)

    df_command: List[str] = Field(default_factory=lambda: ["df", "-H"])
    min_free_space: Optional[ByteSize] = Field(
        default=None,
        description="Warn (without failing) when less space than this remains",
    )


class SmtpConfig(BaseModel):
    """Outgoing mail server used for summary notifications."""

    model_config = ConfigDict(frozen=True)

    host: str = "localhost"
    port: int = Field(default=25, gt=0, lt=65536)
    username: Optional[str] = None
    password: Optional[str] = None
    starttls: bool = False
    sender: str = "root@localhost"
    timeout: float = Field(default=30.0, gt=0)


class AppConfig(BaseModel):
    """Main application configuration."""

    model_config = ConfigDict(frozen=True)

    rsync: RsyncConfig = Field(default_factory=RsyncConfig)
    mount: MountConfig = Field(default_factory=MountConfig)
    checks: ChecksConfig = Field(default_factory=ChecksConfig)
    required_user: str = Field(
        default="root", description="Only this user may run the backup"
    )
    timestamps: bool = Field(
        default=True, description="Prefix output lines via 'ts' when it is installed"
    )
    timestamp_command: str = Field(default="ts")
    timestamp_format: str = Field(default="[%Y-%m-%d %H:%M:%S]")
    log_level: str = Field(
        default="INFO", description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )
    log_file: Optional[str] = Field(
        default=None, description="Optional file receiving a copy of the log"
    )
    schedule: Optional[str] = Field(
        default=None,
        description="Cron schedule: 'minute hour day-of-month month day-of-week'",
    )
    mailto: str = Field(default="root", description="MAILTO value for the crontab entry")
    email: List[str] = Field(
        default_factory=list, description="List of emails to send summaries to"
    )
    smtp: SmtpConfig = Field(default_factory=SmtpConfig)
    push_url: Optional[str] = Field(
        default=None, description="Push monitor URL notified with up/down status"
    )
    push_retry_delay: float = Field(default=120.0, ge=0)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"log_level must be one of: {', '.join(sorted(valid_levels))}")
        return v_upper

    @field_validator("email")
    @classmethod
    def validate_email_list(cls, v: List[str]) -> List[str]:
        """Validate email addresses."""
        email_pattern = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")
        for email in v:
            if not email_pattern.match(email):
                raise ValueError(f"Invalid email format: {email}")
        return v

    @field_validator("schedule")
    @classmethod
    def validate_schedule(cls, v: Optional[str]) -> Optional[str]:
        """Validate the cron schedule format."""
        if v is None:
            return v
        v = " ".join(v.split())
        if len(v.split()) != 5:
            raise ValueError(
                "Schedule must have 5 fields: 'minute hour day-of-month month day-of-week'"
            )
        if not croniter.is_valid(v):
            raise ValueError(f"Invalid cron schedule format: {v}")
        return v

    @property
    def log_level_number(self) -> int:
        return logging.getLevelName(self.log_level)


def default_config_path() -> str:
    return os.environ.get(CONFIG_ENV_VAR, DEFAULT_CONFIG_PATH)


def load_config(config_path: Optional[str] = None) -> AppConfig:
    """
    Load and validate configuration from a YAML file.

    Without an explicit path the default location is tried and built-in
    defaults are used when nothing is there. An explicit path must exist.
    """
    if config_path is None:
        config_file = Path(default_config_path())
        if not config_file.exists():
            return AppConfig()
    else:
        config_file = Path(config_path)
        if not config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

    try:
        with open(config_file, "r", encoding="utf-8") as f:
            config_data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML format in config file: {e}")

    if config_data is None:
        return AppConfig()
    if not isinstance(config_data, dict):
        raise ValueError("Configuration file must contain a mapping")

    try:
        return AppConfig(**config_data)
    except Exception as e:
        raise ValueError(f"Configuration validation error: {e}")
