"""Cron schedule helpers."""

from datetime import datetime
from typing import Optional

from croniter import croniter

from .config import AppConfig

DEFAULT_SCHEDULE = "0 5 * * 0"  # 05:00 on Sundays


def next_run_time(schedule: str, current_time: Optional[datetime] = None) -> datetime:
    """
    Get the next time the schedule fires.

    Args:
        schedule: Cron schedule string
        current_time: Current time (defaults to now)

    Returns:
        Next scheduled run time
    """
    if current_time is None:
        current_time = datetime.now()

    try:
        cron = croniter(schedule.strip(), current_time)
        return cron.get_next(datetime)
    except Exception as e:
        raise ValueError(f"Error calculating next run time for '{schedule}': {e}")


def render_crontab(config: AppConfig, command: str) -> str:
    """Crontab lines installing the backup; cron mails its output to MAILTO."""
    schedule = config.schedule or DEFAULT_SCHEDULE
    if not command.strip():
        raise ValueError("command must not be empty")
    return "\n".join(
        [
            f'MAILTO="{config.mailto}"',
            f"{schedule} {command.strip()}",
        ]
    )
