from datetime import datetime

import pytest

from usb_rsync.config import AppConfig
from usb_rsync.schedule import next_run_time, render_crontab


def test_next_run_time_sunday_morning():
    # 2025-01-07 was a Tuesday
    assert next_run_time("0 5 * * 0", datetime(2025, 1, 7, 12, 0)) == datetime(
        2025, 1, 12, 5, 0
    )


def test_next_run_time_rejects_garbage():
    with pytest.raises(ValueError):
        next_run_time("not a schedule", datetime(2025, 1, 7))


def test_render_crontab_defaults_to_sunday():
    crontab = render_crontab(AppConfig(), "/usr/local/bin/usb-rsync")

    assert crontab == 'MAILTO="root"\n0 5 * * 0 /usr/local/bin/usb-rsync'


def test_render_crontab_uses_configured_schedule():
    config = AppConfig(schedule="30  2 * * *", mailto="ops@example.com")

    assert render_crontab(config, "usb-rsync --config /etc/x.yaml").splitlines() == [
        'MAILTO="ops@example.com"',
        "30 2 * * * usb-rsync --config /etc/x.yaml",
    ]


def test_render_crontab_needs_a_command():
    with pytest.raises(ValueError):
        render_crontab(AppConfig(), "  ")
