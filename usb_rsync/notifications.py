"""E-mail and push monitor notifications."""

import logging
import smtplib
import socket
import time
import urllib.parse
import urllib.request
from email.message import EmailMessage
from email.utils import formatdate
from typing import Callable

from .config import AppConfig
from .results import RunOutcome


def format_run_summary(config: AppConfig, outcome: RunOutcome, execution_time: float) -> str:
    """Format the run outcome into a readable summary."""
    summary = []
    summary.append("=== USB Rsync Backup Summary ===\n")
    summary.append(f"Host: {socket.gethostname()}")
    summary.append(f"Source: {config.rsync.source}")
    summary.append(f"Destination: {config.rsync.destination}")
    summary.append(f"Mount unit: {config.mount.unit}")
    summary.append(f"Exit code: {outcome.exit_code}")
    summary.append(f"Total execution time: {execution_time:.2f} seconds")
    summary.append("")

    summary.append("=== Phases ===")
    for result in outcome.results:
        status = "OK" if not result.has_errors else result.status.value.upper()
        summary.append(f"[{status}] {result.phase}")
        for error in result.errors:
            summary.append(f"  Error: {error}")

    if outcome.fatal is not None:
        summary.append("\nRun aborted before syncing; the device may need attention.")

    return "\n".join(summary)


def send_email_notification(config: AppConfig, summary: str, has_errors: bool) -> bool:
    """Send email notification with the run summary."""
    if not config.email:
        return False

    logger = logging.getLogger(__name__)
    smtp = config.smtp

    subject = "USB Rsync Backup Summary"
    if has_errors:
        subject += " - WITH ERRORS"

    msg = EmailMessage()
    msg["From"] = smtp.sender
    msg["To"] = ", ".join(config.email)
    msg["Subject"] = subject
    msg["Date"] = formatdate(localtime=True)
    msg.set_content(summary)

    try:
        with smtplib.SMTP(smtp.host, smtp.port, timeout=smtp.timeout) as server:
            if smtp.starttls:
                server.starttls()
            if smtp.username:
                server.login(smtp.username, smtp.password or "")
            server.send_message(msg)
    except (smtplib.SMTPException, OSError) as e:
        logger.error(f"Failed to send email notification: {e}")
        return False

    logger.info(f"Email notification sent to: {', '.join(config.email)}")
    return True


def send_push_notification(
    config: AppConfig,
    status: str,
    message: str,
    sleep: Callable[[float], None] = time.sleep,
) -> bool:
    """
    Notify a push monitor (Uptime Kuma style) of the run status.

    Args:
        status: Either "up" for success or "down" for failure
        message: Simple message like "OK" or "FAILED"

    Returns:
        True once a request succeeded. One retry is made after
        ``push_retry_delay`` seconds.
    """
    if not config.push_url:
        return False

    logger = logging.getLogger(__name__)
    query_string = urllib.parse.urlencode({"status": status, "msg": message, "ping": ""})
    separator = "&" if "?" in config.push_url else "?"
    full_url = f"{config.push_url}{separator}{query_string}"

    def _make_request(url: str) -> bool:
        try:
            with urllib.request.urlopen(url, timeout=10) as response:
                if response.getcode() < 400:
                    return True
                logger.warning(f"Push notification failed with HTTP {response.getcode()}")
                return False
        except OSError as e:
            logger.warning(f"Push notification failed: {e}")
            return False

    if _make_request(full_url):
        logger.debug(f"Push notification sent: status={status}, msg={message}")
        return True

    logger.info(f"Push notification failed, retrying in {config.push_retry_delay:.0f} seconds...")
    sleep(config.push_retry_delay)

    if _make_request(full_url):
        logger.info(f"Push notification sent on retry: status={status}, msg={message}")
        return True

    logger.error("Push notification failed on retry, giving up")
    return False
