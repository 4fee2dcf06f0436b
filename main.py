#!/usr/bin/env python3
"""
usb-rsync: rsync backups to an external drive mounted only for the backup.

Main entry point for the backup application.
"""

import argparse
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from usb_rsync.config import AppConfig, load_config
from usb_rsync.notifications import (
    format_run_summary,
    send_email_notification,
    send_push_notification,
)
from usb_rsync.orchestrator import BackupOrchestrator
from usb_rsync.output import PlainOutput, select_output
from usb_rsync.schedule import render_crontab

LOGGER_NAME = "usb_rsync"


def setup_logging(
    config: AppConfig, output: PlainOutput, verbose: bool = False
) -> logging.Logger:
    """Set up logging configuration."""
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG if verbose else config.log_level_number)

    # Cron mails whatever reaches stdout; timestamps come from the output sink
    console_handler = logging.StreamHandler(output.stream)
    console_handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(console_handler)

    if config.log_file:
        log_file_path = Path(config.log_file)
        log_file_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file_path, encoding="utf-8")
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)-8s %(message)s")
        )
        logger.addHandler(file_handler)

    return logger


def teardown_logging(logger: logging.Logger) -> None:
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Mount an external drive, rsync to it, and unmount it again",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  usb-rsync                                # Run the backup (cron mode)
  usb-rsync --config /root/usb-rsync.yaml  # Use another configuration file
  usb-rsync --dry-run                      # Mount and simulate the rsync
  usb-rsync --print-crontab                # Show the crontab entry to install
        """,
    )

    parser.add_argument(
        "--config",
        "-c",
        default=None,
        help="Path to the YAML configuration file",
    )
    parser.add_argument(
        "--dry-run",
        "-n",
        action="store_true",
        help="Pass --dry-run to rsync (the drive is still mounted and unmounted)",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Log debug messages",
    )
    parser.add_argument(
        "--print-crontab",
        action="store_true",
        help="Print the crontab entry for this configuration and exit",
    )

    return parser.parse_args(argv)


def crontab_command(args: argparse.Namespace) -> str:
    command = str(Path(sys.argv[0]).resolve())
    if args.config:
        command += f" --config {Path(args.config).resolve()}"
    return command


def apply_arguments(config: AppConfig, args: argparse.Namespace) -> AppConfig:
    """Return the configuration with command line overrides applied."""
    if args.dry_run:
        rsync = config.rsync.model_copy(update={"dry_run": True})
        config = config.model_copy(update={"rsync": rsync})
    return config


def main(argv: Optional[List[str]] = None) -> int:
    """Main application entry point."""
    start_time = datetime.now()
    output = None
    logger = None

    try:
        args = parse_arguments(argv)
        config = apply_arguments(load_config(args.config), args)

        if args.print_crontab:
            print(render_crontab(config, crontab_command(args)))
            return 0

        output = select_output(config)
        logger = setup_logging(config, output, verbose=args.verbose)

        orchestrator = BackupOrchestrator(config, output=output)
        outcome = orchestrator.run()

        if not outcome.privileged:
            return 0

        execution_time = (datetime.now() - start_time).total_seconds()
        summary = format_run_summary(config, outcome, execution_time)
        logger.debug("\n" + summary)

        has_errors = outcome.exit_code != 0
        send_email_notification(config, summary, has_errors)
        if has_errors:
            send_push_notification(config, "down", "FAILED")
        else:
            send_push_notification(config, "up", "OK")

        return outcome.exit_code

    except FileNotFoundError as e:
        print(f"ERROR: Configuration file error: {e}", file=sys.stderr)
        return 1

    except ValueError as e:
        error_msg = f"Configuration validation error: {e}"
        print(f"ERROR: {error_msg}", file=sys.stderr)
        if logger:
            logger.critical(error_msg)
        return 1

    except KeyboardInterrupt:
        error_msg = "Backup process interrupted by user"
        print(f"\nINTERRUPTED: {error_msg}", file=sys.stderr)
        if logger:
            logger.warning(error_msg)
        return 130

    except Exception as e:
        error_msg = f"Unexpected error: {e}"
        print(f"ERROR: {error_msg}", file=sys.stderr)
        if logger:
            logger.critical(error_msg, exc_info=True)
        return 1

    finally:
        if logger:
            total_time = (datetime.now() - start_time).total_seconds()
            logger.debug(f"Backup process completed in {total_time:.2f} seconds")
            teardown_logging(logger)
        if output:
            output.close()


if __name__ == "__main__":
    exit_code = main()
    sys.exit(exit_code)
