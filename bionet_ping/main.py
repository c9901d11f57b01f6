"""Command-line entry point for bionet-ping."""

import argparse
import asyncio
import logging
import sys
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import List, Optional

from bionet_ping.config import settings
from bionet_ping.errors import SweepError
from bionet_ping.scanner.models import SweepOptions
from bionet_ping.version import version_banner

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1


def configure_logging(level: Optional[str] = None) -> None:
    """Configure logging based on settings.

    Logs always go to stdout; a rotating log file is added when LOG_FILE is
    set.
    """
    log_level = getattr(logging, (level or settings.log_level).upper())

    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if settings.log_file:
        settings.log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(RotatingFileHandler(
            settings.log_file,
            maxBytes=5 * 1024 * 1024,  # 5MB
            backupCount=3,
            encoding="utf-8",
        ))

    if settings.log_format == "json":
        from pythonjsonlogger import jsonlogger

        class CustomJsonFormatter(jsonlogger.JsonFormatter):
            """Custom JSON formatter with additional fields."""

            def add_fields(self, log_record, record, message_dict):
                super().add_fields(log_record, record, message_dict)
                log_record["timestamp"] = datetime.utcnow().isoformat() + "Z"
                log_record["level"] = record.levelname
                log_record["logger"] = record.name
                log_record["service"] = "bionet-ping"

        formatter = CustomJsonFormatter(
            "%(timestamp)s %(level)s %(name)s %(message)s"
        )
    else:
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )

    for handler in handlers:
        handler.setFormatter(formatter)

    # Configure root logger
    logging.root.handlers = handlers
    logging.root.setLevel(log_level)

    # Reduce noise from third-party loggers
    logging.getLogger("apscheduler").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)


def build_parser() -> argparse.ArgumentParser:
    argp = argparse.ArgumentParser(
        prog="bionet-ping",
        description=(
            "Ping the Bionet computers tracked by the inventory (or a supplied list) "
            "to see which respond, then optionally record the active hosts in the inventory."
        ),
        epilog=(
            "By default the inventory's active hosts are pinged with the "
            f"{settings.host_suffix} suffix appended. Names given with --manual "
            "or --file are used as given."
        ),
    )
    argp.add_argument("-m", "--manual",
                      metavar="HOSTS",
                      help="Comma-separated list of hosts to contact (suffix is not auto-appended)")
    argp.add_argument("-f", "--file",
                      type=Path,
                      metavar="PATH",
                      help="Text file listing one host per line (suffix is not auto-appended)")
    argp.add_argument("--simulate",
                      action="store_true",
                      help="Simulate the ping; with --db, preview the inventory update")
    argp.add_argument("--db",
                      action="store_true",
                      help="Store the results in the inventory (preview if --simulate is used)")
    argp.add_argument("--db-add",
                      action="store_true",
                      help="Add new (unknown) hosts to the inventory; implies --db")
    argp.add_argument("--no-db",
                      action="store_true",
                      help="Do not use the inventory at all; requires --manual or --file")
    argp.add_argument("--hide-inactive",
                      action="store_true",
                      help="Do not list the names of skipped inactive hosts")
    argp.add_argument("--every",
                      type=int,
                      metavar="MINUTES",
                      default=settings.sweep_interval_minutes,
                      help="Repeat the sweep every MINUTES minutes (default: run once)")
    argp.add_argument("-v", "--verbose",
                      action="store_true",
                      help="Enable debug logging")
    argp.add_argument("--version",
                      action="version",
                      version=version_banner())
    return argp


def options_from_args(argp: argparse.ArgumentParser, args: argparse.Namespace) -> SweepOptions:
    """Validate parsed arguments and turn them into SweepOptions."""
    if args.every is not None and args.every < 0:
        argp.error("--every must not be negative")

    options = SweepOptions(
        host_list=args.manual,
        host_file=args.file,
        simulate=args.simulate,
        update_inventory=args.db or args.db_add,
        add_unknown_hosts=args.db_add,
        use_inventory=not args.no_db,
        hide_skipped=args.hide_inactive,
    )
    if not options.use_inventory and not options.has_explicit_source:
        argp.error("--no-db requires --manual or --file")
    return options


def main(argv: Optional[List[str]] = None) -> int:
    """Run the application."""
    from bionet_ping import metrics
    from bionet_ping.scanner.sweep import run_sweep
    from bionet_ping.scheduler.job_scheduler import run_forever

    argp = build_parser()
    args = argp.parse_args(argv)
    options = options_from_args(argp, args)

    configure_logging("DEBUG" if args.verbose else None)
    logger.info("Starting %s", version_banner())
    if settings.metrics_configured:
        logger.info("Writing metrics to %s", settings.metrics_textfile)

    if args.every:
        try:
            asyncio.run(run_forever(options, args.every))
        except KeyboardInterrupt:
            logger.info("Interrupted, stopping")
        return EXIT_OK

    try:
        asyncio.run(run_sweep(options))
    except SweepError as e:
        logger.error("%s", e)
        return EXIT_FAILURE
    finally:
        if settings.metrics_configured:
            metrics.write_metrics(settings.metrics_textfile)

    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
