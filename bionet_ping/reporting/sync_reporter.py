"""Report sweep results and push them back to the inventory."""

import logging
import sys
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence, TextIO

from bionet_ping import metrics
from bionet_ping.scanner.models import PreviewRow, SweepOptions, UpdateResult
from bionet_ping.storage.inventory import InventoryStore

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
TIMESTAMP_WIDTH = 19
PREVIEW_COLUMNS = ("Host", "Last Online", "New Last Online", "Warning")


def report_skipped(skipped: Sequence[str], hide_skipped: bool = False) -> None:
    """Log the hosts that were not probed because they are inactive."""
    if not skipped:
        return

    if len(skipped) == 1:
        logger.warning("Skipped 1 inactive host: %s", skipped[0])
        return

    logger.warning("Skipped %d inactive hosts", len(skipped))
    if hide_skipped:
        return
    for host in skipped:
        logger.debug("  skipped %s", host)


def _format_timestamp(value: Optional[datetime]) -> str:
    return value.strftime(TIMESTAMP_FORMAT) if value else ""


def format_preview_table(rows: Iterable[PreviewRow]) -> List[str]:
    """Render preview rows as fixed-width text lines, header first."""
    rows = list(rows)
    host_width = max([len(PREVIEW_COLUMNS[0])] + [len(row.host) for row in rows])
    time_width = max(TIMESTAMP_WIDTH, len(PREVIEW_COLUMNS[2]))

    def _line(host: str, last: str, new: str, warning: str) -> str:
        return f"{host:<{host_width}}  {last:<{time_width}}  {new:<{time_width}}  {warning}".rstrip()

    lines = [
        _line(*PREVIEW_COLUMNS),
        _line("-" * host_width, "-" * time_width, "-" * time_width, "-" * len(PREVIEW_COLUMNS[3])),
    ]
    for row in rows:
        lines.append(_line(
            row.host,
            _format_timestamp(row.last_online),
            _format_timestamp(row.new_last_online),
            row.warning,
        ))
    return lines


def _log_update_result(result: UpdateResult, mode: str, host_count: int) -> None:
    status = "success" if result.succeeded else "failed"
    metrics.inventory_updates_total.labels(mode=mode, status=status).inc()

    if not result.succeeded:
        logger.error(
            "Inventory update failed (result code %d, return code %d): %s",
            result.result_code,
            result.return_code,
            result.message,
        )
    elif mode == "commit":
        logger.info("Update complete for %d hosts: %s", host_count, result.message)


async def report(
    probed_hosts: Sequence[str],
    results: Dict[str, str],
    skipped: Sequence[str],
    options: SweepOptions,
    store: Optional[InventoryStore],
    stream: Optional[TextIO] = None,
) -> Optional[UpdateResult]:
    """Summarize a sweep and optionally update the inventory.

    Args:
        probed_hosts: Hosts that were (or in simulate mode would have been)
            probed.
        results: Reachable host -> address.
        skipped: Hosts not probed because the inventory flags them inactive.
        options: Run options.
        store: Inventory store, or None when the inventory is disabled.
        stream: Where the preview table goes; defaults to stdout.

    Returns:
        The inventory's UpdateResult, or None if no update was attempted.
    """
    report_skipped(skipped, options.hide_skipped)

    if not options.update_inventory:
        return None

    if store is None or not options.use_inventory:
        logger.warning("Ignoring the inventory update request because the inventory is disabled")
        return None

    if options.simulate:
        # Nothing was really probed; preview every probed host with no address
        synthetic = {host: "" for host in probed_hosts}
        logger.info("Previewing inventory update for %d hosts", len(synthetic))
        result = await store.commit_update(
            synthetic,
            add_unknown_hosts=options.add_unknown_hosts,
            preview_only=True,
        )
        _log_update_result(result, "preview", len(synthetic))
        if result.succeeded:
            out = stream or sys.stdout
            if result.preview_rows:
                for line in format_preview_table(result.preview_rows):
                    print(line, file=out)
            else:
                print(result.message or "No changes", file=out)
        return result

    logger.info("Updating inventory with %d reachable hosts", len(results))
    result = await store.commit_update(
        dict(results),
        add_unknown_hosts=options.add_unknown_hosts,
        preview_only=False,
    )
    _log_update_result(result, "commit", len(results))
    return result
