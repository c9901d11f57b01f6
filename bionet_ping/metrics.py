"""Prometheus metrics for sweep runs.

Metrics live in a dedicated registry so a single run can dump them to a
node-exporter textfile without the default process collectors.
"""

import logging
from pathlib import Path
from typing import Optional

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, Info, write_to_textfile

from bionet_ping.version import __version__

logger = logging.getLogger(__name__)

registry = CollectorRegistry()

# Application info
app_info = Info("bionet_ping", "Application information", registry=registry)
app_info.info({
    "version": __version__,
    "service": "bionet-ping",
})

# Sweep metrics
sweeps_total = Counter(
    "bionet_ping_sweeps_total",
    "Total number of sweeps executed",
    ["status"],
    registry=registry,
)

sweep_duration_seconds = Histogram(
    "bionet_ping_sweep_duration_seconds",
    "Duration of sweeps in seconds",
    buckets=[1, 2, 5, 10, 20, 30, 60, 120, 300],
    registry=registry,
)

sweep_hosts = Gauge(
    "bionet_ping_sweep_hosts",
    "Number of hosts per state in the last sweep",
    ["state"],  # candidates, probed, reachable, skipped
    registry=registry,
)

last_success_timestamp = Gauge(
    "bionet_ping_last_success_timestamp_seconds",
    "Unix time of the last sweep that finished without a fatal error",
    registry=registry,
)

# Probe metrics
probes_total = Counter(
    "bionet_ping_probes_total",
    "Total number of host probes by outcome",
    ["outcome"],  # reachable, no_reply, timeout, not_found, socket_error, error
    registry=registry,
)

# Inventory update metrics
inventory_updates_total = Counter(
    "bionet_ping_inventory_updates_total",
    "Total number of inventory update calls",
    ["mode", "status"],  # mode: commit/preview, status: success/failed
    registry=registry,
)


def write_metrics(path: Optional[Path]) -> bool:
    """Write the registry to a textfile collector file.

    Returns:
        True if the file was written.
    """
    if path is None:
        return False
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        write_to_textfile(str(path), registry)
    except OSError as e:
        logger.warning("Unable to write metrics to %s: %s", path, e)
        return False
    logger.debug("Metrics written to %s", path)
    return True
