"""Run one liveness sweep end to end."""

import logging
import time
from typing import Optional

from bionet_ping import metrics
from bionet_ping.config import settings
from bionet_ping.errors import SweepError
from bionet_ping.reporting.sync_reporter import report
from bionet_ping.scanner.host_set import build_candidate_set
from bionet_ping.scanner.models import SweepOptions, SweepSummary
from bionet_ping.scanner.probe_engine import probe_hosts
from bionet_ping.scanner.reconciler import reconcile
from bionet_ping.storage.inventory import InventoryStore, SqlInventoryStore

logger = logging.getLogger(__name__)


async def run_sweep(
    options: SweepOptions,
    store: Optional[InventoryStore] = None,
    **probe_kwargs,
) -> SweepSummary:
    """Build the host set, reconcile, probe, and report.

    Args:
        options: Run options.
        store: Inventory store to use. When None and the inventory is
            enabled, a SqlInventoryStore for the configured database is
            opened for this run and closed afterwards.
        **probe_kwargs: Passed to the probe engine (timeout, concurrency,
            probe function).

    Raises:
        ConfigurationError: no host source and the inventory is disabled.
        InventoryUnavailableError: no host source and the inventory could
            not list its active hosts.
    """
    started = time.monotonic()
    owns_store = False
    if not options.use_inventory:
        store = None
    elif store is None:
        store = SqlInventoryStore()
        owns_store = True

    try:
        candidates = build_candidate_set(options.host_list, options.host_file)
        reconciled = await reconcile(candidates, store, options)

        reachable = await probe_hosts(
            reconciled.hosts_to_probe,
            reconciled.suffix_mode,
            options.simulate,
            **probe_kwargs,
        )

        update = await report(
            reconciled.hosts_to_probe,
            reachable,
            reconciled.skipped,
            options,
            store,
        )
    except SweepError:
        metrics.sweeps_total.labels(status="failed").inc()
        raise
    finally:
        if owns_store:
            await store.close()

    duration = time.monotonic() - started
    metrics.sweeps_total.labels(status="completed").inc()
    metrics.sweep_duration_seconds.observe(duration)
    metrics.sweep_hosts.labels(state="candidates").set(len(candidates))
    metrics.sweep_hosts.labels(state="probed").set(len(reconciled.hosts_to_probe))
    metrics.sweep_hosts.labels(state="reachable").set(len(reachable))
    metrics.sweep_hosts.labels(state="skipped").set(len(reconciled.skipped))
    metrics.last_success_timestamp.set_to_current_time()

    logger.info(
        "Sweep finished in %.1fs: %d probed, %d reachable, %d skipped%s",
        duration,
        len(reconciled.hosts_to_probe),
        len(reachable),
        len(reconciled.skipped),
        " (simulated)" if options.simulate else "",
    )

    return SweepSummary(
        candidates=len(candidates),
        probed=reconciled.hosts_to_probe,
        skipped=reconciled.skipped,
        reachable=reachable,
        suffix_mode=reconciled.suffix_mode,
        update=update,
        duration_seconds=duration,
    )


async def run_sweep_job(options: SweepOptions) -> Optional[SweepSummary]:
    """Scheduled wrapper: one failed sweep must not stop the schedule."""
    try:
        return await run_sweep(options)
    except SweepError as e:
        logger.error("Sweep failed: %s", e)
        return None
    finally:
        metrics.write_metrics(settings.metrics_textfile)
