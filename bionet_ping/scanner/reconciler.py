"""Cross-reference candidate hosts against the inventory.

Policy for hosts the inventory has never heard of: they are probed. Only a
host the inventory explicitly flags inactive is skipped, so new machines
can be checked before anyone registers them.
"""

import logging
from datetime import datetime
from typing import Dict, List, Optional

from bionet_ping.config import settings
from bionet_ping.errors import ConfigurationError, InventoryUnavailableError
from bionet_ping.scanner.host_set import CandidateSet, HostSetBuilder
from bionet_ping.scanner.models import ReconcileResult, SuffixMode, SweepOptions, strip_suffix
from bionet_ping.storage.inventory import InventoryStore

logger = logging.getLogger(__name__)


async def get_inventory_status(store: InventoryStore) -> Dict[str, bool]:
    """Fetch the inventory's active flag for every known host.

    Failures are logged and yield an empty map, so every candidate is
    treated as unknown.

    Returns:
        Casefolded host name -> active flag.
    """
    try:
        records = await store.fetch_all()
    except InventoryUnavailableError as e:
        logger.error("Unable to check inventory for inactive hosts: %s", e)
        return {}

    return {record.host.casefold(): record.active for record in records}


def is_flagged_inactive(host: str, status: Dict[str, bool], suffix: str) -> bool:
    """True if the inventory knows ``host`` and has it marked inactive.

    The host is looked up both as given and with the domain suffix removed.
    """
    for name in (host, strip_suffix(host, suffix)):
        active = status.get(name.casefold())
        if active is not None:
            return not active
    return False


async def get_active_hosts(store: InventoryStore) -> CandidateSet:
    """Ask the inventory for its active hosts.

    Raises:
        InventoryUnavailableError: the inventory could not be queried. With
            no other host source this ends the run.
    """
    logger.info(
        "Retrieving names of Bionet computers at %s",
        datetime.now().strftime("%Y-%m-%d %I:%M:%S %p"),
    )
    builder = HostSetBuilder()
    for host in await store.fetch_active_only():
        builder.add_host(host)
    return builder.build()


async def reconcile(
    candidates: CandidateSet,
    store: Optional[InventoryStore],
    options: SweepOptions,
    suffix: Optional[str] = None,
) -> ReconcileResult:
    """Decide which hosts to probe and which to skip.

    Args:
        candidates: Hosts from the explicit list and/or file (may be empty).
        store: Inventory store, or None when the inventory is disabled.
        options: Run options.
        suffix: Domain suffix; defaults to the configured one.

    Raises:
        ConfigurationError: no candidates and the inventory is disabled.
        InventoryUnavailableError: no candidates and the active-host query
            failed.
    """
    suffix = suffix or settings.host_suffix
    use_inventory = options.use_inventory and store is not None

    if not candidates:
        if not use_inventory:
            raise ConfigurationError(
                "No hosts to check: supply a host list or host file when the inventory is disabled"
            )
        active = await get_active_hosts(store)
        if not active:
            logger.warning("The inventory does not list any active hosts")
        return ReconcileResult(
            hosts_to_probe=active.as_tuple(),
            skipped=(),
            suffix_mode=SuffixMode.REQUIRE_SUFFIX,
        )

    if not use_inventory:
        logger.debug("Inventory disabled; not checking %d hosts for inactive status", len(candidates))
        return ReconcileResult(
            hosts_to_probe=candidates.as_tuple(),
            skipped=(),
            suffix_mode=SuffixMode.PRESERVE_AS_GIVEN,
        )

    status = await get_inventory_status(store)
    to_probe: List[str] = []
    skipped: List[str] = []
    for host in candidates:
        if is_flagged_inactive(host, status, suffix):
            skipped.append(host)
        else:
            to_probe.append(host)

    return ReconcileResult(
        hosts_to_probe=tuple(to_probe),
        skipped=tuple(skipped),
        suffix_mode=SuffixMode.PRESERVE_AS_GIVEN,
    )
