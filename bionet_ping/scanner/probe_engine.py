"""Concurrent ICMP reachability checks."""

import asyncio
import logging
import math
import platform
import shutil
import socket
import time
from typing import Awaitable, Callable, Dict, Iterable, List, Optional

from bionet_ping import metrics
from bionet_ping.config import settings
from bionet_ping.errors import ConfigurationError
from bionet_ping.scanner.models import ProbeResult, SuffixMode, ensure_suffix

logger = logging.getLogger(__name__)

ProbeFunc = Callable[[str, str, float], Awaitable[ProbeResult]]


async def resolve_host(target: str) -> str:
    """Resolve hostname to an IPv4 address.

    Raises:
        socket.gaierror: the name does not resolve.
    """
    loop = asyncio.get_running_loop()
    result = await loop.getaddrinfo(
        target,
        None,
        family=socket.AF_INET,
        type=socket.SOCK_STREAM,
    )
    if not result:
        raise socket.gaierror(socket.EAI_NONAME, f"no address for {target}")
    ip = result[0][4][0]
    logger.debug("Resolved %s to %s", target, ip)
    return ip


def build_ping_command(ping_cmd: str, address: str, timeout: float) -> List[str]:
    """Single-echo ping command line with the default TTL."""
    # Linux uses -W (seconds), macOS uses -W (milliseconds)
    if platform.system() == "Darwin":
        timeout_ms = int(timeout * 1000)
        return [ping_cmd, "-c", "1", "-W", str(timeout_ms), address]
    return [ping_cmd, "-c", "1", "-W", str(max(1, math.ceil(timeout))), address]


async def send_ping(address: str, timeout: float) -> bool:
    """Send one ICMP echo using the system ping command.

    Returns:
        True if the host replied.

    Raises:
        FileNotFoundError: no ping command on PATH.
    """
    ping_cmd = shutil.which("ping")
    if not ping_cmd:
        raise FileNotFoundError("ping command not found in PATH")

    proc = await asyncio.create_subprocess_exec(
        *build_ping_command(ping_cmd, address, timeout),
        stdout=asyncio.subprocess.DEVNULL,
        stderr=asyncio.subprocess.DEVNULL,
    )
    try:
        returncode = await proc.wait()
    finally:
        # Cancelled by the per-host timeout
        if proc.returncode is None:
            proc.kill()

    if returncode != 0:
        logger.debug("Ping to %s failed (exit code %d)", address, returncode)
    return returncode == 0


async def probe_host(host: str, probe_name: str, timeout: float) -> ProbeResult:
    """Probe one host: resolve it, then ping the resolved address.

    The whole check, resolution included, is bounded by ``timeout``. Every
    failure is logged and reported as unreachable.
    """

    async def _check() -> ProbeResult:
        started = time.monotonic()
        address = await resolve_host(probe_name)
        if await send_ping(address, timeout):
            elapsed_ms = (time.monotonic() - started) * 1000
            logger.info("Reply for %-28s from %-15s: time %dms", probe_name, address, elapsed_ms)
            metrics.probes_total.labels(outcome="reachable").inc()
            return ProbeResult(host, probe_name, True, address)
        logger.info("No reply from %s (%s)", probe_name, address)
        metrics.probes_total.labels(outcome="no_reply").inc()
        return ProbeResult(host, probe_name, False)

    try:
        return await asyncio.wait_for(_check(), timeout=timeout)
    except asyncio.TimeoutError:
        logger.info("Host timed out: %s", probe_name)
        metrics.probes_total.labels(outcome="timeout").inc()
    except socket.gaierror:
        logger.info("Host not found: %s", probe_name)
        metrics.probes_total.labels(outcome="not_found").inc()
    except OSError as e:
        logger.warning("Socket error for %s: %s", probe_name, e)
        metrics.probes_total.labels(outcome="socket_error").inc()
    except Exception as e:
        logger.error("Error probing %s: %s", probe_name, e)
        metrics.probes_total.labels(outcome="error").inc()
    return ProbeResult(host, probe_name, False)


def probe_name_for(host: str, suffix_mode: SuffixMode, suffix: str) -> str:
    """Name to send to the resolver for ``host``."""
    if suffix_mode is SuffixMode.REQUIRE_SUFFIX:
        return ensure_suffix(host, suffix)
    return host


async def collect_probe_results(
    hosts: Iterable[str],
    suffix_mode: SuffixMode,
    *,
    suffix: Optional[str] = None,
    timeout: Optional[float] = None,
    concurrency: Optional[int] = None,
    probe: Optional[ProbeFunc] = None,
) -> List[ProbeResult]:
    """Probe every host concurrently and return one result per host.

    Each task produces its own ProbeResult; nothing is shared between tasks.
    Hosts do not wait on each other, so the batch takes as long as its
    slowest probe (or longer if ``concurrency`` caps the fan-out).
    """
    suffix = suffix or settings.host_suffix
    timeout = timeout or settings.ping_timeout_seconds
    if concurrency is None:
        concurrency = settings.probe_concurrency
    if probe is None:
        if not shutil.which("ping"):
            raise ConfigurationError("ping command not found in PATH")
        probe = probe_host

    semaphore = asyncio.Semaphore(concurrency) if concurrency > 0 else None
    targets = [(host, probe_name_for(host.strip(), suffix_mode, suffix)) for host in hosts]

    async def _run(host: str, probe_name: str) -> ProbeResult:
        if semaphore is None:
            return await probe(host, probe_name, timeout)
        async with semaphore:
            return await probe(host, probe_name, timeout)

    outcomes = await asyncio.gather(
        *(_run(host, probe_name) for host, probe_name in targets),
        return_exceptions=True,
    )

    results: List[ProbeResult] = []
    for (host, probe_name), outcome in zip(targets, outcomes):
        if isinstance(outcome, BaseException):
            logger.error("Error in probe for %s: %s", probe_name, outcome)
            results.append(ProbeResult(host, probe_name, False))
        else:
            results.append(outcome)
    return results


async def probe_hosts(
    hosts: Iterable[str],
    suffix_mode: SuffixMode,
    simulate: bool,
    **kwargs,
) -> Dict[str, str]:
    """Probe hosts and return the ones that answered.

    Args:
        hosts: Candidate host names; these are the keys of the result.
        suffix_mode: REQUIRE_SUFFIX appends the domain suffix for probing.
        simulate: Log what would be probed without any network I/O.
        **kwargs: Passed through to collect_probe_results.

    Returns:
        Host name -> responding address, reachable hosts only. Always empty
        when simulating.
    """
    hosts = list(hosts)

    if simulate:
        logger.info("Simulating ping")
        suffix = kwargs.get("suffix") or settings.host_suffix
        for host in hosts:
            logger.info("Would probe %s", probe_name_for(host.strip(), suffix_mode, suffix))
        return {}

    logger.info("Contacting %d computers", len(hosts))
    results = await collect_probe_results(hosts, suffix_mode, **kwargs)

    reachable = {result.host: result.address for result in results if result.reachable}
    logger.info("%d of %d hosts responded", len(reachable), len(hosts))
    return reachable
