"""Shared pytest fixtures."""

import os
from pathlib import Path
from typing import Dict, Iterable, List, Optional

import pytest
import pytest_asyncio

# Set test environment before importing app modules
os.environ.setdefault(
    "DATA_DIR",
    str(Path(__file__).resolve().parents[1] / "data" / "test_data"),
)
os.environ.setdefault("HOST_SUFFIX", ".bionet")

from bionet_ping.errors import InventoryUnavailableError  # noqa: E402
from bionet_ping.scanner.models import InventoryRecord, ProbeResult, UpdateResult  # noqa: E402


class FakeInventoryStore:
    """In-memory stand-in for the inventory database."""

    def __init__(
        self,
        records: Iterable[InventoryRecord] = (),
        fail_fetch_all: bool = False,
        fail_fetch_active: bool = False,
        update_result: Optional[UpdateResult] = None,
    ):
        self.records: List[InventoryRecord] = list(records)
        self.fail_fetch_all = fail_fetch_all
        self.fail_fetch_active = fail_fetch_active
        self.update_result = update_result
        self.fetch_all_calls = 0
        self.fetch_active_calls = 0
        self.commit_calls: List[Dict] = []
        self.closed = False

    async def fetch_all(self) -> List[InventoryRecord]:
        self.fetch_all_calls += 1
        if self.fail_fetch_all:
            raise InventoryUnavailableError("fetch_all", "connection refused")
        return list(self.records)

    async def fetch_active_only(self) -> List[str]:
        self.fetch_active_calls += 1
        if self.fail_fetch_active:
            raise InventoryUnavailableError("fetch_active_only", "connection refused")
        return [record.host for record in self.records if record.active]

    async def commit_update(self, hosts_with_addresses, add_unknown_hosts=False, preview_only=False):
        self.commit_calls.append({
            "hosts": dict(hosts_with_addresses),
            "add_unknown_hosts": add_unknown_hosts,
            "preview_only": preview_only,
        })
        if self.update_result is not None:
            return self.update_result
        return UpdateResult(0, 0, f"Updated {len(hosts_with_addresses)} hosts")

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def sample_records():
    """Inventory with two active hosts and one inactive host."""
    return [
        InventoryRecord(host="host1", ip="192.168.30.11", active=True),
        InventoryRecord(host="host2", ip="192.168.30.12", active=False),
        InventoryRecord(host="host3", ip="192.168.30.13", active=True),
    ]


@pytest.fixture
def fake_store(sample_records):
    """Fake inventory store seeded with sample_records."""
    return FakeInventoryStore(sample_records)


@pytest.fixture
def store_factory():
    """Build fake inventory stores with custom contents or failures."""
    return FakeInventoryStore


@pytest.fixture
def deterministic_probe():
    """Probe function where only names in ``up`` respond.

    Records every (host, probe_name) it was called with.
    """

    def _make(up: Dict[str, str]):
        calls = []

        async def _probe(host: str, probe_name: str, timeout: float) -> ProbeResult:
            calls.append((host, probe_name))
            if probe_name in up:
                return ProbeResult(host, probe_name, True, up[probe_name])
            return ProbeResult(host, probe_name, False)

        _probe.calls = calls
        return _probe

    return _make


@pytest_asyncio.fixture
async def sqlite_store(tmp_path):
    """SqlInventoryStore backed by a throwaway SQLite file."""
    from bionet_ping.storage.inventory import SqlInventoryStore

    store = SqlInventoryStore(
        database_url=f"sqlite+aiosqlite:///{tmp_path}/inventory.db",
        query_timeout=10.0,
        host_suffix=".bionet",
    )
    yield store
    await store.close()
