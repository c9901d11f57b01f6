"""Tests for inventory reconciliation."""

from __future__ import annotations

import logging

import pytest

from bionet_ping.errors import ConfigurationError, InventoryUnavailableError
from bionet_ping.scanner.host_set import CandidateSet
from bionet_ping.scanner.models import InventoryRecord, SuffixMode, SweepOptions
from bionet_ping.scanner.reconciler import is_flagged_inactive, reconcile


@pytest.mark.asyncio
async def test_inactive_host_with_suffix_is_skipped(store_factory):
    store = store_factory([
        InventoryRecord("host1", None, True),
        InventoryRecord("host2", None, False),
    ])

    result = await reconcile(CandidateSet(["host2.bionet"]), store, SweepOptions(), suffix=".bionet")

    assert result.skipped == ("host2.bionet",)
    assert result.hosts_to_probe == ()
    assert result.suffix_mode is SuffixMode.PRESERVE_AS_GIVEN


@pytest.mark.asyncio
async def test_empty_candidates_use_active_hosts(store_factory):
    store = store_factory([
        InventoryRecord("host3", None, True),
        InventoryRecord("host4", None, False),
    ])

    result = await reconcile(CandidateSet(), store, SweepOptions())

    assert result.hosts_to_probe == ("host3",)
    assert result.suffix_mode is SuffixMode.REQUIRE_SUFFIX
    assert result.skipped == ()
    assert store.fetch_all_calls == 0


@pytest.mark.asyncio
async def test_unknown_hosts_are_probed(fake_store):
    result = await reconcile(CandidateSet(["newbox", "host1"]), fake_store, SweepOptions())

    assert result.hosts_to_probe == ("host1", "newbox")
    assert result.skipped == ()


@pytest.mark.asyncio
async def test_lookup_ignores_case(fake_store):
    result = await reconcile(
        CandidateSet(["HOST2", "Host3.BIONET"]), fake_store, SweepOptions(), suffix=".bionet"
    )

    assert result.skipped == ("HOST2",)
    assert result.hosts_to_probe == ("Host3.BIONET",)


@pytest.mark.asyncio
async def test_inventory_disabled_skips_cross_reference(fake_store):
    options = SweepOptions(host_list="host2", use_inventory=False)

    result = await reconcile(CandidateSet(["host2"]), fake_store, options)

    assert result.hosts_to_probe == ("host2",)
    assert result.skipped == ()
    assert fake_store.fetch_all_calls == 0


@pytest.mark.asyncio
async def test_no_store_behaves_like_disabled_inventory():
    result = await reconcile(CandidateSet(["host2"]), None, SweepOptions())

    assert result.hosts_to_probe == ("host2",)
    assert result.suffix_mode is SuffixMode.PRESERVE_AS_GIVEN


@pytest.mark.asyncio
async def test_no_candidates_and_no_inventory_is_configuration_error():
    with pytest.raises(ConfigurationError):
        await reconcile(CandidateSet(), None, SweepOptions(use_inventory=False))


@pytest.mark.asyncio
async def test_membership_query_failure_degrades(store_factory, caplog):
    caplog.set_level(logging.ERROR)
    store = store_factory([InventoryRecord("host2", None, False)], fail_fetch_all=True)

    result = await reconcile(CandidateSet(["host1", "host2"]), store, SweepOptions())

    assert result.hosts_to_probe == ("host1", "host2")
    assert result.skipped == ()
    assert any("inactive hosts" in r.getMessage() for r in caplog.records)


@pytest.mark.asyncio
async def test_active_query_failure_is_fatal(store_factory):
    store = store_factory(fail_fetch_active=True)

    with pytest.raises(InventoryUnavailableError):
        await reconcile(CandidateSet(), store, SweepOptions())


class TestIsFlaggedInactive:
    """Tests for the inactive lookup helper."""

    def test_bare_name(self):
        assert is_flagged_inactive("host2", {"host2": False}, ".bionet") is True

    def test_suffixed_name_matches_bare_record(self):
        assert is_flagged_inactive("host2.bionet", {"host2": False}, ".bionet") is True

    def test_active_record(self):
        assert is_flagged_inactive("host1.bionet", {"host1": True}, ".bionet") is False

    def test_unknown_host(self):
        assert is_flagged_inactive("mystery", {"host1": False}, ".bionet") is False

    def test_record_stored_with_suffix(self):
        assert is_flagged_inactive("host5.bionet", {"host5.bionet": False}, ".bionet") is True
