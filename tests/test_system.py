#!/usr/bin/env python3
"""
Tests for live system discovery (libc via CFFI, sysfs scanning)
"""

import os
import sys

import pytest

from conftest import make_sysfs_link
from netreg.registry import LinkRegistry
from netreg.states import AddressState, CarrierState, OperationalState, carrier_from_kernel, operational_from
from netreg.system import SystemLinkScanner, if_indextoname, if_nameindex, if_nametoindex

linux_only = pytest.mark.skipif(not sys.platform.startswith('linux'), reason="Linux only")

# ============================================================================
# libc Identity Tests
# ============================================================================

@linux_only
class TestLibcIdentity:
    """if_nametoindex / if_indextoname / if_nameindex through CFFI"""

    def test_loopback_resolves(self):
        """Test that the loopback device always resolves"""
        index = if_nametoindex("lo")
        assert isinstance(index, int) and index > 0
        assert if_indextoname(index) == "lo"

    def test_unknown_name(self):
        """Test that an unknown name resolves to None"""
        assert if_nametoindex("nonexistent0x") is None

    def test_degenerate_names(self):
        """Test empty and overlong names"""
        assert if_nametoindex("") is None
        assert if_nametoindex("x" * 32) is None

    def test_unknown_index(self):
        """Test that an unused index has no name"""
        assert if_indextoname(0) is None
        assert if_indextoname(2 ** 31 - 1) is None

    def test_nameindex_contains_loopback(self):
        """Test full enumeration"""
        pairs = if_nameindex()
        assert ("lo" in [name for _, name in pairs])
        indices = [index for index, _ in pairs]
        assert len(indices) == len(set(indices))

    @pytest.mark.skipif(not os.path.isdir("/sys/class/net/lo"), reason="sysfs not mounted")
    def test_scanner_agrees_with_libc(self):
        """Test that the real sysfs scan matches libc identity"""
        scanned = {link.name: link.index for link in SystemLinkScanner().scan()}
        assert scanned.get("lo") == if_nametoindex("lo")

# ============================================================================
# State Mapping Tests
# ============================================================================

class TestStateMapping:
    """Kernel operstate to carrier/operational state"""

    @pytest.mark.parametrize("operstate,carrier,admin_up,expected", [
        ("up", True, True, CarrierState.CARRIER),
        ("down", False, True, CarrierState.NO_CARRIER),
        ("lowerlayerdown", None, True, CarrierState.NO_CARRIER),
        ("notpresent", None, True, CarrierState.NO_CARRIER),
        ("dormant", True, True, CarrierState.DORMANT),
        ("testing", True, True, CarrierState.DORMANT),
        ("unknown", True, True, CarrierState.CARRIER),
        ("unknown", False, True, CarrierState.NO_CARRIER),
        ("unknown", None, True, CarrierState.OFF),
        ("up", True, False, CarrierState.OFF),
    ])
    def test_carrier_from_kernel(self, operstate, carrier, admin_up, expected):
        """Test the kernel operstate mapping table"""
        assert carrier_from_kernel(operstate, carrier, admin_up) == expected

    def test_unknown_operstate(self):
        """Test that an unrecognized operstate is rejected"""
        with pytest.raises(ValueError):
            carrier_from_kernel("sideways")

    @pytest.mark.parametrize("carrier,address,expected", [
        (CarrierState.CARRIER, AddressState.ROUTABLE, OperationalState.ROUTABLE),
        (CarrierState.CARRIER, AddressState.DEGRADED, OperationalState.DEGRADED),
        (CarrierState.CARRIER, AddressState.OFF, OperationalState.CARRIER),
        (CarrierState.ENSLAVED, AddressState.OFF, OperationalState.ENSLAVED),
        (CarrierState.DEGRADED_CARRIER, AddressState.ROUTABLE, OperationalState.DEGRADED_CARRIER),
        (CarrierState.NO_CARRIER, AddressState.ROUTABLE, OperationalState.NO_CARRIER),
        (CarrierState.OFF, AddressState.OFF, OperationalState.OFF),
    ])
    def test_operational_from(self, carrier, address, expected):
        """Test carrier + address combination"""
        assert operational_from(carrier, address) == expected

# ============================================================================
# Scanner Tests
# ============================================================================

class TestSystemLinkScanner:
    """Scanning and syncing against a fake sysfs tree"""

    def test_scan(self, sysfs):
        """Test that devices are read and ordered by index"""
        make_sysfs_link(sysfs, "wlan0", 3, operstate="dormant")
        make_sysfs_link(sysfs, "eth0", 2)
        make_sysfs_link(sysfs, "lo", 1, operstate="unknown")

        links = SystemLinkScanner(str(sysfs)).scan()

        assert [(link.index, link.name) for link in links] == [(1, "lo"), (2, "eth0"), (3, "wlan0")]
        assert links[2].carrier_state == CarrierState.DORMANT

    def test_scan_skips_non_devices(self, sysfs):
        """Test that stray entries and bad ifindex files are ignored"""
        make_sysfs_link(sysfs, "eth0", 2)
        (sysfs / "bonding_masters").write_text("\n")
        bad = sysfs / "weird0"
        bad.mkdir()
        (bad / "ifindex").write_text("not-a-number\n")

        links = SystemLinkScanner(str(sysfs)).scan()

        assert [link.name for link in links] == ["eth0"]

    def test_scan_missing_root(self, tmp_path):
        """Test that an absent sysfs root is reported"""
        with pytest.raises(RuntimeError):
            SystemLinkScanner(str(tmp_path / "absent")).scan()

    def test_carrier_unreadable_while_down(self, sysfs):
        """Test a device without a readable carrier file"""
        make_sysfs_link(sysfs, "eth0", 2, operstate="down", carrier=None, flags="0x1002")

        link = SystemLinkScanner(str(sysfs)).scan()[0]

        assert link.carrier is None
        assert link.admin_up is False
        assert link.carrier_state == CarrierState.OFF

    def test_sync_builds_registry(self, sysfs):
        """Test the initial rebuild from the system"""
        make_sysfs_link(sysfs, "lo", 1, operstate="unknown")
        make_sysfs_link(sysfs, "eth0", 2)
        registry = LinkRegistry(unmanaged=["lo"])

        counts = SystemLinkScanner(str(sysfs)).sync(registry)

        assert counts['added'] == 2
        eth0 = registry.get_by_name("eth0")
        assert eth0.carrier_state == CarrierState.CARRIER
        assert eth0.operational_state == OperationalState.CARRIER
        assert registry.get_by_index(1).managed is False
        assert registry.summary().carrier_state == CarrierState.CARRIER

    def test_sync_removes_renames_and_updates(self, sysfs, recorder):
        """Test reconciliation after the system changed"""
        make_sysfs_link(sysfs, "eth0", 2)
        make_sysfs_link(sysfs, "wlan0", 3)
        registry = LinkRegistry()
        scanner = SystemLinkScanner(str(sysfs))
        scanner.sync(registry)
        registry.dispatcher.subscribe(recorder)

        # wlan0 gone, eth0 renamed and lost carrier, new veth appears
        for f in (sysfs / "wlan0").iterdir():
            f.unlink()
        (sysfs / "wlan0").rmdir()
        (sysfs / "eth0").rename(sysfs / "lan0")
        make_sysfs_link(sysfs, "lan0", 2, operstate="down", carrier="0")
        make_sysfs_link(sysfs, "veth0", 7)

        counts = scanner.sync(registry)

        assert counts == {'added': 1, 'removed': 1, 'renamed': 1, 'updated': 2}
        assert [(link.index, link.name) for link in registry.list()] == [(2, "lan0"), (7, "veth0")]
        assert registry.get_by_index(2).carrier_state == CarrierState.NO_CARRIER
        assert any(e.path.endswith("/link/2") and e.changed.get("CarrierState") == "no-carrier"
                   for e in recorder.link_events())

    def test_sync_is_idempotent(self, sysfs, recorder):
        """Test that a second sync with no system change does nothing"""
        make_sysfs_link(sysfs, "eth0", 2)
        registry = LinkRegistry()
        scanner = SystemLinkScanner(str(sysfs))
        scanner.sync(registry)
        registry.dispatcher.subscribe(recorder)

        assert scanner.sync(registry) == {'added': 0, 'removed': 0, 'renamed': 0, 'updated': 0}
        assert recorder.events == []

    def test_sync_keeps_address_state(self, sysfs):
        """Test that externally fed address state survives a rescan"""
        make_sysfs_link(sysfs, "eth0", 2)
        registry = LinkRegistry()
        scanner = SystemLinkScanner(str(sysfs))
        scanner.sync(registry)
        registry.update_states(2, address_state="routable", operational_state="routable")

        scanner.sync(registry)

        info = registry.get_by_index(2)
        assert info.address_state == AddressState.ROUTABLE
        assert info.operational_state == OperationalState.ROUTABLE

    def test_sync_skips_unrecognized_operstate(self, sysfs, caplog):
        """Test that one link with an unexpected operstate does not abort the sync"""
        make_sysfs_link(sysfs, "eth0", 2, operstate="bogus")
        make_sysfs_link(sysfs, "eth1", 3)
        registry = LinkRegistry()

        with caplog.at_level("WARNING", logger="netreg.system"):
            counts = SystemLinkScanner(str(sysfs)).sync(registry)

        assert counts['added'] == 2
        assert counts['updated'] == 1
        assert registry.get_by_index(2).carrier_state == CarrierState.OFF
        assert registry.get_by_index(3).carrier_state == CarrierState.CARRIER
        assert "Unknown kernel operstate 'bogus'" in caplog.text
