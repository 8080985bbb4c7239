"""Tests for SummaryAttributeFetcher and SummaryAttributeSet."""

import logging
from types import SimpleNamespace
from unittest.mock import MagicMock, Mock, patch

import pytest
from pyVmomi import vim

from vsphere_agent.collectors.errors import FetchFailed
from vsphere_agent.collectors.summary import SummaryAttributeFetcher, SummaryAttributeSet
from vsphere_agent.utils.metrics import EntityType

from conftest import make_entity


GIB = 1 << 30


@pytest.fixture
def fetcher(logger):
    return SummaryAttributeFetcher(MagicMock(), logger)


def host_summary(cpu_mhz=2000, cores=2, cpu_used=1000, memory=8 * GIB, memory_used_mib=2048):
    return SimpleNamespace(
        hardware=SimpleNamespace(cpuMhz=cpu_mhz, numCpuCores=cores, memorySize=memory),
        quickStats=SimpleNamespace(overallCpuUsage=cpu_used, overallMemoryUsage=memory_used_mib),
    )


def vm_summary(power_state="poweredOn", **quick_stats):
    return SimpleNamespace(
        config=SimpleNamespace(guestFullName="Ubuntu Linux (64-bit)", memorySizeMB=4096),
        quickStats=SimpleNamespace(**quick_stats),
        runtime=SimpleNamespace(powerState=power_state),
    )


def fetch_with(fetcher, entity_type, found):
    with patch("vsphere_agent.collectors.summary.retrieve_properties", return_value=found) as retrieve:
        result = fetcher.fetch(MagicMock(), entity_type)
    return result, retrieve


class TestHostSummary:

    def test_cpu_and_memory_math(self, fetcher):
        found = [(vim.HostSystem("host-1"), {"name": "esx01", "summary": host_summary()})]

        attrs, _ = fetch_with(fetcher, EntityType.HOST, found)
        host = attrs.lookup(make_entity("esx01", moid="host-1"))

        assert host == {
            "hs.totalCPU": 4000,
            "hs.freeCPU": 3000,
            "hs.overallCPUUsage": 1000,
            "hs.memorySize": 8 * GIB,
            "hs.memoryUsage": 2 * GIB,
            "hs.freeMemory": 6 * GIB,
        }

    def test_missing_summary_skipped(self, fetcher):
        found = [
            (vim.HostSystem("host-1"), {"name": "esx01", "summary": None}),
            (vim.HostSystem("host-2"), {"name": "esx02", "summary": host_summary()}),
        ]

        attrs, _ = fetch_with(fetcher, EntityType.HOST, found)

        assert list(attrs.names()) == ["esx02"]

    def test_malformed_summary_logged_and_skipped(self, fetcher, caplog):
        found = [(vim.HostSystem("host-1"), {"name": "esx01", "summary": SimpleNamespace()})]

        with caplog.at_level(logging.WARNING):
            attrs, _ = fetch_with(fetcher, EntityType.HOST, found)

        assert len(attrs) == 0
        assert any("esx01" in r.getMessage() for r in caplog.records)


class TestDatastoreSummary:

    def datastore_summary(self):
        return SimpleNamespace(
            type="NFS",
            url="ds:///vmfs/volumes/abc/",
            capacity=100 * GIB,
            freeSpace=25 * GIB,
            uncommitted=GIB // 2,
            accessible=True,
        )

    def test_sizes_in_gib(self, fetcher):
        found = [(vim.Datastore("datastore-1"), {
            "name": "ds01", "summary": self.datastore_summary(), "info": None
        })]

        attrs, retrieve = fetch_with(fetcher, EntityType.DATASTORE, found)
        ds = attrs.lookup(make_entity("ds01", EntityType.DATASTORE, moid="datastore-1"))

        assert ds["ds.capacity"] == 100.0
        assert ds["ds.freespace"] == 25.0
        assert ds["ds.uncommitted"] == 0.5
        assert ds["ds.accessible"] is True
        assert ds["ds.type"] == "NFS"
        assert "ds.nas.remoteHost" not in ds
        assert "info" in retrieve.call_args[0][3]

    def test_nas_details(self, fetcher):
        info = Mock(spec=vim.host.NasDatastoreInfo)
        info.nas = SimpleNamespace(remoteHost="filer01", remotePath="/exports/vm")
        found = [(vim.Datastore("datastore-1"), {
            "name": "ds01", "summary": self.datastore_summary(), "info": info
        })]

        attrs, _ = fetch_with(fetcher, EntityType.DATASTORE, found)
        ds = attrs.lookup(make_entity("ds01", EntityType.DATASTORE, moid="datastore-1"))

        assert ds["ds.nas.remoteHost"] == "filer01"
        assert ds["ds.nas.remotePath"] == "/exports/vm"


class TestVirtualMachineSummary:

    @pytest.mark.parametrize("state,ordinal", [
        ("poweredOff", 0),
        ("suspended", 1),
        ("poweredOn", 2),
    ])
    def test_power_state_ordinal(self, fetcher, state, ordinal):
        found = [(vim.VirtualMachine("vm-1"), {"name": "web01", "summary": vm_summary(state)})]

        attrs, _ = fetch_with(fetcher, EntityType.VIRTUAL_MACHINE, found)
        vm = attrs.lookup(make_entity("web01", EntityType.VIRTUAL_MACHINE, moid="vm-1"))

        assert vm["vm.powerState"] == ordinal

    def test_quick_stats_and_config(self, fetcher):
        summary = vm_summary(overallCpuUsage=350, guestMemoryUsage=1024, swappedMemory=None)
        found = [(vim.VirtualMachine("vm-1"), {"name": "web01", "summary": summary})]

        attrs, _ = fetch_with(fetcher, EntityType.VIRTUAL_MACHINE, found)
        vm = attrs.lookup(make_entity("web01", EntityType.VIRTUAL_MACHINE, moid="vm-1"))

        assert vm["vm.guestFullName"] == "Ubuntu Linux (64-bit)"
        assert vm["vm.memorySize"] == 4096
        assert vm["vm.overallCpuUsage"] == 350
        assert vm["vm.guestMemoryUsage"] == 1024
        assert "vm.swappedMemory" not in vm


class TestOtherTypes:

    def test_resource_pool_name(self, fetcher):
        found = [(vim.ResourcePool("resgroup-1"), {"name": "Resources", "summary": SimpleNamespace()})]

        attrs, _ = fetch_with(fetcher, EntityType.RESOURCE_POOL, found)

        assert attrs.lookup(make_entity("Resources", EntityType.RESOURCE_POOL, moid="resgroup-1")) == {
            "name": "Resources"
        }

    def test_cluster_has_no_round_trip(self, fetcher):
        attrs, retrieve = fetch_with(fetcher, EntityType.CLUSTER, [])

        assert len(attrs) == 0
        retrieve.assert_not_called()

    def test_retrieval_failure_raises(self, fetcher):
        with patch(
            "vsphere_agent.collectors.summary.retrieve_properties",
            side_effect=RuntimeError("NotAuthenticated")
        ):
            with pytest.raises(FetchFailed, match="NotAuthenticated"):
                fetcher.fetch(MagicMock(), EntityType.HOST)


class TestSummaryAttributeSet:

    def test_same_name_different_ids(self):
        attrs = SummaryAttributeSet()
        attrs.add("vm-1", "dup", {"vm.memorySize": 1024})
        attrs.add("vm-2", "dup", {"vm.memorySize": 2048})

        first = make_entity("dup", EntityType.VIRTUAL_MACHINE, moid="vm-1")
        second = make_entity("dup", EntityType.VIRTUAL_MACHINE, moid="vm-2")

        assert attrs.lookup(first) == {"vm.memorySize": 1024}
        assert attrs.lookup(second) == {"vm.memorySize": 2048}

    def test_name_fallback_and_miss(self):
        attrs = SummaryAttributeSet()
        attrs.add(None, "esx01", {"hs.totalCPU": 4000})

        assert attrs.lookup(make_entity("esx01", moid="host-9")) == {"hs.totalCPU": 4000}
        assert attrs.lookup(make_entity("esx02")) == {}

    def test_lookup_returns_copy(self):
        attrs = SummaryAttributeSet()
        attrs.add("host-1", "esx01", {"hs.totalCPU": 4000})
        entity = make_entity("esx01", moid="host-1")

        attrs.lookup(entity)["cpu.usage.average"] = 55

        assert attrs.lookup(entity) == {"hs.totalCPU": 4000}
