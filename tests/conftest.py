"""Shared pytest configuration and fixtures."""

import logging
from types import SimpleNamespace
from unittest.mock import Mock

import pytest
from pyVmomi import vim

from vsphere_agent.collectors.catalog import CounterCatalog
from vsphere_agent.utils.metrics import EntityType, ManagedEntityRef


def make_counter(key, group, name, rollup="average", level=1):
    """PerfCounterInfo look-alike."""
    return SimpleNamespace(
        key=key,
        groupInfo=SimpleNamespace(key=group),
        nameInfo=SimpleNamespace(key=name),
        rollupType=rollup,
        level=level,
    )


def make_series(counter_id, values, instance=""):
    """IntSeries with the given counter id and values."""
    series = Mock(spec=vim.PerformanceManager.IntSeries)
    series.id = SimpleNamespace(counterId=counter_id, instance=instance)
    series.value = list(values)
    return series


def make_entity(name, entity_type=EntityType.HOST, moid=None):
    """ManagedEntityRef backed by a real (unconnected) managed object reference."""
    vim_type = {
        EntityType.HOST: vim.HostSystem,
        EntityType.VIRTUAL_MACHINE: vim.VirtualMachine,
        EntityType.RESOURCE_POOL: vim.ResourcePool,
        EntityType.DATASTORE: vim.Datastore,
        EntityType.CLUSTER: vim.ClusterComputeResource,
    }[entity_type]
    return ManagedEntityRef(name=name, reference=vim_type(moid or f"{name}-moid"), entity_type=entity_type)


@pytest.fixture
def logger():
    """Propagating logger so caplog sees component records."""
    return logging.getLogger("vsphere_agent_tests")


@pytest.fixture
def perf_counters():
    """Counter metadata as advertised by a small ESXi host."""
    return [
        make_counter(2, "cpu", "usage", "average"),
        make_counter(6, "cpu", "usagemhz", "average"),
        make_counter(24, "mem", "usage", "average", level=1),
        make_counter(98, "mem", "consumed", "average", level=1),
        make_counter(143, "net", "usage", "average", level=1),
        make_counter(155, "sys", "uptime", "latest", level=1),
    ]


@pytest.fixture
def catalog(perf_counters):
    """Catalog built from perf_counters."""
    catalog = CounterCatalog()
    for counter in perf_counters:
        catalog.add(f"{counter.groupInfo.key}.{counter.nameInfo.key}.{counter.rollupType}", counter.key)
    return catalog
