"""Point-in-time summary attributes fetched once per datacenter and entity type."""

from typing import Any, Callable, Dict, Iterator, List, Optional

from pyVmomi import vim

from ..utils.metrics import EntityType, ManagedEntityRef
from ..utils.status import PowerState
from .base import BaseCollector
from .errors import FetchFailed
from .view import VIM_TYPES, retrieve_properties


GIB = float(1 << 30)
MIB = 1024 * 1024

VM_QUICK_STATS = [
    "balloonedMemory",
    "compressedMemory",
    "consumedOverheadMemory",
    "distributedCpuEntitlement",
    "distributedMemoryEntitlement",
    "guestMemoryUsage",
    "hostMemoryUsage",
    "overallCpuDemand",
    "overallCpuUsage",
    "privateMemory",
    "sharedMemory",
    "ssdSwappedMemory",
    "staticCpuEntitlement",
    "staticMemoryEntitlement",
    "swappedMemory",
]


class SummaryAttributeSet:
    """
    Summary attributes of the instances of one entity type.

    Attributes are stored under the instance's managed object id and under
    its display name. Lookups prefer the id, so two instances sharing a
    display name keep their own attributes; the name index keeps the last
    instance seen with that name.
    """

    def __init__(self):
        self._by_key: Dict[str, Dict[str, Any]] = {}
        self._by_name: Dict[str, Dict[str, Any]] = {}

    def add(self, key: Optional[str], name: str, attributes: Dict[str, Any]) -> None:
        if key:
            self._by_key[key] = attributes
        self._by_name[name] = attributes

    def lookup(self, entity: ManagedEntityRef) -> Dict[str, Any]:
        """Attributes for an instance, empty if none were fetched."""
        attributes = self._by_key.get(entity.key)
        if attributes is None:
            attributes = self._by_name.get(entity.name, {})
        return dict(attributes)

    def names(self) -> Iterator[str]:
        return iter(self._by_name)

    def __len__(self) -> int:
        return max(len(self._by_key), len(self._by_name))


def _host_attributes(props: Dict[str, Any]) -> Dict[str, Any]:
    summary = props["summary"]
    hardware = summary.hardware
    quick_stats = summary.quickStats

    total_cpu = int(hardware.cpuMhz) * int(hardware.numCpuCores)
    used_cpu = int(quick_stats.overallCpuUsage or 0)
    memory_size = int(hardware.memorySize)
    memory_usage = int(quick_stats.overallMemoryUsage or 0) * MIB

    return {
        "hs.totalCPU": total_cpu,
        "hs.freeCPU": total_cpu - used_cpu,
        "hs.overallCPUUsage": used_cpu,
        "hs.memorySize": memory_size,
        "hs.memoryUsage": memory_usage,
        "hs.freeMemory": memory_size - memory_usage,
    }


def _datastore_attributes(props: Dict[str, Any]) -> Dict[str, Any]:
    summary = props["summary"]
    attributes = {
        "ds.type": summary.type,
        "ds.url": summary.url,
        "ds.capacity": float(summary.capacity or 0) / GIB,
        "ds.freespace": float(summary.freeSpace or 0) / GIB,
        "ds.uncommitted": float(summary.uncommitted or 0) / GIB,
        "ds.accessible": bool(summary.accessible),
    }

    info = props.get("info")
    if isinstance(info, vim.host.NasDatastoreInfo) and info.nas is not None:
        attributes["ds.nas.remoteHost"] = info.nas.remoteHost
        attributes["ds.nas.remotePath"] = info.nas.remotePath

    return attributes


def _vm_attributes(props: Dict[str, Any]) -> Dict[str, Any]:
    summary = props["summary"]
    config = summary.config
    quick_stats = summary.quickStats

    attributes = {}
    if config is not None:
        attributes["vm.guestFullName"] = config.guestFullName
        attributes["vm.memorySize"] = config.memorySizeMB

    if quick_stats is not None:
        for stat in VM_QUICK_STATS:
            value = getattr(quick_stats, stat, None)
            if value is not None:
                attributes[f"vm.{stat}"] = value

    power_state = PowerState.parse(summary.runtime.powerState if summary.runtime else None)
    if power_state is not None:
        attributes["vm.powerState"] = power_state.to_ordinal()

    # Drop unset string fields (e.g. guest OS unknown)
    return {k: v for k, v in attributes.items() if v is not None}


def _resource_pool_attributes(props: Dict[str, Any]) -> Dict[str, Any]:
    return {"name": props.get("name", "")}


EXTRACTORS: Dict[EntityType, Callable[[Dict[str, Any]], Dict[str, Any]]] = {
    EntityType.HOST: _host_attributes,
    EntityType.DATASTORE: _datastore_attributes,
    EntityType.VIRTUAL_MACHINE: _vm_attributes,
    EntityType.RESOURCE_POOL: _resource_pool_attributes,
}

PATH_SETS: Dict[EntityType, List[str]] = {
    EntityType.HOST: ["name", "summary"],
    EntityType.DATASTORE: ["name", "summary", "info"],
    EntityType.VIRTUAL_MACHINE: ["name", "summary"],
    EntityType.RESOURCE_POOL: ["name", "summary"],
}


class SummaryAttributeFetcher(BaseCollector):
    """Fetches the summary property of all instances of a type in one batched call."""

    def fetch(self, partition, entity_type: EntityType) -> SummaryAttributeSet:
        """
        Fetch and extract summary attributes for one entity type.

        Entity types without an extractor yield an empty set without a round trip.

        Args:
            partition: vim.Datacenter
            entity_type: Entity type to fetch

        Returns:
            SummaryAttributeSet

        Raises:
            FetchFailed: If the batched retrieval fails
        """
        attribute_set = SummaryAttributeSet()
        extractor = EXTRACTORS.get(entity_type)
        if extractor is None:
            return attribute_set

        try:
            found = retrieve_properties(
                self.content, partition, VIM_TYPES[entity_type], PATH_SETS[entity_type], self.logger
            )
        except Exception as e:
            raise FetchFailed(f"{entity_type.label}: {e}") from e

        for obj, props in found:
            name = props.get("name", "")
            if props.get("summary") is None:
                self.logger.debug(f"No summary for {entity_type.label} [{name}]")
                continue
            try:
                attributes = extractor(props)
            except (AttributeError, TypeError, ValueError) as e:
                self.logger.warning(f"Skipping summary of {entity_type.label} [{name}]: {e}")
                continue
            attribute_set.add(getattr(obj, "_moId", None), name, attributes)

        self.logger.debug(f"Fetched summary for {len(attribute_set)} {entity_type.label} instance(s)")
        return attribute_set
