"""Metric data structures shared by the collection pipeline."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple
import time


class EntityType(Enum):
    """Managed entity types collected per datacenter, in collection order."""

    HOST = "HostSystem"
    VIRTUAL_MACHINE = "VirtualMachine"
    RESOURCE_POOL = "ResourcePool"
    DATASTORE = "Datastore"
    CLUSTER = "ClusterComputeResource"

    @property
    def label(self) -> str:
        """Human-readable label used in log messages."""
        return {
            EntityType.HOST: "Host System",
            EntityType.VIRTUAL_MACHINE: "Virtual Machine",
            EntityType.RESOURCE_POOL: "Resource Pool",
            EntityType.DATASTORE: "Datastore",
            EntityType.CLUSTER: "Cluster Compute Resource",
        }[self]

    @property
    def event_type(self) -> str:
        """Event type label attached to emitted records."""
        return f"ESX{self.value}Sample"


@dataclass(frozen=True)
class ManagedEntityRef:
    """One managed entity instance found in a datacenter."""

    name: str
    reference: Any  # vim.ManagedEntity
    entity_type: EntityType

    @property
    def key(self) -> str:
        """Managed object id of the reference (e.g. 'host-42')."""
        return getattr(self.reference, "_moId", None) or str(self.reference)


@dataclass
class CounterRequest:
    """Counter names of one entity type resolved against a catalog."""

    metric_ids: List[Tuple[int, str]] = field(default_factory=list)
    unresolved: List[str] = field(default_factory=list)

    def __bool__(self) -> bool:
        return bool(self.metric_ids)


@dataclass(frozen=True)
class MetricSample:
    """One numeric reading of one counter for one entity."""

    entity: ManagedEntityRef
    counter_name: str
    value: float


@dataclass
class MetricRecord:
    """Final per-instance emission: summary attributes merged with samples."""

    event_type: str
    entity: ManagedEntityRef
    attributes: Dict[str, Any]
    timestamp: Optional[float] = None

    def __post_init__(self):
        """Set timestamp if not provided."""
        if self.timestamp is None:
            self.timestamp = time.time()


@dataclass
class CollectionReport:
    """Outcome of one collection pass."""

    partitions: List[str] = field(default_factory=list)
    records_emitted: int = 0
    failed_partitions: Dict[str, str] = field(default_factory=dict)
    unresolved_counters: Dict[str, List[str]] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failed_partitions
