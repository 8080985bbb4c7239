"""Pydantic configuration models for the vSphere performance agent."""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Dict, List, Optional

from ..utils.metrics import EntityType


DEFAULT_HOST_COUNTERS = [
    "cpu.usage.average",
    "cpu.usagemhz.average",
    "cpu.ready.summation",
    "mem.usage.average",
    "mem.consumed.average",
    "mem.active.average",
    "mem.swapused.average",
    "disk.usage.average",
    "disk.maxTotalLatency.latest",
    "net.usage.average",
    "net.received.average",
    "net.transmitted.average",
    "sys.uptime.latest",
]

DEFAULT_VM_COUNTERS = [
    "cpu.usage.average",
    "cpu.usagemhz.average",
    "cpu.ready.summation",
    "mem.usage.average",
    "mem.consumed.average",
    "mem.active.average",
    "mem.vmmemctl.average",
    "disk.usage.average",
    "disk.maxTotalLatency.latest",
    "net.usage.average",
    "sys.uptime.latest",
]


class VCenterConfig(BaseModel):
    """Connection settings for the vCenter or ESXi SDK endpoint."""
    url: str = "https://vcenter/sdk"
    username: str = ""
    password: str = ""
    insecure: bool = False  # Skip certificate chain verification
    port: Optional[int] = None  # Taken from the URL when omitted

    @field_validator('url')
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Validate URL format."""
        if not v.startswith(('http://', 'https://')):
            raise ValueError('URL must start with http:// or https://')
        return v


class CollectionConfig(BaseModel):
    """Collection pass settings."""
    datacenter: str = "default"  # datacenter name, "default" or "all"
    max_concurrent_queries: int = Field(default=8, ge=1, le=64)
    log_available_counters: bool = False
    instance_filters: Dict[str, str] = Field(default_factory=dict)

    @field_validator('datacenter')
    @classmethod
    def validate_datacenter(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError('datacenter must be a name, "default" or "all"')
        return v

    @field_validator('instance_filters')
    @classmethod
    def validate_instance_filters(cls, v: Dict[str, str]) -> Dict[str, str]:
        """Keys must be managed entity type names."""
        known = {t.value for t in EntityType}
        unknown = sorted(set(v) - known)
        if unknown:
            raise ValueError(f"Unknown entity types in instance_filters: {', '.join(unknown)}")
        return v

    def instance_filter(self, entity_type: EntityType) -> str:
        """Instance filter for an entity type; '*' selects the aggregate/default instance."""
        return self.instance_filters.get(entity_type.value, "*")


class CounterDefinitions(BaseModel):
    """Performance counter names requested per entity type."""
    model_config = ConfigDict(populate_by_name=True)

    host: List[str] = Field(default_factory=lambda: list(DEFAULT_HOST_COUNTERS), alias="Host")
    vm: List[str] = Field(default_factory=lambda: list(DEFAULT_VM_COUNTERS), alias="VM")
    resource_pool: List[str] = Field(default_factory=list, alias="ResourcePool")
    datastore: List[str] = Field(default_factory=list, alias="Datastore")
    cluster_compute_resource: List[str] = Field(default_factory=list, alias="ClusterComputeResource")

    def for_entity(self, entity_type: EntityType) -> List[str]:
        """Ordered counter names for one entity type."""
        return {
            EntityType.HOST: self.host,
            EntityType.VIRTUAL_MACHINE: self.vm,
            EntityType.RESOURCE_POOL: self.resource_pool,
            EntityType.DATASTORE: self.datastore,
            EntityType.CLUSTER: self.cluster_compute_resource,
        }[entity_type]


class MonitoringConfig(BaseModel):
    """Polling schedule configuration."""
    schedule: str = "*/5 * * * *"  # Cron syntax

    @field_validator('schedule')
    @classmethod
    def validate_cron(cls, v: str) -> str:
        """Basic cron syntax validation."""
        parts = v.split()
        if len(parts) != 5:
            raise ValueError('Cron expression must have 5 parts: minute hour day month weekday')
        return v


class AgentConfig(BaseModel):
    """Root configuration model for the agent."""
    vcenter: VCenterConfig = Field(default_factory=VCenterConfig)
    collection: CollectionConfig = Field(default_factory=CollectionConfig)
    counters: CounterDefinitions = Field(default_factory=CounterDefinitions)
    counters_file: Optional[str] = None
    monitoring: MonitoringConfig = Field(default_factory=MonitoringConfig)
