"""Datacenter resolution and managed entity enumeration."""

from typing import Any, List, Tuple

from pyVmomi import vim

from ..utils.metrics import EntityType, ManagedEntityRef
from .base import BaseCollector
from .errors import EnumerationFailed, PartitionNotFound
from .view import VIM_TYPES, retrieve_properties


class EntityEnumerator(BaseCollector):
    """Lists datacenters and the managed entities inside them."""

    def resolve_partitions(self, selector: str) -> List[Tuple[Any, str]]:
        """
        Resolve a datacenter selector.

        Args:
            selector: "default" for the only datacenter, "all" for every
                datacenter, anything else is an exact datacenter name

        Returns:
            List of (vim.Datacenter, name) tuples

        Raises:
            PartitionNotFound: If the selector matches nothing, or "default"
                is ambiguous
        """
        try:
            found = retrieve_properties(
                self.content, self.content.rootFolder, vim.Datacenter, ["name"], self.logger
            )
        except Exception as e:
            raise PartitionNotFound(f"Failed to list datacenters: {e}") from e

        datacenters = [(obj, props.get("name", "")) for obj, props in found]

        if selector == "all":
            return datacenters

        if selector == "default":
            if len(datacenters) != 1:
                raise PartitionNotFound(
                    f"Default datacenter resolves to {len(datacenters)} datacenters, "
                    "specify a datacenter name or 'all'"
                )
            return datacenters[:1]

        matches = [(dc, name) for dc, name in datacenters if name == selector]
        if not matches:
            raise PartitionNotFound(f"Datacenter '{selector}' not found")
        return matches[:1]

    def list(self, partition, entity_type: EntityType) -> List[ManagedEntityRef]:
        """
        List every instance of an entity type in a datacenter.

        Args:
            partition: vim.Datacenter
            entity_type: Entity type to list

        Returns:
            List of ManagedEntityRef, empty when the datacenter has none

        Raises:
            EnumerationFailed: If the listing call fails
        """
        try:
            found = retrieve_properties(
                self.content, partition, VIM_TYPES[entity_type], ["name"], self.logger
            )
        except Exception as e:
            raise EnumerationFailed(f"{entity_type.label}: {e}") from e

        entities = [
            ManagedEntityRef(name=props.get("name", ""), reference=obj, entity_type=entity_type)
            for obj, props in found
        ]
        self.logger.debug(f"Found {len(entities)} {entity_type.label} instance(s)")
        return entities
