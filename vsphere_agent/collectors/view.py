"""Batched property retrieval through a container view."""

import logging
from typing import Any, Dict, List, Tuple

from pyVmomi import vim

from ..utils.metrics import EntityType


VIM_TYPES = {
    EntityType.HOST: vim.HostSystem,
    EntityType.VIRTUAL_MACHINE: vim.VirtualMachine,
    EntityType.RESOURCE_POOL: vim.ResourcePool,
    EntityType.DATASTORE: vim.Datastore,
    EntityType.CLUSTER: vim.ClusterComputeResource,
}

MAX_OBJECTS_PER_PAGE = 1000


def retrieve_properties(
    content,
    container,
    vim_type,
    path_set: List[str],
    logger: logging.Logger
) -> List[Tuple[Any, Dict[str, Any]]]:
    """
    Retrieve properties of every object of one type below a container.

    A recursive container view is created on the container and read with a
    single paginated PropertyCollector call. The view is destroyed afterwards;
    a failed destroy is logged, not raised.

    Args:
        content: vim.ServiceContent
        container: Container to search (usually a vim.Datacenter)
        vim_type: Managed object type, e.g. vim.HostSystem
        path_set: Property paths to retrieve, e.g. ["name", "summary"]
        logger: Logger instance

    Returns:
        List of (managed object, {property path: value}) tuples
    """
    view_ref = content.viewManager.CreateContainerView(
        container=container,
        type=[vim_type],
        recursive=True
    )

    try:
        traversal_spec = vim.PropertyCollector.TraversalSpec(
            name="viewTraversal",
            type=vim.view.ContainerView,
            path="view",
            skip=False
        )
        obj_spec = vim.PropertyCollector.ObjectSpec(
            obj=view_ref,
            selectSet=[traversal_spec],
            skip=True
        )
        property_spec = vim.PropertyCollector.PropertySpec(
            type=vim_type,
            pathSet=path_set,
            all=False
        )
        filter_spec = vim.PropertyCollector.FilterSpec(
            objectSet=[obj_spec],
            propSet=[property_spec]
        )

        pc = content.propertyCollector
        options = vim.PropertyCollector.RetrieveOptions(maxObjects=MAX_OBJECTS_PER_PAGE)

        result = pc.RetrievePropertiesEx(specSet=[filter_spec], options=options)
        objects = []
        while result is not None:
            objects.extend(result.objects or [])
            if not result.token:
                break
            result = pc.ContinueRetrievePropertiesEx(token=result.token)

        return [
            (oc.obj, {p.name: p.val for p in (oc.propSet or [])})
            for oc in objects
        ]

    finally:
        try:
            view_ref.Destroy()
        except Exception as e:
            logger.error(f"Failed to destroy container view: {e}")
