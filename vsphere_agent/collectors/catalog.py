"""Performance counter catalog: counter names <-> session-scoped counter ids."""

import logging
from typing import Dict, Iterator, Optional

from .errors import CatalogUnavailable


def counter_name(group_key: str, name_key: str, rollup_type) -> str:
    """Canonical counter name, e.g. ('cpu', 'usage', 'average') -> 'cpu.usage.average'."""
    return f"{group_key}.{name_key}.{rollup_type}"


class CounterCatalog:
    """
    Bidirectional mapping between counter names and numeric counter ids.

    Counter ids are assigned by the target and are only meaningful for the
    session and datacenter the catalog was built for, so a new catalog is
    built for every datacenter in a collection pass.
    """

    def __init__(self):
        self.name_to_id: Dict[str, int] = {}
        self.id_to_name: Dict[int, str] = {}

    def add(self, name: str, counter_id: int) -> bool:
        """
        Insert one counter in both directions.

        Returns:
            bool: False if the name or the id is already taken (first entry wins)
        """
        if name in self.name_to_id or counter_id in self.id_to_name:
            return False
        self.name_to_id[name] = counter_id
        self.id_to_name[counter_id] = name
        return True

    def id_for(self, name: str) -> Optional[int]:
        return self.name_to_id.get(name)

    def name_for(self, counter_id: int) -> Optional[str]:
        return self.id_to_name.get(counter_id)

    def __len__(self) -> int:
        return len(self.name_to_id)

    def __contains__(self, name: str) -> bool:
        return name in self.name_to_id

    def __iter__(self) -> Iterator[str]:
        return iter(self.name_to_id)


def build_catalog(
    perf_manager,
    logger: logging.Logger,
    log_available_counters: bool = False
) -> CounterCatalog:
    """
    Build a counter catalog from the performance manager's counter list.

    The full counter list is read in one round trip. A target advertising no
    counters yields an empty catalog.

    Args:
        perf_manager: vim.PerformanceManager
        logger: Logger instance
        log_available_counters: Log every counter name with its collection level

    Returns:
        CounterCatalog: Catalog for the current session

    Raises:
        CatalogUnavailable: If the counter metadata cannot be retrieved
    """
    try:
        perf_counters = list(perf_manager.perfCounter or [])
    except Exception as e:
        logger.error(f"Could not retrieve performance counters: {e}")
        raise CatalogUnavailable(str(e)) from e

    if log_available_counters:
        logger.info(f"Available performance counters: {len(perf_counters)}")

    catalog = CounterCatalog()
    for counter in perf_counters:
        try:
            name = counter_name(counter.groupInfo.key, counter.nameInfo.key, counter.rollupType)
            counter_id = int(counter.key)
        except (AttributeError, TypeError, ValueError) as e:
            logger.warning(f"Skipping malformed performance counter {counter!r}: {e}")
            continue
        if not catalog.add(name, counter_id):
            logger.debug(f"Duplicate counter {name} [{counter.key}] ignored")
        if log_available_counters:
            logger.info(f"{name} [{counter.level}]")

    logger.debug(f"Counter catalog built with {len(catalog)} counter(s)")
    return catalog
