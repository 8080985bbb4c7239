"""Real-time performance queries against the vSphere performance manager."""

import asyncio
import logging
from typing import Any, Dict, Iterable, List

from pyVmomi import vim

from ..utils.metrics import CounterRequest, ManagedEntityRef
from .base import BaseCollector
from .catalog import CounterCatalog
from .errors import QueryFailed


# ESXi samples performance data every 20 seconds ("real-time" data)
REALTIME_INTERVAL_ID = 20
MAX_SAMPLES = 1


class PerformanceQueryExecutor(BaseCollector):
    """
    Issues one real-time performance query per entity instance.

    Queries for the instances of one entity type run concurrently on the
    default thread pool, with at most max_concurrent_queries in flight.
    """

    def __init__(self, content: Any, logger: logging.Logger, max_concurrent_queries: int = 8):
        """
        Initialize query executor.

        Args:
            content: vim.ServiceContent
            logger: Logger instance
            max_concurrent_queries: Cap on in-flight queries against the target
        """
        super().__init__(content, logger)
        self.max_concurrent_queries = max_concurrent_queries

    def resolve(
        self,
        catalog: CounterCatalog,
        counter_names: Iterable[str],
        instance_filter: str = "*",
        entity_label: str = ""
    ) -> CounterRequest:
        """
        Resolve counter names to (counter id, instance filter) pairs.

        Names missing from the catalog are recorded as unresolved and logged.
        Duplicate names are requested once.
        """
        request = CounterRequest()
        seen = set()
        for name in counter_names:
            if name in seen:
                continue
            seen.add(name)

            counter_id = catalog.id_for(name)
            if counter_id is None:
                self.logger.warning(
                    f"Unable to find counter id for [{name}] of managed object [{entity_label}]"
                )
                request.unresolved.append(name)
            else:
                request.metric_ids.append((counter_id, instance_filter))
        return request

    def build_query_spec(self, entity: ManagedEntityRef, request: CounterRequest):
        """Single-sample real-time query specification for one instance."""
        return vim.PerformanceManager.QuerySpec(
            entity=entity.reference,
            maxSample=MAX_SAMPLES,
            intervalId=REALTIME_INTERVAL_ID,
            metricId=[
                vim.PerformanceManager.MetricId(counterId=counter_id, instance=instance)
                for counter_id, instance in request.metric_ids
            ]
        )

    def query(self, entity: ManagedEntityRef, request: CounterRequest) -> List[Any]:
        """
        Query the latest real-time sample of the requested counters for one instance.

        Args:
            entity: Instance to query
            request: Resolved counters

        Returns:
            List of returned metric series, empty when the target has no data

        Raises:
            QueryFailed: If the query call fails
        """
        query_spec = self.build_query_spec(entity, request)
        try:
            result = self.content.perfManager.QueryPerf(querySpec=[query_spec])
        except Exception as e:
            raise QueryFailed(f"{entity.entity_type.label} [{entity.name}]: {e}") from e

        if not result:
            self.logger.warning(
                f"No results returned from query execution for {entity.entity_type.label} [{entity.name}]"
            )
            return []

        return list(result[0].value or [])

    async def query_many(
        self,
        entities: List[ManagedEntityRef],
        request: CounterRequest
    ) -> Dict[str, List[Any]]:
        """
        Query every instance with bounded concurrency.

        A failed query is logged and that instance maps to an empty list;
        sibling queries are not affected. An empty request issues no queries.

        Returns:
            dict: entity key -> returned series
        """
        if not entities or not request:
            return {entity.key: [] for entity in entities}

        semaphore = asyncio.Semaphore(self.max_concurrent_queries)
        loop = asyncio.get_running_loop()

        async def _query_one(entity: ManagedEntityRef) -> List[Any]:
            async with semaphore:
                return await loop.run_in_executor(None, self.query, entity, request)

        results = await asyncio.gather(
            *[_query_one(entity) for entity in entities],
            return_exceptions=True
        )

        series_by_entity = {}
        for entity, result in zip(entities, results):
            if isinstance(result, Exception):
                self.logger.warning(
                    f"Error executing performance query for {entity.entity_type.label} [{entity.name}]: {result}"
                )
                series_by_entity[entity.key] = []
            else:
                series_by_entity[entity.key] = result
        return series_by_entity
