"""Collection workflow: drives one performance collection pass over datacenters."""

import asyncio
import logging
from typing import Any, Dict, Iterable, List

from .collectors.base import safe_collect
from .collectors.catalog import CounterCatalog, build_catalog
from .collectors.correlator import SampleCorrelator
from .collectors.enumerator import EntityEnumerator
from .collectors.errors import CatalogUnavailable, EnumerationFailed, FetchFailed, PartitionNotFound
from .collectors.performance import PerformanceQueryExecutor
from .collectors.summary import SummaryAttributeFetcher, SummaryAttributeSet
from .config.models import AgentConfig
from .services.metric_sink import MetricSink
from .utils.logger import setup_logger
from .utils.metrics import (
    CollectionReport,
    EntityType,
    ManagedEntityRef,
    MetricRecord,
    MetricSample,
)


def merge_record(
    entity: ManagedEntityRef,
    summary_attributes: Dict[str, Any],
    samples: Iterable[MetricSample]
) -> MetricRecord:
    """
    Merge an instance's summary attributes with its correlated samples.

    Samples win over summary attributes sharing the same key.
    """
    attributes = {"objectName": entity.name}
    attributes.update(summary_attributes)
    for sample in samples:
        attributes[sample.counter_name] = sample.value
    return MetricRecord(
        event_type=entity.entity_type.event_type,
        entity=entity,
        attributes=attributes
    )


class CollectionWorkflow:
    """
    Orchestrates a collection pass.

    For every selected datacenter, in order:
    1. build the counter catalog
    2. fetch summary attributes of every entity type
    3. per entity type: enumerate, resolve counters, query, correlate,
       merge and emit one record per instance

    Failures are contained to the instance, entity type or datacenter they
    affect; the pass always emits whatever it could collect.
    """

    def __init__(
        self,
        content: Any,
        config: AgentConfig,
        sink: MetricSink,
        logger: logging.Logger = None
    ):
        """
        Initialize collection workflow.

        Args:
            content: vim.ServiceContent of the connected service instance
            config: Agent configuration
            sink: Sink receiving emitted records
            logger: Optional logger instance
        """
        self.content = content
        self.config = config
        self.sink = sink
        self.logger = logger or setup_logger("workflow")

        self.enumerator = EntityEnumerator(content, self.logger)
        self.summary_fetcher = SummaryAttributeFetcher(content, self.logger)
        self.executor = PerformanceQueryExecutor(
            content,
            self.logger,
            max_concurrent_queries=config.collection.max_concurrent_queries
        )
        self.correlator = SampleCorrelator(content, self.logger)

    async def run(self, selector: str = None) -> CollectionReport:
        """
        Execute one collection pass.

        Args:
            selector: Datacenter name, "default" or "all"; defaults to the configured one

        Returns:
            CollectionReport: Pass outcome
        """
        selector = selector or self.config.collection.datacenter
        report = CollectionReport()
        loop = asyncio.get_running_loop()

        try:
            partitions = await loop.run_in_executor(None, self.enumerator.resolve_partitions, selector)
        except PartitionNotFound as e:
            self.logger.error(f"Unable to resolve datacenter selector '{selector}': {e}")
            report.failed_partitions[selector] = str(e)
            return report

        self.logger.info(f"Collecting {len(partitions)} datacenter(s) for selector '{selector}'")

        for datacenter, name in partitions:
            report.partitions.append(name)
            try:
                report.records_emitted += await self.collect_partition(datacenter, name, report)
            except CatalogUnavailable as e:
                self.logger.error(f"Skipping performance collection for datacenter [{name}]: {e}")
                report.failed_partitions[name] = str(e)
            except Exception as e:
                self.logger.error(f"Collection failed for datacenter [{name}]: {e}", exc_info=True)
                report.failed_partitions[name] = f"{type(e).__name__}: {e}"

        self.logger.info(
            f"Collection pass complete: {report.records_emitted} record(s), "
            f"{len(report.failed_partitions)} failed datacenter(s)"
        )
        return report

    async def collect_partition(self, datacenter: Any, name: str, report: CollectionReport) -> int:
        """
        Collect every entity type of one datacenter.

        Returns:
            int: Number of records emitted

        Raises:
            CatalogUnavailable: If the counter catalog cannot be built
        """
        self.logger.info(f"Populating metrics for datacenter [{name}]")
        loop = asyncio.get_running_loop()

        catalog = await loop.run_in_executor(
            None,
            build_catalog,
            self.content.perfManager,
            self.logger,
            self.config.collection.log_available_counters
        )

        summaries = {}
        for entity_type in EntityType:
            summaries[entity_type] = await self._fetch_summary(datacenter, entity_type)

        emitted = 0
        for entity_type in EntityType:
            records = await self._collect_entity_type(
                datacenter, name, entity_type, catalog, summaries[entity_type], report
            )
            emitted += len(records)
        return emitted

    async def _fetch_summary(self, datacenter: Any, entity_type: EntityType) -> SummaryAttributeSet:
        """Summary attributes of one type; an empty set if the fetch fails."""
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, self.summary_fetcher.fetch, datacenter, entity_type)
        except FetchFailed as e:
            self.logger.warning(f"Failed to fetch summary attributes, continuing without them: {e}")
            return SummaryAttributeSet()

    @safe_collect(default_factory=list)
    async def _collect_entity_type(
        self,
        datacenter: Any,
        datacenter_name: str,
        entity_type: EntityType,
        catalog: CounterCatalog,
        summary_set: SummaryAttributeSet,
        report: CollectionReport
    ) -> List[MetricRecord]:
        """Enumerate, query, correlate, merge and emit the instances of one entity type."""
        loop = asyncio.get_running_loop()
        try:
            entities = await loop.run_in_executor(None, self.enumerator.list, datacenter, entity_type)
        except EnumerationFailed as e:
            self.logger.warning(f"Skipping {entity_type.label} in datacenter [{datacenter_name}]: {e}")
            return []

        if not entities:
            self.logger.debug(f"No {entity_type.label} instances in datacenter [{datacenter_name}]")
            return []

        request = self.executor.resolve(
            catalog,
            self.config.counters.for_entity(entity_type),
            self.config.collection.instance_filter(entity_type),
            entity_type.label
        )
        if request.unresolved:
            unresolved = report.unresolved_counters.setdefault(entity_type.value, [])
            unresolved.extend(n for n in request.unresolved if n not in unresolved)

        series_by_entity = await self.executor.query_many(entities, request)

        records = []
        for entity in entities:
            samples = self.correlator.correlate(catalog, entity, series_by_entity.get(entity.key, []))
            record = merge_record(entity, summary_set.lookup(entity), samples)
            self.sink.emit(datacenter_name, record)
            records.append(record)

        self.logger.info(
            f"Emitted {len(records)} {entity_type.label} record(s) for datacenter [{datacenter_name}]"
        )
        return records
