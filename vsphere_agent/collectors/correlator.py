"""Correlation of returned metric series back to counter names."""

from enum import Enum
from typing import Any, Iterable, List

from pyVmomi import vim

from ..utils.metrics import ManagedEntityRef, MetricSample
from .base import BaseCollector
from .catalog import CounterCatalog


class SeriesKind(Enum):
    """Series shapes returned by QueryPerf."""

    INT = "int"
    UNRECOGNIZED = "unrecognized"

    @classmethod
    def of(cls, series: Any) -> "SeriesKind":
        if isinstance(series, vim.PerformanceManager.IntSeries):
            return cls.INT
        return cls.UNRECOGNIZED


class SampleCorrelator(BaseCollector):
    """Maps series to MetricSample using a counter catalog. Performs no I/O."""

    def correlate(
        self,
        catalog: CounterCatalog,
        entity: ManagedEntityRef,
        series_list: Iterable[Any]
    ) -> List[MetricSample]:
        """
        Convert returned series into samples.

        - unknown counter id: warning, series dropped
        - no values: skipped silently
        - one value: one sample
        - several values: warning, first value kept
        - unrecognized series type: warning, series skipped

        Args:
            catalog: Catalog the query was resolved against
            entity: Instance the series belong to
            series_list: Series returned for the instance

        Returns:
            List of MetricSample in series order
        """
        samples = []
        for series in series_list:
            kind = SeriesKind.of(series)

            if kind is SeriesKind.UNRECOGNIZED:
                self.logger.warning(
                    f"Unknown metric series type {type(series).__name__} "
                    f"for {entity.entity_type.label} [{entity.name}]"
                )
                continue

            counter_id = series.id.counterId
            name = catalog.name_for(counter_id)
            if name is None:
                self.logger.warning(
                    f"Counter id {counter_id} not in catalog "
                    f"for {entity.entity_type.label} [{entity.name}]"
                )
                continue

            values = list(series.value or [])
            if not values:
                continue
            if len(values) > 1:
                self.logger.warning(
                    f"Series {name} of {entity.entity_type.label} [{entity.name}] "
                    f"contains {len(values)} values, keeping the first"
                )

            samples.append(MetricSample(entity=entity, counter_name=name, value=values[0]))

        return samples
