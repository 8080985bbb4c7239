"""Metric sink: classifies record values and publishes the integration payload."""

import json
import logging
import sys
from enum import Enum
from typing import Any, Dict, List, Optional, TextIO, Tuple

from ..utils.metrics import MetricRecord


INTEGRATION_NAME = "com.vsphere.perf-agent"
INTEGRATION_VERSION = "1.0.0"
PROTOCOL_VERSION = "3"


class SourceType(Enum):
    """Value kinds understood downstream."""

    ATTRIBUTE = "attribute"
    GAUGE = "gauge"


def classify_value(value: Any) -> Optional[Tuple[SourceType, Any]]:
    """
    Classify one record value.

    Strings are attributes; booleans are gauges as 0/1; ints and floats are
    gauges. Anything else is unclassifiable.

    Returns:
        (SourceType, value to emit), or None for unsupported types
    """
    if isinstance(value, str):
        return SourceType.ATTRIBUTE, value
    if isinstance(value, bool):
        return SourceType.GAUGE, int(value)
    if isinstance(value, (int, float)):
        return SourceType.GAUGE, value
    return None


class MetricSink:
    """
    Collects emitted records grouped per datacenter entity.

    Records are classified on emit and kept until publish() writes the
    payload as one JSON document.
    """

    def __init__(self, logger: logging.Logger = None, stream: TextIO = None):
        """
        Initialize metric sink.

        Args:
            logger: Optional logger instance
            stream: Output stream for publish(), stdout by default
        """
        self.logger = logger or logging.getLogger(__name__)
        self.stream = stream
        self._entities: Dict[str, Dict[str, Any]] = {}

    def emit(self, partition_name: str, record: MetricRecord) -> Dict[str, Any]:
        """
        Classify and store one record under its datacenter.

        Values of unsupported types are logged and left out.

        Returns:
            dict: The metric set as it will be published
        """
        metric_set = {"event_type": record.event_type}
        for key, value in record.attributes.items():
            classified = classify_value(value)
            if classified is None:
                self.logger.error(
                    f"Unsupported value type {type(value).__name__} for [{key}] "
                    f"of {record.entity.entity_type.label} [{record.entity.name}]"
                )
                continue
            _, emitted = classified
            metric_set[key] = emitted

        entity = self._entities.setdefault(partition_name, {
            "entity": {"name": partition_name, "type": "datacenter"},
            "metrics": [],
            "inventory": {},
            "events": [],
        })
        entity["metrics"].append(metric_set)
        return metric_set

    @property
    def metric_sets(self) -> List[Dict[str, Any]]:
        return [m for entity in self._entities.values() for m in entity["metrics"]]

    def payload(self) -> Dict[str, Any]:
        return {
            "name": INTEGRATION_NAME,
            "protocol_version": PROTOCOL_VERSION,
            "integration_version": INTEGRATION_VERSION,
            "data": list(self._entities.values()),
        }

    def publish(self) -> None:
        """Write the payload as JSON and reset the sink."""
        stream = self.stream or sys.stdout
        json.dump(self.payload(), stream)
        stream.write("\n")
        stream.flush()
        self.logger.info(f"Published {len(self.metric_sets)} metric set(s)")
        self.reset()

    def reset(self) -> None:
        """Drop every record collected since the last publish."""
        self._entities = {}
