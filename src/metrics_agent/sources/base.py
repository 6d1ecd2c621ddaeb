"""Base interface and data model shared by all collectors."""

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Optional, Union

import httpx

from ..errors import CollectorError, ConfigError, ConfigErrorKind


DEFAULT_POLLING_FREQUENCY = 15  # seconds
MIN_COLLECTION_INTERVAL = timedelta(microseconds=1)


class MetricType(str, Enum):
    """Declared types of metrics."""
    GAUGE = "gauge"
    COUNTER = "counter"


class ValueKind(str, Enum):
    """Numeric kind of a metric value."""
    INTEGER = "integer"
    FLOAT = "float"


class SourceKind(str, Enum):
    """Source protocols a collector can speak."""
    REST = "REST"
    PROMETHEUS = "Prometheus"
    GENERIC = "generic"


@dataclass(frozen=True)
class MetricDescriptor:
    """How to find and classify one metric in a page."""

    name: str
    metric_type: MetricType = MetricType.GAUGE
    value_kind: ValueKind = ValueKind.INTEGER
    pattern: str = ""
    polling_frequency: int = DEFAULT_POLLING_FREQUENCY  # seconds
    regex: Optional[re.Pattern] = field(default=None, compare=False, repr=False)


@dataclass(frozen=True)
class SourceConfig:
    """A validated metrics source: one endpoint and its metrics, in output order."""

    kind: SourceKind
    endpoint: str
    metrics: tuple[MetricDescriptor, ...]
    polling_frequency: int = DEFAULT_POLLING_FREQUENCY  # seconds

    def descriptor(self, name: str) -> Optional[MetricDescriptor]:
        """Look up a configured metric by name."""
        for metric in self.metrics:
            if metric.name == name:
                return metric
        return None


@dataclass(frozen=True)
class Sample:
    """A single metric sample from one poll.

    ``value`` is an int or a float as told by ``value_kind``. It is None only
    for a REST placeholder whose extraction failed.
    """

    name: str
    timestamp: datetime
    value: Union[int, float, None]
    value_kind: ValueKind = ValueKind.FLOAT
    metric_type: MetricType = MetricType.GAUGE
    label: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.value is not None

    def to_dict(self) -> dict[str, Any]:
        """Convert to a plain dictionary."""
        return {
            "name": self.name,
            "value": self.value,
            "value_kind": self.value_kind.value,
            "timestamp": self.timestamp.isoformat(),
            "type": self.metric_type.value,
            "label": self.label,
        }


@dataclass(frozen=True)
class MetricSpec:
    """Shape of a metric found by Prometheus discovery, without a value."""

    name: str
    metric_type: str
    value_format: str = "float"
    units: str = ""


Samples = Union[list[Sample], dict[str, list[Sample]]]


@dataclass
class PollResult:
    """Result from one poll of a collector.

    ``success`` is False when the poll was aborted (transport failure, or a
    fatal Prometheus value error). A successful poll may still carry an
    ``AggregatedError`` listing the metrics that could not be extracted.
    """

    source: str
    next_collection_time: datetime
    samples: Samples = field(default_factory=list)
    error: Optional[CollectorError] = None
    success: bool = True
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    duration_ms: float = 0.0

    @property
    def partial(self) -> bool:
        """True when the poll produced samples but some metrics failed."""
        return self.success and self.error is not None


def next_collection_time(start: datetime, seconds: int) -> datetime:
    """Next poll time, always strictly after ``start``."""
    return start + max(timedelta(seconds=seconds), MIN_COLLECTION_INTERVAL)


class Collector(ABC):
    """
    Abstract base class for all collectors.

    A collector is built from a validated SourceConfig and fails fast on a
    config of the wrong kind. ``collect`` only validates the fetched data.

    Example:
        @register_source("REST")
        class RestCollector(Collector):
            source_kind = SourceKind.REST

            def collect(self) -> PollResult:
                ...
    """

    # Override in subclass - used for registration
    source_kind: SourceKind = SourceKind.GENERIC

    def __init__(
        self,
        name: str,
        config: SourceConfig,
        client: Optional[httpx.Client] = None,
        timeout: float = 30.0,
    ):
        if config.kind != self.source_kind:
            raise ConfigError(
                ConfigErrorKind.UNSUPPORTED_SOURCE_KIND,
                f"{type(self).__name__} needs a {self.source_kind.value} config, got {config.kind.value}",
            )
        self.config = config
        self._name = name
        self._client = client
        self._owns_client = client is None
        self.timeout = timeout

    @property
    def name(self) -> str:
        return self._name

    @abstractmethod
    def collect(self, *args, **kwargs) -> PollResult:
        """
        Poll the source once.

        Returns:
            PollResult with samples, the aggregated error and the next
            collection time
        """

    def next_collection_time(self, start: datetime) -> datetime:
        """Next poll time for this source. Override for other intervals."""
        return next_collection_time(start, self.config.polling_frequency)

    def _get_client(self) -> httpx.Client:
        """Get or create the HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.Client(timeout=self.timeout)
            self._owns_client = True
        return self._client

    def health_check(self) -> bool:
        """Check if the endpoint answers with a 2xx status."""
        try:
            response = self._get_client().get(self.config.endpoint)
            return response.is_success
        except httpx.HTTPError:
            return False

    def close(self):
        """Close the HTTP client if this collector created it."""
        if self._client is not None and self._owns_client:
            self._client.close()
        self._client = None

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
