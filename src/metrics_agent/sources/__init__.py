"""Collectors - pluggable source protocols for extracting metrics."""

from .base import (
    Collector,
    MetricDescriptor,
    MetricSpec,
    MetricType,
    PollResult,
    Sample,
    SourceConfig,
    SourceKind,
    ValueKind,
)
from .registry import (
    SourceRegistry,
    create_collector,
    create_collector_from_file,
    get_source,
    list_sources,
    register_source,
)
from .loader import load_source_config, load_source_config_file, parse_source_config
from .rest import RestCollector
from .generic import GenericCollector
from .prometheus import PrometheusCollector

__all__ = [
    "Collector",
    "MetricDescriptor",
    "MetricSpec",
    "MetricType",
    "PollResult",
    "Sample",
    "SourceConfig",
    "SourceKind",
    "ValueKind",
    "SourceRegistry",
    "create_collector",
    "create_collector_from_file",
    "get_source",
    "list_sources",
    "register_source",
    "load_source_config",
    "load_source_config_file",
    "parse_source_config",
    "RestCollector",
    "GenericCollector",
    "PrometheusCollector",
]
