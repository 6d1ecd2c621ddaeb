"""Collector configuration loader - JSON collector files to validated SourceConfig."""

import json
import logging
import re
from pathlib import Path
from typing import Any, Union

from ..errors import ConfigError, ConfigErrorKind
from .base import (
    DEFAULT_POLLING_FREQUENCY,
    MetricDescriptor,
    MetricType,
    SourceConfig,
    SourceKind,
    ValueKind,
)

logger = logging.getLogger(__name__)

# Exposition format metric identifier
METRIC_NAME_RE = re.compile(r"^[a-zA-Z_:][a-zA-Z0-9_:]*$")

UNITS = {
    "integer": ValueKind.INTEGER,
    "int": ValueKind.INTEGER,
    "float": ValueKind.FLOAT,
}


def parse_source_kind(kind: Union[str, SourceKind]) -> SourceKind:
    """Resolve a source kind name, case-insensitively."""
    if isinstance(kind, SourceKind):
        return kind
    for candidate in SourceKind:
        if str(kind).lower() == candidate.value.lower():
            return candidate
    raise ConfigError(
        ConfigErrorKind.UNSUPPORTED_SOURCE_KIND,
        f"No support for source kind {kind!r}",
        context={"kind": kind},
    )


def _first(data: dict, *keys: str, default: Any = None) -> Any:
    """Return the value of the first key present in ``data``."""
    for key in keys:
        if key in data:
            return data[key]
    return default


def _frequency(value: Any, where: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ConfigError(
            ConfigErrorKind.MALFORMED,
            f"Polling frequency for {where} must be a non-negative integer, got {value!r}",
        )
    return value


def _metric_type(value: Any, name: str) -> MetricType:
    try:
        return MetricType(value)
    except ValueError:
        raise ConfigError(
            ConfigErrorKind.INVALID_METRIC_TYPE,
            f"Unexpected metric type {value!r} for metric '{name}'",
            context={"metric": name},
        ) from None


def _value_kind(value: Any, name: str) -> ValueKind:
    kind = UNITS.get(value) if isinstance(value, str) else None
    if kind is None:
        raise ConfigError(
            ConfigErrorKind.INVALID_UNITS,
            f"Unexpected value of 'units' {value!r} for metric '{name}'",
            context={"metric": name},
        )
    return kind


def compile_pattern(pattern: Any, name: str) -> re.Pattern:
    """Compile a metric's extraction regex; it needs one capture group."""
    if not isinstance(pattern, str) or not pattern:
        raise ConfigError(
            ConfigErrorKind.INVALID_PATTERN,
            f"Missing regexp for metric '{name}'",
            context={"metric": name},
        )
    try:
        regex = re.compile(pattern)
    except re.error as e:
        raise ConfigError(
            ConfigErrorKind.INVALID_PATTERN,
            f"Invalid regexp {pattern} for metric {name}: {e}",
            context={"metric": name, "pattern": pattern},
        ) from e
    if regex.groups < 1:
        raise ConfigError(
            ConfigErrorKind.INVALID_PATTERN,
            f"Regexp {pattern} for metric {name} has no capture group",
            context={"metric": name, "pattern": pattern},
        )
    return regex


def _parse_metric(entry: Any, kind: SourceKind, source_frequency: int) -> MetricDescriptor:
    if not isinstance(entry, dict):
        raise ConfigError(ConfigErrorKind.MALFORMED, f"Metric entry must be an object, got {entry!r}")

    name = entry.get("name")
    if not isinstance(name, str) or not name:
        raise ConfigError(ConfigErrorKind.MALFORMED, f"Metric entry without a name: {entry!r}")

    metric_type = _metric_type(_first(entry, "metricType", "metric_type", default="gauge"), name)
    default_units = "float" if kind == SourceKind.PROMETHEUS else "integer"
    value_kind = _value_kind(entry.get("units", default_units), name)
    frequency = _frequency(
        _first(entry, "pollingFrequency", "polling_frequency", default=source_frequency),
        f"metric '{name}'",
    )

    if kind == SourceKind.PROMETHEUS:
        # The metric name is its own pattern in exposition text
        if not METRIC_NAME_RE.match(name):
            raise ConfigError(
                ConfigErrorKind.INVALID_PATTERN,
                f"Metric name {name!r} is not a valid exposition metric name",
                context={"metric": name},
            )
        return MetricDescriptor(
            name=name,
            metric_type=metric_type,
            value_kind=value_kind,
            pattern=name,
            polling_frequency=frequency,
        )

    pattern = entry.get("regex")
    return MetricDescriptor(
        name=name,
        metric_type=metric_type,
        value_kind=value_kind,
        pattern=pattern,
        polling_frequency=frequency,
        regex=compile_pattern(pattern, name),
    )


def parse_source_config(data: Any, kind: Union[str, SourceKind]) -> SourceConfig:
    """Validate an already-decoded collector config dictionary."""
    source_kind = parse_source_kind(kind)

    if not isinstance(data, dict):
        raise ConfigError(ConfigErrorKind.MALFORMED, "Collector config must be a JSON object")

    endpoint = _first(data, "endpoint", "source")
    if not isinstance(endpoint, str) or not endpoint:
        raise ConfigError(ConfigErrorKind.MALFORMED, "Collector config has no endpoint")

    frequency = _frequency(
        _first(
            data,
            "pollingFrequency",
            "polling_frequency",
            "PollingFrequency",
            default=DEFAULT_POLLING_FREQUENCY,
        ),
        "source",
    )

    entries = _first(data, "metricsConfig", "metrics_config", default=[])
    if not isinstance(entries, list):
        raise ConfigError(ConfigErrorKind.MALFORMED, "'metricsConfig' must be a list")
    if not entries:
        raise ConfigError(ConfigErrorKind.EMPTY_METRIC_LIST, "No metrics provided in config")

    metrics = tuple(_parse_metric(entry, source_kind, frequency) for entry in entries)

    logger.debug(f"Loaded {source_kind.value} config for {endpoint} with {len(metrics)} metrics")
    return SourceConfig(
        kind=source_kind,
        endpoint=endpoint,
        metrics=metrics,
        polling_frequency=frequency,
    )


def load_source_config(raw: Union[bytes, str], kind: Union[str, SourceKind]) -> SourceConfig:
    """Decode JSON collector config bytes and validate them."""
    try:
        data = json.loads(raw)
    except (ValueError, TypeError) as e:
        raise ConfigError(ConfigErrorKind.MALFORMED, f"Invalid JSON in collector config: {e}") from e
    return parse_source_config(data, kind)


def load_source_config_file(path: Union[str, Path], kind: Union[str, SourceKind]) -> SourceConfig:
    """Read a JSON collector config file and validate it."""
    try:
        raw = Path(path).read_bytes()
    except OSError as e:
        raise ConfigError(ConfigErrorKind.MALFORMED, f"Cannot read collector config {path}: {e}") from e
    return load_source_config(raw, kind)
