"""Regex-based extraction of metric values from fetched text."""

import logging
from datetime import datetime
from typing import Optional, Union

from ..errors import ExtractionError, NoMatchError, ValueParseError
from .base import MetricDescriptor, Sample, ValueKind

logger = logging.getLogger(__name__)

INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1


def parse_value(text: str, value_kind: ValueKind, metric_name: str) -> Union[int, float]:
    """Parse captured text as a 64-bit int or float."""
    text = text.strip()
    try:
        if "_" in text or not text.isascii():
            # Python accepts digit separators and non-ASCII digits, numeric text on the wire does not
            raise ValueError("not plain ASCII numeric text")
        if value_kind == ValueKind.INTEGER:
            value = int(text, 10)
            if not INT64_MIN <= value <= INT64_MAX:
                raise ValueError("out of int64 range")
            return value
        return float(text)
    except ValueError:
        raise ValueParseError(metric_name, text, value_kind.value) from None


def find_first_match(lines: list[str], metric: MetricDescriptor) -> Optional[str]:
    """Capture group 1 of the first line matching the metric's regex."""
    for line in lines:
        match = metric.regex.search(line)
        if match is not None:
            # An unmatched optional group counts as empty text
            return match.group(1) or ""
    return None


def extract_sample(
    lines: list[str], metric: MetricDescriptor, timestamp: datetime
) -> Sample:
    """Extract one metric's sample, raising ExtractionError on failure."""
    captured = find_first_match(lines, metric)
    if captured is None:
        raise NoMatchError(metric.name, metric.pattern)

    return Sample(
        name=metric.name,
        timestamp=timestamp,
        value=parse_value(captured, metric.value_kind, metric.name),
        value_kind=metric.value_kind,
        metric_type=metric.metric_type,
    )


def extract_samples(
    text: str,
    metrics: tuple[MetricDescriptor, ...],
    timestamp: datetime,
) -> tuple[list[Sample], list[ExtractionError]]:
    """
    Extract one sample per metric, in configuration order.

    A metric that cannot be extracted keeps its slot as a placeholder sample
    with ``value=None`` and its error is returned alongside.

    Returns:
        (samples, errors) with ``len(samples) == len(metrics)``
    """
    lines = text.split("\n")
    samples: list[Sample] = []
    errors: list[ExtractionError] = []

    for metric in metrics:
        try:
            samples.append(extract_sample(lines, metric, timestamp))
        except ExtractionError as e:
            logger.debug(f"Extraction failed for {metric.name}: {e}")
            errors.append(e)
            samples.append(Sample(
                name=metric.name,
                timestamp=timestamp,
                value=None,
                value_kind=metric.value_kind,
                metric_type=metric.metric_type,
            ))

    return samples, errors
