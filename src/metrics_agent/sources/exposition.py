"""Parser for the Prometheus plain-text exposition format.

Two entry points over the same grammar:

- ``parse_specs`` (discovery): reads ``# HELP`` / ``# TYPE`` / first data line
  triples into MetricSpec records.
- ``parse_samples`` (collection): reads data lines of the form
  ``name{labels} value [timestamp]`` or ``name value [timestamp]`` up to the
  first blank line.
"""

import logging
import re
from datetime import datetime
from typing import Optional

from ..errors import DiscoveryError, ExtractionError
from .base import MetricSpec, MetricType, Sample, ValueKind

logger = logging.getLogger(__name__)

HELP_PREFIX = "# HELP"
TYPE_PREFIX = "# TYPE"

_WHITESPACE = re.compile(r"\s")


def _comment_data(line: str) -> str:
    """Text after ``# HELP name`` or ``# TYPE name``, words joined with '_'."""
    return "_".join(line.split()[3:])


def _metric_name(line: str) -> str:
    """Name part of a data line: up to the first '{', else the first space."""
    stop = line.find("{")
    if stop == -1:
        match = _WHITESPACE.search(line)
        stop = match.start() if match else -1
    if stop == -1:
        return ""
    return line[:stop].strip()


def parse_specs(text: str) -> list[MetricSpec]:
    """
    Discover metric shapes from exposition text, in file order.

    Units and type are copied verbatim from the comment lines.

    Raises:
        DiscoveryError: if a HELP line is not followed by a TYPE line and a
            data line carrying the metric name
    """
    lines = text.split("\n")
    specs = []

    for i, line in enumerate(lines):
        if not line.strip().startswith(HELP_PREFIX):
            continue

        if i + 2 >= len(lines):
            raise DiscoveryError("HELP line without TYPE and data lines", line_number=i + 1)

        type_line = lines[i + 1].strip()
        if not type_line.startswith(TYPE_PREFIX) or len(type_line.split()) < 4:
            raise DiscoveryError(f"Expected a TYPE line, got {type_line!r}", line_number=i + 2)

        data_line = lines[i + 2].strip()
        name = "" if data_line.startswith("#") else _metric_name(data_line)
        if not name:
            raise DiscoveryError(f"Expected a data line, got {data_line!r}", line_number=i + 3)

        specs.append(MetricSpec(
            name=name,
            metric_type=_comment_data(type_line),
            value_format="float",
            units=_comment_data(line),
        ))

    return specs


def parse_data_line(line: str, line_number: int = 0) -> tuple[str, Optional[str], float]:
    """
    Split one data line into (name, label, value).

    The label is the trimmed interior of the ``{...}`` block, or None. An
    optional trailing timestamp after the value is ignored.

    Raises:
        ExtractionError: if the line has no name or its value is not a float
    """
    brace = line.find("{")
    space = _WHITESPACE.search(line)
    label = None

    if brace != -1 and (space is None or brace < space.start()):
        close = line.rfind("}")
        if close < brace:
            raise ExtractionError(f"Unterminated label block on line {line_number}: {line!r}")
        name = line[:brace].strip()
        label = line[brace + 1:close].strip() or None
        rest = line[close + 1:]
    elif space is not None:
        name = line[:space.start()]
        rest = line[space.start() + 1:]
    else:
        raise ExtractionError(f"No value on line {line_number}: {line!r}")

    fields = rest.split()
    if not name or not fields:
        raise ExtractionError(f"Malformed data line {line_number}: {line!r}")

    try:
        if not fields[0].isascii():
            raise ValueError(fields[0])
        value = float(fields[0])
    except ValueError:
        raise ExtractionError(
            f"Cannot parse value {fields[0]!r} for metric '{name}' on line {line_number}",
            metric_name=name,
            context={"text": fields[0], "line": line_number},
        ) from None

    return name, label, value


def _declared_type(value: str) -> Optional[MetricType]:
    try:
        return MetricType(value)
    except ValueError:
        return None


def parse_samples(
    text: str,
    timestamp: datetime,
    types: Optional[dict[str, MetricType]] = None,
) -> dict[str, list[Sample]]:
    """
    Parse data lines into samples keyed by metric name.

    Comment lines are skipped and the scan stops at the first blank line. A
    sample's type comes from ``types`` when given for its name, else from the
    preceding ``# TYPE`` comment, else it is a gauge.

    Raises:
        ExtractionError: on the first malformed line; nothing is returned
    """
    types = types or {}
    comment_types: dict[str, MetricType] = {}
    samples: dict[str, list[Sample]] = {}

    for line_number, line in enumerate(text.split("\n"), start=1):
        line = line.strip()
        if not line:
            break

        if line.startswith("#"):
            if line.startswith(TYPE_PREFIX):
                fields = line.split()
                if len(fields) >= 4:
                    declared = _declared_type(fields[3])
                    if declared is not None:
                        comment_types[fields[2]] = declared
            continue

        name, label, value = parse_data_line(line, line_number)
        samples.setdefault(name, []).append(Sample(
            name=name,
            timestamp=timestamp,
            value=value,
            value_kind=ValueKind.FLOAT,
            metric_type=types.get(name) or comment_types.get(name, MetricType.GAUGE),
            label=label,
        ))

    return samples
