"""Error hierarchy for the metrics agent.

All agent errors inherit from CollectorError so callers can catch one type.

Categories:
- ConfigError: bad collector configuration, raised before a collector exists
- TransportError: the endpoint could not be fetched, fatal for one poll
- ExtractionError: a value could not be extracted from fetched text
- DiscoveryError: malformed exposition text during metric discovery
- AggregatedError: every extraction failure from a single poll
"""

from __future__ import annotations

from enum import Enum
from typing import Iterator, Optional


class CollectorError(Exception):
    """Base exception for all metrics agent errors.

    Args:
        message: Human-readable error description.
        code: Machine-readable error code.
        context: Extra key-value pairs for debugging.
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        context: Optional[dict] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.context: dict = context if context is not None else {}


class ConfigErrorKind(str, Enum):
    """Why a collector configuration was rejected."""
    MALFORMED = "malformed"
    EMPTY_METRIC_LIST = "empty_metric_list"
    UNSUPPORTED_SOURCE_KIND = "unsupported_source_kind"
    INVALID_PATTERN = "invalid_pattern"
    INVALID_METRIC_TYPE = "invalid_metric_type"
    INVALID_UNITS = "invalid_units"


class ConfigError(CollectorError):
    """Collector configuration is invalid. The collector is never created."""

    def __init__(self, kind: ConfigErrorKind, message: str, context: Optional[dict] = None):
        super().__init__(message, code=kind.value, context=context)
        self.kind = kind


class TransportError(CollectorError):
    """Fetching the metrics endpoint failed."""

    def __init__(self, endpoint: str, message: str, status_code: Optional[int] = None):
        super().__init__(
            f"Failed to fetch {endpoint}: {message}",
            code="transport",
            context={"endpoint": endpoint, "status_code": status_code},
        )
        self.endpoint = endpoint
        self.status_code = status_code


class ExtractionError(CollectorError):
    """A metric value could not be extracted from the fetched text."""

    def __init__(self, message: str, metric_name: Optional[str] = None, context: Optional[dict] = None):
        super().__init__(message, code="extraction", context=context)
        self.metric_name = metric_name


class NoMatchError(ExtractionError):
    """No line of the page matched the metric's pattern."""

    def __init__(self, metric_name: str, pattern: str):
        super().__init__(
            f"No match found for regexp: {pattern} for metric '{metric_name}'",
            metric_name=metric_name,
            context={"pattern": pattern},
        )
        self.pattern = pattern


class ValueParseError(ExtractionError):
    """Matched text is not a number of the metric's value kind."""

    def __init__(self, metric_name: str, text: str, value_kind: str):
        super().__init__(
            f"Cannot parse {text!r} as {value_kind} for metric '{metric_name}'",
            metric_name=metric_name,
            context={"text": text, "value_kind": value_kind},
        )
        self.text = text
        self.value_kind = value_kind


class DiscoveryError(CollectorError):
    """Exposition text is malformed where discovery expected a HELP/TYPE/name triple."""

    def __init__(self, message: str, line_number: Optional[int] = None):
        super().__init__(message, code="discovery", context={"line": line_number})
        self.line_number = line_number


class AggregatedError(CollectorError):
    """Every per-metric failure from one poll.

    The message lists each individual failure, not just a count.
    """

    def __init__(self, errors: list[CollectorError]):
        self.errors = list(errors)
        super().__init__(
            "; ".join(str(e) for e in self.errors),
            code="aggregated",
            context={"count": len(self.errors)},
        )

    def __len__(self) -> int:
        return len(self.errors)

    def __iter__(self) -> Iterator[CollectorError]:
        return iter(self.errors)

    @classmethod
    def from_errors(cls, errors: list[CollectorError]) -> Optional["AggregatedError"]:
        """Wrap a list of errors, or return None when there are none."""
        if not errors:
            return None
        return cls(errors)
