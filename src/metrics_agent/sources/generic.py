"""Generic collector - REST extraction with a polling frequency per metric."""

from datetime import datetime

from .base import SourceKind, next_collection_time
from .registry import register_source
from .rest import RestCollector


@register_source(SourceKind.GENERIC)
class GenericCollector(RestCollector):
    """
    Single JSON-described collector where every metric sets its own
    ``pollingFrequency``.

    The collector is due again as soon as its most frequent metric is.
    """

    source_kind = SourceKind.GENERIC

    def next_collection_time(self, start: datetime) -> datetime:
        # Metric list is never empty, the loader rejects that
        interval = min(metric.polling_frequency for metric in self.config.metrics)
        return next_collection_time(start, interval)
