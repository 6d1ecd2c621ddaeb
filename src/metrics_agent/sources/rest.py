"""REST collector - extracts each metric from a text page with its own regex."""

import logging
import time
from datetime import datetime, timezone

from ..errors import AggregatedError, TransportError
from .base import Collector, PollResult, SourceKind
from .extractor import extract_samples
from .registry import register_source
from .transport import fetch_text

logger = logging.getLogger(__name__)


@register_source(SourceKind.REST)
class RestCollector(Collector):
    """
    Collect metrics from any plain-text HTTP status page.

    Each configured metric carries a regex whose first capture group holds
    the value, e.g. for nginx's stub_status page:

        {"name": "activeConnections", "metric_type": "gauge",
         "units": "integer", "regex": "Active connections: ([0-9]+)"}

    A metric that fails to extract is reported in the poll's aggregated error
    and keeps its slot in the samples as a placeholder with no value. The
    other metrics of the poll are unaffected.
    """

    source_kind = SourceKind.REST

    def collect(self) -> PollResult:
        """Fetch the page once and extract every configured metric."""
        start = time.time()
        now = datetime.now(timezone.utc)
        next_time = self.next_collection_time(now)

        try:
            page = fetch_text(self._get_client(), self.config.endpoint)
        except TransportError as e:
            logger.warning(f"Error collecting {self.name} metrics: {e}")
            return PollResult(
                source=self.name,
                next_collection_time=next_time,
                error=e,
                success=False,
                timestamp=now,
                duration_ms=(time.time() - start) * 1000,
            )

        samples, errors = extract_samples(page, self.config.metrics, now)
        if errors:
            logger.warning(
                f"{len(errors)} of {len(samples)} metrics from {self.name} could not be extracted"
            )

        return PollResult(
            source=self.name,
            next_collection_time=next_time,
            samples=samples,
            error=AggregatedError.from_errors(errors),
            timestamp=now,
            duration_ms=(time.time() - start) * 1000,
        )
