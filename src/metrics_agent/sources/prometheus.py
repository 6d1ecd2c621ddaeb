"""Prometheus collector - scrapes an exposition-format /metrics endpoint."""

import logging
import time
from datetime import datetime, timezone
from typing import Optional

from ..errors import DiscoveryError, ExtractionError, TransportError
from .base import Collector, MetricSpec, PollResult, Sample, SourceKind
from .exposition import parse_samples, parse_specs
from .registry import register_source
from .transport import fetch_text

logger = logging.getLogger(__name__)


@register_source(SourceKind.PROMETHEUS)
class PrometheusCollector(Collector):
    """
    Collect metrics from a Prometheus exposition endpoint.

    Config:
        source: str - Exposition endpoint (e.g., "http://node-exporter:9100/metrics")
        polling_frequency: int - Seconds between polls
        metrics_config: list - Metric names; their metric_type overrides the
            ``# TYPE`` comment for samples of that name

    Every data line of the page is collected. The history lives in an
    accumulator owned by the caller and passed to each ``collect`` call.
    Unlike REST mode, a single bad value aborts the whole poll.
    """

    source_kind = SourceKind.PROMETHEUS

    def discover(self) -> list[MetricSpec]:
        """
        Describe the metrics the endpoint exposes, without values.

        Best-effort: fetch failures and malformed text give an empty list.
        """
        try:
            page = fetch_text(self._get_client(), self.config.endpoint)
            return parse_specs(page)
        except (TransportError, DiscoveryError) as e:
            logger.debug(f"Prometheus discovery for {self.name} returned nothing: {e}")
            return []

    def collect(self, accumulator: Optional[dict[str, list[Sample]]] = None) -> PollResult:
        """
        Scrape the endpoint once and append the samples to ``accumulator``.

        Args:
            accumulator: Caller-owned samples by metric name. New samples are
                appended, never replaced. Left untouched when the poll fails.

        Returns:
            PollResult whose samples are the accumulator
        """
        if accumulator is None:
            accumulator = {}

        start = time.time()
        now = datetime.now(timezone.utc)
        next_time = self.next_collection_time(now)
        types = {metric.name: metric.metric_type for metric in self.config.metrics}

        try:
            page = fetch_text(self._get_client(), self.config.endpoint)
            scraped = parse_samples(page, now, types)
        except (TransportError, ExtractionError) as e:
            logger.warning(f"Error collecting Prometheus metrics from {self.name}: {e}")
            return PollResult(
                source=self.name,
                next_collection_time=next_time,
                samples=accumulator,
                error=e,
                success=False,
                timestamp=now,
                duration_ms=(time.time() - start) * 1000,
            )

        for name, samples in scraped.items():
            accumulator.setdefault(name, []).extend(samples)

        missing = [m.name for m in self.config.metrics if m.name not in scraped]
        if missing:
            logger.debug(f"Configured metrics not exposed by {self.name}: {', '.join(missing)}")

        return PollResult(
            source=self.name,
            next_collection_time=next_time,
            samples=accumulator,
            timestamp=now,
            duration_ms=(time.time() - start) * 1000,
        )
