"""Metrics Agent - polls every configured collector once."""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Optional

import httpx

from .config import AgentConfig
from .errors import ConfigError
from .sources import Collector, MetricSpec, PollResult, PrometheusCollector, Sample, SourceRegistry

logger = logging.getLogger(__name__)


class Agent:
    """
    Builds one collector per configured source and polls them on request.

    There is no scheduling loop: the caller decides when to poll, using each
    PollResult's ``next_collection_time``. The agent owns the Prometheus
    history accumulators and hands each one to its collector on every poll.
    """

    def __init__(self, config: AgentConfig, client: Optional[httpx.Client] = None):
        self.config = config
        self.collectors: list[Collector] = []
        self.failed: dict[str, ConfigError] = {}
        self.accumulators: dict[str, dict[str, list[Sample]]] = {}
        self._client = client

    def setup(self):
        """Validate every enabled collector config and build the collectors.

        A collector whose config is rejected is skipped and kept in ``failed``.
        """
        for entry in self.config.collectors:
            if not entry.enabled:
                continue

            try:
                collector = SourceRegistry.create(
                    entry.name,
                    entry.load(),
                    client=self._client,
                    timeout=self.config.timeout,
                )
            except ConfigError as e:
                logger.error(f"Invalid config for collector {entry.name}: {e}")
                self.failed[entry.name] = e
                continue

            self.collectors.append(collector)
            if isinstance(collector, PrometheusCollector):
                self.accumulators[collector.name] = {}
            logger.info(f"Initialized collector: {collector.name} (kind: {entry.kind.value})")

        logger.info(f"Agent initialized with {len(self.collectors)} collectors")

    def poll(self, collector: Collector) -> PollResult:
        """Poll one collector once."""
        if isinstance(collector, PrometheusCollector):
            result = collector.collect(self.accumulators.setdefault(collector.name, {}))
        else:
            result = collector.collect()

        if result.success:
            logger.debug(
                f"Collected {collector.name} in {result.duration_ms:.1f}ms, "
                f"next collection at {result.next_collection_time.isoformat()}"
            )
        return result

    def collect_once(self) -> list[PollResult]:
        """Poll every collector once, in config order.

        Collectors share no state, so with ``max_workers > 1`` they are polled
        in parallel, one call per collector.
        """
        if self.config.max_workers > 1 and len(self.collectors) > 1:
            with ThreadPoolExecutor(max_workers=self.config.max_workers) as pool:
                return list(pool.map(self.poll, self.collectors))
        return [self.poll(collector) for collector in self.collectors]

    def discover(self) -> dict[str, list[MetricSpec]]:
        """Discover metric specs from every Prometheus collector."""
        return {
            collector.name: collector.discover()
            for collector in self.collectors
            if isinstance(collector, PrometheusCollector)
        }

    def health_check(self) -> dict:
        """Check reachability of every collector's endpoint."""
        return {
            "collectors": {c.name: c.health_check() for c in self.collectors},
            "failed": sorted(self.failed),
        }

    def close(self):
        """Close all collectors."""
        for collector in self.collectors:
            collector.close()
