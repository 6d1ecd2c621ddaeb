"""Shared fixtures for Metrics Agent tests."""

import json
from pathlib import Path

import httpx
import pytest

FIXTURES = Path(__file__).parent / "fixtures"

NGINX_PAGE = (
    "Active connections: 3\n"
    "server accepts handled requests\n"
    "5 5 32\n"
    "Reading: 0 Writing: 1 Waiting: 2\n"
)

PROMETHEUS_PAGE = """# HELP http_requests_total The total number of HTTP requests.
# TYPE http_requests_total counter
http_requests_total{method="post",code="200"} 1027 1395066363000
http_requests_total{method="post",code="400"} 3 1395066363000
# HELP process_cpu_seconds_total Total user and system CPU time spent in seconds.
# TYPE process_cpu_seconds_total counter
process_cpu_seconds_total 12.47
# HELP go_goroutines Number of goroutines that currently exist.
# TYPE go_goroutines gauge
go_goroutines 42
"""


def make_client(body: str = "", status_code: int = 200, error: Exception | None = None) -> httpx.Client:
    """HTTP client that answers every request with ``body`` or raises ``error``."""
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        if error is not None:
            raise error
        return httpx.Response(status_code, text=body)

    client = httpx.Client(transport=httpx.MockTransport(handler))
    client.requests = requests
    return client


@pytest.fixture
def nginx_client():
    """Client serving an nginx stub_status page."""
    client = make_client(NGINX_PAGE)
    yield client
    client.close()


@pytest.fixture
def prometheus_client():
    """Client serving a Prometheus exposition page."""
    client = make_client(PROMETHEUS_PAGE)
    yield client
    client.close()


@pytest.fixture
def refused_client():
    """Client whose every request fails to connect."""
    client = make_client(error=httpx.ConnectError("Connection refused"))
    yield client
    client.close()


@pytest.fixture
def rest_raw() -> bytes:
    return (FIXTURES / "sample_config.json").read_bytes()


@pytest.fixture
def generic_raw() -> bytes:
    return (FIXTURES / "sample_config_generic.json").read_bytes()


@pytest.fixture
def prometheus_raw() -> bytes:
    return (FIXTURES / "sample_config_prometheus.json").read_bytes()


@pytest.fixture
def rest_data(rest_raw) -> dict:
    return json.loads(rest_raw)
