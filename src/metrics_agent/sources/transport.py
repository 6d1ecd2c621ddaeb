"""HTTP transport - fetches the raw text of a metrics endpoint."""

import logging

import httpx

from .. import __version__
from ..errors import TransportError

logger = logging.getLogger(__name__)

USER_AGENT = f"metrics-agent/{__version__}"


def fetch_text(client: httpx.Client, endpoint: str) -> str:
    """GET ``endpoint`` and return the body as UTF-8 text.

    Connection failures, timeouts and non-2xx statuses all raise
    TransportError. There is no retry.
    """
    try:
        response = client.get(endpoint, headers={"User-Agent": USER_AGENT})
    except httpx.TimeoutException as e:
        raise TransportError(endpoint, f"timeout ({e})") from e
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        raise TransportError(endpoint, str(e) or type(e).__name__) from e

    if not response.is_success:
        raise TransportError(
            endpoint,
            f"unexpected status {response.status_code}",
            status_code=response.status_code,
        )

    logger.debug(f"Fetched {len(response.content)} bytes from {endpoint}")
    return response.content.decode("utf-8", errors="replace")
