"""
Authenticated order reads against the Quiqup API.
"""

from typing import Any, Dict, Optional
from urllib.parse import quote

import httpx
from aws_lambda_powertools.metrics import MetricUnit

from tracking_proxy.handlers.utils.observability import logger, metrics, tracer

DEFAULT_ORDER_PATH = '/orders/{ref}'

# Characters JavaScript's encodeURIComponent leaves alone
UNRESERVED = "-_.!~*'()"

# Upstream bodies are logged for diagnosis, truncated to keep log lines bounded
MAX_LOGGED_BODY_CHARS = 2000


def encode_reference(reference: str) -> str:
    """Percent-encode a reference for use as a single path segment."""
    return quote(reference, safe=UNRESERVED)


class OrderFetcher:
    """Reads a single order by reference."""

    def __init__(
        self,
        http_client: httpx.Client,
        read_base: str,
        order_path: str = DEFAULT_ORDER_PATH,
    ):
        self.http_client = http_client
        self.read_base = read_base.rstrip('/')
        self.order_path = order_path

    def order_url(self, reference: str) -> str:
        """Upstream URL for ``reference``."""
        return self.read_base + self.order_path.replace('{ref}', encode_reference(reference))

    @tracer.capture_method
    def fetch_order(self, reference: str, token: str) -> Optional[Dict[str, Any]]:
        """
        Fetch the raw upstream order.

        Args:
            reference: Caller supplied order reference
            token: Bearer token from the token cache

        Returns:
            Parsed JSON body, or None when upstream answers with a non-success status

        Raises:
            httpx.HTTPError: On transport failures
            ValueError: If a success response is not valid JSON
        """
        url = self.order_url(reference)
        tracer.put_annotation("order_reference", reference)

        response = self.http_client.get(
            url,
            headers={
                "Authorization": f"Bearer {token}",
                "Accept": "application/json",
            },
        )
        body = response.text

        if not response.is_success:
            metrics.add_metric(name="OrderNotFound", unit=MetricUnit.Count, value=1)
            logger.error(
                "Quiqup READ failed",
                extra={
                    "status_code": response.status_code,
                    "body": body[:MAX_LOGGED_BODY_CHARS],
                    "url": url,
                },
            )
            return None

        order = response.json()
        metrics.add_metric(name="OrderFetched", unit=MetricUnit.Count, value=1)
        logger.debug("Quiqup order fetched", extra={"url": url, "status_code": response.status_code})
        return order
