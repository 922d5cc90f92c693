"""
Shared HTTP client for Quiqup calls.
"""

from typing import Optional

import httpx

DEFAULT_TIMEOUT_SECONDS = 10.0


def create_http_client(
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    transport: Optional[httpx.BaseTransport] = None,
) -> httpx.Client:
    """
    Build the client shared by the token cache and the order fetcher.

    Upstream redirects are followed, so a moved read or token endpoint still
    answers with the final response.

    Args:
        timeout_seconds: Connect, read and write timeout
        transport: Transport override, used by tests

    Returns:
        Configured HTTP client
    """
    return httpx.Client(timeout=timeout_seconds, follow_redirects=True, transport=transport)
