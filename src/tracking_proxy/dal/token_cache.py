"""
OAuth client-credentials token cache for the Quiqup API.

One instance lives for the whole execution environment and is shared by every
request it serves. The cached credential is reused until it is within the
safety margin of its expiry, then replaced by a fresh credential exchange.
"""

import threading
import time
from typing import Callable, Optional

import httpx
from aws_lambda_powertools.metrics import MetricUnit
from pydantic import ValidationError

from tracking_proxy.handlers.utils.errors import UpstreamAuthError
from tracking_proxy.handlers.utils.observability import logger, metrics, tracer
from tracking_proxy.models.credential import Credential

DEFAULT_SAFETY_MARGIN_SECONDS = 15


class TokenCache:
    """
    Single-slot bearer token cache.

    The lock guards the slot only. It is not held during the credential
    exchange, so concurrent callers that all find the slot stale each refresh
    and the last writer wins. Every exchanged token is valid, which makes the
    race harmless.
    """

    def __init__(
        self,
        http_client: httpx.Client,
        token_url: str,
        client_id: str,
        client_secret: str,
        safety_margin_seconds: float = DEFAULT_SAFETY_MARGIN_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize the token cache.

        Args:
            http_client: Shared HTTP client for upstream calls
            token_url: OAuth token endpoint
            client_id: OAuth client id
            client_secret: OAuth client secret
            safety_margin_seconds: Refresh this many seconds before expiry
            clock: Returns the current time as epoch seconds
        """
        self.http_client = http_client
        self.token_url = token_url
        self.client_id = client_id
        self.client_secret = client_secret
        self.safety_margin_seconds = safety_margin_seconds
        self.clock = clock

        self._lock = threading.Lock()
        self._credential: Optional[Credential] = None

    @property
    def credential(self) -> Optional[Credential]:
        """Currently cached credential, possibly stale."""
        with self._lock:
            return self._credential

    def invalidate(self) -> None:
        """Drop the cached credential."""
        with self._lock:
            self._credential = None

    def _cached_token(self) -> Optional[str]:
        with self._lock:
            credential = self._credential
        if credential and credential.is_usable(self.clock(), self.safety_margin_seconds):
            return credential.token
        return None

    @tracer.capture_method
    def get_token(self) -> str:
        """
        Return a usable bearer token, exchanging credentials when needed.

        Returns:
            Access token

        Raises:
            UpstreamAuthError: If the credential exchange fails
        """
        token = self._cached_token()
        if token:
            metrics.add_metric(name="TokenCacheHit", unit=MetricUnit.Count, value=1)
            return token

        credential = self._exchange_credentials()
        with self._lock:
            self._credential = credential
        return credential.token

    def _exchange_credentials(self) -> Credential:
        """POST a client-credentials grant to the token endpoint."""
        start_time = time.time()

        response = self.http_client.post(
            self.token_url,
            json={
                "grant_type": "client_credentials",
                "client_id": self.client_id,
                "client_secret": self.client_secret,
            },
        )

        if not response.is_success:
            metrics.add_metric(name="TokenRefreshFailed", unit=MetricUnit.Count, value=1)
            logger.error(
                "Quiqup auth failed",
                extra={"status_code": response.status_code, "token_url": self.token_url},
            )
            raise UpstreamAuthError("Quiqup auth failed", upstream_status=response.status_code)

        try:
            credential = Credential.from_token_response(response.json(), now=self.clock())
        except (KeyError, TypeError, AttributeError, ValueError, ValidationError) as e:
            metrics.add_metric(name="TokenRefreshFailed", unit=MetricUnit.Count, value=1)
            logger.error(
                "Quiqup auth returned an unusable token response",
                extra={"status_code": response.status_code, "error": type(e).__name__},
            )
            raise UpstreamAuthError(
                "Quiqup auth returned an unusable token response",
                upstream_status=response.status_code,
            ) from e

        duration_ms = (time.time() - start_time) * 1000
        metrics.add_metric(name="TokenRefresh", unit=MetricUnit.Count, value=1)
        metrics.add_metric(name="TokenRefreshDuration", unit=MetricUnit.Milliseconds, value=duration_ms)
        logger.info(
            "Quiqup token refreshed",
            extra={"expires_at": credential.expires_at, "duration_ms": duration_ms},
        )

        return credential
