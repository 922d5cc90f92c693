"""
Data Access Layer (DAL) for the tracking proxy.

The only external system is the Quiqup API: a client-credentials token
endpoint and an order read endpoint.
"""

from tracking_proxy.dal.http_client import create_http_client
from tracking_proxy.dal.order_fetcher import OrderFetcher
from tracking_proxy.dal.token_cache import TokenCache

__all__ = [
    "create_http_client",
    "OrderFetcher",
    "TokenCache",
]
