"""
AWS Lambda Handlers Module.

Entry points and request handling for the tracking proxy:

1. Handler Layer (this module): routing, admission, status code mapping
2. Logic Layer: normalization of upstream order shapes
3. Data Access Layer: Quiqup token exchange and order reads
"""

from tracking_proxy.handlers.utils.observability import logger, tracer, metrics

__all__ = [
    "logger",
    "tracer",
    "metrics",
]
