"""
Storefront Tracking Proxy Service Module.

This package answers delivery-status lookups for a public storefront without
exposing the fulfilment provider's credentials, organized in layers:

- handlers: Lambda entry point, request state machine, configuration
- logic: upstream shape normalization and ETA handling
- dal: Quiqup token cache and order reads
- models: output contract, upstream shape variants, credentials
- security: origin allow-list and app proxy signatures
"""

__version__ = "1.0.0"
__description__ = "Storefront order tracking proxy for the Quiqup API"

# Re-export commonly used classes for convenience
from tracking_proxy.models.output import Fulfilment, NormalizedOrder, TrackingEvent
from tracking_proxy.handlers.utils.observability import logger, tracer, metrics

__all__ = [
    "Fulfilment",
    "NormalizedOrder",
    "TrackingEvent",
    "logger",
    "tracer",
    "metrics",
]
