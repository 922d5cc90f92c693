"""
Service Models Package

This package contains the models used throughout the service: the
storefront-facing output contract, the upstream shape variants and the cached
credential.
"""

from .credential import Credential
from .output import ErrorOutput, Fulfilment, NormalizedOrder, TrackingEvent
from .upstream import (
    BareOrderShape,
    FulfilmentListShape,
    QuiqupOrderShape,
    UpstreamShape,
    detect_shape,
)

__all__ = [
    # Output models
    "NormalizedOrder",
    "Fulfilment",
    "TrackingEvent",
    "ErrorOutput",

    # Upstream shapes
    "FulfilmentListShape",
    "QuiqupOrderShape",
    "BareOrderShape",
    "UpstreamShape",
    "detect_shape",

    # Credentials
    "Credential",
]
