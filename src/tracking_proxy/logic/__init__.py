"""
Business Logic Layer Module.

Turns whatever the upstream provider returned into the storefront contract.
"""

from tracking_proxy.logic.eta import normalize_eta
from tracking_proxy.logic.normalizer import shape_response

__all__ = [
    "normalize_eta",
    "shape_response",
]
