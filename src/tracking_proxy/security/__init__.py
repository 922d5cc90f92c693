"""
Security Module.

Request admission for the tracking endpoint: an exact-match origin allow-list
with CORS headers, and optional app proxy HMAC signatures.
"""

from .app_proxy_signature import compute_signature, verify_signature
from .origin_guard import cors_headers, is_allowed, preflight_headers

__all__ = [
    "compute_signature",
    "verify_signature",
    "cors_headers",
    "is_allowed",
    "preflight_headers",
]
