"""
Origin allow-list and CORS headers.

Only exact matches of a configured origin are accepted; there is no wildcard
or pattern matching. A rejected origin never receives CORS headers, so a
browser script on that origin cannot read the response.
"""

from typing import Dict, Iterable, List, Optional, Union

ALLOWED_METHODS = 'GET,OPTIONS'
ALLOWED_HEADERS = 'Content-Type'


def parse_allow_list(allow_list: Union[str, Iterable[str], None]) -> List[str]:
    """Split a comma-separated allow-list, trimming entries and dropping blanks."""
    if not allow_list:
        return []
    entries = allow_list.split(',') if isinstance(allow_list, str) else allow_list
    return [entry.strip() for entry in entries if entry and entry.strip()]


def is_allowed(origin: Optional[str], allow_list: Union[str, Iterable[str], None]) -> Optional[str]:
    """
    Check an Origin header against the allow-list.

    Args:
        origin: Value of the request's Origin header
        allow_list: Comma-separated string or iterable of allowed origins

    Returns:
        The origin when it is allowed, otherwise None
    """
    if not origin:
        return None
    return origin if origin in parse_allow_list(allow_list) else None


def cors_headers(origin: str) -> Dict[str, str]:
    """Headers attached to every response for an allowed origin."""
    return {
        'Access-Control-Allow-Origin': origin,
        'Vary': 'Origin',
    }


def preflight_headers(origin: str) -> Dict[str, str]:
    """Headers for a successful CORS preflight."""
    return {
        **cors_headers(origin),
        'Access-Control-Allow-Methods': ALLOWED_METHODS,
        'Access-Control-Allow-Headers': ALLOWED_HEADERS,
    }
