"""
Storefront app proxy signature verification.

Requests forwarded by the storefront's app proxy carry a ``signature`` query
parameter: the hex HMAC-SHA256, keyed by the app secret, of every other query
parameter sorted by key and rendered as ``key=value`` with no separator.
Multi-valued parameters are joined with commas.
"""

import hashlib
import hmac
from typing import Dict, List, Mapping, Optional, Union

SIGNATURE_PARAM = 'signature'

QueryParams = Mapping[str, Union[str, List[str], None]]


def _flatten(value: Union[str, List[str], None]) -> str:
    if value is None:
        return ''
    if isinstance(value, (list, tuple)):
        return ','.join(str(v) for v in value)
    return str(value)


def signing_message(params: QueryParams) -> str:
    """Canonical string that the signature covers."""
    pairs: Dict[str, str] = {
        name: _flatten(value) for name, value in params.items() if name != SIGNATURE_PARAM
    }
    return ''.join(f'{name}={pairs[name]}' for name in sorted(pairs))


def compute_signature(params: QueryParams, secret: str) -> str:
    """Hex HMAC-SHA256 of the canonical query string."""
    return hmac.new(
        secret.encode('utf-8'),
        signing_message(params).encode('utf-8'),
        hashlib.sha256,
    ).hexdigest()


def verify_signature(params: Optional[QueryParams], secret: Optional[str]) -> bool:
    """
    Verify an app proxy signature in constant time.

    Returns False when the secret or the signature is missing.
    """
    if not secret or not params:
        return False

    provided = _flatten(params.get(SIGNATURE_PARAM))
    if not provided:
        return False

    expected = compute_signature(params, secret)
    return hmac.compare_digest(expected, provided)
