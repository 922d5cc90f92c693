"""
Upstream order shapes.

The provider has answered with several JSON layouts over time. Each layout is
a variant below; ``detect_shape`` classifies a raw payload by its
discriminating fields and the normalizer converts each variant explicitly.

Field fallbacks are declared once, as ordered tuples of accessors. The first
accessor returning a non-empty value wins. The order of every tuple is part of
the storefront contract and must not be rearranged.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Sequence, Union

Accessor = Callable[[Dict[str, Any]], Any]


def key(name: str) -> Accessor:
    """Accessor for a top-level field."""
    def get(payload: Dict[str, Any]) -> Any:
        return payload.get(name)
    get.__name__ = name
    return get


def path(*names: str) -> Accessor:
    """Accessor for a nested field, ``None`` when any level is missing or not an object."""
    def get(payload: Dict[str, Any]) -> Any:
        current: Any = payload
        for name in names:
            if not isinstance(current, dict):
                return None
            current = current.get(name)
        return current
    get.__name__ = '.'.join(names)
    return get


def first_present(payload: Dict[str, Any], accessors: Sequence[Accessor], default: Any = None) -> Any:
    """Return the first truthy value produced by ``accessors``, else ``default``."""
    for accessor in accessors:
        value = accessor(payload)
        if value:
            return value
    return default


# Order level
REFERENCE_FIELDS = (key('id'), key('reference'))
STATUS_FIELDS = (key('state'), key('status'), key('displayStatus'), key('displayFulfilmentStatus'))
FULFILMENT_LIST_FIELDS = (key('fulfilments'), key('fulfillments'))

# Fulfilment level
CARRIER_FIELDS = (key('trackingCompany'), key('carrier'))
FULFILMENT_ETA_FIELDS = (key('estimatedDeliveryAt'), key('eta'))

# Tracking event level
EVENT_TIME_FIELDS = (key('happenedAt'), key('time'), key('timestamp'))
EVENT_DESCRIPTION_FIELDS = (key('status'), key('description'))
EVENT_LOCATION_FIELDS = (key('city'), key('province'), key('country'))

# Quiqup order level
DEFAULT_CARRIER = 'Quiqup'
QUIQUP_CARRIER_FIELDS = (key('carrier'),)
QUIQUP_TRACKING_NUMBER_FIELDS = (key('tracking_token'),)
QUIQUP_TRACKING_URL_FIELDS = (key('tracking_url'), key('tracking_url_advance'))
QUIQUP_ETA_FIELDS = (
    key('delivery_before'),
    path('delivery_time', 'before'),
    path('delivery_time', 'to'),
    path('delivery_time', 'end'),
    path('delivery_time', 'latest'),
    path('delivery', 'eta'),
    path('delivery', 'before'),
    path('delivery', 'estimated_at'),
    key('eta'),
)

# Presence of any of these marks a bare (unwrapped) Quiqup order
QUIQUP_DISCRIMINATORS = frozenset({
    'tracking_token',
    'tracking_url',
    'tracking_url_advance',
    'delivery_before',
    'delivery_time',
    'delivery',
})


@dataclass(frozen=True)
class FulfilmentListShape:
    """Flat order carrying a ``fulfilments``/``fulfillments`` array."""

    payload: Dict[str, Any] = field(default_factory=dict)
    kind: str = 'fulfilment_list'


@dataclass(frozen=True)
class QuiqupOrderShape:
    """Single Quiqup order, unwrapped from ``{"order": {...}}`` when needed."""

    payload: Dict[str, Any] = field(default_factory=dict)
    kind: str = 'quiqup_order'


@dataclass(frozen=True)
class BareOrderShape:
    """Flat order without a fulfilment array."""

    payload: Dict[str, Any] = field(default_factory=dict)
    kind: str = 'bare_order'


UpstreamShape = Union[FulfilmentListShape, QuiqupOrderShape, BareOrderShape]


def detect_shape(raw: Any) -> UpstreamShape:
    """
    Classify a raw upstream payload.

    Rules, first match wins:
        1. ``order`` is an object: Quiqup order, unwrapped
        2. a fulfilment array key is present: fulfilment list
        3. any Quiqup-specific field is present: Quiqup order
        4. anything else: bare order

    Args:
        raw: Parsed upstream JSON

    Returns:
        The matching shape variant
    """
    if not isinstance(raw, dict):
        return BareOrderShape(payload={})

    wrapped: Optional[Any] = raw.get('order')
    if isinstance(wrapped, dict):
        return QuiqupOrderShape(payload=wrapped)

    if 'fulfilments' in raw or 'fulfillments' in raw:
        return FulfilmentListShape(payload=raw)

    if QUIQUP_DISCRIMINATORS.intersection(raw):
        return QuiqupOrderShape(payload=raw)

    return BareOrderShape(payload=raw)
