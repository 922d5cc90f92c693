"""
Response normalizer.

Maps every known upstream order shape onto ``NormalizedOrder``. Missing or
malformed fields degrade to empty values; they never fail the request.
"""

from typing import Any, Dict, Iterable, List, Optional

from tracking_proxy.handlers.utils.observability import logger, tracer
from tracking_proxy.logic.eta import normalize_eta
from tracking_proxy.models.output import Fulfilment, NormalizedOrder, TrackingEvent
from tracking_proxy.models.upstream import (
    CARRIER_FIELDS,
    DEFAULT_CARRIER,
    EVENT_DESCRIPTION_FIELDS,
    EVENT_LOCATION_FIELDS,
    EVENT_TIME_FIELDS,
    FULFILMENT_ETA_FIELDS,
    FULFILMENT_LIST_FIELDS,
    QUIQUP_CARRIER_FIELDS,
    QUIQUP_ETA_FIELDS,
    QUIQUP_TRACKING_NUMBER_FIELDS,
    QUIQUP_TRACKING_URL_FIELDS,
    REFERENCE_FIELDS,
    STATUS_FIELDS,
    BareOrderShape,
    FulfilmentListShape,
    QuiqupOrderShape,
    UpstreamShape,
    detect_shape,
    first_present,
)

UNKNOWN_STATUS = 'Unknown'


def _text(value: Any) -> Optional[str]:
    if value is None or value == '':
        return None
    return value if isinstance(value, str) else str(value)


def _objects(items: Any) -> Iterable[Dict[str, Any]]:
    """Yield the dict entries of a list, skipping anything else."""
    if not isinstance(items, list):
        return
    for item in items:
        if isinstance(item, dict):
            yield item


def _event_time(value: Any) -> Any:
    if value is None or (isinstance(value, (str, int, float)) and not isinstance(value, bool)):
        return value
    return str(value)


def _order_header(payload: Dict[str, Any], fallback_reference: str) -> Dict[str, str]:
    reference = _text(first_present(payload, REFERENCE_FIELDS)) or fallback_reference
    status = _text(first_present(payload, STATUS_FIELDS)) or UNKNOWN_STATUS
    return {'reference': reference, 'status': status}


def to_tracking_event(event: Dict[str, Any]) -> TrackingEvent:
    """Convert one upstream tracking event."""
    location_parts = [_text(accessor(event)) for accessor in EVENT_LOCATION_FIELDS]
    return TrackingEvent(
        time=_event_time(first_present(event, EVENT_TIME_FIELDS)),
        description=_text(first_present(event, EVENT_DESCRIPTION_FIELDS)),
        location=', '.join(part for part in location_parts if part),
    )


def to_fulfilment(fulfilment: Dict[str, Any]) -> Fulfilment:
    """Convert one entry of a ``fulfilments`` array."""
    tracking_info = list(_objects(fulfilment.get('trackingInfo')))
    return Fulfilment(
        carrier=_text(first_present(fulfilment, CARRIER_FIELDS)),
        tracking_numbers=[_text(t.get('number')) for t in tracking_info if t.get('number')],
        tracking_urls=[_text(t.get('url')) for t in tracking_info if t.get('url')],
        eta=normalize_eta(first_present(fulfilment, FULFILMENT_ETA_FIELDS)),
        events=[to_tracking_event(e) for e in _objects(fulfilment.get('events'))],
    )


def shape_fulfilment_list(shape: FulfilmentListShape, fallback_reference: str) -> NormalizedOrder:
    """Flat order with a fulfilment array."""
    fulfilments = first_present(shape.payload, FULFILMENT_LIST_FIELDS)
    return NormalizedOrder(
        **_order_header(shape.payload, fallback_reference),
        fulfillments=[to_fulfilment(f) for f in _objects(fulfilments)],
    )


def shape_quiqup_order(
    shape: QuiqupOrderShape,
    fallback_reference: str,
    default_carrier: str = DEFAULT_CARRIER,
) -> NormalizedOrder:
    """Single Quiqup order; always one fulfilment, never any events."""
    payload = shape.payload
    fulfilment = Fulfilment(
        carrier=_text(first_present(payload, QUIQUP_CARRIER_FIELDS)) or default_carrier,
        tracking_numbers=_collect(payload, QUIQUP_TRACKING_NUMBER_FIELDS),
        tracking_urls=_collect(payload, QUIQUP_TRACKING_URL_FIELDS),
        eta=normalize_eta(first_present(payload, QUIQUP_ETA_FIELDS)),
        events=[],
    )
    return NormalizedOrder(
        **_order_header(payload, fallback_reference),
        fulfillments=[fulfilment],
    )


def shape_bare_order(shape: BareOrderShape, fallback_reference: str) -> NormalizedOrder:
    """Flat order without fulfilments."""
    return NormalizedOrder(
        **_order_header(shape.payload, fallback_reference),
        fulfillments=[],
    )


def _collect(payload: Dict[str, Any], accessors) -> List[str]:
    """Every non-empty value of ``accessors``, in order."""
    values = (_text(accessor(payload)) for accessor in accessors)
    return [value for value in values if value]


@tracer.capture_method
def shape_response(
    raw: Any,
    fallback_reference: str,
    default_carrier: str = DEFAULT_CARRIER,
) -> NormalizedOrder:
    """
    Normalize a raw upstream order.

    Args:
        raw: Parsed upstream JSON
        fallback_reference: Caller supplied reference, used when upstream has none
        default_carrier: Carrier reported for Quiqup orders without one

    Returns:
        Storefront-facing order
    """
    shape: UpstreamShape = detect_shape(raw)
    logger.debug("Upstream order shape detected", extra={"shape": shape.kind})
    tracer.put_annotation("upstream_shape", shape.kind)

    if isinstance(shape, QuiqupOrderShape):
        return shape_quiqup_order(shape, fallback_reference, default_carrier)
    if isinstance(shape, FulfilmentListShape):
        return shape_fulfilment_list(shape, fallback_reference)
    return shape_bare_order(shape, fallback_reference)
