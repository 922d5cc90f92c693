"""
Track Handler - Lambda handler for storefront delivery tracking.

This module implements the handler layer of the tracking proxy. A request
moves through origin check, method check, parameter validation,
authentication, fetching and normalizing, and stops at the first failure.
Every failure is mapped to a status code and a ``{"error": ...}`` body here
and nowhere else.
"""

import os
from functools import lru_cache
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

import httpx
from aws_lambda_powertools.logging import correlation_paths
from aws_lambda_powertools.metrics import MetricUnit
from aws_lambda_powertools.utilities.data_classes import APIGatewayProxyEvent
from aws_lambda_powertools.utilities.typing import LambdaContext

from tracking_proxy.dal.http_client import create_http_client
from tracking_proxy.dal.order_fetcher import OrderFetcher
from tracking_proxy.dal.token_cache import TokenCache
from tracking_proxy.handlers.models.env_vars import TrackHandlerEnvVars, get_handler_env_vars
from tracking_proxy.handlers.utils.errors import (
    SERVER_ERROR_MESSAGE,
    MethodNotAllowedError,
    MissingParameterError,
    OrderNotFoundError,
    OriginRejectedError,
    SignatureInvalidError,
    TrackingError,
    create_api_response,
    format_error_response,
    log_error_metrics,
)
from tracking_proxy.handlers.utils.observability import logger, metrics, tracer
from tracking_proxy.logic.normalizer import shape_response
from tracking_proxy.security.app_proxy_signature import verify_signature
from tracking_proxy.security.origin_guard import cors_headers, is_allowed, preflight_headers

REFERENCE_PARAM = 'ref'


class TrackHandler:
    """Serves ``GET /track?ref=...`` and its CORS preflight."""

    def __init__(
        self,
        settings: TrackHandlerEnvVars,
        token_cache: TokenCache,
        order_fetcher: OrderFetcher,
    ):
        self.settings = settings
        self.token_cache = token_cache
        self.order_fetcher = order_fetcher

    @tracer.capture_method
    def handle(self, event: Union[Dict[str, Any], APIGatewayProxyEvent]) -> Dict[str, Any]:
        """
        Handle one API Gateway proxy event.

        Args:
            event: API Gateway REST proxy event

        Returns:
            API Gateway proxy response
        """
        if not isinstance(event, APIGatewayProxyEvent):
            event = APIGatewayProxyEvent({**event, "headers": event.get("headers") or {}})

        metrics.add_metric(name="TrackRequest", unit=MetricUnit.Count, value=1)

        method = (event.get('httpMethod') or '').upper()
        origin = event.get_header_value('origin')
        allowed_origin = is_allowed(origin, self.settings.allowed_origins)

        if method == 'OPTIONS':
            return self._preflight(origin, allowed_origin)

        headers = cors_headers(allowed_origin) if allowed_origin else {}

        try:
            reference = self._require_reference(event) if method == 'GET' else ''
            self._admit(event, origin, allowed_origin)
            if method != 'GET':
                raise MethodNotAllowedError(method)

            body = self._track(reference)
            return create_api_response(status_code=200, body=body, headers=headers)

        except TrackingError as e:
            log_error_metrics(e)
            return create_api_response(
                status_code=e.status_code,
                body=format_error_response(e),
                headers=headers,
            )

        except Exception as e:
            metrics.add_metric(name="UnexpectedError", unit=MetricUnit.Count, value=1)
            logger.exception("Unexpected error while tracking order", extra={
                "error": str(e),
                "error_type": type(e).__name__,
            })
            return create_api_response(
                status_code=500,
                body={"error": SERVER_ERROR_MESSAGE},
                headers=headers,
            )

    def _preflight(self, origin: Optional[str], allowed_origin: Optional[str]) -> Dict[str, Any]:
        if not allowed_origin:
            metrics.add_metric(name="OriginRejected", unit=MetricUnit.Count, value=1)
            logger.warning("Preflight rejected", extra={"origin": origin})
            return create_api_response(status_code=403)
        return create_api_response(status_code=204, headers=preflight_headers(allowed_origin))

    def _require_reference(self, event: APIGatewayProxyEvent) -> str:
        reference = event.get_query_string_value(REFERENCE_PARAM, '') or ''
        if not reference:
            raise MissingParameterError(REFERENCE_PARAM)
        return reference

    def _admit(self, event: APIGatewayProxyEvent, origin: Optional[str], allowed_origin: Optional[str]) -> None:
        """Admission by app proxy signature or by origin, depending on deployment."""
        if self.settings.REQUIRE_APP_PROXY_SIGNATURE:
            params = _query_params(event)
            if not self.settings.SHOPIFY_APP_SECRET:
                metrics.add_metric(name="SignatureRejected", unit=MetricUnit.Count, value=1)
                raise SignatureInvalidError("app secret not configured")
            if not verify_signature(params, self.settings.SHOPIFY_APP_SECRET):
                metrics.add_metric(name="SignatureRejected", unit=MetricUnit.Count, value=1)
                raise SignatureInvalidError("signature missing or mismatched")
            return

        if not allowed_origin:
            metrics.add_metric(name="OriginRejected", unit=MetricUnit.Count, value=1)
            raise OriginRejectedError(origin)

    def _track(self, reference: str) -> str:
        """Authenticate, fetch and normalize; returns the JSON body."""
        token = self.token_cache.get_token()

        order = self.order_fetcher.fetch_order(reference, token)
        if order is None:
            raise OrderNotFoundError(reference)

        normalized = shape_response(order, reference, default_carrier=self.settings.QUIQUP_CARRIER_NAME)

        logger.info("Order tracked successfully", extra={
            "order_reference": reference,
            "status": normalized.status,
            "fulfilment_count": len(normalized.fulfillments),
        })
        return normalized.model_dump_json()


def _query_params(event: APIGatewayProxyEvent) -> Mapping[str, Union[str, List[str]]]:
    """Query parameters, keeping every value of repeated keys."""
    multi = event.multi_value_query_string_parameters or {}
    single = event.query_string_parameters or {}
    params: Dict[str, Union[str, List[str]]] = dict(single)
    for name, values in multi.items():
        if values and len(values) > 1:
            params[name] = list(values)
    return params


def build_track_handler(
    settings: TrackHandlerEnvVars,
    http_client: Optional[httpx.Client] = None,
    clock: Optional[Callable[[], float]] = None,
) -> TrackHandler:
    """
    Wire a handler and its collaborators from configuration.

    Args:
        settings: Validated environment variables
        http_client: HTTP client shared by the token cache and the fetcher
        clock: Time source for the token cache

    Returns:
        Ready to use handler
    """
    http_client = http_client or create_http_client(settings.UPSTREAM_TIMEOUT_SECONDS)

    token_cache_kwargs: Dict[str, Any] = {}
    if clock is not None:
        token_cache_kwargs['clock'] = clock

    token_cache = TokenCache(
        http_client=http_client,
        token_url=settings.token_url,
        client_id=settings.QUIQUP_CLIENT_ID,
        client_secret=settings.QUIQUP_CLIENT_SECRET,
        safety_margin_seconds=settings.TOKEN_SAFETY_MARGIN_SECONDS,
        **token_cache_kwargs,
    )
    order_fetcher = OrderFetcher(
        http_client=http_client,
        read_base=settings.read_base,
        order_path=settings.QUIQUP_ORDER_PATH,
    )

    logger.info("Track handler initialized", extra={
        "read_base": settings.read_base,
        "order_path": settings.QUIQUP_ORDER_PATH,
        "allowed_origin_count": len(settings.allowed_origins),
        "require_app_proxy_signature": settings.REQUIRE_APP_PROXY_SIGNATURE,
    })

    return TrackHandler(settings=settings, token_cache=token_cache, order_fetcher=order_fetcher)


@lru_cache(maxsize=1)
def get_track_handler() -> TrackHandler:
    """Process-wide handler, built on first use and kept for the life of the environment."""
    return build_track_handler(get_handler_env_vars())


@tracer.capture_lambda_handler
@logger.inject_lambda_context(correlation_id_path=correlation_paths.API_GATEWAY_REST)
@metrics.log_metrics(capture_cold_start_metric=True)
def lambda_handler(event: Dict[str, Any], context: LambdaContext) -> Dict[str, Any]:
    """
    Main Lambda handler function.

    Args:
        event: API Gateway REST proxy event
        context: Lambda context object

    Returns:
        API Gateway response
    """
    tracer.put_annotation("service", "storefront-tracking")
    tracer.put_annotation("environment", os.environ.get("ENVIRONMENT", "unknown"))

    try:
        handler = get_track_handler()
    except Exception as e:
        # Configuration errors surface here, before any request state exists
        metrics.add_metric(name="UnexpectedError", unit=MetricUnit.Count, value=1)
        logger.exception("Track handler could not be initialized", extra={"error": str(e)})
        return create_api_response(status_code=500, body={"error": SERVER_ERROR_MESSAGE})

    return handler.handle(event)
