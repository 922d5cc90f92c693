"""
Environment variable models for type-safe configuration.

This module defines the Pydantic model for the environment variables read by
the tracking handler. Values are validated once per execution environment.
"""

from typing import Annotated, List, Optional

from aws_lambda_env_modeler import get_environment_variables
from pydantic import BaseModel, Field, field_validator

from tracking_proxy.dal.http_client import DEFAULT_TIMEOUT_SECONDS
from tracking_proxy.dal.order_fetcher import DEFAULT_ORDER_PATH
from tracking_proxy.dal.token_cache import DEFAULT_SAFETY_MARGIN_SECONDS
from tracking_proxy.models.upstream import DEFAULT_CARRIER


class TrackHandlerEnvVars(BaseModel):
    """Environment variables for the tracking handler."""

    # Comma-separated list of storefront origins, exact match only
    ALLOWED_ORIGINS: Annotated[str, Field(
        default='',
        description='Comma-separated origins allowed to call the endpoint'
    )] = ''

    # Provider API base, also used for the OAuth token endpoint
    QUIQUP_BASE: Annotated[str, Field(
        min_length=1,
        description='Quiqup API base URL'
    )]

    QUIQUP_READ_BASE: Annotated[Optional[str], Field(
        default=None,
        description='Optional base URL override for order read calls'
    )] = None

    QUIQUP_CLIENT_ID: Annotated[str, Field(
        min_length=1,
        description='OAuth client id for the client-credentials exchange'
    )]

    QUIQUP_CLIENT_SECRET: Annotated[str, Field(
        min_length=1,
        description='OAuth client secret for the client-credentials exchange'
    )]

    QUIQUP_ORDER_PATH: Annotated[str, Field(
        default=DEFAULT_ORDER_PATH,
        description='Order read path template, {ref} is replaced by the encoded reference',
        pattern=r'^/.*\{ref\}'
    )] = DEFAULT_ORDER_PATH

    QUIQUP_CARRIER_NAME: Annotated[str, Field(
        default=DEFAULT_CARRIER,
        min_length=1,
        description='Carrier name reported for Quiqup orders without an explicit carrier'
    )] = DEFAULT_CARRIER

    # App proxy signature verification
    SHOPIFY_APP_SECRET: Annotated[Optional[str], Field(
        default=None,
        description='HMAC key for storefront app proxy signatures'
    )] = None

    REQUIRE_APP_PROXY_SIGNATURE: Annotated[bool, Field(
        default=False,
        description='Admit requests by app proxy signature instead of by origin'
    )] = False

    UPSTREAM_TIMEOUT_SECONDS: Annotated[float, Field(
        default=DEFAULT_TIMEOUT_SECONDS,
        description='Timeout for each upstream HTTP call in seconds',
        gt=0,
        le=60
    )] = DEFAULT_TIMEOUT_SECONDS

    TOKEN_SAFETY_MARGIN_SECONDS: Annotated[int, Field(
        default=DEFAULT_SAFETY_MARGIN_SECONDS,
        description='Seconds before expiry at which a cached token is refreshed',
        ge=0,
        le=600
    )] = DEFAULT_SAFETY_MARGIN_SECONDS

    @field_validator('QUIQUP_BASE')
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize the base URL so paths can be appended directly."""
        v = v.strip().rstrip('/')
        if not v:
            raise ValueError('QUIQUP_BASE must be a URL')
        return v

    @field_validator('QUIQUP_READ_BASE')
    @classmethod
    def optional_read_base(cls, v: Optional[str]) -> Optional[str]:
        """Treat an empty override as unset."""
        if v is None:
            return v
        return v.strip().rstrip('/') or None

    @property
    def allowed_origins(self) -> List[str]:
        """Allow-list entries, trimmed, empty entries dropped."""
        return [o.strip() for o in self.ALLOWED_ORIGINS.split(',') if o.strip()]

    @property
    def read_base(self) -> str:
        """Base URL for order reads."""
        return self.QUIQUP_READ_BASE or self.QUIQUP_BASE

    @property
    def token_url(self) -> str:
        """OAuth token endpoint."""
        return f'{self.QUIQUP_BASE}/oauth/token'


def get_handler_env_vars() -> TrackHandlerEnvVars:
    """
    Get typed environment variables for the tracking handler.

    Returns:
        Validated environment variables model instance
    """
    return get_environment_variables(model=TrackHandlerEnvVars)
