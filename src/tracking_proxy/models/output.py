"""
Output models for the tracking endpoint using Pydantic.

These models are the storefront-facing contract. Their field names stay the
same whichever upstream API version answered the request.
"""

from typing import Annotated, List, Optional, Union

from pydantic import BaseModel, Field


class TrackingEvent(BaseModel):
    """One entry in a fulfilment's tracking timeline."""

    time: Annotated[Optional[Union[str, int, float]], Field(
        default=None,
        description='When the event happened, passed through as upstream sent it',
        examples=['2024-01-15T10:30:00Z']
    )] = None

    description: Annotated[Optional[str], Field(
        default=None,
        description='Human readable event status',
        examples=['Out for delivery']
    )] = None

    location: Annotated[str, Field(
        default='',
        description='City, province and country joined by ", ", blanks omitted',
        examples=['Dubai, Dubai, AE']
    )] = ''


class Fulfilment(BaseModel):
    """One shipment unit within an order."""

    carrier: Annotated[Optional[str], Field(
        default=None,
        description='Carrier name',
        examples=['Quiqup']
    )] = None

    tracking_numbers: Annotated[List[str], Field(
        default_factory=list,
        description='Tracking numbers in upstream order'
    )]

    tracking_urls: Annotated[List[str], Field(
        default_factory=list,
        description='Tracking page URLs in upstream order'
    )]

    eta: Annotated[Optional[str], Field(
        default=None,
        description='Estimated delivery as ISO-8601 UTC',
        examples=['2023-11-14T22:13:20.000Z']
    )] = None

    events: Annotated[List[TrackingEvent], Field(
        default_factory=list,
        description='Tracking timeline in upstream order'
    )]


class NormalizedOrder(BaseModel):
    """Response body of a successful tracking lookup."""

    reference: Annotated[str, Field(
        min_length=1,
        description='Order reference',
        examples=['42']
    )]

    status: Annotated[str, Field(
        min_length=1,
        description='Order status, "Unknown" when upstream reports none',
        examples=['delivered']
    )]

    fulfillments: Annotated[List[Fulfilment], Field(
        default_factory=list,
        description='Fulfilments of the order'
    )]


class ErrorOutput(BaseModel):
    """Body of every error response."""

    error: Annotated[str, Field(
        description='Short error message',
        examples=['Order not found']
    )]
