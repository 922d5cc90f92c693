"""
Credential model for the upstream OAuth client-credentials flow.
"""

from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_EXPIRES_IN_SECONDS = 3600


class Credential(BaseModel):
    """Bearer token held by the token cache, with its absolute expiry."""

    model_config = ConfigDict(frozen=True)

    token: Annotated[str, Field(
        min_length=1,
        description='OAuth bearer access token'
    )]

    expires_at: Annotated[float, Field(
        description='Expiry as epoch seconds'
    )]

    def is_usable(self, now: float, safety_margin: float) -> bool:
        """A token is usable only while more than ``safety_margin`` seconds remain."""
        return now < self.expires_at - safety_margin

    @classmethod
    def from_token_response(cls, payload: dict, now: float) -> 'Credential':
        """
        Build a credential from an OAuth token endpoint response.

        Args:
            payload: Parsed JSON body with ``access_token`` and optional ``expires_in``
            now: Current time as epoch seconds

        Returns:
            Credential expiring ``expires_in`` seconds (default 3600) after ``now``
        """
        expires_in = payload.get('expires_in') or DEFAULT_EXPIRES_IN_SECONDS
        return cls(
            token=payload['access_token'],
            expires_at=now + float(expires_in),
        )
