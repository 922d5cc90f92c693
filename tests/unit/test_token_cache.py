"""
Unit tests for the OAuth token cache.
"""

import json
import threading

import pytest

from tracking_proxy.dal.token_cache import TokenCache
from tracking_proxy.handlers.utils.errors import UpstreamAuthError

TOKEN_URL = "https://api.quiqup.test/oauth/token"


@pytest.fixture
def token_cache(http_client, fake_clock):
    """Token cache talking to the fake upstream."""
    return TokenCache(
        http_client=http_client,
        token_url=TOKEN_URL,
        client_id="client-id",
        client_secret="client-secret",
        clock=fake_clock,
    )


class TestTokenExchange:
    """The credential exchange call."""

    def test_first_call_exchanges_credentials(self, token_cache, fake_quiqup, fake_clock):
        """An empty cache performs a client-credentials grant."""
        assert token_cache.get_token() == "token-1"

        assert len(fake_quiqup.token_requests) == 1
        request = fake_quiqup.token_requests[0]
        assert request.method == "POST"
        assert str(request.url) == TOKEN_URL
        assert request.headers["content-type"] == "application/json"
        assert json.loads(request.content) == {
            "grant_type": "client_credentials",
            "client_id": "client-id",
            "client_secret": "client-secret",
        }
        assert token_cache.credential.expires_at == fake_clock.now + 3600

    def test_default_expiry(self, token_cache, fake_quiqup, fake_clock):
        """A response without expires_in is valid for an hour."""
        fake_quiqup.token_body = {"access_token": "no-expiry"}

        token_cache.get_token()

        assert token_cache.credential.expires_at == fake_clock.now + 3600

    def test_custom_expiry(self, token_cache, fake_quiqup, fake_clock):
        """expires_in is honoured."""
        fake_quiqup.expires_in = 604800

        token_cache.get_token()

        assert token_cache.credential.expires_at == fake_clock.now + 604800

    @pytest.mark.parametrize("status", [400, 401, 500, 503])
    def test_non_success_raises(self, token_cache, fake_quiqup, status):
        """Any non-2xx answer is an auth failure."""
        fake_quiqup.token_status = status

        with pytest.raises(UpstreamAuthError) as exc_info:
            token_cache.get_token()

        assert exc_info.value.upstream_status == status
        assert exc_info.value.user_message == "Server error"
        assert token_cache.credential is None

    @pytest.mark.parametrize("body", [{"token_type": "bearer"}, {"access_token": ""}, "not json", ["list"]])
    def test_unusable_body_raises(self, token_cache, fake_quiqup, body):
        """A 2xx answer without a usable access token is an auth failure."""
        fake_quiqup.token_body = body

        with pytest.raises(UpstreamAuthError):
            token_cache.get_token()

    def test_failure_is_not_retried(self, token_cache, fake_quiqup):
        """A single failure aborts without a second attempt."""
        fake_quiqup.token_status = 500

        with pytest.raises(UpstreamAuthError):
            token_cache.get_token()

        assert len(fake_quiqup.token_requests) == 1

    def test_redirected_token_endpoint(self, token_cache, fake_quiqup):
        """A temporary redirect is followed with the grant resent."""
        fake_quiqup.add_redirect("/oauth/token", "/v2/oauth/token", status=307)

        assert token_cache.get_token() == "token-1"

        final = fake_quiqup.token_requests[-1]
        assert final.method == "POST"
        assert final.url.path == "/v2/oauth/token"
        assert json.loads(final.content)["grant_type"] == "client_credentials"


class TestCaching:
    """Reuse and refresh of the cached credential."""

    def test_second_call_within_validity_is_cached(self, token_cache, fake_quiqup, fake_clock):
        """Two calls well before expiry cost one exchange."""
        first = token_cache.get_token()
        fake_clock.advance(60)
        second = token_cache.get_token()

        assert first == second == "token-1"
        assert len(fake_quiqup.token_requests) == 1

    def test_reused_until_safety_margin(self, token_cache, fake_quiqup, fake_clock):
        """The token is reused while more than 15 seconds remain."""
        token_cache.get_token()
        fake_clock.advance(3600 - 16)

        assert token_cache.get_token() == "token-1"
        assert len(fake_quiqup.token_requests) == 1

    def test_refreshed_inside_safety_margin(self, token_cache, fake_quiqup, fake_clock):
        """Within 15 seconds of expiry the token is replaced."""
        token_cache.get_token()
        fake_clock.advance(3600 - 15)

        assert token_cache.get_token() == "token-2"
        assert len(fake_quiqup.token_requests) == 2

    def test_refreshed_after_expiry(self, token_cache, fake_quiqup, fake_clock):
        """After expiry exactly one new exchange happens and expiry moves forward."""
        token_cache.get_token()
        first_expiry = token_cache.credential.expires_at
        fake_clock.advance(4000)

        assert token_cache.get_token() == "token-2"
        assert token_cache.get_token() == "token-2"
        assert len(fake_quiqup.token_requests) == 2
        assert token_cache.credential.expires_at == fake_clock.now + 3600
        assert token_cache.credential.expires_at > first_expiry

    def test_failed_refresh_keeps_nothing_new(self, token_cache, fake_quiqup, fake_clock):
        """A failed refresh leaves the stale credential in place and raises."""
        token_cache.get_token()
        fake_clock.advance(4000)
        fake_quiqup.token_status = 401

        with pytest.raises(UpstreamAuthError):
            token_cache.get_token()

        assert token_cache.credential.token == "token-1"

    def test_invalidate(self, token_cache, fake_quiqup):
        """Invalidation forces a fresh exchange."""
        token_cache.get_token()
        token_cache.invalidate()

        assert token_cache.get_token() == "token-2"

    def test_custom_safety_margin(self, http_client, fake_quiqup, fake_clock):
        """The refresh margin is configurable."""
        cache = TokenCache(
            http_client=http_client,
            token_url=TOKEN_URL,
            client_id="id",
            client_secret="secret",
            safety_margin_seconds=300,
            clock=fake_clock,
        )
        cache.get_token()
        fake_clock.advance(3600 - 300)

        assert cache.get_token() == "token-2"

    def test_concurrent_refreshes_all_succeed(self, token_cache, fake_quiqup):
        """Concurrent callers on an empty cache each get a valid token."""
        results = []

        def worker():
            results.append(token_cache.get_token())

        threads = [threading.Thread(target=worker) for _ in range(5)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(results) == 5
        assert all(token.startswith("token-") for token in results)
        assert 1 <= len(fake_quiqup.token_requests) <= 5
        assert token_cache.credential is not None
