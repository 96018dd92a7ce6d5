"""Unit tests for the in-process rate limiter and client address resolution."""

from datetime import UTC, datetime, timedelta

from starlette.requests import Request

from bookapp.api.middleware import (
    REDEEM_WINDOW,
    SWEEP_INTERVAL,
    VALIDATE_WINDOW,
    RateLimitMiddleware,
    client_ip,
)
from bookapp.core.config import Settings


async def _noop_app(scope, receive, send):
    pass


def _limiter() -> RateLimitMiddleware:
    return RateLimitMiddleware(_noop_app, settings=Settings(_env_file=None))


def _request(
    headers: dict[str, str], client: tuple[str, int] | None = ("192.0.2.10", 5000)
) -> Request:
    scope = {
        "type": "http",
        "method": "GET",
        "path": "/api/invitations/abc12345",
        "headers": [(k.lower().encode(), v.encode()) for k, v in headers.items()],
        "client": client,
    }
    return Request(scope)


class TestClientIp:
    def test_peer_address_by_default(self):
        request = _request({"X-Forwarded-For": "203.0.113.9"})
        assert client_ip(request) == "192.0.2.10"

    def test_unknown_without_peer(self):
        assert client_ip(_request({}, client=None)) == "unknown"

    def test_trusted_proxy_uses_last_hop(self):
        request = _request({"X-Forwarded-For": "10.0.0.1, 198.51.100.7"})
        assert client_ip(request, trust_forwarded_for=True) == "198.51.100.7"

    def test_trusted_proxy_without_header_falls_back_to_peer(self):
        assert client_ip(_request({}), trust_forwarded_for=True) == "192.0.2.10"


class TestRateLimitStorage:
    def test_limit_is_enforced_per_key(self):
        limiter = _limiter()
        assert limiter._hit("validate", "a", VALIDATE_WINDOW, 1)
        assert not limiter._hit("validate", "a", VALIDATE_WINDOW, 1)
        assert limiter._hit("validate", "b", VALIDATE_WINDOW, 1)

    def test_idle_clients_are_swept(self):
        limiter = _limiter()
        long_ago = datetime.now(UTC) - REDEEM_WINDOW - timedelta(minutes=5)
        limiter._requests[("validate", "10.0.0.1")] = [long_ago]
        limiter._requests[("redeem", "10.0.0.2")] = [long_ago]
        limiter._last_sweep = datetime.now(UTC) - SWEEP_INTERVAL * 2

        limiter._hit("validate", "10.0.0.3", VALIDATE_WINDOW, 5)

        assert set(limiter._requests) == {("validate", "10.0.0.3")}

    def test_clients_inside_redeem_window_survive_sweep(self):
        limiter = _limiter()
        recent = datetime.now(UTC) - timedelta(minutes=30)
        limiter._requests[("redeem", "10.0.0.2")] = [recent]
        limiter._last_sweep = datetime.now(UTC) - SWEEP_INTERVAL * 2

        limiter._hit("validate", "10.0.0.3", VALIDATE_WINDOW, 5)

        assert ("redeem", "10.0.0.2") in limiter._requests

    def test_sweep_runs_at_most_once_per_interval(self):
        limiter = _limiter()
        long_ago = datetime.now(UTC) - REDEEM_WINDOW - timedelta(minutes=5)
        limiter._requests[("validate", "10.0.0.1")] = [long_ago]

        limiter._hit("validate", "10.0.0.3", VALIDATE_WINDOW, 5)

        assert ("validate", "10.0.0.1") in limiter._requests

    def test_rotating_identifiers_do_not_grow_without_bound(self):
        limiter = _limiter()
        for i in range(100):
            limiter._hit("validate", f"10.0.{i}.1", VALIDATE_WINDOW, 5)
        assert len(limiter._requests) == 100

        for key in limiter._requests:
            limiter._requests[key] = [datetime.now(UTC) - REDEEM_WINDOW * 2]
        limiter._last_sweep = datetime.now(UTC) - SWEEP_INTERVAL * 2
        limiter._hit("validate", "192.0.2.10", VALIDATE_WINDOW, 5)

        assert len(limiter._requests) == 1
