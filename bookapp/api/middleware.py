"""Middleware for request logging, security headers and rate limiting."""

import logging
import time
from datetime import UTC, datetime, timedelta

from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from bookapp.core.config import Settings
from bookapp.core.metrics import observe_http_request
from bookapp.core.request_context import (
    new_request_id,
    request_id_context,
    sanitize_request_id,
)
from bookapp.core.structured_logging import log_json

logger = logging.getLogger(__name__)

INVITATIONS_PREFIX = "/api/invitations/"
REDEEM_PATH = "/api/invitations/redeem"

VALIDATE_WINDOW = timedelta(minutes=1)
REDEEM_WINDOW = timedelta(hours=1)
LONGEST_WINDOW = max(VALIDATE_WINDOW, REDEEM_WINDOW)
SWEEP_INTERVAL = timedelta(minutes=1)


def client_ip(request: Request, trust_forwarded_for: bool = False) -> str:
    """Client address used for rate limiting and logs.

    X-Forwarded-For is client-controlled, so it is read only when a trusted
    proxy sits in front; the last hop is the one that proxy appended.
    """
    if trust_forwarded_for:
        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for:
            hops = [hop.strip() for hop in forwarded_for.split(",") if hop.strip()]
            if hops:
                return hops[-1]
    return request.client.host if request.client else "unknown"


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add basic security headers to all responses."""

    def __init__(self, app: ASGIApp, settings: Settings):
        super().__init__(app)
        self.settings = settings

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)

        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("Referrer-Policy", "no-referrer")
        # Validated codes must not linger in shared caches
        if request.url.path.startswith(INVITATIONS_PREFIX):
            response.headers.setdefault("Cache-Control", "no-store")

        if self.settings.environment == "production":
            scheme = request.headers.get("x-forwarded-proto") or request.url.scheme
            if scheme == "https":
                response.headers.setdefault(
                    "Strict-Transport-Security",
                    "max-age=63072000; includeSubDomains",
                )

        return response


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Per-IP sliding window limits on the unauthenticated invitation endpoints.

    Rate limits:
    - Validate (GET /api/invitations/{code}): per minute per IP
    - Redeem (POST /api/invitations/redeem): per hour per IP

    Counters live in process memory, so each worker enforces its own limit.
    Idle clients are swept at most once per SWEEP_INTERVAL.
    """

    def __init__(self, app: ASGIApp, settings: Settings):
        super().__init__(app)
        self.settings = settings
        # Storage: {(bucket, client_ip): [timestamp, ...]}
        self._requests: dict[tuple[str, str], list[datetime]] = {}
        self._last_sweep = datetime.now(UTC)

    def _sweep(self, now: datetime) -> None:
        """Drop clients with no hit inside the longest window."""
        if now - self._last_sweep < SWEEP_INTERVAL:
            return
        self._last_sweep = now
        cutoff = now - LONGEST_WINDOW
        stale = [key for key, hits in self._requests.items() if not hits or hits[-1] <= cutoff]
        for key in stale:
            del self._requests[key]

    def _hit(self, bucket: str, identifier: str, window: timedelta, limit: int) -> bool:
        """Record a request and report whether it stays within the limit."""
        now = datetime.now(UTC)
        self._sweep(now)
        key = (bucket, identifier)
        recent = [ts for ts in self._requests.get(key, []) if ts > now - window]
        if len(recent) >= limit:
            self._requests[key] = recent
            return False
        recent.append(now)
        self._requests[key] = recent
        return True

    def _rule_for(self, request: Request) -> tuple[str, timedelta, int] | None:
        path = request.url.path
        if request.method == "POST" and path == REDEEM_PATH:
            return "redeem", REDEEM_WINDOW, self.settings.rate_limit_redeem_per_hour
        if request.method == "GET" and path.startswith(INVITATIONS_PREFIX):
            return "validate", VALIDATE_WINDOW, self.settings.rate_limit_validate_per_minute
        return None

    async def dispatch(self, request: Request, call_next):
        """Apply rate limiting based on endpoint."""
        if self.settings.environment != "production":
            return await call_next(request)

        rule = self._rule_for(request)
        if rule is not None:
            bucket, window, limit = rule
            identifier = client_ip(request, self.settings.trust_forwarded_for)
            if not self._hit(bucket, identifier, window, limit):
                log_json(
                    logger,
                    logging.WARNING,
                    "rate_limited",
                    bucket=bucket,
                    client_ip=identifier,
                )
                return JSONResponse(
                    status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                    content={"detail": "Too many invitation requests. Please try again later."},
                )

        return await call_next(request)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Request logging middleware with structured logging.

    Assigns or propagates X-Request-ID, records HTTP metrics and writes one
    JSON line per request.
    """

    async def dispatch(self, request: Request, call_next):
        request_id = sanitize_request_id(
            request.headers.get("X-Request-ID") or request.headers.get("X-Correlation-ID")
        ) or new_request_id()
        request.state.request_id = request_id

        start_time = time.perf_counter()
        method = request.method
        path = request.url.path

        with request_id_context(request_id):
            try:
                response = await call_next(request)
            except Exception as exc:
                duration_ms = (time.perf_counter() - start_time) * 1000
                log_json(
                    logger,
                    logging.ERROR,
                    "request_error",
                    method=method,
                    path=getattr(request.scope.get("route"), "path", None) or path,
                    status_code=500,
                    duration_ms=round(duration_ms, 2),
                    client_ip=client_ip(request),
                    error=str(exc),
                    exception=exc.__class__.__name__,
                )
                raise

            response.headers.setdefault("X-Request-ID", request_id)
            duration_ms = (time.perf_counter() - start_time) * 1000

            route_obj = request.scope.get("route")
            route_template = getattr(route_obj, "path", None) if route_obj else None
            observe_http_request(
                method=method,
                route=route_template or "unmatched",
                status_code=response.status_code,
                duration_ms=duration_ms,
            )

            if response.status_code >= 500:
                level = logging.ERROR
            elif response.status_code >= 400:
                level = logging.WARNING
            else:
                level = logging.INFO

            # Route template, not the raw path, so codes stay out of the log
            log_json(
                logger,
                level,
                "request",
                method=method,
                path=route_template or path,
                status_code=response.status_code,
                duration_ms=round(duration_ms, 2),
                client_ip=client_ip(request),
            )

            return response
