"""
Security Middleware

Bearer token auth, rate limiting, and request body size limits.

When AUTH_TOKEN is set, all non-health endpoints require
Authorization: Bearer <token>. When unset, auth is not enforced (dev mode).
Settings are read once per app through ``SecuritySettings.from_env()``.
"""

import logging
import os
import time
from collections import defaultdict
from dataclasses import dataclass
from typing import Callable, Optional, Set, Tuple

from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

logger = logging.getLogger(__name__)

# Paths that never require auth (exact match after stripping trailing slash)
HEALTH_PATHS: Set[str] = {
    "/health",
}

# Patterns that identify expensive (LLM-calling) endpoints
EXPENSIVE_PATTERNS: Tuple[str, ...] = (
    "/ai-check",
    "/admin/test-ai",
)

RATE_LIMIT_WINDOW: int = 60  # seconds


@dataclass
class SecuritySettings:
    auth_token: Optional[str] = None
    max_json_bytes: int = 1 * 1024 * 1024
    max_body_bytes: int = 5 * 1024 * 1024
    rate_limit_expensive: int = 10
    rate_limit_mutate: int = 60
    rate_limit_read: int = 200
    rate_limit_window: int = RATE_LIMIT_WINDOW

    @classmethod
    def from_env(cls) -> "SecuritySettings":
        return cls(
            auth_token=os.getenv("AUTH_TOKEN") or None,
            max_json_bytes=int(os.getenv("MAX_JSON_BYTES", str(1 * 1024 * 1024))),
            max_body_bytes=int(os.getenv("MAX_BODY_BYTES", str(5 * 1024 * 1024))),
            rate_limit_expensive=int(os.getenv("RATE_LIMIT_EXPENSIVE", "10")),
            rate_limit_mutate=int(os.getenv("RATE_LIMIT_MUTATE", "60")),
            rate_limit_read=int(os.getenv("RATE_LIMIT_READ", "200")),
        )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _normalize_path(path: str) -> str:
    """Strip trailing slash for consistent matching."""
    return path.rstrip("/") if path != "/" else path


def _is_health(path: str) -> bool:
    return _normalize_path(path) in HEALTH_PATHS


def _is_expensive(path: str) -> bool:
    return any(pat in path for pat in EXPENSIVE_PATTERNS)


def _is_mutating(method: str) -> bool:
    return method in {"POST", "PUT", "DELETE", "PATCH"}


def _is_cors_preflight(request: Request) -> bool:
    return request.method == "OPTIONS" and "access-control-request-method" in request.headers


def check_bearer_token(auth_header: Optional[str], expected: Optional[str]) -> bool:
    """Validate an Authorization header against the configured token."""
    if not expected:
        return True
    if not auth_header:
        return False
    parts = auth_header.split(" ", 1)
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return False
    return parts[1] == expected


# ---------------------------------------------------------------------------
# Auth Middleware
# ---------------------------------------------------------------------------

class AuthMiddleware(BaseHTTPMiddleware):
    """Rejects requests without a valid bearer token, except health checks and CORS preflight."""

    def __init__(self, app: ASGIApp, settings: SecuritySettings):
        super().__init__(app)
        self.settings = settings

    async def dispatch(self, request: Request, call_next: Callable):
        path = _normalize_path(request.url.path)

        if _is_cors_preflight(request) or _is_health(path):
            return await call_next(request)

        if not check_bearer_token(request.headers.get("authorization"), self.settings.auth_token):
            logger.warning("[AUTH] Rejected request to %s - invalid/missing token", path)
            return JSONResponse(
                status_code=status.HTTP_401_UNAUTHORIZED,
                content={"detail": "Invalid or missing authorization token."},
                headers={"WWW-Authenticate": "Bearer"},
            )

        return await call_next(request)


# ---------------------------------------------------------------------------
# Body Size Limit Middleware
# ---------------------------------------------------------------------------

class BodySizeLimitMiddleware(BaseHTTPMiddleware):
    """
    Reject requests with bodies exceeding configured limits.

    JSON content types are limited to max_json_bytes, everything else to
    max_body_bytes.
    """

    def __init__(self, app: ASGIApp, settings: SecuritySettings):
        super().__init__(app)
        self.settings = settings

    async def dispatch(self, request: Request, call_next: Callable):
        content_length = request.headers.get("content-length")
        if content_length is None:
            return await call_next(request)

        try:
            length = int(content_length)
        except ValueError:
            return JSONResponse(
                status_code=status.HTTP_400_BAD_REQUEST,
                content={"detail": "Invalid Content-Length header."},
            )

        is_json = "application/json" in request.headers.get("content-type", "")
        limit = self.settings.max_json_bytes if is_json else self.settings.max_body_bytes
        if length > limit:
            logger.warning(
                "[SECURITY] Rejected oversized request to %s (%d bytes, limit %d)",
                request.url.path, length, limit,
            )
            return JSONResponse(
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                content={"detail": f"Request body too large. Limit: {limit} bytes."},
            )

        return await call_next(request)


# ---------------------------------------------------------------------------
# Rate Limiting Middleware
# ---------------------------------------------------------------------------

class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    In-memory per-IP rate limiting with tiered limits.

    Tiers:
    - Expensive (AI check, admin AI test): rate_limit_expensive per window
    - Mutating (POST/PUT/DELETE/PATCH): rate_limit_mutate per window
    - Read (GET): rate_limit_read per window
    - Health: unlimited
    """

    def __init__(self, app: ASGIApp, settings: SecuritySettings):
        super().__init__(app)
        self.settings = settings
        # {ip: [(timestamp, tier)]}
        self._requests: dict = defaultdict(list)

    def _clean_old_entries(self, ip: str, now: float):
        cutoff = now - self.settings.rate_limit_window
        self._requests[ip] = [(ts, tier) for ts, tier in self._requests[ip] if ts > cutoff]

    def _count_tier(self, ip: str, tier: str) -> int:
        return sum(1 for _, t in self._requests[ip] if t == tier)

    def _tier_for(self, path: str, method: str) -> Tuple[str, int]:
        if _is_expensive(path):
            return "expensive", self.settings.rate_limit_expensive
        if _is_mutating(method):
            return "mutate", self.settings.rate_limit_mutate
        return "read", self.settings.rate_limit_read

    async def dispatch(self, request: Request, call_next: Callable):
        path = _normalize_path(request.url.path)
        method = request.method

        if _is_health(path) or _is_cors_preflight(request):
            return await call_next(request)

        ip = request.client.host if request.client else "unknown"
        now = time.time()
        self._clean_old_entries(ip, now)

        tier, limit = self._tier_for(path, method)
        count = self._count_tier(ip, tier)
        if count >= limit:
            window = self.settings.rate_limit_window
            logger.warning(
                "[RATE LIMIT] %s exceeded %s tier limit (%d/%d) on %s %s",
                ip, tier, count, limit, method, path,
            )
            return JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content={"detail": f"Rate limit exceeded ({tier} tier: {limit} requests per {window}s)."},
                headers={"Retry-After": str(window)},
            )

        self._requests[ip].append((now, tier))
        return await call_next(request)


# ---------------------------------------------------------------------------
# Wiring helper
# ---------------------------------------------------------------------------

def configure_security(app, settings: Optional[SecuritySettings] = None) -> SecuritySettings:
    """
    Wire the security middleware onto the FastAPI app.

    Middleware executes in reverse registration order (last added = outermost).
    Order: body limits -> rate limits -> auth (auth is outermost).
    """
    settings = settings or SecuritySettings.from_env()

    app.add_middleware(BodySizeLimitMiddleware, settings=settings)
    app.add_middleware(RateLimitMiddleware, settings=settings)
    app.add_middleware(AuthMiddleware, settings=settings)

    token_status = "ENFORCED" if settings.auth_token else "DISABLED (AUTH_TOKEN not set)"
    logger.info("[SECURITY] Middleware configured:")
    logger.info("[SECURITY]   Auth: %s", token_status)
    logger.info(
        "[SECURITY]   Rate limits: expensive=%d, mutate=%d, read=%d per %ds",
        settings.rate_limit_expensive, settings.rate_limit_mutate,
        settings.rate_limit_read, settings.rate_limit_window,
    )
    logger.info(
        "[SECURITY]   Body limits: JSON=%d bytes, other=%d bytes",
        settings.max_json_bytes, settings.max_body_bytes,
    )
    return settings
