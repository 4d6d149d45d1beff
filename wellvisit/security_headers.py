"""
Security Headers Middleware for FastAPI

Adds security headers to all responses to protect against common web vulnerabilities:
- X-Frame-Options: Prevents clickjacking attacks
- X-Content-Type-Options: Prevents MIME type sniffing
- Referrer-Policy: Controls referrer information leakage
- Content-Security-Policy: Restricts resource loading
- Strict-Transport-Security: Enforces HTTPS
- Permissions-Policy: Controls browser features
- Cache-Control: Prevents caching of patient data
"""

import logging
import os
from typing import Callable, Optional

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from .config import ALLOWED_ORIGINS, FRONTEND_URL

logger = logging.getLogger(__name__)

IS_PRODUCTION = os.getenv("ENVIRONMENT", "development").lower() == "production"


def get_csp_policy() -> str:
    """
    Generate Content-Security-Policy header value.

    The API only serves JSON, so everything is locked down except framing
    from the clinic frontend.
    """
    frame_ancestors = " ".join([FRONTEND_URL, *ALLOWED_ORIGINS])

    directives = [
        "default-src 'none'",
        f"frame-ancestors {frame_ancestors}",
        "connect-src 'self' https://api.videosdk.live wss://*.videosdk.live https://api.paymongo.com",
        "img-src 'self' data:",
        "base-uri 'none'",
        "form-action 'self'",
    ]

    policy = "; ".join(directives)
    logger.debug(f"🔒 Generated CSP policy: {policy}")
    return policy


def get_permissions_policy() -> str:
    """
    Generate Permissions-Policy header value.

    Camera and microphone stay available to the frontend for video consultations.
    """
    features = [
        "accelerometer=()",
        "camera=(self)",
        "geolocation=()",
        "gyroscope=()",
        "magnetometer=()",
        "microphone=(self)",
        "payment=()",
        "usb=()",
        "interest-cohort=()",
    ]

    return ", ".join(features)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    Middleware that adds security headers to all responses.

    Headers added:
    - X-Frame-Options: SAMEORIGIN
    - X-Content-Type-Options: nosniff
    - Referrer-Policy: strict-origin-when-cross-origin
    - Content-Security-Policy: (restrictive policy)
    - Strict-Transport-Security (production only)
    - Permissions-Policy
    - Cache-Control: no-store
    """

    def __init__(self, app, exclude_paths: Optional[list[str]] = None):
        super().__init__(app)
        self.exclude_paths = exclude_paths or []

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)

        # Skip security headers for excluded paths (e.g., health checks)
        path = request.url.path
        if any(path.startswith(excluded) for excluded in self.exclude_paths):
            return response

        response.headers["X-Frame-Options"] = "SAMEORIGIN"
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-XSS-Protection"] = "1; mode=block"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Content-Security-Policy"] = get_csp_policy()

        # max-age=31536000 = 1 year
        if IS_PRODUCTION:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains; preload"

        response.headers["Permissions-Policy"] = get_permissions_policy()

        # Patient data must never sit in a shared cache
        if "Cache-Control" not in response.headers:
            response.headers["Cache-Control"] = "no-store, no-cache, must-revalidate"

        response.headers["X-Permitted-Cross-Domain-Policies"] = "none"
        response.headers["X-DNS-Prefetch-Control"] = "off"

        # Cross-Origin-Resource-Policy is left to the CORS middleware

        return response
