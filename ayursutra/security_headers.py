"""
Security Headers Middleware for FastAPI

Adds security headers to all JSON responses of the booking API:
- X-Frame-Options: Prevents clickjacking attacks
- X-Content-Type-Options: Prevents MIME type sniffing
- Referrer-Policy: Controls referrer information leakage
- Content-Security-Policy: Nothing to load, nothing to frame
- Strict-Transport-Security: Enforces HTTPS (production only)
- Cache-Control: Patient schedules must not be cached
"""

import logging
from typing import Callable, Optional

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from .config import ENVIRONMENT

logger = logging.getLogger(__name__)

IS_PRODUCTION = ENVIRONMENT == "production"

API_CSP_POLICY = "default-src 'none'; frame-ancestors 'none'; base-uri 'none'"


def get_security_headers_dict(production: bool = IS_PRODUCTION) -> dict:
    headers = {
        "X-Frame-Options": "DENY",
        "X-Content-Type-Options": "nosniff",
        "Referrer-Policy": "strict-origin-when-cross-origin",
        "Content-Security-Policy": API_CSP_POLICY,
        "X-Permitted-Cross-Domain-Policies": "none",
    }

    if production:
        # 1 year, subdomains included
        headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"

    return headers


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Adds the headers from ``get_security_headers_dict`` to every response"""

    def __init__(self, app, exclude_paths: Optional[list[str]] = None, production: bool = IS_PRODUCTION):
        super().__init__(app)
        self.exclude_paths = exclude_paths or []
        self.headers = get_security_headers_dict(production)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)

        # Skip security headers for excluded paths (e.g., health checks)
        path = request.url.path
        if any(path.startswith(excluded) for excluded in self.exclude_paths):
            return response

        for name, value in self.headers.items():
            response.headers[name] = value

        if "Cache-Control" not in response.headers:
            response.headers["Cache-Control"] = "no-store, no-cache, must-revalidate"

        return response
