"""
Response hardening for the JSON API.

Nothing here is meant to be rendered by a browser, so framing, resource loading and browser
features are all denied. HSTS is only sent when ``ENVIRONMENT=production`` because local and
test runs are plain HTTP.
"""

import os
from typing import Callable, Iterable, Optional

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

IS_PRODUCTION = os.getenv("ENVIRONMENT", "development").lower() == "production"

API_HEADERS = {
    "X-Frame-Options": "DENY",
    "X-Content-Type-Options": "nosniff",
    "Referrer-Policy": "no-referrer",
    "Content-Security-Policy": "default-src 'none'; frame-ancestors 'none'; base-uri 'none'",
    "Permissions-Policy": "camera=(), microphone=(), geolocation=(), payment=(), usb=()",
    "Cross-Origin-Resource-Policy": "same-site",
    "X-Permitted-Cross-Domain-Policies": "none",
}
HSTS_VALUE = "max-age=31536000; includeSubDomains"


def response_headers(production: bool = IS_PRODUCTION) -> dict:
    headers = dict(API_HEADERS)
    if production:
        headers["Strict-Transport-Security"] = HSTS_VALUE
    return headers


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Stamp ``response_headers()`` on every response outside ``exclude_paths``"""

    def __init__(self, app, exclude_paths: Optional[Iterable[str]] = None):
        super().__init__(app)
        self.exclude_paths = tuple(exclude_paths or ())
        self.headers = response_headers()

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)
        if self.exclude_paths and request.url.path.startswith(self.exclude_paths):
            return response

        response.headers.update(self.headers)
        # Per-user JSON; routes that want caching set their own Cache-Control
        response.headers.setdefault("Cache-Control", "no-store")
        return response
