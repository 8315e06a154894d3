"""
Security Middleware
===================

Adds security headers and optional HTTPS enforcement.
"""

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response, RedirectResponse

from ..config import get_settings

HSTS_MAX_AGE = 31536000  # 1 year

# Video players embed Drive previews and stream from Firebase/Drive hosts.
CONTENT_SECURITY_POLICY = (
    "default-src 'self'; "
    "script-src 'self' 'unsafe-inline'; "
    "style-src 'self' 'unsafe-inline'; "
    "img-src 'self' data: blob: https:; "
    "media-src 'self' blob: https://firebasestorage.googleapis.com https://storage.googleapis.com "
    "https://drive.google.com https://*.googleusercontent.com; "
    "frame-src https://drive.google.com; "
    "connect-src 'self' https:; "
    "frame-ancestors 'none';"
)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    Add security headers to all responses.

    Headers added:
    - Strict-Transport-Security (HTTPS only)
    - X-Content-Type-Options
    - X-Frame-Options
    - Referrer-Policy
    - Content-Security-Policy
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        forwarded_proto = request.headers.get("x-forwarded-proto", "")
        is_https = request.url.scheme == "https" or forwarded_proto == "https"

        if get_settings().enforce_https and not is_https:
            url = str(request.url).replace("http://", "https://", 1)
            return RedirectResponse(url, status_code=301)

        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Content-Security-Policy"] = CONTENT_SECURITY_POLICY

        if is_https:
            response.headers["Strict-Transport-Security"] = f"max-age={HSTS_MAX_AGE}; includeSubDomains"

        return response
