"""
PicHealth API — CORS Policy
============================

What:  Decides which browser origins may call the API and which CORS
       headers go on every response.
Why:   The web pages and partner sites call /api/v1 from the browser; other
       origins must not be able to read the responses.
How:   ALLOWED_ORIGINS holds entries of three kinds:

           *                      any origin
           https://app.example    exact match
           *.example.com          any origin whose host ends in ".example.com"

       CORSPolicyMiddleware answers every OPTIONS preflight with 204 and the
       policy headers, and adds the same headers to every other response,
       errors included. An exception escaping the app is turned into the
       500 INTERNAL_ERROR body here, because the app-level catch-all runs
       outside this middleware and would send it without CORS headers.

Why not Starlette's CORSMiddleware:
    It answers preflights from unknown origins with 400; clients of this API
    expect a 204 with no Access-Control-Allow-Origin instead.
"""

import logging
from typing import Dict, Iterable, List, Optional
from urllib.parse import urlsplit

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from pichealth.config import settings
from pichealth.exceptions import error_body

logger = logging.getLogger(__name__)

ALLOW_METHODS = "POST, OPTIONS"
ALLOW_HEADERS = "Content-Type, x-api-key"
MAX_AGE = "86400"
EXPOSE_HEADERS = (
    "X-RateLimit-Limit, X-RateLimit-Remaining, X-RateLimit-Reset, "
    "Retry-After, X-Request-ID"
)


class CorsPolicy:
    """Origin allow-list with "*" and "*.domain" wildcard support."""

    def __init__(self, allowed: Iterable[str]):
        self.allowed: List[str] = [entry.strip() for entry in allowed if entry and entry.strip()]
        self.allow_all = "*" in self.allowed
        self._exact = {entry for entry in self.allowed if not entry.startswith("*")}
        self._suffixes = [
            entry[1:].lower() for entry in self.allowed if entry.startswith("*.")
        ]

    def is_allowed_origin(self, origin: Optional[str]) -> bool:
        if not origin:
            return False
        if self.allow_all or origin in self._exact:
            return True
        if not self._suffixes:
            return False

        host = (urlsplit(origin).hostname or "").lower()
        # "*.example.com" matches sub.example.com but not example.com or evilexample.com
        return any(host.endswith(suffix) for suffix in self._suffixes)

    def headers_for(self, origin: Optional[str]) -> Dict[str, str]:
        headers = {
            "Access-Control-Allow-Methods": ALLOW_METHODS,
            "Access-Control-Allow-Headers": ALLOW_HEADERS,
            "Access-Control-Max-Age": MAX_AGE,
        }
        if self.is_allowed_origin(origin):
            headers["Access-Control-Allow-Origin"] = origin
            headers["Access-Control-Expose-Headers"] = EXPOSE_HEADERS
            headers["Vary"] = "Origin"
        return headers


class CORSPolicyMiddleware(BaseHTTPMiddleware):
    """
    Applies a CorsPolicy to every request.

    Behavior:
        1. OPTIONS (any path) → 204, CORS headers only, handler not called
        2. Anything else      → handler runs, CORS headers merged into the response
        3. Unhandled error    → 500 INTERNAL_ERROR with the CORS and request-ID
                                headers (details only in development)
    """

    def __init__(self, app, policy: CorsPolicy):
        super().__init__(app)
        self.policy = policy

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        origin = request.headers.get("origin")
        headers = self.policy.headers_for(origin)

        if request.method == "OPTIONS":
            return Response(status_code=204, headers=headers)

        if origin and "Access-Control-Allow-Origin" not in headers:
            logger.debug("Origin not allowed: %s", origin)

        try:
            response = await call_next(request)
        except Exception as exc:
            response = self._internal_error(request, exc)

        for name, value in headers.items():
            response.headers[name] = value
        return response

    @staticmethod
    def _internal_error(request: Request, exc: Exception) -> Response:
        # request.state is shared through the scope; the request-ID contextvar is not
        request_id = getattr(request.state, "request_id", "")
        logger.error("[%s] Unexpected error: %s", request_id, exc, exc_info=True)
        details = {"exception": repr(exc)} if settings.is_development else None
        return JSONResponse(
            status_code=500,
            content=error_body(
                "INTERNAL_ERROR",
                "An unexpected error occurred. Please try again or contact support.",
                details,
                request_id=request_id,
            ),
            headers={"X-Request-ID": request_id} if request_id else None,
        )
