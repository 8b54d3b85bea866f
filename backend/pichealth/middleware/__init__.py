"""
PicHealth API — Middleware Package
===================================

What:  Cross-cutting concerns applied to every request.

Middleware Chain (outermost first):
    Request → [CORS policy] → [Request ID] → [Logging] → [GZip] → Route

    1. CORS first: preflights are answered with 204 before anything else
       runs, and every response (errors included) gets the CORS headers
    2. Request ID sets the correlation ID used by logging and error bodies
    3. Logging wraps the handler to time it

API key and rate limit checks are route dependencies (routes/dependencies.py),
not middleware: only the /api/v1 routes are gated.
"""
