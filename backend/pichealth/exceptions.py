"""
PicHealth API — Custom Exception Hierarchy
===========================================

What:  Application-specific exceptions for the different failure scenarios.
How:   Each exception carries a user-facing message, a machine-readable
       `code` and an optional context dict. Global exception handlers
       (registered in main.py) turn the HTTP-facing ones into
       `{"success": false, "error": CODE, "message": ...}` responses.
Who:   Raised by security dependencies, services and the core layer.

Exception Hierarchy:
    PicHealthError (base)
    ├── AuthError                → 401 UNAUTHORIZED
    ├── RateLimitExceededError   → 429 RATE_LIMIT_EXCEEDED
    ├── ValidationError          → 400 (MISSING_IMAGE, NO_ANALYZABLE_DATA, ...)
    ├── ExtractionFailed         → never leaves the service layer
    ├── LLMServiceError          → recovered into a typed fallback (AI_ERROR)
    ├── CircuitBreakerOpenError  → recovered into a typed fallback (AI_ERROR)
    ├── FileStorageError         → swallowed by the best-effort scan recorder
    └── DatabaseError            → swallowed by the best-effort scan recorder

Propagation policy:
    Only auth, rate-limit and validation errors become non-200 statuses.
    AI and parsing failures degrade to a `success: false` typed record so the
    client can always render something; storage and log-store failures are
    logged server-side and never change the client-visible response.
"""

from typing import Any, Dict, Optional

from pichealth.middleware.request_id import request_id_var


class PicHealthError(Exception):
    """
    Base exception for all PicHealth application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        code:     Machine-readable error code returned as the `error` field
        context:  Additional debug info (logged but NOT returned to client)
    """

    code = "INTERNAL_ERROR"

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
        code: Optional[str] = None,
    ):
        self.message = message
        self.context = context or {}
        if code:
            self.code = code
        super().__init__(self.message)


class AuthError(PicHealthError):
    """
    Raised when the x-api-key header is missing or not in the allow-list.

    HTTP:    401 Unauthorized
    """

    code = "UNAUTHORIZED"

    def __init__(
        self,
        message: str = "Invalid or missing API key. Provide a valid key in the x-api-key header.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class RateLimitExceededError(PicHealthError):
    """
    Raised when an API key exceeds its per-window request budget.

    HTTP:    429 Too Many Requests

    Response includes:
        - resetTime: ISO-8601 instant at which the current window ends
        - Retry-After header: whole seconds until that instant
        - X-RateLimit-* headers with the limit and zero remaining
    """

    code = "RATE_LIMIT_EXCEEDED"

    def __init__(
        self,
        limit: int,
        reset_time: float,
        retry_after: int,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["retry_after"] = retry_after
        super().__init__(
            message="Too many requests. Please try again later.",
            context=ctx,
        )
        self.limit = limit
        self.reset_time = reset_time
        self.retry_after = retry_after


class ValidationError(PicHealthError):
    """
    Raised when client input fails validation.

    What:    The client sent a request that can be corrected.
    When:    Missing image, undecodable base64, missing device_id, no
             analyzable health data, malformed body.
    HTTP:    400 Bad Request

    `payload` holds extra top-level fields merged into the error body, e.g.
    the empty domain shape (`items: []`, `rawText: ""`) that OCR clients
    expect even on failure.

    Example response:
        {
            "success": false,
            "error": "MISSING_IMAGE",
            "message": "Please provide an image in base64 format",
            "items": [],
            "rawText": ""
        }
    """

    code = "INVALID_REQUEST"

    def __init__(
        self,
        message: str = "Validation failed",
        code: Optional[str] = None,
        field: Optional[str] = None,
        payload: Optional[Dict[str, Any]] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx, code=code)
        self.field = field
        self.payload = payload or {}


class ExtractionFailed(PicHealthError):
    """
    Raised by the response extractor when no JSON object can be recovered
    from the model's text.

    Never reaches the HTTP layer: services catch it and return the domain's
    fully-defaulted record with `success: false`.
    """

    code = "EXTRACTION_FAILED"

    def __init__(
        self,
        message: str = "Could not find a JSON object in the model response",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class LLMServiceError(PicHealthError):
    """
    Raised when the Gemini call fails after the client's own retries.

    Services turn it into a neutral fallback record with `error: AI_ERROR`.
    """

    code = "AI_ERROR"

    def __init__(
        self,
        message: str = "AI service is temporarily unavailable",
        retry_after: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if retry_after:
            ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after


class CircuitBreakerOpenError(LLMServiceError):
    """
    Raised when the Gemini circuit breaker is OPEN.

    How circuit breaker works:
        CLOSED (normal) → failures increment counter
        → After N failures → OPEN (reject all calls for M seconds)
        → After M seconds → HALF-OPEN (allow one test call)
        → If test succeeds → CLOSED
        → If test fails → OPEN again
    """

    def __init__(
        self,
        recovery_time: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["recovery_time"] = recovery_time
        super().__init__(
            message=(
                "AI service is temporarily unavailable due to repeated failures. "
                f"Retrying automatically in approximately {recovery_time} seconds."
            ),
            retry_after=recovery_time,
            context=ctx,
        )
        self.recovery_time = recovery_time


class FileStorageError(PicHealthError):
    """
    Raised when uploading an image to object storage (or local disk) fails.

    Recovery:
        The scan recorder logs it with full context and carries on; the OCR
        result is still returned to the client.
    """

    code = "STORAGE_ERROR"

    def __init__(
        self,
        message: str = "Image storage operation failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DatabaseError(PicHealthError):
    """
    Raised when writing to the scan / summary log tables fails.

    Security Note:
        Detailed error info (SQL, constraint names) is logged server-side
        only and never returned to the API consumer.
    """

    code = "DATABASE_ERROR"

    def __init__(
        self,
        message: str = "A database error occurred.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


def error_body(
    code: str,
    message: str,
    details: Optional[Dict[str, Any]] = None,
    request_id: Optional[str] = None,
    **extra: Any,
) -> Dict[str, Any]:
    """
    `{success: false, error, message, [details], ...extra, request_id}`

    `request_id` defaults to the one bound to the current request context.
    """
    body: Dict[str, Any] = {"success": False, "error": code, "message": message}
    if details:
        body["details"] = details
    body.update(extra)
    body["request_id"] = request_id_var.get("") if request_id is None else request_id
    return body
