"""
PicHealth API — Route Dependencies
===================================

What:  FastAPI dependencies shared by the routers: the API key gate, the
       fixed-window rate limit and the service providers.
How:   The gate and the limiter live on `app.state` (built in create_app),
       so every app instance, including each test app, has its own table.
       Services are handed out by small provider functions that tests swap
       through `app.dependency_overrides`.

Gated route order:
    require_api_key  → 401 UNAUTHORIZED on a missing / unknown key
    enforce_rate_limit → 429 RATE_LIMIT_EXCEEDED once the key's window is full,
                         otherwise X-RateLimit-* headers on the response
"""

import logging
from typing import Optional

from fastapi import Depends, Header, Request, Response

from pichealth.exceptions import AuthError, RateLimitExceededError
from pichealth.security.api_keys import ApiKeyGate
from pichealth.security.rate_limiter import FixedWindowRateLimiter
from pichealth.services.gemini_service import gemini_service
from pichealth.services.insight_service import InsightService
from pichealth.services.llm_base import LLMService
from pichealth.services.ocr_service import OCRService
from pichealth.services.scan_log_service import ScanLogService, scan_log_service
from pichealth.services.storage_service import ImageStore

logger = logging.getLogger(__name__)


# ── Security ──────────────────────────────────────────────────────────────

async def require_api_key(
    request: Request,
    x_api_key: Optional[str] = Header(default=None, alias="x-api-key"),
) -> str:
    """Return the trimmed key, or raise AuthError."""
    gate: ApiKeyGate = request.app.state.api_key_gate
    if not gate.validate(x_api_key):
        logger.warning("Rejected request to %s: invalid or missing API key", request.url.path)
        raise AuthError()
    return x_api_key.strip()


async def enforce_rate_limit(
    request: Request,
    response: Response,
    api_key: str = Depends(require_api_key),
) -> None:
    """
    Count this request against the key's window.

    Headers set on success:
        X-RateLimit-Limit      requests allowed per window
        X-RateLimit-Remaining  requests left in the current window
        X-RateLimit-Reset      window end, Unix epoch seconds
    """
    limiter: FixedWindowRateLimiter = request.app.state.rate_limiter
    limit: int = request.app.state.rate_limit_per_window

    if limiter.is_rate_limited(api_key, limit):
        info = limiter.get_info(api_key, limit)
        retry_after = info.retry_after(limiter.now())
        logger.warning(
            "Rate limit exceeded on %s (limit=%d, retry in %ds)",
            request.url.path,
            limit,
            retry_after,
        )
        raise RateLimitExceededError(
            limit=limit,
            reset_time=info.reset_time,
            retry_after=retry_after,
        )

    info = limiter.get_info(api_key, limit)
    response.headers["X-RateLimit-Limit"] = str(limit)
    response.headers["X-RateLimit-Remaining"] = str(info.remaining)
    response.headers["X-RateLimit-Reset"] = str(int(info.reset_time))


# ── Service providers ─────────────────────────────────────────────────────

def get_llm_service() -> LLMService:
    return gemini_service


def get_ocr_service(llm: LLMService = Depends(get_llm_service)) -> OCRService:
    return OCRService(llm)


def get_insight_service(llm: LLMService = Depends(get_llm_service)) -> InsightService:
    return InsightService(llm)


def get_image_store(request: Request) -> ImageStore:
    return request.app.state.image_store


def get_scan_log_service() -> ScanLogService:
    return scan_log_service
