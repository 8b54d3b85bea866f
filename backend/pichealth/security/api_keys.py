"""
PicHealth API — API Key Gate
=============================

What:  Allow-list check for the `x-api-key` header on /api/v1 routes.
How:   Keys come from OCR_API_KEY as a comma-separated list. Both the
       configured keys and the presented key are trimmed; a missing or blank
       key is never valid. Comparison uses hmac.compare_digest per key so
       the time taken does not reveal how much of a key matched.
"""

import hmac
from typing import FrozenSet, Iterable, Optional

from pichealth.config import settings, split_csv


class ApiKeyGate:
    """Membership check against a fixed set of API keys."""

    def __init__(self, keys: Iterable[str]):
        self._keys: FrozenSet[str] = frozenset(k.strip() for k in keys if k and k.strip())

    @classmethod
    def from_csv(cls, value: str) -> "ApiKeyGate":
        return cls(split_csv(value or ""))

    def __len__(self) -> int:
        return len(self._keys)

    def validate(self, key: Optional[str]) -> bool:
        if key is None:
            return False
        candidate = key.strip()
        if not candidate:
            return False
        matched = False
        for allowed in self._keys:
            if hmac.compare_digest(candidate.encode(), allowed.encode()):
                matched = True
        return matched


def validate_api_key(key: Optional[str]) -> bool:
    """Check `key` against the keys currently configured in settings."""
    return ApiKeyGate.from_csv(settings.ocr_api_key).validate(key)
