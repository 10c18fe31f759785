"""Exception taxonomy for the claim-verification pipeline.

Failures are contained at the smallest unit (one sentence or one claim):

- OracleInvalidResponse: malformed judgment output, replaced by a local fallback
- OracleRateLimited: provider throttling, retried by the scheduler's RetryPolicy
- EmbeddingUnavailable: embedding failure, triggers the positional fallback
- EvidenceAbsent: a claim ended with no usable evidence
- ContentUnavailableError: extracted content was empty

Helpers at the bottom classify arbitrary provider exceptions so the retry
policy does not depend on a specific SDK's error types.
"""

import re
from typing import Optional


class FactCheckError(Exception):
    """Base class for pipeline errors."""


class OracleInvalidResponse(FactCheckError):
    """Oracle output could not be parsed or violated the expected schema."""

    def __init__(self, message: str, raw: Optional[str] = None):
        super().__init__(message)
        self.raw = raw


class OracleRateLimited(FactCheckError):
    """Provider signalled throttling.

    Attributes:
        retry_after: Provider-supplied wait hint in seconds, if any.
    """

    def __init__(self, message: str = "Rate limit reached", retry_after: Optional[float] = None):
        super().__init__(message)
        self.retry_after = retry_after


class EmbeddingUnavailable(FactCheckError):
    """Embedding call failed.

    Attributes:
        quota_exhausted: True when the failure was a detected quota exhaustion.
    """

    def __init__(self, message: str, quota_exhausted: bool = False):
        super().__init__(message)
        self.quota_exhausted = quota_exhausted


class EvidenceAbsent(FactCheckError):
    """A claim has zero usable evidence and must not be sent for verification."""

    def __init__(self, claim: str):
        super().__init__(f"No usable evidence for claim: {claim[:80]}")
        self.claim = claim


class ContentUnavailableError(FactCheckError):
    """Content extraction produced no usable text."""


# "429" only counts as a standalone number, never inside a longer one
_RATE_LIMIT_PATTERN = re.compile(
    r"rate limit|resource[_ ]exhausted|too many requests|\b429\b", re.IGNORECASE
)
_QUOTA_PATTERN = re.compile(r"quota|resource[_ ]exhausted|\b429\b", re.IGNORECASE)
_RETRY_HINT_PATTERNS = (
    re.compile(r"retry in ([0-9]+(?:\.[0-9]+)?)\s*s", re.IGNORECASE),
    re.compile(r"retry[_ -]after[\"':= ]+([0-9]+(?:\.[0-9]+)?)", re.IGNORECASE),
    re.compile(r"retry_delay\s*\{\s*seconds:\s*([0-9]+)", re.IGNORECASE),
)


def _status_code(exc: BaseException) -> Optional[int]:
    for attr in ("code", "status_code", "status"):
        value = getattr(exc, attr, None)
        if isinstance(value, int):
            return value
    response = getattr(exc, "response", None)
    status = getattr(response, "status_code", None) or getattr(response, "status", None)
    return status if isinstance(status, int) else None


def is_rate_limit_error(exc: BaseException) -> bool:
    """Return True if the exception is a provider throttling signal."""
    if isinstance(exc, OracleRateLimited):
        return True
    if _status_code(exc) == 429:
        return True
    return _RATE_LIMIT_PATTERN.search(str(exc)) is not None


def is_quota_error(exc: BaseException) -> bool:
    """Return True if the exception looks like an exhausted quota."""
    if _status_code(exc) == 429:
        return True
    return _QUOTA_PATTERN.search(str(exc)) is not None


def retry_after_hint(exc: BaseException) -> Optional[float]:
    """Extract a provider wait hint (seconds) from an exception, if present.

    Checks, in order: an explicit ``retry_after`` attribute, a
    ``Retry-After`` response header, then well-known message patterns.
    """
    hint = getattr(exc, "retry_after", None)
    if isinstance(hint, (int, float)) and hint >= 0:
        return float(hint)

    response = getattr(exc, "response", None)
    headers = getattr(response, "headers", None)
    if headers:
        for header in ("retry-after", "x-ratelimit-reset-tokens"):
            value = headers.get(header)
            try:
                if value is not None:
                    return float(value)
            except (TypeError, ValueError):
                continue

    message = str(exc)
    for pattern in _RETRY_HINT_PATTERNS:
        match = pattern.search(message)
        if match:
            return float(match.group(1))
    return None


__all__ = [
    "FactCheckError",
    "OracleInvalidResponse",
    "OracleRateLimited",
    "EmbeddingUnavailable",
    "EvidenceAbsent",
    "ContentUnavailableError",
    "is_rate_limit_error",
    "is_quota_error",
    "retry_after_hint",
]
