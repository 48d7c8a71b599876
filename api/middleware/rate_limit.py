"""
MotoresRD - Rate limiting.

In-memory sliding window limiter guarding login attempts and image uploads.
Counters live in the API process, so limits apply per instance.
"""

import logging
import time
from collections import defaultdict

from fastapi import HTTPException

logger = logging.getLogger(__name__)


class InMemoryRateLimiter:
    """Sliding window limiter keyed by arbitrary strings ("login:<ip>", "upload:<user>")."""

    def __init__(self):
        self._requests: dict[str, list[float]] = defaultdict(list)

    def _prune(self, key: str, window_seconds: int, now: float) -> list[float]:
        window_start = now - window_seconds
        recent = [t for t in self._requests.get(key, []) if t > window_start]
        if recent:
            self._requests[key] = recent
        else:
            self._requests.pop(key, None)
        return recent

    def check_rate_limit(self, key: str, max_requests: int, window_seconds: int) -> bool:
        """
        Record a request for key.

        Returns:
            True if allowed, False when max_requests were already made in the window
        """
        now = time.time()
        recent = self._prune(key, window_seconds, now)

        if len(recent) >= max_requests:
            logger.warning(
                f"Rate limit exceeded for {key}: {len(recent)}/{max_requests} in {window_seconds}s"
            )
            return False

        self._requests[key].append(now)
        return True

    def get_remaining(self, key: str, max_requests: int, window_seconds: int) -> int:
        recent = self._prune(key, window_seconds, time.time())
        return max(0, max_requests - len(recent))

    def reset(self, key: str) -> None:
        self._requests.pop(key, None)

    def clear_all(self) -> None:
        self._requests.clear()


# Singleton instance
_rate_limiter: InMemoryRateLimiter | None = None


def get_rate_limiter() -> InMemoryRateLimiter:
    """Get singleton rate limiter instance."""
    global _rate_limiter
    if _rate_limiter is None:
        _rate_limiter = InMemoryRateLimiter()
    return _rate_limiter


def enforce_rate_limit(key: str, max_requests: int, window_seconds: int = 60) -> None:
    """
    Raises:
        HTTPException 429: Limit exceeded for key
    """
    if not get_rate_limiter().check_rate_limit(key, max_requests, window_seconds):
        raise HTTPException(
            status_code=429,
            detail="Demasiadas solicitudes. Espera 1 minuto e intenta de nuevo.",
        )
