"""Per-IP token-bucket rate limiting.

Each limiter owns a registry of buckets keyed by client IP. Buckets refill
lazily when checked, so no background timer is needed. Two limiters are
wired into the app in main.py: a relaxed one for the whole API and a
stricter one for the authentication endpoints.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

from fastapi import Request
from slowapi.util import get_remote_address

from restapi.common.exceptions import RateLimitExceededException

logger = logging.getLogger(__name__)

DEFAULT_CLEANUP_THRESHOLD = 1000
DEFAULT_CLEANUP_BATCH = 500


@dataclass(frozen=True)
class RateLimitPolicy:
    """Refill rate (tokens per second) and burst capacity."""

    rate: float
    burst: int

    def __post_init__(self) -> None:
        if self.rate <= 0:
            raise ValueError("rate must be > 0")
        if self.burst < 1:
            raise ValueError("burst must be >= 1")

    @classmethod
    def per_second(cls, requests: float, burst: int) -> RateLimitPolicy:
        return cls(rate=float(requests), burst=burst)

    @classmethod
    def per_minute(cls, requests: float, burst: int) -> RateLimitPolicy:
        return cls(rate=requests / 60.0, burst=burst)


class TokenBucket:
    """Token bucket for a single client.

    The token count stays within ``[0, burst]``. All reads and writes of the
    count and timestamp happen under the bucket's own lock.
    """

    __slots__ = ("rate", "burst", "tokens", "last_refill", "last_seen", "_lock")

    def __init__(self, policy: RateLimitPolicy, now: float) -> None:
        self.rate = policy.rate
        self.burst = policy.burst
        self.tokens = float(policy.burst)
        self.last_refill = now
        self.last_seen = now
        self._lock = threading.Lock()

    def allow(self, now: float) -> bool:
        """Take one token if available. A rejected check leaves the token count as is."""
        with self._lock:
            self.last_seen = max(now, self.last_seen)
            elapsed = max(0.0, now - self.last_refill)
            tokens = min(float(self.burst), self.tokens + elapsed * self.rate)
            if tokens < 1.0:
                return False
            self.tokens = tokens - 1.0
            self.last_refill = max(now, self.last_refill)
            return True

    def available(self, now: float) -> float:
        """Tokens that a check at ``now`` would see, without consuming any."""
        with self._lock:
            elapsed = max(0.0, now - self.last_refill)
            return min(float(self.burst), self.tokens + elapsed * self.rate)


class IPRateLimiter:
    """Registry of token buckets keyed by client IP.

    The registry lock guards insertion and cleanup; each bucket guards its
    own state, so checks for different IPs never contend on a bucket.
    """

    def __init__(
        self,
        policy: RateLimitPolicy,
        *,
        cleanup_threshold: int = DEFAULT_CLEANUP_THRESHOLD,
        cleanup_batch: int = DEFAULT_CLEANUP_BATCH,
        clock: Callable[[], float] = time.monotonic,
        name: str = "api",
    ) -> None:
        if cleanup_threshold < 1:
            raise ValueError("cleanup_threshold must be >= 1")
        if cleanup_batch < 1:
            raise ValueError("cleanup_batch must be >= 1")

        self.policy = policy
        self.name = name
        self._cleanup_threshold = cleanup_threshold
        self._cleanup_batch = cleanup_batch
        self._clock = clock
        self._lock = threading.Lock()
        self._buckets: dict[str, TokenBucket] = {}

    def __len__(self) -> int:
        return len(self._buckets)

    def __contains__(self, ip: object) -> bool:
        return ip in self._buckets

    def get_or_create_bucket(self, ip: str) -> TokenBucket:
        """Return the bucket for ``ip``, creating a full one on first sight."""
        bucket = self._buckets.get(ip)
        if bucket is not None:
            return bucket

        with self._lock:
            bucket = self._buckets.get(ip)
            if bucket is None:
                bucket = TokenBucket(self.policy, self._clock())
                self._buckets[ip] = bucket
                if len(self._buckets) > self._cleanup_threshold:
                    self._evict_locked()
            return bucket

    def allow(self, ip: str) -> bool:
        """Admit or reject one request from ``ip``."""
        bucket = self.get_or_create_bucket(ip)
        return bucket.allow(self._clock())

    def cleanup(self) -> int:
        """Drop buckets once the registry exceeds its threshold.

        Returns the number of buckets removed.
        """
        with self._lock:
            if len(self._buckets) <= self._cleanup_threshold:
                return 0
            return self._evict_locked()

    def reset(self) -> None:
        with self._lock:
            self._buckets.clear()

    def _evict_locked(self) -> int:
        # Least recently seen first; rejected checks count as activity. A
        # bucket evicted mid-check is recreated full on the next request.
        excess = len(self._buckets) - self._cleanup_threshold
        count = min(len(self._buckets), max(self._cleanup_batch, excess + 1))
        victims = sorted(self._buckets.items(), key=lambda item: item[1].last_seen)[:count]
        for ip, _ in victims:
            del self._buckets[ip]
        logger.debug(
            "Rate limiter cleanup removed %d buckets",
            count,
            extra={"limiter": self.name, "remaining": len(self._buckets)},
        )
        return count


# ── FastAPI dependencies ────────────────────────────────────────────

def get_client_ip(request: Request) -> str:
    # Behind a proxy, uvicorn rewrites the client from X-Forwarded-For when
    # the peer is listed in FORWARDED_ALLOW_IPS.
    return get_remote_address(request)


def _check(request: Request, limiter: Optional[IPRateLimiter], exc: RateLimitExceededException) -> None:
    if limiter is None:
        return
    ip = get_client_ip(request)
    if not limiter.allow(ip):
        logger.warning(
            "Rate limit exceeded",
            extra={"ip": ip, "limiter": limiter.name, "path": request.url.path},
        )
        raise exc


async def enforce_rate_limit(request: Request) -> None:
    """Apply the general API limiter stored on ``app.state``."""
    _check(
        request,
        getattr(request.app.state, "api_limiter", None),
        RateLimitExceededException(),
    )


async def enforce_auth_rate_limit(request: Request) -> None:
    """Apply the stricter authentication limiter stored on ``app.state``."""
    _check(
        request,
        getattr(request.app.state, "auth_limiter", None),
        RateLimitExceededException(
            code="AUTH_RATE_LIMIT_EXCEEDED",
            message="Authentication rate limit exceeded",
            details="Too many authentication attempts from your IP address",
        ),
    )
