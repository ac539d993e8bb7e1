"""
Signup rate limiting keyed by client IP.

One limiter object is built per process (see ``build_rate_limiter``) and
handed to request handlers through ``get_rate_limiter``. The in-memory
backend is a per-process deterrent only; the Redis backend shares counters
between instances.
"""

import logging
import random
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Optional

import redis.asyncio as redis
from fastapi import Request
from redis.exceptions import RedisError

from app.api.core.config import settings
from app.api.core.dependencies.redis_service import get_redis_client

logger = logging.getLogger("app")


@dataclass
class RateLimitEntry:
    count: int
    first_attempt: float
    last_attempt: float


@dataclass
class RateLimitStatus:
    """Result of a limiter check.

    Attributes:
        is_blocked: True when the IP used up its attempts for the window.
        remaining_attempts: Attempts left in the current window.
        reset_time: When the window resets (only when blocked).
        retry_after: Whole seconds until reset_time (only when blocked).
        message: Human-readable block message (only when blocked).
    """

    is_blocked: bool
    remaining_attempts: int
    reset_time: Optional[datetime] = None
    retry_after: Optional[int] = None
    message: Optional[str] = None


class SignupRateLimiter:
    """Sliding-window attempt counter shared by both backends."""

    backend = "base"

    def __init__(
        self,
        max_attempts: int = 5,
        window_seconds: int = 3600,
        block_duration_seconds: int = 3600,
        clock: Callable[[], float] = time.time,
    ):
        self.max_attempts = max_attempts
        self.window_seconds = window_seconds
        self.block_duration_seconds = block_duration_seconds
        self._clock = clock

    def _open_status(self, count: int = 0) -> RateLimitStatus:
        return RateLimitStatus(
            is_blocked=False,
            remaining_attempts=max(self.max_attempts - count, 0),
        )

    def _evaluate(self, count: int, first_attempt: float, now: float) -> RateLimitStatus:
        if count < self.max_attempts:
            return self._open_status(count)

        reset_at = first_attempt + self.window_seconds
        reset_time = datetime.fromtimestamp(reset_at, tz=timezone.utc)
        return RateLimitStatus(
            is_blocked=True,
            remaining_attempts=0,
            reset_time=reset_time,
            retry_after=max(int(reset_at - now), 0),
            message=(
                "Too many signup attempts. Please try again after "
                f"{reset_time.strftime('%H:%M:%S')} UTC."
            ),
        )

    def _window_expired(self, first_attempt: float, now: float) -> bool:
        return now - first_attempt > self.window_seconds

    async def check(self, ip: str) -> RateLimitStatus:
        raise NotImplementedError

    async def record(self, ip: str) -> None:
        raise NotImplementedError

    async def tracked_count(self) -> int:
        raise NotImplementedError

    async def clear(self, ip: str) -> bool:
        raise NotImplementedError

    async def clear_all(self) -> None:
        raise NotImplementedError

    async def stats(self) -> Dict[str, Any]:
        """Current configuration and number of tracked IPs."""
        return {
            "total_tracked_ips": await self.tracked_count(),
            "config": {
                "max_attempts": self.max_attempts,
                "window_seconds": self.window_seconds,
                "block_duration_seconds": self.block_duration_seconds,
                "backend": self.backend,
            },
        }


class InMemorySignupRateLimiter(SignupRateLimiter):
    """Process-local limiter; state is lost on restart."""

    backend = "memory"

    def __init__(
        self,
        max_attempts: int = 5,
        window_seconds: int = 3600,
        block_duration_seconds: int = 3600,
        clock: Callable[[], float] = time.time,
        cleanup_probability: float = 0.01,
        rng: Callable[[], float] = random.random,
    ):
        super().__init__(max_attempts, window_seconds, block_duration_seconds, clock)
        self.cleanup_probability = cleanup_probability
        self._rng = rng
        self._entries: Dict[str, RateLimitEntry] = {}

    def cleanup(self) -> int:
        """Drop entries idle for longer than window + block duration."""
        cutoff = self._clock() - self.window_seconds - self.block_duration_seconds
        stale = [ip for ip, entry in self._entries.items() if entry.last_attempt < cutoff]
        for ip in stale:
            del self._entries[ip]
        if stale:
            logger.debug(f"Rate limiter evicted {len(stale)} stale entries")
        return len(stale)

    async def check(self, ip: str) -> RateLimitStatus:
        if self._rng() < self.cleanup_probability:
            self.cleanup()

        now = self._clock()
        entry = self._entries.get(ip)

        if entry is None:
            return self._open_status()

        if self._window_expired(entry.first_attempt, now):
            del self._entries[ip]
            return self._open_status()

        return self._evaluate(entry.count, entry.first_attempt, now)

    async def record(self, ip: str) -> None:
        now = self._clock()
        entry = self._entries.get(ip)

        if entry is None or self._window_expired(entry.first_attempt, now):
            self._entries[ip] = RateLimitEntry(count=1, first_attempt=now, last_attempt=now)
            return

        entry.count += 1
        entry.last_attempt = now

    def get_entry(self, ip: str) -> Optional[RateLimitEntry]:
        return self._entries.get(ip)

    async def tracked_count(self) -> int:
        return len(self._entries)

    async def clear(self, ip: str) -> bool:
        return self._entries.pop(ip, None) is not None

    async def clear_all(self) -> None:
        self._entries.clear()


class RedisSignupRateLimiter(SignupRateLimiter):
    """Limiter whose counters live in Redis hashes, shared across instances.

    Redis failures fail open: the request is not blocked and the error is logged.
    """

    backend = "redis"
    KEY_PREFIX = "waitlist:rate_limit:"

    def __init__(
        self,
        max_attempts: int = 5,
        window_seconds: int = 3600,
        block_duration_seconds: int = 3600,
        clock: Callable[[], float] = time.time,
        client_factory: Callable[[], Awaitable[redis.Redis]] = get_redis_client,
    ):
        super().__init__(max_attempts, window_seconds, block_duration_seconds, clock)
        self._client_factory = client_factory

    def _key(self, ip: str) -> str:
        return f"{self.KEY_PREFIX}{ip}"

    @property
    def _ttl(self) -> int:
        return self.window_seconds + self.block_duration_seconds

    async def check(self, ip: str) -> RateLimitStatus:
        now = self._clock()
        key = self._key(ip)

        try:
            client = await self._client_factory()
            data = await client.hgetall(key)
            if not data:
                return self._open_status()

            count = int(data.get("count", 0))
            first_attempt = float(data.get("first_attempt", now))

            if self._window_expired(first_attempt, now):
                await client.delete(key)
                return self._open_status()

            return self._evaluate(count, first_attempt, now)
        except RedisError as e:
            logger.error(f"Redis error in signup rate limiter check: {e}")
            return self._open_status()

    async def record(self, ip: str) -> None:
        now = self._clock()
        key = self._key(ip)

        try:
            client = await self._client_factory()
            data = await client.hgetall(key)
            first_attempt = float(data["first_attempt"]) if data else None

            async with client.pipeline(transaction=True) as pipe:
                if first_attempt is None or self._window_expired(first_attempt, now):
                    pipe.delete(key)
                    pipe.hset(
                        key,
                        mapping={"count": 1, "first_attempt": now, "last_attempt": now},
                    )
                else:
                    pipe.hincrby(key, "count", 1)
                    pipe.hset(key, "last_attempt", now)
                pipe.expire(key, self._ttl)
                await pipe.execute()
        except RedisError as e:
            logger.error(f"Redis error in signup rate limiter record: {e}")

    async def tracked_count(self) -> int:
        try:
            client = await self._client_factory()
            count = 0
            async for _ in client.scan_iter(match=f"{self.KEY_PREFIX}*"):
                count += 1
            return count
        except RedisError as e:
            logger.error(f"Redis error counting rate limit keys: {e}")
            return 0

    async def clear(self, ip: str) -> bool:
        try:
            client = await self._client_factory()
            return bool(await client.delete(self._key(ip)))
        except RedisError as e:
            logger.error(f"Redis error clearing rate limit for {ip}: {e}")
            return False

    async def clear_all(self) -> None:
        try:
            client = await self._client_factory()
            keys = [key async for key in client.scan_iter(match=f"{self.KEY_PREFIX}*")]
            if keys:
                await client.delete(*keys)
        except RedisError as e:
            logger.error(f"Redis error clearing rate limits: {e}")


def build_rate_limiter() -> SignupRateLimiter:
    """Build the limiter selected by RATE_LIMIT_BACKEND."""
    options = {
        "max_attempts": settings.RATE_LIMIT_MAX_ATTEMPTS,
        "window_seconds": settings.RATE_LIMIT_WINDOW_SECONDS,
        "block_duration_seconds": settings.RATE_LIMIT_BLOCK_SECONDS,
    }

    backend = settings.RATE_LIMIT_BACKEND.lower()
    if backend == "redis":
        logger.info("Signup rate limiter using Redis backend")
        return RedisSignupRateLimiter(**options)
    if backend != "memory":
        raise ValueError(f"Unknown RATE_LIMIT_BACKEND: {settings.RATE_LIMIT_BACKEND}")

    logger.info("Signup rate limiter using in-memory backend")
    return InMemorySignupRateLimiter(**options)


def get_rate_limiter(request: Request) -> SignupRateLimiter:
    """FastAPI dependency returning the process-wide limiter stored on app.state."""
    limiter = getattr(request.app.state, "rate_limiter", None)
    if limiter is None:
        limiter = build_rate_limiter()
        request.app.state.rate_limiter = limiter
    return limiter
