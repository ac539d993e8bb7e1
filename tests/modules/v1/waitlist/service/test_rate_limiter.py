import fnmatch
from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI
from redis.exceptions import ConnectionError as RedisConnectionError
from starlette.requests import Request

from app.api.modules.v1.waitlist.service.rate_limiter import (
    InMemorySignupRateLimiter,
    RedisSignupRateLimiter,
    get_rate_limiter,
)

START = 1_700_000_000.0


class FakeClock:
    def __init__(self, now=START):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class FakePipeline:
    def __init__(self, redis):
        self._redis = redis
        self._ops = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False

    def __getattr__(self, name):
        def queue(*args, **kwargs):
            self._ops.append((name, args, kwargs))
            return self

        return queue

    async def execute(self):
        results = []
        for name, args, kwargs in self._ops:
            results.append(await getattr(self._redis, name)(*args, **kwargs))
        self._ops = []
        return results


class FakeRedis:
    """Hash-only stand-in for redis.asyncio.Redis with decode_responses=True."""

    def __init__(self):
        self.hashes = {}
        self.ttls = {}

    async def hgetall(self, key):
        return dict(self.hashes.get(key, {}))

    async def hset(self, key, field=None, value=None, mapping=None):
        data = self.hashes.setdefault(key, {})
        if mapping:
            data.update({k: str(v) for k, v in mapping.items()})
        if field is not None:
            data[field] = str(value)
        return 1

    async def hincrby(self, key, field, amount=1):
        data = self.hashes.setdefault(key, {})
        data[field] = str(int(data.get(field, 0)) + amount)
        return int(data[field])

    async def delete(self, *keys):
        removed = 0
        for key in keys:
            if self.hashes.pop(key, None) is not None:
                removed += 1
        return removed

    async def expire(self, key, seconds):
        self.ttls[key] = seconds
        return True

    async def scan_iter(self, match="*"):
        for key in list(self.hashes):
            if fnmatch.fnmatch(key, match):
                yield key

    def pipeline(self, transaction=True):
        return FakePipeline(self)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def limiter(clock):
    return InMemorySignupRateLimiter(clock=clock, cleanup_probability=0.0)


class TestInMemoryLimiter:
    @pytest.mark.asyncio
    async def test_unknown_ip_is_not_blocked(self, limiter):
        status = await limiter.check("1.1.1.1")
        assert not status.is_blocked
        assert status.remaining_attempts == 5
        assert status.reset_time is None

    @pytest.mark.asyncio
    async def test_remaining_attempts_decrease(self, limiter, clock):
        for _ in range(3):
            await limiter.record("1.1.1.1")
            clock.advance(10)

        status = await limiter.check("1.1.1.1")
        assert not status.is_blocked
        assert status.remaining_attempts == 2

    @pytest.mark.asyncio
    async def test_sixth_check_blocked_after_five_attempts(self, limiter, clock):
        for _ in range(5):
            await limiter.record("1.1.1.1")
            clock.advance(60)

        status = await limiter.check("1.1.1.1")

        assert status.is_blocked
        assert status.remaining_attempts == 0
        assert status.reset_time == datetime.fromtimestamp(START + 3600, tz=timezone.utc)
        assert status.retry_after == 3600 - 300
        assert status.message.startswith("Too many signup attempts. Please try again after ")
        assert status.message.endswith(" UTC.")

    @pytest.mark.asyncio
    async def test_other_ips_unaffected(self, limiter):
        for _ in range(5):
            await limiter.record("1.1.1.1")

        assert not (await limiter.check("2.2.2.2")).is_blocked

    @pytest.mark.asyncio
    async def test_window_elapse_unblocks_and_restarts_counter(self, limiter, clock):
        for _ in range(5):
            await limiter.record("1.1.1.1")
        assert (await limiter.check("1.1.1.1")).is_blocked

        clock.advance(3601)

        status = await limiter.check("1.1.1.1")
        assert not status.is_blocked
        assert status.remaining_attempts == 5
        assert limiter.get_entry("1.1.1.1") is None

        await limiter.record("1.1.1.1")
        assert limiter.get_entry("1.1.1.1").count == 1

    @pytest.mark.asyncio
    async def test_record_after_window_resets_count(self, limiter, clock):
        await limiter.record("1.1.1.1")
        await limiter.record("1.1.1.1")
        clock.advance(3601)

        await limiter.record("1.1.1.1")

        entry = limiter.get_entry("1.1.1.1")
        assert entry.count == 1
        assert entry.first_attempt == clock.now

    @pytest.mark.asyncio
    async def test_probabilistic_cleanup_evicts_stale_entries(self, clock):
        limiter = InMemorySignupRateLimiter(clock=clock, cleanup_probability=0.5, rng=lambda: 0.1)
        await limiter.record("stale")
        clock.advance(7201)
        await limiter.record("fresh")

        await limiter.check("fresh")

        assert limiter.get_entry("stale") is None
        assert limiter.get_entry("fresh") is not None

    @pytest.mark.asyncio
    async def test_cleanup_skipped_when_draw_misses(self, clock):
        limiter = InMemorySignupRateLimiter(clock=clock, cleanup_probability=0.01, rng=lambda: 0.5)
        await limiter.record("stale")
        clock.advance(7201)

        await limiter.check("other")

        assert limiter.get_entry("stale") is not None

    @pytest.mark.asyncio
    async def test_stats_clear_and_clear_all(self, limiter):
        await limiter.record("1.1.1.1")
        await limiter.record("2.2.2.2")

        stats = await limiter.stats()
        assert stats == {
            "total_tracked_ips": 2,
            "config": {
                "max_attempts": 5,
                "window_seconds": 3600,
                "block_duration_seconds": 3600,
                "backend": "memory",
            },
        }

        assert await limiter.clear("1.1.1.1") is True
        assert await limiter.clear("1.1.1.1") is False
        await limiter.clear_all()
        assert (await limiter.stats())["total_tracked_ips"] == 0


class TestRedisLimiter:
    @pytest.fixture
    def redis_client(self):
        return FakeRedis()

    @pytest.fixture
    def redis_limiter(self, clock, redis_client):
        return RedisSignupRateLimiter(clock=clock, client_factory=AsyncMock(return_value=redis_client))

    @pytest.mark.asyncio
    async def test_blocks_after_max_attempts(self, redis_limiter, redis_client, clock):
        for _ in range(5):
            await redis_limiter.record("1.1.1.1")
            clock.advance(1)

        status = await redis_limiter.check("1.1.1.1")

        assert status.is_blocked
        assert status.reset_time == datetime.fromtimestamp(START + 3600, tz=timezone.utc)
        assert redis_client.hashes["waitlist:rate_limit:1.1.1.1"]["count"] == "5"
        assert redis_client.ttls["waitlist:rate_limit:1.1.1.1"] == 7200

    @pytest.mark.asyncio
    async def test_window_elapse_resets(self, redis_limiter, redis_client, clock):
        for _ in range(5):
            await redis_limiter.record("1.1.1.1")
        clock.advance(3601)

        status = await redis_limiter.check("1.1.1.1")

        assert not status.is_blocked
        assert status.remaining_attempts == 5
        assert "waitlist:rate_limit:1.1.1.1" not in redis_client.hashes

    @pytest.mark.asyncio
    async def test_stats_and_clear(self, redis_limiter):
        await redis_limiter.record("1.1.1.1")
        await redis_limiter.record("2.2.2.2")

        stats = await redis_limiter.stats()
        assert stats["total_tracked_ips"] == 2
        assert stats["config"]["backend"] == "redis"

        assert await redis_limiter.clear("1.1.1.1") is True
        await redis_limiter.clear_all()
        assert (await redis_limiter.stats())["total_tracked_ips"] == 0

    @pytest.mark.asyncio
    async def test_redis_errors_fail_open(self, clock):
        broken = AsyncMock()
        broken.hgetall.side_effect = RedisConnectionError("down")
        limiter = RedisSignupRateLimiter(clock=clock, client_factory=AsyncMock(return_value=broken))

        status = await limiter.check("1.1.1.1")
        await limiter.record("1.1.1.1")

        assert not status.is_blocked
        assert status.remaining_attempts == 5


def _request_for(app):
    return Request({"type": "http", "app": app, "headers": []})


def test_get_rate_limiter_returns_app_state_instance(limiter):
    app = FastAPI()
    app.state.rate_limiter = limiter

    assert get_rate_limiter(_request_for(app)) is limiter


def test_get_rate_limiter_builds_lazily():
    app = FastAPI()

    built = get_rate_limiter(_request_for(app))

    assert isinstance(built, InMemorySignupRateLimiter)
    assert app.state.rate_limiter is built
