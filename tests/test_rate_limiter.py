# tests/test_rate_limiter.py
import asyncio

from opendata_gateway.fetchers.rate_limiter import MAX_MULTIPLIER, RateLimiter


def make_limiter(clock, base=1.0, maximum=16.0):
    return RateLimiter(base, maximum, clock=clock, sleep=clock.sleep)


class TestAcquire:
    """Test request spacing."""

    def test_first_call_passes_immediately(self, clock):
        limiter = make_limiter(clock)
        asyncio.run(limiter.acquire())
        assert clock.sleeps == []

    def test_second_call_waits_remaining_interval(self, clock):
        limiter = make_limiter(clock)

        async def run():
            await limiter.acquire()
            clock.advance(0.25)
            await limiter.acquire()

        asyncio.run(run())
        assert clock.sleeps == [0.75]

    def test_no_wait_after_interval_elapsed(self, clock):
        limiter = make_limiter(clock)

        async def run():
            await limiter.acquire()
            clock.advance(5)
            await limiter.acquire()

        asyncio.run(run())
        assert clock.sleeps == []

    def test_concurrent_callers_are_spaced(self, clock):
        limiter = make_limiter(clock)

        async def run():
            await asyncio.gather(*(limiter.acquire() for _ in range(3)))

        asyncio.run(run())
        assert clock.sleeps == [1.0, 1.0]


class TestBackoff:
    """Test adaptive backoff."""

    def test_throttle_doubles_interval(self, clock):
        limiter = make_limiter(clock)
        limiter.register_throttle()
        assert limiter.current_interval == 2.0
        limiter.register_throttle()
        assert limiter.current_interval == 4.0

    def test_interval_capped_at_max(self, clock):
        limiter = make_limiter(clock, maximum=5.0)
        for _ in range(10):
            limiter.register_throttle()
        assert limiter.current_interval == 5.0

    def test_multiplier_capped_with_zero_base(self, clock):
        limiter = make_limiter(clock, base=0.0)
        for _ in range(20):
            limiter.register_throttle()
        assert limiter.multiplier == MAX_MULTIPLIER

    def test_success_resets(self, clock):
        limiter = make_limiter(clock)
        limiter.register_throttle()
        limiter.register_success()
        assert limiter.multiplier == 1
        assert limiter.current_interval == 1.0

    def test_backed_off_wait(self, clock):
        limiter = make_limiter(clock)

        async def run():
            await limiter.acquire()
            limiter.register_throttle()
            await limiter.acquire()

        asyncio.run(run())
        assert clock.sleeps == [2.0]
