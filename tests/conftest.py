import pytest

from opendata_gateway.config import GatewaySettings
from opendata_gateway.fetchers.engine import FetchEngine
from opendata_gateway.fetchers.rate_limiter import RateLimiter
from opendata_gateway.storage.cache import TieredCache
from tests.fakes import FakeClock, FakeSession


@pytest.fixture
def clock():
    """Provide a fake monotonic clock with instant sleep."""
    return FakeClock()


@pytest.fixture
def settings():
    """Provide settings with a small rate-limit interval."""
    return GatewaySettings(min_interval=1.0, max_interval=16.0, retry_delay=0.5)


@pytest.fixture
def session():
    """Provide an offline session answering [] by default."""
    return FakeSession()


@pytest.fixture
def cache(clock):
    return TieredCache(clock=clock)


@pytest.fixture
def limiter(clock, settings):
    return RateLimiter(settings.min_interval, settings.max_interval, clock=clock, sleep=clock.sleep)


@pytest.fixture
def engine(session, cache, limiter, settings, clock):
    """Provide a FetchEngine wired to the fakes."""
    return FetchEngine(
        session,
        cache=cache,
        limiter=limiter,
        settings=settings,
        token_provider=lambda: "test-token",
        sleep=clock.sleep,
    )
