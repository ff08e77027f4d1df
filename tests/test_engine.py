# tests/test_engine.py
import asyncio

import aiohttp
import pytest

from opendata_gateway.errors import (
    CancelledRequestError,
    InvalidRequestError,
    NetworkError,
    ServerError,
    ThrottledError,
)
from opendata_gateway.fetchers.endpoints import Endpoint
from opendata_gateway.fetchers.engine import FetchEngine, FetchState
from opendata_gateway.config import GatewaySettings
from tests.fakes import FakeResponse, FakeSession, violation_row

BIN = "1034304"


def fetch(engine, endpoint=None):
    return asyncio.run(engine.fetch(endpoint or Endpoint.violations_by_bin(BIN)))


class TestSuccess:
    """Test the 200 path."""

    def test_decodes_records(self, engine, session):
        session.queue.append(FakeResponse(200, [violation_row("1"), violation_row("2")]))
        records = fetch(engine)
        assert [r.violation_id for r in records] == ["1", "2"]

    def test_sends_token_and_accept_headers(self, engine, session):
        fetch(engine)
        headers = session.calls[0]["headers"]
        assert headers["X-App-Token"] == "test-token"
        assert headers["Accept"] == "application/json"

    def test_no_token_header_without_token(self, session, cache, limiter, settings):
        engine = FetchEngine(session, cache, limiter, settings, token_provider=lambda: None)
        fetch(engine)
        assert "X-App-Token" not in session.calls[0]["headers"]

    def test_result_is_cached(self, engine, session):
        session.queue.append(FakeResponse(200, [violation_row("1")]))
        first = fetch(engine)
        second = fetch(engine)
        assert first == second
        assert len(session.calls) == 1

    def test_cache_expires_by_tier(self, engine, session, clock, settings):
        fetch(engine)
        clock.advance(settings.ttl_medium + 1)
        fetch(engine)
        assert len(session.calls) == 2

    def test_empty_result_is_cached(self, engine, session):
        fetch(engine)
        fetch(engine)
        assert len(session.calls) == 1

    def test_returns_fresh_lists(self, engine, session):
        session.queue.append(FakeResponse(200, [violation_row("1")]))
        first = fetch(engine)
        first.clear()
        assert len(fetch(engine)) == 1

    def test_status_and_last_sync(self, engine):
        fetch(engine)
        key = Endpoint.violations_by_bin(BIN).cache_key
        assert engine.status[key].state == FetchState.SUCCESS
        assert engine.last_sync is not None

    def test_listener_receives_records(self, engine, session):
        seen = []
        engine.subscribe(lambda endpoint, records: seen.append((endpoint.kind, len(records))))
        session.queue.append(FakeResponse(200, [violation_row("1")]))
        fetch(engine)
        fetch(engine)
        assert len(seen) == 1
        assert seen[0][1] == 1

    def test_failing_listener_does_not_break_fetch(self, engine, session):
        def broken(endpoint, records):
            raise RuntimeError("store offline")

        engine.subscribe(broken)
        session.queue.append(FakeResponse(200, [violation_row("1")]))
        assert len(fetch(engine)) == 1


class TestResilientDecode:
    """Test strict-then-lenient decoding."""

    def test_missing_non_essential_field_uses_lenient(self, engine, session):
        row = violation_row("1")
        del row["novdescription"]
        session.queue.append(FakeResponse(200, [row]))
        records = fetch(engine)
        assert len(records) == 1
        assert records[0].nov_description is None

    def test_lenient_empty_returns_empty(self, engine, session):
        session.queue.append(FakeResponse(200, [{"unexpected": "shape"}]))
        assert fetch(engine) == []

    def test_not_json_returns_empty(self, engine, session):
        session.queue.append(FakeResponse(200, "<html>maintenance</html>"))
        assert fetch(engine) == []

    def test_undecodable_bytes_return_empty(self, engine, session):
        session.queue.append(FakeResponse(200, b'[{"violationid": "\xff\xfe"}]'))
        assert fetch(engine) == []
        key = Endpoint.violations_by_bin(BIN).cache_key
        assert engine.status[key].state == FetchState.ERROR

    def test_undecodable_bytes_fall_back_to_stale(self, engine, session, clock, settings):
        session.queue.append(FakeResponse(200, [violation_row("3")]))
        fetch(engine)
        clock.advance(settings.ttl_medium + 1)
        session.queue.append(FakeResponse(200, b"\xff\xfe\x00garbage"))
        assert [r.violation_id for r in fetch(engine)] == ["3"]

    def test_lenient_empty_falls_back_to_stale(self, engine, session, clock, settings):
        session.queue.append(FakeResponse(200, [violation_row("1")]))
        fetch(engine)
        clock.advance(settings.ttl_medium + 1)
        session.queue.append(FakeResponse(200, {"error": "bad"}))
        records = fetch(engine)
        assert [r.violation_id for r in records] == ["1"]


class TestStatusCodes:
    """Test non-200 handling."""

    def test_404_is_empty_and_not_cached(self, engine, session):
        session.queue.append(FakeResponse(404, "not found"))
        assert fetch(engine) == []
        fetch(engine)
        assert len(session.calls) == 2

    def test_400_without_cache_is_empty(self, engine, session):
        session.queue.append(FakeResponse(400, "bad query"))
        assert fetch(engine) == []

    def test_400_uses_stale_cache(self, engine, session, clock, settings):
        session.queue.append(FakeResponse(200, [violation_row("7")]))
        fetch(engine)
        clock.advance(settings.ttl_medium + 1)
        session.queue.append(FakeResponse(400, "bad query"))
        assert [r.violation_id for r in fetch(engine)] == ["7"]

    def test_500_raises_server_error(self, engine, session):
        session.queue.append(FakeResponse(503, "unavailable"))
        with pytest.raises(ServerError) as exc:
            fetch(engine)
        assert exc.value.status == 503

    def test_403_raises_server_error(self, engine, session):
        session.queue.append(FakeResponse(403, "forbidden"))
        with pytest.raises(ServerError):
            fetch(engine)

    def test_redirect_loop_raises_server_error(self, engine, session):
        session.queue.append(aiohttp.TooManyRedirects(None, (), status=302))
        with pytest.raises(ServerError) as exc:
            fetch(engine)
        assert exc.value.status == 302
        assert len(session.calls) == 1

    def test_invalid_url_from_client(self, engine, session):
        session.queue.append(aiohttp.InvalidURL("http://"))
        with pytest.raises(InvalidRequestError):
            fetch(engine)

    def test_invalid_host(self, session, cache, limiter):
        engine = FetchEngine(session, cache, limiter, GatewaySettings(api_host="not a url"))
        with pytest.raises(InvalidRequestError):
            fetch(engine)
        assert session.calls == []


class TestThrottling:
    """Test 429 backoff."""

    def test_429_then_200(self, engine, session, limiter):
        before = limiter.current_interval
        session.queue.extend([FakeResponse(429), FakeResponse(200, [violation_row("1")])])
        records = fetch(engine)
        assert [r.violation_id for r in records] == ["1"]
        assert limiter.current_interval > before
        assert len(session.calls) == 2

    def test_backoff_resets_after_clean_success(self, engine, session, limiter):
        session.queue.extend([FakeResponse(429), FakeResponse(200, [])])
        fetch(engine)
        fetch(engine, Endpoint.permits_by_bin(BIN))
        assert limiter.multiplier == 1

    def test_persistent_429_raises(self, engine, session, settings):
        session.queue.extend([FakeResponse(429)] * settings.max_attempts)
        with pytest.raises(ThrottledError):
            fetch(engine)
        assert len(session.calls) == settings.max_attempts


class TestRetries:
    """Test transient failure handling."""

    def test_connection_error_then_success(self, engine, session, clock, settings):
        session.queue.extend([
            aiohttp.ClientConnectionError("reset"),
            FakeResponse(200, [violation_row("1")]),
        ])
        assert len(fetch(engine)) == 1
        assert settings.retry_delay in clock.sleeps

    def test_timeouts_exhaust_to_network_error(self, engine, session, settings):
        session.queue.extend([asyncio.TimeoutError()] * settings.max_attempts)
        with pytest.raises(NetworkError):
            fetch(engine)
        assert len(session.calls) == settings.max_attempts

    def test_network_error_marks_status(self, engine, session, settings):
        session.queue.extend([aiohttp.ClientConnectionError()] * settings.max_attempts)
        with pytest.raises(NetworkError):
            fetch(engine)
        key = Endpoint.violations_by_bin(BIN).cache_key
        assert engine.status[key].state == FetchState.ERROR

    def test_foreign_cancellation_is_retried(self, engine, session, settings):
        session.queue.extend([asyncio.CancelledError()] * settings.max_attempts)
        with pytest.raises(CancelledRequestError):
            fetch(engine)
        assert len(session.calls) == settings.max_attempts

    def test_foreign_cancellation_then_success(self, engine, session):
        session.queue.extend([asyncio.CancelledError(), FakeResponse(200, [violation_row("1")])])
        assert [r.violation_id for r in fetch(engine)] == ["1"]
        assert len(session.calls) == 2

    def test_caller_cancellation_propagates(self, engine, session):
        session.default = _Hanging()

        async def run():
            task = asyncio.ensure_future(engine.fetch(Endpoint.violations_by_bin(BIN)))
            await asyncio.sleep(0)
            await asyncio.sleep(0)
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

        asyncio.run(run())
        assert len(session.calls) == 1


class _Hanging(FakeResponse):
    async def read(self):
        await asyncio.sleep(3600)


class TestConcurrency:
    """Test concurrent fetches of one key."""

    def test_both_succeed_and_cache_holds_one_value(self, engine, session, cache):
        session.default = FakeResponse(200, [violation_row("1"), violation_row("2")])
        endpoint = Endpoint.violations_by_bin(BIN)

        async def run():
            return await asyncio.gather(engine.fetch(endpoint), engine.fetch(endpoint))

        first, second = asyncio.run(run())
        assert first == second
        assert len(session.calls) == 2
        assert len(cache.get(endpoint.cache_key)) == 2
