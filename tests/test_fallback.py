# tests/test_fallback.py
import asyncio

import pytest

from opendata_gateway.errors import NetworkError, ServerError
from opendata_gateway.fetchers.fallback import FallbackSelector, address_variants
from opendata_gateway.models import SanitationViolation
from tests.fakes import (
    FakeResponse,
    complaint_row,
    hearing_row,
    sanitation_row,
    violation_row,
)

BIN = "1034304"
ADDRESS = "142 W 17th St"


def run(coro):
    return asyncio.run(coro)


class TestViolationsFallback:
    """Test identifier-then-address lookups."""

    def test_address_used_when_identifier_empty(self, engine, session):
        session.route(f"wvxf-dwi5.json?bin={BIN}", FakeResponse(200, []))
        session.route("$q=142 West 17th Street", FakeResponse(200, [violation_row("a"), violation_row("b")]))
        records = run(FallbackSelector(engine).violations(BIN, ADDRESS))
        assert [r.violation_id for r in records] == ["a", "b"]
        assert len(session.calls) == 2

    def test_identifier_result_used_as_is(self, engine, session):
        session.route(f"bin={BIN}", FakeResponse(200, [violation_row("x")]))
        records = run(FallbackSelector(engine).violations(BIN, ADDRESS))
        assert [r.violation_id for r in records] == ["x"]
        assert len(session.calls) == 1

    def test_both_empty(self, engine, session):
        assert run(FallbackSelector(engine).violations(BIN, ADDRESS)) == []
        assert len(session.calls) == 2

    def test_name_variant_tried_first(self, engine, session):
        run(FallbackSelector(engine).violations("", "150 W 17th St", name="Rubin Museum"))
        queries = [c["decoded"].split("?", 1)[1] for c in session.calls]
        assert queries == [
            "$q=Rubin Museum, 150 West 17th Street",
            "$q=150 West 17th Street",
        ]

    def test_non_building_skips_address(self, engine, session):
        records = run(FallbackSelector(engine).violations(BIN, "Pier 40, West St", name="Pier 40"))
        assert records == []
        assert len(session.calls) == 1

    def test_failed_strategy_counts_as_empty(self, engine, session):
        session.route(f"bin={BIN}", FakeResponse(503, "down"))
        session.route("$q=", FakeResponse(200, [violation_row("a")]))
        records = run(FallbackSelector(engine).violations(BIN, ADDRESS))
        assert [r.violation_id for r in records] == ["a"]

    def test_permits_use_permit_dataset(self, engine, session):
        run(FallbackSelector(engine).permits(BIN, ADDRESS))
        assert "ipu4-2q9a.json?bin__=1034304" in session.calls[0]["decoded"]


class TestFirstNonEmpty:
    """Test the generic strategy runner."""

    def test_first_non_empty_wins(self, engine):
        async def empty():
            return []

        async def two():
            return [1, 2]

        async def never():
            raise AssertionError("should not run")

        result = run(FallbackSelector(engine).first_non_empty(
            [("empty", empty), ("two", two), ("never", never)]
        ))
        assert result == [1, 2]

    def test_all_failed_reraises(self, engine):
        async def fails():
            raise NetworkError("down")

        with pytest.raises(NetworkError):
            run(FallbackSelector(engine).first_non_empty([("a", fails), ("b", fails)]))

    def test_failure_then_empty_is_empty(self, engine):
        async def fails():
            raise ServerError(500)

        async def empty():
            return []

        assert run(FallbackSelector(engine).first_non_empty([("a", fails), ("b", empty)])) == []

    def test_no_strategies(self, engine):
        assert run(FallbackSelector(engine).first_non_empty([])) == []


class TestSanitationFallback:
    """Test the sanitation source chain."""

    def test_hearings_first(self, engine, session):
        session.route("jz4z-kudi", FakeResponse(200, [hearing_row()]))
        records = run(FallbackSelector(engine).sanitation_violations(BIN, "1-849-17", ADDRESS))
        assert len(records) == 1
        assert isinstance(records[0], SanitationViolation)
        assert records[0].bin == BIN
        assert len(session.calls) == 1

    def test_legacy_by_bin(self, engine, session):
        session.route(f"weg2-hvnf.json?bin={BIN}", FakeResponse(200, [sanitation_row("S-9")]))
        records = run(FallbackSelector(engine).sanitation_violations(BIN, "1008490017", ADDRESS))
        assert [r.violation_id for r in records] == ["S-9"]
        assert "jz4z-kudi" in session.calls[0]["decoded"]

    def test_legacy_by_address(self, engine, session):
        session.route("weg2-hvnf.json?address=142 WEST 17TH STREET", FakeResponse(200, [sanitation_row("S-2")]))
        records = run(FallbackSelector(engine).sanitation_violations(BIN, "", ADDRESS))
        assert [r.violation_id for r in records] == ["S-2"]

    def test_complaints_last(self, engine, session):
        session.route("erm2-nwe9", FakeResponse(200, [
            complaint_row("1", "Dirty Condition"),
            complaint_row("2", "Noise - Residential"),
            complaint_row("3", "Illegal Dumping"),
        ]))
        records = run(FallbackSelector(engine).sanitation_violations(BIN, "1008490017", ADDRESS))
        assert [r.violation_id for r in records] == ["1", "3"]
        assert all(r.bin == BIN for r in records)

    def test_invalid_bbl_skips_hearings(self, engine, session):
        run(FallbackSelector(engine).sanitation_violations(BIN, "12", ""))
        assert all("jz4z-kudi" not in c["decoded"] for c in session.calls)


class TestAddressVariants:
    """Test address variant generation."""

    def test_name_and_address(self):
        assert address_variants("150 W 17th St", "Rubin Museum") == [
            "Rubin Museum, 150 W 17th St",
            "150 W 17th St",
        ]

    def test_name_already_in_address(self):
        assert address_variants("Rubin Museum, 150 W 17th St", "Rubin Museum") == [
            "Rubin Museum, 150 W 17th St",
        ]

    def test_no_address(self):
        assert address_variants("", "Rubin Museum") == []
