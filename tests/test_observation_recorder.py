"""
Tests for the observation store and recorder.

Covers:
- Idempotent schema creation
- Derived spread columns and stored precision
- Independent id spaces for the two tables
- Store failures returned as RecordResult values, one write not affecting the other
"""

from decimal import Decimal

import pytest
from sqlalchemy import inspect
from sqlalchemy.exc import IntegrityError, OperationalError, ProgrammingError

from dex.recorder import (
    OPPORTUNITIES_TABLE,
    SNAPSHOTS_TABLE,
    MarketObservationRecorder,
    classify_store_error,
    snapshot_row,
)
from dex.store import ObservationStore, open_store
from dex.types import ArbitrageOpportunity, MarketObservation
from spread_arbitrage.exceptions import StoreError, StoreUnavailable, StoreWriteRejected

WETH = "0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2"
USDC = "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48"


def make_observation(price_a="100.0", price_b="102.0", profit="15", is_arbitrage=True):
    return MarketObservation(
        venue_a_id="DEX_A",
        venue_b_id="DEX_B",
        token_in=WETH,
        token_out=USDC,
        price_a=Decimal(price_a),
        price_b=Decimal(price_b),
        trade_amount=Decimal("10"),
        gas_cost=Decimal("5.0"),
        potential_profit=Decimal(profit) if profit is not None else None,
        is_arbitrage=is_arbitrage,
    )


def make_opportunity(profit="15"):
    return ArbitrageOpportunity(
        venue_a_id="DEX_A",
        venue_b_id="DEX_B",
        token_in=WETH,
        token_out=USDC,
        price_a=Decimal("100.0"),
        price_b=Decimal("102.0"),
        profit=Decimal(profit),
    )


class RejectingStore:
    """Wraps a real store and fails the chosen table's writes."""

    def __init__(self, inner, snapshot_error=None, opportunity_error=None):
        self.inner = inner
        self.snapshot_error = snapshot_error
        self.opportunity_error = opportunity_error

    def insert_snapshot(self, values):
        if self.snapshot_error is not None:
            raise self.snapshot_error
        return self.inner.insert_snapshot(values)

    def insert_opportunity(self, values):
        if self.opportunity_error is not None:
            raise self.opportunity_error
        return self.inner.insert_opportunity(values)


@pytest.fixture
def store():
    store = ObservationStore.from_url("sqlite://")
    store.create_schema()
    yield store
    store.dispose()


@pytest.fixture
def recorder(store):
    return MarketObservationRecorder(store)


def rejected(table):
    return IntegrityError(f"INSERT INTO {table}", {}, Exception("constraint failed"))


def unreachable(table):
    return OperationalError(f"INSERT INTO {table}", {}, Exception("connection refused"))


# ===== Schema =====


class TestSchema:
    def test_tables_created(self, store):
        tables = set(inspect(store.engine).get_table_names())
        assert {SNAPSHOTS_TABLE, OPPORTUNITIES_TABLE} <= tables

    def test_create_schema_is_idempotent(self, store):
        store.insert_snapshot(snapshot_row(make_observation()))
        store.create_schema()
        assert store.count(SNAPSHOTS_TABLE) == 1

    def test_snapshot_columns(self, store):
        columns = {c["name"] for c in inspect(store.engine).get_columns(SNAPSHOTS_TABLE)}
        assert columns == {
            "id",
            "dex_a",
            "dex_b",
            "token_a",
            "token_b",
            "dex_a_price",
            "dex_b_price",
            "price_difference",
            "price_difference_percent",
            "trade_amount",
            "gas_cost",
            "potential_profit",
            "is_arbitrage",
            "snapshot_at",
        }

    def test_opportunity_columns(self, store):
        columns = {
            c["name"] for c in inspect(store.engine).get_columns(OPPORTUNITIES_TABLE)
        }
        assert columns == {
            "id",
            "dex_a",
            "dex_b",
            "token_a",
            "token_b",
            "price_a",
            "price_b",
            "profit",
            "detected_at",
        }


# ===== Snapshot recording =====


class TestRecordSnapshot:
    def test_snapshot_written_with_derived_spread(self, recorder, store):
        result = recorder.record_snapshot(make_observation())

        assert result.ok
        assert result.table == SNAPSHOTS_TABLE
        [row] = store.recent_snapshots()
        assert row["id"] == result.row_id
        assert row["dex_a"] == "DEX_A"
        assert row["token_b"] == USDC
        assert row["dex_a_price"] == Decimal("100")
        assert row["dex_b_price"] == Decimal("102")
        assert row["price_difference"] == Decimal("2")
        assert row["price_difference_percent"] == Decimal("2")
        assert row["trade_amount"] == Decimal("10")
        assert row["gas_cost"] == Decimal("5")
        assert row["potential_profit"] == Decimal("15")
        assert row["is_arbitrage"] is True
        assert row["snapshot_at"] is not None

    def test_non_qualifying_snapshot_keeps_raw_profit(self, recorder, store):
        recorder.record_snapshot(make_observation(is_arbitrage=False))

        [row] = store.recent_snapshots()
        assert row["is_arbitrage"] is False
        assert row["potential_profit"] == Decimal("15")

    def test_null_potential_profit(self, recorder, store):
        recorder.record_snapshot(make_observation(profit=None, is_arbitrage=False))

        [row] = store.recent_snapshots()
        assert row["potential_profit"] is None

    def test_zero_price_a_percent(self, recorder, store):
        recorder.record_snapshot(make_observation(price_a="0", price_b="50", profit="50"))

        [row] = store.recent_snapshots()
        assert row["price_difference"] == Decimal("50")
        assert row["price_difference_percent"] == Decimal("0")

    def test_snapshot_row_rounds_to_column_scale(self):
        row = snapshot_row(make_observation(price_a="3", price_b="1", profit="-25.123456789"))

        assert row["price_difference_percent"] == Decimal("66.6667")
        assert row["potential_profit"] == Decimal("-25.12345679")

    def test_ids_increase(self, recorder):
        first = recorder.record_snapshot(make_observation())
        second = recorder.record_snapshot(make_observation())
        assert second.row_id > first.row_id


# ===== Opportunity recording =====


class TestRecordOpportunity:
    def test_opportunity_written(self, recorder, store):
        result = recorder.record_opportunity(make_opportunity())

        assert result.ok
        [row] = store.recent_opportunities()
        assert row["profit"] == Decimal("15")
        assert row["price_a"] == Decimal("100")
        assert row["price_b"] == Decimal("102")
        assert row["detected_at"] is not None

    def test_independent_id_spaces(self, recorder, store):
        for _ in range(3):
            recorder.record_snapshot(make_observation())
        result = recorder.record_opportunity(make_opportunity())

        assert result.row_id == 1
        assert store.count(SNAPSHOTS_TABLE) == 3
        assert store.count(OPPORTUNITIES_TABLE) == 1


# ===== Failure handling =====


class TestStoreFailures:
    def test_rejected_opportunity_leaves_snapshot(self, store):
        recorder = MarketObservationRecorder(
            RejectingStore(store, opportunity_error=rejected(OPPORTUNITIES_TABLE))
        )

        snapshot = recorder.record_snapshot(make_observation())
        opportunity = recorder.record_opportunity(make_opportunity())

        assert snapshot.ok
        assert not opportunity.ok
        assert isinstance(opportunity.error, StoreWriteRejected)
        assert opportunity.error.table == OPPORTUNITIES_TABLE
        assert store.count(SNAPSHOTS_TABLE) == 1
        assert store.count(OPPORTUNITIES_TABLE) == 0

    def test_unavailable_snapshot_leaves_opportunity(self, store):
        recorder = MarketObservationRecorder(
            RejectingStore(store, snapshot_error=unreachable(SNAPSHOTS_TABLE))
        )

        snapshot = recorder.record_snapshot(make_observation())
        opportunity = recorder.record_opportunity(make_opportunity())

        assert isinstance(snapshot.error, StoreUnavailable)
        assert snapshot.row_id is None
        assert opportunity.ok
        assert store.count(SNAPSHOTS_TABLE) == 0
        assert store.count(OPPORTUNITIES_TABLE) == 1

    def test_failure_is_logged(self, store, caplog):
        recorder = MarketObservationRecorder(
            RejectingStore(store, snapshot_error=rejected(SNAPSHOTS_TABLE))
        )

        with caplog.at_level("WARNING", logger="dex.recorder"):
            recorder.record_snapshot(make_observation())

        assert "Failed to write market_snapshots row" in caplog.text

    def test_store_error_passes_through(self):
        error = StoreUnavailable("pool exhausted", table=SNAPSHOTS_TABLE)
        assert classify_store_error(error, SNAPSHOTS_TABLE) is error

    def test_dropped_table_is_reported_not_raised(self, recorder, store):
        with store.engine.begin() as conn:
            conn.exec_driver_sql(f"DROP TABLE {OPPORTUNITIES_TABLE}")

        result = recorder.record_opportunity(make_opportunity())

        # SQLite reports a missing table as OperationalError, PostgreSQL as
        # ProgrammingError, so the subclass depends on the dialect
        assert not result.ok
        assert isinstance(result.error, StoreError)
        assert result.error.table == OPPORTUNITIES_TABLE

    def test_programming_error_is_rejected_write(self):
        error = ProgrammingError(
            "INSERT INTO arbitrage_opportunities", {}, Exception("undefined table")
        )
        classified = classify_store_error(error, OPPORTUNITIES_TABLE)
        assert isinstance(classified, StoreWriteRejected)
        assert classified.details["error_type"] == "ProgrammingError"


# ===== open_store =====


class TestOpenStore:
    def test_no_url_disables_recording(self):
        assert open_store(None) is None
        assert open_store("") is None

    def test_bad_url_disables_recording(self):
        assert open_store("not a database url") is None

    def test_sqlite_url(self):
        store = open_store("sqlite://")
        try:
            assert store is not None
            assert store.count(SNAPSHOTS_TABLE) == 0
        finally:
            store.dispose()
