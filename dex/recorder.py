"""
Market observation recorder.

Persists every evaluation as a market snapshot and, separately, every
qualifying evaluation as an arbitrage opportunity. Store failures are
returned to the caller as RecordResult values rather than raised, so a
failed snapshot write never stops the opportunity write (or vice versa).
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol

from sqlalchemy.exc import (
    DisconnectionError,
    InterfaceError,
    OperationalError,
    SQLAlchemyError,
)
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

from spread_arbitrage.exceptions import StoreError, StoreUnavailable, StoreWriteRejected
from spread_arbitrage.utils import get_logger

from .opportunity_math import (
    price_difference,
    price_difference_percent,
    quantize_amount,
    quantize_percent,
)
from .types import ArbitrageOpportunity, MarketObservation

logger = get_logger(__name__)

SNAPSHOTS_TABLE = "market_snapshots"
OPPORTUNITIES_TABLE = "arbitrage_opportunities"

_UNAVAILABLE_ERRORS = (
    OperationalError,
    InterfaceError,
    DisconnectionError,
    PoolTimeoutError,
)


class ObservationWriter(Protocol):
    """Write contract the recorder needs from a store."""

    def insert_snapshot(self, values: Dict[str, Any]) -> int: ...

    def insert_opportunity(self, values: Dict[str, Any]) -> int: ...


@dataclass(frozen=True)
class RecordResult:
    """Outcome of one recording write."""

    table: str
    row_id: Optional[int] = None
    error: Optional[StoreError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def classify_store_error(error: Exception, table: str) -> StoreError:
    """Map a database failure onto StoreUnavailable or StoreWriteRejected."""
    if isinstance(error, StoreError):
        return error
    if isinstance(error, _UNAVAILABLE_ERRORS):
        return StoreUnavailable(
            f"Store unavailable while writing {table}: {error}", table=table
        )
    return StoreWriteRejected(
        f"Store rejected write to {table}: {error}",
        table=table,
        details={"error_type": type(error).__name__},
    )


def snapshot_row(observation: MarketObservation) -> Dict[str, Any]:
    """
    Column values for a market_snapshots row.

    The spread columns are derived here from the two prices; callers never
    supply them.
    """
    potential_profit = observation.potential_profit
    return {
        "dex_a": observation.venue_a_id,
        "dex_b": observation.venue_b_id,
        "token_a": observation.token_in,
        "token_b": observation.token_out,
        "dex_a_price": quantize_amount(observation.price_a),
        "dex_b_price": quantize_amount(observation.price_b),
        "price_difference": quantize_amount(
            price_difference(observation.price_a, observation.price_b)
        ),
        "price_difference_percent": quantize_percent(
            price_difference_percent(observation.price_a, observation.price_b)
        ),
        "trade_amount": quantize_amount(observation.trade_amount),
        "gas_cost": quantize_amount(observation.gas_cost),
        "potential_profit": (
            quantize_amount(potential_profit) if potential_profit is not None else None
        ),
        "is_arbitrage": bool(observation.is_arbitrage),
    }


def opportunity_row(opportunity: ArbitrageOpportunity) -> Dict[str, Any]:
    """Column values for an arbitrage_opportunities row."""
    return {
        "dex_a": opportunity.venue_a_id,
        "dex_b": opportunity.venue_b_id,
        "token_a": opportunity.token_in,
        "token_b": opportunity.token_out,
        "price_a": quantize_amount(opportunity.price_a),
        "price_b": quantize_amount(opportunity.price_b),
        "profit": quantize_amount(opportunity.profit),
    }


class MarketObservationRecorder:
    """
    Records evaluations into an observation store.

    Holds no state between calls; the store handle may be shared with other
    recorders and used from several threads.
    """

    def __init__(self, store: ObservationWriter):
        self.store = store

    def record_snapshot(self, observation: MarketObservation) -> RecordResult:
        """Write one market snapshot, whatever the verdict was."""
        return self._write(
            SNAPSHOTS_TABLE, self.store.insert_snapshot, snapshot_row(observation)
        )

    def record_opportunity(self, opportunity: ArbitrageOpportunity) -> RecordResult:
        """Write one arbitrage opportunity. Only call with a positive verdict."""
        return self._write(
            OPPORTUNITIES_TABLE,
            self.store.insert_opportunity,
            opportunity_row(opportunity),
        )

    def _write(self, table: str, insert_fn, values: Dict[str, Any]) -> RecordResult:
        try:
            row_id = insert_fn(values)
        except (SQLAlchemyError, StoreError) as e:
            error = classify_store_error(e, table)
            logger.warning(f"Failed to write {table} row: {error}")
            return RecordResult(table=table, error=error)

        logger.debug(f"Wrote {table} row id={row_id}")
        return RecordResult(table=table, row_id=row_id)
