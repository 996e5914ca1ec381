"""
Core data types for two-venue spread checking.
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Optional


class TradeDirection(Enum):
    """Which venue is bought on and which is sold on."""

    BUY_A_SELL_B = "buy_a_sell_b"
    BUY_B_SELL_A = "buy_b_sell_a"


@dataclass(frozen=True)
class Venue:
    """
    A price-quoting DEX router.

    Attributes:
        name: Label stored in recorded rows (e.g., "DEX_A", "sushiswap")
        router: Checksum address of the router contract
    """

    name: str
    router: str


@dataclass(frozen=True)
class PriceQuote:
    """
    Output amount one venue reports for swapping amount_in along a path.

    Attributes:
        venue_id: Venue label
        token_in: Address of the token offered
        token_out: Address of the token received
        amount_in: Human-unit quantity of token_in offered
        amount_out: Human-unit quantity of token_out returned
        raw_amount_out: On-chain integer amount, if the quote came from a router
    """

    venue_id: str
    token_in: str
    token_out: str
    amount_in: Decimal
    amount_out: Decimal
    raw_amount_out: Optional[int] = None

    def __post_init__(self):
        if self.amount_in <= 0:
            raise ValueError(f"amount_in must be positive: {self.amount_in}")
        if self.amount_out < 0:
            raise ValueError(f"amount_out must be non-negative: {self.amount_out}")


@dataclass(frozen=True)
class MarketObservation:
    """
    One evaluation run, as handed to the recorder for a market snapshot.

    potential_profit is the raw profit figure, computed whether or not it
    clears the threshold.
    """

    venue_a_id: str
    venue_b_id: str
    token_in: str
    token_out: str
    price_a: Decimal
    price_b: Decimal
    trade_amount: Decimal
    gas_cost: Decimal
    potential_profit: Optional[Decimal]
    is_arbitrage: bool


@dataclass(frozen=True)
class ArbitrageOpportunity:
    """An observation whose profit strictly exceeded the minimum threshold."""

    venue_a_id: str
    venue_b_id: str
    token_in: str
    token_out: str
    price_a: Decimal
    price_b: Decimal
    profit: Decimal
