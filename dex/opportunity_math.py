"""
Single source of truth for spread and profit math.

All values are Decimal. Nothing in this module performs I/O or keeps state,
so every function can be called from any thread or event loop.

Conversion policy:
- Internal: Decimal with 50 significant digits
- Storage: 8 fractional digits for prices/amounts/profit, 4 for percentages
- Floats are never used; numeric inputs go through Decimal(str(x))
"""

from decimal import ROUND_HALF_EVEN, Context, Decimal, localcontext
from typing import Optional

from spread_arbitrage.utils import to_decimal

from .types import TradeDirection

# Same precision for every caller regardless of the thread's default context
_CONTEXT = Context(prec=50, rounding=ROUND_HALF_EVEN)

AMOUNT_QUANTUM = Decimal("0.00000001")
PERCENT_QUANTUM = Decimal("0.0001")


# ============================================================================
# Spread derivation
# ============================================================================


def price_difference(price_a, price_b) -> Decimal:
    """Absolute spread between two quotes. |a - b|"""
    with localcontext(_CONTEXT):
        return abs(to_decimal(price_a) - to_decimal(price_b))


def price_difference_percent(price_a, price_b) -> Decimal:
    """
    Spread as a percentage of venue A's quote.

    Returns exactly Decimal("0") when price_a is zero or negative.
    """
    price_a_d = to_decimal(price_a)
    if price_a_d <= 0:
        return Decimal("0")
    with localcontext(_CONTEXT):
        return price_difference(price_a_d, price_b) / price_a_d * Decimal("100")


def quantize_amount(value: Decimal) -> Decimal:
    """Round a price/amount/profit to the 8 fractional digits the store keeps."""
    with localcontext(_CONTEXT):
        return to_decimal(value).quantize(AMOUNT_QUANTUM)


def quantize_percent(value: Decimal) -> Decimal:
    """Round a percentage to the 4 fractional digits the store keeps."""
    with localcontext(_CONTEXT):
        return to_decimal(value).quantize(PERCENT_QUANTUM)


# ============================================================================
# Profit evaluation
# ============================================================================


def compute_raw_profit(
    price_a,
    price_b,
    trade_amount,
    gas_cost,
    direction: TradeDirection = TradeDirection.BUY_A_SELL_B,
) -> Decimal:
    """
    Profit of one directional trade, before any threshold is applied.

    The result is rounded to the 8 fractional digits the store keeps, so the
    threshold check in evaluate() sees exactly the value that gets recorded.

    For BUY_A_SELL_B: (price_b - price_a) * trade_amount - gas_cost
    For BUY_B_SELL_A: (price_a - price_b) * trade_amount - gas_cost

    Example:
        >>> compute_raw_profit(Decimal("100"), Decimal("102"), 10, Decimal("5"))
        Decimal('15.00000000')
    """
    price_a_d = to_decimal(price_a)
    price_b_d = to_decimal(price_b)
    with localcontext(_CONTEXT):
        if direction is TradeDirection.BUY_A_SELL_B:
            spread = price_b_d - price_a_d
        else:
            spread = price_a_d - price_b_d
        profit = spread * to_decimal(trade_amount) - to_decimal(gas_cost)
        return profit.quantize(AMOUNT_QUANTUM)


def evaluate(
    price_a,
    price_b,
    trade_amount,
    gas_cost,
    min_profit,
    direction: TradeDirection = TradeDirection.BUY_A_SELL_B,
) -> Optional[Decimal]:
    """
    Decide whether the spread is worth trading.

    Args:
        price_a: Output amount quoted by venue A for trade_amount
        price_b: Output amount quoted by venue B for the same trade_amount
        trade_amount: Input quantity used for both quotes
        gas_cost: Fixed execution cost, in the profit's unit
        min_profit: Threshold the profit must strictly exceed (may be <= 0)
        direction: Trade direction to evaluate (only one per call)

    Returns:
        The profit if it is strictly greater than min_profit, otherwise None
    """
    profit = compute_raw_profit(price_a, price_b, trade_amount, gas_cost, direction)
    if profit > to_decimal(min_profit):
        return profit
    return None
