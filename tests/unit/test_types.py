"""Tests for dex/types.py"""

from decimal import Decimal

import pytest

from dex.types import PriceQuote, TradeDirection

WETH = "0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2"
USDC = "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48"


class TestPriceQuote:
    def test_valid_quote(self):
        quote = PriceQuote("DEX_A", WETH, USDC, Decimal("1"), Decimal("1843.12"))
        assert quote.amount_out == Decimal("1843.12")
        assert quote.raw_amount_out is None

    def test_zero_output_is_allowed(self):
        quote = PriceQuote("DEX_A", WETH, USDC, Decimal("1"), Decimal("0"))
        assert quote.amount_out == 0

    @pytest.mark.parametrize("amount_in", [Decimal("0"), Decimal("-1")])
    def test_amount_in_must_be_positive(self, amount_in):
        with pytest.raises(ValueError, match="amount_in"):
            PriceQuote("DEX_A", WETH, USDC, amount_in, Decimal("1"))

    def test_amount_out_must_not_be_negative(self):
        with pytest.raises(ValueError, match="amount_out"):
            PriceQuote("DEX_A", WETH, USDC, Decimal("1"), Decimal("-0.01"))

    def test_quote_is_immutable(self):
        quote = PriceQuote("DEX_A", WETH, USDC, Decimal("1"), Decimal("2"))
        with pytest.raises(AttributeError):
            quote.amount_out = Decimal("3")


def test_trade_direction_values():
    assert TradeDirection("buy_a_sell_b") is TradeDirection.BUY_A_SELL_B
    assert TradeDirection("buy_b_sell_a") is TradeDirection.BUY_B_SELL_A
