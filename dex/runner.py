"""
Single-run spread checker.

Fetches both venue quotes concurrently, evaluates the configured trade
direction, records the market snapshot (and the opportunity, if any) and
prints a console summary.
"""

import asyncio
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Optional, Protocol, Sequence, Tuple

from web3 import Web3

from spread_arbitrage.exceptions import QuoteError, ValidationError
from spread_arbitrage.utils import get_logger

from .adapters.v2 import RouterQuoter
from .config import SpreadConfig
from .opportunity_math import compute_raw_profit, evaluate, price_difference_percent
from .recorder import MarketObservationRecorder, RecordResult
from .types import (
    ArbitrageOpportunity,
    MarketObservation,
    PriceQuote,
    TradeDirection,
    Venue,
)

logger = get_logger(__name__)


# ANSI color codes for pretty output
class Colors:
    """ANSI color codes for terminal output."""

    RESET = "\033[0m"
    BOLD = "\033[1m"
    DIM = "\033[2m"

    RED = "\033[91m"
    GREEN = "\033[92m"
    YELLOW = "\033[93m"
    CYAN = "\033[96m"

    @staticmethod
    def strip(text: str) -> str:
        """Remove all ANSI codes from text."""
        import re

        return re.sub(r"\033\[[0-9;]+m", "", text)


class Quoter(Protocol):
    """Price-fetch collaborator: quote(venue, amount_in, path) -> PriceQuote."""

    async def quote(
        self, venue: Venue, amount_in: Decimal, path: Sequence[str]
    ) -> PriceQuote: ...


class RunStatus(Enum):
    QUOTES_UNAVAILABLE = "quotes_unavailable"
    NO_OPPORTUNITY = "no_opportunity"
    OPPORTUNITY = "opportunity"


@dataclass
class RunReport:
    """
    Outcome of one run.

    Attributes:
        status: Terminal state of the evaluation
        quote_a: Venue A quote (None if unavailable)
        quote_b: Venue B quote (None if unavailable)
        raw_profit: Profit before the threshold check
        profit: Profit that cleared the threshold, else None
        snapshot_result: Snapshot write outcome, None if recording is disabled
        opportunity_result: Opportunity write outcome, None if not attempted
        errors: Quote failure messages
    """

    status: RunStatus
    quote_a: Optional[PriceQuote] = None
    quote_b: Optional[PriceQuote] = None
    raw_profit: Optional[Decimal] = None
    profit: Optional[Decimal] = None
    snapshot_result: Optional[RecordResult] = None
    opportunity_result: Optional[RecordResult] = None
    errors: Tuple[str, ...] = ()

    @property
    def evaluated(self) -> bool:
        return self.status is not RunStatus.QUOTES_UNAVAILABLE

    @property
    def fully_recorded(self) -> bool:
        """True if every attempted write succeeded."""
        results = [
            r for r in (self.snapshot_result, self.opportunity_result) if r is not None
        ]
        return all(r.ok for r in results)


class SpreadRunner:
    """
    Coordinates one fetch -> evaluate -> record pass.

    Recording is optional: with recorder=None the run still evaluates and
    reports, it just writes nothing.
    """

    def __init__(
        self,
        config: SpreadConfig,
        quoter: Optional[Quoter] = None,
        recorder: Optional[MarketObservationRecorder] = None,
        quiet: bool = False,
    ):
        """
        Initialize runner with config.

        Args:
            config: Validated SpreadConfig instance
            quoter: Price-fetch collaborator; connect() builds a RouterQuoter if omitted
            recorder: Observation recorder, or None to disable recording
            quiet: If True, skip console output (logging still happens)
        """
        self.config = config
        self.quoter = quoter
        self.recorder = recorder
        self.quiet = quiet
        self.web3: Optional[Web3] = None

    def connect(self) -> None:
        """
        Connect to the configured RPC endpoint and build the router quoter.

        Raises:
            ConnectionError: If the endpoint does not answer
        """
        rpc_url = self.config.rpc_url
        logger.info(f"Connecting to RPC: {rpc_url}")
        self.web3 = Web3(
            Web3.HTTPProvider(
                rpc_url, request_kwargs={"timeout": self.config.request_timeout_sec}
            )
        )
        try:
            # Skip is_connected() as it's unreliable
            chain_id = self.web3.eth.chain_id
            block = self.web3.eth.block_number
        except Exception as e:
            raise ConnectionError(f"RPC connection failed for {rpc_url}: {e}") from e
        logger.info(f"✓ Connected to chain {chain_id} (block #{block:,})")

        self.quoter = RouterQuoter(
            self.web3,
            token_in_decimals=self.config.token_a_decimals,
            token_out_decimals=self.config.token_b_decimals,
        )

    async def fetch_quotes(self) -> Tuple[PriceQuote, PriceQuote]:
        """
        Fetch both venue quotes concurrently.

        Raises:
            QuoteError: If either venue fails (the first failure is raised)
        """
        if self.quoter is None:
            raise RuntimeError("No quoter configured; call connect() first")

        amount_in = self.config.trade_amount
        path = self.config.path
        results = await asyncio.gather(
            self.quoter.quote(self.config.venue_a, amount_in, path),
            self.quoter.quote(self.config.venue_b, amount_in, path),
            return_exceptions=True,
        )

        failures = [r for r in results if isinstance(r, BaseException)]
        for failure in failures:
            if not isinstance(failure, QuoteError):
                raise failure
        if failures:
            for failure in failures:
                logger.warning(f"Quote failed: {failure}")
            raise failures[0]

        quote_a, quote_b = results
        return quote_a, quote_b

    async def run_once(self) -> RunReport:
        """
        Run one fetch -> evaluate -> record pass.

        Quote failures end the run with QUOTES_UNAVAILABLE and nothing is
        recorded. Store failures are logged and reported, never raised.
        """
        try:
            quote_a, quote_b = await self.fetch_quotes()
        except QuoteError as e:
            report = RunReport(status=RunStatus.QUOTES_UNAVAILABLE, errors=(str(e),))
            self._print_report(report)
            return report

        report = self.evaluate_and_record(quote_a, quote_b)
        self._print_report(report)
        return report

    def evaluate_and_record(self, quote_a: PriceQuote, quote_b: PriceQuote) -> RunReport:
        """
        Evaluate a quote pair and record it.

        Both writes use this exact pair; nothing is re-fetched.

        Raises:
            ValidationError: If the quotes are not for the same swap
        """
        _check_same_swap(quote_a, quote_b)

        cfg = self.config
        raw_profit = compute_raw_profit(
            quote_a.amount_out,
            quote_b.amount_out,
            cfg.trade_amount,
            cfg.gas_cost_usdc,
            cfg.direction,
        )
        profit = evaluate(
            quote_a.amount_out,
            quote_b.amount_out,
            cfg.trade_amount,
            cfg.gas_cost_usdc,
            cfg.min_profit_usdc,
            cfg.direction,
        )
        report = RunReport(
            status=RunStatus.OPPORTUNITY if profit is not None else RunStatus.NO_OPPORTUNITY,
            quote_a=quote_a,
            quote_b=quote_b,
            raw_profit=raw_profit,
            profit=profit,
        )
        logger.info(
            f"{quote_a.venue_id}={quote_a.amount_out} {quote_b.venue_id}={quote_b.amount_out} "
            f"raw_profit={raw_profit} status={report.status.value}"
        )

        if self.recorder is None:
            return report

        report.snapshot_result = self.recorder.record_snapshot(
            MarketObservation(
                venue_a_id=quote_a.venue_id,
                venue_b_id=quote_b.venue_id,
                token_in=quote_a.token_in,
                token_out=quote_a.token_out,
                price_a=quote_a.amount_out,
                price_b=quote_b.amount_out,
                trade_amount=cfg.trade_amount,
                gas_cost=cfg.gas_cost_usdc,
                potential_profit=raw_profit,
                is_arbitrage=profit is not None,
            )
        )
        if profit is not None:
            report.opportunity_result = self.recorder.record_opportunity(
                ArbitrageOpportunity(
                    venue_a_id=quote_a.venue_id,
                    venue_b_id=quote_b.venue_id,
                    token_in=quote_a.token_in,
                    token_out=quote_a.token_out,
                    price_a=quote_a.amount_out,
                    price_b=quote_b.amount_out,
                    profit=profit,
                )
            )
        return report

    def _print_report(self, report: RunReport) -> None:
        if self.quiet:
            return

        if report.status is RunStatus.QUOTES_UNAVAILABLE:
            print(
                f"{Colors.RED}Prices unavailable, no evaluation performed.{Colors.RESET}"
            )
            for error in report.errors:
                print(f"  {Colors.DIM}{error}{Colors.RESET}")
            return

        quote_a, quote_b = report.quote_a, report.quote_b
        spread_pct = price_difference_percent(quote_a.amount_out, quote_b.amount_out)
        print(
            f"{Colors.CYAN}{quote_a.venue_id}{Colors.RESET}: {quote_a.amount_out}  "
            f"{Colors.CYAN}{quote_b.venue_id}{Colors.RESET}: {quote_b.amount_out}  "
            f"{Colors.DIM}(spread {spread_pct:.4f}%){Colors.RESET}"
        )

        if report.status is RunStatus.OPPORTUNITY:
            buy, sell = quote_a.venue_id, quote_b.venue_id
            if self.config.direction is TradeDirection.BUY_B_SELL_A:
                buy, sell = sell, buy
            print(
                f"{Colors.GREEN}{Colors.BOLD}Arbitrage opportunity detected!{Colors.RESET} "
                f"Buy on {buy}, sell on {sell}, "
                f"{quote_a.token_in} -> {quote_a.token_out}, "
                f"simulated profit: ${report.profit:.2f}"
            )
        else:
            print(
                f"{Colors.YELLOW}No arbitrage opportunity detected.{Colors.RESET} "
                f"{Colors.DIM}(raw profit ${report.raw_profit:.2f}){Colors.RESET}"
            )

        if report.snapshot_result is not None and not report.fully_recorded:
            print(f"{Colors.YELLOW}⚠ Some observations were not recorded{Colors.RESET}")


def _check_same_swap(quote_a: PriceQuote, quote_b: PriceQuote) -> None:
    if (quote_a.token_in, quote_a.token_out) != (quote_b.token_in, quote_b.token_out):
        raise ValidationError(
            "Quotes are for different token paths",
            details={
                "path_a": [quote_a.token_in, quote_a.token_out],
                "path_b": [quote_b.token_in, quote_b.token_out],
            },
        )
    if quote_a.amount_in != quote_b.amount_in:
        raise ValidationError(
            "Quotes are for different input amounts",
            details={"amount_in_a": quote_a.amount_in, "amount_in_b": quote_b.amount_in},
        )
