"""
Uniswap V2 style router adapter.

Asks a router contract for getAmountsOut(amountIn, path) and converts the
on-chain integer amounts to and from human units with Decimal.
"""

import asyncio
from decimal import Context, Decimal, localcontext
from typing import List, Sequence

from web3 import Web3

from spread_arbitrage.exceptions import QuoteError
from spread_arbitrage.utils import get_logger, to_decimal

from ..abi import UNISWAP_V2_ROUTER_ABI
from ..types import PriceQuote, Venue

logger = get_logger(__name__)

# Wide enough for any uint256 amount at up to 36 decimals
_UNITS_CONTEXT = Context(prec=100)


def to_units(raw, decimals: int) -> Decimal:
    """Convert an on-chain integer amount to human units."""
    return Decimal(int(raw)).scaleb(-decimals, context=_UNITS_CONTEXT)


def to_raw(human, decimals: int) -> int:
    """
    Convert a human-unit amount to the on-chain integer amount.

    Raises:
        ValueError: If the amount rounds to zero or below
    """
    with localcontext(_UNITS_CONTEXT):
        raw = to_decimal(human).scaleb(decimals).quantize(Decimal(1))
    if raw <= 0:
        raise ValueError(f"Amount {human} is not positive at {decimals} decimals")
    return int(raw)


def is_rate_limit_error(error: Exception) -> bool:
    """Check for the rate limit patterns public RPC endpoints return."""
    error_msg = str(error)
    return (
        "429" in error_msg
        or "Too Many Requests" in error_msg
        or "-32005" in error_msg
        or "limit exceeded" in error_msg.lower()
    )


def _router_call(web3: Web3, router_addr: str, amount_in_raw: int, path: Sequence[str]):
    try:
        router_checksum = Web3.to_checksum_address(router_addr)
        checksummed_path = [Web3.to_checksum_address(token) for token in path]
    except ValueError as e:
        raise QuoteError(
            f"Invalid router or path address: {e}", venue=router_addr, path=path
        ) from e
    router = web3.eth.contract(address=router_checksum, abi=UNISWAP_V2_ROUTER_ABI)
    return router.functions.getAmountsOut(amount_in_raw, checksummed_path).call


def _last_amount(amounts: List[int], router_addr: str, path: Sequence[str]) -> int:
    if not amounts:
        raise QuoteError(
            f"Router {router_addr} returned no amounts", venue=router_addr, path=path
        )
    return int(amounts[-1])


async def fetch_amount_out_async(
    web3: Web3,
    router_addr: str,
    amount_in_raw: int,
    path: Sequence[str],
    max_retries: int = 3,
) -> int:
    """
    Fetch the output amount for amount_in_raw along path from a V2 router.

    The blocking RPC call runs in the default thread pool so that both
    venues can be queried at the same time. Rate limit errors are retried
    with exponential backoff.

    Args:
        web3: Web3 instance connected to the chain
        router_addr: Address of the router contract
        amount_in_raw: Input amount in the first token's native units
        path: Token addresses, first is the input, last is the output
        max_retries: Maximum number of attempts on rate limit errors (default: 3)

    Returns:
        Output amount in the last token's native units

    Raises:
        QuoteError: If the call fails, or keeps being rate limited
    """
    call = _router_call(web3, router_addr, amount_in_raw, path)
    loop = asyncio.get_running_loop()

    last_error = None
    for attempt in range(max_retries):
        try:
            amounts = await loop.run_in_executor(None, call)
        except Exception as e:
            last_error = e
            if is_rate_limit_error(e) and attempt < max_retries - 1:
                # Exponential backoff: 2s, 4.5s, 9s
                await asyncio.sleep((2 ** (attempt + 1)) + (attempt * 0.5))
                continue
            raise QuoteError(
                f"getAmountsOut failed on router {router_addr}: {e}",
                venue=router_addr,
                path=path,
            ) from e
        return _last_amount(amounts, router_addr, path)

    raise QuoteError(
        f"getAmountsOut failed on router {router_addr} after {max_retries} retries: {last_error}",
        venue=router_addr,
        path=path,
    )


class RouterQuoter:
    """
    Price-fetch collaborator backed by Uniswap V2 style routers.

    Amounts in and out are human units; decimals of the two path tokens
    are fixed at construction.
    """

    def __init__(
        self,
        web3: Web3,
        token_in_decimals: int,
        token_out_decimals: int,
        max_retries: int = 3,
    ):
        self.web3 = web3
        self.token_in_decimals = token_in_decimals
        self.token_out_decimals = token_out_decimals
        self.max_retries = max_retries

    async def quote(
        self, venue: Venue, amount_in: Decimal, path: Sequence[str]
    ) -> PriceQuote:
        """
        Quote amount_in of path[0] into path[-1] on venue.

        Raises:
            QuoteError: If the venue cannot produce a usable amount
        """
        try:
            amount_in_raw = to_raw(amount_in, self.token_in_decimals)
        except (ValueError, ArithmeticError) as e:
            raise QuoteError(str(e), venue=venue.name, path=path) from e

        try:
            raw_out = await fetch_amount_out_async(
                self.web3, venue.router, amount_in_raw, path, self.max_retries
            )
        except QuoteError as e:
            raise QuoteError(str(e), venue=venue.name, path=path, details=e.details) from e

        amount_out = to_units(raw_out, self.token_out_decimals)
        logger.debug(f"{venue.name}: {amount_in} -> {amount_out} (raw {raw_out})")

        try:
            return PriceQuote(
                venue_id=venue.name,
                token_in=path[0],
                token_out=path[-1],
                amount_in=to_decimal(amount_in),
                amount_out=amount_out,
                raw_amount_out=raw_out,
            )
        except ValueError as e:
            raise QuoteError(str(e), venue=venue.name, path=path) from e
