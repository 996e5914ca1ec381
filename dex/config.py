"""
Configuration loading and validation for the spread checker.
"""

import os
from decimal import Decimal
from typing import Any, Dict, List, Optional

import yaml
from web3 import Web3

from spread_arbitrage.exceptions import ConfigurationError
from spread_arbitrage.utils import to_decimal

from .types import TradeDirection, Venue

RPC_URL_ENV_VAR = "RPC_URL"
DATABASE_URL_ENV_VAR = "DATABASE_URL"

MAX_VENUE_NAME_LENGTH = 50


class ConfigError(ConfigurationError):
    """Raised when config is invalid or missing required fields."""

    pass


class SpreadConfig:
    """
    Parsed and validated configuration for a single spread check.

    Attributes:
        rpc_url: HTTP(S) RPC endpoint
        dex_a_router: Checksum address of venue A's router
        dex_b_router: Checksum address of venue B's router
        dex_a_name: Label recorded for venue A
        dex_b_name: Label recorded for venue B
        token_a: Checksum address of the input token
        token_b: Checksum address of the output token
        token_a_decimals: Decimals of token_a (amount in)
        token_b_decimals: Decimals of token_b (amount out)
        min_profit_usdc: Profit must strictly exceed this to count
        trade_amount: Input amount of token_a quoted on both venues
        gas_cost_usdc: Fixed execution cost subtracted from profit
        direction: Trade direction evaluated
        database_url: SQLAlchemy URL, None disables recording
        request_timeout_sec: HTTP timeout for RPC calls
    """

    def __init__(self, config_dict: Dict[str, Any]):
        """
        Parse and validate config from dictionary.

        Args:
            config_dict: Loaded YAML config

        Raises:
            ConfigError: If required fields missing or invalid
        """
        rpc_url = config_dict.get("rpc_url") or os.environ.get(RPC_URL_ENV_VAR)
        if not rpc_url:
            raise ConfigError(
                f"Missing required config field: rpc_url (or {RPC_URL_ENV_VAR})"
            )
        if not isinstance(rpc_url, str) or not rpc_url.startswith(("http://", "https://")):
            raise ConfigError(f"Invalid RPC URL format: {rpc_url}")
        self.rpc_url: str = rpc_url

        # Venues
        self.dex_a_router: str = self._get_address(config_dict, "dex_a_router")
        self.dex_b_router: str = self._get_address(config_dict, "dex_b_router")
        self.dex_a_name: str = self._get_venue_name(config_dict, "dex_a_name", "DEX_A")
        self.dex_b_name: str = self._get_venue_name(config_dict, "dex_b_name", "DEX_B")

        # Tokens
        self.token_a: str = self._get_address(config_dict, "token_a")
        self.token_b: str = self._get_address(config_dict, "token_b")
        if self.token_a == self.token_b:
            raise ConfigError("token_a and token_b must be different tokens")
        self.token_a_decimals: int = self._get_decimals(config_dict, "token_a_decimals", 18)
        self.token_b_decimals: int = self._get_decimals(config_dict, "token_b_decimals", 6)

        # Trading parameters
        self.min_profit_usdc: Decimal = self._get_decimal(config_dict, "min_profit_usdc")
        self.trade_amount: Decimal = self._get_decimal(config_dict, "trade_amount")
        self.gas_cost_usdc: Decimal = self._get_decimal(config_dict, "gas_cost_usdc")
        if self.trade_amount <= 0:
            raise ConfigError(f"trade_amount must be positive, got {self.trade_amount}")
        if self.gas_cost_usdc < 0:
            raise ConfigError(f"gas_cost_usdc must not be negative, got {self.gas_cost_usdc}")

        direction = config_dict.get("direction", TradeDirection.BUY_A_SELL_B.value)
        try:
            self.direction: TradeDirection = TradeDirection(direction)
        except ValueError:
            valid = ", ".join(d.value for d in TradeDirection)
            raise ConfigError(f"Invalid direction '{direction}' (must be one of: {valid})")

        # Storage (optional)
        self.database_url: Optional[str] = config_dict.get("database_url") or os.environ.get(
            DATABASE_URL_ENV_VAR
        )

        timeout = config_dict.get("request_timeout_sec", 10)
        if not isinstance(timeout, (int, float)) or isinstance(timeout, bool) or timeout <= 0:
            raise ConfigError(f"request_timeout_sec must be a positive number, got {timeout}")
        self.request_timeout_sec: float = float(timeout)

    @staticmethod
    def _get_address(d: Dict, key: str) -> str:
        """Get required address field, returned checksummed."""
        if key not in d:
            raise ConfigError(f"Missing required config field: {key}")
        val = d[key]
        if not isinstance(val, str) or not Web3.is_address(val):
            raise ConfigError(f"Config field '{key}' is not a valid address: {val!r}")
        return Web3.to_checksum_address(val)

    @staticmethod
    def _get_decimal(d: Dict, key: str) -> Decimal:
        """Get required numeric field as Decimal (never via binary float math)."""
        if key not in d:
            raise ConfigError(f"Missing required config field: {key}")
        try:
            return to_decimal(d[key])
        except ValueError as e:
            raise ConfigError(f"Config field '{key}' must be a decimal number: {e}") from e

    @staticmethod
    def _get_decimals(d: Dict, key: str, default: int) -> int:
        val = d.get(key, default)
        if not isinstance(val, int) or isinstance(val, bool) or not 0 <= val <= 36:
            raise ConfigError(f"Config field '{key}' must be an integer in [0, 36], got {val!r}")
        return val

    @staticmethod
    def _get_venue_name(d: Dict, key: str, default: str) -> str:
        val = d.get(key, default)
        if not isinstance(val, str) or not val.strip():
            raise ConfigError(f"Config field '{key}' must be a non-empty string")
        if len(val) > MAX_VENUE_NAME_LENGTH:
            raise ConfigError(
                f"Config field '{key}' must be at most {MAX_VENUE_NAME_LENGTH} characters"
            )
        return val

    @property
    def venue_a(self) -> Venue:
        return Venue(name=self.dex_a_name, router=self.dex_a_router)

    @property
    def venue_b(self) -> Venue:
        return Venue(name=self.dex_b_name, router=self.dex_b_router)

    @property
    def path(self) -> List[str]:
        """Swap path token_a -> token_b."""
        return [self.token_a, self.token_b]

    def __repr__(self) -> str:
        # database_url may embed credentials
        return (
            f"SpreadConfig(rpc_url={self.rpc_url!r}, "
            f"{self.dex_a_name}={self.dex_a_router}, {self.dex_b_name}={self.dex_b_router}, "
            f"path={self.token_a}->{self.token_b}, trade_amount={self.trade_amount}, "
            f"gas_cost_usdc={self.gas_cost_usdc}, min_profit_usdc={self.min_profit_usdc}, "
            f"direction={self.direction.value}, recording={'on' if self.database_url else 'off'})"
        )


def load_config(config_path: str) -> SpreadConfig:
    """
    Load and validate config from YAML file.

    Args:
        config_path: Path to config YAML file

    Returns:
        Validated SpreadConfig instance

    Raises:
        ConfigError: If config invalid or file not found
    """
    if not os.path.exists(config_path):
        raise ConfigError(f"Config file not found: {config_path}")

    try:
        with open(config_path, "r") as f:
            config_dict = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse YAML: {e}") from e

    if not isinstance(config_dict, dict):
        raise ConfigError("Config file must contain a YAML dictionary")

    return SpreadConfig(config_dict)
