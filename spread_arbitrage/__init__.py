"""
Two-venue DEX spread checker.

Fetches router quotes for the same swap on two decentralized exchanges,
decides whether the spread covers gas plus a minimum profit, and records
market snapshots and qualifying opportunities.
"""

PROJECT_NAME = "dex-spread-checker"

from spread_arbitrage.version import __version__

VERSION = __version__

__all__ = ["PROJECT_NAME", "VERSION", "__version__"]
