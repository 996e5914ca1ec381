"""
DEX adapter modules for different router types.
"""

from .v2 import RouterQuoter, fetch_amount_out_async, to_raw, to_units

__all__ = [
    "RouterQuoter",
    "fetch_amount_out_async",
    "to_raw",
    "to_units",
]
