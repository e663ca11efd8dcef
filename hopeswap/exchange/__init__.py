"""
HopeSwap Exchange

Provides:
  - PairRegistry         : creates and tracks one pair per token combination
  - ExchangePair         : constant-product AMM with LP token and price accumulators
  - ApprovedTokenManager : optional gate on pair creation
  - PairTWAPOracle       : fixed-window average price over a pair's accumulators
  - library              : token ordering, pair addresses, quoting
"""

from .approval import ApprovedTokenManager, TokenApprovalPolicy
from .events import Burn, ExchangeEvent, Mint, PairCreated, Swap, Sync, TokenApproval
from .factory import PairRegistry
from .library import get_amount_in, get_amount_out, get_reserves, pair_for, quote, sort_tokens
from .oracle import PairTWAPOracle, average_price, current_cumulative_prices
from .pair import ExchangePair, SwapCallee, protocol_fee_liquidity

__all__ = [
    # Contracts
    "PairRegistry",
    "ExchangePair",
    "ApprovedTokenManager",
    "TokenApprovalPolicy",
    "SwapCallee",
    "protocol_fee_liquidity",
    # Events
    "ExchangeEvent",
    "PairCreated",
    "Mint",
    "Burn",
    "Swap",
    "Sync",
    "TokenApproval",
    # Library
    "sort_tokens",
    "pair_for",
    "get_reserves",
    "quote",
    "get_amount_out",
    "get_amount_in",
    # Oracle
    "PairTWAPOracle",
    "current_cumulative_prices",
    "average_price",
]
