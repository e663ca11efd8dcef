"""
HopeSwap: deterministic pair registry and constant-product exchange pairs
running on an in-process contract chain.
"""

__version__ = "0.1.0"

from .contracts import Chain
from .exchange import ApprovedTokenManager, ExchangePair, PairRegistry, PairTWAPOracle
from .tokens import ERC20Token

__all__ = [
    "Chain",
    "PairRegistry",
    "ExchangePair",
    "ApprovedTokenManager",
    "PairTWAPOracle",
    "ERC20Token",
]
