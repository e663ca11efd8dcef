"""
Exchange events.

Events are appended to the chain's log in call order and disappear with the
call if it reverts.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict


@dataclass(frozen=True)
class ExchangeEvent:

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["event"] = type(self).__name__
        return data


@dataclass(frozen=True)
class PairCreated(ExchangeEvent):
    token0: str
    token1: str
    pair: str
    pair_count: int


@dataclass(frozen=True)
class Mint(ExchangeEvent):
    pair: str
    sender: str
    amount0: int
    amount1: int


@dataclass(frozen=True)
class Burn(ExchangeEvent):
    pair: str
    sender: str
    amount0: int
    amount1: int
    to: str


@dataclass(frozen=True)
class Swap(ExchangeEvent):
    pair: str
    sender: str
    amount0_in: int
    amount1_in: int
    amount0_out: int
    amount1_out: int
    to: str


@dataclass(frozen=True)
class Sync(ExchangeEvent):
    pair: str
    reserve0: int
    reserve1: int


@dataclass(frozen=True)
class TokenApproval(ExchangeEvent):
    """An approval manager changed a token's status."""
    manager: str
    token: str
    approved: bool
