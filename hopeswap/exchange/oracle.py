"""
HopeSwap Price Oracle

Every pair keeps two cumulative price accumulators: the UQ112x112 ratio of
the opposing reserve to its own reserve, multiplied by the seconds it held,
summed over the life of the pair.  The accumulators wrap modulo 2**256 on
purpose; consumers only ever take the modular difference of two samples and
divide by the elapsed time, which recovers the time-weighted average price
over that interval regardless of how many times the register wrapped.

This module holds:
  - the accumulator step used by pairs on every reserve update
  - counterfactual reads of the current cumulative prices
  - PairTWAPOracle, a fixed-window average-price consumer
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Tuple

from ..constants import UINT32_MODULUS
from ..crypto.address import normalize_address
from ..exceptions import InvalidToken, NoReserves, PeriodNotElapsed
from .fixed_point import encode, mul_decode, timestamp32, uqdiv, wrapping_add, wrapping_sub

if TYPE_CHECKING:
    from ..contracts.state import Chain
    from .pair import ExchangePair

logger = logging.getLogger(__name__)

DEFAULT_PERIOD = 24 * 60 * 60  # seconds


# ---------------------------------------------------------------------------
# Accumulators
# ---------------------------------------------------------------------------

def accumulate(
    price0_cumulative: int,
    price1_cumulative: int,
    reserve0: int,
    reserve1: int,
    time_elapsed: int,
) -> Tuple[int, int]:
    """
    Advance both cumulative prices by ``time_elapsed`` seconds at the given
    reserves.  A zero interval or an empty side leaves them unchanged.
    """
    if time_elapsed <= 0 or reserve0 == 0 or reserve1 == 0:
        return price0_cumulative, price1_cumulative
    price0 = uqdiv(encode(reserve1), reserve0)
    price1 = uqdiv(encode(reserve0), reserve1)
    return (
        wrapping_add(price0_cumulative, price0 * time_elapsed),
        wrapping_add(price1_cumulative, price1 * time_elapsed),
    )


def elapsed_since(timestamp_last: int, block_timestamp: int) -> int:
    """Seconds between two 32-bit timestamps, tolerating one wrap."""
    return (timestamp32(block_timestamp) - timestamp_last) % UINT32_MODULUS


def current_cumulative_prices(pair: ExchangePair) -> Tuple[int, int, int]:
    """
    Cumulative prices as they would read if the pair synced right now.

    Does not touch pair state, so it is safe to call between trades.

    Returns:
        (price0_cumulative, price1_cumulative, block_timestamp32)
    """
    block_timestamp = timestamp32(pair.chain.block_timestamp)
    price0_cumulative = pair.price0_cumulative_last
    price1_cumulative = pair.price1_cumulative_last

    reserve0, reserve1, timestamp_last = pair.get_reserves()
    if timestamp_last != block_timestamp:
        price0_cumulative, price1_cumulative = accumulate(
            price0_cumulative,
            price1_cumulative,
            reserve0,
            reserve1,
            elapsed_since(timestamp_last, block_timestamp),
        )
    return price0_cumulative, price1_cumulative, block_timestamp


def average_price(cumulative_start: int, cumulative_end: int, time_elapsed: int) -> int:
    """
    UQ112x112 time-weighted average price between two cumulative samples.

    Raises:
        ValueError: if no time elapsed between the samples
    """
    if time_elapsed <= 0:
        raise ValueError("Average price needs a positive interval")
    return wrapping_sub(cumulative_end, cumulative_start) // time_elapsed


# ---------------------------------------------------------------------------
# Fixed-window TWAP consumer
# ---------------------------------------------------------------------------

class PairTWAPOracle:
    """
    Fixed-window time-weighted average price for one pair.

    The average is recomputed at most once per ``period``; between updates
    ``consult`` answers with the average of the last complete window.
    """

    def __init__(
        self,
        chain: Chain,
        factory: str,
        token_a: str,
        token_b: str,
        period: int = DEFAULT_PERIOD,
    ):
        # Lazy imports to avoid circular dependencies
        from .library import pair_for
        from .pair import ExchangePair

        if period <= 0:
            raise ValueError("Oracle period must be positive")

        self.chain = chain
        self.period = period
        self.pair = chain.get_contract(pair_for(factory, token_a, token_b), ExchangePair)
        self.token0 = self.pair.token0
        self.token1 = self.pair.token1

        self.price0_cumulative_last = self.pair.price0_cumulative_last
        self.price1_cumulative_last = self.pair.price1_cumulative_last
        reserve0, reserve1, self.block_timestamp_last = self.pair.get_reserves()
        if reserve0 == 0 or reserve1 == 0:
            raise NoReserves(f"Pair {self.pair.address} has no reserves")

        self.price0_average = 0
        self.price1_average = 0

    def update(self) -> None:
        """
        Close the current window.

        Raises:
            PeriodNotElapsed: if less than ``period`` seconds passed since the last update
        """
        price0_cumulative, price1_cumulative, block_timestamp = current_cumulative_prices(self.pair)
        time_elapsed = (block_timestamp - self.block_timestamp_last) % UINT32_MODULUS
        if time_elapsed < self.period:
            raise PeriodNotElapsed(
                f"Only {time_elapsed}s of {self.period}s window elapsed"
            )

        self.price0_average = average_price(self.price0_cumulative_last, price0_cumulative, time_elapsed)
        self.price1_average = average_price(self.price1_cumulative_last, price1_cumulative, time_elapsed)

        self.price0_cumulative_last = price0_cumulative
        self.price1_cumulative_last = price1_cumulative
        self.block_timestamp_last = block_timestamp
        logger.debug("Oracle %s updated over %ds", self.pair.address, time_elapsed)

    def consult(self, token: str, amount_in: int) -> int:
        """Amount of the other token ``amount_in`` of ``token`` is worth at the average price."""
        token = normalize_address(token)
        if token == self.token0:
            return mul_decode(self.price0_average, amount_in)
        if token == self.token1:
            return mul_decode(self.price1_average, amount_in)
        raise InvalidToken(f"{token} is not part of pair {self.pair.address}")

    @property
    def age(self) -> int:
        """Seconds since the last completed window."""
        return elapsed_since(self.block_timestamp_last, self.chain.block_timestamp)

    def is_stale(self, threshold: int) -> bool:
        return self.age > threshold
