"""
HopeSwap Exchange Pair

Two-asset constant-product market maker:
  - Reserves synced against the pair's true token balances (no internal
    debit/credit bookkeeping of deposits)
  - Fee of 0.30% on the input side, enforced by a fee-adjusted
    ``reserve0 * reserve1`` check on every swap
  - Liquidity-provider shares as an ERC-20 ledger with permit
  - Deferred protocol fee minted from reserve-product growth at the next
    liquidity event
  - Cumulative price accumulators for time-weighted average prices

Security features:
  - Reentrancy lock on every state-mutating entry point
  - Every entry point is atomic: a failure reverts all token movements
  - Optimistic transfers (flash swaps) verified only after the callback
  - MINIMUM_LIQUIDITY permanently locked at genesis
  - Reserves capped to 112 bits
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator, Optional, Protocol, Tuple, runtime_checkable

from ..constants import (
    FEE_DENOMINATOR,
    LP_TOKEN_DECIMALS,
    LP_TOKEN_NAME,
    LP_TOKEN_SYMBOL,
    MINIMUM_LIQUIDITY,
    PAIR_INIT_CODE_HASH,
    PROTOCOL_FEE_FRACTION,
    SWAP_FEE_NUMERATOR,
    ZERO_ADDRESS,
)
from ..contracts.state import Chain
from ..crypto.address import normalize_address
from ..exceptions import (
    Forbidden,
    HopeSwapError,
    InsufficientInputAmount,
    InsufficientLiquidity,
    InsufficientLiquidityBurned,
    InsufficientLiquidityMinted,
    InsufficientOutputAmount,
    InvalidTo,
    K,
    Locked,
    ReserveOverflow,
    TransferFailed,
)
from ..tokens.erc20 import ERC20Token
from .events import Burn, Mint, Swap, Sync
from .fixed_point import fits_uint112, sqrt, timestamp32
from .oracle import accumulate, elapsed_since

logger = logging.getLogger(__name__)


@runtime_checkable
class SwapCallee(Protocol):
    """Contract that receives a flash-swap callback."""

    def hopeswap_call(
        self,
        caller: str,
        sender: str,
        amount0_out: int,
        amount1_out: int,
        data: bytes,
    ) -> None: ...


def protocol_fee_liquidity(
    reserve0: int,
    reserve1: int,
    k_last: int,
    total_supply: int,
) -> Optional[int]:
    """
    Liquidity to mint to the protocol for fee growth since ``k_last``.

    The protocol receives 1/PROTOCOL_FEE_FRACTION of the growth in
    sqrt(reserve0 * reserve1):

        liquidity = total_supply * (rootK - rootKLast) / (rootK * (n - 1) + rootKLast)

    Returns:
        Amount to mint, or None when there is nothing to mint
    """
    if k_last == 0:
        return None
    root_k = sqrt(reserve0 * reserve1)
    root_k_last = sqrt(k_last)
    if root_k <= root_k_last:
        return None
    numerator = total_supply * (root_k - root_k_last)
    denominator = root_k * (PROTOCOL_FEE_FRACTION - 1) + root_k_last
    liquidity = numerator // denominator
    return liquidity if liquidity > 0 else None


class ExchangePair(ERC20Token):
    """
    Constant-product pair for (token0, token1), token0 < token1.

    The pair is also its own liquidity token.  Liquidity is added by
    transferring both tokens to the pair and calling ``mint``; removed by
    transferring LP shares to the pair and calling ``burn``.
    """

    INIT_CODE_HASH = PAIR_INIT_CODE_HASH

    def __init__(self, chain: Chain, address: str, factory: str):
        super().__init__(chain, address, LP_TOKEN_NAME, LP_TOKEN_SYMBOL, LP_TOKEN_DECIMALS)
        self.factory = normalize_address(factory)
        self.token0: Optional[str] = None
        self.token1: Optional[str] = None

        self.reserve0 = 0
        self.reserve1 = 0
        self.block_timestamp_last = 0

        self.price0_cumulative_last = 0
        self.price1_cumulative_last = 0
        self.k_last = 0  # reserve0 * reserve1 after the most recent liquidity event

        self._locked = False  # reentrancy guard

    def initialize(self, sender: str, token0: str, token1: str) -> None:
        """Fix the pair's tokens. Only the deploying registry may call this, once."""
        if normalize_address(sender) != self.factory:
            raise Forbidden("Only the factory can initialize a pair")
        if self.token0 is not None:
            raise Forbidden("Pair already initialized")
        self.chain.touch(self)
        self.token0 = normalize_address(token0)
        self.token1 = normalize_address(token1)

    def get_reserves(self) -> Tuple[int, int, int]:
        """(reserve0, reserve1, block_timestamp_last)"""
        return self.reserve0, self.reserve1, self.block_timestamp_last

    # -- Reentrancy guard ---------------------------------------------------

    @contextmanager
    def lock(self) -> Iterator[None]:
        """
        Hold the pair for the duration of one state-mutating call.

        The call runs atomically; a nested entry fails with Locked.
        """
        with self.chain.atomic(self):
            if self._locked:
                raise Locked(f"Pair {self.address} is locked")
            self._locked = True
            try:
                yield
            finally:
                self._locked = False

    # -- Liquidity ----------------------------------------------------------

    def mint(self, sender: str, to: str) -> int:
        """
        Issue LP shares for the tokens transferred in since the last sync.

        Returns:
            Liquidity minted to ``to``

        Raises:
            InsufficientLiquidityMinted: if the deposit is worth no shares
            ReserveOverflow: if a balance exceeds the 112-bit reserve cap
        """
        sender = normalize_address(sender)
        to = normalize_address(to)
        with self.lock():
            reserve0, reserve1, _ = self.get_reserves()
            balance0 = self._balance(self.token0)
            balance1 = self._balance(self.token1)
            amount0 = balance0 - reserve0
            amount1 = balance1 - reserve1

            fee_on = self._mint_fee(reserve0, reserve1)
            total_supply = self.total_supply  # after the fee mint
            if total_supply == 0:
                liquidity = sqrt(amount0 * amount1) - MINIMUM_LIQUIDITY
                if liquidity <= 0:
                    raise InsufficientLiquidityMinted(
                        f"Initial deposit must exceed {MINIMUM_LIQUIDITY} shares"
                    )
                # Permanently lock the first MINIMUM_LIQUIDITY shares
                self._mint(ZERO_ADDRESS, MINIMUM_LIQUIDITY)
            else:
                liquidity = min(
                    amount0 * total_supply // reserve0,
                    amount1 * total_supply // reserve1,
                )
                if liquidity <= 0:
                    raise InsufficientLiquidityMinted("Deposit is worth zero shares")

            self._mint(to, liquidity)
            self._update(balance0, balance1, reserve0, reserve1)
            if fee_on:
                self.k_last = self.reserve0 * self.reserve1
            self.chain.emit(Mint(self.address, sender, amount0, amount1))

        logger.debug("Mint %s: %d shares to %s (%d, %d)", self.address, liquidity, to, amount0, amount1)
        return liquidity

    def burn(self, sender: str, to: str) -> Tuple[int, int]:
        """
        Redeem the LP shares held by the pair itself for a pro-rata share of
        both balances, sent to ``to``.

        Returns:
            (amount0, amount1)

        Raises:
            InsufficientLiquidityBurned: if either redeemed amount rounds to zero
        """
        sender = normalize_address(sender)
        to = normalize_address(to)
        with self.lock():
            reserve0, reserve1, _ = self.get_reserves()
            token0, token1 = self.token0, self.token1
            balance0 = self._balance(token0)
            balance1 = self._balance(token1)
            liquidity = self.balance_of(self.address)

            fee_on = self._mint_fee(reserve0, reserve1)
            total_supply = self.total_supply  # after the fee mint
            if total_supply == 0:
                raise InsufficientLiquidityBurned("Pair has no liquidity")
            amount0 = liquidity * balance0 // total_supply
            amount1 = liquidity * balance1 // total_supply
            if amount0 <= 0 or amount1 <= 0:
                raise InsufficientLiquidityBurned(
                    f"Burning {liquidity} shares redeems ({amount0}, {amount1})"
                )

            self._burn(self.address, liquidity)
            self._safe_transfer(token0, to, amount0)
            self._safe_transfer(token1, to, amount1)
            balance0 = self._balance(token0)
            balance1 = self._balance(token1)

            self._update(balance0, balance1, reserve0, reserve1)
            if fee_on:
                self.k_last = self.reserve0 * self.reserve1
            self.chain.emit(Burn(self.address, sender, amount0, amount1, to))

        logger.debug("Burn %s: %d shares for (%d, %d) to %s", self.address, liquidity, amount0, amount1, to)
        return amount0, amount1

    # -- Swap ---------------------------------------------------------------

    def swap(
        self,
        sender: str,
        amount0_out: int,
        amount1_out: int,
        to: str,
        data: bytes = b"",
    ) -> None:
        """
        Send the requested outputs to ``to`` and verify that enough input
        arrived to keep the fee-adjusted constant product from decreasing.

        Inputs may be transferred in before the call, or, when ``data`` is
        non-empty, from inside the ``hopeswap_call`` callback made on the
        contract at ``to`` after the outputs were sent (flash swap).

        Raises:
            InsufficientOutputAmount: both outputs are zero
            InsufficientLiquidity: an output is not below its reserve
            InvalidTo: ``to`` is one of the pair's tokens, or cannot take a callback
            InsufficientInputAmount: nothing was paid in
            K: the fee-adjusted product decreased
        """
        sender = normalize_address(sender)
        to = normalize_address(to)
        with self.lock():
            if amount0_out < 0 or amount1_out < 0:
                raise InsufficientOutputAmount("Output amounts cannot be negative")
            if amount0_out == 0 and amount1_out == 0:
                raise InsufficientOutputAmount("Swap must request some output")
            reserve0, reserve1, _ = self.get_reserves()
            if amount0_out >= reserve0 or amount1_out >= reserve1:
                raise InsufficientLiquidity(
                    f"Requested ({amount0_out}, {amount1_out}) from reserves ({reserve0}, {reserve1})"
                )

            token0, token1 = self.token0, self.token1
            if to == token0 or to == token1:
                raise InvalidTo(f"Swap recipient {to} is a pair token")

            # Optimistic transfer
            if amount0_out > 0:
                self._safe_transfer(token0, to, amount0_out)
            if amount1_out > 0:
                self._safe_transfer(token1, to, amount1_out)
            if data:
                self._call_swap_callee(to, sender, amount0_out, amount1_out, data)

            balance0 = self._balance(token0)
            balance1 = self._balance(token1)

            amount0_in = max(balance0 - (reserve0 - amount0_out), 0)
            amount1_in = max(balance1 - (reserve1 - amount1_out), 0)
            if amount0_in == 0 and amount1_in == 0:
                raise InsufficientInputAmount("Swap received no input")

            balance0_adjusted = balance0 * FEE_DENOMINATOR - amount0_in * SWAP_FEE_NUMERATOR
            balance1_adjusted = balance1 * FEE_DENOMINATOR - amount1_in * SWAP_FEE_NUMERATOR
            if balance0_adjusted * balance1_adjusted < reserve0 * reserve1 * FEE_DENOMINATOR ** 2:
                raise K("Fee-adjusted constant product decreased")

            self._update(balance0, balance1, reserve0, reserve1)
            self.chain.emit(Swap(
                self.address, sender, amount0_in, amount1_in, amount0_out, amount1_out, to,
            ))

        logger.debug(
            "Swap %s: in (%d, %d) out (%d, %d) to %s",
            self.address, amount0_in, amount1_in, amount0_out, amount1_out, to,
        )

    # -- Reconciliation -----------------------------------------------------

    def skim(self, to: str) -> None:
        """Send any balance above the reserves to ``to``."""
        to = normalize_address(to)
        with self.lock():
            token0, token1 = self.token0, self.token1
            self._safe_transfer(token0, to, self._balance(token0) - self.reserve0)
            self._safe_transfer(token1, to, self._balance(token1) - self.reserve1)

    def sync(self) -> None:
        """Force the reserves to match the balances."""
        with self.lock():
            self._update(
                self._balance(self.token0),
                self._balance(self.token1),
                self.reserve0,
                self.reserve1,
            )

    # -- Internal -----------------------------------------------------------

    def _balance(self, token: str) -> int:
        return self.chain.get_contract(token, ERC20Token).balance_of(self.address)

    def _safe_transfer(self, token: str, to: str, value: int) -> None:
        try:
            ok = self.chain.get_contract(token, ERC20Token).transfer(self.address, to, value)
        except HopeSwapError as e:
            raise TransferFailed(f"Transfer of {value} {token} to {to} failed: {e}") from e
        if not ok:
            raise TransferFailed(f"Transfer of {value} {token} to {to} returned false")

    def _call_swap_callee(
        self,
        to: str,
        sender: str,
        amount0_out: int,
        amount1_out: int,
        data: bytes,
    ) -> None:
        if not self.chain.has_contract(to):
            raise InvalidTo(f"Flash swap recipient {to} is not a contract")
        callee = self.chain.get_contract(to)
        if not isinstance(callee, SwapCallee):
            raise InvalidTo(f"Contract at {to} cannot receive swap callbacks")
        with self.chain.atomic(callee):
            callee.hopeswap_call(self.address, sender, amount0_out, amount1_out, data)

    def _update(self, balance0: int, balance1: int, reserve0: int, reserve1: int) -> None:
        """Store new reserves, advancing the price accumulators first."""
        if not fits_uint112(balance0) or not fits_uint112(balance1):
            raise ReserveOverflow(f"Balances ({balance0}, {balance1}) exceed the reserve cap")

        block_timestamp = timestamp32(self.chain.block_timestamp)
        time_elapsed = elapsed_since(self.block_timestamp_last, self.chain.block_timestamp)
        self.price0_cumulative_last, self.price1_cumulative_last = accumulate(
            self.price0_cumulative_last,
            self.price1_cumulative_last,
            reserve0,
            reserve1,
            time_elapsed,
        )

        self.reserve0 = balance0
        self.reserve1 = balance1
        self.block_timestamp_last = block_timestamp
        self.chain.emit(Sync(self.address, balance0, balance1))

    def _mint_fee(self, reserve0: int, reserve1: int) -> bool:
        """Mint the deferred protocol fee, if switched on. Returns whether it is on."""
        fee_to = self.chain.get_contract(self.factory).fee_to
        fee_on = fee_to is not None
        if fee_on:
            liquidity = protocol_fee_liquidity(reserve0, reserve1, self.k_last, self.total_supply)
            if liquidity:
                self._mint(fee_to, liquidity)
        elif self.k_last != 0:
            self.k_last = 0
        return fee_on
