"""
Single-pair helpers shared by the registry and by off-path callers.

Everything here except ``get_reserves`` is a pure function: token ordering,
pair address derivation and constant-product quoting need no chain access.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Tuple

from ..constants import FEE_DENOMINATOR, PAIR_INIT_CODE_HASH, SWAP_FEE_NUMERATOR, ZERO_ADDRESS
from ..crypto.address import address_to_int, normalize_address
from ..crypto.contract import generate_contract_address_create2, pair_salt
from ..exceptions import (
    IdenticalAddresses,
    InsufficientAmount,
    InsufficientInputAmount,
    InsufficientLiquidity,
    InsufficientOutputAmount,
    ZeroAddress,
)

if TYPE_CHECKING:
    from ..contracts.state import Chain


def sort_tokens(token_a: str, token_b: str) -> Tuple[str, str]:
    """
    Canonical (token0, token1) order: numerically smaller address first.

    Raises:
        IdenticalAddresses: if both tokens are the same
        ZeroAddress: if either token is the zero address
    """
    token_a = normalize_address(token_a)
    token_b = normalize_address(token_b)
    if token_a == token_b:
        raise IdenticalAddresses(f"Cannot pair {token_a} with itself")
    if address_to_int(token_a) < address_to_int(token_b):
        token0, token1 = token_a, token_b
    else:
        token0, token1 = token_b, token_a
    if token0 == ZERO_ADDRESS:
        raise ZeroAddress("Pair tokens cannot be the zero address")
    return token0, token1


def pair_for(factory: str, token_a: str, token_b: str) -> str:
    """Address the registry at ``factory`` assigns (or will assign) to the pair."""
    token0, token1 = sort_tokens(token_a, token_b)
    return generate_contract_address_create2(
        normalize_address(factory), pair_salt(token0, token1), PAIR_INIT_CODE_HASH
    )


def get_reserves(chain: Chain, factory: str, token_a: str, token_b: str) -> Tuple[int, int]:
    """Reserves of an existing pair, ordered as (token_a, token_b)."""
    from .pair import ExchangePair

    token0, _ = sort_tokens(token_a, token_b)
    pair = chain.get_contract(pair_for(factory, token_a, token_b), ExchangePair)
    reserve0, reserve1, _ = pair.get_reserves()
    if normalize_address(token_a) == token0:
        return reserve0, reserve1
    return reserve1, reserve0


def quote(amount_a: int, reserve_a: int, reserve_b: int) -> int:
    """Equivalent amount of the other asset at the current reserve ratio (no fee)."""
    if amount_a <= 0:
        raise InsufficientAmount("Quote amount must be positive")
    if reserve_a <= 0 or reserve_b <= 0:
        raise InsufficientLiquidity("Pair has no reserves")
    return amount_a * reserve_b // reserve_a


def get_amount_out(amount_in: int, reserve_in: int, reserve_out: int) -> int:
    """Maximum output for an exact input, after the swap fee."""
    if amount_in <= 0:
        raise InsufficientInputAmount("Input amount must be positive")
    if reserve_in <= 0 or reserve_out <= 0:
        raise InsufficientLiquidity("Pair has no reserves")
    amount_in_with_fee = amount_in * (FEE_DENOMINATOR - SWAP_FEE_NUMERATOR)
    numerator = amount_in_with_fee * reserve_out
    denominator = reserve_in * FEE_DENOMINATOR + amount_in_with_fee
    return numerator // denominator


def get_amount_in(amount_out: int, reserve_in: int, reserve_out: int) -> int:
    """Minimum input for an exact output, after the swap fee (rounded up)."""
    if amount_out <= 0:
        raise InsufficientOutputAmount("Output amount must be positive")
    if reserve_in <= 0 or reserve_out <= 0:
        raise InsufficientLiquidity("Pair has no reserves")
    if amount_out >= reserve_out:
        raise InsufficientLiquidity(f"Output {amount_out} drains reserve {reserve_out}")
    numerator = reserve_in * amount_out * FEE_DENOMINATOR
    denominator = (reserve_out - amount_out) * (FEE_DENOMINATOR - SWAP_FEE_NUMERATOR)
    return numerator // denominator + 1
