"""
Test suite for the HopeSwap exchange pair

Covers:
  - Liquidity provision (mint) and removal (burn)
  - Swaps and the fee-adjusted constant-product check
  - Protocol fee
  - skim / sync reconciliation
  - Reserve width cap
  - Atomic revert of failed calls
"""

import pytest

from hopeswap.constants import MINIMUM_LIQUIDITY, UINT112_MAX, ZERO_ADDRESS
from hopeswap.contracts.state import Chain
from hopeswap.crypto.address import normalize_address
from hopeswap.exceptions import (
    InsufficientInputAmount,
    InsufficientLiquidity,
    InsufficientLiquidityBurned,
    InsufficientLiquidityMinted,
    InsufficientOutputAmount,
    InvalidTo,
    K,
    ReserveOverflow,
)
from hopeswap.exchange.events import Burn, Mint, Swap, Sync
from hopeswap.exchange.factory import PairRegistry
from hopeswap.exchange.library import get_amount_out
from hopeswap.exchange.pair import ExchangePair, protocol_fee_liquidity
from hopeswap.tokens.erc20 import ERC20Token

DEPLOYER = normalize_address("0x" + "d0" * 20)
OTHER = normalize_address("0x" + "0e" * 20)
FEE_RECIPIENT = normalize_address("0x" + "fe" * 20)

E18 = 10 ** 18
SUPPLY = 2 ** 120


def _market(fee_to=None):
    chain = Chain(chain_id=1, timestamp=1_700_000_000)
    registry = PairRegistry.deploy(chain, DEPLOYER, fee_to=fee_to)
    token_a = ERC20Token.deploy(chain, DEPLOYER, "Token A", "TKA", SUPPLY)
    token_b = ERC20Token.deploy(chain, DEPLOYER, "Token B", "TKB", SUPPLY)
    pair = chain.get_contract(registry.create_pair(token_a.address, token_b.address), ExchangePair)
    token0 = chain.get_contract(pair.token0, ERC20Token)
    token1 = chain.get_contract(pair.token1, ERC20Token)
    return chain, registry, pair, token0, token1


def _add_liquidity(pair, token0, token1, amount0, amount1, provider=DEPLOYER):
    token0.transfer(provider, pair.address, amount0)
    token1.transfer(provider, pair.address, amount1)
    return pair.mint(provider, provider)


# ---------------------------------------------------------------------------
# Mint
# ---------------------------------------------------------------------------

class TestMint:

    def test_lp_token_metadata(self):
        _, _, pair, _, _ = _market()
        assert pair.name == "HopeSwap LP"
        assert pair.symbol == "HOPE-LP"
        assert pair.decimals == 18

    def test_first_mint(self):
        chain, _, pair, token0, token1 = _market()
        liquidity = _add_liquidity(pair, token0, token1, 1 * E18, 4 * E18)

        expected = 2 * E18
        assert liquidity == expected - MINIMUM_LIQUIDITY
        assert pair.total_supply == expected
        assert pair.balance_of(ZERO_ADDRESS) == MINIMUM_LIQUIDITY
        assert pair.balance_of(DEPLOYER) == expected - MINIMUM_LIQUIDITY
        assert pair.get_reserves()[:2] == (1 * E18, 4 * E18)
        assert chain.events_of(Sync)[-1] == Sync(pair.address, 1 * E18, 4 * E18)
        assert chain.events_of(Mint)[-1] == Mint(pair.address, DEPLOYER, 1 * E18, 4 * E18)

    def test_first_mint_too_small(self):
        _, _, pair, token0, token1 = _market()
        token0.transfer(DEPLOYER, pair.address, 1000)
        token1.transfer(DEPLOYER, pair.address, 1000)
        with pytest.raises(InsufficientLiquidityMinted):
            pair.mint(DEPLOYER, DEPLOYER)
        assert pair.total_supply == 0
        assert pair.get_reserves()[:2] == (0, 0)

    def test_subsequent_mint_is_proportional(self):
        _, _, pair, token0, token1 = _market()
        _add_liquidity(pair, token0, token1, 1 * E18, 4 * E18)
        liquidity = _add_liquidity(pair, token0, token1, E18 // 2, 2 * E18, provider=DEPLOYER)
        assert liquidity == E18
        assert pair.total_supply == 3 * E18

    def test_subsequent_mint_takes_smaller_side(self):
        _, _, pair, token0, token1 = _market()
        _add_liquidity(pair, token0, token1, 1 * E18, 4 * E18)
        liquidity = _add_liquidity(pair, token0, token1, 1 * E18, 1 * E18)
        # token1 deposit is only a quarter of its reserve
        assert liquidity == E18 // 2

    def test_mint_without_deposit(self):
        _, _, pair, token0, token1 = _market()
        _add_liquidity(pair, token0, token1, 1 * E18, 4 * E18)
        with pytest.raises(InsufficientLiquidityMinted):
            pair.mint(DEPLOYER, DEPLOYER)

    def test_mint_to_other_account(self):
        _, _, pair, token0, token1 = _market()
        token0.transfer(DEPLOYER, pair.address, 1 * E18)
        token1.transfer(DEPLOYER, pair.address, 1 * E18)
        pair.mint(DEPLOYER, OTHER)
        assert pair.balance_of(OTHER) == E18 - MINIMUM_LIQUIDITY
        assert pair.balance_of(DEPLOYER) == 0


# ---------------------------------------------------------------------------
# Burn
# ---------------------------------------------------------------------------

class TestBurn:

    def test_burn_everything(self):
        chain, _, pair, token0, token1 = _market()
        liquidity = _add_liquidity(pair, token0, token1, 3 * E18, 3 * E18)
        pair.transfer(DEPLOYER, pair.address, liquidity)

        amount0, amount1 = pair.burn(DEPLOYER, DEPLOYER)

        assert (amount0, amount1) == (3 * E18 - 1000, 3 * E18 - 1000)
        assert pair.balance_of(DEPLOYER) == 0
        assert pair.total_supply == MINIMUM_LIQUIDITY
        assert token0.balance_of(pair.address) == 1000
        assert token1.balance_of(pair.address) == 1000
        assert token0.balance_of(DEPLOYER) == SUPPLY - 1000
        assert pair.get_reserves()[:2] == (1000, 1000)
        assert chain.events_of(Burn)[-1] == Burn(pair.address, DEPLOYER, amount0, amount1, DEPLOYER)

    def test_burn_nothing(self):
        _, _, pair, token0, token1 = _market()
        _add_liquidity(pair, token0, token1, 3 * E18, 3 * E18)
        with pytest.raises(InsufficientLiquidityBurned):
            pair.burn(DEPLOYER, DEPLOYER)

    def test_burn_on_empty_pair(self):
        _, _, pair, _, _ = _market()
        with pytest.raises(InsufficientLiquidityBurned):
            pair.burn(DEPLOYER, DEPLOYER)

    def test_mint_then_burn_never_returns_more_than_deposit(self):
        _, _, pair, token0, token1 = _market()
        _add_liquidity(pair, token0, token1, 7 * E18, 3 * E18)

        deposit0, deposit1 = 123_456_789, 987_654_321_123
        liquidity = _add_liquidity(pair, token0, token1, deposit0, deposit1, provider=DEPLOYER)
        pair.transfer(DEPLOYER, pair.address, liquidity)
        amount0, amount1 = pair.burn(DEPLOYER, OTHER)

        assert amount0 <= deposit0
        assert amount1 <= deposit1


# ---------------------------------------------------------------------------
# Swap
# ---------------------------------------------------------------------------

class TestSwap:

    def _funded(self, fee_to=None):
        chain, registry, pair, token0, token1 = _market(fee_to)
        _add_liquidity(pair, token0, token1, 5 * E18, 10 * E18)
        return chain, registry, pair, token0, token1

    def test_swap_token0_for_token1(self):
        chain, _, pair, token0, token1 = self._funded()
        swap_amount = 1 * E18
        expected_out = 1662497915624478906
        assert get_amount_out(swap_amount, 5 * E18, 10 * E18) == expected_out

        token0.transfer(DEPLOYER, pair.address, swap_amount)
        pair.swap(DEPLOYER, 0, expected_out, OTHER)

        assert token1.balance_of(OTHER) == expected_out
        assert pair.get_reserves()[:2] == (6 * E18, 10 * E18 - expected_out)
        assert chain.events_of(Swap)[-1] == Swap(
            pair.address, DEPLOYER, swap_amount, 0, 0, expected_out, OTHER,
        )

    def test_swap_token1_for_token0(self):
        _, _, pair, token0, token1 = self._funded()
        swap_amount = 1 * E18
        expected_out = get_amount_out(swap_amount, 10 * E18, 5 * E18)

        token1.transfer(DEPLOYER, pair.address, swap_amount)
        pair.swap(DEPLOYER, expected_out, 0, OTHER)

        assert token0.balance_of(OTHER) == expected_out
        assert pair.get_reserves()[:2] == (5 * E18 - expected_out, 11 * E18)

    def test_swap_one_more_than_quoted_violates_k(self):
        _, _, pair, token0, token1 = self._funded()
        swap_amount = 1 * E18
        expected_out = get_amount_out(swap_amount, 5 * E18, 10 * E18)

        token0.transfer(DEPLOYER, pair.address, swap_amount)
        with pytest.raises(K):
            pair.swap(DEPLOYER, 0, expected_out + 1, OTHER)

    def test_k_violation_reverts_optimistic_transfer(self):
        chain, _, pair, token0, token1 = self._funded()
        token0.transfer(DEPLOYER, pair.address, E18)
        events_before = len(chain.events)

        with pytest.raises(K):
            pair.swap(DEPLOYER, 0, 5 * E18, OTHER)

        assert token1.balance_of(OTHER) == 0
        assert token1.balance_of(pair.address) == 10 * E18
        assert pair.get_reserves()[:2] == (5 * E18, 10 * E18)
        assert len(chain.events) == events_before
        assert not pair._locked

    def test_constant_product_never_decreases(self):
        _, _, pair, token0, token1 = self._funded()
        for amount in (E18, 3 * E18, 12345, 7 * E18):
            reserve0, reserve1, _ = pair.get_reserves()
            k_before = reserve0 * reserve1
            out = get_amount_out(amount, reserve0, reserve1)
            token0.transfer(DEPLOYER, pair.address, amount)
            pair.swap(DEPLOYER, 0, out, OTHER)
            reserve0, reserve1, _ = pair.get_reserves()
            assert reserve0 * reserve1 >= k_before

    def test_zero_output(self):
        _, _, pair, _, _ = self._funded()
        with pytest.raises(InsufficientOutputAmount):
            pair.swap(DEPLOYER, 0, 0, OTHER)

    def test_output_must_be_below_reserve(self):
        _, _, pair, _, _ = self._funded()
        with pytest.raises(InsufficientLiquidity):
            pair.swap(DEPLOYER, 5 * E18, 0, OTHER)
        with pytest.raises(InsufficientLiquidity):
            pair.swap(DEPLOYER, 0, 10 * E18 + 1, OTHER)

    def test_swap_on_empty_pair(self):
        _, _, pair, _, _ = _market()
        with pytest.raises(InsufficientLiquidity):
            pair.swap(DEPLOYER, 1, 0, OTHER)

    def test_recipient_cannot_be_a_pair_token(self):
        _, _, pair, token0, token1 = self._funded()
        token0.transfer(DEPLOYER, pair.address, E18)
        with pytest.raises(InvalidTo):
            pair.swap(DEPLOYER, 0, E18, token1.address)
        with pytest.raises(InvalidTo):
            pair.swap(DEPLOYER, 0, E18, token0.address)

    def test_no_input(self):
        _, _, pair, _, token1 = self._funded()
        with pytest.raises(InsufficientInputAmount):
            pair.swap(DEPLOYER, 0, E18, OTHER)
        assert token1.balance_of(OTHER) == 0

    def test_callback_requires_contract_recipient(self):
        _, _, pair, token0, _ = self._funded()
        token0.transfer(DEPLOYER, pair.address, E18)
        with pytest.raises(InvalidTo, match="not a contract"):
            pair.swap(DEPLOYER, 0, E18 // 2, OTHER, b"\x01")

    def test_callback_requires_callee_interface(self):
        _, registry, pair, token0, _ = self._funded()
        token0.transfer(DEPLOYER, pair.address, E18)
        with pytest.raises(InvalidTo, match="cannot receive"):
            pair.swap(DEPLOYER, 0, E18 // 2, registry.address, b"\x01")


# ---------------------------------------------------------------------------
# Protocol fee
# ---------------------------------------------------------------------------

class TestProtocolFee:

    def _swap_then_burn(self, fee_to):
        _, _, pair, token0, token1 = _market(fee_to)
        liquidity = _add_liquidity(pair, token0, token1, 1000 * E18, 1000 * E18)

        swap_amount = 1 * E18
        expected_out = 996006981039903216
        token1.transfer(DEPLOYER, pair.address, swap_amount)
        pair.swap(DEPLOYER, expected_out, 0, DEPLOYER)

        pair.transfer(DEPLOYER, pair.address, liquidity)
        pair.burn(DEPLOYER, DEPLOYER)
        return pair, token0, token1

    def test_fee_off(self):
        pair, _, _ = self._swap_then_burn(fee_to=None)
        assert pair.total_supply == MINIMUM_LIQUIDITY
        assert pair.k_last == 0

    def test_fee_on(self):
        pair, token0, token1 = self._swap_then_burn(fee_to=FEE_RECIPIENT)
        assert pair.total_supply == MINIMUM_LIQUIDITY + 249750499251388
        assert pair.balance_of(FEE_RECIPIENT) == 249750499251388
        assert token0.balance_of(pair.address) == 1000 + 249501683697445
        assert token1.balance_of(pair.address) == 1000 + 250000187312969

    def test_k_last_tracks_liquidity_events_when_fee_on(self):
        _, _, pair, token0, token1 = _market(FEE_RECIPIENT)
        _add_liquidity(pair, token0, token1, 2 * E18, 8 * E18)
        assert pair.k_last == 16 * E18 * E18

    def test_k_last_reset_when_fee_switched_off(self):
        _, registry, pair, token0, token1 = _market(FEE_RECIPIENT)
        _add_liquidity(pair, token0, token1, 2 * E18, 8 * E18)
        registry.set_fee_to(DEPLOYER, None)
        _add_liquidity(pair, token0, token1, E18, 4 * E18)
        assert pair.k_last == 0

    def test_protocol_fee_liquidity_function(self):
        assert protocol_fee_liquidity(100, 100, 0, 10) is None
        assert protocol_fee_liquidity(100, 100, 100 * 100, 10) is None
        assert protocol_fee_liquidity(100, 100, 200 * 200, 10) is None
        # rootK 400, rootKLast 100: 1000 * 300 // (400 * 5 + 100)
        assert protocol_fee_liquidity(400, 400, 100 * 100, 1000) == 142


# ---------------------------------------------------------------------------
# skim / sync
# ---------------------------------------------------------------------------

class TestReconciliation:

    def test_skim(self):
        _, _, pair, token0, token1 = _market()
        _add_liquidity(pair, token0, token1, E18, E18)
        token0.transfer(DEPLOYER, pair.address, 500)

        pair.skim(OTHER)

        assert token0.balance_of(OTHER) == 500
        assert token1.balance_of(OTHER) == 0
        assert token0.balance_of(pair.address) == E18
        assert pair.get_reserves()[:2] == (E18, E18)

    def test_sync(self):
        chain, _, pair, token0, token1 = _market()
        _add_liquidity(pair, token0, token1, E18, E18)
        token1.transfer(DEPLOYER, pair.address, 777)

        pair.sync()

        assert pair.get_reserves()[:2] == (E18, E18 + 777)
        assert chain.events_of(Sync)[-1] == Sync(pair.address, E18, E18 + 777)

    def test_sync_rejects_overflowing_balance(self):
        _, _, pair, token0, token1 = _market()
        _add_liquidity(pair, token0, token1, E18, E18)
        token0.transfer(DEPLOYER, pair.address, UINT112_MAX)
        with pytest.raises(ReserveOverflow):
            pair.sync()
        assert pair.get_reserves()[:2] == (E18, E18)

    def test_skim_drains_overflow(self):
        _, _, pair, token0, token1 = _market()
        _add_liquidity(pair, token0, token1, E18, E18)
        token0.transfer(DEPLOYER, pair.address, UINT112_MAX)
        pair.skim(OTHER)
        assert token0.balance_of(OTHER) == UINT112_MAX
        pair.sync()


# ---------------------------------------------------------------------------
# Reserve cap
# ---------------------------------------------------------------------------

class TestReserveCap:

    def test_mint_at_cap(self):
        _, _, pair, token0, token1 = _market()
        _add_liquidity(pair, token0, token1, UINT112_MAX, UINT112_MAX)
        assert pair.get_reserves()[:2] == (UINT112_MAX, UINT112_MAX)

    def test_mint_over_cap(self):
        chain, _, pair, token0, token1 = _market()
        token0.transfer(DEPLOYER, pair.address, UINT112_MAX + 1)
        token1.transfer(DEPLOYER, pair.address, E18)
        events_before = len(chain.events)

        with pytest.raises(ReserveOverflow):
            pair.mint(DEPLOYER, DEPLOYER)

        assert pair.total_supply == 0
        assert pair.balance_of(DEPLOYER) == 0
        assert len(chain.events) == events_before

    def test_overflow_is_insufficient_liquidity(self):
        assert issubclass(ReserveOverflow, InsufficientLiquidity)
