"""
HopeSwap Pair Registry (factory)

Creates and tracks one ExchangePair per unordered token combination:
  - Canonical token ordering (numerically smaller address is token0)
  - Deterministic CREATE2 pair addresses, computable off-path with
    ``library.pair_for`` before the pair exists
  - Optional approval manager gating pair creation
  - Privileged slots (protocol-fee recipient, fee setter, approval manager)
    restricted to the current fee setter
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Tuple

from ..constants import PAIR_INIT_CODE_HASH
from ..contracts.state import Chain, Contract
from ..crypto.address import normalize_address, normalize_optional_address
from ..crypto.contract import pair_salt
from ..exceptions import ContractNotFound, Forbidden, IndexOutOfRange, PairExists
from .approval import TokenApprovalPolicy
from .events import PairCreated
from .library import sort_tokens
from .pair import ExchangePair

logger = logging.getLogger(__name__)


class PairRegistry(Contract):
    """
    Registry of all pairs.

    Constructed once per deployment with explicit configuration; trading
    never goes through the registry.
    """

    def __init__(
        self,
        chain: Chain,
        address: str,
        fee_to_setter: str,
        fee_to: Optional[str] = None,
        approved_token_manager: Optional[str] = None,
    ):
        super().__init__(chain, address)
        self.fee_to_setter = normalize_address(fee_to_setter)
        self.fee_to = normalize_optional_address(fee_to)
        self.approved_token_manager = normalize_optional_address(approved_token_manager)

        self._pairs: Dict[Tuple[str, str], str] = {}  # both orderings → pair address
        self._all_pairs: List[str] = []

    @classmethod
    def deploy(
        cls,
        chain: Chain,
        deployer: str,
        fee_to_setter: Optional[str] = None,
        fee_to: Optional[str] = None,
        approved_token_manager: Optional[str] = None,
    ) -> "PairRegistry":
        """Deploy a registry; the fee setter defaults to the deployer."""
        return chain.deploy(
            deployer,
            lambda c, addr: cls(c, addr, fee_to_setter or deployer, fee_to, approved_token_manager),
        )

    @property
    def pair_init_code_hash(self) -> bytes:
        return PAIR_INIT_CODE_HASH

    # -- Queries ------------------------------------------------------------

    def get_pair(self, token_a: str, token_b: str) -> Optional[str]:
        """Pair address for the two tokens in either order, or None."""
        return self._pairs.get((normalize_address(token_a), normalize_address(token_b)))

    def all_pairs(self, index: int) -> str:
        if index < 0 or index >= len(self._all_pairs):
            raise IndexOutOfRange(f"Pair index {index} out of range ({len(self._all_pairs)} pairs)")
        return self._all_pairs[index]

    def all_pairs_length(self) -> int:
        return len(self._all_pairs)

    # -- Pair creation ------------------------------------------------------

    def create_pair(self, token_a: str, token_b: str) -> str:
        """
        Create the pair for two tokens.

        Returns:
            The new pair's address

        Raises:
            IdenticalAddresses: token_a == token_b
            ZeroAddress: a token is the zero address
            PairExists: the pair was already created, in either order
            Forbidden: an approval manager is set and did not approve both tokens
        """
        with self.chain.atomic(self):
            token0, token1 = sort_tokens(token_a, token_b)
            if (token0, token1) in self._pairs:
                raise PairExists(f"Pair {token0}/{token1} already exists")
            self._require_approved(token0, token1)

            pair = self.chain.deploy_create2(
                self.address,
                pair_salt(token0, token1),
                PAIR_INIT_CODE_HASH,
                lambda chain, address: ExchangePair(chain, address, self.address),
            )
            pair.initialize(self.address, token0, token1)

            self._pairs[(token0, token1)] = pair.address
            self._pairs[(token1, token0)] = pair.address
            self._all_pairs.append(pair.address)
            self.chain.emit(PairCreated(token0, token1, pair.address, len(self._all_pairs)))

        logger.info(
            "PairCreated %s/%s at %s (#%d)", token0, token1, pair.address, len(self._all_pairs)
        )
        return pair.address

    def _require_approved(self, token0: str, token1: str) -> None:
        if self.approved_token_manager is None:
            return
        try:
            manager = self.chain.get_contract(self.approved_token_manager)
        except ContractNotFound as e:
            raise Forbidden(f"Approval manager {self.approved_token_manager} not deployed") from e
        if not isinstance(manager, TokenApprovalPolicy) or not manager.is_pair_approved(token0, token1):
            raise Forbidden(f"Tokens {token0}/{token1} are not approved")

    # -- Privileged configuration ---------------------------------------------

    def set_fee_to(self, sender: str, fee_to: Optional[str]) -> None:
        """Set (or, with None, clear) the protocol-fee recipient."""
        self._require_fee_setter(sender)
        self.chain.touch(self)
        self.fee_to = normalize_optional_address(fee_to)
        logger.info("Protocol fee recipient set to %s", self.fee_to)

    def set_fee_to_setter(self, sender: str, fee_to_setter: str) -> None:
        """Hand the setter role to another account. The caller loses it immediately."""
        self._require_fee_setter(sender)
        self.chain.touch(self)
        self.fee_to_setter = normalize_address(fee_to_setter)
        logger.info("Fee setter handed to %s", self.fee_to_setter)

    def set_approved_token_manager(self, sender: str, manager: Optional[str]) -> None:
        """Replace (or, with None, remove) the approval manager."""
        self._require_fee_setter(sender)
        self.chain.touch(self)
        self.approved_token_manager = normalize_optional_address(manager)
        logger.info("Approved token manager set to %s", self.approved_token_manager)

    def _require_fee_setter(self, sender: str) -> None:
        if normalize_address(sender) != self.fee_to_setter:
            raise Forbidden(f"{sender} is not the fee setter")
