"""
ERC-20 Token

Python-native fungible token living inside a Chain:
  - ERC-20 interface (transfer, approve, transfer_from, balance_of)
  - EIP-2612 permit (secp256k1 signature over an EIP-712 digest)
  - Internal mint / burn used by the pair's liquidity-token ledger

Amounts are non-negative integers in the token's smallest unit.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from eth_keys import keys
from eth_keys.exceptions import BadSignature
from eth_utils import ValidationError, keccak, to_canonical_address

from ..constants import (
    EIP712_DOMAIN_TYPEHASH,
    EIP712_DOMAIN_VERSION,
    PERMIT_TYPEHASH,
    UINT256_MAX,
    ZERO_ADDRESS,
)
from ..contracts.state import Chain, Contract
from ..crypto.address import normalize_address
from ..exceptions import (
    Expired,
    InsufficientAllowance,
    InsufficientBalance,
    InvalidAmount,
    InvalidSignature,
)

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════
#  EVENTS
# ══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Transfer:
    """Emitted on every balance movement, including mint and burn."""
    token: str
    sender: str
    recipient: str
    value: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "Transfer",
            "token": self.token,
            "from": self.sender,
            "to": self.recipient,
            "value": self.value,
        }


@dataclass(frozen=True)
class Approval:
    """Emitted on every allowance change made through approve or permit."""
    token: str
    owner: str
    spender: str
    value: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "Approval",
            "token": self.token,
            "owner": self.owner,
            "spender": self.spender,
            "value": self.value,
        }


# ══════════════════════════════════════════════════════════════════════
#  EIP-712 HELPERS
# ══════════════════════════════════════════════════════════════════════

def _word(value: int) -> bytes:
    return value.to_bytes(32, "big")


def _address_word(address: str) -> bytes:
    return b"\x00" * 12 + to_canonical_address(address)


def domain_separator(name: str, chain_id: int, verifying_contract: str) -> bytes:
    return keccak(
        EIP712_DOMAIN_TYPEHASH
        + keccak(name.encode("utf-8"))
        + keccak(EIP712_DOMAIN_VERSION.encode("utf-8"))
        + _word(chain_id)
        + _address_word(verifying_contract)
    )


def permit_digest(
    separator: bytes,
    owner: str,
    spender: str,
    value: int,
    nonce: int,
    deadline: int,
) -> bytes:
    """EIP-712 digest a token holder signs to grant an allowance off-path."""
    struct_hash = keccak(
        PERMIT_TYPEHASH
        + _address_word(owner)
        + _address_word(spender)
        + _word(value)
        + _word(nonce)
        + _word(deadline)
    )
    return keccak(b"\x19\x01" + separator + struct_hash)


def _require_amount(value: int) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise InvalidAmount(f"Token amounts must be integers, got {type(value).__name__}")
    if value < 0 or value > UINT256_MAX:
        raise InvalidAmount(f"Token amount out of range: {value}")
    return value


# ══════════════════════════════════════════════════════════════════════
#  TOKEN
# ══════════════════════════════════════════════════════════════════════

class ERC20Token(Contract):
    """
    ERC-20 token.

    State-mutating calls take the calling account as their first argument
    (``sender``) and run atomically: a failure leaves every balance as it was.
    """

    def __init__(
        self,
        chain: Chain,
        address: str,
        name: str,
        symbol: str,
        decimals: int = 18,
        initial_supply: int = 0,
        owner: Optional[str] = None,
    ):
        super().__init__(chain, address)
        if decimals < 0 or decimals > 255:
            raise ValueError(f"Decimals must be 0-255, got {decimals}")

        self.name = name
        self.symbol = symbol
        self.decimals = decimals
        self.total_supply = 0
        self._balances: Dict[str, int] = {}
        self._allowances: Dict[Tuple[str, str], int] = {}  # (owner, spender)
        self._nonces: Dict[str, int] = {}

        if initial_supply:
            self._mint(normalize_address(owner or ZERO_ADDRESS), initial_supply)

    @classmethod
    def deploy(
        cls,
        chain: Chain,
        deployer: str,
        name: str,
        symbol: str,
        initial_supply: int = 0,
        decimals: int = 18,
    ) -> "ERC20Token":
        """Deploy a token whose initial supply is credited to the deployer."""
        return chain.deploy(
            deployer,
            lambda c, addr: cls(c, addr, name, symbol, decimals, initial_supply, deployer),
        )

    # ── Read-only views ───────────────────────────────────────────────

    def balance_of(self, address: str) -> int:
        return self._balances.get(normalize_address(address), 0)

    def allowance(self, owner: str, spender: str) -> int:
        return self._allowances.get((normalize_address(owner), normalize_address(spender)), 0)

    def nonces(self, owner: str) -> int:
        return self._nonces.get(normalize_address(owner), 0)

    @property
    def domain_separator(self) -> bytes:
        return domain_separator(self.name, self.chain.chain_id, self.address)

    # ── Core ERC-20 operations ────────────────────────────────────────

    def approve(self, sender: str, spender: str, value: int) -> bool:
        with self.chain.atomic(self):
            self._approve(normalize_address(sender), normalize_address(spender), value)
        return True

    def transfer(self, sender: str, to: str, value: int) -> bool:
        with self.chain.atomic(self):
            self._transfer(normalize_address(sender), normalize_address(to), value)
        return True

    def transfer_from(self, sender: str, from_: str, to: str, value: int) -> bool:
        """Move ``value`` from ``from_`` to ``to`` using ``sender``'s allowance."""
        sender = normalize_address(sender)
        from_ = normalize_address(from_)
        with self.chain.atomic(self):
            _require_amount(value)
            current = self._allowances.get((from_, sender), 0)
            # Infinite approval is never decremented
            if current != UINT256_MAX:
                if current < value:
                    raise InsufficientAllowance(
                        f"{sender} allowance {current} < transfer amount {value}"
                    )
                self._allowances[(from_, sender)] = current - value
            self._transfer(from_, normalize_address(to), value)
        return True

    def permit(
        self,
        owner: str,
        spender: str,
        value: int,
        deadline: int,
        v: int,
        r: int,
        s: int,
    ) -> None:
        """
        Set an allowance from a holder's signature (EIP-2612).

        Raises:
            Expired: deadline is before the current block timestamp
            InvalidSignature: signature does not recover to ``owner``
        """
        owner = normalize_address(owner)
        spender = normalize_address(spender)
        with self.chain.atomic(self):
            if deadline < self.chain.block_timestamp:
                raise Expired(f"Permit expired at {deadline}")
            nonce = self._nonces.get(owner, 0)
            digest = permit_digest(self.domain_separator, owner, spender, value, nonce, deadline)
            recovered = _recover_signer(digest, v, r, s)
            if recovered is None or recovered == ZERO_ADDRESS or recovered != owner:
                raise InvalidSignature("Permit signature does not match owner")
            self._nonces[owner] = nonce + 1
            self._approve(owner, spender, value)

    # ── Internal ledger ───────────────────────────────────────────────

    def _mint(self, to: str, value: int) -> None:
        _require_amount(value)
        self.total_supply += value
        self._balances[to] = self._balances.get(to, 0) + value
        self.chain.emit(Transfer(self.address, ZERO_ADDRESS, to, value))

    def _burn(self, from_: str, value: int) -> None:
        _require_amount(value)
        balance = self._balances.get(from_, 0)
        if balance < value:
            raise InsufficientBalance(f"{from_} balance {balance} < burn amount {value}")
        self._balances[from_] = balance - value
        self.total_supply -= value
        self.chain.emit(Transfer(self.address, from_, ZERO_ADDRESS, value))

    def _approve(self, owner: str, spender: str, value: int) -> None:
        _require_amount(value)
        self._allowances[(owner, spender)] = value
        self.chain.emit(Approval(self.address, owner, spender, value))

    def _transfer(self, from_: str, to: str, value: int) -> None:
        _require_amount(value)
        balance = self._balances.get(from_, 0)
        if balance < value:
            raise InsufficientBalance(f"{from_} balance {balance} < transfer amount {value}")
        self._balances[from_] = balance - value
        self._balances[to] = self._balances.get(to, 0) + value
        self.chain.emit(Transfer(self.address, from_, to, value))


def _recover_signer(digest: bytes, v: int, r: int, s: int) -> Optional[str]:
    # Accept both 27/28 and 0/1 recovery ids
    if v >= 27:
        v -= 27
    try:
        signature = keys.Signature(vrs=(v, r, s))
        return signature.recover_public_key_from_msg_hash(digest).to_checksum_address()
    except (BadSignature, ValidationError) as e:
        logger.debug("Signature recovery failed: %s", e)
        return None
