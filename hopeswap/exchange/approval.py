"""
Token approval for permissioned pair creation.

The registry treats its approval manager as an opaque capability: anything at
the configured address exposing ``is_pair_approved(token_a, token_b) -> bool``
will do.  ``ApprovedTokenManager`` is the stock implementation, an
owner-administered list of individually approved tokens.
"""

from __future__ import annotations

import logging
from typing import Dict, Protocol, runtime_checkable

from ..contracts.state import Chain, Contract
from ..crypto.address import normalize_address
from ..exceptions import Forbidden
from .events import TokenApproval

logger = logging.getLogger(__name__)


@runtime_checkable
class TokenApprovalPolicy(Protocol):
    """Boolean approval check consulted before a pair is created."""

    def is_pair_approved(self, token_a: str, token_b: str) -> bool: ...


class ApprovedTokenManager(Contract):
    """
    Per-token approval list.

    A pair is approved when both of its tokens are.  Revoking a token blocks
    future pair creation only; existing pairs are unaffected.
    """

    def __init__(self, chain: Chain, address: str, owner: str):
        super().__init__(chain, address)
        self.owner = normalize_address(owner)
        self._approved: Dict[str, bool] = {}

    @classmethod
    def deploy(cls, chain: Chain, deployer: str) -> "ApprovedTokenManager":
        return chain.deploy(deployer, lambda c, addr: cls(c, addr, deployer))

    def approve_token(self, sender: str, token: str, approved: bool) -> None:
        if normalize_address(sender) != self.owner:
            raise Forbidden("Only the manager owner can change approvals")
        token = normalize_address(token)
        with self.chain.atomic(self):
            self._approved[token] = bool(approved)
            self.chain.emit(TokenApproval(self.address, token, bool(approved)))
        logger.info("Token %s %s by %s", token, "approved" if approved else "revoked", self.address)

    def is_token_approved(self, token: str) -> bool:
        return self._approved.get(normalize_address(token), False)

    def is_pair_approved(self, token_a: str, token_b: str) -> bool:
        return self.is_token_approved(token_a) and self.is_token_approved(token_b)
