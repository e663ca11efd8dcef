"""
HopeSwap Token Standard

Provides:
  - ERC20Token : fungible token with ERC-20 interface and EIP-2612 permit
  - Transfer / Approval events
"""

from .erc20 import (
    ERC20Token,
    Transfer,
    Approval,
    domain_separator,
    permit_digest,
)

__all__ = [
    "ERC20Token",
    "Transfer",
    "Approval",
    "domain_separator",
    "permit_digest",
]
