"""
HopeSwap Crypto Module

Address normalisation and deterministic contract address derivation.
"""

from .address import (
    normalize_address,
    normalize_optional_address,
    address_to_bytes,
    address_to_int,
    is_zero_address,
    is_valid_address,
)
from .contract import (
    generate_contract_address,
    generate_contract_address_create2,
    pair_salt,
)

__all__ = [
    "normalize_address",
    "normalize_optional_address",
    "address_to_bytes",
    "address_to_int",
    "is_zero_address",
    "is_valid_address",
    "generate_contract_address",
    "generate_contract_address_create2",
    "pair_salt",
]
