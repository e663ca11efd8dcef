"""
HopeSwap Address Module

Ethereum-style 20-byte addresses in EIP-55 checksum form. Every address that
enters the exchange passes through ``normalize_address`` so that dictionary
keys, events and comparisons all use one spelling.
"""

from typing import Optional

from eth_typing import ChecksumAddress
from eth_utils import is_address, to_canonical_address, to_checksum_address

from ..constants import ZERO_ADDRESS
from ..exceptions import InvalidAddressError

ADDRESS_LENGTH = 20  # bytes


def normalize_address(address: str) -> ChecksumAddress:
    """
    Normalize an address to its EIP-55 checksum form.

    Args:
        address: Hex address (with 0x prefix, any casing)

    Returns:
        Checksum address

    Raises:
        InvalidAddressError: If the input is not a 20-byte hex address
    """
    if not isinstance(address, str) or not is_address(address):
        raise InvalidAddressError(f"Invalid address: {address!r}")
    try:
        return to_checksum_address(address)
    except ValueError as e:
        raise InvalidAddressError(f"Invalid address: {address!r}") from e


def normalize_optional_address(address: Optional[str]) -> Optional[ChecksumAddress]:
    """Normalize an address; ``None`` and the zero address both mean unset."""
    if address is None:
        return None
    address = normalize_address(address)
    if address == ZERO_ADDRESS:
        return None
    return address


def address_to_bytes(address: str) -> bytes:
    """Raw 20-byte form of an address."""
    return to_canonical_address(normalize_address(address))


def address_to_int(address: str) -> int:
    """Numeric value of an address, used for canonical ordering."""
    return int.from_bytes(address_to_bytes(address), "big")


def is_zero_address(address: str) -> bool:
    return address_to_int(address) == 0


def is_valid_address(address: str) -> bool:
    """
    Check if address is valid.

    Args:
        address: Address to validate

    Returns:
        True if valid, False otherwise
    """
    return isinstance(address, str) and is_address(address)
