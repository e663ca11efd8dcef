"""
Contract Address Generation

Ethereum-compatible contract address computation for HopeSwap deployments.
Regular deployments use CREATE semantics (deployer + nonce); pairs use CREATE2
semantics so that anyone can compute a pair address before it exists.
"""

from eth_typing import ChecksumAddress
from eth_utils import keccak, to_checksum_address
import rlp

from .address import address_to_bytes


def generate_contract_address(sender: str, nonce: int) -> ChecksumAddress:
    """
    Generate contract address using CREATE opcode logic.

    Address = keccak256(rlp([sender, nonce]))[-20:]

    Args:
        sender: Deployer address
        nonce: Deployer nonce

    Returns:
        Contract address (checksum format)
    """
    rlp_encoded = rlp.encode([address_to_bytes(sender), nonce])
    address_bytes = keccak(rlp_encoded)[-20:]
    return to_checksum_address('0x' + address_bytes.hex())


def generate_contract_address_create2(
    sender: str,
    salt: bytes,
    init_code_hash: bytes,
) -> ChecksumAddress:
    """
    Generate contract address using CREATE2 opcode logic.

    Address = keccak256(0xff + sender + salt + init_code_hash)[-20:]

    Args:
        sender: Deploying contract address
        salt: 32-byte salt
        init_code_hash: keccak256 of the contract initialization code

    Returns:
        Contract address (checksum format)
    """
    if len(salt) != 32:
        raise ValueError(f"CREATE2 salt must be 32 bytes, got {len(salt)}")
    if len(init_code_hash) != 32:
        raise ValueError(f"Init code hash must be 32 bytes, got {len(init_code_hash)}")

    data = b'\xff' + address_to_bytes(sender) + salt + init_code_hash
    return to_checksum_address('0x' + keccak(data)[-20:].hex())


def pair_salt(token0: str, token1: str) -> bytes:
    """CREATE2 salt of a pair: keccak256 of the packed, sorted token addresses."""
    return keccak(address_to_bytes(token0) + address_to_bytes(token1))

