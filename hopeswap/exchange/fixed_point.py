"""
Fixed-point and integer helpers for the exchange.

All arithmetic is on Python ints; the helpers reproduce the register widths a
pair works with:

  - reserves are bounded to 112 bits so ``reserve0 * reserve1`` and the
    UQ112x112 price ratios fit comfortably in 256 bits
  - cumulative prices wrap modulo 2**256
  - timestamps wrap modulo 2**32
"""

from __future__ import annotations

import math

from ..constants import Q112, UINT32_MODULUS, UINT112_MAX, UINT256_MODULUS


def sqrt(y: int) -> int:
    """Integer square root, rounded down."""
    if y < 0:
        raise ValueError("Square root of a negative number")
    return math.isqrt(y)


def fits_uint112(value: int) -> bool:
    return 0 <= value <= UINT112_MAX


def wrapping_add(a: int, b: int) -> int:
    """Add modulo 2**256."""
    return (a + b) % UINT256_MODULUS


def wrapping_sub(a: int, b: int) -> int:
    """Subtract modulo 2**256; the difference of two cumulative samples."""
    return (a - b) % UINT256_MODULUS


def timestamp32(timestamp: int) -> int:
    """Block timestamp truncated to 32 bits."""
    return timestamp % UINT32_MODULUS


# -- UQ112x112 ----------------------------------------------------------------
# Unsigned binary fixed point, 112 integer bits and 112 fractional bits.

def encode(y: int) -> int:
    """Encode a uint112 as UQ112x112."""
    return y * Q112


def uqdiv(x: int, y: int) -> int:
    """Divide a UQ112x112 by a uint112, returning UQ112x112."""
    if y == 0:
        raise ZeroDivisionError("UQ112x112 division by zero")
    return x // y


def decode144(x: int) -> int:
    """Integer part of a UQ144x112 value."""
    return x >> 112


def mul_decode(price: int, amount: int) -> int:
    """Multiply a UQ112x112 price by an integer amount and truncate."""
    return decode144(price * amount)
