"""GF(2^128) arithmetic for the GHASH universal hash.

Elements are 128-bit integers where the most significant bit (bit 127)
corresponds to the coefficient of x^0, consistent with NIST SP 800-38D.

The field uses the irreducible polynomial:
    f(x) = x^128 + x^7 + x^2 + x + 1

In the MSB-first bit ordering used by GHASH, the reduction constant R
encodes x^7 + x^2 + x + 1 with x^0 at bit 127:
    R = 0xE1000000000000000000000000000000

Blocks (16-byte strings) and field elements are converted only through
:func:`block_to_element` and :func:`element_to_block`: byte 0 is the most
significant byte and bit 7 of byte 0 is the x^0 coefficient.
"""

import numpy as np

from .exceptions import LengthMismatch

BLOCK_SIZE = 16

# Reduction polynomial R for GF(2^128) in GCM bit ordering.
# Represents x^0 + x^1 + x^2 + x^7 at bit positions 127, 126, 125, 120.
_GCM_POLY = 0xE1000000000000000000000000000000

# Multiplicative identity: element "1" = x^0 has bit 127 set,
# i.e. the block 80 00 .. 00.
GF128_ONE = 1 << 127

_FIELD_ORDER = 1 << 128


def block_to_element(block: bytes) -> int:
    """Interpret a 16-byte block as a GF(2^128) element."""
    if len(block) != BLOCK_SIZE:
        raise LengthMismatch(f"Block must be {BLOCK_SIZE} bytes, got {len(block)}")
    return int.from_bytes(block, "big")


def element_to_block(x: int) -> bytes:
    """Serialise a GF(2^128) element back to its 16-byte block."""
    return x.to_bytes(BLOCK_SIZE, "big")


def gf128_mul(x: int, y: int) -> int:
    """Shift-and-reduce product of two field elements (SP 800-38D, Alg. 1).

    Walks the coefficients of *x* from x^0 (bit 127) up to x^127 (bit 0).
    *v* holds ``y * x^i`` at step i and is added into the product whenever
    coefficient i of *x* is set.  Multiplying *v* by x is a right shift in
    this bit order; a bit falling off the x^127 end folds back in as R.
    """
    product = 0
    v = y
    for bit in range(127, -1, -1):
        if (x >> bit) & 1:
            product ^= v
        carry = v & 1
        v >>= 1
        if carry:
            v ^= _GCM_POLY
    return product


def gf128_pow(base: int, exp: int) -> int:
    """Raise *base* to a non-negative integer power; ``exp == 0`` gives GF128_ONE."""
    result = GF128_ONE
    while exp:
        if exp & 1:
            result = gf128_mul(result, base)
        base = gf128_mul(base, base)
        exp >>= 1
    return result


def gf128_inv(a: int) -> int:
    """Return the multiplicative inverse of *a*, i.e. a^(2^128 - 2).

    Raises:
        ValueError: If *a* is zero.
    """
    if a == 0:
        raise ValueError("Zero has no inverse in GF(2^128)")
    return gf128_pow(a, _FIELD_ORDER - 2)


def multiply(x_block: bytes, y_block: bytes) -> bytes:
    """Block-level :func:`gf128_mul`: multiply two 16-byte blocks."""
    return element_to_block(
        gf128_mul(block_to_element(x_block), block_to_element(y_block))
    )


def xor_bytes(a: bytes, b: bytes) -> bytes:
    """XOR two equal-length byte strings.

    Raises:
        LengthMismatch: If the inputs differ in length.
    """
    if len(a) != len(b):
        raise LengthMismatch(f"Cannot XOR {len(a)} bytes with {len(b)} bytes")
    if not a:
        return b""
    return np.bitwise_xor(
        np.frombuffer(a, dtype=np.uint8), np.frombuffer(b, dtype=np.uint8)
    ).tobytes()


def xor_blocks(a: bytes, b: bytes) -> bytes:
    """XOR two 16-byte blocks."""
    if len(a) != BLOCK_SIZE or len(b) != BLOCK_SIZE:
        raise LengthMismatch(
            f"Blocks must be {BLOCK_SIZE} bytes, got {len(a)} and {len(b)}"
        )
    return xor_bytes(a, b)
