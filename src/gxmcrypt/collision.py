"""Tag-collision and forgery constructors for GHASH-based AEAD.

With the AAD and ciphertext lengths held fixed, GHASH is affine in the
ciphertext blocks.  XORing deltas D_1 .. D_n into the n ciphertext blocks
moves the hash by

    GHASH(C XOR D) XOR GHASH(C) = D_1*H^(n+1) XOR D_2*H^n XOR ... XOR D_n*H^2

(the extra power of H comes from the length block folded in last).  Two
constructions follow directly:

  - Length-preserving collision: the chain D_i = D_{i-1} * H makes every
    term equal to D_1 * H^(n+1), so an even number of them XOR to zero and
    the tag is unchanged.
  - Cross-key collision: a single delta D * H^-e on one block shifts the
    hash by exactly D = Z0a XOR Z0b, cancelling the difference between two
    contexts' tag masks.

Both are closed-form; nothing here searches or guesses.  Changing either
length changes the length block, and none of these relations survive it.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from .aead import AEADContext, compute_tag
from .exceptions import InvalidLayout
from .gf128 import (
    BLOCK_SIZE,
    block_to_element,
    element_to_block,
    gf128_inv,
    gf128_mul,
    gf128_pow,
    xor_blocks,
    xor_bytes,
)
from .ghash import ghash_sequential

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeltaSet:
    """Ordered XOR offsets, one GF(2^128) element per ciphertext block."""

    deltas: tuple

    def __len__(self) -> int:
        return len(self.deltas)

    def __iter__(self):
        return iter(self.deltas)

    def __getitem__(self, index):
        return self.deltas[index]

    def blocks(self) -> list:
        """Return the deltas as 16-byte blocks."""
        return [element_to_block(d) for d in self.deltas]

    def apply(self, ciphertext: bytes, start: Optional[int] = None) -> bytes:
        """XOR the deltas into *ciphertext* block by block.

        By default the ciphertext must be exactly ``16 * len(self)`` bytes.
        Passing *start* places the deltas on consecutive blocks from block
        *start* of a longer ciphertext instead; blocks outside that range
        are left alone.  A collision DeltaSet returns the hash state
        difference to zero after its last block, so GHASH is preserved
        wherever it is placed.

        Raises:
            InvalidLayout: If the ciphertext length does not match, or the
                           placed blocks run past the ciphertext.
        """
        span = len(self.deltas) * BLOCK_SIZE
        if start is None:
            if len(ciphertext) != span:
                raise InvalidLayout(
                    f"{len(self.deltas)} delta blocks need a {span}-byte ciphertext, "
                    f"got {len(ciphertext)} bytes"
                )
            start = 0
        begin = start * BLOCK_SIZE
        if start < 0 or begin + span > len(ciphertext):
            raise InvalidLayout(
                f"{len(self.deltas)} delta blocks from block {start} do not fit "
                f"a {len(ciphertext)}-byte ciphertext"
            )
        out = bytearray(ciphertext)
        for i, block in enumerate(self.blocks()):
            lo = begin + i * BLOCK_SIZE
            out[lo: lo + BLOCK_SIZE] = xor_blocks(bytes(out[lo: lo + BLOCK_SIZE]), block)
        return bytes(out)


@dataclass(frozen=True)
class SameKeyForgery:
    """Two ciphertexts that verify under one context with the same tag."""

    c1: bytes
    c2: bytes
    tag: bytes
    deltas: DeltaSet


@dataclass(frozen=True)
class CrossKeyForgery:
    """``c1`` verifies under context A and ``c2`` under context B, both with ``tag``."""

    c1: bytes
    c2: bytes
    tag: bytes


def check_layout(aad1: bytes, c1: bytes, aad2: bytes, c2: bytes) -> None:
    """Raise :exc:`InvalidLayout` unless both variants share AAD and ciphertext lengths."""
    if len(aad1) != len(aad2):
        raise InvalidLayout(f"AAD length changed: {len(aad1)} != {len(aad2)}")
    if len(c1) != len(c2):
        raise InvalidLayout(f"Ciphertext length changed: {len(c1)} != {len(c2)}")


def ghash_difference(h: int, deltas) -> int:
    """Predicted GHASH offset from XORing *deltas* into a full-block ciphertext.

    Equals ``sum(D_i * H^(n-i+2))``, i.e. GHASH of the deltas followed by
    a zero block standing in for the (unchanged) length block.
    """
    return ghash_sequential(h, list(deltas) + [0])


def build_length_preserving_collision(h: int, block_count: int, seed: int = 1) -> DeltaSet:
    """Build deltas that leave GHASH unchanged for a *block_count*-block ciphertext.

    ``D_1 = seed`` and ``D_i = D_{i-1} * H``.  The chain cancels in pairs,
    so for an odd *block_count* it covers the first ``block_count - 1``
    blocks and the last delta is zero.

    Args:
        h:           Hash subkey H as a 128-bit integer.
        block_count: Number of 16-byte ciphertext blocks (at least 2).
        seed:        Non-zero first delta.

    Returns:
        A :class:`DeltaSet` of length *block_count*.

    Raises:
        InvalidLayout: If *block_count* < 2.
        ValueError:    If *seed* is zero or not a 128-bit value.
    """
    if block_count < 2:
        raise InvalidLayout("A length-preserving collision needs at least two blocks")
    if not 0 < seed < (1 << 128):
        raise ValueError("Seed delta must be a non-zero 128-bit value")

    chain_len = block_count - block_count % 2
    deltas = [seed]
    for _ in range(1, chain_len):
        deltas.append(gf128_mul(deltas[-1], h))
    deltas.extend([0] * (block_count - chain_len))

    logger.debug("Built %d-block collision delta set (%d chained)", block_count, chain_len)
    return DeltaSet(tuple(deltas))


def build_cross_key_collision(
    h: int,
    z0a: bytes,
    z0b: bytes,
    aad: bytes,
    plaintext: bytes,
    z1a: bytes,
) -> tuple:
    """Build ``(c1, c2)`` whose tags coincide under two different tag masks.

    ``c1 = plaintext XOR z1a`` is the honest encryption under context A.
    ``c2`` equals ``c1`` except that its last full block carries
    ``D * H^-e`` with ``D = z0a XOR z0b``, so that

        GHASH(H, aad, c2) = GHASH(H, aad, c1) XOR z0a XOR z0b

    and ``z0a ^ GHASH(c1) == z0b ^ GHASH(c2)``.

    *aad* does not affect the result.  A ciphertext delta shifts GHASH by
    the same amount whatever AAD precedes it, so the pair holds for any
    AAD; the parameter only keeps the ``(H, Z0a, Z0b, AAD, plaintext)``
    calling convention.  *z1a* is extra to that convention: without it
    ``c1`` could not be the real encryption of *plaintext*.

    Args:
        h:         Hash subkey H shared by both contexts.
        z0a:       First keystream block of context A.
        z0b:       First keystream block of context B.
        aad:       Associated data; unused in the computation.
        plaintext: Plaintext encrypted under context A (>= 16 bytes).
        z1a:       Context A's encryption keystream, at least as long as
                   *plaintext*.

    Raises:
        InvalidLayout: If there is no full ciphertext block to carry the
                       delta or *z1a* is too short.
        ValueError:    If H is zero or ``z0a == z0b``.
    """
    full_blocks = len(plaintext) // BLOCK_SIZE
    if full_blocks == 0:
        raise InvalidLayout("Cross-key collision needs at least one full ciphertext block")
    if len(z1a) < len(plaintext):
        raise InvalidLayout(f"Keystream of {len(z1a)} bytes cannot cover {len(plaintext)} bytes")
    if h == 0:
        raise ValueError("Hash subkey H must be non-zero")

    offset = block_to_element(z0a) ^ block_to_element(z0b)
    if offset == 0:
        raise ValueError("First keystream blocks are equal; there is nothing to compensate")

    c1 = xor_bytes(plaintext, z1a[: len(plaintext)])

    total_blocks = -(-len(c1) // BLOCK_SIZE)
    target = full_blocks - 1
    exponent = total_blocks - target + 1
    delta = gf128_mul(offset, gf128_inv(gf128_pow(h, exponent)))

    deltas = DeltaSet((delta,))
    c2 = deltas.apply(c1, start=target)
    logger.debug(
        "Cross-key delta placed on block %d of %d (aad %d bytes)",
        target, total_blocks, len(aad),
    )
    return c1, c2


def forge_same_key(ctx: AEADContext, plaintext: bytes, aad: bytes = b"") -> SameKeyForgery:
    """Encrypt *plaintext* and derive a second ciphertext with the same tag.

    The collision deltas are applied to the leading full blocks; a trailing
    partial block is left untouched.

    Raises:
        InvalidLayout: If *plaintext* has fewer than two full blocks.
    """
    c1, tag = ctx.encrypt(plaintext, aad)
    deltas = build_length_preserving_collision(ctx.subkey, len(c1) // BLOCK_SIZE)
    c2 = deltas.apply(c1, start=0)
    logger.debug("Same-key forgery over %d blocks", len(deltas))
    return SameKeyForgery(c1=c1, c2=c2, tag=tag, deltas=deltas)


def forge_cross_key(
    ctx_a: AEADContext, ctx_b: AEADContext, plaintext: bytes, aad: bytes = b""
) -> CrossKeyForgery:
    """Produce one tag that authenticates ``c1`` under *ctx_a* and ``c2`` under *ctx_b*.

    Both contexts must share the same hash subkey.

    Raises:
        ValueError:    If the contexts use different subkeys.
        InvalidLayout: See :func:`build_cross_key_collision`.
    """
    if ctx_a.h != ctx_b.h:
        raise ValueError("Cross-key forgery requires both contexts to share the hash subkey")
    z0a, z1a = ctx_a.keystream(len(plaintext))
    z0b, _ = ctx_b.keystream(len(plaintext))
    c1, c2 = build_cross_key_collision(ctx_a.subkey, z0a, z0b, aad, plaintext, z1a)
    tag = compute_tag(ctx_a.h, z0a, aad, c1)
    return CrossKeyForgery(c1=c1, c2=c2, tag=tag)


def keystream_reuse_pair(p1: bytes, *, z1a: bytes, z1b: bytes) -> tuple:
    """Return ``(p2, c)`` so that ``p1 ^ z1a == p2 ^ z1b == c``.

    Two different keystreams map two related plaintexts onto the same
    ciphertext.  The keystreams are keyword-only: all three buffers have
    the same length, so a swapped positional call would go unnoticed.
    """
    p2 = xor_bytes(p1, xor_bytes(z1a, z1b))
    return p2, xor_bytes(p1, z1a)
