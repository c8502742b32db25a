"""Tests for the tag-collision constructors (collision.py)."""

import os
import random

import pytest

from gxmcrypt.aead import AEADContext
from gxmcrypt.collision import (
    DeltaSet,
    build_cross_key_collision,
    build_length_preserving_collision,
    check_layout,
    forge_cross_key,
    forge_same_key,
    ghash_difference,
    keystream_reuse_pair,
)
from gxmcrypt.exceptions import InvalidLayout
from gxmcrypt.gf128 import block_to_element, element_to_block, gf128_mul, xor_bytes
from gxmcrypt.ghash import ghash


# ---------------------------------------------------------------------------
# Helpers / fixtures
# ---------------------------------------------------------------------------

H = 0x0102030405060708090A0B0C0D0E0F10
H_BLOCK = bytes(range(1, 17))
C1 = b"0000000000000001" + b"0000000000000000"


def xor_into(ciphertext, deltas):
    return xor_bytes(ciphertext, b"".join(element_to_block(d) for d in deltas))


@pytest.fixture
def two_contexts():
    ctx_a = AEADContext(key=b"ZUC-KEY-12345678", nonce=b"NONCE-ABC-123456", h=H_BLOCK)
    ctx_b = AEADContext(key=b"ZUC-KEY-87654321", nonce=b"NONCE-XYZ-654321", h=H_BLOCK)
    return ctx_a, ctx_b


# ---------------------------------------------------------------------------
# Length-preserving collision
# ---------------------------------------------------------------------------

class TestLengthPreservingCollision:
    def test_two_block_vector(self):
        deltas = build_length_preserving_collision(H, 2)
        assert deltas[0] == 1
        assert deltas[1] == gf128_mul(1, H)

        c2 = deltas.apply(C1)
        assert c2 == xor_into(C1, [1, gf128_mul(1, H)])
        assert c2 != C1
        for aad in (b"", b"authenticated-data", b"exampleAAD-data"):
            assert element_to_block(ghash(H, aad, C1)) == element_to_block(ghash(H, aad, c2))

    def test_aad_length_change_breaks_collision(self):
        deltas = build_length_preserving_collision(H, 2)
        c2 = deltas.apply(C1)
        aad = b"authenticated-data"
        assert ghash(H, aad, C1) != ghash(H, aad + b"!", c2)
        with pytest.raises(InvalidLayout, match="AAD"):
            check_layout(aad, C1, aad + b"!", c2)

    def test_ciphertext_length_change_rejected(self):
        with pytest.raises(InvalidLayout, match="Ciphertext"):
            check_layout(b"", C1, b"", C1 + b"\x00")

    def test_same_layout_accepted(self):
        check_layout(b"aad", C1, b"xyz", build_length_preserving_collision(H, 2).apply(C1))

    @pytest.mark.parametrize("block_count", [2, 3, 4, 5, 8])
    def test_random_ciphertexts_collide(self, block_count):
        rng = random.Random(block_count)
        h = rng.getrandbits(128)
        seed = rng.getrandbits(128) | 1
        deltas = build_length_preserving_collision(h, block_count, seed=seed)
        assert len(deltas) == block_count
        assert ghash_difference(h, deltas) == 0

        aad = os.urandom(rng.randrange(0, 40))
        c1 = os.urandom(16 * block_count)
        assert ghash(h, aad, deltas.apply(c1)) == ghash(h, aad, c1)

    def test_odd_count_leaves_last_block(self):
        deltas = build_length_preserving_collision(H, 3)
        assert deltas[2] == 0
        assert deltas[1] == gf128_mul(deltas[0], H)

    def test_chain_of_three_would_not_collide(self):
        # Extending the chain onto an odd number of blocks does not cancel.
        chain = [1, gf128_mul(1, H), gf128_mul(gf128_mul(1, H), H)]
        assert ghash_difference(H, chain) != 0

    def test_too_few_blocks(self):
        with pytest.raises(InvalidLayout):
            build_length_preserving_collision(H, 1)

    def test_zero_seed_rejected(self):
        with pytest.raises(ValueError, match="non-zero"):
            build_length_preserving_collision(H, 2, seed=0)


# ---------------------------------------------------------------------------
# DeltaSet
# ---------------------------------------------------------------------------

class TestDeltaSet:
    def test_blocks(self):
        deltas = DeltaSet((1, 1 << 127))
        assert deltas.blocks() == [b"\x00" * 15 + b"\x01", b"\x80" + b"\x00" * 15]

    def test_apply_requires_room(self):
        with pytest.raises(InvalidLayout):
            DeltaSet((1, 2)).apply(b"\x00" * 31)

    def test_apply_requires_exact_layout(self):
        deltas = build_length_preserving_collision(H, 2)
        with pytest.raises(InvalidLayout, match="32-byte"):
            deltas.apply(os.urandom(87))
        with pytest.raises(InvalidLayout):
            deltas.apply(os.urandom(48))

    def test_explicit_start_allows_longer_ciphertext(self):
        deltas = build_length_preserving_collision(H, 2)
        c1 = os.urandom(87)
        c2 = deltas.apply(c1, start=0)
        assert c2[32:] == c1[32:]
        assert ghash(H, b"", c2) == ghash(H, b"", c1)

    def test_negative_start_rejected(self):
        with pytest.raises(InvalidLayout):
            DeltaSet((1,)).apply(b"\x00" * 32, start=-1)

    def test_apply_with_offset_preserves_hash(self):
        deltas = build_length_preserving_collision(H, 2)
        c1 = os.urandom(16 * 5 + 7)
        c2 = deltas.apply(c1, start=2)
        assert c2[:32] == c1[:32]
        assert c2[64:] == c1[64:]
        assert ghash(H, b"aad", c2) == ghash(H, b"aad", c1)

    def test_ghash_difference_predicts_offset(self):
        rng = random.Random(99)
        deltas = DeltaSet(tuple(rng.getrandbits(128) for _ in range(3)))
        c1 = os.urandom(48)
        c2 = deltas.apply(c1)
        assert ghash(H, b"ad", c1) ^ ghash(H, b"ad", c2) == ghash_difference(H, deltas)


# ---------------------------------------------------------------------------
# Cross-key collision
# ---------------------------------------------------------------------------

class TestCrossKeyCollision:
    def test_ghash_offset_cancels_mask_difference(self, two_contexts):
        ctx_a, ctx_b = two_contexts
        plaintext = b"this is the secret msg...."
        aad = b"fixed-aad-A1"
        z0a, z1a = ctx_a.keystream(len(plaintext))
        z0b, _ = ctx_b.keystream(len(plaintext))

        c1, c2 = build_cross_key_collision(H, z0a, z0b, aad, plaintext, z1a)
        assert c1 == xor_bytes(plaintext, z1a)
        assert c1 != c2
        assert len(c1) == len(c2)
        offset = block_to_element(z0a) ^ block_to_element(z0b)
        assert ghash(H, aad, c2) == ghash(H, aad, c1) ^ offset

    def test_forged_tag_verifies_under_both_contexts(self, two_contexts):
        ctx_a, ctx_b = two_contexts
        aad = b"fixed-aad-A1"
        forgery = forge_cross_key(ctx_a, ctx_b, b"this is the secret msg....", aad)

        assert forgery.c1 != forgery.c2
        assert ctx_a.decrypt(forgery.c1, aad, forgery.tag) == b"this is the secret msg...."
        ctx_b.decrypt(forgery.c2, aad, forgery.tag)
        # The honest tag of c2 under context B equals the forged one.
        assert ctx_b.encrypt(xor_bytes(forgery.c2, ctx_b.keystream(len(forgery.c2))[1]), aad) == (
            forgery.c2, forgery.tag
        )

    def test_result_independent_of_aad(self, two_contexts):
        ctx_a, ctx_b = two_contexts
        plaintext = os.urandom(40)
        z0a, z1a = ctx_a.keystream(len(plaintext))
        z0b, _ = ctx_b.keystream(len(plaintext))
        pairs = {
            build_cross_key_collision(H, z0a, z0b, aad, plaintext, z1a)
            for aad in (b"", b"fixed-aad-A1", os.urandom(33))
        }
        assert len(pairs) == 1

    @pytest.mark.parametrize("pt_len", [16, 32, 47, 100])
    def test_various_lengths(self, two_contexts, pt_len):
        ctx_a, ctx_b = two_contexts
        forgery = forge_cross_key(ctx_a, ctx_b, os.urandom(pt_len))
        ctx_b.decrypt(forgery.c2, b"", forgery.tag)

    def test_needs_a_full_block(self, two_contexts):
        ctx_a, ctx_b = two_contexts
        with pytest.raises(InvalidLayout):
            forge_cross_key(ctx_a, ctx_b, b"short")

    def test_equal_masks_rejected(self):
        z0 = os.urandom(16)
        with pytest.raises(ValueError, match="equal"):
            build_cross_key_collision(H, z0, z0, b"", b"\x00" * 16, b"\x00" * 16)

    def test_zero_subkey_rejected(self):
        with pytest.raises(ValueError, match="non-zero"):
            build_cross_key_collision(0, b"\x01" * 16, b"\x02" * 16, b"", b"\x00" * 16, b"\x00" * 16)

    def test_short_keystream_rejected(self):
        with pytest.raises(InvalidLayout):
            build_cross_key_collision(H, b"\x01" * 16, b"\x02" * 16, b"", b"\x00" * 32, b"\x00" * 16)

    def test_mismatched_subkeys_rejected(self, two_contexts):
        ctx_a, _ = two_contexts
        ctx_c = AEADContext(key=b"ZUC-KEY-87654321", nonce=b"NONCE-XYZ-654321", h=b"\x07" * 16)
        with pytest.raises(ValueError, match="subkey"):
            forge_cross_key(ctx_a, ctx_c, b"\x00" * 32)


# ---------------------------------------------------------------------------
# Same-key forgery and keystream reuse
# ---------------------------------------------------------------------------

class TestSameKeyForgery:
    def test_forged_ciphertext_verifies(self):
        ctx = AEADContext(key=b"1234567890abcdef", nonce=b"example-16-bytes", h=H_BLOCK)
        aad = b"exampleAAD-data"
        forgery = forge_same_key(ctx, b"0000000000000001" + b"0000000000000000", aad)

        assert forgery.c1 != forgery.c2
        p1 = ctx.decrypt(forgery.c1, aad, forgery.tag)
        p2 = ctx.decrypt(forgery.c2, aad, forgery.tag)
        assert p1 != p2
        assert xor_bytes(p1, p2) == xor_bytes(forgery.c1, forgery.c2)

    def test_trailing_partial_block_untouched(self):
        ctx = AEADContext(key=os.urandom(16), nonce=os.urandom(16), h=os.urandom(16))
        forgery = forge_same_key(ctx, os.urandom(40))
        assert forgery.c2[32:] == forgery.c1[32:]
        ctx.decrypt(forgery.c2, b"", forgery.tag)

    def test_single_block_rejected(self):
        ctx = AEADContext(key=os.urandom(16), nonce=os.urandom(16), h=H_BLOCK)
        with pytest.raises(InvalidLayout):
            forge_same_key(ctx, b"x" * 20)


class TestKeystreamReuse:
    def test_related_plaintexts_share_ciphertext(self, two_contexts):
        ctx_a, ctx_b = two_contexts
        _, z1a = ctx_a.keystream(32)
        _, z1b = ctx_b.keystream(32)
        p1 = os.urandom(32)
        p2, c = keystream_reuse_pair(p1, z1a=z1a, z1b=z1b)
        assert p1 != p2
        assert xor_bytes(p1, z1a) == c
        assert xor_bytes(p2, z1b) == c

    def test_keystreams_are_keyword_only(self):
        z1a, z1b, p1 = os.urandom(16), os.urandom(16), os.urandom(16)
        with pytest.raises(TypeError):
            keystream_reuse_pair(z1a, z1b, p1)
