"""GxmCrypt – stream-cipher + GHASH authenticated encryption.

Public API re-exports for convenience:

    from gxmcrypt import AEADContext, gxm_encrypt, gxm_decrypt
    from gxmcrypt import gf128_mul, ghash, GhashAccumulator
    from gxmcrypt import build_length_preserving_collision, build_cross_key_collision
"""

from .aead import AEADContext, compute_tag, gxm_decrypt, gxm_encrypt
from .collision import (
    CrossKeyForgery,
    DeltaSet,
    SameKeyForgery,
    build_cross_key_collision,
    build_length_preserving_collision,
    check_layout,
    forge_cross_key,
    forge_same_key,
    ghash_difference,
    keystream_reuse_pair,
)
from .exceptions import (
    AuthenticationFailure,
    GxmError,
    InvalidLayout,
    KeystreamLengthError,
    LengthMismatch,
)
from .gf128 import (
    GF128_ONE,
    block_to_element,
    element_to_block,
    gf128_inv,
    gf128_mul,
    gf128_pow,
    multiply,
    xor_blocks,
    xor_bytes,
)
from .ghash import GhashAccumulator, ghash, ghash_sequential
from .keystream import AesCtrKeystream, KeystreamProvider, derive_hash_subkey
from .utils import setup_logger

__all__ = [
    # AEAD
    "AEADContext",
    "gxm_encrypt",
    "gxm_decrypt",
    "compute_tag",
    # GF(2^128)
    "gf128_mul",
    "gf128_pow",
    "gf128_inv",
    "GF128_ONE",
    "block_to_element",
    "element_to_block",
    "multiply",
    "xor_blocks",
    "xor_bytes",
    # GHASH
    "ghash",
    "ghash_sequential",
    "GhashAccumulator",
    # Keystream
    "KeystreamProvider",
    "AesCtrKeystream",
    "derive_hash_subkey",
    # Collisions
    "DeltaSet",
    "SameKeyForgery",
    "CrossKeyForgery",
    "build_length_preserving_collision",
    "build_cross_key_collision",
    "check_layout",
    "ghash_difference",
    "forge_same_key",
    "forge_cross_key",
    "keystream_reuse_pair",
    # Errors
    "GxmError",
    "InvalidLayout",
    "LengthMismatch",
    "AuthenticationFailure",
    "KeystreamLengthError",
    # Logging
    "setup_logger",
]
