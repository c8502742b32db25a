"""Stream-cipher + GHASH authenticated encryption (GXM).

The construction pulls ``len(message) + 16`` keystream bytes per call:

    Z0 = keystream[:16]            (tag mask)
    Z1 = keystream[16:]            (encryption stream)
    C   = P XOR Z1
    tag = Z0 XOR GHASH_H(AAD, C)

H is a separate 16-byte hash subkey held by the context.  It can be
supplied directly or derived from the key with
:func:`gxmcrypt.keystream.derive_hash_subkey` (``AES_K(0^128)`` for the
default provider).  Using the default AES-CTR provider with
``nonce = IV || 00000001`` and the derived H reproduces AES-GCM exactly.

Decryption verifies the tag before any plaintext is produced.
"""

import hmac
import logging
from dataclasses import dataclass, field
from typing import Callable, Optional

from .exceptions import AuthenticationFailure
from .gf128 import BLOCK_SIZE, block_to_element, element_to_block, xor_bytes
from .ghash import ghash
from .keystream import (
    DEFAULT_PROVIDER,
    KeystreamProvider,
    derive_hash_subkey,
    request_keystream,
)

logger = logging.getLogger(__name__)

TAG_SIZE = 16


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _check_subkey(h: bytes) -> None:
    if len(h) != BLOCK_SIZE:
        raise ValueError(f"Hash subkey H must be {BLOCK_SIZE} bytes")


def _split_keystream(
    provider: Optional[KeystreamProvider], key: bytes, nonce: bytes, length: int
) -> tuple:
    """Return ``(Z0, Z1)`` from one provider request of ``length + 16`` bytes."""
    stream = request_keystream(provider, key, nonce, length + TAG_SIZE)
    return stream[:TAG_SIZE], stream[TAG_SIZE:]


def compute_tag(h: bytes, z0: bytes, aad: bytes, ciphertext: bytes) -> bytes:
    """Return ``Z0 XOR GHASH_H(aad, ciphertext)``."""
    s = ghash(block_to_element(h), aad, ciphertext)
    return element_to_block(s ^ block_to_element(z0))


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def gxm_encrypt(
    key: bytes,
    nonce: bytes,
    h: bytes,
    plaintext: bytes,
    aad: bytes = b"",
    provider: Optional[KeystreamProvider] = None,
) -> tuple:
    """Encrypt *plaintext* and return ``(ciphertext, tag)``.

    Args:
        key:       Keystream key (16 bytes for the default provider).
        nonce:     Keystream nonce (16 bytes for the default provider).
        h:         16-byte hash subkey.
        plaintext: Plaintext bytes (may be empty).
        aad:       Additional authenticated data (not encrypted).
        provider:  Keystream provider; AES-CTR when omitted.

    Returns:
        A ``(ciphertext, tag)`` tuple where *tag* is 16 bytes.

    Raises:
        ValueError:           If *h* is not 16 bytes or the provider
                              rejects *key* / *nonce*.
        KeystreamLengthError: If the provider returns a short stream.
    """
    _check_subkey(h)
    z0, z1 = _split_keystream(provider, key, nonce, len(plaintext))
    ciphertext = xor_bytes(plaintext, z1)
    tag = compute_tag(h, z0, aad, ciphertext)
    return ciphertext, tag


def gxm_decrypt(
    key: bytes,
    nonce: bytes,
    h: bytes,
    ciphertext: bytes,
    aad: bytes,
    tag: bytes,
    provider: Optional[KeystreamProvider] = None,
) -> bytes:
    """Authenticate and decrypt *ciphertext*.

    The tag is compared in constant time and checked before the
    keystream is applied to the ciphertext.

    Args:
        key:        Keystream key.
        nonce:      Keystream nonce.
        h:          16-byte hash subkey.
        ciphertext: Encrypted bytes.
        aad:        Additional authenticated data (must match encryption).
        tag:        16-byte authentication tag.
        provider:   Keystream provider; AES-CTR when omitted.

    Returns:
        Decrypted plaintext bytes.

    Raises:
        AuthenticationFailure: If the tag does not verify.
        ValueError:            If *tag* or *h* has the wrong size.
    """
    _check_subkey(h)
    if len(tag) != TAG_SIZE:
        raise ValueError(f"Tag must be {TAG_SIZE} bytes")

    z0, z1 = _split_keystream(provider, key, nonce, len(ciphertext))
    expected_tag = compute_tag(h, z0, aad, ciphertext)

    if not hmac.compare_digest(expected_tag, tag):
        logger.debug("Tag verification failed for %d-byte ciphertext", len(ciphertext))
        raise AuthenticationFailure("GXM authentication tag verification failed")

    return xor_bytes(ciphertext, z1)


@dataclass(frozen=True)
class AEADContext:
    """Key, nonce, hash subkey and keystream provider for one session.

    Attributes:
        key:      Keystream key.
        nonce:    Keystream nonce.
        h:        16-byte hash subkey H.
        provider: Keystream provider; AES-CTR by default.
    """

    key: bytes = field(repr=False)
    nonce: bytes
    h: bytes = field(repr=False)
    provider: KeystreamProvider = field(default=DEFAULT_PROVIDER, repr=False, compare=False)

    def __post_init__(self) -> None:
        _check_subkey(self.h)

    @classmethod
    def from_key(
        cls,
        key: bytes,
        nonce: bytes,
        provider: Optional[KeystreamProvider] = None,
        derive_subkey: Callable = derive_hash_subkey,
    ) -> "AEADContext":
        """Build a context whose H is derived from *key*.

        Args:
            key:           Keystream key.
            nonce:         Keystream nonce.
            provider:      Keystream provider; AES-CTR when omitted.
            derive_subkey: ``derive_subkey(key, provider) -> bytes``.
        """
        provider = provider if provider is not None else DEFAULT_PROVIDER
        return cls(key=key, nonce=nonce, h=derive_subkey(key, provider), provider=provider)

    @property
    def subkey(self) -> int:
        """H as a GF(2^128) element."""
        return block_to_element(self.h)

    def keystream(self, length: int) -> tuple:
        """Return ``(Z0, Z1)`` for a *length*-byte message."""
        return _split_keystream(self.provider, self.key, self.nonce, length)

    def encrypt(self, plaintext: bytes, aad: bytes = b"") -> tuple:
        """Encrypt under this context; see :func:`gxm_encrypt`."""
        return gxm_encrypt(self.key, self.nonce, self.h, plaintext, aad, self.provider)

    def decrypt(self, ciphertext: bytes, aad: bytes, tag: bytes) -> bytes:
        """Decrypt under this context; see :func:`gxm_decrypt`."""
        return gxm_decrypt(self.key, self.nonce, self.h, ciphertext, aad, tag, self.provider)
