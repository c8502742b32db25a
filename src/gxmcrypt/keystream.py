"""Keystream providers consumed by the AEAD engine.

The engine only needs a deterministic byte stream keyed by ``(key,
nonce)``.  Anything implementing :class:`KeystreamProvider` can be plugged
in; the default is AES-128 in CTR mode via the ``cryptography`` library,
with the 16-byte nonce used as the initial counter block.

Providers are called once per encrypt/decrypt and must derive the stream
afresh from ``(key, nonce)`` on every call; no cursor is carried between
calls.
"""

from typing import Optional, Protocol

from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from .exceptions import KeystreamLengthError
from .gf128 import BLOCK_SIZE

KEY_SIZE = 16
NONCE_SIZE = 16

_BACKEND = default_backend()


class KeystreamProvider(Protocol):
    """Deterministic, side-effect-free keystream source."""

    def derive_keystream(self, key: bytes, nonce: bytes, length: int) -> bytes:
        """Return exactly *length* keystream bytes for ``(key, nonce)``."""
        ...


class AesCtrKeystream:
    """AES-128-CTR keystream: ``AES_K(N) || AES_K(N+1) || ...``.

    The counter is the whole 128-bit nonce block, incremented as a
    big-endian integer.  With ``nonce = IV || 00000001`` the first block is
    GCM's ``E_K(J0)`` and the rest is GCM's CTR stream.
    """

    def derive_keystream(self, key: bytes, nonce: bytes, length: int) -> bytes:
        if len(key) != KEY_SIZE:
            raise ValueError(f"Key must be {KEY_SIZE} bytes")
        if len(nonce) != NONCE_SIZE:
            raise ValueError(f"Nonce must be {NONCE_SIZE} bytes")
        if length < 0:
            raise ValueError("Keystream length must be non-negative")
        cipher = Cipher(algorithms.AES(key), modes.CTR(nonce), backend=_BACKEND)
        enc = cipher.encryptor()
        return enc.update(b"\x00" * length) + enc.finalize()


DEFAULT_PROVIDER = AesCtrKeystream()


def request_keystream(
    provider: Optional[KeystreamProvider], key: bytes, nonce: bytes, length: int
) -> bytes:
    """Fetch *length* keystream bytes with a single provider call.

    Raises:
        KeystreamLengthError: If the provider returned fewer bytes.
    """
    provider = provider if provider is not None else DEFAULT_PROVIDER
    stream = provider.derive_keystream(key, nonce, length)
    if len(stream) < length:
        raise KeystreamLengthError(length, len(stream))
    return bytes(stream[:length])


def derive_hash_subkey(
    key: bytes, provider: Optional[KeystreamProvider] = None
) -> bytes:
    """Derive H as the first keystream block at the all-zero nonce.

    For the default provider this is ``H = AES_K(0^128)``, the GCM rule.
    """
    return request_keystream(provider, key, b"\x00" * NONCE_SIZE, BLOCK_SIZE)
