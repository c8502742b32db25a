"""GHASH universal hash over GF(2^128).

GHASH is a Horner evaluation at the hash subkey H:

    Y_i = (Y_{i-1} XOR X_i) * H, starting at Y_0 = 0

which unrolls to the power sum

    GHASH_H(X_1, ..., X_m) = X_1*H^m XOR X_2*H^(m-1) XOR ... XOR X_m*H^1

The power-sum form is what the forgery constructors in
:mod:`gxmcrypt.collision` reason about: XORing a delta D_i into block
X_i shifts the hash by exactly D_i * H^(m-i+1).

Every fold in this module goes through :func:`_fold`.  :func:`ghash`
frames associated data and ciphertext the way the AEAD engine does:

    pad(AAD) || pad(C) || [len(AAD)*8 as u64] || [len(C)*8 as u64]

and :class:`GhashAccumulator` computes the same value incrementally.
"""

from .gf128 import BLOCK_SIZE, gf128_mul


def _fold(y: int, block: int, h: int) -> int:
    """One Horner step: ``(y XOR block) * H``."""
    return gf128_mul(y ^ block, h)


def _pad16(data: bytes) -> bytes:
    """Zero-pad *data* to the next multiple of 16 bytes."""
    rem = len(data) % BLOCK_SIZE
    return data if rem == 0 else data + b"\x00" * (BLOCK_SIZE - rem)


def _length_block(aad_len: int, ciphertext_len: int) -> int:
    len_block = (aad_len * 8).to_bytes(8, "big") + (ciphertext_len * 8).to_bytes(8, "big")
    return int.from_bytes(len_block, "big")


def build_ghash_blocks(aad: bytes, ciphertext: bytes) -> list:
    """Assemble the GHASH input sequence per NIST SP 800-38D Section 7.1.

    Returns a list of 128-bit integers:
        pad(AAD) || pad(C) || [len(AAD)*8 as u64] || [len(C)*8 as u64]
    """
    blocks = []
    for stream in (aad, ciphertext):
        if stream:
            padded = _pad16(stream)
            for i in range(0, len(padded), BLOCK_SIZE):
                blocks.append(int.from_bytes(padded[i: i + BLOCK_SIZE], "big"))
    blocks.append(_length_block(len(aad), len(ciphertext)))
    return blocks


def ghash_sequential(h: int, blocks: list) -> int:
    """Fold a list of 128-bit blocks under subkey *h*; 0 for no blocks."""
    y = 0
    for x in blocks:
        y = _fold(y, x, h)
    return y


def ghash(h: int, aad: bytes, ciphertext: bytes) -> int:
    """GHASH of *aad* and *ciphertext* under subkey *h*, length block included.

    Empty *aad* or *ciphertext* contribute no blocks but still appear in
    the length block.

    Args:
        h:          Hash subkey H as a 128-bit integer.
        aad:        Associated data (may be empty).
        ciphertext: Ciphertext bytes (may be empty).

    Returns:
        The 128-bit GHASH value.
    """
    return ghash_sequential(h, build_ghash_blocks(aad, ciphertext))


class GhashAccumulator:
    """Incremental GHASH over an AAD stream followed by a ciphertext stream.

    Input may be fed in chunks of any size; only the concatenated streams
    matter.  All AAD must be supplied before the first ciphertext chunk.

    Example::

        acc = GhashAccumulator(h)
        acc.update_aad(header)
        for chunk in chunks:
            acc.update(chunk)
        tag_mask = acc.digest()
    """

    def __init__(self, h: int) -> None:
        self._h = h
        self._y = 0
        self._buf = b""
        self._aad_len = 0
        self._ct_len = 0
        self._in_ciphertext = False

    def _absorb(self, data: bytes) -> None:
        buf = self._buf + bytes(data)
        full = len(buf) - len(buf) % BLOCK_SIZE
        for i in range(0, full, BLOCK_SIZE):
            self._y = _fold(self._y, int.from_bytes(buf[i: i + BLOCK_SIZE], "big"), self._h)
        self._buf = buf[full:]

    def _flush(self, y: int) -> int:
        if self._buf:
            y = _fold(y, int.from_bytes(_pad16(self._buf), "big"), self._h)
        return y

    def update_aad(self, data: bytes) -> None:
        """Feed associated data.

        Raises:
            ValueError: If ciphertext has already been fed.
        """
        if self._in_ciphertext:
            raise ValueError("Associated data must precede ciphertext")
        self._absorb(data)
        self._aad_len += len(data)

    def update(self, data: bytes) -> None:
        """Feed ciphertext."""
        if not self._in_ciphertext:
            # The AAD stream ends here; its last partial block is padded.
            self._y = self._flush(self._y)
            self._buf = b""
            self._in_ciphertext = True
        self._absorb(data)
        self._ct_len += len(data)

    def digest(self) -> int:
        """Return GHASH of everything fed so far without changing state."""
        return _fold(self._flush(self._y), _length_block(self._aad_len, self._ct_len), self._h)
