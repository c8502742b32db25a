"""Error kinds raised by GxmCrypt.

``InvalidLayout`` and ``AuthenticationFailure`` also derive from
:class:`ValueError`, so callers that only care about "bad input" can keep
catching ``ValueError``.
"""


class GxmError(Exception):
    """Base class for all GxmCrypt errors."""


class InvalidLayout(GxmError, ValueError):
    """AAD or ciphertext lengths do not line up between two variants."""


class LengthMismatch(InvalidLayout):
    """Two buffers that must be XORed together differ in size."""


class AuthenticationFailure(GxmError, ValueError):
    """The authentication tag did not verify."""


class KeystreamLengthError(GxmError):
    """The keystream provider returned fewer bytes than requested."""

    def __init__(self, requested: int, received: int) -> None:
        super().__init__(
            f"Keystream provider returned {received} bytes, {requested} requested"
        )
        self.requested = requested
        self.received = received
