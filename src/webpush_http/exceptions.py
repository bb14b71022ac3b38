"""
Exception hierarchy for webpush_http.

All errors raised by this library inherit from WebPushError for easy catching.
"""


class WebPushError(Exception):
    """Base exception for all Web Push errors."""


class DecodeError(WebPushError):
    """Malformed base64 input (neither standard nor URL-safe alphabet)."""


class InvalidPublicKey(WebPushError):
    """Bytes do not decode to a valid P-256 point.

    Possible causes:
    - Wrong length (uncompressed points are 65 bytes)
    - Missing 0x04 prefix
    - Point not on the curve
    """


class InvalidKeyFormat(InvalidPublicKey):
    """VAPID key material has the wrong size or encoding."""


class KeyDerivationError(WebPushError):
    """HKDF could not produce the requested output.

    Never expected with valid inputs; indicates a corrupted or empty secret.
    """


class PayloadTooLarge(WebPushError):
    """Plaintext plus padding delimiter does not fit into the record."""

    def __init__(self, size: int, limit: int) -> None:
        self.size = size
        self.limit = limit
        super().__init__(f"Payload too large: {size} bytes (maximum {limit} for this record size)")


class InvalidEndpoint(WebPushError):
    """Push endpoint URL cannot be parsed into scheme and host."""


class InvalidSubscription(WebPushError):
    """Subscription record is missing required fields."""


class SigningError(WebPushError):
    """VAPID token could not be signed or verified."""


class EnvelopeError(WebPushError):
    """Invalid record format.

    The encrypted record is malformed:
    - Too short
    - Truncated key id
    """


class DecryptionError(WebPushError):
    """Failed to decrypt a record.

    Possible causes:
    - Wrong subscriber key or auth secret
    - Corrupted ciphertext
    - Invalid authentication tag
    - Missing padding delimiter
    """


class TransportError(WebPushError):
    """The HTTP transport failed before a response was received."""
