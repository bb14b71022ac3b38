"""
HTTP header and base64 utilities for Web Push.

Subscription keys arrive from browsers and application databases in either
base64 alphabet, padded or not; decode_subscription_key accepts all four forms.
Everything this library emits is base64url without padding (RFC 4648 §5).
"""

import base64

from webpush_http._logging import get_logger
from webpush_http.constants import (
    CONTENT_ENCODING,
    CONTENT_TYPE,
    HEADER_AUTHORIZATION,
    HEADER_CONTENT_ENCODING,
    HEADER_CONTENT_LENGTH,
    HEADER_CONTENT_TYPE,
    HEADER_TOPIC,
    HEADER_TTL,
    HEADER_URGENCY,
    Urgency,
)
from webpush_http.exceptions import DecodeError

__all__ = [
    "b64url_encode",
    "build_headers",
    "decode_subscription_key",
    "is_valid_urgency",
]

_logger = get_logger(__name__)

_B64_PAD_SIZE = 4  # Base64 padding block size
_URLSAFE_ALTCHARS = b"-_"
_URGENCY_VALUES = frozenset(u.value for u in Urgency)


def b64url_encode(data: bytes) -> str:
    """
    Encode bytes to base64url string without padding.

    Args:
        data: Raw bytes to encode

    Returns:
        base64url encoded string (no padding)
    """
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def decode_subscription_key(key: str) -> bytes:
    """
    Decode a base64 key in any alphabet, with or without padding.

    Pads to a multiple of 4, then tries the standard alphabet and falls back
    to the URL-safe alphabet.

    Args:
        key: Standard or URL-safe base64, padded or unpadded

    Returns:
        Decoded bytes

    Raises:
        DecodeError: If neither alphabet decodes the input
    """
    padding = len(key) % _B64_PAD_SIZE
    if padding:
        key += "=" * (_B64_PAD_SIZE - padding)

    try:
        return base64.b64decode(key, validate=True)
    except ValueError:
        pass

    # altchars maps - and _ but still accepts + and /
    if "+" in key or "/" in key:
        raise DecodeError("Invalid base64 key: mixes standard and URL-safe alphabets")

    try:
        return base64.b64decode(key, altchars=_URLSAFE_ALTCHARS, validate=True)
    except ValueError as e:
        raise DecodeError(f"Invalid base64 key: {e}") from e


def is_valid_urgency(urgency: str | None) -> bool:
    """Check if urgency is one of very-low, low, normal, high."""
    if isinstance(urgency, Urgency):
        return True
    return urgency in _URGENCY_VALUES


def build_headers(
    content_length: int,
    ttl: int,
    authorization: str,
    *,
    topic: str | None = None,
    urgency: str | None = None,
) -> dict[str, str]:
    """
    Build the request headers for a push message.

    Unknown urgency values are omitted rather than rejected.

    Args:
        content_length: Size of the encrypted record
        ttl: Seconds the push service should retain the message
        authorization: VAPID Authorization header value
        topic: Optional topic for collapsing pending messages
        urgency: Optional urgency (very-low, low, normal, high)

    Returns:
        Dict of header name to value
    """
    headers = {
        HEADER_CONTENT_ENCODING: CONTENT_ENCODING,
        HEADER_CONTENT_LENGTH: str(content_length),
        HEADER_CONTENT_TYPE: CONTENT_TYPE,
        HEADER_TTL: str(ttl),
        HEADER_AUTHORIZATION: authorization,
    }

    if topic:
        headers[HEADER_TOPIC] = topic

    if isinstance(urgency, Urgency):
        urgency = urgency.value
    if is_valid_urgency(urgency):
        headers[HEADER_URGENCY] = str(urgency)
    elif urgency is not None:
        _logger.debug("Urgency omitted: unrecognized value %r", urgency)

    return headers
