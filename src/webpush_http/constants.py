"""
Constants for Web Push message encryption and VAPID.

References:
- RFC 8188: Encrypted Content-Encoding for HTTP (aes128gcm)
- RFC 8291: Message Encryption for Web Push
- RFC 8292: Voluntary Application Server Identification (VAPID)
"""

from datetime import timedelta
from enum import Enum

# =============================================================================
# Record layout (RFC 8188 §2.1)
# =============================================================================

SALT_SIZE: int = 16
"""Random salt prepended to every record."""

RECORD_SIZE_FIELD: int = 4
"""Record size (rs), unsigned 32-bit big-endian."""

KEY_ID_LENGTH_FIELD: int = 1
"""Length of the key id (idlen)."""

RECORD_HEADER_SIZE: int = SALT_SIZE + RECORD_SIZE_FIELD + KEY_ID_LENGTH_FIELD
"""Fixed part of the header, without the key id itself."""

DEFAULT_RECORD_SIZE: int = 4096
"""Default record size limit (push services must accept at least 4096)."""

MAX_RECORD_SIZE: int = 2**32 - 1

LAST_RECORD_DELIMITER: int = 0x02
"""Padding delimiter for the final (and here: only) record."""

RECORD_DELIMITER: int = 0x01
"""Padding delimiter for non-final records. Not emitted by this library."""

# =============================================================================
# Cipher parameters
# =============================================================================

AES128GCM_KEY_SIZE: int = 16
NONCE_SIZE: int = 12
AES_GCM_TAG_SIZE: int = 16
HKDF_PRK_SIZE: int = 32

# P-256 (secp256r1)
UNCOMPRESSED_POINT_SIZE: int = 65
UNCOMPRESSED_POINT_PREFIX: int = 0x04
P256_PRIVATE_KEY_SIZE: int = 32
P256_COORDINATE_SIZE: int = 32
AUTH_SECRET_SIZE: int = 16

# =============================================================================
# HKDF info labels (RFC 8291 §3.4, RFC 8188 §2.2-2.3)
# =============================================================================

WEBPUSH_INFO_LABEL: bytes = b"WebPush: info\x00"
CEK_INFO_LABEL: bytes = b"Content-Encoding: aes128gcm\x00"
NONCE_INFO_LABEL: bytes = b"Content-Encoding: nonce\x00"

# =============================================================================
# VAPID (RFC 8292)
# =============================================================================

DEFAULT_VAPID_EXPIRATION: timedelta = timedelta(hours=12)
VAPID_JWT_ALGORITHM: str = "ES256"
VAPID_AUTH_SCHEME: str = "vapid"

# =============================================================================
# HTTP headers
# =============================================================================

CONTENT_ENCODING: str = "aes128gcm"
CONTENT_TYPE: str = "application/octet-stream"

HEADER_CONTENT_ENCODING: str = "Content-Encoding"
HEADER_CONTENT_LENGTH: str = "Content-Length"
HEADER_CONTENT_TYPE: str = "Content-Type"
HEADER_TTL: str = "TTL"
HEADER_AUTHORIZATION: str = "Authorization"
HEADER_TOPIC: str = "Topic"
HEADER_URGENCY: str = "Urgency"


class Urgency(str, Enum):
    """Message urgency (RFC 8030 §5.3)."""

    VERY_LOW = "very-low"
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
