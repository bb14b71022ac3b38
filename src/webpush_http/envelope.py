"""
Wire format for aes128gcm encrypted records.

Record format (sent as the HTTP body):
┌─────────┬─────────┬─────────┬──────────────┬────────────┐
│  Salt   │   RS    │ IDLEN   │    KEYID     │ Ciphertext │
│ (16B)   │ (4B BE) │  (1B)   │ (IDLEN B)    │  (N+16B)   │
└─────────┴─────────┴─────────┴──────────────┴────────────┘

For Web Push the key id is the sender's ephemeral P-256 public key in
uncompressed form (65 bytes).

Reference: RFC 8188 §2.1, RFC 8291 §4
"""

from dataclasses import dataclass

from webpush_http.constants import (
    AES_GCM_TAG_SIZE,
    KEY_ID_LENGTH_FIELD,
    MAX_RECORD_SIZE,
    RECORD_HEADER_SIZE,
    RECORD_SIZE_FIELD,
    SALT_SIZE,
)
from webpush_http.exceptions import EnvelopeError

__all__ = [
    "RecordHeader",
    "decode_record",
    "encode_header",
    "encode_record",
    "header_length",
    "parse_header",
    "record_overhead",
]


@dataclass(frozen=True)
class RecordHeader:
    """Parsed record header."""

    salt: bytes
    record_size: int
    key_id: bytes

    @property
    def length(self) -> int:
        """Size of the encoded header in bytes."""
        return header_length(len(self.key_id))


def header_length(key_id_length: int) -> int:
    """
    Size of a record header carrying a key id of the given length.

    Args:
        key_id_length: Length of the key id (65 for Web Push)

    Returns:
        Header size in bytes
    """
    return RECORD_HEADER_SIZE + key_id_length


def record_overhead(key_id_length: int) -> int:
    """
    Calculate total overhead added to a plaintext.

    Returns:
        Overhead in bytes (header + padding delimiter + AEAD tag)
    """
    return header_length(key_id_length) + 1 + AES_GCM_TAG_SIZE


def encode_header(salt: bytes, record_size: int, key_id: bytes) -> bytes:
    """
    Encode record header.

    Args:
        salt: 16-byte random salt
        record_size: Record size limit (rs)
        key_id: Sender public key

    Returns:
        salt || rs || idlen || keyid

    Raises:
        EnvelopeError: If a field does not fit its wire encoding
    """
    if len(salt) != SALT_SIZE:
        raise EnvelopeError(f"Salt must be {SALT_SIZE} bytes, got {len(salt)}")
    if not 0 < record_size <= MAX_RECORD_SIZE:
        raise EnvelopeError(f"Record size out of range: {record_size}")
    if len(key_id) > 0xFF:
        raise EnvelopeError(f"Key id too long: {len(key_id)} bytes (maximum 255)")

    return (
        salt
        + record_size.to_bytes(RECORD_SIZE_FIELD, "big")
        + len(key_id).to_bytes(KEY_ID_LENGTH_FIELD, "big")
        + key_id
    )


def encode_record(salt: bytes, record_size: int, key_id: bytes, ciphertext: bytes) -> bytes:
    """
    Encode ciphertext into record format.

    Args:
        salt: 16-byte random salt
        record_size: Record size limit (rs)
        key_id: Sender public key
        ciphertext: AEAD-encrypted padded plaintext with authentication tag

    Returns:
        Complete record: header || ciphertext
    """
    return encode_header(salt, record_size, key_id) + ciphertext


def parse_header(data: bytes) -> RecordHeader:
    """
    Parse record header from bytes.

    Args:
        data: Record bytes starting with the header

    Returns:
        Parsed RecordHeader

    Raises:
        EnvelopeError: If data is too short
    """
    if len(data) < RECORD_HEADER_SIZE:
        raise EnvelopeError(f"Record too short: {len(data)} bytes (minimum {RECORD_HEADER_SIZE})")

    rs_end = SALT_SIZE + RECORD_SIZE_FIELD
    key_id_length = data[rs_end]
    total = header_length(key_id_length)
    if len(data) < total:
        raise EnvelopeError(f"Record truncated: key id needs {total} header bytes, got {len(data)}")

    return RecordHeader(
        salt=bytes(data[:SALT_SIZE]),
        record_size=int.from_bytes(data[SALT_SIZE:rs_end], "big"),
        key_id=bytes(data[RECORD_HEADER_SIZE:total]),
    )


def decode_record(record: bytes) -> tuple[RecordHeader, bytes]:
    """
    Decode record into header and ciphertext.

    Args:
        record: Complete record bytes

    Returns:
        Tuple of (header, ciphertext)

    Raises:
        EnvelopeError: If record is malformed
    """
    header = parse_header(record)
    ciphertext = record[header.length :]
    if len(ciphertext) < AES_GCM_TAG_SIZE + 1:
        raise EnvelopeError(
            f"Record too short: {len(ciphertext)} ciphertext bytes (minimum {AES_GCM_TAG_SIZE + 1})"
        )
    return (header, bytes(ciphertext))
