"""
Message Encryption for Web Push (aes128gcm content coding).

Pipeline for a single message:
1. ECDH between a fresh P-256 key pair and the subscriber's p256dh key
2. HKDF-SHA256 key schedule: PRK (auth secret), CEK and nonce (salt)
3. Pad with a 0x02 delimiter and zeros up to the record budget
4. AES-128-GCM seal, no associated data
5. Frame as salt || rs || idlen || keyid || ciphertext

Every ephemeral key, salt and derived secret lives only for one call.

Reference: RFC 8291 §3-4, RFC 8188 §2
"""

import secrets
from dataclasses import dataclass

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from webpush_http._logging import get_logger
from webpush_http.constants import (
    AES128GCM_KEY_SIZE,
    CEK_INFO_LABEL,
    DEFAULT_RECORD_SIZE,
    HKDF_PRK_SIZE,
    LAST_RECORD_DELIMITER,
    MAX_RECORD_SIZE,
    NONCE_INFO_LABEL,
    NONCE_SIZE,
    P256_PRIVATE_KEY_SIZE,
    SALT_SIZE,
    UNCOMPRESSED_POINT_PREFIX,
    UNCOMPRESSED_POINT_SIZE,
    WEBPUSH_INFO_LABEL,
)
from webpush_http.envelope import decode_record, encode_record, header_length
from webpush_http.exceptions import (
    DecryptionError,
    EnvelopeError,
    InvalidPublicKey,
    KeyDerivationError,
    PayloadTooLarge,
)

__all__ = [
    "KeySchedule",
    "decrypt",
    "derive_key_schedule",
    "derive_shared_secret",
    "encrypt",
    "hkdf_sha256",
    "load_public_key",
    "max_payload_size",
    "pad_plaintext",
    "public_key_bytes",
    "unpad_plaintext",
]

_logger = get_logger(__name__)


# =============================================================================
# Key agreement
# =============================================================================


def load_public_key(data: bytes) -> ec.EllipticCurvePublicKey:
    """
    Load a raw uncompressed P-256 point.

    Args:
        data: 0x04 || X || Y (65 bytes)

    Returns:
        Public key object

    Raises:
        InvalidPublicKey: If data is not a point on P-256
    """
    if len(data) != UNCOMPRESSED_POINT_SIZE or data[0] != UNCOMPRESSED_POINT_PREFIX:
        raise InvalidPublicKey(
            f"Expected {UNCOMPRESSED_POINT_SIZE}-byte uncompressed point, got {len(data)} bytes"
        )
    try:
        return ec.EllipticCurvePublicKey.from_encoded_point(ec.SECP256R1(), bytes(data))
    except ValueError as e:
        raise InvalidPublicKey("Point is not on P-256") from e


def public_key_bytes(public_key: ec.EllipticCurvePublicKey) -> bytes:
    """Serialize a public key as an uncompressed point (65 bytes)."""
    return public_key.public_bytes(
        encoding=serialization.Encoding.X962,
        format=serialization.PublicFormat.UncompressedPoint,
    )


def derive_shared_secret(subscriber_public_key: bytes) -> tuple[bytes, bytes]:
    """
    Run ECDH against a fresh ephemeral key pair.

    The ephemeral private key is discarded when this function returns.

    Args:
        subscriber_public_key: Subscriber p256dh key (65-byte uncompressed point)

    Returns:
        Tuple of (shared_secret, local_public_key)

    Raises:
        InvalidPublicKey: If the subscriber key is not a valid P-256 point
    """
    peer_key = load_public_key(subscriber_public_key)
    private_key = ec.generate_private_key(ec.SECP256R1())
    shared_secret = private_key.exchange(ec.ECDH(), peer_key)
    return (shared_secret, public_key_bytes(private_key.public_key()))


# =============================================================================
# Key schedule
# =============================================================================


def hkdf_sha256(ikm: bytes, salt: bytes, info: bytes, length: int) -> bytes:
    """
    HKDF extract-and-expand with SHA-256.

    Args:
        ikm: Input keying material
        salt: Extract salt
        info: Expand context label
        length: Output length in bytes

    Returns:
        Output keying material of exactly `length` bytes

    Raises:
        KeyDerivationError: If the output cannot be produced
    """
    if not ikm:
        raise KeyDerivationError("Empty input keying material")
    try:
        okm = HKDF(algorithm=hashes.SHA256(), length=length, salt=salt, info=info).derive(ikm)
    except ValueError as e:
        raise KeyDerivationError(f"HKDF failed for {length} bytes: {e}") from e
    if len(okm) != length:
        raise KeyDerivationError(f"HKDF produced {len(okm)} bytes, expected {length}")
    return okm


@dataclass(frozen=True, repr=False)
class KeySchedule:
    """Secrets derived for one record. Never logged or returned to callers."""

    shared_secret: bytes
    """32-byte ECDH output."""

    prk: bytes
    """32-byte pseudorandom key mixing in the auth secret."""

    cek: bytes
    """16-byte AES-128-GCM content-encryption key."""

    nonce: bytes
    """12-byte AES-GCM nonce."""

    def __repr__(self) -> str:
        return "KeySchedule(<redacted>)"


def derive_key_schedule(
    shared_secret: bytes,
    auth_secret: bytes,
    subscriber_public_key: bytes,
    local_public_key: bytes,
    salt: bytes,
) -> KeySchedule:
    """
    Derive PRK, CEK and nonce.

    Args:
        shared_secret: ECDH output
        auth_secret: Subscriber auth secret
        subscriber_public_key: User agent public key (ua_public)
        local_public_key: Application server public key (as_public)
        salt: Record salt

    Returns:
        KeySchedule for this record
    """
    info = WEBPUSH_INFO_LABEL + subscriber_public_key + local_public_key
    prk = hkdf_sha256(shared_secret, auth_secret, info, HKDF_PRK_SIZE)
    cek = hkdf_sha256(prk, salt, CEK_INFO_LABEL, AES128GCM_KEY_SIZE)
    nonce = hkdf_sha256(prk, salt, NONCE_INFO_LABEL, NONCE_SIZE)
    return KeySchedule(shared_secret=shared_secret, prk=prk, cek=cek, nonce=nonce)


# =============================================================================
# Padding
# =============================================================================


def max_payload_size(record_size: int = DEFAULT_RECORD_SIZE, key_id_length: int = UNCOMPRESSED_POINT_SIZE) -> int:
    """
    Largest plaintext that fits a single record.

    Args:
        record_size: Record size limit (rs)
        key_id_length: Length of the sender public key

    Returns:
        Maximum plaintext length (negative if the record cannot hold anything)
    """
    return record_size - SALT_SIZE - header_length(key_id_length) - 1


def pad_plaintext(plaintext: bytes, budget: int) -> bytes:
    """
    Append the last-record delimiter and zero-pad to exactly `budget` bytes.

    Args:
        plaintext: Message bytes
        budget: Padded plaintext size

    Returns:
        plaintext || 0x02 || 0x00 * n

    Raises:
        PayloadTooLarge: If plaintext plus delimiter exceeds budget
    """
    size = len(plaintext) + 1
    if size > budget:
        raise PayloadTooLarge(len(plaintext), max(budget - 1, 0))
    return bytes(plaintext) + bytes([LAST_RECORD_DELIMITER]) + bytes(budget - size)


def unpad_plaintext(padded: bytes) -> bytes:
    """
    Strip zero padding and the last-record delimiter.

    Raises:
        DecryptionError: If no 0x02 delimiter terminates the content
    """
    stripped = padded.rstrip(b"\x00")
    if not stripped or stripped[-1] != LAST_RECORD_DELIMITER:
        raise DecryptionError("Missing last-record padding delimiter")
    return stripped[:-1]


# =============================================================================
# Encrypt / decrypt
# =============================================================================


def encrypt(
    plaintext: bytes,
    subscriber_public_key: bytes,
    auth_secret: bytes,
    record_size: int = DEFAULT_RECORD_SIZE,
) -> bytes:
    """
    Encrypt a message into a single aes128gcm record.

    Args:
        plaintext: Message bytes
        subscriber_public_key: Decoded p256dh key (65 bytes)
        auth_secret: Decoded auth secret
        record_size: Record size limit written into the header

    Returns:
        Complete record (request body)

    Raises:
        InvalidPublicKey: If the subscriber key is not a valid P-256 point
        KeyDerivationError: If HKDF fails
        PayloadTooLarge: If plaintext does not fit the record
        EnvelopeError: If record_size does not fit 32 bits
    """
    if record_size > MAX_RECORD_SIZE:
        raise EnvelopeError(f"Record size out of range: {record_size}")

    salt = secrets.token_bytes(SALT_SIZE)
    shared_secret, local_public_key = derive_shared_secret(subscriber_public_key)
    schedule = derive_key_schedule(shared_secret, auth_secret, subscriber_public_key, local_public_key, salt)

    record_length = record_size - SALT_SIZE
    padded = pad_plaintext(plaintext, record_length - header_length(len(local_public_key)))

    ciphertext = AESGCM(schedule.cek).encrypt(schedule.nonce, padded, None)
    record = encode_record(salt, record_size, local_public_key, ciphertext)

    _logger.debug(
        "Record encrypted: plaintext=%d padded=%d record=%d rs=%d",
        len(plaintext),
        len(padded),
        len(record),
        record_size,
    )
    return record


def decrypt(record: bytes, private_key: bytes, auth_secret: bytes) -> bytes:
    """
    Decrypt a record as the user agent would.

    Args:
        record: Complete record
        private_key: Subscriber private key (32-byte raw scalar)
        auth_secret: Subscriber auth secret

    Returns:
        Original plaintext

    Raises:
        EnvelopeError: If the record is malformed
        DecryptionError: If the key is wrong or the record was tampered with
    """
    header, ciphertext = decode_record(record)

    if len(private_key) != P256_PRIVATE_KEY_SIZE:
        raise DecryptionError(f"Private key must be {P256_PRIVATE_KEY_SIZE} bytes, got {len(private_key)}")
    try:
        receiver = ec.derive_private_key(int.from_bytes(private_key, "big"), ec.SECP256R1())
    except ValueError as e:
        raise DecryptionError("Invalid subscriber private key") from e

    try:
        sender_key = load_public_key(header.key_id)
    except InvalidPublicKey as e:
        raise DecryptionError("Invalid sender key id") from e

    shared_secret = receiver.exchange(ec.ECDH(), sender_key)
    schedule = derive_key_schedule(
        shared_secret,
        auth_secret,
        public_key_bytes(receiver.public_key()),
        header.key_id,
        header.salt,
    )

    try:
        padded = AESGCM(schedule.cek).decrypt(schedule.nonce, ciphertext, None)
    except InvalidTag as e:
        raise DecryptionError("Authentication tag mismatch") from e

    return unpad_plaintext(padded)
