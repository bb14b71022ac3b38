"""
VAPID: Voluntary Application Server Identification for Web Push.

The application server signs a short-lived ES256 JWT ({aud, exp, sub}) and
sends it with its raw public key:

    Authorization: vapid t=<jwt>, k=<base64url public key>

VAPID keys are exchanged as base64url strings: a 32-byte private scalar and a
65-byte uncompressed public point.

Reference: RFC 8292 §2-3, RFC 7515 (JWS compact serialization)
"""

import json
import time
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any
from urllib.parse import urlsplit

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric.utils import decode_dss_signature, encode_dss_signature

from webpush_http._logging import get_logger
from webpush_http.constants import (
    DEFAULT_VAPID_EXPIRATION,
    P256_COORDINATE_SIZE,
    P256_PRIVATE_KEY_SIZE,
    UNCOMPRESSED_POINT_PREFIX,
    UNCOMPRESSED_POINT_SIZE,
    VAPID_AUTH_SCHEME,
    VAPID_JWT_ALGORITHM,
)
from webpush_http.ece import load_public_key, public_key_bytes
from webpush_http.exceptions import DecodeError, InvalidEndpoint, InvalidKeyFormat, InvalidPublicKey, SigningError
from webpush_http.headers import b64url_encode, decode_subscription_key

__all__ = [
    "VapidClaims",
    "build_claims",
    "generate_vapid_keys",
    "sign_token",
    "signing_key_from_raw",
    "vapid_authorization_header",
    "verify_token",
]

_logger = get_logger(__name__)

# Order of the P-256 base point
_P256_ORDER = 0xFFFFFFFF00000000FFFFFFFFFFFFFFFFBCE6FAADA7179E84F3B9CAC2FC632551

_JWT_HEADER = {"typ": "JWT", "alg": VAPID_JWT_ALGORITHM}


def _json_segment(obj: dict[str, Any]) -> str:
    return b64url_encode(json.dumps(obj, separators=(",", ":")).encode())


@dataclass(frozen=True)
class VapidClaims:
    """JWT claims identifying the application server to one push service."""

    aud: str
    """Origin of the push endpoint (scheme://host)."""

    exp: int
    """Expiry as unix seconds."""

    sub: str
    """Contact URI: mailto: address or https: URL."""

    def to_dict(self) -> dict[str, Any]:
        """Claims as a JSON-serializable dict."""
        return asdict(self)


# =============================================================================
# Keys
# =============================================================================


def generate_vapid_keys() -> tuple[str, str]:
    """
    Generate a VAPID key pair.

    Returns:
        Tuple of (private_key, public_key), base64url without padding:
        43 characters (32 bytes) and 87 characters (65 bytes)
    """
    private_key = ec.generate_private_key(ec.SECP256R1())
    private_bytes = private_key.private_numbers().private_value.to_bytes(P256_PRIVATE_KEY_SIZE, "big")
    return (
        b64url_encode(private_bytes),
        b64url_encode(public_key_bytes(private_key.public_key())),
    )


def signing_key_from_raw(private_bytes: bytes) -> ec.EllipticCurvePrivateKey:
    """
    Reconstruct an ECDSA signing key from a raw P-256 scalar.

    Args:
        private_bytes: 32-byte big-endian private scalar

    Returns:
        Private key usable for ES256 signing

    Raises:
        InvalidKeyFormat: If the scalar or its derived public point is malformed
    """
    if len(private_bytes) != P256_PRIVATE_KEY_SIZE:
        raise InvalidKeyFormat(
            f"VAPID private key must be {P256_PRIVATE_KEY_SIZE} bytes, got {len(private_bytes)}"
        )

    scalar = int.from_bytes(private_bytes, "big")
    if not 0 < scalar < _P256_ORDER:
        raise InvalidKeyFormat("VAPID private key is outside the P-256 scalar range")

    try:
        private_key = ec.derive_private_key(scalar, ec.SECP256R1())
    except ValueError as e:
        raise InvalidKeyFormat(f"Invalid VAPID private key: {e}") from e

    point = public_key_bytes(private_key.public_key())
    if len(point) != UNCOMPRESSED_POINT_SIZE or point[0] != UNCOMPRESSED_POINT_PREFIX:
        raise InvalidKeyFormat("Invalid public key format")
    return private_key


def _decode_vapid_key(key: str, name: str) -> bytes:
    try:
        return decode_subscription_key(key)
    except DecodeError as e:
        raise InvalidKeyFormat(f"VAPID {name} key is not valid base64") from e


def _decode_vapid_public_key(key: str) -> bytes:
    raw = _decode_vapid_key(key, "public")
    if len(raw) != UNCOMPRESSED_POINT_SIZE or raw[0] != UNCOMPRESSED_POINT_PREFIX:
        raise InvalidKeyFormat(
            f"VAPID public key must be a {UNCOMPRESSED_POINT_SIZE}-byte uncompressed point, got {len(raw)} bytes"
        )
    return raw


# =============================================================================
# Token
# =============================================================================


def build_claims(
    endpoint: str,
    subscriber: str,
    expiration: datetime | None = None,
) -> VapidClaims:
    """
    Build VAPID claims for a push endpoint.

    Args:
        endpoint: Push subscription endpoint URL
        subscriber: E-mail address (mailto: is added) or https: URL
        expiration: Token expiry (defaults to now + 12 hours)

    Returns:
        VapidClaims

    Raises:
        InvalidEndpoint: If the endpoint has no scheme or host
    """
    try:
        parts = urlsplit(endpoint)
        host = parts.netloc.rpartition("@")[2]
    except (ValueError, AttributeError) as e:
        raise InvalidEndpoint(f"Cannot parse endpoint: {endpoint!r}") from e
    if not parts.scheme or not parts.hostname:
        raise InvalidEndpoint(f"Endpoint must be an absolute URL: {endpoint!r}")

    if not subscriber.startswith(("https:", "mailto:")):
        subscriber = "mailto:" + subscriber

    if expiration is None:
        exp = int(time.time() + DEFAULT_VAPID_EXPIRATION.total_seconds())
    else:
        exp = int(expiration.timestamp())

    return VapidClaims(aud=f"{parts.scheme}://{host}", exp=exp, sub=subscriber)


def sign_token(claims: VapidClaims, signing_key: ec.EllipticCurvePrivateKey) -> str:
    """
    Sign claims as an ES256 JWT.

    Args:
        claims: VAPID claims
        signing_key: P-256 private key

    Returns:
        Compact JWT: header.claims.signature (base64url, no padding)

    Raises:
        SigningError: If signing fails
    """
    signing_input = f"{_json_segment(_JWT_HEADER)}.{_json_segment(claims.to_dict())}"
    try:
        der_signature = signing_key.sign(signing_input.encode("ascii"), ec.ECDSA(hashes.SHA256()))
        r, s = decode_dss_signature(der_signature)
    except (ValueError, TypeError) as e:
        raise SigningError(f"Failed to sign VAPID token: {e}") from e

    # JWS uses raw r || s, not DER
    signature = r.to_bytes(P256_COORDINATE_SIZE, "big") + s.to_bytes(P256_COORDINATE_SIZE, "big")
    return f"{signing_input}.{b64url_encode(signature)}"


def verify_token(token: str, public_key: bytes) -> dict[str, Any]:
    """
    Verify an ES256 JWT and return its claims.

    Expiry is not checked; callers compare claims["exp"] themselves.

    Args:
        token: Compact JWT
        public_key: Raw uncompressed P-256 point of the signer

    Returns:
        Claims dict

    Raises:
        SigningError: If the token is malformed or the signature is invalid
    """
    segments = token.split(".")
    if len(segments) != 3:
        raise SigningError(f"Malformed JWT: expected 3 segments, got {len(segments)}")

    try:
        header = json.loads(decode_subscription_key(segments[0]))
        claims = json.loads(decode_subscription_key(segments[1]))
        signature = decode_subscription_key(segments[2])
    except (DecodeError, ValueError) as e:
        raise SigningError("Malformed JWT segment") from e

    if not isinstance(header, dict) or header.get("alg") != VAPID_JWT_ALGORITHM:
        raise SigningError(f"Unsupported JWT algorithm: {header!r}")
    if not isinstance(claims, dict):
        raise SigningError("JWT claims must be a JSON object")
    if len(signature) != 2 * P256_COORDINATE_SIZE:
        raise SigningError(f"ES256 signature must be {2 * P256_COORDINATE_SIZE} bytes, got {len(signature)}")

    try:
        verifier = load_public_key(public_key)
    except InvalidPublicKey as e:
        raise SigningError("Invalid verification key") from e

    der_signature = encode_dss_signature(
        int.from_bytes(signature[:P256_COORDINATE_SIZE], "big"),
        int.from_bytes(signature[P256_COORDINATE_SIZE:], "big"),
    )
    signing_input = f"{segments[0]}.{segments[1]}".encode("ascii")
    try:
        verifier.verify(der_signature, signing_input, ec.ECDSA(hashes.SHA256()))
    except InvalidSignature as e:
        raise SigningError("JWT signature verification failed") from e

    return claims


def vapid_authorization_header(
    endpoint: str,
    subscriber: str,
    public_key: str,
    private_key: str,
    expiration: datetime | None = None,
) -> str:
    """
    Build the VAPID Authorization header value.

    Args:
        endpoint: Push subscription endpoint URL
        subscriber: E-mail address or https: URL
        public_key: VAPID public key (base64, any alphabet/padding)
        private_key: VAPID private key (base64, any alphabet/padding)
        expiration: Token expiry (defaults to now + 12 hours)

    Returns:
        "vapid t=<jwt>, k=<public key>"

    Raises:
        InvalidEndpoint: If the endpoint cannot be parsed
        InvalidKeyFormat: If either key is malformed
        SigningError: If signing fails
    """
    claims = build_claims(endpoint, subscriber, expiration)
    signing_key = signing_key_from_raw(_decode_vapid_key(private_key, "private"))
    token = sign_token(claims, signing_key)
    raw_public_key = _decode_vapid_public_key(public_key)

    _logger.debug("VAPID token signed: aud=%s exp=%d", claims.aud, claims.exp)
    return f"{VAPID_AUTH_SCHEME} t={token}, k={b64url_encode(raw_public_key)}"
