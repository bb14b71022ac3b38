"""
Web Push message encryption (RFC 8291) and VAPID (RFC 8292) for Python.

Encrypts notification payloads into aes128gcm records for a browser
PushSubscription and signs the VAPID token the push service requires.

Usage (sync - httpx):
    from webpush_http import Options, Subscription
    from webpush_http.middleware.httpx import WebPushClient

    options = Options(
        subscriber="ops@example.com",
        vapid_public_key=public_key,
        vapid_private_key=private_key,
        ttl=60,
        urgency="high",
    )
    with WebPushClient() as client:
        response = client.send(b"hello", Subscription.from_dict(sub_json), options)

Usage (async - aiohttp):
    from webpush_http.middleware.aiohttp import WebPushClientSession

    async with WebPushClientSession() as session:
        response = await session.send(b"hello", subscription, options)

Generate VAPID keys once and store them:
    from webpush_http import generate_vapid_keys

    private_key, public_key = generate_vapid_keys()
"""

from webpush_http.constants import DEFAULT_RECORD_SIZE, Urgency
from webpush_http.core import (
    Notification,
    Options,
    Subscription,
    SubscriptionKeys,
    Transport,
    prepare_notification,
    send_notification,
)
from webpush_http.exceptions import (
    DecodeError,
    DecryptionError,
    EnvelopeError,
    InvalidEndpoint,
    InvalidKeyFormat,
    InvalidPublicKey,
    InvalidSubscription,
    KeyDerivationError,
    PayloadTooLarge,
    SigningError,
    TransportError,
    WebPushError,
)
from webpush_http.vapid import generate_vapid_keys

__all__ = [
    # Constants
    "DEFAULT_RECORD_SIZE",
    "Urgency",
    # Core
    "Notification",
    "Options",
    "Subscription",
    "SubscriptionKeys",
    "Transport",
    "generate_vapid_keys",
    "prepare_notification",
    "send_notification",
    # Exceptions
    "DecodeError",
    "DecryptionError",
    "EnvelopeError",
    "InvalidEndpoint",
    "InvalidKeyFormat",
    "InvalidPublicKey",
    "InvalidSubscription",
    "KeyDerivationError",
    "PayloadTooLarge",
    "SigningError",
    "TransportError",
    "WebPushError",
]

__version__ = "0.1.0"
