"""
High-level notification preparation for Web Push.

This module ties the encryption and VAPID pipelines together:
- Subscription key decoding (either base64 alphabet)
- Record encryption (aes128gcm)
- VAPID Authorization and push headers
- Handing body + headers to a transport

Usage (any transport):
    from webpush_http.core import Options, Subscription, prepare_notification

    notification = prepare_notification(b"hello", Subscription.from_dict(sub_json), options)
    response = httpx.post(notification.endpoint, content=notification.body, headers=notification.headers)

Usage (bundled clients):
    from webpush_http.middleware.httpx import WebPushClient

    with WebPushClient() as client:
        response = client.send(b"hello", subscription, options)
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Protocol, TypeVar
from urllib.parse import urlsplit

from webpush_http._logging import get_logger
from webpush_http.constants import DEFAULT_RECORD_SIZE, Urgency
from webpush_http.ece import encrypt
from webpush_http.exceptions import InvalidSubscription
from webpush_http.headers import build_headers, decode_subscription_key
from webpush_http.vapid import vapid_authorization_header

__all__ = [
    "Notification",
    "Options",
    "Subscription",
    "SubscriptionKeys",
    "Transport",
    "prepare_notification",
    "send_notification",
]

_logger = get_logger(__name__)

ResponseT = TypeVar("ResponseT", covariant=True)


@dataclass(frozen=True)
class SubscriptionKeys:
    """Base64 values from PushSubscription.getKey()."""

    auth: str
    p256dh: str


@dataclass(frozen=True)
class Subscription:
    """A PushSubscription as supplied by the caller."""

    endpoint: str
    keys: SubscriptionKeys

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Subscription:
        """
        Build from PushSubscription.toJSON() output.

        Args:
            data: {"endpoint": ..., "keys": {"p256dh": ..., "auth": ...}}

        Returns:
            Subscription

        Raises:
            InvalidSubscription: If a required field is missing or not a string
        """
        try:
            endpoint = data["endpoint"]
            keys = data["keys"]
            auth = keys["auth"]
            p256dh = keys["p256dh"]
        except (KeyError, TypeError) as e:
            raise InvalidSubscription(f"Subscription missing field: {e}") from e

        for name, value in (("endpoint", endpoint), ("auth", auth), ("p256dh", p256dh)):
            if not isinstance(value, str) or not value:
                raise InvalidSubscription(f"Subscription field {name!r} must be a non-empty string")

        return cls(endpoint=endpoint, keys=SubscriptionKeys(auth=auth, p256dh=p256dh))


@dataclass(frozen=True)
class Options:
    """Per-message configuration."""

    subscriber: str
    """Sub in VAPID JWT: e-mail address or https: URL."""

    vapid_public_key: str
    """VAPID public key, sent in the Authorization header."""

    vapid_private_key: str
    """VAPID private key, used to sign the JWT."""

    record_size: int = DEFAULT_RECORD_SIZE
    """Record size limit (rs)."""

    ttl: int = 0
    """Seconds the push service retains an undelivered message."""

    topic: str | None = None
    """Collapses pending messages with the same topic."""

    urgency: Urgency | str | None = None
    """very-low, low, normal or high; anything else is omitted."""

    vapid_expiration: datetime | None = field(default=None)
    """JWT expiry (defaults to call time + 12 hours)."""

    def __post_init__(self) -> None:
        if self.record_size <= 0:
            raise ValueError(f"record_size must be positive, got {self.record_size}")
        if self.ttl < 0:
            raise ValueError(f"ttl must be non-negative, got {self.ttl}")


@dataclass(frozen=True)
class Notification:
    """Encrypted request ready for a transport."""

    endpoint: str
    body: bytes
    headers: dict[str, str]


class Transport(Protocol[ResponseT]):
    """Anything that can POST raw bytes with headers."""

    def post(self, url: str, body: bytes, headers: Mapping[str, str]) -> ResponseT:
        """POST body to url; return the transport's response unchanged."""
        ...


def prepare_notification(
    message: bytes | str,
    subscription: Subscription,
    options: Options,
) -> Notification:
    """
    Encrypt a message and build its request headers.

    Args:
        message: Payload (str is UTF-8 encoded)
        subscription: Target subscription
        options: Per-message configuration

    Returns:
        Notification with endpoint, record body and headers

    Raises:
        WebPushError: Any encryption, key or VAPID failure; nothing partial is returned
    """
    if isinstance(message, str):
        message = message.encode("utf-8")

    auth_secret = decode_subscription_key(subscription.keys.auth)
    subscriber_public_key = decode_subscription_key(subscription.keys.p256dh)

    body = encrypt(message, subscriber_public_key, auth_secret, options.record_size)

    authorization = vapid_authorization_header(
        subscription.endpoint,
        options.subscriber,
        options.vapid_public_key,
        options.vapid_private_key,
        options.vapid_expiration,
    )
    headers = build_headers(
        len(body),
        options.ttl,
        authorization,
        topic=options.topic,
        urgency=options.urgency,
    )

    return Notification(endpoint=subscription.endpoint, body=body, headers=headers)


def send_notification(
    message: bytes | str,
    subscription: Subscription,
    options: Options,
    transport: Transport[ResponseT],
) -> ResponseT:
    """
    Prepare a notification and POST it through a transport.

    No retries; the transport's result is returned as-is.

    Args:
        message: Payload
        subscription: Target subscription
        options: Per-message configuration
        transport: Object with post(url, body, headers)

    Returns:
        Whatever transport.post returns
    """
    notification = prepare_notification(message, subscription, options)
    _logger.debug(
        "Sending notification: host=%s body_size=%d headers=%s",
        urlsplit(notification.endpoint).netloc,
        len(notification.body),
        sorted(notification.headers),
    )
    return transport.post(notification.endpoint, notification.body, notification.headers)
