"""
aiohttp client session for sending Web Push messages.

Wraps aiohttp.ClientSession and:
- Encrypts payloads for a subscription (aes128gcm)
- Signs VAPID tokens per request
- POSTs the record to the subscription endpoint

Usage:
    async with WebPushClientSession(timeout=aiohttp.ClientTimeout(total=10)) as session:
        async with await session.send(b"hello", subscription, options) as response:
            print(response.status)

Responses are returned unread; status codes are not interpreted.
"""

import asyncio
import types
from collections.abc import Mapping
from typing import Any
from urllib.parse import urlsplit

import aiohttp
from typing_extensions import Self

from webpush_http._logging import get_logger
from webpush_http.core import Options, Subscription, prepare_notification
from webpush_http.exceptions import TransportError

__all__ = [
    "WebPushClientSession",
]

_logger = get_logger(__name__)


class WebPushClientSession:
    """
    aiohttp-backed Web Push sender.

    Each send() runs the full encryption and VAPID pipeline; nothing is cached
    between messages.
    """

    def __init__(self, **aiohttp_kwargs: Any) -> None:
        """
        Initialize Web Push client session.

        Args:
            **aiohttp_kwargs: Additional arguments passed to aiohttp.ClientSession
                (timeout, connector, trace_configs, ...)
        """
        self._session: aiohttp.ClientSession | None = None
        self._aiohttp_kwargs = aiohttp_kwargs

    async def __aenter__(self) -> Self:
        """Async context manager entry."""
        self._session = aiohttp.ClientSession(**self._aiohttp_kwargs)
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: types.TracebackType | None,
    ) -> None:
        """Async context manager exit."""
        if self._session:
            await self._session.close()
            self._session = None

    async def post(
        self,
        url: str,
        body: bytes,
        headers: Mapping[str, str],
        **kwargs: Any,
    ) -> aiohttp.ClientResponse:
        """
        POST a prepared record.

        Args:
            url: Subscription endpoint
            body: Encrypted record
            headers: Push headers
            **kwargs: Additional arguments passed to aiohttp

        Returns:
            aiohttp.ClientResponse

        Raises:
            TransportError: If the request fails or times out before a response arrives
        """
        if not self._session:
            raise RuntimeError("Session not initialized. Use 'async with' context manager.")

        try:
            return await self._session.post(url, data=body, headers=dict(headers), **kwargs)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            _logger.debug("Push request failed: host=%s error=%s", urlsplit(url).netloc, e)
            raise TransportError(f"Push request failed: {e}") from e

    async def send(
        self,
        message: bytes | str,
        subscription: Subscription,
        options: Options,
        **kwargs: Any,
    ) -> aiohttp.ClientResponse:
        """
        Encrypt and send a push message.

        Args:
            message: Payload
            subscription: Target subscription
            options: Per-message configuration
            **kwargs: Additional arguments passed to aiohttp (e.g. timeout)

        Returns:
            aiohttp.ClientResponse
        """
        notification = prepare_notification(message, subscription, options)
        response = await self.post(notification.endpoint, notification.body, notification.headers, **kwargs)
        _logger.debug(
            "Push sent: host=%s body_size=%d status=%d",
            response.url.host,
            len(notification.body),
            response.status,
        )
        return response
