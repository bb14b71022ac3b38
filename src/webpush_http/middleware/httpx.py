"""
httpx clients for sending Web Push messages.

WebPushClient (sync) and WebPushAsyncClient (async) wrap httpx.Client and
httpx.AsyncClient. Both expose post(url, body, headers), so they also work as
the transport argument of webpush_http.core.send_notification.

Usage:
    with WebPushClient(timeout=httpx.Timeout(10.0)) as client:
        response = client.send(b"hello", subscription, options)

    async with WebPushAsyncClient() as client:
        response = await client.send(b"hello", subscription, options)
"""

import types
from collections.abc import Mapping
from typing import Any
from urllib.parse import urlsplit

import httpx
from typing_extensions import Self

from webpush_http._logging import get_logger
from webpush_http.core import Options, Subscription, prepare_notification, send_notification
from webpush_http.exceptions import TransportError

__all__ = [
    "WebPushAsyncClient",
    "WebPushClient",
]

_logger = get_logger(__name__)


class WebPushClient:
    """Synchronous httpx-backed Web Push sender."""

    def __init__(self, **httpx_kwargs: Any) -> None:
        """
        Args:
            **httpx_kwargs: Additional arguments passed to httpx.Client
        """
        self._httpx_kwargs = httpx_kwargs
        self._client: httpx.Client | None = None

    def __enter__(self) -> Self:
        self._client = httpx.Client(**self._httpx_kwargs)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: types.TracebackType | None,
    ) -> None:
        if self._client:
            self._client.close()
            self._client = None

    def post(self, url: str, body: bytes, headers: Mapping[str, str]) -> httpx.Response:
        """
        POST a prepared record.

        Raises:
            TransportError: If the request fails before a response arrives
        """
        if not self._client:
            raise RuntimeError("Client not initialized. Use 'with' context manager.")

        try:
            return self._client.post(url, content=body, headers=dict(headers))
        except httpx.HTTPError as e:
            _logger.debug("Push request failed: host=%s error=%s", urlsplit(url).netloc, e)
            raise TransportError(f"Push request failed: {e}") from e

    def send(self, message: bytes | str, subscription: Subscription, options: Options) -> httpx.Response:
        """Encrypt and send a push message; return the unread response."""
        response = send_notification(message, subscription, options, self)
        _logger.debug("Push sent: host=%s status=%d", response.url.host, response.status_code)
        return response


class WebPushAsyncClient:
    """Async httpx-backed Web Push sender."""

    def __init__(self, **httpx_kwargs: Any) -> None:
        """
        Args:
            **httpx_kwargs: Additional arguments passed to httpx.AsyncClient
        """
        self._httpx_kwargs = httpx_kwargs
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> Self:
        self._client = httpx.AsyncClient(**self._httpx_kwargs)
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: types.TracebackType | None,
    ) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def post(self, url: str, body: bytes, headers: Mapping[str, str]) -> httpx.Response:
        """
        POST a prepared record.

        Raises:
            TransportError: If the request fails before a response arrives
        """
        if not self._client:
            raise RuntimeError("Client not initialized. Use 'async with' context manager.")

        try:
            return await self._client.post(url, content=body, headers=dict(headers))
        except httpx.HTTPError as e:
            _logger.debug("Push request failed: host=%s error=%s", urlsplit(url).netloc, e)
            raise TransportError(f"Push request failed: {e}") from e

    async def send(self, message: bytes | str, subscription: Subscription, options: Options) -> httpx.Response:
        """Encrypt and send a push message; return the response."""
        notification = prepare_notification(message, subscription, options)
        response = await self.post(notification.endpoint, notification.body, notification.headers)
        _logger.debug("Push sent: host=%s status=%d", response.url.host, response.status_code)
        return response
