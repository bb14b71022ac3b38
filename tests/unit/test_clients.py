"""Unit tests for client lifecycle guards and transport timeouts.

Sending is covered end to end in tests/test_e2e.py; these only check the
behavior that needs no push service.
"""

import asyncio
from collections.abc import AsyncIterator

import aiohttp
import pytest
import pytest_asyncio

from webpush_http.core import Options, Subscription
from webpush_http.exceptions import TransportError
from webpush_http.middleware.aiohttp import WebPushClientSession
from webpush_http.middleware.httpx import WebPushAsyncClient, WebPushClient


@pytest_asyncio.fixture
async def silent_endpoint() -> AsyncIterator[str]:
    """Endpoint that accepts connections and never answers."""
    release = asyncio.Event()

    async def hold(_reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        await release.wait()
        writer.close()

    server = await asyncio.start_server(hold, "127.0.0.1", 0)
    port = server.sockets[0].getsockname()[1]
    try:
        yield f"http://127.0.0.1:{port}/push/x"
    finally:
        release.set()
        server.close()
        await server.wait_closed()


class TestAiohttpSession:
    async def test_post_outside_context_fails(self) -> None:
        session = WebPushClientSession()
        with pytest.raises(RuntimeError, match="async with"):
            await session.post("https://push.example.net/x", b"", {})

    async def test_send_outside_context_fails(self, subscription: Subscription, options: Options) -> None:
        session = WebPushClientSession()
        with pytest.raises(RuntimeError, match="not initialized"):
            await session.send(b"hi", subscription, options)

    async def test_session_closed_on_exit(self) -> None:
        session = WebPushClientSession()
        async with session:
            pass
        with pytest.raises(RuntimeError):
            await session.post("https://push.example.net/x", b"", {})


class TestHttpxClients:
    def test_sync_post_outside_context_fails(self) -> None:
        client = WebPushClient()
        with pytest.raises(RuntimeError, match="'with'"):
            client.post("https://push.example.net/x", b"", {})

    def test_sync_send_outside_context_fails(self, subscription: Subscription, options: Options) -> None:
        with pytest.raises(RuntimeError, match="not initialized"):
            WebPushClient().send(b"hi", subscription, options)

    async def test_async_post_outside_context_fails(self) -> None:
        client = WebPushAsyncClient()
        with pytest.raises(RuntimeError, match="async with"):
            await client.post("https://push.example.net/x", b"", {})

    async def test_async_client_closed_on_exit(self) -> None:
        client = WebPushAsyncClient()
        async with client:
            pass
        with pytest.raises(RuntimeError):
            await client.post("https://push.example.net/x", b"", {})


class TestTimeouts:
    """Caller deadlines surface as TransportError for every sender."""

    async def test_aiohttp_total_timeout(self, silent_endpoint: str) -> None:
        async with WebPushClientSession(timeout=aiohttp.ClientTimeout(total=0.3)) as session:
            with pytest.raises(TransportError):
                await session.post(silent_endpoint, b"record", {"TTL": "0"})

    async def test_aiohttp_per_request_timeout(self, silent_endpoint: str) -> None:
        async with WebPushClientSession() as session:
            with pytest.raises(TransportError):
                await session.post(silent_endpoint, b"record", {}, timeout=aiohttp.ClientTimeout(total=0.3))

    async def test_httpx_async_timeout(self, silent_endpoint: str) -> None:
        async with WebPushAsyncClient(timeout=0.3) as client:
            with pytest.raises(TransportError):
                await client.post(silent_endpoint, b"record", {"TTL": "0"})
