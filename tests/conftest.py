"""Shared test fixtures for webpush_http tests."""

import asyncio
import contextlib
import logging
import os
import secrets
import signal
import socket
import subprocess
import sys
import tempfile
import time
from collections.abc import AsyncIterator, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import IO

import aiohttp
import pytest
import pytest_asyncio
from cryptography.hazmat.primitives.asymmetric import ec

from webpush_http.constants import AUTH_SECRET_SIZE
from webpush_http.core import Options, Subscription, SubscriptionKeys
from webpush_http.ece import public_key_bytes
from webpush_http.headers import b64url_encode
from webpush_http.vapid import generate_vapid_keys

# Enable webpush_http debug logging during tests
logging.getLogger("webpush_http").setLevel(logging.DEBUG)
logging.getLogger("webpush_http").addHandler(logging.StreamHandler())

ROOT_DIR = Path(__file__).resolve().parent.parent

# Subscription captured from Firefox, in both encodings browsers and databases produce
MOZILLA_ENDPOINT = "https://updates.push.services.mozilla.com/wpush/v2/gAAAAA"
URL_ENCODED_P256DH = "BNNL5ZaTfK81qhXOx23-wewhigUeFb632jN6LvRWCFH1ubQr77FE_9qV1FuojuRmHP42zmf34rXgW80OvUVDgTk"
URL_ENCODED_AUTH = "zqbxT6JKstKSY9JKibZLSQ"
STANDARD_ENCODED_P256DH = "BNNL5ZaTfK81qhXOx23+wewhigUeFb632jN6LvRWCFH1ubQr77FE/9qV1FuojuRmHP42zmf34rXgW80OvUVDgTk="
STANDARD_ENCODED_AUTH = "zqbxT6JKstKSY9JKibZLSQ=="

TEST_SUBSCRIBER = "gopher@noreply.com"


# === Key Fixtures ===


@dataclass
class SubscriberKeys:
    """User agent key material: what a browser keeps private plus what it publishes."""

    private_key: bytes
    public_key: bytes
    auth_secret: bytes

    def subscription(self, endpoint: str = MOZILLA_ENDPOINT) -> Subscription:
        return Subscription(
            endpoint=endpoint,
            keys=SubscriptionKeys(
                auth=b64url_encode(self.auth_secret),
                p256dh=b64url_encode(self.public_key),
            ),
        )


def make_subscriber_keys() -> SubscriberKeys:
    """Generate a fresh P-256 subscriber key pair and auth secret."""
    private_key = ec.generate_private_key(ec.SECP256R1())
    return SubscriberKeys(
        private_key=private_key.private_numbers().private_value.to_bytes(32, "big"),
        public_key=public_key_bytes(private_key.public_key()),
        auth_secret=secrets.token_bytes(AUTH_SECRET_SIZE),
    )


@pytest.fixture
def subscriber_keys() -> SubscriberKeys:
    """Fresh subscriber keys for each test."""
    return make_subscriber_keys()


@pytest.fixture
def subscription(subscriber_keys: SubscriberKeys) -> Subscription:
    """Subscription whose private key the test knows (for decryption)."""
    return subscriber_keys.subscription()


@pytest.fixture
def url_encoded_subscription() -> Subscription:
    return Subscription(
        endpoint=MOZILLA_ENDPOINT,
        keys=SubscriptionKeys(auth=URL_ENCODED_AUTH, p256dh=URL_ENCODED_P256DH),
    )


@pytest.fixture
def standard_encoded_subscription() -> Subscription:
    return Subscription(
        endpoint=MOZILLA_ENDPOINT,
        keys=SubscriptionKeys(auth=STANDARD_ENCODED_AUTH, p256dh=STANDARD_ENCODED_P256DH),
    )


@pytest.fixture(scope="session")
def vapid_keys() -> tuple[str, str]:
    """VAPID (private_key, public_key) pair.

    Session-scoped: signing keys are not secret material under test.
    """
    return generate_vapid_keys()


@pytest.fixture
def options(vapid_keys: tuple[str, str]) -> Options:
    """Default options: no topic, no urgency, default record size."""
    private_key, public_key = vapid_keys
    return Options(
        subscriber=TEST_SUBSCRIBER,
        vapid_public_key=public_key,
        vapid_private_key=private_key,
    )


# === Transport Test Utilities ===


@dataclass
class RecordedRequest:
    url: str
    body: bytes
    headers: dict[str, str]


@dataclass
class RecordingTransport:
    """In-memory transport that records every POST and answers with a fixed status."""

    status: int = 201
    requests: list[RecordedRequest] = field(default_factory=list)

    def post(self, url: str, body: bytes, headers: Mapping[str, str]) -> int:
        self.requests.append(RecordedRequest(url=url, body=body, headers=dict(headers)))
        return self.status


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


def token_from_authorization(header: str) -> tuple[str, str]:
    """Split 'vapid t=<jwt>, k=<key>' into (jwt, key)."""
    scheme, _, params = header.partition(" ")
    assert scheme == "vapid"
    token_part, key_part = (p.strip() for p in params.split(","))
    assert token_part.startswith("t=")
    assert key_part.startswith("k=")
    return token_part[2:], key_part[2:]


# === E2E Server Fixtures ===


@dataclass
class E2EServer:
    """Fake push service info with log capture."""

    host: str
    port: int
    subscriber_keys: SubscriberKeys
    _log_file: IO[bytes]

    @property
    def base_url(self) -> str:
        return f"http://{self.host}:{self.port}"

    def subscription(self, path: str = "/push/test-device") -> Subscription:
        return self.subscriber_keys.subscription(endpoint=self.base_url + path)

    def get_logs(self) -> str:
        """Read captured server logs."""
        self._log_file.seek(0)
        return self._log_file.read().decode("utf-8", errors="replace")


def get_free_port() -> int:
    """Get a free port on localhost."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        s.listen(1)
        return s.getsockname()[1]


async def wait_for_server(host: str, port: int, timeout: float = 10.0) -> None:
    """Wait for server to be ready."""
    start = time.time()
    while time.time() - start < timeout:
        try:
            async with aiohttp.ClientSession() as session:
                async with session.get(f"http://{host}:{port}/health") as resp:
                    if resp.status == 200:
                        return
        except (aiohttp.ClientError, OSError):
            pass
        await asyncio.sleep(0.1)
    raise TimeoutError(f"Server not ready after {timeout}s")


# Server module path for granian
TEST_SERVER_MODULE = "tests.e2e_server:app"


@pytest_asyncio.fixture
async def push_service(request: pytest.FixtureRequest) -> AsyncIterator[E2EServer]:
    """Start the fake push service under granian.

    Function-scoped: each test gets its own server with isolated logs.
    Server logs are printed to console after each test.
    """
    keys = make_subscriber_keys()
    port = get_free_port()
    host = "127.0.0.1"

    env = {
        **dict(os.environ),
        "PYTHONPATH": os.pathsep.join(
            filter(None, [str(ROOT_DIR), str(ROOT_DIR / "src"), os.environ.get("PYTHONPATH", "")])
        ),
        "TEST_SUBSCRIBER_PRIVATE_KEY": keys.private_key.hex(),
        "TEST_SUBSCRIBER_AUTH_SECRET": keys.auth_secret.hex(),
    }

    # Note: intentionally not using context manager - file must stay open across yield
    log_file = tempfile.TemporaryFile(mode="w+b")

    # New process group so granian and its workers are killed together
    proc = subprocess.Popen(
        [
            sys.executable,
            "-m",
            "granian",
            TEST_SERVER_MODULE,
            "--interface",
            "asgi",
            "--host",
            host,
            "--port",
            str(port),
            "--workers",
            "1",
            "--log-level",
            "info",
        ],
        cwd=ROOT_DIR,
        env=env,
        stdout=log_file,
        stderr=log_file,
        start_new_session=True,
    )

    def _kill_process_group(sig: int) -> None:
        with contextlib.suppress(ProcessLookupError, OSError):
            os.killpg(os.getpgid(proc.pid), sig)

    server = E2EServer(host=host, port=port, subscriber_keys=keys, _log_file=log_file)
    try:
        await wait_for_server(host, port)
        yield server
    finally:
        _kill_process_group(signal.SIGTERM)
        try:
            proc.wait(timeout=5.0)
        except subprocess.TimeoutExpired:
            _kill_process_group(signal.SIGKILL)
            proc.wait()

        logs = server.get_logs()
        if logs.strip():
            test_name: str = request.node.name  # type: ignore[attr-defined]
            sys.stdout.write(f"\n{'=' * 60}\n")
            sys.stdout.write(f"Server logs for: {test_name}\n")
            sys.stdout.write(f"{'=' * 60}\n")
            sys.stdout.write(logs)
            sys.stdout.write(f"\n{'=' * 60}\n\n")
            sys.stdout.flush()
        log_file.close()
