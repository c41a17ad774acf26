import asyncio
from urllib.parse import unquote

import httpx
import pytest
from fastapi.testclient import TestClient

from app import create_app
from core.config import Config


class RecordingLogger:
    """RequestLogger that keeps every call for assertions."""

    def __init__(self):
        self.requests = []
        self.errors = []

    def log_request(self, method, path, status):
        self.requests.append((method, path, status))

    def log_error(self, route, status, message):
        self.errors.append((route, status, message))


class UpstreamStub:
    """Callable for httpx.MockTransport that records every upstream request."""

    def __init__(self, handler):
        self._handler = handler
        self.calls = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        return self._handler(request)


def upstream_response(status_code=200, headers=None, body=b""):
    """Build an unread upstream response, as a real transport would return it."""
    return httpx.Response(status_code, headers=headers or {}, stream=httpx.ByteStream(body))


@pytest.fixture
def recording_logger():
    return RecordingLogger()


@pytest.fixture
def make_client(recording_logger):
    """Factory returning (TestClient, UpstreamStub) for a given upstream handler."""
    clients = []

    def _make(handler, config=None):
        stub = UpstreamStub(handler)
        app = create_app(
            config or Config(),
            recording_logger,
            transport=httpx.MockTransport(stub),
        )
        client = TestClient(app)
        client.__enter__()
        clients.append(client)
        return client, stub

    yield _make

    for client in clients:
        client.__exit__(None, None, None)


@pytest.fixture
def unreachable():
    """Upstream handler that must never be invoked."""

    def _handler(request):
        raise AssertionError(f"unexpected upstream call to {request.url}")

    return _handler


async def send_raw_path(app, raw_path, method="GET"):
    """Call the ASGI app with a path that is not normalized by any client.

    Returns (status, headers, body). Runs the app lifespan around the call.
    """
    path, _, query = raw_path.partition("?")
    scope = {
        "type": "http",
        "asgi": {"version": "3.0", "spec_version": "2.4"},
        "http_version": "1.1",
        "method": method,
        "scheme": "http",
        "path": unquote(path),
        "raw_path": path.encode("latin-1"),
        "query_string": query.encode("latin-1"),
        "root_path": "",
        "headers": [(b"host", b"testserver")],
        "client": ("127.0.0.1", 50000),
        "server": ("testserver", 80),
    }
    request_sent = False
    disconnected = asyncio.Event()
    messages = []

    async def receive():
        nonlocal request_sent
        if not request_sent:
            request_sent = True
            return {"type": "http.request", "body": b"", "more_body": False}
        await disconnected.wait()
        return {"type": "http.disconnect"}

    async def send(message):
        messages.append(message)

    async with app.router.lifespan_context(app):
        await app(scope, receive, send)

    start = next(m for m in messages if m["type"] == "http.response.start")
    headers = {k.decode("latin-1"): v.decode("latin-1") for k, v in start["headers"]}
    body = b"".join(m.get("body", b"") for m in messages if m["type"] == "http.response.body")
    return start["status"], headers, body
