"""Test fixtures for msg-to-json-api unit tests."""

from collections.abc import AsyncIterator
from dataclasses import dataclass

import pytest
from fastapi import Request
from fastapi.testclient import TestClient

from msgjson.api.convert import converter_pool, get_converter
from msgjson.core.lifespan import State
from msgjson.main import app

BOUNDARY = "msgjson-test-boundary"
FORM_CONTENT_TYPE = f"multipart/form-data; boundary={BOUNDARY}"
CONVERT_URL = "/api/msg_to_json"


# -----------------------------------------------------------------------------
# Multipart helpers
# -----------------------------------------------------------------------------


@dataclass
class FormField:
    """One multipart section to encode."""

    name: str
    data: bytes = b""
    content_type: str | None = None
    filename: str | None = None


def build_multipart(fields: list[FormField], boundary: str = BOUNDARY) -> bytes:
    """Encode fields as a multipart/form-data body, closing delimiter included."""
    body = bytearray()
    for item in fields:
        disposition = f'form-data; name="{item.name}"'
        if item.filename is not None:
            disposition += f'; filename="{item.filename}"'
        body += f"--{boundary}\r\n".encode()
        body += f"Content-Disposition: {disposition}\r\n".encode()
        if item.content_type is not None:
            body += f"Content-Type: {item.content_type}\r\n".encode()
        body += b"\r\n" + item.data + b"\r\n"
    body += f"--{boundary}--\r\n".encode()
    return bytes(body)


async def body_stream(body: bytes, chunk_size: int = 1024) -> AsyncIterator[bytes]:
    """Yield a body the way the server does: in chunks, then an empty chunk."""
    for offset in range(0, len(body), chunk_size):
        yield body[offset : offset + chunk_size]
    yield b""


# -----------------------------------------------------------------------------
# Starlette request builder
# -----------------------------------------------------------------------------


def make_request(
    body: bytes = b"",
    headers: dict[str, str] | None = None,
    method: str = "POST",
    path: str = CONVERT_URL,
) -> Request:
    """A real ``Request`` whose body arrives as a single ASGI message."""
    scope = {
        "type": "http",
        "method": method,
        "path": path,
        "query_string": b"",
        "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
    }
    messages = [{"type": "http.request", "body": body, "more_body": False}]

    async def receive() -> dict:
        return messages.pop(0) if messages else {"type": "http.disconnect"}

    return Request(scope, receive)


def make_upload_request(fields: list[FormField], headers: dict[str, str] | None = None) -> Request:
    body = build_multipart(fields)
    all_headers = {"content-type": FORM_CONTENT_TYPE, "content-length": str(len(body))}
    all_headers.update(headers or {})
    return make_request(body, all_headers)


# -----------------------------------------------------------------------------
# Fixtures
# -----------------------------------------------------------------------------


@pytest.fixture
def test_state() -> State:
    """Create a test state container."""
    return State()


@pytest.fixture
def fake_converter():
    """Deterministic stand-in for the .msg parser."""
    calls: list[bytes] = []

    def _convert(data: bytes) -> str:
        calls.append(data)
        return '{"subject": "%s", "size": %d}' % (data[:8].hex(), len(data))

    _convert.calls = calls  # type: ignore[attr-defined]
    return _convert


@pytest.fixture
def client(fake_converter):
    """Client for the application with the parser swapped for ``fake_converter``.

    The lifespan is not entered, so conversion runs on a worker thread.
    """
    app.dependency_overrides[get_converter] = lambda: fake_converter
    app.dependency_overrides[converter_pool] = lambda: None
    yield TestClient(app)
    app.dependency_overrides.clear()
