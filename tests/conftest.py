import os
os.environ.setdefault("LOG_LEVEL", "WARNING")  # houd de testoutput rustig

from typing import Dict, Iterable, Optional

import httpx
import pytest
from starlette.requests import Request


@pytest.fixture
def anyio_backend():
    # Dwing anyio om alleen asyncio te gebruiken (geen Trio nodig)
    return "asyncio"


def build_request(body: bytes, headers: Dict[str, str], chunk_size: int = 64 * 1024) -> Request:
    """A Starlette request whose body arrives in ``chunk_size`` pieces."""
    chunks = [body[i:i + chunk_size] for i in range(0, len(body), chunk_size)] or [b""]
    messages = [
        {"type": "http.request", "body": chunk, "more_body": i < len(chunks) - 1}
        for i, chunk in enumerate(chunks)
    ]

    async def receive():
        if messages:
            return messages.pop(0)
        return {"type": "http.disconnect"}

    scope = {
        "type": "http",
        "method": "POST",
        "path": "/",
        "query_string": b"",
        "headers": [(k.lower().encode("latin-1"), v.encode("latin-1")) for k, v in headers.items()],
    }
    return Request(scope, receive)


@pytest.fixture
def multipart_request():
    """Encode files with httpx and wrap the body in a Starlette request."""

    def _make(
        files: Iterable,
        data: Optional[dict] = None,
        drop_content_length: bool = False,
    ) -> Request:
        req = httpx.Request("POST", "http://testserver/upload", files=list(files), data=data)
        body = req.read()
        headers = {k: v for k, v in req.headers.items()}
        if drop_content_length:
            headers = {k: v for k, v in headers.items() if k.lower() != "content-length"}
        return build_request(body, headers)

    return _make


@pytest.fixture
def json_request():
    def _make(body: bytes, drop_content_length: bool = False) -> Request:
        headers = {"content-type": "application/json"}
        if not drop_content_length:
            headers["content-length"] = str(len(body))
        return build_request(body, headers)

    return _make


@pytest.fixture
def upload_dir(tmp_path):
    d = tmp_path / "uploads"
    d.mkdir()
    return d


PNG_BYTES = (
    b"\x89PNG\r\n\x1a\n"
    b"\x00\x00\x00\rIHDR\x00\x00\x00\x01\x00\x00\x00\x01\x08\x06\x00\x00\x00\x1f\x15\xc4\x89"
    b"\x00\x00\x00\rIDATx\x9cc\xf8\x0f\x00\x00\x01\x01\x00\x05\x18\xd8N"
    b"\x00\x00\x00\x00IEND\xaeB`\x82"
)


@pytest.fixture
def png_bytes():
    return PNG_BYTES
