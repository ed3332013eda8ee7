import json
import os
from urllib.parse import urlencode

# Minimal values for tests
os.environ.setdefault("SESSION_SECRET", "test-secret")
os.environ.setdefault("ENVIRONMENT", "test")

from httpx import ASGITransport
from httpx import AsyncClient
import pytest
from starlette.requests import Request
from starlette.responses import PlainTextResponse

from csrfguard.app import app
from csrfguard.guard import Guard


# ---- HTTP client bound to the ASGI app ----
@pytest.fixture
async def client():
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac


# ---- BeautifulSoup helper ----
@pytest.fixture
def soup():
    from bs4 import BeautifulSoup

    return lambda html: BeautifulSoup(html, "html.parser")


@pytest.fixture
def storage():
    return {}


@pytest.fixture
def guard(storage):
    return Guard(storage, prefix="csrf")


@pytest.fixture
def make_request():
    """Builds a bare Starlette request carrying a form (or JSON) body."""

    def _make(method="GET", form=None, json_body=None, path="/", raw=None, content_type=None):
        if raw is not None:
            body = raw
            content_type = (content_type or "application/octet-stream").encode()
        elif json_body is not None:
            body = json.dumps(json_body).encode()
            content_type = b"application/json"
        else:
            body = urlencode(form or {}).encode()
            content_type = b"application/x-www-form-urlencoded"

        scope = {
            "type": "http",
            "method": method,
            "path": path,
            "query_string": b"",
            "headers": [(b"content-type", content_type), (b"host", b"testserver")],
        }

        async def receive():
            return {"type": "http.request", "body": body, "more_body": False}

        return Request(scope, receive)

    return _make


@pytest.fixture
def call_next():
    """Downstream handler that records the request it received."""
    seen = []

    async def _call_next(request):
        seen.append(request)
        return PlainTextResponse("ok")

    _call_next.seen = seen
    return _call_next
