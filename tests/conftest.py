"""
pytest configuration and fixtures.
"""

from typing import Callable, Optional

import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from httpcontext import EnhanceConfig, Exchange, enhance
from httpcontext.http import HTTPRequest, HTTPResponse, parse_request


CLIENT_ADDRESS = ("198.51.100.7", 52144)


def build_raw_request(
    method: str = "GET",
    target: str = "/",
    headers: Optional[dict] = None,
    body: bytes = b"",
    version: str = "HTTP/1.1",
) -> bytes:
    """Assemble raw HTTP/1.x request bytes."""
    headers = dict(headers or {})
    headers.setdefault("Host", "example.com")
    if body:
        headers.setdefault("Content-Length", str(len(body)))

    lines = [f"{method} {target} {version}"]
    lines.extend(f"{name}: {value}" for name, value in headers.items())
    return ("\r\n".join(lines) + "\r\n\r\n").encode("latin-1") + body


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample HTTP GET request."""
    return (
        b"GET /api/users?page=1&limit=10 HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"User-Agent: pytest\r\n"
        b"Accept: application/json, text/html;q=0.9, */*;q=0.5\r\n"
        b"Accept-Language: en-US, fr;q=0.8\r\n"
        b"Cookie: theme=s:dark; prefs=j:%7B%22a%22%3A1%7D\r\n"
        b"Connection: keep-alive\r\n"
        b"\r\n"
    )


@pytest.fixture
def sample_post_request() -> bytes:
    """Sample HTTP POST request with JSON body."""
    body = b'{"name": "John", "email": "john@example.com"}'
    return build_raw_request(
        "POST",
        "/api/users",
        {"Content-Type": "application/json; charset=utf-8", "Connection": "close"},
        body,
    )


@pytest.fixture
def raw_request() -> Callable[..., bytes]:
    """Factory for raw request bytes."""
    return build_raw_request


@pytest.fixture
def config() -> EnhanceConfig:
    """Default test configuration."""
    return EnhanceConfig(domain="example.com", cookie_secret="test-secret", jsonp=True)


@pytest.fixture
def make_exchange() -> Callable[..., Exchange]:
    """
    Factory: raw request bytes (or an HTTPRequest) + options → Exchange.

    Usage:
        req, res = make_exchange(raw, domain="example.com")
    """
    def _make(
        raw=None,
        encrypted: bool = False,
        response: Optional[HTTPResponse] = None,
        **options,
    ) -> Exchange:
        if raw is None:
            raw = build_raw_request()
        if isinstance(raw, HTTPRequest):
            request = raw
        else:
            request = parse_request(raw, CLIENT_ADDRESS, encrypted=encrypted)
        return enhance(**options)(request, response or HTTPResponse())

    return _make
