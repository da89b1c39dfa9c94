"""
=============================================================================
HTTP TRANSPORT OBJECTS
=============================================================================

The raw request/response pair that the context layer wraps.

    ┌─────────────────────────────────────────────────────────────────────┐
    │ REQUEST (request.py)                                                │
    │ ─────────────────────────────────────────────────────────────────── │
    │ Input:   b"GET /users?id=1 HTTP/1.1\r\nHost: ...\r\n\r\n"          │
    │          or an HTTP/2 header list                                   │
    │ Output:  HTTPRequest(method="GET", target="/users?id=1", ...)       │
    └─────────────────────────────────────────────────────────────────────┘

    ┌─────────────────────────────────────────────────────────────────────┐
    │ RESPONSE (response.py)                                              │
    │ ─────────────────────────────────────────────────────────────────── │
    │ Case-insensitive header table, status line, end(), to_bytes()       │
    └─────────────────────────────────────────────────────────────────────┘

    ┌─────────────────────────────────────────────────────────────────────┐
    │ MIME TYPES (mime_types.py)                                          │
    │ ─────────────────────────────────────────────────────────────────── │
    │ "html" / ".html" / "page.html" → text/html                          │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .request import HTTPRequest, RequestParser, HTTPParseError, parse_request
from .response import HTTPResponse, HeadersSentError, format_http_date, reason_phrase
from .mime_types import lookup as lookup_mime_type, is_text_type

__all__ = [
    # Request parsing
    "HTTPRequest",
    "RequestParser",
    "HTTPParseError",
    "parse_request",

    # Response
    "HTTPResponse",
    "HeadersSentError",
    "format_http_date",
    "reason_phrase",

    # MIME types
    "lookup_mime_type",
    "is_text_type",
]
