"""
=============================================================================
HTTPCONTEXT - Typed request/response contexts for raw HTTP exchanges
=============================================================================

Wraps a raw HTTP request/response pair with derived metadata and a
response-shaping surface:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   REQUEST SIDE                      RESPONSE SIDE                   │
    │   ────────────                      ─────────────                   │
    │   proxy-aware protocol/host/ip      header map mirrored to wire    │
    │   URL fields from one parse         cookie jar with signing        │
    │   Accept / Language / Charset       type + charset accessors       │
    │   typed, signed cookies             send(): sniff, ETag, 304       │
    │   Basic auth, subdomain             redirect, auth, send_file      │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    httpcontext/
    ├── __init__.py          # This file - package exports
    ├── config.py            # EnhanceConfig dataclass
    ├── enhance.py           # enhance() entry point, Exchange
    ├── http/                # Transport objects
    │   ├── request.py       # HTTPRequest, RequestParser
    │   ├── response.py      # HTTPResponse, format_http_date
    │   └── mime_types.py    # MIME type lookup
    └── context/             # Derived contexts
        ├── negotiation.py
        ├── headers.py
        ├── cookies.py
        ├── freshness.py
        ├── sniff.py
        ├── request.py       # RequestContext
        └── response.py      # ResponseContext

=============================================================================
"""

from .config import EnhanceConfig
from .enhance import Exchange, enhance
from .context import BACK, Cookie, RequestContext, ResponseContext
from .http import HTTPRequest, HTTPResponse, HTTPParseError, HeadersSentError, parse_request

__version__ = "1.0.0"

__all__ = [
    "enhance",
    "Exchange",
    "EnhanceConfig",
    "RequestContext",
    "ResponseContext",
    "Cookie",
    "BACK",
    "HTTPRequest",
    "HTTPResponse",
    "HTTPParseError",
    "HeadersSentError",
    "parse_request",
]
