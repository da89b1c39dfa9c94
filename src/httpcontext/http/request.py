"""
=============================================================================
HTTP REQUEST (TRANSPORT SIDE)
=============================================================================

Parses raw HTTP/1.1 request bytes into structured HTTPRequest objects and
builds the same objects from HTTP/2 pseudo-header lists.

The HTTPRequest is the raw, borrowed input of the context layer. It holds
exactly what arrived on the wire: method, request-target, version, header
fields, body, the peer address and whether the connection was encrypted.
Everything derived (origin, negotiation, cookies) is computed later by
httpcontext.context.request.RequestContext.

=============================================================================
HTTP REQUEST ANATOMY
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     HTTP/1.1 REQUEST                                │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │    GET /api/users?page=1&limit=10 HTTP/1.1\r\n                      │
    │    ─┬─ ────────────┬──────────────  ────┬────                       │
    │   Method      request-target         Version                        │
    │                                                                      │
    │    Host: example.com\r\n                                             │
    │    Accept: application/json\r\n                                      │
    │    Cookie: sid=s:abc\r\n                                             │
    │    \r\n                                                              │
    │    [body]                                                            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     HTTP/2 REQUEST (header list)                    │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │    :method     GET                                                   │
    │    :scheme     https                                                 │
    │    :authority  example.com          ← replaces the Host header       │
    │    :path       /api/users?page=1                                     │
    │    accept      application/json                                      │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
PARSING CHALLENGES
=============================================================================

1. LINE ENDINGS: HTTP uses CRLF (\r\n), not just LF (\n)

2. CASE SENSITIVITY:
   - Header names are case-INSENSITIVE ("Content-Type" = "content-type")
   - We normalize names to lowercase at parse time

3. REPEATED FIELDS:
   - Most repeated headers fold with ", "
   - Cookie folds with "; " (RFC 9113 section 8.2.3), otherwise the
     cookie pairs would be glued together with a comma

=============================================================================
"""

import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, Optional, Tuple, Union
from urllib.parse import SplitResult, parse_qs, urlsplit, unquote


class HTTPParseError(Exception):
    """
    Raised when an HTTP request cannot be parsed.

    The status_code attribute indicates which HTTP error should be returned:
    - 400: Bad Request (malformed syntax)
    - 405: Method Not Allowed (unknown method)
    - 413: Payload Too Large (request too big)
    - 505: HTTP Version Not Supported
    """

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code  # HTTP status to return


@dataclass
class HTTPRequest:
    """
    Represents one raw inbound request.

    =========================================================================
    ATTRIBUTES
    =========================================================================

        method:         GET, POST, PUT, DELETE, ...
        path:           Decoded path WITHOUT query string ("/api/users")
        target:         Raw request-target as received ("/api/users?page=1")
        version:        "HTTP/1.0", "HTTP/1.1" or "HTTP/2.0"
        headers:        Header fields with LOWERCASE names
        query_params:   "?a=1&a=2" → {"a": ["1", "2"]}
        body:           Raw body bytes
        client_address: (ip, port) of the peer socket
        encrypted:      True when the connection itself is TLS
        raw:            Original bytes (HTTP/1.x only)

    =========================================================================
    """

    method: str
    path: str
    target: str = ""
    version: str = "HTTP/1.1"

    headers: Dict[str, str] = field(default_factory=dict)
    query_params: Dict[str, list[str]] = field(default_factory=dict)
    body: bytes = b""

    client_address: tuple[str, int] = ("", 0)
    encrypted: bool = False
    raw: bytes = b""

    def __post_init__(self):
        if not self.target:
            self.target = self.path or "/"

    @property
    def remote_address(self) -> str:
        """The peer IP as observed on the socket."""
        return self.client_address[0]

    def get_header(self, name: str, default: str = "") -> str:
        """
        Get a header value (case-insensitive lookup).

        Example:
            content_type = request.get_header("Content-Type")
            # Works because headers are stored lowercase
        """
        return self.headers.get(name.lower(), default)

    @classmethod
    def from_pseudo_headers(
        cls,
        header_list: Iterable[Tuple[Union[str, bytes], Union[str, bytes]]],
        body: bytes = b"",
        client_address: tuple[str, int] = ("", 0),
        encrypted: bool = True,
    ) -> "HTTPRequest":
        """
        Build a request from an HTTP/2 header list.

        Pseudo-headers (":method", ":path", ...) fill the request line;
        regular fields become headers. ":authority" is kept as a header so
        host resolution can fall back to it when "host" is absent.

        Args:
            header_list: (name, value) pairs as decoded by an HPACK decoder
            body: Request body bytes
            client_address: Peer (ip, port)
            encrypted: Whether the stream arrived over TLS (h2 vs h2c)

        Returns:
            HTTPRequest with version "HTTP/2.0"

        Raises:
            HTTPParseError: If ":path" is not a valid request-target.
        """
        pseudo: Dict[str, str] = {}
        headers: Dict[str, str] = {}

        for name, value in header_list:
            if isinstance(name, bytes):
                name = name.decode("latin-1")
            if isinstance(value, bytes):
                value = value.decode("latin-1")
            name = name.lower()

            if name.startswith(":"):
                pseudo[name] = value
                if name == ":authority":
                    headers[name] = value
                continue

            _fold_header(headers, name, value)

        target = pseudo.get(":path", "/")
        parsed = _split_target(target)

        return cls(
            method=pseudo.get(":method", "GET").upper(),
            path=unquote(parsed.path) or "/",
            target=target,
            version="HTTP/2.0",
            headers=headers,
            query_params=parse_qs(parsed.query, keep_blank_values=True),
            body=body,
            client_address=client_address,
            encrypted=encrypted or pseudo.get(":scheme") == "https",
        )


def _split_target(target: str) -> SplitResult:
    try:
        return urlsplit(target)
    except ValueError as e:
        # e.g. "http://[::1/x": unbalanced IPv6 brackets
        raise HTTPParseError(f"Invalid request target: {target!r} ({e})")


def _fold_header(headers: Dict[str, str], name: str, value: str) -> None:
    # Per RFC 7230, repeated fields are equivalent to one comma-joined field.
    # Cookie is the exception: its pairs are separated by "; ".
    if name in headers:
        separator = "; " if name == "cookie" else ", "
        headers[name] += separator + value
    else:
        headers[name] = value


class RequestParser:
    """
    Parses raw HTTP/1.x request bytes into HTTPRequest objects.

    ==========================================================================
    PARSER ARCHITECTURE
    ==========================================================================

        Raw Request Bytes
              │
              ▼
        1. Size Check            Too large? → HTTPParseError(413)
        2. Find \r\n\r\n         Not found? → HTTPParseError("Incomplete")
        3. Parse Request Line    Invalid?   → HTTPParseError(400/405/505)
        4. Parse Headers         "Name: Value", names lowercased
        5. Extract Body          Based on Content-Length
        6. Build HTTPRequest
              │
              ▼
        HTTPRequest dataclass

    ==========================================================================
    """

    VALID_METHODS = {
        "GET", "POST", "PUT", "DELETE", "PATCH",
        "HEAD", "OPTIONS", "TRACE", "CONNECT",
    }

    REQUEST_LINE_PATTERN = re.compile(r"^([A-Z]+) ([^ ]+) (HTTP/\d\.\d)$")
    HEADER_PATTERN = re.compile(r"^([^:]+):\s*(.*)$")

    def __init__(self, max_request_size: int = 10 * 1024 * 1024, encrypted: bool = False):
        """
        Initialize the request parser.

        Args:
            max_request_size: Maximum allowed request size in bytes.
            encrypted: Mark parsed requests as arriving over TLS.
        """
        self.max_request_size = max_request_size
        self.encrypted = encrypted

    def parse(
        self,
        data: bytes,
        client_address: tuple[str, int] = ("", 0)
    ) -> HTTPRequest:
        """
        Parse raw HTTP request data into an HTTPRequest object.

        Args:
            data: Raw HTTP request bytes from socket.
            client_address: Client's (ip, port) tuple.

        Returns:
            Parsed HTTPRequest object.

        Raises:
            HTTPParseError: If the request is malformed.
        """
        if len(data) > self.max_request_size:
            raise HTTPParseError(
                f"Request too large: {len(data)} bytes",
                status_code=413
            )

        header_end = data.find(b"\r\n\r\n")
        if header_end == -1:
            raise HTTPParseError("Incomplete request: no header terminator")

        # latin-1 never fails: every byte maps to one code point
        header_section = data[:header_end].decode("latin-1")
        body = data[header_end + 4:]

        lines = header_section.split("\r\n")
        method, target, version = self._parse_request_line(lines[0])
        headers = self._parse_headers(lines[1:])

        try:
            content_length = int(headers.get("content-length", 0))
        except ValueError:
            raise HTTPParseError(f"Invalid Content-Length: {headers['content-length']!r}")

        if len(body) < content_length:
            raise HTTPParseError(
                f"Incomplete body: expected {content_length} bytes, got {len(body)}"
            )

        parsed = _split_target(target)

        return HTTPRequest(
            method=method,
            path=unquote(parsed.path) or "/",
            target=target,
            version=version,
            headers=headers,
            query_params=parse_qs(parsed.query, keep_blank_values=True),
            body=body[:content_length],
            client_address=client_address,
            encrypted=self.encrypted,
            raw=data,
        )

    def _parse_request_line(self, line: str) -> tuple[str, str, str]:
        """
        Parse the HTTP request line.

            METHOD SP REQUEST-TARGET SP HTTP-VERSION

        Returns:
            Tuple of (method, target, version)

        Raises:
            HTTPParseError: If line is malformed
        """
        match = self.REQUEST_LINE_PATTERN.match(line)
        if not match:
            raise HTTPParseError(f"Invalid request line: {line}")

        method, target, version = match.groups()

        if method not in self.VALID_METHODS:
            raise HTTPParseError(f"Invalid method: {method}", status_code=405)

        if version not in ("HTTP/1.0", "HTTP/1.1"):
            raise HTTPParseError(
                f"Unsupported HTTP version: {version}",
                status_code=505
            )

        # Path traversal: "GET /../../../etc/passwd HTTP/1.1"
        if ".." in unquote(_split_target(target).path):
            raise HTTPParseError("Invalid path: contains ..", status_code=400)

        return method, target, version

    def _parse_headers(self, lines: list[str]) -> Dict[str, str]:
        """
        Parse HTTP header lines into a dictionary with lowercase names.

        Handles obsolete line folding (continuation lines starting with
        whitespace) and repeated fields.
        """
        headers: Dict[str, str] = {}
        current_name: Optional[str] = None

        for line in lines:
            if not line:
                continue

            if line[0] in (" ", "\t"):
                if current_name is not None:
                    headers[current_name] += " " + line.strip()
                continue

            match = self.HEADER_PATTERN.match(line)
            if not match:
                continue  # lenient: skip malformed lines

            name, value = match.groups()
            current_name = name.strip().lower()
            _fold_header(headers, current_name, value.strip())

        return headers


# =============================================================================
# CONVENIENCE FUNCTION
# =============================================================================

def parse_request(
    data: bytes,
    client_address: tuple[str, int] = ("", 0),
    max_size: int = 10 * 1024 * 1024,
    encrypted: bool = False,
) -> HTTPRequest:
    """
    Convenience function to parse an HTTP request.

    Creates a RequestParser instance and parses the data in one call.
    """
    parser = RequestParser(max_request_size=max_size, encrypted=encrypted)
    return parser.parse(data, client_address)
