"""
=============================================================================
HTTP RESPONSE (TRANSPORT SIDE)
=============================================================================

The raw outbound response that the context layer writes into.

This object plays the role of the "transport" in the enhancement design:
it owns the header table, the status line and the body, and it knows how
to serialize itself to HTTP/1.1 bytes. It knows nothing about cookies,
negotiation or content sniffing. Those live in httpcontext.context and
reach this object only through its small write API.

=============================================================================
WRITE API USED BY THE CONTEXT LAYER
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     TRANSPORT RESPONSE SURFACE                      │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   set_header(name, value)     value may be str or list[str]         │
    │   get_header(name)            case-insensitive lookup               │
    │   has_header(name)                                                   │
    │   remove_header(name)                                                │
    │   header_items()              (wire name, value) pairs              │
    │                                                                      │
    │   status / reason             status line components                │
    │                                                                      │
    │   end(body, encoding)         finalize, no more writes              │
    │   to_bytes()                  serialize for socket.sendall()        │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Header names are stored case-insensitively but the wire spelling of the
LAST write is kept, so "x-powered-by" written as "X-Powered-By" goes out
as "X-Powered-By".

=============================================================================
MULTI-VALUE HEADERS
=============================================================================

Most headers may be folded into one comma separated line. Set-Cookie may
NOT (RFC 6265 section 3): every cookie needs its own line.

    set_header("Set-Cookie", ["a=1", "b=2"])

        Set-Cookie: a=1\r\n
        Set-Cookie: b=2\r\n

=============================================================================
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from http import HTTPStatus
from typing import Optional, Dict, Union, Iterator, Tuple


HeaderValue = Union[str, list[str]]


class HeadersSentError(RuntimeError):
    """
    Raised when a response is written to after it has been finalized.

    Once end() is called the status line and headers are considered
    flushed; any later mutation would be silently lost on a real socket.
    """

    def __init__(self, message: str = "Cannot modify a response after it has ended"):
        super().__init__(message)


def reason_phrase(status: int) -> str:
    """
    Get the standard reason phrase for a status code.

    Returns an empty string for codes without a registered phrase.
    """
    try:
        return HTTPStatus(status).phrase
    except ValueError:
        return ""


@dataclass
class HTTPResponse:
    """
    Represents an HTTP response to be sent to the client.

    =========================================================================
    RESPONSE LIFECYCLE
    =========================================================================

        Context writes           end()                  Socket sends
        set_header(...)  ─────►  body frozen   ─────►   to_bytes()
        status = 404             finished=True

    =========================================================================
    """

    status: int = 200                        # HTTP status code
    reason: Optional[str] = None             # Reason phrase (None = standard)
    body: bytes = b""                        # Response body
    version: str = "HTTP/1.1"                # HTTP version
    finished: bool = False                   # True once end() has run

    # lowercase name → (wire name, value)
    _headers: Dict[str, Tuple[str, HeaderValue]] = field(default_factory=dict, repr=False)

    # =========================================================================
    # STATUS LINE
    # =========================================================================

    @property
    def status_line(self) -> str:
        """
        Get the HTTP status line.

        Format: HTTP-VERSION SP STATUS-CODE SP REASON-PHRASE
        Example: "HTTP/1.1 200 OK"

        An explicit empty reason is honored (HTTP/2 has no reason phrase).
        """
        phrase = reason_phrase(self.status) if self.reason is None else self.reason
        return f"{self.version} {self.status} {phrase}".rstrip()

    # =========================================================================
    # HEADER TABLE
    # =========================================================================

    def _check_writable(self) -> None:
        if self.finished:
            raise HeadersSentError()

    def set_header(self, name: str, value: HeaderValue) -> "HTTPResponse":
        """
        Set a response header, replacing any previous value.

        Args:
            name: Header name (looked up case-insensitively, sent as given)
            value: Header value, or a list for repeated header lines

        Returns:
            Self for method chaining
        """
        self._check_writable()
        if isinstance(value, list):
            value = [str(v) for v in value]
        else:
            value = str(value)
        self._headers[name.lower()] = (name, value)
        return self

    def get_header(self, name: str, default: Optional[HeaderValue] = None) -> Optional[HeaderValue]:
        """Get a header value (case-insensitive lookup)."""
        entry = self._headers.get(name.lower())
        return entry[1] if entry else default

    def has_header(self, name: str) -> bool:
        return name.lower() in self._headers

    def remove_header(self, name: str) -> "HTTPResponse":
        """Remove a header if present. Missing headers are ignored."""
        self._check_writable()
        self._headers.pop(name.lower(), None)
        return self

    def header_items(self) -> Iterator[Tuple[str, HeaderValue]]:
        """Iterate over (wire name, value) pairs in insertion order."""
        return iter(list(self._headers.values()))

    @property
    def headers(self) -> Dict[str, HeaderValue]:
        """Snapshot of the header table keyed by lowercase name."""
        return {key: value for key, (_, value) in self._headers.items()}

    # =========================================================================
    # FINALIZATION
    # =========================================================================

    def end(self, body: Union[str, bytes, None] = None, encoding: Optional[str] = None) -> None:
        """
        Finalize the response.

        After this call the header table and status line are frozen.

        Args:
            body: Optional payload. Strings are encoded with `encoding`.
            encoding: Text encoding hint (default UTF-8)

        Raises:
            HeadersSentError: If the response has already ended.
        """
        self._check_writable()
        if isinstance(body, str):
            body = body.encode(encoding or "utf-8")
        self.body = body or b""
        self.finished = True

    def to_bytes(self) -> bytes:
        """
        Serialize the response to bytes for sending over socket.

        =====================================================================
        SERIALIZATION FORMAT
        =====================================================================

            HTTP/1.1 200 OK\r\n          ← Status line
            Content-Type: text/html\r\n
            Content-Length: 27\r\n       ← Auto-calculated if missing
            Set-Cookie: a=s:1\r\n        ← One line per list item
            Set-Cookie: b=s:2\r\n
            \r\n                         ← Empty line (separator)
            <h1>Hello</h1>               ← Body bytes

        1xx, 204 and 304 responses never get an automatic Content-Length
        (RFC 7230 section 3.3.2).

        =====================================================================
        """
        lines = [self.status_line]

        for name, value in self.header_items():
            if isinstance(value, list):
                lines.extend(f"{name}: {item}" for item in value)
            else:
                lines.append(f"{name}: {value}")

        bodiless = self.status < 200 or self.status in (204, 304)
        if not bodiless and not self.has_header("content-length"):
            lines.append(f"Content-Length: {len(self.body)}")

        lines.append("")
        header_bytes = "\r\n".join(lines).encode("latin-1", errors="replace") + b"\r\n"

        return header_bytes + (b"" if bodiless else self.body)


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================

def format_http_date(dt: datetime) -> str:
    """
    Format a datetime as an HTTP-date (RFC 7231).

    HTTP-date uses a specific format for the Date header and other
    date-related headers (Last-Modified, Expires, etc.).

    Format: Day, DD Mon YYYY HH:MM:SS GMT
    Example: Wed, 01 Jan 2026 12:00:00 GMT

    Important: HTTP dates are ALWAYS in GMT (UTC), never local time.
    Aware datetimes are converted to UTC first; naive ones are assumed UTC.

    Args:
        dt: Datetime to format.

    Returns:
        Formatted date string.
    """
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc)

    days = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
    months = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
              "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]

    return (
        f"{days[dt.weekday()]}, "
        f"{dt.day:02d} {months[dt.month - 1]} {dt.year:04d} "
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d} GMT"
    )
