"""
=============================================================================
HEADER UTILITIES AND THE HEADER MUTATION SURFACE
=============================================================================

Shared helpers used by both contexts, plus HeaderMap: the only path by
which response headers reach the transport.

=============================================================================
HEADERMAP: WRITE-THROUGH MAPPING
=============================================================================

    res.headers.set("x-powered-by", "httpcontext")
         │
         ├──► internal table   {"x-powered-by": "httpcontext"}
         │      (answers get / in / iteration for this exchange)
         │
         └──► transport        set_header("X-Powered-By", "httpcontext")
                (capitalized when configured, datetime → HTTP-date)

Reads are plain Mapping lookups (case-insensitive). Mutation only goes
through set / append / delete, so every write is mirrored exactly once.

=============================================================================
CACHE-CONTROL GRAMMAR
=============================================================================

    "no-cache"           → None
    "max-age=3600"       → 3600
    "private, max-age=5" → 5
    "no-store"           → "no-store"   (raw string otherwise)

=============================================================================
"""

import logging
import re
from collections.abc import Mapping
from datetime import datetime
from typing import Any, Iterator, Optional, Union

from ..http.response import HTTPResponse, format_http_date


logger = logging.getLogger(__name__)

MAX_AGE_PATTERN = re.compile(r"max-age=(\d+)", re.IGNORECASE)


def capitalize_header(name: str) -> str:
    """
    Title-case a header name on "-" boundaries.

        >>> capitalize_header("x-powered-by")
        'X-Powered-By'
        >>> capitalize_header("etag")
        'Etag'
    """
    return "-".join(part[:1].upper() + part[1:] for part in name.split("-"))


def parse_cache_control(value: Optional[str]) -> Union[int, str, None]:
    """
    Parse a Cache-Control value.

    Returns:
        None for missing or "no-cache", the max-age in seconds when a
        max-age directive is present, otherwise the raw string.
    """
    if not value or value.strip().lower() == "no-cache":
        return None

    match = MAX_AGE_PATTERN.search(value)
    if match:
        return int(match.group(1))
    return value


def format_cache_control(value: Any) -> str:
    """
    Build a Cache-Control value from a user-facing setting.

        None / "" / False  → "no-cache"
        0, 60, "60"        → "max-age=0", "max-age=60"
        "no-store"         → "no-store"
    """
    if value is None or value is False or value == "":
        return "no-cache"

    try:
        seconds = int(value)
    except (TypeError, ValueError):
        return str(value)
    return f"max-age={seconds}"


def to_wire_value(value: Any) -> Union[str, list[str]]:
    """Convert a header value to its on-the-wire string form."""
    if isinstance(value, datetime):
        return format_http_date(value)
    if isinstance(value, (list, tuple)):
        return [str(to_wire_value(v)) for v in value]
    return str(value)


class HeaderMap(Mapping):
    """
    Case-insensitive response header mapping that writes through to the
    transport.

    Values are kept as written (a datetime stays a datetime for readers)
    while the transport receives the wire form.
    """

    def __init__(self, transport: HTTPResponse, capitalize: bool = True):
        self._transport = transport
        self._capitalize = capitalize
        # Seed with what the transport already carries.
        self._values: dict[str, Any] = dict(transport.headers)

    # ── read access ───────────────────────────────────────────────────────

    def __getitem__(self, name: str) -> Any:
        return self._values[name.lower()]

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower() in self._values

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"HeaderMap({self._values!r})"

    # ── mutation ──────────────────────────────────────────────────────────

    def _wire_name(self, name: str) -> str:
        return capitalize_header(name) if self._capitalize else name

    def set(self, name: str, value: Any) -> None:
        """Set a header, replacing any previous value."""
        if value is None:
            self.delete(name)
            return
        self._transport.set_header(self._wire_name(name), to_wire_value(value))
        self._values[name.lower()] = value

    def append(self, name: str, value: Any) -> None:
        """
        Add a value to a header, turning it into a list of values.

        Each item of the list is sent as its own header line.
        """
        current = self._values.get(name.lower())
        if current is None:
            values = [value]
        elif isinstance(current, list):
            values = current + [value]
        else:
            values = [current, value]
        self.set(name, values)

    def delete(self, name: str) -> None:
        """Remove a header. Missing headers are ignored."""
        key = name.lower()
        self._transport.remove_header(key)
        if self._values.pop(key, None) is not None:
            logger.debug(f"Removed response header {key}")
