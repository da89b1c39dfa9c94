"""
=============================================================================
COOKIE CODEC
=============================================================================

Reads the Cookie request header and writes Set-Cookie response lines,
with typed values and optional HMAC signing.

=============================================================================
VALUE MARKERS
=============================================================================

Cookie values are strings on the wire. To give them back their type, each
value written by the response side carries a two-character marker:

    ┌──────────┬───────────────────────────┬─────────────────────────────┐
    │  Marker  │  Written for              │  Read back as               │
    ├──────────┼───────────────────────────┼─────────────────────────────┤
    │  j:      │  dict, list               │  json.loads(rest)           │
    │          │                           │  (rest as str if invalid)   │
    │  s:      │  str, int, float, bool    │  rest as str                │
    │  (none)  │  Cookie objects (as-is)   │  the raw value              │
    └──────────┴───────────────────────────┴─────────────────────────────┘

=============================================================================
SIGNING
=============================================================================

    value      = "s:alice"
    signature  = base64(HMAC-SHA256(secret, value)), "=" padding stripped
    wire value = "s:alice.<signature>"

On read, the part before the LAST "." is re-signed and compared in
constant time. A mismatch is not an error: the raw value is used, so
cookies written before a secret was configured still read back.

=============================================================================
SET-COOKIE LINE
=============================================================================

    sid=s:abc.SIG; Max-Age=3600; Expires=Wed, 01 Jan 2026 13:00:00 GMT;
        Domain=example.com; Path=/; HttpOnly; Secure; SameSite=Lax

Clearing a cookie:

    sid=; Expires=Thu, 01 Jan 1970 00:00:00 GMT

=============================================================================
"""

import base64
import hashlib
import hmac
import json
import logging
import re
import time
from collections.abc import Mapping
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any, Iterator, Optional, Union
from urllib.parse import quote, unquote

from ..http.response import format_http_date


logger = logging.getLogger(__name__)

JSON_MARKER = "j:"
STRING_MARKER = "s:"

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

_PAIR_SEPARATOR = re.compile(r"\s*;\s*")

# Printable ASCII allowed unescaped in a cookie value (RFC 6265 cookie-octet
# minus "%", which must stay escaped so decoding round-trips).
_COOKIE_SAFE = "!#$&'()*+/:<=>?@[]^`{|}"


# =============================================================================
# SIGNING
# =============================================================================

def sign(value: str, secret: str) -> str:
    """Append an HMAC-SHA256 signature to `value`."""
    digest = hmac.new(secret.encode("utf-8"), value.encode("utf-8"), hashlib.sha256).digest()
    signature = base64.b64encode(digest).decode("ascii").rstrip("=")
    return f"{value}.{signature}"


def unsign(signed: str, secret: str) -> Optional[str]:
    """
    Verify a signed value.

    Returns:
        The original value if the signature matches, otherwise None.
    """
    value, sep, _ = signed.rpartition(".")
    if not sep:
        return None
    if hmac.compare_digest(sign(value, secret).encode("utf-8"), signed.encode("utf-8")):
        return value
    return None


# =============================================================================
# VALUE MARKERS
# =============================================================================

def encode_value(value: Any) -> str:
    """Prefix a Python value with its type marker."""
    if isinstance(value, (dict, list, tuple)):
        return JSON_MARKER + json.dumps(value, separators=(",", ":"), ensure_ascii=False)
    if isinstance(value, bool):
        return STRING_MARKER + ("true" if value else "false")
    return STRING_MARKER + str(value)


def decode_value(value: str) -> Any:
    """Strip a type marker and restore the value it describes."""
    mark, rest = value[:2], value[2:]

    if mark == JSON_MARKER:
        try:
            return json.loads(rest)
        except (ValueError, RecursionError):
            logger.debug(f"Cookie JSON payload is not valid JSON, keeping text: {rest!r}")
            return rest
    if mark == STRING_MARKER:
        return rest
    return value


def quote_cookie_value(value: str) -> str:
    return quote(value, safe=_COOKIE_SAFE)


# =============================================================================
# READ SIDE
# =============================================================================

def parse_cookie_header(header: Optional[str], secret: Optional[str] = None) -> dict[str, Any]:
    """
    Parse a Cookie request header into name → decoded value.

    Each pair is split on its first "=", URL-decoded, verified against the
    secret when one is configured, then marker-decoded. Pairs without "="
    or with an empty name are skipped.

    Args:
        header: Raw Cookie header value
        secret: Signing secret, or None

    Returns:
        Dict of cookie names to decoded values
    """
    cookies: dict[str, Any] = {}
    if not header:
        return cookies

    for pair in _PAIR_SEPARATOR.split(header.strip()):
        name, sep, raw = pair.partition("=")
        name = name.strip()
        if not sep or not name:
            if pair:
                logger.debug(f"Skipping malformed cookie pair: {pair!r}")
            continue

        value = unquote(raw.strip())

        if secret:
            verified = unsign(value, secret)
            if verified is None:
                logger.debug(f"Cookie {name!r} failed signature check, using raw value")
            else:
                value = verified

        cookies[name] = decode_value(value)

    return cookies


# =============================================================================
# WRITE SIDE
# =============================================================================

@dataclass
class Cookie:
    """
    A cookie to be written as one Set-Cookie line.

    `value` is written as given: no type marker is added. Assigning a
    plain Python value to res.cookies adds the marker instead.
    """

    name: str = ""
    value: str = ""
    max_age: Optional[int] = None
    expires: Union[datetime, str, None] = None
    domain: Optional[str] = None
    path: Optional[str] = None
    http_only: bool = False
    secure: bool = False
    same_site: Optional[str] = None

    def to_header(self) -> str:
        """Serialize to a Set-Cookie header value."""
        parts = [f"{self.name}={quote_cookie_value(self.value)}"]

        if self.max_age is not None:
            parts.append(f"Max-Age={int(self.max_age)}")
        if self.expires is not None:
            expires = self.expires
            if isinstance(expires, datetime):
                expires = format_http_date(expires)
            parts.append(f"Expires={expires}")
        if self.domain:
            parts.append(f"Domain={self.domain}")
        if self.path:
            parts.append(f"Path={self.path}")
        if self.http_only:
            parts.append("HttpOnly")
        if self.secure:
            parts.append("Secure")
        if self.same_site:
            parts.append(f"SameSite={self.same_site.capitalize()}")

        return "; ".join(parts)

    __str__ = to_header


_COOKIE_OPTIONS = {"max_age", "expires", "domain", "path", "http_only", "secure", "same_site"}


def make_cookie(name: str, value: Any, **options: Any) -> Cookie:
    """
    Build a Cookie from a Python value and Set-Cookie options.

    `None` builds a clearing cookie: empty value, Expires at the epoch and
    no Max-Age, whatever max_age was passed.
    """
    unknown = set(options) - _COOKIE_OPTIONS
    if unknown:
        raise TypeError(f"Unknown cookie option(s): {', '.join(sorted(unknown))}")

    if value is None:
        options.pop("max_age", None)
        options["expires"] = EPOCH
        return Cookie(name, "", **options)

    if isinstance(value, Cookie):
        return value if value.name else replace(value, name=name)

    return Cookie(name, encode_value(value), **options)


def serialize_cookie(
    name: str,
    value: Any,
    secret: Optional[str] = None,
    now: Optional[float] = None,
    **options: Any,
) -> str:
    """
    Produce one Set-Cookie header value.

    Args:
        name: Cookie name
        value: Python value, a Cookie, or None to clear
        secret: Signing secret, or None
        now: Current time in seconds since the epoch (default: time.time())
        **options: max_age, expires, domain, path, http_only, secure, same_site

    Returns:
        The header value, e.g. "sid=s:abc; Path=/"
    """
    return finalize_cookie(make_cookie(name, value, **options), secret, now).to_header()


def finalize_cookie(cookie: Cookie, secret: Optional[str] = None, now: Optional[float] = None) -> Cookie:
    """
    Apply emission-time rules to a cookie.

    - max_age also sets Expires = now + max_age
    - a non-empty value is signed when a secret is configured
    """
    cookie = replace(cookie)

    if cookie.max_age is not None:
        now = time.time() if now is None else now
        cookie.expires = datetime.fromtimestamp(now + cookie.max_age, tz=timezone.utc)

    if secret and cookie.value:
        cookie.value = sign(cookie.value, secret)

    return cookie


class CookieJar(Mapping):
    """
    Response-side cookie mapping.

    Reading gives back the value last written for a name. Writing queues a
    Set-Cookie line; the queue is emitted in mutation order by flush() when
    the response is finalized. Writing a name again replaces its queued
    cookie and moves it to the end of the queue.

    Deleting a name queues an expiring cookie. Nothing is ever removed
    from the transport's headers.
    """

    def __init__(self, existing: Optional[dict[str, Any]] = None):
        self._values: dict[str, Any] = dict(existing or {})
        self._pending: dict[str, Cookie] = {}

    def __getitem__(self, name: str) -> Any:
        return self._values[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"CookieJar({self._values!r})"

    def set(self, name: str, value: Any, **options: Any) -> None:
        """Queue a cookie. `None` queues a clearing cookie."""
        cookie = make_cookie(name, value, **options)
        self._pending.pop(name, None)
        self._pending[name] = cookie
        self._values[name] = value

    def delete(self, name: str, **options: Any) -> None:
        """Queue an expiring cookie for `name`."""
        self.set(name, None, **options)

    @property
    def pending(self) -> list[str]:
        """Names with a queued Set-Cookie, in emission order."""
        return list(self._pending)

    def flush(self, secret: Optional[str] = None, now: Optional[float] = None) -> list[str]:
        """
        Serialize and clear the queue.

        Returns:
            Set-Cookie header values in mutation order
        """
        lines = [finalize_cookie(cookie, secret, now).to_header() for cookie in self._pending.values()]
        self._pending.clear()
        return lines


def parse_set_cookie_values(lines: Union[str, list[str], None]) -> dict[str, Any]:
    """
    Read name → decoded value from Set-Cookie lines already on a response.

    Used to seed a CookieJar, so res.cookies reflects cookies that some
    earlier layer set directly on the transport.
    """
    if not lines:
        return {}
    if isinstance(lines, str):
        lines = [lines]

    values: dict[str, Any] = {}
    for line in lines:
        name, sep, raw = line.split(";", 1)[0].partition("=")
        if sep and name.strip():
            values[name.strip()] = decode_value(unquote(raw.strip()))
    return values


def set_cookie_name(line: str) -> str:
    """The cookie name of one Set-Cookie line."""
    return line.split(";", 1)[0].partition("=")[0].strip()
