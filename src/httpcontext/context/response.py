"""
=============================================================================
RESPONSE CONTEXT
=============================================================================

The mutable view an application uses to shape one outbound response.

=============================================================================
HOW WRITES REACH THE WIRE
=============================================================================

    Application                ResponseContext               HTTPResponse
    ───────────                ───────────────               ────────────
    res.type = "json"   ──►    headers.set(...)      ──►     set_header()
    res.cookie("sid", 1)──►    cookies.set(...)              (queued)
    res.send({...})     ──►    sniff / etag / 304
                               end()
                                 ├─ flush cookies    ──►     Set-Cookie lines
                                 ├─ HTTP/2 fixups    ──►     reason="" , no Connection
                                 └─ transport.end()  ──►     finished=True

Header writes are mirrored immediately. Cookie writes wait in the
CookieJar until end(), so a cookie set and then cleared in the same
exchange produces exactly one Set-Cookie line.

=============================================================================
SEND: BODY CLASSIFICATION
=============================================================================

    send(data)
      │
      ├─ HEAD request or data is None    → end() with no body
      ├─ str                             → sniff type if unset
      ├─ bytes                           → application/octet-stream if unset
      └─ anything else                   → JSON (or JSONP when res.jsonp set)
      │
      ├─ Content-Length = encoded byte length
      ├─ ETag = etag(body)
      ├─ request validators match?       → status 304
      └─ 204 / 304                       → drop body and content headers

=============================================================================
"""

import codecs
import json
import logging
import os
import time
from typing import Any, Callable, Optional, Union
from urllib.parse import quote

from ..config import EnhanceConfig
from ..http.mime_types import DEFAULT_MIME_TYPE, is_text_type, lookup as lookup_mime_type
from ..http.response import HTTPResponse, HeadersSentError, reason_phrase
from .cookies import CookieJar, parse_set_cookie_values, set_cookie_name
from .freshness import etag as compute_etag, is_modified
from .headers import HeaderMap, format_cache_control, parse_cache_control
from .request import RequestContext
from .sniff import sniff_content_type


logger = logging.getLogger(__name__)

# redirect(BACK) sends the client to the Referer
BACK = -1

DEFAULT_REALM = "HTTP Authentication"
DEFAULT_CHARSET = "UTF-8"

# Content headers that a 204 or 304 response must not carry
CONTENT_HEADERS = ("content-type", "content-length", "transfer-encoding")

# RFC 5987 attr-char, minus ALPHA / DIGIT which quote() always keeps
_ATTR_CHAR_SAFE = "!#$&+^`|"

_MISSING = object()


def content_disposition(filename: str, disposition: str = "attachment") -> str:
    """
    Build a Content-Disposition value for a file name.

    Only the base name is used. Non-ASCII names get an ASCII fallback in
    `filename` plus the exact name in `filename*` (RFC 6266).

        >>> content_disposition("/tmp/report.pdf")
        'attachment; filename="report.pdf"'
    """
    name = os.path.basename(filename)
    if not name:
        return disposition

    fallback = name.encode("ascii", "replace").decode("ascii")
    escaped = fallback.replace("\\", "\\\\").replace('"', '\\"')
    value = f'{disposition}; filename="{escaped}"'

    if fallback != name:
        value += f"; filename*=UTF-8''{quote(name, safe=_ATTR_CHAR_SAFE)}"
    return value


def _encode(text: str, charset: Optional[str]) -> bytes:
    try:
        codec = codecs.lookup(charset or DEFAULT_CHARSET).name
    except LookupError:
        logger.debug(f"Unknown charset {charset!r}, encoding body as UTF-8")
        codec = "utf-8"
    return text.encode(codec, errors="replace")


class ResponseContext:
    """
    Mutable view over one outbound response.

    Wraps the transport HTTPResponse without changing it: every header
    write goes through `headers`, every cookie write through `cookies`,
    and finalization through `end()`.
    """

    def __init__(
        self,
        response: HTTPResponse,
        request: RequestContext,
        config: Optional[EnhanceConfig] = None,
    ):
        self.config = config or request.config
        self.transport = response
        self.request = request

        self.headers = HeaderMap(response, capitalize=self.config.capitalize)
        self.cookies = CookieJar(parse_set_cookie_values(response.get_header("set-cookie")))

        # Callback name for JSONP bodies. Set by enhance() from the query.
        self.jsonp: Optional[str] = None

        # Charset assigned before any type; folded in when a type is set.
        self._pending_charset: Optional[str] = None

    # =========================================================================
    # HEADER HELPERS
    # =========================================================================

    def get(self, field_name: str, default: Any = None) -> Any:
        """Get a response header (case-insensitive)."""
        return self.headers.get(field_name, default)

    def set(self, field_name: str, value: Any) -> None:
        self.headers.set(field_name, value)

    def append(self, field_name: str, value: Any) -> None:
        self.headers.append(field_name, value)

    def remove(self, field_name: str) -> None:
        self.headers.delete(field_name)

    def cookie(self, name: str, value: Any = _MISSING, **options: Any) -> Any:
        """
        Get, set or clear a cookie.

            res.cookie("sid")                       → current value
            res.cookie("sid", "abc", max_age=3600)  → queue Set-Cookie
            res.cookie("sid", None)                 → queue an expiring cookie

        Options: max_age, expires, domain, path, http_only, secure, same_site.
        """
        if value is _MISSING:
            return self.cookies.get(name)
        self.cookies.set(name, value, **options)
        return None

    # =========================================================================
    # STATUS
    # =========================================================================

    @property
    def code(self) -> int:
        return self.transport.status

    @code.setter
    def code(self, code: int) -> None:
        self.transport.status = int(code)

    @property
    def message(self) -> str:
        """Reason phrase. Always empty for HTTP/2 and later."""
        if self.request.http_version >= 2:
            return ""
        if self.transport.reason is None:
            return reason_phrase(self.code)
        return self.transport.reason

    @message.setter
    def message(self, message: str) -> None:
        self.transport.reason = message

    @property
    def status(self) -> str:
        """Status code and reason phrase, e.g. "404 Not Found"."""
        message = self.message
        return f"{self.code} {message}" if message else str(self.code)

    @status.setter
    def status(self, status: Union[int, str]) -> None:
        """
        Set the status from a code (404) or a status line ("404 Not Found").

        The reason phrase is only recorded below HTTP/2.
        """
        if isinstance(status, int):
            code, message = status, reason_phrase(status)
        else:
            head, _, tail = str(status).strip().partition(" ")
            code, message = int(head), tail.strip()

        self.code = code
        if self.request.http_version < 2:
            self.message = message

    # =========================================================================
    # CONTENT-TYPE (type + charset share one header)
    # =========================================================================

    def _content_type_parts(self) -> tuple[Optional[str], Optional[str]]:
        raw = self.headers.get("content-type")
        if not raw:
            return None, self._pending_charset

        media_type, *params = str(raw).split(";")
        charset = None
        for param in params:
            key, _, value = param.partition("=")
            if key.strip().lower() == "charset":
                charset = value.strip().strip('"') or None
        return media_type.strip() or None, charset

    @property
    def type(self) -> Optional[str]:
        """Content-Type without parameters."""
        return self._content_type_parts()[0]

    @type.setter
    def type(self, value: str) -> None:
        if "/" not in value:
            value = lookup_mime_type(value, DEFAULT_MIME_TYPE)
        charset = self.charset
        self.headers.set("content-type", f"{value}; charset={charset}" if charset else value)
        self._pending_charset = None

    @property
    def charset(self) -> Optional[str]:
        return self._content_type_parts()[1]

    @charset.setter
    def charset(self, charset: str) -> None:
        media_type = self.type
        if media_type is None:
            self._pending_charset = charset
            return
        self.headers.set("content-type", f"{media_type}; charset={charset}")

    # =========================================================================
    # HEADER-BACKED PROPERTIES
    # =========================================================================

    @property
    def length(self) -> Optional[int]:
        """Content-Length as int, None when unset or invalid."""
        try:
            return int(self.headers["content-length"])
        except (KeyError, TypeError, ValueError):
            return None

    @length.setter
    def length(self, value: int) -> None:
        self.headers.set("content-length", value)

    @property
    def encoding(self) -> Optional[str]:
        return self.headers.get("content-encoding")

    @encoding.setter
    def encoding(self, value: str) -> None:
        self.headers.set("content-encoding", value)

    @property
    def date(self):
        return self.headers.get("date")

    @date.setter
    def date(self, value) -> None:
        self.headers.set("date", value)

    @property
    def etag(self) -> Optional[str]:
        return self.headers.get("etag")

    @etag.setter
    def etag(self, value: str) -> None:
        self.headers.set("etag", value)

    @property
    def last_modified(self):
        return self.headers.get("last-modified")

    @last_modified.setter
    def last_modified(self, value) -> None:
        self.headers.set("last-modified", value)

    @property
    def location(self) -> Optional[str]:
        return self.headers.get("location")

    @location.setter
    def location(self, value: str) -> None:
        self.headers.set("location", value)

    @property
    def refresh(self):
        return self.headers.get("refresh")

    @refresh.setter
    def refresh(self, value) -> None:
        self.headers.set("refresh", value)

    @property
    def attachment(self) -> Optional[str]:
        return self.headers.get("content-disposition")

    @attachment.setter
    def attachment(self, filename: str) -> None:
        """Mark the body as a download and set the type from the file name."""
        guessed = lookup_mime_type(filename)
        if guessed:
            self.type = guessed
        self.headers.set("content-disposition", content_disposition(filename))

    @property
    def cache(self) -> Union[int, str, None]:
        """Cache-Control: None for no-cache, max-age seconds, or raw text."""
        value = self.headers.get("cache-control")
        return parse_cache_control(str(value) if value is not None else None)

    @cache.setter
    def cache(self, value: Union[int, str, None]) -> None:
        self.headers.set("cache-control", format_cache_control(value))

    @property
    def vary(self):
        return self.headers.get("vary")

    @vary.setter
    def vary(self, value) -> None:
        self.headers.set("vary", value)

    @property
    def keep_alive(self) -> bool:
        return self.headers.get("connection") == "keep-alive"

    @keep_alive.setter
    def keep_alive(self, keep: bool) -> None:
        self.headers.set("connection", "keep-alive" if keep else "close")

    @property
    def modified(self) -> bool:
        """
        False when the client's cached copy is still valid (304 eligible).

        Only GET/HEAD requests with a 2xx or 304 status can be fresh.
        """
        return is_modified(
            self.request.method,
            self.code,
            self.request.headers,
            {"etag": self.etag, "last-modified": self.last_modified},
        )

    @property
    def finished(self) -> bool:
        return self.transport.finished

    # =========================================================================
    # ACTIONS
    # =========================================================================

    def auth(self, realm: Optional[str] = None) -> None:
        """Challenge the client for HTTP Basic credentials (401) and finish."""
        self.status = 401
        self.headers.set("www-authenticate", f'Basic realm="{realm or DEFAULT_REALM}"')
        self.end()

    def unauth(self) -> None:
        """Drop the browser's cached credentials by re-challenging."""
        self.auth()

    def redirect(self, url: Union[str, int], code: int = 302) -> None:
        """
        Redirect the client and finish.

        Args:
            url: Target URL, or BACK (-1) for the request's Referer
            code: 301, 302, 303, 307 or 308
        """
        if url == BACK:
            url = self.request.referer or "/"
        self.status = code
        self.location = str(url)
        self.end()

    def send(self, data: Any = None) -> None:
        """
        Send a body, inferring Content-Type, Content-Length and ETag.

        Args:
            data: str (sniffed), bytes (binary), None (empty), or any
                  JSON-serializable value.
        """
        if self.request.method == "HEAD" or data is None:
            self.end()
            return

        if isinstance(data, str):
            if not self.type:
                self.type = sniff_content_type(data)
            if not self.charset and is_text_type(self.type):
                self.charset = DEFAULT_CHARSET
            body = _encode(data, self.charset)

        elif isinstance(data, (bytes, bytearray, memoryview)):
            if not self.type:
                self.type = DEFAULT_MIME_TYPE
            body = bytes(data)

        else:
            text = json.dumps(data, separators=(",", ":"), ensure_ascii=False)
            if self.jsonp:
                self.type = "application/javascript"
                text = f"{self.jsonp}({text});"
            else:
                self.type = "application/json"
            if not self.charset:
                self.charset = DEFAULT_CHARSET
            body = _encode(text, self.charset)

        self.length = len(body)
        self.etag = compute_etag(body)

        if not self.modified:
            self.status = 304

        if self.code in (204, 304):
            for name in CONTENT_HEADERS:
                self.headers.delete(name)
            body = None

        self.end(body)

    def end(self, data: Union[str, bytes, None] = None, encoding: Optional[str] = None) -> None:
        """
        Finalize the response.

        Emits queued cookies as Set-Cookie lines, applies the HTTP/2
        adjustments and hands the body to the transport.

        Raises:
            HeadersSentError: If the response has already been finalized.
        """
        if self.transport.finished:
            raise HeadersSentError()

        self._drop_rewritten_cookies()
        for line in self.cookies.flush(self.config.cookie_secret, now=time.time()):
            self.headers.append("set-cookie", line)

        # HTTP/2 has no reason phrase and forbids connection-specific fields.
        if self.request.http_version >= 2:
            self.transport.reason = ""
            self.headers.delete("connection")

        if isinstance(data, str) and encoding is None:
            data = _encode(data, self.charset)

        self.transport.end(data, encoding)
        logger.debug(f"Finished {self.request.method} {self.request.path} with {self.code}")

    def _drop_rewritten_cookies(self) -> None:
        # A queued cookie supersedes a line some earlier layer put on the
        # transport for the same name.
        pending = set(self.cookies.pending)
        existing = self.transport.get_header("set-cookie")
        if not pending or not existing:
            return

        lines = [existing] if isinstance(existing, str) else list(existing)
        kept = [line for line in lines if set_cookie_name(line) not in pending]
        if len(kept) == len(lines):
            return
        if kept:
            self.headers.set("set-cookie", kept)
        else:
            self.headers.delete("set-cookie")

    def send_file(self, filename: str, callback: Optional[Callable[[Optional[OSError]], None]] = None) -> None:
        """
        Send a file from disk.

        The type is taken from the file name unless already set. On a read
        error the response is finished with no body and a matching status
        (404, 403 or 500); the error then goes to `callback`, or is raised
        when no callback was given.
        """
        if not self.type:
            self.type = lookup_mime_type(filename, "text/plain")

        try:
            with open(filename, "rb") as f:
                data = f.read()
        except OSError as err:
            logger.warning(f"Failed to send file {filename}: {err}")
            if isinstance(err, FileNotFoundError):
                self.status = 404
            elif isinstance(err, PermissionError):
                self.status = 403
            else:
                self.status = 500
            self.headers.delete("content-type")
            self.end()

            if callback is None:
                raise
            callback(err)
            return

        self.send(data)
        if callback is not None:
            callback(None)

    def download(
        self,
        filename: str,
        new_name: Union[str, Callable, None] = None,
        callback: Optional[Callable[[Optional[OSError]], None]] = None,
    ) -> None:
        """Send a file as an attachment, optionally under another name."""
        if callable(new_name):
            callback, new_name = new_name, None
        self.attachment = new_name or filename
        self.send_file(filename, callback)

    def __repr__(self) -> str:
        return f"<ResponseContext {self.status}>"


def build_response_context(
    config: EnhanceConfig,
    request: RequestContext,
    response: HTTPResponse,
) -> ResponseContext:
    """Build a ResponseContext for one raw response."""
    return ResponseContext(response, request, config)
