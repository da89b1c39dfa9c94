"""
=============================================================================
REQUEST CONTEXT
=============================================================================

A derived, read-mostly view over one raw HTTPRequest.

=============================================================================
WHAT GETS DERIVED
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                         REQUEST CONTEXT                             │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │  ORIGIN        proxy, protocol, host, ips / ip                      │
    │                                                                      │
    │  URL           one absolute URL "protocol://host + target"          │
    │                → hostname, port, path, pathname, search, href,      │
    │                  origin, query                                      │
    │                                                                      │
    │  IDENTITY      auth (Basic), cookies, domain_name / subdomain       │
    │                                                                      │
    │  NEGOTIATION   accepts, langs, charsets (lazy, cached)              │
    │                encodings (declaration order)                        │
    │                cache (Cache-Control, lazy, cached)                  │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
PROXY-AWARE ORIGIN RESOLUTION
=============================================================================

    Client ──► Load balancer ──► This server
               adds X-Forwarded-Proto: https
                    X-Forwarded-Host: shop.example.com
                    X-Forwarded-For: 203.0.113.7, 10.0.0.2

    protocol   "https" if the socket itself is TLS
               else X-Forwarded-Proto   (only with use_proxy=True,
                                         only "http" or "https")
               else "http"

    host       X-Forwarded-Host          (only with use_proxy=True)
               else Host, else HTTP/2 :authority

    ips        X-Forwarded-For list when present, else [socket peer]

`proxy` is None when no X-Forwarded-* header arrived at all, so callers
can tell "no proxy" apart from "proxy sent an empty field".

=============================================================================
FAILURE POLICY
=============================================================================

Building a context never raises because of what the client sent. A bad
cookie pair, an undecodable Authorization header or an unparseable port
only empties that one field. An unusable X-Forwarded-Proto falls back to
"http" and an unparseable request-target to "/".

=============================================================================
"""

import base64
import binascii
import logging
import re
import time
from dataclasses import dataclass, field
from typing import Any, Optional, Union
from urllib.parse import SplitResult, parse_qs, unquote, urlsplit

from ..config import EnhanceConfig
from ..http.mime_types import lookup as lookup_mime_type
from ..http.request import HTTPRequest
from .cookies import parse_cookie_header
from .headers import parse_cache_control
from .negotiation import parse_accept, parse_list


logger = logging.getLogger(__name__)

_COMMA = re.compile(r"\s*,\s*")
# Schemes a trusted X-Forwarded-Proto may declare
FORWARDED_PROTOCOLS = frozenset({"http", "https"})

_BASIC_AUTH = re.compile(r"^ *[Bb][Aa][Ss][Ii][Cc] +([A-Za-z0-9._~+/-]+=*) *$")


@dataclass
class ProxyInfo:
    """What the X-Forwarded-* headers declared."""

    protocol: Optional[str] = None
    host: Optional[str] = None
    ips: list[str] = field(default_factory=list)

    @property
    def ip(self) -> Optional[str]:
        return self.ips[0] if self.ips else None


@dataclass(frozen=True)
class BasicAuth:
    """HTTP Basic credentials."""

    username: str
    password: str


def detect_proxy(headers: dict[str, str]) -> Optional[ProxyInfo]:
    """Build ProxyInfo if any X-Forwarded-* header is present."""
    proto = headers.get("x-forwarded-proto")
    host = headers.get("x-forwarded-host")
    forwarded_for = headers.get("x-forwarded-for")

    if not (proto or host or forwarded_for):
        return None

    ips = _COMMA.split(forwarded_for.strip()) if forwarded_for else []
    return ProxyInfo(
        protocol=proto or None,
        host=host or None,
        ips=[ip for ip in ips if ip],
    )


def parse_basic_auth(header: Optional[str]) -> Optional[BasicAuth]:
    """
    Decode an "Authorization: Basic ..." header.

    Returns None for a missing, non-Basic or undecodable header.
    """
    if not header:
        return None

    match = _BASIC_AUTH.match(header)
    if not match:
        return None

    try:
        decoded = base64.b64decode(match.group(1), validate=True).decode("utf-8")
    except (binascii.Error, ValueError):
        logger.debug("Ignoring undecodable Basic credentials")
        return None

    username, sep, password = decoded.partition(":")
    if not sep:
        return None
    return BasicAuth(username, password)


def match_domain(hostname: str, domains: list[str]) -> tuple[Optional[str], Optional[str]]:
    """
    Split a hostname against configured base domains.

    The first configured domain that equals the hostname, or is a suffix
    of it on a "." boundary, wins.

    Returns:
        (domain_name, subdomain), or (None, None) if nothing matched.

    Example:
        >>> match_domain("api.example.com", ["example.com"])
        ('example.com', 'api')
        >>> match_domain("example.com", ["example.com"])
        ('example.com', '')
    """
    hostname = (hostname or "").lower()
    for domain in domains:
        base = domain.lower()
        if hostname == base:
            return domain, ""
        if hostname.endswith("." + base):
            return domain, hostname[:-len(base) - 1]
    return None, None


def _origin_form(target: str) -> str:
    """Reduce an absolute-form target ("http://h/p?q") to "/p?q"."""
    try:
        absolute = urlsplit(target)
    except ValueError:
        logger.debug(f"Unparseable absolute-form target {target!r}, using /")
        return "/"

    path = absolute.path or "/"
    return f"{path}?{absolute.query}" if absolute.query else path


def _forwarded_protocol(value: str) -> str:
    protocol = value.split(",")[0].strip().lower()
    if protocol in FORWARDED_PROTOCOLS:
        return protocol
    logger.debug(f"Ignoring unsupported X-Forwarded-Proto {value!r}")
    return "http"


def _parse_version(version: str) -> float:
    try:
        return float(version.split("/", 1)[-1])
    except ValueError:
        return 1.1


def _normalize_type(expected: str) -> Optional[str]:
    expected = expected.strip().lower()
    if expected == "urlencoded":
        return "application/x-www-form-urlencoded"
    if expected == "multipart":
        return "multipart/*"
    if expected.startswith("+"):
        return "*/*" + expected
    if "/" in expected:
        return expected
    return lookup_mime_type(expected)


def _mime_match(expected: str, actual: str) -> bool:
    exp_type, _, exp_sub = expected.partition("/")
    act_type, _, act_sub = actual.partition("/")
    if not exp_sub or not act_sub:
        return False

    if exp_type != "*" and exp_type != act_type:
        return False

    if exp_sub.startswith("*+"):
        return len(act_sub) > len(exp_sub) - 1 and act_sub.endswith(exp_sub[1:])

    return exp_sub == "*" or exp_sub == act_sub


class RequestContext:
    """
    Derived view over one inbound request.

    Origin, URL, identity and cookie fields are computed once at
    construction. Negotiation lists are computed on first access and then
    cached for the lifetime of this context; reading `accepts` twice
    returns the same list object.
    """

    def __init__(self, request: HTTPRequest, config: Optional[EnhanceConfig] = None):
        config = config or EnhanceConfig()

        self.raw = request
        self.config = config
        self.time = time.time()
        self._memo: dict[str, Any] = {}

        self.headers: dict[str, str] = request.headers
        self.method: str = request.method
        self.version: str = request.version

        # ── origin ────────────────────────────────────────────────────────
        self.proxy: Optional[ProxyInfo] = detect_proxy(self.headers)
        trusted = self.proxy if config.use_proxy else None

        if request.encrypted:
            self.protocol = "https"
        elif trusted and trusted.protocol:
            self.protocol = _forwarded_protocol(trusted.protocol)
        else:
            self.protocol = "http"

        if trusted and trusted.host:
            self.host = trusted.host.split(",")[0].strip()
        else:
            self.host = self.headers.get("host") or self.headers.get(":authority") or ""

        if self.proxy and self.proxy.ips:
            self.ips: list[str] = list(self.proxy.ips)
        else:
            self.ips = [request.remote_address]

        # ── cookies ───────────────────────────────────────────────────────
        self.cookies: dict[str, Any] = parse_cookie_header(
            self.headers.get("cookie"), config.cookie_secret
        )

        # ── url: the single source of every URL-shaped field ──────────────
        self.url: SplitResult = self._build_url(request.target)
        self.query: dict[str, list[str]] = parse_qs(self.url.query, keep_blank_values=True)

        # ── identity ──────────────────────────────────────────────────────
        self.auth: Optional[BasicAuth] = parse_basic_auth(self.headers.get("authorization"))
        if self.auth is None and self.url.username is not None:
            self.auth = BasicAuth(unquote(self.url.username), unquote(self.url.password or ""))

        self.domain_name, self.subdomain = match_domain(self.hostname, config.domains)

        self.encodings: list[str] = parse_list(self.headers.get("accept-encoding"))

        logger.debug(f"Request context built for {self.method} {self.href}")

    def _build_url(self, target: str) -> SplitResult:
        if not target.startswith("/"):
            if "://" in target:
                target = _origin_form(target)
            else:
                target = "/" + target.lstrip("*")

        try:
            return urlsplit(f"{self.protocol}://{self.host}{target}")
        except ValueError:
            logger.debug(f"Unparseable host {self.host!r}, falling back to a host-less URL")
        try:
            return urlsplit(f"{self.protocol}://{target}")
        except ValueError:
            logger.debug(f"Unparseable request target {target!r}, using /")
            return urlsplit(f"{self.protocol}:///")

    # =========================================================================
    # URL-DERIVED FIELDS
    # =========================================================================

    @property
    def hostname(self) -> str:
        return self.url.hostname or ""

    @property
    def port(self) -> Optional[int]:
        """Explicit port from the host, or None when absent or invalid."""
        try:
            return self.url.port
        except ValueError:
            return None

    @property
    def pathname(self) -> str:
        return self.url.path or "/"

    @property
    def search(self) -> str:
        return f"?{self.url.query}" if self.url.query else ""

    @property
    def path(self) -> str:
        """Pathname plus search string."""
        return self.pathname + self.search

    @property
    def href(self) -> str:
        return self.url.geturl()

    @property
    def origin(self) -> str:
        """The Origin header if the client sent one, else scheme://host[:port]."""
        declared = self.headers.get("origin")
        if declared:
            return declared
        netloc = self.url.netloc.rpartition("@")[2]
        return f"{self.url.scheme}://{netloc}"

    @property
    def secure(self) -> bool:
        return self.protocol == "https"

    @property
    def ip(self) -> str:
        return self.ips[0]

    # =========================================================================
    # NEGOTIATION (lazy, cached per context)
    # =========================================================================

    def _cached(self, key: str, compute):
        if key not in self._memo:
            self._memo[key] = compute()
        return self._memo[key]

    @property
    def accepts(self) -> list[str]:
        """Accepted response types, best first."""
        return self._cached("accepts", lambda: parse_accept(self.headers.get("accept")))

    @property
    def langs(self) -> list[str]:
        """Accepted languages, best first."""
        return self._cached("langs", lambda: parse_accept(self.headers.get("accept-language")))

    @property
    def charsets(self) -> list[str]:
        """Accepted charsets, best first."""
        return self._cached("charsets", lambda: parse_accept(self.headers.get("accept-charset")))

    @property
    def cache(self) -> Union[int, str, None]:
        """Parsed Cache-Control: None for no-cache, max-age seconds, or raw text."""
        return self._cached("cache", lambda: parse_cache_control(self.headers.get("cache-control")))

    @property
    def accept(self) -> Optional[str]:
        return self.accepts[0] if self.accepts else None

    @property
    def lang(self) -> Optional[str]:
        return self.langs[0] if self.langs else None

    @property
    def encoding(self) -> Optional[str]:
        return self.encodings[0] if self.encodings else None

    # =========================================================================
    # BODY METADATA
    # =========================================================================

    @property
    def type(self) -> Optional[str]:
        """Content-Type without parameters."""
        content_type = self.headers.get("content-type", "")
        return content_type.split(";")[0].strip().lower() or None

    @property
    def charset(self) -> Optional[str]:
        """Charset of the request body, else the client's preferred charset."""
        for param in self.headers.get("content-type", "").split(";")[1:]:
            key, _, value = param.partition("=")
            if key.strip().lower() == "charset" and value.strip():
                return value.strip().strip('"')
        return self.charsets[0] if self.charsets else None

    @property
    def length(self) -> int:
        """Content-Length as int. 0 if missing or invalid."""
        try:
            return int(self.headers.get("content-length", 0))
        except ValueError:
            return 0

    def is_type(self, *types: Union[str, list[str]]) -> Union[str, bool, None]:
        """
        Check the request Content-Type against candidate types.

        Candidates may be full types ("application/json"), wildcards
        ("text/*", "*/*"), suffixes ("+json") or short names ("json").

        Returns:
            The first matching candidate as given, False if none match,
            or None when the request carries no Content-Type.
        """
        actual = self.type
        if not actual:
            return None

        candidates: list[str] = []
        for t in types:
            candidates.extend(t if isinstance(t, list) else [t])
        if not candidates:
            return actual

        for candidate in candidates:
            expected = _normalize_type(candidate)
            if expected and _mime_match(expected, actual):
                return candidate
        return False

    # =========================================================================
    # MISC HEADERS
    # =========================================================================

    def get(self, field_name: str, default: Optional[str] = None) -> Optional[str]:
        """Get a request header (case-insensitive)."""
        return self.headers.get(field_name.lower(), default)

    def get_query(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """First value of a query parameter."""
        values = self.query.get(name, [])
        return values[0] if values else default

    @property
    def http_version(self) -> float:
        return _parse_version(self.version)

    @property
    def referer(self) -> Optional[str]:
        return self.headers.get("referer") or self.headers.get("referrer")

    @property
    def keep_alive(self) -> bool:
        """
        HTTP/1.1 keeps alive unless "Connection: close";
        HTTP/1.0 closes unless "Connection: keep-alive".
        """
        connection = self.headers.get("connection", "").lower()
        if self.version == "HTTP/1.0":
            return connection == "keep-alive"
        return connection != "close"

    @property
    def xhr(self) -> bool:
        return self.headers.get("x-requested-with", "").lower() == "xmlhttprequest"

    def __repr__(self) -> str:
        return f"<RequestContext {self.method} {self.href}>"


def build_request_context(config: EnhanceConfig, request: HTTPRequest) -> RequestContext:
    """Build a RequestContext for one raw request."""
    return RequestContext(request, config)
