"""
Request and response contexts.

    negotiation.py  Accept-style q-value lists
    headers.py      capitalization, Cache-Control, HeaderMap
    cookies.py      Cookie / Set-Cookie codec and CookieJar
    freshness.py    ETag and conditional (304) checks
    sniff.py        body type inference
    request.py      RequestContext
    response.py     ResponseContext
"""

from .cookies import Cookie, CookieJar, parse_cookie_header, serialize_cookie, sign, unsign
from .freshness import etag, is_fresh, is_modified
from .headers import HeaderMap, capitalize_header, parse_cache_control
from .negotiation import AcceptEntry, parse_accept, parse_accept_entries, parse_list
from .request import BasicAuth, ProxyInfo, RequestContext, build_request_context
from .response import BACK, ResponseContext, build_response_context
from .sniff import sniff_content_type

__all__ = [
    "AcceptEntry",
    "BACK",
    "BasicAuth",
    "Cookie",
    "CookieJar",
    "HeaderMap",
    "ProxyInfo",
    "RequestContext",
    "ResponseContext",
    "build_request_context",
    "build_response_context",
    "capitalize_header",
    "etag",
    "is_fresh",
    "is_modified",
    "parse_accept",
    "parse_accept_entries",
    "parse_cache_control",
    "parse_cookie_header",
    "parse_list",
    "serialize_cookie",
    "sign",
    "sniff_content_type",
    "unsign",
]
