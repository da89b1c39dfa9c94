"""
=============================================================================
FRESHNESS (CONDITIONAL RESPONSES)
=============================================================================

Decides whether a response can be replaced by 304 Not Modified.

=============================================================================
CONDITIONAL GET FLOW
=============================================================================

    First request:
        GET /report                    →  200 OK
                                          ETag: "1b-Xx1..."
                                          Last-Modified: Wed, 01 Jan 2026 ...

    Revalidation:
        GET /report
        If-None-Match: "1b-Xx1..."     →  304 Not Modified (no body)
        If-Modified-Since: Wed, 01 ...

=============================================================================
RULES
=============================================================================

    1. Only GET and HEAD are ever fresh.
    2. Only 2xx and 304 statuses are ever fresh.
    3. No validators in the request → stale.
    4. Request "Cache-Control: no-cache" → stale (end-to-end reload).
    5. If-None-Match (other than "*") must list the response ETag.
       W/"x" and "x" match each other (weak comparison, RFC 7232 2.3.2).
    6. If-Modified-Since requires a Last-Modified that is not later.

=============================================================================
"""

import base64
import hashlib
import re
from collections.abc import Mapping
from datetime import datetime
from email.utils import parsedate_to_datetime
from typing import Any, Optional, Union

from ..http.response import format_http_date


NO_CACHE_PATTERN = re.compile(r"(?:^|,)\s*?no-cache\s*?(?:,|$)")

EMPTY_ETAG = '"0-2jmj7l5rSw0yVb/vlWAYkK/YBwk"'


def etag(body: Union[str, bytes], weak: bool = False) -> str:
    """
    Compute an entity tag for a response body.

    Format: "<byte length in hex>-<first 27 chars of base64 SHA-1>"

    Args:
        body: Final serialized body (str is hashed as UTF-8)
        weak: Prefix with W/

    Returns:
        Quoted ETag value
    """
    if isinstance(body, str):
        body = body.encode("utf-8")

    if not body:
        tag = EMPTY_ETAG
    else:
        digest = base64.b64encode(hashlib.sha1(body).digest()).decode("ascii")[:27]
        tag = f'"{len(body):x}-{digest}"'

    return f"W/{tag}" if weak else tag


def _parse_http_date(value: Any) -> Optional[float]:
    if isinstance(value, datetime):
        value = format_http_date(value)
    if not value:
        return None
    try:
        return parsedate_to_datetime(str(value)).timestamp()
    except (TypeError, ValueError, IndexError):
        return None


def _parse_token_list(value: str) -> list[str]:
    return [token.strip() for token in value.split(",") if token.strip()]


def is_fresh(request_headers: Mapping, response_headers: Mapping) -> bool:
    """
    Check whether the client's cached copy is still valid.

    Args:
        request_headers: Request fields with lowercase names
        response_headers: Mapping with "etag" and "last-modified"

    Returns:
        True when the validators match (a 304 may be sent)
    """
    modified_since = request_headers.get("if-modified-since")
    none_match = request_headers.get("if-none-match")

    if not modified_since and not none_match:
        return False

    cache_control = request_headers.get("cache-control")
    if cache_control and NO_CACHE_PATTERN.search(cache_control):
        return False

    if none_match and none_match.strip() != "*":
        current = response_headers.get("etag")
        if not current:
            return False

        current = str(current)
        matched = any(
            tag == current or tag == f"W/{current}" or f"W/{tag}" == current
            for tag in _parse_token_list(none_match)
        )
        if not matched:
            return False

    if modified_since:
        last_modified = _parse_http_date(response_headers.get("last-modified"))
        since = _parse_http_date(modified_since)
        if last_modified is None or since is None or last_modified > since:
            return False

    return True


def is_modified(
    method: str,
    status: int,
    request_headers: Mapping,
    response_headers: Mapping,
) -> bool:
    """
    Freshness verdict for a response.

    Non-GET/HEAD requests and statuses outside 2xx/304 are always
    "modified"; otherwise the validators decide.
    """
    if method not in ("GET", "HEAD"):
        return True

    if 200 <= status < 300 or status == 304:
        return not is_fresh(request_headers, response_headers)

    return True
