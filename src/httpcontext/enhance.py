"""
=============================================================================
ENHANCE: THE ENTRY POINT
=============================================================================

Turns a raw (HTTPRequest, HTTPResponse) pair into a typed
(RequestContext, ResponseContext) pair.

    handle = enhance(domain="example.com", cookie_secret="s3cret", jsonp=True)

    # once per exchange
    req, res = handle(raw_request, raw_response)

    if req.accept == "application/json":
        res.send({"user": req.cookies.get("user")})
    else:
        res.send("<h1>Hello</h1>")

    sock.sendall(raw_response.to_bytes())

The configuration is validated once, when enhance() is called, and shared
read-only by every exchange the returned handler builds.

=============================================================================
"""

import logging
import re
from dataclasses import replace
from typing import Any, Callable, NamedTuple, Optional

from .config import EnhanceConfig
from .context.request import RequestContext, build_request_context
from .context.response import ResponseContext, build_response_context
from .http.request import HTTPRequest
from .http.response import HTTPResponse


logger = logging.getLogger(__name__)

# JavaScript identifiers and dotted/bracketed member paths ("cb", "app.cb[0]")
JSONP_CALLBACK_PATTERN = re.compile(r"^[A-Za-z_$][\w$.\[\]]*$")


class Exchange(NamedTuple):
    """One enhanced request/response pair."""

    request: RequestContext
    response: ResponseContext


def enhance(
    config: Optional[EnhanceConfig] = None,
    **options: Any,
) -> Callable[[HTTPRequest, HTTPResponse], Exchange]:
    """
    Create an exchange handler.

    Args:
        config: Base configuration (default: EnhanceConfig())
        **options: Field overrides: domain, use_proxy, capitalize,
                   cookie_secret, jsonp

    Returns:
        A function (HTTPRequest, HTTPResponse) -> Exchange

    Raises:
        TypeError: Unknown option name
        ValueError: Invalid option value
    """
    if config is None:
        config = EnhanceConfig(**options)
    elif options:
        config = replace(config, **options)
    config.validate()

    jsonp_param = config.jsonp_param

    def handle(request: HTTPRequest, response: HTTPResponse) -> Exchange:
        req = build_request_context(config, request)
        res = build_response_context(config, req, response)

        if jsonp_param:
            callback = req.get_query(jsonp_param)
            if callback and JSONP_CALLBACK_PATTERN.match(callback):
                res.jsonp = callback
            elif callback:
                logger.debug(f"Ignoring invalid JSONP callback name: {callback!r}")

        return Exchange(req, res)

    return handle
