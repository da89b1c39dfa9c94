"""
=============================================================================
ENHANCEMENT CONFIGURATION
=============================================================================

Process-wide settings for the context layer.

These values are established once, when enhance() is called, and are
treated as read-only for every exchange afterwards. No exchange ever
mutates them.

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION HIERARCHY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   1. Keyword options                                                │
    │      └── enhance(domain=["example.com"], use_proxy=True)           │
    │                                                                      │
    │   2. An explicit EnhanceConfig                                      │
    │      └── enhance(EnhanceConfig(cookie_secret="..."))               │
    │                                                                      │
    │   3. Environment variables                                          │
    │      └── HTTPCONTEXT_COOKIE_SECRET=... via EnhanceConfig.from_env() │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Cookie secrets belong in the environment, never in source code.

=============================================================================
"""

import os
from dataclasses import dataclass
from typing import Optional, Union


_TRUTHY = {"1", "true", "yes", "on"}


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in _TRUTHY


@dataclass
class EnhanceConfig:
    """
    Configuration for the request/response context layer.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    ORIGIN RESOLUTION
    - domain, use_proxy

    RESPONSE SHAPING
    - capitalize, jsonp

    COOKIES
    - cookie_secret

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # ORIGIN RESOLUTION
    # ─────────────────────────────────────────────────────────────────────

    domain: Union[str, list[str], None] = None
    """
    Base domain(s) used to split hostname into subdomain + domain.
    - "example.com"                  single base domain
    - ["example.com", "localhost"]   tried in order, first match wins
    """

    use_proxy: bool = False
    """
    Trust X-Forwarded-Proto / X-Forwarded-Host for protocol and host.
    Only enable behind a reverse proxy you control; clients can send
    these headers themselves.
    """

    # ─────────────────────────────────────────────────────────────────────
    # RESPONSE SHAPING
    # ─────────────────────────────────────────────────────────────────────

    capitalize: bool = True
    """
    Title-case outgoing header names ("x-powered-by" → "X-Powered-By").
    """

    jsonp: Union[bool, str, None] = None
    """
    Enable JSONP responses.
    - True        query parameter "jsonp" names the callback
    - "callback"  query parameter "callback" names the callback
    - None/False  disabled
    """

    # ─────────────────────────────────────────────────────────────────────
    # COOKIES
    # ─────────────────────────────────────────────────────────────────────

    cookie_secret: Optional[str] = None
    """
    HMAC secret for signing outgoing cookies and verifying incoming ones.
    None disables signing.
    """

    @property
    def domains(self) -> list[str]:
        """Configured base domains as a list, in configured order."""
        if not self.domain:
            return []
        if isinstance(self.domain, str):
            return [self.domain]
        return list(self.domain)

    @property
    def jsonp_param(self) -> Optional[str]:
        """Name of the JSONP callback query parameter, or None."""
        if self.jsonp is True:
            return "jsonp"
        return self.jsonp or None

    @classmethod
    def from_env(cls) -> "EnhanceConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        HTTPCONTEXT_DOMAIN         Comma-separated base domains
        HTTPCONTEXT_USE_PROXY      Trust X-Forwarded-* (default: false)
        HTTPCONTEXT_CAPITALIZE     Title-case header names (default: true)
        HTTPCONTEXT_COOKIE_SECRET  Cookie signing secret (default: unset)
        HTTPCONTEXT_JSONP          "true" or a parameter name

        =====================================================================
        """
        domain = os.getenv("HTTPCONTEXT_DOMAIN")
        domains = [d.strip() for d in domain.split(",") if d.strip()] if domain else None

        jsonp: Union[bool, str, None] = os.getenv("HTTPCONTEXT_JSONP") or None
        if isinstance(jsonp, str):
            lowered = jsonp.strip().lower()
            if lowered in _TRUTHY:
                jsonp = True
            elif lowered in {"0", "false", "no", "off"}:
                jsonp = None

        return cls(
            domain=domains,
            use_proxy=_env_flag("HTTPCONTEXT_USE_PROXY", False),
            capitalize=_env_flag("HTTPCONTEXT_CAPITALIZE", True),
            cookie_secret=os.getenv("HTTPCONTEXT_COOKIE_SECRET") or None,
            jsonp=jsonp,
        )

    def validate(self) -> None:
        """
        Validate configuration values.

        Fail fast at construction time rather than on the first request.
        """
        for d in self.domains:
            if not isinstance(d, str) or not d or d.startswith(".") or " " in d:
                raise ValueError(f"Invalid domain: {d!r}")

        if self.cookie_secret is not None and not isinstance(self.cookie_secret, str):
            raise ValueError("cookie_secret must be a string")

        if self.cookie_secret == "":
            raise ValueError("cookie_secret must not be empty; use None to disable signing")

        param = self.jsonp_param
        if param is not None and not isinstance(param, str):
            raise ValueError(f"jsonp must be a bool or a parameter name, got {self.jsonp!r}")
