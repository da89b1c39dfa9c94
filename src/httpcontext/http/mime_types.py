"""
=============================================================================
MIME TYPE LOOKUP
=============================================================================

Resolves short type names, extensions and file names to MIME types.

The response context accepts all of these spellings wherever a type is
expected:

    ┌────────────────────────────────────────────────────────────────────┐
    │   INPUT                      →   RESULT                            │
    ├────────────────────────────────────────────────────────────────────┤
    │   "html"                     →   text/html                         │
    │   ".json"                    →   application/json                  │
    │   "report.PDF"               →   application/pdf                   │
    │   "/var/www/app.min.js"      →   text/javascript                   │
    │   "unknown.xyz"              →   None  (caller picks a default)    │
    └────────────────────────────────────────────────────────────────────┘

A full media type ("text/html") is never passed here; callers check for
the "/" first.

=============================================================================
"""

from pathlib import PurePath
from typing import Optional


# =============================================================================
# MIME TYPE DATABASE
# =============================================================================
#
# Extension (lowercase, no dot) → MIME type.
# Short names used as `res.type = "json"` are just extensions.
#
# =============================================================================

MIME_TYPES = {
    # text
    "html": "text/html",
    "htm": "text/html",
    "css": "text/css",
    "js": "text/javascript",
    "mjs": "text/javascript",
    "txt": "text/plain",
    "text": "text/plain",
    "md": "text/markdown",
    "csv": "text/csv",
    "yaml": "text/yaml",
    "yml": "text/yaml",

    # structured data
    "json": "application/json",
    "map": "application/json",
    "jsonp": "application/javascript",
    "xml": "application/xml",
    "xhtml": "application/xhtml+xml",
    "rss": "application/rss+xml",
    "atom": "application/atom+xml",
    "form": "application/x-www-form-urlencoded",
    "urlencoded": "application/x-www-form-urlencoded",
    "multipart": "multipart/form-data",

    # images
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "gif": "image/gif",
    "svg": "image/svg+xml",
    "ico": "image/x-icon",
    "webp": "image/webp",
    "avif": "image/avif",
    "bmp": "image/bmp",

    # fonts
    "woff": "font/woff",
    "woff2": "font/woff2",
    "ttf": "font/ttf",
    "otf": "font/otf",

    # audio / video
    "mp3": "audio/mpeg",
    "wav": "audio/wav",
    "ogg": "audio/ogg",
    "mp4": "video/mp4",
    "webm": "video/webm",

    # documents / archives / binaries
    "pdf": "application/pdf",
    "zip": "application/zip",
    "gz": "application/gzip",
    "tar": "application/x-tar",
    "wasm": "application/wasm",
    "bin": "application/octet-stream",
}

# "I don't know what this is, treat as binary"
DEFAULT_MIME_TYPE = "application/octet-stream"

# application/* types that are really text and take a charset
_TEXTUAL_APPLICATION_TYPES = {
    "application/json",
    "application/xml",
    "application/javascript",
    "application/xhtml+xml",
    "application/rss+xml",
    "application/atom+xml",
    "image/svg+xml",
}


def lookup(name: str, default: Optional[str] = None) -> Optional[str]:
    """
    Get the MIME type for a short name, extension or file name.

    Args:
        name: "json", ".json", "data.json" or a full path
        default: Returned when nothing matches

    Returns:
        The MIME type string, or `default`

    Examples:
        >>> lookup("html")
        'text/html'

        >>> lookup("/tmp/archive.tar")
        'application/x-tar'

        >>> lookup("mystery.xyz") is None
        True
    """
    if not name:
        return default

    key = name.strip().lower()
    if key in MIME_TYPES:
        return MIME_TYPES[key]

    suffix = PurePath(key).suffix or ("." + key.lstrip(".") if key.startswith(".") else "")
    return MIME_TYPES.get(suffix.lstrip("."), default)


def is_text_type(mime_type: str) -> bool:
    """
    Check if a MIME type represents text content (and so takes a charset).

    Examples:
        >>> is_text_type("text/html")
        True

        >>> is_text_type("application/json")
        True

        >>> is_text_type("image/png")
        False
    """
    mime_type = mime_type.split(";")[0].strip().lower()
    if mime_type.startswith("text/"):
        return True
    return mime_type in _TEXTUAL_APPLICATION_TYPES or mime_type.endswith("+json")
