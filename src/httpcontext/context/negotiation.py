"""
=============================================================================
CONTENT NEGOTIATION PARSER
=============================================================================

One q-value list parser shared by Accept, Accept-Language and
Accept-Charset.

=============================================================================
QUALITY VALUES
=============================================================================

    Accept: application/json, text/html;q=0.9, */*;q=0.5
            ───────┬────────  ────┬──────────  ───┬──────
                   │              │               │
              q omitted        q=0.9           q=0.5
              (synthetic 1.0)

    → ["application/json", "text/html", "*/*"]

Entries without an explicit q get a SYNTHETIC quality: 1.0 for the first
entry in the header, 0.99 for the second, 0.98 for the third, and so on.
That keeps declaration order among unweighted entries instead of leaving
it to an unstable sort. The sort itself is stable, so entries that end
up with identical qualities also keep their declared order.

=============================================================================
EDGE CASES
=============================================================================

    ""  or None                  → []
    "a;q=abc"                    → a gets q=0 (sinks to the end)
    "a;q=nan"                    → a gets q=0
    "a;q=7"                      → clamped to 1.0
    "a;q=0"                      → kept; filtering is the caller's policy
    "text/html;level=1;q=0.5"    → value "text/html", q=0.5

=============================================================================
"""

import math
from dataclasses import dataclass
from typing import Optional


SYNTHETIC_STEP = 0.01


@dataclass(frozen=True)
class AcceptEntry:
    """One negotiated value with its effective quality."""

    value: str
    quality: float


def _parse_quality(raw: str) -> float:
    try:
        q = float(raw)
    except ValueError:
        return 0.0
    if math.isnan(q):
        return 0.0
    return min(max(q, 0.0), 1.0)


def parse_accept_entries(header: Optional[str]) -> list[AcceptEntry]:
    """
    Parse an Accept-style header into entries, best first.

    Args:
        header: Raw header value (may be None or empty)

    Returns:
        AcceptEntry list sorted by quality, highest first.
    """
    if not header:
        return []

    entries: list[AcceptEntry] = []
    index = 0

    for part in header.split(","):
        part = part.strip()
        if not part:
            continue

        value, *params = [p.strip() for p in part.split(";")]
        if not value:
            continue

        quality: Optional[float] = None
        for param in params:
            key, sep, raw = param.partition("=")
            if sep and key.strip().lower() == "q":
                quality = _parse_quality(raw.strip())
                break

        if quality is None:
            quality = max(1.0 - SYNTHETIC_STEP * index, 0.0)

        entries.append(AcceptEntry(value, quality))
        index += 1

    # sorted() is stable: equal qualities keep declaration order
    return sorted(entries, key=lambda entry: -entry.quality)


def parse_accept(header: Optional[str]) -> list[str]:
    """
    Parse an Accept-style header into values, best first.

    Example:
        >>> parse_accept("application/json, text/html;q=0.9, */*;q=0.5")
        ['application/json', 'text/html', '*/*']
    """
    return [entry.value for entry in parse_accept_entries(header)]


def parse_list(header: Optional[str]) -> list[str]:
    """
    Split a comma-separated header in declaration order.

    Used for Accept-Encoding, whose order is taken as declared.
    """
    if not header:
        return []
    return [item.strip() for item in header.split(",") if item.strip()]
