"""
Response body type sniffing.

Guesses a Content-Type for a string body when the application did not set
one. The checks run in order on the stripped text:

    '{...}' or '[...]'              → application/json
    ends with '>' and
        starts with '<!DOCTYPE '    → text/html
        starts with '<?xml '        → application/xml
        first tag is a known HTML   → text/html
        element name
        any other first tag         → application/xml
        no tag at all               → text/plain
    anything else                   → text/plain
"""

import re


# Standard HTML element names (WHATWG HTML Living Standard, plus math/svg
# which may appear inline in HTML documents).
HTML_TAGS = frozenset("""
    a abbr address area article aside audio b base bdi bdo blockquote body br
    button canvas caption cite code col colgroup data datalist dd del details
    dfn dialog div dl dt em embed fieldset figcaption figure footer form h1 h2
    h3 h4 h5 h6 head header hgroup hr html i iframe img input ins kbd label
    legend li link main map mark math menu menuitem meta meter nav noscript
    object ol optgroup option output p param picture pre progress q rb rp rt
    rtc ruby s samp script search section select slot small source span strong
    style sub summary sup svg table tbody td template textarea tfoot th thead
    time title tr track u ul var video wbr
""".split())

FIRST_TAG_PATTERN = re.compile(r"<([a-zA-Z0-9\-:_]+)")


def sniff_content_type(text: str) -> str:
    """Infer a MIME type for a string response body."""
    data = text.strip()

    if (data.startswith("{") and data.endswith("}")) or (data.startswith("[") and data.endswith("]")):
        return "application/json"

    if not data.endswith(">"):
        return "text/plain"

    # DOCTYPE is case-insensitive in HTML ("<!doctype html>")
    if data[:10].upper() == "<!DOCTYPE ":
        return "text/html"
    if data.startswith("<?xml "):
        return "application/xml"

    match = FIRST_TAG_PATTERN.search(data)
    if not match:
        return "text/plain"

    tag = match.group(1)
    if ":" in tag or tag.lower() not in HTML_TAGS:
        return "application/xml"
    return "text/html"
