"""
Unit tests for ResponseContext.
"""

from datetime import datetime, timezone

import pytest

from httpcontext.context.cookies import sign
from httpcontext.context.freshness import etag
from httpcontext.context.response import BACK, content_disposition
from httpcontext.http.request import HTTPRequest
from httpcontext.http.response import HTTPResponse, HeadersSentError


def http2_request(**extra) -> HTTPRequest:
    headers = [(":method", "GET"), (":scheme", "https"), (":authority", "example.com"), (":path", "/")]
    return HTTPRequest.from_pseudo_headers(headers + list(extra.items()))


class TestSend:
    """Tests for send() body classification."""

    def test_html_string(self, make_exchange):
        """Test sniffed HTML gets type, UTF-8 charset and byte length."""
        _, res = make_exchange()
        res.send("<h1>Hello</h1>")

        assert res.transport.get_header("Content-Type") == "text/html; charset=UTF-8"
        assert res.transport.get_header("Content-Length") == "14"
        assert res.transport.body == b"<h1>Hello</h1>"
        assert res.finished is True

    def test_length_is_multibyte_safe(self, make_exchange):
        """Test Content-Length counts encoded bytes, not characters."""
        _, res = make_exchange()
        res.send("héllo wörld")

        assert res.type == "text/plain"
        assert res.length == len("héllo wörld".encode("utf-8")) == 13

    def test_json_value(self, make_exchange):
        """Test non-string values are sent as compact JSON."""
        _, res = make_exchange()
        res.send({"hello": "world", "n": [1, 2]})

        assert res.type == "application/json"
        assert res.charset == "UTF-8"
        assert res.transport.body == b'{"hello":"world","n":[1,2]}'

    def test_jsonp(self, make_exchange, raw_request):
        """Test JSONP wrapping when the callback parameter is present."""
        _, res = make_exchange(raw_request(target="/data?jsonp=callback"), jsonp=True)
        res.send({"hello": "world"})

        assert res.type == "application/javascript"
        assert res.transport.body == b'callback({"hello":"world"});'

    def test_jsonp_custom_parameter(self, make_exchange, raw_request):
        """Test a named JSONP query parameter."""
        _, res = make_exchange(raw_request(target="/data?cb=app.handle"), jsonp="cb")
        res.send([1])

        assert res.transport.body == b"app.handle([1]);"

    def test_jsonp_without_parameter_is_json(self, make_exchange):
        """Test JSONP config alone does not wrap."""
        _, res = make_exchange(jsonp=True)
        res.send({"a": 1})

        assert res.type == "application/json"
        assert res.transport.body == b'{"a":1}'

    def test_bytes(self, make_exchange):
        """Test binary bodies."""
        _, res = make_exchange()
        res.send(b"\x00\x01\x02")

        assert res.type == "application/octet-stream"
        assert res.length == 3

    def test_explicit_type_wins(self, make_exchange):
        """Test sniffing is skipped when a type is already set."""
        _, res = make_exchange()
        res.type = "xml"
        res.send("<h1>not html</h1>")

        assert res.transport.get_header("Content-Type") == "application/xml; charset=UTF-8"

    def test_etag_set(self, make_exchange):
        """Test the ETag is computed from the final body."""
        _, res = make_exchange()
        res.send("hello")

        assert res.etag == etag(b"hello")

    def test_head_sends_no_body(self, make_exchange, raw_request):
        """Test HEAD requests finish without a body."""
        _, res = make_exchange(raw_request("HEAD"))
        res.send("<h1>Hello</h1>")

        assert res.finished is True
        assert res.transport.body == b""
        assert res.type is None

    def test_none_ends(self, make_exchange):
        """Test send(None) just finishes."""
        _, res = make_exchange()
        res.send(None)

        assert res.finished is True
        assert res.transport.body == b""


class TestConditionalResponses:
    """Tests for 304 handling in send()."""

    def test_matching_etag_gives_304(self, make_exchange, raw_request):
        """Test a GET with a matching If-None-Match."""
        raw = raw_request(headers={"If-None-Match": etag(b"<h1>Hello</h1>")})
        _, res = make_exchange(raw)
        res.send("<h1>Hello</h1>")

        assert res.code == 304
        assert res.transport.body == b""
        assert not res.transport.has_header("Content-Type")
        assert not res.transport.has_header("Content-Length")
        assert b"Content-Length" not in res.transport.to_bytes()

    def test_post_never_304(self, make_exchange, raw_request):
        """Test the same validators on POST still send the body."""
        raw = raw_request("POST", headers={"If-None-Match": etag(b"<h1>Hello</h1>")})
        _, res = make_exchange(raw)
        res.send("<h1>Hello</h1>")

        assert res.code == 200
        assert res.transport.body == b"<h1>Hello</h1>"

    def test_stale_etag_sends_body(self, make_exchange, raw_request):
        """Test a non-matching validator."""
        _, res = make_exchange(raw_request(headers={"If-None-Match": '"old"'}))
        res.send("fresh content")

        assert res.code == 200

    def test_last_modified(self, make_exchange, raw_request):
        """Test If-Modified-Since against a datetime Last-Modified."""
        raw = raw_request(headers={"If-Modified-Since": "Thu, 01 Jan 2026 00:00:00 GMT"})
        _, res = make_exchange(raw)
        res.last_modified = datetime(2026, 1, 1, tzinfo=timezone.utc)

        assert res.modified is False
        res.send("content")
        assert res.code == 304

    def test_204_drops_content_headers(self, make_exchange):
        """Test 204 responses carry no body or content headers."""
        _, res = make_exchange()
        res.status = 204
        res.send("ignored")

        assert res.transport.body == b""
        assert not res.transport.has_header("Content-Type")


class TestCookies:
    """Tests for response cookies."""

    def test_cookies_emitted_on_end(self, make_exchange):
        """Test queued cookies become Set-Cookie lines in write order."""
        _, res = make_exchange()
        res.cookie("theme", "dark", path="/")
        res.cookies.set("x", {"a": 1})

        assert not res.transport.has_header("Set-Cookie")
        res.send("ok")

        assert res.transport.get_header("Set-Cookie") == ["theme=s:dark; Path=/", 'x=j:{%22a%22:1}']
        assert b"Set-Cookie: theme=s:dark; Path=/\r\n" in res.transport.to_bytes()

    def test_cookie_getter(self, make_exchange):
        """Test reading back a written cookie."""
        _, res = make_exchange()
        res.cookie("theme", "dark")

        assert res.cookie("theme") == "dark"
        assert res.cookie("missing") is None

    def test_signed(self, make_exchange):
        """Test values are signed with the configured secret."""
        _, res = make_exchange(cookie_secret="k")
        res.cookie("sid", "abc")
        res.end()

        assert res.transport.get_header("Set-Cookie") == [f"sid={sign('s:abc', 'k')}"]

    def test_clear(self, make_exchange):
        """Test None queues an expiring cookie."""
        _, res = make_exchange()
        res.cookie("sid", "abc", max_age=60)
        res.cookie("sid", None)
        res.end()

        assert res.transport.get_header("Set-Cookie") == ["sid=; Expires=Thu, 01 Jan 1970 00:00:00 GMT"]

    def test_existing_set_cookie_kept(self, make_exchange):
        """Test cookies already on the transport are seeded and preserved."""
        transport = HTTPResponse().set_header("Set-Cookie", "a=s:1")
        _, res = make_exchange(response=transport)

        assert res.cookies["a"] == "1"
        res.cookie("b", "2")
        res.end()

        assert transport.get_header("Set-Cookie") == ["a=s:1", "b=s:2"]

    def test_rewritten_existing_cookie_emitted_once(self, make_exchange):
        """Test re-setting a cookie already on the transport replaces its line."""
        transport = HTTPResponse().set_header("Set-Cookie", ["a=s:1", "keep=s:k"])
        _, res = make_exchange(response=transport)

        res.cookie("a", "2")
        res.end()

        assert transport.get_header("Set-Cookie") == ["keep=s:k", "a=s:2"]

    def test_rewritten_only_existing_cookie(self, make_exchange):
        """Test replacing the sole transport cookie leaves just the new line."""
        transport = HTTPResponse().set_header("Set-Cookie", "a=s:1")
        _, res = make_exchange(response=transport)

        res.cookie("a", None)
        res.end()

        assert transport.get_header("Set-Cookie") == ["a=; Expires=Thu, 01 Jan 1970 00:00:00 GMT"]


class TestStatus:
    """Tests for code, message and status."""

    def test_numeric(self, make_exchange):
        """Test setting a numeric status."""
        _, res = make_exchange()
        res.status = 404

        assert res.code == 404
        assert res.message == "Not Found"
        assert res.status == "404 Not Found"
        assert res.transport.status_line == "HTTP/1.1 404 Not Found"

    def test_status_line_string(self, make_exchange):
        """Test setting code and message from one string."""
        _, res = make_exchange()
        res.status = "418 I'm a teapot"

        assert res.code == 418
        assert res.message == "I'm a teapot"

    def test_code_and_message(self, make_exchange):
        """Test the individual components."""
        _, res = make_exchange()
        res.code = 201
        res.message = "Made"

        assert res.status == "201 Made"

    def test_http2_has_no_message(self, make_exchange):
        """Test HTTP/2 suppresses the reason phrase and Connection."""
        _, res = make_exchange(http2_request())
        res.status = 404
        res.keep_alive = True

        assert res.message == ""
        assert res.status == "404"

        res.end()
        assert res.transport.reason == ""
        assert not res.transport.has_header("Connection")


class TestContentType:
    """Tests for type and charset over one Content-Type."""

    def test_type_from_short_name(self, make_exchange):
        """Test MIME lookup for names without '/'."""
        _, res = make_exchange()
        res.type = "html"

        assert res.type == "text/html"
        assert res.charset is None

    def test_recompose(self, make_exchange):
        """Test setting either part preserves the other."""
        _, res = make_exchange()
        res.type = "html"
        res.charset = "ISO-8859-1"
        assert res.transport.get_header("Content-Type") == "text/html; charset=ISO-8859-1"

        res.type = "json"
        assert res.transport.get_header("Content-Type") == "application/json; charset=ISO-8859-1"

    def test_charset_before_type(self, make_exchange):
        """Test a charset set first is kept when the type arrives."""
        _, res = make_exchange()
        res.charset = "UTF-8"

        assert not res.transport.has_header("Content-Type")
        res.type = "text/plain"
        assert res.transport.get_header("Content-Type") == "text/plain; charset=UTF-8"

    def test_charset_used_for_encoding(self, make_exchange):
        """Test string bodies are encoded with the configured charset."""
        _, res = make_exchange()
        res.charset = "ISO-8859-1"
        res.send("café")

        assert res.transport.body == b"caf\xe9"
        assert res.length == 4


class TestHeaderAccessors:
    """Tests for header helpers and header-backed properties."""

    def test_get_set_append_remove(self, make_exchange):
        """Test the header helper methods."""
        _, res = make_exchange()
        res.set("X-Trace", "1")
        res.append("x-trace", "2")

        assert res.get("x-trace") == ["1", "2"]
        assert res.transport.get_header("X-Trace") == ["1", "2"]

        res.remove("X-Trace")
        assert res.get("x-trace") is None
        assert not res.transport.has_header("X-Trace")

    def test_capitalize_off(self, make_exchange):
        """Test header names go out as written when capitalize=False."""
        _, res = make_exchange(capitalize=False)
        res.set("x-custom", "1")

        assert list(res.transport.header_items()) == [("x-custom", "1")]

    @pytest.mark.parametrize("value,header,parsed", [
        (60, "max-age=60", 60),
        ("30", "max-age=30", 30),
        (0, "max-age=0", 0),
        (None, "no-cache", None),
        ("no-store", "no-store", "no-store"),
    ])
    def test_cache(self, make_exchange, value, header, parsed):
        """Test the Cache-Control accessor."""
        _, res = make_exchange()
        res.cache = value

        assert res.transport.get_header("Cache-Control") == header
        assert res.cache == parsed

    def test_dates(self, make_exchange):
        """Test datetime headers are formatted on the wire."""
        _, res = make_exchange()
        when = datetime(2026, 1, 1, 8, 30, tzinfo=timezone.utc)
        res.date = when
        res.last_modified = when

        assert res.date == when
        assert res.transport.get_header("Date") == "Thu, 01 Jan 2026 08:30:00 GMT"
        assert res.transport.get_header("Last-Modified") == "Thu, 01 Jan 2026 08:30:00 GMT"

    def test_simple_properties(self, make_exchange):
        """Test pass-through header properties."""
        _, res = make_exchange()
        res.location = "/next"
        res.refresh = 5
        res.vary = "Accept"
        res.encoding = "gzip"
        res.etag = '"v1"'
        res.length = 10

        assert res.location == "/next"
        assert res.refresh == 5
        assert res.transport.get_header("Refresh") == "5"
        assert res.vary == "Accept"
        assert res.encoding == "gzip"
        assert res.etag == '"v1"'
        assert res.length == 10

    def test_keep_alive(self, make_exchange):
        """Test the Connection accessor."""
        _, res = make_exchange()
        assert res.keep_alive is False

        res.keep_alive = True
        assert res.transport.get_header("Connection") == "keep-alive"
        res.keep_alive = False
        assert res.transport.get_header("Connection") == "close"

    def test_attachment(self, make_exchange):
        """Test Content-Disposition and type from a file name."""
        _, res = make_exchange()
        res.attachment = "/srv/files/report.pdf"

        assert res.type == "application/pdf"
        assert res.attachment == 'attachment; filename="report.pdf"'

    def test_content_disposition_non_ascii(self):
        """Test the filename* form for non-ASCII names."""
        assert content_disposition("résumé.pdf") == (
            "attachment; filename=\"r?sum?.pdf\"; filename*=UTF-8''r%C3%A9sum%C3%A9.pdf"
        )


class TestActions:
    """Tests for auth, redirect and end."""

    def test_auth(self, make_exchange):
        """Test the Basic challenge."""
        _, res = make_exchange()
        res.auth("Admin area")

        assert res.code == 401
        assert res.get("www-authenticate") == 'Basic realm="Admin area"'
        assert res.finished is True

    def test_unauth_default_realm(self, make_exchange):
        """Test unauth() re-challenges with the default realm."""
        _, res = make_exchange()
        res.unauth()

        assert res.get("WWW-Authenticate") == 'Basic realm="HTTP Authentication"'

    def test_redirect(self, make_exchange):
        """Test a temporary redirect."""
        _, res = make_exchange()
        res.redirect("/login")

        assert res.status == "302 Found"
        assert res.transport.get_header("Location") == "/login"
        assert res.finished is True

    def test_redirect_back(self, make_exchange, raw_request):
        """Test BACK goes to the Referer."""
        _, res = make_exchange(raw_request(headers={"Referer": "http://example.com/cart"}))
        res.redirect(BACK, 301)

        assert res.code == 301
        assert res.location == "http://example.com/cart"

    def test_end_twice_raises(self, make_exchange):
        """Test a finished response cannot be finished again."""
        _, res = make_exchange()
        res.end("done")

        with pytest.raises(HeadersSentError):
            res.end()

    def test_modified_depends_on_method(self, make_exchange, raw_request):
        """Test modified for GET and POST with matching validators."""
        headers = {"If-None-Match": '"v1"'}

        _, get_res = make_exchange(raw_request(headers=headers))
        get_res.etag = '"v1"'
        _, post_res = make_exchange(raw_request("POST", headers=headers))
        post_res.etag = '"v1"'

        assert get_res.modified is False
        assert post_res.modified is True


class TestSendFile:
    """Tests for send_file() and download()."""

    def test_send_file(self, make_exchange, tmp_path):
        """Test sending a file with the type from its name."""
        page = tmp_path / "page.html"
        page.write_bytes(b"<p>hi</p>")
        results = []

        _, res = make_exchange()
        res.send_file(str(page), results.append)

        assert res.type == "text/html"
        assert res.transport.body == b"<p>hi</p>"
        assert res.length == 9
        assert results == [None]

    def test_missing_file_with_callback(self, make_exchange, tmp_path):
        """Test I/O errors go to the callback."""
        results = []

        _, res = make_exchange()
        res.send_file(str(tmp_path / "missing.txt"), results.append)

        assert len(results) == 1
        assert isinstance(results[0], FileNotFoundError)
        assert res.code == 404
        assert res.finished is True
        assert res.transport.body == b""

    def test_missing_file_without_callback(self, make_exchange, tmp_path):
        """Test I/O errors propagate when no callback is given."""
        _, res = make_exchange()

        with pytest.raises(OSError):
            res.send_file(str(tmp_path / "missing.txt"))
        assert res.finished is True

    def test_download_renamed(self, make_exchange, tmp_path):
        """Test downloads under another name."""
        data = tmp_path / "data.bin"
        data.write_bytes(b"1,2,3")

        _, res = make_exchange()
        res.download(str(data), "report.csv")

        assert res.attachment == 'attachment; filename="report.csv"'
        assert res.type == "text/csv"
        assert res.transport.body == b"1,2,3"

    def test_download_callback_as_second_argument(self, make_exchange, tmp_path):
        """Test download(filename, callback)."""
        data = tmp_path / "notes.txt"
        data.write_bytes(b"notes")
        results = []

        _, res = make_exchange()
        res.download(str(data), results.append)

        assert res.attachment == 'attachment; filename="notes.txt"'
        assert results == [None]
