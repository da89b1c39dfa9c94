"""
Unit tests for the transport HTTPResponse.
"""

from datetime import datetime, timedelta, timezone

import pytest

from httpcontext.http.response import (
    HTTPResponse,
    HeadersSentError,
    format_http_date,
    reason_phrase,
)


class TestHTTPResponse:
    """Tests for HTTPResponse class."""

    def test_status_line(self):
        """Test status line generation."""
        assert HTTPResponse(status=200).status_line == "HTTP/1.1 200 OK"
        assert HTTPResponse(status=404).status_line == "HTTP/1.1 404 Not Found"

    def test_status_line_custom_and_empty_reason(self):
        """Test explicit reason phrases, including the empty one."""
        assert HTTPResponse(status=200, reason="Fine").status_line == "HTTP/1.1 200 Fine"
        assert HTTPResponse(status=200, reason="").status_line == "HTTP/1.1 200"

    def test_headers_case_insensitive(self):
        """Test lookups ignore case while the wire spelling is kept."""
        response = HTTPResponse().set_header("X-Custom", "value")

        assert response.get_header("x-custom") == "value"
        assert response.has_header("X-CUSTOM")
        assert response.headers == {"x-custom": "value"}
        assert list(response.header_items()) == [("X-Custom", "value")]

    def test_remove_header(self):
        """Test removing headers, missing ones included."""
        response = HTTPResponse().set_header("X-One", "1")
        response.remove_header("x-one").remove_header("x-missing")

        assert not response.has_header("X-One")

    def test_to_bytes_includes_headers(self):
        """Test that to_bytes includes all headers."""
        response = HTTPResponse(status=200).set_header("X-Custom", "value")
        response.end(b"test")

        result = response.to_bytes()

        assert result.startswith(b"HTTP/1.1 200 OK\r\n")
        assert b"X-Custom: value\r\n" in result
        assert b"Content-Length: 4\r\n" in result
        assert result.endswith(b"\r\n\r\ntest")

    def test_list_values_become_repeated_lines(self):
        """Test that list values are sent as one line each."""
        response = HTTPResponse().set_header("Set-Cookie", ["a=s:1", "b=s:2"])
        result = response.to_bytes()

        assert b"Set-Cookie: a=s:1\r\nSet-Cookie: b=s:2\r\n" in result

    def test_no_content_length_for_304(self):
        """Test that bodiless statuses get no automatic Content-Length."""
        response = HTTPResponse(status=304)
        response.end(b"ignored")

        result = response.to_bytes()
        assert b"Content-Length" not in result
        assert result.endswith(b"\r\n\r\n")

    def test_end_encodes_text(self):
        """Test that string bodies are encoded with the given encoding."""
        response = HTTPResponse()
        response.end("café", encoding="latin-1")

        assert response.body == b"caf\xe9"
        assert response.finished is True

    def test_write_after_end_raises(self):
        """Test that a finished response refuses further writes."""
        response = HTTPResponse()
        response.end()

        with pytest.raises(HeadersSentError):
            response.set_header("X-Late", "1")
        with pytest.raises(HeadersSentError):
            response.end()


class TestReasonPhrase:
    """Tests for reason phrase lookup."""

    def test_known_and_unknown(self):
        """Test standard phrases and the empty fallback."""
        assert reason_phrase(201) == "Created"
        assert reason_phrase(799) == ""


class TestFormatHTTPDate:
    """Tests for HTTP date formatting."""

    def test_format(self):
        """Test HTTP date format."""
        dt = datetime(2026, 1, 15, 12, 30, 45, tzinfo=timezone.utc)
        assert format_http_date(dt) == "Thu, 15 Jan 2026 12:30:45 GMT"

    def test_converts_to_utc(self):
        """Test that aware datetimes are converted to GMT."""
        dt = datetime(2026, 1, 15, 14, 30, 45, tzinfo=timezone(timedelta(hours=2)))
        assert format_http_date(dt) == "Thu, 15 Jan 2026 12:30:45 GMT"
