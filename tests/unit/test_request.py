"""
Unit tests for HTTP request parsing.
"""

import pytest

from healthresponder.errors import (
    BodyTooLarge,
    DuplicateHeader,
    HeaderError,
    MalformedHeader,
)
from healthresponder.http.request import (
    ParsedRequest,
    RequestParser,
    decode_header_block,
    extract_content_length,
    find_header,
    has_chunked_transfer_encoding,
    parse_request_line,
    split_header_block,
)


class TestParseRequestLine:
    """Tests for the request line split."""

    @pytest.mark.parametrize("line,expected", [
        ("GET / HTTP/1.1", ("GET", "/")),
        ("HEAD /favicon.ico HTTP/1.1", ("HEAD", "/favicon.ico")),
        ("GET /?probe=1 HTTP/1.1", ("GET", "/")),
        ("GET /a?b=1?c=2 HTTP/1.1", ("GET", "/a")),
        ("GET /#top HTTP/1.1", ("GET", "/#top")),
        ("GET /", ("GET", "/")),
        ("GET", ("GET", "")),
        ("", ("", "")),
    ])
    def test_split(self, line, expected):
        assert parse_request_line(line) == expected

    def test_method_is_case_sensitive(self):
        """Methods are returned exactly as sent."""
        assert parse_request_line("get / HTTP/1.1") == ("get", "/")


class TestContentLength:
    """Tests for Content-Length validation."""

    def test_missing_is_zero(self):
        assert extract_content_length(["Host: x"]) == 0

    def test_valid_value(self):
        assert extract_content_length(["Content-Length: 42"]) == 42

    def test_header_name_case_insensitive(self):
        assert extract_content_length(["content-LENGTH:   7  "]) == 7

    def test_exactly_max_is_accepted(self):
        assert extract_content_length(["Content-Length: 100"], max_body_size=100) == 100

    def test_duplicate_rejected_even_when_equal(self):
        with pytest.raises(DuplicateHeader):
            extract_content_length(["Content-Length: 5", "Content-Length: 5"])

    def test_duplicate_zero_rejected(self):
        with pytest.raises(DuplicateHeader):
            extract_content_length(["Content-Length: 0", "content-length: 0"])

    @pytest.mark.parametrize("value", ["abc", "-1", "+5", "1.5", "", "1 2", "١"])
    def test_malformed_rejected(self, value):
        with pytest.raises(MalformedHeader):
            extract_content_length([f"Content-Length: {value}"])

    def test_too_large(self):
        with pytest.raises(BodyTooLarge):
            extract_content_length(["Content-Length: 2000000"])

    def test_errors_map_to_statuses(self):
        """Duplicate and malformed answer 431, oversized answers 413."""
        assert DuplicateHeader.status == 431
        assert MalformedHeader.status == 431
        assert BodyTooLarge.status == 413
        assert issubclass(BodyTooLarge, HeaderError)


class TestHeaders:
    """Tests for header helpers."""

    def test_find_header_case_insensitive(self):
        lines = ["Host: a", "X-Forwarded-For:  10.0.0.1, 10.0.0.2 "]
        assert find_header(lines, "x-forwarded-for") == "10.0.0.1, 10.0.0.2"

    def test_find_header_first_wins(self):
        assert find_header(["X-A: 1", "X-A: 2"], "X-A") == "1"

    def test_find_header_missing(self):
        assert find_header(["Host: a", "garbage"], "X-A") is None

    @pytest.mark.parametrize("lines,expected", [
        (["Transfer-Encoding: chunked"], True),
        (["transfer-encoding: gzip, CHUNKED"], True),
        (["Transfer-Encoding: gzip"], False),
        (["X-Note: chunked"], False),
        ([], False),
    ])
    def test_chunked_detection(self, lines, expected):
        assert has_chunked_transfer_encoding(lines) is expected


class TestHeaderBlock:
    """Tests for splitting and decoding raw bytes."""

    def test_split_with_leftover(self):
        raw = b"GET / HTTP/1.1\r\nContent-Length: 5\r\n\r\nhello"
        block, leftover = split_header_block(raw)
        assert block.endswith(b"\r\n\r\n")
        assert leftover == b"hello"

    def test_split_without_terminator(self):
        assert split_header_block(b"GET / HTTP/1.1\r\n") == (b"GET / HTTP/1.1\r\n", b"")

    def test_decode_drops_trailing_blank_lines(self):
        assert decode_header_block(b"GET / HTTP/1.1\r\nHost: x\r\n\r\n") == [
            "GET / HTTP/1.1",
            "Host: x",
        ]

    def test_decode_replaces_invalid_utf8(self):
        lines = decode_header_block(b"GET /\xff HTTP/1.1\r\n\r\n")
        assert lines == ["GET /� HTTP/1.1"]

    def test_decode_only_splits_on_newline(self):
        lines = decode_header_block(b"GET /a\x0cb HTTP/1.1\r\n\r\n")
        assert lines == ["GET /a\x0cb HTTP/1.1"]


class TestRequestParser:
    """Tests for RequestParser class."""

    def test_parse_simple_get(self, sample_get_request: bytes):
        request = RequestParser().parse(sample_get_request)

        assert isinstance(request, ParsedRequest)
        assert request.method == "GET"
        assert request.path == "/"
        assert request.content_length == 0
        assert request.request_line == "GET / HTTP/1.1"
        assert request.header_size == len(sample_get_request)
        assert request.get_header("user-agent") == "pytest"

    def test_parse_content_length(self):
        block = b"GET /upload HTTP/1.1\r\nContent-Length: 12\r\n\r\n"
        request = RequestParser().parse(block)
        assert request.content_length == 12
        assert request.path == "/upload"

    def test_parser_limit(self):
        parser = RequestParser(max_body_size=10)
        with pytest.raises(BodyTooLarge):
            parser.parse(b"GET / HTTP/1.1\r\nContent-Length: 11\r\n\r\n")

    def test_request_line_not_treated_as_header(self):
        """A request line that looks like a header does not count."""
        block = b"Content-Length: 5\r\nHost: x\r\n\r\n"
        request = RequestParser().parse(block)
        assert request.content_length == 0

    def test_parse_lines_matches_parse(self, sample_get_request: bytes):
        """Callers that already decoded the block get the same result."""
        parser = RequestParser()
        lines = decode_header_block(sample_get_request)
        assert parser.parse_lines(lines, len(sample_get_request)) == parser.parse(sample_get_request)

    def test_parse_lines_empty(self):
        request = RequestParser().parse_lines([], 4)
        assert (request.method, request.path, request.header_size) == ("", "", 4)
