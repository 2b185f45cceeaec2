"""
=============================================================================
HTTP REQUEST PARSER
=============================================================================

Parses just enough of an HTTP/1.1 header block to decide how to answer.
No I/O happens here: the connection hands over bytes, this module hands
back a ParsedRequest (or raises one of the errors in ..errors).

=============================================================================
WHAT WE LOOK AT
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │    GET /favicon.ico?v=2 HTTP/1.1\r\n     ← request line             │
    │    ─┬─ ──────┬────── ─┬─                                             │
    │     │        │        └── dropped                                    │
    │   method    path      (query stripped at the first "?")              │
    │                                                                      │
    │    Host: example.com\r\n                 ← ignored                  │
    │    X-Forwarded-For: 10.0.0.1, 10.0.0.2\r\n ← first token → log peer │
    │    Content-Length: 5\r\n                 ← validated, body drained  │
    │    Transfer-Encoding: chunked\r\n        ← rejected (501)           │
    │    \r\n                                  ← end of header block      │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Everything else (header folding, multiple values, keep-alive) is
unsupported.

=============================================================================
PATH QUIRK
=============================================================================

The query string is stripped, a "#fragment" is NOT:

    "GET /a?b=1 HTTP/1.1"   → "/a"
    "GET /a#top HTTP/1.1"   → "/a#top"

Only "/" and "/favicon.ico" are ever matched exactly, so a fragment just
makes the path miss both routes. Clients never send fragments anyway.

=============================================================================
"""

from dataclasses import dataclass
from typing import Optional, Sequence

from ..config import MAX_BODY_SIZE
from ..errors import BodyTooLarge, DuplicateHeader, MalformedHeader


HEADER_TERMINATOR = b"\r\n\r\n"


@dataclass(frozen=True)
class ParsedRequest:
    """
    Read-only view over one header block.

    Attributes:
        method:         Request method exactly as sent ("GET", "HEAD", ...).
        path:           Request target with the query string removed.
        content_length: Declared body length, 0 when absent.
        request_line:   Raw first line, for the access log.
        header_lines:   Header lines after the request line.
        header_size:    Size of the header block in bytes, terminator included.
    """

    method: str
    path: str
    content_length: int = 0
    request_line: str = ""
    header_lines: tuple = ()
    header_size: int = 0

    def get_header(self, name: str) -> Optional[str]:
        """Case-insensitive lookup of the first header called `name`."""
        return find_header(self.header_lines, name)


def parse_request_line(line: str) -> tuple[str, str]:
    """
    Split a request line into (method, path).

        "GET /health?x=1 HTTP/1.1"  → ("GET", "/health")
        "GET /"                     → ("GET", "/")     version missing is fine
        ""                          → ("", "")

    Args:
        line: The first line of the request, without the line ending.

    Returns:
        Tuple of method and path.
    """
    method, _, rest = line.partition(" ")
    target, _, _ = rest.partition(" ")
    path, _, _ = target.partition("?")
    return method, path


def _split_header(line: str) -> tuple[str, str]:
    name, _, value = line.partition(":")
    return name.strip().lower(), value


def find_header(header_lines: Sequence[str], name: str) -> Optional[str]:
    """
    Return the trimmed value of the first header called `name`.

    Header names are case-insensitive (RFC 7230), values are returned as
    sent.
    """
    wanted = name.lower()
    for line in header_lines:
        if ":" not in line:
            continue
        header, value = _split_header(line)
        if header == wanted:
            return value.strip()
    return None


def extract_content_length(header_lines: Sequence[str], max_body_size: int = MAX_BODY_SIZE) -> int:
    """
    Validate the Content-Length header.

    =====================================================================
    RULES
    =====================================================================

        (missing)                    → 0
        Content-Length: 42           → 42
        Content-Length: 42 (twice)   → DuplicateHeader
        Content-Length: -1 / abc     → MalformedHeader
        Content-Length: 2000000      → BodyTooLarge (before reading it!)

    Two Content-Length headers are a classic request smuggling vector,
    so a repeat is rejected even when both values agree.
    =====================================================================

    Args:
        header_lines: Header lines (request line excluded).
        max_body_size: Largest acceptable declared body.

    Returns:
        The declared body length.

    Raises:
        DuplicateHeader, MalformedHeader, BodyTooLarge
    """
    content_length: Optional[int] = None

    for line in header_lines:
        if not line.lower().startswith("content-length:"):
            continue

        if content_length is not None:
            raise DuplicateHeader("Duplicate Content-Length header")

        value = line.split(":", 1)[1].strip()
        # str.isdigit() alone accepts things like "²"
        if not (value.isascii() and value.isdigit()):
            raise MalformedHeader(f"Invalid Content-Length: {value!r}")

        content_length = int(value)
        if content_length > max_body_size:
            raise BodyTooLarge(f"Content-Length {content_length} exceeds {max_body_size}")

    return content_length or 0


def has_chunked_transfer_encoding(header_lines: Sequence[str]) -> bool:
    """Check for a Transfer-Encoding header mentioning chunked."""
    for line in header_lines:
        lower = line.lower()
        if lower.startswith("transfer-encoding:") and "chunked" in lower:
            return True
    return False


def split_header_block(raw: bytes) -> tuple[bytes, bytes]:
    """
    Split bytes read from a socket into (header block, leftover).

    The header block keeps its terminating blank line. Leftover bytes are
    the start of the body that happened to arrive in the same recv().
    If there is no terminator everything is treated as header.
    """
    end = raw.find(HEADER_TERMINATOR)
    if end == -1:
        return raw, b""
    end += len(HEADER_TERMINATOR)
    return raw[:end], raw[end:]


def decode_header_block(header_block: bytes) -> list[str]:
    """
    Decode a header block into lines.

    Invalid UTF-8 is replaced rather than rejected, and only "\\n" splits
    lines (str.splitlines() would also split on form feeds and friends).
    """
    text = header_block.decode("utf-8", errors="replace")
    lines = [line.rstrip("\r") for line in text.split("\n")]
    while lines and lines[-1] == "":
        lines.pop()
    return lines


class RequestParser:
    """
    Turns a complete header block into a ParsedRequest.

    Usage:
        parser = RequestParser(max_body_size=1024 * 1024)
        request = parser.parse(b"GET / HTTP/1.1\\r\\nHost: x\\r\\n\\r\\n")
        request.method, request.path     # ("GET", "/")
    """

    def __init__(self, max_body_size: int = MAX_BODY_SIZE):
        self.max_body_size = max_body_size

    def parse(self, header_block: bytes) -> ParsedRequest:
        """
        Parse a header block.

        Transfer-Encoding is NOT checked here; the caller decides what to
        do about chunked requests before asking for the body length.

        Raises:
            HeaderError: If Content-Length is duplicated, malformed or
                         too large.
        """
        return self.parse_lines(decode_header_block(header_block), len(header_block))

    def parse_lines(self, lines: Sequence[str], header_size: int) -> ParsedRequest:
        """
        Parse an already decoded header block.

        Args:
            lines: Output of decode_header_block().
            header_size: Size of the raw block in bytes.
        """
        request_line = lines[0] if lines else ""
        header_lines = tuple(lines[1:])

        content_length = extract_content_length(header_lines, self.max_body_size)
        method, path = parse_request_line(request_line)

        return ParsedRequest(
            method=method,
            path=path,
            content_length=content_length,
            request_line=request_line,
            header_lines=header_lines,
            header_size=header_size,
        )
