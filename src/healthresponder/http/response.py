"""
=============================================================================
HTTP RESPONSE SERIALIZATION
=============================================================================

Every response this server sends has the same shape:

    HTTP/1.1 200 OK\\r\\n                              ← status line
    Connection: close\\r\\n                            ← one request per socket
    Content-Type: text/plain; charset=utf-8\\r\\n      ← only when there is a body
    X-Content-Type-Options: nosniff\\r\\n              ← no MIME sniffing
    X-Frame-Options: DENY\\r\\n                        ← never framed
    Content-Length: 2\\r\\n                            ← always present
    \\r\\n
    OK                                               ← omitted for HEAD

Error responses have no Content-Type and Content-Length: 0.

=============================================================================
HEAD REQUESTS
=============================================================================

A HEAD response carries exactly the headers the GET response would,
including the real Content-Length, but no body bytes:

    to_bytes(include_body=False)

=============================================================================
"""

from dataclasses import dataclass
from typing import Optional

from .status_codes import HTTPStatus


SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
}

PLAIN_TEXT = "text/plain; charset=utf-8"


@dataclass
class HTTPResponse:
    """
    A response waiting to be written to the socket.

    Header order is fixed, see the module docstring.
    """

    status: HTTPStatus = HTTPStatus.OK
    body: bytes = b""
    content_type: Optional[str] = None
    version: str = "HTTP/1.1"

    @property
    def status_line(self) -> str:
        """
        Get the HTTP status line.

        Example: "HTTP/1.1 431 Request Header Fields Too Large"
        """
        return f"{self.version} {int(self.status)} {self.status.phrase}"

    def to_bytes(self, include_body: bool = True) -> bytes:
        """
        Serialize the response.

        Args:
            include_body: False for HEAD requests. Content-Length still
                          describes the body that GET would have returned.

        Returns:
            Bytes ready for socket.sendall().
        """
        lines = [self.status_line, "Connection: close"]

        if self.content_type:
            lines.append(f"Content-Type: {self.content_type}")

        for name, value in SECURITY_HEADERS.items():
            lines.append(f"{name}: {value}")

        lines.append(f"Content-Length: {len(self.body)}")

        # Empty line separates headers from body
        head = ("\r\n".join(lines) + "\r\n\r\n").encode("latin-1")
        if include_body:
            return head + self.body
        return head


# =============================================================================
# CANNED RESPONSES
# =============================================================================


def ok() -> HTTPResponse:
    """The liveness answer: 200 with a two byte plain-text body."""
    return HTTPResponse(status=HTTPStatus.OK, body=b"OK", content_type=PLAIN_TEXT)


def image(payload: bytes, content_type: str = "image/png") -> HTTPResponse:
    """200 with a binary payload (the favicon)."""
    return HTTPResponse(status=HTTPStatus.OK, body=payload, content_type=content_type)


def error(status: HTTPStatus) -> HTTPResponse:
    """Bodyless error response."""
    return HTTPResponse(status=status)


def not_found() -> HTTPResponse:
    """404 Not Found."""
    return error(HTTPStatus.NOT_FOUND)
