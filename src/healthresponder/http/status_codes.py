"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The responder only ever answers with a handful of statuses:

    ┌────────┬───────────────────────────────────────────────────────────┐
    │  200   │ OK                - liveness answer and favicon           │
    ├────────┼───────────────────────────────────────────────────────────┤
    │  404   │ Not Found         - any other GET/HEAD path               │
    │  408   │ Request Timeout   - header or body deadline exceeded      │
    │  413   │ Payload Too Large - Content-Length above 1 MiB            │
    │  431   │ Request Header Fields Too Large                           │
    │        │                   - header block above 8 KiB, or a        │
    │        │                     duplicate/garbled Content-Length      │
    ├────────┼───────────────────────────────────────────────────────────┤
    │  501   │ Not Implemented   - chunked bodies, methods besides       │
    │        │                     GET/HEAD                              │
    └────────┴───────────────────────────────────────────────────────────┘

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    HTTP status codes and reason phrases.

    This enum extends IntEnum, so status codes can be used as integers:

        >>> HTTPStatus.OK == 200
        True
        >>> HTTPStatus.NOT_IMPLEMENTED.phrase
        'Not Implemented'
    """

    # 2xx SUCCESS
    OK = 200

    # 4xx CLIENT ERRORS
    NOT_FOUND = 404
    REQUEST_TIMEOUT = 408                   # Client took too long to send request
    PAYLOAD_TOO_LARGE = 413                 # Declared body too large
    REQUEST_HEADER_FIELDS_TOO_LARGE = 431   # Headers too large or unusable

    # 5xx SERVER ERRORS
    NOT_IMPLEMENTED = 501                   # Server doesn't support this feature

    @property
    def phrase(self) -> str:
        """
        Get the reason phrase for this status code.

            HTTP/1.1 200 OK
                     ─── ──
                      │   └── Reason phrase
                      └────── Status code
        """
        return _STATUS_PHRASES.get(self, "Unknown")

    @property
    def is_error(self) -> bool:
        """Check if this is an error status code (4xx or 5xx)."""
        return self >= 400


_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.NOT_FOUND: "Not Found",
    HTTPStatus.REQUEST_TIMEOUT: "Request Timeout",
    HTTPStatus.PAYLOAD_TOO_LARGE: "Payload Too Large",
    HTTPStatus.REQUEST_HEADER_FIELDS_TOO_LARGE: "Request Header Fields Too Large",
    HTTPStatus.NOT_IMPLEMENTED: "Not Implemented",
}
