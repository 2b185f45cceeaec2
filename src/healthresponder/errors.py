"""
=============================================================================
REQUEST ERRORS
=============================================================================

Every way a single connection can fail, as exceptions that carry the HTTP
status the client should see.

    ┌────────────────────────────────┬────────┬─────────────────────────────┐
    │  Exception                     │ Status │ Raised when                 │
    ├────────────────────────────────┼────────┼─────────────────────────────┤
    │  HeaderTimeout                 │  408   │ header deadline passed      │
    │  HeaderTooLarge                │  431   │ 8 KiB read, no blank line   │
    │  DuplicateHeader               │  431   │ Content-Length twice        │
    │  MalformedHeader               │  431   │ Content-Length not a number │
    │  BodyTooLarge                  │  413   │ Content-Length above 1 MiB  │
    │  BodyTimeout                   │  408   │ body deadline passed        │
    │  UnsupportedTransferEncoding   │  501   │ Transfer-Encoding: chunked  │
    │  UnsupportedMethod             │  501   │ method not GET/HEAD         │
    │  RouteNotFound                 │  404   │ no fixed route matched      │
    │  UnexpectedEof                 │   -    │ peer hung up early          │
    └────────────────────────────────┴────────┴─────────────────────────────┘

All of these are terminal for ONE connection only. The handler answers
with `status` (when it is not None) and closes; nothing reaches the worker.

=============================================================================
"""

from typing import Optional

from .http.status_codes import HTTPStatus


class RequestError(Exception):
    """
    Base class for per-connection failures.

    Subclasses set the status to answer with; pass `status` to override
    it for one instance. `status` is None when the peer is gone and no
    response can be written.
    """

    status: Optional[HTTPStatus] = None

    def __init__(self, message: str = "", status: Optional[HTTPStatus] = None):
        super().__init__(message or self.__class__.__name__)
        if status is not None:
            self.status = status


class HeaderTimeout(RequestError):
    status = HTTPStatus.REQUEST_TIMEOUT


class HeaderTooLarge(RequestError):
    status = HTTPStatus.REQUEST_HEADER_FIELDS_TOO_LARGE


class HeaderError(RequestError):
    """Content-Length could not be used."""

    status = HTTPStatus.REQUEST_HEADER_FIELDS_TOO_LARGE


class DuplicateHeader(HeaderError):
    pass


class MalformedHeader(HeaderError):
    pass


class BodyTooLarge(HeaderError):
    """Declared body exceeds the limit. Detected before any body byte is read."""

    status = HTTPStatus.PAYLOAD_TOO_LARGE


class BodyTimeout(RequestError):
    status = HTTPStatus.REQUEST_TIMEOUT


class UnsupportedTransferEncoding(RequestError):
    status = HTTPStatus.NOT_IMPLEMENTED


class UnsupportedMethod(RequestError):
    status = HTTPStatus.NOT_IMPLEMENTED


class RouteNotFound(RequestError):
    status = HTTPStatus.NOT_FOUND


class UnexpectedEof(RequestError):
    """The peer closed (or reset) the connection before we had what we needed."""

    status = None
