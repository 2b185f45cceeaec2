"""
=============================================================================
HTTP PROTOCOL PIECES
=============================================================================

    http/
    ├── status_codes.py  # The few statuses we answer with
    ├── response.py      # Byte-exact response serialization
    └── request.py       # Header block parsing (import it directly:
                         #   from healthresponder.http.request import ...)

request.py depends on ..errors, which depends on status_codes; it is not
re-exported here so that importing healthresponder.errors first never
loops back into a half-initialized parser module.

=============================================================================
"""

from .status_codes import HTTPStatus
from .response import HTTPResponse, SECURITY_HEADERS, ok, image, error, not_found

__all__ = [
    "HTTPStatus",
    "HTTPResponse",
    "SECURITY_HEADERS",
    "ok",
    "image",
    "error",
    "not_found",
]
