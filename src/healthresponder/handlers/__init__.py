"""
=============================================================================
FIXED ROUTES
=============================================================================

    GET|HEAD /             → health.liveness()   200 "OK"
    GET|HEAD /favicon.ico  → favicon.favicon()   200 image/png (optional)

Matching is exact. Anything else is a 404, decided by the connection
handler.

=============================================================================
"""

from typing import Callable, Dict

from ..http.response import HTTPResponse
from .favicon import FAVICON_PNG, favicon
from .health import liveness

RouteHandler = Callable[[], HTTPResponse]


def build_routes(show_favicon: bool = True) -> Dict[str, RouteHandler]:
    """
    Build the path → handler table.

    Args:
        show_favicon: Register /favicon.ico.
    """
    routes: Dict[str, RouteHandler] = {"/": liveness}
    if show_favicon:
        routes["/favicon.ico"] = favicon
    return routes


__all__ = [
    "RouteHandler",
    "build_routes",
    "liveness",
    "favicon",
    "FAVICON_PNG",
]
