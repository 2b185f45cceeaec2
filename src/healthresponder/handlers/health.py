"""
Liveness endpoint.

The whole point of the process: if it can accept a connection, parse a
request line and write bytes back, it is alive. There are no dependency
checks: a sidecar that reports its neighbours' health would
get restarted for their problems.
"""

from ..http.response import HTTPResponse, ok


def liveness() -> HTTPResponse:
    """200 OK, body "OK"."""
    return ok()
