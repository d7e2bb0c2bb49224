"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The status codes the inspector can answer with, and their reason phrases.

    ┌──────┬─────────────────────────┬──────────────────────────────────────┐
    │ Code │ Reason Phrase           │ When the inspector sends it          │
    ├──────┼─────────────────────────┼──────────────────────────────────────┤
    │ 200  │ OK                      │ Listing, status map or file served   │
    │ 400  │ Bad Request             │ Short request line, non-numeric pid  │
    │ 403  │ Forbidden               │ Missing or wrong access key          │
    │ 404  │ Not Found               │ Unknown route, vanished process/file │
    │ 405  │ Method Not Allowed      │ Anything other than GET              │
    │ 500  │ Internal Server Error   │ ps unavailable, /proc unreadable     │
    │ 503  │ Service Unavailable     │ Worker queue full                    │
    └──────┴─────────────────────────┴──────────────────────────────────────┘

Every code the server can produce is listed here and nothing else.
Referencing a missing member fails with AttributeError at import time.

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    HTTP status codes and reason phrases.

    IntEnum, so members compare equal to plain integers:

        >>> HTTPStatus.NOT_FOUND == 404
        True
        >>> HTTPStatus.NOT_FOUND.phrase
        'Not Found'
    """

    OK = 200                       # Resource served

    BAD_REQUEST = 400              # Malformed request line / invalid pid
    FORBIDDEN = 403                # Access key missing or wrong
    NOT_FOUND = 404                # No such route, process or file
    METHOD_NOT_ALLOWED = 405       # Only GET is supported

    INTERNAL_SERVER_ERROR = 500    # Upstream facility failed
    SERVICE_UNAVAILABLE = 503      # Admission control rejected connection

    @property
    def phrase(self) -> str:
        """
        Get the reason phrase for this status code.

            HTTP/1.1 404 Not Found
                     ─── ─────────
                      │      │
                      │      └── Reason phrase
                      └────────── Status code
        """
        return _STATUS_PHRASES.get(self, "Unknown")


_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",

    HTTPStatus.BAD_REQUEST: "Bad Request",
    HTTPStatus.FORBIDDEN: "Forbidden",
    HTTPStatus.NOT_FOUND: "Not Found",
    HTTPStatus.METHOD_NOT_ALLOWED: "Method Not Allowed",

    HTTPStatus.INTERNAL_SERVER_ERROR: "Internal Server Error",
    HTTPStatus.SERVICE_UNAVAILABLE: "Service Unavailable",
}
