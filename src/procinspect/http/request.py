"""
=============================================================================
HTTP REQUEST-LINE PARSER
=============================================================================

The inspector reads exactly ONE line per connection and nothing else:
no headers, no body. This module turns that line into an HTTPRequest.

=============================================================================
TWO-STAGE TOKENIZER
=============================================================================

    GET /proc/1/status?key=debugger&x=1 HTTP/1.1\\r\\n
    │
    │  Stage 1: tokenize_request_line()   (whitespace split)
    ▼
    method = "GET"
    target = "/proc/1/status?key=debugger&x=1"
    version = "HTTP/1.1"   (optional)
    │
    │  Stage 2: split_target()            (first "?" only)
    ▼
    path   = "/proc/1/status"
    query  = "key=debugger&x=1"
    │
    │  Stage 3: split_query()             ("&" split, no decoding)
    ▼
    params = ["key=debugger", "x=1"]

Each stage is a pure function so the security-relevant pieces (query
tokens for the access gate, path for the sanitizer) can be tested in
isolation.

=============================================================================
WHAT GETS REJECTED, AND IN WHICH ORDER
=============================================================================

    ┌──────────────────────────────────────┬────────────────────────────┐
    │ Condition                            │ Result                     │
    ├──────────────────────────────────────┼────────────────────────────┤
    │ fewer than 2 whitespace tokens       │ 400 Bad Request            │
    │ first token is not exactly "GET"     │ 405 Method Not Allowed     │
    └──────────────────────────────────────┴────────────────────────────┘

The method check is case-sensitive: "get" is rejected just like "POST".
The HTTP version token is optional and never validated.

Nothing here percent-decodes the path or query. The access key must
match byte-for-byte as sent, and path segments are matched literally
against the filesystem.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple


SUPPORTED_METHOD = "GET"


class HTTPParseError(Exception):
    """
    Raised when the request line cannot be accepted.

    Carries the HTTP status code to answer with:

        400 Bad Request         - too few tokens, request line too long
        405 Method Not Allowed  - anything other than GET
    """

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class HTTPRequest:
    """
    A parsed request line.

    Created once per connection and discarded after the response is sent.

    Attributes:
        method:         Always "GET" once parsing succeeded.
        target:         The raw request target ("/proc?key=...").
        path:           Target before the first "?".
        query:          Target after the first "?" ("" if none).
        version:        Third token if present ("HTTP/1.1"), else None.
        client_address: (ip, port) of the peer, for logging.
    """

    method: str
    target: str
    path: str = "/"
    query: str = ""
    version: Optional[str] = None
    client_address: Tuple[str, int] = ("", 0)

    # Filled lazily from `query`
    _params: Optional[List[str]] = field(default=None, repr=False)

    @property
    def query_params(self) -> List[str]:
        """The "&"-separated query tokens, in order, undecoded."""
        if self._params is None:
            self._params = split_query(self.query)
        return self._params

    @property
    def client_ip(self) -> str:
        return self.client_address[0]


def tokenize_request_line(line: str) -> Tuple[str, str, Optional[str]]:
    """
    Stage 1: split a request line into (method, target, version).

    version is the third token, or None when the line has only two.

    Any run of whitespace separates tokens, and surrounding whitespace
    (including the trailing CRLF) is ignored.

    Raises:
        HTTPParseError(400): fewer than two tokens.
    """
    parts = line.split()
    if len(parts) < 2:
        raise HTTPParseError("Invalid request line", status_code=400)
    version = parts[2] if len(parts) > 2 else None
    return parts[0], parts[1], version


def split_target(target: str) -> Tuple[str, str]:
    """
    Stage 2: split a request target on its FIRST "?".

        "/proc?key=a?b"  → ("/proc", "key=a?b")
        "/proc"          → ("/proc", "")
    """
    path, _, query = target.partition("?")
    return path, query


def split_query(query: str) -> List[str]:
    """
    Stage 3: split a query string into its "&"-separated tokens.

    Tokens are returned exactly as sent: no percent-decoding, no
    key/value splitting, empty tokens preserved.

        "key=debugger&x=1"  → ["key=debugger", "x=1"]
        ""                  → [""]
    """
    return query.split("&")


class RequestParser:
    """
    Parses raw request-line bytes into HTTPRequest objects.

        Raw line bytes
              │
              ▼
        1. Decode (UTF-8, invalid bytes replaced)
        2. tokenize_request_line()     → 400 on < 2 tokens
        3. Method check                 → 405 unless "GET"
        4. split_target()
              │
              ▼
        HTTPRequest
    """

    def parse(
        self,
        data: bytes,
        client_address: Tuple[str, int] = ("", 0)
    ) -> HTTPRequest:
        """
        Parse one request line.

        Args:
            data: The request line as read from the socket (trailing
                  newline optional).
            client_address: Client's (ip, port) tuple for logging.

        Returns:
            Parsed HTTPRequest.

        Raises:
            HTTPParseError: If the line is malformed or the method is not GET.
        """
        line = data.decode("utf-8", errors="replace")

        method, target, version = tokenize_request_line(line)

        if method != SUPPORTED_METHOD:
            raise HTTPParseError(
                f"Method not allowed: {method}",
                status_code=405
            )

        path, query = split_target(target)

        return HTTPRequest(
            method=method,
            target=target,
            path=path,
            query=query,
            version=version,
            client_address=client_address,
        )


def parse_request(
    data: bytes,
    client_address: Tuple[str, int] = ("", 0)
) -> HTTPRequest:
    """Convenience wrapper: RequestParser().parse(data, client_address)."""
    return RequestParser().parse(data, client_address)
