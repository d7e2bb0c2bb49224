"""
Access-key gate.

Every request must carry ``key=<access key>`` as one of its
"&"-separated query tokens. The match is on the WHOLE token:

    key=debugger              ✓
    x=1&key=debugger          ✓
    key=debuggerextra         ✗  (prefix is not enough)
    xkey=debugger             ✗  (suffix is not enough)
    KEY=debugger              ✗  (case-sensitive)
    key=debug%67er            ✗  (no percent-decoding)
"""

import hmac
from typing import Iterable

from .request import split_query


class AccessGate:
    """
    Holds the shared secret and checks query tokens against it.

    The key comes from ServerConfig and is never mutated after startup.
    """

    def __init__(self, access_key: str):
        if not access_key:
            raise ValueError("access_key must not be empty")
        self._expected = f"key={access_key}".encode("utf-8")

    def is_authorized(self, params: Iterable[str]) -> bool:
        """True iff some token is byte-identical to ``key=<access key>``."""
        for param in params:
            # Constant-time comparison
            if hmac.compare_digest(param.encode("utf-8"), self._expected):
                return True
        return False

    def check_query(self, query: str) -> bool:
        """Authorize a raw query string."""
        return self.is_authorized(split_query(query))


def is_authorized(query: str, access_key: str) -> bool:
    """Functional form of AccessGate(access_key).check_query(query)."""
    return AccessGate(access_key).check_query(query)
