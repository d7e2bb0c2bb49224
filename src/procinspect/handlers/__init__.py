"""
Read strategies behind the inspector routes.

    processes.py   ps invocation and row parsing        (GET /)
    procfs.py      /proc listing, file reads, status    (GET /proc...)
    inspector.py   RouteKind → read → HTTPResponse
"""

from .inspector import InspectorHandlers
from .processes import (
    ProcessInfo,
    ProcessLister,
    ProcessListError,
    parse_ps_output,
    parse_ps_row,
)
from .procfs import (
    ProcFS,
    ProcFSError,
    ProcessNotFound,
    IntrospectionUnavailable,
    parse_status,
)

__all__ = [
    "InspectorHandlers",
    "ProcessInfo",
    "ProcessLister",
    "ProcessListError",
    "parse_ps_output",
    "parse_ps_row",
    "ProcFS",
    "ProcFSError",
    "ProcessNotFound",
    "IntrospectionUnavailable",
    "parse_status",
]
