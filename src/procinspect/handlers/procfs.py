"""
=============================================================================
INTROSPECTION FILESYSTEM READER
=============================================================================

Read-only access to the per-process virtual filesystem (/proc by default)
and the parser for its colon-delimited status blocks.

=============================================================================
TWO LINES OF DEFENCE AGAINST ESCAPING THE ROOT
=============================================================================

    1. LEXICAL (router.py)
       Components "", ".", ".." are dropped before a path ever gets here.

    2. RESOLVED (this module)
       The joined path is resolved (symlinks followed) and must still be
       the root or below it:

           /proc/1/status        → /proc/1/status          ✓
           /proc/1/task/1/stat   → /proc/1/task/1/stat     ✓
           /proc/1/root/etc/shadow
                                 → /etc/shadow             ✗  (404)
           /proc/1/cwd/.ssh/id_rsa
                                 → /home/x/.ssh/id_rsa     ✗  (404)

    Step 2 matters for /proc specifically: root, cwd, exe and fd/* are
    symlinks into the rest of the host filesystem.

=============================================================================
PROCESSES VANISH
=============================================================================

A pid listed by list_pids() may exit before its files are read. Every
read can therefore fail with "not found" at any moment, and every such
failure surfaces as ProcessNotFound (404), never as a crash.

=============================================================================
"""

import logging
import os
from pathlib import Path, PurePosixPath
from typing import Dict, List, Union

from ..http.router import is_valid_pid


logger = logging.getLogger(__name__)


DEFAULT_PROC_ROOT = "/proc"
DEFAULT_MAX_READ_SIZE = 1024 * 1024  # 1 MiB


class ProcFSError(Exception):
    """Base class for introspection filesystem failures."""


class ProcessNotFound(ProcFSError):
    """A pid directory or file is missing, unreadable, or outside the root."""


class IntrospectionUnavailable(ProcFSError):
    """The introspection root itself cannot be listed."""


def parse_status(text: str) -> Dict[str, str]:
    """
    Parse a status block into an insertion-ordered mapping.

        "Name:\\tinit\\nPid:\\t1\\n"  →  {"Name": "init", "Pid": "1"}

    Rules:
    - Split each line on its FIRST colon; key and value are stripped.
    - Lines without a colon are dropped.
    - Duplicate keys: last value wins.
    - Values stay strings ("1" is not turned into 1).
    """
    status: Dict[str, str] = {}
    for line in text.split("\n"):
        key, sep, value = line.partition(":")
        if not sep:
            continue
        status[key.strip()] = value.strip()
    return status


class ProcFS:
    """
    Reader for the introspection root.

    Usage:
        procfs = ProcFS("/proc")
        procfs.list_pids()                       # ["1", "42", ...]
        procfs.list_files("1")                   # ["cmdline", "status", ...]
        procfs.read_text(PurePosixPath("1/status"))

    Listings are sorted (pids numerically, names lexicographically) so
    two reads of an unchanged directory give identical results.
    """

    def __init__(
        self,
        root: Union[str, Path] = DEFAULT_PROC_ROOT,
        max_read_size: int = DEFAULT_MAX_READ_SIZE,
    ):
        self.root = Path(root).resolve()
        self.max_read_size = max_read_size

    def list_pids(self) -> List[str]:
        """
        List the all-digit entries directly under the root.

        Raises:
            IntrospectionUnavailable: The root cannot be listed.
        """
        try:
            with os.scandir(self.root) as entries:
                pids = [entry.name for entry in entries if is_valid_pid(entry.name)]
        except OSError as e:
            logger.error(f"Cannot list {self.root}: {e}")
            raise IntrospectionUnavailable(f"Failed to read {self.root} directory") from e

        return sorted(pids, key=int)

    def list_files(self, pid: str) -> List[str]:
        """
        List the names directly under <root>/<pid> (no recursion, no stat).

        Raises:
            ProcessNotFound: The pid directory is missing or unreadable.
        """
        path = self.resolve(PurePosixPath(pid))
        try:
            names = os.listdir(path)
        except OSError as e:
            logger.debug(f"Cannot list {path}: {e}")
            raise ProcessNotFound("PID directory not found") from e

        return sorted(names)

    def read_text(self, relative: PurePosixPath) -> str:
        """
        Read a file below the root as text.

        At most max_read_size bytes are read. Invalid UTF-8 is replaced
        with U+FFFD rather than failing.

        Raises:
            ProcessNotFound: Missing, unreadable, a directory, or outside the root.
        """
        path = self.resolve(relative)
        try:
            with open(path, "rb") as f:
                data = f.read(self.max_read_size)
        except OSError as e:
            logger.debug(f"Cannot read {path}: {e}")
            raise ProcessNotFound("File not found or unreadable") from e

        return data.decode("utf-8", errors="replace")

    def read_status(self, relative: PurePosixPath) -> Dict[str, str]:
        """Read a status file and parse it with parse_status()."""
        return parse_status(self.read_text(relative))

    def resolve(self, relative: PurePosixPath) -> Path:
        """
        Join a sanitized relative path under the root and resolve it.

        Raises:
            ProcessNotFound: The resolved path is outside the root, or
                             cannot be resolved (symlink loop).
        """
        candidate = self.root.joinpath(*relative.parts)
        try:
            resolved = candidate.resolve()
        except (OSError, RuntimeError) as e:
            raise ProcessNotFound("File not found or unreadable") from e

        if resolved != self.root and self.root not in resolved.parents:
            logger.warning(f"Path escape blocked: {candidate} → {resolved}")
            raise ProcessNotFound("File not found or unreadable")

        return resolved
