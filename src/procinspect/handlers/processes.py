"""
Process-listing facility.

Runs ``ps -eo pid,comm,%cpu,rss`` and turns its output into ProcessInfo
rows. The first line is a header and is always discarded:

      PID COMMAND         %CPU   RSS        ← header (skipped)
        1 init             0.0  1200        ← kept
       42 kworker/0:1      0.3     0        ← kept
       ?? garbage                           ← malformed, skipped

A row is kept only if it has at least four whitespace tokens and
token[0] is an unsigned integer, token[2] a finite decimal number and
token[3] an unsigned integer. Malformed rows never fail the listing.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence
import logging
import math
import os
import re
import subprocess


logger = logging.getLogger(__name__)


DEFAULT_PS_COMMAND = ("ps", "-eo", "pid,comm,%cpu,rss")
DEFAULT_PS_TIMEOUT = 10.0

_UNSIGNED_INT = re.compile(r"[0-9]+")
_DECIMAL = re.compile(r"[+-]?(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")


class ProcessListError(Exception):
    """The process-listing facility could not be invoked."""


@dataclass
class ProcessInfo:
    """One row of the process table."""

    pid: int
    name: str
    cpu: float
    mem_kb: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pid": self.pid,
            "name": self.name,
            "cpu": self.cpu,
            "mem_kb": self.mem_kb,
        }


def parse_ps_row(line: str) -> Optional[ProcessInfo]:
    """Parse one data row, or return None if it is malformed."""
    tokens = line.split()
    if len(tokens) < 4:
        return None

    pid, name, cpu, rss = tokens[0], tokens[1], tokens[2], tokens[3]

    if not _UNSIGNED_INT.fullmatch(pid) or not _UNSIGNED_INT.fullmatch(rss):
        return None
    if not _DECIMAL.fullmatch(cpu):
        return None

    cpu_value = float(cpu)
    if not math.isfinite(cpu_value):
        return None

    return ProcessInfo(pid=int(pid), name=name, cpu=cpu_value, mem_kb=int(rss))


def parse_ps_output(text: str) -> List[ProcessInfo]:
    """Parse full facility output: skip the header, keep well-formed rows in order."""
    lines = text.splitlines()
    processes = []
    for line in lines[1:]:
        info = parse_ps_row(line)
        if info is None:
            if line.strip():
                logger.debug(f"Skipping malformed ps row: {line!r}")
            continue
        processes.append(info)
    return processes


class ProcessLister:
    """
    Invokes the process-listing facility.

    Usage:
        lister = ProcessLister()
        for proc in lister.list_processes():
            print(proc.pid, proc.name)

    The command runs with LC_ALL=C so %CPU always uses "." as the
    decimal separator.
    """

    def __init__(
        self,
        command: Sequence[str] = DEFAULT_PS_COMMAND,
        timeout: Optional[float] = DEFAULT_PS_TIMEOUT,
    ):
        self.command = list(command)
        self.timeout = timeout

    def run(self) -> str:
        """
        Run the facility and return its stdout.

        A non-zero exit is logged but its output is still used; only a
        failure to run at all raises.

        Raises:
            ProcessListError: The command is missing, not executable, or
                              did not finish within the timeout.
        """
        env = dict(os.environ, LC_ALL="C")
        try:
            result = subprocess.run(
                self.command,
                capture_output=True,
                timeout=self.timeout,
                env=env,
                check=False,
            )
        except subprocess.TimeoutExpired as e:
            logger.error(f"{self.command[0]} timed out after {self.timeout}s")
            raise ProcessListError("Process listing timed out") from e
        except (OSError, subprocess.SubprocessError) as e:
            logger.error(f"Failed to run {self.command[0]}: {e}")
            raise ProcessListError("Failed to execute ps") from e

        if result.returncode != 0:
            stderr = result.stderr.decode("utf-8", errors="replace").strip()
            logger.warning(f"{self.command[0]} exited with {result.returncode}: {stderr}")

        return result.stdout.decode("utf-8", errors="replace")

    def list_processes(self) -> List[ProcessInfo]:
        return parse_ps_output(self.run())
