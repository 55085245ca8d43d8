"""Process table snapshot from a single ``ps`` call."""

from __future__ import annotations

import logging
import subprocess

from .models import ProcessTable

logger = logging.getLogger(__name__)

PS_COMMAND: list[str] = ["ps", "-eo", "pid,ppid,comm,args"]


def parse_process_table(output: str) -> ProcessTable:
    """Build a ProcessTable from raw ``ps -eo pid,ppid,comm,args`` output.

    Malformed lines (including the header) are skipped.
    """
    children: dict[int, list[int]] = {}
    comm: dict[int, str] = {}
    args: dict[int, str] = {}
    for line in output.strip().splitlines():
        fields = line.split()
        if len(fields) < 3:
            continue
        try:
            pid = int(fields[0])
            ppid = int(fields[1])
        except ValueError:
            continue
        children.setdefault(ppid, []).append(pid)
        comm[pid] = fields[2]
        if len(fields) > 3:
            args[pid] = " ".join(fields[3:])
    return ProcessTable(children=children, comm=comm, args=args)


def load_process_table(timeout: float = 3) -> ProcessTable:
    """Snapshot the process tree; empty table on any failure."""
    try:
        r = subprocess.run(
            PS_COMMAND, capture_output=True, text=True, timeout=timeout,
        )
    except (subprocess.TimeoutExpired, FileNotFoundError, OSError) as exc:
        logger.debug("ps snapshot failed: %s", exc)
        return ProcessTable()
    if r.returncode != 0:
        logger.debug("ps exited %d: %s", r.returncode, r.stderr.strip())
        return ProcessTable()
    return parse_process_table(r.stdout)
