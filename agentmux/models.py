"""Core data types."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import IntEnum
from typing import Optional


class PaneStatus(IntEnum):
    # Values are the persisted status codes.
    IDLE = 0
    BUSY = 1
    NEEDS_ATTENTION = 2
    UNREAD = 3


@dataclass(frozen=True)
class ProcessTable:
    """Snapshot of the OS process tree from a single ``ps`` call."""
    children: dict[int, list[int]] = field(default_factory=dict)  # ppid -> pids
    comm: dict[int, str] = field(default_factory=dict)            # pid -> command
    args: dict[int, str] = field(default_factory=dict)            # pid -> argv string

    def children_of(self, pid: int) -> list[int]:
        return self.children.get(pid, [])

    def descendants(self, pid: int) -> list[int]:
        """All pids below ``pid`` (breadth-first, excluding ``pid``)."""
        out: list[int] = []
        queue: list[int] = list(self.children_of(pid))
        seen: set[int] = {pid}
        while queue:
            child = queue.pop(0)
            if child in seen:
                continue
            seen.add(child)
            out.append(child)
            queue.extend(self.children_of(child))
        return out

    def __len__(self) -> int:
        return len(self.comm)


@dataclass(frozen=True)
class StatusOverride:
    status: PaneStatus
    window_activity: int


@dataclass
class RawPane:
    target: str
    session: str
    window: str
    pane: str
    command: str
    path: str
    pid: int
    window_name: str = ""
    window_activity: int = 0
    inline_attention: bool = False


@dataclass
class Pane:
    target: str                # e.g. "main:2.1"
    session: str = ""
    window: str = ""
    pane: str = ""
    window_name: str = ""
    path: str = ""
    short_path: str = ""
    git_branch: str = ""
    git_dirty: bool = False
    pid: int = 0               # shell PID inside the tmux pane
    command: str = ""          # resolved agent name
    window_activity: int = 0   # tmux #{window_activity}
    heuristic_attention: bool = False
    content_hash: str = ""
    status: PaneStatus = PaneStatus.IDLE
    stashed: bool = False
    last_active: Optional[datetime] = None
