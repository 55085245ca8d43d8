"""Exception types."""

from __future__ import annotations


class AgentMuxError(Exception):
    """Base class for agent-mux errors."""


class TmuxError(AgentMuxError):
    """A tmux command failed to run or exited non-zero."""

    def __init__(self, command: list[str], detail: str = "") -> None:
        self.command = command
        self.detail = detail.strip()
        verb = command[1] if len(command) > 1 else " ".join(command)
        msg = f"tmux {verb} failed"
        if self.detail:
            msg = f"{msg}: {self.detail}"
        super().__init__(msg)
