"""Agent provider registry and pane-to-agent resolution."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import replace
from typing import TYPE_CHECKING, Optional

from .models import ProcessTable, RawPane

if TYPE_CHECKING:
    from .settings import Settings


def _basename(token: str) -> str:
    return token.rsplit("/", 1)[-1]


class ProviderRegistry:
    """Set of command names recognized as coding agents.

    Built once at startup and handed to discovery; there is no global
    registry, so tests can hold several side by side.
    """

    def __init__(self, names: Iterable[str] = ()) -> None:
        self._names: set[str] = set()
        for name in names:
            self.register(name)

    def register(self, name: str) -> None:
        clean = name.strip()
        if clean:
            self._names.add(clean)

    def is_agent(self, command: str) -> bool:
        return command in self._names

    @property
    def names(self) -> frozenset[str]:
        return frozenset(self._names)

    def resolve(self, command: str, shell_pid: int, table: ProcessTable) -> str:
        """Return the agent name running in a pane, or ``""``.

        Checks the pane's foreground command first, then each direct child of
        the pane process: its command basename, then every argument token with
        path components stripped (gemini shows up as ``node``).
        """
        if self.is_agent(command):
            return command
        for child in table.children_of(shell_pid):
            base = _basename(table.comm.get(child, ""))
            if self.is_agent(base):
                return base
            for arg in table.args.get(child, "").split(" "):
                name = _basename(arg)
                if self.is_agent(name):
                    return name
        return ""


def default_registry(settings: Optional["Settings"] = None) -> ProviderRegistry:
    """Build the registry from the configured ``[providers] agents`` list."""
    if settings is None:
        from .settings import SETTINGS
        settings = SETTINGS
    return ProviderRegistry(settings.agents)


def resolve_agent_panes(
    raw: list[RawPane],
    registry: ProviderRegistry,
    table: ProcessTable,
) -> list[RawPane]:
    """Keep only panes running a registered agent, stamping the agent name."""
    agents: list[RawPane] = []
    for r in raw:
        name = registry.resolve(r.command, r.pid, table)
        if not name:
            continue
        agents.append(replace(r, command=name))
    return agents
