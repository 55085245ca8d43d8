"""Shared test helpers."""

from __future__ import annotations

import subprocess
from typing import Any

from agentmux.models import Pane, PaneStatus
from agentmux.settings import (
    AttentionConfig,
    Settings,
    ViewerConfig,
    WatchConfig,
)


def make_settings(
    inline_search: bool = False,
    agents: tuple[str, ...] = ("claude", "codex", "gemini"),
) -> Settings:
    return Settings(
        watch=WatchConfig(interval=0.5, fast_interval=0.1, fast_cycles=3),
        viewer=ViewerConfig(
            poll_interval=2.0, fast_poll_interval=0.5, fast_cycles=2, preview_lines=50,
        ),
        attention=AttentionConfig(
            lookback_lines=15, question_depth=1, inline_search=inline_search,
        ),
        agents=agents,
        log_level="INFO",
    )


def make_pane(
    target: str = "dev:1.0",
    activity: int = 100,
    attention: bool = False,
    status: PaneStatus = PaneStatus.IDLE,
    path: str = "/home/u/proj",
    stashed: bool = False,
) -> Pane:
    session, _, rest = target.rpartition(":")
    window, _, pane = rest.partition(".")
    return Pane(
        target=target,
        session=session,
        window=window,
        pane=pane,
        path=path,
        short_path=path.rsplit("/", 1)[-1],
        command="claude",
        window_activity=activity,
        heuristic_attention=attention,
        status=status,
        stashed=stashed,
    )


def completed(stdout: str = "", returncode: int = 0, stderr: str = "") -> subprocess.CompletedProcess[str]:
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout=stdout, stderr=stderr)


def capture_tmux(monkeypatch: Any, module: str = "agentmux.tmux", stdout: str = "") -> list[list[str]]:
    """Patch ``_run_tmux`` in ``module`` and return the collected commands."""
    sent: list[list[str]] = []

    def _fake(command: list[str], timeout: float = 3) -> subprocess.CompletedProcess[str]:
        sent.append(command)
        return completed(stdout)

    monkeypatch.setattr(f"{module}._run_tmux", _fake)
    return sent


def capture_notify(app: Any, monkeypatch: Any) -> list[str]:
    """Patch app.notify and return collected messages."""
    notices: list[str] = []
    monkeypatch.setattr(app, "notify", lambda msg, **kwargs: notices.append(msg))
    return notices
