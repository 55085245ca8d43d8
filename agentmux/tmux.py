"""Tmux pane discovery, content capture and pane actions."""

from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime
import hashlib
import logging
import subprocess
from typing import TYPE_CHECKING, Optional, TypeVar

from .attention import needs_attention, tmux_search_pattern
from .errors import TmuxError
from .history import last_active_by_project
from .models import Pane, PaneStatus, ProcessTable, RawPane
from .process import load_process_table
from .providers import ProviderRegistry, resolve_agent_panes
from .workspace import enrich_panes

if TYPE_CHECKING:
    from .settings import Settings

logger = logging.getLogger(__name__)

T = TypeVar("T")

_BASE_FIELDS: tuple[str, ...] = (
    "#{session_name}:#{window_index}.#{pane_index}",
    "#{pane_current_command}",
    "#{pane_current_path}",
    "#{pane_pid}",
    "#{window_name}",
    "#{window_activity}",
)


def _run_tmux(command: list[str], timeout: float = 3) -> subprocess.CompletedProcess[str] | None:
    """Run a tmux command and return the completed process or None on hard failure."""
    try:
        return subprocess.run(
            command,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except (subprocess.TimeoutExpired, FileNotFoundError, OSError):
        return None


def _run_tmux_checked(command: list[str], timeout: float = 3) -> str:
    """Run a tmux command, raising TmuxError unless it exits 0."""
    r = _run_tmux(command, timeout=timeout)
    if r is None:
        raise TmuxError(command, "not available or timed out")
    if r.returncode != 0:
        raise TmuxError(command, r.stderr)
    return r.stdout


def _settings(settings: Optional["Settings"]) -> "Settings":
    if settings is not None:
        return settings
    from .settings import SETTINGS
    return SETTINGS


# ── Discovery ────────────────────────────────────────────────────────


def pane_format(inline_search: bool = False) -> str:
    """Tab-delimited ``list-panes -F`` format."""
    fields = list(_BASE_FIELDS)
    if inline_search:
        fields.append("#{C/r:" + tmux_search_pattern() + "}")
    return "\t".join(fields)


def parse_target(target: str) -> tuple[str, str, str]:
    """Split ``"foo:2.1"`` into ``("foo", "2", "1")``."""
    session, sep, rest = target.rpartition(":")
    if not sep:
        return target, "", ""
    window, dot, pane = rest.rpartition(".")
    if not dot:
        return session, rest, ""
    return session, window, pane


def _to_int(raw: str) -> int:
    try:
        return int(raw.strip())
    except ValueError:
        return 0


def parse_tmux_panes(output: str, inline_search: bool = False) -> list[RawPane]:
    """Parse ``list-panes`` output; short lines are dropped."""
    expected = len(_BASE_FIELDS) + (1 if inline_search else 0)
    raw: list[RawPane] = []
    for line in output.strip().splitlines():
        if not line:
            continue
        fields = line.split("\t", expected - 1)
        if len(fields) < expected:
            continue
        target, command, path, pid, window_name, activity = fields[:6]
        session, window, pane = parse_target(target)
        raw.append(
            RawPane(
                target=target,
                session=session,
                window=window,
                pane=pane,
                command=command,
                path=path,
                pid=_to_int(pid),
                window_name=window_name,
                window_activity=_to_int(activity),
                inline_attention=inline_search and _to_int(fields[6]) > 0,
            )
        )
    return raw


def list_tmux_panes(inline_search: bool = False) -> str:
    """Run ``tmux list-panes -a`` and return its raw output."""
    return _run_tmux_checked(
        ["tmux", "list-panes", "-a", "-F", pane_format(inline_search)],
    )


def _result_or(future: Future[T], default: T, what: str) -> T:
    try:
        return future.result()
    except Exception:
        logger.exception("%s failed; continuing without it", what)
        return default


def fetch_panes(
    registry: ProviderRegistry,
    settings: Optional["Settings"] = None,
) -> list[Pane]:
    """Discover agent panes.

    The tmux query, the process table snapshot and the history read run
    concurrently; panes are built only after all three return. Raises
    TmuxError when the pane listing itself fails.
    """
    inline = _settings(settings).attention.inline_search
    with ThreadPoolExecutor(max_workers=3) as pool:
        tmux_future = pool.submit(list_tmux_panes, inline)
        history_future = pool.submit(last_active_by_project)
        table_future = pool.submit(load_process_table)

        history: dict[str, datetime] = _result_or(history_future, {}, "history read")
        table: ProcessTable = _result_or(table_future, ProcessTable(), "process snapshot")
        tmux_out = tmux_future.result()

    raw = resolve_agent_panes(parse_tmux_panes(tmux_out, inline), registry, table)
    return [
        Pane(
            target=r.target,
            session=r.session,
            window=r.window,
            pane=r.pane,
            window_name=r.window_name,
            path=r.path,
            pid=r.pid,
            command=r.command,
            window_activity=r.window_activity,
            heuristic_attention=r.inline_attention,
            status=PaneStatus.IDLE,
            last_active=history.get(r.path),
        )
        for r in raw
    ]


def capture_pane_content(
    target: str,
    lines: int = 15,
    question_depth: int = 1,
) -> tuple[str, bool]:
    """Capture the last ``lines`` lines of a pane.

    Returns ``(content_hash, needs_attention)``; ``("", False)`` on failure.
    """
    r = _run_tmux(
        ["tmux", "capture-pane", "-t", target, "-p", "-S", f"-{lines}"],
        timeout=2,
    )
    if r is None or r.returncode != 0:
        return "", False
    # -S counts back from the top of the visible screen; keep only the
    # bottom `lines` non-trailing-blank lines.
    window = "\n".join(r.stdout.rstrip().splitlines()[-lines:])
    digest = hashlib.sha256(window.encode("utf-8")).hexdigest()[:16]
    return digest, needs_attention(window, question_depth)


def capture_content(panes: list[Pane], settings: Optional["Settings"] = None) -> None:
    """Set content_hash and heuristic_attention on each pane.

    Sequential on purpose: tmux serializes capture-pane on its server lock.
    """
    att = _settings(settings).attention
    for p in panes:
        p.content_hash, p.heuristic_attention = capture_pane_content(
            p.target, att.lookback_lines, att.question_depth,
        )


def list_panes(
    registry: ProviderRegistry,
    settings: Optional["Settings"] = None,
) -> list[Pane]:
    """Agent panes with attention heuristics and workspace metadata."""
    settings = _settings(settings)
    panes = fetch_panes(registry, settings)
    if not settings.attention.inline_search:
        capture_content(panes, settings)
    enrich_panes(panes)
    return panes


# ── Actions ──────────────────────────────────────────────────────────


def capture_pane(target: str, lines: int) -> str:
    """Capture visible pane content with escape sequences (for previews)."""
    return _run_tmux_checked(
        ["tmux", "capture-pane", "-t", target, "-e", "-p", "-S", f"-{lines}"],
    )


def switch_to_pane(target: str) -> None:
    """Switch the tmux client to the pane's window, then select the pane."""
    session, window, _ = parse_target(target)
    _run_tmux_checked(["tmux", "switch-client", "-t", f"{session}:{window}"])
    _run_tmux_checked(["tmux", "select-pane", "-t", target])


def kill_pane(target: str) -> None:
    """Kill a pane, or its window when it is the window's only pane."""
    session, window, _ = parse_target(target)
    session_window = f"{session}:{window}"
    out = _run_tmux_checked(["tmux", "list-panes", "-t", session_window])
    pane_count = len([line for line in out.strip().splitlines() if line.strip()])
    if pane_count <= 1:
        _run_tmux_checked(["tmux", "kill-window", "-t", session_window])
    else:
        _run_tmux_checked(["tmux", "kill-pane", "-t", target])
    logger.info("killed %s", target)
