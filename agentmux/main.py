"""CLI entry point: argument parsing and dispatch."""

from __future__ import annotations

import argparse
import os
import signal
import sys
import threading
from types import FrameType
from typing import Optional

from .config import TMUX_ENV_VAR, VIEWER_LOG_FILE, WATCH_LOG_FILE
from .errors import TmuxError
from .logging_config import setup_logging
from .models import PaneStatus
from .persist import load_state
from .providers import default_registry
from .reconcile import Reconciler
from .tmux import list_panes
from .watch import restart_watch, watch

_STATUS_LABEL: dict[PaneStatus, str] = {
    PaneStatus.IDLE: "idle",
    PaneStatus.BUSY: "busy",
    PaneStatus.NEEDS_ATTENTION: "attention",
    PaneStatus.UNREAD: "unread",
}


def cmd_watch(args: argparse.Namespace) -> int:
    setup_logging(log_file=WATCH_LOG_FILE)
    stop = threading.Event()

    def _on_signal(signum: int, _frame: Optional[FrameType]) -> None:
        stop.set()

    signal.signal(signal.SIGTERM, _on_signal)
    signal.signal(signal.SIGINT, _on_signal)
    return watch(stop)


def cmd_restart_watch(args: argparse.Namespace) -> int:
    setup_logging(log_file=WATCH_LOG_FILE)
    restart_watch()
    print("✓ Restarted watch daemon")
    return 0


def cmd_ls(args: argparse.Namespace) -> int:
    setup_logging()
    try:
        panes = list_panes(default_registry())
    except TmuxError as exc:
        print(f"✗ {exc}", file=sys.stderr)
        return 1
    if not panes:
        print("No agent panes found.")
        return 0

    reconciler = Reconciler()
    state = load_state()
    if state is not None:
        reconciler.seed_from_state(state)
    reconciler.seed(panes)
    for p in sorted(panes, key=lambda p: (p.path, p.target)):
        branch = f" ({p.git_branch}{'*' if p.git_dirty else ''})" if p.git_branch else ""
        print(
            f"  {_STATUS_LABEL[p.status]:9s} {p.target:14s} {p.command:10s} "
            f"{p.short_path}{branch}"
        )
    return 0


def cmd_view(args: argparse.Namespace) -> int:
    from .dashboard import cmd_dashboard

    setup_logging(log_file=VIEWER_LOG_FILE)
    cmd_dashboard(args)
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="agent-mux",
        description="Track which tmux panes running coding agents need you",
    )
    sub = parser.add_subparsers(dest="cmd")

    p_watch = sub.add_parser("watch", help="Run the background status daemon")
    p_watch.set_defaults(func=cmd_watch)

    p_restart = sub.add_parser("restart-watch", help="Restart the status daemon")
    p_restart.set_defaults(func=cmd_restart_watch)

    p_ls = sub.add_parser("ls", help="List agent panes and their status")
    p_ls.set_defaults(func=cmd_ls)

    p_view = sub.add_parser("view", help="Interactive pane picker (default)")
    p_view.set_defaults(func=cmd_view)

    args = parser.parse_args()

    if not os.environ.get(TMUX_ENV_VAR):
        print("error: agent-mux must be run inside tmux", file=sys.stderr)
        sys.exit(1)

    func = getattr(args, "func", cmd_view)
    sys.exit(func(args))
