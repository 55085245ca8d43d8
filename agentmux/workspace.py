"""Workspace metadata: short path and git state per pane directory."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
import os
import subprocess
import threading

from .models import Pane


@dataclass
class Workspace:
    path: str
    short_path: str
    git_branch: str = ""
    git_dirty: bool = False
    panes: list[Pane] = field(default_factory=list)


def short_path(path: str, home: str | None = None) -> str:
    """Basename of ``path``; the ``~``-relative path when there is none."""
    home = os.path.expanduser("~") if home is None else home
    short = os.path.basename(path.rstrip("/")) if path not in ("", "/") else ""
    if short and short != ".":
        return short
    short = path
    if home and home != "/" and short.startswith(home):
        short = "~" + short[len(home):]
    return short


def git_branch(directory: str) -> str:
    """Current branch read from ``.git/HEAD`` without spawning git.

    Detached HEAD yields the first 8 characters of the commit id.
    """
    try:
        with open(os.path.join(directory, ".git", "HEAD"), encoding="utf-8") as f:
            ref = f.read().strip()
    except (OSError, UnicodeDecodeError):
        return ""
    prefix = "ref: refs/heads/"
    if ref.startswith(prefix):
        return ref[len(prefix):]
    return ref[:8]


# path -> (.git/index mtime, dirty)
_dirty_cache: dict[str, tuple[float, bool]] = {}
_dirty_lock = threading.Lock()


def git_dirty(directory: str) -> bool:
    """True when the working tree has uncommitted changes.

    Cached per directory until ``.git/index`` changes.
    """
    try:
        mtime = os.stat(os.path.join(directory, ".git", "index")).st_mtime
    except OSError:
        return False

    with _dirty_lock:
        cached = _dirty_cache.get(directory)
    if cached is not None and cached[0] == mtime:
        return cached[1]

    try:
        r = subprocess.run(
            ["git", "status", "--porcelain"],
            cwd=directory, capture_output=True, text=True, timeout=3,
        )
    except (subprocess.TimeoutExpired, FileNotFoundError, OSError):
        return False
    if r.returncode != 0:
        return False
    dirty = bool(r.stdout.strip())

    with _dirty_lock:
        _dirty_cache[directory] = (mtime, dirty)
    return dirty


def _git_info(directory: str) -> tuple[str, bool]:
    return git_branch(directory), git_dirty(directory)


def enrich_panes(panes: list[Pane]) -> None:
    """Fill short_path, git_branch and git_dirty, once per unique path."""
    paths = sorted({p.path for p in panes})
    if not paths:
        return
    with ThreadPoolExecutor(max_workers=min(8, len(paths))) as pool:
        info = dict(zip(paths, pool.map(_git_info, paths)))
    for p in panes:
        p.short_path = short_path(p.path)
        p.git_branch, p.git_dirty = info[p.path]


def group_by_workspace(panes: list[Pane]) -> list[Workspace]:
    """Group panes by working directory, sorted by path then target."""
    groups: dict[str, Workspace] = {}
    for p in sorted(panes, key=lambda p: (p.path, p.target)):
        ws = groups.get(p.path)
        if ws is None:
            ws = Workspace(
                path=p.path,
                short_path=p.short_path or short_path(p.path),
                git_branch=p.git_branch,
                git_dirty=p.git_dirty,
            )
            groups[p.path] = ws
        ws.panes.append(p)
    return list(groups.values())
