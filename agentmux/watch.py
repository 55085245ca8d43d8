"""Background watch daemon keeping the state file current.

Started from tmux (``run-shell -b "agent-mux watch"``) so the viewer always
opens with fresh statuses. A non-blocking flock on the lock file keeps it a
singleton; losing the race is the normal case and exits successfully.
"""

from __future__ import annotations

import errno
import fcntl
import logging
import os
from pathlib import Path
import signal
import subprocess
import sys
import threading
import time
from types import TracebackType
from typing import IO, TYPE_CHECKING, Optional

from .config import WATCH_LOCK_FILE
from .errors import TmuxError
from .persist import (
    PersistedState,
    cache_panes,
    load_state,
    save_state,
    stashed_targets,
)
from .providers import ProviderRegistry, default_registry
from .reconcile import Reconciler
from .tmux import list_panes

if TYPE_CHECKING:
    from .settings import Settings

logger = logging.getLogger(__name__)


class WatchLock:
    """Exclusive advisory lock holding the daemon's pid."""

    def __init__(self, path: Optional[Path] = None) -> None:
        self.path = path or WATCH_LOCK_FILE
        self.acquired = False
        self._file: IO[str] | None = None

    def acquire(self) -> bool:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        f = open(self.path, "a+", encoding="utf-8")
        try:
            fcntl.flock(f.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
        except OSError as exc:
            f.close()
            if exc.errno in (errno.EAGAIN, errno.EACCES, errno.EWOULDBLOCK):
                return False
            raise
        f.seek(0)
        f.truncate()
        f.write(str(os.getpid()))
        f.flush()
        self._file = f
        self.acquired = True
        return True

    def release(self) -> None:
        if self._file is None:
            return
        try:
            fcntl.flock(self._file.fileno(), fcntl.LOCK_UN)
        finally:
            self._file.close()
            self._file = None
            self.acquired = False

    def __enter__(self) -> "WatchLock":
        self.acquire()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.release()


def poll_interval(cycle: int, settings: "Settings") -> float:
    """Fast interval for the first few cycles, then the steady one."""
    if cycle < settings.watch.fast_cycles:
        return settings.watch.fast_interval
    return settings.watch.interval


def run_cycle(
    reconciler: Reconciler,
    registry: ProviderRegistry,
    settings: "Settings",
    state_path: Optional[Path] = None,
) -> bool:
    """One discover → reconcile → persist pass. False when discovery failed."""
    reconciler.merge_overrides(load_state(state_path))

    try:
        panes = list_panes(registry, settings)
    except TmuxError as exc:
        logger.warning("discovery failed, keeping previous state: %s", exc)
        return False

    reconciler.reconcile(panes)

    # Re-read right before writing: pick up overrides and viewer-owned
    # fields written while discovery was running.
    fresh = load_state(state_path)
    reconciler.merge_overrides(fresh)
    stashed = stashed_targets(fresh)
    for p in panes:
        p.stashed = p.target in stashed

    state = PersistedState(panes=cache_panes(panes))
    if fresh is not None:
        state.last_position = fresh.last_position
        state.sidebar_width = fresh.sidebar_width
    reconciler.apply_to_cache(state.panes)
    try:
        save_state(state, state_path)
    except OSError as exc:
        logger.warning("state write failed: %s", exc)
    return True


def watch(
    stop: threading.Event,
    registry: Optional[ProviderRegistry] = None,
    settings: Optional["Settings"] = None,
    lock_path: Optional[Path] = None,
    state_path: Optional[Path] = None,
) -> int:
    """Run the poll loop until ``stop`` is set. Returns an exit status."""
    if settings is None:
        from .settings import SETTINGS
        settings = SETTINGS
    registry = registry or default_registry(settings)

    with WatchLock(lock_path) as lock:
        if not lock.acquired:
            logger.info("watch already running; exiting")
            return 0
        logger.info("watch started (pid %d)", os.getpid())

        reconciler = Reconciler()
        seed = load_state(state_path)
        if seed is not None:
            reconciler.seed_from_state(seed)

        cycle = 0
        while not stop.is_set():
            start = time.monotonic()
            run_cycle(reconciler, registry, settings, state_path)
            elapsed = time.monotonic() - start
            remaining = poll_interval(cycle, settings) - elapsed
            cycle += 1
            if stop.wait(max(remaining, 0)):
                break

        logger.info("watch stopped")
    return 0


def _lock_is_free(path: Path) -> bool:
    try:
        with open(path, "a+", encoding="utf-8") as f:
            try:
                fcntl.flock(f.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
            except OSError:
                return False
            fcntl.flock(f.fileno(), fcntl.LOCK_UN)
            return True
    except OSError:
        return True


def _wait_for_release(path: Path, timeout: float = 3.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if _lock_is_free(path):
            return True
        time.sleep(0.05)
    return False


def read_watch_pid(lock_path: Optional[Path] = None) -> int | None:
    try:
        raw = (lock_path or WATCH_LOCK_FILE).read_text(encoding="utf-8").strip()
    except OSError:
        return None
    try:
        pid = int(raw)
    except ValueError:
        return None
    return pid if pid > 0 else None


def restart_watch(lock_path: Optional[Path] = None) -> None:
    """Terminate the running daemon (if any) and spawn a fresh one."""
    pid = read_watch_pid(lock_path)
    if pid is not None and pid != os.getpid():
        try:
            os.kill(pid, signal.SIGTERM)
            logger.info("sent SIGTERM to watch pid %d", pid)
        except ProcessLookupError:
            pass
        except PermissionError as exc:
            logger.warning("cannot signal watch pid %d: %s", pid, exc)
        else:
            # The old daemon exits at its next sleep boundary.
            if not _wait_for_release(lock_path or WATCH_LOCK_FILE):
                logger.warning("watch pid %d still holds the lock", pid)

    subprocess.Popen(
        [sys.executable, "-m", "agentmux", "watch"],
        start_new_session=True,
        stdin=subprocess.DEVNULL,
        stdout=subprocess.DEVNULL,
        stderr=subprocess.DEVNULL,
    )
