"""Per-pane status state machine shared by the viewer and the watch daemon.

    Idle → Busy            window activity increased
    Busy → Unread          activity stopped, no attention phrase
    * → NeedsAttention     attention heuristic matched (when not busy)
    NeedsAttention/Unread  sticky until new activity, a match, or the user

A user override pins a status until the pane's window activity moves past
the value recorded with it.
"""

from __future__ import annotations

from collections.abc import Iterable

from .models import Pane, PaneStatus, StatusOverride
from .persist import CachedPane, PersistedState

_STICKY: frozenset[PaneStatus] = frozenset(
    {PaneStatus.NEEDS_ATTENTION, PaneStatus.UNREAD}
)


class Reconciler:
    """Process-local working memory keyed by pane target."""

    def __init__(self) -> None:
        self.prev_activity: dict[str, int] = {}
        self.prev_statuses: dict[str, PaneStatus] = {}
        self.overrides: dict[str, StatusOverride] = {}

    # ── seeding ──────────────────────────────────────────────────────

    def seed_from_state(self, state: PersistedState) -> None:
        """Restore baselines, statuses and overrides from a persisted document."""
        for cp in state.panes:
            if cp.window_activity:
                self.prev_activity[cp.target] = cp.window_activity
            status = _status_or_none(cp.last_status)
            if status is not None:
                self.prev_statuses[cp.target] = status
            override = _status_or_none(cp.status_override)
            if override is not None:
                self.overrides[cp.target] = StatusOverride(override, cp.window_activity)

    def seed(self, panes: list[Pane]) -> None:
        """Take baselines from fresh panes without running the state machine.

        Remembered statuses are copied onto the panes so the first real
        reconcile compares against an accurate baseline.
        """
        for p in panes:
            self.prev_activity[p.target] = p.window_activity
            prev = self.prev_statuses.get(p.target)
            if prev is not None:
                p.status = prev
        self._cleanup({p.target for p in panes})

    # ── state machine ────────────────────────────────────────────────

    def reconcile(self, panes: list[Pane]) -> None:
        """Resolve the status of every pane in place and purge dead targets."""
        for p in panes:
            p.status = self._resolve(p)
            self.prev_activity[p.target] = p.window_activity
            self.prev_statuses[p.target] = p.status
        self._cleanup({p.target for p in panes})

    def _resolve(self, p: Pane) -> PaneStatus:
        override = self.overrides.get(p.target)
        if override is not None:
            if p.window_activity > override.window_activity:
                del self.overrides[p.target]
            else:
                return override.status

        baseline = self.prev_activity.get(p.target)
        prev = self.prev_statuses.get(p.target, PaneStatus.IDLE)
        if baseline is not None and p.window_activity > baseline:
            return PaneStatus.BUSY
        if p.heuristic_attention:
            return PaneStatus.NEEDS_ATTENTION
        if prev == PaneStatus.BUSY:
            return PaneStatus.UNREAD
        if prev in _STICKY:
            return prev
        return PaneStatus.IDLE

    def _cleanup(self, alive: set[str]) -> None:
        for table in (self.prev_activity, self.prev_statuses, self.overrides):
            for target in [t for t in table if t not in alive]:
                del table[target]

    # ── overrides ────────────────────────────────────────────────────

    def set_override(self, target: str, status: PaneStatus, window_activity: int) -> None:
        self.overrides[target] = StatusOverride(status, window_activity)
        self.prev_statuses[target] = status

    def clear_override(self, target: str) -> None:
        self.overrides.pop(target, None)

    def merge_overrides(self, state: PersistedState | None) -> None:
        """Absorb overrides written by another process.

        Only targets without a locally tracked override are taken, so an
        override this process already holds is never replaced by what the
        file says. An override recorded below the known activity baseline
        has already expired here and is not brought back.
        """
        if state is None:
            return
        for cp in state.panes:
            status = _status_or_none(cp.status_override)
            if status is None or cp.target in self.overrides:
                continue
            baseline = self.prev_activity.get(cp.target)
            if baseline is not None and cp.window_activity < baseline:
                continue
            self.overrides[cp.target] = StatusOverride(status, cp.window_activity)

    def toggle_attention(self, pane: Pane) -> bool:
        """Idle → NeedsAttention → Idle (Unread also clears to Idle).

        Busy panes are left alone. Returns True when the status changed.
        """
        if pane.status == PaneStatus.IDLE:
            pane.status = PaneStatus.NEEDS_ATTENTION
        elif pane.status in _STICKY:
            pane.status = PaneStatus.IDLE
        else:
            return False
        self.set_override(pane.target, pane.status, pane.window_activity)
        return True

    def mark_viewed(self, pane: Pane) -> bool:
        """Clear Unread to Idle when the user switches to the pane."""
        if pane.status != PaneStatus.UNREAD:
            return False
        pane.status = PaneStatus.IDLE
        self.set_override(pane.target, PaneStatus.IDLE, pane.window_activity)
        return True

    # ── queries / persistence ────────────────────────────────────────

    def status(self, target: str) -> PaneStatus:
        return self.prev_statuses.get(target, PaneStatus.IDLE)

    def apply_to_cache(self, cached: Iterable[CachedPane]) -> None:
        """Write baselines, statuses and overrides onto persisted records."""
        for cp in cached:
            baseline = self.prev_activity.get(cp.target)
            if baseline is not None:
                cp.window_activity = baseline
            # One activity field on disk: an override keeps its own.
            override = self.overrides.get(cp.target)
            if override is not None:
                cp.status_override = int(override.status)
                cp.window_activity = override.window_activity
            else:
                cp.status_override = None
            status = self.prev_statuses.get(cp.target)
            if status is not None:
                cp.last_status = int(status)


def _status_or_none(raw: int | None) -> PaneStatus | None:
    if raw is None:
        return None
    try:
        return PaneStatus(raw)
    except ValueError:
        return None
