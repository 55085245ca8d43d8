"""agent-mux viewer: pick the pane that needs you and jump to it."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Optional

from textual import work
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal
from textual.css.query import NoMatches
from textual.widgets import DataTable, Footer, RichLog, Static
from rich.text import Text

from ..errors import TmuxError
from ..models import Pane
from ..persist import (
    LastPosition,
    PersistedState,
    cache_panes,
    load_state,
    save_state,
)
from ..providers import ProviderRegistry, default_registry
from ..reconcile import Reconciler
from ..settings import SETTINGS, Settings
from ..tmux import capture_pane, kill_pane, list_panes, parse_target, switch_to_pane
from ..watch import restart_watch
from .css import APP_CSS
from .tree import (
    ItemKind,
    TreeItem,
    build_items,
    find_pane,
    first_attention_pane,
    first_pane,
    last_pane,
    nearest_pane,
    next_pane,
    prev_pane,
    render_item,
)

logger = logging.getLogger(__name__)

_MIN_SIDEBAR = 20


class AgentMuxApp(App):
    TITLE = "agent-mux"
    DEFAULT_CSS = APP_CSS
    BINDINGS = [
        Binding("j,down", "cursor_down", "Down", show=False),
        Binding("k,up", "cursor_up", "Up", show=False),
        Binding("g", "cursor_first", "First", show=False),
        Binding("G", "cursor_last", "Last", show=False),
        Binding("enter", "switch", "Switch"),
        Binding("space", "toggle_attention", "Attention"),
        Binding("s", "toggle_stash", "Stash"),
        Binding("u", "unstash", "Unstash", show=False),
        Binding("d", "kill", "Kill (dd)"),
        Binding("R", "restart_watch", "Reload watch"),
        Binding("H", "shrink_sidebar", "Narrow", show=False),
        Binding("L", "grow_sidebar", "Widen", show=False),
        Binding("q,escape", "leave", "Quit"),
    ]

    def __init__(
        self,
        registry: Optional[ProviderRegistry] = None,
        settings: Optional[Settings] = None,
        state_path: Optional[Path] = None,
    ) -> None:
        super().__init__()
        self.settings = settings or SETTINGS
        self.registry = registry or default_registry(self.settings)
        self.state_path = state_path
        self.reconciler = Reconciler()
        self.panes: dict[str, Pane] = {}
        self.items: list[TreeItem] = []
        self.cursor: int = -1
        self.sidebar_width: int = 0
        self.refresh_count: int = 0
        self.state = PersistedState()
        self.error: str = ""
        self._pending_kill = False
        self._preview_target = ""
        self._preview_content = ""
        self._load_cached_state()

    # ── startup ──────────────────────────────────────────────────────

    def _load_cached_state(self) -> None:
        """Paint from the state file until the first poll comes back."""
        state = load_state(self.state_path)
        if state is None:
            return
        self.state = state
        self.sidebar_width = state.sidebar_width
        self.reconciler.seed_from_state(state)
        for cp in state.panes:
            session, window, pane = parse_target(cp.target)
            self.panes[cp.target] = Pane(
                target=cp.target,
                session=session,
                window=window,
                pane=pane,
                window_name=cp.window_name,
                path=cp.path,
                short_path=cp.short_path,
                git_branch=cp.git_branch,
                git_dirty=cp.git_dirty,
                window_activity=cp.window_activity,
                status=self.reconciler.status(cp.target),
                stashed=cp.stashed,
                last_active=cp.last_active,
            )
        self.items = build_items(self.panes)

        att = first_attention_pane(self.items, self.panes)
        pos = find_pane(self.items, state.last_position.pane_target)
        if att >= 0:
            self.cursor = att
        elif pos >= 0:
            self.cursor = pos
        else:
            self.cursor = first_pane(self.items)

    def compose(self) -> ComposeResult:
        with Horizontal(id="main"):
            yield DataTable(id="pane-list")
            yield RichLog(id="preview", wrap=False, markup=False, auto_scroll=True)
        yield Static("", id="empty")
        yield Static("", id="error")
        yield Footer()

    def on_mount(self) -> None:
        table = self.query_one("#pane-list", DataTable)
        table.cursor_type = "row"
        table.show_header = False
        table.show_row_labels = False
        table.can_focus = False
        table.add_column("pane", key="pane")
        self.query_one("#preview", RichLog).can_focus = False
        self._apply_sidebar_width()
        self._render_list()
        self.poll_and_update()
        self.set_interval(0.2, self._refresh_preview)

    # ── polling ──────────────────────────────────────────────────────

    def poll_interval(self) -> float:
        if self.refresh_count <= self.settings.viewer.fast_cycles:
            return self.settings.viewer.fast_poll_interval
        return self.settings.viewer.poll_interval

    def poll_and_update(self) -> None:
        """Kick off background pane discovery."""
        self._poll_worker()

    @work(thread=True, exclusive=True, group="poll")
    def _poll_worker(self) -> None:
        """Discover panes in a background thread (no UI access)."""
        try:
            panes = list_panes(self.registry, self.settings)
        except TmuxError as exc:
            self.call_from_thread(self._apply_poll_error, str(exc))
            return
        self.call_from_thread(self._apply_panes, panes)

    def _schedule_poll(self) -> None:
        self.set_timer(self.poll_interval(), self.poll_and_update)

    def _apply_poll_error(self, message: str) -> None:
        self.refresh_count += 1
        self.error = message
        logger.warning("pane discovery failed: %s", message)
        self._render_list()
        self._schedule_poll()

    def _apply_panes(self, panes: list[Pane]) -> None:
        """Reconcile fresh panes and redraw (main thread)."""
        first_load = self.refresh_count == 0
        self.refresh_count += 1
        self.error = ""

        stashed = {t for t, p in self.panes.items() if p.stashed}
        self.reconciler.reconcile(panes)
        for p in panes:
            p.stashed = p.target in stashed
        selected = self.selected_pane()
        self.panes = {p.target: p for p in panes}
        self.items = build_items(self.panes)

        att = first_attention_pane(self.items, self.panes) if first_load else -1
        pos = find_pane(self.items, selected.target) if selected else -1
        if att >= 0:
            self.cursor = att
        elif pos >= 0:
            self.cursor = pos
        else:
            self.cursor = nearest_pane(self.items, self.cursor)
        self._render_list()
        self._schedule_poll()

    # ── rendering ────────────────────────────────────────────────────

    def list_width(self) -> int:
        if self.sidebar_width > 0:
            return self.sidebar_width
        return max(self.size.width * 25 // 100, _MIN_SIDEBAR)

    def _apply_sidebar_width(self) -> None:
        if self.sidebar_width > 0:
            self.query_one("#pane-list", DataTable).styles.width = self.sidebar_width

    def _render_list(self) -> None:
        table = self.query_one("#pane-list", DataTable)
        width = self.list_width() - 1
        table.clear()
        for i, item in enumerate(self.items):
            table.add_row(render_item(item, self.panes, width), key=str(i))
        if 0 <= self.cursor < len(self.items):
            table.move_cursor(row=self.cursor)

        empty = self.query_one("#empty", Static)
        empty.update("No agent panes found. Press q to quit.")
        empty.set_class(not self.items and not self.error, "visible")
        error = self.query_one("#error", Static)
        error.update(f"Error: {self.error}" if self.error else "")
        error.set_class(bool(self.error), "visible")

    def selected_pane(self) -> Pane | None:
        if not 0 <= self.cursor < len(self.items):
            return None
        item = self.items[self.cursor]
        if item.kind != ItemKind.PANE:
            return None
        return self.panes.get(item.target)

    def _move_cursor(self, index: int) -> None:
        self._pending_kill = False
        if index == self.cursor:
            return
        self.cursor = index
        self._render_list()
        self._refresh_preview()

    # ── preview ──────────────────────────────────────────────────────

    def _refresh_preview(self) -> None:
        pane = self.selected_pane()
        if pane is None:
            return
        lines = max(self.size.height, self.settings.viewer.preview_lines)
        self._preview_worker(pane.target, lines)

    @work(thread=True, exclusive=True, group="preview")
    def _preview_worker(self, target: str, lines: int) -> None:
        try:
            content = capture_pane(target, lines)
        except TmuxError as exc:
            content = f"error: {exc}"
        self.call_from_thread(self._apply_preview, target, content)

    def _apply_preview(self, target: str, content: str) -> None:
        pane = self.selected_pane()
        if pane is None or pane.target != target:
            return
        content = content.rstrip("\n")
        if target == self._preview_target and content == self._preview_content:
            return
        self._preview_target = target
        self._preview_content = content
        log = self.query_one("#preview", RichLog)
        log.clear()
        log.write(Text.from_ansi(content))

    # ── actions ──────────────────────────────────────────────────────

    def action_cursor_down(self) -> None:
        self._move_cursor(next_pane(self.items, self.cursor))

    def action_cursor_up(self) -> None:
        self._move_cursor(prev_pane(self.items, self.cursor))

    def action_cursor_first(self) -> None:
        idx = first_pane(self.items)
        if idx >= 0:
            self._move_cursor(idx)

    def action_cursor_last(self) -> None:
        self._move_cursor(last_pane(self.items))

    def action_toggle_attention(self) -> None:
        self._pending_kill = False
        pane = self.selected_pane()
        if pane is not None and self.reconciler.toggle_attention(pane):
            self._render_list()

    def action_toggle_stash(self) -> None:
        self._pending_kill = False
        pane = self.selected_pane()
        if pane is None:
            return
        pane.stashed = not pane.stashed
        self._restash(pane)

    def action_unstash(self) -> None:
        pane = self.selected_pane()
        if pane is None or not pane.stashed:
            return
        pane.stashed = False
        self._restash(pane)

    def _restash(self, pane: Pane) -> None:
        """Rebuild after a stash change, keeping the cursor in its old section."""
        old_index = self.cursor
        self.items = build_items(self.panes)
        section = [
            i for i, item in enumerate(self.items)
            if item.kind == ItemKind.PANE
            and self.panes[item.target].stashed != pane.stashed
        ]
        if section:
            self.cursor = min(section, key=lambda i: (abs(i - old_index), i))
        else:
            self.cursor = nearest_pane(self.items, old_index)
        self._render_list()

    def action_kill(self) -> None:
        pane = self.selected_pane()
        if pane is None:
            return
        if not self._pending_kill:
            self._pending_kill = True
            self.notify(f"Press d again to kill {pane.target}", timeout=2)
            return
        self._pending_kill = False
        self._kill_worker(pane.target)

    @work(thread=True, group="action")
    def _kill_worker(self, target: str) -> None:
        try:
            kill_pane(target)
        except TmuxError as exc:
            self.call_from_thread(self.notify, str(exc), severity="error")
            return
        self.call_from_thread(self.poll_and_update)

    def action_restart_watch(self) -> None:
        self._restart_watch_worker()

    @work(thread=True, group="action")
    def _restart_watch_worker(self) -> None:
        try:
            restart_watch()
        except OSError as exc:
            self.call_from_thread(self.notify, f"restart failed: {exc}", severity="error")
            return
        self.call_from_thread(self.notify, "Watch daemon restarted", timeout=2)
        self.call_from_thread(self.poll_and_update)

    def _resize_sidebar(self, delta: int) -> None:
        width = self.list_width() + delta
        width = min(width, max(self.size.width - _MIN_SIDEBAR, _MIN_SIDEBAR))
        self.sidebar_width = max(width, _MIN_SIDEBAR)
        self._apply_sidebar_width()
        self._render_list()

    def action_shrink_sidebar(self) -> None:
        self._resize_sidebar(-2)

    def action_grow_sidebar(self) -> None:
        self._resize_sidebar(2)

    def action_switch(self) -> None:
        pane = self.selected_pane()
        if pane is None:
            return
        self.reconciler.mark_viewed(pane)
        try:
            switch_to_pane(pane.target)
        except TmuxError as exc:
            self._render_list()
            self.notify(str(exc), severity="error")
            return
        self.save()
        self.exit()

    def action_leave(self) -> None:
        self.save()
        self.exit()

    # ── persistence ──────────────────────────────────────────────────

    def build_state(self) -> PersistedState:
        """Snapshot panes, reconciler memory and viewer position.

        The file is re-read first so overrides the daemon wrote since the
        last poll survive this write.
        """
        fresh = load_state(self.state_path)
        self.reconciler.merge_overrides(fresh)
        state = self.state
        state.panes = cache_panes(self.panes.values())
        self.reconciler.apply_to_cache(state.panes)

        cursor = self.cursor
        scroll_start = self.query_scroll_start()
        att = first_attention_pane(self.items, self.panes)
        if att >= 0:
            cursor, scroll_start = att, 0
        target = ""
        if 0 <= cursor < len(self.items) and self.items[cursor].kind == ItemKind.PANE:
            target = self.items[cursor].target
        state.last_position = LastPosition(
            pane_target=target, cursor=max(cursor, 0), scroll_start=scroll_start,
        )
        state.sidebar_width = self.sidebar_width
        return state

    def query_scroll_start(self) -> int:
        try:
            return int(self.query_one("#pane-list", DataTable).scroll_y)
        except NoMatches:
            return 0

    def save(self) -> None:
        try:
            save_state(self.build_state(), self.state_path)
        except OSError as exc:
            logger.warning("state write failed: %s", exc)


def cmd_dashboard(args: argparse.Namespace | None = None) -> None:
    app = AgentMuxApp()
    app.run()

