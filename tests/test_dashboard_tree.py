"""Tests for the sidebar tree helpers."""

from datetime import datetime, timedelta, timezone

from agentmux.dashboard.tree import (
    ItemKind,
    build_items,
    find_pane,
    first_attention_pane,
    first_pane,
    format_elapsed,
    last_pane,
    nearest_pane,
    next_pane,
    prev_pane,
    render_item,
    truncate,
)
from agentmux.models import PaneStatus
from tests.helpers import make_pane


def _panes(*panes):
    return {p.target: p for p in panes}


def _layout():
    return _panes(
        make_pane("a:1.0", path="/w/a"),
        make_pane("a:2.0", path="/w/a", status=PaneStatus.UNREAD),
        make_pane("b:1.0", path="/w/b"),
        make_pane("s:1.0", path="/w/a", stashed=True, status=PaneStatus.NEEDS_ATTENTION),
    )


def test_build_items_groups_by_workspace_with_stashed_last():
    items = build_items(_layout())

    assert [(i.kind, i.target, i.title) for i in items] == [
        (ItemKind.WORKSPACE, "a:1.0", ""),
        (ItemKind.PANE, "a:1.0", ""),
        (ItemKind.PANE, "a:2.0", ""),
        (ItemKind.WORKSPACE, "b:1.0", ""),
        (ItemKind.PANE, "b:1.0", ""),
        (ItemKind.SECTION, "", ""),
        (ItemKind.SECTION, "", "stashed"),
        (ItemKind.WORKSPACE, "s:1.0", ""),
        (ItemKind.PANE, "s:1.0", ""),
    ]


def test_navigation_skips_headers_and_wraps():
    items = build_items(_layout())

    assert first_pane(items) == 1
    assert last_pane(items) == 8
    assert next_pane(items, 2) == 4
    assert next_pane(items, 8) == 1
    assert prev_pane(items, 1) == 8
    assert prev_pane(items, 4) == 2
    assert nearest_pane(items, 5) == 8
    assert nearest_pane(items, 0) == 1
    assert find_pane(items, "b:1.0") == 4
    assert find_pane(items, "gone:1.0") == -1


def test_navigation_on_empty_list():
    assert first_pane([]) == -1
    assert last_pane([]) == 0
    assert nearest_pane([], 3) == 0
    assert next_pane([], 0) == 0


def test_first_attention_pane_ignores_stashed():
    panes = _layout()
    items = build_items(panes)

    assert first_attention_pane(items, panes) == 2

    panes["a:2.0"].status = PaneStatus.IDLE
    assert first_attention_pane(items, panes) == -1


def test_format_elapsed():
    now = datetime(2026, 5, 1, 12, 0, tzinfo=timezone.utc)

    assert format_elapsed(None, now) == ""
    assert format_elapsed(now - timedelta(seconds=42), now) == "42s"
    assert format_elapsed(now - timedelta(minutes=5), now) == "5m"
    assert format_elapsed(now - timedelta(hours=2, minutes=10), now) == "2h10m"
    assert format_elapsed(now - timedelta(hours=3), now) == "3h"
    assert format_elapsed(now - timedelta(days=3, hours=1), now) == "3d"
    assert format_elapsed(now + timedelta(seconds=5), now) == "0s"


def test_truncate():
    assert truncate("workspace", 20) == "workspace"
    assert truncate("workspace", 6) == "wor..."
    assert truncate("workspace", 2) == "wo"
    assert truncate("workspace", 0) == ""


def test_render_pane_row_fits_width():
    panes = _layout()
    panes["a:2.0"].window_name = "a-very-long-window-name-for-testing"
    items = build_items(panes)

    row = render_item(items[2], panes, 30)

    assert "●" in row.plain
    assert "a:2" in row.plain
    assert len(row.plain) <= 30


def test_render_workspace_row_shows_branch():
    panes = _layout()
    panes["a:1.0"].git_branch = "main"
    panes["a:1.0"].git_dirty = True
    items = build_items(panes)

    row = render_item(items[0], panes, 30)

    assert row.plain.startswith(" a")
    assert row.plain.rstrip().endswith("main*")


def test_render_section_title():
    items = build_items(_layout())

    assert render_item(items[5], {}, 20).plain == ""
    assert "stashed" in render_item(items[6], {}, 20).plain
