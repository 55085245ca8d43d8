"""Flattened workspace/pane tree shown in the sidebar."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from rich.text import Text

from ..models import Pane, PaneStatus


class ItemKind(Enum):
    WORKSPACE = "workspace"
    PANE = "pane"
    SECTION = "section"


@dataclass(frozen=True)
class TreeItem:
    kind: ItemKind
    target: str = ""
    title: str = ""


def build_items(panes: Mapping[str, Pane]) -> list[TreeItem]:
    """Sort by (stashed, path, target) and insert workspace/section headers."""
    ordered = sorted(panes.values(), key=lambda p: (p.stashed, p.path, p.target))
    items: list[TreeItem] = []
    prev_path: str | None = None
    in_stashed = False
    for p in ordered:
        if p.stashed and not in_stashed:
            in_stashed = True
            prev_path = None
            items.append(TreeItem(ItemKind.SECTION))
            items.append(TreeItem(ItemKind.SECTION, title="stashed"))
        if p.path != prev_path:
            prev_path = p.path
            items.append(TreeItem(ItemKind.WORKSPACE, target=p.target))
        items.append(TreeItem(ItemKind.PANE, target=p.target))
    return items


def next_pane(items: list[TreeItem], start: int) -> int:
    """Index of the next pane after ``start``, wrapping around."""
    for i in range(start + 1, len(items)):
        if items[i].kind == ItemKind.PANE:
            return i
    for i in range(0, min(start, len(items))):
        if items[i].kind == ItemKind.PANE:
            return i
    return start


def prev_pane(items: list[TreeItem], start: int) -> int:
    """Index of the previous pane before ``start``, wrapping around."""
    for i in range(min(start, len(items)) - 1, -1, -1):
        if items[i].kind == ItemKind.PANE:
            return i
    for i in range(len(items) - 1, start, -1):
        if items[i].kind == ItemKind.PANE:
            return i
    return start


def nearest_pane(items: list[TreeItem], start: int) -> int:
    """Closest pane to ``start``: itself, then forward, then backward."""
    if not items:
        return 0
    start = max(0, min(start, len(items) - 1))
    if items[start].kind == ItemKind.PANE:
        return start
    for i in range(start + 1, len(items)):
        if items[i].kind == ItemKind.PANE:
            return i
    for i in range(start - 1, -1, -1):
        if items[i].kind == ItemKind.PANE:
            return i
    return 0


def first_pane(items: list[TreeItem]) -> int:
    for i, item in enumerate(items):
        if item.kind == ItemKind.PANE:
            return i
    return -1


def last_pane(items: list[TreeItem]) -> int:
    for i in range(len(items) - 1, -1, -1):
        if items[i].kind == ItemKind.PANE:
            return i
    return 0


def find_pane(items: list[TreeItem], target: str) -> int:
    for i, item in enumerate(items):
        if item.kind == ItemKind.PANE and item.target == target:
            return i
    return -1


def first_attention_pane(items: list[TreeItem], panes: Mapping[str, Pane]) -> int:
    """First non-stashed pane that is NeedsAttention or Unread, or -1."""
    for i, item in enumerate(items):
        if item.kind != ItemKind.PANE:
            continue
        p = panes.get(item.target)
        if p is not None and not p.stashed and p.status in (
            PaneStatus.NEEDS_ATTENTION, PaneStatus.UNREAD,
        ):
            return i
    return -1


def format_elapsed(since: Optional[datetime], now: Optional[datetime] = None) -> str:
    """Short age like ``42s``, ``5m``, ``2h10m``, ``3d``; empty when unknown."""
    if since is None:
        return ""
    now = now or datetime.now(timezone.utc)
    secs = max(int((now - since).total_seconds()), 0)
    if secs < 60:
        return f"{secs}s"
    if secs < 3600:
        return f"{secs // 60}m"
    if secs < 86400:
        h, m = secs // 3600, (secs % 3600) // 60
        return f"{h}h{m}m" if m else f"{h}h"
    return f"{secs // 86400}d"


def truncate(text: str, maxlen: int) -> str:
    if maxlen <= 0:
        return ""
    if len(text) <= maxlen:
        return text
    if maxlen <= 3:
        return text[:maxlen]
    return text[: maxlen - 3] + "..."


_ICON_STYLE: dict[PaneStatus, tuple[str, str]] = {
    PaneStatus.BUSY: ("●", "#d97706"),
    PaneStatus.NEEDS_ATTENTION: ("●", "#dc2626"),
    PaneStatus.UNREAD: ("●", "#2563eb"),
    PaneStatus.IDLE: ("○", "#808080"),
}


def render_item(item: TreeItem, panes: Mapping[str, Pane], width: int) -> Text:
    """Render one sidebar row."""
    if item.kind == ItemKind.SECTION:
        if not item.title:
            return Text("")
        label = f" {item.title} "
        return Text("─" + label + "─" * max(width - len(label) - 1, 0), style="#6c6c6c")

    p = panes.get(item.target)
    if p is None:
        return Text("")

    if item.kind == ItemKind.WORKSPACE:
        branch = p.git_branch + ("*" if p.git_dirty and p.git_branch else "")
        avail = width - 2
        name = p.short_path or p.path
        if branch and len(name) + 1 + len(branch) > avail:
            branch_avail = avail - len(name) - 1
            branch = truncate(branch, branch_avail) if branch_avail >= 4 else ""
        if not branch:
            name = truncate(name, avail)
        row = Text(" " + name, style="bold #ffffff")
        if branch:
            row.append(" " * max(width - len(row) - len(branch) - 1, 1))
            row.append(branch, style="#5faf5f")
        return row

    icon, color = _ICON_STYLE[p.status]
    dim = "#5f5f5f" if p.stashed else "#a8a8a8"
    label = f"{p.session}:{p.window}"
    if p.window_name:
        label = f"{label} {p.window_name}"
    right = format_elapsed(p.last_active)
    avail = width - 5 - len(right) - 1
    label = truncate(label, avail)
    row = Text("   ")
    row.append(icon, style=color if not p.stashed else f"dim {color}")
    row.append(" " + label, style=dim)
    row.append(" " * max(avail - len(label), 0))
    row.append(" " + right, style="#5f5f5f")
    return row
