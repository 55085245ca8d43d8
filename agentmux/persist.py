"""Persisted state shared by the watch daemon and the viewer.

One JSON document, rewritten whole on every save. There is no lock around
read-modify-write; the two processes stay out of each other's way by field
ownership:

- daemon: per-pane last status, activity baseline, override
- viewer: last cursor position, sidebar width, stashed flags
- either: overrides (absorbed only when not already tracked locally)

A document whose ``version`` differs from SCHEMA_VERSION is treated as
absent, never migrated.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
import json
import logging
from pathlib import Path
from typing import Any, Iterable, Optional
import uuid

from .config import STATE_FILE
from .models import Pane

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 4


@dataclass
class CachedPane:
    target: str
    window_name: str = ""
    path: str = ""
    short_path: str = ""
    git_branch: str = ""
    git_dirty: bool = False
    stashed: bool = False
    status_override: Optional[int] = None
    window_activity: int = 0
    last_status: Optional[int] = None
    last_active: Optional[datetime] = None


@dataclass
class LastPosition:
    pane_target: str = ""
    cursor: int = 0
    scroll_start: int = 0


@dataclass
class PersistedState:
    version: int = SCHEMA_VERSION
    panes: list[CachedPane] = field(default_factory=list)
    last_position: LastPosition = field(default_factory=LastPosition)
    sidebar_width: int = 0


# ── (de)serialization ────────────────────────────────────────────────


def _str(raw: object) -> str:
    return raw if isinstance(raw, str) else ""


def _int(raw: object) -> int:
    if isinstance(raw, bool) or not isinstance(raw, int):
        return 0
    return raw


def _opt_int(raw: object) -> Optional[int]:
    if isinstance(raw, bool) or not isinstance(raw, int):
        return None
    return raw


def _opt_datetime(raw: object) -> Optional[datetime]:
    if not isinstance(raw, str) or not raw.strip():
        return None
    text = raw.strip()
    normalized = text[:-1] + "+00:00" if text.endswith("Z") else text
    try:
        dt = datetime.fromisoformat(normalized)
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def _cached_pane_from_dict(raw: dict[str, Any]) -> CachedPane | None:
    target = _str(raw.get("target"))
    if not target:
        return None
    return CachedPane(
        target=target,
        window_name=_str(raw.get("windowName")),
        path=_str(raw.get("path")),
        short_path=_str(raw.get("shortPath")),
        git_branch=_str(raw.get("gitBranch")),
        git_dirty=raw.get("gitDirty") is True,
        stashed=raw.get("stashed") is True,
        status_override=_opt_int(raw.get("statusOverride")),
        window_activity=_int(raw.get("windowActivity")),
        last_status=_opt_int(raw.get("lastStatus")),
        last_active=_opt_datetime(raw.get("lastActive")),
    )


def _cached_pane_to_dict(cp: CachedPane) -> dict[str, Any]:
    out: dict[str, Any] = {"target": cp.target}
    if cp.window_name:
        out["windowName"] = cp.window_name
    out["path"] = cp.path
    out["shortPath"] = cp.short_path
    if cp.git_branch:
        out["gitBranch"] = cp.git_branch
    if cp.git_dirty:
        out["gitDirty"] = True
    out["stashed"] = cp.stashed
    if cp.status_override is not None:
        out["statusOverride"] = cp.status_override
    if cp.window_activity:
        out["windowActivity"] = cp.window_activity
    if cp.last_status is not None:
        out["lastStatus"] = cp.last_status
    if cp.last_active is not None:
        out["lastActive"] = cp.last_active.isoformat()
    return out


def state_from_dict(raw: dict[str, Any]) -> PersistedState:
    panes: list[CachedPane] = []
    raw_panes = raw.get("panes")
    if isinstance(raw_panes, list):
        for item in raw_panes:
            if isinstance(item, dict):
                cp = _cached_pane_from_dict(item)
                if cp is not None:
                    panes.append(cp)

    pos = raw.get("lastPosition")
    if not isinstance(pos, dict):
        pos = {}
    return PersistedState(
        version=_int(raw.get("version")),
        panes=panes,
        last_position=LastPosition(
            pane_target=_str(pos.get("pane_target")),
            cursor=_int(pos.get("cursor")),
            scroll_start=_int(pos.get("scroll_start")),
        ),
        sidebar_width=_int(raw.get("sidebarWidth")),
    )


def state_to_dict(state: PersistedState) -> dict[str, Any]:
    out: dict[str, Any] = {
        "version": state.version,
        "panes": [_cached_pane_to_dict(cp) for cp in state.panes],
        "lastPosition": {
            "pane_target": state.last_position.pane_target,
            "cursor": state.last_position.cursor,
            "scroll_start": state.last_position.scroll_start,
        },
    }
    if state.sidebar_width:
        out["sidebarWidth"] = state.sidebar_width
    return out


# ── load / save ──────────────────────────────────────────────────────


def load_state(path: Optional[Path] = None) -> PersistedState | None:
    """Load the state document; None when missing, malformed or stale."""
    path = path or STATE_FILE
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return None
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        logger.debug("ignoring unreadable state file %s: %s", path, exc)
        return None

    if not isinstance(raw, dict):
        return None
    if _opt_int(raw.get("version")) != SCHEMA_VERSION:
        logger.debug("ignoring state file %s with version %r", path, raw.get("version"))
        return None
    return state_from_dict(raw)


def save_state(state: PersistedState, path: Optional[Path] = None) -> None:
    """Stamp the schema version and replace the state file atomically.

    Raises OSError on failure.
    """
    path = path or STATE_FILE
    state.version = SCHEMA_VERSION
    payload = json.dumps(state_to_dict(state), indent=2)

    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + f".tmp.{uuid.uuid4().hex}")
    try:
        tmp.write_text(payload + "\n", encoding="utf-8")
        tmp.replace(path)
    finally:
        if tmp.exists():
            try:
                tmp.unlink()
            except OSError:
                pass


def cache_panes(panes: Iterable[Pane]) -> list[CachedPane]:
    """Convert live panes into persisted records (display fields only)."""
    return [
        CachedPane(
            target=p.target,
            window_name=p.window_name,
            path=p.path,
            short_path=p.short_path,
            git_branch=p.git_branch,
            git_dirty=p.git_dirty,
            stashed=p.stashed,
            last_active=p.last_active,
        )
        for p in panes
    ]


def stashed_targets(state: PersistedState | None) -> set[str]:
    if state is None:
        return set()
    return {cp.target for cp in state.panes if cp.stashed}
