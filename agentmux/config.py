"""Global configuration: state directory and well-known file paths."""

from __future__ import annotations

import os
import tomllib
from pathlib import Path


USER_CONFIG_PATH = Path.home() / ".config" / "agent-mux" / "config.toml"


def _load_user_storage() -> dict[str, str]:
    if not USER_CONFIG_PATH.is_file():
        return {}
    try:
        raw = tomllib.loads(USER_CONFIG_PATH.read_text(encoding="utf-8"))
    except (OSError, tomllib.TOMLDecodeError):
        return {}

    storage = raw.get("storage")
    if not isinstance(storage, dict):
        return {}

    out: dict[str, str] = {}
    state_dir = storage.get("state_dir")
    if isinstance(state_dir, str) and state_dir.strip():
        out["state_dir"] = state_dir.strip()

    history_file = storage.get("history_file")
    if isinstance(history_file, str) and history_file.strip():
        out["history_file"] = history_file.strip()

    return out


def _resolve_dir(raw: str) -> Path:
    return Path(os.path.expanduser(raw)).expanduser()


def _ensure_writable_dir(path: Path, fallback: Path) -> Path:
    """Ensure directory exists, falling back when creation is denied."""
    try:
        path.mkdir(parents=True, exist_ok=True)
        return path
    except OSError:
        fallback.mkdir(parents=True, exist_ok=True)
        return fallback


_storage = _load_user_storage()

STATE_DIR = _ensure_writable_dir(
    _resolve_dir(
        os.environ.get("AGENT_MUX_STATE_DIR")
        or _storage.get("state_dir")
        or "~/.local/state/agent-mux"
    ),
    _resolve_dir("/tmp/agent-mux"),
)

STATE_FILE = STATE_DIR / "state.json"
WATCH_LOCK_FILE = STATE_DIR / "watch.lock"
WATCH_LOG_FILE = STATE_DIR / "watch.log"
VIEWER_LOG_FILE = STATE_DIR / "viewer.log"

# Claude Code appends one JSON line per prompt, with the project path.
HISTORY_FILE = _resolve_dir(
    os.environ.get("AGENT_MUX_HISTORY_FILE")
    or _storage.get("history_file")
    or "~/.claude/history.jsonl"
)

TMUX_ENV_VAR = "TMUX"
