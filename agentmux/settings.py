"""Typed settings loaded from TOML config with env-var overrides."""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field
from importlib import resources

from .config import USER_CONFIG_PATH


def _load_default_toml() -> dict:
    """Load the built-in default_config.toml shipped with the package."""
    ref = resources.files("agentmux").joinpath("default_config.toml")
    return tomllib.loads(ref.read_text(encoding="utf-8"))


def _load_user_toml() -> dict:
    """Load user config if it exists, otherwise empty dict."""
    if not USER_CONFIG_PATH.is_file():
        return {}
    try:
        return tomllib.loads(USER_CONFIG_PATH.read_text(encoding="utf-8"))
    except (OSError, tomllib.TOMLDecodeError):
        return {}


def _deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge override into base (override wins)."""
    merged = dict(base)
    for key, val in override.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(val, dict):
            merged[key] = _deep_merge(merged[key], val)
        else:
            merged[key] = val
    return merged


# ── Dataclasses ──────────────────────────────────────────────────────


@dataclass
class WatchConfig:
    interval: float
    fast_interval: float
    fast_cycles: int


@dataclass
class ViewerConfig:
    poll_interval: float
    fast_poll_interval: float
    fast_cycles: int
    preview_lines: int


@dataclass
class AttentionConfig:
    lookback_lines: int
    question_depth: int
    inline_search: bool


@dataclass
class Settings:
    watch: WatchConfig
    viewer: ViewerConfig
    attention: AttentionConfig
    agents: tuple[str, ...]
    log_level: str

    # Raw merged dict kept for potential future use
    _raw: dict = field(default_factory=dict, repr=False)


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def load_settings() -> Settings:
    """Load settings: defaults ← user TOML ← env vars."""
    defaults = _load_default_toml()
    user = _load_user_toml()
    raw = _deep_merge(defaults, user)

    w = raw.get("watch", {})
    v = raw.get("viewer", {})
    att = raw.get("attention", {})
    prov = raw.get("providers", {})
    log = raw.get("logging", {})

    watch = WatchConfig(
        interval=float(os.environ.get(
            "AGENT_MUX_WATCH_INTERVAL", w.get("interval", 0.5),
        )),
        fast_interval=float(w.get("fast_interval", 0.5)),
        fast_cycles=int(w.get("fast_cycles", 3)),
    )

    viewer = ViewerConfig(
        poll_interval=float(os.environ.get(
            "AGENT_MUX_POLL", v.get("poll_interval", 2.0),
        )),
        fast_poll_interval=float(v.get("fast_poll_interval", 0.5)),
        fast_cycles=int(v.get("fast_cycles", 2)),
        preview_lines=int(v.get("preview_lines", 50)),
    )

    attention = AttentionConfig(
        lookback_lines=int(att.get("lookback_lines", 15)),
        question_depth=int(att.get("question_depth", 1)),
        inline_search=_env_bool(
            "AGENT_MUX_INLINE_SEARCH", bool(att.get("inline_search", False)),
        ),
    )

    agents = tuple(
        str(name).strip() for name in prov.get("agents", []) if str(name).strip()
    )

    return Settings(
        watch=watch,
        viewer=viewer,
        attention=attention,
        agents=agents,
        log_level=os.environ.get("AGENT_MUX_LOG_LEVEL", log.get("level", "INFO")),
        _raw=raw,
    )


# Module-level singleton, loaded once on import.
SETTINGS = load_settings()
