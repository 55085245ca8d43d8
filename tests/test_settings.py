"""Tests for settings loading and configured paths."""

import os
from pathlib import Path

import agentmux.settings as settings_mod
from agentmux.config import HISTORY_FILE, STATE_DIR, STATE_FILE, WATCH_LOCK_FILE


def test_paths_follow_environment_overrides():
    assert STATE_DIR == Path(os.environ["AGENT_MUX_STATE_DIR"])
    assert STATE_FILE == STATE_DIR / "state.json"
    assert WATCH_LOCK_FILE == STATE_DIR / "watch.lock"
    assert HISTORY_FILE == Path(os.environ["AGENT_MUX_HISTORY_FILE"])


def test_defaults_from_packaged_toml(monkeypatch, tmp_path) -> None:
    monkeypatch.setattr(settings_mod, "USER_CONFIG_PATH", tmp_path / "missing.toml")
    for name in ("AGENT_MUX_POLL", "AGENT_MUX_WATCH_INTERVAL", "AGENT_MUX_LOG_LEVEL",
                 "AGENT_MUX_INLINE_SEARCH"):
        monkeypatch.delenv(name, raising=False)

    s = settings_mod.load_settings()

    assert s.watch.interval == 0.5
    assert s.viewer.poll_interval == 2.0
    assert s.viewer.fast_poll_interval == 0.5
    assert s.attention.lookback_lines == 15
    assert s.attention.question_depth == 1
    assert s.attention.inline_search is False
    assert "claude" in s.agents and "gemini" in s.agents
    assert s.log_level == "INFO"


def test_user_toml_and_env_override_defaults(monkeypatch, tmp_path) -> None:
    user = tmp_path / "config.toml"
    user.write_text(
        '[viewer]\npoll_interval = 5.0\n\n'
        '[attention]\ninline_search = true\n\n'
        '[providers]\nagents = ["claude", "  ", "my-agent"]\n',
        encoding="utf-8",
    )
    monkeypatch.setattr(settings_mod, "USER_CONFIG_PATH", user)
    monkeypatch.setenv("AGENT_MUX_WATCH_INTERVAL", "1.5")
    monkeypatch.setenv("AGENT_MUX_INLINE_SEARCH", "0")
    monkeypatch.delenv("AGENT_MUX_POLL", raising=False)

    s = settings_mod.load_settings()

    assert s.viewer.poll_interval == 5.0
    assert s.viewer.fast_cycles == 2
    assert s.watch.interval == 1.5
    assert s.attention.inline_search is False
    assert s.agents == ("claude", "my-agent")


def test_broken_user_toml_falls_back_to_defaults(monkeypatch, tmp_path) -> None:
    user = tmp_path / "config.toml"
    user.write_text("[viewer\npoll_interval = ", encoding="utf-8")
    monkeypatch.setattr(settings_mod, "USER_CONFIG_PATH", user)
    monkeypatch.delenv("AGENT_MUX_POLL", raising=False)

    assert settings_mod.load_settings().viewer.poll_interval == 2.0
