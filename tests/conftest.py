"""Pytest global setup for isolated agent-mux test state.

This prevents tests from touching the live state file, watch lock and prompt
history under the user's home directory.
"""

from __future__ import annotations

import atexit
import os
from pathlib import Path
import shutil
import tempfile


_TEST_ROOT = Path(tempfile.mkdtemp(prefix="agent-mux-pytest-state-"))
_TEST_STATE_DIR = _TEST_ROOT / "state"
_TEST_HISTORY_FILE = _TEST_ROOT / "history.jsonl"

_TEST_STATE_DIR.mkdir(parents=True, exist_ok=True)

# Force test process (and imported agentmux modules) to use isolated paths.
os.environ["AGENT_MUX_STATE_DIR"] = str(_TEST_STATE_DIR)
os.environ["AGENT_MUX_HISTORY_FILE"] = str(_TEST_HISTORY_FILE)
os.environ.pop("AGENT_MUX_INLINE_SEARCH", None)


@atexit.register
def _cleanup_test_state() -> None:
    shutil.rmtree(_TEST_ROOT, ignore_errors=True)
