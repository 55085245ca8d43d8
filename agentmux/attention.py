"""Attention heuristics: is an agent waiting on the user?

A pane needs attention when its recent content contains one of a fixed set of
prompt phrases, or when the last non-empty line ends with a question mark.
Both false positives (a quoted question in code) and false negatives (new
phrasing) are accepted.
"""

from __future__ import annotations

import re

ATTENTION_PATTERNS: tuple[str, ...] = (
    # Tool permission prompts
    "Do you want to proceed?",
    "Do you want to allow",
    "Allow once",
    "press Enter to approve",
    # Question / selection prompts
    "Enter to select",
    "Type something",
    "Esc to cancel",
    # Waiting for a reply
    "I'll wait for your",
    "waiting for your response",
    "Let me know when",
    "Please let me know",
    "What would you like",
    "How would you like",
    "Should I proceed",
    "Would you like me to",
    "please provide",
    "please specify",
    "I need more information",
    "Could you clarify",
    "awaiting your",
    "ready when you are",
    "let me know if you'd like",
    "Feel free to ask",
    "Is there anything else",
    "What else can I help",
    "Want me to",
    "Shall I",
    "Do you want me to",
    "Ready to proceed",
)

ATTENTION_RE = re.compile("|".join(re.escape(p) for p in ATTENTION_PATTERNS))

# POSIX ERE metacharacters (tmux compiles #{C/r:...} with regcomp).
_ERE_SPECIAL = set("\\.[]()*+?{}|^$")
# tmux format syntax inside #{...}.
_FORMAT_SPECIAL = {"#": "##", ",": "#,", "}": "#}"}


def _ere_escape(text: str) -> str:
    return "".join(f"\\{c}" if c in _ERE_SPECIAL else c for c in text)


def tmux_search_pattern(patterns: tuple[str, ...] = ATTENTION_PATTERNS) -> str:
    """Render the phrase alternation for a tmux ``#{C/r:...}`` format."""
    regex = "|".join(_ere_escape(p) for p in patterns)
    return "".join(_FORMAT_SPECIAL.get(c, c) for c in regex)


def has_attention_phrase(content: str) -> bool:
    return ATTENTION_RE.search(content) is not None


def ends_with_question(content: str, depth: int = 1) -> bool:
    """True if one of the last ``depth`` non-empty lines ends with ``?``."""
    checked = 0
    for line in reversed(content.splitlines()):
        stripped = line.strip()
        if not stripped:
            continue
        if stripped.endswith("?"):
            return True
        checked += 1
        if checked >= depth:
            break
    return False


def needs_attention(content: str, question_depth: int = 1) -> bool:
    """Detect whether captured pane content looks like a prompt for input."""
    if not content.strip():
        return False
    return has_attention_phrase(content) or ends_with_question(content, question_depth)
