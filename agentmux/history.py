"""Last-active timestamps per project from the agent prompt history."""

from __future__ import annotations

from datetime import datetime, timezone
import json
import logging
from pathlib import Path
from typing import Optional

from .config import HISTORY_FILE

logger = logging.getLogger(__name__)


def _parse_timestamp(raw: object) -> datetime | None:
    """Accept epoch milliseconds/seconds or an ISO-8601 string."""
    if isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        seconds = raw / 1000 if raw > 1e11 else raw
        try:
            return datetime.fromtimestamp(seconds, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(raw, str):
        text = raw.strip()
        if not text:
            return None
        normalized = text[:-1] + "+00:00" if text.endswith("Z") else text
        try:
            dt = datetime.fromisoformat(normalized)
        except ValueError:
            return None
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt
    return None


def last_active_by_project(path: Optional[Path] = None) -> dict[str, datetime]:
    """Map project path → newest history timestamp.

    Missing or malformed files and lines are skipped.
    """
    history = path or HISTORY_FILE
    out: dict[str, datetime] = {}
    try:
        with open(history, encoding="utf-8") as f:
            for line in f:
                raw = line.strip()
                if not raw:
                    continue
                try:
                    entry = json.loads(raw)
                except json.JSONDecodeError:
                    continue
                if not isinstance(entry, dict):
                    continue
                project = entry.get("project")
                if not isinstance(project, str) or not project:
                    continue
                ts = _parse_timestamp(entry.get("timestamp"))
                if ts is None:
                    continue
                prev = out.get(project)
                if prev is None or ts > prev:
                    out[project] = ts
    except FileNotFoundError:
        return {}
    except (OSError, UnicodeDecodeError) as exc:
        logger.debug("history read failed for %s: %s", history, exc)
        return {}
    return out
