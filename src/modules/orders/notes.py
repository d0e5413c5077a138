"""Free-text note helpers for support and yard notes."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from modules.orders.state_machine import actor_name, history_timestamp


def format_note(author: Optional[str], message: str, now: Optional[datetime] = None) -> str:
    """``"Maria, 19 Oct, 2026 14:05 : Called the yard"``."""
    return f"{actor_name(author)}, {history_timestamp(now)} : {message}"


def push_unique_note(notes: List[str], note: str) -> bool:
    """Append *note* unless it is blank or repeats the last note verbatim."""
    trimmed = (note or "").strip()
    if not trimmed:
        return False
    if notes and notes[-1].strip() == trimmed:
        return False
    notes.append(trimmed)
    return True


def change_summary(changes: List[tuple[str, object, object]]) -> str:
    """Multi-line summary of field changes used in yard notes."""
    lines = ["Updated"]
    for label, old, new in changes:
        lines.append(f"  • {label}: {_display(old)} → {_display(new)}")
    return "\n".join(lines)


def _display(value: object) -> str:
    if value is None or str(value).strip() == "":
        return "—"
    return str(value).strip()
