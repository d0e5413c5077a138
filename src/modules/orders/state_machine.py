"""Order status state machine and audit-entry formatting.

The transition table lives in :mod:`modules.orders.constants`.  This module
validates a requested move against it and renders the history line that
every accepted move must append::

    Order status updated to In Transit by Maria on 19 Oct, 2026 14:05

Moving to the status the order already holds is accepted: it changes
nothing but still produces a history line (an administrative touch).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional
from zoneinfo import ZoneInfo

from django.conf import settings
from django.utils import timezone

from modules.orders.constants import VALID_TRANSITIONS, OrderStatus
from modules.orders.exceptions import InvalidTransition

DEFAULT_ACTOR = "System"


@dataclass(frozen=True)
class Transition:
    old_status: str
    new_status: str
    history_entry: str

    @property
    def changed(self) -> bool:
        return self.old_status != self.new_status


def can_transition(current: str, target: str) -> bool:
    if current == target:
        return True
    return target in VALID_TRANSITIONS.get(current, set())


def ensure_transition(current: str, target: str) -> None:
    """Raise :class:`InvalidTransition` unless *target* is reachable."""
    if target not in OrderStatus.values or not can_transition(current, target):
        raise InvalidTransition(current, target)


def plan_transition(
    current: str, target: str, actor: Optional[str], now: Optional[datetime] = None
) -> Transition:
    """Validate ``current -> target`` and build the history line for it."""
    ensure_transition(current, target)
    return Transition(
        old_status=current,
        new_status=target,
        history_entry=history_entry("Order status", target, actor, now),
    )


def history_timestamp(now: Optional[datetime] = None) -> str:
    """``19 Oct, 2026 14:05`` in the operations team's time zone."""
    moment = (now or timezone.now()).astimezone(ZoneInfo(settings.HISTORY_TIME_ZONE))
    return f"{moment.day} {moment:%b, %Y %H:%M}"


def history_entry(
    field: str, value: object, actor: Optional[str], now: Optional[datetime] = None
) -> str:
    return f"{field} updated to {value} by {actor_name(actor)} on {history_timestamp(now)}"


def actor_name(actor: Optional[str]) -> str:
    name = (actor or "").strip()
    return name or DEFAULT_ACTOR
