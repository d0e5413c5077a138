"""Escalation classification.

Routes an order into the "Ongoing Escalations" or "Overall Escalations"
queue from its status and the escalation flags of its yard legs.  The
first (primary) yard drives the headline flag shown on listings; the full
per-yard flag set is kept for reporting.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Sequence, Tuple

from modules.orders.constants import ESCALATION_RESOLVED_STATES, EscalationBucket
from modules.orders.gp import YardLedgerEntry


@dataclass(frozen=True)
class EscalationReport:
    bucket: EscalationBucket
    primary_flag: bool
    yard_flags: Tuple[bool, ...]

    @property
    def escalated_yards(self) -> Tuple[int, ...]:
        """1-based indexes of the yard legs under escalation."""
        return tuple(i for i, flag in enumerate(self.yard_flags, start=1) if flag)


def escalation_flags(entries: Iterable[YardLedgerEntry]) -> Tuple[bool, ...]:
    return tuple(bool(entry.escalation) for entry in entries)


def classify(status: str, flags: Sequence[bool]) -> EscalationBucket:
    if not any(flags):
        return EscalationBucket.NONE
    if status in ESCALATION_RESOLVED_STATES:
        return EscalationBucket.OVERALL_RESOLVED
    return EscalationBucket.ONGOING


def build_report(status: str, entries: Iterable[YardLedgerEntry]) -> EscalationReport:
    flags = escalation_flags(entries)
    return EscalationReport(
        bucket=classify(status, flags),
        primary_flag=bool(flags and flags[0]),
        yard_flags=flags,
    )
