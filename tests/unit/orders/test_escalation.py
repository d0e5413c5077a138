"""Unit tests for the escalation classifier."""

from __future__ import annotations

import pytest

from modules.orders.constants import EscalationBucket, OrderStatus
from modules.orders.escalation import build_report, classify
from modules.orders.gp import YardLedgerEntry

pytestmark = pytest.mark.unit


class TestClassify:
    def test_no_flags_is_none(self):
        assert classify(OrderStatus.IN_TRANSIT, [False, False]) == EscalationBucket.NONE

    def test_no_yards_is_none(self):
        assert classify(OrderStatus.FULFILLED, []) == EscalationBucket.NONE

    @pytest.mark.parametrize(
        "status",
        [
            OrderStatus.PLACED,
            OrderStatus.CUSTOMER_APPROVED,
            OrderStatus.YARD_PROCESSING,
            OrderStatus.IN_TRANSIT,
            OrderStatus.VOIDED,
        ],
    )
    def test_flag_on_open_order_is_ongoing(self, status):
        assert classify(status, [True]) == EscalationBucket.ONGOING

    @pytest.mark.parametrize(
        "status",
        [
            OrderStatus.FULFILLED,
            OrderStatus.DISPUTE,
            OrderStatus.REFUNDED,
            OrderStatus.CANCELLED,
        ],
    )
    def test_flag_on_resolved_order_is_overall_resolved(self, status):
        assert classify(status, [True]) == EscalationBucket.OVERALL_RESOLVED


class TestBuildReport:
    def test_exposes_per_yard_flags(self):
        report = build_report(
            OrderStatus.IN_TRANSIT,
            [
                YardLedgerEntry.from_values(escalation=False),
                YardLedgerEntry.from_values(escalation=True),
            ],
        )
        assert report.bucket == EscalationBucket.ONGOING
        assert report.primary_flag is False
        assert report.yard_flags == (False, True)
        assert report.escalated_yards == (2,)

    def test_primary_flag_follows_first_yard(self):
        report = build_report(
            OrderStatus.FULFILLED, [YardLedgerEntry.from_values(escalation=True)]
        )
        assert report.primary_flag is True
        assert report.bucket == EscalationBucket.OVERALL_RESOLVED

    def test_flag_on_a_later_yard_routes_the_order(self):
        report = build_report(
            OrderStatus.FULFILLED,
            [
                YardLedgerEntry.from_values(escalation=False),
                YardLedgerEntry.from_values(escalation=True),
            ],
        )
        assert report.primary_flag is False
        assert report.bucket == EscalationBucket.OVERALL_RESOLVED

    def test_empty_ledger(self):
        report = build_report(OrderStatus.PLACED, [])
        assert report.bucket == EscalationBucket.NONE
        assert report.primary_flag is False
        assert report.escalated_yards == ()
