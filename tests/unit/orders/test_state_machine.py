"""Unit tests for the order status state machine."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest
from freezegun import freeze_time

from modules.orders.constants import VALID_TRANSITIONS, OrderStatus
from modules.orders.exceptions import InvalidTransition
from modules.orders.state_machine import (
    can_transition,
    ensure_transition,
    history_entry,
    history_timestamp,
    plan_transition,
)

pytestmark = pytest.mark.unit

# 2026-10-19 19:05 UTC is 14:05 in America/Chicago (CDT).
MOMENT = datetime(2026, 10, 19, 19, 5, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Transition table
# ---------------------------------------------------------------------------


class TestTransitionTable:
    @pytest.mark.parametrize(
        "path",
        [
            ["Placed", "Customer Approved", "Yard Processing", "In Transit", "Order Fulfilled"],
            ["Placed", "Customer Approved", "Yard Processing", "In Transit", "Dispute", "Refunded"],
            ["Placed", "Customer Approved", "Yard Processing", "In Transit", "Yard Processing"],
            ["Placed", "Order Cancelled"],
            ["Placed", "Customer Approved", "Voided"],
            ["In Transit", "Dispute", "Customer Approved", "Yard Processing", "Refunded"],
        ],
    )
    def test_valid_paths(self, path):
        for current, target in zip(path, path[1:]):
            ensure_transition(current, target)

    @pytest.mark.parametrize(
        "current, target",
        [
            ("Order Fulfilled", "Placed"),
            ("Placed", "In Transit"),
            ("Placed", "Order Fulfilled"),
            ("Customer Approved", "Refunded"),
            ("Refunded", "Yard Processing"),
            ("Voided", "Customer Approved"),
            ("Order Cancelled", "Refunded"),
            ("Dispute", "Order Fulfilled"),
        ],
    )
    def test_invalid_moves_raise(self, current, target):
        with pytest.raises(InvalidTransition) as exc_info:
            ensure_transition(current, target)
        assert exc_info.value.current == current
        assert exc_info.value.target == target

    def test_unknown_target_is_rejected(self):
        with pytest.raises(InvalidTransition):
            ensure_transition("Placed", "Shipped")

    @pytest.mark.parametrize("status", OrderStatus.values)
    def test_same_status_is_always_allowed(self, status):
        assert can_transition(status, status) is True

    @pytest.mark.parametrize(
        "status",
        [OrderStatus.FULFILLED, OrderStatus.CANCELLED, OrderStatus.REFUNDED, OrderStatus.VOIDED],
    )
    def test_final_states_have_no_exit(self, status):
        assert VALID_TRANSITIONS[status] == set()

    def test_every_status_has_a_row(self):
        assert set(VALID_TRANSITIONS) == set(OrderStatus.values)


# ---------------------------------------------------------------------------
# History formatting
# ---------------------------------------------------------------------------


class TestHistoryFormat:
    def test_timestamp_in_operations_time_zone(self):
        assert history_timestamp(MOMENT) == "19 Oct, 2026 14:05"

    def test_single_digit_day_is_not_padded(self):
        moment = datetime(2026, 3, 5, 15, 0, tzinfo=timezone.utc)
        assert history_timestamp(moment) == "5 Mar, 2026 09:00"

    def test_entry_format(self):
        assert (
            history_entry("Order status", "In Transit", "Maria", MOMENT)
            == "Order status updated to In Transit by Maria on 19 Oct, 2026 14:05"
        )

    @pytest.mark.parametrize("actor", [None, "", "   "])
    def test_blank_actor_is_system(self, actor):
        assert " by System on " in history_entry("Order status", "Placed", actor, MOMENT)

    @freeze_time("2026-10-19 19:05:00")
    def test_defaults_to_now(self):
        assert history_timestamp() == "19 Oct, 2026 14:05"


class TestPlanTransition:
    def test_changed_move(self):
        plan = plan_transition("Placed", "Customer Approved", "Mark", MOMENT)
        assert plan.changed is True
        assert plan.history_entry == (
            "Order status updated to Customer Approved by Mark on 19 Oct, 2026 14:05"
        )

    def test_same_status_is_a_history_only_touch(self):
        plan = plan_transition("In Transit", "In Transit", "Mark", MOMENT)
        assert plan.changed is False
        assert plan.history_entry.startswith("Order status updated to In Transit by Mark")

    def test_rejected_move_builds_nothing(self):
        with pytest.raises(InvalidTransition):
            plan_transition("Order Fulfilled", "Placed", "Mark", MOMENT)
