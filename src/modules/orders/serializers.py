"""Order DRF serializers for API input/output.

The serializer operates at the Interface layer (API Views).
Business logic lives in the Service Layer, which receives
Pydantic DTOs from ``dtos.py``.  Yard cost fields stay loose on input
(``CharField``): unparsable amounts degrade to zero in the ledger.
"""

from __future__ import annotations

from rest_framework import serializers

from modules.orders.constants import OrderStatus
from modules.orders.models import Order, YardEntry

# ---------------------------------------------------------------------------
# Input Serializers
# ---------------------------------------------------------------------------


class CreateOrderSerializer(serializers.Serializer):
    """Validates the order creation request payload."""

    order_number = serializers.CharField(max_length=40)
    quoted_price = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0)
    yard_cost_estimate = serializers.DecimalField(
        max_digits=10, decimal_places=2, min_value=0, required=False, default=0
    )
    shipping_estimate = serializers.DecimalField(
        max_digits=10, decimal_places=2, min_value=0, required=False, default=0
    )
    order_date = serializers.DateTimeField(required=False)
    customer_name = serializers.CharField(required=False, allow_blank=True, default="")
    email = serializers.EmailField(required=False, allow_blank=True, default="")
    phone = serializers.CharField(required=False, allow_blank=True, default="")
    sales_agent = serializers.CharField(required=False, allow_blank=True, default="")
    part_requested = serializers.CharField(required=False, allow_blank=True, default="")
    part_number = serializers.CharField(required=False, allow_blank=True, default="")
    vehicle_make = serializers.CharField(required=False, allow_blank=True, default="")
    vehicle_model = serializers.CharField(required=False, allow_blank=True, default="")
    year = serializers.IntegerField(required=False, min_value=1900, max_value=2100)


class VersionedSerializer(serializers.Serializer):
    expected_version = serializers.IntegerField(required=False, min_value=1)


class StatusUpdateSerializer(VersionedSerializer):
    status = serializers.ChoiceField(choices=OrderStatus.choices)


class SettlementSerializer(VersionedSerializer):
    """Cancel / refund payload.  Amount and reason are checked by the service."""

    amount = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    reason = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    refund_date = serializers.DateTimeField(required=False, allow_null=True)


class DisputeSerializer(VersionedSerializer):
    reason = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class YardInputSerializer(VersionedSerializer):
    """Fields accepted when adding or updating a yard entry."""

    yard_name = serializers.CharField(required=False, allow_blank=True)
    part_price = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    own_shipping = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    yard_shipping = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    shipping_details = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    others = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    cust_own_shipping_return = serializers.CharField(
        required=False, allow_blank=True, allow_null=True
    )
    cust_own_ship_replacement = serializers.CharField(
        required=False, allow_blank=True, allow_null=True
    )
    yard_own_shipping = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    refunded_amount = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    status = serializers.CharField(required=False, allow_blank=True)
    payment_status = serializers.CharField(required=False, allow_blank=True)
    card_charged_date = serializers.DateTimeField(required=False, allow_null=True)
    refund_status = serializers.CharField(required=False, allow_blank=True)
    escalation = serializers.BooleanField(required=False)
    escalation_cause = serializers.CharField(required=False, allow_blank=True)
    tracking_no = serializers.CharField(required=False, allow_blank=True)
    eta = serializers.CharField(required=False, allow_blank=True)
    shipper_name = serializers.CharField(required=False, allow_blank=True)
    tracking_link = serializers.CharField(required=False, allow_blank=True)
    order_status = serializers.ChoiceField(choices=OrderStatus.choices, required=False)


class NoteSerializer(serializers.Serializer):
    note = serializers.CharField(allow_blank=True)


# ---------------------------------------------------------------------------
# Output Serializers (Read)
# ---------------------------------------------------------------------------


class YardEntrySerializer(serializers.ModelSerializer):
    """Read serializer for yard entries, with the rendered shipping string."""

    shipping_details = serializers.CharField(read_only=True)

    class Meta:
        model = YardEntry
        fields = [
            "index",
            "yard_name",
            "part_price",
            "shipping_type",
            "shipping_cost",
            "shipping_details",
            "others",
            "cust_own_shipping_return",
            "cust_own_ship_replacement",
            "yard_own_shipping",
            "refunded_amount",
            "status",
            "payment_status",
            "card_charged_date",
            "refund_status",
            "escalation",
            "escalation_cause",
            "tracking_no",
            "eta",
            "shipper_name",
            "tracking_link",
            "notes",
        ]
        read_only_fields = fields


class OrderSerializer(serializers.ModelSerializer):
    """Read serializer for orders with nested yard entries and history."""

    yard_entries = YardEntrySerializer(many=True, read_only=True)
    history = serializers.SerializerMethodField()

    class Meta:
        model = Order
        fields = [
            "order_number",
            "order_date",
            "customer_name",
            "email",
            "phone",
            "sales_agent",
            "part_requested",
            "part_number",
            "vehicle_make",
            "vehicle_model",
            "year",
            "quoted_price",
            "sales_tax",
            "yard_cost_estimate",
            "shipping_estimate",
            "estimated_gp",
            "current_gp",
            "cust_refunded_amount",
            "refund_date",
            "cancelled_date",
            "cancellation_reason",
            "disputed_date",
            "dispute_reason",
            "status",
            "escalation_bucket",
            "support_notes",
            "is_terminal",
            "version",
            "created_at",
            "updated_at",
            "yard_entries",
            "history",
        ]
        read_only_fields = fields

    def get_history(self, obj: Order) -> list[str]:
        return obj.history


class OrderListSerializer(serializers.ModelSerializer):
    """Lightweight serializer for order list (no nested relations)."""

    class Meta:
        model = Order
        fields = [
            "order_number",
            "order_date",
            "customer_name",
            "sales_agent",
            "part_requested",
            "quoted_price",
            "estimated_gp",
            "current_gp",
            "status",
            "escalation_bucket",
            "version",
        ]
        read_only_fields = fields


class EscalationReportSerializer(serializers.Serializer):
    bucket = serializers.CharField()
    primary_flag = serializers.BooleanField()
    yard_flags = serializers.ListField(child=serializers.BooleanField())
    escalated_yards = serializers.ListField(child=serializers.IntegerField())
