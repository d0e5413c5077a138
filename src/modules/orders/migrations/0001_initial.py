from decimal import Decimal

import django.db.models.deletion
import uuid6
from django.db import migrations, models


def money(**kwargs):
    kwargs.setdefault("default", Decimal("0.00"))
    return models.DecimalField(decimal_places=2, max_digits=10, **kwargs)


def base_fields():
    return [
        (
            "id",
            models.UUIDField(
                default=uuid6.uuid7, editable=False, primary_key=True, serialize=False
            ),
        ),
        ("created_at", models.DateTimeField(auto_now_add=True)),
        ("updated_at", models.DateTimeField(auto_now=True)),
    ]


ORDER_STATUS_CHOICES = [
    ("Placed", "Placed"),
    ("Customer Approved", "Customer Approved"),
    ("Yard Processing", "Yard Processing"),
    ("In Transit", "In Transit"),
    ("Order Fulfilled", "Order Fulfilled"),
    ("Order Cancelled", "Order Cancelled"),
    ("Dispute", "Dispute"),
    ("Refunded", "Refunded"),
    ("Voided", "Voided"),
]

ESCALATION_CHOICES = [
    ("None", "None"),
    ("Ongoing", "Ongoing"),
    ("OverallResolved", "Overall Resolved"),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Order",
            fields=base_fields()
            + [
                ("order_number", models.CharField(max_length=40, unique=True)),
                ("order_date", models.DateTimeField()),
                ("customer_name", models.CharField(blank=True, default="", max_length=200)),
                ("email", models.CharField(blank=True, default="", max_length=254)),
                ("phone", models.CharField(blank=True, default="", max_length=40)),
                ("sales_agent", models.CharField(blank=True, default="", max_length=100)),
                ("part_requested", models.CharField(blank=True, default="", max_length=200)),
                ("part_number", models.CharField(blank=True, default="", max_length=100)),
                ("vehicle_make", models.CharField(blank=True, default="", max_length=100)),
                ("vehicle_model", models.CharField(blank=True, default="", max_length=100)),
                ("year", models.PositiveIntegerField(blank=True, null=True)),
                ("quoted_price", money()),
                ("sales_tax", money()),
                ("yard_cost_estimate", money()),
                ("shipping_estimate", money()),
                ("estimated_gp", money()),
                ("current_gp", money()),
                ("cust_refunded_amount", money(blank=True, null=True)),
                ("refund_date", models.DateTimeField(blank=True, null=True)),
                ("cancelled_date", models.DateTimeField(blank=True, null=True)),
                ("cancellation_reason", models.TextField(blank=True, default="")),
                ("disputed_date", models.DateTimeField(blank=True, null=True)),
                ("dispute_reason", models.TextField(blank=True, default="")),
                (
                    "status",
                    models.CharField(
                        choices=ORDER_STATUS_CHOICES, default="Placed", max_length=20
                    ),
                ),
                (
                    "escalation_bucket",
                    models.CharField(
                        choices=ESCALATION_CHOICES, default="None", max_length=20
                    ),
                ),
                ("support_notes", models.JSONField(blank=True, default=list)),
                ("version", models.PositiveIntegerField(default=1)),
            ],
            options={
                "db_table": "orders",
                "ordering": ["-order_date"],
                "indexes": [
                    models.Index(fields=["status"], name="orders_status_idx"),
                    models.Index(fields=["escalation_bucket"], name="orders_escalation_idx"),
                    models.Index(fields=["-order_date"], name="orders_order_date_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="YardEntry",
            fields=base_fields()
            + [
                ("index", models.PositiveIntegerField()),
                ("yard_name", models.CharField(blank=True, default="", max_length=200)),
                ("part_price", money()),
                (
                    "shipping_type",
                    models.CharField(
                        blank=True,
                        choices=[("OWN", "Own shipping"), ("YARD", "Yard shipping")],
                        default="",
                        max_length=10,
                    ),
                ),
                ("shipping_cost", money()),
                ("others", money()),
                ("cust_own_shipping_return", money()),
                ("cust_own_ship_replacement", money()),
                ("yard_own_shipping", money()),
                ("refunded_amount", money()),
                ("status", models.CharField(blank=True, default="", max_length=40)),
                ("payment_status", models.CharField(blank=True, default="", max_length=40)),
                ("card_charged_date", models.DateTimeField(blank=True, null=True)),
                ("refund_status", models.CharField(blank=True, default="", max_length=40)),
                ("escalation", models.BooleanField(default=False)),
                ("escalation_cause", models.TextField(blank=True, default="")),
                ("tracking_no", models.CharField(blank=True, default="", max_length=100)),
                ("eta", models.CharField(blank=True, default="", max_length=40)),
                ("shipper_name", models.CharField(blank=True, default="", max_length=100)),
                ("tracking_link", models.CharField(blank=True, default="", max_length=500)),
                ("notes", models.JSONField(blank=True, default=list)),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="yard_entries",
                        to="orders.order",
                    ),
                ),
            ],
            options={
                "db_table": "order_yard_entries",
                "ordering": ["index"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("order", "index"), name="yard_entries_order_index_uniq"
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="OrderHistoryEntry",
            fields=base_fields()
            + [
                ("sequence", models.PositiveIntegerField()),
                ("text", models.TextField()),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="history_entries",
                        to="orders.order",
                    ),
                ),
            ],
            options={
                "db_table": "order_history",
                "ordering": ["sequence"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("order", "sequence"), name="order_history_order_seq_uniq"
                    ),
                ],
            },
        ),
    ]
