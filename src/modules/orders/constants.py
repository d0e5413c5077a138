"""Order domain constants.

Defines the order status choices, the status transition table used by the
order state machine, yard-level vocabulary and escalation buckets.
"""

from django.db import models


class OrderStatus(models.TextChoices):
    PLACED = "Placed", "Placed"
    CUSTOMER_APPROVED = "Customer Approved", "Customer Approved"
    YARD_PROCESSING = "Yard Processing", "Yard Processing"
    IN_TRANSIT = "In Transit", "In Transit"
    FULFILLED = "Order Fulfilled", "Order Fulfilled"
    CANCELLED = "Order Cancelled", "Order Cancelled"
    DISPUTE = "Dispute", "Dispute"
    REFUNDED = "Refunded", "Refunded"
    VOIDED = "Voided", "Voided"


ACTIVE_STATES: set[str] = {
    OrderStatus.PLACED,
    OrderStatus.CUSTOMER_APPROVED,
    OrderStatus.YARD_PROCESSING,
    OrderStatus.IN_TRANSIT,
}

VALID_TRANSITIONS: dict[str, set[str]] = {
    OrderStatus.PLACED: {
        OrderStatus.CUSTOMER_APPROVED,
        OrderStatus.CANCELLED,
        OrderStatus.VOIDED,
    },
    OrderStatus.CUSTOMER_APPROVED: {
        OrderStatus.YARD_PROCESSING,
        OrderStatus.CANCELLED,
        OrderStatus.VOIDED,
    },
    OrderStatus.YARD_PROCESSING: {
        OrderStatus.IN_TRANSIT,
        OrderStatus.CANCELLED,
        OrderStatus.REFUNDED,
        OrderStatus.VOIDED,
    },
    OrderStatus.IN_TRANSIT: {
        OrderStatus.YARD_PROCESSING,
        OrderStatus.FULFILLED,
        OrderStatus.CANCELLED,
        OrderStatus.DISPUTE,
        OrderStatus.REFUNDED,
        OrderStatus.VOIDED,
    },
    OrderStatus.DISPUTE: {
        OrderStatus.REFUNDED,
        OrderStatus.CUSTOMER_APPROVED,
        OrderStatus.YARD_PROCESSING,
        OrderStatus.IN_TRANSIT,
    },
    OrderStatus.FULFILLED: set(),
    OrderStatus.CANCELLED: set(),
    OrderStatus.REFUNDED: set(),
    OrderStatus.VOIDED: set(),
}

TERMINAL_STATES: set[str] = {
    OrderStatus.FULFILLED,
    OrderStatus.CANCELLED,
    OrderStatus.REFUNDED,
    OrderStatus.VOIDED,
}

REFUND_TARGETS: set[str] = {OrderStatus.CANCELLED, OrderStatus.REFUNDED}


class EscalationBucket(models.TextChoices):
    NONE = "None", "None"
    ONGOING = "Ongoing", "Ongoing"
    OVERALL_RESOLVED = "OverallResolved", "Overall Resolved"


# An escalated order whose status is one of these has left the ongoing queue.
ESCALATION_RESOLVED_STATES: set[str] = {
    OrderStatus.FULFILLED,
    OrderStatus.DISPUTE,
    OrderStatus.REFUNDED,
    OrderStatus.CANCELLED,
}


class YardStatus(models.TextChoices):
    YARD_LOCATED = "Yard located", "Yard located"
    PO_SENT = "Yard PO Sent", "Yard PO Sent"
    LABEL_CREATED = "Label created", "Label created"
    PO_CANCELLED = "PO cancelled", "PO cancelled"
    PART_SHIPPED = "Part shipped", "Part shipped"
    PART_DELIVERED = "Part delivered", "Part delivered"
    ESCALATION = "Escalation", "Escalation"


class PaymentStatus(models.TextChoices):
    NOT_CHARGED = "Not charged", "Not charged"
    CARD_CHARGED = "Card charged", "Card charged"


# Yard status -> order status the order should move to.
YARD_STATUS_ORDER_MAP: dict[str, str] = {
    YardStatus.YARD_LOCATED: OrderStatus.YARD_PROCESSING,
    YardStatus.PO_SENT: OrderStatus.YARD_PROCESSING,
    YardStatus.LABEL_CREATED: OrderStatus.YARD_PROCESSING,
    YardStatus.PO_CANCELLED: OrderStatus.YARD_PROCESSING,
    YardStatus.PART_SHIPPED: OrderStatus.IN_TRANSIT,
    YardStatus.PART_DELIVERED: OrderStatus.FULFILLED,
}

CANCELLED_YARD_STATUSES: set[str] = {"po cancelled", "po canceled"}
CHARGED_PAYMENT_STATUSES: set[str] = {"card charged"}
