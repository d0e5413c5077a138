"""Order service layer (Use Cases).

Orchestrates every mutation of an order: status transitions, refunds and
cancellations, the yard ledger, notes, and the derived Current GP and
escalation bucket.  All write operations are atomic; the service defines
the unit-of-work boundary.

Every mutation follows the same path:

1. Lock the order row (``SELECT FOR UPDATE``) and check ``expected_version``.
2. Validate the request before touching any field.
3. Apply the change, recompute Current GP and the escalation bucket.
4. Commit with a version bump, append the history lines in order.
5. After the transaction commits, publish one change message on the
   order's topic.  Publishing never fails the mutation.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from functools import partial
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple

import structlog
from django.db import transaction
from django.utils import timezone
from structlog.contextvars import get_contextvars

from modules.orders.constants import (
    YARD_STATUS_ORDER_MAP,
    EscalationBucket,
    OrderStatus,
    YardStatus,
)
from modules.orders.escalation import EscalationReport, build_report
from modules.orders.events import (
    GrossProfitRecalculated,
    OrderCancelled,
    OrderCreated,
    OrderRefunded,
    OrderStatusChanged,
    YardLedgerChanged,
)
from modules.orders.exceptions import (
    ConcurrencyConflict,
    InvalidTransition,
    OrderAlreadyExists,
    OrderNotFound,
    ValidationError,
    YardEntryNotFound,
)
from modules.orders.gp import OrderFinancials, YardLedgerEntry, current_gp, estimated_gp
from modules.orders.ledger import normalize_yard_costs
from modules.orders.money import (
    MAX_AMOUNT,
    ZERO,
    parse_money,
    sales_tax,
    to_money,
    within_limit,
)
from modules.orders.notes import change_summary, format_note, push_unique_note
from modules.orders.state_machine import (
    actor_name,
    can_transition,
    ensure_transition,
    history_entry,
    history_timestamp,
    plan_transition,
)
from shared.infrastructure.notifier import change_notifier

if TYPE_CHECKING:
    from django.db.models import QuerySet

    from modules.orders.dtos import AddYardDTO, CreateOrderDTO, UpdateYardDTO
    from modules.orders.models import Order, YardEntry
    from modules.orders.repositories.interfaces import IOrderRepository
    from shared.domain.notifier import IChangeNotifier

logger = structlog.get_logger(__name__)

YARD_TEXT_FIELDS = (
    "yard_name",
    "status",
    "payment_status",
    "refund_status",
    "escalation_cause",
    "tracking_no",
    "eta",
    "shipper_name",
    "tracking_link",
)

# Fields summarised in the yard note when they change.
YARD_FIELD_LABELS = {
    "yard_name": "Yard Name",
    "part_price": "Part Price",
    "others": "Others",
    "cust_own_shipping_return": "Customer Shipping (Return)",
    "cust_own_ship_replacement": "Customer Shipping (Replacement)",
    "yard_own_shipping": "Yard Own Shipping",
    "refunded_amount": "Yard Refund",
    "payment_status": "Payment Status",
    "card_charged_date": "Card Charged Date",
    "refund_status": "Refund Status",
    "escalation_cause": "Escalation Cause",
    "tracking_no": "Tracking No",
    "eta": "ETA",
    "shipper_name": "Shipper",
    "tracking_link": "Tracking Link",
}

SHIPMENT_FIELDS = ("tracking_no", "eta", "shipper_name", "tracking_link")


class OrderService:
    """Application service for Order use-cases.

    Receives its repository and change notifier via constructor
    injection (DIP).  ``actor`` arguments are display names written into
    history lines and notes; a blank actor is recorded as ``System``.
    """

    def __init__(
        self,
        order_repository: IOrderRepository,
        notifier: Optional[IChangeNotifier] = None,
    ) -> None:
        self._order_repo = order_repository
        self._notifier = notifier or change_notifier

    # ------------------------------------------------------------------
    # Commands: order lifecycle
    # ------------------------------------------------------------------

    @transaction.atomic
    def create_order(self, dto: CreateOrderDTO, actor: Optional[str] = None) -> Order:
        """Create an order in ``Placed`` with Estimated GP fixed.

        Raises:
            OrderAlreadyExists: the order number is taken.
        """
        log = logger.bind(order_number=dto.order_number)
        log.info("order.creation_started")

        if self._order_repo.get_by_number(dto.order_number):
            raise OrderAlreadyExists(f"Order {dto.order_number} already exists.")

        now = timezone.now()
        tax = sales_tax(dto.quoted_price)
        data = dto.model_dump(exclude={"yard_cost_estimate", "shipping_estimate"})
        data.update(
            order_date=dto.order_date or now,
            quoted_price=to_money(dto.quoted_price),
            yard_cost_estimate=to_money(dto.yard_cost_estimate),
            shipping_estimate=to_money(dto.shipping_estimate),
            sales_tax=tax,
            estimated_gp=estimated_gp(
                dto.quoted_price, dto.yard_cost_estimate, dto.shipping_estimate, tax
            ),
            status=OrderStatus.PLACED,
            escalation_bucket=EscalationBucket.NONE,
        )
        order = self._order_repo.create(data)
        order.current_gp = current_gp(OrderFinancials.from_order(order, yards=[]))

        order.add_domain_event(
            OrderCreated(aggregate_id=order.id, order_number=order.order_number)
        )
        self._order_repo.save(order)
        self._order_repo.add_history(
            order,
            f"Order placed by {actor_name(actor)} on {history_timestamp(now)}",
        )

        log.info(
            "order.created",
            estimated_gp=str(order.estimated_gp),
            current_gp=str(order.current_gp),
        )
        self._notify(
            order,
            {
                "type": "ORDER_CREATED",
                "status": order.status,
                "estimatedGP": order.estimated_gp,
                "actualGP": order.current_gp,
            },
        )
        return self._reload(order)

    @transaction.atomic
    def transition(
        self,
        order_number: str,
        target_status: str,
        actor: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> Order:
        """Move an order to *target_status*.

        Moving to the current status is an administrative touch: nothing
        changes but a history line is still written.

        Raises:
            OrderNotFound: order does not exist.
            ConcurrencyConflict: ``expected_version`` is stale.
            InvalidTransition: *target_status* is not reachable.
        """
        order = self._load(order_number, expected_version)
        log = logger.bind(
            order_number=order_number,
            current_status=order.status,
            new_status=target_status,
        )
        now = timezone.now()
        history: List[str] = []
        try:
            changed = self._apply_transition(order, target_status, actor, now, history)
        except InvalidTransition:
            log.warning("order.invalid_transition")
            raise

        self._commit(
            order,
            actor,
            now,
            history,
            {
                "type": "STATUS_CHANGED" if changed else "ORDER_UPDATED",
                "status": order.status,
            },
        )
        log.info("order.status_updated", changed=changed)
        return self._reload(order)

    def cancel_order(
        self,
        order_number: str,
        amount: Any,
        reason: Optional[str],
        actor: Optional[str] = None,
        refund_date: Optional[datetime] = None,
        expected_version: Optional[int] = None,
    ) -> Order:
        """Cancel an order, recording the customer refund and the reason."""
        return self._settle(
            order_number,
            OrderStatus.CANCELLED,
            amount,
            reason,
            actor,
            refund_date,
            expected_version,
        )

    def refund_order(
        self,
        order_number: str,
        amount: Any,
        reason: Optional[str],
        actor: Optional[str] = None,
        refund_date: Optional[datetime] = None,
        expected_version: Optional[int] = None,
    ) -> Order:
        """Refund an order, recording the customer refund and the reason."""
        return self._settle(
            order_number,
            OrderStatus.REFUNDED,
            amount,
            reason,
            actor,
            refund_date,
            expected_version,
        )

    @transaction.atomic
    def _settle(
        self,
        order_number: str,
        target_status: str,
        amount: Any,
        reason: Optional[str],
        actor: Optional[str],
        refund_date: Optional[datetime],
        expected_version: Optional[int],
    ) -> Order:
        """Shared path of cancel and refund.

        Both amount and reason are mandatory; nothing is written when
        either is missing.

        Raises:
            ValidationError: amount missing, malformed or negative, or no reason.
            InvalidTransition: the order cannot reach *target_status*.
        """
        errors: Dict[str, str] = {}
        refund_amount = parse_money(amount)
        if refund_amount is None or refund_amount < ZERO:
            errors["amount"] = "A non-negative refund amount is required."
        elif not within_limit(refund_amount):
            errors["amount"] = f"Amount cannot exceed {MAX_AMOUNT}."
        reason = (reason or "").strip()
        if not reason:
            errors["reason"] = "A reason is required."
        if errors:
            logger.warning(
                "order.settlement_rejected",
                order_number=order_number,
                target_status=target_status,
                fields=sorted(errors),
            )
            raise ValidationError(
                f"Cannot move order {order_number} to {target_status}.", fields=errors
            )

        order = self._load(order_number, expected_version)
        now = timezone.now()
        history: List[str] = []
        old_status = order.status
        self._apply_transition(order, target_status, actor, now, history)

        order.cust_refunded_amount = refund_amount
        order.refund_date = refund_date or now
        order.cancellation_reason = reason
        if target_status == OrderStatus.CANCELLED:
            order.cancelled_date = now
            event_cls = OrderCancelled
        else:
            event_cls = OrderRefunded
        history.append(
            history_entry("Customer refund", f"{refund_amount:.2f}", actor, now)
        )
        order.add_domain_event(
            event_cls(aggregate_id=order.id, amount=str(refund_amount), reason=reason)
        )

        self._commit(
            order,
            actor,
            now,
            history,
            {
                "type": "REFUND_SAVED",
                "status": order.status,
                "custRefundedAmount": refund_amount,
            },
        )
        logger.info(
            "order.settled",
            order_number=order_number,
            old_status=old_status,
            new_status=order.status,
            amount=str(refund_amount),
        )
        return self._reload(order)

    @transaction.atomic
    def mark_dispute(
        self,
        order_number: str,
        reason: Optional[str],
        actor: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> Order:
        """Move an order into ``Dispute`` with the customer's stated reason."""
        reason = (reason or "").strip()
        if not reason:
            raise ValidationError(
                f"Cannot dispute order {order_number}.",
                fields={"reason": "A dispute reason is required."},
            )

        order = self._load(order_number, expected_version)
        now = timezone.now()
        history: List[str] = []
        self._apply_transition(order, OrderStatus.DISPUTE, actor, now, history)
        order.disputed_date = now
        order.dispute_reason = reason

        self._commit(order, actor, now, history, {"type": "STATUS_CHANGED", "status": order.status})
        logger.info("order.disputed", order_number=order_number)
        return self._reload(order)

    # ------------------------------------------------------------------
    # Commands: yard ledger
    # ------------------------------------------------------------------

    @transaction.atomic
    def add_yard(
        self,
        order_number: str,
        dto: AddYardDTO,
        actor: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> Order:
        """Append a yard entry and let its status drive the order status.

        An explicit ``order_status`` on *dto* must be reachable; the status
        implied by the yard status is only applied when it is.
        """
        order = self._load(order_number, expected_version)
        changes = dto.changes()
        changes.setdefault("status", dto.status)
        explicit_status = changes.pop("order_status", None)
        target = self._derive_order_status(order, changes["status"], explicit_status)

        now = timezone.now()
        data = _yard_costs(changes)
        for name in YARD_TEXT_FIELDS:
            if name in changes:
                data[name] = (changes[name] or "").strip()
        if changes.get("escalation") is not None:
            data["escalation"] = bool(changes["escalation"])
        if changes.get("card_charged_date") is not None:
            data["card_charged_date"] = changes["card_charged_date"]
        yard = self._order_repo.add_yard(order, data)

        history = [f"Yard {yard.index} Located by {actor_name(actor)} on {history_timestamp(now)}"]
        if target is not None:
            self._apply_transition(order, target, actor, now, history)
        order.add_domain_event(
            YardLedgerChanged(aggregate_id=order.id, yard_index=yard.index, change="added")
        )

        self._commit(
            order,
            actor,
            now,
            history,
            {"type": "YARD_ADDED", "yardIndex": yard.index, "status": order.status},
        )
        logger.info("order.yard_added", order_number=order_number, yard_index=yard.index)
        return self._reload(order)

    @transaction.atomic
    def update_yard(
        self,
        order_number: str,
        index: int,
        dto: UpdateYardDTO,
        actor: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> Order:
        """Apply a partial update to one yard entry.

        Status and escalation changes go to the order history; every other
        field change is summarised in a note on the yard itself.
        """
        order = self._load(order_number, expected_version)
        yard = self._get_yard(order, index)
        changes = dto.changes()
        explicit_status = changes.pop("order_status", None)
        new_yard_status = changes.get("status")
        status_moves = new_yard_status is not None and new_yard_status.strip() != yard.status
        target = self._derive_order_status(
            order, new_yard_status if status_moves else None, explicit_status
        )

        now = timezone.now()
        previous_shipping = yard.shipping_details
        moved = _assign_yard_fields(yard, changes)
        moved_names = {name for name, _, _ in moved}

        history: List[str] = []
        if "status" in moved_names:
            history.append(history_entry(f"Yard {index} status", yard.status, actor, now))
        if "escalation" in moved_names:
            history.append(
                history_entry(
                    f"Yard {index} escalation", "Yes" if yard.escalation else "No", actor, now
                )
            )

        summary = [(YARD_FIELD_LABELS[n], old, new) for n, old, new in moved if n in YARD_FIELD_LABELS]
        if moved_names & {"shipping_type", "shipping_cost"}:
            summary.append(("Shipping", previous_shipping, yard.shipping_details))
        if summary:
            push_unique_note(yard.notes, format_note(actor, change_summary(summary), now))

        if moved:
            self._order_repo.save_yard(yard)
            order.add_domain_event(
                YardLedgerChanged(
                    aggregate_id=order.id,
                    yard_index=index,
                    change=",".join(sorted(moved_names)),
                )
            )
        if target is not None:
            self._apply_transition(order, target, actor, now, history)

        self._commit(
            order,
            actor,
            now,
            history,
            {
                "type": "STATUS_CHANGED" if "status" in moved_names else "YARD_UPDATED",
                "yardIndex": index,
                "status": order.status,
            },
        )
        logger.info(
            "order.yard_updated",
            order_number=order_number,
            yard_index=index,
            fields=sorted(moved_names),
        )
        return self._reload(order)

    @transaction.atomic
    def cancel_shipment(
        self,
        order_number: str,
        index: int,
        actor: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> Order:
        """Void a yard's shipment: tracking and shipping are cleared.

        The yard goes back to ``Yard PO Sent``; an order ``In Transit``
        returns to ``Yard Processing``.
        """
        order = self._load(order_number, expected_version)
        yard = self._get_yard(order, index)
        now = timezone.now()

        previous_shipping = yard.shipping_details
        changes: Dict[str, Any] = {name: "" for name in SHIPMENT_FIELDS}
        changes.update(status=YardStatus.PO_SENT, shipping_details="")
        moved = _assign_yard_fields(yard, changes)

        summary = [(YARD_FIELD_LABELS[n], old, new) for n, old, new in moved if n in YARD_FIELD_LABELS]
        if previous_shipping:
            summary.append(("Shipping", previous_shipping, ""))
        push_unique_note(
            yard.notes,
            format_note(actor, "Shipment cancelled\n" + change_summary(summary), now),
        )
        self._order_repo.save_yard(yard)

        shipment = previous_shipping or "no shipping"
        history = [
            f"Yard {index} shipment cancelled ({shipment}) by "
            f"{actor_name(actor)} on {history_timestamp(now)}"
        ]
        if order.status == OrderStatus.IN_TRANSIT:
            self._apply_transition(order, OrderStatus.YARD_PROCESSING, actor, now, history)
        order.add_domain_event(
            YardLedgerChanged(aggregate_id=order.id, yard_index=index, change="shipment_cancelled")
        )

        self._commit(
            order,
            actor,
            now,
            history,
            {"type": "YARD_UPDATED", "yardIndex": index, "status": order.status},
        )
        logger.info("order.shipment_cancelled", order_number=order_number, yard_index=index)
        return self._reload(order)

    # ------------------------------------------------------------------
    # Commands: notes
    # ------------------------------------------------------------------

    @transaction.atomic
    def add_yard_note(
        self, order_number: str, index: int, note: Optional[str], author: Optional[str]
    ) -> Order:
        """Append a free-text note to one yard entry.

        A note identical to the yard's last note is ignored.
        """
        message = _require_note(note, author)
        order = self._load(order_number)
        yard = self._get_yard(order, index)
        if not push_unique_note(yard.notes, format_note(author, message)):
            return self._reload(order)

        self._order_repo.save_yard(yard)
        self._commit(
            order,
            author,
            timezone.now(),
            [],
            {"type": "YARD_NOTE_ADDED", "yardIndex": index},
        )
        return self._reload(order)

    @transaction.atomic
    def add_support_note(
        self, order_number: str, note: Optional[str], author: Optional[str]
    ) -> Order:
        """Append a free-text support note to the order."""
        message = _require_note(note, author)
        order = self._load(order_number)
        notes = list(order.support_notes or [])
        if not push_unique_note(notes, format_note(author, message)):
            return self._reload(order)

        order.support_notes = notes
        self._commit(order, author, timezone.now(), [], {"type": "SUPPORT_NOTE_ADDED"})
        return self._reload(order)

    # ------------------------------------------------------------------
    # Commands: maintenance
    # ------------------------------------------------------------------

    @transaction.atomic
    def recalculate(self, order_number: str, actor: Optional[str] = None) -> bool:
        """Recompute Current GP and the escalation bucket of one order.

        Returns ``True`` when either figure moved (and was committed).
        """
        order = self._load(order_number)
        now = timezone.now()
        history, changes = self._refresh_derived(order, actor, now)
        if not history:
            return False

        self._order_repo.commit(order)
        for line in history:
            self._order_repo.add_history(order, line)
        self._notify(order, {"type": "GP_UPDATED", "status": order.status, **changes})
        logger.info("order.recalculated", order_number=order_number, **_log_safe(changes))
        return True

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_order(self, order_number: str) -> Order:
        """Retrieve a single order by its order number.

        Raises:
            OrderNotFound: if the order does not exist.
        """
        order = self._order_repo.get_by_number(order_number)
        if not order:
            raise OrderNotFound(f"Order {order_number} not found.")
        return order

    def list_orders(self, filters: Optional[Dict[str, Any]] = None) -> QuerySet:
        """Return orders, optionally filtered."""
        return self._order_repo.list(filters)

    def escalation_report(self, order_number: str) -> EscalationReport:
        order = self.get_order(order_number)
        entries = [YardLedgerEntry.from_model(y) for y in self._order_repo.yards(order)]
        return build_report(order.status, entries)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _load(self, order_number: str, expected_version: Optional[int] = None) -> Order:
        order = self._order_repo.get_for_update(order_number)
        if not order:
            raise OrderNotFound(f"Order {order_number} not found.")
        if expected_version is not None and order.version != expected_version:
            logger.warning(
                "order.stale_version",
                order_number=order_number,
                expected=expected_version,
                actual=order.version,
            )
            raise ConcurrencyConflict(order_number, expected_version, order.version)
        return order

    def _reload(self, order: Order) -> Order:
        return self._order_repo.get_by_number(order.order_number) or order

    def _get_yard(self, order: Order, index: int) -> YardEntry:
        yard = self._order_repo.get_yard(order, index)
        if yard is None:
            raise YardEntryNotFound(f"Order {order.order_number} has no yard {index}.")
        return yard

    def _derive_order_status(
        self, order: Order, yard_status: Optional[str], explicit: Optional[str]
    ) -> Optional[str]:
        """Order status implied by a yard change, or ``None`` to leave it.

        Raises:
            InvalidTransition: *explicit* is not reachable.
        """
        if explicit:
            ensure_transition(order.status, explicit)
            return explicit
        if not yard_status:
            return None
        target = YARD_STATUS_ORDER_MAP.get(yard_status.strip())
        if target is None or target == order.status:
            return None
        if not can_transition(order.status, target):
            logger.warning(
                "order.yard_status_not_applied",
                order_number=order.order_number,
                yard_status=yard_status,
                current_status=order.status,
                implied_status=target,
            )
            return None
        return target

    def _apply_transition(
        self,
        order: Order,
        target: str,
        actor: Optional[str],
        now: datetime,
        history: List[str],
    ) -> bool:
        plan = plan_transition(order.status, target, actor, now)
        history.append(plan.history_entry)
        if plan.changed:
            order.status = plan.new_status
            order.add_domain_event(
                OrderStatusChanged(
                    aggregate_id=order.id,
                    old_status=plan.old_status,
                    new_status=plan.new_status,
                )
            )
        return plan.changed

    def _refresh_derived(
        self, order: Order, actor: Optional[str], now: datetime
    ) -> Tuple[List[str], Dict[str, Any]]:
        """Recompute Current GP and the escalation bucket in place.

        Returns the history lines and payload fields for whatever moved.
        """
        yards = self._order_repo.yards(order)
        history: List[str] = []
        changes: Dict[str, Any] = {}

        gp = current_gp(OrderFinancials.from_order(order, yards))
        previous_gp = to_money(order.current_gp)
        if gp != previous_gp:
            order.current_gp = gp
            history.append(history_entry("Actual GP", f"{gp:.2f}", actor, now))
            changes["actualGP"] = gp
            order.add_domain_event(
                GrossProfitRecalculated(
                    aggregate_id=order.id, previous=str(previous_gp), current=str(gp)
                )
            )

        report = build_report(order.status, [YardLedgerEntry.from_model(y) for y in yards])
        if report.bucket != order.escalation_bucket:
            order.escalation_bucket = report.bucket
            history.append(history_entry("Escalation", report.bucket.value, actor, now))
            changes["escalation"] = report.bucket.value
        return history, changes

    def _commit(
        self,
        order: Order,
        actor: Optional[str],
        now: datetime,
        history: List[str],
        payload: Dict[str, Any],
    ) -> None:
        derived_history, derived_changes = self._refresh_derived(order, actor, now)
        self._order_repo.commit(order)
        for line in history + derived_history:
            self._order_repo.add_history(order, line)
        self._notify(order, {**payload, **derived_changes})

    def _notify(self, order: Order, payload: Dict[str, Any]) -> None:
        """Publish *payload* on the order's topic once the transaction commits."""
        message = {
            "actorId": get_contextvars().get("actor_id"),
            "version": order.version,
            **payload,
        }
        transaction.on_commit(
            partial(self._notifier.publish, order.order_number, message),
            robust=True,
        )


def _assign_yard_fields(yard: YardEntry, changes: Dict[str, Any]) -> List[Tuple[str, Any, Any]]:
    """Apply *changes* to *yard*; returns ``(field, old, new)`` for each field that moved."""
    values = _yard_costs(changes)
    for name in YARD_TEXT_FIELDS:
        if name in changes:
            values[name] = (changes[name] or "").strip()
    if "card_charged_date" in changes:
        values["card_charged_date"] = changes["card_charged_date"]
    if changes.get("escalation") is not None:
        values["escalation"] = bool(changes["escalation"])

    moved = []
    for name, new in values.items():
        old = getattr(yard, name)
        if old != new:
            setattr(yard, name, new)
            moved.append((name, old, new))
    return moved


def _yard_costs(changes: Dict[str, Any]) -> Dict[str, Any]:
    """Normalized yard costs; unparsable amounts are 0, oversized ones are rejected."""
    values = normalize_yard_costs(changes)
    errors = {
        name: f"Amount cannot exceed {MAX_AMOUNT}."
        for name, value in values.items()
        if isinstance(value, Decimal) and not within_limit(value)
    }
    if errors:
        raise ValidationError("Yard amount out of range.", fields=errors)
    return values


def _require_note(note: Optional[str], author: Optional[str]) -> str:
    errors = {}
    message = (note or "").strip()
    if not message:
        errors["note"] = "Note text is required."
    if not (author or "").strip():
        errors["author"] = "Note author is required."
    if errors:
        raise ValidationError("Cannot add an empty note.", fields=errors)
    return message


def _log_safe(changes: Dict[str, Any]) -> Dict[str, str]:
    return {key: str(value) for key, value in changes.items()}
