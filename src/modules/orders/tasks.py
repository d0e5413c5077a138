"""Async tasks of the orders module."""

from __future__ import annotations

from typing import Any, Dict, Iterable, Optional

import structlog
from celery import shared_task

from modules.orders.exceptions import OrderNotFound
from modules.orders.models import Order
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.services import OrderService
from modules.orders.state_machine import DEFAULT_ACTOR

logger = structlog.get_logger(__name__)


def recalculate_orders(
    order_numbers: Optional[Iterable[str]] = None, actor: str = DEFAULT_ACTOR
) -> Dict[str, Any]:
    """Recompute Current GP and escalation for the given orders (default: all).

    Each order is recalculated in its own transaction, so one failure does
    not roll back the others.
    """
    service = OrderService(order_repository=OrderDjangoRepository())
    if order_numbers is None:
        order_numbers = Order.objects.order_by("order_date").values_list(
            "order_number", flat=True
        )
    numbers = list(order_numbers)

    updated: list[str] = []
    missing: list[str] = []
    for order_number in numbers:
        try:
            if service.recalculate(order_number, actor=actor):
                updated.append(order_number)
        except OrderNotFound:
            logger.warning("orders.recalculate_gp.missing", order_number=order_number)
            missing.append(order_number)

    logger.info(
        "orders.recalculate_gp.completed",
        checked=len(numbers),
        updated=len(updated),
        missing=len(missing),
    )
    return {"checked": len(numbers), "updated": updated, "missing": missing}


@shared_task(name="orders.recalculate_gp")
def recalculate_gp(order_numbers: Optional[list[str]] = None) -> Dict[str, Any]:
    """Backfill task; scheduled by Celery beat and callable on demand."""
    return recalculate_orders(order_numbers)
