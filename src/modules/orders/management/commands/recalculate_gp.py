from __future__ import annotations

from django.core.management.base import BaseCommand

from modules.orders.state_machine import DEFAULT_ACTOR
from modules.orders.tasks import recalculate_orders


class Command(BaseCommand):
    help = "Recompute Current GP and escalation buckets from the yard ledger."

    def add_arguments(self, parser):
        parser.add_argument(
            "order_numbers",
            nargs="*",
            help="Order numbers to recalculate (default: every order).",
        )
        parser.add_argument("--actor", default=DEFAULT_ACTOR)

    def handle(self, *args, **options):
        result = recalculate_orders(options["order_numbers"] or None, actor=options["actor"])
        self.stdout.write(
            self.style.SUCCESS(
                "Recalculation completed: "
                f"checked={result['checked']}, "
                f"updated={len(result['updated'])}, "
                f"missing={len(result['missing'])}"
            )
        )
        for order_number in result["missing"]:
            self.stdout.write(self.style.WARNING(f"Order not found: {order_number}"))
