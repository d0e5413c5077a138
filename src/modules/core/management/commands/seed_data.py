from __future__ import annotations

import random
from datetime import timedelta
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand
from django.utils import timezone

from modules.orders.constants import OrderStatus, PaymentStatus, YardStatus
from modules.orders.dtos import AddYardDTO, CreateOrderDTO, UpdateYardDTO
from modules.orders.models import Order
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.services import OrderService

AGENTS = ["Mark", "Dipsikha", "Tony", "Richard"]
PARTS = [
    ("Engine", "Honda", "Accord", Decimal("1450.00")),
    ("Transmission", "Toyota", "Camry", Decimal("1200.00")),
    ("Front Bumper", "Ford", "F-150", Decimal("380.00")),
    ("Alternator", "Chevrolet", "Silverado", Decimal("260.00")),
    ("Headlight Assembly", "Nissan", "Altima", Decimal("210.00")),
    ("ABS Module", "BMW", "X5", Decimal("520.00")),
]
CUSTOMERS = [
    ("Ana Souza", "ana@example.com"),
    ("Bruno Lima", "bruno@example.com"),
    ("Carla Mendes", "carla@example.com"),
    ("Daniel Costa", "daniel@example.com"),
    ("Helena Ferreira", "helena@example.com"),
]
YARDS = ["Pick-n-Pull Dallas", "LKQ Houston", "Austin Auto Salvage", "Metro Used Parts"]


class Command(BaseCommand):
    help = "Seed database with realistic development data."

    def add_arguments(self, parser):
        parser.add_argument("--orders", type=int, default=30)

    def handle(self, *args, **options):
        random.seed(42)
        self.stdout.write("Seeding development data...")

        users_created = self._seed_users()
        orders_created = self._seed_orders(options["orders"])

        self.stdout.write(
            self.style.SUCCESS(
                f"Seed completed: users={users_created}, orders={orders_created}"
            )
        )

    def _seed_users(self) -> int:
        User = get_user_model()
        created = 0
        if not User.objects.filter(username="admin").exists():
            User.objects.create_superuser("admin", password="admin123")
            created += 1
        for name in AGENTS:
            username = name.lower()
            if not User.objects.filter(username=username).exists():
                User.objects.create_user(username, password=f"{username}123", first_name=name)
                created += 1
        return created

    def _seed_orders(self, count: int) -> int:
        self.stdout.write("Creating orders...")
        service = OrderService(order_repository=OrderDjangoRepository())
        created = 0

        for i in range(count):
            order_number = f"50STARS{4900 + i}"
            if Order.objects.filter(order_number=order_number).exists():
                continue

            agent = random.choice(AGENTS)
            part, make, model, price = random.choice(PARTS)
            customer, email = random.choice(CUSTOMERS)
            quoted = price + Decimal(random.randint(100, 600))
            service.create_order(
                CreateOrderDTO(
                    order_number=order_number,
                    quoted_price=quoted,
                    yard_cost_estimate=price,
                    shipping_estimate=Decimal("80.00"),
                    order_date=timezone.now() - timedelta(days=random.randint(0, 30)),
                    customer_name=customer,
                    email=email,
                    sales_agent=agent,
                    part_requested=part,
                    vehicle_make=make,
                    vehicle_model=model,
                    year=random.randint(2008, 2022),
                ),
                actor=agent,
            )
            self._advance(service, order_number, agent, price)
            created += 1

        self.stdout.write(self.style.SUCCESS("Creating orders... Done!"))
        return created

    def _advance(self, service: OrderService, order_number: str, agent: str, price: Decimal) -> None:
        """Walk the order a random distance through the pipeline."""
        steps = random.randint(0, 4)
        if steps == 0:
            return
        service.transition(order_number, OrderStatus.CUSTOMER_APPROVED, actor=agent)
        if steps == 1:
            return

        service.add_yard(
            order_number,
            AddYardDTO(
                yard_name=random.choice(YARDS),
                part_price=str(price),
                yard_shipping=str(random.choice([0, 50, 75, 100])),
                status=YardStatus.YARD_LOCATED,
            ),
            actor=agent,
        )
        service.update_yard(
            order_number,
            1,
            UpdateYardDTO(payment_status=PaymentStatus.CARD_CHARGED, status=YardStatus.PO_SENT),
            actor=agent,
        )
        if steps == 2:
            return

        service.update_yard(
            order_number, 1, UpdateYardDTO(status=YardStatus.PART_SHIPPED), actor=agent
        )
        if steps == 3:
            if random.random() < 0.3:
                service.update_yard(
                    order_number,
                    1,
                    UpdateYardDTO(escalation=True, escalation_cause="Damaged in transit"),
                    actor=agent,
                )
            return

        service.update_yard(
            order_number, 1, UpdateYardDTO(status=YardStatus.PART_DELIVERED), actor=agent
        )
