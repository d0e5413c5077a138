"""Order API views.

Exposes the ``OrderService`` via HTTP using DRF ViewSets.  Orders are
addressed by their order number.  Domain exceptions are caught and
translated into HTTP status codes; the view never swallows generic
exceptions.
"""

from __future__ import annotations

from typing import Any, Callable

from django.http import StreamingHttpResponse
from django_filters.rest_framework import DjangoFilterBackend
from pydantic import ValidationError as DTOValidationError
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.filters import OrderingFilter, SearchFilter
from rest_framework.renderers import JSONRenderer
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.throttling import BaseThrottle
from rest_framework.viewsets import GenericViewSet

from modules.core.pagination import StandardResultsSetPagination
from modules.orders.constants import REFUND_TARGETS, EscalationBucket
from modules.orders.dtos import AddYardDTO, CreateOrderDTO, UpdateYardDTO
from modules.orders.exceptions import (
    ConcurrencyConflict,
    InvalidTransition,
    OrderAlreadyExists,
    OrderNotFound,
    ValidationError,
    YardEntryNotFound,
)
from modules.orders.filters import OrderFilter
from modules.orders.models import Order
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.serializers import (
    CreateOrderSerializer,
    DisputeSerializer,
    EscalationReportSerializer,
    NoteSerializer,
    OrderListSerializer,
    OrderSerializer,
    SettlementSerializer,
    StatusUpdateSerializer,
    VersionedSerializer,
    YardInputSerializer,
)
from modules.orders.services import OrderService
from modules.orders.streams import EventStreamRenderer, event_stream
from shared.infrastructure.notifier import change_notifier

YARD_INDEX = r"yards/(?P<index>[0-9]+)"


def _error(detail: str, code: int, **extra: Any) -> Response:
    return Response({"detail": detail, **extra}, status=code)


def _actor(request: Request) -> str:
    user = request.user
    return (getattr(user, "first_name", "") or getattr(user, "username", "") or "").strip()


class OrderViewSet(GenericViewSet):
    """ViewSet for Order operations.

    Uses ``OrderService`` with an injected repository (DIP).
    Does **not** extend ``ModelViewSet``: all writes go through the
    service/repository layer.
    """

    queryset = Order.objects.all()
    lookup_field = "order_number"
    lookup_value_regex = "[^/]+"
    filterset_class = OrderFilter
    search_fields = [
        "order_number",
        "customer_name",
        "email",
        "phone",
        "sales_agent",
        "part_requested",
        "part_number",
        "vehicle_make",
        "vehicle_model",
        "yard_entries__yard_name",
    ]
    ordering_fields = ["order_date", "current_gp", "estimated_gp", "status"]
    ordering = ["-order_date", "-id"]
    filter_backends = [DjangoFilterBackend, SearchFilter, OrderingFilter]

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = OrderService(order_repository=OrderDjangoRepository())

    def get_throttles(self) -> list[BaseThrottle]:
        """Throttling scope per action."""
        if self.action == "create":
            self.throttle_scope = "order_creation"
        elif self.action in {
            "list",
            "retrieve",
            "escalation",
            "events",
            "ongoing_escalations",
            "overall_escalations",
        }:
            self.throttle_scope = "order_listing"
        else:
            self.throttle_scope = "order_mutation"
        return super().get_throttles()

    def get_queryset(self):
        return self._service.list_orders()

    def _execute(self, command: Callable[[], Order], success: int = status.HTTP_200_OK) -> Response:
        """Run a service command and translate domain errors into responses."""
        try:
            order = command()
        except (OrderNotFound, YardEntryNotFound) as exc:
            return _error(str(exc), status.HTTP_404_NOT_FOUND)
        except OrderAlreadyExists as exc:
            return _error(str(exc), status.HTTP_409_CONFLICT)
        except ConcurrencyConflict as exc:
            return _error(str(exc), status.HTTP_409_CONFLICT, current_version=exc.actual)
        except InvalidTransition as exc:
            return _error(str(exc), status.HTTP_400_BAD_REQUEST)
        except ValidationError as exc:
            return _error(str(exc), status.HTTP_400_BAD_REQUEST, fields=exc.fields)
        except DTOValidationError as exc:
            return _error(
                "Invalid payload.",
                status.HTTP_400_BAD_REQUEST,
                errors=exc.errors(include_url=False, include_context=False, include_input=False),
            )
        return Response(OrderSerializer(order).data, status=success)

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def create(self, request: Request) -> Response:
        """POST /api/v1/orders/"""
        serializer = CreateOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        return self._execute(
            lambda: self._service.create_order(
                CreateOrderDTO(**serializer.validated_data), actor=_actor(request)
            ),
            success=status.HTTP_201_CREATED,
        )

    # ------------------------------------------------------------------
    # List / Retrieve
    # ------------------------------------------------------------------

    def list(self, request: Request) -> Response:
        """GET /api/v1/orders/

        Filtering (status, escalation, date range, GP range, yard name)
        is handled by ``OrderFilter``; free-text search by ``SearchFilter``
        over the order, customer, part and yard fields.
        """
        return self._paginated(self.filter_queryset(self.get_queryset()), request)

    def retrieve(self, request: Request, order_number: str | None = None) -> Response:
        """GET /api/v1/orders/{order_number}/"""
        return self._execute(lambda: self._service.get_order(order_number))

    @action(detail=False, methods=["get"], url_path="ongoing-escalations")
    def ongoing_escalations(self, request: Request) -> Response:
        queryset = self.get_queryset().filter(escalation_bucket=EscalationBucket.ONGOING)
        return self._paginated(self.filter_queryset(queryset), request)

    @action(detail=False, methods=["get"], url_path="overall-escalations")
    def overall_escalations(self, request: Request) -> Response:
        queryset = self.get_queryset().exclude(escalation_bucket=EscalationBucket.NONE)
        return self._paginated(self.filter_queryset(queryset), request)

    @action(detail=True, methods=["get"])
    def escalation(self, request: Request, order_number: str | None = None) -> Response:
        """GET /api/v1/orders/{order_number}/escalation/"""
        try:
            report = self._service.escalation_report(order_number)
        except OrderNotFound as exc:
            return _error(str(exc), status.HTTP_404_NOT_FOUND)
        data = {
            "bucket": report.bucket.value,
            "primary_flag": report.primary_flag,
            "yard_flags": list(report.yard_flags),
            "escalated_yards": list(report.escalated_yards),
        }
        return Response(EscalationReportSerializer(data).data)

    @action(detail=True, methods=["get"], renderer_classes=[EventStreamRenderer, JSONRenderer])
    def events(self, request: Request, order_number: str | None = None):
        """GET /api/v1/orders/{order_number}/events/ (text/event-stream)"""
        try:
            self._service.get_order(order_number)
        except OrderNotFound as exc:
            return _error(str(exc), status.HTTP_404_NOT_FOUND)
        response = StreamingHttpResponse(
            event_stream(change_notifier, order_number),
            content_type="text/event-stream",
        )
        response["Cache-Control"] = "no-cache"
        response["X-Accel-Buffering"] = "no"
        return response

    def _paginated(self, queryset, request: Request) -> Response:
        paginator = StandardResultsSetPagination()
        page = paginator.paginate_queryset(queryset, request)
        serializer = OrderListSerializer(page, many=True)
        return paginator.get_paginated_response(serializer.data)

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def partial_update(self, request: Request, order_number: str | None = None) -> Response:
        """PATCH /api/v1/orders/{order_number}/

        Updates order status.  Cancellations and refunds are **not**
        allowed here: they need an amount and a reason, use
        ``/cancel/`` or ``/refund/``.
        """
        serializer = StatusUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        if data["status"] in REFUND_TARGETS:
            return _error(
                "Use the /cancel/ or /refund/ endpoint for this status.",
                status.HTTP_400_BAD_REQUEST,
            )
        return self._execute(
            lambda: self._service.transition(
                order_number,
                data["status"],
                actor=_actor(request),
                expected_version=data.get("expected_version"),
            )
        )

    @action(detail=True, methods=["post"])
    def cancel(self, request: Request, order_number: str | None = None) -> Response:
        """POST /api/v1/orders/{order_number}/cancel/"""
        return self._settle(request, order_number, self._service.cancel_order)

    @action(detail=True, methods=["post"])
    def refund(self, request: Request, order_number: str | None = None) -> Response:
        """POST /api/v1/orders/{order_number}/refund/"""
        return self._settle(request, order_number, self._service.refund_order)

    def _settle(self, request: Request, order_number: str, command: Callable[..., Order]) -> Response:
        serializer = SettlementSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        return self._execute(
            lambda: command(
                order_number,
                data.get("amount"),
                data.get("reason"),
                actor=_actor(request),
                refund_date=data.get("refund_date"),
                expected_version=data.get("expected_version"),
            )
        )

    @action(detail=True, methods=["post"])
    def dispute(self, request: Request, order_number: str | None = None) -> Response:
        """POST /api/v1/orders/{order_number}/dispute/"""
        serializer = DisputeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        return self._execute(
            lambda: self._service.mark_dispute(
                order_number,
                data.get("reason"),
                actor=_actor(request),
                expected_version=data.get("expected_version"),
            )
        )

    # ------------------------------------------------------------------
    # Yard ledger
    # ------------------------------------------------------------------

    @action(detail=True, methods=["post"])
    def yards(self, request: Request, order_number: str | None = None) -> Response:
        """POST /api/v1/orders/{order_number}/yards/"""
        serializer = YardInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)
        expected_version = data.pop("expected_version", None)
        return self._execute(
            lambda: self._service.add_yard(
                order_number,
                AddYardDTO(**data),
                actor=_actor(request),
                expected_version=expected_version,
            ),
            success=status.HTTP_201_CREATED,
        )

    @action(detail=True, methods=["patch"], url_path=YARD_INDEX)
    def update_yard(
        self, request: Request, order_number: str | None = None, index: str | None = None
    ) -> Response:
        """PATCH /api/v1/orders/{order_number}/yards/{index}/"""
        serializer = YardInputSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)
        expected_version = data.pop("expected_version", None)
        return self._execute(
            lambda: self._service.update_yard(
                order_number,
                int(index),
                UpdateYardDTO(**data),
                actor=_actor(request),
                expected_version=expected_version,
            )
        )

    @action(detail=True, methods=["post"], url_path=YARD_INDEX + "/cancel-shipment")
    def cancel_shipment(
        self, request: Request, order_number: str | None = None, index: str | None = None
    ) -> Response:
        """POST /api/v1/orders/{order_number}/yards/{index}/cancel-shipment/"""
        serializer = VersionedSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        return self._execute(
            lambda: self._service.cancel_shipment(
                order_number,
                int(index),
                actor=_actor(request),
                expected_version=serializer.validated_data.get("expected_version"),
            )
        )

    # ------------------------------------------------------------------
    # Notes
    # ------------------------------------------------------------------

    @action(detail=True, methods=["post"], url_path=YARD_INDEX + "/notes")
    def yard_notes(
        self, request: Request, order_number: str | None = None, index: str | None = None
    ) -> Response:
        """POST /api/v1/orders/{order_number}/yards/{index}/notes/"""
        serializer = NoteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        return self._execute(
            lambda: self._service.add_yard_note(
                order_number, int(index), serializer.validated_data["note"], _actor(request)
            ),
            success=status.HTTP_201_CREATED,
        )

    @action(detail=True, methods=["post"], url_path="support-notes")
    def support_notes(self, request: Request, order_number: str | None = None) -> Response:
        """POST /api/v1/orders/{order_number}/support-notes/"""
        serializer = NoteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        return self._execute(
            lambda: self._service.add_support_note(
                order_number, serializer.validated_data["note"], _actor(request)
            ),
            success=status.HTTP_201_CREATED,
        )
