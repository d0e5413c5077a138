import uuid
from contextvars import ContextVar
from typing import Callable

import structlog
from django.http import HttpRequest, HttpResponse

correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="")

logger = structlog.get_logger()


class CorrelationIdMiddleware:
    """Binds per-request identifiers into the structlog context.

    ``X-Request-ID`` is read from the request or generated (UUID4) and
    echoed back on the response.  ``X-Actor-Id``, sent by dashboard
    clients, identifies the browser session behind a mutation; it is
    bound as ``actor_id`` so change messages can carry it and a client
    can recognise its own echoes.
    """

    def __init__(self, get_response: Callable[[HttpRequest], HttpResponse]) -> None:
        self.get_response = get_response

    def __call__(self, request: HttpRequest) -> HttpResponse:
        cid = request.META.get("HTTP_X_REQUEST_ID") or str(uuid.uuid4())
        correlation_id_var.set(cid)

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(correlation_id=cid)
        actor_id = request.META.get("HTTP_X_ACTOR_ID", "").strip()
        if actor_id:
            structlog.contextvars.bind_contextvars(actor_id=actor_id)

        logger.info(
            "request_started",
            method=request.method,
            path=request.get_full_path(),
        )

        response = self.get_response(request)

        logger.info(
            "request_finished",
            method=request.method,
            path=request.get_full_path(),
            status_code=response.status_code,
        )

        response["X-Request-ID"] = cid
        return response
