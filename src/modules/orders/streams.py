"""Server-Sent Events bridge from the change notifier to HTTP clients."""

from __future__ import annotations

import json
import queue
from typing import Iterator, Optional

import structlog
from rest_framework.renderers import BaseRenderer

from shared.domain.notifier import IChangeNotifier, order_topic
from shared.infrastructure.notifier import QueueSubscriber

logger = structlog.get_logger(__name__)

HEARTBEAT_SECONDS = 15.0


class EventStreamRenderer(BaseRenderer):
    """Lets DRF negotiate ``Accept: text/event-stream``.

    Streaming responses bypass rendering; only error bodies reach it.
    """

    media_type = "text/event-stream"
    format = "event-stream"
    charset = "utf-8"

    def render(self, data, accepted_media_type=None, renderer_context=None):
        return f"event: error\ndata: {json.dumps(data)}\n\n".encode(self.charset)


def event_stream(
    notifier: IChangeNotifier,
    order_number: str,
    subscriber: Optional[QueueSubscriber] = None,
    heartbeat: float = HEARTBEAT_SECONDS,
) -> Iterator[str]:
    """Yield SSE frames for every change published on the order's topic.

    The subscription lives as long as the generator: when the client goes
    away the server closes the generator, which closes the subscriber and
    so deregisters it from the notifier.
    """
    subscriber = subscriber or QueueSubscriber()
    topic = order_topic(order_number)
    notifier.subscribe(topic, subscriber)
    logger.info("order.stream_opened", order_number=order_number)
    try:
        yield ": connected\n\n"
        while subscriber.is_open:
            try:
                message = subscriber.get(timeout=heartbeat)
            except queue.Empty:
                yield ": heartbeat\n\n"
                continue
            yield f"data: {json.dumps(message)}\n\n"
    finally:
        subscriber.close()
        logger.info("order.stream_closed", order_number=order_number)
