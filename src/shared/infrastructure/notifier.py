"""In-memory change notifier.

Subscribers are grouped per topic (``order.<orderNo>``).  Publishing is
best-effort: a closed subscriber is pruned, a subscriber whose ``send``
raises is skipped for that message, and neither case ever reaches the
publisher.  Subscriber sets live in process memory, so every web worker
only reaches the connections it accepted itself.
"""

from __future__ import annotations

import json
import queue
import threading
from typing import Any, Callable, Dict, List, Mapping, Optional

import structlog

from shared.domain.events import normalize_for_json
from shared.domain.notifier import IChangeNotifier, ISubscriber, order_topic

logger = structlog.get_logger(__name__)


class InMemoryChangeNotifier(IChangeNotifier):
    """Thread-safe topic -> subscribers fan-out."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._subscribers: Dict[str, List[ISubscriber]] = {}

    def subscribe(self, topic: str, subscriber: ISubscriber) -> None:
        with self._lock:
            subscribers = self._subscribers.setdefault(topic, [])
            if subscriber in subscribers:
                return
            subscribers.append(subscriber)
        subscriber.on_close(lambda: self.unsubscribe(topic, subscriber))
        if not subscriber.is_open:
            # Closed before the callback was registered.
            self.unsubscribe(topic, subscriber)
            return
        logger.info("notifier.subscribed", topic=topic)

    def unsubscribe(self, topic: str, subscriber: ISubscriber) -> None:
        with self._lock:
            subscribers = self._subscribers.get(topic)
            if not subscribers or subscriber not in subscribers:
                return
            subscribers.remove(subscriber)
            if not subscribers:
                del self._subscribers[topic]
        logger.info("notifier.unsubscribed", topic=topic)

    def subscriber_count(self, topic: str) -> int:
        with self._lock:
            return len(self._subscribers.get(topic, []))

    def publish(self, order_number: str, payload: Mapping[str, Any]) -> int:
        """Deliver ``{"orderNo": ..., **payload}`` to the order's topic.

        Returns the number of subscribers the message was handed to.
        """
        topic = order_topic(order_number)
        message = serialize_message(order_number, payload)
        with self._lock:
            targets = list(self._subscribers.get(topic, []))

        delivered = 0
        for subscriber in targets:
            if not subscriber.is_open:
                self.unsubscribe(topic, subscriber)
                continue
            try:
                subscriber.send(message)
            except Exception as exc:  # noqa: BLE001
                logger.warning(
                    "notifier.delivery_failed", topic=topic, error=str(exc)
                )
                continue
            delivered += 1

        logger.info("notifier.published", topic=topic, delivered=delivered)
        return delivered

    def topic_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def clear(self) -> None:
        with self._lock:
            self._subscribers.clear()


class QueueSubscriber:
    """Subscriber that buffers messages in a thread-safe queue.

    Used by in-process consumers (streaming responses, workers, tests).
    Calling :meth:`close` disconnects it and fires the close callbacks.
    """

    def __init__(self, maxsize: int = 0) -> None:
        self._queue: "queue.Queue[str]" = queue.Queue(maxsize=maxsize)
        self._open = True
        self._callbacks: List[Callable[[], None]] = []

    @property
    def is_open(self) -> bool:
        return self._open

    def send(self, message: str) -> None:
        if not self._open:
            raise ConnectionError("Subscriber is closed.")
        self._queue.put_nowait(message)

    def on_close(self, callback: Callable[[], None]) -> None:
        self._callbacks.append(callback)

    def close(self) -> None:
        if not self._open:
            return
        self._open = False
        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            callback()

    def get(self, timeout: Optional[float] = None) -> Dict[str, Any]:
        return json.loads(self._queue.get(timeout=timeout))

    def drain(self) -> List[Dict[str, Any]]:
        messages = []
        while True:
            try:
                messages.append(json.loads(self._queue.get_nowait()))
            except queue.Empty:
                return messages


def serialize_message(order_number: str, payload: Mapping[str, Any]) -> str:
    body = {"orderNo": order_number}
    body.update({key: normalize_for_json(value) for key, value in payload.items()})
    return json.dumps(body)


# Global notifier instance (singleton)

change_notifier = InMemoryChangeNotifier()
