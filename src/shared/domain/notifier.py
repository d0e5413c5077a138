"""Change-notification interfaces for real-time order subscribers."""

from __future__ import annotations

from typing import Any, Callable, Mapping, Protocol


def order_topic(order_number: str) -> str:
    """Routing key used for all change messages of one order."""
    return f"order.{order_number}"


class ISubscriber(Protocol):
    """A live connection that wants the change messages of a topic.

    ``on_close`` registers a callback the subscriber must invoke once it
    disconnects, so the notifier can drop it without the publisher's help.
    """

    @property
    def is_open(self) -> bool: ...

    def send(self, message: str) -> None: ...

    def on_close(self, callback: Callable[[], None]) -> None: ...


class IChangeNotifier(Protocol):
    """Topic-addressed fan-out of order change messages."""

    def subscribe(self, topic: str, subscriber: ISubscriber) -> None: ...

    def unsubscribe(self, topic: str, subscriber: ISubscriber) -> None: ...

    def publish(self, order_number: str, payload: Mapping[str, Any]) -> int: ...
