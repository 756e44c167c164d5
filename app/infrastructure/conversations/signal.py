"""Completion signal: single-value synchronous broadcast.

Each step of a chain run subscribes to one signal. Emitting a signal stores
the value and activates whatever is subscribed, synchronously, which is how
one step hands over to the next.
"""

from typing import Any, Callable, List, Optional

Subscriber = Callable[[Any], None]


class CompletionSignal:
    """Broadcast a value to subscribers in registration order.

    Subscriber exceptions are not caught and propagate to the emitter.
    Re-emitting overwrites the stored value; the signal is not a queue.

    Example:
        signal = CompletionSignal("add_account#0")
        signal.subscribe(lambda value: print("got", value))
        signal.emit(42)  # prints "got 42"
    """

    def __init__(self, name: str = "", value: Optional[Any] = None):
        self.name = name
        self._value = value
        self._subscribers: List[Subscriber] = []

    @property
    def value(self) -> Optional[Any]:
        """Last emitted value (or the initial one)."""
        return self._value

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self, subscriber: Subscriber) -> Subscriber:
        """Register a subscriber for every future emission.

        Returns:
            The subscriber, so it can be handed to unsubscribe() later.
        """
        self._subscribers.append(subscriber)
        return subscriber

    def unsubscribe(self, subscriber: Subscriber) -> None:
        self._subscribers = [s for s in self._subscribers if s is not subscriber]

    def emit(self, value: Optional[Any] = None) -> None:
        """Store ``value`` and invoke every current subscriber once."""
        self._value = value
        # Snapshot so a subscriber that unsubscribes does not skip its neighbour
        for subscriber in list(self._subscribers):
            subscriber(value)

    def clear(self) -> None:
        """Drop every subscriber and the stored value."""
        self._subscribers = []
        self._value = None

    def __repr__(self) -> str:
        return (
            f"CompletionSignal(name={self.name!r}, "
            f"subscribers={self.subscriber_count})"
        )
