# routeviz/core/events.py
from typing import Callable, Generic, List, TypeVar

T = TypeVar("T")

Listener = Callable[[T], None]


class EventChannel(Generic[T]):
    """
    Synchronous publish/subscribe channel.

    Listeners run in subscription order on the publisher's call stack.
    """

    def __init__(self, name: str = "") -> None:
        self.name = name
        self._listeners: List[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Register a listener and return a callable that removes it again.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def publish(self, payload: T) -> None:
        # Copy so listeners may unsubscribe while being notified
        for listener in list(self._listeners):
            listener(payload)

    def __len__(self) -> int:
        return len(self._listeners)
