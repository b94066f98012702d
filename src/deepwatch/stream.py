"""Push-based event stream — the notification primitive.

Every contract in deepwatch is expressed as an EventStream: observable objects
emit PropertyChanged, observable lists emit ListChanged, and change detectors
emit path strings. subscribe() returns a disposer; dispose() drops everyone.
"""

from __future__ import annotations

from typing import Callable, Generic, TypeVar

T = TypeVar("T")

Disposer = Callable[[], None]


class EventStream(Generic[T]):
    """Synchronous push-based event stream."""

    __slots__ = ("_subscribers", "_disposed")

    def __init__(self) -> None:
        self._subscribers: list[Callable[[T], None]] = []
        self._disposed = False

    def emit(self, value: T) -> None:
        """Push a value to all subscribers, in subscription order."""
        if self._disposed:
            return
        # Snapshot: a subscriber may unsubscribe itself or others mid-delivery.
        for cb in list(self._subscribers):
            cb(value)

    def subscribe(self, callback: Callable[[T], None]) -> Disposer:
        """Register a callback. Returns a function that removes it."""
        self._subscribers.append(callback)

        def _unsubscribe() -> None:
            try:
                self._subscribers.remove(callback)
            except ValueError:
                pass  # already removed

        return _unsubscribe

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def dispose(self) -> None:
        """Tear down this stream. Later emits are no-ops."""
        self._disposed = True
        self._subscribers.clear()

    def __repr__(self) -> str:
        state = "disposed" if self._disposed else f"{len(self._subscribers)} subscribers"
        return f"EventStream({state})"
