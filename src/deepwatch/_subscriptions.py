"""Subscription registry — disposers a detector must release exactly once."""

from __future__ import annotations

from deepwatch.stream import Disposer


class Subscriptions:
    """Ordered bag of disposers, released together."""

    __slots__ = ("_disposers",)

    def __init__(self) -> None:
        self._disposers: list[Disposer] = []

    def add(self, disposer: Disposer) -> None:
        self._disposers.append(disposer)

    def release(self) -> None:
        """Call every disposer once. The registry is empty afterwards."""
        disposers, self._disposers = self._disposers, []
        for dispose in disposers:
            dispose()

    def __len__(self) -> int:
        return len(self._disposers)
