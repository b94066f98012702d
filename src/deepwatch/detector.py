"""Change detectors — deep change notification over an observable graph.

A ChangeDetector wraps one tracked object and owns one child detector per
compounding slot: every compounding property, plus every compounding item when
the object is an observable list. Native signals and child forwards feed one
reaction procedure, which

1. forwards a path upward (unless notify_on_change is off), prepending this
   node's locator (its property name, or "[i]" for a list item);
2. repairs the subtree, for native signals only: a reassigned property gets a
   fresh child, added items get a child, deleted items and resets drop theirs.

The root therefore emits one path per mutation, e.g. "Items[2].Value".

Parents are non-owning back-references used for path walks and cycle checks.
The children map is the only owning edge and is torn down top-down by
dispose(). Everything is synchronous: by the time a mutating call returns,
the path has been delivered and the subtree repaired.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Callable, Iterator

from deepwatch._introspection import (
    Capability,
    capabilities_of,
    compounding_slots,
    is_compounding,
    is_compounding_slot,
)
from deepwatch._paths import item_locator, item_path, join_path
from deepwatch._subscriptions import Subscriptions
from deepwatch.observable import ListChanged, ListChangeType, PropertyChanged
from deepwatch.stream import Disposer, EventStream

logger = logging.getLogger("deepwatch.detector")


class ConsistencyError(RuntimeError):
    """More than one tracked list item vanished on a single delete signal.

    The tracked list was mutated outside the single-writer assumption
    (typically from another thread); the children map can't be repaired.
    """


class ItemSlot:
    """Children-map key for a list item. Compares and hashes by identity."""

    __slots__ = ("item",)

    def __init__(self, item: Any) -> None:
        self.item = item

    def __eq__(self, other: object) -> bool:
        return isinstance(other, ItemSlot) and other.item is self.item

    def __hash__(self) -> int:
        return id(self.item)

    def __repr__(self) -> str:
        return f"ItemSlot({self.item!r})"


SlotKey = str | ItemSlot
Signal = PropertyChanged | ListChanged | str


class ChangeDetector:
    """Deep change detector rooted at an observable object and/or list.

    Usage:
        detector = ChangeDetector(order)
        paths = []
        detector.subscribe(paths.append)

        order.customer.name = "Ada"
        order.lines[2].quantity = 5
        # paths == ["customer.name", "lines[2].quantity"]

        detector.dispose()
    """

    def __init__(self, model: Any, *, notify_on_change: bool = True) -> None:
        caps = capabilities_of(model)
        if not caps:
            raise TypeError(
                f"{type(model).__name__} supports neither property nor list change notifications"
            )
        self.notify_on_change = notify_on_change
        self._setup(model, None, None, caps)

    @classmethod
    def _create_child(
        cls, value: Any, property_name: str | None, parent: ChangeDetector
    ) -> ChangeDetector | None:
        """Build a detector for value, or None if value doesn't notify."""
        caps = capabilities_of(value)
        if not caps:
            return None
        child = cls.__new__(cls)
        child.notify_on_change = True
        child._setup(value, property_name, parent, caps)
        return child

    def _setup(
        self,
        trackable: Any,
        property_name: str | None,
        parent: ChangeDetector | None,
        caps: Capability,
    ) -> None:
        self._tracked = trackable
        self._parent = parent
        self._property_name = property_name
        self._children: dict[SlotKey, ChangeDetector | None] = {}
        self._links: dict[SlotKey, Disposer] = {}
        self._subscriptions = Subscriptions()
        self.change_detected: EventStream[str] = EventStream()

        if Capability.PROPERTIES in caps:
            self._subscriptions.add(trackable.on_property_changed(self._react))
            for slot in compounding_slots(trackable):
                self._attach(slot.name, slot.value)

        if Capability.LIST in caps:
            self._subscriptions.add(trackable.on_list_changed(self._react))
            for item in list(trackable):
                key = ItemSlot(item)
                if key not in self._children and is_compounding(item):
                    self._attach(key, item)

    # --- Public surface ---

    @property
    def tracked_object(self) -> Any:
        return self._tracked

    @property
    def parent(self) -> ChangeDetector | None:
        return self._parent

    @property
    def property_name(self) -> str | None:
        return self._property_name

    @property
    def is_list_item(self) -> bool:
        return self._parent is not None and self._property_name is None

    @property
    def property_children(self) -> dict[str, ChangeDetector | None]:
        """Compounding property slots; None means nothing is tracked there."""
        return {k: v for k, v in self._children.items() if isinstance(k, str)}

    @property
    def item_children(self) -> list[ChangeDetector]:
        return [v for k, v in self._children.items() if isinstance(k, ItemSlot)]

    def child(self, slot: Any) -> ChangeDetector | None:
        """Child for a property name (str) or a list item (anything else)."""
        key = slot if isinstance(slot, str) else ItemSlot(slot)
        return self._children.get(key)

    def subscribe(self, callback: Callable[[str], None]) -> Disposer:
        """Register a callback receiving change paths. Returns a disposer."""
        return self.change_detected.subscribe(callback)

    @contextmanager
    def muted(self) -> Iterator[ChangeDetector]:
        """Suppress forwarding for the duration; repairs still happen."""
        previous = self.notify_on_change
        self.notify_on_change = False
        try:
            yield self
        finally:
            self.notify_on_change = previous

    @property
    def path(self) -> str:
        """Locator of this detector relative to the root, e.g. "Items[2]"."""
        path = ""
        node: ChangeDetector | None = self
        while node is not None and node._parent is not None:
            path = join_path(node._locator(), path)
            node = node._parent
        return path

    def dispose(self) -> None:
        """Release native subscriptions, then every child, top-down."""
        self._subscriptions.release()
        for key in list(self._children):
            self._detach(key)

    def __repr__(self) -> str:
        if self._parent is None:
            return "ChangeDetector(<root>)"
        try:
            return f"ChangeDetector({self.path!r})"
        except ConsistencyError:
            return "ChangeDetector(<detached>)"

    # --- Reaction ---

    def _react(self, signal: Signal) -> None:
        if self.notify_on_change:
            self._forward(signal)

        # Only native signals repair; child forwards were repaired below us.
        if isinstance(signal, PropertyChanged):
            self._repair_property(signal.property_name)
        elif isinstance(signal, ListChanged):
            self._repair_list(signal)

    def _forward(self, signal: Signal) -> None:
        if isinstance(signal, PropertyChanged):
            tail = signal.property_name
        elif isinstance(signal, ListChanged):
            if signal.kind is ListChangeType.ITEM_CHANGED:
                tail = item_path(signal.new_index, signal.property_name)
            else:
                tail = ""
        else:
            tail = signal
        self.change_detected.emit(join_path(self._locator(), tail))

    def _repair_property(self, property_name: str) -> None:
        tracked = property_name in self._children
        if not tracked and not is_compounding_slot(self._tracked, property_name):
            return
        self._detach(property_name)
        self._attach(property_name, getattr(self._tracked, property_name, None))

    def _repair_list(self, change: ListChanged) -> None:
        if change.kind is ListChangeType.ITEM_ADDED:
            item = self._tracked[change.new_index]
            key = ItemSlot(item)
            if key not in self._children and is_compounding(item):
                self._attach(key, item)
        elif change.kind is ListChangeType.ITEM_DELETED:
            key = self._find_missing_item()
            if key is not None:
                self._detach(key)
        elif change.kind is ListChangeType.RESET:
            keys = self._item_keys()
            logger.debug("%r: reset drops %d item detectors", self, len(keys))
            for key in keys:
                self._detach(key)

    # --- Children bookkeeping ---

    def _attach(self, key: SlotKey, value: Any) -> ChangeDetector | None:
        """Build and wire the child for key.

        Property slots are always recorded, None when untracked; item slots
        only when a detector was built.
        """
        child = None
        if value is not None:
            if self._forms_cycle(value):
                logger.debug("%r: pruned cycle at %r", self, key)
            else:
                name = key if isinstance(key, str) else None
                child = self._create_child(value, name, self)

        if child is not None:
            self._links[key] = child.change_detected.subscribe(self._react)
            logger.debug("%r: attached %r", self, child)
        if child is not None or isinstance(key, str):
            self._children[key] = child
        return child

    def _detach(self, key: SlotKey) -> None:
        child = self._children.pop(key, None)
        unlink = self._links.pop(key, None)
        if unlink is not None:
            unlink()
        if child is not None:
            logger.debug("%r: detaching %r", self, key)
            child.dispose()

    def _item_keys(self) -> list[ItemSlot]:
        return [key for key in self._children if isinstance(key, ItemSlot)]

    def _find_missing_item(self) -> ItemSlot | None:
        # Delete signals don't say which item left, so infer it: exactly one
        # tracked item may be absent from the live list. Membership is by
        # identity, like the keys, so equal-but-distinct items are told apart.
        live = {id(item) for item in self._tracked}
        missing = [key for key in self._item_keys() if id(key.item) not in live]
        if len(missing) > 1:
            logger.error("%r: %d tracked items missing after one delete", self, len(missing))
            raise ConsistencyError(
                f"{len(missing)} tracked items missing after a single delete; "
                "the list was probably mutated concurrently"
            )
        return missing[0] if missing else None

    def _forms_cycle(self, value: Any) -> bool:
        node: ChangeDetector | None = self
        while node is not None:
            if node._tracked is value:
                return True
            node = node._parent
        return False

    def _locator(self) -> str:
        if self.is_list_item:
            index = _index_of(self._parent._tracked, self._tracked)
            if index < 0:
                raise ConsistencyError(f"list item {self._tracked!r} is no longer in its list")
            return item_locator(index)
        return self._property_name or ""


def _index_of(items: Any, item: Any) -> int:
    for index, candidate in enumerate(items):
        if candidate is item:
            return index
    return -1
