"""Observable contracts — what a change detector needs from the objects it tracks.

Two contracts, both runtime-checkable protocols:

- NotifiesPropertyChanged: on_property_changed(cb) -> disposer, cb receives
  PropertyChanged(sender, property_name).
- NotifiesListChanged: on_list_changed(cb) -> disposer plus indexed read,
  len, iteration and membership; cb receives a ListChanged descriptor.

ObservableObject and ObservableList are reference implementations. Any host
type satisfying the protocols can be tracked; an object may satisfy both.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Callable, Generic, Iterable, Iterator, Protocol, TypeVar, runtime_checkable

from deepwatch.stream import Disposer, EventStream

T = TypeVar("T")

_UNSET = object()


@dataclass(frozen=True)
class PropertyChanged:
    sender: Any
    property_name: str


class ListChangeType(enum.Enum):
    ITEM_ADDED = "item_added"
    ITEM_DELETED = "item_deleted"
    ITEM_CHANGED = "item_changed"
    ITEM_MOVED = "item_moved"
    RESET = "reset"


@dataclass(frozen=True)
class ListChanged:
    """Describes one list mutation.

    new_index is set for ITEM_ADDED and ITEM_CHANGED. old_index is set for
    ITEM_DELETED as a courtesy to consumers; the deleted item itself is never
    carried.
    """

    kind: ListChangeType
    new_index: int = -1
    old_index: int = -1
    property_name: str | None = None


@runtime_checkable
class NotifiesPropertyChanged(Protocol):
    def on_property_changed(self, callback: Callable[[PropertyChanged], None]) -> Disposer: ...


@runtime_checkable
class NotifiesListChanged(Protocol):
    def on_list_changed(self, callback: Callable[[ListChanged], None]) -> Disposer: ...

    def __len__(self) -> int: ...

    def __getitem__(self, index: int) -> Any: ...

    def __iter__(self) -> Iterator[Any]: ...

    def __contains__(self, item: object) -> bool: ...


class ObservableObject:
    """Base class for objects that announce public attribute changes.

    Assigning a public attribute (including through a property setter) emits
    PropertyChanged when the value changed. Replacing an observable value with
    a distinct one always notifies, even if the two compare equal. Subclasses
    don't need to call super().__init__(); the stream is created on first use.

    Usage:
        class Person(ObservableObject):
            name: str
            address: Address | None

            def __init__(self, name, address=None):
                self.name = name
                self.address = address
    """

    def __setattr__(self, name: str, value: Any) -> None:
        if name.startswith("_"):
            object.__setattr__(self, name, value)
            return
        old = getattr(self, name, _UNSET)
        object.__setattr__(self, name, value)
        if old is value:
            return
        # A new notifying object always counts, even when it compares equal:
        # trackers must move their subscriptions over to it.
        if old != value or isinstance(value, (NotifiesPropertyChanged, NotifiesListChanged)):
            self.notify_property_changed(name)

    @property
    def _property_changed(self) -> EventStream[PropertyChanged]:
        stream = self.__dict__.get("_property_changed_stream")
        if stream is None:
            stream = EventStream()
            object.__setattr__(self, "_property_changed_stream", stream)
        return stream

    def on_property_changed(self, callback: Callable[[PropertyChanged], None]) -> Disposer:
        return self._property_changed.subscribe(callback)

    def notify_property_changed(self, property_name: str) -> None:
        """Emit PropertyChanged by hand, e.g. for computed properties."""
        self._property_changed.emit(PropertyChanged(self, property_name))


class ObservableList(Generic[T]):
    """A list that describes every mutation with a ListChanged signal.

    Only integer indices are supported for item assignment and deletion;
    slices raise TypeError since they can't be described item by item.
    """

    def __init__(self, items: Iterable[T] | None = None) -> None:
        self._items: list[T] = list(items) if items else []
        self._list_changed: EventStream[ListChanged] = EventStream()

    def on_list_changed(self, callback: Callable[[ListChanged], None]) -> Disposer:
        return self._list_changed.subscribe(callback)

    def _notify(self, kind: ListChangeType, **fields) -> None:
        self._list_changed.emit(ListChanged(kind, **fields))

    def _normalize(self, index: int) -> int:
        if isinstance(index, slice):
            raise TypeError("ObservableList does not support slice mutation")
        n = len(self._items)
        if index < -n or index >= n:
            raise IndexError("ObservableList index out of range")
        return index + n if index < 0 else index

    # --- Read operations ---

    def __getitem__(self, index: int) -> T:
        return self._items[index]

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[T]:
        return iter(self._items)

    def __contains__(self, item: object) -> bool:
        return item in self._items

    def index(self, item: T) -> int:
        return self._items.index(item)

    # --- Write operations (notify) ---

    def append(self, item: T) -> None:
        self._items.append(item)
        self._notify(ListChangeType.ITEM_ADDED, new_index=len(self._items) - 1)

    def extend(self, items: Iterable[T]) -> None:
        for item in items:
            self.append(item)

    def insert(self, index: int, item: T) -> None:
        # Same clamping as list.insert, resolved up front so the signal
        # carries the real position.
        n = len(self._items)
        index = max(0, n + index) if index < 0 else min(index, n)
        self._items.insert(index, item)
        self._notify(ListChangeType.ITEM_ADDED, new_index=index)

    def pop(self, index: int = -1) -> T:
        index = self._normalize(index)
        result = self._items.pop(index)
        self._notify(ListChangeType.ITEM_DELETED, old_index=index)
        return result

    def remove(self, item: T) -> None:
        self.pop(self._items.index(item))

    def clear(self) -> None:
        self._items.clear()
        self._notify(ListChangeType.RESET)

    def reset(self, items: Iterable[T] | None = None) -> None:
        """Replace the whole content at once. Emits a single RESET."""
        self._items[:] = list(items) if items else []
        self._notify(ListChangeType.RESET)

    def sort(self, *, key=None, reverse: bool = False) -> None:
        self._items.sort(key=key, reverse=reverse)
        self._notify(ListChangeType.ITEM_MOVED)

    def reverse(self) -> None:
        self._items.reverse()
        self._notify(ListChangeType.ITEM_MOVED)

    def notify_item_changed(self, index: int, property_name: str | None = None) -> None:
        """Announce that the item at index changed internally."""
        index = self._normalize(index)
        self._notify(ListChangeType.ITEM_CHANGED, new_index=index, property_name=property_name)

    def __setitem__(self, index: int, value: T) -> None:
        index = self._normalize(index)
        del self._items[index]
        self._notify(ListChangeType.ITEM_DELETED, old_index=index)
        self._items.insert(index, value)
        self._notify(ListChangeType.ITEM_ADDED, new_index=index)

    def __delitem__(self, index: int) -> None:
        self.pop(index)

    def __repr__(self) -> str:
        return f"ObservableList({self._items!r})"
