"""deepwatch: deep change detection over observable object graphs."""

from importlib.metadata import version as _version

__version__ = _version("deepwatch")

from deepwatch.stream import EventStream
from deepwatch.observable import (
    ListChanged,
    ListChangeType,
    NotifiesListChanged,
    NotifiesPropertyChanged,
    ObservableList,
    ObservableObject,
    PropertyChanged,
)
from deepwatch.detector import ChangeDetector, ConsistencyError, ItemSlot

__all__ = [
    "ChangeDetector",
    "ConsistencyError",
    "ItemSlot",
    "EventStream",
    "ObservableObject",
    "ObservableList",
    "PropertyChanged",
    "ListChanged",
    "ListChangeType",
    "NotifiesPropertyChanged",
    "NotifiesListChanged",
]
