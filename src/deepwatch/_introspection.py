"""Shape discovery — which slots of an object can change internally.

A property is "compounding" when its declared type is an observable object,
an observable list, or the universal type (object / Any / undeclared), in
which case the value is checked at runtime instead.

Declared properties come from class annotations and from property getters'
return annotations; public instance attributes without a declaration count as
the universal type. A class can bypass introspection by listing its slots:

    class Order(ObservableObject):
        __tracked__ = ("customer", "lines")
"""

from __future__ import annotations

import enum
import inspect
import types
import typing
import weakref
from typing import Any, ClassVar, Iterator, NamedTuple, Union

from deepwatch.observable import NotifiesListChanged, NotifiesPropertyChanged


class Capability(enum.Flag):
    NONE = 0
    PROPERTIES = enum.auto()
    LIST = enum.auto()


class PropertySlot(NamedTuple):
    name: str
    value: Any


def capabilities_of(value: object) -> Capability:
    """Which notification contracts value satisfies."""
    caps = Capability.NONE
    if value is None or isinstance(value, type):
        return caps
    if isinstance(value, NotifiesPropertyChanged):
        caps |= Capability.PROPERTIES
    if isinstance(value, NotifiesListChanged):
        caps |= Capability.LIST
    return caps


def is_compounding(value: object) -> bool:
    """Runtime check: does value notify about its own changes?"""
    return bool(capabilities_of(value))


def is_compounding_type(tp: Any) -> bool:
    """Declaration-time check on a type annotation."""
    if tp is object or tp is Any:
        return True
    origin = typing.get_origin(tp)
    if origin is Union or origin is types.UnionType:
        return any(is_compounding_type(arg) for arg in typing.get_args(tp) if arg is not type(None))
    if origin is not None:
        tp = origin
    if not isinstance(tp, type):
        return False
    return issubclass(tp, (NotifiesPropertyChanged, NotifiesListChanged))


def _is_classvar(tp: Any) -> bool:
    if isinstance(tp, str):
        return tp.startswith(("ClassVar", "typing.ClassVar"))
    return tp is ClassVar or typing.get_origin(tp) is ClassVar


def _annotations(cls: type) -> dict[str, Any]:
    try:
        return typing.get_type_hints(cls)
    except (NameError, TypeError):
        # Unresolvable forward refs: keep the raw annotations, strings become
        # the universal type below.
        hints: dict[str, Any] = {}
        for klass in reversed(cls.__mro__):
            hints.update(inspect.get_annotations(klass))
        return hints


def _return_annotation(prop: property) -> Any:
    if prop.fget is None:
        return object
    try:
        return typing.get_type_hints(prop.fget).get("return", object)
    except (NameError, TypeError):
        return object


# Weak keys, so classes created at runtime can still be collected.
_declared_cache: weakref.WeakKeyDictionary[type, dict[str, Any]] = weakref.WeakKeyDictionary()


def declared_properties(cls: type) -> dict[str, Any]:
    """Public property names of cls mapped to their declared types."""
    try:
        return _declared_cache[cls]
    except KeyError:
        pass
    declared = _declared_cache[cls] = _declare(cls)
    return declared


def _declare(cls: type) -> dict[str, Any]:
    explicit = getattr(cls, "__tracked__", None)
    if explicit is not None:
        return {name: object for name in explicit}

    declared: dict[str, Any] = {}
    for name, tp in _annotations(cls).items():
        if name.startswith("_") or _is_classvar(tp):
            continue
        declared[name] = object if isinstance(tp, str) else tp

    for klass in reversed(cls.__mro__):
        for name, attr in vars(klass).items():
            if isinstance(attr, property) and not name.startswith("_"):
                declared[name] = _return_annotation(attr)
    return declared


def _undeclared_attributes(obj: object) -> list[str]:
    """Public instance attributes without a declaration; typed as object."""
    cls = type(obj)
    if getattr(cls, "__tracked__", None) is not None:
        return []
    declared = declared_properties(cls)
    return [
        name
        for name in getattr(obj, "__dict__", {})
        if not name.startswith("_") and name not in declared
    ]


def is_compounding_slot(obj: object, name: str) -> bool:
    """Does property name of obj warrant its own subtree?"""
    declared = declared_properties(type(obj))
    if name in declared:
        return is_compounding_type(declared[name])
    return name in _undeclared_attributes(obj)


def compounding_slots(obj: object) -> Iterator[PropertySlot]:
    """Current values of every compounding property of obj."""
    for name, tp in declared_properties(type(obj)).items():
        if is_compounding_type(tp):
            yield PropertySlot(name, getattr(obj, name, None))
    for name in _undeclared_attributes(obj):
        yield PropertySlot(name, getattr(obj, name))
