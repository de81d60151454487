"""
Structural primitives: depth-limited deep clone, flat equality and deep equality.

These are pure functions without state. They share the object model of
:mod:`guardedstate.traversal`: primitives are compared by value and never
cloned, everything else is an object with own items.
"""
from collections.abc import Mapping, MutableSequence, Set as AbstractSet
import copy
import datetime
import math
import re
import types
from typing import Any, TypeVar

from guardedstate.traversal import MISSING, PRIMITIVE_TYPES, OPAQUE_TYPES, own_items, slot_items

T = TypeVar('T')

# Value objects copied by their own copy operation at any depth
_VALUE_TYPES = (datetime.date, datetime.time, datetime.timedelta, re.Pattern)

__all__ = ['MISSING', 'same_value', 'deep_clone', 'flat_equal', 'deep_equal', 'differs']


def same_value(a: Any, b: Any) -> bool:
    """Reference equality with value semantics for primitives.

    Two values are the same if they are the same object, or primitives of the
    same type with equal value. NaN is treated as equal to itself.
    """
    if a is b:
        return True
    if type(a) is not type(b) or not isinstance(a, PRIMITIVE_TYPES):
        return False
    if isinstance(a, float) and math.isnan(a) and math.isnan(b):
        return True
    return a == b


def deep_clone(value: T, depth: float = math.inf) -> T:
    """
    Create a deep clone that is equal by value and different by reference.

    The clone has the same type as the original with all own items copied or
    cloned. Primitives, classes, modules and enum members are returned as is.

    Args:
        value: The value to clone
        depth: How many levels below ``value`` are cloned as well. With
               ``depth=0`` the clone is a shallow copy (own items copied by
               reference); a negative depth returns ``value`` unchanged.

    Returns:
        The clone.
    """
    if depth < 0 or isinstance(value, PRIMITIVE_TYPES):
        return value
    if isinstance(value, types.FunctionType):
        return _clone_function(value, depth)
    if isinstance(value, OPAQUE_TYPES):
        return value

    if isinstance(value, tuple):
        items = [deep_clone(item, depth - 1) for item in value]
        if hasattr(value, '_fields'):
            return type(value)._make(items)
        return type(value)(items)

    if isinstance(value, list):
        clone = copy.copy(value)
        clone[:] = [deep_clone(item, depth - 1) for item in value]
        return clone

    if isinstance(value, dict):
        # copy.copy keeps the dict subclass and settings such as default_factory
        clone = copy.copy(value)
        for key, item in value.items():
            clone[key] = deep_clone(item, depth - 1)
        return clone

    if isinstance(value, MutableSequence):
        # deque, bytearray, UserList, ...: copy.copy keeps settings such as maxlen
        clone = copy.copy(value)
        clone.clear()
        clone.extend(deep_clone(item, depth - 1) for item in value)
        return clone

    if isinstance(value, (AbstractSet, _VALUE_TYPES)) or hasattr(type(value), '__copy__'):
        return copy.copy(value)

    attributes = getattr(value, '__dict__', None)
    if isinstance(attributes, dict):
        cls = type(value)
        clone = cls.__new__(cls)
        # Slots are not observable state: shared by reference
        for name, slot_value in slot_items(value):
            object.__setattr__(clone, name, slot_value)
        clone.__dict__.update(
            (key, deep_clone(item, depth - 1)) for key, item in attributes.items()
        )
        return clone

    # Remaining immutable sequences and anything copyable
    return copy.copy(value)


def _clone_function(fn: types.FunctionType, depth: float) -> types.FunctionType:
    """Wrap a function so that its own attributes can be cloned."""

    def cloned_function(*args, **kwargs):
        return fn(*args, **kwargs)

    cloned_function.__module__ = fn.__module__
    cloned_function.__name__ = fn.__name__
    cloned_function.__qualname__ = fn.__qualname__
    cloned_function.__doc__ = fn.__doc__
    cloned_function.__dict__.update(
        (key, deep_clone(item, depth - 1)) for key, item in fn.__dict__.items()
    )
    return cloned_function


def flat_equal(a: Any, b: Any) -> bool:
    """
    True if a and b have the same own items and all items are the same value.

    Only compares one level: nested objects are compared by reference, never
    recursed into. This makes it cheap enough to decide whether a freshly
    cloned sub-tree can be replaced with the original reference.
    """
    if same_value(a, b):
        return True
    if type(a) is not type(b):
        return False

    items_a = own_items(a)
    items_b = own_items(b)
    if items_a is None or items_b is None:
        return isinstance(a, _VALUE_TYPES) and a == b
    if len(items_a) != len(items_b):
        return False

    lookup_b = dict(items_b)
    return all(
        key in lookup_b and same_value(item, lookup_b[key])
        for key, item in items_a
    )


def deep_equal(a: Any, b: Any) -> bool:
    """
    Deep-compare two values.

    Returns True only if the two values are equal primitives, sequences with
    deeply equal elements, or objects of the same type with the same keys and
    deeply equal values. Dates compare by value, patterns by source and flags,
    NaN equals NaN.
    """
    if same_value(a, b):
        return True
    if type(a) is not type(b) or isinstance(a, PRIMITIVE_TYPES):
        return False

    if isinstance(a, re.Pattern):
        return a.pattern == b.pattern and a.flags == b.flags
    if isinstance(a, _VALUE_TYPES) or isinstance(a, AbstractSet):
        return a == b
    if isinstance(a, OPAQUE_TYPES):
        return False

    items_a = own_items(a)
    items_b = own_items(b)
    if items_a is None or items_b is None:
        return a == b
    if len(items_a) != len(items_b):
        return False

    if isinstance(a, Mapping) or not isinstance(a, (list, tuple)):
        # Keyed objects: key order does not matter
        lookup_b = dict(items_b)
        return all(
            key in lookup_b and deep_equal(item, lookup_b[key])
            for key, item in items_a
        )

    return all(deep_equal(item_a, item_b) for (_, item_a), (_, item_b) in zip(items_a, items_b))


def differs(a: Any, b: Any) -> bool:
    """
    Compare two values by value or by the values of their own items.

    No deep comparison of nested objects is done, only one level deep.
    Unlike :func:`flat_equal`, the order of keys is significant.
    """
    items_a = own_items(a)
    if items_a is None:
        return not same_value(a, b)

    items_b = own_items(b)
    if items_b is None or type(a) is not type(b):
        return True
    if len(items_a) != len(items_b):
        return True

    for (key_a, item_a), (key_b, item_b) in zip(items_a, items_b):
        if key_a != key_b or not same_value(item_a, item_b):
            return True
    return False
