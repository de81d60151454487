"""
Object graph traversal helpers.

Every component of guardedstate looks at an object graph the same way: a value
is either a primitive (never descended into) or an object with "own items",
the (key, value) pairs that make up its observable state:

- Mappings: their keys and values
- Sequences (except str/bytes): their indices and elements
- Sets: each member, keyed by itself
- Plain instances: their ``__dict__``

Functions, classes, modules and enum members are treated as opaque values.
"""
from collections import deque
from collections.abc import Mapping, MutableMapping, MutableSequence, MutableSet, Sequence, Set as AbstractSet
import enum
import types
from typing import Any, Callable, Hashable, List, Optional, Tuple


class _Missing:
    """Sentinel for absent keys and absent old/new values."""
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return 'MISSING'

    def __bool__(self) -> bool:
        return False

    def __copy__(self):
        return self

    def __deepcopy__(self, memo):
        return self


MISSING: Any = _Missing()

Path = Tuple[Hashable, ...]

PRIMITIVE_TYPES = (type(None), bool, int, float, complex, str, bytes)

# Values that are never descended into, even though some of them carry a __dict__
OPAQUE_TYPES = (
    type,
    types.ModuleType,
    types.FunctionType,
    types.BuiltinFunctionType,
    types.MethodType,
    enum.Enum,
    range,
    memoryview,
    _Missing,
)

# Slot holding per-instance bookkeeping of guarded instances (outside __dict__)
META_SLOT = '_guarded_meta'


def is_primitive(value: Any) -> bool:
    """True for values that are compared by value and never cloned."""
    return isinstance(value, PRIMITIVE_TYPES)


def own_items(value: Any) -> Optional[List[Tuple[Hashable, Any]]]:
    """Return the (key, value) pairs of a traversable value.

    Returns:
        A new list of pairs, or None when ``value`` is not an object
        (primitives and opaque values).
    """
    if isinstance(value, PRIMITIVE_TYPES) or isinstance(value, OPAQUE_TYPES):
        return None
    if isinstance(value, Mapping):
        return list(value.items())
    if isinstance(value, Sequence):
        return list(enumerate(value))
    if isinstance(value, AbstractSet):
        return [(member, member) for member in value]
    attributes = getattr(value, '__dict__', None)
    if isinstance(attributes, dict):
        return list(attributes.items())
    return None


def slot_items(value: Any) -> List[Tuple[str, Any]]:
    """Populated ``__slots__`` of an instance, except guarded bookkeeping.

    Slots are not own items: they never show up in :func:`own_items`.
    """
    items = []
    for klass in type(value).__mro__:
        slots = vars(klass).get('__slots__', ())
        if isinstance(slots, str):
            slots = (slots,)
        for name in slots:
            if name in ('__dict__', '__weakref__', META_SLOT):
                continue
            if name.startswith('__') and not name.endswith('__'):
                name = f"_{klass.__name__.lstrip('_')}{name}"
            slot_value = getattr(value, name, MISSING)
            if slot_value is not MISSING:
                items.append((name, slot_value))
    return items


def is_traversable(value: Any) -> bool:
    """True if ``value`` has own items (see :func:`own_items`)."""
    return own_items(value) is not None


def get_key(value: Any, key: Hashable, default: Any = MISSING) -> Any:
    """Read a single own item of ``value``."""
    if isinstance(value, Mapping):
        return value.get(key, default)
    if isinstance(value, Sequence) and not isinstance(value, (str, bytes)):
        if isinstance(key, int) and 0 <= key < len(value):
            return value[key]
        return default
    if isinstance(value, AbstractSet):
        return key if key in value else default
    attributes = getattr(value, '__dict__', None)
    if isinstance(attributes, dict):
        return attributes.get(key, default)
    return default


def set_key(value: Any, key: Hashable, item: Any) -> bool:
    """Write a single own item of ``value``.

    Instance attributes are written to ``__dict__`` directly so that frozen
    dataclasses and custom ``__setattr__`` hooks do not interfere.

    Returns:
        False if ``value`` is immutable (tuple, frozenset, ...) and was left as is.
    """
    if isinstance(value, MutableMapping):
        value[key] = item
        return True
    if isinstance(value, MutableSequence):
        value[key] = item
        return True
    if isinstance(value, (Mapping, Sequence, AbstractSet)):
        return False
    attributes = getattr(value, '__dict__', None)
    if isinstance(attributes, dict):
        attributes[key] = item
        return True
    return False


def replace_items(value: Any, items: List[Tuple[Hashable, Any]]) -> bool:
    """Replace all own items of a mutable object with ``items``.

    Returns:
        False if ``value`` is immutable and could not be written.
    """
    if isinstance(value, MutableMapping):
        value.clear()
        value.update(items)
        return True
    if isinstance(value, MutableSequence):
        value.clear()
        value.extend(item for _, item in items)
        return True
    if isinstance(value, MutableSet):
        value.clear()
        for _, member in items:
            value.add(member)
        return True
    if isinstance(value, (Mapping, Sequence, AbstractSet)):
        return False
    attributes = getattr(value, '__dict__', None)
    if isinstance(attributes, dict):
        attributes.clear()
        attributes.update(items)
        return True
    return False


def traverse_object(value: Any, callback: Callable[[Any, Path], None]) -> None:
    """Traverse an object and its children breadth-first.

    The callback is called once per object with the path from ``value``.
    Objects referenced more than once (or cyclically) are only visited once.
    """
    if own_items(value) is None:
        return

    traversed = set()
    queue = deque([((), value)])

    while queue:
        path, current = queue.popleft()
        if id(current) in traversed:
            continue
        traversed.add(id(current))
        callback(current, path)

        for key, child in own_items(current) or ():
            if own_items(child) is not None:
                queue.append(((*path, key), child))


def is_cyclic_structure(value: Any) -> bool:
    """True if any object in ``value`` contains itself as a (nested) child.

    If this returns False, ``value`` can be traversed recursively without
    running into an infinite loop.
    """
    if own_items(value) is None:
        return False
    return _is_cyclic(value, set(), set())


def _is_cyclic(value: Any, parents: set, traversed: set) -> bool:
    if id(value) in parents:
        return True
    if id(value) in traversed:
        return False

    traversed.add(id(value))
    parents = parents | {id(value)}

    for _, child in own_items(value) or ():
        if own_items(child) is not None and _is_cyclic(child, parents, traversed):
            return True
    return False


def has_shared_references(value: Any) -> bool:
    """True if ``value`` contains any object reference more than once."""
    if own_items(value) is None:
        return False
    return _has_shared_references(value, set())


def _has_shared_references(value: Any, traversed: set) -> bool:
    if id(value) in traversed:
        return True
    traversed.add(id(value))

    for _, child in own_items(value) or ():
        if own_items(child) is not None and _has_shared_references(child, traversed):
            return True
    return False
