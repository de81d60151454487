"""
Copy-on-change helpers that keep references whenever nothing changed.

All helpers return their input unchanged (same object) if the operation does
not change any value, and a new object otherwise. They are meant for guarded
methods with a clone depth of 0:

    def complete(self, index):
        self.todos = with_changes(self.todos, {index: {**self.todos[index], 'done': True}})
"""
from collections.abc import Mapping
from typing import Any, Callable, Hashable, List, Mapping as MappingType, TypeVar, Union

from guardedstate.structural import deep_clone, deep_equal, differs, flat_equal, same_value
from guardedstate.traversal import MISSING, PRIMITIVE_TYPES, get_key, own_items, set_key

T = TypeVar('T')


def deep_apply_with_reuse(a: Any, b: Any) -> Any:
    """
    Apply ``b`` onto ``a`` deeply, reusing every sub-tree of ``a`` that stays equal.

    Mappings and plain objects are merged key by key; keys of ``a`` that
    ``b`` does not mention are kept. Lists and tuples are replaced as a whole,
    but elements deep-equal to the element at the same index of ``a`` keep
    their old reference. If nothing differs, ``a`` itself is returned.

    Example:
        old = {'pos': {'x': 1, 'y': 2}, 'color': 'green'}
        new = deep_apply_with_reuse(old, {'pos': {'x': 1, 'y': 2}, 'color': 'red'})
        # new['pos'] is old['pos'], new['color'] == 'red'
    """
    if same_value(a, b):
        return a
    if a is None or b is None or isinstance(a, PRIMITIVE_TYPES):
        return b

    if isinstance(a, (list, tuple)):
        if type(b) is not type(a):
            return b
        return _apply_sequence(a, b)

    if isinstance(a, Mapping):
        if not isinstance(b, Mapping):
            return b
        return _apply_keyed(a, b.items())

    if own_items(a) is not None and not isinstance(a, (set, frozenset)):
        if isinstance(b, Mapping):
            return _apply_keyed(a, b.items())
        if type(b) is type(a) and isinstance(getattr(b, '__dict__', None), dict):
            return _apply_keyed(a, vars(b).items())

    # Sets, dates, patterns and other value objects
    return a if deep_equal(a, b) else b


def _apply_sequence(a: Union[list, tuple], b: Union[list, tuple]) -> Any:
    changed = len(a) != len(b)
    result: List[Any] = []
    for index, item in enumerate(b):
        if index < len(a) and deep_equal(a[index], item):
            result.append(a[index])
        else:
            changed = True
            result.append(item)

    if not changed:
        return a
    if isinstance(a, list):
        return result
    if hasattr(a, '_fields'):
        return type(a)._make(result)
    return type(a)(result)


def _apply_keyed(a: Any, items: Any) -> Any:
    clone = None
    for key, value in items:
        old_value = get_key(a, key)
        new_value = value if old_value is MISSING else deep_apply_with_reuse(old_value, value)
        if old_value is MISSING or not same_value(old_value, new_value):
            if clone is None:
                clone = deep_clone(a, 0)
            set_key(clone, key, new_value)
    return a if clone is None else clone


def map_values(value: T, fn: Callable[[Any, Hashable, T], Any]) -> T:
    """
    Map the values of a list, tuple, mapping or object.

    ``fn`` is called as ``fn(item, key, value)`` (the key is the index for
    sequences). When every result equals its input item by one-level
    comparison, ``value`` itself is returned.
    """
    items = own_items(value)
    if items is None or isinstance(value, (set, frozenset)):
        raise TypeError(f"Cannot map values of {type(value).__name__}")

    changed = False
    results = []
    for key, item in items:
        result = fn(item, key, value)
        if differs(result, item):
            changed = True
            results.append((key, result))
        else:
            results.append((key, item))

    if not changed:
        return value
    if isinstance(value, list):
        return [item for _, item in results]
    if isinstance(value, tuple):
        mapped = [item for _, item in results]
        return type(value)._make(mapped) if hasattr(value, '_fields') else type(value)(mapped)

    clone = deep_clone(value, 0)
    for key, item in results:
        set_key(clone, key, item)
    return clone


def mutate(value: T, mutator: Callable[[T], Any]) -> T:
    """
    Let ``mutator`` change a shallow copy of ``value``.

    Returns the copy if any own item of it differs from ``value``,
    otherwise ``value`` itself.

    Example:
        todos = mutate(todos, lambda copy: copy.append(todo))
    """
    clone = deep_clone(value, 0)
    if clone is value:
        raise TypeError(f"Cannot mutate a copy of {type(value).__name__}")

    mutator(clone)
    return value if flat_equal(value, clone) else clone


def with_changes(value: T, changes: Union[MappingType[Hashable, Any], Callable[[T], Any]]) -> T:
    """
    Copy-on-change assignment.

    ``changes`` is either a mapping of keys (indices for lists) to new values,
    or a callback receiving a shallow copy to change (see :func:`mutate`).
    ``value`` is returned unchanged if no item would change.

    Raises:
        TypeError: If ``value`` is immutable and items would have to change.
    """
    if callable(changes):
        return mutate(value, changes)

    if all(same_value(get_key(value, key), item) for key, item in changes.items()):
        return value

    clone = deep_clone(value, 0)
    for key, item in changes.items():
        if not set_key(clone, key, item):
            raise TypeError(f"Cannot assign items of {type(value).__name__}")
    return clone
