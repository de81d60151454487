"""
Errors raised by guardedstate.

- MethodNotImmutableError: a guarded method mutated nested state in place or
  mutated one of its arguments. The call was rolled back.
- NotGuardedError: an API that requires a guarded class or instance was used
  with something that is not guarded (a programming error).
"""
import datetime
import inspect
import re
import types
from typing import Any, Callable, Dict, Hashable, Iterable, List, Optional, Tuple, Union

from guardedstate.mutation_detector import ChangedProperty, InputMutations

_NUMERIC_INDEX = re.compile(r'^(?:0|[1-9]\d*)$')


class GuardedStateError(Exception):
    """Base class for all guardedstate errors."""


class NotGuardedError(GuardedStateError, TypeError):
    """Raised when a guarded class or instance is required but not given."""


class MethodNotImmutableError(GuardedStateError):
    """
    Raised when a guarded method modifies its input values in place.

    Attributes:
        class_name: Name of the class declaring the method (or None)
        method: Name of the method
        mutations: The structured mutation records (use these programmatically)
        diff: Human-readable rendering of ``mutations``, one line per change
    """

    def __init__(
        self,
        mutations: InputMutations,
        original_method: Optional[Callable[..., Any]] = None,
        original_class: Optional[type] = None,
        method_name: Optional[str] = None,
    ):
        if not method_name:
            method_name = getattr(original_method, '__name__', '<method>')

        class_name = original_class.__name__ if original_class is not None else None
        message = f"{class_name + '.' if class_name else ''}{method_name} mutates properties."
        super().__init__(message)

        self.message = message
        self.class_name = class_name
        self.method = method_name
        self.mutations = mutations
        self.diff = create_mutation_diff(mutations, _argument_names(original_method))

    def __str__(self) -> str:
        return f"{self.message}\n\nChanges:\n{self.diff}"


def create_mutation_diff(mutations: InputMutations, argument_names: Dict[int, str]) -> str:
    """Render mutations as sorted ``+path value`` / ``-path value`` lines.

    Lines are sorted by path; at the same path, additions come before removals.
    Receiver paths start with ``self``, argument paths with the parameter name.
    """
    labelled: List[Tuple[str, ChangedProperty]] = [
        ('self' + path_to_string(change.path), change) for change in mutations.this
    ]
    for key, changes in mutations.args.items():
        root = _argument_label(key, argument_names)
        labelled.extend((root + path_to_string(change.path), change) for change in changes)

    lines: List[Tuple[str, str, str]] = []
    for path, change in labelled:
        if not change.is_removal:
            lines.append(('+', path, format_value(change.new_value)))
        if not change.is_addition:
            lines.append(('-', path, format_value(change.old_value)))

    if not lines:
        return ''

    lines.sort(key=lambda line: (line[1], line[0] != '+'))
    longest_path = max(len(path) for _, path, _ in lines)
    return '\n'.join(f"{sign}{path.ljust(longest_path)}   {value}" for sign, path, value in lines)


def _argument_label(key: Union[int, str], argument_names: Dict[int, str]) -> str:
    if isinstance(key, str):
        return key
    return argument_names.get(key, f"<argument {key}>")


def _argument_names(method: Optional[Callable[..., Any]]) -> Dict[int, str]:
    """Map positional argument indices (after ``self``) to parameter names."""
    if method is None:
        return {}
    try:
        parameters = list(inspect.signature(method).parameters.values())
    except (TypeError, ValueError):
        return {}

    names: Dict[int, str] = {}
    for index, parameter in enumerate(parameters[1:]):
        if parameter.kind not in (parameter.POSITIONAL_ONLY, parameter.POSITIONAL_OR_KEYWORD):
            break
        names[index] = parameter.name
    return names


def path_to_string(path: Iterable[Hashable]) -> str:
    """
    Format a path as Python access syntax.

    Example:
        path_to_string(('items', 3, 'id'))  # => ".items[3].id"
    """
    parts = []
    for part in path:
        if isinstance(part, int) and not isinstance(part, bool):
            parts.append(f"[{part}]")
        elif isinstance(part, str) and _NUMERIC_INDEX.match(part):
            parts.append(f"[{part}]")
        elif isinstance(part, str) and part.isidentifier():
            parts.append(f".{part}")
        else:
            parts.append(f"[{part!r}]")
    return ''.join(parts)


def format_value(value: Any) -> str:
    """Format any value as a short single-line representation."""
    if isinstance(value, str):
        return repr(value)
    if value is None or isinstance(value, (bool, int, float, complex)):
        return repr(value)
    if isinstance(value, list):
        return '[' + ','.join(format_value(item) for item in value) + ']'
    if isinstance(value, tuple):
        return '(' + ','.join(format_value(item) for item in value) + ')'
    if isinstance(value, (types.FunctionType, types.MethodType, types.BuiltinFunctionType)):
        return 'function'
    if isinstance(value, re.Pattern):
        return repr(value)
    if isinstance(value, (datetime.date, datetime.time)):
        return value.isoformat()
    return f"<{type(value).__name__}>"
