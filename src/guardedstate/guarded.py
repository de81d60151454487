"""
Guarded classes: copy-on-write transactions around every method call.

``@guarded`` builds a subclass of the decorated class with the same name and
public surface. Every method declared on the class is replaced by a wrapper
that runs the call as a transaction:

    idle -> cloning -> executing -> diffing -> reconciling -> notifying -> idle

1. Cloning: attributes with a clone depth > 0 are replaced by clones
2. Executing: the original method runs on the live instance
3. Diffing: with mutability checks enabled, everything reachable from the
   instance and the arguments was snapshotted before step 1 and is compared now
4. Illegal mutations (nested receiver paths, any argument change) roll the
   snapshot back and raise MethodNotImmutableError
5. Reconciling: cloned sub-trees that did not change are swapped back to the
   original references
6. Notifying: outermost calls push one TrackedMethodCall to the observers

Calls made while another call on the same instance is running are absorbed:
they run steps 1 to 5 but never notify; the outer call's record covers them.

Example:
    @guarded
    @clone_depth(items=1)
    class TodoList:
        def __init__(self):
            self.items = []

        def add(self, item):
            self.items.append(item)            # fine: items is a fresh copy

        def add_unchecked(self, item):
            self.items[0]['done'] = True       # raises MethodNotImmutableError
"""
import functools
import logging
import time
import types
from typing import Any, Callable, Dict, List, Mapping, Optional, Set, Tuple, TypeVar, Union, overload

from guardedstate.call_model import TrackedMethodCall
from guardedstate.errors import MethodNotImmutableError
from guardedstate.mutation_detector import InputMutations, MutationDetector
from guardedstate.settings import (
    get_class_metadata,
    is_guarded_class,
    register_guarded_class,
    resolve_settings,
)
from guardedstate.structural import deep_clone, flat_equal
from guardedstate.traversal import META_SLOT, MISSING, get_key, own_items, set_key

logger = logging.getLogger(__name__)

C = TypeVar('C', bound=type)

# Classes produced by create_guarded_class (never wrapped twice)
_generated_classes: Set[type] = set()


class InstanceMetadata:
    """Bookkeeping of one guarded instance, kept out of its observable state."""
    __slots__ = ('call_depth', 'constructing', 'observers')

    def __init__(self):
        self.call_depth = 0
        self.constructing = 0
        self.observers: List[Callable[[TrackedMethodCall], None]] = []


def get_instance_metadata(instance: Any) -> Optional[InstanceMetadata]:
    """Bookkeeping of a guarded instance, or None if ``instance`` is not guarded.

    Created on first access, so instances made without ``__init__`` (clones,
    unpickled objects) get fresh bookkeeping instead of sharing the original's.
    """
    if not is_guarded_class(type(instance)):
        return None
    metadata = getattr(instance, META_SLOT, None)
    if metadata is None:
        metadata = InstanceMetadata()
        object.__setattr__(instance, META_SLOT, metadata)
    return metadata


def is_guarded_instance(instance: Any) -> bool:
    """True if ``instance`` is an instance of a guarded class."""
    return is_guarded_class(type(instance))


def get_original_class(cls: type) -> Optional[type]:
    """The undecorated class behind a guarded class (or subclass), if any."""
    metadata = get_class_metadata(cls)
    return metadata.original_class if metadata is not None else None


@overload
def guarded(cls: C) -> C: ...


@overload
def guarded() -> Callable[[C], C]: ...


def guarded(cls: Optional[C] = None) -> Union[C, Callable[[C], C]]:
    """
    Declare a class as guarded (usable as ``@guarded`` or ``@guarded()``).

    Method calls on instances clone attributes to their configured depth
    (see :func:`guardedstate.settings.clone_depth`). With mutability checks
    enabled, a method that modifies nested values of the instance or any value
    reachable from its arguments raises :class:`MethodNotImmutableError`.

    Assigning new values to attributes always works:
        self.items = [*self.items, item]
        self.items = self.items + [item]
    """
    if cls is None:
        return create_guarded_class
    return create_guarded_class(cls)


def create_guarded_class(original_class: C) -> C:
    """Build the guarded subclass of ``original_class``.

    The subclass keeps the name, qualname, module and docstring of the original.
    Every plain function declared in the class body (except dunder methods) is
    replaced by a transaction wrapper; static methods, class methods and
    properties are left as they are.

    Raises:
        TypeError: If instances of ``original_class`` have no ``__dict__``.
    """
    if original_class in _generated_classes:
        return original_class

    if not any('__dict__' in vars(klass) for klass in original_class.__mro__):
        raise TypeError(f"{original_class.__name__} instances have no __dict__ and cannot be guarded")

    namespace: Dict[str, Any] = {
        '__module__': original_class.__module__,
        '__qualname__': original_class.__qualname__,
        '__doc__': original_class.__doc__,
        '__init__': _create_constructor(original_class),
    }
    if not hasattr(original_class, META_SLOT):
        namespace['__slots__'] = (META_SLOT,)

    # Dispatch table: one transaction wrapper per declared method
    for name, member in vars(original_class).items():
        if _is_guardable_method(name, member):
            namespace[name] = _create_method_wrapper(member, name, original_class)

    guarded_class = type(original_class)(original_class.__name__, (original_class,), namespace)
    register_guarded_class(guarded_class, original_class)
    _generated_classes.add(guarded_class)
    return guarded_class


def _is_guardable_method(name: str, member: Any) -> bool:
    if name.startswith('__') and name.endswith('__'):
        return False
    return isinstance(member, types.FunctionType)


def _create_constructor(original_class: type) -> Callable[..., None]:
    """Constructor running the original ``__init__`` without transactions."""
    original_init = original_class.__init__

    def __init__(self, *args, **kwargs):
        metadata = get_instance_metadata(self)
        metadata.constructing += 1
        try:
            original_init(self, *args, **kwargs)
        finally:
            metadata.constructing -= 1

    __init__.__qualname__ = f"{original_class.__qualname__}.__init__"
    __init__.__doc__ = getattr(original_init, '__doc__', None)
    return __init__


def _create_method_wrapper(original_method: Callable[..., Any], method_name: str, original_class: type) -> Callable[..., Any]:

    @functools.wraps(original_method)
    def guarded_method(self, *args, **kwargs):
        metadata = get_instance_metadata(self)
        if metadata is None or metadata.constructing:
            return original_method(self, *args, **kwargs)

        transaction = CallTransaction(self, metadata, original_method, method_name, original_class)
        return transaction.run(args, kwargs)

    return guarded_method


class CallTransaction:
    """One guarded method call on one instance."""

    def __init__(
        self,
        instance: Any,
        metadata: InstanceMetadata,
        original_method: Callable[..., Any],
        method_name: str,
        original_class: type,
    ):
        self.instance = instance
        self.metadata = metadata
        self.original_method = original_method
        self.method_name = method_name
        self.original_class = original_class

        class_metadata = get_class_metadata(type(instance))
        self.clone_depths: Dict[str, int] = class_metadata.clone_depth if class_metadata else {}
        self.pre_image: Dict[str, Any] = {}
        self.call_duration = -1.0

    def run(self, args: Tuple[Any, ...], kwargs: Dict[str, Any]) -> Any:
        settings = resolve_settings(type(self.instance))
        # Depth 0 before this call starts means this is the outermost call
        is_outermost = self.metadata.call_depth == 0

        if settings.check_mutability:
            detector = MutationDetector(args, kwargs, this=self.instance)
            return_value = self._execute(args, kwargs)

            mutations = detector.collect()
            if mutations and is_illegal_mutation(mutations):
                detector.rollback()
                logger.error(f"{self.original_class.__qualname__}.{self.method_name} mutates properties; call rolled back")
                raise MethodNotImmutableError(mutations, self.original_method, self.original_class, self.method_name)
        else:
            return_value = self._execute(args, kwargs)

        if is_outermost and self.metadata.observers:
            self._notify(args, kwargs, return_value)

        return return_value

    def _execute(self, args: Tuple[Any, ...], kwargs: Dict[str, Any]) -> Any:
        """Clone, run the original method, reconcile unchanged references."""
        attributes = vars(self.instance)
        self.pre_image = dict(attributes)

        for key, value in self.pre_image.items():
            depth = self.clone_depths.get(key, 0)
            if depth > 0:
                attributes[key] = deep_clone(value, depth - 1)

        started = time.perf_counter()
        self.metadata.call_depth += 1
        try:
            return_value = self.original_method(self.instance, *args, **kwargs)
            self.call_duration = (time.perf_counter() - started) * 1000
        finally:
            self.metadata.call_depth -= 1

        restore_unchanged_properties(self.instance, self.pre_image, self.clone_depths)
        return return_value

    def _notify(self, args: Tuple[Any, ...], kwargs: Dict[str, Any], return_value: Any) -> None:
        call = TrackedMethodCall.create(
            instance=self.instance,
            method_name=self.method_name,
            arguments=args,
            keyword_arguments=kwargs,
            return_value=return_value,
            call_duration=self.call_duration,
            old_properties=self.pre_image,
            new_properties=vars(self.instance),
        )
        logger.debug(
            f"{self.original_class.__qualname__}.{self.method_name} took {self.call_duration:.3f}ms, "
            f"changed: {sorted(call.changes) if call.changes else 'nothing'}"
        )
        for observer in list(self.metadata.observers):
            observer(call)


def is_illegal_mutation(mutations: InputMutations) -> bool:
    """Nested receiver changes and any argument change are illegal.

    Top-level receiver changes (path length 1) are exactly the
    clone-then-reassign pattern guarded classes exist to allow.
    """
    return any(len(change.path) > 1 for change in mutations.this) or bool(mutations.args)


def restore_unchanged_properties(target: Any, original: Any, depth: Union[int, Mapping[str, int]]) -> None:
    """
    Swap cloned sub-trees that did not change back to their original references.

    Works bottom-up to the given depth: whenever a value of ``target`` is
    flat-equal to the value at the same key in ``original``, the original
    reference is written back into ``target``.

    Args:
        target: Object holding the (possibly cloned) values
        original: Object or mapping holding the values from before the call
        depth: Depth for every key, or a mapping of key to depth
    """
    for key, value in own_items(target) or ():
        property_depth = depth if isinstance(depth, int) else depth.get(key, 0)
        if property_depth <= 0:
            continue

        original_value = get_key(original, key)
        if original_value is MISSING or value is original_value:
            continue

        # Value objects (dates, patterns, ...) have no own items but are copied too
        if own_items(value) is not None:
            restore_unchanged_properties(value, original_value, property_depth - 1)
            value = get_key(target, key)

        if value is not original_value and flat_equal(value, original_value):
            set_key(target, key, original_value)
