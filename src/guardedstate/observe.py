"""
Change notification for guarded instances.

The push interface is intentionally minimal: ``subscribe(observer)`` returns a
:class:`Subscription` whose ``unsubscribe()`` (or call) removes the observer.
Third-party observable types can wrap it through ``observable_factory``:

    import reactivex
    stream = observe_guarded(
        todo_list,
        lambda subscribe: reactivex.create(lambda observer, _: subscribe(observer)),
    )
"""
from typing import Any, Callable, Generic, List, Optional, TypeVar

from guardedstate.call_model import TrackedMethodCall
from guardedstate.errors import NotGuardedError
from guardedstate.guarded import get_instance_metadata

T = TypeVar('T')

Observer = Callable[[T], None]


class Subscription:
    """Handle returned by :meth:`Subscribable.subscribe`.

    Unsubscribing removes every occurrence of the observer and is idempotent.
    """

    def __init__(self, observers: List[Callable[[Any], None]], callback: Callable[[Any], None]):
        self._observers = observers
        self._callback = callback
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def unsubscribe(self) -> None:
        while self._callback in self._observers:
            self._observers.remove(self._callback)
        self._closed = True

    # Allow `unsubscribe = stream.subscribe(fn); unsubscribe()`
    __call__ = unsubscribe

    # reactivex Disposable protocol
    dispose = unsubscribe


class Subscribable(Generic[T]):
    """Plain push stream over an observer list owned by someone else."""

    def __init__(self, observers: List[Callable[[T], None]]):
        self._observers = observers

    def subscribe(self, observer: Any) -> Subscription:
        """Subscribe a callable, or an object with ``on_next`` (or ``next``)."""
        callback = _as_callback(observer)
        self._observers.append(callback)
        return Subscription(self._observers, callback)


def _as_callback(observer: Any) -> Callable[[Any], None]:
    for method_name in ('on_next', 'next'):
        method = getattr(observer, method_name, None)
        if callable(method):
            return method
    if callable(observer):
        return observer
    raise TypeError(f"{type(observer).__name__} is neither callable nor has an on_next method")


def observe_guarded(
    instance: Any,
    observable_factory: Optional[Callable[[Callable[[Any], Subscription]], Any]] = None,
) -> Any:
    """
    Get notified about method calls on a guarded instance.

    Every outermost method call pushes one :class:`TrackedMethodCall`; its
    ``changes`` is None when no property reference changed.

    Args:
        instance: A guarded instance
        observable_factory: Optional factory called with the ``subscribe``
            function, to adapt the stream to a third-party observable type

    Raises:
        NotGuardedError: If ``instance`` is not an instance of a guarded class.
    """
    metadata = get_instance_metadata(instance)
    if metadata is None:
        class_name = type(instance).__name__
        raise NotGuardedError(f"{class_name} is not decorated as @guarded.")

    subscribable: Subscribable[TrackedMethodCall] = Subscribable(metadata.observers)
    if observable_factory is not None:
        return observable_factory(subscribable.subscribe)
    return subscribable
