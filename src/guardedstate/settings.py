"""
Configuration resolution for guarded classes.

Per-class configuration is kept in side tables keyed by class identity,
never attached through annotations or reflection:

- _clone_depth_registry: class -> {attribute name: clone depth}
- _class_metadata: generated guarded class -> GuardedClassMetadata
- _class_settings: class -> GuardedSettings override

Settings resolve at call time: nearest class override along the MRO, then the
process-wide default. Toggling the default therefore affects the very next
call on every class without its own override.
"""
from contextlib import contextmanager
from dataclasses import dataclass, field, replace
import logging
from typing import Callable, Dict, Generator, Optional, TypeVar

from guardedstate.errors import NotGuardedError

logger = logging.getLogger(__name__)

C = TypeVar('C', bound=type)


@dataclass(frozen=True)
class GuardedSettings:
    """Settings for guarded classes."""
    # Strict mutability checks for methods. Has a performance cost that grows
    # with the size of the guarded state; disable in production if needed.
    check_mutability: bool = True


@dataclass
class GuardedClassMetadata:
    """Resolved configuration of one generated guarded class."""
    original_class: type
    clone_depth: Dict[str, int] = field(default_factory=dict)


_global_settings: GuardedSettings = GuardedSettings()

_clone_depth_registry: Dict[type, Dict[str, int]] = {}
_class_metadata: Dict[type, GuardedClassMetadata] = {}
_class_settings: Dict[type, GuardedSettings] = {}


# =============================================================================
# CLONE DEPTH
# =============================================================================

def set_clone_depth(cls: type, attribute: str, depth: int) -> None:
    """Register the clone depth of one attribute of ``cls``.

    The default depth of 0 means the attribute value is not cloned before a
    guarded method runs: the method has to assign a new value to change it.
    A depth of 1 shallow-copies the value, so the method may assign its items.
    Each further level clones one more level of nested objects.

    Raises:
        ValueError: If ``depth`` is not a non-negative integer.
    """
    if isinstance(depth, bool) or not isinstance(depth, int) or depth < 0:
        raise ValueError(f"Clone depth for {cls.__name__}.{attribute} must be a non-negative integer, got {depth!r}")

    _clone_depth_registry.setdefault(cls, {})[attribute] = depth

    # Guarded classes deriving from cls (or generated from it) pick up the change
    for guarded_class, metadata in _class_metadata.items():
        if cls in guarded_class.__mro__:
            metadata.clone_depth = resolve_clone_depths(guarded_class)


def clone_depth(**depths: int) -> Callable[[C], C]:
    """
    Class decorator registering clone depths by attribute name.

    Example:
        @guarded
        @clone_depth(items=1, tree=2)
        class Example:
            def __init__(self):
                self.items = []
                self.tree = {'children': []}
    """
    def decorator(cls: C) -> C:
        for attribute, depth in depths.items():
            set_clone_depth(cls, attribute, depth)
        return cls
    return decorator


def resolve_clone_depths(cls: type) -> Dict[str, int]:
    """Merge registered clone depths along the MRO (subclasses win)."""
    resolved: Dict[str, int] = {}
    for klass in reversed(cls.__mro__):
        resolved.update(_clone_depth_registry.get(klass, {}))
    return resolved


# =============================================================================
# GUARDED CLASS METADATA
# =============================================================================

def register_guarded_class(guarded_class: type, original_class: type) -> GuardedClassMetadata:
    """Record a generated guarded class. Clone depths are resolved now."""
    metadata = GuardedClassMetadata(
        original_class=original_class,
        clone_depth=resolve_clone_depths(guarded_class),
    )
    _class_metadata[guarded_class] = metadata
    logger.debug(f"Registered guarded class {original_class.__qualname__} with clone depths {metadata.clone_depth}")
    return metadata


def get_class_metadata(cls: type) -> Optional[GuardedClassMetadata]:
    """Metadata of the nearest guarded class in the MRO of ``cls``."""
    for klass in getattr(cls, '__mro__', ()):
        metadata = _class_metadata.get(klass)
        if metadata is not None:
            return metadata
    return None


def is_guarded_class(target: object) -> bool:
    """True if ``target`` is a guarded class or a subclass of one."""
    return isinstance(target, type) and get_class_metadata(target) is not None


# =============================================================================
# SETTINGS
# =============================================================================

def get_global_settings() -> GuardedSettings:
    """Process-wide default settings."""
    return _global_settings


def set_global_settings(settings: GuardedSettings) -> None:
    """Replace the process-wide default settings."""
    global _global_settings
    _global_settings = settings
    logger.info(f"Global guardedstate settings: {settings}")


def guarded_settings(cls: Optional[type] = None, *, check_mutability: bool) -> None:
    """
    Change settings globally, or for one guarded class and its subclasses.

    Usage:
        guarded_settings(check_mutability=False)                 # global default
        guarded_settings(TodoList, check_mutability=True)        # one class

    Raises:
        NotGuardedError: If ``cls`` is given but is not a guarded class.
    """
    if cls is None:
        set_global_settings(replace(_global_settings, check_mutability=check_mutability))
        return

    if not is_guarded_class(cls):
        raise NotGuardedError(f"{getattr(cls, '__name__', cls)!s} is not a guarded class")

    _class_settings[cls] = GuardedSettings(check_mutability=check_mutability)
    logger.debug(f"Settings override for {cls.__qualname__}: check_mutability={check_mutability}")


def reset_class_settings(cls: type) -> None:
    """Drop the settings override of ``cls`` (it falls back to inherited/global settings)."""
    _class_settings.pop(cls, None)


def resolve_settings(cls: type) -> GuardedSettings:
    """Nearest class override along the MRO, otherwise the global default.

    Not cached: evaluated on every guarded call.
    """
    for klass in cls.__mro__:
        settings = _class_settings.get(klass)
        if settings is not None:
            return settings
    return _global_settings


@contextmanager
def mutability_checks(enabled: bool) -> Generator[None, None, None]:
    """
    Temporarily override the global ``check_mutability`` default.

    Usage:
        with mutability_checks(False):
            store.branches['todos'].add(item)   # runs without snapshots
    """
    previous = _global_settings
    set_global_settings(replace(previous, check_mutability=enabled))
    try:
        yield
    finally:
        set_global_settings(previous)
