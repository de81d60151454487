"""
Copy-on-write state containers for plain Python classes.

Methods of a guarded class never mutate shared state in place: attributes
are cloned to a configured depth before each call, in-place changes beyond
that depth are rejected and rolled back, and every call publishes which
attributes it replaced.

Key Features:
- ``@guarded`` class decorator with per-attribute clone depths
- Mutation detection with structured, human-readable violation reports
- Reference reuse: unchanged sub-trees keep their identity across calls
- Observable call records for guarded instances
- A store composing several guarded branches into one application state

Quick Start:
    >>> from guardedstate import guarded, clone_depth, observe_guarded
    >>>
    >>> @guarded
    ... @clone_depth(items=1)
    ... class TodoList:
    ...     def __init__(self):
    ...         self.items = []
    ...     def add(self, item):
    ...         self.items.append(item)
    >>>
    >>> todos = TodoList()
    >>> subscription = observe_guarded(todos).subscribe(print)
    >>> todos.add('write tests')   # publishes one TrackedMethodCall

Modules:
    - structural: same_value, deep_clone, flat_equal, deep_equal, differs
    - traversal: object model shared by all structural helpers
    - mutation_detector: graph snapshots and function_mutates_input
    - guarded: the @guarded decorator and call transactions
    - settings: clone depths and mutability check settings
    - observe: subscriptions to call records of guarded instances
    - state_branch / state_store: composite application state
    - reuse: copy-on-change helpers
    - call_logging: log tracked calls through the logging module
"""

# Structural primitives
from guardedstate.traversal import (
    MISSING,
    traverse_object,
    is_cyclic_structure,
    has_shared_references,
)
from guardedstate.structural import (
    same_value,
    deep_clone,
    flat_equal,
    deep_equal,
    differs,
)

# Mutation detection
from guardedstate.mutation_detector import (
    ChangedProperty,
    InputMutations,
    GraphSnapshot,
    MutationDetector,
    function_mutates_input,
)

# Errors
from guardedstate.errors import (
    GuardedStateError,
    MethodNotImmutableError,
    NotGuardedError,
)

# Configuration
from guardedstate.settings import (
    GuardedSettings,
    clone_depth,
    set_clone_depth,
    guarded_settings,
    get_global_settings,
    set_global_settings,
    reset_class_settings,
    mutability_checks,
    is_guarded_class,
)

# Guarded classes
from guardedstate.call_model import PropertyChange, TrackedMethodCall
from guardedstate.guarded import (
    guarded,
    is_guarded_instance,
    get_original_class,
    restore_unchanged_properties,
)
from guardedstate.observe import Subscribable, Subscription, observe_guarded

# Composite state
from guardedstate.state_branch import StateBranch
from guardedstate.state_store import GuardedStateStore

# Helpers
from guardedstate.reuse import deep_apply_with_reuse, map_values, mutate, with_changes
from guardedstate.call_logging import log_method_call

__all__ = [
    # Structural primitives
    'MISSING',
    'traverse_object',
    'is_cyclic_structure',
    'has_shared_references',
    'same_value',
    'deep_clone',
    'flat_equal',
    'deep_equal',
    'differs',
    # Mutation detection
    'ChangedProperty',
    'InputMutations',
    'GraphSnapshot',
    'MutationDetector',
    'function_mutates_input',
    # Errors
    'GuardedStateError',
    'MethodNotImmutableError',
    'NotGuardedError',
    # Configuration
    'GuardedSettings',
    'clone_depth',
    'set_clone_depth',
    'guarded_settings',
    'get_global_settings',
    'set_global_settings',
    'reset_class_settings',
    'mutability_checks',
    'is_guarded_class',
    # Guarded classes
    'PropertyChange',
    'TrackedMethodCall',
    'guarded',
    'is_guarded_instance',
    'get_original_class',
    'restore_unchanged_properties',
    'Subscribable',
    'Subscription',
    'observe_guarded',
    # Composite state
    'StateBranch',
    'GuardedStateStore',
    # Helpers
    'deep_apply_with_reuse',
    'map_values',
    'mutate',
    'with_changes',
    'log_method_call',
]

__version__ = '0.1.0'
__author__ = 'guardedstate contributors'
__description__ = 'Copy-on-write state containers with mutation detection for plain Python classes'
