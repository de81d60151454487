"""
Base class for the branches of a :class:`~guardedstate.state_store.GuardedStateStore`.

A branch is a guarded instance that owns one or more named slices of the
store's composite state. Each slice is an attribute of the branch; its methods
replace slices the same way any guarded method replaces attributes.

Example:
    @guarded
    @clone_depth(todos=1)
    class TodoBranch(StateBranch):
        def __init__(self):
            super().__init__(uses=['todos'], initial_state={'todos': []})

        def add(self, title):
            self.todos.append({'title': title, 'done': False})
"""
from typing import Any, Iterable, Mapping, Union

from guardedstate.errors import NotGuardedError
from guardedstate.settings import is_guarded_class


class StateBranch:
    """Abstract base of store branches; subclass it and decorate with ``@guarded``."""

    # initial_state lives in a slot so it never shows up in vars(branch)
    __slots__ = ('_initial_state',)

    def __init__(self, uses: Union[str, Iterable[str]], initial_state: Mapping[str, Any]):
        cls = type(self)
        if cls is StateBranch:
            raise TypeError("StateBranch must be derived in a new class.")
        if not is_guarded_class(cls):
            raise NotGuardedError(f"{cls.__name__} inherits StateBranch but is not decorated as @guarded.")

        used_keys = [uses] if isinstance(uses, str) else list(uses)
        attributes = vars(self)
        for key in used_keys:
            attributes[key] = initial_state.get(key)

        object.__setattr__(self, '_initial_state', initial_state)

    @property
    def initial_state(self) -> Mapping[str, Any]:
        return self._initial_state
