"""
Store combining several guarded branches into one composite application state.

Each branch owns named slices (its attributes) of the composite state. The
store subscribes to the call stream of every branch:

- A call that changed slices produces a new composite state (shallow copy with
  the changed slices replaced). The new values are pushed into every sibling
  branch declaring the same slice, then state observers are notified.
- Every call, changed or not, is republished to call observers as
  ``"<branch>.<method>"`` with ``instance`` set to the store.

Slices that were not touched keep their reference across updates, so
observers can compare slices by identity to skip work.

Usage:
    store = GuardedStateStore({'todos': TodoBranch(), 'filter': FilterBranch()})
    store.subscribe(lambda state: render(state))
    store.branches['todos'].add('Write tests')
"""
import functools
import logging
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Mapping, Optional

from guardedstate.call_model import PropertyChange, TrackedMethodCall
from guardedstate.errors import NotGuardedError
from guardedstate.guarded import is_guarded_instance
from guardedstate.observe import Subscribable, Subscription, observe_guarded
from guardedstate.reuse import deep_apply_with_reuse
from guardedstate.structural import same_value
from guardedstate.traversal import MISSING

logger = logging.getLogger(__name__)

StateObserver = Callable[[Dict[str, Any]], None]
CallObserver = Callable[[TrackedMethodCall], None]


class GuardedStateStore:
    """Observable store over a fixed set of named guarded branches."""

    def __init__(self, branches: Mapping[str, Any]):
        for name, branch in branches.items():
            if not is_guarded_instance(branch):
                raise NotGuardedError(f"Branch '{name}' ({type(branch).__name__}) is not decorated as @guarded.")

        self._branches: Dict[str, Any] = dict(branches)
        self._state: Dict[str, Any] = {}
        self._state_observers: List[StateObserver] = []
        self._call_observers: List[CallObserver] = []
        self._subscriptions: List[Subscription] = []

        self._combine_initial_state()
        self._observe_branches()

    # =========================================================================
    # PUBLIC API
    # =========================================================================

    @property
    def state(self) -> Dict[str, Any]:
        """Current composite state. Replaced (never mutated) on every change."""
        return self._state

    @property
    def branches(self) -> Mapping[str, Any]:
        """Read-only view of the branches by name."""
        return MappingProxyType(self._branches)

    def subscribe(self, observer: Any) -> Subscription:
        """Get notified with the new composite state whenever it changes."""
        return Subscribable(self._state_observers).subscribe(observer)

    def as_observable(self, observable_factory: Optional[Callable[..., Any]] = None) -> Any:
        """State stream, optionally adapted by ``observable_factory(subscribe)``."""
        if observable_factory is not None:
            return observable_factory(self.subscribe)
        return Subscribable(self._state_observers)

    def observe_calls(self, observer: Any) -> Subscription:
        """Get notified about every method call on any branch."""
        return Subscribable(self._call_observers).subscribe(observer)

    def calls_as_observable(self, observable_factory: Optional[Callable[..., Any]] = None) -> Any:
        """Call stream, optionally adapted by ``observable_factory(subscribe)``."""
        if observable_factory is not None:
            return observable_factory(self.observe_calls)
        return Subscribable(self._call_observers)

    def replace_state(self, new_state: Mapping[str, Any]) -> bool:
        """
        Replace slices of the composite state without calling branch methods.

        Values deep-equal to the current ones keep the current reference, so
        replacing the state with an equal copy changes nothing and notifies
        no one. Keys missing from ``new_state`` keep their current value.

        Returns:
            True if any slice changed (observers were notified once).
        """
        changes: Dict[str, PropertyChange] = {}
        for key, value in new_state.items():
            old_value = self._state.get(key, MISSING)
            new_value = value if old_value is MISSING else deep_apply_with_reuse(old_value, value)
            if not same_value(old_value, new_value):
                changes[key] = PropertyChange(old_value=old_value, new_value=new_value)

        if not changes:
            logger.debug("replace_state: state is unchanged")
            return False

        self._apply_changes(changes, source=None)
        return True

    def destroy(self) -> None:
        """Detach from all branches and drop all observers."""
        for subscription in self._subscriptions:
            subscription.unsubscribe()
        self._subscriptions.clear()
        self._state_observers.clear()
        self._call_observers.clear()
        logger.debug(f"Destroyed store with branches {list(self._branches)}")

    # =========================================================================
    # INTERNALS
    # =========================================================================

    def _combine_initial_state(self) -> None:
        """Resolve the initial value of every slice and push it into all branches."""
        initial_state: Dict[str, Any] = {}

        for name, branch in self._branches.items():
            slices = vars(branch)
            if not slices:
                logger.warning(f"Branch '{name}' ({type(branch).__name__}) declares no state slices")

            for key, value in slices.items():
                # First branch holding an actual value wins
                if key not in initial_state or (initial_state[key] is None and value is not None):
                    initial_state[key] = value

        for branch in self._branches.values():
            slices = vars(branch)
            for key in slices:
                slices[key] = initial_state[key]

        self._state = initial_state

    def _observe_branches(self) -> None:
        for name, branch in self._branches.items():
            callback = functools.partial(self._branch_called, name)
            self._subscriptions.append(observe_guarded(branch).subscribe(callback))

    def _branch_called(self, branch_name: str, call: TrackedMethodCall) -> None:
        if call.changes is not None:
            self._apply_changes(call.changes, source=call.instance)

        attributed = call.with_attribution(self, branch_name)
        for observer in list(self._call_observers):
            observer(attributed)

    def _apply_changes(self, changes: Mapping[str, PropertyChange], source: Any) -> None:
        """Build the next composite state and sync sibling branches."""
        new_state = dict(self._state)

        for key, change in changes.items():
            # A slice deleted from a branch reads as None in the composite state
            new_value = None if change.new_value is MISSING else change.new_value
            new_state[key] = new_value

            for branch in self._branches.values():
                slices = vars(branch)
                if branch is not source and key in slices:
                    slices[key] = new_value

        self._state = new_state
        logger.debug(f"State slices changed: {sorted(changes)}")

        for observer in list(self._state_observers):
            observer(new_state)
