"""
Mutation detection for arbitrary callables.

A :class:`GraphSnapshot` records the own items of every object reachable from a
root (breadth-first, each object once). After running some code, the snapshot
reports which keys were removed, added or changed, and can write the recorded
items back to roll the graph back to its captured state.

Cost is proportional to the number of reachable properties. Callers that need
bounded cost should keep guarded state shallow.
"""
from dataclasses import dataclass, field
import logging
from typing import Any, Callable, Dict, Hashable, List, Mapping, Optional, Sequence, Tuple, Union

from guardedstate.structural import same_value
from guardedstate.traversal import MISSING, Path, own_items, replace_items, traverse_object

logger = logging.getLogger(__name__)

ArgumentKey = Union[int, str]


@dataclass(frozen=True)
class ChangedProperty:
    """A single mutation found by a snapshot.

    Only ``old_value`` set means the key was removed, only ``new_value`` set
    means it was added, both set means its value changed.
    """
    path: Path
    old_value: Any = MISSING
    new_value: Any = MISSING

    @property
    def is_removal(self) -> bool:
        return self.new_value is MISSING

    @property
    def is_addition(self) -> bool:
        return self.old_value is MISSING


@dataclass
class InputMutations:
    """Mutations of the receiver (``this``) and of each argument.

    ``args`` is keyed by positional index or keyword name and only holds
    arguments that were actually mutated.
    """
    this: List[ChangedProperty] = field(default_factory=list)
    args: Dict[ArgumentKey, List[ChangedProperty]] = field(default_factory=dict)

    def all_changes(self) -> List[ChangedProperty]:
        changes = list(self.this)
        for argument_changes in self.args.values():
            changes.extend(argument_changes)
        return changes


@dataclass
class _SnapshotEntry:
    obj: Any
    items: List[Tuple[Hashable, Any]]
    path: Path


class GraphSnapshot:
    """Shallow copy of the own items of every object reachable from a root."""

    def __init__(self, root: Any):
        self._entries: Dict[int, _SnapshotEntry] = {}
        traverse_object(root, self._capture)

    def _capture(self, obj: Any, path: Path) -> None:
        self._entries[id(obj)] = _SnapshotEntry(obj=obj, items=own_items(obj) or [], path=path)

    def __len__(self) -> int:
        return len(self._entries)

    def changes(self) -> List[ChangedProperty]:
        """Compare every captured object against its captured items."""
        changes: List[ChangedProperty] = []

        for entry in self._entries.values():
            old_items = dict(entry.items)
            new_items = dict(own_items(entry.obj) or [])

            for key, old_value in old_items.items():
                if key not in new_items:
                    changes.append(ChangedProperty(path=(*entry.path, key), old_value=old_value))

            for key, new_value in new_items.items():
                if key not in old_items:
                    changes.append(ChangedProperty(path=(*entry.path, key), new_value=new_value))
                elif not same_value(old_items[key], new_value):
                    changes.append(ChangedProperty(
                        path=(*entry.path, key),
                        old_value=old_items[key],
                        new_value=new_value,
                    ))

        return changes

    def restore(self) -> int:
        """Write the captured items back into every mutable captured object.

        Returns:
            Number of objects that were written back.
        """
        restored = 0
        for entry in self._entries.values():
            if replace_items(entry.obj, entry.items):
                restored += 1
        return restored


class MutationDetector:
    """Snapshots a receiver and call arguments to find out what a call mutated.

    Usage:
        detector = MutationDetector(args, kwargs, this=instance)
        run_the_call()
        mutations = detector.collect()
        if mutations:
            detector.rollback()
    """

    def __init__(
        self,
        args: Sequence[Any] = (),
        kwargs: Optional[Mapping[str, Any]] = None,
        this: Any = MISSING,
    ):
        self._this_snapshot = GraphSnapshot(this) if this is not MISSING else None
        self._arg_snapshots: Dict[ArgumentKey, GraphSnapshot] = {
            index: GraphSnapshot(arg) for index, arg in enumerate(args)
        }
        for name, value in (kwargs or {}).items():
            self._arg_snapshots[name] = GraphSnapshot(value)

    def collect(self) -> Union[bool, InputMutations]:
        """Return False if nothing reachable changed, the mutations otherwise."""
        this_changes = self._this_snapshot.changes() if self._this_snapshot is not None else []
        arg_changes: Dict[ArgumentKey, List[ChangedProperty]] = {}

        for key, snapshot in self._arg_snapshots.items():
            changes = snapshot.changes()
            if changes:
                arg_changes[key] = changes

        if this_changes or arg_changes:
            return InputMutations(this=this_changes, args=arg_changes)
        return False

    def rollback(self) -> None:
        """Restore every snapshotted object (receiver first, then arguments)."""
        restored = 0
        if self._this_snapshot is not None:
            restored += self._this_snapshot.restore()
        for snapshot in self._arg_snapshots.values():
            restored += snapshot.restore()
        logger.debug(f"Rolled back {restored} mutated object(s)")


def function_mutates_input(
    fn: Callable[..., Any],
    args: Sequence[Any] = (),
    kwargs: Optional[Mapping[str, Any]] = None,
    this: Any = MISSING,
) -> Union[bool, InputMutations]:
    """
    Call ``fn`` and report whether it mutated its receiver or arguments.

    Args:
        fn: The callable to run. If ``this`` is given, it is passed as the first
            positional argument (like calling an unbound method).
        args: Positional arguments, watched by index
        kwargs: Keyword arguments, watched by name
        this: Optional receiver, watched as ``this``

    Returns:
        False if nothing reachable from ``this`` or the arguments changed,
        otherwise the :class:`InputMutations`. Exceptions raised by ``fn``
        propagate unchanged.
    """
    kwargs = kwargs or {}
    detector = MutationDetector(args, kwargs, this=this)

    if this is MISSING:
        fn(*args, **kwargs)
    else:
        fn(this, *args, **kwargs)

    return detector.collect()
