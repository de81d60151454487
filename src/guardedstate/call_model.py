"""
Tracked call records emitted by guarded method transactions.

Design Philosophy: Correct by Construction
- Immutable records (frozen dataclass)
- ``changes`` is None when no top-level reference changed, never an empty dict
- Old/new property maps are copies, never the live instance ``__dict__``
"""
from dataclasses import dataclass, replace
from typing import Any, Dict, Optional, Tuple

from guardedstate.structural import same_value
from guardedstate.traversal import MISSING


@dataclass(frozen=True)
class PropertyChange:
    """Old and new value of one top-level property.

    A property removed by the call has ``new_value`` MISSING, a property
    added by the call has ``old_value`` MISSING.
    """
    old_value: Any
    new_value: Any


@dataclass(frozen=True)
class TrackedMethodCall:
    """Record of one externally visible guarded method call.

    Nested calls on the same instance are folded into the record of the
    outermost call.
    """
    instance: Any
    method_name: str
    arguments: Tuple[Any, ...]
    keyword_arguments: Dict[str, Any]
    return_value: Any
    call_duration: float  # milliseconds
    changes: Optional[Dict[str, PropertyChange]]
    old_properties: Dict[str, Any]
    new_properties: Dict[str, Any]

    @classmethod
    def create(
        cls,
        instance: Any,
        method_name: str,
        arguments: Tuple[Any, ...],
        keyword_arguments: Dict[str, Any],
        return_value: Any,
        call_duration: float,
        old_properties: Dict[str, Any],
        new_properties: Dict[str, Any],
    ) -> 'TrackedMethodCall':
        """Create a record, computing ``changes`` from the property maps."""
        return cls(
            instance=instance,
            method_name=method_name,
            arguments=tuple(arguments),
            keyword_arguments=dict(keyword_arguments),
            return_value=return_value,
            call_duration=call_duration,
            changes=compute_property_changes(old_properties, new_properties),
            old_properties=dict(old_properties),
            new_properties=dict(new_properties),
        )

    @property
    def has_changes(self) -> bool:
        return self.changes is not None

    def with_attribution(self, instance: Any, prefix: str) -> 'TrackedMethodCall':
        """Copy of this record attributed to ``instance`` as ``prefix.method_name``."""
        return replace(self, instance=instance, method_name=f"{prefix}.{self.method_name}")

    def to_dict(self) -> Dict[str, Any]:
        """Export to a plain dict (for diagnostic sinks)."""
        return {
            'method_name': self.method_name,
            'arguments': list(self.arguments),
            'keyword_arguments': dict(self.keyword_arguments),
            'return_value': self.return_value,
            'call_duration': self.call_duration,
            'changes': {
                key: {'old_value': change.old_value, 'new_value': change.new_value}
                for key, change in self.changes.items()
            } if self.changes is not None else None,
            'old_properties': dict(self.old_properties),
            'new_properties': dict(self.new_properties),
        }


def compute_property_changes(
    old_properties: Dict[str, Any],
    new_properties: Dict[str, Any],
) -> Optional[Dict[str, PropertyChange]]:
    """Top-level properties whose reference differs, or None if there are none."""
    changes: Dict[str, PropertyChange] = {}

    for key, new_value in new_properties.items():
        old_value = old_properties.get(key, MISSING)
        if not same_value(old_value, new_value):
            changes[key] = PropertyChange(old_value=old_value, new_value=new_value)

    for key, old_value in old_properties.items():
        if key not in new_properties:
            changes[key] = PropertyChange(old_value=old_value, new_value=MISSING)

    return changes or None
