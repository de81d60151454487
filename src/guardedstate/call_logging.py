"""
Diagnostic sink rendering tracked calls through the logging module.

Usable directly as an observer:

    observe_guarded(todo_list).subscribe(log_method_call)
    store.observe_calls(functools.partial(log_method_call, level=logging.DEBUG))
"""
import logging
from typing import List, Optional

from guardedstate.call_model import TrackedMethodCall
from guardedstate.errors import format_value
from guardedstate.traversal import MISSING

# Calls slower than this (in milliseconds) are logged at WARNING or above
SLOW_CALL_MS = 200.0


def log_method_call(
    call: TrackedMethodCall,
    logger: Optional[logging.Logger] = None,
    level: int = logging.INFO,
) -> None:
    """Log one tracked call: duration, arguments, return value and changed attributes."""
    target = logger if logger is not None else logging.getLogger(__name__)
    if call.call_duration > SLOW_CALL_MS:
        level = max(level, logging.WARNING)
    if not target.isEnabledFor(level):
        return

    target.log(level, '\n'.join(format_method_call(call)))


def format_method_call(call: TrackedMethodCall) -> List[str]:
    """Render a tracked call as indented lines."""
    lines = [f"{call.method_name} ({call.call_duration:.2f}ms)"]

    arguments = [format_value(argument) for argument in call.arguments]
    arguments.extend(f"{key}={format_value(value)}" for key, value in call.keyword_arguments.items())
    lines.append(f"    arguments: {', '.join(arguments) if arguments else '<none>'}")

    if call.return_value is not None:
        lines.append(f"    return value: {format_value(call.return_value)}")

    if call.changes is None:
        lines.append("    changed attributes: <none>")
        return lines

    lines.append(f"    changed attributes: {', '.join(call.changes)}")
    for key, change in call.changes.items():
        old_value = '<unset>' if change.old_value is MISSING else format_value(change.old_value)
        new_value = '<deleted>' if change.new_value is MISSING else format_value(change.new_value)
        lines.append(f"    - {key}: {old_value} -> {new_value}")
    return lines
