"""Pytest configuration and shared fixtures."""
import pytest

import guardedstate.settings as settings_module
from guardedstate import StateBranch, clone_depth, guarded


@pytest.fixture(autouse=True)
def restore_guarded_settings():
    """Restore process-wide and per-class settings after each test."""
    # Store original values
    original_global = settings_module._global_settings
    original_class_settings = dict(settings_module._class_settings)

    yield

    # Restore original values after test
    settings_module._global_settings = original_global
    settings_module._class_settings.clear()
    settings_module._class_settings.update(original_class_settings)


@guarded
class Counter:
    """Guarded counter with a single depth-0 attribute."""

    def __init__(self, count=0):
        self.count = count

    def increment(self):
        self.count += 1

    def increment_twice(self):
        self.increment()
        self.increment()

    def get_count(self):
        return self.count


@guarded
@clone_depth(todos=1)
class TodoBranch(StateBranch):
    """Branch owning the 'todos' slice."""

    def __init__(self, todos=None):
        super().__init__(uses=['todos'], initial_state={'todos': todos if todos is not None else []})

    def add(self, title):
        self.todos.append({'title': title, 'done': False})

    def complete_in_place(self, index):
        self.todos[index]['done'] = True

    def noop(self):
        return len(self.todos)


@guarded
class FilterBranch(StateBranch):
    """Branch owning the 'filter' slice and reading 'todos'."""

    def __init__(self):
        super().__init__(uses=['filter', 'todos'], initial_state={'filter': 'all'})

    def set_filter(self, value):
        self.filter = value


@pytest.fixture
def counter():
    """Provide a fresh guarded counter."""
    return Counter()


@pytest.fixture
def todo_branch():
    """Provide a todo branch with two entries."""
    return TodoBranch([{'title': 'a', 'done': False}, {'title': 'b', 'done': True}])


@pytest.fixture
def filter_branch():
    """Provide a filter branch."""
    return FilterBranch()
