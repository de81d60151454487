"""Tests for mutation detection."""
import pytest

from guardedstate import MISSING, GraphSnapshot, MutationDetector, function_mutates_input


class TestFunctionMutatesInput:
    """Test detection of argument and receiver mutations."""

    def test_pure_function(self):
        def pure(values):
            return [*values, 1]

        assert function_mutates_input(pure, ([0],)) is False

    def test_appending_to_an_argument(self):
        def append(values):
            values.append(1)

        mutations = function_mutates_input(append, ([0],))

        assert mutations
        assert mutations.this == []
        [change] = mutations.args[0]
        assert change.path == (1,)
        assert change.is_addition
        assert change.new_value == 1

    def test_nested_change_in_keyword_argument(self):
        def complete(todo):
            todo['meta']['done'] = True

        mutations = function_mutates_input(complete, kwargs={'todo': {'meta': {'done': False}}})

        [change] = mutations.args['todo']
        assert change.path == ('meta', 'done')
        assert change.old_value is False
        assert change.new_value is True

    def test_removal(self):
        def remove(mapping):
            del mapping['a']

        [change] = function_mutates_input(remove, ({'a': 1},)).args[0]
        assert change.is_removal
        assert change.new_value is MISSING

    def test_receiver(self):
        class Box:
            def __init__(self):
                self.value = 1

        def update(this):
            this.value = 2

        mutations = function_mutates_input(update, this=Box())

        assert [change.path for change in mutations.this] == [('value',)]
        assert mutations.args == {}

    def test_exceptions_propagate(self):
        def fail(values):
            raise ValueError("boom")

        with pytest.raises(ValueError, match="boom"):
            function_mutates_input(fail, ([],))


class TestRollback:
    """Test restoring snapshotted objects."""

    def test_rollback_restores_nested_objects(self):
        inner = [1, 2]
        outer = {'inner': inner, 'name': 'x'}
        detector = MutationDetector((outer,))

        inner.append(3)
        outer['name'] = 'y'
        outer['extra'] = True
        detector.rollback()

        assert outer == {'inner': [1, 2], 'name': 'x'}
        assert outer['inner'] is inner

    def test_snapshot_counts_reachable_objects(self):
        shared = {}
        assert len(GraphSnapshot({'a': shared, 'b': shared, 'c': [1]})) == 3
