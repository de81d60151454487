"""Tests for error types and mutation diff rendering."""
import datetime
import re

from guardedstate import ChangedProperty, InputMutations, MethodNotImmutableError, NotGuardedError
from guardedstate.errors import GuardedStateError, create_mutation_diff, format_value, path_to_string


class Example:
    def update(self, todo, *, flag=None):
        pass


def test_path_to_string():
    """Test access-syntax rendering of paths."""
    assert path_to_string(('items', 3, 'id')) == '.items[3].id'
    assert path_to_string(('with space',)) == "['with space']"
    assert path_to_string(()) == ''


def test_format_value():
    """Test short single-line value rendering."""
    assert format_value('a') == "'a'"
    assert format_value(None) == 'None'
    assert format_value([1, 'x']) == "[1,'x']"
    assert format_value((1,)) == '(1)'
    assert format_value(len) == 'function'
    assert format_value(datetime.date(2020, 1, 2)) == '2020-01-02'
    assert format_value({'a': 1}) == '<dict>'
    assert format_value(re.compile('a+')) == "re.compile('a+')"


class TestMethodNotImmutableError:
    """Test the violation error."""

    def test_message_and_attributes(self):
        mutations = InputMutations(this=[ChangedProperty(path=('items', 0), old_value=1, new_value=2)])
        error = MethodNotImmutableError(mutations, Example.update, Example, 'update')

        assert error.message == 'Example.update mutates properties.'
        assert error.class_name == 'Example'
        assert error.method == 'update'
        assert error.mutations is mutations
        assert isinstance(error, GuardedStateError)
        assert str(error) == 'Example.update mutates properties.\n\nChanges:\n+self.items[0]   2\n-self.items[0]   1'

    def test_argument_paths_use_parameter_names(self):
        mutations = InputMutations(args={
            0: [ChangedProperty(path=('done',), new_value=True)],
            'flag': [ChangedProperty(path=(0,), old_value='x')],
            3: [ChangedProperty(path=('a',), new_value=1)],
        })

        diff = create_mutation_diff(mutations, {0: 'todo'})

        assert diff.splitlines() == [
            "+<argument 3>.a   1",
            "-flag[0]          'x'",
            "+todo.done        True",
        ]

    def test_without_class(self):
        error = MethodNotImmutableError(InputMutations(), method_name='run')
        assert error.message == 'run mutates properties.'
        assert error.class_name is None
        assert error.diff == ''


def test_not_guarded_error_is_a_type_error():
    """Test that misuse errors stay catchable as TypeError."""
    assert issubclass(NotGuardedError, TypeError)
    assert issubclass(NotGuardedError, GuardedStateError)
