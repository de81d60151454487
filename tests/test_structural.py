"""Tests for structural primitives."""
from collections import deque, namedtuple
import datetime
import math
import re

from guardedstate import deep_clone, deep_equal, differs, flat_equal, same_value


class Point:
    def __init__(self, x, y):
        self.x = x
        self.y = y


Pair = namedtuple('Pair', 'left right')


class TestSameValue:
    """Test reference equality with primitive value semantics."""

    def test_primitives(self):
        assert same_value(1, 1)
        assert same_value('a', 'a')
        assert same_value(math.nan, math.nan)
        assert not same_value(1, 1.0)
        assert not same_value(True, 1)

    def test_objects_compare_by_identity(self):
        assert not same_value([], [])
        values = []
        assert same_value(values, values)


class TestDeepClone:
    """Test depth-limited cloning."""

    def test_full_clone(self):
        original = {'items': [{'id': 1}], 'point': Point(1, 2)}
        clone = deep_clone(original)

        assert clone == {'items': [{'id': 1}], 'point': clone['point']}
        assert clone is not original
        assert clone['items'] is not original['items']
        assert clone['items'][0] is not original['items'][0]
        assert clone['point'] is not original['point']
        assert type(clone['point']) is Point
        assert vars(clone['point']) == {'x': 1, 'y': 2}

    def test_depth_zero_is_shallow(self):
        original = {'items': [1, 2]}
        clone = deep_clone(original, 0)

        assert clone is not original
        assert clone['items'] is original['items']

    def test_depth_one(self):
        original = {'items': [{'id': 1}]}
        clone = deep_clone(original, 1)

        assert clone['items'] is not original['items']
        assert clone['items'][0] is original['items'][0]

    def test_negative_depth_returns_input(self):
        values = [1]
        assert deep_clone(values, -1) is values

    def test_primitives_and_opaque_values(self):
        assert deep_clone(5) == 5
        assert deep_clone(Point) is Point

    def test_deque_is_cloned_element_wise(self):
        original = deque([{'id': 1}], maxlen=3)
        clone = deep_clone(original, 1)

        assert isinstance(clone, deque)
        assert clone.maxlen == 3
        assert clone == original
        assert clone[0] is not original[0]

    def test_slots_next_to_dict_are_kept(self):
        class Tagged:
            __slots__ = ('tag', '__private', '__dict__')

            def __init__(self):
                self.tag = ['shared']
                self.__private = 'hidden'
                self.values = [1]

            def private(self):
                return self.__private

        original = Tagged()
        clone = deep_clone(original)

        assert clone.tag is original.tag
        assert clone.private() == 'hidden'
        assert clone.values == [1]
        assert clone.values is not original.values

    def test_tuples_and_value_types(self):
        pair = Pair([1], [2])
        clone = deep_clone(pair)
        assert isinstance(clone, Pair)
        assert clone.left == [1] and clone.left is not pair.left

        date = datetime.date(2020, 1, 2)
        assert deep_clone(date) == date

    def test_function_clone_keeps_behavior(self):
        def double(value):
            return value * 2
        double.meta = {'unit': 'x'}

        clone = deep_clone(double)

        assert clone is not double
        assert clone(4) == 8
        assert clone.__name__ == 'double'
        assert clone.meta == {'unit': 'x'}
        assert clone.meta is not double.meta


class TestFlatEqual:
    """Test one-level equality."""

    def test_same_items(self):
        shared = [1]
        assert flat_equal({'a': shared, 'b': 2}, {'b': 2, 'a': shared})
        assert flat_equal([1, 'x'], [1, 'x'])

    def test_nested_objects_compare_by_reference(self):
        assert not flat_equal({'a': [1]}, {'a': [1]})

    def test_different_types_or_keys(self):
        assert not flat_equal([1], (1,))
        assert not flat_equal({'a': 1}, {'a': 1, 'b': 2})
        assert not flat_equal(Point(1, 2), Point(1, 3))
        assert flat_equal(Point(1, 2), Point(1, 2))


class TestDeepEqual:
    """Test deep equality."""

    def test_nested_structures(self):
        assert deep_equal({'a': [1, {'b': 2}]}, {'a': [1, {'b': 2}]})
        assert not deep_equal({'a': [1, {'b': 2}]}, {'a': [1, {'b': 3}]})

    def test_key_order_is_irrelevant(self):
        assert deep_equal({'a': 1, 'b': 2}, {'b': 2, 'a': 1})

    def test_value_types(self):
        assert deep_equal(re.compile('a+', re.I), re.compile('a+', re.I))
        assert not deep_equal(re.compile('a+'), re.compile('a+', re.I))
        assert deep_equal(datetime.date(2020, 1, 1), datetime.date(2020, 1, 1))
        assert deep_equal(math.nan, math.nan)

    def test_type_mismatch(self):
        assert not deep_equal([1], (1,))
        assert not deep_equal(1, '1')

    def test_instances(self):
        assert deep_equal(Point(1, [2]), Point(1, [2]))


class TestDiffers:
    """Test one-level difference with significant key order."""

    def test_differs(self):
        assert not differs(1, 1)
        assert differs(1, 2)
        assert not differs([1, 2], [1, 2])
        assert differs([1, 2], [2, 1])
        assert differs({'a': 1, 'b': 2}, {'b': 2, 'a': 1})
        assert differs([1], (1,))
