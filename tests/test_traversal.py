"""Tests for object graph traversal helpers."""
from guardedstate.traversal import (
    MISSING,
    get_key,
    has_shared_references,
    is_cyclic_structure,
    own_items,
    replace_items,
    set_key,
    traverse_object,
)


class Point:
    def __init__(self, x, y):
        self.x = x
        self.y = y


class TestOwnItems:
    """Test the (key, value) view of values."""

    def test_primitives_have_no_items(self):
        for value in (None, True, 1, 1.5, 'text', b'bytes'):
            assert own_items(value) is None

    def test_opaque_values_have_no_items(self):
        assert own_items(Point) is None
        assert own_items(len) is None
        assert own_items(MISSING) is None

    def test_containers_and_instances(self):
        assert own_items({'a': 1}) == [('a', 1)]
        assert own_items(['x', 'y']) == [(0, 'x'), (1, 'y')]
        assert own_items({3}) == [(3, 3)]
        assert own_items(Point(1, 2)) == [('x', 1), ('y', 2)]


class TestKeyAccess:
    """Test reading and writing single items."""

    def test_get_key_missing(self):
        assert get_key({}, 'a') is MISSING
        assert get_key([1], 5) is MISSING
        assert get_key(Point(1, 2), 'z', None) is None

    def test_set_key_writes_instance_dict(self):
        point = Point(1, 2)
        assert set_key(point, 'x', 10)
        assert point.x == 10

    def test_set_key_refuses_immutable_containers(self):
        assert set_key((1, 2), 0, 5) is False

    def test_replace_items(self):
        values = [1, 2, 3]
        assert replace_items(values, [(0, 'a')])
        assert values == ['a']


def test_traverse_object_visits_every_object_once():
    """Test breadth-first traversal with shared references."""
    shared = {'leaf': True}
    root = {'a': shared, 'b': [shared]}
    visited = []

    traverse_object(root, lambda obj, path: visited.append(path))

    assert visited == [(), ('a',), ('b',)]


def test_cycles_and_shared_references():
    """Test cycle and shared-reference detection."""
    acyclic = {'a': {'b': 1}}
    cyclic = {'a': []}
    cyclic['a'].append(cyclic)
    shared_child = {}

    assert not is_cyclic_structure(acyclic)
    assert is_cyclic_structure(cyclic)
    assert not has_shared_references(acyclic)
    assert has_shared_references({'x': shared_child, 'y': shared_child})
    assert not is_cyclic_structure({'x': shared_child, 'y': shared_child})
