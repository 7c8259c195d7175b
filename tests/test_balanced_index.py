import logging
import random

import numpy as np
import pytest

from AVLIndex import BalancedIndex, InvalidArgument, Traversal
from avl_checks import check_index


def make_index(*values):
    index = BalancedIndex()
    for value in values:
        index.insert(value)
    return index


def snapshot(index):
    return index.shape(), index.engine.tree.copy(), len(index)


def assert_unchanged(index, before):
    shape, tree, count = before
    assert index.shape() == shape
    assert np.array_equal(index.engine.tree, tree)
    assert len(index) == count


def test_empty_index():
    index = BalancedIndex()

    assert len(index) == 0
    assert index.element_count() == 0
    assert index.height() == 0
    assert not index
    assert index.shape() is None
    assert index.render() == ""
    assert list(index.inorder()) == []
    assert index.min() is None
    assert index.max() is None
    assert index.count_smaller_than(3) == 0
    assert index.count_greater_than(3) == 0


def test_negative_capacity():
    with pytest.raises(ValueError):
        BalancedIndex(capacity=-1)


def test_scenario_right_right():
    index = make_index(10, 20)
    assert index.shape() == (10, None, (20, None, None))

    index.insert(30)

    assert index.shape() == (20, (10, None, None), (30, None, None))


def test_scenario_left_left():
    index = make_index(30, 20, 10)

    assert index.shape() == (20, (10, None, None), (30, None, None))


def test_scenario_left_right():
    index = make_index(30, 10, 20)

    assert index.shape() == (20, (10, None, None), (30, None, None))


def test_scenario_k_smallest():
    index = make_index(5, 3, 8, 1, 4, 7, 9)

    assert index.k_smallest(4) == 5
    with pytest.raises(InvalidArgument):
        index.k_smallest(0)
    with pytest.raises(InvalidArgument):
        index.k_smallest(8)


def test_scenario_delete_with_two_children():
    index = make_index(5, 3, 8)

    assert index.delete(5)

    assert 5 not in index
    assert len(index) == 2
    assert index.shape() == (8, (3, None, None), None)
    check_index(index)


def test_k_smallest_rejects_non_integers():
    index = make_index(1, 2, 3)

    with pytest.raises(InvalidArgument):
        index.k_smallest(1.5)
    with pytest.raises(InvalidArgument):
        index.k_smallest(True)
    with pytest.raises(ValueError):
        index.k_smallest("2")


def test_k_smallest_empty():
    with pytest.raises(InvalidArgument):
        BalancedIndex().k_smallest(1)


def test_k_smallest_accepts_numpy_integers():
    index = make_index(4, 2, 6)

    assert index.k_smallest(np.int64(2)) == 4


def test_k_smallest_round_trip():
    values = random.Random(11).sample(range(-1000, 1000), 150)
    index = make_index(*values)

    ranked = [index.k_smallest(k) for k in range(1, len(index) + 1)]

    assert ranked == sorted(values)
    assert ranked == list(index.inorder())


def test_insert_duplicate_leaves_index_unchanged():
    index = make_index(8, 4, 12, 2, 6)
    before = snapshot(index)

    assert not index.insert(6)

    assert_unchanged(index, before)


def test_delete_absent_leaves_index_unchanged():
    index = make_index(8, 4, 12, 2, 6)
    before = snapshot(index)

    assert not index.delete(7)

    assert_unchanged(index, before)


def test_delete_from_empty():
    index = BalancedIndex()

    assert not index.delete(1)
    assert len(index) == 0


def test_delete_only_node():
    index = make_index(42)

    assert index.remove(42)

    assert len(index) == 0
    assert index.height() == 0
    assert index.shape() is None


def test_search_and_contains():
    index = make_index(15, 6, 23, 4, 7, 71)

    assert index.search(7)
    assert not index.search(8)
    assert 71 in index
    assert 70 not in index


def test_search_many():
    index = make_index(*range(0, 50, 5))

    found = index.search_many([0, 1, 5, 49, 45])

    assert found.dtype == np.bool_
    assert list(found) == [True, False, True, False, True]


def test_height_and_balance_factor():
    index = make_index(20, 10, 30, 5)

    assert index.height() == 3
    assert index.height(10) == 2
    assert index.height(5) == 1
    assert index.height(99) == 0
    assert index.balance_factor(20) == 1
    assert index.balance_factor(10) == 1
    assert index.balance_factor(30) == 0
    assert index.balance_factor(99) == 0


def test_count_consistency():
    values = random.Random(5).sample(range(300), 120)
    index = make_index(*values)

    for x in range(-5, 305):
        smaller = index.count_smaller_than(x)
        greater = index.count_greater_than(x)
        assert smaller == sum(1 for v in values if v < x)
        assert smaller + greater + (1 if x in index else 0) == len(index)


def test_min_max_neighbours():
    index = make_index(50, 20, 80, 10, 30)

    assert index.min() == 10
    assert index.max() == 80
    assert index.successor(30) == 50
    assert index.successor(31) == 50
    assert index.predecessor(20) == 10
    assert index.successor(80) is None
    assert index.predecessor(10) is None


def test_replace():
    index = make_index(1, 2, 3)

    assert index.replace(2, 20)
    assert list(index) == [1, 3, 20]
    assert not index.replace(99, 100)
    assert list(index) == [1, 3, 20]


def test_replace_onto_stored_value_keeps_both():
    index = make_index(1, 2, 3)

    assert not index.replace(2, 3)
    assert list(index) == [1, 2, 3]
    assert len(index) == 3


def test_non_integer_keys_rejected():
    index = make_index(1, 2, 3)
    before = snapshot(index)

    for key in (2.5, 3.7, 2.0, "2", True, None):
        with pytest.raises(TypeError):
            index.insert(key)
        with pytest.raises(TypeError):
            index.delete(key)
        with pytest.raises(TypeError):
            index.search(key)
        with pytest.raises(TypeError):
            key in index
        with pytest.raises(TypeError):
            index.count_smaller_than(key)
        with pytest.raises(TypeError):
            index.count_greater_than(key)

    assert_unchanged(index, before)


def test_non_integer_bulk_keys_rejected():
    with pytest.raises(TypeError):
        BalancedIndex([1, 2.5])
    with pytest.raises(TypeError):
        BalancedIndex.from_values(["a", "b"])
    with pytest.raises(TypeError):
        make_index(1, 2).search_many([1.5])


def test_numpy_integer_keys_accepted():
    index = make_index(np.int64(4), np.int32(2))

    assert np.int16(4) in index
    assert index.count_smaller_than(np.int64(3)) == 1
    assert list(index.search_many(np.array([2, 3], dtype=np.int32))) == [True, False]


def test_traversal_orders():
    index = make_index(20, 10, 30, 5, 15, 25)

    assert list(index.inorder()) == [5, 10, 15, 20, 25, 30]
    assert list(index.preorder()) == [20, 10, 5, 15, 30, 25]
    assert list(index.postorder()) == [5, 15, 10, 25, 30, 20]
    assert list(index.traversal("post")) == list(index.postorder())


def test_traversals_agree_with_engine_arrays():
    index = make_index(*random.Random(2).sample(range(500), 100))

    assert list(index.inorder()) == list(index.engine.inorder())
    assert list(index.preorder()) == list(index.engine.preorder())
    assert list(index.postorder()) == list(index.engine.postorder())
    assert list(index.to_array()) == list(index.inorder())


def test_traversal_is_lazy_and_restartable():
    index = make_index(3, 1, 2)
    walk = index.inorder()

    assert isinstance(walk, Traversal)
    assert len(walk) == 3

    it = iter(walk)
    assert next(it) == 1
    assert list(walk) == [1, 2, 3]
    assert list(it) == [2, 3]

    index.insert(4)
    assert list(walk) == [1, 2, 3, 4]


def test_unknown_traversal_order():
    with pytest.raises(ValueError):
        BalancedIndex().traversal("level")


def test_readers_do_not_mutate():
    index = make_index(*random.Random(9).sample(range(200), 60))
    before = snapshot(index)

    for k in range(1, len(index) + 1):
        index.k_smallest(k)
    list(index.inorder())
    list(index.preorder())
    list(index.postorder())
    index.render()
    index.count_smaller_than(100)
    index.count_greater_than(100)

    assert_unchanged(index, before)


def test_render():
    index = make_index(10, 20, 30)

    assert index.render() == "\n".join([
        "    30",
        "Root -> 20",
        "    10",
    ])


def test_render_deeper_levels():
    index = make_index(20, 10, 30, 5)

    assert index.render(indent="  ").splitlines() == [
        "  30",
        "Root -> 20",
        "  10",
        "    5",
    ]


def test_from_values():
    index = BalancedIndex.from_values([9, 3, 9, 1, 7])

    assert list(index) == [1, 3, 7, 9]
    assert len(index) == 4
    check_index(index)


def test_constructor_values_and_growth():
    index = BalancedIndex(range(200), capacity=1)

    assert len(index) == 200
    assert index.engine.size > 200
    check_index(index)


def test_repr():
    assert repr(make_index(1, 2, 3)) == "BalancedIndex(size=3, height=2)"


def test_logging(caplog):
    index = BalancedIndex()

    with caplog.at_level(logging.DEBUG, logger="AVLIndex.BalancedIndex"):
        index.insert(1)
        index.insert(1)
        index.delete(2)

    messages = [record.getMessage() for record in caplog.records]
    assert "inserted 1 (count=1, height=1)" in messages
    assert "insert 1 ignored, already present" in messages
    assert "delete 2 ignored, not present" in messages


def test_random_operations():
    rng = random.Random(2024)

    for _ in range(30):
        index = BalancedIndex(capacity=4)
        present = set()

        for _ in range(rng.randint(50, 250)):
            action = rng.choice(["insert", "delete", "rank"])
            x = rng.randint(-50, 50)

            if action == "insert":
                assert index.insert(x) == (x not in present)
                present.add(x)

            elif action == "delete":
                assert index.delete(x) == (x in present)
                present.discard(x)

            elif present:
                k = rng.randint(1, len(present))
                assert index.k_smallest(k) == sorted(present)[k - 1]

            check_index(index)
            assert len(index) == len(present)

        assert list(index) == sorted(present)
