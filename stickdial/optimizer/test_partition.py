import itertools
import logging

import numpy as np
import pytest

from stickdial.optimizer.partition import BipartitePartitioner, CooccurrenceGraph, partition_keys
from stickdial.optimizer.stats import KeyStatistics

logger = logging.getLogger(__name__)

FREQUENCIES = {'e': 100, 'o': 90, 't': 85, 'a': 80, 'i': 75, 's': 70, 'j': 60, 'r': 55}

COOCCURRENCE = [
    ['e', 'r', 50],
    ['t', 'a', 30],
    ['a', 'i', 25],
    ['e', 's', 12],
    ['o', 'r', 10],
    ['e', 'o', 8],
    ['t', 's', 7],
    ['t', 'i', 5],
]


def example_statistics():
    return KeyStatistics.from_dict({'frequencies': FREQUENCIES, 'cooccurrence': COOCCURRENCE})


def assert_valid_partition(partition, keys):
    assert set(partition.left) | set(partition.right) == set(keys)
    assert not set(partition.left) & set(partition.right)
    for a, b, _ in partition.retained_edges:
        assert partition.side_of(a) != partition.side_of(b)
    for a, b, w in partition.lost_edges:
        assert (a, b, w) in partition.removed_edges
        assert partition.side_of(a) == partition.side_of(b)


def test_strongest_pair_is_split():
    stats = example_statistics()
    keys = stats.keys_by_frequency()

    partition = partition_keys(keys, stats)

    assert_valid_partition(partition, keys)
    assert partition.side_of('e') != partition.side_of('r')
    assert partition.side_of('j') in ('left', 'right')
    assert len(partition.left) == len(partition.right) == 4
    logger.info(f"Left: {partition.left}, right: {partition.right}, lost weight {partition.lost_weight}")


def test_example_partition_is_reproducible():
    stats = example_statistics()
    partition = partition_keys(stats.keys_by_frequency(), stats)

    assert partition.left == ('e', 'o', 'a', 'j')
    assert partition.right == ('t', 'i', 's', 'r')
    assert [e[:2] for e in partition.removed_edges] == [('t', 'i'), ('t', 's'), ('e', 'o')]
    assert partition.lost_weight == 20.0


def test_triangle_loses_weakest_edge():
    graph = CooccurrenceGraph(['a', 'b', 'c'], [('a', 'b', 3), ('b', 'c', 2), ('a', 'c', 1)])

    partition = BipartitePartitioner().partition(graph)

    assert partition.left == ('a', 'c')
    assert partition.right == ('b',)
    assert partition.removed_edges == (('a', 'c', 1.0),)
    assert partition.lost_weight == 1.0


def test_zero_weight_edges_go_first():
    graph = CooccurrenceGraph(['a', 'b', 'c'], [('a', 'b', 0), ('b', 'c', 5), ('a', 'c', 5)])

    partition = BipartitePartitioner().partition(graph)

    assert partition.removed_edges == (('a', 'b', 0.0),)
    assert partition.side_of('c') != partition.side_of('a')
    assert partition.side_of('c') != partition.side_of('b')


def test_bipartite_graph_is_kept_whole():
    graph = CooccurrenceGraph(['a', 'b', 'c', 'd'], [('a', 'b', 1), ('b', 'c', 1), ('c', 'd', 1), ('d', 'a', 1)])

    partition = BipartitePartitioner().partition(graph)

    assert partition.removed_edges == ()
    assert partition.left == ('a', 'c')
    assert partition.right == ('b', 'd')


def test_isolated_keys_balance_sides():
    graph = CooccurrenceGraph(['a', 'b', 'c', 'd'])

    partition = BipartitePartitioner().partition(graph)

    assert len(partition.left) == len(partition.right) == 2


def test_components_are_oriented_to_balance():
    graph = CooccurrenceGraph(['x', 'y', 'z', 'w'], [('x', 'y', 1), ('y', 'z', 1)])

    partition = BipartitePartitioner().partition(graph)

    assert partition.left == ('x', 'z')
    assert partition.right == ('y', 'w')


def test_empty_graph():
    partition = BipartitePartitioner().partition(CooccurrenceGraph([]))
    assert partition.left == () and partition.right == ()


def test_negative_weight_is_rejected():
    with pytest.raises(ValueError):
        CooccurrenceGraph(['a', 'b'], [('a', 'b', -1)])


def test_random_graphs_always_bipartite():
    """Random dense graphs, including zero weights and ties, always yield a valid split."""
    rng = np.random.default_rng(7)
    keys = [chr(ord('a') + i) for i in range(12)]

    for _ in range(25):
        edges = [
            (a, b, float(rng.integers(0, 5)))
            for a, b in itertools.combinations(keys, 2)
            if rng.random() < 0.4
        ]
        partition = BipartitePartitioner().partition(CooccurrenceGraph(keys, edges))

        assert_valid_partition(partition, keys)
        assert len(partition.retained_edges) + len(partition.removed_edges) == len(edges)


def test_equal_components_merge_in_finishing_order():
    """A piece split off the first component finishes before the isolated key 'b'."""
    graph = CooccurrenceGraph(
        ['a', 'b', 'c', 'd', 'e'],
        [('a', 'c', 5), ('c', 'd', 5), ('a', 'd', 5), ('d', 'e', 1)],
    )

    partition = BipartitePartitioner().partition(graph)

    assert partition.removed_edges == (('d', 'e', 1.0), ('a', 'c', 5.0))
    # 'e' is merged before 'b' and takes the smaller side
    assert partition.left == ('a', 'b', 'c')
    assert partition.right == ('d', 'e')
