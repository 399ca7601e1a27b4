"""
Bipartite key partitioning.

Keys that are often typed one after the other should live on different sticks, so
both thumbs can dial them in parallel. The keys of one difficulty tier form a graph
whose edges are weighted by co-occurrence; the partitioner drops the weakest edges
until the graph can be two-coloured, then the two colours become the left and the
right stick key sets.

ALGORITHM:
1. Edges are ranked by ascending weight (zero-weight edges go first)
2. A work list holds connected components as index arrays into the graph arena
3. A component that two-colours is finished; otherwise its weakest edge is removed
4. If the removal splits the component, every piece is queued separately
5. Finished components are merged into one partition, orienting each one to
   balance the key count (then the key frequency) of both sides

Removing edges always terminates: there are finitely many and an edgeless graph is
trivially bipartite.
"""

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from stickdial.optimizer.stats import KeyStatistics

logger = logging.getLogger(__name__)

Edge = Tuple[str, str, float]


class CooccurrenceGraph:
    """
    Undirected weighted graph over the keys of one difficulty tier.

    Nodes are numbered in the order the keys are given (most frequent first).
    Edges are stored as parallel numpy arrays: endpoint indices and weight.
    """

    def __init__(self, keys: Sequence[str], edges: Sequence[Edge] = (), frequencies=None):
        """
        Initialize the graph.

        Args:
            keys (Sequence[str]): Node keys, most frequent first
            edges (Sequence[tuple]): (key, key, weight) entries
            frequencies (Mapping[str, float], optional): Usage count per key, used to balance sides
        """
        self.keys = tuple(keys)
        self.index = {k: i for i, k in enumerate(self.keys)}
        if len(self.index) != len(self.keys):
            raise ValueError("Graph keys must be unique")

        u, v, w = [], [], []
        for a, b, weight in edges:
            if a == b:
                continue
            if weight < 0:
                raise ValueError(f"Negative co-occurrence weight for {a!r}/{b!r}: {weight}")
            u.append(self.index[a])
            v.append(self.index[b])
            w.append(float(weight))

        self.u = np.array(u, dtype=int)
        self.v = np.array(v, dtype=int)
        self.weight = np.array(w, dtype=float)

        frequencies = frequencies or {}
        self.frequency = np.array([float(frequencies.get(k, 0.0)) for k in self.keys], dtype=float)

    @classmethod
    def from_statistics(cls, keys: Sequence[str], stats: KeyStatistics) -> "CooccurrenceGraph":
        """
        Build the graph of `keys` restricted to the co-occurrences among them.
        """
        return cls(keys, stats.pairs_within(keys), stats.frequencies)

    @property
    def node_count(self) -> int:
        return len(self.keys)

    @property
    def edge_count(self) -> int:
        return len(self.weight)

    def edge(self, e: int) -> Edge:
        return self.keys[self.u[e]], self.keys[self.v[e]], float(self.weight[e])


@dataclass
class Partition:
    """
    Split of a key set between the two sticks.
    """

    left: Tuple[str, ...]
    """Keys for the left stick, most frequent first."""

    right: Tuple[str, ...]
    """Keys for the right stick, most frequent first."""

    retained_edges: Tuple[Edge, ...] = ()
    """Edges kept in the final graph; each one joins a left key to a right key."""

    removed_edges: Tuple[Edge, ...] = ()
    """Edges dropped to make the graph bipartite."""

    lost_edges: Tuple[Edge, ...] = field(default=())
    """Removed edges whose keys ended up on the same stick."""

    @property
    def lost_weight(self) -> float:
        return float(sum(w for _, _, w in self.lost_edges))

    def side_of(self, key: str) -> Optional[str]:
        """
        Return 'left' or 'right' for a partitioned key, None for an unknown key.
        """
        if key in self.left:
            return 'left'
        if key in self.right:
            return 'right'
        return None


@dataclass
class _Component:
    nodes: np.ndarray
    edges: np.ndarray
    colours: Optional[Dict[int, int]] = None


def _adjacency(graph: CooccurrenceGraph, nodes: np.ndarray, edges: np.ndarray) -> Dict[int, List[int]]:
    adjacency: Dict[int, List[int]] = {int(n): [] for n in nodes}
    for e in edges:
        a, b = int(graph.u[e]), int(graph.v[e])
        adjacency[a].append(b)
        adjacency[b].append(a)
    return adjacency


def _split_components(graph: CooccurrenceGraph, nodes: np.ndarray, edges: np.ndarray) -> List[_Component]:
    """
    Return the connected components of the subgraph (nodes, edges), ordered by their lowest node.
    """
    adjacency = _adjacency(graph, nodes, edges)
    label: Dict[int, int] = {}
    count = 0

    for start in sorted(adjacency):
        if start in label:
            continue
        label[start] = count
        queue = deque([start])
        while queue:
            n = queue.popleft()
            for m in adjacency[n]:
                if m not in label:
                    label[m] = count
                    queue.append(m)
        count += 1

    if count == 1:
        return [_Component(np.sort(nodes), edges)]

    node_labels = np.array([label[int(n)] for n in nodes], dtype=int)
    edge_labels = np.array([label[int(graph.u[e])] for e in edges], dtype=int)

    return [
        _Component(np.sort(nodes[node_labels == c]), edges[edge_labels == c])
        for c in range(count)
    ]


def _two_colour(graph: CooccurrenceGraph, component: _Component) -> Optional[Dict[int, int]]:
    """
    Two-colour a connected component by BFS from its most frequent key.
    Return None if the component contains an odd cycle.
    """
    adjacency = _adjacency(graph, component.nodes, component.edges)
    root = int(component.nodes[0])
    colours = {root: 0}
    queue = deque([root])

    while queue:
        n = queue.popleft()
        for m in adjacency[n]:
            if m not in colours:
                colours[m] = 1 - colours[n]
                queue.append(m)
            elif colours[m] == colours[n]:
                return None

    return colours


class BipartitePartitioner:
    """
    Splits the keys of a co-occurrence graph between the two sticks.
    """

    def partition(self, graph: CooccurrenceGraph) -> Partition:
        """
        Partition the graph keys so that no retained edge joins two keys of the same side.

        Args:
            graph (CooccurrenceGraph): Keys and co-occurrence edges of one tier

        Returns:
            Partition: Left/right key sets with retained, removed and lost edges
        """
        # Rank edges by weight; ties keep their insertion order
        rank = np.empty(graph.edge_count, dtype=int)
        rank[np.argsort(graph.weight, kind='stable')] = np.arange(graph.edge_count)

        work = deque(_split_components(graph, np.arange(graph.node_count), np.arange(graph.edge_count)))
        finished: List[_Component] = []
        removed: List[int] = []

        while work:
            component = work.popleft()

            colours = _two_colour(graph, component)
            if colours is not None:
                component.colours = colours
                finished.append(component)
                continue

            weakest = component.edges[np.argmin(rank[component.edges])]
            removed.append(int(weakest))

            pieces = _split_components(graph, component.nodes, component.edges[component.edges != weakest])
            if len(pieces) > 1:
                logger.debug(f"Removing {graph.edge(weakest)} split a component into {len(pieces)}")

            # Keep working on the same region before moving on
            work.extendleft(reversed(pieces))

        left, right = self._merge(graph, finished)
        side = {n: 0 for n in left}
        side.update({n: 1 for n in right})

        retained = sorted(int(e) for c in finished for e in c.edges)
        lost = [e for e in removed if side[int(graph.u[e])] == side[int(graph.v[e])]]

        partition = Partition(
            left=tuple(graph.keys[n] for n in sorted(left)),
            right=tuple(graph.keys[n] for n in sorted(right)),
            retained_edges=tuple(graph.edge(e) for e in retained),
            removed_edges=tuple(graph.edge(e) for e in removed),
            lost_edges=tuple(graph.edge(e) for e in lost),
        )

        logger.debug(
            f"Partitioned {graph.node_count} keys into {len(partition.left)}/{len(partition.right)} "
            f"({len(finished)} components, {len(removed)} edges removed, "
            f"lost weight {partition.lost_weight:g})"
        )
        return partition

    @staticmethod
    def _merge(graph: CooccurrenceGraph, components: List[_Component]) -> Tuple[List[int], List[int]]:
        """
        Merge the two-coloured components into one pair of sides.

        The largest component keeps its orientation; each following one is flipped when
        that makes the sides closer in key count, then in total key frequency.
        Components of equal size are merged in the order they were finished.
        """
        ordered = sorted(components, key=lambda c: -len(c.nodes))
        left: List[int] = []
        right: List[int] = []
        left_weight = right_weight = 0.0

        for i, component in enumerate(ordered):
            a = [n for n in component.nodes.tolist() if component.colours[n] == 0]
            b = [n for n in component.nodes.tolist() if component.colours[n] == 1]
            a_weight = float(graph.frequency[a].sum()) if a else 0.0
            b_weight = float(graph.frequency[b].sum()) if b else 0.0

            if i > 0:
                keep = (
                    abs(len(left) + len(a) - len(right) - len(b)),
                    abs(left_weight + a_weight - right_weight - b_weight),
                )
                flip = (
                    abs(len(left) + len(b) - len(right) - len(a)),
                    abs(left_weight + b_weight - right_weight - a_weight),
                )
                if flip < keep:
                    a, b = b, a
                    a_weight, b_weight = b_weight, a_weight

            left.extend(a)
            right.extend(b)
            left_weight += a_weight
            right_weight += b_weight

        return left, right


def partition_keys(keys: Sequence[str], stats: KeyStatistics) -> Partition:
    """
    Partition `keys` (most frequent first) using the co-occurrences recorded in `stats`.
    """
    return BipartitePartitioner().partition(CooccurrenceGraph.from_statistics(keys, stats))
