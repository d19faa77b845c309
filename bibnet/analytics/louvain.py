# bibnet/analytics/louvain.py

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from bibnet.analytics.models import LouvainConfig, LouvainResult
from bibnet.graph.projection import ProjectedGraph

logger = logging.getLogger(__name__)

# Gains below this are treated as no improvement.
_MIN_GAIN = 1e-12


@dataclass
class _LevelGraph:
    """
    Undirected weighted graph for one Louvain level.

    `neighbors[i]` excludes i itself; self-loop weight lives in `loops[i]`
    and counts twice towards the degree of i.
    """
    neighbors: List[Dict[int, float]]
    loops: List[float]

    @property
    def size(self) -> int:
        return len(self.neighbors)

    def degrees(self) -> List[float]:
        return [sum(nbrs.values()) + 2.0 * loop for nbrs, loop in zip(self.neighbors, self.loops)]

    def total_weight(self) -> float:
        return sum(sum(nbrs.values()) for nbrs in self.neighbors) / 2.0 + sum(self.loops)


def _level_graph(graph: ProjectedGraph) -> _LevelGraph:
    """
    Undirected view of a projection. Directed graphs are symmetrised by
    adding the weights of a->b and b->a.
    """
    n = graph.node_count
    neighbors: List[Dict[int, float]] = [defaultdict(float) for _ in range(n)]
    loops = [0.0] * n

    for i, row in enumerate(graph.adjacency):
        for j, w in row:
            if w <= 0:
                continue
            if i == j:
                loops[i] += w
            elif graph.is_undirected:
                neighbors[i][j] += w
            else:
                neighbors[i][j] += w
                neighbors[j][i] += w

    return _LevelGraph([dict(nbrs) for nbrs in neighbors], loops)


def _renumber(assignment: Sequence[int]) -> List[int]:
    """Dense ids 0..k-1 in order of first appearance."""
    mapping: Dict[int, int] = {}
    return [mapping.setdefault(c, len(mapping)) for c in assignment]


def _move_nodes(
    level: _LevelGraph,
    resolution: float,
    max_iterations: int,
) -> Tuple[List[int], bool, bool]:
    """
    Local moving phase.

    Nodes are visited in index order; each goes to the neighboring community
    with the largest strictly positive modularity gain, lowest community id
    winning ties. Sweeps repeat until a sweep moves nothing.

    Returns (community per node, whether anything moved, whether the sweeps
    settled before `max_iterations`).
    """
    n = level.size
    community = list(range(n))
    degrees = level.degrees()
    m = level.total_weight()
    if m <= 0:
        return community, False, True

    totals = list(degrees)
    two_m_sq = 2.0 * m * m
    moved_any = False

    for _ in range(max_iterations):
        moves = 0
        for u in range(n):
            deg = degrees[u]
            current = community[u]

            weights_to: Dict[int, float] = defaultdict(float)
            for v, w in level.neighbors[u].items():
                weights_to[community[v]] += w

            totals[current] -= deg
            remove_cost = (
                -weights_to.get(current, 0.0) / m
                + resolution * totals[current] * deg / two_m_sq
            )

            best, best_gain = current, 0.0
            for candidate in sorted(weights_to):
                gain = (
                    remove_cost
                    + weights_to[candidate] / m
                    - resolution * totals[candidate] * deg / two_m_sq
                )
                if gain > best_gain + _MIN_GAIN:
                    best, best_gain = candidate, gain

            totals[best] += deg
            if best != current:
                community[u] = best
                moves += 1

        if moves == 0:
            return community, moved_any, True
        moved_any = True

    return community, moved_any, False


def _would_merge(level: _LevelGraph, resolution: float, max_iterations: int) -> bool:
    community, moved, _ = _move_nodes(level, resolution, max_iterations)
    return moved and max(_renumber(community)) + 1 < level.size


def _aggregate(level: _LevelGraph, community: Sequence[int], k: int) -> _LevelGraph:
    """Collapse each community into one node; internal weight becomes a self-loop."""
    neighbors: List[Dict[int, float]] = [defaultdict(float) for _ in range(k)]
    loops = [0.0] * k

    for u in range(level.size):
        cu = community[u]
        loops[cu] += level.loops[u]
        for v, w in level.neighbors[u].items():
            cv = community[v]
            if cu == cv:
                # each internal edge is seen once from each endpoint
                loops[cu] += w / 2.0
            else:
                neighbors[cu][cv] += w

    return _LevelGraph([dict(nbrs) for nbrs in neighbors], loops)


def _level_modularity(
    level: _LevelGraph,
    community: Sequence[int],
    resolution: float,
) -> float:
    m = level.total_weight()
    if m <= 0:
        return 0.0

    internal: Dict[int, float] = defaultdict(float)
    degree_sum: Dict[int, float] = defaultdict(float)
    for u, deg in enumerate(level.degrees()):
        c = community[u]
        degree_sum[c] += deg
        internal[c] += level.loops[u]
        for v, w in level.neighbors[u].items():
            if community[v] == c:
                internal[c] += w / 2.0

    return sum(
        internal[c] / m - resolution * (degree_sum[c] / (2.0 * m)) ** 2
        for c in degree_sum
    )


def modularity(
    graph: ProjectedGraph,
    communities: Mapping[int, int],
    resolution: float = 1.0,
) -> float:
    """Newman modularity of a node-index -> community assignment, on the undirected view."""
    assignment = [communities[i] for i in range(graph.node_count)]
    return _level_modularity(_level_graph(graph), assignment, resolution)


def louvain(
    graph: ProjectedGraph,
    config: Optional[LouvainConfig] = None,
) -> LouvainResult:
    """
    Multi-level Louvain community detection.

    Phase 1 moves nodes between neighboring communities while modularity
    improves; phase 2 collapses communities into super-nodes (keeping
    internal weight as self-loops) and repeats. Stops when a level merges
    nothing. Community ids in the result are dense, numbered in order of
    first appearance over node indices.

    The run is deterministic for a given node order.
    """
    config = config or LouvainConfig()
    n = graph.node_count
    if n == 0:
        return LouvainResult(communities={}, modularity=0.0, levels=0, converged=True)

    level = _level_graph(graph)
    base_level = level
    membership = list(range(n))
    level_modularities: List[float] = []
    converged = True
    levels = 0

    while True:
        community, moved, settled = _move_nodes(level, config.resolution, config.max_iterations)
        if not settled:
            converged = False

        dense = _renumber(community)
        k = max(dense) + 1
        if not moved or k == level.size:
            break

        membership = [dense[c] for c in membership]
        levels += 1
        level_modularities.append(
            _level_modularity(base_level, membership, config.resolution)
        )

        level = _aggregate(level, dense, k)

        if levels >= config.max_levels:
            # only approximate if the next level would still merge communities
            if _would_merge(level, config.resolution, config.max_iterations):
                converged = False
            break

    final = _renumber(membership)
    score = _level_modularity(base_level, final, config.resolution)

    if not converged:
        logger.warning(
            "Louvain stopped at its cap (%d level(s), max %d sweeps per level); "
            "communities are approximate",
            levels,
            config.max_iterations,
        )

    return LouvainResult(
        communities={i: c for i, c in enumerate(final)},
        modularity=score,
        levels=levels,
        converged=converged,
        level_modularities=level_modularities,
    )
